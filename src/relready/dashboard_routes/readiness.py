"""Prep checklist and release readiness route handlers."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fastapi import APIRouter

from fastapi.responses import JSONResponse
from starlette.requests import Request

from relready.core import utcnow
from relready.dashboard_routes.common import _get_bool_param, _not_found, _parse_json_body, _validation_error
from relready.events import TicketEvent, parse_events
from relready.grouping import VALID_GROUP_MODES, FieldMap
from relready.prep_items import PrepItemStore
from relready.report import build_readiness_report
from relready.scoring import prep_readiness_score, readiness_band

logger = logging.getLogger(__name__)


def _store_snapshot(store: PrepItemStore, *, at_risk_only: bool = False) -> dict[str, Any]:
    items = [i for i in store.items if i.at_risk or not at_risk_only]
    score = prep_readiness_score(store.items)
    return {
        "items": [i.to_dict() for i in items],
        "pending_confirmation": store.pending_confirmation,
        "persist_error": store.persist_error,
        "prep_completed": store.completed_count,
        "prep_total": len(store.items),
        "checklist_score": score,
        "checklist_band": readiness_band(score).to_dict(),
    }


# ---------------------------------------------------------------------------
# Router factory
# ---------------------------------------------------------------------------


def create_router() -> APIRouter:
    """Build the APIRouter for prep-item and readiness endpoints.

    NOTE: All handlers are async and share the single store on the event
    loop thread; only the automated check in ``toggle`` suspends.
    """
    from fastapi import APIRouter, Depends

    from relready.dashboard import _get_fields, _get_store

    router = APIRouter()

    @router.get("/prep-items")
    async def api_prep_items(request: Request, store: PrepItemStore = Depends(_get_store)) -> JSONResponse:
        """Prep checklist with derived at-risk flags."""
        at_risk_only = _get_bool_param(request.query_params, "at_risk_only", False)
        if not isinstance(at_risk_only, bool):
            return at_risk_only  # propagate the 400 error response
        return JSONResponse(_store_snapshot(store, at_risk_only=at_risk_only))

    @router.post("/prep-items/review")
    async def api_review(store: PrepItemStore = Depends(_get_store)) -> JSONResponse:
        changed = store.review_at_risk()
        return JSONResponse({"changed": changed, **_store_snapshot(store)})

    @router.post("/prep-items/{item_id}/toggle")
    async def api_toggle(item_id: str, store: PrepItemStore = Depends(_get_store)) -> JSONResponse:
        """Toggle completion; automated items run their check first."""
        try:
            outcome = await store.toggle_complete(item_id)
        except KeyError:
            return _not_found(item_id)
        return JSONResponse({"outcome": str(outcome), "item": store.get(item_id).to_dict(), **_store_snapshot(store)})

    @router.post("/prep-items/{item_id}/confirm")
    async def api_confirm(item_id: str, store: PrepItemStore = Depends(_get_store)) -> JSONResponse:
        try:
            item = store.confirm_manual(item_id)
        except KeyError:
            return _not_found(item_id)
        return JSONResponse({"item": item.to_dict(), **_store_snapshot(store)})

    @router.post("/prep-items/{item_id}/cancel")
    async def api_cancel(item_id: str, store: PrepItemStore = Depends(_get_store)) -> JSONResponse:
        try:
            store.get(item_id)
        except KeyError:
            return _not_found(item_id)
        if store.pending_confirmation == item_id:
            store.cancel_confirmation()
        return JSONResponse(_store_snapshot(store))

    @router.post("/prep-items/{item_id}/at-risk")
    async def api_toggle_at_risk(item_id: str, store: PrepItemStore = Depends(_get_store)) -> JSONResponse:
        try:
            item = store.toggle_at_risk(item_id)
        except KeyError:
            return _not_found(item_id)
        return JSONResponse({"item": item.to_dict(), **_store_snapshot(store)})

    @router.post("/readiness")
    async def api_readiness(
        request: Request,
        store: PrepItemStore = Depends(_get_store),
        fields_map: FieldMap = Depends(_get_fields),
    ) -> JSONResponse:
        """Group the posted events and score the release.

        Body: ``{"events": [...], "release": {...} | null, "group_by": "team" | "service" | "epic"}``
        """
        body = await _parse_json_body(request)
        if not isinstance(body, dict):
            return body

        raw_events = body.get("events", [])
        if not isinstance(raw_events, list):
            return _validation_error("events must be a list", param="events")
        group_by = body.get("group_by", "team")
        if not isinstance(group_by, str) or group_by not in VALID_GROUP_MODES:
            return _validation_error(
                f"Invalid group_by: {group_by!r}. Must be one of {', '.join(sorted(VALID_GROUP_MODES))}.",
                param="group_by",
                value=group_by,
            )
        raw_release = body.get("release")
        if raw_release is not None and not isinstance(raw_release, dict):
            return _validation_error("release must be an object", param="release")

        release = TicketEvent.from_dict(raw_release) if raw_release else None
        report = build_readiness_report(
            store.items,
            parse_events(raw_events),
            now=utcnow(),
            release=release,
            group_by=group_by,
            fields_map=fields_map,
        )
        return JSONResponse(report)

    return router
