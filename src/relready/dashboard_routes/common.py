"""Error envelope and request parsing shared by the dashboard routes.

Every rejected request answers with
``{"error": {"message": ..., "code": ..., "details": {...}}}``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from fastapi.responses import JSONResponse
    from starlette.requests import Request

logger = logging.getLogger(__name__)

VALIDATION_ERROR = "VALIDATION_ERROR"
PREP_ITEM_NOT_FOUND = "PREP_ITEM_NOT_FOUND"

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})


def _error_response(
    message: str,
    code: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    from fastapi.responses import JSONResponse

    logger.warning("Dashboard request rejected (%s %s): %s", status_code, code, message)
    body = {"error": {"message": message, "code": code, "details": details or {}}}
    return JSONResponse(body, status_code=status_code)


def _validation_error(message: str, **details: Any) -> JSONResponse:
    return _error_response(message, VALIDATION_ERROR, 400, details)


def _not_found(item_id: str) -> JSONResponse:
    return _error_response(f"Prep item not found: {item_id}", PREP_ITEM_NOT_FOUND, 404, {"id": item_id})


async def _parse_json_body(request: Request) -> dict[str, Any] | JSONResponse:
    """Decode the body as a JSON object, or return the 400 response to send instead."""
    try:
        body = await request.json()
    except ValueError:
        return _validation_error("Invalid JSON body")
    if isinstance(body, dict):
        return body
    return _validation_error("Request body must be a JSON object")


def _get_bool_param(params: Mapping[str, str], name: str, default: bool) -> bool | JSONResponse:
    """Boolean query parameter; *default* when absent, a 400 response when unparseable."""
    raw = params.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    return _validation_error(
        f"{name} must be a boolean (true/false, 1/0, yes/no, on/off), got {raw!r}",
        param=name,
        value=raw,
    )
