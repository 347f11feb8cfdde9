"""Web dashboard API for relready: the release detail view backend.

Serves the prep checklist (toggle, confirm, at-risk flags) and the release
readiness report over JSON. The app's lifespan is the detail view's
lifetime: startup opens a ``ReleaseView`` (starting the periodic at-risk
review) and shutdown closes it, cancelling the ticker.

A module-level ``_store`` is set at startup and injected via
``Depends(_get_store)``.

Usage:
    relready dashboard                    # Opens browser at localhost:8378
    relready dashboard --port 9000        # Custom port
    relready dashboard --no-browser       # Skip auto-open
"""

from __future__ import annotations

import contextlib
import logging
import webbrowser
from collections.abc import AsyncIterator
from typing import Any

from fastapi.responses import JSONResponse

from relready.core import DEFAULT_REVIEW_INTERVAL, find_relready_root, read_config
from relready.grouping import DEFAULT_FIELDS, FieldMap
from relready.prep_items import PrepItemStore
from relready.ticker import ReleaseView

DEFAULT_PORT = 8378

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Module-level state, set by main() or test fixtures
# ---------------------------------------------------------------------------

_store: PrepItemStore | None = None
_fields: FieldMap = DEFAULT_FIELDS
_review_interval: float = DEFAULT_REVIEW_INTERVAL


def _get_store() -> PrepItemStore:
    """Return the active prep-item store."""
    from fastapi import HTTPException

    if _store is None:
        raise HTTPException(status_code=500, detail="Prep checklist not initialized")
    return _store


def _get_fields() -> FieldMap:
    return _fields


def create_app(*, review_interval: float | None = None) -> Any:
    """Create the FastAPI application with all dashboard endpoints."""
    from fastapi import FastAPI

    from relready.dashboard_routes.readiness import create_router

    interval = review_interval if review_interval is not None else _review_interval

    @contextlib.asynccontextmanager
    async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
        if _store is None:
            yield
            return
        view = ReleaseView(_store, review_interval=interval)
        app.state.view = view
        async with view:
            yield

    app = FastAPI(title="relready Dashboard", docs_url=None, redoc_url=None, lifespan=_lifespan)
    app.include_router(create_router(), prefix="/api")

    @app.get("/api/health")
    async def api_health() -> JSONResponse:
        view = getattr(app.state, "view", None)
        return JSONResponse({"status": "ok", "view_open": bool(view and view.is_open)})

    return app


def main(port: int = DEFAULT_PORT, *, no_browser: bool = False) -> None:
    """Start the dashboard server for the project discovered from cwd."""
    import threading

    import uvicorn

    from relready.logging import setup_logging
    from relready.project import field_map, open_store, review_interval

    global _store, _fields, _review_interval

    relready_dir = find_relready_root()
    setup_logging(relready_dir)
    config = read_config(relready_dir)
    _store = open_store(relready_dir)
    _fields = field_map(config)
    _review_interval = review_interval(config)

    app = create_app()

    if not no_browser:
        threading.Timer(0.5, lambda: webbrowser.open(f"http://localhost:{port}/api/prep-items")).start()

    print(f"relready Dashboard: http://localhost:{port}")
    uvicorn.run(app, host="127.0.0.1", port=port, log_level="warning")
