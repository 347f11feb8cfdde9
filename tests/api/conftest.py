"""Fixtures for HTTP dashboard API tests (FastAPI)."""

from __future__ import annotations

from collections.abc import AsyncIterator, Generator
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

import relready.dashboard as dash_module
from relready.dashboard import create_app
from relready.prep_items import PrepItemStore


@pytest.fixture
def app(store: PrepItemStore) -> Generator[Any, None, None]:
    dash_module._store = store
    yield create_app(review_interval=0.01)
    dash_module._store = None


@pytest.fixture
async def client(app: Any) -> AsyncIterator[AsyncClient]:
    """Test client backed by the shared in-memory store."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
