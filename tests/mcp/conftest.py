"""Fixtures for MCP server tests."""

from __future__ import annotations

from collections.abc import Generator

import pytest

import relready.mcp_server as mcp_mod
from relready.prep_items import PrepItemStore


@pytest.fixture
def mcp_store(store: PrepItemStore) -> Generator[PrepItemStore, None, None]:
    """Patch the MCP module globals with the shared in-memory store."""
    mcp_mod.store = store
    yield store
    mcp_mod.store = None
