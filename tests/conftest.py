"""Shared pytest fixtures for relready tests."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from relready.core import RELREADY_DIR_NAME, default_config, write_config
from relready.events import TicketEvent
from relready.prep_items import Notification, PrepItemStore
from relready.repository import MemoryRepository
from relready.resolver import ResolverEngine

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


class FakeClock:
    """Settable clock; ``advance()`` moves it forward."""

    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakeTickets:
    """TicketQuery double: returns canned tickets or raises *error*."""

    def __init__(self, tickets: list[Mapping[str, Any]] | None = None, error: Exception | None = None) -> None:
        self.tickets = tickets or []
        self.error = error
        self.queries: list[str] = []

    async def search(self, query: str) -> list[Mapping[str, Any]]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return list(self.tickets)


class FakeStatuses:
    """StatusCheck double: per-endpoint canned documents, ``{"status": "pending"}`` otherwise."""

    def __init__(self, statuses: dict[str, Mapping[str, Any]] | None = None, error: Exception | None = None) -> None:
        self.statuses = statuses or {}
        self.error = error
        self.endpoints: list[str] = []

    async def fetch_status(self, endpoint: str) -> Mapping[str, Any]:
        self.endpoints.append(endpoint)
        if self.error is not None:
            raise self.error
        return self.statuses.get(endpoint, {"status": "pending"})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tickets() -> FakeTickets:
    return FakeTickets()


@pytest.fixture
def statuses() -> FakeStatuses:
    return FakeStatuses()


@pytest.fixture
def repository() -> MemoryRepository:
    return MemoryRepository()


@pytest.fixture
def notifications() -> list[Notification]:
    return []


@pytest.fixture
def store(
    repository: MemoryRepository,
    tickets: FakeTickets,
    statuses: FakeStatuses,
    clock: FakeClock,
    notifications: list[Notification],
) -> PrepItemStore:
    """Loaded store over an empty in-memory record, fixed clock and fake collaborators."""
    s = PrepItemStore(
        repository,
        ResolverEngine(tickets, statuses),
        notify=notifications.append,
        clock=clock,
    )
    s.load()
    return s


@pytest.fixture
def make_ticket() -> Callable[..., TicketEvent]:
    """Factory for jira ticket events.

    ``fields`` becomes ``payload.fields``; ``status`` is a shortcut for
    ``fields.status.name``.
    """

    def _make(
        id: str = "t1",
        *,
        fields: dict[str, Any] | None = None,
        status: str | None = None,
        payload: dict[str, Any] | None = None,
        source: str = "jira",
        **kwargs: Any,
    ) -> TicketEvent:
        body = dict(payload or {})
        ticket_fields = dict(fields or {})
        if status is not None:
            ticket_fields["status"] = {"name": status}
        if ticket_fields:
            body["fields"] = ticket_fields
        kwargs.setdefault("timestamp", NOW)
        return TicketEvent(id=id, source=source, payload=body, **kwargs)

    return _make


@pytest.fixture
def relready_project(tmp_path: Path) -> Path:
    """A tmp directory set up as a relready project (.relready/ with config).

    Returns the project root (parent of .relready/).
    """
    relready_dir = tmp_path / RELREADY_DIR_NAME
    relready_dir.mkdir()
    write_config(relready_dir, default_config())
    return tmp_path


@pytest.fixture
def cli_runner() -> CliRunner:
    """Click CLI test runner."""
    return CliRunner()
