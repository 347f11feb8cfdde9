"""Tests for automated completion checks and their HTTP collaborators."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

from relready.core import AutomatedCheck, PrepItem
from relready.resolver import (
    USER_AGENT,
    CheckUnavailable,
    HttpStatusCheck,
    HttpTicketQuery,
    ResolverEngine,
)


def _automated(kind: str, **config: Any) -> PrepItem:
    return PrepItem(
        id="check-me",
        label="Check me",
        description="",
        resolver_type="automated",
        automated_check=AutomatedCheck(kind=kind, **config),  # type: ignore[arg-type]
    )


def _json_transport(body: Any, status_code: int = 200, seen: list[httpx.Request] | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=body)

    return httpx.MockTransport(handler)


# ---------------------------------------------------------------------------
# HTTP collaborators
# ---------------------------------------------------------------------------


class TestHttpTicketQuery:
    async def test_sends_jql_and_keeps_jira_events(self) -> None:
        seen: list[httpx.Request] = []
        body = {"events": [{"id": "1", "source": "jira"}, {"id": "2", "source": "github"}, "junk"]}
        query = HttpTicketQuery("http://ops.test/", transport=_json_transport(body, seen=seen))
        result = await query.search('project = "RELEASE"')
        assert [e["id"] for e in result] == ["1"]
        request = seen[0]
        assert request.url.path == "/api/activity/stream"
        assert request.url.params["jql"] == 'project = "RELEASE"'
        assert request.headers["user-agent"] == USER_AGENT

    async def test_accepts_bare_list(self) -> None:
        query = HttpTicketQuery("http://ops.test", transport=_json_transport([{"id": "1", "source": "jira"}]))
        assert len(await query.search("x")) == 1

    async def test_non_list_events_unavailable(self) -> None:
        query = HttpTicketQuery("http://ops.test", transport=_json_transport({"events": "none"}))
        with pytest.raises(CheckUnavailable):
            await query.search("x")

    async def test_http_error_raises(self) -> None:
        query = HttpTicketQuery("http://ops.test", transport=_json_transport({}, status_code=503))
        with pytest.raises(httpx.HTTPStatusError):
            await query.search("x")


class TestHttpStatusCheck:
    async def test_returns_object(self) -> None:
        seen: list[httpx.Request] = []
        check = HttpStatusCheck("http://ops.test", transport=_json_transport({"status": "ready"}, seen=seen))
        assert await check.fetch_status("/api/monitoring/configured") == {"status": "ready"}
        assert seen[0].url.path == "/api/monitoring/configured"

    async def test_non_object_unavailable(self) -> None:
        check = HttpStatusCheck("http://ops.test", transport=_json_transport(["ready"]))
        with pytest.raises(CheckUnavailable):
            await check.fetch_status("/api/x")


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class TestJiraTicketCheck:
    @pytest.mark.parametrize("status", ["Done", "closed", " CLOSED "])
    async def test_done_or_closed_completes(self, tickets: Any, statuses: Any, status: str) -> None:
        tickets.tickets = [{"source": "jira", "payload": {"status": status}}]
        result = await ResolverEngine(tickets, statuses).check(_automated("jira_ticket", query="q"))
        assert result.complete

    @pytest.mark.parametrize("status", ["In Progress", "Resolved", ""])
    async def test_other_statuses_do_not_complete(self, tickets: Any, statuses: Any, status: str) -> None:
        tickets.tickets = [{"source": "jira", "payload": {"fields": {"status": {"name": status}}}}]
        result = await ResolverEngine(tickets, statuses).check(_automated("jira_ticket", query="q"))
        assert not result.complete

    async def test_no_tickets(self, tickets: Any, statuses: Any) -> None:
        result = await ResolverEngine(tickets, statuses).check(_automated("jira_ticket", query="q"))
        assert not result.complete
        assert "0 match" in result.reason

    async def test_missing_query(self, tickets: Any, statuses: Any) -> None:
        result = await ResolverEngine(tickets, statuses).check(_automated("jira_ticket"))
        assert not result.complete
        assert tickets.queries == []

    async def test_transport_error(self, tickets: Any, statuses: Any) -> None:
        tickets.error = httpx.ConnectError("refused")
        result = await ResolverEngine(tickets, statuses).check(_automated("jira_ticket", query="q"))
        assert not result.complete
        assert "transport error" in result.reason


class TestApiCheck:
    async def test_expected_status_completes(self, tickets: Any, statuses: Any) -> None:
        statuses.statuses = {"/api/deploy": {"status": "deployed"}}
        item = _automated("api_check", endpoint="/api/deploy", expected_status="deployed")
        assert (await ResolverEngine(tickets, statuses).check(item)).complete

    async def test_default_expected_status_is_ready(self, tickets: Any, statuses: Any) -> None:
        statuses.statuses = {"/api/x": {"status": "ready"}}
        assert (await ResolverEngine(tickets, statuses).check(_automated("api_check", endpoint="/api/x"))).complete

    async def test_mismatch(self, tickets: Any, statuses: Any) -> None:
        statuses.statuses = {"/api/x": {"status": "pending"}}
        item = _automated("api_check", endpoint="/api/x", expected_status="ready")
        result = await ResolverEngine(tickets, statuses).check(item)
        assert not result.complete
        assert "'pending'" in result.reason

    async def test_missing_status_field(self, tickets: Any, statuses: Any) -> None:
        statuses.statuses = {"/api/x": {"state": "ready"}}
        result = await ResolverEngine(tickets, statuses).check(_automated("api_check", endpoint="/api/x"))
        assert not result.complete
        assert "unusable response" in result.reason

    async def test_http_status_error(self, tickets: Any) -> None:
        http = HttpStatusCheck("http://ops.test", transport=_json_transport({"error": "boom"}, status_code=500))
        result = await ResolverEngine(tickets, http).check(_automated("api_check", endpoint="/api/x"))
        assert not result.complete
        assert result.reason == "HTTP 500"

    async def test_undecodable_body(self, tickets: Any) -> None:
        transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>"))
        http = HttpStatusCheck("http://ops.test", transport=transport)
        result = await ResolverEngine(tickets, http).check(_automated("api_check", endpoint="/api/x"))
        assert not result.complete

    async def test_unexpected_error_is_contained(self, tickets: Any, statuses: Any, caplog: pytest.LogCaptureFixture) -> None:
        statuses.error = RuntimeError("kaboom")
        result = await ResolverEngine(tickets, statuses).check(_automated("api_check", endpoint="/api/x"))
        assert not result.complete
        assert "BUG" in caplog.text


class TestNonAutomated:
    async def test_manual_item(self, tickets: Any, statuses: Any) -> None:
        item = PrepItem(id="m", label="M", description="", resolver_type="manual")
        result = await ResolverEngine(tickets, statuses).check(item)
        assert not result.complete
        assert tickets.queries == []
        assert statuses.endpoints == []

    async def test_unknown_kind(self, tickets: Any, statuses: Any) -> None:
        result = await ResolverEngine(tickets, statuses).check(_automated("pagerduty", query="q"))
        assert not result.complete
        assert "unknown check kind" in result.reason
