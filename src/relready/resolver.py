"""Completion checks for automated prep items.

The engine interprets an item's ``AutomatedCheck`` against two narrow
collaborators: a ticket query and a status endpoint. A check never raises;
anything that goes wrong resolves to ``complete=False`` so the caller routes
the user to manual confirmation instead of blocking them.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import httpx

from relready.core import DEFAULT_CHECK_TIMEOUT, PrepItem
from relready.events import TICKET_SOURCE, extract_status

logger = logging.getLogger(__name__)

USER_AGENT = "relready/0.3 (release-readiness)"
TICKET_DONE_STATUSES: frozenset[str] = frozenset({"done", "closed"})
DEFAULT_EXPECTED_STATUS = "ready"


# ---------------------------------------------------------------------------
# Collaborator contracts
# ---------------------------------------------------------------------------


class TicketQuery(Protocol):
    async def search(self, query: str) -> list[Mapping[str, Any]]:
        """Return ticket-like objects matching *query*."""
        ...


class StatusCheck(Protocol):
    async def fetch_status(self, endpoint: str) -> Mapping[str, Any]:
        """Return the endpoint's status document (``{"status": ...}``)."""
        ...


class CheckUnavailable(Exception):
    """A collaborator answered with something the engine cannot use."""


# ---------------------------------------------------------------------------
# HTTP collaborators
# ---------------------------------------------------------------------------


class HttpTicketQuery:
    """Ticket search over the activity stream API.

    Sends the configured query as ``jql`` and keeps only ticket-system
    events from the response (``{"events": [...]}`` or a bare list).
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_CHECK_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def search(self, query: str) -> list[Mapping[str, Any]]:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": USER_AGENT},
        ) as client:
            response = await client.get("/api/activity/stream", params={"jql": query})
            response.raise_for_status()
            data = response.json()

        events = data.get("events", []) if isinstance(data, dict) else data
        if not isinstance(events, list):
            msg = "activity stream returned no event list"
            raise CheckUnavailable(msg)
        return [e for e in events if isinstance(e, Mapping) and e.get("source") == TICKET_SOURCE]


class HttpStatusCheck:
    """GETs ``{base_url}{endpoint}`` and returns the decoded JSON object."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = DEFAULT_CHECK_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def fetch_status(self, endpoint: str) -> Mapping[str, Any]:
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"User-Agent": USER_AGENT},
        ) as client:
            response = await client.get(endpoint)
            response.raise_for_status()
            data = response.json()
        if not isinstance(data, dict):
            msg = f"status endpoint {endpoint} returned {type(data).__name__}, expected object"
            raise CheckUnavailable(msg)
        return data


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckResult:
    complete: bool
    reason: str = ""


class ResolverEngine:
    """Runs an item's automated check and reports a completion verdict."""

    def __init__(self, tickets: TicketQuery, statuses: StatusCheck) -> None:
        self.tickets = tickets
        self.statuses = statuses

    async def check(self, item: PrepItem) -> CheckResult:
        """Evaluate *item*'s automated check. Never raises."""
        check = item.automated_check
        if item.resolver_type != "automated" or check is None:
            return CheckResult(False, "no automated check configured")
        try:
            if check.kind == "jira_ticket":
                return await self._check_tickets(check.query)
            if check.kind == "api_check":
                return await self._check_endpoint(check.endpoint, check.expected_status or DEFAULT_EXPECTED_STATUS)
        except httpx.HTTPStatusError as exc:
            logger.warning("Check for %s got HTTP %s", item.id, exc.response.status_code)
            return CheckResult(False, f"HTTP {exc.response.status_code}")
        except httpx.HTTPError as exc:
            logger.warning("Check for %s failed: %s", item.id, exc)
            return CheckResult(False, f"transport error: {exc}")
        except (CheckUnavailable, ValueError, KeyError, TypeError, AttributeError) as exc:
            # ValueError covers undecodable JSON bodies
            logger.warning("Check for %s returned an unusable response: %s", item.id, exc)
            return CheckResult(False, f"unusable response: {exc}")
        except Exception:
            logger.exception("BUG: unexpected error checking %s", item.id)
            return CheckResult(False, "unexpected error")
        logger.warning("Unknown check kind %r on %s", check.kind, item.id)
        return CheckResult(False, f"unknown check kind {check.kind!r}")

    async def _check_tickets(self, query: str | None) -> CheckResult:
        if not query:
            return CheckResult(False, "no ticket query configured")
        tickets = await self.tickets.search(query)
        for ticket in tickets:
            if extract_status(ticket).strip().lower() in TICKET_DONE_STATUSES:
                return CheckResult(True, "matching ticket is done")
        return CheckResult(False, f"no done ticket among {len(tickets)} match(es)")

    async def _check_endpoint(self, endpoint: str | None, expected: str) -> CheckResult:
        if not endpoint:
            return CheckResult(False, "no endpoint configured")
        data = await self.statuses.fetch_status(endpoint)
        status = data.get("status")
        if not isinstance(status, str):
            msg = f"status endpoint {endpoint} has no status field"
            raise CheckUnavailable(msg)
        if status == expected:
            return CheckResult(True, f"status is {expected!r}")
        return CheckResult(False, f"status is {status!r}, expected {expected!r}")
