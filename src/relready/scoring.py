"""Readiness and risk scoring for releases.

Pure functions of their inputs. Group scores describe a bucket of tickets;
the combined readiness score blends checklist completion (60%) with open
ticket pressure (40%).
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from relready.core import PrepItem
from relready.events import TicketEvent
from relready.types.scoring import ReadinessBandDict

DONE_STATUSES: tuple[str, ...] = ("done", "closed", "resolved", "completed")
STALE_AFTER = timedelta(days=7)

# Risk components and their caps
_OPEN_WEIGHT = 40
_SEVERITY_CAP = 30
_CRITICAL_POINTS = 15
_HIGH_POINTS = 5
_BLOCKER_CAP = 20
_BLOCKER_POINTS = 10
_STALE_CAP = 10
_STALE_POINTS = 2

# Combined readiness
_PREP_WEIGHT = 0.6
_TICKET_WEIGHT = 0.4
_OPEN_TICKET_CEILING = 10
_OPEN_TICKET_PENALTY = 50


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positive scores (builtin round() is banker's)."""
    return math.floor(value + 0.5)


def is_done_status(status: str) -> bool:
    """True when the status name contains any done marker (case-insensitive)."""
    lowered = status.lower()
    return any(done in lowered for done in DONE_STATUSES)


def _open_tickets(tickets: Sequence[TicketEvent]) -> list[TicketEvent]:
    return [t for t in tickets if not is_done_status(t.status)]


def group_progress(tickets: Sequence[TicketEvent]) -> int:
    """Percentage of tickets in a done status. An empty group counts as 100."""
    if not tickets:
        return 100
    done = len(tickets) - len(_open_tickets(tickets))
    return round_half_up(100 * done / len(tickets))


def _is_stale(ticket: TicketEvent, now: datetime) -> bool:
    if ticket.timestamp is None:
        return False
    return now - ticket.timestamp > STALE_AFTER


def group_risk_score(tickets: Sequence[TicketEvent], now: datetime) -> int:
    """Composite 0-100 risk for a ticket group, computed over its open tickets.

    - open ratio: up to 40 points
    - severity: 15 per critical, 5 per high, capped at 30
    - blockers: 10 each, capped at 20
    - stale (no update for more than 7 days): 2 each, capped at 10
    """
    if not tickets:
        return 0
    open_tickets = _open_tickets(tickets)
    if not open_tickets:
        return 0

    critical = sum(1 for t in open_tickets if t.severity == "critical")
    high = sum(1 for t in open_tickets if t.severity == "high")
    blockers = sum(1 for t in open_tickets if t.type == "blocker")
    stale = sum(1 for t in open_tickets if _is_stale(t, now))

    open_component = _OPEN_WEIGHT * (len(open_tickets) / len(tickets))
    severity_component = min(_SEVERITY_CAP, _CRITICAL_POINTS * critical + _HIGH_POINTS * high)
    blocker_component = min(_BLOCKER_CAP, _BLOCKER_POINTS * blockers)
    stale_component = min(_STALE_CAP, _STALE_POINTS * stale)

    total = open_component + severity_component + blocker_component + stale_component
    return round_half_up(min(100, total))


def ticket_score(open_external_count: int) -> float:
    """Open-ticket component: 5 points per open item, floored at 0."""
    return max(0.0, 100 - _OPEN_TICKET_PENALTY * open_external_count / _OPEN_TICKET_CEILING)


def prep_score(prep_completed: int, prep_total: int) -> float:
    if prep_total <= 0:
        return 100.0
    return 100 * prep_completed / prep_total


def combined_readiness_score(open_external_count: int, prep_completed: int, prep_total: int) -> int:
    """Release-level readiness: 60% checklist completion, 40% open-ticket pressure."""
    combined = _PREP_WEIGHT * prep_score(prep_completed, prep_total) + _TICKET_WEIGHT * ticket_score(open_external_count)
    return round_half_up(combined)


def prep_readiness_score(items: Sequence[PrepItem]) -> int:
    """Checklist-only readiness: percentage of completed items (100 when empty)."""
    return round_half_up(prep_score(sum(1 for i in items if i.completed), len(items)))


@dataclass(frozen=True)
class ReadinessBand:
    label: str
    status: str
    color: str

    def to_dict(self) -> ReadinessBandDict:
        return ReadinessBandDict(label=self.label, status=self.status, color=self.color)


_BANDS: tuple[tuple[int, ReadinessBand], ...] = (
    (90, ReadinessBand("Ready", "healthy", "text-status-healthy")),
    (75, ReadinessBand("Almost Ready", "primary", "text-primary")),
    (60, ReadinessBand("Needs Work", "degraded", "text-status-degraded")),
)
_NOT_READY = ReadinessBand("Not Ready", "critical", "text-status-critical")


def readiness_band(score: int) -> ReadinessBand:
    for threshold, band in _BANDS:
        if score >= threshold:
            return band
    return _NOT_READY


def risk_status(risk_score: int) -> str:
    """Status pill for a group risk score."""
    if risk_score >= 70:
        return "critical"
    if risk_score >= 40:
        return "degraded"
    return "healthy"
