"""TypedDicts for grouping and readiness responses."""

from __future__ import annotations

from typing import Any, TypedDict

from relready.types.core import ISOTimestamp


class TicketGroupDict(TypedDict):
    key: str
    name: str
    tickets: list[dict[str, Any]]
    progress: int
    risk_score: int
    risk_status: str
    release_date: ISOTimestamp | None


class ReadinessBandDict(TypedDict):
    label: str
    status: str
    color: str


class ReadinessReport(TypedDict):
    """Envelope returned by the readiness endpoint, CLI and MCP tool."""

    version: str | None
    release_date: ISOTimestamp | None
    group_by: str
    groups: list[TicketGroupDict]
    open_external_count: int
    prep_completed: int
    prep_total: int
    score: int
    band: ReadinessBandDict
