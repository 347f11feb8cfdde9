"""Read-only view over upstream activity events that describe tickets.

Events arrive as JSON objects from the activity feed. Ticket attributes sit
under ``payload.fields`` (Jira's shape); some producers flatten them into the
payload itself, so :meth:`TicketEvent.fields` falls back to the payload.
Nothing here ever raises on a malformed event.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from relready.core import parse_iso

TICKET_SOURCE = "jira"


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


@dataclass(frozen=True)
class TicketEvent:
    id: str
    source: str
    type: str = ""
    severity: str = ""
    resolved: bool = False
    message: str = ""
    timestamp: datetime | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    service_tags: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TicketEvent:
        tags = data.get("serviceTags", data.get("service_tags")) or []
        return cls(
            id=str(data.get("id", "")),
            source=str(data.get("source") or ""),
            type=str(data.get("type") or ""),
            severity=str(data.get("severity") or ""),
            resolved=data.get("resolved") is True,
            message=str(data.get("message") or ""),
            timestamp=parse_iso(data.get("timestamp")),
            payload=_as_dict(data.get("payload")),
            service_tags=tuple(t for t in tags if isinstance(t, str)) if isinstance(tags, list) else (),
        )

    @property
    def fields(self) -> dict[str, Any]:
        """Ticket attribute map: ``payload.fields`` or the payload itself."""
        nested = self.payload.get("fields")
        return nested if isinstance(nested, dict) else self.payload

    @property
    def is_ticket(self) -> bool:
        return self.source == TICKET_SOURCE

    @property
    def status(self) -> str:
        return extract_status(self)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "type": self.type,
            "severity": self.severity,
            "resolved": self.resolved,
            "message": self.message,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "payload": self.payload,
            "serviceTags": list(self.service_tags),
        }


def parse_events(raw: Iterable[Any]) -> list[TicketEvent]:
    """Build events from decoded JSON, skipping entries that are not objects."""
    return [TicketEvent.from_dict(item) for item in raw if isinstance(item, Mapping)]


def _status_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        name = value.get("name")
        if isinstance(name, str):
            return name
    return None


def extract_status(ticket: TicketEvent | Mapping[str, Any]) -> str:
    """Status name of a ticket-like value, or ``""`` when none is present.

    Accepts a status object (``{"name": ...}``) or a flat string, looked up
    in ``payload.fields.status``, ``payload.status`` and top-level ``status``.
    """
    if isinstance(ticket, TicketEvent):
        payload = ticket.payload
        top_level = None
    else:
        payload = _as_dict(ticket.get("payload"))
        top_level = ticket.get("status")
    candidates = (_as_dict(payload.get("fields")).get("status"), payload.get("status"), top_level)
    for candidate in candidates:
        text = _status_text(candidate)
        if text:
            return text
    return ""
