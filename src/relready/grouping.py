"""Ticket grouping by epic, team, or service.

Each dimension is extracted through an ordered fallback chain; the first
non-empty value wins. Extraction never raises: a malformed payload falls
through to the next step and ultimately to a named default ("Other",
"No Epic").

Only ticket-system events (``source == "jira"``) are grouped.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from relready.core import parse_iso
from relready.events import TicketEvent
from relready.scoring import group_progress, group_risk_score, risk_status
from relready.types.scoring import TicketGroupDict

GroupMode = Literal["team", "service", "epic"]
VALID_GROUP_MODES: frozenset[str] = frozenset({"team", "service", "epic"})

NO_EPIC = "No Epic"
OTHER_SERVICE = "Other"

_ISSUE_KEY_RE = re.compile(r"([A-Z]+-\d+)")
_VERSION_RE = re.compile(r"v?(\d+\.\d+\.\d+)")


@dataclass(frozen=True)
class FieldMap:
    """Custom-field ids used by the ticket system for epics, services and dates."""

    epic_field: str = "customfield_10011"
    service_fields: tuple[str, ...] = ("customfield_10022", "customfield_10023", "service")
    release_date_field: str = "customfield_10020"


DEFAULT_FIELDS = FieldMap()


@dataclass
class TicketGroup:
    key: str
    name: str
    tickets: list[TicketEvent] = field(default_factory=list)
    progress: int = 100
    risk_score: int = 0
    release_date: datetime | None = None

    def to_dict(self) -> TicketGroupDict:
        return TicketGroupDict(
            key=self.key,
            name=self.name,
            tickets=[t.to_dict() for t in self.tickets],
            progress=self.progress,
            risk_score=self.risk_score,
            risk_status=risk_status(self.risk_score),
            release_date=self.release_date.isoformat() if self.release_date else None,  # type: ignore[typeddict-item]
        )


def _nonempty_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


# ---------------------------------------------------------------------------
# Attribute extraction
# ---------------------------------------------------------------------------


def extract_issue_key(event: TicketEvent) -> str | None:
    """Issue key from ``payload.key``, ``payload.issue.key`` or the message text."""
    if not event.is_ticket:
        return None
    key = _nonempty_str(event.payload.get("key"))
    if key:
        return key
    key = _nonempty_str(_mapping(event.payload.get("issue")).get("key"))
    if key:
        return key
    m = _ISSUE_KEY_RE.search(event.message)
    return m.group(1) if m else None


def extract_epic_key(event: TicketEvent, fields_map: FieldMap = DEFAULT_FIELDS) -> str | None:
    """Epic key: ``epic`` (string or ``.key``), then ``parent.key``, then the epic custom field."""
    fields = event.fields
    epic = fields.get("epic")
    key = _nonempty_str(epic) or _nonempty_str(_mapping(epic).get("key"))
    if key:
        return key
    key = _nonempty_str(_mapping(fields.get("parent")).get("key"))
    if key:
        return key
    return _nonempty_str(fields.get(fields_map.epic_field))


def extract_epic(event: TicketEvent, fields_map: FieldMap = DEFAULT_FIELDS) -> str:
    return extract_epic_key(event, fields_map) or NO_EPIC


def extract_epic_name(event: TicketEvent, epic_key: str) -> str:
    fields = event.fields
    return (
        _nonempty_str(_mapping(fields.get("epic")).get("name"))
        or _nonempty_str(_mapping(fields.get("parent")).get("summary"))
        or epic_key
    )


def extract_service(event: TicketEvent, fields_map: FieldMap = DEFAULT_FIELDS) -> str:
    """Service: first service tag, first component, custom service field, project key, "Other"."""
    if event.service_tags and event.service_tags[0]:
        return event.service_tags[0]
    if not event.is_ticket:
        return OTHER_SERVICE

    fields = event.fields
    components = fields.get("components")
    if isinstance(components, list) and components:
        name = _nonempty_str(_mapping(components[0]).get("name"))
        if name:
            return name

    for field_id in fields_map.service_fields:
        value = _nonempty_str(fields.get(field_id))
        if value:
            return value
    value = _nonempty_str(event.payload.get("service"))
    if value:
        return value

    project_key = _nonempty_str(_mapping(fields.get("project")).get("key"))
    if project_key:
        return project_key
    return OTHER_SERVICE


def _team_from_fields(fields: dict[str, Any]) -> str | None:
    """Team field as a string or an object with ``name``/``value``."""
    team = fields.get("Team") or fields.get("team")
    if isinstance(team, str):
        return team.strip() or None
    if isinstance(team, dict):
        for attr in ("name", "value"):
            value = _nonempty_str(team.get(attr))
            if value:
                return value.strip()
    return None


def _find_epic_event(epic_key: str, all_events: Sequence[TicketEvent]) -> TicketEvent | None:
    for candidate in all_events:
        if candidate.is_ticket and extract_issue_key(candidate) == epic_key:
            return candidate
    return None


def extract_team(
    event: TicketEvent,
    all_events: Sequence[TicketEvent],
    fields_map: FieldMap = DEFAULT_FIELDS,
) -> str:
    """Team: ticket team, epic team, epic assignee, then the service fallback chain."""
    if not event.is_ticket:
        return extract_service(event, fields_map)

    team = _team_from_fields(event.fields)
    if team:
        return team

    epic_key = extract_epic_key(event, fields_map)
    epic_event = _find_epic_event(epic_key, all_events) if epic_key else None
    if epic_event is None:
        return extract_service(event, fields_map)

    epic_fields = epic_event.fields
    team = _team_from_fields(epic_fields)
    if team:
        return team
    assignee = _nonempty_str(_mapping(epic_fields.get("assignee")).get("displayName"))
    if assignee:
        return assignee
    return extract_service(event, fields_map)


def _release_date_of(event: TicketEvent, fields_map: FieldMap) -> datetime | None:
    fields = event.fields
    return parse_iso(fields.get(fields_map.release_date_field)) or parse_iso(fields.get("duedate")) or event.timestamp


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


def _bucket(tickets: Sequence[TicketEvent], key_of: Callable[[TicketEvent], str]) -> dict[str, list[TicketEvent]]:
    buckets: dict[str, list[TicketEvent]] = {}
    for ticket in tickets:
        if not ticket.is_ticket:
            continue
        buckets.setdefault(key_of(ticket), []).append(ticket)
    return buckets


def _scored(key: str, name: str, tickets: list[TicketEvent], now: datetime) -> TicketGroup:
    return TicketGroup(
        key=key,
        name=name,
        tickets=tickets,
        progress=group_progress(tickets),
        risk_score=group_risk_score(tickets, now),
    )


def organize_by_team(
    tickets: Sequence[TicketEvent],
    now: datetime,
    all_events: Sequence[TicketEvent] | None = None,
    fields_map: FieldMap = DEFAULT_FIELDS,
) -> list[TicketGroup]:
    """Group tickets by team. Epics are looked up in *all_events* (defaults to *tickets*)."""
    lookup = tickets if all_events is None else all_events
    buckets = _bucket(tickets, lambda t: extract_team(t, lookup, fields_map))
    return [_scored(team, team, members, now) for team, members in buckets.items()]


def organize_by_service(
    tickets: Sequence[TicketEvent],
    now: datetime,
    fields_map: FieldMap = DEFAULT_FIELDS,
) -> list[TicketGroup]:
    buckets = _bucket(tickets, lambda t: extract_service(t, fields_map))
    return [_scored(service, service, members, now) for service, members in buckets.items()]


def organize_by_epic(
    tickets: Sequence[TicketEvent],
    now: datetime,
    fields_map: FieldMap = DEFAULT_FIELDS,
) -> list[TicketGroup]:
    """Group tickets by epic; name and release date come from the group's first ticket."""
    buckets = _bucket(tickets, lambda t: extract_epic(t, fields_map))
    groups: list[TicketGroup] = []
    for epic_key, members in buckets.items():
        first = members[0]
        group = _scored(epic_key, extract_epic_name(first, epic_key), members, now)
        group.release_date = _release_date_of(first, fields_map)
        groups.append(group)
    return groups


def group_tickets(
    tickets: Sequence[TicketEvent],
    mode: GroupMode,
    now: datetime,
    *,
    all_events: Sequence[TicketEvent] | None = None,
    fields_map: FieldMap = DEFAULT_FIELDS,
) -> list[TicketGroup]:
    """Group by *mode* and return the groups sorted for display."""
    if mode == "team":
        groups = organize_by_team(tickets, now, all_events, fields_map)
    elif mode == "service":
        groups = organize_by_service(tickets, now, fields_map)
    elif mode == "epic":
        groups = organize_by_epic(tickets, now, fields_map)
    else:
        msg = f"Unknown group mode: {mode!r}. Expected one of {sorted(VALID_GROUP_MODES)}"
        raise ValueError(msg)
    return sort_groups(groups, mode)


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

_NO_DATE_KEY = float("inf")


def _group_sort_key(group: TicketGroup, mode: GroupMode) -> tuple[Any, ...]:
    if mode == "epic":
        date_key = group.release_date.timestamp() if group.release_date else _NO_DATE_KEY
        return (-group.risk_score, date_key, group.key)
    return (-group.risk_score, group.name.casefold(), group.name, group.key)


def sort_groups(groups: Sequence[TicketGroup], mode: GroupMode = "team") -> list[TicketGroup]:
    """Highest risk first.

    Ties break on name, case-insensitively (team/service), or on release
    date, earliest first (epic); then on key so no two distinct groups
    compare equal. Epics without a release date sort after dated ones.
    """
    return sorted(groups, key=lambda g: _group_sort_key(g, mode))


# ---------------------------------------------------------------------------
# Release scoping
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReleaseInfo:
    version: str
    release_date: datetime | None


def release_info(release: TicketEvent) -> ReleaseInfo:
    """Version and target date of a release event.

    Version: ``payload.version``, ``payload.ref``, a semver in the message, else "TBD".
    """
    payload = release.payload
    version = _nonempty_str(payload.get("version")) or _nonempty_str(payload.get("ref"))
    if not version:
        m = _VERSION_RE.search(release.message)
        version = m.group(1) if m else "TBD"
    release_date = parse_iso(payload.get("releaseDate")) or release.timestamp
    return ReleaseInfo(version=version, release_date=release_date)


def select_release_tickets(release: TicketEvent, events: Sequence[TicketEvent]) -> list[TicketEvent]:
    """Open items that threaten *release*.

    Unresolved events only. Blockers and alerts always count; anything else
    counts when one of its service tags is shared with the release or named
    in the release message.
    """
    release_tags = set(release.service_tags)
    message = release.message.lower()
    selected: list[TicketEvent] = []
    for event in events:
        if event.resolved or event.id == release.id:
            continue
        if event.type in ("blocker", "alert"):
            selected.append(event)
            continue
        if any(tag in release_tags or tag.lower() in message for tag in event.service_tags):
            selected.append(event)
    return selected
