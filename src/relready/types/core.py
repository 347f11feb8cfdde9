"""Foundational TypedDicts for prep items and project configuration."""

from __future__ import annotations

from typing import Any, NewType, NotRequired, TypedDict

ISOTimestamp = NewType("ISOTimestamp", str)


class ProjectConfig(TypedDict, total=False):
    """Shape of .relready/config.json."""

    ticket_api_url: str
    status_api_url: str
    check_timeout: float
    review_interval: float
    at_risk_window_hours: float
    epic_field: str
    service_fields: list[str]


class PersistedPrepItem(TypedDict):
    """One entry of the persisted checklist record.

    Keys are camelCase so the record stays readable by the dashboard client.
    """

    id: str
    completed: bool
    manualAtRisk: bool
    deadline: NotRequired[ISOTimestamp]


class AutomatedCheckDict(TypedDict):
    kind: str
    config: dict[str, Any]


class PrepItemDict(TypedDict):
    id: str
    label: str
    description: str
    completed: bool
    at_risk: bool
    manual_at_risk: bool
    resolver_type: str
    automated_check: AutomatedCheckDict | None
    deadline: ISOTimestamp | None
