# src/relready/catalog.py
"""Built-in release prep checklist.

This module contains the data definitions for the fixed prep-item catalog.
Logic lives in prep_items.py; this file is pure data plus one builder.

Items are never created or deleted at runtime. Deadlines are expressed in
days from load time so a fresh checklist always starts with a realistic
schedule.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from relready.core import VALID_CHECK_KINDS, VALID_RESOLVER_TYPES, AutomatedCheck, PrepItem

_DEFAULT_PREP_ITEMS: list[dict[str, Any]] = [
    {
        "id": "release-notes",
        "label": "Release Notes",
        "description": "Documentation of changes and new features",
        "resolver_type": "automated",
        "automated_check": {
            "kind": "jira_ticket",
            "query": 'project = "RELEASE" AND summary ~ "Release Notes" AND status = Done',
        },
        "deadline_days": 2,
    },
    {
        "id": "release-plan",
        "label": "Release Plan",
        "description": "Detailed deployment plan and timeline",
        "resolver_type": "manual",
        "deadline_days": 3,
    },
    {
        "id": "status-page",
        "label": "Status Page Update",
        "description": "Prepare status page announcement",
        "resolver_type": "automated",
        "automated_check": {
            "kind": "api_check",
            "endpoint": "/api/status-page/check",
            "expected_status": "updated",
        },
        "deadline_days": 1,
    },
    {
        "id": "predeploys",
        "label": "Pre-Deployments",
        "description": "Complete pre-deployments to staging",
        "resolver_type": "automated",
        "automated_check": {
            "kind": "api_check",
            "endpoint": "/api/deployments/staging",
            "expected_status": "deployed",
        },
        "deadline_days": 4,
    },
    {
        "id": "staging-infra",
        "label": "Staging Infrastructure",
        "description": "Verify staging infrastructure readiness",
        "resolver_type": "manual",
        "deadline_days": 3,
    },
    {
        "id": "change-control",
        "label": "Change Control Signatures",
        "description": "Obtain required approvals and sign-offs",
        "resolver_type": "manual",
        "deadline_days": 5,
    },
    {
        "id": "rollback-plan",
        "label": "Rollback Plan",
        "description": "Document rollback procedures",
        "resolver_type": "manual",
        "deadline_days": 2,
    },
    {
        "id": "monitoring",
        "label": "Monitoring Setup",
        "description": "Configure alerts and dashboards",
        "resolver_type": "automated",
        "automated_check": {
            "kind": "api_check",
            "endpoint": "/api/monitoring/configured",
            "expected_status": "ready",
        },
        "deadline_days": 2,
    },
]

CATALOG_IDS: tuple[str, ...] = tuple(entry["id"] for entry in _DEFAULT_PREP_ITEMS)


def build_item(entry: dict[str, Any], now: datetime) -> PrepItem:
    """Turn one catalog entry into a fresh PrepItem.

    Raises ValueError for an unknown resolver type or check kind.
    """
    if entry["resolver_type"] not in VALID_RESOLVER_TYPES:
        msg = f"Unknown resolver type {entry['resolver_type']!r} for {entry['id']}"
        raise ValueError(msg)
    check_data = entry.get("automated_check")
    if check_data and check_data.get("kind") not in VALID_CHECK_KINDS:
        msg = f"Unknown check kind {check_data.get('kind')!r} for {entry['id']}"
        raise ValueError(msg)
    check = AutomatedCheck(**check_data) if check_data else None
    days = entry.get("deadline_days")
    return PrepItem(
        id=entry["id"],
        label=entry["label"],
        description=entry["description"],
        resolver_type=entry["resolver_type"],
        automated_check=check,
        deadline=now + timedelta(days=days) if days is not None else None,
    )


def default_items(now: datetime, entries: list[dict[str, Any]] | None = None) -> list[PrepItem]:
    """Build the catalog's default items, in catalog order."""
    return [build_item(entry, now) for entry in (entries if entries is not None else _DEFAULT_PREP_ITEMS)]
