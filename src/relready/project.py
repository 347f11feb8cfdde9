"""Wiring for a `.relready/` project: config → resolver → store.

Both the CLI, the MCP server and the dashboard build their store here so
they agree on collaborator URLs, timeouts and the persisted record.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

from relready.core import AT_RISK_WINDOW, DEFAULT_CHECK_TIMEOUT, DEFAULT_REVIEW_INTERVAL, read_config
from relready.grouping import DEFAULT_FIELDS, FieldMap
from relready.prep_items import Notifier, PrepItemStore
from relready.repository import JsonFileRepository
from relready.resolver import HttpStatusCheck, HttpTicketQuery, ResolverEngine
from relready.types.core import ProjectConfig


def build_resolver(config: ProjectConfig) -> ResolverEngine:
    timeout = float(config.get("check_timeout", DEFAULT_CHECK_TIMEOUT))
    return ResolverEngine(
        HttpTicketQuery(config.get("ticket_api_url", ""), timeout=timeout),
        HttpStatusCheck(config.get("status_api_url", ""), timeout=timeout),
    )


def at_risk_window(config: ProjectConfig) -> timedelta:
    hours = config.get("at_risk_window_hours")
    if isinstance(hours, int | float) and hours > 0:
        return timedelta(hours=hours)
    return AT_RISK_WINDOW


def review_interval(config: ProjectConfig) -> float:
    interval = config.get("review_interval")
    if isinstance(interval, int | float) and interval > 0:
        return float(interval)
    return DEFAULT_REVIEW_INTERVAL


def field_map(config: ProjectConfig) -> FieldMap:
    """Custom-field ids, with config overrides applied."""
    epic_field = config.get("epic_field") or DEFAULT_FIELDS.epic_field
    service_fields = config.get("service_fields")
    if not isinstance(service_fields, list) or not all(isinstance(f, str) for f in service_fields):
        service_fields = list(DEFAULT_FIELDS.service_fields)
    return FieldMap(epic_field=epic_field, service_fields=tuple(service_fields))


def open_store(relready_dir: Path, *, notify: Notifier | None = None) -> PrepItemStore:
    """Build and load the prep-item store for a project directory."""
    config = read_config(relready_dir)
    store = PrepItemStore(
        JsonFileRepository.for_project(relready_dir),
        build_resolver(config),
        notify=notify,
        at_risk_window=at_risk_window(config),
    )
    store.load()
    return store
