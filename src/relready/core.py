"""Core models and project discovery for relready.

Defines the prep-item record, the at-risk derivation rule, and the
convention-based `.relready/` project layout shared by the CLI, the MCP
server and the dashboard.

Convention-based discovery: each project has a `.relready/` directory
containing `config.json` (collaborator URLs, timings) and
`prep-checklist.json` (the persisted checklist record).
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Literal

from relready.types.core import AutomatedCheckDict, PrepItemDict, ProjectConfig

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constrained-string Literal types
# ---------------------------------------------------------------------------

ResolverType = Literal["automated", "manual"]
CheckKind = Literal["jira_ticket", "api_check"]

VALID_RESOLVER_TYPES: frozenset[str] = frozenset({"automated", "manual"})
VALID_CHECK_KINDS: frozenset[str] = frozenset({"jira_ticket", "api_check"})

AT_RISK_WINDOW = timedelta(days=1)

# ---------------------------------------------------------------------------
# Convention-based discovery
# ---------------------------------------------------------------------------

RELREADY_DIR_NAME = ".relready"
CONFIG_FILENAME = "config.json"
CHECKLIST_FILENAME = "prep-checklist.json"

DEFAULT_CHECK_TIMEOUT = 10.0
DEFAULT_REVIEW_INTERVAL = 60.0


def find_relready_root(start: Path | None = None) -> Path:
    """Walk up from start (default cwd) looking for .relready/ directory.

    Returns the .relready/ directory path (not the project root).
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / RELREADY_DIR_NAME
        if candidate.is_dir():
            return candidate
    msg = f"No {RELREADY_DIR_NAME}/ directory found in {current} or any parent"
    raise FileNotFoundError(msg)


def default_config() -> ProjectConfig:
    return ProjectConfig(
        ticket_api_url="http://localhost:5000",
        status_api_url="http://localhost:5000",
        check_timeout=DEFAULT_CHECK_TIMEOUT,
        review_interval=DEFAULT_REVIEW_INTERVAL,
        at_risk_window_hours=AT_RISK_WINDOW.total_seconds() / 3600,
    )


def read_config(relready_dir: Path) -> ProjectConfig:
    """Read .relready/config.json layered over defaults.

    Returns defaults if the file is missing or corrupt.
    """
    defaults = default_config()
    config_path = relready_dir / CONFIG_FILENAME
    if not config_path.exists():
        return defaults
    try:
        loaded = json.loads(config_path.read_text())
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to read %s, using defaults: %s", config_path, exc)
        return defaults
    if not isinstance(loaded, dict):
        logger.warning("Ignoring %s: expected a JSON object", config_path)
        return defaults
    merged: dict[str, Any] = {**defaults, **loaded}
    result: ProjectConfig = merged  # type: ignore[assignment]
    return result


def write_config(relready_dir: Path, config: dict[str, Any] | ProjectConfig) -> None:
    """Write .relready/config.json."""
    config_path = relready_dir / CONFIG_FILENAME
    config_path.write_text(json.dumps(config, indent=2) + "\n")


def write_atomic(path: Path, content: str) -> None:
    """Write content to path atomically via temp file + os.replace()."""
    tmp = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp.write_text(content, encoding="utf-8")
        os.replace(tmp, path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


def utcnow() -> datetime:
    return datetime.now(UTC)


def parse_iso(ts: Any) -> datetime | None:
    """Parse an ISO timestamp, handling timezone-aware and naive formats.

    Returns None if the value cannot be parsed. A trailing ``Z`` is accepted.
    """
    if not isinstance(ts, str) or not ts:
        return None
    try:
        dt = datetime.fromisoformat(ts)
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AutomatedCheck:
    """Tagged check configuration interpreted by the resolver engine."""

    kind: CheckKind
    query: str | None = None
    endpoint: str | None = None
    expected_status: str | None = None

    def to_dict(self) -> AutomatedCheckDict:
        config: dict[str, Any] = {}
        if self.query is not None:
            config["query"] = self.query
        if self.endpoint is not None:
            config["endpoint"] = self.endpoint
        if self.expected_status is not None:
            config["expected_status"] = self.expected_status
        return AutomatedCheckDict(kind=self.kind, config=config)


@dataclass
class PrepItem:
    id: str
    label: str
    description: str
    resolver_type: ResolverType
    completed: bool = False
    manual_at_risk: bool = False
    at_risk: bool = False
    automated_check: AutomatedCheck | None = None
    deadline: datetime | None = None

    def to_dict(self) -> PrepItemDict:
        return PrepItemDict(
            id=self.id,
            label=self.label,
            description=self.description,
            completed=self.completed,
            at_risk=self.at_risk,
            manual_at_risk=self.manual_at_risk,
            resolver_type=self.resolver_type,
            automated_check=self.automated_check.to_dict() if self.automated_check else None,
            deadline=self.deadline.isoformat() if self.deadline else None,  # type: ignore[typeddict-item]
        )


def deadline_at_risk(item: PrepItem, now: datetime, window: timedelta = AT_RISK_WINDOW) -> bool:
    """Deadline component of the at-risk rule.

    An incomplete item whose deadline is less than *window* away (or already
    past) is at risk.
    """
    if item.completed or item.deadline is None:
        return False
    return (item.deadline - now) < window


def compute_at_risk(item: PrepItem, now: datetime, window: timedelta = AT_RISK_WINDOW) -> bool:
    """Derived at-risk flag: manual override or deadline pressure.

    Completed items are never at risk.
    """
    if item.completed:
        return False
    return item.manual_at_risk or deadline_at_risk(item, now, window)
