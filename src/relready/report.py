"""Release readiness report: grouped open tickets plus the combined score.

Shared by the dashboard, the CLI and the MCP server. ``render_markdown``
produces the compact text form used by ``relready score``.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import datetime

from relready.core import PrepItem
from relready.events import TicketEvent
from relready.grouping import DEFAULT_FIELDS, FieldMap, GroupMode, group_tickets, release_info, select_release_tickets
from relready.scoring import combined_readiness_score, readiness_band
from relready.types.scoring import ReadinessReport

# C0/C1 control characters other than tab, LF and CR; those collapse as whitespace below.
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")


def open_tickets_for(events: Sequence[TicketEvent], release: TicketEvent | None = None) -> list[TicketEvent]:
    """Unresolved ticket-system events, scoped to *release* when one is given."""
    scoped = select_release_tickets(release, events) if release is not None else [e for e in events if not e.resolved]
    return [e for e in scoped if e.is_ticket]


def build_readiness_report(
    items: Sequence[PrepItem],
    events: Sequence[TicketEvent],
    *,
    now: datetime,
    release: TicketEvent | None = None,
    group_by: GroupMode = "team",
    fields_map: FieldMap = DEFAULT_FIELDS,
) -> ReadinessReport:
    tickets = open_tickets_for(events, release)
    groups = group_tickets(tickets, group_by, now, all_events=events, fields_map=fields_map)
    completed = sum(1 for item in items if item.completed)
    score = combined_readiness_score(len(tickets), completed, len(items))

    version: str | None = None
    release_date: str | None = None
    if release is not None:
        info = release_info(release)
        version = info.version
        release_date = info.release_date.isoformat() if info.release_date else None

    return ReadinessReport(
        version=version,
        release_date=release_date,  # type: ignore[typeddict-item]
        group_by=group_by,
        groups=[g.to_dict() for g in groups],
        open_external_count=len(tickets),
        prep_completed=completed,
        prep_total=len(items),
        score=score,
        band=readiness_band(score).to_dict(),
    )


def _sanitize(text: str) -> str:
    """Strip control characters and collapse whitespace for one-line output."""
    text = _CONTROL_CHARS_RE.sub("", text)
    text = " ".join(text.split())
    if len(text) > 120:
        text = text[:117] + "..."
    return text


def render_markdown(report: ReadinessReport, items: Sequence[PrepItem]) -> str:
    lines: list[str] = []
    title = f"Release {report['version']}" if report["version"] else "Release readiness"
    band = report["band"]
    lines.append(f"# {title}: {report['score']}/100 ({band['label']})")
    lines.append("")
    lines.append(
        f"Prep: {report['prep_completed']}/{report['prep_total']} complete  |  "
        f"Open tickets: {report['open_external_count']}"
    )
    lines.append("")

    lines.append("## Prep checklist")
    for item in items:
        mark = "x" if item.completed else " "
        risk = "  [AT RISK]" if item.at_risk else ""
        lines.append(f"- [{mark}] {item.id}: {_sanitize(item.label)}{risk}")
    lines.append("")

    lines.append(f"## Open tickets by {report['group_by']}")
    if not report["groups"]:
        lines.append("No open items")
    for group in report["groups"]:
        lines.append(
            f"- {_sanitize(group['name'])}: risk {group['risk_score']} ({group['risk_status']}), "
            f"{group['progress']}% done, {len(group['tickets'])} ticket(s)"
        )
    return "\n".join(lines) + "\n"
