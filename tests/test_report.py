"""Tests for the release readiness report."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from relready.core import PrepItem
from relready.events import TicketEvent
from relready.report import build_readiness_report, open_tickets_for, render_markdown

MakeTicket = Callable[..., TicketEvent]

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


def _items(completed: int, total: int) -> list[PrepItem]:
    return [
        PrepItem(id=f"item-{i}", label=f"Item {i}", description="", resolver_type="manual", completed=i < completed)
        for i in range(total)
    ]


class TestOpenTickets:
    def test_without_release(self, make_ticket: MakeTicket) -> None:
        events = [make_ticket("open"), make_ticket("done", resolved=True), make_ticket("gh", source="github")]
        assert [e.id for e in open_tickets_for(events)] == ["open"]

    def test_scoped_to_release(self, make_ticket: MakeTicket) -> None:
        release = make_ticket("rel", source="deploy", type="release", service_tags=("billing",))
        events = [
            release,
            make_ticket("billing-bug", service_tags=("billing",)),
            make_ticket("auth-bug", service_tags=("auth",)),
            make_ticket("alert", source="monitoring", type="alert"),
        ]
        assert [e.id for e in open_tickets_for(events, release)] == ["billing-bug"]


class TestBuildReadinessReport:
    def test_score_and_groups(self, make_ticket: MakeTicket) -> None:
        events = [
            make_ticket("a", fields={"team": "Core"}),
            make_ticket("b", fields={"team": "Core"}),
            make_ticket("c", fields={"team": "Web"}, severity="critical"),
        ]
        report = build_readiness_report(_items(1, 2), events, now=NOW)
        assert report["open_external_count"] == 3
        assert report["prep_completed"] == 1
        assert report["prep_total"] == 2
        assert report["score"] == 64
        assert report["band"]["label"] == "Needs Work"
        assert [g["name"] for g in report["groups"]] == ["Web", "Core"]
        assert report["version"] is None

    def test_release_metadata(self, make_ticket: MakeTicket) -> None:
        release = make_ticket(
            "rel",
            source="deploy",
            message="Deploying v1.4.0",
            payload={"releaseDate": "2025-03-14T18:00:00Z"},
        )
        report = build_readiness_report(_items(2, 2), [release], now=NOW, release=release, group_by="epic")
        assert report["version"] == "1.4.0"
        assert report["release_date"] == "2025-03-14T18:00:00+00:00"
        assert report["group_by"] == "epic"
        assert report["groups"] == []
        assert report["score"] == 100


class TestRenderMarkdown:
    def test_sections(self, make_ticket: MakeTicket) -> None:
        items = _items(1, 2)
        items[1].at_risk = True
        report = build_readiness_report(items, [make_ticket("a", fields={"team": "Core\x07 Team"})], now=NOW)
        text = render_markdown(report, items)
        assert text.startswith("# Release readiness: 68/100 (Needs Work)")
        assert "- [x] item-0: Item 0" in text
        assert "- [ ] item-1: Item 1  [AT RISK]" in text
        assert "- Core Team: risk 40 (degraded), 0% done, 1 ticket(s)" in text

    def test_tab_and_newline_collapse_to_spaces(self, make_ticket: MakeTicket) -> None:
        items = _items(0, 1)
        report = build_readiness_report(items, [make_ticket("a", fields={"team": "Core\t\r\nTeam"})], now=NOW)
        assert "- Core Team: risk 40" in render_markdown(report, items)

    def test_no_groups(self) -> None:
        items = _items(0, 1)
        text = render_markdown(build_readiness_report(items, [], now=NOW), items)
        assert "No open items" in text
