"""Tests for readiness and risk scoring."""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest

from relready.core import PrepItem
from relready.events import TicketEvent
from relready.scoring import (
    combined_readiness_score,
    group_progress,
    group_risk_score,
    is_done_status,
    prep_readiness_score,
    readiness_band,
    risk_status,
    round_half_up,
    ticket_score,
)

MakeTicket = Callable[..., TicketEvent]

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=UTC)


class TestCombinedReadinessScore:
    def test_everything_done_scores_100(self) -> None:
        assert combined_readiness_score(0, 10, 10) == 100

    def test_half_checklist_no_tickets(self) -> None:
        assert combined_readiness_score(0, 5, 10) == 70

    def test_full_checklist_five_open_tickets(self) -> None:
        assert combined_readiness_score(5, 10, 10) == 90

    def test_half_checklist_three_open_tickets(self) -> None:
        score = combined_readiness_score(3, 1, 2)
        assert score == 64
        assert readiness_band(score).label == "Needs Work"

    def test_ticket_component_floors_at_zero(self) -> None:
        assert ticket_score(20) == 0
        assert ticket_score(100) == 0
        assert combined_readiness_score(50, 0, 10) == 0

    def test_empty_checklist_counts_as_complete(self) -> None:
        assert combined_readiness_score(0, 0, 0) == 100

    def test_rounds_half_up(self) -> None:
        # 0.6 * 12.5 + 0.4 * 100 = 47.5
        assert combined_readiness_score(0, 1, 8) == 48


class TestReadinessBand:
    @pytest.mark.parametrize(
        ("score", "label", "status"),
        [
            (100, "Ready", "healthy"),
            (90, "Ready", "healthy"),
            (89, "Almost Ready", "primary"),
            (75, "Almost Ready", "primary"),
            (74, "Needs Work", "degraded"),
            (60, "Needs Work", "degraded"),
            (59, "Not Ready", "critical"),
            (0, "Not Ready", "critical"),
        ],
    )
    def test_thresholds(self, score: int, label: str, status: str) -> None:
        band = readiness_band(score)
        assert band.label == label
        assert band.status == status

    def test_to_dict(self) -> None:
        assert readiness_band(95).to_dict() == {"label": "Ready", "status": "healthy", "color": "text-status-healthy"}


class TestGroupProgress:
    def test_empty_group_is_complete(self) -> None:
        assert group_progress([]) == 100

    def test_fraction_done(self, make_ticket: MakeTicket) -> None:
        group = [make_ticket("a", status="Done"), make_ticket("b", status="Open"), make_ticket("c", status="Open")]
        assert group_progress(group) == 33

    def test_rounds_to_nearest(self, make_ticket: MakeTicket) -> None:
        group = [make_ticket("a", status="Closed"), make_ticket("b", status="Resolved"), make_ticket("c")]
        assert group_progress(group) == 67

    def test_half_rounds_up(self, make_ticket: MakeTicket) -> None:
        group = [make_ticket("done", status="Done")] + [make_ticket(f"o{i}") for i in range(7)]
        assert group_progress(group) == 13


class TestGroupRiskScore:
    def test_empty_group_has_no_risk(self) -> None:
        assert group_risk_score([], NOW) == 0

    def test_all_done_has_no_risk(self, make_ticket: MakeTicket) -> None:
        group = [
            make_ticket("a", status="Done", severity="critical", type="blocker"),
            make_ticket("b", status="Completed", severity="high"),
        ]
        assert group_risk_score(group, NOW) == 0

    def test_single_open_ticket_scores_open_component(self, make_ticket: MakeTicket) -> None:
        assert group_risk_score([make_ticket("a")], NOW) == 40

    def test_components_add_up(self, make_ticket: MakeTicket) -> None:
        stale = make_ticket("a", severity="critical", type="blocker", timestamp=NOW - timedelta(days=8))
        # 40 open + 15 critical + 10 blocker + 2 stale
        assert group_risk_score([stale], NOW) == 67

    def test_severity_is_capped(self, make_ticket: MakeTicket) -> None:
        group = [make_ticket(f"c{i}", severity="critical") for i in range(3)]
        assert group_risk_score(group, NOW) == 40 + 30

    def test_blockers_and_stale_are_capped(self, make_ticket: MakeTicket) -> None:
        old = NOW - timedelta(days=30)
        group = [make_ticket(f"b{i}", type="blocker", timestamp=old) for i in range(6)]
        assert group_risk_score(group, NOW) == 40 + 20 + 10

    def test_done_tickets_dilute_open_ratio(self, make_ticket: MakeTicket) -> None:
        group = [make_ticket("open"), make_ticket("done", status="Done", severity="critical")]
        assert group_risk_score(group, NOW) == 20

    def test_never_exceeds_100(self, make_ticket: MakeTicket) -> None:
        old = NOW - timedelta(days=30)
        group = [make_ticket(f"x{i}", severity="critical", type="blocker", timestamp=old) for i in range(10)]
        assert group_risk_score(group, NOW) == 100

    def test_seven_days_exactly_is_not_stale(self, make_ticket: MakeTicket) -> None:
        assert group_risk_score([make_ticket("a", timestamp=NOW - timedelta(days=7))], NOW) == 40


class TestHelpers:
    @pytest.mark.parametrize("status", ["Done", "closed", "RESOLVED", "Completed", "Done - Verified"])
    def test_done_statuses(self, status: str) -> None:
        assert is_done_status(status)

    @pytest.mark.parametrize("status", ["Open", "In Progress", "", "Blocked"])
    def test_open_statuses(self, status: str) -> None:
        assert not is_done_status(status)

    def test_round_half_up(self) -> None:
        assert round_half_up(0.5) == 1
        assert round_half_up(2.5) == 3
        assert round_half_up(2.49) == 2

    @pytest.mark.parametrize(("score", "status"), [(100, "critical"), (70, "critical"), (69, "degraded"), (40, "degraded"), (39, "healthy")])
    def test_risk_status(self, score: int, status: str) -> None:
        assert risk_status(score) == status

    def test_prep_readiness_score(self) -> None:
        items = [PrepItem(id=str(i), label="", description="", resolver_type="manual", completed=i < 3) for i in range(8)]
        assert prep_readiness_score(items) == 38
        assert prep_readiness_score([]) == 100
