"""Tests for gold-standard scoring and aggregation."""

import pytest

from triage_study.services.decision_tree import Decision
from triage_study.services.scoring import PerformanceSummary, ScoringEngine
from triage_study.services.tickets import TicketResponse, UnknownTicketError
from triage_study.services.tracking import TraceEvent, TraceEventType


def _response(ticket_id, decisions, outcome_id, time_to_complete=60_000):
    return TicketResponse(
        ticket_id=ticket_id,
        decisions=[Decision(node, option) for node, option in decisions],
        outcome_id=outcome_id,
        fields={},
        customer_response="Done.",
        completed_at=0,
        time_to_complete=time_to_complete,
    )


@pytest.fixture
def engine(catalog):
    return ScoringEngine(catalog)


class TestScore:
    def test_exact_match_is_perfect(self, engine):
        score = engine.score(_response("T1", [("D1", "A"), ("D2", "B")], "O1"))
        assert score.error_rate == 0
        assert score.quality_score == 100
        assert score.distance_from_gold_standard == 0
        assert score.outcome_matched

    def test_one_of_three_decision_points_diverging(self, engine):
        # Gold for T2: D1=A, D2=C, D3=large -> O2
        score = engine.score(_response("T2", [("D1", "A"), ("D2", "C"), ("D3", "small")], "O2"))
        assert score.error_rate == pytest.approx(1 / 3)
        assert score.quality_score == 67

    def test_wrong_outcome_counts_as_full_error(self, engine):
        score = engine.score(_response("T1", [("D1", "X")], "O2"))
        assert score.error_rate == 1.0
        assert score.quality_score == 0
        assert not score.outcome_matched

    def test_wrong_outcome_penalty_can_be_disabled(self, catalog):
        engine = ScoringEngine(catalog, penalize_wrong_outcome=False)
        score = engine.score(_response("T2", [("D1", "A"), ("D2", "B")], "O1"))
        # D3 missing and D2 differs: 2 of 3
        assert score.error_rate == pytest.approx(2 / 3)
        assert not score.outcome_matched

    def test_later_decision_at_same_node_wins(self, engine):
        score = engine.score(_response("T1", [("D1", "X"), ("D1", "A"), ("D2", "B")], "O1"))
        assert score.error_rate == 0

    def test_timings(self, engine):
        score = engine.score(_response("T1", [("D1", "A"), ("D2", "B")], "O1", 45_000))
        assert score.time_to_close == 45_000
        assert score.time_to_first_response == 45_000

    def test_unknown_ticket(self, engine):
        with pytest.raises(UnknownTicketError):
            engine.score(_response("ghost", [], "O1"))

    def test_explicit_ticket_without_catalog(self, catalog):
        engine = ScoringEngine()
        response = _response("T1", [("D1", "A"), ("D2", "B")], "O1")
        assert engine.score(response, catalog.require("T1")).quality_score == 100
        with pytest.raises(UnknownTicketError):
            engine.score(response)


class TestAggregate:
    def test_empty_input_is_all_zero(self, engine):
        summary = engine.aggregate([])
        assert summary == PerformanceSummary()
        assert summary.to_dict() == {
            "totalTickets": 0,
            "averageErrorRate": 0.0,
            "averageQualityScore": 0.0,
            "averageTimeToClose": 0.0,
            "averageDistanceFromGoldStandard": 0.0,
        }

    def test_averages(self, engine):
        summary = engine.aggregate([
            _response("T1", [("D1", "A"), ("D2", "B")], "O1", 30_000),
            _response("T1", [("D1", "X")], "O2", 90_000),
        ])
        assert summary.total_tickets == 2
        assert summary.avg_error_rate == pytest.approx(0.5)
        assert summary.avg_quality_score == pytest.approx(50)
        assert summary.avg_time_to_close == pytest.approx(60_000)


class TestParticipantPerformance:
    def test_counts_clicks_and_averages_velocity(self, engine):
        events = [
            TraceEvent(TraceEventType.MOUSE_CLICK, 1, {"x": 1, "y": 2}),
            TraceEvent(TraceEventType.MOUSE_CLICK, 2, {"x": 1, "y": 2}),
            TraceEvent(TraceEventType.MOUSE_MOVE, 3, {"x": 0, "y": 0}),
            TraceEvent(TraceEventType.MOUSE_MOVE, 4, {"x": 0, "y": 0, "velocity": 100.0}),
            TraceEvent(TraceEventType.MOUSE_MOVE, 5, {"x": 0, "y": 0, "velocity": 300.0}),
        ]
        performance = engine.participant_performance("P1", [], events, group="2")
        assert performance.total_mouse_clicks == 2
        assert performance.average_mouse_velocity == pytest.approx(200.0)
        assert performance.summary.total_tickets == 0
        assert performance.group == "2"
