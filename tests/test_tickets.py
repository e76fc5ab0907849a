"""Tests for the ticket catalog, the status lifecycle and completion checks."""

import copy

import pytest

from tests.helpers import SMALL_CATALOG, VALID_FIELDS
from triage_study.services.decision_tree import TreeValidationError
from triage_study.services.tickets import (
    InvalidTransitionError,
    TicketCatalog,
    TicketLifecycleManager,
    TicketStatus,
    TimingMode,
    UnknownTicketError,
    validate_completion,
)


class TestCatalog:
    def test_lookup(self, catalog):
        assert len(catalog) == 2
        assert catalog.get("T1").subject == "Charged twice"
        assert catalog.get("nope") is None
        with pytest.raises(UnknownTicketError):
            catalog.require("nope")

    def test_public_view_hides_gold_standard(self, catalog):
        public = catalog.require("T2").to_public_dict()
        assert "goldStandard" not in public
        assert "gold_standard" not in public
        assert public["scheduledAppearance"] == 60

    def test_duplicate_ids_rejected(self):
        data = copy.deepcopy(SMALL_CATALOG)
        data["tickets"].append(copy.deepcopy(data["tickets"][0]))
        with pytest.raises(ValueError, match="Duplicate ticket id"):
            TicketCatalog.from_dict(data)

    def test_gold_standard_must_reach_its_outcome(self, tree):
        data = copy.deepcopy(SMALL_CATALOG)
        data["tickets"][0]["goldStandard"]["outcomeId"] = "O2"
        with pytest.raises(TreeValidationError, match="T1"):
            TicketCatalog.from_dict(data).check_against(tree)

    def test_bundled_catalog_matches_bundled_tree(self, bundled_catalog):
        assert len(bundled_catalog) == 6
        assert all(t.gold_standard.response_template for t in bundled_catalog)


class TestInitialize:
    def test_immediate_mode_opens_everything(self, catalog, clock):
        manager = TicketLifecycleManager(catalog, clock)
        tickets = manager.initialize(TimingMode.IMMEDIATE, clock())
        assert [t.status for t in tickets] == [TicketStatus.AVAILABLE] * 2

    def test_staggered_mode_locks_future_tickets(self, catalog, clock):
        manager = TicketLifecycleManager(catalog, clock)
        tickets = manager.initialize(TimingMode.STAGGERED, clock())
        statuses = {t.id: t.status for t in tickets}
        assert statuses == {"T1": TicketStatus.AVAILABLE, "T2": TicketStatus.LOCKED}

    def test_late_start_respects_elapsed_time(self, catalog, clock):
        start = clock()
        clock.advance(seconds=90)
        manager = TicketLifecycleManager(catalog, clock)
        tickets = manager.initialize(TimingMode.STAGGERED, start)
        assert TicketLifecycleManager.count(tickets, TicketStatus.LOCKED) == 0


class TestUnlocks:
    def _staggered_catalog(self, appearance):
        data = copy.deepcopy(SMALL_CATALOG)
        data["tickets"] = [dict(data["tickets"][1], scheduledAppearance=appearance)]
        return TicketCatalog.from_dict(data)

    def test_unlocks_exactly_at_threshold_and_never_relocks(self, clock):
        manager = TicketLifecycleManager(self._staggered_catalog(300), clock)
        start = clock()
        tickets = manager.initialize(TimingMode.STAGGERED, start)

        clock.advance(seconds=299)
        tickets = manager.check_unlocks(tickets, start)
        assert tickets[0].status == TicketStatus.LOCKED

        clock.advance(seconds=1)
        tickets = manager.check_unlocks(tickets, start)
        assert tickets[0].status == TicketStatus.AVAILABLE

        for _ in range(3):
            clock.advance(seconds=100)
            tickets = manager.check_unlocks(tickets, start)
            assert tickets[0].status == TicketStatus.AVAILABLE

    def test_check_unlocks_leaves_other_statuses_alone(self, catalog, clock):
        manager = TicketLifecycleManager(catalog, clock)
        start = clock()
        tickets = manager.initialize(TimingMode.STAGGERED, start)
        tickets = manager.transition(tickets, "T1", TicketStatus.IN_PROGRESS)
        clock.advance(seconds=61)
        tickets = manager.check_unlocks(tickets, start)
        statuses = {t.id: t.status for t in tickets}
        assert statuses == {"T1": TicketStatus.IN_PROGRESS, "T2": TicketStatus.AVAILABLE}

    def test_staggered_scenario_at_61_seconds(self, catalog, clock):
        data = copy.deepcopy(SMALL_CATALOG)
        data["tickets"] = [data["tickets"][1]]
        manager = TicketLifecycleManager(TicketCatalog.from_dict(data), clock)
        start = clock()

        tickets = manager.initialize(TimingMode.STAGGERED, start)
        assert manager.count(tickets, TicketStatus.AVAILABLE) == 0
        assert manager.count(tickets, TicketStatus.LOCKED) == 1

        clock.advance(seconds=61)
        tickets = manager.check_unlocks(tickets, start)
        assert manager.count(tickets, TicketStatus.AVAILABLE) == 1


class TestTransition:
    @pytest.fixture
    def manager(self, catalog, clock):
        return TicketLifecycleManager(catalog, clock)

    @pytest.fixture
    def tickets(self, manager, clock):
        return manager.initialize(TimingMode.IMMEDIATE, clock())

    def test_unknown_ticket_returns_input_unchanged(self, manager, tickets):
        assert manager.transition(tickets, "ghost", TicketStatus.COMPLETED) is tickets

    def test_returns_new_list(self, manager, tickets):
        updated = manager.transition(tickets, "T1", TicketStatus.IN_PROGRESS)
        assert updated is not tickets
        assert tickets[0].status == TicketStatus.AVAILABLE
        assert updated[0].status == TicketStatus.IN_PROGRESS

    def test_started_at_is_set_once(self, manager, tickets, clock):
        first = clock()
        tickets = manager.transition(tickets, "T1", TicketStatus.IN_PROGRESS)
        clock.advance(seconds=10)
        tickets = manager.transition(tickets, "T1", TicketStatus.AVAILABLE)
        tickets = manager.transition(tickets, "T1", TicketStatus.IN_PROGRESS)
        assert tickets[0].started_at == first

    def test_completion_sets_completed_at(self, manager, tickets, clock):
        tickets = manager.transition(tickets, "T1", TicketStatus.IN_PROGRESS)
        clock.advance(seconds=30)
        tickets = manager.transition(tickets, "T1", TicketStatus.COMPLETED)
        assert tickets[0].completed_at == clock()
        assert tickets[0].completed_at - tickets[0].started_at == 30_000

    @pytest.mark.parametrize(
        "path",
        [
            [TicketStatus.COMPLETED],
            [TicketStatus.LOCKED],
            [TicketStatus.IN_PROGRESS, TicketStatus.COMPLETED, TicketStatus.AVAILABLE],
            [TicketStatus.IN_PROGRESS, TicketStatus.COMPLETED, TicketStatus.IN_PROGRESS],
        ],
    )
    def test_illegal_transitions_raise(self, manager, tickets, path):
        with pytest.raises(InvalidTransitionError):
            for status in path:
                tickets = manager.transition(tickets, "T1", status)

    def test_independent_updates_do_not_lose_writes(self, manager, catalog, clock):
        start = clock()
        tickets = manager.initialize(TimingMode.STAGGERED, start)
        tickets = manager.transition(tickets, "T1", TicketStatus.IN_PROGRESS)
        clock.advance(seconds=60)
        tickets = manager.check_unlocks(tickets, start)
        tickets = manager.transition(tickets, "T1", TicketStatus.COMPLETED)
        statuses = {t.id: t.status for t in tickets}
        assert statuses == {"T1": TicketStatus.COMPLETED, "T2": TicketStatus.AVAILABLE}


class TestValidateCompletion:
    def test_valid_submission(self, tree):
        result = validate_completion(tree, {"D1": "A", "D2": "B"}, VALID_FIELDS, "Refunded.")
        assert result.valid
        assert result.messages == []

    def test_unanswered_decision(self, tree):
        result = validate_completion(tree, {"D1": "A"}, {}, "Hi")
        assert not result.valid
        assert result.issues[0].field == "D2"
        assert result.messages == ["Select an option for 'Refund or credit?'"]

    def test_missing_required_fields_and_response(self, tree):
        result = validate_completion(tree, {"D1": "A", "D2": "B"}, {"amount": "  "}, "   ")
        assert result.messages == [
            "Refund amount is required",
            "Charge verified must be confirmed",
            "Customer response is required",
        ]

    def test_number_field_must_parse(self, tree):
        fields = {"amount": "ten dollars", "confirmed": True}
        result = validate_completion(tree, {"D1": "A", "D2": "B"}, fields, "Hi")
        assert result.messages == ["Refund amount must be a number"]

    @pytest.mark.parametrize("flag", [True, False])
    def test_number_field_rejects_booleans(self, tree, flag):
        fields = {"amount": flag, "confirmed": True}
        result = validate_completion(tree, {"D1": "A", "D2": "B"}, fields, "Hi")
        assert result.messages == ["Refund amount must be a number"]

    def test_numeric_values_are_accepted(self, tree):
        result = validate_completion(tree, {"D1": "A", "D2": "B"}, {"amount": 0, "confirmed": True}, "Hi")
        assert result.valid

    def test_optional_fields_may_be_empty(self, tree):
        result = validate_completion(tree, {"D1": "X"}, {}, "Closing this ticket.")
        assert result.valid
