"""Tests for the session store and its key-value backends."""

import json

import pytest

from triage_study.services.decision_tree import Decision
from triage_study.services.session import (
    SESSION_KEY,
    TRACE_BUFFER_KEY,
    FileStorage,
    GroupType,
    MemoryStorage,
    SessionNotFoundError,
    SessionStore,
)
from triage_study.services.tickets import TicketResponse, TimingMode
from triage_study.services.tracking import TraceEvent, TraceEventType


def _event(ts):
    return TraceEvent(TraceEventType.TICKET_OPENED, ts, {"ticket_id": "T1", "timestamp": ts}, "P1")


def _response():
    return TicketResponse(
        ticket_id="T1",
        decisions=[Decision("D1", "A", "Billing")],
        outcome_id="O1",
        fields={"amount": "10", "confirmed": True},
        customer_response="Refunded.",
        completed_at=2,
        time_to_complete=1,
    )


class TestSessionLifecycle:
    def test_require_without_session(self, store):
        assert store.session is None
        with pytest.raises(SessionNotFoundError):
            store.require()

    def test_create(self, store, clock):
        session = store.create("P1", GroupType.CHAT_ASSISTED, TimingMode.STAGGERED)
        assert session.start_time == clock()
        assert session.group == GroupType.CHAT_ASSISTED
        assert store.participant_id == "P1"

    def test_create_requires_participant(self, store):
        with pytest.raises(ValueError):
            store.create("", GroupType.MANUAL, TimingMode.IMMEDIATE)

    def test_second_participant_must_clear_first(self, store):
        store.create("P1", GroupType.MANUAL, TimingMode.IMMEDIATE)
        with pytest.raises(ValueError, match="already exists"):
            store.create("P2", GroupType.MANUAL, TimingMode.IMMEDIATE)

    def test_update_only_allows_known_fields(self, store):
        store.create("P1", GroupType.MANUAL, TimingMode.IMMEDIATE)
        assert store.update(end_time=99).end_time == 99
        with pytest.raises(ValueError):
            store.update(participant_id="P2")

    def test_logs_are_append_only(self, store):
        store.create("P1", GroupType.MANUAL, TimingMode.IMMEDIATE)
        store.append_response(_response())
        store.append_event(_event(1))
        store.append_event(_event(2))
        assert len(store.session.ticket_responses) == 1
        assert [e.timestamp for e in store.session.trace_events] == [1, 2]

    def test_clear_wipes_session_and_buffer(self, store):
        store.create("P1", GroupType.MANUAL, TimingMode.IMMEDIATE)
        store.buffer_event(_event(1))
        store.clear()
        assert store.session is None
        assert store.buffer_size == 0
        assert store.storage.get(SESSION_KEY) is None
        assert store.storage.get(TRACE_BUFFER_KEY) is None

    def test_group_uses_agent(self):
        assert GroupType.AGENT_CONFIRM.uses_agent
        assert GroupType.AGENT_AUTONOMOUS.uses_agent
        assert not GroupType.CHAT_ASSISTED.uses_agent


class TestPersistence:
    def test_session_survives_reload(self, clock):
        storage = MemoryStorage()
        store = SessionStore(storage, clock=clock)
        store.create("P1", GroupType.AGENT_CONFIRM, TimingMode.IMMEDIATE)
        store.append_response(_response())
        store.append_event(_event(1))
        store.buffer_event(_event(1))

        reloaded = SessionStore(storage, clock=clock)
        assert reloaded.session == store.session
        assert reloaded.buffered_events() == [_event(1)]

    def test_stored_format_uses_fixed_keys(self, store):
        store.create("P1", GroupType.MANUAL, TimingMode.IMMEDIATE)
        blob = json.loads(store.storage.get(SESSION_KEY))
        assert blob["participantId"] == "P1"
        assert blob["group"] == "1"
        assert blob["timingMode"] == "immediate"

    def test_file_storage(self, tmp_path, clock):
        store = SessionStore(FileStorage(tmp_path), clock=clock)
        store.create("P1", GroupType.MANUAL, TimingMode.IMMEDIATE)
        assert (tmp_path / f"{SESSION_KEY}.json").exists()
        assert SessionStore(FileStorage(tmp_path), clock=clock).participant_id == "P1"

    def test_file_storage_rejects_unsafe_keys(self, tmp_path):
        with pytest.raises(ValueError):
            FileStorage(tmp_path).set("../escape", "{}")


class TestSyncBuffer:
    def test_drop_delivered_removes_only_the_snapshot(self, store):
        store.buffer_event(_event(1))
        snapshot = store.buffered_events()
        store.buffer_event(_event(2))
        store.drop_delivered(snapshot)
        assert store.buffered_events() == [_event(2)]

    def test_drop_delivered_ignores_a_rewritten_buffer(self, store):
        store.buffer_event(_event(1))
        snapshot = store.buffered_events()
        store.clear()
        store.buffer_event(_event(5))
        store.drop_delivered(snapshot)
        assert store.buffered_events() == [_event(5)]
