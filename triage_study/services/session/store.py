"""
Session state store.

Holds the participant's SessionData and the pending sync buffer, both
persisted as JSON blobs under fixed keys of a key-value backend. The store
is an explicit object handed to each component; there is no module-level
session.
"""

import json
import logging
from dataclasses import replace
from typing import Any, List, Optional, Sequence

from ..clock import Clock, now_ms
from ..tickets.models import TicketResponse, TimingMode
from ..tracking.events import TraceEvent
from .models import GroupType, SessionData
from .storage import SESSION_KEY, TRACE_BUFFER_KEY, KeyValueStorage, MemoryStorage

logger = logging.getLogger(__name__)


class SessionNotFoundError(RuntimeError):
    """No session exists; the participant must go back through consent."""


class SessionStore:

    # Fields a caller may change after creation
    UPDATABLE_FIELDS = frozenset({"end_time", "prolific_redirect_url"})

    def __init__(self, storage: Optional[KeyValueStorage] = None, clock: Clock = now_ms):
        self.storage = storage if storage is not None else MemoryStorage()
        self.clock = clock
        self._session: Optional[SessionData] = self._load_session()
        self._buffer: List[TraceEvent] = self._load_buffer()

    # --- PERSISTENCE ---

    def _load_session(self) -> Optional[SessionData]:
        raw = self.storage.get(SESSION_KEY)
        return SessionData.from_dict(json.loads(raw)) if raw else None

    def _load_buffer(self) -> List[TraceEvent]:
        raw = self.storage.get(TRACE_BUFFER_KEY)
        return [TraceEvent.from_dict(e) for e in json.loads(raw)] if raw else []

    def _save_session(self) -> None:
        if self._session is not None:
            self.storage.set(SESSION_KEY, json.dumps(self._session.to_dict()))

    def _save_buffer(self) -> None:
        self.storage.set(TRACE_BUFFER_KEY, json.dumps([e.to_dict() for e in self._buffer]))

    # --- SESSION LIFECYCLE ---

    def create(
        self,
        participant_id: str,
        group: GroupType,
        timing_mode: TimingMode,
        prolific_redirect_url: Optional[str] = None,
    ) -> SessionData:
        if not participant_id:
            raise ValueError("participant_id is required")
        if self._session is not None and self._session.participant_id != participant_id:
            raise ValueError(
                f"A session for {self._session.participant_id} already exists; clear it first"
            )
        self._session = SessionData(
            participant_id=participant_id,
            group=GroupType(group),
            timing_mode=TimingMode(timing_mode),
            start_time=self.clock(),
            prolific_redirect_url=prolific_redirect_url,
        )
        self._save_session()
        logger.info(
            f"Session created for {participant_id} "
            f"(group {self._session.group.value}, {self._session.timing_mode.value})"
        )
        return self._session

    @property
    def session(self) -> Optional[SessionData]:
        return self._session

    def require(self) -> SessionData:
        if self._session is None:
            raise SessionNotFoundError("No active session; redirect to consent")
        return self._session

    @property
    def participant_id(self) -> Optional[str]:
        return self._session.participant_id if self._session else None

    def update(self, **fields: Any) -> SessionData:
        unknown = set(fields) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update session fields: {sorted(unknown)}")
        self._session = replace(self.require(), **fields)
        self._save_session()
        return self._session

    def append_response(self, response: TicketResponse) -> None:
        self.require().ticket_responses.append(response)
        self._save_session()

    def append_event(self, event: TraceEvent) -> None:
        """Adds to the session's full log. Without a session the call is a no-op."""
        if self._session is None:
            return
        self._session.trace_events.append(event)
        self._save_session()

    def clear(self) -> None:
        """Operator-initiated restart: wipes the session and the sync buffer."""
        if self._session is not None:
            logger.info(f"Clearing session for {self._session.participant_id}")
        self._session = None
        self._buffer = []
        self.storage.remove(SESSION_KEY)
        self.storage.remove(TRACE_BUFFER_KEY)

    # --- SYNC BUFFER ---

    def buffer_event(self, event: TraceEvent) -> None:
        self._buffer.append(event)
        self._save_buffer()

    def buffered_events(self) -> List[TraceEvent]:
        return list(self._buffer)

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)

    def drop_delivered(self, delivered: Sequence[TraceEvent]) -> None:
        """
        Removes a delivered snapshot from the head of the buffer.

        Events appended while the delivery was in flight stay queued.
        """
        count = len(delivered)
        if list(self._buffer[:count]) != list(delivered):
            # The buffer was rewritten under us (e.g. cleared); keep what is there
            logger.warning("Sync buffer changed during delivery; leaving it untouched")
            return
        self._buffer = self._buffer[count:]
        self._save_buffer()
