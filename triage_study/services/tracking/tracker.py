"""
Event tracker: the single entry point for instrumentation.

``record`` stamps an event with the current time and participant id, then
appends it to the session's full log and to the pending sync buffer. Named
helpers below wrap ``record`` for the events the experiment emits.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union

from ..clock import Clock, now_ms
from .events import EventPayload, TraceEvent, TraceEventType, build_payload
from .mouse import MouseVelocityTracker, PointerSample, RageClickDetector
from .sampling import SamplingPolicy

if TYPE_CHECKING:
    from ..session.store import SessionStore

logger = logging.getLogger(__name__)

E = TraceEventType


class EventTracker:

    def __init__(
        self,
        store: "SessionStore",
        sampling: Optional[SamplingPolicy] = None,
        clock: Clock = now_ms,
    ):
        self.store = store
        self.sampling = sampling or SamplingPolicy()
        self.clock = clock
        self._velocity = MouseVelocityTracker()
        self._rage_clicks = RageClickDetector()

    def record(
        self,
        event_type: TraceEventType,
        payload: Union[EventPayload, Mapping[str, Any], None] = None,
        buffered: bool = True,
        **fields: Any,
    ) -> Optional[TraceEvent]:
        """
        Records one event. Returns None when the sampling policy drops it.

        ``buffered=False`` keeps the event out of the sync buffer; it is
        still part of the session log.
        """
        event_type = TraceEventType(event_type)
        if not self.sampling.should_record(event_type):
            return None

        if fields:
            if isinstance(payload, EventPayload):
                raise TypeError("Pass either a payload model or keyword fields, not both")
            payload = {**(payload or {}), **fields}
        model = build_payload(event_type, payload)

        event = TraceEvent(
            type=event_type,
            timestamp=self.clock(),
            data=model.model_dump(exclude_none=True),
            participant_id=self.store.participant_id,
        )
        self.store.append_event(event)
        if buffered:
            self.store.buffer_event(event)
        return event

    # --- EXPERIMENT ---

    def experiment_started(self, participant_id: str, group: str, timing_mode: str):
        return self.record(
            E.EXPERIMENT_STARTED,
            participant_id=participant_id, group=group, timing_mode=timing_mode,
        )

    def experiment_time_expired(self, completed_count: int, total_count: int):
        return self.record(
            E.EXPERIMENT_TIME_EXPIRED,
            completed_count=completed_count, total_count=total_count,
        )

    def page_viewed(self, page: str, referrer: Optional[str] = None):
        return self.record(E.PAGE_VIEWED, page=page, referrer=referrer)

    def timer_warning(self, seconds_remaining: int, label: str):
        return self.record(E.TIMER_WARNING, seconds_remaining=seconds_remaining, label=label)

    # --- TICKETS & DECISIONS ---

    def ticket_opened(self, ticket_id: str, timestamp: int):
        return self.record(E.TICKET_OPENED, ticket_id=ticket_id, timestamp=timestamp)

    def ticket_closed(
        self,
        ticket_id: str,
        timestamp: int,
        time_to_complete: int,
        response: Optional[Dict[str, Any]] = None,
    ):
        return self.record(
            E.TICKET_CLOSED,
            ticket_id=ticket_id, timestamp=timestamp,
            time_to_complete=time_to_complete, response=response,
        )

    def decision_made(
        self,
        ticket_id: str,
        node_id: str,
        option_id: str,
        option_label: Optional[str] = None,
        time_since_last_decision: Optional[int] = None,
    ):
        return self.record(
            E.DECISION_MADE,
            ticket_id=ticket_id, node_id=node_id, option_id=option_id,
            option_label=option_label, time_since_last_decision=time_since_last_decision,
        )

    def decision_changed(
        self,
        ticket_id: str,
        node_id: str,
        previous_option_id: str,
        option_id: str,
        pruned_node_ids: List[str],
    ):
        return self.record(
            E.DECISION_CHANGED,
            ticket_id=ticket_id, node_id=node_id, previous_option_id=previous_option_id,
            option_id=option_id, pruned_node_ids=pruned_node_ids,
        )

    def first_decision_timing(self, ticket_id: str, ms_since_opened: int):
        return self.record(
            E.FIRST_DECISION_TIMING, ticket_id=ticket_id, ms_since_opened=ms_since_opened,
        )

    def customer_response_sent(self, ticket_id: str, response_text: str, timestamp: int):
        return self.record(
            E.CUSTOMER_RESPONSE_SENT,
            ticket_id=ticket_id, response_text=response_text,
            response_length=len(response_text), timestamp=timestamp,
        )

    def form_validation_error(self, errors: List[str], ticket_id: Optional[str] = None):
        return self.record(E.FORM_VALIDATION_ERROR, ticket_id=ticket_id, errors=errors)

    # --- POINTER ---

    def mouse_click(
        self,
        x: float,
        y: float,
        element_type: Optional[str] = None,
        element_id: Optional[str] = None,
    ):
        """Sampled click; a detected rage click is always recorded."""
        timestamp = self.clock()
        rage = self._rage_clicks.observe(PointerSample(x, y, timestamp, element_id))
        if rage is not None:
            self.record(
                E.RAGE_CLICK_DETECTED,
                x=rage.x, y=rage.y, click_count=rage.click_count,
                window_ms=rage.window_ms, element_id=rage.element_id,
            )
        return self.record(
            E.MOUSE_CLICK,
            x=x, y=y, timestamp=timestamp, element_type=element_type, element_id=element_id,
        )

    def mouse_move(self, x: float, y: float):
        timestamp = self.clock()
        velocity = self._velocity.observe(PointerSample(x, y, timestamp))
        return self.record(E.MOUSE_MOVE, x=x, y=y, timestamp=timestamp, velocity=velocity)

    # --- AI AGENT & CHAT ---

    def ai_agent_started(self, ticket_id: str, step_count: int, mode: str):
        return self.record(E.AI_AGENT_STARTED, ticket_id=ticket_id, step_count=step_count, mode=mode)

    def ai_agent_completed(self, ticket_id: str, mode: str):
        return self.record(E.AI_AGENT_COMPLETED, ticket_id=ticket_id, mode=mode)

    def ai_step_accepted(self, ticket_id: str, step_number: int, step_name: str):
        return self.record(
            E.AI_STEP_ACCEPTED, ticket_id=ticket_id, step_number=step_number, step_name=step_name,
        )

    def ai_step_rejected(self, ticket_id: str, step_number: int, step_name: str):
        return self.record(
            E.AI_STEP_REJECTED, ticket_id=ticket_id, step_number=step_number, step_name=step_name,
        )

    def ai_step_edited(self, ticket_id: str, step_number: int, step_name: str, new_value: str):
        return self.record(
            E.AI_STEP_EDITED,
            ticket_id=ticket_id, step_number=step_number, step_name=step_name, new_value=new_value,
        )

    def chat_message_sent(self, message: str, ticket_id: Optional[str] = None):
        return self.record(E.CHAT_MESSAGE_SENT, message_length=len(message), ticket_id=ticket_id)

    def chat_message_received(self, message: str, ticket_id: Optional[str] = None):
        return self.record(E.CHAT_MESSAGE_RECEIVED, message_length=len(message), ticket_id=ticket_id)

    def knowledge_base_opened(self, node_id: str, node_title: str):
        return self.record(E.KNOWLEDGE_BASE_OPENED, node_id=node_id, node_title=node_title)

    def knowledge_base_searched(self, query: str, result_count: int):
        return self.record(E.KNOWLEDGE_BASE_SEARCHED, query=query, result_count=result_count)

    # --- SURVEY ---

    def survey_completed(self, survey: Mapping[str, Any]):
        return self.record(E.SURVEY_COMPLETED, dict(survey))

    def survey_submitted(self, survey: Mapping[str, Any]):
        return self.record(E.SURVEY_SUBMITTED, dict(survey))

    # --- SYNC & ERRORS ---

    def data_synced(self, event_count: int, trigger: str):
        # Kept out of the buffer: a successful flush must leave it empty
        return self.record(E.DATA_SYNCED, buffered=False, event_count=event_count, trigger=trigger)

    def data_sync_failed(self, error: str, pending_count: int, trigger: str):
        return self.record(
            E.DATA_SYNC_FAILED, error=error, pending_count=pending_count, trigger=trigger,
        )

    def window_focus_changed(self, focused: bool, ticket_id: Optional[str] = None):
        return self.record(E.WINDOW_FOCUS_CHANGED, focused=focused, ticket_id=ticket_id)

    def tab_visibility_changed(self, visible: bool, ticket_id: Optional[str] = None):
        return self.record(E.TAB_VISIBILITY_CHANGED, visible=visible, ticket_id=ticket_id)

    def application_error(
        self,
        message: str,
        stack: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        logger.error(f"Application error recorded: {message}")
        return self.record(
            E.APPLICATION_ERROR, message=message, stack=stack, context=context or {},
        )
