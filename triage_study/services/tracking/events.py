"""
Trace event vocabulary.

Each event type has exactly one payload model. Payloads are pydantic models
that validate the fields the analysis relies on but still accept extra keys,
so instrumentation can attach context without a schema change.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field


class TraceEventType(str, Enum):
    # Experiment lifecycle
    EXPERIMENT_STARTED = "experiment_started"
    EXPERIMENT_PAUSED = "experiment_paused"
    EXPERIMENT_RESUMED = "experiment_resumed"
    EXPERIMENT_TIME_EXPIRED = "experiment_time_expired"
    # Tickets
    TICKET_OPENED = "ticket_opened"
    TICKET_CLOSED = "ticket_closed"
    TICKET_VIEW_DURATION = "ticket_view_duration"
    TICKET_LIST_FILTERED = "ticket_list_filtered"
    TICKET_LIST_SORTED = "ticket_list_sorted"
    # Decisions
    DECISION_MADE = "decision_made"
    DECISION_CHANGED = "decision_changed"
    FIRST_DECISION_TIMING = "first_decision_timing"
    DROPDOWN_OPENED = "dropdown_opened"
    DROPDOWN_CLOSED = "dropdown_closed"
    # Pointer
    MOUSE_CLICK = "mouse_click"
    MOUSE_MOVE = "mouse_move"
    RAGE_CLICK_DETECTED = "rage_click_detected"
    # Customer response
    CUSTOMER_RESPONSE_SENT = "customer_response_sent"
    RESPONSE_TEXT_CHANGED = "response_text_changed"
    # AI agent
    AI_AGENT_STARTED = "ai_agent_started"
    AI_AGENT_COMPLETED = "ai_agent_completed"
    AI_AGENT_STEP_VIEWED = "ai_agent_step_viewed"
    AI_STEP_ACCEPTED = "ai_step_accepted"
    AI_STEP_REJECTED = "ai_step_rejected"
    AI_STEP_EDITED = "ai_step_edited"
    # Chat
    CHAT_MESSAGE_SENT = "chat_message_sent"
    CHAT_MESSAGE_RECEIVED = "chat_message_received"
    CHAT_RESPONSE_COPIED = "chat_response_copied"
    CHAT_RESPONSE_INSERTED = "chat_response_inserted"
    # Knowledge base
    KNOWLEDGE_BASE_OPENED = "knowledge_base_opened"
    KNOWLEDGE_BASE_SEARCHED = "knowledge_base_searched"
    # Survey
    SURVEY_COMPLETED = "survey_completed"
    SURVEY_SUBMITTED = "survey_submitted"
    SURVEY_QUESTION_ANSWERED = "survey_question_answered"
    # Sidebar
    SIDEBAR_SECTION_FOCUSED = "sidebar_section_focused"
    SIDEBAR_INTERACTION_STARTED = "sidebar_interaction_started"
    SIDEBAR_INTERACTION_ENDED = "sidebar_interaction_ended"
    # Navigation
    PAGE_VIEWED = "page_viewed"
    PAGE_PERFORMANCE = "page_performance"
    # Timer
    TIMER_WARNING = "timer_warning"
    # Sync
    DATA_SYNCED = "data_synced"
    DATA_SYNC_FAILED = "data_sync_failed"
    # Validation, attention, errors
    FORM_VALIDATION_ERROR = "form_validation_error"
    WINDOW_FOCUS_CHANGED = "window_focus_changed"
    TAB_VISIBILITY_CHANGED = "tab_visibility_changed"
    APPLICATION_ERROR = "application_error"


# --- PAYLOADS ---

class EventPayload(BaseModel):
    model_config = ConfigDict(extra="allow")


class ExperimentStartedPayload(EventPayload):
    participant_id: str
    group: str
    timing_mode: str


class ExperimentStatePayload(EventPayload):
    elapsed_seconds: Optional[float] = None
    reason: Optional[str] = None


class ExperimentTimeExpiredPayload(EventPayload):
    completed_count: int
    total_count: int


class TicketOpenedPayload(EventPayload):
    ticket_id: str
    timestamp: int


class TicketClosedPayload(EventPayload):
    ticket_id: str
    timestamp: int
    time_to_complete: int
    # Full TicketResponse, used by the export to rebuild scores
    response: Optional[Dict[str, Any]] = None


class TicketViewDurationPayload(EventPayload):
    ticket_id: str
    duration_ms: int


class TicketListPayload(EventPayload):
    criterion: str
    value: Optional[str] = None


class DecisionMadePayload(EventPayload):
    ticket_id: str
    node_id: str
    option_id: str
    option_label: Optional[str] = None
    time_since_last_decision: Optional[int] = None


class DecisionChangedPayload(EventPayload):
    ticket_id: str
    node_id: str
    previous_option_id: str
    option_id: str
    pruned_node_ids: List[str] = Field(default_factory=list)


class FirstDecisionTimingPayload(EventPayload):
    ticket_id: str
    ms_since_opened: int


class DropdownPayload(EventPayload):
    ticket_id: Optional[str] = None
    node_id: str


class MouseClickPayload(EventPayload):
    x: float
    y: float
    timestamp: int
    element_type: Optional[str] = None
    element_id: Optional[str] = None


class MouseMovePayload(EventPayload):
    x: float
    y: float
    timestamp: int
    velocity: Optional[float] = None


class RageClickPayload(EventPayload):
    x: float
    y: float
    click_count: int
    window_ms: int
    element_id: Optional[str] = None


class CustomerResponseSentPayload(EventPayload):
    ticket_id: str
    response_text: str
    response_length: int
    timestamp: int


class ResponseTextChangedPayload(EventPayload):
    ticket_id: str
    response_length: int


class AIAgentPayload(EventPayload):
    ticket_id: str
    step_count: Optional[int] = None
    mode: Optional[str] = None


class AIStepPayload(EventPayload):
    ticket_id: str
    step_number: int
    step_name: str
    new_value: Optional[str] = None


class ChatMessagePayload(EventPayload):
    message_length: int
    ticket_id: Optional[str] = None


class ChatResponseActionPayload(EventPayload):
    message_id: str
    ticket_id: Optional[str] = None


class KnowledgeBaseOpenedPayload(EventPayload):
    node_id: str
    node_title: str


class KnowledgeBaseSearchedPayload(EventPayload):
    query: str
    result_count: int


class SurveyPayload(EventPayload):
    participant_id: Optional[str] = None


class SurveyQuestionPayload(EventPayload):
    question_id: str
    value: Union[int, float, str, None] = None


class SidebarPayload(EventPayload):
    section: str
    ticket_id: Optional[str] = None


class PageViewedPayload(EventPayload):
    page: str
    referrer: Optional[str] = None


class PagePerformancePayload(EventPayload):
    page: str
    load_ms: Optional[float] = None


class TimerWarningPayload(EventPayload):
    seconds_remaining: int
    label: str


class DataSyncedPayload(EventPayload):
    event_count: int
    trigger: str


class DataSyncFailedPayload(EventPayload):
    error: str
    pending_count: int
    trigger: str


class FormValidationErrorPayload(EventPayload):
    ticket_id: Optional[str] = None
    errors: List[str]


class WindowFocusPayload(EventPayload):
    focused: bool
    ticket_id: Optional[str] = None


class TabVisibilityPayload(EventPayload):
    visible: bool
    ticket_id: Optional[str] = None


class ApplicationErrorPayload(EventPayload):
    message: str
    stack: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)


E = TraceEventType

PAYLOAD_MODELS: Dict[TraceEventType, Type[EventPayload]] = {
    E.EXPERIMENT_STARTED: ExperimentStartedPayload,
    E.EXPERIMENT_PAUSED: ExperimentStatePayload,
    E.EXPERIMENT_RESUMED: ExperimentStatePayload,
    E.EXPERIMENT_TIME_EXPIRED: ExperimentTimeExpiredPayload,
    E.TICKET_OPENED: TicketOpenedPayload,
    E.TICKET_CLOSED: TicketClosedPayload,
    E.TICKET_VIEW_DURATION: TicketViewDurationPayload,
    E.TICKET_LIST_FILTERED: TicketListPayload,
    E.TICKET_LIST_SORTED: TicketListPayload,
    E.DECISION_MADE: DecisionMadePayload,
    E.DECISION_CHANGED: DecisionChangedPayload,
    E.FIRST_DECISION_TIMING: FirstDecisionTimingPayload,
    E.DROPDOWN_OPENED: DropdownPayload,
    E.DROPDOWN_CLOSED: DropdownPayload,
    E.MOUSE_CLICK: MouseClickPayload,
    E.MOUSE_MOVE: MouseMovePayload,
    E.RAGE_CLICK_DETECTED: RageClickPayload,
    E.CUSTOMER_RESPONSE_SENT: CustomerResponseSentPayload,
    E.RESPONSE_TEXT_CHANGED: ResponseTextChangedPayload,
    E.AI_AGENT_STARTED: AIAgentPayload,
    E.AI_AGENT_COMPLETED: AIAgentPayload,
    E.AI_AGENT_STEP_VIEWED: AIStepPayload,
    E.AI_STEP_ACCEPTED: AIStepPayload,
    E.AI_STEP_REJECTED: AIStepPayload,
    E.AI_STEP_EDITED: AIStepPayload,
    E.CHAT_MESSAGE_SENT: ChatMessagePayload,
    E.CHAT_MESSAGE_RECEIVED: ChatMessagePayload,
    E.CHAT_RESPONSE_COPIED: ChatResponseActionPayload,
    E.CHAT_RESPONSE_INSERTED: ChatResponseActionPayload,
    E.KNOWLEDGE_BASE_OPENED: KnowledgeBaseOpenedPayload,
    E.KNOWLEDGE_BASE_SEARCHED: KnowledgeBaseSearchedPayload,
    E.SURVEY_COMPLETED: SurveyPayload,
    E.SURVEY_SUBMITTED: SurveyPayload,
    E.SURVEY_QUESTION_ANSWERED: SurveyQuestionPayload,
    E.SIDEBAR_SECTION_FOCUSED: SidebarPayload,
    E.SIDEBAR_INTERACTION_STARTED: SidebarPayload,
    E.SIDEBAR_INTERACTION_ENDED: SidebarPayload,
    E.PAGE_VIEWED: PageViewedPayload,
    E.PAGE_PERFORMANCE: PagePerformancePayload,
    E.TIMER_WARNING: TimerWarningPayload,
    E.DATA_SYNCED: DataSyncedPayload,
    E.DATA_SYNC_FAILED: DataSyncFailedPayload,
    E.FORM_VALIDATION_ERROR: FormValidationErrorPayload,
    E.WINDOW_FOCUS_CHANGED: WindowFocusPayload,
    E.TAB_VISIBILITY_CHANGED: TabVisibilityPayload,
    E.APPLICATION_ERROR: ApplicationErrorPayload,
}


def build_payload(
    event_type: TraceEventType,
    payload: Union[EventPayload, Mapping[str, Any], None] = None,
) -> EventPayload:
    """Validates ``payload`` against the model registered for ``event_type``."""
    model = PAYLOAD_MODELS[TraceEventType(event_type)]
    if isinstance(payload, EventPayload):
        if not isinstance(payload, model):
            raise TypeError(
                f"{type(payload).__name__} is not a valid payload for {event_type.value}; "
                f"expected {model.__name__}"
            )
        return payload
    return model.model_validate(dict(payload or {}))


@dataclass(frozen=True)
class TraceEvent:
    type: TraceEventType
    timestamp: int
    data: Dict[str, Any]
    participant_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        event: Dict[str, Any] = {
            "type": self.type.value,
            "timestamp": self.timestamp,
            "data": self.data,
        }
        if self.participant_id is not None:
            event["participantId"] = self.participant_id
        return event

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TraceEvent":
        return cls(
            type=TraceEventType(data["type"]),
            timestamp=int(data["timestamp"]),
            data=dict(data.get("data") or {}),
            participant_id=data.get("participantId"),
        )
