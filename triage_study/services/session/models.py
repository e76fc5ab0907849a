from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..tickets.models import TicketResponse, TimingMode
from ..tracking.events import TraceEvent


class GroupType(str, Enum):
    MANUAL = "1"
    CHAT_ASSISTED = "2"
    AGENT_CONFIRM = "3"
    AGENT_AUTONOMOUS = "4"

    @property
    def uses_agent(self) -> bool:
        return self in (GroupType.AGENT_CONFIRM, GroupType.AGENT_AUTONOMOUS)


@dataclass
class SessionData:
    """One participant's session; owns its responses and trace log."""
    participant_id: str
    group: GroupType
    timing_mode: TimingMode
    start_time: int
    end_time: Optional[int] = None
    prolific_redirect_url: Optional[str] = None
    ticket_responses: List[TicketResponse] = field(default_factory=list)
    trace_events: List[TraceEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "participantId": self.participant_id,
            "group": self.group.value,
            "timingMode": self.timing_mode.value,
            "startTime": self.start_time,
            "ticketResponses": [r.to_dict() for r in self.ticket_responses],
            "traceEvents": [e.to_dict() for e in self.trace_events],
        }
        if self.end_time is not None:
            data["endTime"] = self.end_time
        if self.prolific_redirect_url is not None:
            data["prolificRedirectUrl"] = self.prolific_redirect_url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionData":
        return cls(
            participant_id=data["participantId"],
            group=GroupType(data["group"]),
            timing_mode=TimingMode(data["timingMode"]),
            start_time=int(data["startTime"]),
            end_time=data.get("endTime"),
            prolific_redirect_url=data.get("prolificRedirectUrl"),
            ticket_responses=[TicketResponse.from_dict(r) for r in data.get("ticketResponses", [])],
            trace_events=[TraceEvent.from_dict(e) for e in data.get("traceEvents", [])],
        )
