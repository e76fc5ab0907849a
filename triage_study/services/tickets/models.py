from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..decision_tree.models import Decision


class TicketStatus(str, Enum):
    LOCKED = "locked"
    AVAILABLE = "available"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TimingMode(str, Enum):
    IMMEDIATE = "immediate"
    STAGGERED = "staggered"


FieldValue = Union[str, bool, int, float]


@dataclass(frozen=True)
class CustomerCase:
    id: str
    type: str
    status: Optional[str] = None
    date: Optional[str] = None
    summary: Optional[str] = None


@dataclass(frozen=True)
class CustomerDetails:
    name: Optional[str] = None
    birth_date: Optional[str] = None
    email: Optional[str] = None
    case_count: Optional[int] = None
    case_types: List[str] = field(default_factory=list)
    previous_cases: List[CustomerCase] = field(default_factory=list)


@dataclass(frozen=True)
class GoldStandard:
    """Researcher-defined canonical route through the tree plus a model reply."""
    path: List[Decision]
    outcome_id: str
    response_template: str = ""


@dataclass(frozen=True)
class Ticket:
    id: str
    customer: str
    email: str
    subject: str
    description: str
    gold_standard: GoldStandard
    customer_details: Optional[CustomerDetails] = None
    # Seconds from session start; only consulted in staggered mode
    scheduled_appearance: Optional[float] = None

    def to_public_dict(self) -> Dict[str, Any]:
        """Participant-facing view; the gold standard is never exposed."""
        data: Dict[str, Any] = {
            "id": self.id,
            "customer": self.customer,
            "email": self.email,
            "subject": self.subject,
            "description": self.description,
        }
        if self.scheduled_appearance is not None:
            data["scheduledAppearance"] = self.scheduled_appearance
        if self.customer_details is not None:
            details = self.customer_details
            data["customerDetails"] = {
                "name": details.name,
                "birthDate": details.birth_date,
                "email": details.email,
                "caseCount": details.case_count,
                "caseTypes": list(details.case_types),
                "previousCases": [
                    {
                        "id": c.id,
                        "type": c.type,
                        "status": c.status,
                        "date": c.date,
                        "summary": c.summary,
                    }
                    for c in details.previous_cases
                ],
            }
        return data


@dataclass(frozen=True)
class TicketWithStatus:
    """A session-scoped ticket; replaced, never mutated, on every transition."""
    ticket: Ticket
    status: TicketStatus
    started_at: Optional[int] = None
    completed_at: Optional[int] = None

    @property
    def id(self) -> str:
        return self.ticket.id


@dataclass
class TicketResponse:
    ticket_id: str
    decisions: List[Decision]
    outcome_id: str
    fields: Dict[str, FieldValue]
    customer_response: str
    completed_at: int
    time_to_complete: int  # milliseconds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ticketId": self.ticket_id,
            "decisions": [d.to_dict() for d in self.decisions],
            "outcomeId": self.outcome_id,
            "fields": dict(self.fields),
            "customerResponse": self.customer_response,
            "completedAt": self.completed_at,
            "timeToComplete": self.time_to_complete,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TicketResponse":
        return cls(
            ticket_id=data["ticketId"],
            decisions=[Decision.from_dict(d) for d in data.get("decisions", [])],
            outcome_id=data.get("outcomeId", ""),
            fields=dict(data.get("fields", {})),
            customer_response=data.get("customerResponse", ""),
            completed_at=int(data.get("completedAt", 0)),
            time_to_complete=int(data.get("timeToComplete", 0)),
        )
