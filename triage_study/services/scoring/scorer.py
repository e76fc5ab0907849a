from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence

from ..tickets.catalog import TicketCatalog, UnknownTicketError
from ..tickets.models import Ticket, TicketResponse
from ..tracking.events import TraceEvent, TraceEventType


@dataclass(frozen=True)
class TicketScore:
    ticket_id: str
    distance_from_gold_standard: float  # 0 is a perfect match
    error_rate: float                   # 0-1
    quality_score: int                  # 0-100
    time_to_first_response: int         # ms
    time_to_close: int                  # ms
    outcome_matched: bool = True

    def to_dict(self) -> Dict[str, object]:
        return {
            "ticketId": self.ticket_id,
            "distanceFromGoldStandard": self.distance_from_gold_standard,
            "errorRate": self.error_rate,
            "qualityScore": self.quality_score,
            "timeToFirstResponse": self.time_to_first_response,
            "timeToClose": self.time_to_close,
            "outcomeMatched": self.outcome_matched,
        }


@dataclass(frozen=True)
class PerformanceSummary:
    total_tickets: int = 0
    avg_error_rate: float = 0.0
    avg_quality_score: float = 0.0
    avg_time_to_close: float = 0.0
    avg_distance_from_gold_standard: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {
            "totalTickets": self.total_tickets,
            "averageErrorRate": self.avg_error_rate,
            "averageQualityScore": self.avg_quality_score,
            "averageTimeToClose": self.avg_time_to_close,
            "averageDistanceFromGoldStandard": self.avg_distance_from_gold_standard,
        }


@dataclass(frozen=True)
class ParticipantPerformance:
    participant_id: str
    group: Optional[str]
    summary: PerformanceSummary
    total_mouse_clicks: int = 0
    average_mouse_velocity: float = 0.0


class ScoringEngine:
    """
    Scores a resolution path against the ticket's gold standard.

    The distance is a normalized Hamming-style count over decision points:
    for every gold-standard node, the response either chose the same option
    at that node or it did not (a missing node counts as a miss). The tree
    guarantees a valid response walks one deterministic route, so this is
    reproducible without any semantic comparison.
    """

    # Error rate assigned when the response ends in a different outcome
    WRONG_OUTCOME_ERROR_RATE = 1.0

    def __init__(
        self,
        catalog: Optional[TicketCatalog] = None,
        penalize_wrong_outcome: bool = True,
    ):
        self.catalog = catalog
        self.penalize_wrong_outcome = penalize_wrong_outcome

    def _ticket_for(self, response: TicketResponse) -> Ticket:
        if self.catalog is None:
            raise UnknownTicketError(
                f"No catalog configured to look up ticket {response.ticket_id}"
            )
        return self.catalog.require(response.ticket_id)

    def score(self, response: TicketResponse, ticket: Optional[Ticket] = None) -> TicketScore:
        ticket = ticket or self._ticket_for(response)
        gold = ticket.gold_standard

        # Later decisions at the same node override earlier ones
        chosen = {d.node_id: d.option_id for d in response.decisions}
        errors = sum(1 for step in gold.path if chosen.get(step.node_id) != step.option_id)
        error_rate = errors / max(1, len(gold.path))

        outcome_matched = response.outcome_id == gold.outcome_id
        if not outcome_matched and self.penalize_wrong_outcome:
            error_rate = self.WRONG_OUTCOME_ERROR_RATE

        return TicketScore(
            ticket_id=response.ticket_id,
            distance_from_gold_standard=error_rate,
            error_rate=error_rate,
            quality_score=round((1 - error_rate) * 100),
            # No separate first-reply timestamp exists; the reply closes the ticket
            time_to_first_response=response.time_to_complete,
            time_to_close=response.time_to_complete,
            outcome_matched=outcome_matched,
        )

    def aggregate(self, responses: Sequence[TicketResponse]) -> PerformanceSummary:
        if not responses:
            return PerformanceSummary()
        scores = [self.score(r) for r in responses]
        n = len(scores)
        return PerformanceSummary(
            total_tickets=n,
            avg_error_rate=sum(s.error_rate for s in scores) / n,
            avg_quality_score=sum(s.quality_score for s in scores) / n,
            avg_time_to_close=sum(s.time_to_close for s in scores) / n,
            avg_distance_from_gold_standard=sum(s.distance_from_gold_standard for s in scores) / n,
        )

    def participant_performance(
        self,
        participant_id: str,
        responses: Sequence[TicketResponse],
        events: Iterable[TraceEvent] = (),
        group: Optional[str] = None,
    ) -> ParticipantPerformance:
        clicks = 0
        velocities: List[float] = []
        for event in events:
            if event.type == TraceEventType.MOUSE_CLICK:
                clicks += 1
            elif event.type == TraceEventType.MOUSE_MOVE:
                velocity = event.data.get("velocity")
                # Client-supplied; non-numeric samples are skipped
                if isinstance(velocity, (int, float)) and not isinstance(velocity, bool):
                    velocities.append(float(velocity))
        return ParticipantPerformance(
            participant_id=participant_id,
            group=group,
            summary=self.aggregate(responses),
            total_mouse_clicks=clicks,
            average_mouse_velocity=sum(velocities) / len(velocities) if velocities else 0.0,
        )
