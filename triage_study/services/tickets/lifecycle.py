"""
Session-scoped ticket status state machine.

Every operation takes the current ticket list and returns a new one, so
callers can apply them as functional updates from independent triggers
(unlock checks, participant actions) without losing writes.
"""

import logging
from dataclasses import replace
from typing import FrozenSet, List, Optional, Tuple

from ..clock import Clock, now_ms
from .catalog import TicketCatalog
from .models import TicketStatus, TicketWithStatus, TimingMode

logger = logging.getLogger(__name__)


LEGAL_TRANSITIONS: FrozenSet[Tuple[TicketStatus, TicketStatus]] = frozenset({
    (TicketStatus.LOCKED, TicketStatus.AVAILABLE),
    (TicketStatus.AVAILABLE, TicketStatus.IN_PROGRESS),
    # Re-selecting an open ticket keeps its original start time
    (TicketStatus.IN_PROGRESS, TicketStatus.IN_PROGRESS),
    (TicketStatus.IN_PROGRESS, TicketStatus.AVAILABLE),
    (TicketStatus.IN_PROGRESS, TicketStatus.COMPLETED),
})


class InvalidTransitionError(ValueError):
    def __init__(self, ticket_id: str, current: TicketStatus, requested: TicketStatus):
        self.ticket_id = ticket_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Ticket {ticket_id} cannot move from {current.value} to {requested.value}"
        )


def is_legal(current: TicketStatus, requested: TicketStatus) -> bool:
    return (current, requested) in LEGAL_TRANSITIONS


class TicketLifecycleManager:

    def __init__(self, catalog: TicketCatalog, clock: Clock = now_ms):
        self.catalog = catalog
        self.clock = clock

    def _elapsed_seconds(self, session_start: int) -> float:
        return (self.clock() - session_start) / 1000

    def initialize(self, timing_mode: TimingMode, session_start: int) -> List[TicketWithStatus]:
        """
        Derives the session's tickets from the static catalog.

        Immediate mode opens everything. Staggered mode keeps a ticket locked
        until its scheduled appearance; tickets without one start available.
        """
        elapsed = self._elapsed_seconds(session_start)
        tickets = []
        for ticket in self.catalog:
            status = TicketStatus.AVAILABLE
            if (
                TimingMode(timing_mode) == TimingMode.STAGGERED
                and ticket.scheduled_appearance is not None
                and elapsed < ticket.scheduled_appearance
            ):
                status = TicketStatus.LOCKED
            tickets.append(TicketWithStatus(ticket=ticket, status=status))
        return tickets

    def check_unlocks(
        self, tickets: List[TicketWithStatus], session_start: int
    ) -> List[TicketWithStatus]:
        """Flips locked tickets whose threshold has passed. Idempotent, never re-locks."""
        elapsed = self._elapsed_seconds(session_start)
        updated = []
        for item in tickets:
            appearance = item.ticket.scheduled_appearance
            if (
                item.status == TicketStatus.LOCKED
                and appearance is not None
                and elapsed >= appearance
            ):
                logger.debug(f"Unlocking ticket {item.id} at {elapsed:.1f}s")
                item = replace(item, status=TicketStatus.AVAILABLE)
            updated.append(item)
        return updated

    def transition(
        self,
        tickets: List[TicketWithStatus],
        ticket_id: str,
        new_status: TicketStatus,
        timestamp: Optional[int] = None,
    ) -> List[TicketWithStatus]:
        """
        Applies one legal transition to one ticket.

        An unknown ticket id returns the list unchanged, since the caller
        may race with the unlock timer. Illegal moves raise
        ``InvalidTransitionError``.
        """
        new_status = TicketStatus(new_status)
        index = next((i for i, t in enumerate(tickets) if t.id == ticket_id), None)
        if index is None:
            logger.debug(f"Ignoring transition for unknown ticket {ticket_id}")
            return tickets

        current = tickets[index]
        if not is_legal(current.status, new_status):
            logger.warning(
                f"Rejected transition for {ticket_id}: "
                f"{current.status.value} -> {new_status.value}"
            )
            raise InvalidTransitionError(ticket_id, current.status, new_status)

        stamp = timestamp if timestamp is not None else self.clock()
        changes = {"status": new_status}
        if new_status == TicketStatus.IN_PROGRESS and current.started_at is None:
            changes["started_at"] = stamp
        elif new_status == TicketStatus.COMPLETED:
            changes["completed_at"] = stamp

        updated = list(tickets)
        updated[index] = replace(current, **changes)
        return updated

    @staticmethod
    def find(tickets: List[TicketWithStatus], ticket_id: str) -> Optional[TicketWithStatus]:
        return next((t for t in tickets if t.id == ticket_id), None)

    @staticmethod
    def count(tickets: List[TicketWithStatus], status: TicketStatus) -> int:
        return sum(1 for t in tickets if t.status == status)
