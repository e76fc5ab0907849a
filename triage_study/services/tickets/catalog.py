"""
Read-only ticket catalog loaded once at startup.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Union

from ..decision_tree import Decision, DecisionTree, TreeValidationError
from .models import CustomerCase, CustomerDetails, GoldStandard, Ticket

logger = logging.getLogger(__name__)


class UnknownTicketError(LookupError):
    """Raised when a ticket id is not part of the catalog."""


def _details_from_dict(data: Optional[Dict[str, Any]]) -> Optional[CustomerDetails]:
    if not data:
        return None
    return CustomerDetails(
        name=data.get("name"),
        birth_date=data.get("birthDate"),
        email=data.get("email"),
        case_count=data.get("caseCount"),
        case_types=list(data.get("caseTypes", [])),
        previous_cases=[
            CustomerCase(
                id=c["id"],
                type=c.get("type", ""),
                status=c.get("status"),
                date=c.get("date"),
                summary=c.get("summary"),
            )
            for c in data.get("previousCases", [])
        ],
    )


def ticket_from_dict(data: Dict[str, Any]) -> Ticket:
    gold = data["goldStandard"]
    return Ticket(
        id=data["id"],
        customer=data.get("customer", ""),
        email=data.get("email", ""),
        subject=data.get("subject", ""),
        description=data.get("description", ""),
        gold_standard=GoldStandard(
            path=[Decision.from_dict(step) for step in gold.get("path", [])],
            outcome_id=gold["outcomeId"],
            response_template=gold.get("responseTemplate", ""),
        ),
        customer_details=_details_from_dict(data.get("customerDetails")),
        scheduled_appearance=data.get("scheduledAppearance"),
    )


class TicketCatalog:
    """Ordered, id-indexed collection of the study's tickets."""

    def __init__(self, tickets: List[Ticket]):
        self._tickets = list(tickets)
        self._by_id: Dict[str, Ticket] = {}
        for ticket in self._tickets:
            if ticket.id in self._by_id:
                raise ValueError(f"Duplicate ticket id in catalog: {ticket.id}")
            self._by_id[ticket.id] = ticket

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TicketCatalog":
        return cls([ticket_from_dict(t) for t in data.get("tickets", [])])

    @classmethod
    def load(cls, path: Union[str, Path]) -> "TicketCatalog":
        with open(path, "r", encoding="utf-8") as fh:
            catalog = cls.from_dict(json.load(fh))
        logger.info(f"Loaded {len(catalog)} tickets from {path}")
        return catalog

    def __len__(self) -> int:
        return len(self._tickets)

    def __iter__(self) -> Iterator[Ticket]:
        return iter(self._tickets)

    def all(self) -> List[Ticket]:
        return list(self._tickets)

    def get(self, ticket_id: str) -> Optional[Ticket]:
        return self._by_id.get(ticket_id)

    def require(self, ticket_id: str) -> Ticket:
        ticket = self._by_id.get(ticket_id)
        if ticket is None:
            raise UnknownTicketError(f"Ticket {ticket_id} not found")
        return ticket

    def check_against(self, tree: DecisionTree) -> None:
        """Every gold-standard path must be a real, complete route through the tree."""
        for ticket in self._tickets:
            gold = ticket.gold_standard
            selections = {step.node_id: step.option_id for step in gold.path}
            path = tree.build_path(selections)
            if path.outcome_id != gold.outcome_id:
                raise TreeValidationError(
                    f"Gold standard for {ticket.id} reaches {path.outcome_id!r}, "
                    f"expected {gold.outcome_id!r}"
                )
