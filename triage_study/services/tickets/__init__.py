"""
Ticket catalog, status lifecycle and completion checks.
"""

from .catalog import TicketCatalog, UnknownTicketError
from .lifecycle import InvalidTransitionError, TicketLifecycleManager
from .models import (
    CustomerCase,
    CustomerDetails,
    GoldStandard,
    Ticket,
    TicketResponse,
    TicketStatus,
    TicketWithStatus,
    TimingMode,
)
from .validation import TicketValidationError, ValidationIssue, validate_completion

__all__ = [
    "CustomerCase",
    "CustomerDetails",
    "GoldStandard",
    "InvalidTransitionError",
    "Ticket",
    "TicketCatalog",
    "TicketLifecycleManager",
    "TicketResponse",
    "TicketStatus",
    "TicketValidationError",
    "TicketWithStatus",
    "TimingMode",
    "UnknownTicketError",
    "ValidationIssue",
    "validate_completion",
]
