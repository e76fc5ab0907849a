"""
Completion checks run before a ticket may be closed.
"""

from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from ..decision_tree import DecisionNode, DecisionTree, FieldType, OutcomeField
from .models import FieldValue

CUSTOMER_RESPONSE_FIELD = "customerResponse"
DECISION_FIELD = "decision"


@dataclass(frozen=True)
class ValidationIssue:
    field: str
    message: str


@dataclass
class ValidationResult:
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.issues

    @property
    def messages(self) -> List[str]:
        return [issue.message for issue in self.issues]


class TicketValidationError(ValueError):
    """Submission blocked; carries the field-level issues to show the participant."""

    def __init__(self, ticket_id: str, issues: List[ValidationIssue]):
        self.ticket_id = ticket_id
        self.issues = issues
        super().__init__(
            f"Ticket {ticket_id} is incomplete: " + "; ".join(i.message for i in issues)
        )


def _field_issue(spec: OutcomeField, value: Optional[FieldValue]) -> Optional[ValidationIssue]:
    if spec.type == FieldType.CHECKBOX:
        if spec.required and value is not True:
            return ValidationIssue(spec.id, f"{spec.label} must be confirmed")
        return None

    if value is None or (isinstance(value, str) and not value.strip()):
        if spec.required:
            return ValidationIssue(spec.id, f"{spec.label} is required")
        return None

    if spec.type == FieldType.NUMBER:
        if isinstance(value, bool):
            return ValidationIssue(spec.id, f"{spec.label} must be a number")
        try:
            float(value)
        except (TypeError, ValueError):
            return ValidationIssue(spec.id, f"{spec.label} must be a number")
    return None


def validate_completion(
    tree: DecisionTree,
    selections: Mapping[str, str],
    fields: Mapping[str, FieldValue],
    customer_response: str,
) -> ValidationResult:
    """
    Collects every reason the ticket cannot be closed yet.

    The route must reach an outcome, the outcome's required fields must be
    filled in, and a customer-facing reply must be written.
    """
    result = ValidationResult()
    path = tree.build_path(selections)

    outcome = path.outcome
    if outcome is None:
        last = path.nodes[-1] if path.nodes else None
        if isinstance(last, DecisionNode):
            result.issues.append(
                ValidationIssue(last.id, f"Select an option for '{last.prompt}'")
            )
        else:
            result.issues.append(
                ValidationIssue(DECISION_FIELD, "Complete all decision steps")
            )
    else:
        for spec in outcome.fields:
            issue = _field_issue(spec, fields.get(spec.id))
            if issue is not None:
                result.issues.append(issue)

    if not customer_response or not customer_response.strip():
        result.issues.append(
            ValidationIssue(CUSTOMER_RESPONSE_FIELD, "Customer response is required")
        )
    return result
