"""
Scripted AI agent for the agent groups.

The "agent" replays the ticket's gold-standard path as a list of reviewable
steps. Group 3 confirms each step; group 4 has the whole resolution applied
automatically.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, List, Optional

from ..decision_tree import DecisionTree
from ..tickets.models import Ticket


class StepStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EDITED = "edited"


class StepType(str, Enum):
    ANALYSIS = "analysis"
    DECISION = "decision"
    FIELD = "field"
    RESPONSE = "response"


@dataclass(frozen=True)
class AgentStep:
    step_number: int
    step_name: str
    decision: str
    reasoning: str
    status: StepStatus = StepStatus.PENDING
    step_type: StepType = StepType.DECISION
    decision_node_id: Optional[str] = None
    decision_option_id: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "stepNumber": self.step_number,
            "stepName": self.step_name,
            "decision": self.decision,
            "reasoning": self.reasoning,
            "status": self.status.value,
            "stepType": self.step_type.value,
        }
        if self.decision_node_id is not None:
            data["decisionNodeId"] = self.decision_node_id
            data["decisionOptionId"] = self.decision_option_id
        return data


class ScriptedAgent:

    def __init__(self, tree: DecisionTree):
        self.tree = tree

    def generate_steps(self, ticket: Ticket) -> List[AgentStep]:
        decision_steps = []
        for index, step in enumerate(ticket.gold_standard.path):
            node = self.tree.get_node(step.node_id)
            label = self.tree.option_label(step.node_id, step.option_id) or step.option_id
            decision_steps.append(AgentStep(
                step_number=index + 2,
                step_name=node.prompt if node is not None else f"Decision {index + 1}",
                decision=label,
                reasoning=f'Selected "{label}" based on the ticket context and policy.',
                decision_node_id=step.node_id,
                decision_option_id=step.option_id,
            ))

        return [
            AgentStep(
                step_number=1,
                step_name="Analyze Customer Issue",
                decision=f"Customer: {ticket.customer} - Issue: {ticket.subject}",
                reasoning=(
                    f'Based on the ticket description, the customer is experiencing '
                    f'"{ticket.subject}". This requires careful attention to ensure proper resolution.'
                ),
                step_type=StepType.ANALYSIS,
            ),
            *decision_steps,
            AgentStep(
                step_number=len(decision_steps) + 2,
                step_name="Draft Customer Response",
                decision="Response drafted",
                reasoning=(
                    "I've prepared a professional and empathetic response addressing "
                    "the customer's concerns."
                ),
                step_type=StepType.RESPONSE,
            ),
        ]

    def complete_response(self, ticket: Ticket) -> str:
        return ticket.gold_standard.response_template

    @staticmethod
    def review(step: AgentStep, status: StepStatus, new_value: Optional[str] = None) -> AgentStep:
        """Returns the step with the participant's verdict applied."""
        status = StepStatus(status)
        if status == StepStatus.EDITED:
            if not new_value:
                raise ValueError("An edited step needs a new value")
            return replace(step, status=status, decision=new_value)
        return replace(step, status=status)

    @staticmethod
    def selections_from(steps: List[AgentStep]) -> Dict[str, str]:
        """Decision selections implied by the steps the participant did not reject."""
        return {
            s.decision_node_id: s.decision_option_id
            for s in steps
            if s.step_type == StepType.DECISION
            and s.decision_node_id is not None
            and s.decision_option_id is not None
            and s.status != StepStatus.REJECTED
        }
