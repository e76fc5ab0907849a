"""
Decision tree model: prompts, options and outcome forms used to resolve tickets.
"""

from .models import (
    Decision,
    DecisionNode,
    DecisionOption,
    DecisionPath,
    DecisionTreeNode,
    FieldType,
    NodeType,
    OutcomeField,
    OutcomeNode,
)
from .tree import DecisionTree, TreeValidationError

__all__ = [
    "Decision",
    "DecisionNode",
    "DecisionOption",
    "DecisionPath",
    "DecisionTree",
    "DecisionTreeNode",
    "FieldType",
    "NodeType",
    "OutcomeField",
    "OutcomeNode",
    "TreeValidationError",
]
