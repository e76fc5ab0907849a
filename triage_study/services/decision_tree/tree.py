"""
Static decision tree used to resolve tickets.

The tree is a directed acyclic graph of decision and outcome nodes reachable
from a single root. All lookups are pure: the participant's current choices
are passed in as a ``{node_id: option_id}`` mapping and the live route is
re-derived from the root every time.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set, Union

from .models import (
    Decision,
    DecisionNode,
    DecisionPath,
    DecisionTreeNode,
    OutcomeNode,
    node_from_dict,
    node_to_dict,
)

logger = logging.getLogger(__name__)


class TreeValidationError(ValueError):
    """Raised when the authored tree is not a well-formed DAG ending in outcomes."""


class DecisionTree:

    def __init__(
        self,
        root_id: str,
        nodes: Mapping[str, DecisionTreeNode],
        validate: bool = True,
    ):
        self.root_id = root_id
        self.nodes: Dict[str, DecisionTreeNode] = dict(nodes)
        if validate:
            self.validate()

    # --- LOADING ---

    @classmethod
    def from_dict(cls, data: Dict[str, Any], validate: bool = True) -> "DecisionTree":
        raw_nodes = data.get("nodes", {})
        # Both {"id": {...}} and [{...}] layouts are accepted
        if isinstance(raw_nodes, dict):
            raw_nodes = [dict(node, id=node.get("id", key)) for key, node in raw_nodes.items()]
        nodes = {}
        for raw in raw_nodes:
            node = node_from_dict(raw)
            if node.id in nodes:
                raise TreeValidationError(f"Duplicate node id: {node.id}")
            nodes[node.id] = node
        if "rootId" not in data:
            raise TreeValidationError("Tree definition is missing rootId")
        return cls(root_id=data["rootId"], nodes=nodes, validate=validate)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "DecisionTree":
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        tree = cls.from_dict(data)
        logger.info(f"Loaded decision tree from {path} ({len(tree.nodes)} nodes)")
        return tree

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rootId": self.root_id,
            "nodes": {node_id: node_to_dict(node) for node_id, node in self.nodes.items()},
        }

    def validate(self) -> None:
        """
        Checks the invariants the rest of the engine relies on.

        - the root exists
        - every option's ``next`` resolves to an existing node
        - decision nodes offer at least one option
        - no cycles, so every route from the root terminates in an outcome

        Unreachable nodes are tolerated but logged.
        """
        if self.root_id not in self.nodes:
            raise TreeValidationError(f"Root node '{self.root_id}' does not exist")

        for node in self.nodes.values():
            if isinstance(node, DecisionNode):
                if not node.options:
                    raise TreeValidationError(f"Decision node '{node.id}' has no options")
                for option in node.options:
                    if option.next not in self.nodes:
                        raise TreeValidationError(
                            f"Option '{option.id}' of node '{node.id}' points to "
                            f"missing node '{option.next}'"
                        )

        # Iterative DFS with three colours; a grey hit is a back edge
        visiting: Set[str] = set()
        done: Set[str] = set()
        stack = [(self.root_id, False)]
        while stack:
            node_id, expanded = stack.pop()
            if expanded:
                visiting.discard(node_id)
                done.add(node_id)
                continue
            if node_id in done:
                continue
            if node_id in visiting:
                raise TreeValidationError(f"Cycle detected at node '{node_id}'")
            visiting.add(node_id)
            stack.append((node_id, True))
            node = self.nodes[node_id]
            if isinstance(node, DecisionNode):
                for option in node.options:
                    if option.next in visiting:
                        raise TreeValidationError(
                            f"Cycle detected: '{node_id}' -> '{option.next}'"
                        )
                    if option.next not in done:
                        stack.append((option.next, False))

        unreachable = set(self.nodes) - done
        if unreachable:
            logger.warning(f"Decision tree has unreachable nodes: {sorted(unreachable)}")

    # --- LOOKUPS ---

    def get_node(self, node_id: str) -> Optional[DecisionTreeNode]:
        return self.nodes.get(node_id)

    @property
    def root(self) -> DecisionTreeNode:
        return self.nodes[self.root_id]

    def outcome_nodes(self) -> List[OutcomeNode]:
        return [n for n in self.nodes.values() if isinstance(n, OutcomeNode)]

    # --- PATH DERIVATION ---

    def build_path(self, selections: Mapping[str, str]) -> DecisionPath:
        """
        Walks root -> ... -> outcome along the currently selected route.

        Stops with no outcome when a decision is unanswered, the selected
        option is unknown, or the option points at a node that does not exist.
        """
        path = DecisionPath()
        current_id: Optional[str] = self.root_id
        seen: Set[str] = set()

        while current_id and current_id not in seen:
            node = self.get_node(current_id)
            if node is None:
                break
            seen.add(current_id)
            path.nodes.append(node)

            if isinstance(node, OutcomeNode):
                path.outcome_id = node.id
                break

            option = node.option(selections.get(node.id, ""))
            if option is None:
                break
            current_id = option.next

        return path

    def prune_selections(self, selections: Mapping[str, str]) -> Dict[str, str]:
        """
        Keeps only the selections that lie on the live route from the root.

        Choices left over from a branch that an earlier decision no longer
        leads to are dropped.
        """
        pruned: Dict[str, str] = {}
        current_id: Optional[str] = self.root_id

        while current_id and current_id not in pruned:
            node = self.get_node(current_id)
            if not isinstance(node, DecisionNode):
                break
            option = node.option(selections.get(node.id, ""))
            if option is None:
                break
            pruned[node.id] = option.id
            current_id = option.next

        return pruned

    def path_decisions(self, selections: Mapping[str, str]) -> List[Decision]:
        """Ordered (node, option, label) triples along the live route."""
        decisions = []
        for node in self.build_path(selections).nodes:
            if isinstance(node, DecisionNode) and node.id in selections:
                option = node.option(selections[node.id])
                if option is not None:
                    decisions.append(Decision(node.id, option.id, option.label))
        return decisions

    def selections_for(self, decisions: List[Decision]) -> Dict[str, str]:
        """Inverse of ``path_decisions``; later entries for a node win."""
        return self.prune_selections({d.node_id: d.option_id for d in decisions})

    def option_label(self, node_id: str, option_id: str) -> Optional[str]:
        node = self.get_node(node_id)
        if isinstance(node, DecisionNode):
            option = node.option(option_id)
            if option is not None:
                return option.label
        return None
