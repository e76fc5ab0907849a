from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union


class NodeType(str, Enum):
    DECISION = "decision"
    OUTCOME = "outcome"


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    NUMBER = "number"
    CHECKBOX = "checkbox"


@dataclass(frozen=True)
class DecisionOption:
    id: str
    label: str
    next: str


@dataclass(frozen=True)
class OutcomeField:
    id: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    placeholder: Optional[str] = None
    helper_text: Optional[str] = None


@dataclass(frozen=True)
class DecisionNode:
    """A prompt with an ordered set of options; exactly one must be chosen."""
    id: str
    prompt: str
    options: Tuple[DecisionOption, ...]
    title: Optional[str] = None

    type = NodeType.DECISION

    def option(self, option_id: str) -> Optional[DecisionOption]:
        for opt in self.options:
            if opt.id == option_id:
                return opt
        return None


@dataclass(frozen=True)
class OutcomeNode:
    """Terminal node defining the data-entry fields required to close a ticket."""
    id: str
    prompt: str
    fields: Tuple[OutcomeField, ...] = ()
    title: Optional[str] = None

    type = NodeType.OUTCOME

    @property
    def required_fields(self) -> List[OutcomeField]:
        return [f for f in self.fields if f.required]


DecisionTreeNode = Union[DecisionNode, OutcomeNode]


@dataclass(frozen=True)
class Decision:
    """One step actually taken along a decision path."""
    node_id: str
    option_id: str
    option_label: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"nodeId": self.node_id, "optionId": self.option_id}
        if self.option_label is not None:
            data["optionLabel"] = self.option_label
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Decision":
        return cls(
            node_id=data["nodeId"],
            option_id=data["optionId"],
            option_label=data.get("optionLabel"),
        )


@dataclass
class DecisionPath:
    nodes: List[DecisionTreeNode] = field(default_factory=list)
    outcome_id: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.outcome_id is not None

    @property
    def node_ids(self) -> List[str]:
        return [node.id for node in self.nodes]

    @property
    def outcome(self) -> Optional[OutcomeNode]:
        if self.nodes and isinstance(self.nodes[-1], OutcomeNode):
            return self.nodes[-1]
        return None


def node_from_dict(data: Dict[str, Any]) -> DecisionTreeNode:
    node_type = NodeType(data.get("type", NodeType.DECISION.value))
    if node_type == NodeType.DECISION:
        return DecisionNode(
            id=data["id"],
            prompt=data.get("prompt", ""),
            title=data.get("title"),
            options=tuple(
                DecisionOption(id=o["id"], label=o.get("label", o["id"]), next=o["next"])
                for o in data.get("options", [])
            ),
        )
    return OutcomeNode(
        id=data["id"],
        prompt=data.get("prompt", ""),
        title=data.get("title"),
        fields=tuple(
            OutcomeField(
                id=f["id"],
                label=f.get("label", f["id"]),
                type=FieldType(f.get("type", FieldType.TEXT.value)),
                required=bool(f.get("required", False)),
                placeholder=f.get("placeholder"),
                helper_text=f.get("helperText"),
            )
            for f in data.get("fields", [])
        ),
    )


def node_to_dict(node: DecisionTreeNode) -> Dict[str, Any]:
    data: Dict[str, Any] = {"id": node.id, "type": node.type.value, "prompt": node.prompt}
    if node.title:
        data["title"] = node.title
    if isinstance(node, DecisionNode):
        data["options"] = [{"id": o.id, "label": o.label, "next": o.next} for o in node.options]
    else:
        data["fields"] = [
            {
                "id": f.id,
                "label": f.label,
                "type": f.type.value,
                "required": f.required,
                **({"placeholder": f.placeholder} if f.placeholder else {}),
                **({"helperText": f.helper_text} if f.helper_text else {}),
            }
            for f in node.fields
        ]
    return data
