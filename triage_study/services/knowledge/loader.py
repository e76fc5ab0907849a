"""
Knowledge base built from a directory of markdown files.

Directories become category nodes and ``.md`` files become content nodes.
A file may start with YAML frontmatter; its ``title`` wins over the first
``# `` heading, which wins over the file name.
"""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

logger = logging.getLogger(__name__)

_HEADING = re.compile(r"^#\s+(.+)$", re.MULTILINE)


@dataclass
class KnowledgeNode:
    id: str
    title: str
    content: Optional[str] = None
    children: Optional[List["KnowledgeNode"]] = None

    @property
    def is_category(self) -> bool:
        return self.children is not None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "title": self.title, "expanded": False}
        if self.content is not None:
            data["content"] = self.content
        if self.children is not None:
            data["children"] = [child.to_dict() for child in self.children]
        return data


def format_title(name: str) -> str:
    """'return-policy.md' -> 'Return Policy'"""
    name = re.sub(r"\.md$", "", name)
    words = re.sub(r"[-_]", " ", name).split(" ")
    return " ".join(w[:1].upper() + w[1:] for w in words)


def split_frontmatter(text: str) -> Tuple[Dict[str, Any], str]:
    stripped = text.lstrip()
    if not stripped.startswith("---"):
        return {}, text
    parts = stripped.split("---", 2)
    if len(parts) < 3:
        return {}, text
    try:
        meta = yaml.safe_load(parts[1]) or {}
    except yaml.YAMLError as exc:
        logger.warning(f"Ignoring invalid frontmatter: {exc}")
        return {}, parts[2].lstrip("\n")
    if not isinstance(meta, dict):
        meta = {}
    return meta, parts[2].lstrip("\n")


class KnowledgeBase:

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def build_tree(self) -> List[KnowledgeNode]:
        if not self.root.exists():
            logger.warning(f"Knowledge base directory {self.root} does not exist")
            return []
        return self._read_directory(self.root, "")

    def _read_directory(self, directory: Path, parent_id: str) -> List[KnowledgeNode]:
        nodes = []
        for entry in directory.iterdir():
            node_id = f"{parent_id}/{entry.name}" if parent_id else entry.name
            if entry.is_dir():
                nodes.append(KnowledgeNode(
                    id=node_id,
                    title=format_title(entry.name),
                    children=self._read_directory(entry, node_id),
                ))
            elif entry.suffix == ".md":
                title, content = self._read_markdown(entry)
                nodes.append(KnowledgeNode(id=node_id, title=title, content=content))
        return sorted(nodes, key=lambda n: n.title.lower())

    def _read_markdown(self, path: Path) -> Tuple[str, str]:
        meta, body = split_frontmatter(path.read_text(encoding="utf-8"))
        heading = _HEADING.search(body)
        title = meta.get("title") or (heading.group(1) if heading else None) or path.stem
        return format_title(str(title)), body

    # --- QUERIES ---

    @staticmethod
    def flatten(nodes: List[KnowledgeNode]) -> List[KnowledgeNode]:
        flat: List[KnowledgeNode] = []
        for node in nodes:
            flat.append(node)
            if node.children:
                flat.extend(KnowledgeBase.flatten(node.children))
        return flat

    def search(self, query: str) -> List[KnowledgeNode]:
        needle = query.lower().strip()
        if not needle:
            return []
        return [
            node for node in self.flatten(self.build_tree())
            if needle in node.title.lower() or needle in (node.content or "").lower()
        ]

    def get_node(self, node_id: str) -> Optional[KnowledgeNode]:
        return next((n for n in self.flatten(self.build_tree()) if n.id == node_id), None)

    def documents(self) -> List[KnowledgeNode]:
        return [n for n in self.flatten(self.build_tree()) if n.content is not None]

    def categories(self) -> List[str]:
        return [node.title for node in self.build_tree()]
