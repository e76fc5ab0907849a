from .loader import KnowledgeBase, KnowledgeNode, format_title, split_frontmatter

__all__ = ["KnowledgeBase", "KnowledgeNode", "format_title", "split_frontmatter"]
