"""
Knowledge base browsing and search.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from ...services.knowledge import KnowledgeBase
from ..deps import get_knowledge

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/knowledge", tags=["knowledge"])


@router.get("")
def knowledge_tree(knowledge: KnowledgeBase = Depends(get_knowledge)):
    try:
        tree = knowledge.build_tree()
    except OSError as e:
        logger.error(f"Error reading knowledge base: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to load knowledge base")
    return {"tree": [node.to_dict() for node in tree]}


@router.get("/search")
def search_knowledge(
    q: str = Query("", max_length=200),
    knowledge: KnowledgeBase = Depends(get_knowledge),
):
    results = knowledge.search(q)
    return {
        "query": q,
        "results": [
            {"id": n.id, "title": n.title, "isCategory": n.is_category}
            for n in results
        ],
    }


@router.get("/node")
def knowledge_node(
    id: str = Query(..., min_length=1),
    knowledge: KnowledgeBase = Depends(get_knowledge),
):
    node = knowledge.get_node(id)
    if node is None:
        raise HTTPException(status_code=404, detail=f"Knowledge node {id} not found")
    return node.to_dict()
