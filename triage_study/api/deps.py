"""
Shared collaborators for the endpoints, built once from Settings.

Endpoints take these through ``Depends`` so tests can swap them with
``app.dependency_overrides``.
"""

import json
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

from ..config import get_settings
from ..services.ai_orchestrator import ChatResponder, LLMClient, SupportAssistant
from ..services.decision_tree import DecisionTree
from ..services.knowledge import KnowledgeBase
from ..services.persistence import StudyDataStore
from ..services.scoring import ScoringEngine
from ..services.tickets import TicketCatalog

logger = logging.getLogger(__name__)


@lru_cache()
def get_data_store() -> StudyDataStore:
    return StudyDataStore(get_settings().DATA_DIR)


@lru_cache()
def get_tree() -> DecisionTree:
    return DecisionTree.load(get_settings().TREE_PATH)


@lru_cache()
def get_catalog() -> TicketCatalog:
    catalog = TicketCatalog.load(get_settings().TICKETS_PATH)
    catalog.check_against(get_tree())
    return catalog


@lru_cache()
def get_scoring() -> ScoringEngine:
    return ScoringEngine(get_catalog())


@lru_cache()
def get_knowledge() -> KnowledgeBase:
    return KnowledgeBase(get_settings().KNOWLEDGE_DIR)


@lru_cache()
def get_survey_config() -> Dict[str, Any]:
    with open(get_settings().SURVEY_PATH, "r", encoding="utf-8") as fh:
        return json.load(fh)


@lru_cache()
def get_assistant() -> Optional[ChatResponder]:
    """None when no completion service is configured."""
    settings = get_settings()
    if not settings.OPENAI_API_KEY:
        logger.warning("OPENAI_API_KEY not set; chat assistant disabled")
        return None
    llm = LLMClient(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL)
    return SupportAssistant(get_knowledge(), llm)


def get_admin_key() -> Optional[str]:
    return get_settings().ADMIN_KEY
