"""
AI assistance for the study groups: a knowledge-grounded chat assistant and a
scripted agent that replays the gold-standard resolution.
"""

from .agent import AgentStep, ScriptedAgent, StepStatus, StepType
from .assistant import ChatMessage, ChatResponder, ScriptedAssistant, SupportAssistant
from .llm_client import CompletionError, LLMClient
from .prompts import TicketContext

__all__ = [
    "AgentStep",
    "ChatMessage",
    "ChatResponder",
    "CompletionError",
    "LLMClient",
    "ScriptedAgent",
    "ScriptedAssistant",
    "StepStatus",
    "StepType",
    "SupportAssistant",
    "TicketContext",
]
