"""
Chat assistant offered to the chat-assisted group.

SupportAssistant grounds a completion model in the knowledge base.
ScriptedAssistant answers from a fixed policy table and needs no model.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from ..knowledge import KnowledgeBase
from .llm_client import LLMClient
from .prompts import TicketContext, build_assistant_prompt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str


class ChatResponder(Protocol):
    async def respond(
        self, history: Sequence[ChatMessage], ticket: Optional[TicketContext] = None
    ) -> str: ...


class SupportAssistant:
    """
    Knowledge-grounded assistant.

    Pipeline:
    1. Keep the most recent well-formed user/assistant turns
    2. Build the system prompt from the knowledge base and ticket context
    3. Ask the completion service; its errors propagate as CompletionError
    """

    HISTORY_LIMIT = 10
    ROLES = frozenset({"user", "assistant"})

    def __init__(self, knowledge: KnowledgeBase, llm_client: Optional[LLMClient] = None):
        self.knowledge = knowledge
        self.llm = llm_client or LLMClient()

    def recent_messages(self, history: Sequence[ChatMessage]) -> List[Dict[str, str]]:
        return [
            {"role": m.role, "content": m.content}
            for m in history[-self.HISTORY_LIMIT:]
            if m.role in self.ROLES and m.content
        ]

    async def respond(
        self, history: Sequence[ChatMessage], ticket: Optional[TicketContext] = None
    ) -> str:
        messages = self.recent_messages(history)
        if not messages:
            raise ValueError("Missing messages")
        system_prompt = build_assistant_prompt(self.knowledge.documents(), ticket)
        logger.info(f"Assistant request with {len(messages)} messages")
        return await self.llm.complete(system_prompt=system_prompt, messages=messages)


# (keywords, answer) pairs, checked in order
SCRIPTED_ANSWERS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("return", "refund"),
     "Our return policy allows returns within 30 days of purchase for items in original "
     "condition with tags attached. Refunds are processed within 5-7 business days. "
     "Holiday purchases have an extended 60-day return window."),
    (("ship", "delivery"),
     "We offer Standard Shipping (5-7 days, free over $50), Expedited Shipping (2-3 days, "
     "$12.99), and Overnight Shipping (1 day, $24.99). International shipping is available "
     "to Canada only."),
    (("login", "password", "account locked"),
     "For login issues: Accounts are locked after 5 failed attempts. Wait 30 minutes for "
     "automatic unlock or use \"Forgot Password\" for immediate reset. For immediate manual "
     "unlock, verify customer identity with billing address and last 4 digits of payment method."),
    (("duplicate", "charged twice"),
     "For duplicate charges: First verify if it's an authorization hold vs actual charge. "
     "Authorization holds drop within 3-5 days. True duplicates require immediate refund "
     "processing (5-7 business days) plus account credit for inconvenience."),
    (("payment", "checkout"),
     "Payment errors can be caused by insufficient funds, card declined by bank, or technical "
     "issues. Try: 1) Verify card information, 2) Try different payment method, 3) Clear "
     "browser cache, 4) Try different browser. For persistent issues, offer to process order "
     "manually."),
    (("promo", "discount"),
     "Common promo code issues: 1) Code expired, 2) Minimum purchase not met, 3) Category "
     "restrictions, 4) One per customer limit, 5) Cannot combine with sales. Check code terms "
     "and consider manual discount as courtesy."),
    (("not received", "never arrived", "missing"),
     "For missing orders: 1) Verify delivery address, 2) Check with neighbors/building "
     "management, 3) Open carrier investigation, 4) Process replacement with expedited "
     "shipping."),
    (("defect", "broken", "not working"),
     "For defective products: Immediately process replacement with expedited shipping. "
     "Include prepaid return label for defective item. Add account credit ($10-25) for "
     "inconvenience."),
)

DRAFT_KEYWORDS = ("draft", "write response", "help respond")

FALLBACK_ANSWER = (
    "I can help you with policies (returns, shipping), technical issues (login, payment "
    "errors), billing questions, and product recommendations. What specific information "
    "do you need?"
)


class ScriptedAssistant:
    """Offline assistant; drafting requests get the ticket's response template."""

    def __init__(self, response_templates: Optional[Dict[str, str]] = None):
        self.response_templates = response_templates or {}

    async def respond(
        self, history: Sequence[ChatMessage], ticket: Optional[TicketContext] = None
    ) -> str:
        last_user = next((m for m in reversed(history) if m.role == "user"), None)
        if last_user is None:
            raise ValueError("Missing messages")
        text = last_user.content.lower()

        if any(k in text for k in DRAFT_KEYWORDS):
            if ticket is not None and ticket.id in self.response_templates:
                return self.response_templates[ticket.id]
            return "I can help draft a response. Please let me know which ticket you'd like me to help with."

        for keywords, answer in SCRIPTED_ANSWERS:
            if any(k in text for k in keywords):
                return answer
        return FALLBACK_ANSWER
