"""
Prompt templates for the support assistant.
No external dependencies - simple string formatting with validation.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from ..knowledge.loader import KnowledgeNode
from ..tickets.models import Ticket


@dataclass
class PromptTemplate:
    """Simple template with variable injection"""
    system: str

    def format(self, **kwargs) -> str:
        try:
            return self.system.format(**kwargs)
        except KeyError as e:
            raise ValueError(f"Missing required template variable: {e}")


SUPPORT_ASSISTANT = PromptTemplate(
    system=(
        "You are a support assistant for a research study. "
        "Answer ONLY using the knowledge base content provided. "
        "If the answer is not in the knowledge base, say you do not know based on the knowledge base. "
        "Keep responses concise and professional."
        "\n\nKnowledge Base:\n{knowledge}{ticket_context}"
    )
)


@dataclass(frozen=True)
class TicketContext:
    """The slice of a ticket the assistant may see; never the gold standard."""
    id: str
    subject: str
    description: str

    @classmethod
    def from_ticket(cls, ticket: Ticket) -> "TicketContext":
        return cls(id=ticket.id, subject=ticket.subject, description=ticket.description)


TICKET_CONTEXT = "\n\nCurrent ticket context:\nID: {id}\nSubject: {subject}\nDescription: {description}"


def build_knowledge_context(documents: Iterable[KnowledgeNode]) -> str:
    return "\n\n".join(f"# {doc.title}\n{doc.content or ''}" for doc in documents)


def build_assistant_prompt(
    documents: Iterable[KnowledgeNode],
    ticket: Optional[TicketContext] = None,
) -> str:
    ticket_context = ""
    if ticket is not None and ticket.subject and ticket.description:
        ticket_context = TICKET_CONTEXT.format(
            id=ticket.id, subject=ticket.subject, description=ticket.description
        )
    return SUPPORT_ASSISTANT.format(
        knowledge=build_knowledge_context(documents),
        ticket_context=ticket_context,
    )


INITIAL_ASSISTANT_MESSAGE = (
    "Hello! I'm your AI assistant. I can help you with knowledge base questions, "
    "policy information, and drafting customer responses. How can I assist you?"
)
