"""
Chat API endpoint for the knowledge-grounded support assistant.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ...services.ai_orchestrator import ChatMessage, ChatResponder, CompletionError, TicketContext
from ..deps import get_assistant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


# --- REQUEST/RESPONSE MODELS ---

class Message(BaseModel):
    role: str = Field(..., description="user or assistant; other roles are dropped")
    content: str = Field("", max_length=4000)


class CurrentTicket(BaseModel):
    """Ticket the participant has open, if any"""
    id: str
    subject: str = ""
    description: str = ""


class ChatRequest(BaseModel):
    messages: List[Message] = Field(default_factory=list)
    currentTicket: Optional[CurrentTicket] = None


class ChatResponse(BaseModel):
    message: str


# --- ENDPOINTS ---

@router.post("", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    assistant: Optional[ChatResponder] = Depends(get_assistant),
):
    """
    Answers from the knowledge base only.

    The last 10 user/assistant turns are forwarded together with the open
    ticket's subject and description; the gold standard never is.
    """
    if assistant is None:
        raise HTTPException(
            status_code=503,
            detail="Chat assistant is unavailable. Check OpenAI API configuration.",
        )

    history = [ChatMessage(role=m.role, content=m.content) for m in request.messages]
    ticket = None
    if request.currentTicket is not None:
        t = request.currentTicket
        ticket = TicketContext(id=t.id, subject=t.subject, description=t.description)

    logger.info(f"Chat request - {len(history)} messages, ticket: {ticket.id if ticket else None}")

    try:
        message = await assistant.respond(history, ticket)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except CompletionError as e:
        logger.error(f"Completion service failed: {e}")
        raise HTTPException(status_code=502, detail="Failed to get AI response")

    return ChatResponse(message=message)
