"""
Opt-in contact details for follow-up studies.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ...services.persistence import InvalidParticipantIdError, StudyDataStore
from ..deps import get_data_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["contact"])


class ContactRequest(BaseModel):
    participantId: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=320)


@router.post("")
def store_contact(
    request: ContactRequest,
    store: StudyDataStore = Depends(get_data_store),
):
    if "@" not in request.email:
        raise HTTPException(status_code=400, detail="Invalid email address")
    try:
        store.append_contact(request.participantId, request.email.strip())
    except InvalidParticipantIdError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OSError as e:
        logger.error(f"Error storing contact: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to store contact")
    return {"success": True}
