"""
Collection endpoint for batched trace events.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ...services.persistence import InvalidParticipantIdError, StudyDataStore
from ..deps import get_data_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/trace-data", tags=["trace-data"])


class TraceBatchRequest(BaseModel):
    participantId: Optional[str] = Field(None, description="Participant the events belong to")
    events: Optional[List[Dict[str, Any]]] = Field(None, description="Serialized trace events")


class TraceBatchResponse(BaseModel):
    success: bool
    eventsStored: int


@router.post("", response_model=TraceBatchResponse)
def store_trace_batch(
    request: TraceBatchRequest,
    store: StudyDataStore = Depends(get_data_store),
):
    """
    Appends one batch to the participant's trace file.

    Batches may overlap with earlier ones (at-least-once delivery); they are
    stored as sent.
    """
    if not request.participantId or request.events is None:
        raise HTTPException(status_code=400, detail="Missing participantId or events")

    try:
        stored = store.append_trace(request.participantId, request.events)
    except InvalidParticipantIdError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (OSError, ValueError) as e:
        logger.error(f"Error storing trace data: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to store trace data")

    return TraceBatchResponse(success=True, eventsStored=stored)
