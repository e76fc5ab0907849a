"""
Post-experiment survey submission.
"""

import logging
from typing import Any, Dict, List, Mapping

from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse

from ...services.persistence import InvalidParticipantIdError, StudyDataStore
from ..deps import get_data_store, get_survey_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/survey", tags=["survey"])


def missing_survey_fields(config: Mapping[str, Any], survey: Mapping[str, Any]) -> List[str]:
    """Ids of required questions without a usable answer."""
    missing = []
    for question in config.get("questions", []):
        if not question.get("required"):
            continue
        value = survey.get(question["id"])
        if question.get("type") == "likert":
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        else:
            ok = value is not None and bool(str(value).strip())
        if not ok:
            missing.append(question["id"])
    return missing


@router.post("")
def submit_survey(
    survey: Dict[str, Any] = Body(...),
    store: StudyDataStore = Depends(get_data_store),
    config: Dict[str, Any] = Depends(get_survey_config),
):
    participant_id = survey.get("participantId")
    if not participant_id:
        raise HTTPException(status_code=400, detail="Missing participantId")

    missing = missing_survey_fields(config, survey)
    if missing:
        return JSONResponse(
            status_code=400,
            content={"error": "Missing required fields", "fields": missing},
        )

    try:
        store.write_survey(participant_id, survey)
    except InvalidParticipantIdError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except OSError as e:
        logger.error(f"Error storing survey data: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to store survey data")

    return {"success": True, "participantId": participant_id}
