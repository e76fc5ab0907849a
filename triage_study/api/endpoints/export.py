"""
Researcher export of everything collected so far.

Ticket responses are rebuilt from ``ticket_closed`` trace events and scored
again here, so the export never trusts client-side scores.
"""

import csv
import io
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from ...services.persistence import ParticipantRecord, StudyDataStore
from ...services.scoring import ScoringEngine
from ...services.tickets import TicketResponse, UnknownTicketError
from ...services.tracking import TraceEvent, TraceEventType
from ..deps import get_admin_key, get_data_store, get_scoring

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/export", tags=["export"])

SURVEY_SCALES = [
    "perceivedStress",
    "decisionConfidence",
    "selfEfficacy",
    "trustInSystem",
    "trustInSelf",
    "trustInDecisions",
    "processEngagement",
]

CSV_COLUMNS = ["participantId", "ticketCount", "avgQualityScore", "avgErrorRate", *SURVEY_SCALES]


def responses_from_trace(events: List[Dict[str, Any]]) -> List[TicketResponse]:
    """
    One response per ticket from its ``ticket_closed`` events.

    Re-delivered batches repeat events, so the last close of a ticket wins.
    """
    by_ticket: Dict[str, TicketResponse] = {}
    for raw in events:
        if raw.get("type") != TraceEventType.TICKET_CLOSED.value:
            continue
        data = raw.get("data")
        response = data.get("response") if isinstance(data, dict) else None
        if not isinstance(response, dict):
            continue
        try:
            parsed = TicketResponse.from_dict(response)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed ticket_closed event: {e}")
            continue
        ids = [parsed.ticket_id, parsed.outcome_id]
        ids += [v for d in parsed.decisions for v in (d.node_id, d.option_id)]
        if not all(isinstance(v, str) for v in ids):
            logger.warning("Skipping ticket_closed event with non-string ids")
            continue
        by_ticket[parsed.ticket_id] = parsed
    return list(by_ticket.values())


def participant_group(events: List[Dict[str, Any]]) -> Optional[str]:
    for raw in events:
        if raw.get("type") == TraceEventType.EXPERIMENT_STARTED.value:
            data = raw.get("data")
            return data.get("group") if isinstance(data, dict) else None
    return None


def summarize(record: ParticipantRecord, scoring: ScoringEngine) -> Dict[str, Any]:
    responses = responses_from_trace(record.trace_events)
    known = []
    for response in responses:
        try:
            scoring.score(response)
        except UnknownTicketError:
            logger.warning(f"Ticket {response.ticket_id} is not in the catalog; not scored")
            continue
        known.append(response)

    events = []
    for raw in record.trace_events:
        try:
            events.append(TraceEvent.from_dict(raw))
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Skipping malformed trace event for {record.participant_id}")
            continue
    performance = scoring.participant_performance(
        record.participant_id, known, events, participant_group(record.trace_events)
    )

    return {
        "participantId": record.participant_id,
        "group": performance.group,
        "ticketCount": len(responses),
        "performance": performance.summary.to_dict() if known else None,
        "totalMouseClicks": performance.total_mouse_clicks,
        "averageMouseVelocity": performance.average_mouse_velocity,
        "survey": record.survey,
        "traceEvents": record.trace_events,
    }


def to_csv(participants: List[Dict[str, Any]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for p in participants:
        performance = p["performance"] or {}
        survey = p["survey"] or {}
        quality = performance.get("averageQualityScore")
        error_rate = performance.get("averageErrorRate")
        writer.writerow([
            p["participantId"],
            p["ticketCount"],
            f"{quality:.2f}" if quality is not None else "",
            f"{error_rate:.2f}" if error_rate is not None else "",
            *[survey.get(scale, "") for scale in SURVEY_SCALES],
        ])
    return buffer.getvalue()


@router.get("")
def export_data(
    key: Optional[str] = Query(None),
    format: str = Query("json", pattern="^(json|csv)$"),
    admin_key: Optional[str] = Depends(get_admin_key),
    store: StudyDataStore = Depends(get_data_store),
    scoring: ScoringEngine = Depends(get_scoring),
):
    # No configured key means export is disabled
    if not admin_key or key != admin_key:
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not store.has_data():
        raise HTTPException(status_code=404, detail="No data collected yet")

    try:
        participants = [summarize(record, scoring) for record in store.participants()]
    except (OSError, ValueError) as e:
        logger.error(f"Error exporting data: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to export data")

    logger.info(f"Exporting {len(participants)} participants as {format}")

    if format == "csv":
        return Response(
            content=to_csv(participants),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=experiment-data.csv"},
        )

    return {
        "totalParticipants": len(participants),
        "participants": participants,
        "exportedAt": datetime.now(timezone.utc).isoformat(),
    }
