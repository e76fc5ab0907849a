"""
Append-only, file-based store for collected study data.

Layout under ``data_dir``:
    <participant>_trace.json   JSON array of trace events, appended per batch
    <participant>_survey.json  the participant's survey response
    contacts.json              follow-up contact opt-ins
"""

import json
import logging
import os
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from ..clock import Clock, now_ms

logger = logging.getLogger(__name__)

TRACE_SUFFIX = "_trace.json"
SURVEY_SUFFIX = "_survey.json"
CONTACTS_FILE = "contacts.json"

_PARTICIPANT_ID = re.compile(r"^[A-Za-z0-9_-]{1,128}$")


class InvalidParticipantIdError(ValueError):
    """Participant ids end up in file names, so only a safe alphabet is allowed."""


@dataclass
class ParticipantRecord:
    participant_id: str
    trace_events: List[Dict[str, Any]] = field(default_factory=list)
    survey: Optional[Dict[str, Any]] = None


def check_participant_id(participant_id: str) -> str:
    if not isinstance(participant_id, str) or not _PARTICIPANT_ID.match(participant_id):
        raise InvalidParticipantIdError(f"Invalid participant id: {participant_id!r}")
    return participant_id


class StudyDataStore:

    def __init__(self, data_dir: Union[str, Path], clock: Clock = now_ms):
        self.data_dir = Path(data_dir)
        self.clock = clock
        self._lock = threading.Lock()

    def _ensure_dir(self) -> None:
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _read_json(self, path: Path, default: Any) -> Any:
        if not path.exists():
            return default
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)

    def _write_json(self, path: Path, data: Any) -> None:
        tmp = path.with_name(path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)
        os.replace(tmp, path)

    # --- WRITES ---

    def append_trace(self, participant_id: str, events: Sequence[Mapping[str, Any]]) -> int:
        """Appends a batch; overlapping batches are stored as-is."""
        check_participant_id(participant_id)
        path = self.data_dir / f"{participant_id}{TRACE_SUFFIX}"
        with self._lock:
            self._ensure_dir()
            existing = self._read_json(path, [])
            existing.extend(dict(e) for e in events)
            self._write_json(path, existing)
        logger.info(f"Stored {len(events)} trace events for {participant_id}")
        return len(events)

    def write_survey(self, participant_id: str, survey: Mapping[str, Any]) -> None:
        check_participant_id(participant_id)
        path = self.data_dir / f"{participant_id}{SURVEY_SUFFIX}"
        with self._lock:
            self._ensure_dir()
            self._write_json(path, dict(survey))
        logger.info(f"Stored survey for {participant_id}")

    def append_contact(self, participant_id: str, email: str) -> None:
        check_participant_id(participant_id)
        path = self.data_dir / CONTACTS_FILE
        with self._lock:
            self._ensure_dir()
            contacts = self._read_json(path, [])
            contacts.append({
                "participantId": participant_id,
                "email": email,
                "timestamp": self.clock(),
            })
            self._write_json(path, contacts)

    # --- READS ---

    def has_data(self) -> bool:
        return self.data_dir.exists()

    def read_trace(self, participant_id: str) -> List[Dict[str, Any]]:
        check_participant_id(participant_id)
        return self._read_json(self.data_dir / f"{participant_id}{TRACE_SUFFIX}", [])

    def read_contacts(self) -> List[Dict[str, Any]]:
        return self._read_json(self.data_dir / CONTACTS_FILE, [])

    def participants(self) -> List[ParticipantRecord]:
        """Groups trace and survey files by participant, sorted by id."""
        records: Dict[str, ParticipantRecord] = {}
        if not self.data_dir.exists():
            return []
        for path in sorted(self.data_dir.iterdir()):
            name = path.name
            if name.endswith(TRACE_SUFFIX):
                pid = name[: -len(TRACE_SUFFIX)]
                data = self._read_json(path, [])
                if isinstance(data, list):
                    records.setdefault(pid, ParticipantRecord(pid)).trace_events = data
            elif name.endswith(SURVEY_SUFFIX):
                pid = name[: -len(SURVEY_SUFFIX)]
                data = self._read_json(path, None)
                if isinstance(data, dict):
                    records.setdefault(pid, ParticipantRecord(pid)).survey = data
        return [records[pid] for pid in sorted(records)]
