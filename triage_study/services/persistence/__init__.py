"""
File-based persistence for collected trace, survey and contact data.
"""

from .file_store import (
    InvalidParticipantIdError,
    ParticipantRecord,
    StudyDataStore,
    check_participant_id,
)

__all__ = [
    "InvalidParticipantIdError",
    "ParticipantRecord",
    "StudyDataStore",
    "check_participant_id",
]
