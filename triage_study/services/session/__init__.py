"""
Participant session state and its key-value persistence.
"""

from .models import GroupType, SessionData
from .storage import SESSION_KEY, TRACE_BUFFER_KEY, FileStorage, KeyValueStorage, MemoryStorage
from .store import SessionNotFoundError, SessionStore

__all__ = [
    "SESSION_KEY",
    "TRACE_BUFFER_KEY",
    "FileStorage",
    "GroupType",
    "KeyValueStorage",
    "MemoryStorage",
    "SessionData",
    "SessionNotFoundError",
    "SessionStore",
]
