"""
Event tracking and buffering pipeline.
"""

from .events import PAYLOAD_MODELS, EventPayload, TraceEvent, TraceEventType, build_payload
from .sampling import SamplingPolicy
from .sync import (
    FlushResult,
    HttpDataSink,
    LocalDataSink,
    StudyDataSink,
    SyncDeliveryError,
    TraceSyncer,
)
from .tracker import EventTracker

__all__ = [
    "PAYLOAD_MODELS",
    "EventPayload",
    "EventTracker",
    "FlushResult",
    "HttpDataSink",
    "LocalDataSink",
    "SamplingPolicy",
    "StudyDataSink",
    "SyncDeliveryError",
    "TraceEvent",
    "TraceEventType",
    "TraceSyncer",
    "build_payload",
]
