"""
Participant-side experiment runtime: queue, decisions, timer and sync.
"""

from .runner import ExperimentRunner, enroll, generate_participant_id
from .ticker import PeriodicTask
from .timer import DEFAULT_DURATION_SECONDS, WARNING_THRESHOLDS, CountdownTimer

__all__ = [
    "CountdownTimer",
    "DEFAULT_DURATION_SECONDS",
    "ExperimentRunner",
    "PeriodicTask",
    "WARNING_THRESHOLDS",
    "enroll",
    "generate_participant_id",
]
