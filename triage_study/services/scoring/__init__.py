"""
Scoring of ticket resolutions against the gold standard.
"""

from .scorer import ParticipantPerformance, PerformanceSummary, ScoringEngine, TicketScore

__all__ = ["ParticipantPerformance", "PerformanceSummary", "ScoringEngine", "TicketScore"]
