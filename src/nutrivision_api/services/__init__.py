"""Business logic services."""

from .analysis import AnalysisService, AnalysisSession, SessionEvent, SessionState
from .normalizer import NormalizationResult, normalize

__all__ = [
    "AnalysisService",
    "AnalysisSession",
    "NormalizationResult",
    "SessionEvent",
    "SessionState",
    "normalize",
]
