"""End-of-session analytics: scores, breakdowns, predictions and recommendations."""

from certprep.analytics.results import (
    Efficiency,
    ObjectiveAnalysis,
    Prediction,
    Priority,
    Recommendation,
    ResultsEngine,
    SessionResults,
    TimeAnalysis,
    Trend,
)

__all__ = [
    "Efficiency",
    "ObjectiveAnalysis",
    "Prediction",
    "Priority",
    "Recommendation",
    "ResultsEngine",
    "SessionResults",
    "TimeAnalysis",
    "Trend",
]
