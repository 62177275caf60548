"""
Core Module - Shared domain models and policies.

Components:
- mastery: accuracy to mastery tier classification
- models: StudySession aggregate, attempts, progress, enums
- modes: exam mode strategies (practice, efficient, mock)
- exceptions: error taxonomy
"""

from certprep.core.exceptions import (
    CertPrepError,
    ConfigurationError,
    GenerationFailure,
    InvalidObjective,
    PersistenceFailure,
    SessionStateError,
)
from certprep.core.mastery import MasteryLevel, classify, classify_progress
from certprep.core.models import (
    BreakState,
    Difficulty,
    ExamConditions,
    ExamMode,
    FlashcardAttempt,
    FlashcardRating,
    FlashcardSource,
    ObjectiveDefinition,
    ObjectiveProgress,
    PendingQuestion,
    PresentationMode,
    QuestionAttempt,
    SessionConfig,
    SessionEndReason,
    StudySession,
)
from certprep.core.modes import ExamModeStrategy, get_mode_strategy

__all__ = [
    # Errors
    "CertPrepError",
    "ConfigurationError",
    "GenerationFailure",
    "InvalidObjective",
    "PersistenceFailure",
    "SessionStateError",
    # Mastery
    "MasteryLevel",
    "classify",
    "classify_progress",
    # Models
    "BreakState",
    "Difficulty",
    "ExamConditions",
    "ExamMode",
    "FlashcardAttempt",
    "FlashcardRating",
    "FlashcardSource",
    "ObjectiveDefinition",
    "ObjectiveProgress",
    "PendingQuestion",
    "PresentationMode",
    "QuestionAttempt",
    "SessionConfig",
    "SessionEndReason",
    "StudySession",
    # Modes
    "ExamModeStrategy",
    "get_mode_strategy",
]
