"""
Study session data model.

The StudySession aggregate owns its ObjectiveProgress records, and each
progress record owns its attempts. Every aggregate (counts, accuracy,
mastery, session score) is a property over the attempt lists, so a
reader can never observe an attempt without its derived values.

Components:
- Enums: ExamMode, PresentationMode, FlashcardRating, Difficulty, BreakState, SessionEndReason
- Catalog projection: ObjectiveDefinition
- Attempts: QuestionAttempt, FlashcardAttempt
- Aggregates: ObjectiveProgress, StudySession
- Creation input: SessionConfig, ExamConditions
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from certprep.core.mastery import MasteryLevel, classify_progress


# =============================================================================
# Enums
# =============================================================================


class ExamMode(str, Enum):
    """Exam condition policy, fixed when the session is created."""

    PRACTICE = "practice"  # Endless, learner ends it
    EFFICIENT = "efficient"  # Fixed question budget, elapsed time tracked
    MOCK = "mock"  # Full exam length, hard time limit, one break

    @property
    def display_name(self) -> str:
        return {
            ExamMode.PRACTICE: "Practice",
            ExamMode.EFFICIENT: "Efficient Assessment",
            ExamMode.MOCK: "Mock Exam",
        }[self]


class PresentationMode(str, Enum):
    """Which presentation path is currently consuming the session."""

    QUIZ = "quiz"
    FLASHCARDS = "flashcards"
    FLASHCARD_QUESTION = "flashcard_question"
    HISTORY = "history"
    EFFICIENT = "efficient"
    MOCK = "mock"

    @property
    def requires_generation(self) -> bool:
        """History only reads accumulated attempts; every other path needs fresh content."""
        return self is not PresentationMode.HISTORY

    @property
    def generates_flashcards(self) -> bool:
        return self is PresentationMode.FLASHCARDS

    @classmethod
    def default_for(cls, exam_mode: ExamMode) -> PresentationMode:
        return {
            ExamMode.PRACTICE: cls.QUIZ,
            ExamMode.EFFICIENT: cls.EFFICIENT,
            ExamMode.MOCK: cls.MOCK,
        }[exam_mode]


class FlashcardRating(str, Enum):
    """Self-reported recall quality for a flashcard."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"

    @property
    def interval_label(self) -> str:
        """Review interval shown to the learner. Labels only, nothing is scheduled."""
        return {
            FlashcardRating.AGAIN: "< 1 day",
            FlashcardRating.HARD: "1-3 days",
            FlashcardRating.GOOD: "3-7 days",
            FlashcardRating.EASY: "1-2 weeks",
        }[self]


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

    @classmethod
    def from_catalog(cls, level: str) -> Difficulty:
        """Map catalog tiers (beginner/intermediate/advanced) onto question difficulty."""
        mapping = {
            "beginner": cls.EASY,
            "intermediate": cls.MEDIUM,
            "advanced": cls.HARD,
        }
        if level in mapping:
            return mapping[level]
        return cls(level)


class BreakState(str, Enum):
    """Mid-exam break lifecycle (mock exams only)."""

    NONE = "none"  # Mode has no break policy
    SCHEDULED = "scheduled"  # Midpoint not reached yet
    AVAILABLE = "available"  # Offered at the midpoint question
    ACTIVE = "active"  # Exam clock paused, break countdown running
    TAKEN = "taken"
    FORFEITED = "forfeited"  # Learner answered past the midpoint without taking it


class SessionEndReason(str, Enum):
    COMPLETED = "completed"  # Question budget exhausted
    TIME_EXPIRED = "time_expired"
    ENDED_EARLY = "ended_early"
    EXITED = "exited"


# =============================================================================
# Catalog projection
# =============================================================================


@dataclass(frozen=True)
class ObjectiveDefinition:
    """An objective as the session sees it: read-only, in catalog order."""

    id: str
    title: str
    weight: float
    difficulty: str
    target_questions: int
    index: int = 0


@dataclass(frozen=True)
class ExamConditions:
    """
    Exam constraints for one session.

    total_questions is None for an uncapped session; time_budget_seconds
    and break_seconds are 0 when the mode has no clock or no break.
    """

    total_questions: int | None
    time_budget_seconds: int
    break_seconds: int
    pass_threshold: float

    @property
    def is_timed(self) -> bool:
        return self.time_budget_seconds > 0

    @property
    def has_break(self) -> bool:
        return self.break_seconds > 0

    @property
    def break_after(self) -> int | None:
        """Question count at which the break is offered."""
        if not self.has_break or not self.total_questions:
            return None
        return self.total_questions // 2

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_questions": self.total_questions,
            "time_budget_seconds": self.time_budget_seconds,
            "break_seconds": self.break_seconds,
            "pass_threshold": self.pass_threshold,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExamConditions:
        return cls(
            total_questions=data.get("total_questions"),
            time_budget_seconds=int(data.get("time_budget_seconds", 0)),
            break_seconds=int(data.get("break_seconds", 0)),
            pass_threshold=float(data["pass_threshold"]),
        )


@dataclass
class SessionConfig:
    """What the learner asked for when starting a session."""

    profile_id: str
    exam_mode: ExamMode = ExamMode.PRACTICE
    questions_per_objective: int | None = None
    question_budget: int | None = None
    target_objective_ids: list[str] | None = None
    time_budget_seconds: int | None = None

    def __post_init__(self) -> None:
        self.exam_mode = ExamMode(self.exam_mode)
        for name in ("questions_per_objective", "question_budget"):
            value = getattr(self, name)
            if value is not None and value < 1:
                raise ValueError(f"{name} must be at least 1, got {value}")


# =============================================================================
# Attempts
# =============================================================================


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class QuestionAttempt:
    """One submitted answer. Created once, never modified."""

    objective_id: str
    correct: bool
    time_spent: float  # seconds
    attempt_number: int  # 1st, 2nd, ... try at the same question
    timestamp: datetime
    difficulty: str = Difficulty.MEDIUM.value
    question_id: str | None = None
    selected_index: int | None = None
    sequence: int = 0  # session-wide submission order

    def to_dict(self) -> dict[str, Any]:
        return {
            "objective_id": self.objective_id,
            "correct": self.correct,
            "time_spent": self.time_spent,
            "attempt_number": self.attempt_number,
            "timestamp": self.timestamp.isoformat(),
            "difficulty": self.difficulty,
            "question_id": self.question_id,
            "selected_index": self.selected_index,
            "sequence": self.sequence,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuestionAttempt:
        return cls(
            objective_id=data["objective_id"],
            correct=bool(data["correct"]),
            time_spent=float(data["time_spent"]),
            attempt_number=int(data["attempt_number"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            difficulty=data.get("difficulty", Difficulty.MEDIUM.value),
            question_id=data.get("question_id"),
            selected_index=data.get("selected_index"),
            sequence=int(data.get("sequence", 0)),
        )


@dataclass(frozen=True)
class FlashcardAttempt:
    """One flashcard review with the learner's self rating."""

    flashcard_id: str
    objective_id: str
    difficulty: str
    rating: FlashcardRating
    time_spent: float
    timestamp: datetime
    attempt_number: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "flashcard_id": self.flashcard_id,
            "objective_id": self.objective_id,
            "difficulty": self.difficulty,
            "rating": self.rating.value,
            "time_spent": self.time_spent,
            "timestamp": self.timestamp.isoformat(),
            "attempt_number": self.attempt_number,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlashcardAttempt:
        return cls(
            flashcard_id=data["flashcard_id"],
            objective_id=data["objective_id"],
            difficulty=data["difficulty"],
            rating=FlashcardRating(data["rating"]),
            time_spent=float(data["time_spent"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            attempt_number=int(data["attempt_number"]),
        )


# =============================================================================
# Aggregates
# =============================================================================


@dataclass
class ObjectiveProgress:
    """Attempts against one objective and the statistics derived from them."""

    objective_id: str
    question_attempts: list[QuestionAttempt] = field(default_factory=list)
    flashcard_attempts: list[FlashcardAttempt] = field(default_factory=list)

    @property
    def questions_attempted(self) -> int:
        return len(self.question_attempts)

    @property
    def questions_correct(self) -> int:
        return sum(1 for a in self.question_attempts if a.correct)

    @property
    def total_time_spent(self) -> float:
        return sum(a.time_spent for a in self.question_attempts)

    @property
    def flashcard_time_spent(self) -> float:
        return sum(a.time_spent for a in self.flashcard_attempts)

    @property
    def average_score(self) -> float:
        """Accuracy as a percentage, 0 when nothing was attempted."""
        if not self.question_attempts:
            return 0.0
        return self.questions_correct / self.questions_attempted * 100

    @property
    def average_time(self) -> float:
        if not self.question_attempts:
            return 0.0
        return self.total_time_spent / self.questions_attempted

    @property
    def mastery_level(self) -> MasteryLevel | None:
        return classify_progress(self.questions_attempted, self.average_score)

    @property
    def needs_review(self) -> bool:
        level = self.mastery_level
        return level is not None and level <= MasteryLevel.DEVELOPING

    @property
    def last_studied(self) -> datetime | None:
        stamps = [a.timestamp for a in self.question_attempts]
        stamps.extend(a.timestamp for a in self.flashcard_attempts)
        return max(stamps) if stamps else None

    def to_dict(self) -> dict[str, Any]:
        level = self.mastery_level
        return {
            "objective_id": self.objective_id,
            "question_attempts": [a.to_dict() for a in self.question_attempts],
            "flashcard_attempts": [a.to_dict() for a in self.flashcard_attempts],
            # Derived values are written for readability and ignored on load
            "questions_attempted": self.questions_attempted,
            "questions_correct": self.questions_correct,
            "average_score": round(self.average_score, 2),
            "mastery_level": level.value if level else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ObjectiveProgress:
        return cls(
            objective_id=data["objective_id"],
            question_attempts=[QuestionAttempt.from_dict(a) for a in data.get("question_attempts", [])],
            flashcard_attempts=[
                FlashcardAttempt.from_dict(a) for a in data.get("flashcard_attempts", [])
            ],
        )


@dataclass
class FlashcardSource:
    """The flashcard a flashcard-derived question is being generated from."""

    flashcard_id: str
    objective_id: str
    title: str
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "flashcard_id": self.flashcard_id,
            "objective_id": self.objective_id,
            "title": self.title,
            "content": self.content,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlashcardSource:
        return cls(**data)


@dataclass
class PendingQuestion:
    """The question currently on screen, with any option the learner has selected."""

    question_id: str
    objective_id: str
    text: str
    options: list[str]
    correct_index: int
    explanation: str
    difficulty: str
    presented_at: datetime
    selected_index: int | None = None
    placeholder: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_id": self.question_id,
            "objective_id": self.objective_id,
            "text": self.text,
            "options": list(self.options),
            "correct_index": self.correct_index,
            "explanation": self.explanation,
            "difficulty": self.difficulty,
            "presented_at": self.presented_at.isoformat(),
            "selected_index": self.selected_index,
            "placeholder": self.placeholder,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PendingQuestion:
        data = dict(data)
        data["presented_at"] = datetime.fromisoformat(data["presented_at"])
        return cls(**data)


@dataclass
class StudySession:
    """
    The session aggregate root.

    Mutated in place by the recorder, sequencer and switchboard, and
    persisted by the engine after every mutation. A reset creates a new
    StudySession instead of clearing this one.
    """

    session_id: str
    profile_id: str
    exam_mode: ExamMode
    conditions: ExamConditions
    objective_ids: list[str]  # routed order (catalog order, possibly a subset)
    targets: dict[str, int]  # objective id -> questions per visit
    started_at: datetime
    current_objective_id: str
    current_objective_index: int = 0
    lap: int = 0  # completed passes over objective_ids
    progress: list[ObjectiveProgress] = field(default_factory=list)
    presentation_mode: PresentationMode = PresentationMode.QUIZ
    flashcard_source: FlashcardSource | None = None
    pending_question: PendingQuestion | None = None
    recent_question_ids: list[str] = field(default_factory=list)

    # Clock and break state
    break_state: BreakState = BreakState.NONE
    break_started_at: datetime | None = None
    paused_seconds: float = 0.0
    time_remaining: float | None = None  # snapshot, refreshed on every command

    ended_at: datetime | None = None
    end_reason: SessionEndReason | None = None

    # ─── Derived totals ──────────────────────────────────────────────────────

    @property
    def total_questions_answered(self) -> int:
        return sum(p.questions_attempted for p in self.progress)

    @property
    def total_correct_answers(self) -> int:
        return sum(p.questions_correct for p in self.progress)

    @property
    def session_score(self) -> float:
        answered = self.total_questions_answered
        if answered == 0:
            return 0.0
        return self.total_correct_answers / answered * 100

    @property
    def total_flashcards_reviewed(self) -> int:
        return sum(len(p.flashcard_attempts) for p in self.progress)

    @property
    def is_ended(self) -> bool:
        return self.end_reason is not None

    def progress_for(self, objective_id: str) -> ObjectiveProgress | None:
        for item in self.progress:
            if item.objective_id == objective_id:
                return item
        return None

    def question_attempts(self) -> list[QuestionAttempt]:
        """All question attempts across objectives in submission order."""
        attempts = [a for p in self.progress for a in p.question_attempts]
        return sorted(attempts, key=lambda a: a.sequence)

    # ─── Serialization ───────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dictionary."""
        return {
            "session_id": self.session_id,
            "profile_id": self.profile_id,
            "exam_mode": self.exam_mode.value,
            "conditions": self.conditions.to_dict(),
            "objective_ids": list(self.objective_ids),
            "targets": dict(self.targets),
            "started_at": self.started_at.isoformat(),
            "current_objective_id": self.current_objective_id,
            "current_objective_index": self.current_objective_index,
            "lap": self.lap,
            "progress": [p.to_dict() for p in self.progress],
            "presentation_mode": self.presentation_mode.value,
            "flashcard_source": self.flashcard_source.to_dict() if self.flashcard_source else None,
            "pending_question": self.pending_question.to_dict() if self.pending_question else None,
            "recent_question_ids": list(self.recent_question_ids),
            "break_state": self.break_state.value,
            "break_started_at": _iso(self.break_started_at),
            "paused_seconds": self.paused_seconds,
            "time_remaining": self.time_remaining,
            "ended_at": _iso(self.ended_at),
            "end_reason": self.end_reason.value if self.end_reason else None,
            "total_questions_answered": self.total_questions_answered,
            "total_correct_answers": self.total_correct_answers,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StudySession:
        """Create from dictionary. Raises KeyError/ValueError/TypeError on malformed data."""
        source = data.get("flashcard_source")
        pending = data.get("pending_question")
        end_reason = data.get("end_reason")
        return cls(
            session_id=data["session_id"],
            profile_id=data["profile_id"],
            exam_mode=ExamMode(data["exam_mode"]),
            conditions=ExamConditions.from_dict(data["conditions"]),
            objective_ids=list(data["objective_ids"]),
            targets={k: int(v) for k, v in data["targets"].items()},
            started_at=datetime.fromisoformat(data["started_at"]),
            current_objective_id=data["current_objective_id"],
            current_objective_index=int(data.get("current_objective_index", 0)),
            lap=int(data.get("lap", 0)),
            progress=[ObjectiveProgress.from_dict(p) for p in data.get("progress", [])],
            presentation_mode=PresentationMode(data.get("presentation_mode", "quiz")),
            flashcard_source=FlashcardSource.from_dict(source) if source else None,
            pending_question=PendingQuestion.from_dict(pending) if pending else None,
            recent_question_ids=list(data.get("recent_question_ids", [])),
            break_state=BreakState(data.get("break_state", "none")),
            break_started_at=_parse_dt(data.get("break_started_at")),
            paused_seconds=float(data.get("paused_seconds", 0.0)),
            time_remaining=data.get("time_remaining"),
            ended_at=_parse_dt(data.get("ended_at")),
            end_reason=SessionEndReason(end_reason) if end_reason else None,
        )
