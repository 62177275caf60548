"""
Results & Recommendation Engine.

Derives the end-of-session report from a finished session's attempts:
overall score and pass/fail, per-objective breakdown, strengths and
weaknesses, time efficiency, a full-exam prediction (efficient mode
only) and a short list of recommendations.

The prediction is a placeholder heuristic (observed score plus bounded
jitter), not a calibrated model.
"""

from __future__ import annotations

import random
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from loguru import logger

from certprep.catalog.profiles import ExamProfile
from certprep.config import Settings, get_settings
from certprep.core.mastery import MasteryLevel
from certprep.core.models import ExamMode, QuestionAttempt, SessionEndReason, StudySession

FAST_SECONDS = 90
SLOW_SECONDS = 150
STRENGTH_ACCURACY = 80.0
WEAKNESS_ACCURACY = 70.0
TOP_N = 3


class Efficiency(str, Enum):
    FAST = "fast"  # < 90s per question
    OPTIMAL = "optimal"  # 90-150s
    SLOW = "slow"  # > 150s


class Trend(str, Enum):
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def order(self) -> int:
        return {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}[self]


# =============================================================================
# Report structures
# =============================================================================


@dataclass
class ObjectiveAnalysis:
    objective_id: str
    title: str
    questions_attempted: int
    correct_answers: int
    accuracy: float
    average_time: float
    mastery_level: MasteryLevel | None
    trend: Trend
    recommendation: str
    priority: Priority


@dataclass
class TimeAnalysis:
    total_time: float  # seconds spent answering
    average_per_question: float  # answering time only, never the exam clock
    efficiency: Efficiency | None  # None when nothing was answered
    elapsed_seconds: float | None = None  # exam clock, including time off questions


@dataclass
class Prediction:
    full_exam_score: float
    confidence: float
    pass_likelihood: float


@dataclass
class Recommendation:
    kind: str  # continue | focus | ready | retry
    message: str
    priority: Priority
    suggested_mode: ExamMode | None = None


@dataclass
class SessionResults:
    session_id: str
    profile_id: str
    exam_mode: ExamMode
    end_reason: SessionEndReason | None
    overall_score: float
    pass_threshold: float
    passed: bool
    total_questions: int
    correct_answers: int
    objectives: list[ObjectiveAnalysis] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)
    time_analysis: TimeAnalysis | None = None
    prediction: Prediction | None = None
    recommendations: list[Recommendation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-safe dictionary."""

        def _plain(value: Any) -> Any:
            if isinstance(value, Enum):
                return value.value
            if isinstance(value, dict):
                return {k: _plain(v) for k, v in value.items()}
            if isinstance(value, list):
                return [_plain(v) for v in value]
            return value

        return _plain(asdict(self))


# =============================================================================
# Pure helpers
# =============================================================================


def round_score(value: float) -> float:
    """Display rounding: one decimal place."""
    return round(value, 1)


def classify_efficiency(average_seconds: float) -> Efficiency:
    if average_seconds < FAST_SECONDS:
        return Efficiency.FAST
    if average_seconds > SLOW_SECONDS:
        return Efficiency.SLOW
    return Efficiency.OPTIMAL


def objective_trend(attempts: list[QuestionAttempt]) -> Trend:
    """
    Compare the last three answers with everything before them.

    Needs at least two answers in each window; a swing of more than ten
    accuracy points counts as a trend.
    """
    recent = attempts[-3:]
    older = attempts[:-3]
    if len(recent) < 2 or len(older) < 2:
        return Trend.STABLE

    recent_avg = sum(a.correct for a in recent) / len(recent)
    older_avg = sum(a.correct for a in older) / len(older)
    if recent_avg > older_avg + 0.1:
        return Trend.IMPROVING
    if recent_avg < older_avg - 0.1:
        return Trend.DECLINING
    return Trend.STABLE


def objective_recommendation(accuracy: float) -> tuple[str, Priority]:
    if accuracy < 60:
        return "Requires significant additional study and practice", Priority.HIGH
    if accuracy < 70:
        return "Good foundation, focus on challenging concepts", Priority.MEDIUM
    if accuracy < 85:
        return "Strong performance, minor refinements needed", Priority.LOW
    return "Excellent mastery of this topic", Priority.LOW


def predict_full_exam(
    score: float,
    answered: int,
    rng: random.Random,
    noise_points: float = 3.0,
    sample_scale: int = 30,
    confidence_ceiling: float = 0.95,
) -> Prediction:
    """
    Heuristic full-exam prediction.

    predicted = score + uniform(-noise, +noise), clamped to [0, 100]
    confidence = min(ceiling, answered / sample_scale)
    pass_likelihood = 0.5 + (predicted - 50) / 50, clamped to [0, 1]
    """
    predicted = min(max(score + rng.uniform(-noise_points, noise_points), 0.0), 100.0)
    confidence = min(confidence_ceiling, answered / sample_scale) if sample_scale else 0.0
    likelihood = min(max(0.5 + (predicted - 50) / 50, 0.0), 1.0)
    return Prediction(
        full_exam_score=round_score(predicted),
        confidence=round(confidence, 2),
        pass_likelihood=round(likelihood, 2),
    )


def build_recommendations(
    mode: ExamMode,
    score: float,
    passed: bool,
    weakness_titles: list[str],
    exam_name: str = "certification",
) -> list[Recommendation]:
    """Rule table keyed on mode, score band and number of weak objectives."""
    recommendations: list[Recommendation] = []

    if mode is ExamMode.PRACTICE:
        if score >= 75:
            recommendations.append(
                Recommendation(
                    "ready",
                    "You're performing well! Consider taking an efficient assessment to gauge exam readiness.",
                    Priority.MEDIUM,
                    ExamMode.EFFICIENT,
                )
            )
        elif score >= 60:
            recommendations.append(
                Recommendation(
                    "focus",
                    "Good foundation. Focus additional practice on weak areas before assessment.",
                    Priority.HIGH,
                )
            )
        else:
            recommendations.append(
                Recommendation(
                    "continue",
                    "Continue building fundamental knowledge across all topics.",
                    Priority.HIGH,
                )
            )
    elif mode is ExamMode.EFFICIENT:
        if score >= 70:
            recommendations.append(
                Recommendation(
                    "ready",
                    "Strong performance! You appear ready for a full mock exam.",
                    Priority.HIGH,
                    ExamMode.MOCK,
                )
            )
        else:
            recommendations.append(
                Recommendation(
                    "focus",
                    "More preparation needed. Focus on identified weak areas.",
                    Priority.HIGH,
                    ExamMode.PRACTICE,
                )
            )
    elif passed:
        recommendations.append(
            Recommendation(
                "ready",
                f"Excellent! You're well-prepared for the actual {exam_name} exam.",
                Priority.HIGH,
            )
        )
    else:
        recommendations.append(
            Recommendation(
                "retry",
                "Additional preparation recommended before the real exam.",
                Priority.HIGH,
                ExamMode.PRACTICE,
            )
        )

    if weakness_titles:
        recommendations.append(
            Recommendation(
                "focus",
                f"Prioritize additional study in: {', '.join(weakness_titles[:2])}",
                Priority.HIGH,
            )
        )
    return recommendations


# =============================================================================
# Engine
# =============================================================================


class ResultsEngine:
    """Computes the report for a finished session."""

    def __init__(self, settings: Settings | None = None, rng: random.Random | None = None):
        self.settings = settings or get_settings()
        self.rng = rng or random.Random()

    def analyze_objectives(self, session: StudySession, profile: ExamProfile) -> list[ObjectiveAnalysis]:
        analyses = []
        for progress in session.progress:
            if progress.questions_attempted == 0:
                continue
            entry = profile.get_objective(progress.objective_id)
            accuracy = round_score(progress.average_score)
            recommendation, priority = objective_recommendation(accuracy)
            analyses.append(
                ObjectiveAnalysis(
                    objective_id=progress.objective_id,
                    title=entry.title if entry else progress.objective_id,
                    questions_attempted=progress.questions_attempted,
                    correct_answers=progress.questions_correct,
                    accuracy=accuracy,
                    average_time=round(progress.average_time, 1),
                    mastery_level=progress.mastery_level,
                    trend=objective_trend(progress.question_attempts),
                    recommendation=recommendation,
                    priority=priority,
                )
            )
        # Most urgent first, lowest accuracy first within a priority
        return sorted(analyses, key=lambda a: (a.priority.order, a.accuracy))

    def compute(
        self,
        session: StudySession,
        profile: ExamProfile,
        elapsed_seconds: float | None = None,
    ) -> SessionResults:
        """
        Build the results report.

        Args:
            session: A session that has ended
            profile: The session's exam profile (for titles)
            elapsed_seconds: Exam-clock time, reported next to the answering time

        Raises:
            ValueError: the session is still running
        """
        if not session.is_ended:
            raise ValueError(f"Session {session.session_id} has not ended; results are computed at the end")

        answered = session.total_questions_answered
        overall = round_score(session.session_score)
        threshold = session.conditions.pass_threshold
        passed = overall >= threshold

        objectives = self.analyze_objectives(session, profile)
        by_accuracy = sorted(objectives, key=lambda a: -a.accuracy)
        strengths = [a for a in by_accuracy if a.accuracy >= STRENGTH_ACCURACY][:TOP_N]
        weaknesses = sorted(
            (a for a in objectives if a.accuracy < WEAKNESS_ACCURACY), key=lambda a: a.accuracy
        )[:TOP_N]

        total_time = sum(p.total_time_spent for p in session.progress)
        average = total_time / answered if answered else 0.0
        time_analysis = TimeAnalysis(
            total_time=round(total_time, 1),
            average_per_question=round(average, 1),
            efficiency=classify_efficiency(average) if answered else None,
            elapsed_seconds=round(elapsed_seconds, 1) if elapsed_seconds is not None else None,
        )

        prediction = None
        if session.exam_mode is ExamMode.EFFICIENT:
            prediction = predict_full_exam(
                overall,
                answered,
                self.rng,
                noise_points=self.settings.prediction_noise_points,
                sample_scale=self.settings.prediction_sample_scale,
                confidence_ceiling=self.settings.prediction_confidence_ceiling,
            )

        results = SessionResults(
            session_id=session.session_id,
            profile_id=session.profile_id,
            exam_mode=session.exam_mode,
            end_reason=session.end_reason,
            overall_score=overall,
            pass_threshold=threshold,
            passed=passed,
            total_questions=answered,
            correct_answers=session.total_correct_answers,
            objectives=objectives,
            strengths=[a.objective_id for a in strengths],
            weaknesses=[a.objective_id for a in weaknesses],
            time_analysis=time_analysis,
            prediction=prediction,
            recommendations=build_recommendations(
                session.exam_mode,
                overall,
                passed,
                [a.title for a in weaknesses],
                exam_name=profile.name,
            ),
        )
        logger.info(
            f"Results for {session.session_id}: {overall}% "
            f"({'pass' if passed else 'below pass'} at {threshold}%)"
        )
        return results
