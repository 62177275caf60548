"""
Exam Mode Policy.

Defines the three exam modes a study session can run under:
1. Practice - endless, no clock, the learner decides when to stop
2. Efficient - fixed question budget, elapsed time tracked but never enforced
3. Mock - full exam length, hard time limit, one break at the midpoint

The mode is chosen when the session is created and never changes. Each
strategy builds the session's ExamConditions, allocates per-objective
question targets, runs the exam clock and decides when the session is over.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from loguru import logger

from certprep.config import Settings, get_settings
from certprep.core.exceptions import SessionStateError
from certprep.core.models import (
    BreakState,
    ExamConditions,
    ExamMode,
    SessionConfig,
    SessionEndReason,
    StudySession,
)

if TYPE_CHECKING:
    from certprep.catalog.profiles import ExamProfile, ObjectiveSpec


# =============================================================================
# Target question counts
# =============================================================================


def resolve_target(
    objective: ObjectiveSpec,
    profile: ExamProfile,
    config: SessionConfig,
    settings: Settings,
) -> int:
    """
    Questions to ask per visit to an objective.

    Precedence: session override, then the objective's own count, then the
    profile default, then the global default.
    """
    if config.questions_per_objective:
        return config.questions_per_objective
    if objective.questions_per_session:
        return objective.questions_per_session
    if profile.study_settings.default_questions_per_objective:
        return profile.study_settings.default_questions_per_objective
    return settings.default_questions_per_objective


def allocate_by_weight(budget: int, weights: Sequence[float]) -> list[int]:
    """
    Split a question budget across objectives in proportion to their weights.

    Largest-remainder rounding, so the shares add up to the budget whenever
    the budget covers every objective. Every objective gets at least one.
    """
    if not weights:
        return []
    total = sum(weights)
    if total <= 0:
        weights = [1.0] * len(weights)
        total = float(len(weights))

    shares = [budget * w / total for w in weights]
    counts = [int(s) for s in shares]
    leftover = budget - sum(counts)
    by_remainder = sorted(range(len(shares)), key=lambda i: (-(shares[i] - counts[i]), i))
    for i in by_remainder[: max(leftover, 0)]:
        counts[i] += 1
    return [max(c, 1) for c in counts]


# =============================================================================
# Mode Strategies
# =============================================================================


class ExamModeStrategy:
    """Strategy pattern for mode-specific exam conditions."""

    mode: ExamMode = ExamMode.PRACTICE

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    # ─── Session creation ───────────────────────────────────────────────────

    def question_budget(self, profile: ExamProfile, config: SessionConfig) -> int | None:
        """Total questions before the session completes, None for uncapped."""
        raise NotImplementedError

    def time_budget(self, profile: ExamProfile, config: SessionConfig) -> int:
        """Hard time limit in seconds, 0 for none."""
        return 0

    def break_seconds(self) -> int:
        return 0

    def build_conditions(self, profile: ExamProfile, config: SessionConfig) -> ExamConditions:
        return ExamConditions(
            total_questions=self.question_budget(profile, config),
            time_budget_seconds=self.time_budget(profile, config),
            break_seconds=self.break_seconds(),
            pass_threshold=profile.pass_threshold_percent(self.settings.default_pass_threshold),
        )

    def allocate_targets(
        self,
        profile: ExamProfile,
        objectives: Sequence[ObjectiveSpec],
        config: SessionConfig,
        conditions: ExamConditions,
    ) -> dict[str, int]:
        return {
            obj.id: resolve_target(obj, profile, config, self.settings) for obj in objectives
        }

    def initial_break_state(self, conditions: ExamConditions) -> BreakState:
        return BreakState.SCHEDULED if conditions.break_after else BreakState.NONE

    # ─── Clock ──────────────────────────────────────────────────────────────

    def elapsed_seconds(self, session: StudySession, now: datetime) -> float:
        """Exam-clock seconds, excluding time spent on break."""
        end = session.ended_at or now
        elapsed = (end - session.started_at).total_seconds() - session.paused_seconds
        if session.break_state is BreakState.ACTIVE and session.break_started_at:
            elapsed -= (end - session.break_started_at).total_seconds()
        return max(elapsed, 0.0)

    def time_remaining(self, session: StudySession, now: datetime) -> float | None:
        budget = session.conditions.time_budget_seconds
        if budget <= 0:
            return None
        return max(budget - self.elapsed_seconds(session, now), 0.0)

    def break_remaining(self, session: StudySession, now: datetime) -> float | None:
        """Seconds left on an active break."""
        if session.break_state is not BreakState.ACTIVE or not session.break_started_at:
            return None
        used = (now - session.break_started_at).total_seconds()
        return max(session.conditions.break_seconds - used, 0.0)

    # ─── Termination ────────────────────────────────────────────────────────

    def budget_exhausted(self, session: StudySession) -> bool:
        budget = session.conditions.total_questions
        return budget is not None and session.total_questions_answered >= budget

    def time_expired(self, session: StudySession, now: datetime) -> bool:
        remaining = self.time_remaining(session, now)
        return remaining is not None and remaining <= 0

    def check_termination(self, session: StudySession, now: datetime) -> SessionEndReason | None:
        """Reason the session must end now, if any."""
        if session.is_ended:
            return session.end_reason
        if self.time_expired(session, now):
            return SessionEndReason.TIME_EXPIRED
        if self.budget_exhausted(session):
            return SessionEndReason.COMPLETED
        return None

    # ─── Break policy ───────────────────────────────────────────────────────

    def update_break_offer(self, session: StudySession) -> None:
        """Offer the break at the midpoint question, withdraw it once passed."""
        midpoint = session.conditions.break_after
        if midpoint is None:
            return
        answered = session.total_questions_answered
        if session.break_state is BreakState.SCHEDULED and answered == midpoint:
            session.break_state = BreakState.AVAILABLE
            logger.info(f"Break available after question {answered}")
        elif session.break_state is BreakState.AVAILABLE and answered > midpoint:
            session.break_state = BreakState.FORFEITED
            logger.debug("Break offer lapsed")

    def start_break(self, session: StudySession, now: datetime) -> None:
        if session.break_state is not BreakState.AVAILABLE:
            raise SessionStateError(f"No break available (state: {session.break_state.value})")
        session.break_state = BreakState.ACTIVE
        session.break_started_at = now

    def end_break(self, session: StudySession, now: datetime) -> None:
        if session.break_state is not BreakState.ACTIVE or not session.break_started_at:
            raise SessionStateError("No break in progress")
        used = (now - session.break_started_at).total_seconds()
        session.paused_seconds += min(used, session.conditions.break_seconds)
        session.break_state = BreakState.TAKEN
        session.break_started_at = None

    def expire_break(self, session: StudySession, now: datetime) -> bool:
        """End an active break whose countdown ran out. Returns True if it did."""
        remaining = self.break_remaining(session, now)
        if remaining is None or remaining > 0:
            return False
        self.end_break(session, now)
        logger.info("Break over, exam clock resumed")
        return True


class PracticeModeStrategy(ExamModeStrategy):
    """Practice - no cap, no clock, sequencing wraps until the learner exits."""

    mode = ExamMode.PRACTICE

    def question_budget(self, profile: ExamProfile, config: SessionConfig) -> int | None:
        return None


class EfficientModeStrategy(ExamModeStrategy):
    """Efficient assessment - a shortened diagnostic spread across objectives by weight."""

    mode = ExamMode.EFFICIENT

    def question_budget(self, profile: ExamProfile, config: SessionConfig) -> int | None:
        if config.question_budget:
            return config.question_budget
        if profile.constraints.efficient_questions:
            return profile.constraints.efficient_questions
        return min(profile.constraints.total_questions, self.settings.efficient_question_budget)

    def allocate_targets(
        self,
        profile: ExamProfile,
        objectives: Sequence[ObjectiveSpec],
        config: SessionConfig,
        conditions: ExamConditions,
    ) -> dict[str, int]:
        if config.questions_per_objective or not conditions.total_questions:
            return super().allocate_targets(profile, objectives, config, conditions)
        counts = allocate_by_weight(conditions.total_questions, [o.weight for o in objectives])
        return {obj.id: count for obj, count in zip(objectives, counts)}


class MockModeStrategy(EfficientModeStrategy):
    """Mock exam - full length, hard time limit, one mid-exam break."""

    mode = ExamMode.MOCK

    def question_budget(self, profile: ExamProfile, config: SessionConfig) -> int | None:
        return config.question_budget or profile.constraints.total_questions

    def time_budget(self, profile: ExamProfile, config: SessionConfig) -> int:
        if config.time_budget_seconds:
            return config.time_budget_seconds
        return profile.constraints.time_minutes * 60

    def break_seconds(self) -> int:
        return self.settings.mock_break_seconds


def get_mode_strategy(mode: ExamMode | str, settings: Settings | None = None) -> ExamModeStrategy:
    """Get the strategy for an exam mode."""
    strategies = {
        ExamMode.PRACTICE: PracticeModeStrategy,
        ExamMode.EFFICIENT: EfficientModeStrategy,
        ExamMode.MOCK: MockModeStrategy,
    }
    return strategies[ExamMode(mode)](settings)
