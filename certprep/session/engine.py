"""
Study Session Engine.

The engine owns the canonical StudySession and is the only thing that
mutates it. The presentation layer (the CLI here) reads the accessors and
dispatches commands; every command that changes the session saves it
before returning.

Flow per question:
    generate_question() -> select_option() -> submit_answer()
submit_answer records the attempt, then the exam mode policy and the
objective sequencer decide: stay, advance, or end the session.

Generation requests are tracked by ticket. Selecting an objective,
switching mode, advancing, resetting or issuing a newer request
invalidates the outstanding ticket, and a late result for an invalidated
ticket is dropped.
"""

from __future__ import annotations

import random
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from loguru import logger

from certprep.analytics.results import ResultsEngine, SessionResults
from certprep.catalog.profiles import CatalogReader, ExamProfile
from certprep.config import Settings, get_settings
from certprep.core.exceptions import (
    ConfigurationError,
    GenerationFailure,
    InvalidObjective,
    PersistenceFailure,
    SessionStateError,
)
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
from certprep.generation.assembler import (
    GeneratedFlashcard,
    GeneratedQuestion,
    assemble_flashcard,
    assemble_question,
    placeholder_flashcard,
    placeholder_question,
)
from certprep.generation.client import ContentGenerator
from certprep.generation.events import ContentRequest
from certprep.session.recorder import AttemptRecorder, next_attempt_number
from certprep.session.sequencer import ObjectiveSequencer
from certprep.session.store import SessionStore, session_key
from certprep.session.switchboard import ModeSwitchboard, SwitchOutcome


@dataclass(frozen=True)
class Notice:
    """Non-blocking message for the learner (generation or save trouble)."""

    level: str  # "warning" | "info"
    code: str  # "generation_failed" | "persistence_failed" | "persistence_restored"
    message: str
    retryable: bool = False


@dataclass(frozen=True)
class SessionTotals:
    questions_answered: int
    correct_answers: int
    session_score: float
    flashcards_reviewed: int


@dataclass(frozen=True)
class AnswerOutcome:
    correct: bool
    correct_index: int
    explanation: str
    recorded: bool  # False for placeholder questions
    advanced_to: str | None = None
    end_reason: SessionEndReason | None = None

    @property
    def session_ended(self) -> bool:
        return self.end_reason is not None


class StudySessionEngine:
    """Presentation-facing command and query surface for one learner's session."""

    def __init__(
        self,
        catalog: CatalogReader,
        store: SessionStore,
        generator: ContentGenerator | None = None,
        settings: Settings | None = None,
        now: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
    ):
        self.catalog = catalog
        self.store = store
        self.generator = generator
        self.settings = settings or get_settings()
        self.now = now or datetime.now
        self.results_engine = ResultsEngine(self.settings, rng)
        self.switchboard = ModeSwitchboard()
        self.notices: list[Notice] = []
        self.current_flashcard: GeneratedFlashcard | None = None

        self._session: StudySession | None = None
        self._profile: ExamProfile | None = None
        self._strategy: ExamModeStrategy | None = None
        self._recorder: AttemptRecorder | None = None
        self._sequencer: ObjectiveSequencer | None = None
        self._results: SessionResults | None = None
        self._ticket = 0
        self._unsaved = False

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self, config: SessionConfig) -> StudySession:
        """
        Create a new session, superseding any saved one for the same profile and mode.

        Raises:
            ConfigurationError: unknown profile or objective id
        """
        profile = self.catalog.get_profile(config.profile_id)
        if config.target_objective_ids:
            unknown = [oid for oid in config.target_objective_ids if profile.get_objective(oid) is None]
            if unknown:
                raise ConfigurationError(
                    f"Unknown objective(s) for profile '{profile.id}': {', '.join(unknown)}"
                )
            wanted = set(config.target_objective_ids)
            specs = [o for o in profile.objectives if o.id in wanted]
        else:
            specs = list(profile.objectives)

        strategy = get_mode_strategy(config.exam_mode, self.settings)
        conditions = strategy.build_conditions(profile, config)
        targets = strategy.allocate_targets(profile, specs, config, conditions)
        session = self._new_session(profile, strategy, conditions, [o.id for o in specs], targets)

        logger.info(
            f"Started {config.exam_mode.value} session {session.session_id} for {profile.id} "
            f"({len(specs)} objectives, budget {conditions.total_questions or 'none'})"
        )
        return session

    def _new_session(
        self,
        profile: ExamProfile,
        strategy: ExamModeStrategy,
        conditions: ExamConditions,
        objective_ids: list[str],
        targets: dict[str, int],
    ) -> StudySession:
        session = StudySession(
            session_id=str(uuid.uuid4()),
            profile_id=profile.id,
            exam_mode=strategy.mode,
            conditions=conditions,
            objective_ids=list(objective_ids),
            targets=dict(targets),
            started_at=self.now(),
            current_objective_id=objective_ids[0],
            presentation_mode=PresentationMode.default_for(strategy.mode),
            break_state=strategy.initial_break_state(conditions),
            time_remaining=float(conditions.time_budget_seconds) if conditions.is_timed else None,
        )
        self._bind(session, profile)
        self._persist()
        return session

    def _bind(self, session: StudySession, profile: ExamProfile) -> None:
        definitions = []
        for index, objective_id in enumerate(session.objective_ids):
            entry = profile.get_objective(objective_id)
            if entry is None:
                raise ConfigurationError(
                    f"Session {session.session_id} references objective '{objective_id}' "
                    f"no longer in profile '{profile.id}'"
                )
            definitions.append(
                ObjectiveDefinition(
                    id=entry.id,
                    title=entry.title,
                    weight=entry.weight,
                    difficulty=entry.difficulty,
                    target_questions=session.targets[entry.id],
                    index=index,
                )
            )

        self._session = session
        self._profile = profile
        self._strategy = get_mode_strategy(session.exam_mode, self.settings)
        self._recorder = AttemptRecorder(profile)
        self._sequencer = ObjectiveSequencer(self._strategy, definitions)
        self._results = None
        self.current_flashcard = None
        self._invalidate_generation()

    def resume(self, profile_id: str, mode: ExamMode | str) -> StudySession | None:
        """Reload the saved session for a profile and mode. None if there is none."""
        key = session_key(profile_id, mode)
        try:
            session = self.store.load(key)
        except PersistenceFailure as e:
            logger.warning(f"Could not load session {key}: {e}")
            self._notice("warning", "persistence_failed", f"Saved session could not be loaded: {e}", True)
            return None
        if session is None:
            return None

        self._bind(session, self.catalog.get_profile(session.profile_id))
        logger.info(
            f"Resumed session {session.session_id} ({session.total_questions_answered} answered)"
        )
        if not session.is_ended and self._check_clock():
            self._persist()
        return session

    def reset(self) -> StudySession:
        """Replace the current session with a fresh one under the same conditions."""
        old = self._require_session()
        profile = self._require_profile()
        strategy = get_mode_strategy(old.exam_mode, self.settings)
        session = self._new_session(profile, strategy, old.conditions, old.objective_ids, old.targets)
        logger.info(f"Reset session {old.session_id} -> {session.session_id}")
        return session

    def end_early(self) -> SessionResults:
        """Learner stops before the session completes on its own."""
        self._require_active()
        if not self._check_clock():
            self._end(SessionEndReason.ENDED_EARLY)
        return self._require_results()

    def exit(self) -> SessionResults:
        """Learner leaves a session (the only way a practice session ends)."""
        self._require_active()
        if not self._check_clock():
            self._end(SessionEndReason.EXITED)
        return self._require_results()

    # =========================================================================
    # Read accessors
    # =========================================================================

    @property
    def session(self) -> StudySession | None:
        return self._session

    @property
    def profile(self) -> ExamProfile | None:
        return self._profile

    @property
    def objectives(self) -> list[ObjectiveDefinition]:
        return list(self._sequencer.objectives) if self._sequencer else []

    @property
    def current_objective(self) -> ObjectiveDefinition | None:
        if self._session is None or self._sequencer is None:
            return None
        return self._sequencer.current(self._session)

    @property
    def current_progress(self) -> ObjectiveProgress | None:
        if self._session is None:
            return None
        return self._session.progress_for(self._session.current_objective_id)

    @property
    def totals(self) -> SessionTotals:
        session = self._require_session()
        return SessionTotals(
            questions_answered=session.total_questions_answered,
            correct_answers=session.total_correct_answers,
            session_score=session.session_score,
            flashcards_reviewed=session.total_flashcards_reviewed,
        )

    @property
    def active_mode(self) -> PresentationMode | None:
        return self._session.presentation_mode if self._session else None

    @property
    def time_remaining(self) -> float | None:
        if self._session is None or self._strategy is None:
            return None
        return self._strategy.time_remaining(self._session, self.now())

    @property
    def elapsed_seconds(self) -> float:
        if self._session is None or self._strategy is None:
            return 0.0
        return self._strategy.elapsed_seconds(self._session, self.now())

    @property
    def break_state(self) -> BreakState:
        return self._session.break_state if self._session else BreakState.NONE

    @property
    def break_remaining(self) -> float | None:
        if self._session is None or self._strategy is None:
            return None
        return self._strategy.break_remaining(self._session, self.now())

    @property
    def is_complete(self) -> bool:
        return self._session is not None and self._session.is_ended

    @property
    def has_unsaved_changes(self) -> bool:
        return self._unsaved

    @property
    def results(self) -> SessionResults | None:
        """End-of-session report, None while the session is running."""
        session = self._session
        if session is None or not session.is_ended:
            return None
        if self._results is None:
            self._results = self.results_engine.compute(
                session, self._require_profile(), elapsed_seconds=self.elapsed_seconds
            )
        return self._results

    def history(self, objective_id: str | None = None) -> list[QuestionAttempt]:
        """Answered questions in submission order, optionally for one objective."""
        session = self._require_session()
        attempts = session.question_attempts()
        if objective_id is not None:
            attempts = [a for a in attempts if a.objective_id == objective_id]
        return attempts

    def drain_notices(self) -> list[Notice]:
        notices, self.notices = self.notices, []
        return notices

    # =========================================================================
    # Question flow
    # =========================================================================

    def present_question(self, question: GeneratedQuestion) -> PendingQuestion:
        """Put a question on screen. Replaces any unanswered one."""
        session = self._require_active()
        if self._check_clock():
            raise SessionStateError(f"Session ended: {session.end_reason.value}")
        self._require_not_on_break(session)
        if question.objective_id not in session.objective_ids:
            raise InvalidObjective(question.objective_id, session.profile_id)

        pending = PendingQuestion(
            question_id=question.question_id,
            objective_id=question.objective_id,
            text=question.text,
            options=list(question.options),
            correct_index=question.correct_index,
            explanation=question.explanation,
            difficulty=question.difficulty,
            presented_at=self.now(),
            placeholder=question.placeholder,
        )
        session.pending_question = pending
        if not question.placeholder:
            window = self.settings.recent_question_window
            recent = [qid for qid in session.recent_question_ids if qid != question.question_id]
            session.recent_question_ids = (recent + [question.question_id])[-window:]
        self._persist()
        return pending

    def select_option(self, index: int) -> None:
        session = self._require_active()
        if self._check_clock():
            raise SessionStateError(f"Session ended: {session.end_reason.value}")
        self._require_not_on_break(session)
        pending = session.pending_question
        if pending is None:
            raise SessionStateError("No question is being shown")
        if not 0 <= index < len(pending.options):
            raise ValueError(f"Option {index} out of range (0-{len(pending.options) - 1})")
        pending.selected_index = index
        self._persist()

    def submit_answer(self, time_spent: float | None = None) -> AnswerOutcome:
        """
        Submit the selected option for the question on screen.

        If the exam clock ran out first, the selected answer is force-submitted
        by the expiry and the outcome reports the session as ended.
        """
        session = self._require_active()
        pending = session.pending_question
        if pending is None:
            raise SessionStateError("No question is being shown")
        if pending.selected_index is None:
            raise SessionStateError("Select an option before submitting")

        correct = pending.selected_index == pending.correct_index
        if self._check_clock():
            return AnswerOutcome(
                correct=correct,
                correct_index=pending.correct_index,
                explanation=pending.explanation,
                recorded=not pending.placeholder,
                end_reason=session.end_reason,
            )

        self._require_not_on_break(session)
        session.pending_question = None
        if pending.placeholder:
            self._persist()
            return AnswerOutcome(correct, pending.correct_index, pending.explanation, recorded=False)

        attempt = self._attempt_from_pending(pending, time_spent)
        advanced_to = self._apply_question_attempt(attempt)
        return AnswerOutcome(
            correct=correct,
            correct_index=pending.correct_index,
            explanation=pending.explanation,
            recorded=True,
            advanced_to=advanced_to,
            end_reason=session.end_reason,
        )

    def _attempt_from_pending(self, pending: PendingQuestion, time_spent: float | None) -> QuestionAttempt:
        now = self.now()
        if time_spent is None:
            time_spent = max((now - pending.presented_at).total_seconds(), 0.0)
        return QuestionAttempt(
            objective_id=pending.objective_id,
            correct=pending.selected_index == pending.correct_index,
            time_spent=time_spent,
            attempt_number=next_attempt_number(self._require_session(), pending.question_id),
            timestamp=now,
            difficulty=pending.difficulty,
            question_id=pending.question_id,
            selected_index=pending.selected_index,
        )

    def record_question_attempt(
        self,
        objective_id: str,
        correct: bool,
        time_spent: float,
        difficulty: str | None = None,
        question_id: str | None = None,
        attempt_number: int | None = None,
    ) -> StudySession:
        """
        Record an answer directly, without the present/select/submit flow.

        Raises:
            InvalidObjective: objective not in the profile (nothing is changed)
            SessionStateError: no session, or it has ended
        """
        session = self._require_active()
        if self._check_clock():
            raise SessionStateError(f"Session ended: {session.end_reason.value}")
        self._require_not_on_break(session)
        if difficulty is None:
            entry = self._require_profile().get_objective(objective_id)
            difficulty = Difficulty.from_catalog(entry.difficulty).value if entry else Difficulty.MEDIUM.value
        attempt = QuestionAttempt(
            objective_id=objective_id,
            correct=correct,
            time_spent=time_spent,
            attempt_number=attempt_number or next_attempt_number(session, question_id),
            timestamp=self.now(),
            difficulty=difficulty,
            question_id=question_id,
        )
        self._apply_question_attempt(attempt)
        return session

    def _apply_question_attempt(self, attempt: QuestionAttempt) -> str | None:
        """Record, then let the mode policy and sequencer react. Returns the new objective id on advance."""
        session = self._require_session()
        strategy = self._require_strategy()
        sequencer = self._require_sequencer()

        self._require_recorder().record_question_attempt(session, attempt)
        strategy.update_break_offer(session)

        advanced_to = None
        reason = strategy.check_termination(session, self.now())
        if reason is not None:
            self._end(reason)
            return None

        current = session.current_objective_id
        if attempt.objective_id == current and sequencer.should_advance(session, current):
            target = sequencer.advance(session)
            if target is None:
                self._end(SessionEndReason.COMPLETED)
                return None
            self._invalidate_generation()
            advanced_to = target.id

        self._persist()
        return advanced_to

    def record_flashcard_attempt(
        self,
        flashcard_id: str,
        objective_id: str,
        rating: FlashcardRating | str,
        time_spent: float,
        difficulty: str = Difficulty.MEDIUM.value,
    ) -> StudySession:
        """Record a flashcard review. Question totals and mastery are unaffected."""
        session = self._require_active()
        if self._check_clock():
            raise SessionStateError(f"Session ended: {session.end_reason.value}")
        previous = sum(
            1 for p in session.progress for a in p.flashcard_attempts if a.flashcard_id == flashcard_id
        )
        attempt = FlashcardAttempt(
            flashcard_id=flashcard_id,
            objective_id=objective_id,
            difficulty=difficulty,
            rating=FlashcardRating(rating),
            time_spent=time_spent,
            timestamp=self.now(),
            attempt_number=previous + 1,
        )
        self._require_recorder().record_flashcard_attempt(session, attempt)
        self._persist()
        return session

    # =========================================================================
    # Navigation
    # =========================================================================

    def advance(self) -> ObjectiveDefinition | None:
        """
        Move on once the current objective has reached its target.

        Before that the learner stays put (use select_objective to jump).
        Returns the objective now current, or None if the session completed.
        """
        session = self._require_active()
        if self._check_clock():
            return None
        sequencer = self._require_sequencer()
        if not sequencer.should_advance(session, session.current_objective_id):
            logger.debug(f"Staying on {session.current_objective_id}: target not reached")
            self._persist()
            return sequencer.current(session)

        target = sequencer.advance(session)
        if target is None:
            self._end(SessionEndReason.COMPLETED)
            return None
        session.pending_question = None
        self._invalidate_generation()
        self._persist()
        return target

    def select_objective(self, objective_id: str) -> ObjectiveDefinition:
        """
        Jump to an objective chosen by the learner.

        Raises:
            InvalidObjective: objective not part of this session
        """
        session = self._require_active()
        if self._check_clock():
            raise SessionStateError(f"Session ended: {session.end_reason.value}")
        target = self._require_sequencer().select(session, objective_id)
        session.pending_question = None
        self._invalidate_generation()
        self._persist()
        return target

    def switch_mode(
        self,
        mode: PresentationMode | str,
        source: FlashcardSource | None = None,
    ) -> SwitchOutcome:
        """
        Change the presentation path. Progress and attempts are untouched.

        When the outcome says needs_content, call load_content() next.
        """
        session = self._require_active()
        if self._check_clock():
            raise SessionStateError(f"Session ended: {session.end_reason.value}")
        outcome = self.switchboard.switch(session, mode, source)
        if outcome.changed or outcome.current is PresentationMode.FLASHCARD_QUESTION:
            session.pending_question = None
            self.current_flashcard = None
            self._invalidate_generation()
        self._persist()
        return outcome

    # =========================================================================
    # Mock exam clock and break
    # =========================================================================

    def tick(self) -> SessionEndReason | None:
        """Evaluate the clock. Returns the end reason if the session is over."""
        session = self._require_session()
        if session.is_ended:
            return session.end_reason
        if self._check_clock():
            return session.end_reason
        self._persist()
        return None

    def start_break(self) -> None:
        session = self._require_active()
        if self._check_clock():
            raise SessionStateError(f"Session ended: {session.end_reason.value}")
        self._require_strategy().start_break(session, self.now())
        logger.info(f"Break started ({session.conditions.break_seconds}s)")
        self._persist()

    def end_break(self) -> None:
        session = self._require_active()
        self._require_strategy().end_break(session, self.now())
        logger.info("Break ended, exam clock resumed")
        self._check_clock()
        self._persist()

    def _check_clock(self) -> bool:
        """Expire breaks and the exam clock. Returns True if the session is (now) ended."""
        session = self._require_session()
        if session.is_ended:
            return True
        strategy = self._require_strategy()
        now = self.now()
        strategy.expire_break(session, now)
        session.time_remaining = strategy.time_remaining(session, now)
        reason = strategy.check_termination(session, now)
        if reason is None:
            return False
        self._end(reason)
        return True

    def _end(self, reason: SessionEndReason) -> None:
        session = self._require_session()
        if session.is_ended:
            return
        now = self.now()
        pending = session.pending_question
        if reason is SessionEndReason.TIME_EXPIRED and pending is not None:
            if pending.selected_index is not None and not pending.placeholder:
                attempt = self._attempt_from_pending(pending, None)
                self._require_recorder().record_question_attempt(session, attempt)
                logger.info(f"Time expired: submitted pending answer for {pending.objective_id}")
            else:
                logger.info("Time expired with no answer selected; question not scored")

        if session.break_state is BreakState.ACTIVE:
            self._require_strategy().end_break(session, now)
        session.pending_question = None
        session.ended_at = now
        session.end_reason = reason
        session.time_remaining = self._require_strategy().time_remaining(session, now)
        self._invalidate_generation()
        self._results = None
        logger.info(
            f"Session {session.session_id} ended ({reason.value}): "
            f"{session.total_correct_answers}/{session.total_questions_answered} correct"
        )
        self._persist()

    # =========================================================================
    # Content generation
    # =========================================================================

    def _invalidate_generation(self) -> None:
        self._ticket += 1

    def _content_request(self) -> tuple[ContentRequest, ObjectiveDefinition]:
        session = self._require_session()
        profile = self._require_profile()
        source = session.flashcard_source
        objective_id = source.objective_id if source else session.current_objective_id
        definition = self._require_sequencer().definition(objective_id)
        request = ContentRequest(
            profile_id=profile.id,
            objective_id=objective_id,
            question_type=profile.question_types[0] if profile.question_types else "multiple-choice",
            difficulty=Difficulty.from_catalog(definition.difficulty).value,
            exam_mode=session.exam_mode.value,
            avoid_question_ids=session.recent_question_ids[-self.settings.recent_question_window :],
            focus_area=source.title if source else None,
        )
        return request, definition

    def _is_current(self, ticket: int, session: StudySession) -> bool:
        return ticket == self._ticket and self._session is session and not session.is_ended

    async def generate_question(self) -> GeneratedQuestion | None:
        """
        Request, assemble and present one question for the current objective
        (or the flashcard source in flashcard_question mode).

        A failed request falls back to a placeholder question and leaves a
        notice. Returns None if the session has ended or the request went
        stale before it resolved.

        Raises:
            SessionStateError: the mock exam is paused for its break
        """
        session = self._require_active()
        generator = self._require_generator()
        if self._check_clock():
            return None
        self._require_not_on_break(session)
        self._invalidate_generation()
        ticket = self._ticket
        request, definition = self._content_request()

        failure: GenerationFailure | None = None
        try:
            question = await assemble_question(
                generator.stream_question(request), request.objective_id, request.difficulty
            )
        except GenerationFailure as e:
            failure = e
            question = placeholder_question(request.objective_id, definition.title, request.difficulty)

        if not self._is_current(ticket, session):
            logger.debug(f"Discarding stale question for {request.objective_id}")
            return None
        if failure is not None:
            logger.warning(f"Question generation failed for {request.objective_id}: {failure}")
            self._notice("warning", "generation_failed", f"Could not generate a question: {failure}", failure.retryable)
        if self._check_clock():
            return None

        self.present_question(question)
        return question

    async def generate_flashcard(self) -> GeneratedFlashcard | None:
        """Request one flashcard for the current objective. None if it went stale."""
        session = self._require_active()
        generator = self._require_generator()
        self._invalidate_generation()
        ticket = self._ticket
        request, definition = self._content_request()

        failure: GenerationFailure | None = None
        try:
            payload = await generator.fetch_flashcard(request)
            card = assemble_flashcard(payload, request.objective_id, request.difficulty)
        except GenerationFailure as e:
            failure = e
            card = placeholder_flashcard(request.objective_id, definition.title, request.difficulty)

        if not self._is_current(ticket, session):
            logger.debug(f"Discarding stale flashcard for {request.objective_id}")
            return None
        if failure is not None:
            logger.warning(f"Flashcard generation failed for {request.objective_id}: {failure}")
            self._notice("warning", "generation_failed", f"Could not generate a flashcard: {failure}", failure.retryable)

        self.current_flashcard = card
        return card

    async def load_content(self) -> GeneratedQuestion | GeneratedFlashcard | None:
        """Fetch whatever the active presentation mode shows next."""
        mode = self._require_session().presentation_mode
        if not mode.requires_generation:
            return None
        if mode.generates_flashcards:
            return await self.generate_flashcard()
        return await self.generate_question()

    # =========================================================================
    # Internals
    # =========================================================================

    def _notice(self, level: str, code: str, message: str, retryable: bool = False) -> None:
        self.notices.append(Notice(level=level, code=code, message=message, retryable=retryable))

    def _persist(self) -> None:
        """Save after a mutation. A failed save leaves the session running in memory."""
        session = self._require_session()
        try:
            self.store.save(session)
        except PersistenceFailure as e:
            self._unsaved = True
            logger.warning(f"Session {session.session_id} not saved: {e}")
            self._notice("warning", "persistence_failed", f"Progress not saved: {e}", retryable=True)
            return
        if self._unsaved:
            self._unsaved = False
            logger.info(f"Session {session.session_id} saved again after earlier failures")
            self._notice("info", "persistence_restored", "Progress saved.")

    def _require_session(self) -> StudySession:
        if self._session is None:
            raise SessionStateError("No active session; start or resume one first")
        return self._session

    def _require_active(self) -> StudySession:
        session = self._require_session()
        if session.is_ended:
            raise SessionStateError(f"Session has ended ({session.end_reason.value})")
        return session

    def _require_not_on_break(self, session: StudySession) -> None:
        if session.break_state is BreakState.ACTIVE:
            raise SessionStateError("Exam is paused for the break; end the break to continue")

    def _require_profile(self) -> ExamProfile:
        if self._profile is None:
            raise SessionStateError("No active session; start or resume one first")
        return self._profile

    def _require_strategy(self) -> ExamModeStrategy:
        if self._strategy is None:
            raise SessionStateError("No active session; start or resume one first")
        return self._strategy

    def _require_recorder(self) -> AttemptRecorder:
        if self._recorder is None:
            raise SessionStateError("No active session; start or resume one first")
        return self._recorder

    def _require_sequencer(self) -> ObjectiveSequencer:
        if self._sequencer is None:
            raise SessionStateError("No active session; start or resume one first")
        return self._sequencer

    def _require_generator(self) -> ContentGenerator:
        if self.generator is None:
            raise ConfigurationError("No content generator configured")
        return self.generator

    def _require_results(self) -> SessionResults:
        results = self.results
        if results is None:
            raise SessionStateError("Session is still running")
        return results
