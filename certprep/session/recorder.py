"""
Attempt Recorder.

Appends question and flashcard attempts to a session. The statistics on
ObjectiveProgress and StudySession are computed from the attempt lists,
so appending is the whole mutation: there are no counters to keep in step.
Persistence is the caller's job.
"""

from __future__ import annotations

from dataclasses import replace

from loguru import logger

from certprep.catalog.profiles import ExamProfile
from certprep.core.exceptions import ConfigurationError, InvalidObjective
from certprep.core.models import (
    FlashcardAttempt,
    ObjectiveProgress,
    QuestionAttempt,
    StudySession,
)


class AttemptRecorder:
    """Records attempts against the objectives of one exam profile."""

    def __init__(self, profile: ExamProfile):
        self.profile = profile
        self._objective_ids = set(profile.objective_ids)

    def _progress(self, session: StudySession, objective_id: str) -> ObjectiveProgress:
        if session.profile_id != self.profile.id:
            raise ConfigurationError(
                f"Session {session.session_id} belongs to profile '{session.profile_id}', "
                f"not '{self.profile.id}'"
            )
        if objective_id not in self._objective_ids:
            raise InvalidObjective(objective_id, self.profile.id)

        progress = session.progress_for(objective_id)
        if progress is None:
            progress = ObjectiveProgress(objective_id=objective_id)
            session.progress.append(progress)
        return progress

    def record_question_attempt(self, session: StudySession, attempt: QuestionAttempt) -> StudySession:
        """
        Append a question attempt.

        Raises:
            InvalidObjective: attempt references an objective outside the profile
                (the session is left untouched)
        """
        progress = self._progress(session, attempt.objective_id)
        attempt = replace(attempt, sequence=session.total_questions_answered + 1)
        progress.question_attempts.append(attempt)

        logger.debug(
            f"Recorded {'correct' if attempt.correct else 'incorrect'} answer for "
            f"{attempt.objective_id} ({progress.questions_correct}/{progress.questions_attempted})"
        )
        return session

    def record_flashcard_attempt(self, session: StudySession, attempt: FlashcardAttempt) -> StudySession:
        """Append a flashcard review. Question statistics are unaffected."""
        progress = self._progress(session, attempt.objective_id)
        progress.flashcard_attempts.append(attempt)

        logger.debug(
            f"Recorded flashcard {attempt.flashcard_id} rated {attempt.rating.value} "
            f"for {attempt.objective_id}"
        )
        return session


def next_attempt_number(session: StudySession, question_id: str | None) -> int:
    """1 for a new question, n+1 for the n-th retry of the same question."""
    if not question_id:
        return 1
    previous = sum(1 for a in session.question_attempts() if a.question_id == question_id)
    return previous + 1
