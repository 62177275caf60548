"""
Objective Sequencer.

Objectives are visited in routed (catalog) order. Each visit lasts until
the objective's attempt count reaches its target for the current lap;
after the last objective the order wraps to the first, unless the exam
mode's question budget is exhausted, in which case there is no next
objective and the session is complete.
"""

from __future__ import annotations

from collections.abc import Sequence

from loguru import logger

from certprep.core.exceptions import InvalidObjective
from certprep.core.models import ObjectiveDefinition, PresentationMode, StudySession
from certprep.core.modes import ExamModeStrategy


class ObjectiveSequencer:
    """Decides when to leave an objective and which one comes next."""

    def __init__(self, strategy: ExamModeStrategy, objectives: Sequence[ObjectiveDefinition]):
        if not objectives:
            raise ValueError("ObjectiveSequencer needs at least one objective")
        self.strategy = strategy
        self.objectives = list(objectives)
        self._by_id = {o.id: o for o in self.objectives}

    def definition(self, objective_id: str) -> ObjectiveDefinition:
        try:
            return self._by_id[objective_id]
        except KeyError:
            raise InvalidObjective(objective_id) from None

    def current(self, session: StudySession) -> ObjectiveDefinition:
        return self.definition(session.current_objective_id)

    def visit_threshold(self, session: StudySession, objective_id: str) -> int:
        """Attempts the objective must have before it can be left on this lap."""
        return self.definition(objective_id).target_questions * (session.lap + 1)

    def should_advance(self, session: StudySession, objective_id: str) -> bool:
        progress = session.progress_for(objective_id)
        attempted = progress.questions_attempted if progress else 0
        return attempted >= self.visit_threshold(session, objective_id)

    def _next_index(self, session: StudySession) -> tuple[int, bool] | None:
        if self.strategy.budget_exhausted(session):
            return None
        index = session.current_objective_index + 1
        if index >= len(self.objectives):
            return 0, True
        return index, False

    def next_objective(self, session: StudySession) -> ObjectiveDefinition | None:
        """The objective that follows the current one, or None when the session is done."""
        step = self._next_index(session)
        if step is None:
            return None
        return self.objectives[step[0]]

    def advance(self, session: StudySession) -> ObjectiveDefinition | None:
        """Move the session to the next objective. Returns None when there is none."""
        step = self._next_index(session)
        if step is None:
            logger.debug(f"No next objective: budget exhausted after {session.total_questions_answered}")
            return None

        index, wrapped = step
        if wrapped:
            session.lap += 1
            logger.debug(f"Objective order wrapped, starting lap {session.lap + 1}")
        target = self.objectives[index]
        logger.debug(f"Advancing {session.current_objective_id} -> {target.id}")
        session.current_objective_index = index
        session.current_objective_id = target.id
        return target

    def select(self, session: StudySession, objective_id: str) -> ObjectiveDefinition:
        """
        Jump to an objective chosen by the learner.

        Other objectives keep their progress. Any flashcard-derived question
        context is dropped.
        """
        target = self._by_id.get(objective_id)
        if target is None:
            raise InvalidObjective(objective_id, session.profile_id)

        session.current_objective_index = self.objectives.index(target)
        session.current_objective_id = target.id
        session.flashcard_source = None
        if session.presentation_mode is PresentationMode.FLASHCARD_QUESTION:
            session.presentation_mode = PresentationMode.FLASHCARDS
        logger.debug(f"Objective selected: {target.id}")
        return target
