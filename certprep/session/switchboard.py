"""
Mode Switchboard.

Tracks which presentation path consumes the session. Switching never
touches progress or attempts.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from certprep.core.exceptions import InvalidObjective
from certprep.core.models import ExamMode, FlashcardSource, PresentationMode, StudySession

# Presentation modes tied to one exam mode
_EXAM_BOUND = {
    PresentationMode.EFFICIENT: ExamMode.EFFICIENT,
    PresentationMode.MOCK: ExamMode.MOCK,
}


@dataclass(frozen=True)
class SwitchOutcome:
    previous: PresentationMode
    current: PresentationMode
    needs_content: bool

    @property
    def changed(self) -> bool:
        return self.previous is not self.current


class ModeSwitchboard:
    """Validates and applies presentation mode switches."""

    def switch(
        self,
        session: StudySession,
        mode: PresentationMode | str,
        source: FlashcardSource | None = None,
    ) -> SwitchOutcome:
        mode = PresentationMode(mode)
        previous = session.presentation_mode

        bound = _EXAM_BOUND.get(mode)
        if bound is not None and bound is not session.exam_mode:
            raise ValueError(
                f"'{mode.value}' view needs a {bound.value} session, this one is {session.exam_mode.value}"
            )
        if mode is PresentationMode.FLASHCARD_QUESTION:
            if source is None:
                raise ValueError("flashcard_question mode needs the source flashcard")
            if source.objective_id not in session.objective_ids:
                raise InvalidObjective(source.objective_id, session.profile_id)
            session.flashcard_source = source
        else:
            session.flashcard_source = None

        if mode is previous and mode is not PresentationMode.FLASHCARD_QUESTION:
            return SwitchOutcome(previous, mode, needs_content=False)

        session.presentation_mode = mode
        logger.debug(f"Presentation mode {previous.value} -> {mode.value}")
        return SwitchOutcome(previous, mode, needs_content=mode.requires_generation)
