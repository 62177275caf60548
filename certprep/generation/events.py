"""
Content generation wire format.

The question endpoint streams newline-delimited JSON objects:

    {"type": "question_text", "content": "Which service ..."}
    {"type": "option", "content": "Amazon S3", "optionIndex": 0, "correct": 2}
    {"type": "explanation", "content": "...", "correct": 2}
    {"type": "correct_answer", "correct": 2}
    {"type": "complete", "content": "Question generation complete", "correct": 2}
    {"type": "error", "content": "Failed to generate question"}

"thinking" lines are progress chatter and carry nothing the engine uses.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from loguru import logger


class EventType(str, Enum):
    THINKING = "thinking"
    QUESTION_TEXT = "question_text"
    OPTION = "option"
    EXPLANATION = "explanation"
    CORRECT_ANSWER = "correct_answer"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True)
class ContentEvent:
    """One typed event from the generation stream."""

    type: EventType
    content: str = ""
    option_index: int | None = None
    correct: int | None = None

    def to_line(self) -> str:
        """Encode as one wire line (without the trailing newline)."""
        data: dict[str, Any] = {"type": self.type.value}
        if self.content:
            data["content"] = self.content
        if self.option_index is not None:
            data["optionIndex"] = self.option_index
        if self.correct is not None:
            data["correct"] = self.correct
        return json.dumps(data)


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return None


def parse_event(line: str) -> ContentEvent | None:
    """
    Parse one wire line.

    Returns None for blank, malformed or unknown-type lines; the stream
    carries on past them.
    """
    line = line.strip()
    if not line:
        return None
    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        logger.debug(f"Skipping malformed stream line: {line[:80]}")
        return None
    if not isinstance(data, dict):
        return None

    try:
        event_type = EventType(data.get("type"))
    except ValueError:
        logger.debug(f"Skipping unknown stream event type: {data.get('type')!r}")
        return None

    content = data.get("content")
    return ContentEvent(
        type=event_type,
        content=content if isinstance(content, str) else "",
        option_index=_as_int(data.get("optionIndex")),
        correct=_as_int(data.get("correct")),
    )


# =============================================================================
# Requests
# =============================================================================


@dataclass
class ContentRequest:
    """What to generate: one question (or flashcard) for one objective."""

    profile_id: str
    objective_id: str
    question_type: str = "multiple_choice"
    difficulty: str = "medium"
    exam_mode: str = "practice"
    avoid_question_ids: list[str] = field(default_factory=list)
    focus_area: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Question request body, in the service's camelCase."""
        payload: dict[str, Any] = {
            "examId": self.profile_id,
            "objectiveId": self.objective_id,
            "questionType": self.question_type,
            "examMode": self.exam_mode,
            "difficulty": self.difficulty,
            "previousQuestions": list(self.avoid_question_ids),
        }
        if self.focus_area:
            payload["focusArea"] = self.focus_area
        return payload

    def to_flashcard_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"examId": self.profile_id, "objectiveId": self.objective_id}
        if self.focus_area:
            payload["focusArea"] = self.focus_area
        return payload
