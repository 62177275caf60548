"""
Assembles streamed events into one question (or flashcard payload into one card).

The engine calls assemble_question once per generation request and only
ever sees the finished GeneratedQuestion.
"""

from __future__ import annotations

import hashlib
from collections.abc import AsyncIterable
from dataclasses import dataclass, field
from typing import Any

from certprep.core.exceptions import GenerationFailure
from certprep.generation.events import ContentEvent, EventType


def question_id_for(objective_id: str, text: str) -> str:
    """Stable id for a question, used to avoid repeats."""
    digest = hashlib.sha1(f"{objective_id}|{text.strip()}".encode("utf-8")).hexdigest()
    return f"q-{digest[:12]}"


@dataclass
class GeneratedQuestion:
    question_id: str
    objective_id: str
    text: str
    options: list[str]
    correct_index: int
    explanation: str
    difficulty: str = "medium"
    placeholder: bool = False


@dataclass
class GeneratedFlashcard:
    flashcard_id: str
    objective_id: str
    title: str
    content: str
    difficulty: str = "medium"
    tags: list[str] = field(default_factory=list)


async def assemble_question(
    events: AsyncIterable[ContentEvent],
    objective_id: str,
    difficulty: str = "medium",
) -> GeneratedQuestion:
    """
    Accumulate a stream into a question.

    Text and explanation chunks are concatenated; option chunks are
    concatenated per optionIndex. The correct index is taken from the
    last event that carries one.

    Raises:
        GenerationFailure: error event, stream ended before completion,
            or the finished question is unusable
    """
    text_parts: list[str] = []
    explanation_parts: list[str] = []
    options: dict[int, str] = {}
    correct: int | None = None
    completed = False
    error: str | None = None

    async for event in events:
        # Drain rather than break so the producer can close its connection
        if completed or error is not None:
            continue
        if event.correct is not None and event.correct >= 0:
            correct = event.correct

        if event.type is EventType.ERROR:
            error = event.content or "Content service reported an error"
        elif event.type is EventType.QUESTION_TEXT:
            text_parts.append(event.content)
        elif event.type is EventType.OPTION:
            index = event.option_index if event.option_index is not None else len(options)
            options[index] = options.get(index, "") + event.content
        elif event.type is EventType.EXPLANATION:
            explanation_parts.append(event.content)
        elif event.type is EventType.COMPLETE:
            completed = True

    if error is not None:
        raise GenerationFailure(error)
    if not completed:
        raise GenerationFailure("Stream ended before the question was complete")

    text = "".join(text_parts).strip()
    explanation = "".join(explanation_parts).strip()
    if sorted(options) != list(range(len(options))):
        raise GenerationFailure(f"Option indexes are not contiguous: {sorted(options)}")
    option_list = [options[i].strip() for i in range(len(options))]

    if not text:
        raise GenerationFailure("Question text is empty")
    if len(option_list) < 2 or any(not o for o in option_list):
        raise GenerationFailure(f"Question needs at least two non-empty options, got {len(option_list)}")
    if correct is None or not 0 <= correct < len(option_list):
        raise GenerationFailure(f"Correct index {correct} out of range for {len(option_list)} options")
    if not explanation:
        raise GenerationFailure("Question has no explanation")

    return GeneratedQuestion(
        question_id=question_id_for(objective_id, text),
        objective_id=objective_id,
        text=text,
        options=option_list,
        correct_index=correct,
        explanation=explanation,
        difficulty=difficulty,
    )


def placeholder_question(objective_id: str, title: str, difficulty: str = "medium") -> GeneratedQuestion:
    """
    Stand-in shown when generation fails, so the learner is never stuck.

    Answers to a placeholder are not recorded as attempts.
    """
    return GeneratedQuestion(
        question_id=f"placeholder-{objective_id}",
        objective_id=objective_id,
        text=(
            f"New questions for '{title}' could not be generated right now. "
            "Continue to try again."
        ),
        options=["Try again", "Review history instead"],
        correct_index=0,
        explanation="This placeholder is not scored.",
        difficulty=difficulty,
        placeholder=True,
    )


def assemble_flashcard(
    payload: dict[str, Any],
    objective_id: str,
    difficulty: str = "medium",
) -> GeneratedFlashcard:
    """
    Build a flashcard from the service's JSON response.

    Accepts either the full response ({"success": true, "flashcard": {...}})
    or the bare flashcard object.
    """
    if payload.get("error"):
        raise GenerationFailure(str(payload["error"]))
    card = payload.get("flashcard", payload)
    if not isinstance(card, dict):
        raise GenerationFailure("Flashcard payload is not an object")

    title = str(card.get("title") or card.get("front") or "").strip()
    content = str(card.get("content") or card.get("back") or "").strip()
    if not title or not content:
        raise GenerationFailure("Flashcard needs both a title and content")

    tags = card.get("tags") or []
    if not isinstance(tags, list):
        tags = [str(tags)]

    digest = hashlib.sha1(f"{objective_id}|{title}".encode("utf-8")).hexdigest()
    return GeneratedFlashcard(
        flashcard_id=str(card.get("id") or f"fc-{digest[:12]}"),
        objective_id=str(card.get("objectiveId") or objective_id),
        title=title,
        content=content,
        difficulty=str(card.get("difficulty") or difficulty),
        tags=[str(t) for t in tags],
    )


def placeholder_flashcard(objective_id: str, title: str, difficulty: str = "medium") -> GeneratedFlashcard:
    """Stand-in card shown when the flashcard service fails."""
    return GeneratedFlashcard(
        flashcard_id=f"placeholder-{objective_id}",
        objective_id=objective_id,
        title=title,
        content="A new card could not be generated right now. Review this objective's key topics and try again.",
        difficulty=difficulty,
        tags=[objective_id, "placeholder"],
    )
