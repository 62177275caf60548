"""
Content generation clients.

HttpContentGenerator talks to the generation service over HTTP, streaming
question events line by line. StaticContentGenerator builds questions
from the catalog's key topics and is used offline and in tests.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import AsyncIterator
from typing import Any, Protocol

import httpx
from loguru import logger

from certprep.catalog.profiles import ExamProfile
from certprep.config import Settings, get_settings
from certprep.core.exceptions import GenerationFailure
from certprep.generation.events import ContentEvent, ContentRequest, EventType, parse_event

# Fills out the options when the other objectives supply too few topics
GENERIC_DISTRACTORS = [
    "None of the listed topics",
    "Vendor billing procedures",
    "Hardware procurement",
    "Office productivity tooling",
]


class ContentGenerator(Protocol):
    """Anything that can stream question events and fetch flashcards."""

    def stream_question(self, request: ContentRequest) -> AsyncIterator[ContentEvent]:
        ...

    async def fetch_flashcard(self, request: ContentRequest) -> dict[str, Any]:
        ...


class HttpContentGenerator:
    """HTTP client for the question/flashcard generation service."""

    def __init__(
        self,
        base_url: str,
        question_path: str = "/api/v2/generate-question",
        flashcard_path: str = "/api/v2/generate-flashcard",
        timeout_seconds: float = 60.0,
        retry_attempts: int = 2,
        backoff_seconds: float = 1.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the generator client.

        Args:
            base_url: Service root, e.g. http://localhost:3000
            timeout_seconds: Per-request timeout
            retry_attempts: Extra tries on connect errors and timeouts
            backoff_seconds: First retry delay, doubled on each further retry
            client: Pre-built AsyncClient (tests pass one with a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.question_url = f"{self.base_url}{question_path}"
        self.flashcard_url = f"{self.base_url}{flashcard_path}"
        self.retry_attempts = retry_attempts
        self.backoff_seconds = backoff_seconds
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            follow_redirects=True,
        )

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> HttpContentGenerator:
        settings = settings or get_settings()
        return cls(
            base_url=settings.generator_url,
            question_path=settings.generator_question_path,
            flashcard_path=settings.generator_flashcard_path,
            timeout_seconds=settings.generator_timeout_seconds,
            retry_attempts=settings.generator_retry_attempts,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> HttpContentGenerator:
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def _backoff(self, attempt: int, error: Exception) -> None:
        wait_time = self.backoff_seconds * (2**attempt)
        logger.warning(
            f"Generation request failed on attempt {attempt + 1}/{self.retry_attempts + 1}: {error}. "
            f"Retrying in {wait_time:.1f}s..."
        )
        await asyncio.sleep(wait_time)

    async def stream_question(self, request: ContentRequest) -> AsyncIterator[ContentEvent]:
        """
        Stream question events for one request.

        Connection errors and timeouts are retried with exponential backoff
        until the first event arrives; after that a broken stream is a
        GenerationFailure, since replaying would duplicate chunks.

        Raises:
            GenerationFailure: HTTP error status, retries exhausted, or stream broken
        """
        payload = request.to_payload()
        last_error: Exception | None = None

        for attempt in range(self.retry_attempts + 1):
            started = False
            try:
                async with self.client.stream("POST", self.question_url, json=payload) as response:
                    if response.status_code >= 400:
                        await response.aread()
                        raise GenerationFailure(
                            f"Question service returned HTTP {response.status_code}",
                            retryable=response.status_code >= 500,
                        )
                    async for line in response.aiter_lines():
                        event = parse_event(line)
                        if event is None or event.type is EventType.THINKING:
                            continue
                        started = True
                        yield event
                        if event.type in (EventType.COMPLETE, EventType.ERROR):
                            return
                return

            except httpx.RequestError as e:
                if started:
                    raise GenerationFailure(f"Question stream interrupted: {e}") from e
                last_error = e
                if attempt < self.retry_attempts:
                    await self._backoff(attempt, e)

        raise GenerationFailure(
            f"Question service unreachable after {self.retry_attempts + 1} attempts: {last_error}"
        )

    async def fetch_flashcard(self, request: ContentRequest) -> dict[str, Any]:
        """
        Request one flashcard.

        Raises:
            GenerationFailure: HTTP error status, bad JSON, or retries exhausted
        """
        last_error: Exception | None = None

        for attempt in range(self.retry_attempts + 1):
            try:
                response = await self.client.post(self.flashcard_url, json=request.to_flashcard_payload())
                response.raise_for_status()
                data = response.json()
                if not isinstance(data, dict):
                    raise GenerationFailure("Flashcard service returned a non-object body")
                return data

            except httpx.HTTPStatusError as e:
                raise GenerationFailure(
                    f"Flashcard service returned HTTP {e.response.status_code}",
                    retryable=e.response.status_code >= 500,
                ) from e
            except ValueError as e:
                raise GenerationFailure(f"Flashcard service returned invalid JSON: {e}") from e
            except httpx.RequestError as e:
                last_error = e
                if attempt < self.retry_attempts:
                    await self._backoff(attempt, e)

        raise GenerationFailure(
            f"Flashcard service unreachable after {self.retry_attempts + 1} attempts: {last_error}"
        )


class StaticContentGenerator:
    """
    Offline generator built from the catalog.

    Each question asks which key topic belongs to the objective; the
    distractors are key topics of the profile's other objectives, padded
    with generic ones when a profile has too few.
    """

    def __init__(self, profile: ExamProfile, seed: int | None = None):
        self.profile = profile
        self.rng = random.Random(seed)

    def _question(self, request: ContentRequest) -> tuple[str, list[str], int, str]:
        objective = self.profile.get_objective(request.objective_id)
        if objective is None:
            raise GenerationFailure(f"Unknown objective '{request.objective_id}'", retryable=False)

        own_topics = list(objective.key_topics) or [objective.title]
        others = [
            topic
            for other in self.profile.objectives
            if other.id != objective.id
            for topic in (other.key_topics or [other.title])
            if topic not in own_topics
        ]
        wanted = self.profile.constraints.option_count - 1
        answer = self.rng.choice(own_topics)
        distractors = self.rng.sample(others, min(wanted, len(others)))
        fillers = [d for d in GENERIC_DISTRACTORS if d not in own_topics and d not in distractors]
        distractors += fillers[: wanted - len(distractors)]
        options = distractors + [answer]
        self.rng.shuffle(options)
        correct = options.index(answer)

        text = f"Which of the following topics is covered by '{objective.title}'?"
        if request.focus_area:
            text = f"{text} (Focus: {request.focus_area})"
        explanation = f"'{answer}' is a key topic of {objective.title}: {objective.description}".rstrip(": ")
        return text, options, correct, explanation

    async def stream_question(self, request: ContentRequest) -> AsyncIterator[ContentEvent]:
        text, options, correct, explanation = self._question(request)
        yield ContentEvent(EventType.QUESTION_TEXT, text)
        for index, option in enumerate(options):
            yield ContentEvent(EventType.OPTION, option, option_index=index, correct=correct)
        yield ContentEvent(EventType.EXPLANATION, explanation, correct=correct)
        yield ContentEvent(EventType.COMPLETE, "Question generation complete", correct=correct)

    async def fetch_flashcard(self, request: ContentRequest) -> dict[str, Any]:
        objective = self.profile.get_objective(request.objective_id)
        if objective is None:
            raise GenerationFailure(f"Unknown objective '{request.objective_id}'", retryable=False)
        topic = request.focus_area or self.rng.choice(list(objective.key_topics) or [objective.title])
        return {
            "success": True,
            "flashcard": {
                "title": topic,
                "content": f"{topic}: part of {objective.title}. {objective.description}".strip(),
                "tags": [objective.id, objective.level],
                "objectiveId": objective.id,
            },
        }
