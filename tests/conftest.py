"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests:
a two-objective exam profile, settings isolated from the environment,
a controllable clock, an in-memory store and a scripted content generator.
"""

import asyncio
import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from certprep.catalog.profiles import CatalogReader, ExamProfile
from certprep.config import Settings
from certprep.core.exceptions import GenerationFailure
from certprep.generation.assembler import GeneratedQuestion
from certprep.generation.events import ContentEvent, EventType
from certprep.session.engine import StudySessionEngine
from certprep.session.store import InMemorySessionStore


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (whole engine, real stores)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Helpers
# =============================================================================


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 3, 2, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class ScriptedGenerator:
    """
    Content generator double.

    Streams a four-option question whose correct answer is `correct`.
    Set `fail` to make requests raise, or `gate` to hold a request open
    until the test releases it.
    """

    def __init__(self, correct: int = 0, fail: bool = False):
        self.correct = correct
        self.fail = fail
        self.gate: asyncio.Event | None = None
        self.requests = []
        self.flashcard_requests = []

    async def stream_question(self, request):
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise GenerationFailure("service unavailable")
        number = len(self.requests)
        yield ContentEvent(EventType.QUESTION_TEXT, f"Question {number} about {request.objective_id}?")
        for index, option in enumerate(["Alpha", "Bravo", "Charlie", "Delta"]):
            yield ContentEvent(EventType.OPTION, option, option_index=index, correct=self.correct)
        yield ContentEvent(EventType.EXPLANATION, "Because it is.", correct=self.correct)
        yield ContentEvent(EventType.COMPLETE, "done", correct=self.correct)

    async def fetch_flashcard(self, request):
        self.flashcard_requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise GenerationFailure("service unavailable")
        return {"success": True, "flashcard": {"title": f"Card for {request.objective_id}", "content": "Back side"}}


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def settings(tmp_path):
    """Settings that ignore the environment and write under tmp_path."""
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        store_backend="memory",
        mock_break_seconds=300,
        default_questions_per_objective=5,
    )


@pytest.fixture
def profile_data():
    """Raw catalog document for a small two-objective exam."""
    return {
        "id": "test-exam",
        "name": "Test Exam",
        "provider": "Test",
        "objectives": [
            {
                "id": "obj-a",
                "title": "Cloud Concepts",
                "weight": 60,
                "difficulty": "beginner",
                "key_topics": ["Elasticity", "Agility", "Economies of scale"],
            },
            {
                "id": "obj-b",
                "title": "Security",
                "weight": 40,
                "difficulty": "intermediate",
                "key_topics": ["IAM", "Encryption", "Shared responsibility"],
            },
        ],
        "question_types": ["multiple-choice"],
        "constraints": {
            "total_questions": 10,
            "time_minutes": 20,
            "passing_score": 70,
            "efficient_questions": 4,
        },
        "study_settings": {"default_questions_per_objective": 2},
    }


@pytest.fixture
def profile(profile_data):
    return ExamProfile.model_validate(profile_data)


@pytest.fixture
def catalog(profile, settings):
    return CatalogReader(profiles=[profile], settings=settings)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def generator():
    return ScriptedGenerator()


@pytest.fixture
def engine(catalog, store, generator, settings, clock):
    return StudySessionEngine(catalog, store, generator=generator, settings=settings, now=clock)


@pytest.fixture
def answer(clock):
    """
    Present, select and submit one question on the engine's current objective.

    Usage: answer(engine, correct=True, seconds=60)
    """

    def _answer(engine, correct=True, seconds=60.0, objective_id=None, question_id=None):
        objective_id = objective_id or engine.session.current_objective_id
        number = engine.totals.questions_answered + 1
        question = GeneratedQuestion(
            question_id=question_id or f"q-{number}-{objective_id}",
            objective_id=objective_id,
            text=f"Question {number}?",
            options=["right", "wrong"],
            correct_index=0,
            explanation="Explained.",
        )
        engine.present_question(question)
        engine.select_option(0 if correct else 1)
        clock.advance(seconds)
        return engine.submit_answer()

    return _answer
