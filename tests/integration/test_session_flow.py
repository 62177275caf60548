"""
Integration Tests for the Study Session Flow.

Drives StudySessionEngine end to end with the scripted generator:
1. Practice, efficient and mock sessions from start to results
2. Presentation mode switches mid-session
3. Stale generation results arriving after the learner moved on
4. Resume through the JSON file and SQLite stores
"""

import asyncio

import pytest
from typer.testing import CliRunner

from certprep.cli.main import app
from certprep.core.exceptions import SessionStateError
from certprep.core.mastery import MasteryLevel
from certprep.core.models import BreakState, ExamMode, PresentationMode, SessionConfig, SessionEndReason
from certprep.session.engine import StudySessionEngine
from certprep.session.sql_store import SqlSessionStore
from certprep.session.store import JsonFileSessionStore

pytestmark = pytest.mark.integration


def assert_totals_consistent(session):
    assert session.total_questions_answered == sum(p.questions_attempted for p in session.progress)
    assert session.total_correct_answers == sum(p.questions_correct for p in session.progress)


class TestPracticeSession:
    def test_two_objectives_one_question_each(self, engine, answer):
        engine.start(SessionConfig("test-exam", questions_per_objective=1))

        assert answer(engine, correct=True).advanced_to == "obj-b"
        answer(engine, correct=False)

        totals = engine.totals
        assert totals.questions_answered == 2
        assert totals.correct_answers == 1
        assert totals.session_score == 50.0
        assert engine.session.progress_for("obj-a").mastery_level is MasteryLevel.MASTERY
        assert engine.session.progress_for("obj-b").mastery_level is MasteryLevel.NOVICE

        results = engine.exit()
        assert results.overall_score == 50.0
        assert results.end_reason is SessionEndReason.EXITED

    def test_practice_wraps_and_keeps_going(self, engine, answer):
        engine.start(SessionConfig("test-exam", questions_per_objective=1))

        for _ in range(4):
            answer(engine)

        assert not engine.is_complete
        assert engine.session.lap == 2
        assert engine.current_objective.id == "obj-a"
        assert engine.session.progress_for("obj-a").questions_attempted == 2

    def test_totals_stay_consistent(self, engine, answer):
        engine.start(SessionConfig("test-exam"))
        pattern = [True, False, False, True, True, False, True]

        seen = []
        for correct in pattern:
            answer(engine, correct=correct)
            assert_totals_consistent(engine.session)
            seen.append(engine.totals.questions_answered)
        engine.record_flashcard_attempt("fc-1", "obj-a", "good", 10.0)

        assert seen == list(range(1, len(pattern) + 1))
        assert engine.totals.correct_answers == 4
        assert_totals_consistent(engine.session)
        # every attempt is counted toward exactly one objective
        sequences = [a.sequence for a in engine.history()]
        assert sequences == sorted(set(sequences))

    def test_no_advance_before_target(self, engine, answer):
        engine.start(SessionConfig("test-exam", questions_per_objective=3))

        answer(engine)
        answer(engine)
        engine.advance()

        assert engine.current_objective.id == "obj-a"
        answer(engine)
        assert engine.current_objective.id == "obj-b"

    def test_derived_fields_recompute_identically(self, engine, answer):
        engine.start(SessionConfig("test-exam"))
        for correct in (True, False, True):
            answer(engine, correct=correct)

        progress = engine.session.progress_for("obj-a")
        first = (progress.average_score, progress.mastery_level, engine.totals)
        second = (progress.average_score, progress.mastery_level, engine.totals)

        assert first == second


class TestEfficientSession:
    def test_auto_completes_at_budget(self, engine, answer):
        session = engine.start(SessionConfig("test-exam", exam_mode=ExamMode.EFFICIENT, question_budget=3))
        assert session.targets == {"obj-a": 2, "obj-b": 1}

        assert answer(engine, correct=True).session_ended is False
        assert answer(engine, correct=True).advanced_to == "obj-b"
        outcome = answer(engine, correct=False)

        assert outcome.end_reason is SessionEndReason.COMPLETED
        assert engine.totals.questions_answered == 3
        results = engine.results
        assert results.overall_score == 66.7
        assert results.passed is False
        assert results.prediction is not None
        with pytest.raises(SessionStateError):
            engine.record_question_attempt("obj-a", True, 10.0)

    def test_profile_budget(self, engine, answer):
        engine.start(SessionConfig("test-exam", exam_mode=ExamMode.EFFICIENT))

        for _ in range(3):
            answer(engine)
        assert not engine.is_complete
        answer(engine)

        assert engine.is_complete
        assert engine.results.passed is True


class TestMockSession:
    def test_time_expires_before_budget(self, engine, clock, answer):
        engine.start(SessionConfig("test-exam", exam_mode=ExamMode.MOCK))
        for _ in range(3):
            answer(engine, seconds=60)

        clock.advance(20 * 60)

        assert engine.tick() is SessionEndReason.TIME_EXPIRED
        assert engine.totals.questions_answered == 3
        assert engine.time_remaining == 0
        assert engine.results.end_reason is SessionEndReason.TIME_EXPIRED

    def test_budget_exhausted_with_time_left(self, engine, answer):
        engine.start(SessionConfig("test-exam", exam_mode=ExamMode.MOCK, question_budget=4))

        outcomes = [answer(engine, seconds=10) for _ in range(4)]

        assert outcomes[-1].end_reason is SessionEndReason.COMPLETED
        assert engine.time_remaining > 0

    def test_skipped_break_is_forfeited(self, engine, answer):
        engine.start(SessionConfig("test-exam", exam_mode=ExamMode.MOCK))

        for _ in range(6):
            answer(engine, seconds=10)

        assert engine.break_state is BreakState.FORFEITED


class TestModeSwitching:
    @pytest.mark.asyncio
    async def test_history_round_trip_preserves_attempts(self, engine, generator):
        engine.start(SessionConfig("test-exam", questions_per_objective=5))
        for option in (0, 2):
            await engine.generate_question()
            engine.select_option(option)
            engine.submit_answer(time_spent=30.0)
        before = [a.to_dict() for a in engine.history()]

        engine.switch_mode(PresentationMode.HISTORY)
        assert [a.to_dict() for a in engine.history()] == before
        outcome = engine.switch_mode(PresentationMode.QUIZ)

        assert outcome.needs_content is True
        assert [a.to_dict() for a in engine.history()] == before
        assert [a.correct for a in engine.history()] == [True, False]
        assert len(generator.requests) == 2

    @pytest.mark.asyncio
    async def test_stale_question_not_applied_to_new_objective(self, engine, generator):
        engine.start(SessionConfig("test-exam"))
        generator.gate = asyncio.Event()

        pending = asyncio.create_task(engine.generate_question())
        await asyncio.sleep(0)
        engine.select_objective("obj-b")
        generator.gate.set()

        assert await pending is None
        assert engine.session.pending_question is None
        assert engine.totals.questions_answered == 0

        generator.gate = None
        fresh = await engine.generate_question()
        assert fresh.objective_id == "obj-b"
        assert engine.session.pending_question.objective_id == "obj-b"


class TestResume:
    @pytest.fixture(params=["json", "sqlite"])
    def durable_store(self, request, tmp_path):
        if request.param == "json":
            return JsonFileSessionStore(tmp_path / "sessions")
        return SqlSessionStore(f"sqlite:///{tmp_path / 'sessions.db'}")

    def test_resume_after_restart(self, durable_store, catalog, generator, settings, clock, answer):
        first = StudySessionEngine(catalog, durable_store, generator=generator, settings=settings, now=clock)
        first.start(SessionConfig("test-exam", exam_mode=ExamMode.MOCK))
        for correct in (True, False, True):
            answer(first, correct=correct, seconds=45)

        clock.advance(30)
        second = StudySessionEngine(catalog, durable_store, generator=generator, settings=settings, now=clock)
        session = second.resume("test-exam", ExamMode.MOCK)

        assert session.session_id == first.session.session_id
        assert second.totals == first.totals
        assert [a.to_dict() for a in second.history()] == [a.to_dict() for a in first.history()]
        assert second.time_remaining == 1200 - 3 * 45 - 30

    def test_resume_after_time_ran_out(self, durable_store, catalog, settings, clock, answer):
        first = StudySessionEngine(catalog, durable_store, settings=settings, now=clock)
        first.start(SessionConfig("test-exam", exam_mode=ExamMode.MOCK))
        answer(first)

        clock.advance(3600)
        second = StudySessionEngine(catalog, durable_store, settings=settings, now=clock)
        session = second.resume("test-exam", "mock")

        assert session.end_reason is SessionEndReason.TIME_EXPIRED
        assert second.results.total_questions == 1


class TestCli:
    runner = CliRunner()

    def test_profiles(self):
        result = self.runner.invoke(app, ["profiles"])

        assert result.exit_code == 0
        assert "cfa-l1" in result.output

    def test_unknown_profile(self):
        result = self.runner.invoke(app, ["objectives", "no-such-exam"])

        assert result.exit_code == 1

    def test_version(self):
        result = self.runner.invoke(app, ["version"])

        assert result.exit_code == 0
        assert "certprep" in result.output
