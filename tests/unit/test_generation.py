"""
Unit tests for the generation wire format and question assembly.
"""

import pytest

from certprep.core.exceptions import GenerationFailure
from certprep.generation.assembler import (
    assemble_flashcard,
    assemble_question,
    placeholder_flashcard,
    placeholder_question,
    question_id_for,
)
from certprep.generation.events import ContentEvent, ContentRequest, EventType, parse_event


async def stream(*events):
    for event in events:
        yield event


def full_question(correct=1):
    return [
        ContentEvent(EventType.QUESTION_TEXT, "Which service "),
        ContentEvent(EventType.QUESTION_TEXT, "stores objects?"),
        ContentEvent(EventType.OPTION, "Amazon EC2", option_index=0),
        ContentEvent(EventType.OPTION, "Amazon ", option_index=1),
        ContentEvent(EventType.OPTION, "S3", option_index=1),
        ContentEvent(EventType.OPTION, "Amazon VPC", option_index=2),
        ContentEvent(EventType.EXPLANATION, "S3 is object storage."),
        ContentEvent(EventType.CORRECT_ANSWER, correct=correct),
        ContentEvent(EventType.COMPLETE, "Question generation complete"),
    ]


class TestParseEvent:
    def test_option_line(self):
        event = parse_event('{"type": "option", "content": "Amazon S3", "optionIndex": 2, "correct": 1}')

        assert event == ContentEvent(EventType.OPTION, "Amazon S3", option_index=2, correct=1)

    def test_blank_and_malformed_lines_skipped(self):
        assert parse_event("") is None
        assert parse_event("   ") is None
        assert parse_event("{oops") is None
        assert parse_event("[1, 2]") is None
        assert parse_event('{"type": "unknown"}') is None

    def test_string_indexes_coerced(self):
        event = parse_event('{"type": "correct_answer", "correct": "3"}')

        assert event.correct == 3

    def test_line_round_trip(self):
        event = ContentEvent(EventType.EXPLANATION, "Because", correct=2)

        assert parse_event(event.to_line()) == event


class TestContentRequest:
    def test_payload_is_camel_case(self):
        request = ContentRequest(
            profile_id="aws-saa",
            objective_id="design-resilient-architectures",
            difficulty="hard",
            exam_mode="mock",
            avoid_question_ids=["q-1", "q-2"],
        )

        payload = request.to_payload()

        assert payload == {
            "examId": "aws-saa",
            "objectiveId": "design-resilient-architectures",
            "questionType": "multiple_choice",
            "examMode": "mock",
            "difficulty": "hard",
            "previousQuestions": ["q-1", "q-2"],
        }

    def test_focus_area_only_when_set(self):
        request = ContentRequest("aws-saa", "obj", focus_area="IAM")

        assert request.to_payload()["focusArea"] == "IAM"
        assert request.to_flashcard_payload() == {"examId": "aws-saa", "objectiveId": "obj", "focusArea": "IAM"}


class TestAssembleQuestion:
    @pytest.mark.asyncio
    async def test_accumulates_chunks(self):
        question = await assemble_question(stream(*full_question()), "obj-a", "easy")

        assert question.text == "Which service stores objects?"
        assert question.options == ["Amazon EC2", "Amazon S3", "Amazon VPC"]
        assert question.correct_index == 1
        assert question.explanation == "S3 is object storage."
        assert question.difficulty == "easy"
        assert question.placeholder is False
        assert question.question_id == question_id_for("obj-a", "Which service stores objects?")

    @pytest.mark.asyncio
    async def test_last_correct_index_wins(self):
        events = full_question(correct=1)
        events.insert(0, ContentEvent(EventType.QUESTION_TEXT, "", correct=0))

        question = await assemble_question(stream(*events), "obj-a")

        assert question.correct_index == 1

    @pytest.mark.asyncio
    async def test_error_event(self):
        events = [ContentEvent(EventType.QUESTION_TEXT, "Partial"), ContentEvent(EventType.ERROR, "model overloaded")]

        with pytest.raises(GenerationFailure, match="model overloaded"):
            await assemble_question(stream(*events), "obj-a")

    @pytest.mark.asyncio
    async def test_stream_ends_without_complete(self):
        with pytest.raises(GenerationFailure, match="before the question was complete"):
            await assemble_question(stream(*full_question()[:-1]), "obj-a")

    @pytest.mark.asyncio
    async def test_correct_index_out_of_range(self):
        with pytest.raises(GenerationFailure, match="out of range"):
            await assemble_question(stream(*full_question(correct=5)), "obj-a")

    @pytest.mark.asyncio
    async def test_gap_in_options(self):
        events = [e for e in full_question() if e.option_index != 1]

        with pytest.raises(GenerationFailure, match="not contiguous"):
            await assemble_question(stream(*events), "obj-a")

    @pytest.mark.asyncio
    async def test_missing_explanation(self):
        events = [e for e in full_question() if e.type is not EventType.EXPLANATION]

        with pytest.raises(GenerationFailure, match="no explanation"):
            await assemble_question(stream(*events), "obj-a")

    @pytest.mark.asyncio
    async def test_events_after_complete_ignored(self):
        events = full_question() + [ContentEvent(EventType.OPTION, "Late", option_index=3)]

        question = await assemble_question(stream(*events), "obj-a")

        assert len(question.options) == 3


class TestPlaceholders:
    def test_placeholder_question_is_flagged(self):
        question = placeholder_question("obj-a", "Cloud Concepts")

        assert question.placeholder is True
        assert "Cloud Concepts" in question.text
        assert len(question.options) >= 2

    def test_placeholder_flashcard(self):
        card = placeholder_flashcard("obj-a", "Cloud Concepts")

        assert card.flashcard_id.startswith("placeholder-")
        assert card.title == "Cloud Concepts"


class TestAssembleFlashcard:
    def test_wrapped_payload(self):
        card = assemble_flashcard(
            {"success": True, "flashcard": {"title": "IAM", "content": "Identity", "tags": ["security"]}},
            "obj-b",
        )

        assert card.title == "IAM"
        assert card.objective_id == "obj-b"
        assert card.tags == ["security"]
        assert card.flashcard_id.startswith("fc-")

    def test_front_back_payload(self):
        card = assemble_flashcard({"id": "fc-7", "front": "KMS", "back": "Key management"}, "obj-b")

        assert (card.flashcard_id, card.title, card.content) == ("fc-7", "KMS", "Key management")

    def test_error_or_incomplete(self):
        with pytest.raises(GenerationFailure):
            assemble_flashcard({"error": "quota exceeded"}, "obj-b")
        with pytest.raises(GenerationFailure):
            assemble_flashcard({"flashcard": {"title": "Only a title"}}, "obj-b")
        with pytest.raises(GenerationFailure):
            assemble_flashcard({"flashcard": "text"}, "obj-b")
