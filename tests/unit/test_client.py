"""
Unit tests for the content generation clients.

HTTP traffic is served by httpx.MockTransport, so nothing leaves the process.
"""

import json

import httpx
import pytest

from certprep.catalog.profiles import ExamProfile
from certprep.core.exceptions import GenerationFailure
from certprep.generation.assembler import assemble_question
from certprep.generation.client import GENERIC_DISTRACTORS, HttpContentGenerator, StaticContentGenerator
from certprep.generation.events import ContentRequest, EventType

QUESTION_LINES = [
    {"type": "thinking", "content": "Analyzing objective"},
    {"type": "question_text", "content": "Which pillar covers recovery?"},
    {"type": "option", "content": "Reliability", "optionIndex": 0, "correct": 0},
    {"type": "option", "content": "Cost Optimization", "optionIndex": 1, "correct": 0},
    {"type": "explanation", "content": "Reliability includes recovery.", "correct": 0},
    {"type": "complete", "content": "Question generation complete", "correct": 0},
]


def ndjson(lines):
    return ("\n".join(json.dumps(line) for line in lines) + "\n").encode("utf-8")


def make_generator(handler, retry_attempts=2):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpContentGenerator(
        "http://generator.test",
        retry_attempts=retry_attempts,
        backoff_seconds=0,
        client=client,
    )


@pytest.fixture
def request_():
    return ContentRequest(profile_id="aws-saa", objective_id="resilience", difficulty="medium", avoid_question_ids=["q-1"])


async def collect(generator, request):
    return [event async for event in generator.stream_question(request)]


class TestStreamQuestion:
    @pytest.mark.asyncio
    async def test_streams_events_and_posts_payload(self, request_):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, content=ndjson(QUESTION_LINES))

        generator = make_generator(handler)
        events = await collect(generator, request_)
        await generator.close()

        assert seen["url"] == "http://generator.test/api/v2/generate-question"
        assert seen["body"]["objectiveId"] == "resilience"
        assert seen["body"]["previousQuestions"] == ["q-1"]
        # thinking chatter is dropped
        assert [e.type for e in events][0] is EventType.QUESTION_TEXT
        assert events[-1].type is EventType.COMPLETE

    @pytest.mark.asyncio
    async def test_assembles_end_to_end(self, request_):
        generator = make_generator(lambda r: httpx.Response(200, content=ndjson(QUESTION_LINES)))

        question = await assemble_question(generator.stream_question(request_), "resilience")

        assert question.options == ["Reliability", "Cost Optimization"]
        assert question.correct_index == 0

    @pytest.mark.asyncio
    async def test_retries_connect_errors(self, request_):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                raise httpx.ConnectError("connection refused", request=request)
            return httpx.Response(200, content=ndjson(QUESTION_LINES))

        events = await collect(make_generator(handler), request_)

        assert len(calls) == 3
        assert events[-1].type is EventType.COMPLETE

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self, request_):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(GenerationFailure, match="unreachable after 2 attempts"):
            await collect(make_generator(handler, retry_attempts=1), request_)

    @pytest.mark.asyncio
    async def test_server_error_is_retryable_failure(self, request_):
        generator = make_generator(lambda r: httpx.Response(503, text="busy"))

        with pytest.raises(GenerationFailure) as exc_info:
            await collect(generator, request_)

        assert exc_info.value.retryable is True

    @pytest.mark.asyncio
    async def test_client_error_not_retryable(self, request_):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json={"error": "bad objective"})

        with pytest.raises(GenerationFailure) as exc_info:
            await collect(make_generator(handler), request_)

        assert exc_info.value.retryable is False
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_broken_stream_after_first_event(self, request_):
        class BrokenStream(httpx.AsyncByteStream):
            async def __aiter__(self):
                yield ndjson(QUESTION_LINES[1:2])
                raise httpx.ReadError("connection reset")

        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, stream=BrokenStream())

        with pytest.raises(GenerationFailure, match="interrupted"):
            await collect(make_generator(handler), request_)
        assert len(calls) == 1


class TestFetchFlashcard:
    @pytest.mark.asyncio
    async def test_returns_json(self, request_):
        body = {"success": True, "flashcard": {"title": "Multi-AZ", "content": "Standby in another AZ"}}

        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v2/generate-flashcard"
            return httpx.Response(200, json=body)

        assert await make_generator(handler).fetch_flashcard(request_) == body

    @pytest.mark.asyncio
    async def test_http_error(self, request_):
        generator = make_generator(lambda r: httpx.Response(500, text="boom"))

        with pytest.raises(GenerationFailure, match="HTTP 500"):
            await generator.fetch_flashcard(request_)

    @pytest.mark.asyncio
    async def test_invalid_json(self, request_):
        generator = make_generator(lambda r: httpx.Response(200, text="<html>"))

        with pytest.raises(GenerationFailure, match="invalid JSON"):
            await generator.fetch_flashcard(request_)


class TestStaticContentGenerator:
    @pytest.mark.asyncio
    async def test_question_answer_is_own_topic(self, profile):
        generator = StaticContentGenerator(profile, seed=7)
        request = ContentRequest(profile_id=profile.id, objective_id="obj-a")

        question = await assemble_question(generator.stream_question(request), "obj-a")

        assert len(question.options) == 4
        assert question.options[question.correct_index] in profile.get_objective("obj-a").key_topics
        wrong = [o for i, o in enumerate(question.options) if i != question.correct_index]
        assert all(o in profile.get_objective("obj-b").key_topics for o in wrong)

    @pytest.mark.asyncio
    async def test_single_objective_profile_gets_generic_distractors(self, profile_data):
        profile_data["objectives"] = profile_data["objectives"][:1]
        profile = ExamProfile.model_validate(profile_data)
        generator = StaticContentGenerator(profile, seed=3)

        question = await assemble_question(
            generator.stream_question(ContentRequest(profile.id, "obj-a")), "obj-a"
        )

        assert len(question.options) == 4
        assert len(set(question.options)) == 4
        assert question.options[question.correct_index] in profile.get_objective("obj-a").key_topics
        wrong = [o for i, o in enumerate(question.options) if i != question.correct_index]
        assert all(o in GENERIC_DISTRACTORS for o in wrong)

    @pytest.mark.asyncio
    async def test_unknown_objective(self, profile):
        generator = StaticContentGenerator(profile)

        with pytest.raises(GenerationFailure):
            await assemble_question(generator.stream_question(ContentRequest(profile.id, "nope")), "nope")

    @pytest.mark.asyncio
    async def test_flashcard_uses_focus_area(self, profile):
        generator = StaticContentGenerator(profile, seed=1)

        payload = await generator.fetch_flashcard(ContentRequest(profile.id, "obj-b", focus_area="IAM"))

        assert payload["flashcard"]["title"] == "IAM"
        assert payload["flashcard"]["objectiveId"] == "obj-b"
