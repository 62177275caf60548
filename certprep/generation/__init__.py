"""
Content generation: the external question/flashcard service and its wire format.

Components:
- events: ContentEvent, ContentRequest, parse_event (NDJSON wire format)
- assembler: assemble_question, assemble_flashcard, placeholder_question
- client: HttpContentGenerator (httpx streaming), StaticContentGenerator (offline)
"""

from certprep.generation.assembler import (
    GeneratedFlashcard,
    GeneratedQuestion,
    assemble_flashcard,
    assemble_question,
    placeholder_flashcard,
    placeholder_question,
)
from certprep.generation.client import ContentGenerator, HttpContentGenerator, StaticContentGenerator
from certprep.generation.events import ContentEvent, ContentRequest, EventType, parse_event

__all__ = [
    "ContentEvent",
    "ContentGenerator",
    "ContentRequest",
    "EventType",
    "GeneratedFlashcard",
    "GeneratedQuestion",
    "HttpContentGenerator",
    "StaticContentGenerator",
    "assemble_flashcard",
    "assemble_question",
    "parse_event",
    "placeholder_flashcard",
    "placeholder_question",
]
