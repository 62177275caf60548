"""
Session Module - the study session state machine and its persistence.

Components:
- engine: StudySessionEngine, the command/query surface for presentation code
- recorder: appends attempts to a session
- sequencer: objective routing and wrap-around
- switchboard: presentation mode switching
- store: session persistence (memory, JSON files, SQLite)
"""

from certprep.session.engine import AnswerOutcome, Notice, SessionTotals, StudySessionEngine
from certprep.session.recorder import AttemptRecorder
from certprep.session.sequencer import ObjectiveSequencer
from certprep.session.store import (
    InMemorySessionStore,
    JsonFileSessionStore,
    SessionStore,
    create_store,
    session_key,
)
from certprep.session.switchboard import ModeSwitchboard, SwitchOutcome

__all__ = [
    "AnswerOutcome",
    "AttemptRecorder",
    "InMemorySessionStore",
    "JsonFileSessionStore",
    "ModeSwitchboard",
    "Notice",
    "ObjectiveSequencer",
    "SessionStore",
    "SessionTotals",
    "StudySessionEngine",
    "SwitchOutcome",
    "create_store",
    "session_key",
]
