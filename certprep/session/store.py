"""
Session state persistence.

A session is stored as one JSON document under a deterministic key,
"{profile_id}:{exam_mode}", so "resume" finds the learner's last session
for a profile and mode. The store is last-writer-wins: each save replaces
the whole document.

Backends:
- InMemorySessionStore: tests and throwaway runs
- JsonFileSessionStore: one file per key under ~/.certprep/sessions/
- SqlSessionStore (sql_store.py): SQLite via SQLAlchemy, the default
"""

from __future__ import annotations

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from loguru import logger

from certprep.config import Settings, get_settings
from certprep.core.exceptions import ConfigurationError, PersistenceFailure
from certprep.core.models import ExamMode, StudySession


def session_key(profile_id: str, mode: ExamMode | str) -> str:
    """Storage key for a profile/mode pair."""
    return f"{profile_id}:{ExamMode(mode).value}"


def encode_session(session: StudySession) -> str:
    return json.dumps(session.to_dict())


def decode_session(key: str, payload: str) -> StudySession | None:
    """Parse a stored document. Corrupt documents load as absent."""
    try:
        return StudySession.from_dict(json.loads(payload))
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Discarding unreadable session {key}: {e}")
        return None


@runtime_checkable
class SessionStore(Protocol):
    """Key-value persistence for StudySession documents."""

    def save(self, session: StudySession) -> str:
        """Persist the session, returning its key. Raises PersistenceFailure."""
        ...

    def load(self, key: str) -> StudySession | None:
        """Load by key, None if absent. Raises PersistenceFailure."""
        ...

    def delete(self, key: str) -> bool:
        ...

    def keys(self) -> list[str]:
        ...


class InMemorySessionStore:
    """Keeps encoded documents in a dict, so loads go through the same JSON round trip."""

    def __init__(self) -> None:
        self._documents: dict[str, str] = {}
        self.save_count = 0

    def save(self, session: StudySession) -> str:
        key = session_key(session.profile_id, session.exam_mode)
        self._documents[key] = encode_session(session)
        self.save_count += 1
        return key

    def load(self, key: str) -> StudySession | None:
        payload = self._documents.get(key)
        if payload is None:
            return None
        return decode_session(key, payload)

    def delete(self, key: str) -> bool:
        return self._documents.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._documents)


class JsonFileSessionStore:
    """
    Stores sessions as JSON files.

    Files are named after the key with ':' replaced by '__',
    e.g. aws-cloud-practitioner__mock.json.
    """

    def __init__(self, session_dir: Path | None = None, settings: Settings | None = None):
        settings = settings or get_settings()
        self.session_dir = Path(session_dir or settings.get_sessions_dir())

    def _path(self, key: str) -> Path:
        return self.session_dir / f"{key.replace(':', '__')}.json"

    def save(self, session: StudySession) -> str:
        """Save session state to disk."""
        key = session_key(session.profile_id, session.exam_mode)
        data = session.to_dict()
        data["last_saved_at"] = datetime.now().isoformat()
        path = self._path(key)
        tmp = path.with_name(path.name + ".tmp")
        try:
            self.session_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, path)
        except OSError as e:
            tmp.unlink(missing_ok=True)
            raise PersistenceFailure(f"Could not write session {key}: {e}") from e
        return key

    def load(self, key: str) -> StudySession | None:
        filepath = self._path(key)
        if not filepath.exists():
            return None
        try:
            payload = filepath.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceFailure(f"Could not read session {key}: {e}") from e
        return decode_session(key, payload)

    def delete(self, key: str) -> bool:
        filepath = self._path(key)
        if filepath.exists():
            filepath.unlink()
            return True
        return False

    def keys(self) -> list[str]:
        if not self.session_dir.exists():
            return []
        return sorted(p.stem.replace("__", ":") for p in self.session_dir.glob("*.json"))


def create_store(settings: Settings | None = None) -> SessionStore:
    """Build the store selected by CERTPREP_STORE_BACKEND."""
    settings = settings or get_settings()
    backend = settings.store_backend
    if backend == "memory":
        return InMemorySessionStore()
    if backend == "json":
        return JsonFileSessionStore(settings=settings)
    if backend == "sqlite":
        from certprep.session.sql_store import SqlSessionStore

        return SqlSessionStore(settings.get_database_url())
    raise ConfigurationError(f"Unknown store backend '{backend}'")
