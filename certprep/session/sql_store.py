"""
SQLite session store.

One row per session key; the session document is kept as JSON text.
Tables are created on first use.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from loguru import logger
from sqlalchemy import String, Text, create_engine, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from certprep.core.exceptions import PersistenceFailure
from certprep.core.models import StudySession
from certprep.session.store import decode_session, encode_session, session_key


class Base(DeclarativeBase):
    pass


class StudySessionRecord(Base):
    """Latest saved state of a study session, keyed by profile and mode."""

    __tablename__ = "study_sessions"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    session_id: Mapped[str] = mapped_column(String(64), index=True)
    profile_id: Mapped[str] = mapped_column(String(120))
    exam_mode: Mapped[str] = mapped_column(String(20))
    payload: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(default=datetime.now)

    def __repr__(self) -> str:
        return f"<StudySessionRecord key={self.key} session={self.session_id}>"


class SqlSessionStore:
    """Session store backed by a SQLAlchemy engine (SQLite by default)."""

    def __init__(self, database_url: str, echo: bool = False):
        url = make_url(database_url)
        if url.get_backend_name() == "sqlite" and url.database not in (None, "", ":memory:"):
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        self.engine = create_engine(database_url, echo=echo)
        self._factory = sessionmaker(bind=self.engine, autoflush=False)
        self._initialized = False

    def init_db(self) -> None:
        """Initialize database tables."""
        if self._initialized:
            return
        try:
            Base.metadata.create_all(bind=self.engine)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not initialize session database: {e}") from e
        self._initialized = True
        logger.debug(f"Session tables ready at {self.engine.url}")

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope around a series of operations."""
        self.init_db()
        db = self._factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise PersistenceFailure(f"Session database error: {e}") from e
        finally:
            db.close()

    def save(self, session: StudySession) -> str:
        key = session_key(session.profile_id, session.exam_mode)
        with self.session_scope() as db:
            db.merge(
                StudySessionRecord(
                    key=key,
                    session_id=session.session_id,
                    profile_id=session.profile_id,
                    exam_mode=session.exam_mode.value,
                    payload=encode_session(session),
                    updated_at=datetime.now(),
                )
            )
        return key

    def load(self, key: str) -> StudySession | None:
        with self.session_scope() as db:
            record = db.get(StudySessionRecord, key)
            payload = record.payload if record else None
        if payload is None:
            return None
        return decode_session(key, payload)

    def delete(self, key: str) -> bool:
        with self.session_scope() as db:
            record = db.get(StudySessionRecord, key)
            if record is None:
                return False
            db.delete(record)
        return True

    def keys(self) -> list[str]:
        with self.session_scope() as db:
            return list(db.scalars(select(StudySessionRecord.key).order_by(StudySessionRecord.key)))
