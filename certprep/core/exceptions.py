"""
Error taxonomy for the study engine.

ConfigurationError and InvalidObjective propagate to callers.
GenerationFailure and PersistenceFailure are absorbed by the engine and
surfaced as notices; they are raised by the adapters so the engine can
decide how to recover.
"""

from __future__ import annotations


class CertPrepError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(CertPrepError):
    """Unknown profile or objective at session creation, or an invalid catalog."""


class InvalidObjective(CertPrepError):
    """An attempt or selection referenced an objective outside the profile."""

    def __init__(self, objective_id: str, profile_id: str | None = None):
        self.objective_id = objective_id
        self.profile_id = profile_id
        where = f" in profile '{profile_id}'" if profile_id else ""
        super().__init__(f"Objective '{objective_id}' not found{where}")


class GenerationFailure(CertPrepError):
    """The content service errored or returned a malformed payload."""

    def __init__(self, message: str, retryable: bool = True):
        self.retryable = retryable
        super().__init__(message)


class PersistenceFailure(CertPrepError):
    """The session store could not save or load."""


class SessionStateError(CertPrepError):
    """A command that the session's current state does not allow (no session, already ended, no break)."""
