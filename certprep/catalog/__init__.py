"""Exam profile catalog: static, read-only reference data shared by all sessions."""

from certprep.catalog.profiles import (
    CatalogReader,
    ExamConstraints,
    ExamProfile,
    ObjectiveSpec,
    StudySettings,
    load_profile_file,
)

__all__ = [
    "CatalogReader",
    "ExamConstraints",
    "ExamProfile",
    "ObjectiveSpec",
    "StudySettings",
    "load_profile_file",
]
