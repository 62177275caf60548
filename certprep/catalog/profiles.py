"""
Objective Catalog Reader.

Exam profiles are static JSON documents: the bundled ones ship in
certprep/catalog/data/, and extra ones can be dropped into the directory
named by CERTPREP_CATALOG_DIR (same id overrides the bundled profile).

Keys may be snake_case or camelCase, so profiles exported from the web
app load unchanged.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Literal

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from certprep.config import Settings, get_settings
from certprep.core.exceptions import ConfigurationError, InvalidObjective
from certprep.core.models import ObjectiveDefinition

BUNDLED_DATA_DIR = Path(__file__).parent / "data"


class CatalogModel(BaseModel):
    """Base for catalog documents: immutable, accepts camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


# ========================================
# Catalog Models
# ========================================


class ObjectiveSpec(CatalogModel):
    """A learning objective as declared in the catalog."""

    id: str = Field(..., min_length=1)
    title: str
    description: str = ""
    weight: float = Field(..., ge=0, description="Exam weight in percent (need not sum to 100)")
    level: Literal["knowledge", "application", "synthesis"] = "knowledge"
    difficulty: Literal["beginner", "intermediate", "advanced"] = "intermediate"
    questions_per_session: int | None = Field(None, ge=1)
    key_topics: list[str] = Field(default_factory=list)


class ExamConstraints(CatalogModel):
    total_questions: int = Field(..., ge=1)
    time_minutes: int = Field(..., ge=1)
    option_count: int = Field(4, ge=2)
    passing_score: float | None = Field(
        None, ge=0, description="Percent, or a scaled score such as AWS 700/1000"
    )
    efficient_questions: int | None = Field(None, ge=1)


class StudySettings(CatalogModel):
    default_questions_per_objective: int | None = Field(None, ge=1)


class ExamProfile(CatalogModel):
    """A certification exam: its objectives, question types and constraints."""

    id: str = Field(..., min_length=1)
    name: str
    provider: str = ""
    description: str = ""
    objectives: list[ObjectiveSpec]
    question_types: list[str] = Field(default_factory=lambda: ["multiple-choice"])
    constraints: ExamConstraints
    study_settings: StudySettings = Field(default_factory=StudySettings)

    @model_validator(mode="after")
    def _check_objectives(self) -> ExamProfile:
        if not self.objectives:
            raise ValueError(f"profile '{self.id}' has no objectives")
        seen: set[str] = set()
        for obj in self.objectives:
            if obj.id in seen:
                raise ValueError(f"profile '{self.id}' repeats objective id '{obj.id}'")
            seen.add(obj.id)
        return self

    @property
    def objective_ids(self) -> list[str]:
        return [o.id for o in self.objectives]

    def get_objective(self, objective_id: str) -> ObjectiveSpec | None:
        for obj in self.objectives:
            if obj.id == objective_id:
                return obj
        return None

    def normalized_weights(self) -> dict[str, float]:
        """Objective weights scaled to sum to 100 (equal split if all are zero)."""
        total = sum(o.weight for o in self.objectives)
        if total <= 0:
            share = 100 / len(self.objectives)
            return {o.id: share for o in self.objectives}
        return {o.id: o.weight / total * 100 for o in self.objectives}

    def pass_threshold_percent(self, default: float = 70.0) -> float:
        """
        Passing score as a percentage.

        Scaled scores are mapped onto 0-100: anything above 100 is read as
        out of 1000 (AWS reports 700/1000).
        """
        score = self.constraints.passing_score
        if score is None:
            return default
        if score > 100:
            return min(score / 10, 100.0)
        return score


# ========================================
# Reader
# ========================================


class CatalogReader:
    """
    Read-only access to exam profiles.

    Profiles are loaded once, on first use, and shared by every session.
    """

    def __init__(
        self,
        profiles: Iterable[ExamProfile] | None = None,
        extra_dir: Path | None = None,
        settings: Settings | None = None,
    ):
        self._profiles: dict[str, ExamProfile] | None = None
        self._seed = list(profiles) if profiles is not None else None
        self._extra_dir = extra_dir
        self.settings = settings or get_settings()

    def _load(self) -> dict[str, ExamProfile]:
        if self._profiles is not None:
            return self._profiles

        profiles: dict[str, ExamProfile] = {}
        if self._seed is not None:
            for profile in self._seed:
                profiles[profile.id] = profile
        else:
            for profile in load_profiles_from_dir(BUNDLED_DATA_DIR):
                profiles[profile.id] = profile
            extra = self._extra_dir or self.settings.catalog_dir
            if extra:
                for profile in load_profiles_from_dir(extra):
                    if profile.id in profiles:
                        logger.debug(f"Catalog override for profile {profile.id} from {extra}")
                    profiles[profile.id] = profile

        logger.debug(f"Catalog loaded: {len(profiles)} profiles")
        self._profiles = profiles
        return profiles

    def list_profiles(self) -> list[ExamProfile]:
        return sorted(self._load().values(), key=lambda p: p.name)

    def get_profile(self, profile_id: str) -> ExamProfile:
        profile = self._load().get(profile_id)
        if profile is None:
            raise ConfigurationError(f"Unknown exam profile '{profile_id}'")
        return profile

    def get_objective(self, profile_id: str, objective_id: str) -> ObjectiveSpec:
        objective = self.get_profile(profile_id).get_objective(objective_id)
        if objective is None:
            raise InvalidObjective(objective_id, profile_id)
        return objective

    def objectives(self, profile_id: str) -> list[ObjectiveDefinition]:
        """The profile's objectives in catalog order, with resolved default targets."""
        profile = self.get_profile(profile_id)
        default = (
            profile.study_settings.default_questions_per_objective
            or self.settings.default_questions_per_objective
        )
        return [
            ObjectiveDefinition(
                id=obj.id,
                title=obj.title,
                weight=obj.weight,
                difficulty=obj.difficulty,
                target_questions=obj.questions_per_session or default,
                index=index,
            )
            for index, obj in enumerate(profile.objectives)
        ]


def load_profile_file(path: Path) -> ExamProfile:
    """Parse one profile JSON file."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return ExamProfile.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        raise ConfigurationError(f"Invalid exam profile {path.name}: {e}") from e


def load_profiles_from_dir(directory: Path) -> list[ExamProfile]:
    directory = Path(directory)
    if not directory.is_dir():
        raise ConfigurationError(f"Catalog directory not found: {directory}")
    return [load_profile_file(path) for path in sorted(directory.glob("*.json"))]
