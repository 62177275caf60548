"""
Unit tests for the objective catalog.
"""

import json

import pytest

from certprep.catalog.profiles import CatalogReader, ExamProfile, load_profile_file
from certprep.core.exceptions import ConfigurationError, InvalidObjective


class TestBundledCatalog:
    """The profiles shipped in certprep/catalog/data."""

    @pytest.fixture
    def reader(self, settings):
        return CatalogReader(settings=settings)

    def test_lists_bundled_profiles(self, reader):
        ids = {p.id for p in reader.list_profiles()}

        assert {"aws-cloud-practitioner", "aws-saa", "cfa-l1"} <= ids

    def test_aws_cloud_practitioner(self, reader):
        profile = reader.get_profile("aws-cloud-practitioner")

        assert profile.objective_ids == ["cloud-concepts", "security-compliance", "technology", "billing-pricing"]
        assert profile.constraints.total_questions == 65
        # 700/1000 scaled score
        assert profile.pass_threshold_percent() == 70.0

    def test_objectives_in_catalog_order_with_targets(self, reader):
        objectives = reader.objectives("cfa-l1")

        assert [o.index for o in objectives] == list(range(10))
        assert objectives[0].id == "ethical-professional-standards"
        assert objectives[0].target_questions == 8

    def test_unknown_profile(self, reader):
        with pytest.raises(ConfigurationError):
            reader.get_profile("nope")

    def test_unknown_objective(self, reader):
        with pytest.raises(InvalidObjective):
            reader.get_objective("aws-saa", "nope")


class TestExamProfile:
    def test_study_settings_ignore_unread_keys(self, profile_data):
        profile_data["study_settings"] = {"default_questions_per_objective": 3, "mastery_threshold": 80}

        profile = ExamProfile.model_validate(profile_data)

        assert profile.study_settings.default_questions_per_objective == 3
        assert not hasattr(profile.study_settings, "mastery_threshold")

    def test_camel_case_keys_accepted(self, profile_data):
        profile_data["questionTypes"] = profile_data.pop("question_types")
        profile_data["constraints"] = {"totalQuestions": 50, "timeMinutes": 60, "passingScore": 65}

        profile = ExamProfile.model_validate(profile_data)

        assert profile.constraints.total_questions == 50
        assert profile.pass_threshold_percent() == 65

    def test_duplicate_objective_ids_rejected(self, profile_data):
        profile_data["objectives"][1]["id"] = "obj-a"

        with pytest.raises(ValueError):
            ExamProfile.model_validate(profile_data)

    def test_objectives_required(self, profile_data):
        profile_data["objectives"] = []

        with pytest.raises(ValueError):
            ExamProfile.model_validate(profile_data)

    def test_normalized_weights(self, profile):
        assert profile.normalized_weights() == {"obj-a": 60.0, "obj-b": 40.0}

    def test_missing_passing_score_uses_default(self, profile_data):
        del profile_data["constraints"]["passing_score"]

        assert ExamProfile.model_validate(profile_data).pass_threshold_percent(72.0) == 72.0

    def test_frozen(self, profile):
        with pytest.raises(ValueError):
            profile.name = "changed"


class TestCatalogOverrides:
    def test_extra_dir_overrides_bundled(self, tmp_path, profile_data, settings):
        profile_data["id"] = "aws-saa"
        profile_data["name"] = "Custom SAA"
        (tmp_path / "custom.json").write_text(json.dumps(profile_data), encoding="utf-8")

        reader = CatalogReader(extra_dir=tmp_path, settings=settings)

        assert reader.get_profile("aws-saa").name == "Custom SAA"
        assert reader.get_profile("cfa-l1").id == "cfa-l1"

    def test_invalid_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text('{"id": "x"}', encoding="utf-8")

        with pytest.raises(ConfigurationError):
            load_profile_file(path)

    def test_seeded_reader_reads_no_files(self, profile, settings):
        reader = CatalogReader(profiles=[profile], settings=settings)

        assert [p.id for p in reader.list_profiles()] == ["test-exam"]
