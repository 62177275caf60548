"""
Unit tests for mastery classification.
"""

import pytest

from certprep.core.mastery import MasteryLevel, classify, classify_progress


class TestClassify:
    """Threshold boundaries."""

    @pytest.mark.parametrize(
        "accuracy,expected",
        [
            (0.0, MasteryLevel.NOVICE),
            (59.9, MasteryLevel.NOVICE),
            (60.0, MasteryLevel.DEVELOPING),
            (69.9, MasteryLevel.DEVELOPING),
            (70.0, MasteryLevel.PROFICIENT),
            (84.9, MasteryLevel.PROFICIENT),
            (85.0, MasteryLevel.MASTERY),
            (100.0, MasteryLevel.MASTERY),
        ],
    )
    def test_boundaries(self, accuracy, expected):
        assert classify(accuracy) is expected

    def test_monotonic_over_accuracy(self):
        """Higher accuracy never lands in a lower tier."""
        levels = [classify(a / 2) for a in range(0, 201)]
        for lower, higher in zip(levels, levels[1:]):
            assert higher >= lower


class TestClassifyProgress:
    def test_no_attempts_has_no_level(self):
        """Zero attempts is absent, not novice."""
        assert classify_progress(0, 0.0) is None

    def test_with_attempts(self):
        assert classify_progress(1, 0.0) is MasteryLevel.NOVICE
        assert classify_progress(4, 75.0) is MasteryLevel.PROFICIENT


class TestMasteryLevelOrdering:
    def test_tier_order_not_alphabetical(self):
        assert MasteryLevel.NOVICE < MasteryLevel.DEVELOPING < MasteryLevel.PROFICIENT < MasteryLevel.MASTERY
        # alphabetically "mastery" < "novice"
        assert MasteryLevel.MASTERY > MasteryLevel.NOVICE

    def test_sorting(self):
        levels = [MasteryLevel.MASTERY, MasteryLevel.NOVICE, MasteryLevel.PROFICIENT]
        assert sorted(levels) == [MasteryLevel.NOVICE, MasteryLevel.PROFICIENT, MasteryLevel.MASTERY]

    def test_display(self):
        assert MasteryLevel.PROFICIENT.display_name == "Proficient"
        assert MasteryLevel.NOVICE.color == "red"
