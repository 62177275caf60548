"""
Core Mastery Module.

Maps an objective's accuracy (0-100) to a mastery tier.

Design:
- MasteryLevel: ordered enum of the four tiers
- classify: pure threshold function
- classify_progress: applies classify only when questions were attempted
"""

from __future__ import annotations

from enum import Enum

MASTERY_THRESHOLD = 85.0
PROFICIENT_THRESHOLD = 70.0
DEVELOPING_THRESHOLD = 60.0


class MasteryLevel(str, Enum):
    """
    Mastery level categorization.

    Tiers are ordered novice < developing < proficient < mastery and
    compare by that order, not alphabetically.
    """

    NOVICE = "novice"  # < 60%
    DEVELOPING = "developing"  # 60-69%
    PROFICIENT = "proficient"  # 70-84%
    MASTERY = "mastery"  # 85-100%

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, MasteryLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, MasteryLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, MasteryLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, MasteryLevel):
            return NotImplemented
        return self.rank >= other.rank

    @property
    def display_name(self) -> str:
        """Human-readable name."""
        return self.value.title()

    @property
    def color(self) -> str:
        """Rich color for CLI display."""
        return {
            MasteryLevel.NOVICE: "red",
            MasteryLevel.DEVELOPING: "yellow",
            MasteryLevel.PROFICIENT: "cyan",
            MasteryLevel.MASTERY: "green",
        }[self]


_RANKS = {
    MasteryLevel.NOVICE: 0,
    MasteryLevel.DEVELOPING: 1,
    MasteryLevel.PROFICIENT: 2,
    MasteryLevel.MASTERY: 3,
}


def classify(accuracy_percent: float) -> MasteryLevel:
    """
    Convert an accuracy percentage to a mastery tier.

    Args:
        accuracy_percent: Accuracy between 0 and 100

    Returns:
        Corresponding MasteryLevel
    """
    if accuracy_percent >= MASTERY_THRESHOLD:
        return MasteryLevel.MASTERY
    elif accuracy_percent >= PROFICIENT_THRESHOLD:
        return MasteryLevel.PROFICIENT
    elif accuracy_percent >= DEVELOPING_THRESHOLD:
        return MasteryLevel.DEVELOPING
    return MasteryLevel.NOVICE


def classify_progress(questions_attempted: int, accuracy_percent: float) -> MasteryLevel | None:
    """An objective with no attempts has no mastery level at all."""
    if questions_attempted <= 0:
        return None
    return classify(accuracy_percent)
