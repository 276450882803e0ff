from __future__ import annotations

import random
from dataclasses import dataclass

from questboard_engine.models import (
    ATTRIBUTES,
    BASE_EXPERIENCE_TO_NEXT_LEVEL,
    MAX_LEVEL,
    UserProgression,
)


LEVEL_UP_CURRENCY_PER_LEVEL = 10
LEVEL_UP_ATTRIBUTE_MIN = 1
LEVEL_UP_ATTRIBUTE_MAX = 2


@dataclass(frozen=True)
class LevelUpReport:
    leveled_up: bool
    levels_gained: int
    new_level: int
    experience: int
    experience_to_next_level: int

    def to_wire(self) -> dict[str, object]:
        return {
            "leveledUp": self.leveled_up,
            "levelsGained": self.levels_gained,
            "newLevel": self.new_level,
            "exp": self.experience,
            "expToNextLevel": self.experience_to_next_level,
        }


def next_threshold(threshold: int) -> int:
    # floor(t * 1.5), and never flat so the loop always makes progress.
    threshold = int(threshold)
    return max(threshold + 1, threshold * 3 // 2)


def threshold_for_level(level: int) -> int:
    threshold = BASE_EXPERIENCE_TO_NEXT_LEVEL
    for _ in range(1, max(1, int(level))):
        threshold = next_threshold(threshold)
    return threshold


def apply_experience(
    progression: UserProgression,
    amount: int,
    *,
    rng: random.Random,
) -> LevelUpReport:
    """
    Add `amount` experience and resolve every pending level-up in place.

    Negative amounts count as zero, so `amount=0` only settles a record that
    already holds enough experience for the next level.
    """
    if int(progression.experience_to_next_level or 0) <= 0:
        progression.experience_to_next_level = threshold_for_level(progression.level)

    progression.experience = max(0, int(progression.experience or 0)) + max(0, int(amount))

    levels_gained = 0
    while (
        progression.level < MAX_LEVEL
        and progression.experience >= progression.experience_to_next_level
    ):
        threshold = int(progression.experience_to_next_level)
        progression.level = int(progression.level) + 1
        progression.experience = int(progression.experience) - threshold
        progression.experience_to_next_level = next_threshold(threshold)
        levels_gained += 1

        progression.currency = int(progression.currency) + (
            int(progression.level) * LEVEL_UP_CURRENCY_PER_LEVEL
        )
        for attr in ATTRIBUTES:
            bonus = rng.randint(LEVEL_UP_ATTRIBUTE_MIN, LEVEL_UP_ATTRIBUTE_MAX)
            setattr(progression, attr, int(getattr(progression, attr)) + bonus)

    if progression.level >= MAX_LEVEL:
        # Top level: experience saturates just below the final threshold.
        progression.experience = min(
            int(progression.experience), int(progression.experience_to_next_level) - 1
        )

    return LevelUpReport(
        leveled_up=levels_gained > 0,
        levels_gained=levels_gained,
        new_level=int(progression.level),
        experience=int(progression.experience),
        experience_to_next_level=int(progression.experience_to_next_level),
    )
