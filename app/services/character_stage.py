# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Hankki - Daily Meal Check-in project.
# Licensed under the MIT License - see the LICENSE file for details.

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CharacterStage:
    key: str
    emoji: str
    name: str
    min_streak: int
    max_streak: Optional[int]  # None = no upper bound


CHARACTER_STAGES = (
    CharacterStage("egg", "🥚", "Egg", 0, 5),
    CharacterStage("baby_chick", "🐣", "Baby chick", 6, 15),
    CharacterStage("chick", "🐥", "Chick", 16, 30),
    CharacterStage("hen", "🐔", "Hen", 31, 60),
    CharacterStage("turkey", "🦃", "Turkey", 61, 100),
    CharacterStage("peacock", "🦚", "Peacock", 101, None),
)


def stage_for_streak(streak: int) -> CharacterStage:
    streak = max(streak or 0, 0)
    for stage in CHARACTER_STAGES:
        if stage.max_streak is None or streak <= stage.max_streak:
            return stage
    return CHARACTER_STAGES[-1]


def days_to_next_stage(streak: int) -> Optional[int]:
    stage = stage_for_streak(streak)
    if stage.max_streak is None:
        return None
    return stage.max_streak - max(streak or 0, 0) + 1


def describe_character(streak: int) -> dict:
    stage = stage_for_streak(streak)
    return {
        "stage": stage.key,
        "emoji": stage.emoji,
        "name": stage.name,
        "daysToNextStage": days_to_next_stage(streak),
    }
