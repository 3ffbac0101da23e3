"""Age bracket definitions used to steer lane curation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


AgeLevel = Literal["toddler", "preschool", "elementary", "preteen", "adult"]


@dataclass(frozen=True)
class AgeLevelDefinition:
    """Describes an age bracket and the channels trusted for it."""

    key: AgeLevel
    title: str
    min_age: int
    max_age: int | None
    trusted_channels: tuple[str, ...]


AGE_LEVELS: tuple[AgeLevelDefinition, ...] = (
    AgeLevelDefinition(
        key="toddler",
        title="Toddler (1-2)",
        min_age=1,
        max_age=2,
        trusted_channels=(
            "Super Simple Songs",
            "Sesame Street",
            "Little Baby Bum",
            "BabyBus",
            "Cocomelon",
            "PBS Kids",
        ),
    ),
    AgeLevelDefinition(
        key="preschool",
        title="Preschool (3-5)",
        min_age=3,
        max_age=5,
        trusted_channels=(
            "Numberblocks",
            "Sesame Street",
            "PBS Kids",
            "Super Simple Songs",
            "StoryBots",
            "Blippi",
            "Peekaboo Kidz",
            "The Kids Picture Show",
            "Fun Kids English",
            "Art for Kids Hub",
        ),
    ),
    AgeLevelDefinition(
        key="elementary",
        title="Elementary (6-9)",
        min_age=6,
        max_age=9,
        trusted_channels=(
            "Numberblocks",
            "Art for Kids Hub",
            "National Geographic Kids",
            "SciShow Kids",
            "Crash Course Kids",
            "PBS Kids",
            "Sesame Street",
            "Khan Academy",
            "Peekaboo Kidz",
            "Free School",
        ),
    ),
    AgeLevelDefinition(
        key="preteen",
        title="Preteen (10-12)",
        min_age=10,
        max_age=12,
        trusted_channels=(
            "Crash Course Kids",
            "National Geographic Kids",
            "Khan Academy",
            "SciShow Kids",
            "Free School",
            "Art for Kids Hub",
        ),
    ),
    AgeLevelDefinition(
        key="adult",
        title="Grown-up",
        min_age=13,
        max_age=None,
        trusted_channels=(
            "Khan Academy",
            "National Geographic Kids",
            "Crash Course Kids",
        ),
    ),
)

AGE_LEVEL_KEYS: tuple[str, ...] = tuple(level.key for level in AGE_LEVELS)
DEFAULT_AGE_LEVEL: AgeLevel = "elementary"

_AGE_LEVEL_MAP = {level.key: level for level in AGE_LEVELS}


def get_age_level(key: str) -> AgeLevelDefinition:
    """Return the definition for ``key`` or the default bracket."""

    return _AGE_LEVEL_MAP.get(key, _AGE_LEVEL_MAP[DEFAULT_AGE_LEVEL])


def age_level_for_age(age: int) -> AgeLevelDefinition:
    """Return the bracket covering ``age`` in years."""

    for level in AGE_LEVELS:
        if age < level.min_age:
            continue
        if level.max_age is None or age <= level.max_age:
            return level
    return AGE_LEVELS[0]
