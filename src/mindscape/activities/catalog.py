"""Activity templates.

The catalog is fixed at import time. Templates are frozen pydantic models;
seasonal variants and daily activities are derived copies, never edits.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from mindscape.activities.season import Season

Difficulty = Literal["easy", "medium", "expert"]
Rarity = Literal["common", "rare", "legendary"]


class Reward(BaseModel):
    model_config = ConfigDict(frozen=True)

    item_name: str
    rarity: Rarity
    item_type: str


class ActivityTemplate(BaseModel):
    """A playable activity definition. ``seasonal_tag`` is set only on seasonal variants."""

    model_config = ConfigDict(frozen=True)

    type: str
    name: str
    description: str
    duration_minutes: int = Field(gt=0)
    base_difficulty: Difficulty
    base_reward: Reward
    unlock_level: int = Field(ge=1)
    seasonal_tag: Season | None = None

    @property
    def is_seasonal(self) -> bool:
        return self.seasonal_tag is not None


def _template(
    type_: str,
    name: str,
    description: str,
    duration: int,
    difficulty: Difficulty,
    reward: tuple[str, Rarity, str],
    unlock_level: int,
) -> ActivityTemplate:
    item_name, rarity, item_type = reward
    return ActivityTemplate(
        type=type_,
        name=name,
        description=description,
        duration_minutes=duration,
        base_difficulty=difficulty,
        base_reward=Reward(item_name=item_name, rarity=rarity, item_type=item_type),
        unlock_level=unlock_level,
    )


CATALOG: tuple[ActivityTemplate, ...] = (
    _template(
        "cloud_catcher", "Cloud Catcher",
        "Catch sparkling clouds floating across the sky",
        3, "easy", ("Weather Vane", "common", "decoration"), 1,
    ),
    _template(
        "lantern_release", "Lantern Release",
        "Write an intention and release a magical lantern",
        4, "easy", ("Festival Lantern", "common", "decoration"), 1,
    ),
    _template(
        "garden_bloom", "Garden Bloom",
        "Help magical plants grow with mindful breathing",
        5, "medium", ("Enchanted Garden", "rare", "building"), 3,
    ),
    _template(
        "rooftop_melody", "Rooftop Melody",
        "Create beautiful music with your city buildings",
        4, "medium", ("Music Box Tower", "rare", "building"), 5,
    ),
    _template(
        "balloon_voyage", "Balloon Voyage",
        "Guide a hot air balloon through magical sparkles",
        3, "easy", ("Sky Balloon", "common", "decoration"), 2,
    ),
    _template(
        "mystery_visitor", "Mystery Visitor",
        "Solve riddles from a mysterious city visitor",
        5, "expert", ("Wizard Tower", "legendary", "building"), 10,
    ),
    _template(
        "star_path", "Star Path",
        "Trace constellations in the night sky",
        4, "medium", ("Observatory", "rare", "building"), 7,
    ),
    _template(
        "cozy_sketch", "Cozy Sketch",
        "Draw something beautiful for your city museum",
        5, "easy", ("Art Gallery", "rare", "building"), 4,
    ),
    _template(
        "wind_chime", "Wind Chime Whisper",
        "Create harmonious melodies with magical chimes",
        3, "medium", ("Harmony Chimes", "common", "decoration"), 6,
    ),
    _template(
        "memory_market", "Memory Market",
        "Remember and collect items from the magical market",
        4, "expert", ("Grand Marketplace", "legendary", "building"), 8,
    ),
)

CATALOG_BY_TYPE: dict[str, ActivityTemplate] = {t.type: t for t in CATALOG}


def get_template(activity_type: str) -> ActivityTemplate:
    """Look up a template by its type key."""
    try:
        return CATALOG_BY_TYPE[activity_type]
    except KeyError:
        raise ValueError(f"Unknown activity type: {activity_type}") from None
