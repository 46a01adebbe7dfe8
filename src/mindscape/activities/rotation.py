"""Daily activity rotation.

Rotation steps:
1. Keep templates with ``unlock_level <= level``.
2. Roll a seasonal skin for each unlocked template independently.
3. Shuffle the pool uniformly.
4. Take ``clamp(level // 3 + 2, 3, 4)`` activities, capped by the pool size.
5. Give each a fresh id and a level-scaled difficulty.

A rotation is regenerated wholesale when the level or season changes. A
manual refresh reshuffles the existing pool, so seasonal skins stay stable
for the rest of the day.
"""

from __future__ import annotations

import logging
import random
import uuid
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime

from pydantic import BaseModel, ConfigDict

from mindscape.activities.catalog import CATALOG, ActivityTemplate, Difficulty, Reward
from mindscape.activities.events import SeasonalEvent, load_active_events
from mindscape.activities.progress import BREAKS_PER_LEVEL
from mindscape.activities.season import Season
from mindscape.activities.seasonal import DEFAULT_VARIANT_CHANCE, roll_variant
from mindscape.store.base import TableStore

logger = logging.getLogger(__name__)

MIN_DAILY_ACTIVITIES = 3
MAX_DAILY_ACTIVITIES_SHOWN = 4


class DailyActivity(BaseModel):
    """An activity offered today: a (possibly seasonal) template plus id and scaled difficulty."""

    model_config = ConfigDict(frozen=True)

    id: str
    template: ActivityTemplate
    effective_difficulty: Difficulty

    @property
    def type(self) -> str:
        return self.template.type

    @property
    def name(self) -> str:
        return self.template.name

    @property
    def duration_minutes(self) -> int:
        return self.template.duration_minutes

    @property
    def reward(self) -> Reward:
        return self.template.base_reward

    @property
    def unlock_level(self) -> int:
        return self.template.unlock_level

    @property
    def seasonal_tag(self) -> Season | None:
        return self.template.seasonal_tag


class NextUnlock(BaseModel):
    name: str
    level: int
    breaks_needed: int


def daily_count(level: int) -> int:
    """Number of activities offered per day: 3 for low levels, 4 from level 6 on."""
    return min(MAX_DAILY_ACTIVITIES_SHOWN, max(MIN_DAILY_ACTIVITIES, level // 3 + 2))


def scale_difficulty(base: Difficulty, level: int) -> Difficulty:
    """Scale a template difficulty to the player's level.

    Below level 5 everything is easy; below level 10 expert becomes medium.
    """
    if level < 5:
        return "easy"
    if level < 10:
        return "medium" if base == "expert" else base
    return base


def unlocked_templates(catalog: Sequence[ActivityTemplate], level: int) -> list[ActivityTemplate]:
    return [t for t in catalog if t.unlock_level <= level]


def build_pool(
    catalog: Sequence[ActivityTemplate],
    level: int,
    season: Season,
    rng: random.Random,
    variant_chance: float = DEFAULT_VARIANT_CHANCE,
) -> list[ActivityTemplate]:
    """Unlocked templates for ``level``, each with an independent seasonal roll."""
    return [roll_variant(t, season, rng, variant_chance) for t in unlocked_templates(catalog, level)]


def _activity_id(rng: random.Random) -> str:
    return f"daily_{uuid.UUID(int=rng.getrandbits(128), version=4).hex}"


def select_daily(
    pool: Sequence[ActivityTemplate],
    level: int,
    rng: random.Random,
) -> list[DailyActivity]:
    """Shuffle ``pool`` and materialize today's activities from its head."""
    shuffled = list(pool)
    rng.shuffle(shuffled)
    return [
        DailyActivity(
            id=_activity_id(rng),
            template=template,
            effective_difficulty=scale_difficulty(template.base_difficulty, level),
        )
        for template in shuffled[: daily_count(level)]
    ]


def rotate(
    catalog: Sequence[ActivityTemplate],
    level: int,
    season: Season,
    rng: random.Random | None = None,
    variant_chance: float = DEFAULT_VARIANT_CHANCE,
) -> list[DailyActivity]:
    """Produce a fresh daily activity set."""
    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    rng = rng or random.Random()
    pool = build_pool(catalog, level, season, rng, variant_chance)
    return select_daily(pool, level, rng)


def next_unlock(catalog: Sequence[ActivityTemplate], level: int) -> NextUnlock | None:
    """The locked template with the lowest unlock level, if any."""
    locked = [t for t in catalog if t.unlock_level > level]
    if not locked:
        return None
    upcoming = min(locked, key=lambda t: t.unlock_level)
    return NextUnlock(
        name=upcoming.name,
        level=upcoming.unlock_level,
        breaks_needed=(upcoming.unlock_level - level) * BREAKS_PER_LEVEL,
    )


def can_play(daily_activity_count: int, max_daily_activities: int) -> bool:
    return daily_activity_count < max_daily_activities


@dataclass
class RotationState:
    """The current rotation and the pool it was drawn from."""

    level: int
    season: Season
    pool: list[ActivityTemplate]
    activities: list[DailyActivity]
    generated_at: datetime
    refreshes: int = 0


@dataclass
class DailyRotation:
    """Owns the current rotation and regenerates it on its triggers.

    Not reentrant against a running session: callers offer rotation only
    from the activity list, never while a session is active.
    """

    catalog: Sequence[ActivityTemplate] = CATALOG
    rng: random.Random = field(default_factory=random.Random)
    variant_chance: float = DEFAULT_VARIANT_CHANCE
    clock: Callable[[], datetime] = datetime.now
    state: RotationState | None = None
    active_events: list[SeasonalEvent] = field(default_factory=list)

    @property
    def activities(self) -> list[DailyActivity]:
        return list(self.state.activities) if self.state else []

    def sync(self, level: int, season: Season) -> list[DailyActivity]:
        """Return today's activities, regenerating if the level or season changed."""
        if self.state is None or self.state.level != level or self.state.season != season:
            self._regenerate(level, season)
        return self.activities

    def refresh(self) -> list[DailyActivity]:
        """Reshuffle today's pool without re-rolling seasonal skins."""
        if self.state is None:
            raise RuntimeError("No rotation yet. Call sync() first.")
        self.state.activities = select_daily(self.state.pool, self.state.level, self.rng)
        self.state.refreshes += 1
        self.state.generated_at = self.clock()
        logger.debug("Rotation refreshed (%d) for level %d", self.state.refreshes, self.state.level)
        return self.activities

    async def load_events(self, store: TableStore, today: date | None = None) -> list[SeasonalEvent]:
        """Replace ``active_events`` with the events running today."""
        self.active_events = await load_active_events(store, today or self.clock().date())
        logger.debug("Active seasonal events: %s", [event.name for event in self.active_events])
        return self.active_events

    def next_unlock(self) -> NextUnlock | None:
        if self.state is None:
            return None
        return next_unlock(self.catalog, self.state.level)

    def _regenerate(self, level: int, season: Season) -> None:
        if level < 1:
            raise ValueError(f"level must be >= 1, got {level}")
        pool = build_pool(self.catalog, level, season, self.rng, self.variant_chance)
        self.state = RotationState(
            level=level,
            season=season,
            pool=pool,
            activities=select_daily(pool, level, self.rng),
            generated_at=self.clock(),
        )
        logger.info(
            "Rotation generated: level=%d season=%s pool=%d offered=%d",
            level, season, len(pool), len(self.state.activities),
        )
