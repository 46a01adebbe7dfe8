"""User progress: level from total breaks and today's completion count."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from pydantic import BaseModel

from mindscape.store.base import Range, TableStore

BREAKS_PER_LEVEL = 10
DEFAULT_MAX_DAILY_ACTIVITIES = 5


def level_for_breaks(total_breaks: int) -> int:
    """Every 10 completed breaks is one level; level 1 at zero breaks."""
    return max(total_breaks, 0) // BREAKS_PER_LEVEL + 1


def day_bounds(day: date) -> tuple[datetime, datetime]:
    """Local midnight of ``day`` and of the following day."""
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class UserProgressSnapshot(BaseModel):
    total_breaks: int = 0
    streak_count: int = 0
    daily_activity_count: int = 0
    max_daily_activities: int = DEFAULT_MAX_DAILY_ACTIVITIES

    @property
    def level(self) -> int:
        return level_for_breaks(self.total_breaks)

    @property
    def can_play(self) -> bool:
        return self.daily_activity_count < self.max_daily_activities

    @property
    def remaining_today(self) -> int:
        return max(self.max_daily_activities - self.daily_activity_count, 0)


async def count_completions_on(store: TableStore, user_id: str, day: date) -> int:
    start, end = day_bounds(day)
    rows = await store.select(
        "activity_completions",
        {"user_id": user_id, "completed_at": Range(gte=start, lt=end)},
    )
    return len(rows)


async def load_progress(
    store: TableStore,
    user_id: str,
    today: date,
    max_daily_activities: int = DEFAULT_MAX_DAILY_ACTIVITIES,
) -> UserProgressSnapshot:
    """Recompute the progress snapshot from the stats row and today's completions."""
    stats = await store.select("stats", {"user_id": user_id})
    row = stats[0] if stats else {}
    return UserProgressSnapshot(
        total_breaks=row.get("total_breaks") or 0,
        streak_count=row.get("streak_count") or 0,
        daily_activity_count=await count_completions_on(store, user_id, today),
        max_daily_activities=max_daily_activities,
    )
