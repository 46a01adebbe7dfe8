"""Daily login reward.

The reward tier depends on the current streak:

    streak >= 7  -> legendary Rainbow Bridge
    streak >= 3  -> rare Golden Tree
    otherwise    -> common Mindful Flower

Claiming writes a ``daily_rewards`` row and an unplaced ``city_items`` row.
The two writes are independent; nothing is rolled back.
"""

from __future__ import annotations

from datetime import date

import structlog
from pydantic import BaseModel

from mindscape.activities.catalog import Rarity
from mindscape.errors import AlreadyClaimedError
from mindscape.store.base import TableStore

logger = structlog.get_logger()

LOGIN_REWARD_TYPE = "login"
REWARD_ITEM_TYPE = "reward"
STREAK_GOAL_DAYS = 7

# (minimum streak, item, rarity), highest first
REWARD_TIERS: list[tuple[int, str, Rarity]] = [
    (7, "Rainbow Bridge", "legendary"),
    (3, "Golden Tree", "rare"),
    (0, "Mindful Flower", "common"),
]


class DailyReward(BaseModel):
    reward_date: date
    item_name: str
    rarity: Rarity
    reward_type: str = LOGIN_REWARD_TYPE


def reward_for_streak(streak_count: int) -> tuple[str, Rarity]:
    for minimum, item, rarity in REWARD_TIERS:
        if streak_count >= minimum:
            return item, rarity
    return REWARD_TIERS[-1][1], REWARD_TIERS[-1][2]


def streak_progress(streak_count: int) -> float:
    """Percent of the way to the weekly legendary reward, capped at 100."""
    return min(max(streak_count, 0) / STREAK_GOAL_DAYS, 1.0) * 100


def streak_reward_ready(streak_count: int) -> bool:
    return streak_count >= STREAK_GOAL_DAYS


async def has_claimed(store: TableStore, user_id: str, today: date) -> bool:
    rows = await store.select(
        "daily_rewards",
        {"user_id": user_id, "reward_date": today, "reward_type": LOGIN_REWARD_TYPE},
    )
    return bool(rows)


async def claim_daily_reward(
    store: TableStore,
    user_id: str,
    today: date,
    streak_count: int,
) -> DailyReward:
    """Claim today's login reward. Raises AlreadyClaimedError on a second claim."""
    if await has_claimed(store, user_id, today):
        raise AlreadyClaimedError("You've already claimed your daily reward today")

    item_name, rarity = reward_for_streak(streak_count)
    reward = DailyReward(reward_date=today, item_name=item_name, rarity=rarity)

    await store.insert(
        "daily_rewards",
        {
            "user_id": user_id,
            "reward_date": today,
            "reward_type": LOGIN_REWARD_TYPE,
            "reward_item": item_name,
            "reward_rarity": rarity,
        },
    )
    await store.insert(
        "city_items",
        {
            "user_id": user_id,
            "item_name": item_name,
            "item_type": REWARD_ITEM_TYPE,
            "rarity": rarity,
            "position_x": 0.0,
            "position_y": 0.0,
            "position_z": 0.0,
            "is_placed": False,
        },
    )
    logger.info(
        "daily_reward_claimed", user_id=user_id, item=item_name, rarity=rarity, streak=streak_count
    )
    return reward


async def recent_rewards(store: TableStore, user_id: str, limit: int = 10) -> list[DailyReward]:
    rows = await store.select("daily_rewards", {"user_id": user_id}, order_by="-reward_date")
    return [
        DailyReward(
            reward_date=row["reward_date"],
            item_name=row.get("reward_item") or "",
            rarity=row.get("reward_rarity") or "common",
            reward_type=row.get("reward_type") or LOGIN_REWARD_TYPE,
        )
        for row in rows[:limit]
    ]
