"""Completion persistence intent.

A finished session is persisted as three independent writes, in order:

1. an ``activity_completions`` record
2. an unplaced ``city_items`` reward grant
3. a ``stats`` read-modify-write (total breaks, last activity date, rarity counters)

The writes are not atomic and nothing is rolled back. ``steps_done`` records
how far an intent got, so a queued intent resumes at the first write that
has not been applied yet.

A completion record whose ``intent_id`` is already stored counts as applied,
so a replay after a commit whose acknowledgement was lost moves on to the
item grant.
"""

from __future__ import annotations

import random
import uuid
from datetime import datetime

import structlog
from pydantic import BaseModel, Field

from mindscape.activities.catalog import Reward
from mindscape.errors import CollaboratorUnavailableError, CollaboratorWriteError
from mindscape.store.base import TableStore

logger = structlog.get_logger()

COMPLETION_STEPS: tuple[str, ...] = ("activity_completions", "city_items", "stats")

# Unplaced rewards land at a random spot of the 2D inventory canvas.
GRANT_X_RANGE = (100.0, 900.0)
GRANT_Y_RANGE = (100.0, 700.0)

RARITY_COUNTERS: dict[str, str] = {
    "rare": "rare_items_count",
    "legendary": "legendary_items_count",
}


def grant_position(rng: random.Random) -> tuple[float, float, float]:
    x_lo, x_hi = GRANT_X_RANGE
    y_lo, y_hi = GRANT_Y_RANGE
    return (x_lo + rng.random() * (x_hi - x_lo), y_lo + rng.random() * (y_hi - y_lo), 0.0)


class CompletionIntent(BaseModel):
    intent_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    user_id: str
    activity_id: str
    activity_type: str
    reward: Reward
    completed_at: datetime
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    completed: bool = True
    timeout: bool = False
    season_bonus: bool = False
    steps_done: int = 0

    @property
    def finished(self) -> bool:
        return self.steps_done >= len(COMPLETION_STEPS)

    @property
    def next_table(self) -> str | None:
        return None if self.finished else COMPLETION_STEPS[self.steps_done]


class CompletionWriter:
    """Applies a ``CompletionIntent`` to the store.

    Stops at the first failing write and re-raises its error; the intent's
    ``steps_done`` then points at that write.
    """

    async def apply(self, store: TableStore, intent: CompletionIntent) -> None:
        while not intent.finished:
            step = COMPLETION_STEPS[intent.steps_done]
            if step == "activity_completions":
                await self._record_completion(store, intent)
            elif step == "city_items":
                await self._grant_item(store, intent)
            else:
                await self._bump_stats(store, intent)
            intent.steps_done += 1

    async def _record_completion(self, store: TableStore, intent: CompletionIntent) -> None:
        try:
            await store.insert(
                "activity_completions",
                {
                    "user_id": intent.user_id,
                    "activity_id": intent.activity_id,
                    "activity_type": intent.activity_type,
                    "reward_earned": intent.reward.item_name,
                    "completed_at": intent.completed_at,
                    "intent_id": intent.intent_id,
                },
            )
        except CollaboratorUnavailableError:
            raise
        except CollaboratorWriteError:
            if not await store.select("activity_completions", {"intent_id": intent.intent_id}):
                raise
            logger.info("completion_already_recorded", user_id=intent.user_id, intent_id=intent.intent_id)

    async def _grant_item(self, store: TableStore, intent: CompletionIntent) -> None:
        x, y, z = intent.position
        await store.insert(
            "city_items",
            {
                "user_id": intent.user_id,
                "item_name": intent.reward.item_name,
                "item_type": intent.reward.item_type,
                "rarity": intent.reward.rarity,
                "position_x": x,
                "position_y": y,
                "position_z": z,
                "is_placed": False,
            },
        )

    async def _bump_stats(self, store: TableStore, intent: CompletionIntent) -> None:
        rows = await store.select("stats", {"user_id": intent.user_id})
        current = rows[0] if rows else {}
        patch = {
            "user_id": intent.user_id,
            "total_breaks": (current.get("total_breaks") or 0) + 1,
            "last_activity_date": intent.completed_at.date(),
        }
        counter = RARITY_COUNTERS.get(intent.reward.rarity)
        if counter:
            patch[counter] = (current.get(counter) or 0) + 1
        await store.upsert("stats", patch)
