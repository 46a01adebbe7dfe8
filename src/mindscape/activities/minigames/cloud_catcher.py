"""Cloud Catcher: tap floating clouds before a 30 second countdown runs out."""

from __future__ import annotations

import random
from dataclasses import dataclass

from mindscape.activities.catalog import Difficulty
from mindscape.activities.minigames.base import CompletionResult, MiniActivity
from mindscape.timers import PeriodicTimer, Scheduler

CLOUD_COUNTS: dict[str, int] = {"easy": 5, "medium": 8, "expert": 12}
COUNTDOWN_SECONDS = 30
FIELD_WIDTH = 300
FIELD_HEIGHT = 200


@dataclass
class Cloud:
    id: int
    x: float
    y: float
    caught: bool = False


class CloudCatcher(MiniActivity):
    """Each caught cloud scores one point.

    The countdown always runs to zero; catching every cloud early does not
    end the round.
    """

    activity_type = "cloud_catcher"

    def __init__(
        self,
        scheduler: Scheduler,
        difficulty: Difficulty = "easy",
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(scheduler, difficulty, rng)
        self.clouds: list[Cloud] = []
        self.score = 0
        self.time_left = COUNTDOWN_SECONDS
        self._countdown = PeriodicTimer(scheduler, 1.0, self._tick)

    @property
    def remaining_clouds(self) -> int:
        return sum(1 for cloud in self.clouds if not cloud.caught)

    def _begin(self) -> None:
        self.clouds = [
            Cloud(id=i, x=self.rng.random() * FIELD_WIDTH, y=self.rng.random() * FIELD_HEIGHT)
            for i in range(CLOUD_COUNTS[self.difficulty])
        ]
        self._countdown.start()

    def catch(self, cloud_id: int) -> bool:
        """Catch a floating cloud. Returns False for unknown or already caught clouds."""
        if not self.running:
            return False
        cloud = next((c for c in self.clouds if c.id == cloud_id), None)
        if cloud is None or cloud.caught:
            return False
        cloud.caught = True
        self.score += 1
        return True

    def _tick(self) -> None:
        self.time_left -= 1
        if self.time_left <= 0:
            self.time_left = 0
            self._finish(CompletionResult(completed=True, score=self.score))

    def _stop_timers(self) -> None:
        self._countdown.stop()
