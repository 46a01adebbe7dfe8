"""Outer session timer wrapping one mini-activity.

The session counts down ``duration_minutes * 60`` seconds. If the countdown
reaches zero first, the inner machine is discarded and the session reports
``{completed: False, timeout: True}``. Whichever side finishes first wins;
the other side's late callbacks are ignored. When both fall due at the same
instant the countdown wins.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable

from mindscape.activities.catalog import Difficulty
from mindscape.activities.minigames.base import (
    CompletionCallback,
    CompletionResult,
    ManualActivity,
    MiniActivity,
    SessionStatus,
    validate_transition,
)
from mindscape.activities.minigames.cloud_catcher import CloudCatcher
from mindscape.activities.minigames.garden_bloom import GardenBloom
from mindscape.activities.minigames.lantern_release import LanternRelease
from mindscape.activities.rotation import DailyActivity
from mindscape.activities.season import Season
from mindscape.timers import PeriodicTimer, Scheduler

logger = logging.getLogger(__name__)

MINI_ACTIVITIES: dict[str, type[MiniActivity]] = {
    CloudCatcher.activity_type: CloudCatcher,
    LanternRelease.activity_type: LanternRelease,
    GardenBloom.activity_type: GardenBloom,
}


def build_mini_activity(
    activity_type: str,
    scheduler: Scheduler,
    difficulty: Difficulty = "easy",
    rng: random.Random | None = None,
) -> MiniActivity:
    """Instantiate the machine for ``activity_type``; unknown types get a manual one."""
    machine_cls = MINI_ACTIVITIES.get(activity_type, ManualActivity)
    return machine_cls(scheduler, difficulty, rng)


class ActivitySession:
    """The one running activity for a user context."""

    def __init__(
        self,
        activity: DailyActivity,
        scheduler: Scheduler,
        season: Season,
        on_complete: CompletionCallback,
        on_cancel: Callable[[], None] | None = None,
        rng: random.Random | None = None,
        machine: MiniActivity | None = None,
    ) -> None:
        self.activity = activity
        self.season = season
        self.scheduler = scheduler
        self.machine = machine or build_mini_activity(
            activity.type, scheduler, activity.effective_difficulty, rng
        )
        self.status: SessionStatus = "idle"
        self.time_left = activity.duration_minutes * 60
        self.deadline: float | None = None
        self.result: CompletionResult | None = None
        self._on_complete: CompletionCallback | None = on_complete
        self._on_cancel = on_cancel
        self._countdown = PeriodicTimer(scheduler, 1.0, self._tick)

    @property
    def season_bonus(self) -> bool:
        return self.season != "summer"

    def start(self) -> None:
        validate_transition(self.status, "running")
        self.status = "running"
        self.deadline = self.scheduler.now() + self.time_left
        self._countdown.start()
        self.machine.start(self._inner_complete)
        logger.debug("Session %s started (%ds)", self.activity.id, self.time_left)

    def cancel(self) -> bool:
        """Leave the session. Any completion still in flight is ignored."""
        if self.status not in ("idle", "running"):
            return False
        if not self.machine.cancel():
            logger.debug("Session %s cancelled while %s is past its point of no return",
                         self.activity.id, self.machine.activity_type)
        self._countdown.stop()
        self.status = "cancelled"
        self._on_complete = None
        if self._on_cancel is not None:
            self._on_cancel()
        return True

    def _tick(self) -> None:
        self.time_left -= 1
        if self.time_left > 0:
            return
        self._time_out()

    def _time_out(self) -> None:
        self.time_left = 0
        self.machine.discard()
        self._settle("timed_out", CompletionResult(completed=False, timeout=True))

    def _inner_complete(self, result: CompletionResult) -> None:
        if self.status != "running":
            logger.debug("Session %s ignoring inner completion in state %s", self.activity.id, self.status)
            return
        if self.deadline is not None and self.scheduler.now() >= self.deadline:
            # countdown is due at this instant as well
            self._time_out()
            return
        self._settle("completed", result)

    def _settle(self, status: SessionStatus, result: CompletionResult) -> None:
        validate_transition(self.status, status)
        self._countdown.stop()
        self.status = status
        self.result = result.model_copy(
            update={
                "activity_id": self.activity.id,
                "reward": self.activity.reward,
                "season_bonus": self.season_bonus,
            }
        )
        callback, self._on_complete = self._on_complete, None
        if callback is not None:
            callback(self.result)
