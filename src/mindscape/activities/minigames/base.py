"""Mini-activity base machine.

State progression: idle -> running -> completed | cancelled | timed_out
Terminal states accept no further transitions. Completion is first-wins:
once a machine has left ``running`` any later completion attempt is
ignored.
"""

from __future__ import annotations

import logging
import random
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import ClassVar, Literal

from pydantic import BaseModel

from mindscape.activities.catalog import Difficulty, Reward
from mindscape.errors import InvalidTransitionError
from mindscape.timers import Scheduler

logger = logging.getLogger(__name__)

SessionStatus = Literal["idle", "running", "completed", "cancelled", "timed_out"]

VALID_TRANSITIONS: dict[str, list[str]] = {
    "idle": ["running", "cancelled"],
    "running": ["completed", "cancelled", "timed_out"],
    "completed": [],
    "cancelled": [],
    "timed_out": [],
}


def validate_transition(current_status: str, target_status: str) -> None:
    """Validate a state transition. Raises InvalidTransitionError if invalid."""
    valid = VALID_TRANSITIONS.get(current_status, [])
    if target_status not in valid:
        raise InvalidTransitionError(
            f"Invalid transition: {current_status} -> {target_status}. "
            f"Valid transitions: {valid}"
        )


class CompletionResult(BaseModel):
    """Payload handed to ``on_complete`` exactly once per session."""

    completed: bool
    timeout: bool = False
    score: int | None = None
    cycles: int | None = None
    intention: str | None = None
    activity_id: str | None = None
    reward: Reward | None = None
    season_bonus: bool = False


CompletionCallback = Callable[[CompletionResult], None]


class MiniActivity(ABC):
    """A timed interaction loop that reports one ``CompletionResult``."""

    activity_type: ClassVar[str] = ""

    def __init__(
        self,
        scheduler: Scheduler,
        difficulty: Difficulty = "easy",
        rng: random.Random | None = None,
    ) -> None:
        self.scheduler = scheduler
        self.difficulty = difficulty
        self.rng = rng or random.Random()
        self.status: SessionStatus = "idle"
        self._on_complete: CompletionCallback | None = None

    @property
    def running(self) -> bool:
        return self.status == "running"

    def start(self, on_complete: CompletionCallback) -> None:
        validate_transition(self.status, "running")
        self.status = "running"
        self._on_complete = on_complete
        self._begin()

    def cancel(self) -> bool:
        """Stop the machine. Returns False if it can no longer be cancelled."""
        if self.status not in ("idle", "running"):
            return False
        self._set_status("cancelled")
        return True

    def discard(self) -> None:
        """Drop the machine after the outer session timer won the race."""
        if self.status == "running":
            self._set_status("timed_out")

    def _set_status(self, target: SessionStatus) -> None:
        validate_transition(self.status, target)
        self.status = target
        self._stop_timers()
        self._on_complete = None

    def _finish(self, result: CompletionResult) -> None:
        if self.status != "running":
            logger.debug("Ignoring %s completion in state %s", self.activity_type, self.status)
            return
        callback = self._on_complete
        self._set_status("completed")
        if callback is not None:
            callback(result)

    @abstractmethod
    def _begin(self) -> None:
        """Arm the machine's timers. Called once on start."""

    @abstractmethod
    def _stop_timers(self) -> None:
        """Cancel every pending timer handle."""


class ManualActivity(MiniActivity):
    """Placeholder for activity types without an interactive loop.

    The player finishes it by hand; only the outer session timer bounds it.
    """

    activity_type = "manual"

    def _begin(self) -> None:
        pass

    def _stop_timers(self) -> None:
        pass

    def complete(self) -> None:
        self._finish(CompletionResult(completed=True))
