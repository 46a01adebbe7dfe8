"""Lantern Release: write an intention, then watch the lantern float away."""

from __future__ import annotations

import logging
import random

from mindscape.activities.catalog import Difficulty
from mindscape.activities.minigames.base import CompletionResult, MiniActivity
from mindscape.errors import EmptyIntentionError
from mindscape.timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

MAX_INTENTION_LENGTH = 100
PHASE_SECONDS = 1.0
FINAL_PHASE = 3


class LanternRelease(MiniActivity):
    """Phase 0 while writing, then phases 1 -> 2 -> 3 one second apart.

    Completion fires one second after phase 3. Release is a point of no
    return: ``cancel()`` refuses once the lantern is in the air.
    """

    activity_type = "lantern_release"

    def __init__(
        self,
        scheduler: Scheduler,
        difficulty: Difficulty = "easy",
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(scheduler, difficulty, rng)
        self.intention = ""
        self.phase = 0
        self._handle: TimerHandle | None = None

    @property
    def released(self) -> bool:
        return self.phase > 0

    def _begin(self) -> None:
        pass

    def write(self, text: str) -> None:
        if self.running and not self.released:
            self.intention = text[:MAX_INTENTION_LENGTH]

    def release(self, text: str | None = None) -> None:
        """Release the lantern with the written (or given) intention."""
        if not self.running or self.released:
            return
        intention = (self.intention if text is None else text[:MAX_INTENTION_LENGTH])
        if not intention.strip():
            raise EmptyIntentionError("Write an intention before releasing the lantern")
        self.intention = intention
        self.phase = 1
        self._handle = self.scheduler.call_later(PHASE_SECONDS, self._advance)

    def cancel(self) -> bool:
        if self.released and self.running:
            logger.debug("Lantern already released, cancel refused")
            return False
        return super().cancel()

    def _advance(self) -> None:
        self._handle = None
        if self.phase < FINAL_PHASE:
            self.phase += 1
            self._handle = self.scheduler.call_later(PHASE_SECONDS, self._advance)
            return
        self._finish(CompletionResult(completed=True, intention=self.intention))

    def _stop_timers(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
