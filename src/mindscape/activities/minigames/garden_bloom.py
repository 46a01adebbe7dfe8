"""Garden Bloom: a breath-synced growth loop.

One breath cycle is inhale (4s) -> hold (2s) -> exhale (6s). The loop is an
explicit phase machine with a single live timer handle; entering a phase
always replaces the previous handle, so a restarted chain never runs twice.
"""

from __future__ import annotations

import random
from typing import Literal

from mindscape.activities.catalog import Difficulty
from mindscape.activities.minigames.base import CompletionResult, MiniActivity
from mindscape.timers import Scheduler, TimerHandle

BreathPhase = Literal["inhale", "hold", "exhale"]

PHASE_SECONDS: dict[str, float] = {"inhale": 4.0, "hold": 2.0, "exhale": 6.0}
NEXT_PHASE: dict[str, BreathPhase | None] = {"inhale": "hold", "hold": "exhale", "exhale": None}
CYCLE_SECONDS = sum(PHASE_SECONDS.values())
TARGET_CYCLES: dict[str, int] = {"easy": 3, "medium": 5, "expert": 7}

BREATH_INSTRUCTIONS: dict[str, str] = {
    "inhale": "Breathe in slowly...",
    "hold": "Hold your breath...",
    "exhale": "Breathe out gently...",
}


class GardenBloom(MiniActivity):
    activity_type = "garden_bloom"

    def __init__(
        self,
        scheduler: Scheduler,
        difficulty: Difficulty = "easy",
        rng: random.Random | None = None,
    ) -> None:
        super().__init__(scheduler, difficulty, rng)
        self.target_cycles = TARGET_CYCLES[difficulty]
        self.cycles = 0
        self.growth = 0.0
        self.phase: BreathPhase = "inhale"
        self._handle: TimerHandle | None = None

    @property
    def instruction(self) -> str:
        return BREATH_INSTRUCTIONS[self.phase]

    def _begin(self) -> None:
        self._enter("inhale")

    def _enter(self, phase: BreathPhase) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self.phase = phase
        self._handle = self.scheduler.call_later(PHASE_SECONDS[phase], self._phase_done)

    def _phase_done(self) -> None:
        self._handle = None
        if not self.running:
            return
        following = NEXT_PHASE[self.phase]
        if following is not None:
            self._enter(following)
            return

        self.cycles += 1
        self.growth = self.cycles / self.target_cycles * 100
        if self.cycles >= self.target_cycles:
            self._finish(CompletionResult(completed=True, cycles=self.cycles))
        else:
            self._enter("inhale")

    def _stop_timers(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
