"""Daily-limit and session controller.

Phase progression: no_activity -> selected -> running -> no_activity
A session may only start while today's completion count is below the daily
cap. Whatever happens to the completion writes, the controller ends back in
``no_activity``.
"""

from __future__ import annotations

import random
from collections.abc import Callable
from datetime import datetime
from typing import Literal

import structlog

from mindscape.activities.completion import CompletionIntent, CompletionWriter, grant_position
from mindscape.activities.minigames.base import CompletionResult
from mindscape.activities.minigames.session import ActivitySession
from mindscape.activities.progress import DEFAULT_MAX_DAILY_ACTIVITIES, UserProgressSnapshot, load_progress
from mindscape.activities.rotation import DailyActivity
from mindscape.activities.season import Season, resolve_season
from mindscape.errors import (
    CollaboratorUnavailableError,
    CollaboratorWriteError,
    DailyLimitReachedError,
    InvalidTransitionError,
)
from mindscape.notifications.channel import Toast, ToastSink
from mindscape.notifications.notifier import Notifier
from mindscape.store.base import TableStore
from mindscape.sync.outbox import CompletionOutbox
from mindscape.timers import BackgroundTasks, Scheduler

logger = structlog.get_logger()

ControllerPhase = Literal["no_activity", "selected", "running"]

VALID_TRANSITIONS: dict[str, list[str]] = {
    "no_activity": ["selected"],
    "selected": ["running", "no_activity"],
    "running": ["no_activity"],
}

OFFLINE_ENCOURAGEMENT_DELAY = 2.0


def validate_transition(current: str, target: str) -> None:
    valid = VALID_TRANSITIONS.get(current, [])
    if target not in valid:
        raise InvalidTransitionError(
            f"Invalid transition: {current} -> {target}. Valid transitions: {valid}"
        )


class SessionController:
    """Owns the current-session slot for one user."""

    def __init__(
        self,
        store: TableStore,
        user_id: str,
        scheduler: Scheduler,
        toasts: ToastSink,
        notifier: Notifier | None = None,
        outbox: CompletionOutbox | None = None,
        max_daily_activities: int = DEFAULT_MAX_DAILY_ACTIVITIES,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = datetime.now,
        season: Season | None = None,
        writer: CompletionWriter | None = None,
    ) -> None:
        self.store = store
        self.user_id = user_id
        self.scheduler = scheduler
        self.toasts = toasts
        self.notifier = notifier
        self.outbox = outbox
        self.max_daily_activities = max_daily_activities
        self.rng = rng or random.Random()
        self.clock = clock
        self._season = season
        self.writer = writer or (outbox.writer if outbox else CompletionWriter())

        self.phase: ControllerPhase = "no_activity"
        self.activity: DailyActivity | None = None
        self.session: ActivitySession | None = None
        self.progress: UserProgressSnapshot | None = None
        self.last_error: Exception | None = None
        self.completing: CompletionResult | None = None
        self._tasks = BackgroundTasks()

    @property
    def season(self) -> Season:
        return self._season or resolve_season(self.clock().date())

    async def refresh_progress(self) -> UserProgressSnapshot:
        self.progress = await load_progress(
            self.store, self.user_id, self.clock().date(), self.max_daily_activities
        )
        return self.progress

    async def start(self, activity: DailyActivity) -> ActivitySession | None:
        """Start ``activity``. Returns None when today's cap is reached."""
        progress = await self.refresh_progress()
        if not progress.can_play:
            self.last_error = DailyLimitReachedError(progress.daily_activity_count, progress.max_daily_activities)
            logger.info(
                "session_refused",
                user_id=self.user_id,
                count=progress.daily_activity_count,
                limit=progress.max_daily_activities,
            )
            self.toasts.show(Toast(
                title="Daily limit reached",
                description=(
                    f"You've completed {progress.max_daily_activities} activities today. "
                    "Take a mindful break offline!"
                ),
                variant="destructive",
            ))
            if self.notifier is not None:
                await self.notifier.offline_encouragement()
            return None

        self._transition("selected")
        self.activity = activity
        self.session = ActivitySession(
            activity,
            self.scheduler,
            self.season,
            on_complete=self._on_session_complete,
            on_cancel=self._on_session_cancel,
            rng=self.rng,
        )
        self._transition("running")
        self.session.start()
        logger.info("session_started", user_id=self.user_id, activity_id=activity.id, activity_type=activity.type)
        return self.session

    def cancel(self) -> None:
        """Leave the current session without persisting anything.

        A session that has already reported its result keeps it: the
        completion is persisted and the cancel is ignored.
        """
        if self.completing is not None:
            logger.info("cancel_ignored", user_id=self.user_id, reason="completing")
            return
        if self.session is not None and self.session.cancel():
            return
        self._reset()

    async def drain(self) -> None:
        """Wait for in-flight completion writes and follow-up notifications."""
        await self._tasks.drain()

    def _on_session_complete(self, result: CompletionResult) -> None:
        self.completing = result
        self._tasks.spawn(self.complete(result))

    def _on_session_cancel(self) -> None:
        logger.info("session_cancelled", user_id=self.user_id, activity_id=self.activity.id if self.activity else None)
        self._reset()

    async def complete(self, result: CompletionResult) -> bool:
        """Persist a finished session. Returns True if the writes were applied or queued."""
        if self.phase != "running" or self.activity is None:
            logger.debug("completion_ignored", user_id=self.user_id, phase=self.phase)
            return False

        activity = self.activity
        if result.timeout:
            self.toasts.show(Toast(title="Time's up!", description="Great job on your mindful break!"))

        intent = CompletionIntent(
            user_id=self.user_id,
            activity_id=result.activity_id or activity.id,
            activity_type=activity.type,
            reward=result.reward or activity.reward,
            completed_at=self.clock(),
            position=grant_position(self.rng),
            completed=result.completed,
            timeout=result.timeout,
            season_bonus=result.season_bonus,
        )
        try:
            saved = await self._persist(intent)
        finally:
            self._reset()

        if saved:
            self.toasts.show(Toast(
                title="Activity Complete! 🎉",
                description=(
                    f"You earned a {intent.reward.rarity} {intent.reward.item_name}! "
                    "Check your city to place it."
                ),
            ))
            if self.notifier is not None:
                self.scheduler.call_later(OFFLINE_ENCOURAGEMENT_DELAY, self._encourage_offline)
        return saved

    async def _persist(self, intent: CompletionIntent) -> bool:
        try:
            await self.writer.apply(self.store, intent)
        except CollaboratorUnavailableError as exc:
            if self.outbox is None:
                return self._write_failed(intent, exc)
            try:
                await self.outbox.enqueue(intent)
            except CollaboratorUnavailableError as queue_exc:
                return self._write_failed(intent, queue_exc)
            return True
        except CollaboratorWriteError as exc:
            return self._write_failed(intent, exc)

        logger.info(
            "activity_completed",
            user_id=self.user_id,
            activity_id=intent.activity_id,
            reward=intent.reward.item_name,
            rarity=intent.reward.rarity,
            timeout=intent.timeout,
        )
        return True

    def _write_failed(self, intent: CompletionIntent, exc: CollaboratorWriteError) -> bool:
        self.last_error = exc
        logger.error(
            "completion_write_failed",
            user_id=self.user_id,
            activity_id=intent.activity_id,
            table=exc.table,
            steps_done=intent.steps_done,
        )
        self.toasts.show(Toast(title="Error", description="Failed to complete activity", variant="destructive"))
        return False

    def _encourage_offline(self) -> None:
        if self.notifier is not None:
            self._tasks.spawn(self.notifier.offline_encouragement())

    def _transition(self, target: ControllerPhase) -> None:
        validate_transition(self.phase, target)
        self.phase = target

    def _reset(self) -> None:
        self.phase = "no_activity"
        self.activity = None
        self.session = None
        self.completing = None
