"""Break reminder scheduling.

The scheduler checks once on start and then once per poll interval. A
schedule is due when it is active, its HH:MM equals the current wall-clock
HH:MM and the current time is outside its do-not-disturb window. Each
schedule fires at most once per matching minute.

Do-not-disturb windows are half-open ``[start, end)``. A window with
``start > end`` runs overnight; then "inside" means ``now >= start`` or
``now <= end``.
"""

from __future__ import annotations

import itertools
from collections.abc import Callable, Mapping, Sequence
from datetime import date, datetime, time
from typing import Any

import structlog
from pydantic import BaseModel, field_validator

from mindscape.notifications.channel import Notification
from mindscape.notifications.notifier import Notifier
from mindscape.notifications.preferences import load_notification_settings
from mindscape.store.base import TableStore
from mindscape.timers import BackgroundTasks, PeriodicTimer, Scheduler, TimerHandle

logger = structlog.get_logger()

POLL_SECONDS = 60
SNOOZE_MINUTES = 5
DAILY_REWARD_HOUR = 9

ROUTES: dict[str, str] = {
    "open": "/activities",
    "play": "/activities",
    "claim": "/stats",
}
NO_OP_ACTIONS = frozenset({"", "dismiss", "later"})


def parse_hhmm(value: str | time) -> int:
    """Minutes since midnight for ``HH:MM`` (seconds, if present, are ignored)."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute
    parts = value.strip().split(":")
    if len(parts) < 2:
        raise ValueError(f"Expected HH:MM, got {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"Time out of range: {value!r}")
    return hour * 60 + minute


def format_hhmm(value: str | time | datetime) -> str:
    if isinstance(value, (time, datetime)):
        return f"{value.hour:02d}:{value.minute:02d}"
    minutes = parse_hhmm(value)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


class BreakSchedule(BaseModel):
    id: str
    break_time: str
    is_active: bool = True
    dnd_start: str | None = None
    dnd_end: str | None = None
    label: str | None = None
    user_id: str | None = None

    @field_validator("break_time", "dnd_start", "dnd_end", mode="before")
    @classmethod
    def _normalize_time(cls, value: Any) -> str | None:
        if value is None or value == "":
            return None
        return format_hhmm(value)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> BreakSchedule:
        return cls(
            id=str(row["id"]),
            break_time=row["break_time"],
            is_active=row.get("is_active", True),
            dnd_start=row.get("do_not_disturb_start"),
            dnd_end=row.get("do_not_disturb_end"),
            label=row.get("label"),
            user_id=row.get("user_id"),
        )


def in_do_not_disturb(schedule: BreakSchedule, now: datetime | time) -> bool:
    if not schedule.dnd_start or not schedule.dnd_end:
        return False
    current = now.hour * 60 + now.minute
    start = parse_hhmm(schedule.dnd_start)
    end = parse_hhmm(schedule.dnd_end)
    if start > end:
        return current >= start or current <= end
    return start <= current < end


def is_due(schedule: BreakSchedule, now: datetime) -> bool:
    return (
        schedule.is_active
        and schedule.break_time == format_hhmm(now)
        and not in_do_not_disturb(schedule, now)
    )


def minute_key(now: datetime) -> str:
    return now.strftime("%Y-%m-%dT%H:%M")


async def load_break_schedules(store: TableStore, user_id: str) -> list[BreakSchedule]:
    rows = await store.select(
        "break_schedules", {"user_id": user_id, "is_active": True}, order_by="break_time"
    )
    return [BreakSchedule.from_row(row) for row in rows]


class NotificationScheduler:
    """Polls break schedules for one user and routes notification clicks."""

    def __init__(
        self,
        notifier: Notifier,
        scheduler: Scheduler,
        clock: Callable[[], datetime] = datetime.now,
        schedules: Sequence[BreakSchedule] = (),
        navigate: Callable[[str], None] | None = None,
        poll_seconds: float = POLL_SECONDS,
        snooze_minutes: float = SNOOZE_MINUTES,
        daily_reward_hour: int = DAILY_REWARD_HOUR,
    ) -> None:
        self.notifier = notifier
        self.scheduler = scheduler
        self.clock = clock
        self.schedules = list(schedules)
        self.navigate = navigate
        self.snooze_minutes = snooze_minutes
        self.daily_reward_hour = daily_reward_hour
        self._fired: set[tuple[str, str]] = set()
        self._reward_reminded_on: date | None = None
        self._snoozes: dict[int, TimerHandle] = {}
        self._snooze_ids = itertools.count()
        self._poller = PeriodicTimer(scheduler, poll_seconds, self._poll)
        self._tasks = BackgroundTasks()

    @property
    def running(self) -> bool:
        return self._poller.running

    @property
    def pending_snoozes(self) -> int:
        return len(self._snoozes)

    async def load(self, store: TableStore, user_id: str) -> None:
        """Fetch active schedules and notification settings for ``user_id``."""
        self.schedules = await load_break_schedules(store, user_id)
        self.notifier.settings = await load_notification_settings(store, user_id)
        logger.info("break_schedules_loaded", user_id=user_id, count=len(self.schedules))

    async def start(self) -> None:
        await self.notifier.ensure_permission()
        await self.check()
        self._poller.start()

    def stop(self) -> None:
        self._poller.stop()
        for handle in self._snoozes.values():
            handle.cancel()
        self._snoozes.clear()
        self._tasks.cancel_all()

    async def drain(self) -> None:
        await self._tasks.drain()

    def _poll(self) -> None:
        self._tasks.spawn(self.check())

    async def check(self, now: datetime | None = None) -> list[Notification]:
        """Run one polling pass. Returns the notifications sent."""
        now = now or self.clock()
        sent = await self.check_break_schedules(now)
        reminder = await self.check_daily_reward(now)
        if reminder is not None:
            sent.append(reminder)
        return sent

    async def check_break_schedules(self, now: datetime) -> list[Notification]:
        if not self.notifier.settings.break_reminders:
            return []
        key = minute_key(now)
        self._fired = {entry for entry in self._fired if entry[1] == key}
        sent = []
        for schedule in self.schedules:
            if not is_due(schedule, now) or (schedule.id, key) in self._fired:
                continue
            self._fired.add((schedule.id, key))
            notification = await self.notifier.break_reminder(schedule.id, schedule.label)
            if notification is not None:
                sent.append(notification)
                logger.info("break_reminder_sent", schedule_id=schedule.id, minute=key)
        return sent

    async def check_daily_reward(self, now: datetime) -> Notification | None:
        """Remind about the daily reward once, during the reminder hour."""
        if now.hour != self.daily_reward_hour or self._reward_reminded_on == now.date():
            return None
        self._reward_reminded_on = now.date()
        return await self.notifier.daily_reward_reminder()

    async def celebrate_streak(self, streak_count: int) -> Notification | None:
        return await self.notifier.streak_celebration(streak_count)

    def handle_click(self, action: str | None, tag: str | None = None) -> str | None:
        """Route a notification click. Returns the navigation target, if any."""
        action = action or ""
        route = ROUTES.get(action)
        if route is not None:
            if self.navigate is not None:
                self.navigate(route)
        elif action == "snooze":
            snooze_id = next(self._snooze_ids)
            self._snoozes[snooze_id] = self.scheduler.call_later(
                self.snooze_minutes * 60, lambda: self._snooze_elapsed(snooze_id)
            )
        elif action not in NO_OP_ACTIONS:
            logger.warning("notification_click_unknown", action=action, tag=tag)
            return None
        logger.info("notification_click", action=action, tag=tag, route=route)
        return route

    def _snooze_elapsed(self, snooze_id: int) -> None:
        self._snoozes.pop(snooze_id, None)
        self._tasks.spawn(self.notifier.snooze_reminder())
