"""Component factories wired from application settings."""

from __future__ import annotations

import random
from collections.abc import Callable
from datetime import datetime

import redis.asyncio as aioredis

from mindscape.activities.controller import SessionController
from mindscape.activities.rotation import DailyRotation
from mindscape.config import Settings, get_settings
from mindscape.notifications.channel import NotificationChannel, ToastSink
from mindscape.notifications.notifier import Notifier
from mindscape.notifications.scheduler import NotificationScheduler
from mindscape.store.base import TableStore
from mindscape.sync.outbox import CompletionOutbox
from mindscape.timers import Scheduler


def build_rotation(settings: Settings | None = None, rng: random.Random | None = None) -> DailyRotation:
    settings = settings or get_settings()
    return DailyRotation(rng=rng or random.Random(), variant_chance=settings.seasonal_variant_chance)


def build_notifier(
    channel: NotificationChannel,
    toasts: ToastSink | None = None,
    settings: Settings | None = None,
) -> Notifier:
    settings = settings or get_settings()
    return Notifier(channel, toasts, streak_celebration_days=settings.streak_celebration_days)


def build_outbox(redis: aioredis.Redis, settings: Settings | None = None) -> CompletionOutbox:
    settings = settings or get_settings()
    return CompletionOutbox(redis, maxlen=settings.outbox_stream_maxlen, batch=settings.outbox_flush_batch)


def build_controller(
    store: TableStore,
    user_id: str,
    scheduler: Scheduler,
    toasts: ToastSink,
    notifier: Notifier | None = None,
    outbox: CompletionOutbox | None = None,
    settings: Settings | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> SessionController:
    """Session controller for one user, capped at the configured daily limit."""
    settings = settings or get_settings()
    return SessionController(
        store,
        user_id,
        scheduler,
        toasts,
        notifier=notifier,
        outbox=outbox,
        max_daily_activities=settings.max_daily_activities,
        clock=clock,
    )


def build_notification_scheduler(
    notifier: Notifier,
    scheduler: Scheduler,
    navigate: Callable[[str], None] | None = None,
    settings: Settings | None = None,
    clock: Callable[[], datetime] = datetime.now,
) -> NotificationScheduler:
    settings = settings or get_settings()
    return NotificationScheduler(
        notifier,
        scheduler,
        clock=clock,
        navigate=navigate,
        poll_seconds=settings.notification_poll_seconds,
        snooze_minutes=settings.snooze_minutes,
        daily_reward_hour=settings.daily_reward_hour,
    )
