"""Notification arq worker: server-side break reminders and outbox flushing.

Import path for arq CLI: arq mindscape.workers.notifications.WorkerSettings

Break reminders are evaluated in the configured timezone with the same
due/do-not-disturb rules as the client scheduler. A Redis ``SET NX EX`` key
per schedule and minute keeps overlapping runs from firing twice.
"""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

import redis.asyncio as aioredis
import structlog
from arq import cron
from arq.connections import RedisSettings

from mindscape.app import build_outbox
from mindscape.config import get_settings
from mindscape.logs import bind_user, setup_logging
from mindscape.notifications.notifier import Notifier
from mindscape.notifications.preferences import NotificationSettings, load_notification_settings
from mindscape.notifications.push import RedisPushChannel
from mindscape.notifications.scheduler import BreakSchedule, is_due, minute_key
from mindscape.resources import close_resources, get_redis, get_store, open_resources
from mindscape.store.base import TableStore
from mindscape.sync.outbox import CompletionOutbox

logger = structlog.get_logger()

DEDUPE_TTL_SECONDS = 120


def dedupe_key(schedule_id: str, now: datetime) -> str:
    return f"notify:break:{schedule_id}:{minute_key(now)}"


async def send_due_reminders(
    store: TableStore,
    redis: aioredis.Redis,
    now: datetime,
) -> int:
    """Push a reminder for every active schedule due at ``now``. Returns the count sent."""
    rows = await store.select("break_schedules", {"is_active": True})
    preferences: dict[str, NotificationSettings] = {}
    sent = 0

    for row in rows:
        schedule = BreakSchedule.from_row(row)
        if schedule.user_id is None or not is_due(schedule, now):
            continue
        if not await redis.set(dedupe_key(schedule.id, now), "1", nx=True, ex=DEDUPE_TTL_SECONDS):
            continue

        bind_user(schedule.user_id)
        if schedule.user_id not in preferences:
            preferences[schedule.user_id] = await load_notification_settings(store, schedule.user_id)

        notifier = Notifier(RedisPushChannel(redis, schedule.user_id), settings=preferences[schedule.user_id])
        await notifier.ensure_permission()
        if await notifier.break_reminder(schedule.id, schedule.label) is not None:
            sent += 1
            logger.info("break_reminder_pushed", schedule_id=schedule.id, minute=minute_key(now))

    return sent


async def break_reminder_tick(ctx: dict) -> int:  # type: ignore[type-arg]
    """Runs every minute."""
    settings = get_settings()
    now = datetime.now(ZoneInfo(settings.timezone))
    async for store in get_store():
        return await send_due_reminders(store, ctx["app_redis"], now)
    return 0


async def flush_outboxes(ctx: dict) -> int:  # type: ignore[type-arg]
    """Replay queued completions for every user with a pending outbox."""
    outbox: CompletionOutbox = ctx["outbox"]
    total = 0
    for user_id in await outbox.users_with_pending():
        bind_user(user_id)
        async for store in get_store():
            flushed, remaining = await outbox.flush(store, user_id)
            total += flushed
            if remaining:
                logger.info("outbox_pending", user_id=user_id, remaining=remaining)
            break
    return total


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Open DB + Redis resources on worker startup.

    arq keeps its own pool under ``ctx["redis"]`` (bytes responses); jobs use
    the decoded pool under ``ctx["app_redis"]``.
    """
    settings = get_settings()
    setup_logging(settings)
    await open_resources(settings)
    redis_client = get_redis()
    ctx["app_redis"] = redis_client
    ctx["outbox"] = build_outbox(redis_client, settings)
    logger.info("notification_worker_started", timezone=settings.timezone)


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    await close_resources()
    logger.info("notification_worker_stopped")


class WorkerSettings:
    """arq worker settings for reminders and outbox flushing."""

    functions = [break_reminder_tick, flush_outboxes]
    cron_jobs = [
        cron(break_reminder_tick, second={0}),
        cron(flush_outboxes, minute=set(range(0, 60, 5)), second={30}),
    ]
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    on_startup = startup
    on_shutdown = shutdown
    max_jobs = 4
    job_timeout = 60
