"""Unit tests for Redis push delivery and the reminder worker."""

import json
from datetime import datetime
from unittest.mock import AsyncMock

from mindscape.notifications.channel import Notification, NotificationAction
from mindscape.notifications.push import RedisPushChannel, user_channel
from mindscape.store.memory import InMemoryTableStore
from mindscape.workers.notifications import WorkerSettings, dedupe_key, send_due_reminders

NOON = datetime(2026, 10, 13, 12, 0)


class TestRedisPushChannel:
    """Publishing to the per-user pub/sub channel."""

    async def test_publishes_notification_payload(self, user_id):
        redis = AsyncMock()
        channel = RedisPushChannel(redis, user_id)
        notification = Notification(
            title="Mindful Break Time",
            body="Breathe",
            tag="break-s1",
            actions=[NotificationAction(action="open", title="Start Activity")],
            data={"schedule_id": "s1"},
        )

        assert await channel.request_permission() == "granted"
        await channel.show(notification)

        redis.publish.assert_awaited_once()
        channel_name, raw = redis.publish.call_args.args
        assert channel_name == user_channel(user_id) == f"ws:user:{user_id}"
        payload = json.loads(raw)
        assert payload["event"] == "notification"
        assert payload["data"]["title"] == "Mindful Break Time"
        assert payload["data"]["tag"] == "break-s1"
        assert payload["data"]["actions"] == [{"action": "open", "title": "Start Activity"}]
        assert payload["data"]["data"] == {"schedule_id": "s1"}
        assert "timestamp" in payload["data"]

    async def test_publish_failure_is_logged_not_raised(self, user_id, caplog):
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("down")
        await RedisPushChannel(redis, user_id).show(Notification(title="t", body="b"))
        assert "Failed to push notification" in caplog.text

    async def test_no_redis_is_a_no_op(self, user_id):
        await RedisPushChannel(None, user_id).show(Notification(title="t", body="b"))


class TestSendDueReminders:
    """Per-minute server-side break check."""

    def _store(self, user_id):
        return InMemoryTableStore({
            "break_schedules": [
                {"id": "due", "user_id": user_id, "break_time": "12:00", "is_active": True, "label": "Lunch"},
                {"id": "quiet", "user_id": user_id, "break_time": "12:00", "is_active": True,
                 "do_not_disturb_start": "11:00", "do_not_disturb_end": "13:00"},
                {"id": "later", "user_id": user_id, "break_time": "15:00", "is_active": True},
                {"id": "off", "user_id": user_id, "break_time": "12:00", "is_active": False},
                {"id": "muted", "user_id": "muted-user", "break_time": "12:00", "is_active": True},
            ],
            "user_settings": [{"user_id": "muted-user", "notifications_enabled": False}],
        })

    async def test_pushes_due_schedules_once(self, user_id):
        redis = AsyncMock()
        redis.set.return_value = True

        sent = await send_due_reminders(self._store(user_id), redis, NOON)

        assert sent == 1
        redis.publish.assert_awaited_once()
        channel_name, raw = redis.publish.call_args.args
        assert channel_name == user_channel(user_id)
        assert json.loads(raw)["data"]["title"] == "Lunch"
        redis.set.assert_any_await(dedupe_key("due", NOON), "1", nx=True, ex=120)

    async def test_dedupe_key_already_taken(self, user_id):
        redis = AsyncMock()
        redis.set.return_value = None

        assert await send_due_reminders(self._store(user_id), redis, NOON) == 0
        redis.publish.assert_not_awaited()

    def test_dedupe_key_format(self):
        assert dedupe_key("s1", NOON) == "notify:break:s1:2026-10-13T12:00"


class TestWorkerSettings:
    def test_cron_jobs_registered(self):
        names = {job.name for job in WorkerSettings.cron_jobs}
        assert names == {"cron:break_reminder_tick", "cron:flush_outboxes"}
        assert WorkerSettings.max_jobs == 4
