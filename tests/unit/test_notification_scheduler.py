"""Unit tests for break reminder scheduling and click routing."""

from datetime import datetime, time, timedelta
from unittest.mock import MagicMock

import pytest

from mindscape.notifications.channel import RecordingChannel
from mindscape.notifications.notifier import Notifier
from mindscape.notifications.scheduler import (
    BreakSchedule,
    NotificationScheduler,
    format_hhmm,
    in_do_not_disturb,
    is_due,
    load_break_schedules,
    parse_hhmm,
)
from mindscape.store.memory import InMemoryTableStore


def at(hour, minute, day=13):
    return datetime(2026, 10, day, hour, minute)


@pytest.fixture
async def granted_notifier(notifier):
    await notifier.ensure_permission()
    return notifier


class TestParseTime:
    def test_parse(self):
        assert parse_hhmm("09:05") == 545
        assert parse_hhmm("23:59:30") == 23 * 60 + 59
        assert parse_hhmm(time(6, 0)) == 360

    @pytest.mark.parametrize("value", ["9", "24:00", "12:60", "noon"])
    def test_rejects_bad_values(self, value):
        with pytest.raises(ValueError):
            parse_hhmm(value)

    def test_schedule_normalizes_times(self):
        schedule = BreakSchedule(id="s1", break_time="9:5:00", dnd_start=time(22, 0), dnd_end="")
        assert schedule.break_time == "09:05"
        assert schedule.dnd_start == "22:00"
        assert schedule.dnd_end is None
        assert format_hhmm(at(7, 3)) == "07:03"


class TestDoNotDisturb:
    """Quiet-hour windows, including ones that wrap past midnight."""

    def test_overnight_window(self):
        schedule = BreakSchedule(id="s1", break_time="23:30", dnd_start="22:00", dnd_end="06:00")
        assert in_do_not_disturb(schedule, at(23, 30))
        assert in_do_not_disturb(schedule, at(5, 0))
        assert in_do_not_disturb(schedule, at(6, 0))
        assert not in_do_not_disturb(schedule, at(12, 0))
        assert not in_do_not_disturb(schedule, at(21, 59))

    def test_daytime_window_is_half_open(self):
        schedule = BreakSchedule(id="s1", break_time="12:00", dnd_start="12:00", dnd_end="13:00")
        assert in_do_not_disturb(schedule, at(12, 0))
        assert in_do_not_disturb(schedule, at(12, 59))
        assert not in_do_not_disturb(schedule, at(13, 0))
        assert not in_do_not_disturb(schedule, at(11, 59))

    def test_missing_bound_disables_window(self):
        schedule = BreakSchedule(id="s1", break_time="12:00", dnd_start="12:00")
        assert not in_do_not_disturb(schedule, at(12, 0))

    def test_due_respects_window(self):
        quiet = BreakSchedule(id="s1", break_time="23:30", dnd_start="22:00", dnd_end="06:00")
        assert not is_due(quiet, at(23, 30))
        open_ = BreakSchedule(id="s2", break_time="12:00", dnd_start="22:00", dnd_end="06:00")
        assert is_due(open_, at(12, 0))
        assert not is_due(open_, at(12, 1))

    def test_inactive_never_due(self):
        schedule = BreakSchedule(id="s1", break_time="12:00", is_active=False)
        assert not is_due(schedule, at(12, 0))


class TestCheck:
    """One polling pass."""

    async def test_fires_once_per_minute(self, granted_notifier, scheduler, channel):
        schedule = BreakSchedule(id="s1", break_time="12:00", label="Lunch pause")
        notifications = NotificationScheduler(granted_notifier, scheduler, schedules=[schedule])

        first = await notifications.check(at(12, 0))
        second = await notifications.check(at(12, 0).replace(second=40))

        assert len(first) == 1
        assert second == []
        assert first[0].title == "Lunch pause"
        assert first[0].tag == "break-s1"
        assert first[0].data == {"schedule_id": "s1"}
        assert [a.action for a in first[0].actions] == ["open", "snooze"]
        assert len(channel.shown) == 1

    async def test_fires_again_next_day(self, granted_notifier, scheduler):
        schedule = BreakSchedule(id="s1", break_time="12:00")
        notifications = NotificationScheduler(granted_notifier, scheduler, schedules=[schedule])
        assert len(await notifications.check(at(12, 0))) == 1
        assert len(await notifications.check(at(12, 0, day=14))) == 1

    async def test_suppressed_inside_overnight_window(self, granted_notifier, scheduler, channel):
        schedules = [
            BreakSchedule(id="late", break_time="23:30", dnd_start="22:00", dnd_end="06:00"),
            BreakSchedule(id="early", break_time="05:00", dnd_start="22:00", dnd_end="06:00"),
        ]
        notifications = NotificationScheduler(granted_notifier, scheduler, schedules=schedules)
        assert await notifications.check(at(23, 30)) == []
        assert await notifications.check(at(5, 0)) == []
        assert channel.shown == []

    async def test_daily_reward_reminder_once_per_day(self, granted_notifier, scheduler):
        notifications = NotificationScheduler(granted_notifier, scheduler)

        morning = await notifications.check(at(9, 0))
        later = await notifications.check(at(9, 1))
        tomorrow = await notifications.check(at(9, 30, day=14))

        assert [n.title for n in morning] == ["Daily Reward Available! 🎁"]
        assert later == []
        assert [n.tag for n in tomorrow] == ["daily-reward"]

    async def test_disabled_break_reminders(self, notifier, scheduler, channel):
        notifier.settings = notifier.settings.model_copy(update={"break_reminders": False})
        schedule = BreakSchedule(id="s1", break_time="12:00")
        notifications = NotificationScheduler(notifier, scheduler, schedules=[schedule])
        assert await notifications.check(at(12, 0)) == []

    async def test_streak_celebration(self, granted_notifier, scheduler):
        notifications = NotificationScheduler(granted_notifier, scheduler)
        assert await notifications.celebrate_streak(6) is None
        assert (await notifications.celebrate_streak(14)).title == "14 Day Streak! 🔥"


class TestPolling:
    """Immediate check on start, then once per interval."""

    async def test_start_checks_immediately_then_polls(self, notifier, scheduler, channel, clock, now):
        schedules = [
            BreakSchedule(id="now", break_time=format_hhmm(now)),
            BreakSchedule(id="next", break_time=format_hhmm(now + timedelta(minutes=1))),
        ]
        notifications = NotificationScheduler(notifier, scheduler, clock=clock, schedules=schedules)

        await notifications.start()
        assert channel.permission_requests == 1
        assert [n.tag for n in channel.shown] == ["break-now"]

        scheduler.advance(60)
        await notifications.drain()
        assert [n.tag for n in channel.shown] == ["break-now", "break-next"]

        scheduler.advance(600)
        await notifications.drain()
        assert len(channel.shown) == 2

        notifications.stop()
        assert not notifications.running
        assert scheduler.pending == 0

    async def test_denied_permission_degrades_to_toasts(self, toasts, scheduler, clock, now):
        channel = RecordingChannel(permission="denied")
        notifier = Notifier(channel, toasts)
        schedule = BreakSchedule(id="s1", break_time=format_hhmm(now))
        notifications = NotificationScheduler(notifier, scheduler, clock=clock, schedules=[schedule])

        await notifications.start()
        await notifications.start()

        assert channel.shown == []
        assert toasts.titles == ["Mindful Break Time"]
        assert channel.permission_requests == 1
        notifications.stop()

    async def test_load_from_store(self, notifier, scheduler, user_id):
        store = InMemoryTableStore({
            "break_schedules": [
                {"user_id": user_id, "break_time": "15:00", "is_active": True},
                {"user_id": user_id, "break_time": "09:30:00", "is_active": True,
                 "do_not_disturb_start": "22:00", "do_not_disturb_end": "06:00"},
                {"user_id": user_id, "break_time": "11:00", "is_active": False},
                {"user_id": "other", "break_time": "10:00", "is_active": True},
            ],
            "user_settings": [{"user_id": user_id, "notifications_enabled": False}],
        })
        notifications = NotificationScheduler(notifier, scheduler)

        await notifications.load(store, user_id)

        assert [s.break_time for s in notifications.schedules] == ["09:30", "15:00"]
        assert notifications.schedules[0].dnd_start == "22:00"
        assert notifier.settings.break_reminders is False

    async def test_load_break_schedules_only_active(self, user_id):
        store = InMemoryTableStore({
            "break_schedules": [{"user_id": user_id, "break_time": "11:00", "is_active": False}],
        })
        assert await load_break_schedules(store, user_id) == []


class TestClickRouting:
    """Notification action handling."""

    @pytest.mark.parametrize("action,route", [("open", "/activities"), ("play", "/activities"), ("claim", "/stats")])
    def test_routes(self, notifier, scheduler, action, route):
        navigate = MagicMock()
        notifications = NotificationScheduler(notifier, scheduler, navigate=navigate)
        assert notifications.handle_click(action, "break-s1") == route
        navigate.assert_called_once_with(route)

    @pytest.mark.parametrize("action", [None, "", "dismiss", "later"])
    def test_no_op_actions(self, notifier, scheduler, action):
        navigate = MagicMock()
        notifications = NotificationScheduler(notifier, scheduler, navigate=navigate)
        assert notifications.handle_click(action) is None
        navigate.assert_not_called()
        assert scheduler.pending == 0

    def test_unknown_action(self, notifier, scheduler):
        notifications = NotificationScheduler(notifier, scheduler)
        assert notifications.handle_click("teleport") is None

    async def test_snooze_reminds_after_five_minutes(self, granted_notifier, scheduler, channel):
        notifications = NotificationScheduler(granted_notifier, scheduler)

        assert notifications.handle_click("snooze", "break-s1") is None

        scheduler.advance(299)
        await notifications.drain()
        assert channel.shown == []

        scheduler.advance(1)
        await notifications.drain()
        assert [n.title for n in channel.shown] == ["Snooze Reminder"]
        assert channel.shown[0].body == "Your mindful break is still waiting! 🌟"

    async def test_fired_snoozes_are_forgotten(self, granted_notifier, scheduler, channel):
        notifications = NotificationScheduler(granted_notifier, scheduler)
        notifications.handle_click("snooze")
        scheduler.advance(60)
        notifications.handle_click("snooze")
        assert notifications.pending_snoozes == 2

        scheduler.advance(240)
        await notifications.drain()
        assert notifications.pending_snoozes == 1

        scheduler.advance(60)
        await notifications.drain()
        assert notifications.pending_snoozes == 0
        assert [n.title for n in channel.shown] == ["Snooze Reminder", "Snooze Reminder"]

    def test_stop_cancels_pending_snooze(self, notifier, scheduler):
        notifications = NotificationScheduler(notifier, scheduler)
        notifications.handle_click("snooze")
        notifications.stop()
        assert scheduler.pending == 0
