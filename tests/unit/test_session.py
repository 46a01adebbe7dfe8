"""Unit tests for the outer session timer."""

from unittest.mock import MagicMock

import pytest

from mindscape.activities.minigames.base import CompletionResult, ManualActivity
from mindscape.activities.minigames.cloud_catcher import CloudCatcher
from mindscape.activities.minigames.garden_bloom import GardenBloom
from mindscape.activities.minigames.lantern_release import LanternRelease
from mindscape.activities.minigames.session import ActivitySession, build_mini_activity


class TestBuildMiniActivity:
    @pytest.mark.parametrize(
        "activity_type,cls",
        [("cloud_catcher", CloudCatcher), ("lantern_release", LanternRelease), ("garden_bloom", GardenBloom)],
    )
    def test_registry(self, scheduler, activity_type, cls):
        assert isinstance(build_mini_activity(activity_type, scheduler), cls)

    def test_unknown_type_falls_back_to_manual(self, scheduler):
        assert isinstance(build_mini_activity("star_path", scheduler, "medium"), ManualActivity)


class TestActivitySession:
    """Outer timer versus inner machine."""

    def test_outer_timeout_wins_over_slow_machine(self, scheduler, make_activity):
        activity = make_activity("garden_bloom", "expert", duration_minutes=1)
        on_complete = MagicMock()
        session = ActivitySession(activity, scheduler, "autumn", on_complete)
        session.start()

        scheduler.advance(59)
        on_complete.assert_not_called()

        scheduler.advance(1)
        on_complete.assert_called_once()
        result = on_complete.call_args.args[0]
        assert result.completed is False
        assert result.timeout is True
        assert session.status == "timed_out"
        assert session.machine.status == "timed_out"

        scheduler.advance(120)
        on_complete.assert_called_once()
        assert scheduler.pending == 0

    def test_countdown_wins_when_both_fall_due_together(self, scheduler, make_activity):
        # five medium cycles take exactly 60 s
        activity = make_activity("garden_bloom", "medium", duration_minutes=1)
        on_complete = MagicMock()
        session = ActivitySession(activity, scheduler, "autumn", on_complete)
        session.start()

        scheduler.advance(60)

        on_complete.assert_called_once()
        result = on_complete.call_args.args[0]
        assert result.timeout is True
        assert result.completed is False
        assert result.cycles is None
        assert session.status == "timed_out"
        assert session.time_left == 0
        assert scheduler.pending == 0

    def test_inner_completion_just_before_deadline_wins(self, scheduler, make_activity):
        machine = ManualActivity(scheduler)
        on_complete = MagicMock()
        session = ActivitySession(
            make_activity("star_path", duration_minutes=1), scheduler, "autumn", on_complete, machine=machine,
        )
        session.start()
        scheduler.advance(59.5)
        machine.complete()

        assert on_complete.call_args.args[0].completed is True
        assert session.status == "completed"

    def test_inner_completion_gets_payload(self, scheduler, make_activity):
        activity = make_activity("lantern_release", activity_id="daily_abc")
        on_complete = MagicMock()
        session = ActivitySession(activity, scheduler, "autumn", on_complete)
        session.start()
        session.machine.release("rest")

        scheduler.advance(3)

        result = on_complete.call_args.args[0]
        assert result.completed is True
        assert result.intention == "rest"
        assert result.activity_id == "daily_abc"
        assert result.reward == activity.reward
        assert result.season_bonus is True
        assert session.status == "completed"
        assert scheduler.pending == 0

    def test_summer_has_no_season_bonus(self, scheduler, make_activity):
        on_complete = MagicMock()
        session = ActivitySession(make_activity("cloud_catcher"), scheduler, "summer", on_complete)
        session.start()
        scheduler.advance(30)
        assert on_complete.call_args.args[0].season_bonus is False

    def test_time_left_counts_down(self, scheduler, make_activity):
        session = ActivitySession(make_activity("cloud_catcher"), scheduler, "autumn", MagicMock())
        assert session.time_left == 180
        session.start()
        scheduler.advance(10)
        assert session.time_left == 170

    def test_cancel_calls_on_cancel_and_suppresses_completion(self, scheduler, make_activity):
        on_complete = MagicMock()
        on_cancel = MagicMock()
        session = ActivitySession(make_activity("cloud_catcher"), scheduler, "autumn", on_complete, on_cancel)
        session.start()
        scheduler.advance(10)

        assert session.cancel() is True
        on_cancel.assert_called_once_with()
        scheduler.advance(600)
        on_complete.assert_not_called()
        assert session.status == "cancelled"
        assert session.cancel() is False

    def test_cancel_after_lantern_release_ignores_late_completion(self, scheduler, make_activity):
        on_complete = MagicMock()
        session = ActivitySession(make_activity("lantern_release"), scheduler, "autumn", on_complete)
        session.start()
        session.machine.release("go")

        assert session.cancel() is True
        scheduler.advance(5)
        on_complete.assert_not_called()
        assert session.result is None

    def test_injected_machine(self, scheduler, make_activity):
        machine = ManualActivity(scheduler)
        on_complete = MagicMock()
        session = ActivitySession(make_activity("star_path"), scheduler, "winter", on_complete, machine=machine)
        session.start()
        machine.complete()
        result: CompletionResult = on_complete.call_args.args[0]
        assert result.completed is True
        assert result.activity_id == "daily_test"
