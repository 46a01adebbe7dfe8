"""Shared test fixtures."""

from __future__ import annotations

import random
from datetime import datetime

import pytest

from mindscape.activities.catalog import get_template
from mindscape.activities.rotation import DailyActivity
from mindscape.notifications.channel import RecordingChannel, ToastLog
from mindscape.notifications.notifier import Notifier
from mindscape.store.memory import InMemoryTableStore
from mindscape.timers import VirtualScheduler

USER_ID = "7f1c5a52-0d55-4f43-9a57-3e7f4b1c0a11"

# A Tuesday in autumn, mid-morning local time.
NOW = datetime(2026, 10, 13, 10, 30)


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def clock(scheduler: VirtualScheduler):
    return scheduler.wall_clock(NOW)


@pytest.fixture
def store() -> InMemoryTableStore:
    return InMemoryTableStore()


@pytest.fixture
def toasts() -> ToastLog:
    return ToastLog()


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel(permission="granted")


@pytest.fixture
def notifier(channel: RecordingChannel, toasts: ToastLog) -> Notifier:
    return Notifier(channel, toasts, rng=random.Random(99))


def _make_activity(
    activity_type: str = "cloud_catcher",
    difficulty: str = "easy",
    activity_id: str = "daily_test",
    duration_minutes: int | None = None,
) -> DailyActivity:
    template = get_template(activity_type)
    if duration_minutes is not None:
        template = template.model_copy(update={"duration_minutes": duration_minutes})
    return DailyActivity(id=activity_id, template=template, effective_difficulty=difficulty)


@pytest.fixture
def make_activity():
    """Factory for a ``DailyActivity`` built from a catalog template."""
    return _make_activity
