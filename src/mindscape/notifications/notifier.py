"""Notification delivery.

Every message is shown as an in-app toast when a toast sink is attached
(server-side senders have none). It is additionally shown through the OS
channel when permission was granted and notifications are enabled;
a denied permission silently degrades to toast only.
"""

from __future__ import annotations

import random
from collections.abc import Sequence
from typing import Any

import structlog

from mindscape.activities.season import SEASON_EMOJI, Season
from mindscape.notifications.channel import (
    DEFAULT_TAG,
    Notification,
    NotificationAction,
    NotificationChannel,
    Permission,
    Toast,
    ToastSink,
)
from mindscape.notifications.messages import (
    BREAK_ACTIONS,
    BREAK_MESSAGES,
    DAILY_REWARD_ACTIONS,
    DAILY_REWARD_TAG,
    DEFAULT_BREAK_TITLE,
    OFFLINE_MESSAGES,
    OFFLINE_TAG,
    SNOOZE_TAG,
    STREAK_TAG,
    SUGGESTION_ACTIONS,
    SUGGESTION_TAG,
    break_tag,
)
from mindscape.notifications.preferences import NotificationSettings

logger = structlog.get_logger()

STREAK_CELEBRATION_DAYS = 7


class Notifier:
    def __init__(
        self,
        channel: NotificationChannel,
        toasts: ToastSink | None = None,
        settings: NotificationSettings | None = None,
        rng: random.Random | None = None,
        streak_celebration_days: int = STREAK_CELEBRATION_DAYS,
    ) -> None:
        self.channel = channel
        self.toasts = toasts
        self.settings = settings or NotificationSettings()
        self.rng = rng or random.Random()
        self.streak_celebration_days = streak_celebration_days
        self.permission: Permission = "default"

    async def ensure_permission(self) -> Permission:
        """Ask for permission once; a decided answer is never re-requested."""
        if self.permission == "default":
            self.permission = await self.channel.request_permission()
            logger.info("notification_permission", permission=self.permission)
        return self.permission

    async def send(
        self,
        title: str,
        body: str,
        tag: str = DEFAULT_TAG,
        actions: Sequence[NotificationAction] = (),
        data: dict[str, Any] | None = None,
    ) -> Notification:
        notification = Notification(title=title, body=body, tag=tag, actions=list(actions), data=data or {})
        delivered = self.permission == "granted" and self.settings.notifications_enabled
        if delivered:
            await self.channel.show(notification)
        if self.toasts is not None:
            self.toasts.show(Toast(title=title, description=body))
        logger.info("notification_sent", tag=tag, os_delivered=delivered)
        return notification

    async def break_reminder(self, schedule_id: str, label: str | None = None) -> Notification | None:
        if not self.settings.break_reminders:
            return None
        return await self.send(
            label or DEFAULT_BREAK_TITLE,
            self.rng.choice(BREAK_MESSAGES),
            tag=break_tag(schedule_id),
            actions=BREAK_ACTIONS,
            data={"schedule_id": schedule_id},
        )

    async def daily_reward_reminder(self) -> Notification | None:
        if not self.settings.daily_rewards:
            return None
        return await self.send(
            "Daily Reward Available! 🎁",
            "Claim your daily city item and keep your streak alive!",
            tag=DAILY_REWARD_TAG,
            actions=DAILY_REWARD_ACTIONS,
        )

    async def activity_suggestion(self, activity_name: str, season: Season) -> Notification | None:
        if not self.settings.activity_suggestions:
            return None
        return await self.send(
            f"New {season} Activity Available!",
            f'Try "{activity_name}" {SEASON_EMOJI[season]} - Limited time seasonal variant!',
            tag=SUGGESTION_TAG,
            actions=SUGGESTION_ACTIONS,
        )

    async def streak_celebration(self, streak_count: int) -> Notification | None:
        """Celebrate every full week of streak."""
        if streak_count <= 0 or streak_count % self.streak_celebration_days:
            return None
        return await self.send(
            f"{streak_count} Day Streak! 🔥",
            "Amazing dedication! Your city is flourishing with your consistent mindful breaks.",
            tag=STREAK_TAG,
        )

    async def offline_encouragement(self) -> Notification:
        return await self.send("Offline Mindful Moment", self.rng.choice(OFFLINE_MESSAGES), tag=OFFLINE_TAG)

    async def snooze_reminder(self) -> Notification:
        return await self.send(
            "Snooze Reminder",
            "Your mindful break is still waiting! 🌟",
            tag=SNOOZE_TAG,
        )
