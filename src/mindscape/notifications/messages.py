"""Canned notification copy."""

from __future__ import annotations

from mindscape.notifications.channel import NotificationAction

BREAK_MESSAGES: tuple[str, ...] = (
    "Time for a mindful break! 🧘‍♀️ Your magical city awaits.",
    "Take a moment to breathe and grow your city! ✨",
    "Your scheduled break is here - let's build something beautiful! 🏰",
    "Mindful moment time! Complete an activity to earn city rewards! 🎁",
    "Break time! Step into your magical world for a few minutes. 🌟",
)

OFFLINE_MESSAGES: tuple[str, ...] = (
    "Take a walk outside and observe 3 beautiful things! 🌳",
    "Try some gentle stretches away from the screen! 🧘‍♂️",
    "Write down one thing you're grateful for today! ✍️",
    "Take 5 deep breaths and feel the present moment! 🌬️",
    "Step outside and feel the fresh air! 🌤️",
)

DEFAULT_BREAK_TITLE = "Mindful Break Time"

BREAK_ACTIONS = [
    NotificationAction(action="open", title="Start Activity"),
    NotificationAction(action="snooze", title="Remind in 5 min"),
]
DAILY_REWARD_ACTIONS = [
    NotificationAction(action="claim", title="Claim Reward"),
    NotificationAction(action="later", title="Remind Later"),
]
SUGGESTION_ACTIONS = [
    NotificationAction(action="play", title="Play Now"),
    NotificationAction(action="dismiss", title="Maybe Later"),
]

# Tags
DAILY_REWARD_TAG = "daily-reward"
SUGGESTION_TAG = "activity-suggestion"
STREAK_TAG = "streak-celebration"
OFFLINE_TAG = "offline-encouragement"
SNOOZE_TAG = "snooze-reminder"


def break_tag(schedule_id: str) -> str:
    return f"break-{schedule_id}"
