"""Per-user notification preferences."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from mindscape.store.base import TableStore


class NotificationSettings(BaseModel):
    notifications_enabled: bool = True
    break_reminders: bool = True
    daily_rewards: bool = True
    activity_suggestions: bool = True

    @classmethod
    def from_row(cls, row: Mapping[str, Any] | None) -> NotificationSettings:
        """Build settings from a ``user_settings`` row.

        Only the master switch is stored; every category mirrors it.
        """
        if not row or row.get("notifications_enabled") is None:
            return cls()
        enabled = bool(row["notifications_enabled"])
        return cls(
            notifications_enabled=enabled,
            break_reminders=enabled,
            daily_rewards=enabled,
            activity_suggestions=enabled,
        )


async def load_notification_settings(store: TableStore, user_id: str) -> NotificationSettings:
    rows = await store.select("user_settings", {"user_id": user_id})
    return NotificationSettings.from_row(rows[0] if rows else None)
