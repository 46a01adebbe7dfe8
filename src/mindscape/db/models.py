"""ORM models for the backend tables the core reads and writes.

Rows are keyed by UUID strings. ``user_id`` references the hosted auth
users table, which is not mapped here.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from mindscape.db.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Break schedules
# ---------------------------------------------------------------------------


class BreakScheduleRow(Base):
    """A user's daily break reminder with an optional do-not-disturb window."""

    __tablename__ = "break_schedules"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    break_time: Mapped[str] = mapped_column(String(8), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    do_not_disturb_start: Mapped[str | None] = mapped_column(String(8), nullable=True)
    do_not_disturb_end: Mapped[str | None] = mapped_column(String(8), nullable=True)
    label: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------------
# Activity completions and inventory
# ---------------------------------------------------------------------------


class ActivityCompletion(Base):
    __tablename__ = "activity_completions"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    activity_id: Mapped[str] = mapped_column(String(64), nullable=False)
    activity_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    reward_earned: Mapped[str | None] = mapped_column(Text, nullable=True)
    intent_id: Mapped[str | None] = mapped_column(String(32), nullable=True, unique=True)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), index=True)


class CityItem(Base):
    """An earned item; unplaced items form the inventory."""

    __tablename__ = "city_items"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    item_name: Mapped[str] = mapped_column(Text, nullable=False)
    item_type: Mapped[str] = mapped_column(String(32), nullable=False)
    rarity: Mapped[str] = mapped_column(String(16), nullable=False, server_default="common")
    position_x: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    position_y: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    position_z: Mapped[float] = mapped_column(Float, default=0.0, server_default="0")
    is_placed: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    unlocked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------------
# Stats and rewards
# ---------------------------------------------------------------------------


class Stats(Base):
    """Aggregate per-user counters. One row per user."""

    __tablename__ = "stats"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, unique=True)
    total_breaks: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    streak_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    rare_items_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    legendary_items_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    last_activity_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class DailyRewardRow(Base):
    __tablename__ = "daily_rewards"
    __table_args__ = (UniqueConstraint("user_id", "reward_date", "reward_type"),)

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, index=True)
    reward_date: Mapped[date] = mapped_column(Date, nullable=False)
    reward_type: Mapped[str] = mapped_column(String(32), nullable=False)
    reward_item: Mapped[str | None] = mapped_column(Text, nullable=True)
    reward_rarity: Mapped[str | None] = mapped_column(String(16), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------------
# Seasonal events
# ---------------------------------------------------------------------------


class SeasonalEventRow(Base):
    """A dated event shared by every user; both bounds are inclusive."""

    __tablename__ = "seasonal_events"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    season: Mapped[str | None] = mapped_column(String(16), nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class UserSettings(Base):
    __tablename__ = "user_settings"

    id: Mapped[str] = mapped_column(UUID(as_uuid=False), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(UUID(as_uuid=False), nullable=False, unique=True)
    notifications_enabled: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    music_enabled: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    voice_guidance_enabled: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    volume: Mapped[int] = mapped_column(Integer, default=50, server_default="50")
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


TABLE_MODELS: dict[str, type[Base]] = {
    "break_schedules": BreakScheduleRow,
    "activity_completions": ActivityCompletion,
    "city_items": CityItem,
    "stats": Stats,
    "daily_rewards": DailyRewardRow,
    "user_settings": UserSettings,
    "seasonal_events": SeasonalEventRow,
}
