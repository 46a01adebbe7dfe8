"""Calendar season resolution."""

from __future__ import annotations

from datetime import date, datetime
from typing import Literal

Season = Literal["spring", "summer", "autumn", "winter"]

SEASONS: tuple[Season, ...] = ("spring", "summer", "autumn", "winter")

SEASON_EMOJI: dict[Season, str] = {
    "spring": "🌸",
    "summer": "☀️",
    "autumn": "🍂",
    "winter": "❄️",
}


def resolve_season(day: date | None = None) -> Season:
    """Map a calendar date to its season.

    Spring is March-May, summer June-August, autumn September-November,
    winter December-February.
    """
    if day is None:
        day = datetime.now().date()
    month = day.month
    if 3 <= month <= 5:
        return "spring"
    if 6 <= month <= 8:
        return "summer"
    if 9 <= month <= 11:
        return "autumn"
    return "winter"
