"""Seasonal events running on a given day."""

from __future__ import annotations

from datetime import date, timedelta

from pydantic import BaseModel

from mindscape.activities.season import Season
from mindscape.store.base import Range, Row, TableStore


class SeasonalEvent(BaseModel):
    id: str
    name: str
    description: str | None = None
    season: Season | None = None
    start_date: date
    end_date: date

    def is_active(self, day: date) -> bool:
        """Both ends of the event are inclusive."""
        return self.start_date <= day <= self.end_date

    @classmethod
    def from_row(cls, row: Row) -> SeasonalEvent:
        return cls.model_validate({key: row.get(key) for key in cls.model_fields})


async def load_active_events(store: TableStore, today: date) -> list[SeasonalEvent]:
    """Events with ``start_date <= today <= end_date``, earliest start first."""
    rows = await store.select(
        "seasonal_events",
        {
            "start_date": Range(lt=today + timedelta(days=1)),
            "end_date": Range(gte=today),
        },
        order_by="start_date",
    )
    return [SeasonalEvent.from_row(row) for row in rows]
