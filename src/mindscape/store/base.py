"""Row-oriented persistence port.

The hosted backend is reached only through this table surface. Filters
are equality on columns, or a ``Range`` for bounded comparisons.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

Row = dict[str, Any]
Filters = Mapping[str, Any]

TABLES: frozenset[str] = frozenset({
    "break_schedules",
    "activity_completions",
    "city_items",
    "stats",
    "daily_rewards",
    "user_settings",
    "seasonal_events",
})


@dataclass(frozen=True)
class Range:
    """Half-open bound ``gte <= value < lt``; either side may be omitted."""

    gte: Any = None
    lt: Any = None

    def contains(self, value: Any) -> bool:
        if value is None:
            return False
        if self.gte is not None and value < self.gte:
            return False
        if self.lt is not None and value >= self.lt:
            return False
        return True


def check_table(table: str) -> None:
    if table not in TABLES:
        raise ValueError(f"Unknown table: {table}. Must be one of {sorted(TABLES)}")


def row_matches(row: Mapping[str, Any], filters: Filters | None) -> bool:
    """Check a row against equality / Range filters."""
    for column, expected in (filters or {}).items():
        value = row.get(column)
        if isinstance(expected, Range):
            if not expected.contains(value):
                return False
        elif value != expected:
            return False
    return True


class TableStore(ABC):
    """Abstract persistence collaborator."""

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Filters | None = None,
        order_by: str | None = None,
    ) -> list[Row]:
        """Return matching rows. ``order_by`` is a column name, prefixed with ``-`` for descending."""

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """Insert a row and return it as stored (with generated id)."""

    @abstractmethod
    async def update(self, table: str, filters: Filters, patch: Row) -> int:
        """Apply ``patch`` to matching rows. Returns the number of rows changed."""

    @abstractmethod
    async def delete(self, table: str, filters: Filters) -> int:
        """Delete matching rows. Returns the number of rows removed."""

    @abstractmethod
    async def upsert(self, table: str, row: Row, conflict: Sequence[str] = ("user_id",)) -> Row:
        """Insert ``row`` or merge it into the row matching the ``conflict`` columns."""
