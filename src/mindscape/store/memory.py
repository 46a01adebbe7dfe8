"""In-memory table store for tests and headless runs."""

from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence

from mindscape.errors import CollaboratorUnavailableError, CollaboratorWriteError
from mindscape.store.base import Filters, Row, TableStore, check_table, row_matches

# Mirrors the unique columns of the backend tables.
UNIQUE_COLUMNS: dict[str, tuple[str, ...]] = {
    "activity_completions": ("intent_id",),
}


class InMemoryTableStore(TableStore):
    """Dict-backed store.

    Writes can be made to fail per table (``fail_writes``) or globally
    (``offline = True``) to exercise partial-write and offline paths.
    """

    def __init__(self, rows: Mapping[str, Iterable[Row]] | None = None) -> None:
        self._tables: dict[str, list[Row]] = defaultdict(list)
        self._failing: set[str] = set()
        self.offline = False
        self.write_log: list[tuple[str, str]] = []  # (operation, table)
        for table, table_rows in (rows or {}).items():
            check_table(table)
            for row in table_rows:
                self._tables[table].append({"id": str(uuid.uuid4()), **row})

    def fail_writes(self, *tables: str) -> None:
        for table in tables:
            check_table(table)
        self._failing.update(tables)

    def restore_writes(self) -> None:
        self._failing.clear()
        self.offline = False

    def rows(self, table: str) -> list[Row]:
        check_table(table)
        return [dict(row) for row in self._tables[table]]

    def _guard_write(self, operation: str, table: str) -> None:
        check_table(table)
        if self.offline:
            raise CollaboratorUnavailableError(table, f"Backend unreachable ({operation} {table})")
        if table in self._failing:
            raise CollaboratorWriteError(table)
        self.write_log.append((operation, table))

    async def select(
        self,
        table: str,
        filters: Filters | None = None,
        order_by: str | None = None,
    ) -> list[Row]:
        check_table(table)
        result = [dict(row) for row in self._tables[table] if row_matches(row, filters)]
        if order_by:
            column = order_by.lstrip("-")
            present = [r for r in result if r.get(column) is not None]
            present.sort(key=lambda r: r[column], reverse=order_by.startswith("-"))
            # NULLs sort last in both directions
            result = present + [r for r in result if r.get(column) is None]
        return result

    async def insert(self, table: str, row: Row) -> Row:
        self._guard_write("insert", table)
        for column in UNIQUE_COLUMNS.get(table, ()):
            value = row.get(column)
            if value is not None and any(existing.get(column) == value for existing in self._tables[table]):
                raise CollaboratorWriteError(table, f"Duplicate {column} in {table}: {value}")
        stored = {"id": str(uuid.uuid4()), **row}
        self._tables[table].append(stored)
        return dict(stored)

    async def update(self, table: str, filters: Filters, patch: Row) -> int:
        self._guard_write("update", table)
        changed = 0
        for row in self._tables[table]:
            if row_matches(row, filters):
                row.update(patch)
                changed += 1
        return changed

    async def delete(self, table: str, filters: Filters) -> int:
        self._guard_write("delete", table)
        before = len(self._tables[table])
        self._tables[table] = [row for row in self._tables[table] if not row_matches(row, filters)]
        return before - len(self._tables[table])

    async def upsert(self, table: str, row: Row, conflict: Sequence[str] = ("user_id",)) -> Row:
        self._guard_write("upsert", table)
        key = {column: row.get(column) for column in conflict}
        for existing in self._tables[table]:
            if row_matches(existing, key):
                existing.update(row)
                return dict(existing)
        stored = {"id": str(uuid.uuid4()), **row}
        self._tables[table].append(stored)
        return dict(stored)
