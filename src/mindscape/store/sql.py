"""SQLAlchemy-backed table store.

Statements are SQLAlchemy Core on the mapped tables; every write commits on
its own, so a failed write never takes earlier ones down with it.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mindscape.db.base import Base
from mindscape.db.models import TABLE_MODELS
from mindscape.errors import CollaboratorUnavailableError, CollaboratorWriteError
from mindscape.store.base import Filters, Range, Row, TableStore, check_table

logger = logging.getLogger(__name__)


def _model(table: str) -> type[Base]:
    check_table(table)
    return TABLE_MODELS[table]


def _conditions(model: type[Base], filters: Filters | None) -> list[Any]:
    columns = model.__table__.c
    conditions = []
    for name, expected in (filters or {}).items():
        column = columns[name]
        if isinstance(expected, Range):
            if expected.gte is not None:
                conditions.append(column >= expected.gte)
            if expected.lt is not None:
                conditions.append(column < expected.lt)
        elif expected is None:
            conditions.append(column.is_(None))
        else:
            conditions.append(column == expected)
    return conditions


class SqlTableStore(TableStore):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def select(
        self,
        table: str,
        filters: Filters | None = None,
        order_by: str | None = None,
    ) -> list[Row]:
        model = _model(table)
        stmt = select(model.__table__).where(*_conditions(model, filters))
        if order_by:
            column = model.__table__.c[order_by.lstrip("-")]
            stmt = stmt.order_by(column.desc() if order_by.startswith("-") else column.asc())
        result = await self.session.execute(stmt)
        return [dict(row._mapping) for row in result]

    async def insert(self, table: str, row: Row) -> Row:
        model = _model(table)
        stmt = insert(model.__table__).values(**row).returning(*model.__table__.c)
        result = await self._write(table, stmt)
        return dict(result.one()._mapping)

    async def update(self, table: str, filters: Filters, patch: Row) -> int:
        model = _model(table)
        stmt = update(model.__table__).where(*_conditions(model, filters)).values(**patch)
        result = await self._write(table, stmt)
        return result.rowcount

    async def delete(self, table: str, filters: Filters) -> int:
        model = _model(table)
        stmt = delete(model.__table__).where(*_conditions(model, filters))
        result = await self._write(table, stmt)
        return result.rowcount

    async def upsert(self, table: str, row: Row, conflict: Sequence[str] = ("user_id",)) -> Row:
        model = _model(table)
        stmt = pg_insert(model.__table__).values(**row)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(conflict),
            set_={key: value for key, value in row.items() if key not in conflict},
        ).returning(*model.__table__.c)
        result = await self._write(table, stmt)
        return dict(result.one()._mapping)

    async def _write(self, table: str, stmt: Any) -> Any:
        try:
            result = await self.session.execute(stmt)
            await self.session.commit()
        except (OperationalError, InterfaceError, OSError) as exc:
            await self.session.rollback()
            logger.warning("Backend unreachable during write to %s: %s", table, exc)
            raise CollaboratorUnavailableError(table, f"Backend unreachable: {exc}") from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            logger.error("Write to %s failed: %s", table, exc)
            raise CollaboratorWriteError(table, f"Write to {table} failed: {exc}") from exc
        return result
