"""
Database Table Sink

TableSink over the SQLAlchemy models. Row order is kept in the position
column: appends continue after the current maximum and sort_table() rewrites
positions in the requested order.
"""

from contextlib import AbstractAsyncContextManager
from typing import Any, Callable, Dict, List, Sequence, Type

import structlog
from sqlalchemy import Integer, Numeric, delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from salesync.database.connection import get_db
from salesync.database.models import TABLE_MODELS, Base
from salesync.models.records import to_decimal, to_int
from salesync.storage.base import TableSink, format_cell
from salesync.storage.schema import get_schema

logger = structlog.get_logger(__name__)

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]


def _cell_value(column_type: Any, value: Any) -> Any:
    """Coerce a cell to the Python type its column stores"""
    if isinstance(column_type, Numeric):
        return to_decimal(value)
    if isinstance(column_type, Integer):
        return to_int(value)
    return format_cell(value)


class DatabaseTableSink(TableSink):
    """
    Table sink backed by the relational database.

    Example:
        await init_database()
        sink = DatabaseTableSink()
        await sink.append_rows("sales_fact", rows)
    """

    def __init__(self, session_scope: SessionScope = get_db):
        self._session_scope = session_scope

    @staticmethod
    def _model(table: str) -> Type[Base]:
        get_schema(table)
        return TABLE_MODELS[table]

    async def append_rows(self, table: str, rows: Sequence[Sequence[Any]]) -> None:
        if not rows:
            return
        model = self._model(table)
        columns = get_schema(table).columns
        types = {column: model.__table__.c[column].type for column in columns}

        mappings: List[Dict[str, Any]] = []
        for row in rows:
            if len(row) != len(columns):
                raise ValueError(f"Row has {len(row)} cells, {table} has {len(columns)} columns")
            mappings.append({
                column: _cell_value(types[column], value) for column, value in zip(columns, row)
            })

        async with self._session_scope() as session:
            current = await session.scalar(select(func.max(model.position)))
            start = -1 if current is None else current
            for offset, mapping in enumerate(mappings, start=1):
                session.add(model(position=start + offset, **mapping))

        logger.debug("Rows appended", table=table, rows=len(mappings))

    async def read_column(self, table: str, column: str) -> List[str]:
        model = self._model(table)
        get_schema(table).index_of(column)
        attribute = getattr(model, column)

        async with self._session_scope() as session:
            result = await session.execute(select(attribute).order_by(model.position, model.row_id))
            return [format_cell(value) for value in result.scalars()]

    async def read_rows(self, table: str) -> List[Dict[str, str]]:
        model = self._model(table)
        columns = get_schema(table).columns

        async with self._session_scope() as session:
            result = await session.execute(select(model).order_by(model.position, model.row_id))
            return [
                {column: format_cell(getattr(obj, column)) for column in columns}
                for obj in result.scalars()
            ]

    async def clear_table(self, table: str) -> None:
        model = self._model(table)
        async with self._session_scope() as session:
            await session.execute(delete(model))
        logger.debug("Table cleared", table=table)

    async def sort_table(self, table: str, column: str, descending: bool = True) -> None:
        model = self._model(table)
        get_schema(table).index_of(column)
        attribute = getattr(model, column)
        key = attribute.desc() if descending else attribute.asc()

        async with self._session_scope() as session:
            result = await session.execute(select(model.row_id).order_by(key, model.position, model.row_id))
            ordered = [{"row_id": row_id, "position": index} for index, row_id in enumerate(result.scalars())]
            if ordered:
                await session.execute(update(model), ordered)

        logger.debug("Table sorted", table=table, column=column, descending=descending, rows=len(ordered))
