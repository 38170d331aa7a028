"""
In-Memory Table Sink

Process-local tables of string cells, used for dry runs and tests.
"""

from typing import Any, Dict, List, Sequence, Tuple

from salesync.storage.base import TableSink, format_cell
from salesync.storage.schema import get_schema


class InMemoryTableSink(TableSink):
    """Tables held as lists of string tuples in schema column order"""

    def __init__(self) -> None:
        self._tables: Dict[str, List[Tuple[str, ...]]] = {}

    def _rows(self, table: str) -> List[Tuple[str, ...]]:
        get_schema(table)
        return self._tables.setdefault(table, [])

    def row_count(self, table: str) -> int:
        return len(self._rows(table))

    async def append_rows(self, table: str, rows: Sequence[Sequence[Any]]) -> None:
        if not rows:
            return
        width = len(get_schema(table).columns)
        converted = []
        for row in rows:
            if len(row) != width:
                raise ValueError(f"Row has {len(row)} cells, {table} has {width} columns")
            converted.append(tuple(format_cell(value) for value in row))
        self._rows(table).extend(converted)

    async def read_column(self, table: str, column: str) -> List[str]:
        index = get_schema(table).index_of(column)
        return [row[index] for row in self._rows(table)]

    async def read_rows(self, table: str) -> List[Dict[str, str]]:
        columns = get_schema(table).columns
        return [dict(zip(columns, row)) for row in self._rows(table)]

    async def clear_table(self, table: str) -> None:
        self._rows(table).clear()

    async def sort_table(self, table: str, column: str, descending: bool = True) -> None:
        index = get_schema(table).index_of(column)
        self._rows(table).sort(key=lambda row: row[index], reverse=descending)
