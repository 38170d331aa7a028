"""
Table Sink Contract

Append/read/clear/sort operations over named tables with logical columns.
The sync engine and the analytics passes only talk to this interface.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Sequence


def format_cell(value: Any) -> str:
    """String form of a cell value as it is read back from a sink"""
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


class TableSink(ABC):
    """
    Tabular store addressed by table name and logical column name.

    Implementations must keep append order as row order until sort_table()
    is called.
    """

    @abstractmethod
    async def append_rows(self, table: str, rows: Sequence[Sequence[Any]]) -> None:
        """Append rows in schema column order; no-op for an empty batch"""

    @abstractmethod
    async def read_column(self, table: str, column: str) -> List[str]:
        """Values of one column for every row, as strings"""

    @abstractmethod
    async def read_rows(self, table: str) -> List[Dict[str, str]]:
        """Every row keyed by column name, values as strings"""

    @abstractmethod
    async def clear_table(self, table: str) -> None:
        """Remove every data row, keeping the table"""

    @abstractmethod
    async def sort_table(self, table: str, column: str, descending: bool = True) -> None:
        """Reorder rows by one column"""

    async def close(self) -> None:
        """Release resources held by the sink"""
