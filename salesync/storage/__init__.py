"""
Table Storage Module
"""
from .base import TableSink, format_cell
from .memory import InMemoryTableSink
from .schema import (
    INVENTORY_FEED,
    MODEL_COSTS,
    MODEL_PROFITABILITY,
    SALES_FACT,
    SALES_KEY_COLUMNS,
    TableSchema,
    get_schema,
)

__all__ = [
    "TableSink",
    "format_cell",
    "InMemoryTableSink",
    "INVENTORY_FEED",
    "MODEL_COSTS",
    "MODEL_PROFITABILITY",
    "SALES_FACT",
    "SALES_KEY_COLUMNS",
    "TableSchema",
    "get_schema",
]
