"""Database layer: async engine, sink tables and the database-backed sink"""

from salesync.database.connection import (
    check_database_health,
    close_database,
    create_tables,
    get_db,
    get_engine,
    init_database,
)
from salesync.database.models import (
    Base,
    InventoryFeed,
    ModelCost,
    ModelProfitability,
    SalesFact,
    TABLE_MODELS,
)
from salesync.database.sink import DatabaseTableSink

__all__ = [
    "Base",
    "DatabaseTableSink",
    "InventoryFeed",
    "ModelCost",
    "ModelProfitability",
    "SalesFact",
    "TABLE_MODELS",
    "check_database_health",
    "close_database",
    "create_tables",
    "get_db",
    "get_engine",
    "init_database",
]
