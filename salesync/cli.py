"""
Command Line Entry Point

Usage:
    salesync init-db
    salesync sync --days 7 --channels shopify
    salesync sync --start 2024-01-01 --end 2024-01-31
    salesync import-costs costs.csv
    salesync profitability
    salesync inventory
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Awaitable, Callable, Dict, List, Optional

import polars as pl
import structlog

from salesync.analytics import InventorySync, ProfitabilityCalculator, import_costs
from salesync.config.logging import configure_logging
from salesync.database.connection import close_database, create_tables, init_database
from salesync.database.sink import DatabaseTableSink
from salesync.exceptions import SalesSyncError
from salesync.sync import SyncEngine, SyncRequest

logger = structlog.get_logger(__name__)


async def _with_database(action: Callable[[DatabaseTableSink], Awaitable[Dict[str, Any]]]) -> Dict[str, Any]:
    await init_database()
    try:
        await create_tables()
        return await action(DatabaseTableSink())
    finally:
        await close_database()


async def cmd_init_db(args: argparse.Namespace) -> Dict[str, Any]:
    async def action(sink: DatabaseTableSink) -> Dict[str, Any]:
        return {"ok": True}
    return await _with_database(action)


async def cmd_sync(args: argparse.Namespace) -> Dict[str, Any]:
    request = SyncRequest(start=args.start, end=args.end, days=args.days, channels=args.channels)

    async def action(sink: DatabaseTableSink) -> Dict[str, Any]:
        result = await SyncEngine(sink).sync(request)
        return {"ok": True, **result.model_dump(mode="json")}
    return await _with_database(action)


async def cmd_profitability(args: argparse.Namespace) -> Dict[str, Any]:
    async def action(sink: DatabaseTableSink) -> Dict[str, Any]:
        summary = await ProfitabilityCalculator(sink).run()
        return {"ok": True, "updated": summary.rows, **summary.to_dict()}
    return await _with_database(action)


async def cmd_inventory(args: argparse.Namespace) -> Dict[str, Any]:
    async def action(sink: DatabaseTableSink) -> Dict[str, Any]:
        return {"ok": True, "updated": await InventorySync(sink).run()}
    return await _with_database(action)


async def cmd_import_costs(args: argparse.Namespace) -> Dict[str, Any]:
    # Read every column as text; costs may be written as "$1,234.50"
    rows = pl.read_csv(args.path, infer_schema_length=0).to_dicts()

    async def action(sink: DatabaseTableSink) -> Dict[str, Any]:
        imported = await import_costs(sink, rows, replace=not args.append)
        return {"ok": True, "imported": imported, "rows_read": len(rows)}
    return await _with_database(action)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="salesync", description="Multi-channel sales sync pipeline")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_db = subparsers.add_parser("init-db", help="Create the sink tables")
    init_db.set_defaults(handler=cmd_init_db)

    sync = subparsers.add_parser("sync", help="Append new order line items")
    sync.add_argument("--days", type=int, default=None, help="Sync the last N days (default: SYNC_DEFAULT_LOOKBACK_DAYS)")
    sync.add_argument("--start", default=None, help="Window start date, YYYY-MM-DD (requires --end)")
    sync.add_argument("--end", default=None, help="Window end date, YYYY-MM-DD (requires --start)")
    sync.add_argument("--channels", default="all", help='Comma-separated channels or "all"')
    sync.set_defaults(handler=cmd_sync)

    costs = subparsers.add_parser("import-costs", help="Load SKU unit costs from a CSV file")
    costs.add_argument("path", help="CSV with sku, unit_cost and optional notes columns")
    costs.add_argument("--append", action="store_true", help="Keep existing costs instead of replacing them")
    costs.set_defaults(handler=cmd_import_costs)

    profitability = subparsers.add_parser("profitability", help="Rebuild the profitability table")
    profitability.set_defaults(handler=cmd_profitability)

    inventory = subparsers.add_parser("inventory", help="Rebuild the inventory feed from Amazon")
    inventory.set_defaults(handler=cmd_inventory)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level)

    try:
        result = asyncio.run(args.handler(args))
    except (SalesSyncError, ValueError) as e:
        logger.error("Command failed", command=args.command, error=str(e))
        print(json.dumps({"ok": False, "error": str(e)}))
        return 1

    print(json.dumps(result, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
