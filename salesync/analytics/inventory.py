"""
Inventory Feed

FBA inventory positions from Amazon, enriched with sales velocity from the
sales table and simple replenishment metrics, written to inventory_feed
(clear then rewrite).
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Dict, List, Mapping, Optional, Sequence

import polars as pl
import structlog

from salesync.config import Settings, get_settings
from salesync.ingestion import create_adapter
from salesync.exceptions import SinkWriteError
from salesync.models.raw import AmazonInventorySummary
from salesync.models.records import ZERO, Channel, InventoryRecord, money
from salesync.storage.base import TableSink
from salesync.storage.schema import INVENTORY_FEED, SALES_FACT
from salesync.utils.dates import iso_string, utc_now

logger = structlog.get_logger(__name__)

NO_SALES_WEEKS = Decimal(999)
NO_SALES_DAYS = Decimal(999)
REORDER_NOW = "REORDER NOW"
NOT_APPLICABLE = "N/A"


@dataclass
class InventoryMetrics:
    """Replenishment metrics of one SKU"""
    avg_daily_sales: Decimal
    weeks_of_supply: Decimal
    reorder_date: str


def sales_velocity(
    rows: Sequence[Mapping[str, str]],
    lookback_days: int,
    today: Optional[date] = None,
) -> Dict[str, Decimal]:
    """Average units sold per day per SKU over the last `lookback_days` days"""
    if not rows or lookback_days <= 0:
        return {}

    today = today or utc_now().date()
    cutoff = today - timedelta(days=lookback_days)

    df = pl.DataFrame(
        {
            "date": [row.get("date") or "" for row in rows],
            "sku": [row.get("sku") or "" for row in rows],
            "qty": [row.get("qty") or "0" for row in rows],
        }
    )
    totals = (
        df.with_columns(
            pl.col("date").str.slice(0, 10).str.to_date("%Y-%m-%d", strict=False),
            pl.col("qty").cast(pl.Float64, strict=False).fill_null(0.0),
        )
        .filter((pl.col("sku") != "") & (pl.col("date") >= cutoff))
        .group_by("sku")
        .agg(pl.col("qty").sum())
    )

    return {
        row["sku"]: Decimal(repr(row["qty"])) / lookback_days
        for row in totals.iter_rows(named=True)
    }


def inventory_metrics(
    quantity: int,
    avg_daily_sales: Decimal,
    safety_stock_days: int = 7,
    lead_time_days: int = 14,
    today: Optional[date] = None,
) -> InventoryMetrics:
    """
    Weeks of supply and reorder date for a stock level.

    The reorder point covers lead time plus safety stock at the current
    velocity. Without sales the SKU never needs reordering.
    """
    today = today or utc_now().date()

    if avg_daily_sales > 0:
        weeks = Decimal(quantity) / (avg_daily_sales * 7)
        reorder_point = avg_daily_sales * (lead_time_days + safety_stock_days)
        days_until_reorder = (Decimal(quantity) - reorder_point) / avg_daily_sales
    else:
        weeks = NO_SALES_WEEKS
        days_until_reorder = NO_SALES_DAYS

    if days_until_reorder <= 0:
        reorder_date = REORDER_NOW
    elif days_until_reorder < NO_SALES_DAYS:
        days = int(days_until_reorder.to_integral_value(rounding=ROUND_FLOOR))
        reorder_date = (today + timedelta(days=days)).isoformat()
    else:
        reorder_date = NOT_APPLICABLE

    return InventoryMetrics(
        avg_daily_sales=money(avg_daily_sales),
        weeks_of_supply=weeks.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP),
        reorder_date=reorder_date,
    )


class InventorySync:
    """
    Rebuilds the inventory feed from Amazon FBA inventory.

    Example:
        updated = await InventorySync(sink).run()
    """

    def __init__(self, sink: TableSink, settings: Optional[Settings] = None, adapter=None):
        self.sink = sink
        self.settings = settings or get_settings()
        self._adapter = adapter

    async def _fetch_inventory(self) -> List[AmazonInventorySummary]:
        if self._adapter is not None:
            return await self._adapter.fetch_inventory()
        async with create_adapter(Channel.AMAZON, self.settings) as adapter:
            return await adapter.fetch_inventory()

    def build_records(
        self,
        summaries: Sequence[AmazonInventorySummary],
        velocity: Mapping[str, Decimal],
        today: Optional[date] = None,
    ) -> List[InventoryRecord]:
        options = self.settings.inventory
        last_updated = iso_string(utc_now())
        records: List[InventoryRecord] = []

        for item in summaries:
            if not item.seller_sku:
                continue
            details = item.inventory_details
            # Reorder timing is based on what can ship today
            metrics = inventory_metrics(
                details.fulfillable_quantity,
                velocity.get(item.seller_sku, ZERO),
                safety_stock_days=options.safety_stock_days,
                lead_time_days=options.lead_time_days,
                today=today,
            )
            records.append(
                InventoryRecord(
                    last_updated=last_updated,
                    sku=item.seller_sku,
                    fnsku=item.fn_sku or "",
                    asin=item.asin or "",
                    product_name=item.product_name or "",
                    condition=item.condition or "NewItem",
                    total_quantity=item.total_quantity,
                    fulfillable_quantity=details.fulfillable_quantity,
                    inbound_quantity=details.inbound_working_quantity + details.inbound_shipped_quantity,
                    reserved_quantity=details.reserved_quantity.total_reserved_quantity,
                    avg_daily_sales=metrics.avg_daily_sales,
                    weeks_of_supply=metrics.weeks_of_supply,
                    reorder_date=metrics.reorder_date,
                )
            )
        return records

    async def run(self) -> int:
        """Refresh the inventory feed; returns the number of rows written"""
        summaries = await self._fetch_inventory()
        if not summaries:
            logger.info("No inventory data to sync")
            return 0

        sales_rows = await self.sink.read_rows(SALES_FACT.name)
        velocity = sales_velocity(sales_rows, self.settings.inventory.velocity_lookback_days)
        records = self.build_records(summaries, velocity)

        await self.sink.clear_table(INVENTORY_FEED.name)
        if records:
            try:
                await self.sink.append_rows(INVENTORY_FEED.name, [r.to_row() for r in records])
            except Exception as e:
                logger.error(
                    "Inventory append failed, feed left empty until the next run",
                    table=INVENTORY_FEED.name,
                    rows=len(records),
                    error=str(e),
                )
                raise SinkWriteError(INVENTORY_FEED.name, str(e), rows=len(records)) from e

        logger.info(
            "Inventory sync complete",
            skus=len(records),
            reorder_now=sum(1 for r in records if r.reorder_date == REORDER_NOW),
        )
        return len(records)
