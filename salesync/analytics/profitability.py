"""
Profitability Calculator

Joins every sales line with its SKU unit cost and rebuilds the
model_profitability table from scratch:

- revenue = item_gross - item_discount
- total_cost = unit_cost * qty
- gross_profit = revenue - total_cost
- net_profit = gross_profit - total_fees - refund

Shipping and tax are carried along as pass-through amounts.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional

import polars as pl
import structlog

from salesync.exceptions import SinkWriteError
from salesync.models.records import (
    ZERO,
    CostRecord,
    LineItemRecord,
    ProfitabilityRecord,
    money,
)
from salesync.storage.base import TableSink
from salesync.storage.schema import MODEL_COSTS, MODEL_PROFITABILITY, SALES_FACT
from salesync.utils.dates import utc_now

logger = structlog.get_logger(__name__)

HUNDRED = Decimal(100)


def _pct(part: Decimal, whole: Decimal) -> Decimal:
    return money(part / whole * HUNDRED) if whole > 0 else ZERO


def _per_unit(amount: Decimal, qty: int) -> Decimal:
    return money(amount / qty) if qty > 0 else ZERO


def calculate_profitability(record: LineItemRecord, unit_cost: Decimal = ZERO) -> ProfitabilityRecord:
    """Profitability of one sales line at the given unit cost"""
    unit_cost = money(unit_cost)
    revenue = money(record.item_gross - record.item_discount)
    total_cost = money(unit_cost * record.qty)
    gross_profit = revenue - total_cost
    net_profit = gross_profit - record.total_fees - record.refund

    return ProfitabilityRecord(
        date=record.date,
        channel=record.channel,
        order_id=record.order_id,
        line_id=record.line_id,
        sku=record.sku,
        title=record.title,
        qty=record.qty,
        revenue=revenue,
        unit_cost=unit_cost,
        total_cost=total_cost,
        fulfillment_fee=record.fulfillment_fee,
        referral_fee=record.referral_fee,
        transaction_fee=record.transaction_fee,
        storage_fee=record.storage_fee,
        other_fees=record.other_fees,
        total_fees=record.total_fees,
        shipping=record.shipping,
        tax=record.tax,
        refund=record.refund,
        gross_profit=gross_profit,
        net_profit=net_profit,
        gross_margin_pct=_pct(gross_profit, revenue),
        net_margin_pct=_pct(net_profit, revenue),
        unit_revenue=_per_unit(revenue, record.qty),
        unit_profit=_per_unit(net_profit, record.qty),
        currency=record.currency or "USD",
        region=record.region,
    )


def cost_map(rows: List[Mapping[str, Any]]) -> Dict[str, CostRecord]:
    """SKU -> cost; a SKU listed more than once keeps its last row"""
    costs: Dict[str, CostRecord] = {}
    for row in rows:
        sku = str(row.get("sku") or "").strip()
        if not sku:
            continue
        costs[sku] = CostRecord(
            sku=sku,
            unit_cost=money(row.get("unit_cost")),
            notes=str(row.get("notes") or ""),
        )
    return costs


@dataclass
class ProfitabilitySummary:
    """Totals of one profitability run"""
    rows: int = 0
    total_revenue: float = 0.0
    total_fees: float = 0.0
    total_net_profit: float = 0.0
    avg_net_margin_pct: float = 0.0
    by_channel: Dict[str, Dict[str, float]] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rows": self.rows,
            "total_revenue": self.total_revenue,
            "total_fees": self.total_fees,
            "total_net_profit": self.total_net_profit,
            "avg_net_margin_pct": self.avg_net_margin_pct,
            "by_channel": self.by_channel,
        }


def summarize(records: List[ProfitabilityRecord]) -> ProfitabilitySummary:
    """Revenue, fees and net profit in total and per channel"""
    if not records:
        return ProfitabilitySummary()

    df = pl.DataFrame(
        {
            "channel": [r.channel for r in records],
            "revenue": [float(r.revenue) for r in records],
            "fees": [float(r.total_fees) for r in records],
            "profit": [float(r.net_profit) for r in records],
        }
    )

    by_channel = (
        df.group_by("channel", maintain_order=True)
        .agg(
            pl.col("revenue").sum(),
            pl.col("fees").sum(),
            pl.col("profit").sum(),
        )
        .with_columns(
            pl.when(pl.col("revenue") > 0)
            .then(pl.col("profit") / pl.col("revenue") * 100)
            .otherwise(0.0)
            .alias("margin_pct")
        )
    )

    total_revenue = df["revenue"].sum()
    total_profit = df["profit"].sum()

    return ProfitabilitySummary(
        rows=df.height,
        total_revenue=round(total_revenue, 2),
        total_fees=round(df["fees"].sum(), 2),
        total_net_profit=round(total_profit, 2),
        avg_net_margin_pct=round(total_profit / total_revenue * 100, 2) if total_revenue > 0 else 0.0,
        by_channel={
            row["channel"]: {
                "revenue": round(row["revenue"], 2),
                "fees": round(row["fees"], 2),
                "profit": round(row["profit"], 2),
                "margin_pct": round(row["margin_pct"], 2),
            }
            for row in by_channel.iter_rows(named=True)
        },
    )


class ProfitabilityCalculator:
    """
    Rebuilds the profitability table from the sales and cost tables.

    The output is a pure function of the two inputs: every run clears the
    table and writes one row per sales line in sales-table order.

    Example:
        calculator = ProfitabilityCalculator(sink)
        summary = await calculator.run()
    """

    def __init__(self, sink: TableSink):
        self.sink = sink

    async def load_costs(self) -> Dict[str, CostRecord]:
        """Cost map from the cost table; an unreadable table means no costs"""
        try:
            rows = await self.sink.read_rows(MODEL_COSTS.name)
        except Exception as e:
            logger.warning("Cost table unavailable, using zero costs", table=MODEL_COSTS.name, error=str(e))
            return {}
        costs = cost_map(rows)
        logger.info("Loaded unit costs", skus=len(costs))
        return costs

    async def load_sales(self) -> List[LineItemRecord]:
        rows = await self.sink.read_rows(SALES_FACT.name)
        return [LineItemRecord.from_row(row) for row in rows]

    async def run(self) -> ProfitabilitySummary:
        """Recompute and rewrite the profitability table"""
        started_at = utc_now()
        costs = await self.load_costs()
        sales = await self.load_sales()
        logger.info("Processing sales lines", rows=len(sales))

        records = [
            calculate_profitability(
                record,
                costs[record.sku].unit_cost if record.sku in costs else ZERO,
            )
            for record in sales
        ]

        # Rows are computed before the clear; only a failed append leaves the table empty
        await self.sink.clear_table(MODEL_PROFITABILITY.name)
        if records:
            try:
                await self.sink.append_rows(MODEL_PROFITABILITY.name, [r.to_row() for r in records])
            except Exception as e:
                logger.error(
                    "Profitability append failed, table left empty until the next run",
                    table=MODEL_PROFITABILITY.name,
                    rows=len(records),
                    error=str(e),
                )
                raise SinkWriteError(MODEL_PROFITABILITY.name, str(e), rows=len(records)) from e

        summary = summarize(records)
        summary.started_at = started_at
        summary.completed_at = utc_now()

        logger.info(
            "Profitability sync complete",
            rows=summary.rows,
            total_revenue=summary.total_revenue,
            total_fees=summary.total_fees,
            total_net_profit=summary.total_net_profit,
            avg_net_margin_pct=summary.avg_net_margin_pct,
        )
        for channel, stats in summary.by_channel.items():
            logger.info("Channel profitability", channel=channel, **stats)
        return summary


async def import_costs(sink: TableSink, rows: List[Mapping[str, Any]], replace: bool = True) -> int:
    """
    Load SKU costs into the cost table.

    Rows need `sku` and `unit_cost`; `notes` is optional. Costs may carry a
    currency symbol or thousands separators. Rows without a SKU or with a
    cost that is not a number are skipped.
    """
    records: List[CostRecord] = []
    for row in rows:
        sku = str(row.get("sku") or "").strip()
        raw_cost = str(row.get("unit_cost") or "").strip().replace("$", "").replace(",", "")
        if not sku or not raw_cost:
            continue
        try:
            cost = Decimal(raw_cost)
        except InvalidOperation:
            continue
        if not cost.is_finite():
            continue
        records.append(CostRecord(sku=sku, unit_cost=money(cost), notes=str(row.get("notes") or "")))

    if replace:
        await sink.clear_table(MODEL_COSTS.name)
    if records:
        await sink.append_rows(MODEL_COSTS.name, [(r.sku, r.unit_cost, r.notes) for r in records])

    logger.info("Imported unit costs", skus=len(records), replaced=replace)
    return len(records)
