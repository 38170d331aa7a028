"""
Table Schemas

Logical column layout of every table the pipeline owns. Sinks address data
by table name and column name; the tuple order below is the row order used
for appends.
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class TableSchema:
    """Named table with ordered logical columns"""
    name: str
    columns: Tuple[str, ...]

    def index_of(self, column: str) -> int:
        try:
            return self.columns.index(column)
        except ValueError:
            raise KeyError(f"Unknown column {column!r} for table {self.name}") from None


SALES_FACT = TableSchema(
    name="sales_fact",
    columns=(
        "date",
        "channel",
        "order_id",
        "line_id",
        "sku",
        "title",
        "qty",
        "item_gross",
        "item_discount",
        "shipping",
        "tax",
        "refund",
        "fulfillment_fee",
        "referral_fee",
        "transaction_fee",
        "storage_fee",
        "other_fees",
        "total_fees",
        "currency",
        "region",
        "iso_week",
        "iso_year",
        "year_week",
        "quarter",
        "customer_id",
        "customer_email",
        "customer_name",
        "customer_city",
        "customer_region",
        "customer_country",
        "customer_zip",
    ),
)

# Dedup key of a sales line
SALES_KEY_COLUMNS = ("channel", "order_id", "line_id")

MODEL_PROFITABILITY = TableSchema(
    name="model_profitability",
    columns=(
        "date",
        "channel",
        "order_id",
        "line_id",
        "sku",
        "title",
        "qty",
        "revenue",
        "unit_cost",
        "total_cost",
        "fulfillment_fee",
        "referral_fee",
        "transaction_fee",
        "storage_fee",
        "other_fees",
        "total_fees",
        "shipping",
        "tax",
        "refund",
        "gross_profit",
        "net_profit",
        "gross_margin_pct",
        "net_margin_pct",
        "unit_revenue",
        "unit_profit",
        "currency",
        "region",
    ),
)

MODEL_COSTS = TableSchema(
    name="model_costs",
    columns=("sku", "unit_cost", "notes"),
)

INVENTORY_FEED = TableSchema(
    name="inventory_feed",
    columns=(
        "last_updated",
        "sku",
        "fnsku",
        "asin",
        "product_name",
        "condition",
        "total_quantity",
        "fulfillable_quantity",
        "inbound_quantity",
        "reserved_quantity",
        "avg_daily_sales",
        "weeks_of_supply",
        "reorder_date",
    ),
)

TABLES: Dict[str, TableSchema] = {
    schema.name: schema
    for schema in (SALES_FACT, MODEL_PROFITABILITY, MODEL_COSTS, INVENTORY_FEED)
}


def get_schema(table: str) -> TableSchema:
    """Look up a table schema by name"""
    try:
        return TABLES[table]
    except KeyError:
        raise KeyError(f"Unknown table: {table}") from None
