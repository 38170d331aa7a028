"""
Database Models - Fact Tables

SQLAlchemy tables backing the table sink:

Fact Tables:
- SalesFact: canonical order line items (append-only)
- ModelProfitability: per-line profitability (rebuilt every run)
- InventoryFeed: FBA inventory with replenishment metrics (rebuilt every run)

Reference Tables:
- ModelCost: unit cost per SKU

Every table carries a surrogate row_id and a position column that gives the
rows a stable, sortable order.
"""

from decimal import Decimal
from typing import Dict, Type

from sqlalchemy import Index, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from salesync.storage.schema import INVENTORY_FEED, MODEL_COSTS, MODEL_PROFITABILITY, SALES_FACT

Money = Numeric(14, 2)


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


class SheetRowMixin:
    """Surrogate key plus display order"""
    row_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0, index=True)


# =============================================================================
# FACT TABLES
# =============================================================================

class SalesFact(SheetRowMixin, Base):
    """
    Sales Fact Table

    Grain: one row per order line item per channel.
    """
    __tablename__ = SALES_FACT.name

    date: Mapped[str] = mapped_column(String(10), nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    line_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), default="")
    title: Mapped[str] = mapped_column(Text, default="")
    qty: Mapped[int] = mapped_column(Integer, default=0)

    # Money
    item_gross: Mapped[Decimal] = mapped_column(Money, default=0)
    item_discount: Mapped[Decimal] = mapped_column(Money, default=0)
    shipping: Mapped[Decimal] = mapped_column(Money, default=0)
    tax: Mapped[Decimal] = mapped_column(Money, default=0)
    refund: Mapped[Decimal] = mapped_column(Money, default=0)

    # Fees
    fulfillment_fee: Mapped[Decimal] = mapped_column(Money, default=0)
    referral_fee: Mapped[Decimal] = mapped_column(Money, default=0)
    transaction_fee: Mapped[Decimal] = mapped_column(Money, default=0)
    storage_fee: Mapped[Decimal] = mapped_column(Money, default=0)
    other_fees: Mapped[Decimal] = mapped_column(Money, default=0)
    total_fees: Mapped[Decimal] = mapped_column(Money, default=0)

    currency: Mapped[str] = mapped_column(String(3), default="USD")
    region: Mapped[str] = mapped_column(String(10), default="US")

    # Time partitions
    iso_week: Mapped[int] = mapped_column(Integer)
    iso_year: Mapped[int] = mapped_column(Integer)
    year_week: Mapped[str] = mapped_column(String(8))
    quarter: Mapped[int] = mapped_column(Integer)

    # Customer (Shopify only)
    customer_id: Mapped[str] = mapped_column(String(64), default="")
    customer_email: Mapped[str] = mapped_column(String(255), default="")
    customer_name: Mapped[str] = mapped_column(String(255), default="")
    customer_city: Mapped[str] = mapped_column(String(100), default="")
    customer_region: Mapped[str] = mapped_column(String(100), default="")
    customer_country: Mapped[str] = mapped_column(String(10), default="")
    customer_zip: Mapped[str] = mapped_column(String(20), default="")

    __table_args__ = (
        UniqueConstraint("channel", "order_id", "line_id", name="uq_sales_fact_line"),
        Index("idx_sales_fact_date", "date"),
        Index("idx_sales_fact_sku", "sku"),
    )


class ModelProfitability(SheetRowMixin, Base):
    """
    Profitability Fact Table

    Grain: one row per sales line; fully rewritten on every run.
    """
    __tablename__ = MODEL_PROFITABILITY.name

    date: Mapped[str] = mapped_column(String(10), nullable=False)
    channel: Mapped[str] = mapped_column(String(20), nullable=False)
    order_id: Mapped[str] = mapped_column(String(64), nullable=False)
    line_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sku: Mapped[str] = mapped_column(String(100), default="")
    title: Mapped[str] = mapped_column(Text, default="")
    qty: Mapped[int] = mapped_column(Integer, default=0)
    revenue: Mapped[Decimal] = mapped_column(Money)
    unit_cost: Mapped[Decimal] = mapped_column(Money)
    total_cost: Mapped[Decimal] = mapped_column(Money)
    fulfillment_fee: Mapped[Decimal] = mapped_column(Money)
    referral_fee: Mapped[Decimal] = mapped_column(Money)
    transaction_fee: Mapped[Decimal] = mapped_column(Money)
    storage_fee: Mapped[Decimal] = mapped_column(Money)
    other_fees: Mapped[Decimal] = mapped_column(Money)
    total_fees: Mapped[Decimal] = mapped_column(Money)
    shipping: Mapped[Decimal] = mapped_column(Money)
    tax: Mapped[Decimal] = mapped_column(Money)
    refund: Mapped[Decimal] = mapped_column(Money)
    gross_profit: Mapped[Decimal] = mapped_column(Money)
    net_profit: Mapped[Decimal] = mapped_column(Money)
    gross_margin_pct: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    net_margin_pct: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    unit_revenue: Mapped[Decimal] = mapped_column(Money)
    unit_profit: Mapped[Decimal] = mapped_column(Money)
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    region: Mapped[str] = mapped_column(String(10), default="")


class InventoryFeed(SheetRowMixin, Base):
    """
    Inventory Feed Table

    Grain: one row per FBA SKU; fully rewritten on every run.
    """
    __tablename__ = INVENTORY_FEED.name

    last_updated: Mapped[str] = mapped_column(String(40))
    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    fnsku: Mapped[str] = mapped_column(String(20), default="")
    asin: Mapped[str] = mapped_column(String(20), default="")
    product_name: Mapped[str] = mapped_column(Text, default="")
    condition: Mapped[str] = mapped_column(String(40), default="NewItem")
    total_quantity: Mapped[int] = mapped_column(Integer, default=0)
    fulfillable_quantity: Mapped[int] = mapped_column(Integer, default=0)
    inbound_quantity: Mapped[int] = mapped_column(Integer, default=0)
    reserved_quantity: Mapped[int] = mapped_column(Integer, default=0)
    avg_daily_sales: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    weeks_of_supply: Mapped[Decimal] = mapped_column(Numeric(12, 1), default=0)
    reorder_date: Mapped[str] = mapped_column(String(20), default="")


# =============================================================================
# REFERENCE TABLES
# =============================================================================

class ModelCost(SheetRowMixin, Base):
    """Unit cost per SKU"""
    __tablename__ = MODEL_COSTS.name

    sku: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    unit_cost: Mapped[Decimal] = mapped_column(Money, default=0)
    notes: Mapped[str] = mapped_column(Text, default="")


TABLE_MODELS: Dict[str, Type[Base]] = {
    SalesFact.__tablename__: SalesFact,
    ModelProfitability.__tablename__: ModelProfitability,
    InventoryFeed.__tablename__: InventoryFeed,
    ModelCost.__tablename__: ModelCost,
}
