"""
Canonical Records

The channel-independent line item, the fee breakdown attached to it, the
SKU cost reference and the derived profitability row.
"""

from dataclasses import dataclass, fields, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Mapping, Tuple

from salesync.storage.schema import INVENTORY_FEED, MODEL_PROFITABILITY, SALES_FACT, TableSchema

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


class Channel(str, Enum):
    """Sales channels"""
    SHOPIFY = "Shopify"
    AMAZON = "Amazon"

    @classmethod
    def parse(cls, value: str) -> "Channel":
        """Case-insensitive lookup by name or value"""
        text = value.strip().lower()
        for channel in cls:
            if text in (channel.value.lower(), channel.name.lower()):
                return channel
        raise ValueError(f"Unknown channel: {value!r}")


def to_decimal(value: Any) -> Decimal:
    """Coerce API/sheet values to Decimal; blanks and garbage become zero"""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(repr(value))
    text = str(value).strip().replace("$", "").replace(",", "")
    if not text:
        return ZERO
    try:
        result = Decimal(text)
    except InvalidOperation:
        return ZERO
    return result if result.is_finite() else ZERO


def money(value: Any) -> Decimal:
    """Round to cents, half-up"""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_int(value: Any) -> int:
    """Coerce quantities and counters to int; blanks become zero"""
    return int(to_decimal(value))


def to_id(value: Any) -> str:
    """Source identifiers as strings, without float round-tripping"""
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return format(Decimal(repr(value)).to_integral_value(), "f") if value.is_integer() else repr(value)
    return str(value).strip()


@dataclass
class FeeBreakdown:
    """Fees charged against an order or line, all stored as positive amounts"""
    fulfillment_fee: Decimal = ZERO
    referral_fee: Decimal = ZERO
    transaction_fee: Decimal = ZERO
    storage_fee: Decimal = ZERO
    other_fees: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return (
            self.fulfillment_fee
            + self.referral_fee
            + self.transaction_fee
            + self.storage_fee
            + self.other_fees
        )

    def add(self, category: str, amount: Any) -> None:
        """Accumulate an absolute amount into one fee category"""
        setattr(self, category, getattr(self, category) + abs(to_decimal(amount)))

    def scaled(self, share: Decimal) -> "FeeBreakdown":
        """Portion of each category, rounded to cents"""
        return FeeBreakdown(**{f.name: money(getattr(self, f.name) * share) for f in fields(self)})

    def __add__(self, other: "FeeBreakdown") -> "FeeBreakdown":
        return FeeBreakdown(**{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)})


@dataclass
class LineItemRecord:
    """One order line item in the canonical sales schema"""
    date: str
    channel: str
    order_id: str
    line_id: str
    sku: str = ""
    title: str = ""
    qty: int = 0
    item_gross: Decimal = ZERO
    item_discount: Decimal = ZERO
    shipping: Decimal = ZERO
    tax: Decimal = ZERO
    refund: Decimal = ZERO
    fulfillment_fee: Decimal = ZERO
    referral_fee: Decimal = ZERO
    transaction_fee: Decimal = ZERO
    storage_fee: Decimal = ZERO
    other_fees: Decimal = ZERO
    total_fees: Decimal = ZERO
    currency: str = "USD"
    region: str = "US"
    iso_week: int = 0
    iso_year: int = 0
    year_week: str = ""
    quarter: int = 0
    customer_id: str = ""
    customer_email: str = ""
    customer_name: str = ""
    customer_city: str = ""
    customer_region: str = ""
    customer_country: str = ""
    customer_zip: str = ""

    @property
    def dedup_key(self) -> Tuple[str, str, str]:
        return (self.channel, self.order_id, self.line_id)

    @property
    def fees(self) -> FeeBreakdown:
        return FeeBreakdown(
            fulfillment_fee=self.fulfillment_fee,
            referral_fee=self.referral_fee,
            transaction_fee=self.transaction_fee,
            storage_fee=self.storage_fee,
            other_fees=self.other_fees,
        )

    def with_fees(self, fees: FeeBreakdown) -> "LineItemRecord":
        """Copy with the fee columns and their eager total replaced"""
        return replace(
            self,
            fulfillment_fee=money(fees.fulfillment_fee),
            referral_fee=money(fees.referral_fee),
            transaction_fee=money(fees.transaction_fee),
            storage_fee=money(fees.storage_fee),
            other_fees=money(fees.other_fees),
            total_fees=money(fees.total),
        )

    def to_row(self) -> Tuple[Any, ...]:
        return _to_row(self, SALES_FACT)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "LineItemRecord":
        """Rebuild a record from a sales table row (cells may be strings)"""
        values = {}
        for f in fields(cls):
            raw = row.get(f.name)
            if f.type is Decimal:
                values[f.name] = money(raw)
            elif f.type is int:
                values[f.name] = to_int(raw)
            else:
                values[f.name] = "" if raw is None else str(raw)
        record = cls(**values)
        if not record.currency:
            record.currency = "USD"
        return record


@dataclass
class CostRecord:
    """Unit cost of a SKU"""
    sku: str
    unit_cost: Decimal = ZERO
    notes: str = ""


@dataclass
class ProfitabilityRecord:
    """Per-line profitability derived from a LineItemRecord and its unit cost"""
    date: str
    channel: str
    order_id: str
    line_id: str
    sku: str
    title: str
    qty: int
    revenue: Decimal
    unit_cost: Decimal
    total_cost: Decimal
    fulfillment_fee: Decimal
    referral_fee: Decimal
    transaction_fee: Decimal
    storage_fee: Decimal
    other_fees: Decimal
    total_fees: Decimal
    shipping: Decimal
    tax: Decimal
    refund: Decimal
    gross_profit: Decimal
    net_profit: Decimal
    gross_margin_pct: Decimal
    net_margin_pct: Decimal
    unit_revenue: Decimal
    unit_profit: Decimal
    currency: str = "USD"
    region: str = ""

    def to_row(self) -> Tuple[Any, ...]:
        return _to_row(self, MODEL_PROFITABILITY)


@dataclass
class InventoryRecord:
    """FBA inventory position of one SKU with its replenishment metrics"""
    last_updated: str
    sku: str
    fnsku: str = ""
    asin: str = ""
    product_name: str = ""
    condition: str = "NewItem"
    total_quantity: int = 0
    fulfillable_quantity: int = 0
    inbound_quantity: int = 0
    reserved_quantity: int = 0
    avg_daily_sales: Decimal = ZERO
    weeks_of_supply: Decimal = ZERO
    reorder_date: str = ""

    def to_row(self) -> Tuple[Any, ...]:
        return _to_row(self, INVENTORY_FEED)


def _to_row(record: Any, schema: TableSchema) -> Tuple[Any, ...]:
    return tuple(getattr(record, column) for column in schema.columns)
