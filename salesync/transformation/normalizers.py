"""
Channel Normalizers

Map each channel's raw order + line items (+ fee breakdown) into the
canonical LineItemRecord. Handles:
- Currency and region resolution with defaults
- Discount and refund sign normalization
- Amazon fee categorization
- Proportional fee allocation across the lines of an order
- ISO week / ISO year / quarter partition fields
"""

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from salesync.models.raw import (
    AmazonOrder,
    AmazonOrderItem,
    AmazonShipmentEvent,
    ShopifyAddress,
    ShopifyLineItem,
    ShopifyOrder,
)
from salesync.models.records import (
    ZERO,
    Channel,
    FeeBreakdown,
    LineItemRecord,
    money,
    to_decimal,
    to_id,
)
from salesync.utils.dates import iso_week, iso_year, parse_order_date, quarter, year_week

logger = structlog.get_logger(__name__)

DEFAULT_CURRENCY = "USD"
DEFAULT_REGION = "US"


# =============================================================================
# FEES
# =============================================================================

def categorize_fee(fee_type: str) -> str:
    """
    Fee category for a free-text Amazon fee type label.

    FBA/Fulfillment -> fulfillment, Commission/Referral -> referral,
    Storage -> storage, anything else -> other.
    """
    label = fee_type or ""
    if "FBA" in label or "Fulfillment" in label:
        return "fulfillment_fee"
    if "Commission" in label or "Referral" in label:
        return "referral_fee"
    if "Storage" in label:
        return "storage_fee"
    return "other_fees"


def amazon_fee_breakdowns(events: Iterable[AmazonShipmentEvent]) -> Dict[str, FeeBreakdown]:
    """Accumulate shipment-event item fees into one breakdown per order"""
    fees_by_order: Dict[str, FeeBreakdown] = {}
    for event in events:
        order_id = to_id(event.amazon_order_id)
        if not order_id:
            continue
        breakdown = fees_by_order.setdefault(order_id, FeeBreakdown())
        for item in event.shipment_item_list:
            for fee in item.item_fee_list:
                amount = fee.fee_amount.amount if fee.fee_amount else None
                breakdown.add(categorize_fee(fee.fee_type), amount)
    return fees_by_order


def estimate_transaction_fee(order_total: Decimal, rate: float, fixed: float) -> Decimal:
    """Estimated payment processing fee: order_total * rate + fixed"""
    return order_total * to_decimal(rate) + to_decimal(fixed)


def allocation_share(part: Decimal, whole: Decimal) -> Decimal:
    """Proportional share of a line, zero when the whole is zero"""
    if whole <= 0:
        return Decimal(0)
    return part / whole


# =============================================================================
# SHARED
# =============================================================================

def _non_negative(value) -> Decimal:
    amount = money(value)
    return amount if amount > 0 else ZERO


def _base_record(
    order_date: date,
    channel: Channel,
    order_id: str,
    line_id: str,
    currency: str,
    region: str,
) -> LineItemRecord:
    return LineItemRecord(
        date=order_date.isoformat(),
        channel=channel.value,
        order_id=order_id,
        line_id=line_id,
        currency=currency,
        region=region,
        iso_week=iso_week(order_date),
        iso_year=iso_year(order_date),
        year_week=year_week(order_date),
        quarter=quarter(order_date),
    )


# =============================================================================
# SHOPIFY
# =============================================================================

def _shopify_discount(item: ShopifyLineItem) -> Decimal:
    if item.total_discount:
        return abs(money(item.total_discount))
    return money(sum((abs(to_decimal(a.amount)) for a in item.discount_allocations), ZERO))


def _shopify_refunds(order: ShopifyOrder) -> Dict[str, Decimal]:
    refunds: Dict[str, Decimal] = {}
    for refund in order.refunds:
        for line in refund.refund_line_items:
            line_id = to_id(line.line_item_id)
            refunds[line_id] = refunds.get(line_id, ZERO) + abs(to_decimal(line.subtotal))
    return refunds


def _shopify_currency(order: ShopifyOrder, items: Sequence[ShopifyLineItem]) -> str:
    if order.currency:
        return order.currency
    for item in items:
        if item.price_set and item.price_set.shop_money.currency_code:
            return item.price_set.shop_money.currency_code
    return DEFAULT_CURRENCY


def normalize_shopify_order(
    order: ShopifyOrder,
    line_items: Optional[Sequence[ShopifyLineItem]] = None,
    fee_rate: float = 0.029,
    fee_fixed: float = 0.30,
    today: Optional[date] = None,
) -> List[LineItemRecord]:
    """
    Convert one Shopify order into canonical line records.

    Order-level shipping and tax are repeated on every line. The estimated
    transaction fee is split by each line's share of the order total.
    """
    items = list(order.line_items if line_items is None else line_items)
    order_id = to_id(order.id)
    order_date = parse_order_date(order.created_at, today=today)
    currency = _shopify_currency(order, items)
    region = (order.shipping_address.country_code if order.shipping_address else None) or DEFAULT_REGION

    shipping = ZERO
    if order.total_shipping_price_set:
        shipping = _non_negative(order.total_shipping_price_set.shop_money.amount)
    tax = _non_negative(order.total_tax)

    order_total = to_decimal(order.total_price)
    transaction_fee = estimate_transaction_fee(order_total, fee_rate, fee_fixed)
    refunds = _shopify_refunds(order)

    customer = order.customer
    address: Optional[ShopifyAddress] = order.shipping_address or (customer.default_address if customer else None)
    customer_name = ""
    if customer:
        customer_name = " ".join(p for p in (customer.first_name, customer.last_name) if p).strip()

    records = []
    for item in items:
        qty = max(item.quantity, 0)
        item_gross = _non_negative(to_decimal(item.price) * qty)
        share = allocation_share(item_gross, order_total)

        record = _base_record(order_date, Channel.SHOPIFY, order_id, to_id(item.id), currency, region)
        record.sku = item.sku or ""
        record.title = item.title or ""
        record.qty = qty
        record.item_gross = item_gross
        record.item_discount = _shopify_discount(item)
        record.shipping = shipping
        record.tax = tax
        record.refund = money(refunds.get(record.line_id, ZERO))

        if customer:
            record.customer_id = to_id(customer.id)
            record.customer_email = customer.email or ""
            record.customer_name = customer_name
        if address:
            record.customer_city = address.city or ""
            record.customer_region = address.province_code or ""
            record.customer_country = address.country_code or ""
            record.customer_zip = address.zip or ""

        records.append(record.with_fees(FeeBreakdown(transaction_fee=transaction_fee * share)))

    return records


# =============================================================================
# AMAZON
# =============================================================================

def _amount(money_field) -> Decimal:
    return to_decimal(money_field.amount) if money_field else ZERO


def normalize_amazon_order(
    order: AmazonOrder,
    items: Sequence[AmazonOrderItem],
    fees: Optional[FeeBreakdown] = None,
    today: Optional[date] = None,
) -> List[LineItemRecord]:
    """
    Convert one Amazon order and its order items into canonical line records.

    The order's fee breakdown is split across lines by item gross. Amazon
    does not share buyer identity, so customer columns stay empty.
    """
    order_id = to_id(order.amazon_order_id)
    order_date = parse_order_date(order.purchase_date, today=today)
    region = (order.shipping_address.country_code if order.shipping_address else None) or DEFAULT_REGION

    gross_by_line = [_non_negative(_amount(item.item_price)) for item in items]
    order_gross = sum(gross_by_line, ZERO)
    fees = fees or FeeBreakdown()

    records = []
    for item, item_gross in zip(items, gross_by_line):
        currency = (
            (order.order_total.currency_code if order.order_total else None)
            or (item.item_price.currency_code if item.item_price else None)
            or DEFAULT_CURRENCY
        )
        if order_gross > 0:
            share = allocation_share(item_gross, order_gross)
        else:
            share = Decimal(1) / Decimal(len(items))

        record = _base_record(order_date, Channel.AMAZON, order_id, to_id(item.order_item_id), currency, region)
        record.sku = item.seller_sku or ""
        record.title = item.title or ""
        record.qty = max(item.quantity_ordered, 0)
        record.item_gross = item_gross
        record.item_discount = abs(money(_amount(item.promotion_discount)))
        record.shipping = _non_negative(_amount(item.shipping_price))
        record.tax = _non_negative(_amount(item.item_tax) + _amount(item.shipping_tax))

        records.append(record.with_fees(fees.scaled(share)))

    return records
