"""
Unit Tests - Channel Normalization
"""
from datetime import date
from decimal import Decimal

import pytest

from salesync.models.raw import AmazonOrder, AmazonOrderItem, AmazonShipmentEvent, ShopifyOrder
from salesync.models.records import Channel, FeeBreakdown, LineItemRecord, money, to_decimal, to_id
from salesync.storage.schema import SALES_FACT
from salesync.transformation.normalizers import (
    allocation_share,
    amazon_fee_breakdowns,
    categorize_fee,
    estimate_transaction_fee,
    normalize_amazon_order,
    normalize_shopify_order,
)


def _shopify_order(**overrides):
    payload = {
        "id": 5001,
        "created_at": "2024-01-01T09:00:00-05:00",
        "currency": "USD",
        "total_price": "100.00",
        "line_items": [
            {"id": 1, "sku": "A", "quantity": 1, "price": "60.00"},
            {"id": 2, "sku": "B", "quantity": 2, "price": "20.00"},
        ],
    }
    payload.update(overrides)
    return ShopifyOrder.model_validate(payload)


class TestCoercion:
    """Tests for value coercion helpers"""

    def test_to_decimal_strips_currency_formatting(self):
        """Sheet-style money strings are parsed"""
        assert to_decimal("$1,234.50") == Decimal("1234.50")

    def test_to_decimal_garbage_is_zero(self):
        """Blanks and garbage become zero"""
        assert to_decimal("") == Decimal("0")
        assert to_decimal("n/a") == Decimal("0")
        assert to_decimal(None) == Decimal("0")

    def test_money_rounds_half_up(self):
        """Money is rounded to cents, half-up"""
        assert money("2.345") == Decimal("2.35")
        assert money(0.1 + 0.2) == Decimal("0.30")

    def test_large_numeric_ids_keep_every_digit(self):
        """Numeric ids are converted without float round-tripping"""
        assert to_id(5678901234567890123) == "5678901234567890123"
        assert to_id(" 112-0000001-0000001 ") == "112-0000001-0000001"
        assert to_id(2001.0) == "2001"


class TestFees:
    """Tests for fee categorization and allocation"""

    @pytest.mark.parametrize(
        "label,category",
        [
            ("FBAPerUnitFulfillmentFee", "fulfillment_fee"),
            ("FulfillmentNetworkFee", "fulfillment_fee"),
            ("Commission", "referral_fee"),
            ("ReferralFee", "referral_fee"),
            ("StorageRenewalBilling", "storage_fee"),
            ("ShippingChargeback", "other_fees"),
            ("", "other_fees"),
        ],
    )
    def test_categorize_fee(self, label, category):
        """Fee types are bucketed by substring"""
        assert categorize_fee(label) == category

    def test_transaction_fee_estimate(self):
        """100 * 2.9% + 0.30 = 3.20"""
        assert estimate_transaction_fee(Decimal("100"), 0.029, 0.30) == Decimal("3.200")

    def test_zero_total_allocates_nothing(self):
        """No order total means no share"""
        assert allocation_share(Decimal("10"), Decimal("0")) == 0

    def test_fee_breakdowns_accumulate_across_events(self):
        """Fees of several shipment events of one order are summed as positive amounts"""
        events = [
            AmazonShipmentEvent.model_validate(
                {
                    "AmazonOrderId": "111",
                    "ShipmentItemList": [
                        {
                            "ItemFeeList": [
                                {"FeeType": "FBAPerUnitFulfillmentFee", "FeeAmount": {"CurrencyAmount": -3.22}},
                                {"FeeType": "Commission", "FeeAmount": {"CurrencyAmount": -4.50}},
                            ]
                        }
                    ],
                }
            ),
            AmazonShipmentEvent.model_validate(
                {
                    "AmazonOrderId": "111",
                    "ShipmentItemList": [
                        {"ItemFeeList": [{"FeeType": "Commission", "FeeAmount": {"CurrencyAmount": -1.50}}]}
                    ],
                }
            ),
        ]

        fees = amazon_fee_breakdowns(events)

        assert fees["111"].fulfillment_fee == Decimal("3.22")
        assert fees["111"].referral_fee == Decimal("6.00")
        assert fees["111"].total == Decimal("9.22")


class TestShopifyNormalization:
    """Tests for Shopify order normalization"""

    def test_proportional_transaction_fee(self):
        """A 3.20 fee on a 60/40 order splits into 1.92 and 1.28"""
        records = normalize_shopify_order(_shopify_order())

        assert [r.transaction_fee for r in records] == [Decimal("1.92"), Decimal("1.28")]
        assert [r.total_fees for r in records] == [Decimal("1.92"), Decimal("1.28")]
        assert sum(r.transaction_fee for r in records) == Decimal("3.20")

    def test_custom_fee_rate(self):
        """Rate and fixed fee are parameters"""
        records = normalize_shopify_order(_shopify_order(), fee_rate=0.0, fee_fixed=1.0)

        assert [r.transaction_fee for r in records] == [Decimal("0.60"), Decimal("0.40")]

    def test_zero_total_means_zero_fee(self):
        """Free orders carry no transaction fee"""
        records = normalize_shopify_order(_shopify_order(total_price="0.00"))

        assert all(r.transaction_fee == Decimal("0.00") for r in records)

    def test_negative_discount_is_stored_positive(self):
        """A discount reported as -15.00 becomes 15.00"""
        order = _shopify_order(
            line_items=[{"id": 1, "sku": "A", "quantity": 1, "price": "60.00", "total_discount": "-15.00"}]
        )

        record = normalize_shopify_order(order)[0]

        assert record.item_discount == Decimal("15.00")

    def test_discount_from_allocations(self):
        """Without total_discount the discount allocations are summed"""
        order = _shopify_order(
            line_items=[
                {
                    "id": 1,
                    "quantity": 1,
                    "price": "60.00",
                    "discount_allocations": [{"amount": "5.00"}, {"amount": "2.50"}],
                }
            ]
        )

        assert normalize_shopify_order(order)[0].item_discount == Decimal("7.50")

    def test_refunds_attach_to_their_line(self):
        """Refund line subtotals are summed per line item"""
        order = _shopify_order(
            refunds=[
                {"id": 9, "refund_line_items": [{"line_item_id": 2, "quantity": 1, "subtotal": "20.00"}]},
                {"id": 10, "refund_line_items": [{"line_item_id": 2, "quantity": 1, "subtotal": "20.00"}]},
            ]
        )

        records = normalize_shopify_order(order)

        assert records[0].refund == Decimal("0.00")
        assert records[1].refund == Decimal("40.00")

    def test_defaults_for_missing_fields(self):
        """Missing currency and address fall back to USD and US"""
        order = ShopifyOrder.model_validate(
            {"id": 7, "created_at": "2024-05-01T00:00:00Z", "line_items": [{"id": 70, "quantity": 1, "price": "5"}]}
        )

        record = normalize_shopify_order(order)[0]

        assert record.currency == "USD"
        assert record.region == "US"
        assert record.customer_id == ""

    def test_line_currency_used_when_order_has_none(self):
        """Line price_set currency is the second choice"""
        order = ShopifyOrder.model_validate(
            {
                "id": 8,
                "created_at": "2024-05-01T00:00:00Z",
                "line_items": [
                    {"id": 80, "quantity": 1, "price": "5", "price_set": {"shop_money": {"amount": "5", "currency_code": "CAD"}}}
                ],
            }
        )

        assert normalize_shopify_order(order)[0].currency == "CAD"

    def test_partition_fields(self, shopify_order_1001):
        """Date fields derive from the order creation date in its own offset"""
        record = normalize_shopify_order(ShopifyOrder.model_validate(shopify_order_1001))[0]

        assert record.date == "2024-03-15"
        assert record.iso_week == 11
        assert record.iso_year == 2024
        assert record.year_week == "2024-W11"
        assert record.quarter == 1

    def test_customer_fields(self, shopify_order_1001):
        """Customer columns come from the customer and shipping address"""
        record = normalize_shopify_order(ShopifyOrder.model_validate(shopify_order_1001))[0]

        assert record.customer_id == "7001"
        assert record.customer_email == "jane@example.com"
        assert record.customer_name == "Jane Smith"
        assert record.customer_city == "Austin"
        assert record.customer_region == "TX"
        assert record.customer_zip == "78701"

    def test_unparseable_date_uses_today(self):
        """Bad timestamps fall back to the supplied today"""
        order = _shopify_order(created_at="yesterday-ish")

        record = normalize_shopify_order(order, today=date(2024, 6, 3))[0]

        assert record.date == "2024-06-03"
        assert record.iso_week == 23


class TestAmazonNormalization:
    """Tests for Amazon order normalization"""

    def _normalize(self, amazon_order, amazon_order_items, fees=None):
        order = AmazonOrder.model_validate(amazon_order)
        items = [AmazonOrderItem.model_validate(i) for i in amazon_order_items]
        return normalize_amazon_order(order, items, fees)

    def test_line_amounts(self, amazon_order, amazon_order_items):
        """Item price, shipping, tax and discount map onto the line"""
        first, second = self._normalize(amazon_order, amazon_order_items)

        assert first.channel == Channel.AMAZON.value
        assert first.order_id == "112-0000001-0000001"
        assert first.line_id == "11111111111111"
        assert first.item_gross == Decimal("60.00")
        assert first.item_discount == Decimal("5.00")
        assert first.shipping == Decimal("4.00")
        assert first.tax == Decimal("5.12")
        assert second.qty == 2
        assert second.shipping == Decimal("0.00")

    def test_customer_fields_are_empty(self, amazon_order, amazon_order_items):
        """Amazon never fills customer columns"""
        for record in self._normalize(amazon_order, amazon_order_items):
            assert record.customer_id == ""
            assert record.customer_email == ""
            assert record.customer_name == ""
            assert record.customer_country == ""
        assert record.region == "US"

    def test_order_fees_split_by_gross(self, amazon_order, amazon_order_items):
        """Order-level fees are allocated 60/40 by item gross"""
        fees = FeeBreakdown(fulfillment_fee=Decimal("5.00"), referral_fee=Decimal("15.00"))

        first, second = self._normalize(amazon_order, amazon_order_items, fees)

        assert first.fulfillment_fee == Decimal("3.00")
        assert first.referral_fee == Decimal("9.00")
        assert first.total_fees == Decimal("12.00")
        assert second.total_fees == Decimal("8.00")

    def test_zero_gross_splits_fees_evenly(self, amazon_order):
        """Promotional orders with no gross share fees equally"""
        items = [
            {"OrderItemId": "1", "QuantityOrdered": 1, "ItemPrice": {"Amount": "0.00"}},
            {"OrderItemId": "2", "QuantityOrdered": 1},
        ]

        records = self._normalize(amazon_order, items, FeeBreakdown(other_fees=Decimal("2.00")))

        assert [r.other_fees for r in records] == [Decimal("1.00"), Decimal("1.00")]

    def test_iso_week_of_new_year(self, amazon_order, amazon_order_items):
        """2024-01-01 orders land in week 1"""
        record = self._normalize(amazon_order, amazon_order_items)[0]

        assert record.iso_week == 1
        assert record.year_week == "2024-W01"


class TestLineItemRecord:
    """Tests for the canonical record"""

    def test_row_matches_schema(self, shopify_order_1001):
        """to_row emits one cell per sales column"""
        record = normalize_shopify_order(ShopifyOrder.model_validate(shopify_order_1001))[0]

        row = record.to_row()

        assert len(row) == len(SALES_FACT.columns)
        assert row[SALES_FACT.index_of("order_id")] == "1001"

    def test_from_row_parses_strings(self):
        """Sheet cells are parsed back into typed fields"""
        record = LineItemRecord.from_row(
            {"date": "2024-01-01", "channel": "Shopify", "order_id": "1", "line_id": "2", "qty": "3", "item_gross": "9.5"}
        )

        assert record.qty == 3
        assert record.item_gross == Decimal("9.50")
        assert record.currency == "USD"
        assert record.dedup_key == ("Shopify", "1", "2")
