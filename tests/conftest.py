"""
Test Suite Configuration
"""
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest

from salesync.config import Settings
from salesync.config.settings import (
    AmazonSettings,
    InventorySettings,
    ShopifySettings,
    SyncSettings,
)
from salesync.database import DatabaseTableSink, close_database, create_tables, init_database
from salesync.storage import InMemoryTableSink

SHOP_BASE_URL = "https://test-shop.myshopify.com/admin/api/2024-10"


@pytest.fixture
def shopify_settings() -> ShopifySettings:
    """Shopify settings pointing at a fake shop"""
    return ShopifySettings(store_domain="test-shop.myshopify.com", access_token="shpat_test")


@pytest.fixture
def amazon_settings() -> AmazonSettings:
    """Amazon settings with every credential filled in and no page delay"""
    return AmazonSettings(
        seller_id="A1SELLER",
        refresh_token="Atzr|refresh",
        lwa_client_id="amzn1.application-oa2-client.test",
        lwa_client_secret="lwa-secret",
        role_arn="arn:aws:iam::123456789012:role/sp-api",
        aws_access_key_id="AKIATEST",
        aws_secret_access_key="aws-secret",
        page_delay_seconds=0,
    )


@pytest.fixture
def unconfigured_amazon() -> AmazonSettings:
    """Amazon settings with no credentials"""
    return AmazonSettings(
        seller_id=None,
        refresh_token=None,
        lwa_client_id=None,
        lwa_client_secret=None,
        role_arn=None,
        aws_access_key_id=None,
        aws_secret_access_key=None,
    )


@pytest.fixture
def test_settings(shopify_settings, amazon_settings) -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
        shopify=shopify_settings,
        amazon=amazon_settings,
        sync=SyncSettings(default_lookback_days=35, sort_after_append=True, token="sync-secret"),
        inventory=InventorySettings(velocity_lookback_days=30, safety_stock_days=7, lead_time_days=14),
    )


@pytest.fixture
def memory_sink() -> InMemoryTableSink:
    """Empty in-memory table sink"""
    return InMemoryTableSink()


@pytest.fixture
async def db_sink(tmp_path):
    """Database sink on a fresh SQLite file"""
    await init_database(f"sqlite+aiosqlite:///{tmp_path}/salesync.db")
    await create_tables()
    yield DatabaseTableSink()
    await close_database()


@pytest.fixture
def shopify_order_1001() -> Dict[str, Any]:
    """Shopify order with two lines, tax and shipping, no discount"""
    return {
        "id": 1001,
        "order_number": 1001,
        "created_at": "2024-03-15T10:30:00-04:00",
        "currency": "USD",
        "total_price": "53.50",
        "subtotal_price": "45.00",
        "total_tax": "3.50",
        "total_shipping_price_set": {"shop_money": {"amount": "5.00", "currency_code": "USD"}},
        "shipping_address": {"city": "Austin", "province_code": "TX", "country_code": "US", "zip": "78701"},
        "customer": {"id": 7001, "email": "jane@example.com", "first_name": "Jane", "last_name": "Smith"},
        "line_items": [
            {"id": 2001, "sku": "SKU-A", "title": "Widget", "quantity": 2, "price": "10.00", "total_discount": "0.00"},
            {"id": 2002, "sku": "SKU-B", "title": "Gadget", "quantity": 1, "price": "25.00", "total_discount": "0.00"},
        ],
        "refunds": [],
    }


@pytest.fixture
def amazon_order() -> Dict[str, Any]:
    """Amazon order as returned by getOrders"""
    return {
        "AmazonOrderId": "112-0000001-0000001",
        "PurchaseDate": "2024-01-01T08:00:00Z",
        "OrderStatus": "Shipped",
        "OrderTotal": {"CurrencyCode": "USD", "Amount": "100.00"},
        "ShippingAddress": {"City": "Seattle", "StateOrRegion": "WA", "CountryCode": "US"},
    }


@pytest.fixture
def amazon_order_items() -> List[Dict[str, Any]]:
    """Two order items with a 60/40 gross split"""
    return [
        {
            "OrderItemId": "11111111111111",
            "SellerSKU": "AMZ-1",
            "Title": "Blue Kettle",
            "QuantityOrdered": 1,
            "ItemPrice": {"CurrencyCode": "USD", "Amount": "60.00"},
            "ShippingPrice": {"CurrencyCode": "USD", "Amount": "4.00"},
            "ItemTax": {"CurrencyCode": "USD", "Amount": "4.80"},
            "ShippingTax": {"CurrencyCode": "USD", "Amount": "0.32"},
            "PromotionDiscount": {"CurrencyCode": "USD", "Amount": "-5.00"},
        },
        {
            "OrderItemId": "22222222222222",
            "SellerSKU": "AMZ-2",
            "Title": "Red Kettle",
            "QuantityOrdered": 2,
            "ItemPrice": {"CurrencyCode": "USD", "Amount": "40.00"},
        },
    ]


@pytest.fixture
def shopify_transport() -> Callable[..., httpx.MockTransport]:
    """
    Build a MockTransport serving pages of orders.

    Each page but the last carries a Link header pointing at the next
    page_info cursor. Requests are recorded on transport.requests.
    """

    def build(pages: List[List[Dict[str, Any]]], status_code: int = 200) -> httpx.MockTransport:
        requests: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if status_code != 200:
                return httpx.Response(status_code, json={"errors": "boom"})
            cursor = request.url.params.get("page_info")
            index = int(cursor.removeprefix("p")) if cursor else 0
            headers = {}
            if index + 1 < len(pages):
                headers["Link"] = f'<{SHOP_BASE_URL}/orders.json?limit=250&page_info=p{index + 1}>; rel="next"'
            return httpx.Response(200, json={"orders": pages[index]}, headers=headers)

        transport = httpx.MockTransport(handler)
        transport.requests = requests
        return transport

    return build


class FakeResponse:
    """Stand-in for an SP-API ApiResponse"""

    def __init__(self, payload: Dict[str, Any], next_token: Optional[str] = None):
        self.payload = payload
        self.next_token = next_token


class FakeOrdersApi:
    """Orders API returning canned pages; order items keyed by order id"""

    def __init__(self, order_pages, items_by_order, failing_orders=()):
        self.order_pages = order_pages
        self.items_by_order = items_by_order
        self.failing_orders = set(failing_orders)
        self.order_calls: List[Dict[str, Any]] = []
        self.item_calls: List[str] = []

    def get_orders(self, **kwargs):
        self.order_calls.append(kwargs)
        index = int(kwargs["NextToken"]) if "NextToken" in kwargs else 0
        token = str(index + 1) if index + 1 < len(self.order_pages) else None
        return FakeResponse({"Orders": self.order_pages[index], "NextToken": token})

    def get_order_items(self, order_id, **kwargs):
        self.item_calls.append(order_id)
        if order_id in self.failing_orders:
            raise RuntimeError("QuotaExceeded")
        return FakeResponse({"AmazonOrderId": order_id, "OrderItems": self.items_by_order.get(order_id, [])})


class FakeFinancesApi:
    """Finances API returning canned shipment events"""

    def __init__(self, event_pages=None, error: Optional[Exception] = None):
        self.event_pages = event_pages or [[]]
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    def list_financial_events(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        index = int(kwargs["NextToken"]) if "NextToken" in kwargs else 0
        token = str(index + 1) if index + 1 < len(self.event_pages) else None
        return FakeResponse({"FinancialEvents": {"ShipmentEventList": self.event_pages[index]}}, next_token=token)


class FakeInventoryApi:
    """FBA Inventory API returning canned summary pages"""

    def __init__(self, pages):
        self.pages = pages
        self.calls: List[Dict[str, Any]] = []

    def get_inventory_summary_marketplace(self, **kwargs):
        self.calls.append(kwargs)
        index = int(kwargs["nextToken"]) if "nextToken" in kwargs else 0
        payload: Dict[str, Any] = {"inventorySummaries": self.pages[index]}
        if index + 1 < len(self.pages):
            payload["pagination"] = {"nextToken": str(index + 1)}
        return FakeResponse(payload)


@pytest.fixture
def fake_sp_api():
    """Factory namespace for fake SP-API clients"""

    class Fakes:
        Response = FakeResponse
        Orders = FakeOrdersApi
        Finances = FakeFinancesApi
        Inventory = FakeInventoryApi

    return Fakes
