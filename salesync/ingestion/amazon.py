"""
Amazon SP-API Adapter

Orders, order items, financial events and FBA inventory through
python-amazon-sp-api. The SDK is blocking, so every call is run in a worker
thread; the base class semaphore keeps at most `item_concurrency` order-item
requests in flight.
"""

import asyncio
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence

import structlog
from sp_api.api import Finances, Inventories, Orders
from sp_api.base import Marketplaces

from salesync.config import get_settings
from salesync.config.settings import AmazonSettings
from salesync.exceptions import ConfigurationError
from salesync.ingestion.base import ChannelAdapter
from salesync.models.raw import (
    AmazonInventorySummary,
    AmazonOrder,
    AmazonOrderItem,
    AmazonShipmentEvent,
)
from salesync.models.records import Channel, FeeBreakdown, LineItemRecord
from salesync.transformation.normalizers import amazon_fee_breakdowns, normalize_amazon_order
from salesync.utils.dates import DateWindow, iso_string, utc_now

logger = structlog.get_logger(__name__)

# Finances rejects PostedBefore values later than two minutes before now
_POSTED_BEFORE_MARGIN = timedelta(minutes=2, seconds=30)


def _payload(response: Any) -> Dict[str, Any]:
    return getattr(response, "payload", None) or {}


def _next_token(response: Any) -> Optional[str]:
    """Continuation token from an SDK response, wherever the endpoint puts it"""
    token = getattr(response, "next_token", None)
    if token:
        return token
    payload = _payload(response)
    token = payload.get("NextToken") or payload.get("nextToken")
    if token:
        return token
    pagination = getattr(response, "pagination", None) or payload.get("pagination") or {}
    return pagination.get("nextToken")


class AmazonAdapter(ChannelAdapter[AmazonOrder, AmazonOrderItem]):
    """Amazon orders with fee breakdowns from financial events"""

    channel = Channel.AMAZON

    def __init__(
        self,
        settings: Optional[AmazonSettings] = None,
        orders_api: Any = None,
        finances_api: Any = None,
        inventory_api: Any = None,
    ):
        self.settings = settings or get_settings().amazon
        super().__init__(concurrency=self.settings.item_concurrency)
        self.page_delay = self.settings.page_delay_seconds

        if orders_api is None or finances_api is None or inventory_api is None:
            missing = self.settings.missing_credentials()
            if missing:
                raise ConfigurationError("Amazon SP-API", missing)
            try:
                marketplace = Marketplaces[self.settings.marketplace.upper()]
            except KeyError:
                raise ConfigurationError("Amazon SP-API", ["AMAZON_MARKETPLACE"]) from None
            credentials = self.settings.sp_api_credentials()
            orders_api = orders_api or Orders(marketplace=marketplace, credentials=credentials)
            finances_api = finances_api or Finances(marketplace=marketplace, credentials=credentials)
            inventory_api = inventory_api or Inventories(marketplace=marketplace, credentials=credentials)

        self._orders_api = orders_api
        self._finances_api = finances_api
        self._inventory_api = inventory_api

    async def _call(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        return await asyncio.to_thread(func, *args, **kwargs)

    async def fetch_orders(self, window: DateWindow) -> List[AmazonOrder]:
        """All orders created inside the window in the configured statuses"""
        query = {
            "CreatedAfter": window.start,
            "CreatedBefore": window.end,
            "MarketplaceIds": self.settings.marketplace_id,
            "OrderStatuses": ",".join(self.settings.order_statuses),
        }

        orders: List[AmazonOrder] = []
        next_token: Optional[str] = None
        while True:
            if next_token:
                response = await self._call(self._orders_api.get_orders, NextToken=next_token)
            else:
                response = await self._call(self._orders_api.get_orders, **query)
            orders.extend(AmazonOrder.model_validate(o) for o in _payload(response).get("Orders") or [])
            next_token = _next_token(response)
            if not next_token:
                break

        return orders

    async def fetch_line_items(self, order: AmazonOrder) -> List[AmazonOrderItem]:
        """All order items of one order"""
        items: List[AmazonOrderItem] = []
        next_token: Optional[str] = None
        while True:
            if next_token:
                response = await self._call(
                    self._orders_api.get_order_items, order.amazon_order_id, NextToken=next_token
                )
            else:
                response = await self._call(self._orders_api.get_order_items, order.amazon_order_id)
            items.extend(AmazonOrderItem.model_validate(i) for i in _payload(response).get("OrderItems") or [])
            next_token = _next_token(response)
            if not next_token:
                break
        return items

    async def fetch_fees(self, window: DateWindow) -> Dict[str, FeeBreakdown]:
        """Fee breakdown per order from shipment financial events posted in the window"""
        latest = iso_string(utc_now() - _POSTED_BEFORE_MARGIN)
        query = {
            "PostedAfter": window.start,
            "PostedBefore": min(window.end, latest),
        }

        events: List[AmazonShipmentEvent] = []
        next_token: Optional[str] = None
        while True:
            if next_token:
                response = await self._call(self._finances_api.list_financial_events, NextToken=next_token)
            else:
                response = await self._call(self._finances_api.list_financial_events, **query)
            shipment_events = (_payload(response).get("FinancialEvents") or {}).get("ShipmentEventList") or []
            events.extend(AmazonShipmentEvent.model_validate(e) for e in shipment_events)

            next_token = _next_token(response)
            if not next_token:
                break
            await asyncio.sleep(self.page_delay)

        fees = amazon_fee_breakdowns(events)
        logger.info("Fetched Amazon fee breakdowns", orders=len(fees), events=len(events))
        return fees

    async def fetch_inventory(self, skus: Sequence[str] = ()) -> List[AmazonInventorySummary]:
        """FBA inventory summaries for the marketplace, optionally filtered by SKU"""
        query: Dict[str, Any] = {
            "details": True,
            "granularityType": "Marketplace",
            "granularityId": self.settings.marketplace_id,
            "marketplaceIds": self.settings.marketplace_id,
        }
        if skus:
            query["sellerSkus"] = ",".join(skus)

        summaries: List[AmazonInventorySummary] = []
        next_token: Optional[str] = None
        while True:
            params = dict(query, nextToken=next_token) if next_token else query
            response = await self._call(self._inventory_api.get_inventory_summary_marketplace, **params)
            items = _payload(response).get("inventorySummaries") or []
            summaries.extend(AmazonInventorySummary.model_validate(i) for i in items)

            next_token = _next_token(response)
            if not next_token:
                break
            await asyncio.sleep(self.page_delay)

        logger.info("Fetched Amazon inventory", items=len(summaries))
        return summaries

    def order_id(self, order: AmazonOrder) -> str:
        return order.amazon_order_id

    def normalize(
        self,
        order: AmazonOrder,
        items: Sequence[AmazonOrderItem],
        fees: Optional[FeeBreakdown],
    ) -> List[LineItemRecord]:
        return normalize_amazon_order(order, items, fees)
