"""
Shopify Adapter

Orders from the Shopify Admin REST API. Line items arrive embedded in each
order; pagination follows the cursor in the Link header (rel="next").
"""

from typing import Any, Dict, List, Optional, Sequence

import httpx
import structlog

from salesync.config import get_settings
from salesync.config.settings import ShopifySettings
from salesync.exceptions import ConfigurationError
from salesync.ingestion.base import ChannelAdapter
from salesync.models.raw import ShopifyLineItem, ShopifyOrder
from salesync.models.records import Channel, FeeBreakdown, LineItemRecord, to_id
from salesync.transformation.normalizers import normalize_shopify_order
from salesync.utils.dates import DateWindow

logger = structlog.get_logger(__name__)


class ShopifyAdapter(ChannelAdapter[ShopifyOrder, ShopifyLineItem]):
    """Shopify orders with estimated transaction fees"""

    channel = Channel.SHOPIFY

    def __init__(
        self,
        settings: Optional[ShopifySettings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(concurrency=1)
        self.settings = settings or get_settings().shopify

        missing = self.settings.missing_credentials()
        if missing:
            raise ConfigurationError("Shopify", missing)

        self._headers = {
            "X-Shopify-Access-Token": self.settings.access_token.get_secret_value(),
            "Content-Type": "application/json",
        }
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=self.settings.base_url,
            timeout=self.settings.timeout_seconds,
        )

    async def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        response = await self._client.get(url, params=params, headers=self._headers)
        response.raise_for_status()
        return response

    async def fetch_orders(self, window: DateWindow) -> List[ShopifyOrder]:
        """All orders (any status) created inside the window"""
        url: Optional[str] = "/orders.json"
        params: Optional[Dict[str, Any]] = {
            "status": "any",
            "created_at_min": window.start,
            "created_at_max": window.end,
            "limit": self.settings.page_limit,
        }

        orders: List[ShopifyOrder] = []
        pages = 0
        while url:
            response = await self._get(url, params=params)
            payload = response.json()
            orders.extend(ShopifyOrder.model_validate(o) for o in payload.get("orders") or [])
            pages += 1

            # The next-page URL carries page_info and limit; other filters are not allowed with it
            url = response.links.get("next", {}).get("url")
            params = None

        logger.debug("Shopify order pages fetched", pages=pages, orders=len(orders))
        return orders

    async def fetch_line_items(self, order: ShopifyOrder) -> List[ShopifyLineItem]:
        return list(order.line_items)

    def order_id(self, order: ShopifyOrder) -> str:
        return to_id(order.id)

    def normalize(
        self,
        order: ShopifyOrder,
        items: Sequence[ShopifyLineItem],
        fees: Optional[FeeBreakdown],
    ) -> List[LineItemRecord]:
        return normalize_shopify_order(
            order,
            items,
            fee_rate=self.settings.transaction_fee_rate,
            fee_fixed=self.settings.transaction_fee_fixed,
        )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
