"""
Channel Adapter Base

Common contract for sales channel adapters: list orders for a window, list
the line items of one order, optionally collect per-order fees, and turn the
result into canonical line records.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

import structlog

from salesync.exceptions import ChannelFetchError
from salesync.models.records import Channel, FeeBreakdown, LineItemRecord
from salesync.utils.dates import DateWindow

logger = structlog.get_logger(__name__)

OrderT = TypeVar("OrderT")
ItemT = TypeVar("ItemT")


class ChannelAdapter(ABC, Generic[OrderT, ItemT]):
    """
    Base class for a sales channel.

    Subclasses implement the raw fetches and the normalization call;
    fetch_records() ties them together with per-order failure isolation and
    a concurrency cap on line-item requests.

    Example:
        async with ShopifyAdapter() as adapter:
            records = await adapter.fetch_records(window)
    """

    channel: Channel

    def __init__(self, concurrency: int = 1):
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.concurrency = concurrency

    @abstractmethod
    async def fetch_orders(self, window: DateWindow) -> List[OrderT]:
        """All orders created inside the window, following every page"""

    @abstractmethod
    async def fetch_line_items(self, order: OrderT) -> List[ItemT]:
        """All line items of one order, following every page"""

    async def fetch_fees(self, window: DateWindow) -> Dict[str, FeeBreakdown]:
        """Fee breakdown per order id; channels without fee data return {}"""
        return {}

    @abstractmethod
    def order_id(self, order: OrderT) -> str:
        """Source order id as a string"""

    @abstractmethod
    def normalize(
        self,
        order: OrderT,
        items: Sequence[ItemT],
        fees: Optional[FeeBreakdown],
    ) -> List[LineItemRecord]:
        """Canonical records for one order"""

    async def _fetch_fees_or_empty(self, window: DateWindow) -> Dict[str, FeeBreakdown]:
        try:
            return await self.fetch_fees(window)
        except Exception as e:
            logger.warning(
                "Fee fetch failed, continuing without fees",
                channel=self.channel.value,
                error=str(e),
            )
            return {}

    async def fetch_records(self, window: DateWindow) -> List[LineItemRecord]:
        """
        Fetch and normalize every line item in the window.

        A failure on one order's line items is logged and that order is
        skipped; the remaining orders are still returned.

        Raises:
            ChannelFetchError: If the order listing itself fails
        """
        try:
            orders = await self.fetch_orders(window)
        except Exception as e:
            raise ChannelFetchError(self.channel.value, str(e)) from e
        logger.info(
            "Fetched orders",
            channel=self.channel.value,
            orders=len(orders),
            start=window.start,
            end=window.end,
        )
        if not orders:
            return []

        fees = await self._fetch_fees_or_empty(window)
        semaphore = asyncio.Semaphore(self.concurrency)

        async def process(order: OrderT) -> List[LineItemRecord]:
            async with semaphore:
                try:
                    items = await self.fetch_line_items(order)
                except Exception as e:
                    logger.warning(
                        "Failed to fetch line items, skipping order",
                        channel=self.channel.value,
                        order_id=self.order_id(order),
                        error=str(e),
                    )
                    return []
            return self.normalize(order, items, fees.get(self.order_id(order)))

        batches = await asyncio.gather(*(process(order) for order in orders))
        records = [record for batch in batches for record in batch]

        logger.info(
            "Prepared line items",
            channel=self.channel.value,
            records=len(records),
        )
        return records

    async def close(self) -> None:
        """Release network resources"""

    async def __aenter__(self) -> "ChannelAdapter[OrderT, ItemT]":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
