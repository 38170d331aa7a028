"""
Channel Ingestion Module
"""
from typing import Optional

from salesync.config import Settings, get_settings
from salesync.models.records import Channel

from .base import ChannelAdapter


def create_adapter(channel: Channel, settings: Optional[Settings] = None) -> ChannelAdapter:
    """
    Create the configured adapter for a channel.

    Raises:
        ConfigurationError: If the channel's required credentials are missing
    """
    settings = settings or get_settings()
    if channel == Channel.SHOPIFY:
        from .shopify import ShopifyAdapter
        return ShopifyAdapter(settings.shopify)
    if channel == Channel.AMAZON:
        from .amazon import AmazonAdapter
        return AmazonAdapter(settings.amazon)
    raise ValueError(f"Unsupported channel: {channel}")


__all__ = [
    "ChannelAdapter",
    "create_adapter",
]
