"""
Data Transformation Module
"""
from .normalizers import (
    amazon_fee_breakdowns,
    categorize_fee,
    estimate_transaction_fee,
    normalize_amazon_order,
    normalize_shopify_order,
)

__all__ = [
    "amazon_fee_breakdowns",
    "categorize_fee",
    "estimate_transaction_fee",
    "normalize_amazon_order",
    "normalize_shopify_order",
]
