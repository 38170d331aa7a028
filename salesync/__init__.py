"""
Multi-Channel Sales Sync Pipeline

Pulls Shopify and Amazon orders, normalizes them into one line-item schema,
appends new rows idempotently and derives profitability and inventory tables.
"""

__version__ = "1.0.0"
