"""
Record Models
"""
from .records import (
    Channel,
    CostRecord,
    FeeBreakdown,
    InventoryRecord,
    LineItemRecord,
    ProfitabilityRecord,
)

__all__ = [
    "Channel",
    "CostRecord",
    "FeeBreakdown",
    "InventoryRecord",
    "LineItemRecord",
    "ProfitabilityRecord",
]
