"""
Analytics Module

Passes that rebuild derived tables from the sales table.
"""
from .inventory import InventorySync, inventory_metrics, sales_velocity
from .profitability import (
    ProfitabilityCalculator,
    ProfitabilitySummary,
    calculate_profitability,
    cost_map,
    import_costs,
    summarize,
)

__all__ = [
    "InventorySync",
    "ProfitabilityCalculator",
    "ProfitabilitySummary",
    "calculate_profitability",
    "cost_map",
    "import_costs",
    "inventory_metrics",
    "sales_velocity",
    "summarize",
]
