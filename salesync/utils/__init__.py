"""
Utility Module
"""
from .dates import (
    DateWindow,
    iso_week,
    iso_year,
    parse_order_date,
    quarter,
    resolve_window,
    window_days_back,
    year_week,
)

__all__ = [
    "DateWindow",
    "iso_week",
    "iso_year",
    "parse_order_date",
    "quarter",
    "resolve_window",
    "window_days_back",
    "year_week",
]
