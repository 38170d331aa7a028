"""
Date and Window Utilities

Calendar windows for fetching ("last N days", explicit start/end) and the
ISO-8601 week/year/quarter derivations used to partition line items.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

import structlog

logger = structlog.get_logger(__name__)

DateLike = Union[str, date, datetime, None]


@dataclass(frozen=True)
class DateWindow:
    """Closed time window expressed as ISO-8601 UTC instants"""
    start: str
    end: str

    @property
    def start_dt(self) -> datetime:
        return datetime.fromisoformat(self.start)

    @property
    def end_dt(self) -> datetime:
        return datetime.fromisoformat(self.end)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime"""
    return datetime.now(timezone.utc)


def iso_string(dt: datetime) -> str:
    """Format an aware datetime as an ISO UTC instant with milliseconds and Z"""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def start_of_day(d: date) -> datetime:
    """00:00:00.000 UTC of the given day"""
    return datetime.combine(d, time.min, tzinfo=timezone.utc)


def end_of_day(d: date) -> datetime:
    """23:59:59.999 UTC of the given day"""
    return datetime.combine(d, time(23, 59, 59, 999000), tzinfo=timezone.utc)


def window_days_back(days: int, now: Optional[datetime] = None) -> DateWindow:
    """
    Window from the start of the day `days` ago to the end of today.

    Args:
        days: Number of days to go back (0 = today only)
        now: Reference time, defaults to the current UTC time

    Returns:
        DateWindow with millisecond ISO instants
    """
    if days < 0:
        raise ValueError(f"days must be >= 0, got {days}")
    today = (now or utc_now()).astimezone(timezone.utc).date()
    return DateWindow(
        start=iso_string(start_of_day(today - timedelta(days=days))),
        end=iso_string(end_of_day(today)),
    )


def _parse_bound(value: str) -> date:
    value = value.strip()
    try:
        return date.fromisoformat(value)
    except ValueError:
        return datetime.fromisoformat(value).date()


def resolve_window(
    start: Optional[str] = None,
    end: Optional[str] = None,
    days: Optional[Union[int, str]] = None,
    default_days: int = 35,
    now: Optional[datetime] = None,
) -> DateWindow:
    """
    Resolve the fetch window.

    Explicit start/end take precedence over a day count, which takes
    precedence over the configured default lookback.
    """
    if start or end:
        if not (start and end):
            raise ValueError("start and end must be given together")
        start_date = _parse_bound(start)
        end_date = _parse_bound(end)
        if start_date > end_date:
            raise ValueError(f"start {start} is after end {end}")
        return DateWindow(
            start=iso_string(start_of_day(start_date)),
            end=iso_string(end_of_day(end_date)),
        )

    if days is not None and str(days).strip() != "":
        return window_days_back(int(days), now=now)

    return window_days_back(default_days, now=now)


def parse_order_date(value: DateLike, today: Optional[date] = None) -> date:
    """
    Calendar date of an order creation timestamp.

    Full ISO datetimes resolve to the date in their own offset, bare dates
    are taken as-is. Anything unparseable falls back to today and is logged.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = (value or "").strip() if isinstance(value, str) else ""
    if text:
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            pass

    fallback = today or utc_now().date()
    logger.warning("Unparseable order date, using today", value=value, fallback=fallback.isoformat())
    return fallback


def iso_week(d: date) -> int:
    """ISO-8601 week number (week 1 contains the year's first Thursday)"""
    return d.isocalendar()[1]


def iso_year(d: date) -> int:
    """ISO-8601 week-numbering year, which differs from d.year around New Year"""
    return d.isocalendar()[0]


def year_week(d: date) -> str:
    """ISO year-week label, e.g. 2024-W01"""
    return f"{iso_year(d)}-W{iso_week(d):02d}"


def quarter(d: date) -> int:
    """Calendar quarter (1-4) of the date's month"""
    return (d.month - 1) // 3 + 1
