"""
Incremental Sync Engine

Pulls line items from every requested channel, drops the ones already in the
sales table and appends the rest. Supports:
- Explicit start/end, "last N days" or the configured default window
- Per-channel failure isolation
- Idempotent appends keyed on (channel, order_id, line_id)
- Optional re-sort of the sales table by date after appending
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

import structlog
from pydantic import BaseModel, Field

from salesync.config import Settings, get_settings
from salesync.exceptions import ChannelFetchError, ConfigurationError, SinkWriteError
from salesync.ingestion import ChannelAdapter, create_adapter
from salesync.models.records import Channel, LineItemRecord
from salesync.storage.base import TableSink
from salesync.storage.schema import SALES_FACT, SALES_KEY_COLUMNS
from salesync.utils.dates import DateWindow, resolve_window, utc_now

logger = structlog.get_logger(__name__)

DedupKey = Tuple[str, str, str]
AdapterFactory = Callable[[Channel, Settings], ChannelAdapter]
ChannelSelection = Union[None, str, Iterable[Union[str, Channel]]]


class SyncStatus(str, Enum):
    """Sync run status"""
    COMPLETED = "completed"
    PARTIAL = "partial"


def parse_channels(value: ChannelSelection) -> List[Channel]:
    """
    Resolve a channel selection.

    Accepts None or "all" (every channel), a comma-separated string, or an
    iterable of names/Channel members. Order is preserved, duplicates dropped.
    """
    if value is None:
        return list(Channel)
    if isinstance(value, str):
        if value.strip().lower() in ("", "all"):
            return list(Channel)
        names: Iterable[Union[str, Channel]] = [part for part in value.split(",") if part.strip()]
    else:
        names = value

    channels: List[Channel] = []
    for name in names:
        channel = name if isinstance(name, Channel) else Channel.parse(name)
        if channel not in channels:
            channels.append(channel)
    if not channels:
        return list(Channel)
    return channels


@dataclass
class SyncRequest:
    """Parameters of one sync run"""
    start: Optional[str] = None
    end: Optional[str] = None
    days: Optional[int] = None
    channels: ChannelSelection = None


class SyncResult(BaseModel):
    """Result of a sync run"""
    status: SyncStatus
    window_start: str
    window_end: str
    channels: List[str]
    fetched: Dict[str, int] = Field(default_factory=dict)
    appended_by_channel: Dict[str, int] = Field(default_factory=dict)
    appended: int = 0
    skipped_duplicates: int = 0
    errors: Dict[str, str] = Field(default_factory=dict)
    started_at: datetime
    completed_at: Optional[datetime] = None


@dataclass
class _ChannelOutcome:
    channel: Channel
    records: List[LineItemRecord] = field(default_factory=list)
    error: Optional[Exception] = None


class SyncEngine:
    """
    Multi-channel incremental sync into the sales table.

    The engine holds no run lock; callers must not run two syncs against the
    same sink at once.

    Example:
        engine = SyncEngine(DatabaseTableSink())
        result = await engine.sync(SyncRequest(days=7, channels="shopify"))
    """

    def __init__(
        self,
        sink: TableSink,
        settings: Optional[Settings] = None,
        adapter_factory: AdapterFactory = create_adapter,
    ):
        self.sink = sink
        self.settings = settings or get_settings()
        self.adapter_factory = adapter_factory

    def resolve_window(self, request: SyncRequest) -> DateWindow:
        return resolve_window(
            request.start,
            request.end,
            request.days,
            default_days=self.settings.sync.default_lookback_days,
        )

    async def _run_channel(self, channel: Channel, window: DateWindow) -> _ChannelOutcome:
        log = logger.bind(channel=channel.value)
        try:
            adapter = self.adapter_factory(channel, self.settings)
        except ConfigurationError as e:
            log.warning("Channel not configured, skipping", missing=e.missing)
            return _ChannelOutcome(channel, error=e)

        try:
            async with adapter:
                records = await adapter.fetch_records(window)
        except ChannelFetchError as e:
            log.error("Channel fetch failed", error=str(e), cause=type(e.__cause__).__name__)
            return _ChannelOutcome(channel, error=e)
        except Exception as e:
            log.error("Channel sync failed", error=str(e), error_type=type(e).__name__)
            return _ChannelOutcome(channel, error=e)

        return _ChannelOutcome(channel, records=records)

    async def existing_keys(self) -> Set[DedupKey]:
        """Dedup keys of every row already in the sales table"""
        columns = await asyncio.gather(
            *(self.sink.read_column(SALES_FACT.name, column) for column in SALES_KEY_COLUMNS)
        )
        return set(zip(*columns))

    @staticmethod
    def filter_new(
        records: Sequence[LineItemRecord],
        existing: Set[DedupKey],
    ) -> List[LineItemRecord]:
        """Records whose key is not yet known; the first of repeated keys wins"""
        seen = set(existing)
        fresh: List[LineItemRecord] = []
        for record in records:
            key = record.dedup_key
            if key in seen:
                continue
            seen.add(key)
            fresh.append(record)
        return fresh

    async def sync(self, request: Optional[SyncRequest] = None) -> SyncResult:
        """
        Run one incremental sync.

        Raises:
            ConfigurationError: If the only requested channel is not configured
            SinkWriteError: If appending to the sales table fails
        """
        request = request or SyncRequest()
        started_at = utc_now()
        window = self.resolve_window(request)
        channels = parse_channels(request.channels)

        logger.info(
            "Starting sync",
            channels=[c.value for c in channels],
            start=window.start,
            end=window.end,
        )

        outcomes = await asyncio.gather(*(self._run_channel(c, window) for c in channels))

        if len(outcomes) == 1 and isinstance(outcomes[0].error, ConfigurationError):
            raise outcomes[0].error

        records = [record for outcome in outcomes for record in outcome.records]
        existing = await self.existing_keys()
        fresh = self.filter_new(records, existing)

        if fresh:
            try:
                await self.sink.append_rows(SALES_FACT.name, [r.to_row() for r in fresh])
            except Exception as e:
                logger.error("Failed to append sales rows", rows=len(fresh), error=str(e))
                raise SinkWriteError(SALES_FACT.name, str(e), rows=len(fresh)) from e

            if self.settings.sync.sort_after_append:
                try:
                    await self.sink.sort_table(SALES_FACT.name, "date", descending=True)
                except Exception as e:
                    logger.warning("Sort after append failed", table=SALES_FACT.name, error=str(e))

        appended_by_channel = {c.value: 0 for c in channels}
        for record in fresh:
            appended_by_channel[record.channel] = appended_by_channel.get(record.channel, 0) + 1

        errors = {o.channel.value: str(o.error) for o in outcomes if o.error is not None}
        result = SyncResult(
            status=SyncStatus.PARTIAL if errors else SyncStatus.COMPLETED,
            window_start=window.start,
            window_end=window.end,
            channels=[c.value for c in channels],
            fetched={o.channel.value: len(o.records) for o in outcomes},
            appended_by_channel=appended_by_channel,
            appended=len(fresh),
            skipped_duplicates=len(records) - len(fresh),
            errors=errors,
            started_at=started_at,
            completed_at=utc_now(),
        )

        logger.info(
            "Sync complete",
            status=result.status.value,
            appended=result.appended,
            skipped=result.skipped_duplicates,
            by_channel=result.appended_by_channel,
        )
        return result
