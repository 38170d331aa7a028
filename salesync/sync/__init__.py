"""
Incremental Sync Module
"""
from .engine import SyncEngine, SyncRequest, SyncResult, SyncStatus, parse_channels

__all__ = [
    "SyncEngine",
    "SyncRequest",
    "SyncResult",
    "SyncStatus",
    "parse_channels",
]
