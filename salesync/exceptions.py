"""
Pipeline Exceptions

Error taxonomy for the sync pipeline:
- ConfigurationError: a required credential/setting is missing
- ChannelFetchError: a whole channel could not be fetched
- SinkWriteError: appending to a table failed (fatal to the run)
"""

from typing import List, Optional


class SalesSyncError(Exception):
    """Base class for pipeline errors"""


class ConfigurationError(SalesSyncError):
    """Raised when required settings for a component are missing"""

    def __init__(self, component: str, missing: List[str]):
        self.component = component
        self.missing = list(missing)
        super().__init__(f"Missing {component} settings: {', '.join(self.missing)}")


class ChannelFetchError(SalesSyncError):
    """Raised when a channel adapter cannot fetch its data"""

    def __init__(self, channel: str, message: str):
        self.channel = channel
        super().__init__(f"{channel} fetch failed: {message}")


class SinkWriteError(SalesSyncError):
    """Raised when rows cannot be written to a table"""

    def __init__(self, table: str, message: str, rows: Optional[int] = None):
        self.table = table
        self.rows = rows
        super().__init__(f"Write to {table} failed: {message}")
