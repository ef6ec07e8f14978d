"""Exception hierarchy for the ohlcv package."""

from datetime import datetime
from typing import Any


class OhlcvError(Exception):
    """Base exception for all ohlcv errors."""

    pass


class ConfigError(OhlcvError):
    """Configuration could not be loaded or is invalid."""

    pass


class ConfigFileNotFoundError(ConfigError):
    """No configuration file was given and none was found in the search paths."""

    def __init__(self, searched: Any):
        self.searched = list(searched)
        locations = ", ".join(str(p) for p in self.searched)
        super().__init__(
            f"Configuration file is missing\n"
            f"  - Looked for: {locations}\n"
            f"  - Pass --config or set OHLCV_CONFIG to the path of your configuration file"
        )


class MissingPasswordError(OhlcvError):
    """No password could be resolved for a user that needs one."""

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"missing password for user: {username}")


class DatabaseError(OhlcvError):
    """Base exception for errors raised by the database driver."""

    pass


class ConnectError(DatabaseError):
    """Failed to connect to the database."""

    def __init__(self, username: str, reason: Any = None):
        self.username = username
        super().__init__(f"failed to connect user `{username}` to the database: {reason}")


class CreateTableError(DatabaseError):
    """Failed to create a candle table."""

    def __init__(self, table: str, reason: Any = None):
        self.table = table
        super().__init__(f"failed to create table `{table}`: {reason}")


class DropTableError(DatabaseError):
    """Failed to drop a candle table."""

    def __init__(self, table: str, reason: Any = None):
        self.table = table
        super().__init__(f"failed to drop table `{table}`: {reason}")


class CatalogError(DatabaseError):
    """Failed to list the tables of the database."""

    def __init__(self, reason: Any = None):
        super().__init__(f"failed to select rows: {reason}")


class MergeError(OhlcvError):
    """Base exception for candle merge failures."""

    pass


class MergeEmptyError(MergeError):
    """The sequence of candles to merge was empty."""

    def __init__(self):
        super().__init__("failed to merge candles: iterator is empty")


class MergeTimestampError(MergeError):
    """A candle's timestamp differs from the first candle's."""

    def __init__(self, index: int, expected: datetime, actual: datetime):
        self.index = index
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"timestamps of candles at index {index} do not match: {expected} and {actual}"
        )


class MergeTimeframeError(MergeError):
    """A candle's timeframe differs from the first candle's."""

    def __init__(self, index: int, expected: Any, actual: Any):
        self.index = index
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"timeframes of candles at index {index} do not match: {expected} and {actual}"
        )


class MergeVolumeError(MergeError):
    """The candles to merge have a total volume of zero."""

    def __init__(self, timestamp: datetime, timeframe: Any):
        self.timestamp = timestamp
        self.timeframe = timeframe
        super().__init__(
            f"failed to merge candles at {timestamp} ({timeframe}): total volume is zero"
        )
