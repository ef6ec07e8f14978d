"""Timeframes and epoch-aligned time-bucket arithmetic."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Tuple, Union

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_ONE_SECOND = timedelta(seconds=1)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Naive datetimes are taken to already be in UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _unix_seconds(value: datetime) -> int:
    # Floor division keeps instants before the epoch on the correct side.
    return (as_utc(value) - EPOCH) // _ONE_SECOND


class Timeframe(str, Enum):
    """Width of a candle bucket.

    Buckets are anchored at the Unix epoch, so the boundaries of a timeframe
    are the multiples of its duration counted from 1970-01-01T00:00:00Z.
    Timeframes are ordered by duration.
    """

    FIVE_MINUTES = "5m"
    QUARTERS = "15m"
    ONE_HOUR = "1h"
    FOUR_HOURS = "4h"
    ONE_DAY = "1d"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, timedelta):
            for member in cls:
                if member.duration == value:
                    return member
            raise ValueError(f"{int(value.total_seconds())} is not a valid {cls.__name__}")
        return None

    @classmethod
    def default(cls) -> "Timeframe":
        return cls.FIVE_MINUTES

    @property
    def seconds(self) -> int:
        """Width of the bucket in seconds."""
        return _SECONDS[self.value]

    @property
    def duration(self) -> timedelta:
        """Width of the bucket."""
        return timedelta(seconds=self.seconds)

    def round_down(self, time: datetime) -> datetime:
        """Return the latest bucket start at or before ``time``."""
        seconds = _unix_seconds(time)
        return EPOCH + timedelta(seconds=seconds - seconds % self.seconds)

    def round_up(self, time: datetime) -> datetime:
        """Return the earliest bucket start at or after ``time``.

        A time that already lies on a boundary is returned unchanged. Raises
        ValueError when the next bucket would start after ``datetime.max``.
        """
        start = self.round_down(time)
        if start == as_utc(time):
            return start
        try:
            return start + self.duration
        except OverflowError as e:
            raise ValueError(f"No {self} bucket starts at or after {time.isoformat()}") from e

    def range(
        self,
        start: Union["Bound", datetime, None] = None,
        end: Union["Bound", datetime, None] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[datetime, datetime]:
        """Resolve a range of instants into bucket-aligned start and end times.

        An included start is rounded down and an excluded start is rounded up.
        An included end is rounded up and an excluded end is rounded down.
        An unbounded start resolves to the Unix epoch and an unbounded end to
        the start of the current bucket.

        Plain datetimes are shorthand for an included start and an excluded
        end; ``None`` means unbounded.

        Args:
            start: Lower bound of the range
            end: Upper bound of the range
            now: Current time used for an unbounded end (defaults to now, UTC)

        Returns:
            Tuple of (start, end) as aware UTC datetimes
        """
        start = Bound.coerce(start, default=Bound.included)
        end = Bound.coerce(end, default=Bound.excluded)

        if start.kind == Bound.INCLUDED:
            range_start = self.round_down(start.value)
        elif start.kind == Bound.EXCLUDED:
            range_start = self.round_up(start.value)
        else:
            range_start = EPOCH

        if end.kind == Bound.INCLUDED:
            range_end = self.round_up(end.value)
        elif end.kind == Bound.EXCLUDED:
            range_end = self.round_down(end.value)
        else:
            range_end = self.round_down(now or datetime.now(timezone.utc))

        return range_start, range_end

    def __str__(self) -> str:
        return self.value

    def __lt__(self, other):
        if not isinstance(other, Timeframe):
            return NotImplemented
        return self.seconds < other.seconds

    def __le__(self, other):
        if not isinstance(other, Timeframe):
            return NotImplemented
        return self.seconds <= other.seconds

    def __gt__(self, other):
        if not isinstance(other, Timeframe):
            return NotImplemented
        return self.seconds > other.seconds

    def __ge__(self, other):
        if not isinstance(other, Timeframe):
            return NotImplemented
        return self.seconds >= other.seconds


_SECONDS = {
    "5m": 5 * 60,
    "15m": 15 * 60,
    "1h": 60 * 60,
    "4h": 4 * 60 * 60,
    "1d": 24 * 60 * 60,
}


@dataclass(frozen=True)
class Bound:
    """One end of a time range: included, excluded or unbounded."""

    INCLUDED = "included"
    EXCLUDED = "excluded"
    UNBOUNDED = "unbounded"

    kind: str
    value: Optional[datetime] = None

    def __post_init__(self):
        if self.kind not in (self.INCLUDED, self.EXCLUDED, self.UNBOUNDED):
            raise ValueError(f"Invalid bound kind: {self.kind}")
        if self.kind != self.UNBOUNDED and self.value is None:
            raise ValueError(f"An {self.kind} bound needs a time")

    @classmethod
    def included(cls, value: datetime) -> "Bound":
        return cls(cls.INCLUDED, value)

    @classmethod
    def excluded(cls, value: datetime) -> "Bound":
        return cls(cls.EXCLUDED, value)

    @classmethod
    def unbounded(cls) -> "Bound":
        return cls(cls.UNBOUNDED)

    @classmethod
    def coerce(cls, value: Union["Bound", datetime, None], default) -> "Bound":
        """Turn a datetime or ``None`` into a bound, using ``default`` for datetimes."""
        if isinstance(value, Bound):
            return value
        if value is None:
            return cls.unbounded()
        return default(value)
