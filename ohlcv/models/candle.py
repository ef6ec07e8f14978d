"""Canonical candle model."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Union

from ..errors import (
    MergeEmptyError,
    MergeTimeframeError,
    MergeTimestampError,
    MergeVolumeError,
)
from .timeframe import EPOCH, Timeframe, as_utc

DecimalLike = Union[Decimal, int, str]

_PRICE_FIELDS = ("open", "high", "low", "close", "volume")


def to_decimal(value: DecimalLike) -> Decimal:
    """Convert a price or volume to ``Decimal``.

    Floats are rejected so binary rounding errors never reach a candle.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError(f"Float values are not accepted for prices, use Decimal: {value!r}")
    return Decimal(value)


class Color(str, Enum):
    """Color of a candlestick."""

    GREEN = "green"
    RED = "red"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, eq=False)
class Candle:
    """OHLCV candle for one time bucket of a trading pair.

    A candle is addressed by its bucket: equality, hashing and ordering only
    look at ``timestamp`` and ``timeframe``. Prices and volume are in the
    quote currency.
    """

    timestamp: datetime = EPOCH
    timeframe: Timeframe = field(default_factory=Timeframe.default)
    sources: int = 1
    open: Decimal = Decimal(0)
    high: Decimal = Decimal(0)
    low: Decimal = Decimal(0)
    close: Decimal = Decimal(0)
    volume: Decimal = Decimal(0)

    def __post_init__(self):
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))
        object.__setattr__(self, "timeframe", Timeframe(self.timeframe))
        if int(self.sources) < 1:
            raise ValueError(f"A candle needs at least one source, got {self.sources}")
        object.__setattr__(self, "sources", int(self.sources))
        for name in _PRICE_FIELDS:
            object.__setattr__(self, name, to_decimal(getattr(self, name)))

    @classmethod
    def merge(cls, candles: Iterable["Candle"]) -> "Candle":
        """Merge candles of the same bucket into a single candle.

        Prices are averaged weighted by volume (VWAP), volumes are summed and
        the source counts are added up, so merging already merged candles
        keeps their provenance.

        Args:
            candles: Candles sharing one timestamp and timeframe

        Returns:
            The merged candle

        Raises:
            MergeEmptyError: If ``candles`` is empty
            MergeTimestampError: If a candle has a different timestamp than the first
            MergeTimeframeError: If a candle has a different timeframe than the first
            MergeVolumeError: If the total volume is zero
        """
        first = None
        sources = 0
        volume = Decimal(0)
        weighted = dict.fromkeys(("open", "high", "low", "close"), Decimal(0))

        for index, candle in enumerate(candles):
            if first is None:
                first = candle
            elif candle.timestamp != first.timestamp:
                raise MergeTimestampError(index, first.timestamp, candle.timestamp)
            elif candle.timeframe != first.timeframe:
                raise MergeTimeframeError(index, first.timeframe, candle.timeframe)

            sources += candle.sources
            volume += candle.volume
            for name in weighted:
                weighted[name] += getattr(candle, name) * candle.volume

        if first is None:
            raise MergeEmptyError()
        if volume == 0:
            raise MergeVolumeError(first.timestamp, first.timeframe)

        return cls(
            timestamp=first.timestamp,
            timeframe=first.timeframe,
            sources=sources,
            volume=volume,
            **{name: total / volume for name, total in weighted.items()},
        )

    @property
    def key(self):
        """Bucket address of the candle."""
        return self.timestamp, self.timeframe

    @property
    def color(self) -> Color:
        return Color.GREEN if self.close > self.open else Color.RED

    @property
    def body(self) -> Decimal:
        return self.close - self.open

    @property
    def high_wick(self) -> Decimal:
        return self.high - max(self.close, self.open)

    @property
    def low_wick(self) -> Decimal:
        return min(self.open, self.close) - self.low

    @property
    def range(self) -> Decimal:
        return self.high - self.low

    @property
    def upper_shadow(self) -> Decimal:
        return self.high - max(self.close, self.open)

    @property
    def lower_shadow(self) -> Decimal:
        return min(self.open, self.close) - self.low

    def __eq__(self, other):
        if not isinstance(other, Candle):
            return NotImplemented
        return self.key == other.key

    def __hash__(self):
        return hash(self.key)

    def __lt__(self, other):
        if not isinstance(other, Candle):
            return NotImplemented
        return self.key < other.key

    def __le__(self, other):
        if not isinstance(other, Candle):
            return NotImplemented
        return self.key <= other.key

    def __gt__(self, other):
        if not isinstance(other, Candle):
            return NotImplemented
        return self.key > other.key

    def __ge__(self, other):
        if not isinstance(other, Candle):
            return NotImplemented
        return self.key >= other.key
