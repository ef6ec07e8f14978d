"""Storage service for candles."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ..db.base import SchemaBackend
from ..errors import DatabaseError, OhlcvError
from ..models.candle import Candle
from ..models.coin import Coin
from ..models.results import StorageResult
from ..models.timeframe import Bound, Timeframe, as_utc

logger = logging.getLogger(__name__)


def merge_buckets(candles: Iterable[Candle]) -> List[Candle]:
    """Merge candles that address the same bucket.

    Candles are grouped by timestamp and timeframe and every group is merged
    with :meth:`Candle.merge`. The result is sorted by bucket.
    """
    groups: Dict[tuple, List[Candle]] = {}
    for candle in candles:
        groups.setdefault(candle.key, []).append(candle)
    return [Candle.merge(groups[key]) for key in sorted(groups)]


def _decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class StorageService:
    """Reads and writes candles through a backend's connection pool."""

    def __init__(self, backend: SchemaBackend):
        """Initialize storage service.

        Args:
            backend: Database backend whose pool is used for all queries
        """
        self.backend = backend

    def _db_timestamp(self, timestamp: datetime) -> datetime:
        timestamp = as_utc(timestamp)
        if self.backend.timezone_aware:
            return timestamp
        return timestamp.replace(tzinfo=None)

    def _to_row(self, candle: Candle) -> dict:
        return {
            "time_stamp": self._db_timestamp(candle.timestamp),
            "time_frame": candle.timeframe.value,
            "sources": candle.sources,
            "open": candle.open,
            "high": candle.high,
            "low": candle.low,
            "close": candle.close,
            "volume": candle.volume,
        }

    @staticmethod
    def _from_row(row) -> Candle:
        return Candle(
            timestamp=as_utc(row.time_stamp),
            timeframe=Timeframe(row.time_frame),
            sources=row.sources,
            open=_decimal(row.open),
            high=_decimal(row.high),
            low=_decimal(row.low),
            close=_decimal(row.close),
            volume=_decimal(row.volume),
        )

    def store_candles(self, coin: Coin, candles: Iterable[Candle]) -> StorageResult:
        """Store candles in the table of a coin.

        Candles of the same bucket are merged first. A bucket that already
        exists in the table is overwritten.

        Args:
            coin: Coin the candles belong to
            candles: Candles to store, possibly from several sources

        Returns:
            StorageResult describing what was written
        """
        start_time = datetime.now()
        table_name = coin.table_name
        candles = list(candles)
        errors: List[str] = []

        if not candles:
            return StorageResult(
                table=table_name,
                success=False,
                candles_received=0,
                records_stored=0,
                execution_time_ms=0,
                errors=["No candles to store"],
            )

        try:
            rows = [self._to_row(candle) for candle in merge_buckets(candles)]
            table = self.backend.candle_table(table_name)
            with self.backend.engine().begin() as conn:
                conn.execute(self.backend.upsert(table, rows))

            execution_time = int((datetime.now() - start_time).total_seconds() * 1000)
            logger.info(f"Stored {len(rows)} candles ({len(candles)} received) in {table_name}")
            return StorageResult(
                table=table_name,
                success=True,
                candles_received=len(candles),
                records_stored=len(rows),
                execution_time_ms=execution_time,
                errors=errors,
            )
        except (OhlcvError, SQLAlchemyError) as e:
            execution_time = int((datetime.now() - start_time).total_seconds() * 1000)
            error_msg = f"Failed to store candles in {table_name}: {e}"
            errors.append(error_msg)
            logger.error(error_msg, exc_info=True)
            return StorageResult(
                table=table_name,
                success=False,
                candles_received=len(candles),
                records_stored=0,
                execution_time_ms=execution_time,
                errors=errors,
            )

    def load_candles(
        self,
        coin: Coin,
        timeframe: Timeframe,
        start: Union[Bound, datetime, None] = None,
        end: Union[Bound, datetime, None] = None,
        now: Optional[datetime] = None,
    ) -> List[Candle]:
        """Load the candles of a coin within a range.

        The bounds are resolved to bucket starts with :meth:`Timeframe.range`
        and both resolved ends are included in the query.

        Args:
            coin: Coin to load candles for
            timeframe: Timeframe of the candles
            start: Start bound (plain datetimes are included)
            end: End bound (plain datetimes are excluded)
            now: Current time, used when the end is unbounded

        Returns:
            Candles ordered by timestamp

        Raises:
            DatabaseError: If the query fails
        """
        range_start, range_end = timeframe.range(start, end, now=now)
        table = self.backend.candle_table(coin.table_name)
        query = (
            select(table)
            .where(table.c.time_frame == timeframe.value)
            .where(table.c.time_stamp >= self._db_timestamp(range_start))
            .where(table.c.time_stamp <= self._db_timestamp(range_end))
            .order_by(table.c.time_stamp)
        )
        logger.debug(f"Loading {timeframe} candles of {coin} from {range_start} to {range_end}")

        try:
            with self.backend.engine().connect() as conn:
                rows = conn.execute(query).all()
        except SQLAlchemyError as e:
            raise DatabaseError(f"failed to load candles from `{coin.table_name}`: {e}") from e
        return [self._from_row(row) for row in rows]

    def latest_timestamp(self, coin: Coin, timeframe: Timeframe) -> Optional[datetime]:
        """Get the latest stored bucket start of a coin and timeframe.

        Returns:
            Latest timestamp or None if no data exists
        """
        table = self.backend.candle_table(coin.table_name)
        query = select(func.max(table.c.time_stamp)).where(table.c.time_frame == timeframe.value)
        try:
            with self.backend.engine().connect() as conn:
                latest = conn.execute(query).scalar()
        except SQLAlchemyError as e:
            logger.error(f"Failed to get latest timestamp for {coin}: {e}")
            return None
        return as_utc(latest) if latest else None
