"""Shared test fixtures and utilities."""

from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import text

from ohlcv.db.sqlite import SqliteBackend
from ohlcv.models.candle import Candle
from ohlcv.models.coin import Coin, Currency
from ohlcv.models.timeframe import Timeframe

BASE_TIME = datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

SQLITE_CONFIG = """
[database]
type = "sqlite"
database = "{database}"

[[coins]]
symbol = "BTC"
name = "Bitcoin"
currency = "USD"
exchanges = {{ Binance = "BTCUSDC" }}

[[coins]]
symbol = "eth"
name = "Ethereum"
currency = "EUR"
"""


def create_candle(
    timestamp: datetime = BASE_TIME,
    timeframe: Timeframe = Timeframe.ONE_HOUR,
    open_price="100",
    high="110",
    low="90",
    close="105",
    volume="10",
    sources: int = 1,
) -> Candle:
    """Helper to create a candle from string prices.

    Args:
        timestamp: Bucket start
        timeframe: Bucket width
        open_price: Open price
        high: High price
        low: Low price
        close: Close price
        volume: Volume
        sources: Number of sources

    Returns:
        Candle object
    """
    return Candle(
        timestamp=timestamp,
        timeframe=timeframe,
        sources=sources,
        open=Decimal(open_price),
        high=Decimal(high),
        low=Decimal(low),
        close=Decimal(close),
        volume=Decimal(volume),
    )


def table_names(backend: SqliteBackend) -> set:
    """Names of all tables in a SQLite backend."""
    with backend.engine().connect() as conn:
        rows = conn.execute(text("SELECT name FROM sqlite_master WHERE type = 'table'"))
        return {row[0] for row in rows}


@pytest.fixture
def btc():
    return Coin("BTC", "Bitcoin", Currency.USD)


@pytest.fixture
def eth():
    return Coin("ETH", "Ethereum", Currency.EUR)


@pytest.fixture
def coins(btc, eth):
    return [btc, eth]


@pytest.fixture
def sqlite_backend(tmp_path):
    """SQLite backend on a fresh database file, disposed after the test."""
    backend = SqliteBackend(database=str(tmp_path / "data" / "ohlcv.db"))
    yield backend
    backend.dispose()


@pytest.fixture
def sqlite_config(tmp_path) -> Path:
    """Configuration file pointing at a SQLite database in tmp_path."""
    path = tmp_path / "ohlcv-ctl.toml"
    database = (tmp_path / "ohlcv.db").as_posix()
    path.write_text(SQLITE_CONFIG.format(database=database), encoding="utf-8")
    return path


@pytest.fixture
def sample_candles():
    """Two exchanges reporting the same 1h bucket plus the next bucket."""
    return [
        create_candle(open_price="100", high="110", low="90", close="105", volume="10"),
        create_candle(open_price="200", high="210", low="190", close="205", volume="30"),
        create_candle(
            timestamp=BASE_TIME.replace(hour=13),
            open_price="105",
            high="120",
            low="100",
            close="115",
            volume="5",
        ),
    ]
