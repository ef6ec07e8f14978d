"""Coin and quote currency models."""

import re
from enum import Enum

_SYMBOL_RE = re.compile(r"^[A-Za-z0-9]+$")


class Currency(str, Enum):
    """Quote currency for prices and volumes."""

    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    JPY = "JPY"

    def __str__(self) -> str:
        return self.value


class Coin:
    """A cryptocurrency quoted in a currency.

    The symbol is stored upper-case and identifies the coin: two coins with
    the same symbol are equal. Each coin maps to one candle table whose name
    is derived from the symbol and the quote currency.
    """

    TABLE_PREFIX = "candles"

    __slots__ = ("_symbol", "_name", "_currency")

    def __init__(self, symbol: str, name: str, currency: Currency):
        self._symbol = self.validate_symbol(symbol)
        self._name = name
        self._currency = Currency(str(currency).strip().upper())

    @staticmethod
    def validate_symbol(symbol: str) -> str:
        """Return the normalized symbol, or raise ValueError if it cannot name a table.

        Only ASCII letters and digits are allowed; surrounding whitespace is
        ignored and the result is upper-case.
        """
        symbol = symbol.strip()
        if not _SYMBOL_RE.match(symbol):
            raise ValueError(f"Invalid coin symbol {symbol!r}: only letters and digits are allowed")
        return symbol.upper()

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def name(self) -> str:
        return self._name

    @property
    def currency(self) -> Currency:
        return self._currency

    @property
    def table_name(self) -> str:
        """Name of the candle table, e.g. ``candles_btc_usd``."""
        return f"{self.TABLE_PREFIX}_{self._symbol.lower()}_{self._currency.value.lower()}"

    def __eq__(self, other):
        if not isinstance(other, Coin):
            return NotImplemented
        return self._symbol == other._symbol

    def __hash__(self):
        return hash(self._symbol)

    def __str__(self) -> str:
        return self._symbol

    def __format__(self, format_spec: str) -> str:
        # "#" gives the long form used in log messages.
        if format_spec == "#":
            return f"{self._name} ({self._symbol})"
        return format(str(self), format_spec)

    def __repr__(self) -> str:
        return f"Coin(symbol={self._symbol!r}, name={self._name!r}, currency={self._currency.value!r})"
