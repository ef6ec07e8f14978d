"""Configuration management."""

import logging
import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .db.manager import Backend
from .errors import ConfigError, ConfigFileNotFoundError
from .models.coin import Coin, Currency

logger = logging.getLogger(__name__)

VERSION = "0.1.0"

# Default file name, searched for in CONFIG_PATHS when no path is given.
CONFIG_FILE = "ohlcv-ctl.toml"
CONFIG_PATHS = (".", "/etc/ohlcv")
CONFIG_ENVVAR = "OHLCV_CONFIG"

USER_AGENT = f"ohlcv-ctl/{VERSION}"


class Exchange(str, Enum):
    """Exchanges a coin can be fetched from."""

    BINANCE = "Binance"
    KUCOIN = "KuCoin"


class CoinConfig(BaseModel):
    """A ``[[coins]]`` entry of the configuration file."""

    model_config = ConfigDict(extra="forbid")

    symbol: str = Field(..., min_length=1, description="Coin symbol (e.g., BTC)")
    name: str = Field(..., description="Human-readable name (e.g., Bitcoin)")
    currency: Currency = Field(..., description="Quote currency")
    exchanges: Dict[Exchange, str] = Field(
        default_factory=dict, description="Symbol of the trading pair on each exchange"
    )

    @field_validator("symbol")
    @classmethod
    def symbol_must_be_alphanumeric(cls, v):
        """Validate that the symbol can be used in a table name."""
        return Coin.validate_symbol(v)

    @field_validator("currency", mode="before")
    @classmethod
    def currency_to_upper(cls, v):
        return v.upper() if isinstance(v, str) else v

    def as_coin(self) -> Coin:
        return Coin(self.symbol, self.name, self.currency)


class Config(BaseModel):
    """Top-level configuration loaded from a TOML file."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    user_agent_override: Optional[str] = Field(default=None, alias="user_agent")
    database: Backend
    coins: List[CoinConfig] = Field(default_factory=list)

    @property
    def user_agent(self) -> str:
        """User agent for HTTP requests (default ``ohlcv-ctl/<version>``)."""
        return self.user_agent_override or USER_AGENT

    def get_coins(self) -> List[Coin]:
        return [coin.as_coin() for coin in self.coins]

    @staticmethod
    def find(path: Union[str, Path, None] = None) -> Path:
        """Locate the configuration file.

        An explicit path wins, then the ``OHLCV_CONFIG`` environment variable,
        then the first ``ohlcv-ctl.toml`` found in the current directory or
        ``/etc/ohlcv``.

        Raises:
            ConfigFileNotFoundError: If no file is given and none is found
        """
        if path is None:
            path = os.getenv(CONFIG_ENVVAR) or None
        if path is not None:
            return Path(path)

        candidates = [Path(p) / CONFIG_FILE for p in CONFIG_PATHS]
        for candidate in candidates:
            if candidate.exists():
                return candidate
        raise ConfigFileNotFoundError(candidates)

    @classmethod
    def from_toml(cls, source: str) -> "Config":
        """Parse and validate configuration from a TOML string."""
        try:
            data = tomllib.loads(source)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(
                f"Invalid TOML in configuration: {e}\n"
                f"  - Please verify the file is valid TOML"
            ) from e

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration:\n{e}") from e

    @classmethod
    def load(cls, path: Union[str, Path, None] = None) -> "Config":
        """Load the configuration file.

        Args:
            path: Optional path to the configuration file

        Returns:
            Validated configuration

        Raises:
            ConfigFileNotFoundError: If no configuration file can be found
            ConfigError: If the file cannot be read or is invalid
        """
        path = cls.find(path)
        logger.info(f"Loading configuration from {path}")

        try:
            source = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ConfigFileNotFoundError([path]) from e
        except OSError as e:
            raise ConfigError(f"Failed to read configuration file {path}: {e}") from e

        return cls.from_toml(source)
