"""Schema backend contract shared by all database engines.

All data definition is done by the root user of the database. The regular
user configured for a backend only reads and writes candles through the
backend's connection pool. SQLite has no user management, so it runs
everything on its own pool.
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, ClassVar, Dict, Iterator, List, Optional, Sequence, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from sqlalchemy import (
    Column,
    DateTime,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    create_engine,
    text,
)
from sqlalchemy.engine import Connection, Dialect, Engine, URL
from sqlalchemy.engine.default import DefaultDialect
from sqlalchemy.exc import SQLAlchemyError

from ..errors import CatalogError, ConnectError, CreateTableError, DropTableError
from ..models.coin import Coin
from .credentials import Credentials, require_password, resolve

logger = logging.getLogger(__name__)

POOL_SIZE = 5

# Columns updated when a candle for an existing bucket is written again.
VALUE_COLUMNS = ("sources", "open", "high", "low", "close", "volume")
KEY_COLUMNS = ("time_stamp", "time_frame")


class SchemaBackend(BaseModel, ABC):
    """Configuration and schema lifecycle of one database engine.

    Subclasses are pydantic models deserialized from the ``[database]``
    section of the configuration file. Each instance owns a connection pool
    that is created on first use and reused afterwards.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    engine_name: ClassVar[str] = "SQL"
    # Whether the time_stamp column keeps the time zone.
    timezone_aware: ClassVar[bool] = False
    # Dialect whose rules are used to quote table names in DDL.
    dialect_class: ClassVar[Type[Dialect]] = DefaultDialect

    _engine: Optional[Engine] = PrivateAttr(default=None)
    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    @abstractmethod
    def root_username(self) -> Optional[str]:
        """Username of the account used for schema changes, if any."""

    def has_root(self) -> bool:
        return self.root_username() is not None

    @abstractmethod
    def requires_credentials(self) -> bool:
        """Whether a password must be resolved before connecting."""

    @abstractmethod
    def url(self, credentials: Optional[Credentials] = None) -> URL:
        """Connection URL for ``credentials`` (or the configured user)."""

    @abstractmethod
    def create_table_sql(self, table: str) -> str:
        """``CREATE TABLE IF NOT EXISTS`` statement for a candle table."""

    @abstractmethod
    def list_tables(self, conn: Connection) -> List[str]:
        """Names of all tables visible in the database (or schema)."""

    @abstractmethod
    def upsert(self, table: Table, rows: Sequence[dict]):
        """Insert statement replacing rows whose bucket already exists."""

    def quote(self, name: str) -> str:
        """Quote an identifier if the dialect requires it."""
        return self.dialect_class().identifier_preparer.quote(name)

    def qualified_name(self, table: str) -> str:
        return self.quote(table)

    def drop_table_sql(self, table: str) -> str:
        return f"DROP TABLE IF EXISTS {self.qualified_name(table)}"

    @property
    def table_schema(self) -> Optional[str]:
        return None

    def candle_table(self, table: str) -> Table:
        """SQLAlchemy table used to read and write candles of ``table``."""
        return Table(
            table,
            MetaData(),
            Column("time_stamp", DateTime(timezone=self.timezone_aware), primary_key=True),
            Column("time_frame", String(3), primary_key=True),
            Column("sources", Integer, nullable=False),
            Column("open", Numeric(20, 10), nullable=False),
            Column("high", Numeric(20, 10), nullable=False),
            Column("low", Numeric(20, 10), nullable=False),
            Column("close", Numeric(20, 10), nullable=False),
            Column("volume", Numeric(20, 10), nullable=False),
            schema=self.table_schema,
        )

    def engine(self) -> Engine:
        """Get or create the connection pool of the configured user."""
        if self._engine is None:
            with self._lock:
                if self._engine is None:
                    self._engine = self._create_pool()
        return self._engine

    def dispose(self) -> None:
        """Close the pool; the next call to engine() creates a new one."""
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None

    def _reset_pool(self) -> None:
        self._engine = None
        self._lock = threading.Lock()

    def __copy__(self):
        copied = super().__copy__()
        copied._reset_pool()
        return copied

    def __deepcopy__(self, memo: Optional[Dict[int, Any]] = None):
        # Locks and engines cannot be deep-copied; the copy gets its own.
        memo = {} if memo is None else memo
        memo[id(self._lock)] = None
        if self._engine is not None:
            memo[id(self._engine)] = None
        copied = super().__deepcopy__(memo)
        copied._reset_pool()
        return copied

    def _create_pool(self) -> Engine:
        return self._new_engine(self.url())

    def connect_args(self) -> Dict[str, Any]:
        """Driver arguments passed to every new connection."""
        return {}

    def _new_engine(self, url: URL) -> Engine:
        return create_engine(
            url,
            pool_size=POOL_SIZE,
            max_overflow=0,
            pool_pre_ping=True,
            connect_args=self.connect_args(),
        )

    def _root_credentials(self, credentials: Optional[Credentials]) -> Credentials:
        if credentials is not None:
            return credentials
        return resolve(self.root_username())

    @contextmanager
    def _ddl_connection(self, credentials: Optional[Credentials]) -> Iterator[Connection]:
        """Connection for schema changes, made as the root user.

        Backends with a root user connect with a short-lived engine that is
        disposed afterwards. The password is checked before any engine is
        created.
        """
        if not self.has_root():
            engine, owned, username = self.engine(), False, "default user"
        else:
            credentials = self._root_credentials(credentials)
            if self.requires_credentials():
                require_password(credentials)
            engine, owned, username = self._new_engine(self.url(credentials)), True, credentials.username

        try:
            try:
                conn = engine.connect()
            except SQLAlchemyError as e:
                raise ConnectError(username, e) from e
            with conn:
                yield conn
        finally:
            if owned:
                engine.dispose()

    def init_schema(self, credentials: Optional[Credentials], coins: Sequence[Coin]) -> None:
        """Create the candle table of every coin unless it already exists.

        Tables are created one after another. If one fails, the tables
        created before it are kept and the remaining coins are skipped.

        Args:
            credentials: Root credentials (resolved from the environment if None)
            coins: Coins to create tables for

        Raises:
            MissingPasswordError: If the root password cannot be resolved
            ConnectError: If the database cannot be reached
            CreateTableError: If a table cannot be created
        """
        with self._ddl_connection(credentials) as conn:
            logger.info(f"Initializing schema for {self.engine_name} database")
            for coin in coins:
                logger.info(f"Creating table for {coin:#}")
                table = coin.table_name
                try:
                    conn.execute(text(self.create_table_sql(table)))
                    conn.commit()
                except SQLAlchemyError as e:
                    raise CreateTableError(table, e) from e

    def drop_schema(
        self, credentials: Optional[Credentials], coins: Optional[Sequence[Coin]] = None
    ) -> None:
        """Drop candle tables.

        With a list of coins, the tables of exactly those coins are dropped.
        Without one, every table whose name starts with the candle table
        prefix is dropped and all other tables are left alone.

        Raises:
            MissingPasswordError: If the root password cannot be resolved
            ConnectError: If the database cannot be reached
            CatalogError: If the tables cannot be listed
            DropTableError: If a table cannot be dropped
        """
        with self._ddl_connection(credentials) as conn:
            logger.info(f"Dropping schema for {self.engine_name} database")
            if coins is not None:
                for coin in coins:
                    logger.info(f"Dropping table for {coin:#}")
                    self._drop_table(conn, coin.table_name)
                return

            try:
                tables = self.list_tables(conn)
            except SQLAlchemyError as e:
                raise CatalogError(e) from e

            for table in tables:
                if table.startswith(Coin.TABLE_PREFIX):
                    logger.info(f"Dropping table `{self.qualified_name(table)}`")
                    self._drop_table(conn, table)
                else:
                    logger.debug(f"Keeping table `{self.qualified_name(table)}`")

    def _drop_table(self, conn: Connection, table: str) -> None:
        try:
            conn.execute(text(self.drop_table_sql(table)))
            conn.commit()
        except SQLAlchemyError as e:
            raise DropTableError(table, e) from e

    def connection_info(self) -> Tuple[str, str]:
        """Engine name and a printable location, for log messages."""
        url = self.url()
        return self.engine_name, url.render_as_string(hide_password=True)


class ServerBackend(SchemaBackend):
    """Backend for a database server reached over the network.

    The database itself must be created and managed beforehand. The password
    of the configured user is taken from the configuration file or, if not
    set there, from the ``OHLCV_<USERNAME>_PASSWORD`` environment variable.
    """

    drivername: ClassVar[str]
    default_port: ClassVar[int]
    default_root: ClassVar[str]

    host: str
    port: Optional[int] = Field(default=None, gt=0, le=65535)
    database: str
    username: str
    password: Optional[str] = Field(default=None, repr=False)
    root_user: Optional[str] = Field(default=None, alias="root_username")

    def root_username(self) -> Optional[str]:
        return self.root_user or self.default_root

    def requires_credentials(self) -> bool:
        return True

    def credentials(self) -> Credentials:
        """Credentials of the configured (non-root) user."""
        return resolve(self.username, self.password)

    def url(self, credentials: Optional[Credentials] = None) -> URL:
        credentials = credentials or self.credentials()
        return URL.create(
            self.drivername,
            username=credentials.username,
            password=credentials.password,
            host=self.host,
            port=self.port or self.default_port,
            database=self.database,
        )

    def _create_pool(self) -> Engine:
        credentials = self.credentials()
        require_password(credentials)
        logger.info(f"Connecting `{credentials.username}` to {self.engine_name} at {self.host}")
        return self._new_engine(self.url(credentials))
