"""SQLite schema backend."""

import logging
from pathlib import Path
from typing import List, Literal, Optional, Sequence

from sqlalchemy import Table, text
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.dialects.sqlite.base import SQLiteDialect
from sqlalchemy.engine import Connection, Engine, URL

from ..errors import ConnectError
from .base import KEY_COLUMNS, VALUE_COLUMNS, SchemaBackend
from .credentials import Credentials

logger = logging.getLogger(__name__)


class SqliteBackend(SchemaBackend):
    """Configuration for a SQLite database.

    The only field is ``database``, the path of the database file. Unlike
    the server backends, the database file is created on first use if it
    does not exist, and there is no user management: schema changes run on
    the same pool as everything else.
    """

    engine_name = "SQLite"
    dialect_class = SQLiteDialect

    type: Literal["sqlite"] = "sqlite"
    database: str

    def root_username(self) -> Optional[str]:
        return None

    def requires_credentials(self) -> bool:
        return False

    @property
    def path(self) -> Path:
        return Path(self.database).expanduser()

    def url(self, credentials: Optional[Credentials] = None) -> URL:
        return URL.create("sqlite", database=str(self.path))

    def _create_pool(self) -> Engine:
        path = self.path
        if not path.exists():
            logger.info(f"Creating SQLite database {path}")
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.touch()
            except OSError as e:
                raise ConnectError("default user", e) from e
        return self._new_engine(self.url())

    def create_table_sql(self, table: str) -> str:
        return f"""
        CREATE TABLE IF NOT EXISTS {self.qualified_name(table)} (
            time_stamp TIMESTAMP NOT NULL,
            time_frame TEXT NOT NULL,
            sources INTEGER NOT NULL,
            open DECIMAL(20, 10) NOT NULL,
            high DECIMAL(20, 10) NOT NULL,
            low DECIMAL(20, 10) NOT NULL,
            close DECIMAL(20, 10) NOT NULL,
            volume DECIMAL(20, 10) NOT NULL,
            PRIMARY KEY (time_stamp, time_frame)
        )
        """

    def list_tables(self, conn: Connection) -> List[str]:
        query = text("SELECT name FROM sqlite_master WHERE type = 'table'")
        return [row[0] for row in conn.execute(query)]

    def upsert(self, table: Table, rows: Sequence[dict]):
        stmt = insert(table).values(list(rows))
        return stmt.on_conflict_do_update(
            index_elements=list(KEY_COLUMNS),
            set_={name: stmt.excluded[name] for name in VALUE_COLUMNS},
        )
