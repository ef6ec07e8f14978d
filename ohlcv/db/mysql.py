"""MySQL/MariaDB schema backend."""

from typing import Any, Dict, List, Literal, Sequence

from sqlalchemy import Table, text
from sqlalchemy.dialects.mysql import insert
from sqlalchemy.dialects.mysql.base import MySQLDialect
from sqlalchemy.engine import Connection

from .base import VALUE_COLUMNS, ServerBackend

DEFAULT_PORT = 3306
DEFAULT_ROOT = "root"

# TIMESTAMP values are converted with the session time zone.
UTC_SESSION = "SET time_zone = '+00:00'"


class MySqlBackend(ServerBackend):
    """Configuration for a MySQL/MariaDB database.

    Fields of the ``[database]`` section:

    - ``type``: ``mysql`` or ``mariadb``
    - ``host``: Hostname of the database server
    - ``port``: Port of the server (default 3306)
    - ``database``: Name of the database, which must already exist
    - ``username``: User for reading and writing candles
    - ``password``: Password of ``username``; if unset it is read from
      ``OHLCV_<USERNAME>_PASSWORD``
    - ``root_username``: User for creating and dropping tables (default ``root``)
    """

    engine_name = "MySQL"
    drivername = "mysql+pymysql"
    default_port = DEFAULT_PORT
    default_root = DEFAULT_ROOT
    dialect_class = MySQLDialect

    type: Literal["mysql", "mariadb"] = "mysql"

    def create_table_sql(self, table: str) -> str:
        return f"""
        CREATE TABLE IF NOT EXISTS {self.qualified_name(table)} (
            time_stamp TIMESTAMP NOT NULL,
            time_frame ENUM('5m', '15m', '1h', '4h', '1d') NOT NULL,
            sources SMALLINT UNSIGNED NOT NULL,
            open DECIMAL(20, 10) NOT NULL,
            high DECIMAL(20, 10) NOT NULL,
            low DECIMAL(20, 10) NOT NULL,
            close DECIMAL(20, 10) NOT NULL,
            volume DECIMAL(20, 10) NOT NULL,
            PRIMARY KEY (time_stamp, time_frame)
        )
        """

    def connect_args(self) -> Dict[str, Any]:
        return {"init_command": UTC_SESSION}

    def list_tables(self, conn: Connection) -> List[str]:
        return [row[0] for row in conn.execute(text("SHOW TABLES"))]

    def upsert(self, table: Table, rows: Sequence[dict]):
        stmt = insert(table).values(list(rows))
        return stmt.on_duplicate_key_update({name: stmt.inserted[name] for name in VALUE_COLUMNS})
