"""PostgreSQL schema backend."""

from typing import List, Literal, Optional, Sequence

from pydantic import Field
from sqlalchemy import Table, text
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.dialects.postgresql.base import PGDialect
from sqlalchemy.engine import Connection

from .base import KEY_COLUMNS, VALUE_COLUMNS, ServerBackend

DEFAULT_PORT = 5432
DEFAULT_ROOT = "postgres"
DEFAULT_SCHEMA = "public"


class PostgresBackend(ServerBackend):
    """Configuration for a PostgreSQL database.

    Takes the same fields as the MySQL backend (``type`` is ``postgres`` or
    ``postgresql``) plus ``schema``, the schema holding the candle tables
    (default ``public``). The default port is 5432 and the default root user
    is ``postgres``.
    """

    engine_name = "Postgres"
    drivername = "postgresql+psycopg2"
    default_port = DEFAULT_PORT
    default_root = DEFAULT_ROOT
    timezone_aware = True
    dialect_class = PGDialect

    type: Literal["postgres", "postgresql"] = "postgres"
    schema_name: Optional[str] = Field(default=None, alias="schema")

    @property
    def table_schema(self) -> str:
        return self.schema_name or DEFAULT_SCHEMA

    def qualified_name(self, table: str) -> str:
        preparer = self.dialect_class().identifier_preparer
        return f"{preparer.quote_schema(self.table_schema)}.{preparer.quote(table)}"

    def create_table_sql(self, table: str) -> str:
        return f"""
        CREATE TABLE IF NOT EXISTS {self.qualified_name(table)} (
            time_stamp TIMESTAMP WITH TIME ZONE NOT NULL,
            time_frame VARCHAR(3) NOT NULL,
            sources SMALLINT NOT NULL CHECK (sources > 0),
            open DECIMAL(20, 10) NOT NULL,
            high DECIMAL(20, 10) NOT NULL,
            low DECIMAL(20, 10) NOT NULL,
            close DECIMAL(20, 10) NOT NULL,
            volume DECIMAL(20, 10) NOT NULL,
            PRIMARY KEY (time_stamp, time_frame)
        )
        """

    def list_tables(self, conn: Connection) -> List[str]:
        query = text("SELECT tablename FROM pg_catalog.pg_tables WHERE schemaname = :schema")
        return [row[0] for row in conn.execute(query, {"schema": self.table_schema})]

    def upsert(self, table: Table, rows: Sequence[dict]):
        stmt = insert(table).values(list(rows))
        return stmt.on_conflict_do_update(
            index_elements=list(KEY_COLUMNS),
            set_={name: stmt.excluded[name] for name in VALUE_COLUMNS},
        )
