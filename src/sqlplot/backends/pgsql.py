"""PostgreSQL backend using psycopg (optional dependency)."""

from __future__ import annotations

from typing import Any

from sqlplot.backends.base import Database
from sqlplot.errors import ConnectError


class PgSqlDatabase(Database):
    """PostgreSQL database addressed by a libpq connection string."""

    name = "postgresql"

    def __init__(self, conninfo: str = "") -> None:
        try:
            import psycopg
        except ImportError as e:
            raise ConnectError(
                "psycopg not installed. Install with: pip install 'sqlplot[postgres]'"
            ) from e

        try:
            connection = psycopg.connect(conninfo, autocommit=True)
        except psycopg.Error as e:
            raise ConnectError(f"Connection to PostgreSQL database failed: {e}") from e
        super().__init__(connection)

    def _cursor(self) -> Any:
        return self.connection.cursor()

    def placeholder(self, index: int) -> str:
        return "%s"

    def exists_table(self, table: str) -> bool:
        cursor = self.query("SELECT COUNT(*) FROM pg_tables WHERE tablename = %s", [table])
        cursor.step()
        return cursor.text(0) != "0"
