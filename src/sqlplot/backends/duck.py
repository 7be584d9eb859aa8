"""DuckDB backend."""

from __future__ import annotations

from typing import Any

import duckdb

from sqlplot.backends.base import Database
from sqlplot.errors import ConnectError


class DuckDBDatabase(Database):
    """DuckDB database, in memory unless a file path is given."""

    name = "duckdb"

    def __init__(self, path: str = ":memory:") -> None:
        try:
            connection = duckdb.connect(database=path)
        except duckdb.Error as e:
            raise ConnectError(f"Connection to DuckDB database {path} failed: {e}") from e
        super().__init__(connection)
        self.path = path

    def _cursor(self) -> Any:
        # DuckDB cursors are separate connections with their own transaction
        # state, so statements run on the connection itself.
        return self.connection

    def placeholder(self, index: int) -> str:
        return f"${index + 1}"

    def exists_table(self, table: str) -> bool:
        cursor = self.query(
            "SELECT COUNT(*) FROM information_schema.tables WHERE table_name = $1",
            [table],
        )
        cursor.step()
        return cursor.text(0) != "0"
