"""SQLite backend using the standard library driver."""

from __future__ import annotations

import sqlite3
from typing import Any

from sqlplot.backends.base import Database
from sqlplot.errors import ConnectError


class SQLiteDatabase(Database):
    """SQLite database, in memory unless a file path is given."""

    name = "sqlite"

    def __init__(self, path: str = ":memory:") -> None:
        try:
            # autocommit mode, transactions are issued explicitly
            connection = sqlite3.connect(path, isolation_level=None)
        except sqlite3.Error as e:
            raise ConnectError(f"Connection to SQLite3 database {path} failed: {e}") from e
        super().__init__(connection)
        self.path = path

    def _cursor(self) -> Any:
        return self.connection.cursor()

    def placeholder(self, index: int) -> str:
        return f"?{index + 1}"

    def exists_table(self, table: str) -> bool:
        cursor = self.query(
            "SELECT COUNT(*) FROM ("
            "SELECT name FROM sqlite_master WHERE type='table' UNION ALL "
            "SELECT name FROM sqlite_temp_master WHERE type='table'"
            ") WHERE name = ?1",
            [table],
        )
        cursor.step()
        return cursor.text(0) != "0"
