"""Abstract query backend contract used by the directive processors.

A backend wraps one DB-API connection. Queries return a `Cursor` that
supports two access modes: streaming over the current row with `step()`,
or random access by (row, col) after `materialize()` cached the complete
result. The two modes must not be mixed on one result before it was
materialized.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, Iterator, Sequence

from sqlplot.errors import DirectiveError, QueryError

logger = logging.getLogger(__name__)


def value_text(value: Any) -> str:
    """Render a result value as the text a SQL client would print."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        text = format(value, ".15g")
        if text in ("inf", "-inf", "nan"):
            return text
        mantissa, sep, exponent = text.partition("e")
        if "." not in mantissa:
            mantissa += ".0"
        return mantissa + sep + exponent
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


class Cursor:
    """Result of one query over a DB-API cursor."""

    def __init__(self, query: str, dbapi_cursor: Any) -> None:
        self._query = query
        self._cursor = dbapi_cursor
        description = dbapi_cursor.description or []
        self._columns: list[str] = [d[0] for d in description]
        self._colmap: dict[str, int] = {}
        for index, name in enumerate(self._columns):
            self._colmap.setdefault(name, index)
        self._row = -1
        self._current: Sequence[Any] | None = None
        self._cache: list[list[str | None]] | None = None

    @property
    def query(self) -> str:
        """Return the query string."""
        return self._query

    # -- column names --

    def num_cols(self) -> int:
        """Return the number of result columns."""
        return len(self._columns)

    def col_name(self, col: int) -> str:
        """Return the name of column col."""
        return self._columns[col]

    def has_col(self, name: str) -> bool:
        """Check if a column with the given name exists."""
        return name in self._colmap

    def find_col(self, name: str) -> int:
        """Return the index of column name, raising if it does not exist."""
        if name not in self._colmap:
            raise DirectiveError(f"Column {name} not found in result of query:\n{self._query}")
        return self._colmap[name]

    # -- streaming access --

    @property
    def current_row(self) -> int:
        """Return the index of the current row, -1 before the first step()."""
        return self._row

    def step(self) -> bool:
        """Advance to the next row. Returns False after the last row."""
        if self._cache is not None:
            if self._row + 1 < len(self._cache):
                self._row += 1
                return True
            self._row = len(self._cache)
            return False

        try:
            row = self._cursor.fetchone() if self._columns else None
        except Exception as e:
            raise QueryError(f"Step failed: {e}", self._query) from e

        self._row += 1
        self._current = row
        return row is not None

    def _current_value(self, col: int) -> Any:
        if self._cache is not None:
            return self._cache[self._row][col]
        if self._current is None:
            raise RuntimeError("No current row, call step() first")
        return self._current[col]

    def is_null(self, col: int) -> bool:
        """Return True if column col of the current row is NULL."""
        return self._current_value(col) is None

    def text(self, col: int) -> str:
        """Return the text of column col of the current row."""
        value = self._current_value(col)
        if self._cache is not None:
            return value or ""
        return value_text(value)

    # -- complete result caching --

    @property
    def is_materialized(self) -> bool:
        return self._cache is not None

    def materialize(self) -> None:
        """Read the complete result into memory for random access."""
        if self._cache is not None:
            return
        if self._row >= 0:
            raise RuntimeError("Cannot materialize a result that was already streamed")

        try:
            rows = self._cursor.fetchall() if self._columns else []
        except Exception as e:
            raise QueryError(f"Reading result failed: {e}", self._query) from e

        self._cache = [
            [None if value is None else value_text(value) for value in row] for row in rows
        ]

    def _require_cache(self) -> list[list[str | None]]:
        if self._cache is None:
            raise RuntimeError("Random access requires materialize() first")
        return self._cache

    def num_rows(self) -> int:
        """Return the number of rows, only available after materialize()."""
        return len(self._require_cache())

    def is_null_at(self, row: int, col: int) -> bool:
        """Return True if cell (row, col) is NULL."""
        return self._require_cache()[row][col] is None

    def text_at(self, row: int, col: int) -> str:
        """Return the text of cell (row, col)."""
        return self._require_cache()[row][col] or ""


class Database(ABC):
    """A connection to a relational query backend."""

    #: backend name used in log messages
    name = "sql"

    def __init__(self, connection: Any) -> None:
        self.connection = connection
        self._in_transaction = False

    @abstractmethod
    def _cursor(self) -> Any:
        """Return a DB-API cursor for running one statement."""

    @abstractmethod
    def placeholder(self, index: int) -> str:
        """Return the parameter placeholder for the index-th parameter, counting from 0."""

    @abstractmethod
    def exists_table(self, table: str) -> bool:
        """Test whether a table exists in the database."""

    def quote_identifier(self, name: str) -> str:
        """Quote a table or column name."""
        return '"' + name.replace('"', '""') + '"'

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> None:
        """Execute a statement without result, raising QueryError on failure."""
        cursor = self._cursor()
        try:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, list(params))
        except Exception as e:
            raise QueryError(f"Failed: {e}", sql) from e

    def query(self, sql: str, params: Sequence[Any] | None = None) -> Cursor:
        """Run a query and return its result cursor, raising QueryError on failure."""
        cursor = self._cursor()
        try:
            if params is None:
                cursor.execute(sql)
            else:
                cursor.execute(sql, list(params))
        except Exception as e:
            raise QueryError(f"Failed: {e}", sql) from e
        return Cursor(sql, cursor)

    # -- transactions --

    def begin(self) -> None:
        """Start a transaction."""
        self.execute("BEGIN TRANSACTION")
        self._in_transaction = True

    def commit(self) -> None:
        """Commit the open transaction, if any."""
        if self._in_transaction:
            self._in_transaction = False
            self.execute("COMMIT")

    def rollback(self) -> None:
        """Roll back the open transaction, if any."""
        if self._in_transaction:
            self._in_transaction = False
            self.execute("ROLLBACK")

    @contextmanager
    def transaction(self) -> Iterator[Database]:
        """Run the enclosed block in one transaction, rolling back on errors."""
        self.begin()
        try:
            yield self
        except BaseException:
            try:
                self.rollback()
            except QueryError as e:
                logger.warning("Rollback failed: %s", e)
            raise
        self.commit()

    def close(self) -> None:
        """Close the connection."""
        self.connection.close()

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
