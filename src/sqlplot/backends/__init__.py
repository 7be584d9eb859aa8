"""Query backends and the connection factory."""

from __future__ import annotations

import logging
import os

from sqlplot.backends.base import Cursor, Database, value_text
from sqlplot.backends.sqlite import SQLiteDatabase
from sqlplot.errors import ConnectError

logger = logging.getLogger(__name__)

#: environment variable holding the default connection string
DATABASE_ENV = "SQLPLOT_DATABASE"

__all__ = [
    "Cursor",
    "DATABASE_ENV",
    "Database",
    "SQLiteDatabase",
    "connect",
    "value_text",
]


def connect(conninfo: str | None = None) -> Database:
    """Open a database from a connection string.

    Accepted forms are "sqlite" or "sqlite:<path>", "duckdb" or
    "duckdb:<path>", and "postgresql:<libpq conninfo>" (also "pgsql:" or
    "postgres:"). Without a connection string, $SQLPLOT_DATABASE is used, and
    failing that an in-memory SQLite database.
    """
    if conninfo is None:
        conninfo = os.environ.get(DATABASE_ENV, "")

    conninfo = conninfo.strip()
    scheme, _, rest = conninfo.partition(":")
    scheme = scheme.lower()

    if scheme in ("", "sqlite", "sqlite3"):
        db: Database = SQLiteDatabase(rest or ":memory:")
    elif scheme == "duckdb":
        from sqlplot.backends.duck import DuckDBDatabase

        db = DuckDBDatabase(rest or ":memory:")
    elif scheme in ("postgresql", "postgres", "pgsql", "pg"):
        from sqlplot.backends.pgsql import PgSqlDatabase

        db = PgSqlDatabase(rest)
    else:
        raise ConnectError(f"Unknown database type in connection string: {conninfo}")

    logger.info("Connected to %s database.", db.name)
    return db
