"""Exception hierarchy for directive processing.

Every error raised while processing a document is fatal for the run: the
surrounding transaction is rolled back and no output is written.  The
subclasses only exist so callers (and tests) can tell query failures from
malformed directives.
"""

from __future__ import annotations

__all__ = [
    "SqlPlotError",
    "QueryError",
    "ConnectError",
    "DirectiveError",
    "ReformatError",
    "ImportDataError",
]


class SqlPlotError(RuntimeError):
    """Base exception for all document processing failures."""


class QueryError(SqlPlotError):
    """Raised when the query backend rejects a statement."""

    def __init__(self, message: str, query: str = "") -> None:
        if query:
            message = f"SQL query {query}\n{message}"
        super().__init__(message)
        self.query = query


class ConnectError(SqlPlotError):
    """Raised when no database connection could be established."""


class DirectiveError(SqlPlotError):
    """Raised when a directive or its query result has the wrong shape."""

    def __init__(self, message: str, directive: str = "") -> None:
        if directive:
            message = f"{message}\nin directive: {directive}"
        super().__init__(message)
        self.directive = directive


class ReformatError(DirectiveError):
    """Raised for malformed REFORMAT() clauses."""


class ImportDataError(SqlPlotError):
    """Raised when IMPORT-DATA cannot load its input."""
