"""Import RESULT key=value lines from experiment logs into a SQL table.

Lines look like::

    RESULT algo=quicksort n=1024 time=0.0032

The column types are detected from all values seen for a key: integer,
double or text, the most generic one wins.

Usage:
    sqlplot import stats results-*.txt        # cache lines, then create and fill "stats"
    sqlplot import -1 stats results.txt       # types from first line, insert while reading
    sqlplot import -a -C points data.txt      # all lines, unnamed fields become col<N>
"""

from __future__ import annotations

import argparse
import logging
import re
import sys
from enum import IntEnum
from pathlib import Path
from typing import IO, Any, Iterable, Sequence

from sqlplot.backends.base import Database
from sqlplot.errors import ImportDataError
from sqlplot.formatting import is_double

logger = logging.getLogger(__name__)

_RESULT_PREFIXES = ("RESULT", "// RESULT", "# RESULT")
_INTEGER_RE = re.compile(r"[+-]?\d+")


class FieldType(IntEnum):
    """Detected column type; lower values are more generic."""

    NONE = 0
    VARCHAR = 1
    DOUBLE = 2
    INTEGER = 3

    @property
    def sql_name(self) -> str:
        return _SQL_NAMES[self]


_SQL_NAMES = {
    FieldType.NONE: "NONE",
    FieldType.VARCHAR: "VARCHAR",
    FieldType.DOUBLE: "DOUBLE PRECISION",
    FieldType.INTEGER: "BIGINT",
}


def detect_type(value: str) -> FieldType:
    """Detect the most specific type able to hold value."""
    if _INTEGER_RE.fullmatch(value):
        return FieldType.INTEGER
    if is_double(value):
        return FieldType.DOUBLE
    return FieldType.VARCHAR


def result_offset(line: str) -> int:
    """Return the offset of the key=value fields of a RESULT line, or 0."""
    for prefix in _RESULT_PREFIXES:
        n = len(prefix)
        if line.startswith(prefix) and len(line) > n and line[n] in " \t":
            return n + 1
    return 0


def split_result_line(line: str) -> list[str]:
    """Split the fields of a line at tabs if it has any, else at spaces."""
    sep = "\t" if "\t" in line else " "
    return [f for f in line[result_offset(line):].split(sep) if f]


def split_keyvalue(field: str, col: int, colnums: bool = False) -> tuple[str, str]:
    """Split a key=value field. Fields without key become key=1 or col<N>=field."""
    key, eq, value = field.partition("=")
    if eq:
        return key, value
    if colnums:
        return f"col{col}", field
    return field, "1"


class FieldSet:
    """Ordered set of columns with their detected types."""

    def __init__(self) -> None:
        self.fields: dict[str, FieldType] = {}

    def __len__(self) -> int:
        return len(self.fields)

    def add_field(self, key: str, value: str) -> None:
        """Add a value for key, widening the column type as needed."""
        t = detect_type(value)
        if key in self.fields:
            self.fields[key] = min(self.fields[key], t)
        else:
            self.fields[key] = t

    def create_table(self, db: Database, table: str, temporary: bool = False) -> str:
        """Return the CREATE TABLE statement for the fields."""
        columns = ", ".join(
            f"{db.quote_identifier(key)} {t.sql_name}" for key, t in self.fields.items()
        )
        temp = "TEMPORARY " if temporary else ""
        return f"CREATE {temp}TABLE {db.quote_identifier(table)} ({columns})"


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser raising ImportDataError instead of exiting."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise ImportDataError(f"IMPORT-DATA: {message}\n{self.format_usage()}")


def build_parser(parser: argparse.ArgumentParser | None = None) -> argparse.ArgumentParser:
    """Add the IMPORT-DATA options to parser, or create a new one."""
    if parser is None:
        parser = _ArgumentParser(prog="IMPORT-DATA", description="Import RESULT lines into a table")
    parser.add_argument(
        "-1", dest="firstline", action="store_true",
        help="Take field types from first line and process stream",
    )
    parser.add_argument(
        "-a", dest="all_lines", action="store_true",
        help="Process all lines, regardless of RESULT marker",
    )
    parser.add_argument(
        "-C", dest="colnums", action="store_true",
        help="Enumerate unnamed fields with col# instead of using key names",
    )
    parser.add_argument(
        "-D", dest="noduplicates", action="store_true",
        help="Eliminate duplicate RESULT lines",
    )
    parser.add_argument("-v", dest="verbose", action="store_true", help="Increase verbosity")
    parser.add_argument("table", help="Name of the table to create")
    parser.add_argument("files", nargs="*", help="Input files (default: stdin)")
    return parser


class ImportData:
    """Loads RESULT lines into a (temporary) table of a database."""

    def __init__(
        self,
        database: Database,
        temporary: bool = False,
        verbose: bool = False,
        firstline: bool = False,
        all_lines: bool = False,
        colnums: bool = False,
        noduplicates: bool = False,
    ) -> None:
        self.database = database
        self.temporary = temporary
        self.verbose = verbose
        self.firstline = firstline
        self.all_lines = all_lines
        self.colnums = colnums
        self.noduplicates = noduplicates

        self.table = ""
        self.fieldset = FieldSet()
        self._cached: list[str] = []
        self._seen: set[str] = set()
        self._count = 0
        self.total_count = 0

    def _reset(self, table: str) -> None:
        self.table = table
        self.fieldset = FieldSet()
        self._cached = []
        self._seen = set()
        self._count = 0
        self.total_count = 0

    def _fields(self, line: str) -> list[tuple[str, str]]:
        return [
            split_keyvalue(field, col, self.colnums)
            for col, field in enumerate(split_result_line(line))
        ]

    def _add_types(self, line: str) -> None:
        for key, value in self._fields(line):
            self.fieldset.add_field(key, value)

    def create_table(self) -> None:
        """Create the table, replacing an existing one."""
        if not len(self.fieldset):
            raise ImportDataError(f"No data fields found for table {self.table}")

        db = self.database
        if db.exists_table(self.table):
            logger.info('Table "%s" exists. Replacing data.', self.table)
            db.execute(f"DROP TABLE {db.quote_identifier(self.table)}")

        sql = self.fieldset.create_table(db, self.table, self.temporary)
        if self.verbose:
            logger.info("%s", sql)
        db.execute(sql)

    def insert_line(self, line: str) -> bool:
        """Insert one line. Returns False if it was dropped as a duplicate."""
        if self.noduplicates:
            if line in self._seen:
                if self.verbose:
                    logger.info("Dropping duplicate %s", line)
                return False
            self._seen.add(line)

        db = self.database
        fields = self._fields(line)
        columns = ",".join(db.quote_identifier(key) for key, _ in fields)
        params = ",".join(db.placeholder(i) for i in range(len(fields)))
        values = [
            _convert(value, self.fieldset.fields.get(key, FieldType.VARCHAR))
            for key, value in fields
        ]
        sql = f"INSERT INTO {db.quote_identifier(self.table)} ({columns}) VALUES ({params})"
        logger.debug("%s %s", sql, values)
        db.execute(sql, values)
        return True

    def process_stream(self, stream: Iterable[str]) -> None:
        """Read lines from stream, caching them or inserting directly with -1."""
        for raw in stream:
            line = raw.rstrip("\r\n")
            if not self.all_lines and result_offset(line) == 0:
                continue

            logger.debug("line: %s", line)

            if not self.firstline:
                self._add_types(line)
                self._cached.append(line)
                self._count += 1
                self.total_count += 1
                continue

            if self.total_count == 0:
                self._add_types(line)
                self.create_table()

            if self.insert_line(line):
                self._count += 1
                self.total_count += 1

    def process_cached(self) -> None:
        """Create the table and insert all cached lines."""
        self._count = self.total_count = 0
        self.create_table()
        for line in self._cached:
            if self.insert_line(line):
                self._count += 1
                self.total_count += 1

    def import_lines(self, lines: Iterable[str], table: str) -> int:
        """Import lines into table and return the number of rows inserted."""
        self._reset(table)
        self.process_stream(lines)
        return self._finish()

    def import_files(self, files: Sequence[str | Path], table: str, stdin: IO[str] | None = None) -> int:
        """Import all files (or stdin if none given) into table."""
        self._reset(table)

        if not files:
            self.process_stream(stdin if stdin is not None else sys.stdin)
        for path in files:
            self._count = 0
            try:
                with open(path) as f:
                    self.process_stream(f)
            except OSError as e:
                raise ImportDataError(f"Error reading {path}: {e}") from e
            verb = "Imported" if self.firstline else "Cached"
            logger.info("%s %d rows of data from %s", verb, self._count, path)

        return self._finish()

    def _finish(self) -> int:
        if not self.firstline:
            self.process_cached()
        elif self.total_count == 0:
            raise ImportDataError(f"No data fields found for table {self.table}")

        logger.info(
            "Imported in total %d rows of data containing %d fields each.",
            self.total_count,
            len(self.fieldset),
        )
        return self.total_count

    def main(self, args: Sequence[str]) -> int:
        """Run with IMPORT-DATA command line arguments, returning the rows imported."""
        opts = build_parser().parse_args(list(args))
        self.apply_options(opts)
        return self.import_files(opts.files, opts.table)

    def apply_options(self, opts: argparse.Namespace) -> None:
        self.firstline = opts.firstline
        self.all_lines = opts.all_lines
        self.colnums = opts.colnums
        self.noduplicates = opts.noduplicates
        self.verbose = self.verbose or opts.verbose


def _convert(value: str, ftype: FieldType) -> Any:
    # -1 mode types columns from the first line only, later values may not fit
    if ftype == FieldType.INTEGER and _INTEGER_RE.fullmatch(value):
        return int(value)
    if ftype == FieldType.DOUBLE and is_double(value):
        return float(value)
    return value
