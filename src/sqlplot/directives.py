"""Directive recognition and the keyword dispatch loop shared by all document types."""

from __future__ import annotations

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Callable, ClassVar, Iterable, Iterator

from sqlplot.backends import Database, connect
from sqlplot.errors import DirectiveError, QueryError
from sqlplot.formatting import collapse_whitespace, shorten
from sqlplot.importdata import ImportData
from sqlplot.reformat import Reformat
from sqlplot.textlines import CommentBlock, TextLines

logger = logging.getLogger(__name__)

_KEYWORD_RE = re.compile(r"[A-Z_-]*")
_MULTIPLOT_RE = re.compile(r"\(([^)]*)\)\s*(.+)", re.DOTALL)

#: legend sources selectable with a |title or |ptitle suffix in MULTIPLOT()
TITLE_MODES = ("title", "ptitle")


def split_keyword(cmd: str) -> tuple[str, str]:
    """Split a command into its leading keyword and the remaining body."""
    m = _KEYWORD_RE.match(cmd)
    end = m.end() if m else 0
    return cmd[:end], cmd[end:].strip()


@dataclass
class Directive:
    """A command found in a comment block."""

    keyword: str
    body: str
    start_line: int
    end_line: int  # first line after the comment block
    indent: int
    margin: str
    text: str

    @classmethod
    def from_block(cls, block: CommentBlock, consumed: int) -> Directive:
        keyword, body = split_keyword(block.text)
        return cls(
            keyword=keyword,
            body=body,
            start_line=block.start,
            end_line=block.start + consumed,
            indent=block.indent,
            margin=block.margin,
            text=block.text,
        )

    def error(self, message: str) -> DirectiveError:
        """Build a DirectiveError for this directive."""
        return DirectiveError(message, self.text)


@dataclass
class RangeGate:
    """Enables processing only inside RANGE blocks selected by name."""

    allowed: frozenset[str] | None = None
    active: bool = True

    @classmethod
    def from_filter(cls, names: Iterable[str] | None) -> RangeGate:
        allowed = frozenset(names) if names else None
        return cls(allowed=allowed, active=allowed is None)

    def apply(self, directive: Directive) -> None:
        """Evaluate a RANGE BEGIN <name> or RANGE END <name> directive."""
        parts = directive.body.split()
        if len(parts) != 2 or parts[0] not in ("BEGIN", "END"):
            raise directive.error("RANGE requires BEGIN <name> or END <name>")
        command, name = parts

        if self.allowed is None:
            logger.debug("RANGE %s %s: no range filter given", command, name)
            return
        if name not in self.allowed:
            logger.info("RANGE %s %s: not selected, skipping", command, name)
            return

        self.active = command == "BEGIN"
        logger.info("RANGE %s %s: processing %s", command, name, "enabled" if self.active else "disabled")


@dataclass
class EngineContext:
    """State shared by all directives of one run."""

    database: Database
    gate: RangeGate = field(default_factory=RangeGate)
    filename: str | None = None
    connector: Callable[[str], Database] = connect
    verbose: bool = False

    def reconnect(self, conninfo: str) -> None:
        """Commit and close the current database and continue the run on a new one."""
        old = self.database
        old.commit()
        old.close()
        self.database = self.connector(conninfo)
        self.database.begin()

    @contextmanager
    def transaction(self) -> Iterator[EngineContext]:
        """Run the enclosed block in one transaction on the current database."""
        self.database.begin()
        try:
            yield self
        except BaseException:
            try:
                self.database.rollback()
            except QueryError as e:
                logger.warning("Rollback failed: %s", e)
            raise
        self.database.commit()


@dataclass
class Series:
    """One group of consecutive MULTIPLOT rows."""

    key: tuple[str, ...]
    legend: str
    points: list[tuple[str, ...]] = field(default_factory=list)


@dataclass
class MultiplotResult:
    """Grouped rows of a MULTIPLOT query."""

    series: list[Series]
    has_xerr: bool
    has_yerr: bool


class Processor:
    """Base class for document processors.

    Subclasses set the comment character and extend the handler table,
    mapping keywords to method names. Every handler receives the directive
    and returns the line index where scanning resumes.
    """

    comment_char: ClassVar[str] = "%"
    handlers: ClassVar[dict[str, str]] = {
        "SQL": "sql",
        "IMPORT-DATA": "importdata",
        "CONNECT": "connect",
    }

    def __init__(self, lines: TextLines, ctx: EngineContext) -> None:
        self.lines = lines
        self.lines.comment_char = self.comment_char
        self.ctx = ctx

    @property
    def database(self) -> Database:
        return self.ctx.database

    def process(self) -> TextLines:
        """Process all directives of the document in order."""
        ln = 0
        while ln < len(self.lines):
            block, consumed = self.lines.collect_comment(ln)
            if block is None:
                ln += consumed
                continue
            ln = self.dispatch(Directive.from_block(block, consumed))
        return self.lines

    def dispatch(self, directive: Directive) -> int:
        """Route one directive to its handler."""
        keyword = directive.keyword

        if keyword == "RANGE":
            logger.info("%s %s", self.comment_char, directive.text)
            self.ctx.gate.apply(directive)
            return directive.end_line

        if not self.ctx.gate.active:
            return directive.end_line

        method = self.handlers.get(keyword)
        if method is None:
            if len(keyword) >= 4 and not keyword.startswith("-"):
                logger.warning("? maybe unknown keyword %s", keyword)
            return directive.end_line

        logger.info("%s %s", self.comment_char, directive.text)
        return getattr(self, method)(directive)

    def end_marker(self, operation: str, query: str) -> str:
        """Return the line terminating a generated block."""
        return f"{self.comment_char} END {operation} {shorten(query)}"

    def write(self, directive: Directive, end: int, content: list[str], desc: str) -> int:
        """Replace lines [directive.end_line, end) and return the resume index."""
        begin = directive.end_line
        delta = self.lines.replace(begin, end, content, indent=directive.margin, desc=desc)
        return end + delta

    # -- common directives --

    def sql(self, directive: Directive) -> int:
        self.database.execute(directive.body)
        logger.info("SQL command successful.")
        return directive.end_line

    def importdata(self, directive: Directive) -> int:
        importer = ImportData(self.database, temporary=True, verbose=self.ctx.verbose)
        importer.main(directive.body.split())
        return directive.end_line

    def connect(self, directive: Directive) -> int:
        self.ctx.reconnect(directive.body)
        return directive.end_line

    # -- shared query shaping --

    def multiplot_series(self, directive: Directive) -> MultiplotResult:
        """Run a MULTIPLOT query and group consecutive rows by the group columns."""
        m = _MULTIPLOT_RE.fullmatch(directive.body)
        if m is None or not m.group(1).strip():
            raise directive.error("MULTIPLOT() requires group column list.")

        groupfields = [name.strip() for name in m.group(1).split(",")]
        title_mode = None
        if "|" in groupfields[-1]:
            name, _, title_mode = groupfields[-1].partition("|")
            groupfields[-1] = name.strip()
            title_mode = title_mode.strip()
            if title_mode not in TITLE_MODES:
                raise directive.error(f"MULTIPLOT() unknown legend source '{title_mode}'.")
        if not all(groupfields):
            raise directive.error("MULTIPLOT() requires group column list.")

        query = m.group(2).replace("MULTIPLOT", ",".join(groupfields))
        cursor = self.database.query(query)

        for required in ("x", "y"):
            if not cursor.has_col(required):
                raise directive.error(f"MULTIPLOT failed: result contains no '{required}' column.")
        colx, coly = cursor.find_col("x"), cursor.find_col("y")
        colxerr = cursor.find_col("xerr") if cursor.has_col("xerr") else None
        colyerr = cursor.find_col("yerr") if cursor.has_col("yerr") else None

        groupcols = []
        for name in groupfields:
            if not cursor.has_col(name):
                raise directive.error(
                    f"MULTIPLOT failed: result contains no '{name}' column, "
                    "which is a MULTIPLOT group field."
                )
            groupcols.append(cursor.find_col(name))

        coltitle = None
        if title_mode is not None:
            if not cursor.has_col(title_mode):
                raise directive.error(f"MULTIPLOT failed: result contains no '{title_mode}' column.")
            coltitle = cursor.find_col(title_mode)

        series: list[Series] = []
        rows = 0
        while cursor.step():
            rows += 1
            if cursor.is_null(colx) or cursor.is_null(coly):
                logger.warning("MULTIPLOT: skipping row %d with NULL x or y", cursor.current_row)
                continue

            key = tuple(cursor.text(col) for col in groupcols)
            if not series or series[-1].key != key:
                if coltitle is None:
                    legend = ",".join(f"{name}={value}" for name, value in zip(groupfields, key))
                elif title_mode == "ptitle":
                    legend = self.escape_title(cursor.text(coltitle))
                else:
                    legend = cursor.text(coltitle)
                series.append(Series(key=key, legend=legend))

            point = [collapse_whitespace(cursor.text(colx)), collapse_whitespace(cursor.text(coly))]
            for col in (colxerr, colyerr):
                if col is not None:
                    point.append("0" if cursor.is_null(col) else collapse_whitespace(cursor.text(col)))
            series[-1].points.append(tuple(point))

        logger.info("--> %d rows, %d groups", rows, len(series))
        if self.ctx.verbose:
            for s in series:
                logger.info("group %s: %d points", s.legend, len(s.points))

        return MultiplotResult(series, colxerr is not None, colyerr is not None)

    def escape_title(self, text: str) -> str:
        """Escape plain text for use as a legend in this document type."""
        return text

    def macro_values(self, directive: Directive) -> list[tuple[str, str]]:
        """Run a DEFMACRO query and return (column name, formatted value) pairs."""
        reformat = Reformat()
        query = reformat.parse_query(directive.body)

        cursor = self.database.query(query)
        cursor.materialize()
        if cursor.num_rows() != 1:
            raise directive.error(
                f"DEFMACRO query must return exactly one row, got {cursor.num_rows()}."
            )
        reformat.prepare(cursor)

        return [
            (cursor.col_name(col), reformat.format(0, col, cursor.text_at(0, col)))
            for col in range(cursor.num_cols())
        ]
