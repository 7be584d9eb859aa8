"""Cell, row and column reformatting for TABULAR and DEFMACRO results.

A query may start with a REFORMAT(...) clause::

    REFORMAT(precision=1 col 2-3=(digits=3 min=bold) row 0=(escape))
    SELECT ...

Top-level keys set the default format, `col`/`cols`/`column`/`columns` and
`row`/`rows` selectors apply a nested clause to a set of column or row
indexes. Cell-level keys are `escape`, `floor`, `ceil`, `round`,
`precision`, `width`, `digits` and `group`; row and column clauses also
accept `min`/`minimum` and `max`/`maximum` with a style of `none`, `bold`
or `emph`.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, fields
from decimal import ROUND_HALF_UP, Decimal, localcontext

from sqlplot.backends.base import Cursor
from sqlplot.errors import ReformatError
from sqlplot.formatting import latex_escape, parse_double
from sqlplot.parsing.reformat_parser import ReformatItem, ReformatParser

logger = logging.getLogger(__name__)

COLUMN_KEYS = ("col", "cols", "column", "columns")
ROW_KEYS = ("row", "rows")

#: supported values of digits=
DIGITS = (2, 3, 4)

_STYLES = {
    "": "none",
    "none": "none",
    "bold": "bold",
    "bf": "bold",
    "emph": "emph",
    "em": "emph",
}

_MARKUP = {
    "bold": "\\textbf{%s}",
    "emph": "\\emph{%s}",
}

_RANGE_RE = re.compile(r"\s*(\d+)\s*(?:-\s*(\d+)\s*)?")


def expand_ranges(ranges: list[tuple[int, int]], text: str = "") -> list[int]:
    """Expand inclusive (first, last) ranges into a sorted list of unique numbers."""
    out: set[int] = set()
    for first, last in ranges:
        if first > last:
            raise ReformatError(f"Invalid negative range in numbers {text or (first, last)}")
        out.update(range(first, last + 1))
    return sorted(out)


def parse_numbers(text: str) -> list[int]:
    """Parse a list of numbers and ranges like "3,4-7,10" into sorted numbers."""
    ranges = []
    for part in text.split(","):
        m = _RANGE_RE.fullmatch(part)
        if m is None:
            raise ReformatError(f"Error parsing number in range {text}")
        first = int(m.group(1))
        last = int(m.group(2)) if m.group(2) is not None else first
        ranges.append((first, last))
    return expand_ranges(ranges, text)


@dataclass
class CellFormat:
    """Cell-level format. Fields left at None are inherited from weaker levels."""

    escape: bool | None = None
    round_mode: str | None = None  # floor, ceil or round
    round_digits: int = 0
    precision: int | None = None
    width: int | None = None
    digits: int | None = None
    grouping: str | None = None

    def set_key(self, item: ReformatItem) -> bool:
        """Apply one key of a clause. Returns False for keys of other levels."""
        key, value = item.key, item.value

        if key == "escape":
            self.escape = True
        elif key in ("floor", "ceil"):
            self.round_mode = key
        elif key == "round":
            if value in ("floor", "ceil"):
                self.round_mode = value
            else:
                self.round_mode = "round"
                self.round_digits = _int_value(item)
        elif key == "precision":
            self.precision = _int_value(item)
        elif key == "width":
            self.width = _int_value(item)
        elif key == "digits":
            digits = _int_value(item)
            if digits not in DIGITS:
                raise ReformatError(
                    f"Invalid cell-level digits format: digits={value}, only 2, 3 or 4 are supported"
                )
            self.digits = digits
        elif key in ("group", "grouping"):
            self.grouping = value if value is not None else ","
        else:
            return False
        return True

    def apply(self, other: CellFormat) -> None:
        """Override the fields that other sets."""
        for f in fields(CellFormat):
            if f.name == "round_digits":
                continue
            value = getattr(other, f.name)
            if value is not None:
                setattr(self, f.name, value)
                if f.name == "round_mode":
                    self.round_digits = other.round_digits


@dataclass
class LineFormat(CellFormat):
    """Row- or column-level format, adding minimum and maximum highlighting."""

    min_style: str | None = None
    max_style: str | None = None

    def set_key(self, item: ReformatItem) -> bool:
        if item.key in ("min", "minimum"):
            self.min_style = _parse_style(item)
        elif item.key in ("max", "maximum"):
            self.max_style = _parse_style(item)
        else:
            return super().set_key(item)
        return True

    def apply(self, other: CellFormat) -> None:
        super().apply(other)
        if isinstance(other, LineFormat):
            if other.min_style is not None:
                self.min_style = other.min_style
            if other.max_style is not None:
                self.max_style = other.max_style


@dataclass
class Extremes:
    """Minimum and maximum numeric value of a row or column with their source text."""

    min_value: float = math.inf
    min_text: str | None = None
    max_value: float = -math.inf
    max_text: str | None = None

    def update(self, value: float, text: str) -> None:
        if value < self.min_value:
            self.min_value = value
            self.min_text = text
        if value > self.max_value:
            self.max_value = value
            self.max_text = text


def _int_value(item: ReformatItem) -> int:
    try:
        return int(item.value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ReformatError(
            f"Invalid cell-level {item.key} format: {item.key}={item.value or ''}"
        ) from None


def _parse_style(item: ReformatItem) -> str:
    style = _STYLES.get(item.value or "")
    if style is None:
        raise ReformatError(f"Invalid formatting for row/column key {item.key}: {item.value}")
    return style


def _round_half_away(value: float, digits: int) -> float:
    exact = Decimal(repr(value))
    quantum = Decimal(1).scaleb(-digits)
    with localcontext() as ctx:
        # quantize needs room for every integer digit plus the kept fraction
        ctx.prec = max(ctx.prec, exact.adjusted() + digits + 2)
        return float(exact.quantize(quantum, rounding=ROUND_HALF_UP))


class Reformat:
    """Formatting rules of one TABULAR or DEFMACRO query."""

    def __init__(self) -> None:
        self.default = LineFormat()
        self.rows: dict[int, LineFormat] = {}
        self.cols: dict[int, LineFormat] = {}
        self.clause = ""
        self._row_extremes: dict[int, Extremes] = {}
        self._col_extremes: dict[int, Extremes] = {}
        self._parser: ReformatParser | None = None

    def parse_query(self, query: str) -> str:
        """Strip and parse a leading REFORMAT(...) clause, returning the remaining query."""
        if not query.startswith("REFORMAT"):
            return query

        pos = 8
        while pos < len(query) and query[pos] in " \t\n":
            pos += 1
        if pos >= len(query) or query[pos] != "(":
            raise ReformatError("Invalid REFORMAT clause: no parentheses", _first_line(query))

        begin = pos + 1
        depth = 0
        end = begin
        while end < len(query):
            c = query[end]
            if c == "(":
                depth += 1
            elif c == ")":
                if depth == 0:
                    break
                depth -= 1
            end += 1
        else:
            raise ReformatError(
                "Unbalanced parentheses in REFORMAT() clause.", _first_line(query)
            )

        self.parse_format(query[begin:end].strip())
        return query[end + 1:].strip()

    def parse_format(self, text: str) -> None:
        """Parse the top-level format keys of a clause."""
        self.clause = text
        for item in self._parse(text):
            if item.key in COLUMN_KEYS or item.key in ROW_KEYS:
                if item.ranges is None or item.value is None:
                    raise ReformatError(
                        f"Missing numbers or format for selector {item.key}", self.describe()
                    )
                indexes = expand_ranges(item.ranges, self.clause)
                line = self._parse_line(item.value)
                target = self.cols if item.key in COLUMN_KEYS else self.rows
                for index in indexes:
                    target.setdefault(index, LineFormat()).apply(line)
            else:
                self._set_key(self.default, item)
        logger.debug(
            "%s: %d row and %d column formats", self.describe(), len(self.rows), len(self.cols)
        )

    def _parse(self, text: str) -> list[ReformatItem]:
        if self._parser is None:
            self._parser = ReformatParser()
        try:
            return self._parser.parse(text)
        except SyntaxError as e:
            raise ReformatError(f"Invalid REFORMAT() clause: {e}", self.describe()) from e

    def _parse_line(self, text: str) -> LineFormat:
        line = LineFormat()
        for item in self._parse(text):
            self._set_key(line, item)
        return line

    def _set_key(self, fmt: LineFormat, item: ReformatItem) -> None:
        if item.ranges is not None:
            raise ReformatError(f"Unexpected number range after key {item.key}", self.describe())
        try:
            known = fmt.set_key(item)
        except ReformatError as e:
            raise ReformatError(str(e), self.describe()) from None
        if not known:
            raise ReformatError(f"Invalid format key: {item.key}", self.describe())

    def describe(self) -> str:
        return f"REFORMAT({self.clause})"

    def prepare(self, cursor: Cursor) -> None:
        """Record row and column extremes of a result for min/max highlighting."""
        cursor.materialize()
        self._row_extremes = {}
        self._col_extremes = {}

        for row in range(cursor.num_rows()):
            for col in range(cursor.num_cols()):
                text = cursor.text_at(row, col)
                value = parse_double(text)
                if value is None:
                    continue
                self._row_extremes.setdefault(row, Extremes()).update(value, text)
                self._col_extremes.setdefault(col, Extremes()).update(value, text)

    def effective(self, row: int, col: int) -> LineFormat:
        """Merge default, column and row format of a cell."""
        fmt = LineFormat()
        fmt.apply(self.default)
        if col in self.cols:
            fmt.apply(self.cols[col])
        if row in self.rows:
            fmt.apply(self.rows[row])
        return fmt

    def _extreme_style(self, row: int, col: int, attr: str) -> tuple[str | None, Extremes | None]:
        # a row style compares within the row, column and default styles within the column
        row_fmt = self.rows.get(row)
        if row_fmt is not None and getattr(row_fmt, attr) is not None:
            return getattr(row_fmt, attr), self._row_extremes.get(row)
        col_fmt = self.cols.get(col)
        if col_fmt is not None and getattr(col_fmt, attr) is not None:
            return getattr(col_fmt, attr), self._col_extremes.get(col)
        return getattr(self.default, attr), self._col_extremes.get(col)

    def format(self, row: int, col: int, text: str) -> str:
        """Format the text of cell (row, col)."""
        if not text:
            return text

        fmt = self.effective(row, col)
        value = parse_double(text)

        if value is None:
            return latex_escape(text) if fmt.escape else text

        out = format_number(value, text, fmt)

        min_style, min_ext = self._extreme_style(row, col, "min_style")
        max_style, max_ext = self._extreme_style(row, col, "max_style")

        if min_style in _MARKUP and min_ext is not None and text == min_ext.min_text:
            out = _MARKUP[min_style] % out
        elif max_style in _MARKUP and max_ext is not None and text == max_ext.max_text:
            out = _MARKUP[max_style] % out

        return out


def format_number(value: float, text: str, fmt: CellFormat) -> str:
    """Round and format one numeric cell. Returns text unchanged if no format applies."""
    if not math.isfinite(value):
        return text

    precision = fmt.precision

    if fmt.round_mode == "floor":
        value = float(math.floor(value))
        if precision is None:
            precision = 0
    elif fmt.round_mode == "ceil":
        value = float(math.ceil(value))
        if precision is None:
            precision = 0
    elif fmt.round_mode == "round":
        value = _round_half_away(value, fmt.round_digits)
        if precision is None:
            precision = max(0, fmt.round_digits)

    if precision is None and fmt.width is None and fmt.digits is None and fmt.grouping is None:
        return text

    if fmt.digits is not None:
        magnitude = abs(value)
        if magnitude < 1:
            places = fmt.digits
        else:
            places = max(0, fmt.digits - len(str(int(magnitude))))
        format_spec = f",.{places}f"
    else:
        format_spec = f",.{precision if precision is not None else 6}f"
        if fmt.width:
            format_spec = str(fmt.width) + format_spec

    return format(value, format_spec).replace(",", fmt.grouping or "")


def _first_line(query: str) -> str:
    return query.split("\n", 1)[0]
