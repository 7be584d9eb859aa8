"""String helpers shared by the document processors."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlplot.backends.base import Cursor

_DOUBLE_RE = re.compile(r"[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_WHITESPACE_RE = re.compile(r"\s+")

_LATEX_SPECIAL = {
    "\\": r"\textbackslash{}",
    "~": r"\textasciitilde{}",
    "^": r"\textasciicircum{}",
    "&": r"\&",
    "%": r"\%",
    "$": r"\$",
    "#": r"\#",
    "_": r"\_",
    "{": r"\{",
    "}": r"\}",
}
_LATEX_SPECIAL_RE = re.compile("|".join(re.escape(c) for c in _LATEX_SPECIAL))


def shorten(text: str, width: int = 80) -> str:
    """Shorten text to at most width characters, ending in "..." if cut."""
    if len(text) > width:
        return text[: width - 3] + "..."
    return text


def collapse_whitespace(text: str) -> str:
    """Replace runs of whitespace with one space and trim both ends."""
    return _WHITESPACE_RE.sub(" ", text).strip()


def is_double(text: str) -> bool:
    """Check whether text is completely a decimal floating point number."""
    return _DOUBLE_RE.fullmatch(text) is not None


def parse_double(text: str) -> float | None:
    """Parse text as a number, returning None if it is not one."""
    if not is_double(text):
        return None
    return float(text)


def latex_escape(text: str) -> str:
    """Escape characters with special meaning in LaTeX."""
    return _LATEX_SPECIAL_RE.sub(lambda m: _LATEX_SPECIAL[m.group(0)], text)


def gnuplot_escape(text: str) -> str:
    """Escape text for use inside a double-quoted gnuplot string."""
    return text.replace("\\", "\\\\").replace('"', '\\"')


def format_texttable(cursor: Cursor) -> str:
    """Format a complete query result as an ASCII box table.

    Columns are as wide as their widest cell or header. Columns holding only
    numbers are right-aligned, all others left-aligned; headers are always
    right-aligned.
    """
    cursor.materialize()

    ncols = cursor.num_cols()
    nrows = cursor.num_rows()

    width = [len(cursor.col_name(col)) for col in range(ncols)]
    is_number = [True] * ncols

    for row in range(nrows):
        for col in range(ncols):
            text = cursor.text_at(row, col)
            width[col] = max(width[col], len(text))
            if is_number[col] and not is_double(text):
                is_number[col] = False

    divider = "+" + "+".join("-" * (w + 2) for w in width) + "+"

    out = [divider]
    out.append(
        "| " + "| ".join(cursor.col_name(col).rjust(width[col]) + " " for col in range(ncols)) + "|"
    )
    out.append(divider)

    for row in range(nrows):
        cells = []
        for col in range(ncols):
            text = cursor.text_at(row, col)
            if is_number[col]:
                cells.append(text.rjust(width[col]) + " ")
            else:
                cells.append(text.ljust(width[col]) + " ")
        out.append("| " + "| ".join(cells) + "|")

    out.append(divider)
    return "\n".join(out) + "\n"
