"""Directive processing for Gnuplot scripts.

Query results are written to an external data file named after the script
(`speed.gp` -> `speed-data.txt`), one data set (gnuplot `index`) per series.
The `plot` statement following a PLOT or MULTIPLOT directive is rewritten to
reference the data sets, keeping the style of existing entries.
"""

from __future__ import annotations

import io
import logging
import os
import re
from dataclasses import dataclass
from typing import ClassVar

from sqlplot.directives import Directive, EngineContext, Processor
from sqlplot.formatting import gnuplot_escape, is_double
from sqlplot.merge import GnuplotMacroLine, GnuplotPlotEntry, PlotEntryDecoration, reconcile
from sqlplot.textlines import TextLines

logger = logging.getLogger(__name__)

_NON_IDENTIFIER_RE = re.compile(r"[^A-Za-z0-9_]")


@dataclass
class Dataset:
    """One data set in the data file."""

    index: int
    title: str = ""


def datafile_name(filename: str | None) -> str:
    """Return the data file name belonging to a gnuplot script."""
    stem, _ = os.path.splitext(filename or "stdin")
    return stem + "-data.txt"


def maybe_quote(value: str) -> str:
    """Quote a macro value unless it is a number."""
    if is_double(value):
        return value
    return "'" + value.replace("'", "''") + "'"


class GnuplotProcessor(Processor):
    """Processes # directives in gnuplot scripts."""

    comment_char = "#"
    handlers: ClassVar[dict[str, str]] = {
        **Processor.handlers,
        "PLOT": "plot",
        "MULTIPLOT": "multiplot",
        "DEFMACRO": "macro",
        "MACRO": "macro",
    }

    entry = GnuplotPlotEntry()

    def __init__(self, lines: TextLines, ctx: EngineContext) -> None:
        super().__init__(lines, ctx)
        self.datafile = datafile_name(ctx.filename)
        self.data_index = 0
        self._data = io.StringIO()

    @property
    def data(self) -> str:
        """Return the contents of the data file written so far."""
        return self._data.getvalue()

    def _write_header(self, directive: Directive) -> None:
        self._data.write("#" * 80 + "\n")
        self._data.write(f"# {directive.text}\n")
        self._data.write("#\n")

    def _finish_index(self) -> None:
        self._data.write("\n\n")
        self.data_index += 1

    def plot(self, directive: Directive) -> int:
        cursor = self.database.query(directive.body)
        self._write_header(directive)

        rows = 0
        while cursor.step():
            self._data.write("\t".join(cursor.text(col) for col in range(cursor.num_cols())) + "\n")
            rows += 1
        logger.info("--> %d rows", rows)

        datasets = [Dataset(self.data_index)]
        self._finish_index()
        return self.plot_rewrite(directive, datasets, "PLOT")

    def multiplot(self, directive: Directive) -> int:
        result = self.multiplot_series(directive)
        self._write_header(directive)

        datasets = []
        for series in result.series:
            self._data.write(f"# index {self.data_index} {series.legend}\n")
            for point in series.points:
                self._data.write("\t".join(point) + "\n")
            datasets.append(Dataset(self.data_index, series.legend))
            self._finish_index()

        return self.plot_rewrite(directive, datasets, "MULTIPLOT")

    def plot_rewrite(self, directive: Directive, datasets: list[Dataset], desc: str) -> int:
        """Rewrite the plot statement after a directive to show the data sets."""
        ln = directive.end_line
        if ln < len(self.lines) and self.entry.is_head(self.lines[ln]):
            decorations, end = self.entry.scan(self.lines, ln + 1)
        else:
            decorations, end = [], ln

        def render(dataset: Dataset, decoration: PlotEntryDecoration | None) -> str:
            core = f"    '{self.datafile}' index {dataset.index}"
            if dataset.title:
                core += f' title "{gnuplot_escape(dataset.title)}"'
            return self.entry.render(core, decoration)

        entries = reconcile(datasets, decorations, render)

        content = []
        if entries:
            content.append("plot \\")
            content.extend(line + ", \\" for line in entries[:-1])
            content.append(entries[-1])
        return self.write(directive, end, content, desc)

    def macro(self, directive: Directive) -> int:
        content = []
        for name, value in self.macro_values(directive):
            identifier = _NON_IDENTIFIER_RE.sub("_", name)
            if not identifier or identifier[0].isdigit():
                identifier = "_" + identifier
            content.append(f"{identifier} = {maybe_quote(value)}")

        _, end = GnuplotMacroLine().scan(self.lines, directive.end_line)
        return self.write(directive, end, content, directive.keyword)
