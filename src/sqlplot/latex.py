"""Directive processing for LaTeX documents."""

from __future__ import annotations

import logging
import re
from typing import ClassVar

from sqlplot.directives import Directive, Processor
from sqlplot.formatting import collapse_whitespace, format_texttable, latex_escape
from sqlplot.merge import (
    AddplotLine,
    Decoration,
    LatexMacroLine,
    LegendLine,
    LineExtractor,
    TabtableRow,
    TabularRow,
    reconcile,
)
from sqlplot.reformat import Reformat
from sqlplot.textlines import split_lines

logger = logging.getLogger(__name__)

_NON_LETTERS_RE = re.compile(r"[^A-Za-z]")


class LatexProcessor(Processor):
    """Processes % directives in LaTeX documents."""

    comment_char = "%"
    handlers: ClassVar[dict[str, str]] = {
        **Processor.handlers,
        "TEXTTABLE": "texttable",
        "PLOT": "plot",
        "MULTIPLOT": "multiplot",
        "TABULAR": "tabular",
        "TABTABLE": "tabtable",
        "DEFMACRO": "defmacro",
    }

    addplot = AddplotLine()
    legend = LegendLine()

    def escape_title(self, text: str) -> str:
        return latex_escape(text)

    def texttable(self, directive: Directive) -> int:
        cursor = self.database.query(directive.body)
        content = split_lines(format_texttable(cursor))
        logger.info("--> %d rows", cursor.num_rows())
        content.append(self.end_marker("TEXTTABLE", directive.body))

        eln = self.lines.scan_for_comment(directive.end_line, "END TEXTTABLE")
        end = eln + 1 if eln >= 0 else directive.end_line
        return self.write(directive, end, content, "TEXTTABLE")

    def plot(self, directive: Directive) -> int:
        cursor = self.database.query(directive.body)

        coords = []
        while cursor.step():
            values = ",".join(
                collapse_whitespace(cursor.text(col)) for col in range(cursor.num_cols())
            )
            coords.append(f" ({values})")
        logger.info("--> %d rows", len(coords))

        ln = directive.end_line
        decoration = self.addplot.match(self.lines[ln]) if ln < len(self.lines) else None
        end = ln + 1 if decoration is not None else ln
        return self.write(directive, end, [self.addplot.render("".join(coords), decoration)], "PLOT")

    def multiplot(self, directive: Directive) -> int:
        result = self.multiplot_series(directive)

        entries = []
        for series in result.series:
            coords = []
            for point in series.points:
                coord = f" ({point[0]},{point[1]})"
                if result.has_xerr or result.has_yerr:
                    xerr = point[2] if result.has_xerr else "0"
                    yerr = point[-1] if result.has_yerr else "0"
                    coord += f" +- ({xerr},{yerr})"
                coords.append(coord)
            entries.append(("".join(coords), series.legend))

        # old \addplot lines, each optionally followed by its \addlegendentry
        pairs: list[tuple[Decoration, Decoration | None]] = []
        ln = directive.end_line
        while ln < len(self.lines):
            plot_decoration = self.addplot.match(self.lines[ln])
            if plot_decoration is None:
                break
            ln += 1
            legend_decoration = None
            if ln < len(self.lines):
                legend_decoration = self.legend.match(self.lines[ln])
                if legend_decoration is not None:
                    ln += 1
            pairs.append((plot_decoration, legend_decoration))

        def render(
            entry: tuple[str, str], pair: tuple[Decoration, Decoration | None] | None
        ) -> list[str]:
            coords, legend = entry
            plot_decoration, legend_decoration = pair if pair is not None else (None, None)
            return [
                self.addplot.render(coords, plot_decoration),
                self.legend.render(legend, legend_decoration),
            ]

        return self.write(directive, ln, reconcile(entries, pairs, render), "MULTIPLOT")

    def tabular(self, directive: Directive) -> int:
        return self._table(directive, "TABULAR", " & ", TabularRow())

    def tabtable(self, directive: Directive) -> int:
        return self._table(directive, "TABTABLE", "\t", TabtableRow())

    def _table(self, directive: Directive, operation: str, sep: str, rows: LineExtractor) -> int:
        reformat = Reformat()
        query = reformat.parse_query(directive.body)

        cursor = self.database.query(query)
        cursor.materialize()
        logger.info("--> %d rows", cursor.num_rows())
        reformat.prepare(cursor)

        cells = [
            [reformat.format(row, col, cursor.text_at(row, col)) for col in range(cursor.num_cols())]
            for row in range(cursor.num_rows())
        ]
        width = [0] * cursor.num_cols()
        for line in cells:
            for col, text in enumerate(line):
                width[col] = max(width[col], len(text))
        body = [sep.join(text.rjust(width[col]) for col, text in enumerate(line)) for line in cells]

        eln = self.lines.scan_for_comment(directive.end_line, f"END {operation}")
        if eln >= 0:
            decorations, _ = rows.scan(self.lines, directive.end_line, eln)
            end = eln + 1
        else:
            decorations, end = [], directive.end_line

        content = reconcile(body, decorations, rows.render)
        content.append(self.end_marker(operation, directive.body))
        return self.write(directive, end, content, operation)

    def defmacro(self, directive: Directive) -> int:
        content = []
        for name, value in self.macro_values(directive):
            macro = _NON_LETTERS_RE.sub("", name)
            if not macro:
                raise directive.error(f"DEFMACRO: column name '{name}' contains no letters.")
            content.append(f"\\def\\{macro}{{{value}}}")

        _, end = LatexMacroLine().scan(self.lines, directive.end_line)
        return self.write(directive, end, content, "DEFMACRO")
