"""Recognition of previously generated output and reconciliation with new entries.

Each generated fragment kind has an extractor that recognizes one line of
old output and captures its decoration: the parts an author may have edited
(plot styles, legend options, trailing table markup). New content is always
computed fresh; only the decoration is carried over when the fragment is
regenerated.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Generic, Sequence, TypeVar

from sqlplot.textlines import TextLines

E = TypeVar("E")
D = TypeVar("D")


@dataclass(frozen=True)
class Decoration:
    """Text before and after the generated core of a line."""

    prefix: str
    suffix: str


class LineExtractor(Generic[D]):
    """Recognizes one kind of generated line and extracts its decoration."""

    pattern: re.Pattern[str]

    def match(self, line: str) -> D | None:
        raise NotImplementedError

    def render(self, content: str, decoration: D | None = None) -> str:
        raise NotImplementedError

    def scan(self, lines: TextLines, start: int, end: int | None = None) -> tuple[list[D], int]:
        """Collect decorations of consecutive matching lines from start.

        Returns the decorations and the index of the first line not consumed.
        """
        if end is None:
            end = len(lines)
        decorations: list[D] = []
        ln = start
        while ln < end:
            decoration = self.match(lines[ln])
            if decoration is None:
                break
            decorations.append(decoration)
            ln += 1
        return decorations, ln


class AddplotLine(LineExtractor[Decoration]):
    r"""A pgfplots `\addplot ... coordinates { ... };` line."""

    pattern = re.compile(r"[ \t]*(\\addplot.*coordinates \{)[^}]*(\};.*)")
    default = Decoration("\\addplot coordinates {", "};")

    def match(self, line: str) -> Decoration | None:
        m = self.pattern.fullmatch(line)
        if m is None:
            return None
        return Decoration(m.group(1), m.group(2))

    def render(self, content: str, decoration: Decoration | None = None) -> str:
        decoration = decoration or self.default
        return f"{decoration.prefix}{content} {decoration.suffix}"


class LegendLine(LineExtractor[Decoration]):
    r"""A `\addlegendentry{...};` line following an addplot line."""

    pattern = re.compile(r"[ \t]*(\\addlegendentry\{).*(\};.*)")
    default = Decoration("\\addlegendentry{", "};")

    def match(self, line: str) -> Decoration | None:
        m = self.pattern.fullmatch(line)
        if m is None:
            return None
        return Decoration(m.group(1), m.group(2))

    def render(self, content: str, decoration: Decoration | None = None) -> str:
        decoration = decoration or self.default
        return f"{decoration.prefix}{content}{decoration.suffix}"


class TabularRow(LineExtractor[str]):
    r"""A LaTeX tabular row; the decoration is whatever follows the first `\\`."""

    pattern = re.compile(r".*?\\\\(.*)")

    def match(self, line: str) -> str | None:
        m = self.pattern.fullmatch(line)
        return m.group(1) if m is not None else None

    def render(self, content: str, decoration: str | None = None) -> str:
        return f"{content} \\\\{decoration or ''}"


class TabtableRow(LineExtractor[str]):
    """A tab-separated table row. It carries no decoration."""

    pattern = re.compile(r".*")

    def match(self, line: str) -> str | None:
        return ""

    def render(self, content: str, decoration: str | None = None) -> str:
        return content


class LatexMacroLine(LineExtractor[str]):
    r"""A `\def\name{value}` macro definition."""

    pattern = re.compile(r"[ \t]*\\def\\[A-Za-z]+\{.*\}[ \t]*")

    def match(self, line: str) -> str | None:
        return "" if self.pattern.fullmatch(line) else None

    def render(self, content: str, decoration: str | None = None) -> str:
        return content


class GnuplotMacroLine(LineExtractor[str]):
    """A gnuplot `name = value` assignment."""

    pattern = re.compile(r"[ \t]*[A-Za-z_][A-Za-z0-9_]* = .*")

    def match(self, line: str) -> str | None:
        return "" if self.pattern.fullmatch(line) else None

    def render(self, content: str, decoration: str | None = None) -> str:
        return content


@dataclass(frozen=True)
class PlotEntryDecoration:
    """Style text of one gnuplot plot entry and whether the statement continues."""

    style: str
    continued: bool


class GnuplotPlotEntry(LineExtractor[PlotEntryDecoration]):
    """One `'datafile' index N [title "..."] <style>[, \\]` line of a plot statement."""

    pattern = re.compile(
        r"[ \t]*'[^']+' index [0-9]+(?: title \"(?:[^\"\\]|\\.)*\")?( .*?)?(, \\)?[ \t]*"
    )
    head = re.compile(r"[ \t]*plot.*\\[ \t]*")
    default = PlotEntryDecoration(" with linespoints", False)

    def match(self, line: str) -> PlotEntryDecoration | None:
        m = self.pattern.fullmatch(line)
        if m is None:
            return None
        return PlotEntryDecoration(m.group(1) or "", m.group(2) is not None)

    def is_head(self, line: str) -> bool:
        """Check for the `plot \\` line opening a statement."""
        return self.head.fullmatch(line) is not None

    def scan(
        self, lines: TextLines, start: int, end: int | None = None
    ) -> tuple[list[PlotEntryDecoration], int]:
        # the statement ends with the first entry that has no continuation
        if end is None:
            end = len(lines)
        decorations: list[PlotEntryDecoration] = []
        ln = start
        while ln < end:
            decoration = self.match(lines[ln])
            if decoration is None:
                break
            decorations.append(decoration)
            ln += 1
            if not decoration.continued:
                break
        return decorations, ln

    def render(self, content: str, decoration: PlotEntryDecoration | None = None) -> str:
        decoration = decoration or self.default
        return content + decoration.style


def reconcile(
    entries: Sequence[E],
    decorations: Sequence[D],
    render: Callable[[E, D | None], str | list[str]],
) -> list[str]:
    """Render new entries, pairing entry i with old decoration i.

    Entries beyond the old ones get the default decoration (None), surplus
    old decorations are dropped.
    """
    out: list[str] = []
    for i, entry in enumerate(entries):
        rendered = render(entry, decorations[i] if i < len(decorations) else None)
        if isinstance(rendered, str):
            out.append(rendered)
        else:
            out.extend(rendered)
    return out
