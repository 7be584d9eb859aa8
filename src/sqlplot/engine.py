"""Entry point for processing one document."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlplot.directives import EngineContext, Processor
from sqlplot.errors import SqlPlotError
from sqlplot.gnuplot import GnuplotProcessor
from sqlplot.latex import LatexProcessor
from sqlplot.textlines import TextLines

logger = logging.getLogger(__name__)

PROCESSORS: dict[str, type[Processor]] = {
    "latex": LatexProcessor,
    "gnuplot": GnuplotProcessor,
}

SUFFIXES = {
    ".tex": "latex",
    ".latex": "latex",
    ".ltx": "latex",
    ".gp": "gnuplot",
    ".gpi": "gnuplot",
    ".gnu": "gnuplot",
    ".plt": "gnuplot",
    ".plot": "gnuplot",
    ".gnuplot": "gnuplot",
}


@dataclass
class ProcessResult:
    """A processed document and, for gnuplot scripts, its data file."""

    lines: TextLines
    filetype: str
    datafile: str | None = None
    data: str | None = None


def detect_filetype(filename: str | None) -> str | None:
    """Guess the document type from a file name suffix."""
    if not filename:
        return None
    for suffix, filetype in SUFFIXES.items():
        if filename.endswith(suffix):
            return filetype
    return None


def process_document(
    lines: TextLines, ctx: EngineContext, filetype: str | None = None
) -> ProcessResult:
    """Process all directives of a document inside one transaction.

    The input buffer is not modified; on error nothing is committed and the
    exception propagates.
    """
    if filetype is None:
        filetype = detect_filetype(ctx.filename)
    if filetype not in PROCESSORS:
        raise SqlPlotError(
            f"Error processing {ctx.filename or 'stdin'}: unknown file type, use -f <type>!"
        )

    processor = PROCESSORS[filetype](lines.copy(), ctx)
    with ctx.transaction():
        out = processor.process()

    logger.info("--- Finished processing %s successfully.", ctx.filename or "stdin")

    if isinstance(processor, GnuplotProcessor):
        return ProcessResult(out, filetype, processor.datafile, processor.data)
    return ProcessResult(out, filetype)


def process(text: str, ctx: EngineContext, filetype: str | None = None) -> str:
    """Process a document given as a string and return the rewritten text."""
    return process_document(TextLines.from_text(text), ctx, filetype).lines.text()
