"""sqlplot - Rewrite LaTeX documents and Gnuplot scripts from SQL directives in comments."""

from sqlplot.backends import Cursor, Database, SQLiteDatabase, connect
from sqlplot.directives import Directive, EngineContext, RangeGate
from sqlplot.engine import detect_filetype, process, process_document
from sqlplot.errors import (
    ConnectError,
    DirectiveError,
    ImportDataError,
    QueryError,
    ReformatError,
    SqlPlotError,
)
from sqlplot.gnuplot import GnuplotProcessor
from sqlplot.importdata import ImportData
from sqlplot.latex import LatexProcessor
from sqlplot.reformat import Reformat
from sqlplot.textlines import TextLines

__all__ = [
    # Main API
    "EngineContext",
    "RangeGate",
    "process",
    "process_document",
    "detect_filetype",
    "TextLines",
    "Directive",
    # Processors
    "LatexProcessor",
    "GnuplotProcessor",
    "Reformat",
    "ImportData",
    # Backends
    "Database",
    "Cursor",
    "SQLiteDatabase",
    "connect",
    # Errors
    "SqlPlotError",
    "QueryError",
    "ConnectError",
    "DirectiveError",
    "ReformatError",
    "ImportDataError",
]

__version__ = "0.1.0"
