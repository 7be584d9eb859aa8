"""Parsing module for the REFORMAT() clause."""

from sqlplot.parsing.reformat_lexer import ReformatLexer
from sqlplot.parsing.reformat_parser import ReformatItem, ReformatParser

__all__ = [
    "ReformatItem",
    "ReformatLexer",
    "ReformatParser",
]
