"""Parser for the REFORMAT() clause."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import ply.yacc as yacc

from sqlplot.parsing.reformat_lexer import ReformatLexer


@dataclass
class ReformatItem:
    """One key of a REFORMAT() clause, e.g. `precision=2` or `col 1-3=(bold)`."""

    key: str
    ranges: list[tuple[int, int]] | None = None  # only set for row/column selectors
    value: str | None = None  # None means the key was given without a value


class ReformatParser:
    """Parser for the key/value list inside a REFORMAT(...) clause.

    Nested clauses of row and column selectors are returned as the raw text of
    their parenthesized group; the caller parses them again.
    """

    tokens = ReformatLexer.tokens

    def __init__(self) -> None:
        self.lexer = ReformatLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_clause(self, p: yacc.YaccProduction) -> None:
        """clause : item_list"""
        p[0] = p[1]

    def p_clause_empty(self, p: yacc.YaccProduction) -> None:
        """clause : empty"""
        p[0] = []

    def p_empty(self, p: yacc.YaccProduction) -> None:
        """empty :"""
        pass

    def p_item_list_single(self, p: yacc.YaccProduction) -> None:
        """item_list : item"""
        p[0] = [p[1]]

    def p_item_list_multiple(self, p: yacc.YaccProduction) -> None:
        """item_list : item_list item"""
        p[0] = p[1] + [p[2]]

    def p_item_flag(self, p: yacc.YaccProduction) -> None:
        """item : WORD"""
        p[0] = ReformatItem(key=p[1])

    def p_item_value(self, p: yacc.YaccProduction) -> None:
        """item : WORD EQUALS value"""
        p[0] = ReformatItem(key=p[1], value=p[3])

    def p_item_selector(self, p: yacc.YaccProduction) -> None:
        """item : WORD number_ranges EQUALS GROUP
                | WORD number_ranges GROUP"""
        p[0] = ReformatItem(key=p[1], ranges=p[2], value=p[len(p) - 1])

    def p_value_word(self, p: yacc.YaccProduction) -> None:
        """value : WORD
                 | BARE
                 | COMMA
                 | GROUP"""
        p[0] = p[1]

    def p_value_number(self, p: yacc.YaccProduction) -> None:
        """value : NUMBER"""
        p[0] = str(p[1])

    def p_value_negative(self, p: yacc.YaccProduction) -> None:
        """value : DASH NUMBER"""
        p[0] = f"-{p[2]}"

    def p_number_ranges_single(self, p: yacc.YaccProduction) -> None:
        """number_ranges : number_range"""
        p[0] = [p[1]]

    def p_number_ranges_multiple(self, p: yacc.YaccProduction) -> None:
        """number_ranges : number_ranges COMMA number_range"""
        p[0] = p[1] + [p[3]]

    def p_number_range_single(self, p: yacc.YaccProduction) -> None:
        """number_range : NUMBER"""
        p[0] = (p[1], p[1])

    def p_number_range_span(self, p: yacc.YaccProduction) -> None:
        """number_range : NUMBER DASH NUMBER"""
        p[0] = (p[1], p[3])

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (position {p.lexpos})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> list[ReformatItem]:
        """Parse the text between the parentheses of a REFORMAT() clause."""
        if self.parser is None:
            self.build(debug=False, write_tables=False, errorlog=yacc.NullLogger())

        items = self.parser.parse(data, lexer=self.lexer)
        if items is None:
            items = []
        return items
