"""Lexer for the REFORMAT() clause."""

import ply.lex as lex


class ReformatLexer:
    """Lexer for tokenizing the contents of a REFORMAT(...) clause.

    A parenthesized group is returned as a single GROUP token holding the
    balanced text between the outer parentheses, so nested clauses can be
    parsed recursively.
    """

    states = (("paren", "exclusive"),)

    tokens = [
        "WORD",
        "NUMBER",
        "BARE",
        "GROUP",
        "EQUALS",
        "COMMA",
        "DASH",
    ]

    # Simple tokens
    t_EQUALS = r"="
    t_COMMA = r","
    t_DASH = r"-"

    t_ignore = " \t\n"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def t_GROUP(self, t: lex.LexToken) -> None:
        r"\("
        t.lexer.group_start = t.lexer.lexpos
        t.lexer.group_depth = 1
        t.lexer.begin("paren")

    def t_NUMBER(self, t: lex.LexToken) -> lex.LexToken:
        r"\d+"
        t.value = int(t.value)
        return t

    def t_WORD(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_][a-zA-Z0-9_]*"
        return t

    def t_BARE(self, t: lex.LexToken) -> lex.LexToken:
        r"[^\s=(),\-a-zA-Z0-9_][^\s()]*"
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(f"Illegal character '{t.value[0]}' at position {t.lexpos}")

    # -- inside parentheses --

    t_paren_ignore = ""

    def t_paren_open(self, t: lex.LexToken) -> None:
        r"\("
        t.lexer.group_depth += 1

    def t_paren_close(self, t: lex.LexToken) -> lex.LexToken | None:
        r"\)"
        t.lexer.group_depth -= 1
        if t.lexer.group_depth > 0:
            return None
        t.type = "GROUP"
        t.value = t.lexer.lexdata[t.lexer.group_start:t.lexer.lexpos - 1]
        t.lexpos = t.lexer.group_start - 1
        t.lexer.begin("INITIAL")
        return t

    def t_paren_text(self, t: lex.LexToken) -> None:
        r"[^()]+"

    def t_paren_eof(self, t: lex.LexToken) -> None:
        raise SyntaxError("Unbalanced parentheses in REFORMAT() clause")

    def t_paren_error(self, t: lex.LexToken) -> None:
        t.lexer.skip(1)

    # -- lexer methods --

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.begin("INITIAL")
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
