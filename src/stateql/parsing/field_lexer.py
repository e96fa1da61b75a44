"""Lexer for a single StateQL field declaration."""

import ply.lex as lex


class FieldLexer:
    """Lexer for tokenizing a field line such as ``total is number thru sum(x)``."""

    # Reserved keywords
    reserved = {
        "is": "IS",
        "thru": "THRU",
        "many": "MANY",
        "action": "ACTION",
        "and": "AND",
    }

    # Token list
    tokens = [
        "WORD",
        "LPAREN",
        "RPAREN",
    ] + list(reserved.values())

    # Simple tokens
    t_LPAREN = r"\("
    t_RPAREN = r"\)"

    # Ignored characters (spaces and tabs)
    t_ignore = " \t"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore

    def t_WORD(self, t: lex.LexToken) -> lex.LexToken:
        r'(?:[^\s()"]|"[^"\n]*")+'
        # A quoted segment may hold spaces and parentheses: "foo bar"
        t.type = self.reserved.get(t.value, "WORD")
        return t

    def t_error(self, t: lex.LexToken) -> None:
        if t.value[0] == '"':
            raise SyntaxError(f"Unterminated quote (position {t.lexpos})")
        raise SyntaxError(f"Illegal character '{t.value[0]}' (position {t.lexpos})")

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
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
