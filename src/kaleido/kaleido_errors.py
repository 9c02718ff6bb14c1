"""
Error types raised and reported by the Kaleido lexer and parser.

Classes:
    LexicalError: A token could not be formed from the input characters.
    ParseDiagnostic: A single recorded syntax problem (message plus location).
    ParseError: Raised in strict mode when one or more constructs failed to parse.
"""

from typing import NamedTuple


class LexicalError(SyntaxError):
    """Raised by the lexer when a literal cannot be converted.

    Attributes:
        text (str): The raw characters that were rejected.
        line (int): Line where the literal starts.
        col (int): Column where the literal starts.
    """

    def __init__(self, message: str, text: str = "", line: int = 0, col: int = 0):
        super().__init__(message)
        self.text = text
        self.line = line
        self.col = col


class ParseDiagnostic(NamedTuple):
    """A human-readable syntax error recorded by the parser."""

    message: str
    line: int = 0
    col: int = 0

    def __str__(self) -> str:
        return f"{self.message} at line {self.line}, col {self.col}"


class ParseError(SyntaxError):
    """Raised by strict parsing when any diagnostic was reported.

    Attributes:
        diagnostics (list[ParseDiagnostic]): Every problem found, in source order.
    """

    def __init__(self, message: str, diagnostics: list[ParseDiagnostic] | None = None):
        super().__init__(message)
        self.diagnostics = diagnostics or []

    def __str__(self) -> str:
        if not self.diagnostics:
            return str(self.msg)
        details = "\n".join(f"  - {d}" for d in self.diagnostics)
        return f"{self.msg}\n{details}"
