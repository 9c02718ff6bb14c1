"""
Shared lexical and grammar constants for the Kaleido front end.

Exports:
    KEYWORDS: Maps reserved words to their token kind names.
    WHITESPACE: Characters skipped between tokens.
    COMMENT_CHAR: Starts a comment that runs to end of line.
    DEFAULT_PRECEDENCE: Built-in binary operators and their binding strength.
    RESERVED_OPERATOR_CHARS: Punctuation that can never be registered as an operator.
    ANON_FUNCTION_NAME: Name given to wrapped top-level expressions.
    SOURCE_SUFFIXES: File extensions the CLI accepts.
    MAX_NESTING_DEPTH: Deepest parenthesis or call nesting the parser accepts.
"""

KEYWORDS: dict[str, str] = {
    "def": "DEF",
    "extern": "EXTERN",
}

WHITESPACE = " \t\r\n"

COMMENT_CHAR = "#"

DEFAULT_PRECEDENCE: dict[str, int] = {
    "<": 10,
    "+": 20,
    "-": 20,
    "*": 30,
}

RESERVED_OPERATOR_CHARS = frozenset("(),#")

ANON_FUNCTION_NAME = "__anon_expr"

SOURCE_SUFFIXES = (".kal", ".ks")

MAX_NESTING_DEPTH = 64
