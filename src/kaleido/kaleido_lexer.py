"""
Lexical analyzer for the Kaleido language.

This module converts a forward-only byte source into a stream of tokens with
exactly one token of lookahead:

Classes:
    CharacterStream: Reads one byte at a time from a binary source, tracking line/column.
    TokenKind: The closed set of token variants.
    Token: A single token with kind, payload and source location.
    Lexer: Owns the cursor over a CharacterStream and the current token.

Features:
    - Skips whitespace and single-line comments (`#`)
    - Recognizes the `def` and `extern` keywords
    - Identifiers are ASCII letters followed by ASCII letters or digits
    - Numbers are runs of digits and `.` converted with `float()`
    - Every other character is a one-character identifier (`(`, `+`, `,`, ...)

Raises:
    LexicalError: In strict mode, when a numeric literal cannot be converted.

Example:
    >>> lexer = Lexer(CharacterStream.from_string("def f(x) x"))
    >>> lexer.current_token()
    Token(DEF)

Exports:
    - CharacterStream
    - Token
    - TokenKind
    - Lexer
"""

import io
import logging
from collections.abc import Iterator
from enum import Enum
from typing import Any, BinaryIO

from kaleido.kaleido_constants import COMMENT_CHAR, KEYWORDS, WHITESPACE
from kaleido.kaleido_errors import LexicalError

logger = logging.getLogger(__name__)


class CharacterStream:
    """
    Reads characters from a binary source strictly forward, one byte at a time.

    The stream never seeks backward and never buffers beyond the byte it just
    read. Each byte is decoded on its own, so only ASCII input is meaningful to
    the lexer; other bytes surface as single-character tokens.

    Attributes:
        source (BinaryIO): The underlying byte source. Owned by the caller.
        position (int): Number of bytes consumed so far.
        line (int): Line of the most recently read character (1-indexed).
        column (int): Column of the most recently read character (1-indexed).
    """

    def __init__(self, source: BinaryIO) -> None:
        self.source = source
        self.position = 0
        self.line = 1
        self.column = 0
        self._exhausted = False
        self._after_newline = False

    @classmethod
    def from_string(cls, text: str) -> "CharacterStream":
        """Builds a stream over an in-memory copy of ``text`` encoded as UTF-8."""
        return cls(io.BytesIO(text.encode("utf-8")))

    def next(self) -> str | None:
        """
        Reads and returns the next character.

        Returns:
            str | None: The character, or None once the source is exhausted.

        A read error from the source is treated the same as end of input; it is
        logged and the stream reports exhaustion from then on.
        """
        if self._exhausted:
            return None
        try:
            data = self.source.read(1)
        except OSError as e:
            logger.warning(
                "Read error at byte %d treated as end of input: %s", self.position, e
            )
            self._exhausted = True
            return None
        if not data:
            self._exhausted = True
            return None

        char = chr(data[0])
        if self._after_newline:
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        self._after_newline = char == "\n"
        self.position += 1
        return char

    def end_of_file(self) -> bool:
        """Returns True once a read has hit the end of the source."""
        return self._exhausted


class TokenKind(Enum):
    """Token variants produced by the lexer."""

    EOF = "EOF"
    DEF = "DEF"
    EXTERN = "EXTERN"
    IDENT = "IDENT"
    NUMBER = "NUMBER"
    ERROR = "ERROR"


class Token:
    """Represents a single lexical token.

    Attributes:
        type (TokenKind): The token variant.
        value (str | float | None): Identifier text, numeric value, rejected
            text for ERROR tokens, or None for keywords and EOF.
        line (int): The 1-based line number where the token starts.
        col (int): The 1-based column number where the token starts.
    """

    def __init__(
        self,
        type_: TokenKind,
        value: str | float | None = None,
        line: int = 0,
        col: int = 0,
    ):
        self.type = type_
        self.value = value
        self.line = line
        self.col = col

    def __repr__(self) -> str:
        if self.value is None:
            return f"Token({self.type.value})"
        return f"Token({self.type.value}, {self.value!r})"

    def __eq__(self, other: Any) -> bool:
        # Source location is metadata; tokens compare by kind and payload.
        return (
            isinstance(other, Token)
            and self.type == other.type
            and self.value == other.value
        )

    def __hash__(self) -> int:
        return hash((self.type, self.value))

    @classmethod
    def ident(cls, text: str) -> "Token":
        return cls(TokenKind.IDENT, text)

    @classmethod
    def number(cls, value: float) -> "Token":
        return cls(TokenKind.NUMBER, float(value))

    def is_char(self, char: str) -> bool:
        """True if this is the one-character identifier ``char``."""
        return self.type is TokenKind.IDENT and self.value == char

    def text(self) -> str:
        """Returns the identifier text.

        Raises:
            AssertionError: If called on anything but an IDENT token.
        """
        if self.type is not TokenKind.IDENT or not isinstance(self.value, str):
            raise AssertionError(f"text() called on non-identifier {self!r}")
        return self.value


def _is_alpha(ch: str) -> bool:
    return ch.isascii() and ch.isalpha()


def _is_alnum(ch: str) -> bool:
    return ch.isascii() and ch.isalnum()


def _is_digit(ch: str) -> bool:
    return "0" <= ch <= "9"


class Lexer:
    """Converts a CharacterStream into a one-token-lookahead token stream.

    The lexer is primed with a space as the last character read so the
    whitespace skip runs uniformly, and it advances to the first token on
    construction.

    Attributes:
        stream (CharacterStream): The source stream to tokenize.
        strict (bool): Raise LexicalError on malformed numbers instead of
            emitting an ERROR token.
        last_char (str): The most recently read, not yet tokenized character.
        eof_reached (bool): True once the stream has been exhausted.
        advance_count (int): Number of completed calls to ``advance()``.
    """

    def __init__(self, stream: CharacterStream, strict: bool = False) -> None:
        self.stream = stream
        self.strict = strict
        self.last_char = " "
        self.eof_reached = False
        self.advance_count = 0
        self._current = Token(TokenKind.EOF)
        self.advance()

    def current_token(self) -> Token:
        """Returns the current token without side effects."""
        return self._current

    def advance(self) -> None:
        """Computes the next token and makes it current.

        Raises:
            LexicalError: In strict mode, if a numeric literal is malformed.
                The bad literal has still been consumed.
        """
        self.advance_count += 1
        self._current = self._scan()
        logger.debug("token %r", self._current)

    def tokens(self) -> Iterator[Token]:
        """Yields the current token and every following one, ending with EOF."""
        while True:
            tok = self._current
            yield tok
            if tok.type is TokenKind.EOF:
                return
            self.advance()

    def _read_char(self) -> bool:
        """Pulls one character into ``last_char``.

        Returns False when the stream is exhausted; ``last_char`` is left as is.
        """
        char = self.stream.next()
        if char is None:
            self.eof_reached = True
            return False
        self.last_char = char
        return True

    def _scan(self) -> Token:
        while True:
            if self.eof_reached:
                return Token(TokenKind.EOF, line=self.stream.line, col=self.stream.column)

            while self.last_char in WHITESPACE:
                if not self._read_char():
                    return Token(
                        TokenKind.EOF, line=self.stream.line, col=self.stream.column
                    )

            ch = self.last_char
            line, col = self.stream.line, self.stream.column

            # 1. Identifier or keyword
            if _is_alpha(ch):
                ident = ch
                while self._read_char() and _is_alnum(self.last_char):
                    ident += self.last_char
                if ident in KEYWORDS:
                    return Token(TokenKind[KEYWORDS[ident]], line=line, col=col)
                return Token(TokenKind.IDENT, ident, line, col)

            # 2. Number
            if _is_digit(ch):
                num = ch
                while self._read_char() and (
                    _is_digit(self.last_char) or self.last_char == "."
                ):
                    num += self.last_char
                return self._number_token(num, line, col)

            # 3. Comment, transparent to the token stream
            if ch == COMMENT_CHAR:
                while self._read_char() and self.last_char != "\n":
                    pass
                continue

            # 4. Single-character operator or punctuation
            self._read_char()
            return Token(TokenKind.IDENT, ch, line, col)

    def _number_token(self, text: str, line: int, col: int) -> Token:
        try:
            value = float(text)
        except ValueError:
            message = f"Invalid number literal '{text}' at line {line}, col {col}"
            if self.strict:
                raise LexicalError(message, text, line, col) from None
            logger.error(message)
            return Token(TokenKind.ERROR, text, line, col)
        return Token(TokenKind.NUMBER, value, line, col)


__all__ = ["CharacterStream", "Lexer", "Token", "TokenKind"]
