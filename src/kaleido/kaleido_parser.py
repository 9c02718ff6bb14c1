"""
Kaleido Language Parser

Parses the token stream of a `Lexer` into Kaleido abstract syntax trees.

Grammar
-------
    toplevel    ::= definition | external | expression
    definition  ::= 'def' prototype expression
    external    ::= 'extern' prototype
    prototype   ::= identifier '(' identifier* ')'
    expression  ::= primary binoprhs
    binoprhs    ::= (binop primary)*
    primary     ::= identifierexpr | numberexpr | parenexpr
    identifierexpr ::= identifier | identifier '(' (expression (',' expression)*)? ')'
    numberexpr  ::= number
    parenexpr   ::= '(' expression ')'

Primary expressions are parsed by recursive descent; chains of binary
operators are parsed by precedence climbing against a `PrecedenceTable`.
The parser never looks further ahead than the lexer's current token.

Parser Behavior
---------------
- Each rule returns a node, or None after recording a diagnostic.
- A failure anywhere inside a top-level construct abandons that construct;
  there is no partial tree and no resynchronization inside it.
- The top-level driver then moves on to the next construct, skipping the
  offending token if the failed rule consumed nothing.
- Every identifier token, punctuation included, is accepted wherever the
  grammar asks for an identifier: `f(,)` is a call with the variable `,`.
- Parentheses and call arguments nest at most `MAX_NESTING_DEPTH` levels.
  Deeper input is reported once and skipped up to its matching `)`.

Entry Points
------------
- `Parser.parse()`: Parse every top-level construct until end of input.
- `Parser.parse_expression()`: Parse a single expression.
- `parse_source()`: Build a fresh lexer/parser pair over a string and parse it.

Raises
------
ParseError
    From `parse_source(..., strict=True)` when any construct failed.
AssertionError
    When the top-level driver fails to make forward progress (internal bug).
"""

from __future__ import annotations

import logging

from kaleido.kaleido_ast import (
    BinaryOp,
    Call,
    ExprNode,
    Function,
    NumberLiteral,
    Prototype,
    TopLevelNode,
    Variable,
)
from kaleido.kaleido_constants import ANON_FUNCTION_NAME, MAX_NESTING_DEPTH
from kaleido.kaleido_errors import ParseDiagnostic, ParseError
from kaleido.kaleido_lexer import CharacterStream, Lexer, Token, TokenKind
from kaleido.kaleido_precedence import PrecedenceTable

logger = logging.getLogger(__name__)


class Parser:
    """
    Kaleido Parser Class

    Borrows a `Lexer` already positioned on its first token for its whole
    lifetime and turns its token stream into top-level AST nodes.

    Attributes
    ----------
    lexer : Lexer
        The token source. The parser is its only client while parsing.
    precedence : PrecedenceTable
        Binary operators known to this parser. Frozen on construction.
    errors : list[ParseDiagnostic]
        Diagnostics reported so far, in source order.
    depth : int
        Number of `(` opened and not yet closed by the expression being parsed.
    """

    def __init__(self, lexer: Lexer, precedence: PrecedenceTable | None = None) -> None:
        self.lexer = lexer
        self.precedence = (
            precedence if precedence is not None else PrecedenceTable.from_defaults()
        )
        self.precedence.freeze()
        self.errors: list[ParseDiagnostic] = []
        self.depth = 0

    def current(self) -> Token:
        return self.lexer.current_token()

    def advance(self) -> Token:
        self.lexer.advance()
        return self.current()

    def report(self, message: str) -> None:
        """Records ``message`` against the current token and returns None."""
        tok = self.current()
        diag = ParseDiagnostic(message, tok.line, tok.col)
        self.errors.append(diag)
        logger.error("%s", diag)
        return None

    def error(self, expected: str) -> None:
        return self.report(f"Expected {expected}, got {self.current()!r}")

    def token_precedence(self, tok: Token) -> int:
        """Precedence of ``tok`` as a binary operator, or -1 if it is not one."""
        if tok.type is not TokenKind.IDENT:
            return -1
        return self.precedence.get(tok.text())

    # Top level

    def parse(self) -> list[TopLevelNode]:
        """Parse all top-level constructs until end of input."""
        nodes: list[TopLevelNode] = []
        while self.current().type is not TokenKind.EOF:
            before = self.lexer.advance_count
            node = self.parse_top_level()
            if node is not None:
                nodes.append(node)
                continue
            if self.lexer.advance_count == before:
                logger.debug("Skipping %r after failed construct", self.current())
                self.advance()
            assert self.lexer.advance_count > before, "parser made no progress"
        return nodes

    def parse_top_level(self) -> TopLevelNode | None:
        tok = self.current()
        if tok.type is TokenKind.DEF:
            return self.parse_definition()
        if tok.type is TokenKind.EXTERN:
            return self.parse_extern()
        return self.parse_top_level_expr()

    def parse_definition(self) -> Function | None:
        """definition ::= 'def' prototype expression"""
        def_tok = self.current()
        self.advance()  # eat 'def'
        proto = self.parse_prototype()
        if proto is None:
            return None
        body = self.parse_expression()
        if body is None:
            return None
        return Function(proto, body, line=def_tok.line, col=def_tok.col)

    def parse_extern(self) -> Prototype | None:
        """external ::= 'extern' prototype"""
        self.advance()  # eat 'extern'
        return self.parse_prototype()

    def parse_top_level_expr(self) -> Function | None:
        """Wraps a bare expression as a zero-argument anonymous function."""
        tok = self.current()
        body = self.parse_expression()
        if body is None:
            return None
        proto = Prototype(ANON_FUNCTION_NAME, (), line=tok.line, col=tok.col)
        return Function(proto, body, line=tok.line, col=tok.col)

    def parse_prototype(self) -> Prototype | None:
        """prototype ::= identifier '(' identifier* ')'"""
        name_tok = self.current()
        if name_tok.type is not TokenKind.IDENT:
            return self.error("function name in prototype")
        self.advance()  # eat name

        if not self.current().is_char("("):
            return self.error("'(' in prototype")
        self.advance()  # eat '('

        params: list[str] = []
        while not self.current().is_char(")"):
            param = self.current()
            if param.type is not TokenKind.IDENT:
                return self.error("parameter name or ')' in prototype")
            params.append(param.text())
            self.advance()  # eat parameter
        self.advance()  # eat ')'

        return Prototype(
            name_tok.text(), tuple(params), line=name_tok.line, col=name_tok.col
        )

    # Expressions

    def parse_expression(self) -> ExprNode | None:
        """expression ::= primary binoprhs"""
        lhs = self.parse_primary()
        if lhs is None:
            return None
        return self.parse_binop_rhs(0, lhs)

    def parse_primary(self) -> ExprNode | None:
        tok = self.current()
        logger.debug("parse_primary at %r (depth %d)", tok, self.depth)
        if tok.type is TokenKind.NUMBER:
            return self.parse_number_expr()
        if tok.type is TokenKind.ERROR:
            # The lexer already consumed the malformed literal.
            self.error("a valid number literal")
            self.advance()
            return None
        if tok.is_char("("):
            return self.parse_paren_expr()
        if tok.type is TokenKind.IDENT:
            return self.parse_identifier_expr()
        return self.error("expression")

    def skip_nested(self) -> None:
        """Reports a `(` past the nesting limit, then skips until every open `(` is closed."""
        self.report(f"Expression nested deeper than {MAX_NESTING_DEPTH} levels")
        open_parens = self.depth
        while open_parens and self.current().type is not TokenKind.EOF:
            tok = self.current()
            if tok.is_char("("):
                open_parens += 1
            elif tok.is_char(")"):
                open_parens -= 1
            self.advance()
        return None

    def parse_number_expr(self) -> NumberLiteral:
        tok = self.current()
        assert tok.type is TokenKind.NUMBER and isinstance(tok.value, float)
        self.advance()  # eat number
        return NumberLiteral(tok.value, line=tok.line, col=tok.col)

    def parse_paren_expr(self) -> ExprNode | None:
        """parenexpr ::= '(' expression ')'"""
        if self.depth >= MAX_NESTING_DEPTH:
            return self.skip_nested()
        self.advance()  # eat '('
        self.depth += 1
        try:
            inner = self.parse_expression()
            if inner is None:
                return None
            if not self.current().is_char(")"):
                return self.error("')'")
            self.advance()  # eat ')'
            return inner
        finally:
            self.depth -= 1

    def parse_identifier_expr(self) -> ExprNode | None:
        """identifierexpr ::= identifier | identifier '(' args ')'"""
        tok = self.current()
        name = tok.text()
        self.advance()  # eat identifier

        if not self.current().is_char("("):
            return Variable(name, line=tok.line, col=tok.col)
        if self.depth >= MAX_NESTING_DEPTH:
            return self.skip_nested()

        self.advance()  # eat '('
        self.depth += 1
        try:
            args = self.parse_call_args()
        finally:
            self.depth -= 1
        if args is None:
            return None
        return Call(name, tuple(args), line=tok.line, col=tok.col)

    def parse_call_args(self) -> list[ExprNode] | None:
        """Arguments after a call's '(' up to and including the closing ')'."""
        args: list[ExprNode] = []
        if not self.current().is_char(")"):
            while True:
                arg = self.parse_expression()
                if arg is None:
                    return None
                args.append(arg)
                if self.current().is_char(")"):
                    break
                if not self.current().is_char(","):
                    return self.error("')' or ',' in argument list")
                self.advance()  # eat ','
        self.advance()  # eat ')'
        return args

    def parse_binop_rhs(self, min_prec: int, lhs: ExprNode) -> ExprNode | None:
        """Folds ``(binop primary)*`` into ``lhs`` by precedence climbing.

        Operators binding at least as tightly as ``min_prec`` are consumed.
        A following operator that binds strictly tighter is folded into the
        right-hand side first, so equal precedence associates to the left.
        """
        while True:
            op_tok = self.current()
            tok_prec = self.token_precedence(op_tok)
            if tok_prec < min_prec:
                return lhs

            op = op_tok.text()
            logger.debug("binop %r (prec %d, min %d)", op, tok_prec, min_prec)
            self.advance()  # eat operator

            rhs = self.parse_primary()
            if rhs is None:
                return None

            if tok_prec < self.token_precedence(self.current()):
                rhs = self.parse_binop_rhs(tok_prec + 1, rhs)
                if rhs is None:
                    return None

            lhs = BinaryOp(op, lhs, rhs, line=op_tok.line, col=op_tok.col)


def parse_source(
    source: str,
    precedence: PrecedenceTable | None = None,
    strict: bool = False,
) -> list[TopLevelNode]:
    """Parses ``source`` with a fresh lexer/parser pair.

    Args:
        source: Kaleido program text.
        precedence: Operator table to use; the built-in operators if omitted.
        strict: Raise instead of returning partial output when any construct fails.

    Raises:
        ParseError: In strict mode, if any diagnostic was reported.
    """
    parser = Parser(Lexer(CharacterStream.from_string(source)), precedence)
    nodes = parser.parse()
    if strict and parser.errors:
        raise ParseError(f"{len(parser.errors)} syntax error(s)", parser.errors)
    return nodes


__all__ = ["Parser", "parse_source"]
