"""
Provides the `SourcePrinter` class for turning Kaleido ASTs back into source text.

The printer produces a canonical form that parses back to a structurally
identical tree:

    - Binary operations carry only the parentheses their precedence needs:
      `a + b * c`, `(a + b) * c`, `a - b - c`, `a - (b - c)`
    - Calls print as `f(a, b)`
    - Externs print as `extern f(a b)`
    - Definitions print as `def f(a b) body`
    - Anonymous top-level functions print only their body
    - Numbers print in plain decimal notation, never with an exponent

Each `emit_<kind>` method receives the node and the already printed text of
its children, so trees of any depth print without recursion. Printed
parentheses never nest deeper than the ones the parsed source needed.

Usage:
    >>> printer = SourcePrinter()
    >>> printer.emit(BinaryOp("*", BinaryOp("+", NumberLiteral(5.0), Variable("x")), Variable("y")))
    '(5.0 + x) * y'

Raises:
    NotImplementedError: If a node kind has no corresponding `emit_*` method.
"""

import math
from collections.abc import Sequence

from kaleido.kaleido_ast import (
    ASTNode,
    BinaryOp,
    Call,
    Function,
    NumberLiteral,
    Prototype,
    Variable,
    fold,
)
from kaleido.kaleido_constants import ANON_FUNCTION_NAME
from kaleido.kaleido_precedence import PrecedenceTable

# A digit run past the largest finite double; float() reads it as inf.
OVERFLOW_LITERAL = "1" + "0" * 309


def format_number(value: float) -> str:
    """Shortest decimal text that `float()` reads back as ``value``."""
    if math.isinf(value):
        return OVERFLOW_LITERAL if value > 0 else "-" + OVERFLOW_LITERAL
    text = repr(value)
    if "e" in text or "E" in text:
        # The lexer has no exponent syntax; widen until the value survives.
        digits = 1
        text = f"{value:.{digits}f}"
        while float(text) != value and digits < 400:
            digits += 1
            text = f"{value:.{digits}f}"
    return text


class SourcePrinter:
    """Emits canonical Kaleido source for AST nodes.

    Dispatches each node to an `emit_<kind>` method, the same way the
    front end's node kinds are named in `ASTNode.kind`. Output parses back
    to the same tree under the precedence table the printer is given.
    """

    def __init__(self, precedence: PrecedenceTable | None = None) -> None:
        self.precedence = (
            precedence if precedence is not None else PrecedenceTable.from_defaults()
        )

    def emit(self, node: ASTNode) -> str:
        """Returns the canonical source text for ``node``."""
        return fold(node, self._emit_one)

    def _emit_one(self, node: ASTNode, parts: list[str]) -> str:
        method = getattr(self, f"emit_{node.kind}", None)
        if method is None:
            raise NotImplementedError(
                f"No printer method for node kind '{node.kind}' "
                f"(line {node.line}, col {node.col})"
            )
        return str(method(node, parts))

    def emit_number(self, node: NumberLiteral, parts: list[str]) -> str:
        return format_number(node.value)

    def emit_variable(self, node: Variable, parts: list[str]) -> str:
        return node.name

    def emit_binary(self, node: BinaryOp, parts: list[str]) -> str:
        lhs, rhs = parts
        if not self._binds(node.lhs, node.op, left=True):
            lhs = f"({lhs})"
        if not self._binds(node.rhs, node.op, left=False):
            rhs = f"({rhs})"
        return f"{lhs} {node.op} {rhs}"

    def _binds(self, operand: ASTNode, op: str, left: bool) -> bool:
        """True if ``operand`` stays an operand of ``op`` without parentheses.

        Equal precedence associates to the left, so a right operand must bind
        strictly tighter. Operators missing from the table always get parentheses.
        """
        if not isinstance(operand, BinaryOp):
            return True
        outer = self.precedence.get(op)
        inner = self.precedence.get(operand.op)
        if outer < 0 or inner < 0:
            return False
        return inner >= outer if left else inner > outer

    def emit_call(self, node: Call, parts: list[str]) -> str:
        return f"{node.callee}({', '.join(parts)})"

    def emit_prototype(self, node: Prototype, parts: list[str]) -> str:
        return f"extern {self._signature(node)}"

    def emit_function(self, node: Function, parts: list[str]) -> str:
        body = parts[1]
        if node.proto.name == ANON_FUNCTION_NAME and not node.proto.params:
            return body
        return f"def {self._signature(node.proto)} {body}"

    @staticmethod
    def _signature(proto: Prototype) -> str:
        return f"{proto.name}({' '.join(proto.params)})"

    def print_program(self, nodes: Sequence[ASTNode]) -> str:
        """Emits one line per top-level node."""
        return "\n".join(self.emit(node) for node in nodes)


__all__ = ["SourcePrinter", "format_number"]
