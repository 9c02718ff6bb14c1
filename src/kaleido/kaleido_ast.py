"""
Defines the abstract syntax tree (AST) node variants for the Kaleido language.

Classes:
    ASTNode:
        Common base: a `kind` tag, source location, child access and dict serialization.
    NumberLiteral, Variable, BinaryOp, Call:
        Expression nodes.
    Prototype, Function:
        Top-level nodes. An `extern` declaration parses to a bare Prototype;
        a definition or a top-level expression parses to a Function.
    ASTDict:
        TypedDict shape produced by `ASTNode.to_dict()`, suitable for JSON output.

Nodes are frozen dataclasses. Each composite node exclusively owns its
children, stored in tuples, so a tree is acyclic and immutable once built.
Source location (`line`, `col`) is carried for diagnostics but is not part of
structural equality.

Example:
    BinaryOp("+", NumberLiteral(5.0), Variable("x"))
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, ClassVar, TypedDict, TypeVar, Union

R = TypeVar("R")


class ASTDict(TypedDict, total=False):
    """
    TypedDict representation of an ASTNode used for serialization.

    Fields:
        kind (str): The node variant ("number", "variable", "binary", "call",
            "prototype", "function").
        value (Any): The number, name, operator or callee carried by the node.
        params (list[str]): Parameter names, prototypes only.
        line (int): Line number in the source code where the node originates.
        col (int): Column number in the source code where the node originates.
        children (list[ASTDict]): Child nodes in source order.
    """

    kind: str
    value: Any
    params: list[str]
    line: int
    col: int
    children: list["ASTDict"]


@dataclass(frozen=True, eq=False)
class ASTNode:
    """Base class of every Kaleido AST node."""

    kind: ClassVar[str] = "node"

    line: int = field(default=0, compare=False, repr=False, kw_only=True)
    col: int = field(default=0, compare=False, repr=False, kw_only=True)

    def children(self) -> tuple["ASTNode", ...]:
        return ()

    def _payload(self) -> Any:
        return None

    def _key(self) -> Any:
        """Everything besides the children that structural equality compares."""
        return self._payload()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ASTNode):
            return NotImplemented
        pending: list[tuple[ASTNode, ASTNode]] = [(self, other)]
        while pending:
            a, b = pending.pop()
            if a is b:
                continue
            if type(a) is not type(b) or a._key() != b._key():
                return False
            a_children, b_children = a.children(), b.children()
            if len(a_children) != len(b_children):
                return False
            pending.extend(zip(a_children, b_children))
        return True

    def __hash__(self) -> int:
        return fold(self, lambda node, hashes: hash((node.kind, node._key(), *hashes)))

    def _as_dict(self, children: list[ASTDict]) -> ASTDict:
        return {
            "kind": self.kind,
            "value": self._payload(),
            "line": self.line,
            "col": self.col,
            "children": children,
        }

    def to_dict(self) -> ASTDict:
        return fold(self, lambda node, children: node._as_dict(children))


@dataclass(frozen=True, eq=False)
class NumberLiteral(ASTNode):
    kind: ClassVar[str] = "number"

    value: float

    def _payload(self) -> Any:
        return self.value


@dataclass(frozen=True, eq=False)
class Variable(ASTNode):
    kind: ClassVar[str] = "variable"

    name: str

    def _payload(self) -> Any:
        return self.name


@dataclass(frozen=True, eq=False)
class BinaryOp(ASTNode):
    kind: ClassVar[str] = "binary"

    op: str
    lhs: "ExprNode"
    rhs: "ExprNode"

    def children(self) -> tuple[ASTNode, ...]:
        return (self.lhs, self.rhs)

    def _payload(self) -> Any:
        return self.op


@dataclass(frozen=True, eq=False)
class Call(ASTNode):
    kind: ClassVar[str] = "call"

    callee: str
    args: tuple["ExprNode", ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", tuple(self.args))

    def children(self) -> tuple[ASTNode, ...]:
        return self.args

    def _payload(self) -> Any:
        return self.callee


@dataclass(frozen=True, eq=False)
class Prototype(ASTNode):
    """Function signature: a name plus order-significant parameter names."""

    kind: ClassVar[str] = "prototype"

    name: str
    params: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", tuple(self.params))

    def _payload(self) -> Any:
        return self.name

    def _key(self) -> Any:
        return (self.name, self.params)

    def _as_dict(self, children: list[ASTDict]) -> ASTDict:
        d = super()._as_dict(children)
        d["params"] = list(self.params)
        return d


@dataclass(frozen=True, eq=False)
class Function(ASTNode):
    kind: ClassVar[str] = "function"

    proto: Prototype
    body: "ExprNode"

    def children(self) -> tuple[ASTNode, ...]:
        return (self.proto, self.body)

    def _payload(self) -> Any:
        return self.proto.name


ExprNode = Union[NumberLiteral, Variable, BinaryOp, Call]
"""Any node that can appear inside an expression."""

TopLevelNode = Union[Function, Prototype]
"""Any node the top-level driver can produce."""


def fold(node: ASTNode, combine: Callable[[Any, list[R]], R]) -> R:
    """Post-order fold over the tree rooted at ``node``, without recursion.

    ``combine(n, results)`` receives each node together with the results
    already computed for its children, in order. Trees can be deeper than the
    interpreter recursion limit: an operator chain nests one level per operator.
    """
    results: list[R] = []
    work: list[tuple[ASTNode, bool]] = [(node, False)]
    while work:
        current, ready = work.pop()
        children = current.children()
        if not ready:
            work.append((current, True))
            work.extend((child, False) for child in reversed(children))
            continue
        start = len(results) - len(children)
        child_results = results[start:]
        del results[start:]
        results.append(combine(current, child_results))
    return results[0]


__all__ = [
    "ASTDict",
    "ASTNode",
    "BinaryOp",
    "Call",
    "ExprNode",
    "Function",
    "fold",
    "NumberLiteral",
    "Prototype",
    "TopLevelNode",
    "Variable",
]
