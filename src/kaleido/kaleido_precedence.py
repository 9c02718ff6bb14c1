"""
Provides the `PrecedenceTable` class for configuring Kaleido's binary operators.

The table maps single-character operators to an integer binding strength
(higher binds tighter). A fresh table holds the built-in operators; more can
be registered, or loaded from a JSON file, until a parser takes ownership of
the table. From that point the table is frozen for the lifetime of the parse.

Classes:
    - PrecedenceTable: Operator → precedence mapping with validation and reporting.
    - PrecedenceError: Raised for invalid operators, bad values or conflicts.

Usage:
    >>> table = PrecedenceTable.from_defaults()
    >>> table.register("/", 40)
    >>> table.get("/")
    40

JSON configuration files hold a single object, for example:
    {"/": 40, ">": 10}
"""

import json
import logging
from typing import Any

from kaleido.kaleido_constants import DEFAULT_PRECEDENCE, RESERVED_OPERATOR_CHARS

logger = logging.getLogger(__name__)


class PrecedenceError(Exception):
    """Raised when a precedence configuration is invalid.

    Attributes:
        conflicts (list[str]): Descriptions of operators that were given
            conflicting precedences.
    """

    def __init__(self, message: str, conflicts: list[str] | None = None):
        super().__init__(message)
        self.conflicts = conflicts or []


class PrecedenceTable:
    """Mapping of single-character binary operators to their precedence.

    Attributes:
        levels (dict[str, int]): Operator → precedence.
        frozen (bool): True once a parser owns the table; further changes raise.
    """

    def __init__(self, levels: dict[str, int] | None = None) -> None:
        self.levels: dict[str, int] = {}
        self.frozen = False
        if levels:
            self.configure(levels)

    @classmethod
    def from_defaults(cls) -> "PrecedenceTable":
        """Constructs a table preloaded with `<`, `+`, `-` and `*`."""
        return cls(DEFAULT_PRECEDENCE)

    def __contains__(self, op: object) -> bool:
        return op in self.levels

    def __len__(self) -> int:
        return len(self.levels)

    def get(self, op: str) -> int:
        """Returns the precedence of ``op``, or -1 if it is not an operator."""
        return self.levels.get(op, -1)

    def freeze(self) -> None:
        self.frozen = True

    def copy(self) -> "PrecedenceTable":
        """Returns an unfrozen copy, e.g. to start a new parse with extra operators."""
        return PrecedenceTable(dict(self.levels))

    def register(self, op: str, precedence: int) -> None:
        """Adds or redefines a single operator.

        Raises:
            PrecedenceError: If the table is frozen, the operator is not a
                single punctuation character, or the precedence is not a
                positive integer.
        """
        self.configure({op: precedence})

    def configure(self, cfg: dict[str, Any]) -> None:
        """
        Applies several operator definitions at once.

        Every entry is validated before any is applied, so a failing
        configuration leaves the table untouched.

        Args:
            cfg: Maps operator characters to precedences.

        Raises:
            PrecedenceError: If any entry is invalid.
        """
        if self.frozen:
            raise PrecedenceError(
                "Precedence table is frozen; register operators before parsing"
            )
        if not isinstance(cfg, dict):
            raise PrecedenceError("Configuration must be a dict of operator → precedence")

        problems: list[str] = []
        validated: dict[str, int] = {}
        for op, prec in cfg.items():
            reason = self._validate(op, prec)
            if reason:
                problems.append(f"{op!r}: {reason}")
            else:
                validated[op] = prec

        if problems:
            raise PrecedenceError("Invalid operator definition(s)", problems)

        for op, prec in validated.items():
            if op in self.levels and self.levels[op] != prec:
                logger.info(
                    "Operator %r precedence changed %d → %d", op, self.levels[op], prec
                )
            self.levels[op] = prec

    @staticmethod
    def _validate(op: Any, prec: Any) -> str | None:
        if not isinstance(op, str) or len(op) != 1:
            return "operator must be a single character"
        if op.isalnum() or op.isspace() or op in RESERVED_OPERATOR_CHARS:
            return "character cannot be used as an operator"
        if isinstance(prec, bool) or not isinstance(prec, int) or prec <= 0:
            return "precedence must be a positive integer"
        return None

    def load_from_json(self, path: str) -> None:
        """
        Loads operator definitions from a JSON object file and applies them.

        Args:
            path: Path to a JSON file such as ``{"/": 40}``.

        Raises:
            PrecedenceError: If the file cannot be read, is not valid JSON,
                or holds an invalid definition.
        """
        try:
            with open(path, encoding="utf-8") as f:
                raw_cfg = json.load(f)
        except (OSError, ValueError) as e:
            raise PrecedenceError(f"Failed to load precedence file: {e}") from e
        self.configure(raw_cfg)

    def report(self) -> str:
        """Formats the table, tightest-binding operators first."""
        ordered = sorted(self.levels.items(), key=lambda kv: (-kv[1], kv[0]))
        return "\n".join(f"{op:>4} → {prec}" for op, prec in ordered)

    def summary(self) -> dict[str, int]:
        return dict(self.levels)
