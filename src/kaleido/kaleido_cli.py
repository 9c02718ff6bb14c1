"""
Kaleido CLI Entrypoint.

This module provides the command-line interface for the Kaleido front end.
It lexes and parses a program and prints what it found.

Features:
    - Read source from `.kal`/`.ks` files or inline strings.
    - Dump the token stream, the canonical source, or the AST as JSON.
    - Output to console or file.
    - Load extra binary operators from a JSON precedence file.
    - Launch an interactive REPL.

Example usage:
    kaleido fib.kal
    kaleido -s "def add(a b) a + b" --json
    kaleido fib.kal --tokens -o fib.tokens
    kaleido --precedence ops.json prog.kal --trace
    kaleido --repl

Configuration:
    When `--precedence` is not given, the `KALEIDO_PRECEDENCE` environment
    variable may name a precedence JSON file.

Functions:
    run_kaleido(...) -> int:
        Executes the pipeline (read → lex → parse → print/write) and returns an exit status.

    configure_logging(trace: bool) -> None:
        Sets up stdlib logging; DEBUG traces the lexer and parser.

    dump_json(value) -> str:
        Indented JSON for AST dictionaries of any depth.

    main() -> None:
        Parses CLI arguments and invokes the appropriate action (REPL or run).
"""

import argparse
import io
import json
import logging
import os
import sys
from typing import Any, BinaryIO

from kaleido.kaleido_constants import SOURCE_SUFFIXES
from kaleido.kaleido_lexer import CharacterStream, Lexer
from kaleido.kaleido_parser import Parser
from kaleido.kaleido_precedence import PrecedenceError, PrecedenceTable
from kaleido.kaleido_printer import SourcePrinter

PRECEDENCE_ENV = "KALEIDO_PRECEDENCE"

logger = logging.getLogger(__name__)


def configure_logging(trace: bool = False) -> None:
    level = logging.DEBUG if trace else logging.WARNING
    logging.basicConfig(
        level=level, format="%(levelname)s %(name)s: %(message)s", force=True
    )


def dump_json(value: Any, indent: int = 2) -> str:
    """Same text as `json.dumps(value, indent=indent)`, for nesting of any depth.

    Containers are expanded from an explicit work stack; scalars and keys go
    through `json.dumps`.
    """
    out: list[str] = []
    work: list[str | tuple[Any, int]] = [(value, 0)]
    while work:
        item = work.pop()
        if isinstance(item, str):
            out.append(item)
            continue
        obj, level = item
        inner = "\n" + " " * (indent * (level + 1))
        outer = "\n" + " " * (indent * level)
        if isinstance(obj, dict) and obj:
            work.append(outer + "}")
            for i, (key, val) in reversed(list(enumerate(obj.items()))):
                work.append((val, level + 1))
                work.append(("," if i else "{") + inner + json.dumps(str(key)) + ": ")
        elif isinstance(obj, list) and obj:
            work.append(outer + "]")
            for i, val in reversed(list(enumerate(obj))):
                work.append((val, level + 1))
                work.append(("," if i else "[") + inner)
        else:
            out.append(json.dumps(obj))
    return "".join(out)


def load_precedence(path: str | None) -> PrecedenceTable:
    """Builds the default table, extended from ``path`` or ``$KALEIDO_PRECEDENCE``.

    Raises:
        PrecedenceError: If the file is unreadable or holds invalid entries.
    """
    table = PrecedenceTable.from_defaults()
    path = path or os.getenv(PRECEDENCE_ENV)
    if path:
        logger.info("Loading operator precedence from %s", path)
        table.load_from_json(path)
    return table


def run_kaleido(
    source: str,
    is_string: bool = False,
    tokens: bool = False,
    as_json: bool = False,
    out: str | None = None,
    precedence: PrecedenceTable | None = None,
) -> int:
    """
    Run the Kaleido front end: read, lex, parse, and print or write the result.

    Args:
        source (str): The Kaleido source code or path to a source file.
        is_string (bool): If True, treats `source` as raw code instead of a file path.
        tokens (bool): Print the token stream instead of parsing.
        as_json (bool): Print the AST as JSON instead of canonical source.
        out (str | None): Optional path to write the output to instead of stdout.
        precedence (PrecedenceTable | None): Operator table; built-in operators if None.

    Returns:
        int: 0 on success, 1 if any syntax error was reported.

    Raises:
        ValueError: If `is_string` is False and the source has an unknown suffix.
    """
    if not is_string and not source.endswith(SOURCE_SUFFIXES):
        raise ValueError(
            f"Only {', '.join(SOURCE_SUFFIXES)} files are supported."
        )

    if is_string:
        output, status = _process(
            io.BytesIO(source.encode("utf-8")), tokens, as_json, precedence
        )
    else:
        with open(source, "rb") as f:
            output, status = _process(f, tokens, as_json, precedence)

    if out:
        with open(out, "w", encoding="utf-8") as f:
            f.write(output + "\n")
    else:
        print(output)
    return status


def _process(
    stream: BinaryIO,
    tokens: bool,
    as_json: bool,
    precedence: PrecedenceTable | None,
) -> tuple[str, int]:
    lexer = Lexer(CharacterStream(stream))

    if tokens:
        return "\n".join(repr(tok) for tok in lexer.tokens()), 0

    parser = Parser(lexer, precedence)
    ast = parser.parse()
    for diag in parser.errors:
        print(f"[error] >>> {diag}", file=sys.stderr)

    if as_json:
        output = dump_json([node.to_dict() for node in ast])
    else:
        output = SourcePrinter(parser.precedence).print_program(ast)
    return output, 1 if parser.errors else 0


def main() -> None:
    """
    Entry point for the Kaleido CLI.

    Launches the REPL if no arguments are passed or `--repl` is specified;
    otherwise runs the front end over the given source and exits with its status.
    """
    if len(sys.argv) == 1:
        from kaleido.kaleido_repl import start_repl

        configure_logging()
        start_repl(precedence=load_precedence(None))
        return
    parser = argparse.ArgumentParser(prog="kaleido")
    parser.add_argument("source", nargs="?", help="Filename or raw source (with -s)")
    parser.add_argument(
        "-s", "--string", action="store_true", help="Interpret source as literal string"
    )
    parser.add_argument(
        "--tokens", action="store_true", help="Print the token stream instead of the AST"
    )
    parser.add_argument(
        "--json", dest="as_json", action="store_true", help="Print the AST as JSON"
    )
    parser.add_argument("-o", "--out", metavar="OUTFILE", help="Output to file")
    parser.add_argument(
        "--precedence",
        metavar="FILE",
        help=f"JSON file of extra binary operators (default: ${PRECEDENCE_ENV})",
    )
    parser.add_argument(
        "--trace", action="store_true", help="Log lexer and parser steps at DEBUG"
    )
    parser.add_argument(
        "--repl", action="store_true", help="Launch interactive REPL"
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Verbose REPL mode (if --repl)"
    )

    args = parser.parse_args()
    configure_logging(args.trace)

    try:
        table = load_precedence(args.precedence)
    except PrecedenceError as e:
        print(f"[error] >>> {e}", file=sys.stderr)
        for conflict in e.conflicts:
            print(f" - {conflict}", file=sys.stderr)
        sys.exit(2)

    if args.repl or args.source is None:
        from kaleido.kaleido_repl import start_repl

        start_repl(precedence=table, verbose=args.verbose)
        return

    status = run_kaleido(
        source=args.source,
        is_string=args.string,
        tokens=args.tokens,
        as_json=args.as_json,
        out=args.out,
        precedence=table,
    )
    sys.exit(status)


if __name__ == "__main__" and not any("pytest" in arg for arg in sys.argv):
    main()
