import io
import logging
import traceback

from kaleido.kaleido_lexer import CharacterStream, Lexer
from kaleido.kaleido_parser import Parser
from kaleido.kaleido_precedence import PrecedenceTable
from kaleido.kaleido_printer import SourcePrinter

PROMPT = "ready> "


def print_traceback() -> None:
    buf = io.StringIO()
    traceback.print_exc(file=buf)
    print("[error] >>>")
    print(buf.getvalue())


def toggle_trace() -> bool:
    """Flips the package logger between DEBUG and WARNING; returns True if now tracing."""
    pkg_logger = logging.getLogger("kaleido")
    tracing = pkg_logger.getEffectiveLevel() > logging.DEBUG
    pkg_logger.setLevel(logging.DEBUG if tracing else logging.WARNING)
    if tracing and not logging.getLogger().handlers:
        logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    return tracing


def handle_command(src: str, table: PrecedenceTable) -> bool:
    """Runs a `:command` line. Returns False if ``src`` is not a command."""
    if not src.startswith(":"):
        return False
    command = src[1:].strip().lower()
    if command == "trace":
        tracing = toggle_trace()
        print(f"[mode] >>> Trace {'ON' if tracing else 'OFF'}")
    elif command == "prec":
        print(table.report())
    else:
        print(f"[error] >>> Unknown command: {src}")
    return True


def evaluate_line(
    src: str, table: PrecedenceTable, printer: SourcePrinter, verbose: bool = False
) -> None:
    """Parses one line with a fresh lexer/parser pair and echoes the result."""
    parser = Parser(Lexer(CharacterStream.from_string(src)), table)
    nodes = parser.parse()
    for diag in parser.errors:
        print(f"[error] >>> {diag}")
    for node in nodes:
        label = node.kind
        print(f"[{label}] >>> {printer.emit(node)}")
        if verbose:
            print(repr(node))


def start_repl(precedence: PrecedenceTable | None = None, verbose: bool = False) -> None:
    table = precedence if precedence is not None else PrecedenceTable.from_defaults()
    printer = SourcePrinter(table)
    print("Kaleido REPL. Type 'exit' or 'quit' to leave, ':prec' or ':trace' for settings.")

    while True:
        try:
            line = input(PROMPT)
        except EOFError:
            print()
            return
        except KeyboardInterrupt:
            print("\nExiting Kaleido REPL.")
            return

        src = line.strip()
        if src in ("exit", "quit"):
            print("Exiting Kaleido REPL.")
            return
        if not src or src.startswith("#"):
            continue
        if src.lower() == "verbose-mode":
            verbose = not verbose
            print(f"[mode] >>> Verbose mode {'ON' if verbose else 'OFF'}")
            continue
        if handle_command(src, table):
            continue

        try:
            evaluate_line(src, table, printer, verbose)
        except Exception:
            print_traceback()


def main() -> None:
    start_repl()


if __name__ == "__main__":
    main()
