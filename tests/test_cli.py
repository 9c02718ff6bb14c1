import json
import sys
from pathlib import Path
from typing import Any

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from kaleido import kaleido_cli

FIB_SOURCE = "def fib(x) fib(x - 1) + fib(x - 2)\nfib(10)"


def test_run_string_prints_canonical_source(capsys: pytest.CaptureFixture[str]) -> None:
    status = kaleido_cli.run_kaleido(source="5 + 6 * 7", is_string=True)
    out = capsys.readouterr().out.strip()
    assert status == 0
    assert out == "5.0 + 6.0 * 7.0"


def test_run_file_input(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    file_path = tmp_path / "fib.kal"
    file_path.write_text(FIB_SOURCE)
    assert kaleido_cli.run_kaleido(source=str(file_path)) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines == [
        "def fib(x) fib(x - 1.0) + fib(x - 2.0)",
        "fib(10.0)",
    ]


def test_run_rejects_unknown_suffix() -> None:
    with pytest.raises(ValueError, match="Only .kal, .ks files are supported"):
        kaleido_cli.run_kaleido(source="prog.txt")


def test_run_tokens(capsys: pytest.CaptureFixture[str]) -> None:
    kaleido_cli.run_kaleido(source="def f(x)", is_string=True, tokens=True)
    out = capsys.readouterr().out.strip().splitlines()
    assert out == [
        "Token(DEF)",
        "Token(IDENT, 'f')",
        "Token(IDENT, '(')",
        "Token(IDENT, 'x')",
        "Token(IDENT, ')')",
        "Token(EOF)",
    ]


def test_run_json(capsys: pytest.CaptureFixture[str]) -> None:
    kaleido_cli.run_kaleido(source="extern sin(x)", is_string=True, as_json=True)
    data = json.loads(capsys.readouterr().out)
    assert data == [
        {
            "kind": "prototype",
            "value": "sin",
            "params": ["x"],
            "line": 1,
            "col": 8,
            "children": [],
        }
    ]


def test_run_output_file(tmp_path: Path) -> None:
    output_path = tmp_path / "out.kal"
    kaleido_cli.run_kaleido(source="(a - b) - c", is_string=True, out=str(output_path))
    assert output_path.read_text().strip() == "a - b - c"


def test_run_reports_errors(capsys: pytest.CaptureFixture[str]) -> None:
    status = kaleido_cli.run_kaleido(source="5 +", is_string=True)
    captured = capsys.readouterr()
    assert status == 1
    assert "[error] >>> Expected expression" in captured.err
    assert captured.out.strip() == ""


def test_run_with_custom_precedence(capsys: pytest.CaptureFixture[str]) -> None:
    table = kaleido_cli.PrecedenceTable.from_defaults()
    table.register("/", 40)
    kaleido_cli.run_kaleido(source="a + b / c", is_string=True, precedence=table)
    assert capsys.readouterr().out.strip() == "a + b / c"


def test_run_long_operator_chain(capsys: pytest.CaptureFixture[str]) -> None:
    source = " + ".join(["1"] * 2000)
    assert kaleido_cli.run_kaleido(source=source, is_string=True) == 0
    assert capsys.readouterr().out.strip() == " + ".join(["1.0"] * 2000)


def test_run_long_operator_chain_as_json(capsys: pytest.CaptureFixture[str]) -> None:
    source = " - ".join(["x"] * 2000)
    assert kaleido_cli.run_kaleido(source=source, is_string=True, as_json=True) == 0
    out = capsys.readouterr().out
    assert out.count('"kind": "binary"') == 1999
    assert out.count('"kind": "variable"') == 2000


def test_run_deep_nesting_reports_error(capsys: pytest.CaptureFixture[str]) -> None:
    source = "(" * 500 + "1" + ")" * 500 + "\n2"
    assert kaleido_cli.run_kaleido(source=source, is_string=True) == 1
    captured = capsys.readouterr()
    assert "Expression nested deeper than" in captured.err
    assert captured.out.strip() == "2.0"


@pytest.mark.parametrize(
    "value",
    [
        [],
        {},
        [1, "two", None, True, 2.5],
        {"kind": "call", "children": [{"a": []}, {"b": {}}], "params": ["x", "y"]},
    ],
)  # type: ignore[misc]
def test_dump_json_matches_json_dumps(value: Any) -> None:
    assert kaleido_cli.dump_json(value) == json.dumps(value, indent=2)


def test_dump_json_handles_deep_nesting() -> None:
    value: Any = "leaf"
    for _ in range(5000):
        value = {"child": [value]}
    text = kaleido_cli.dump_json(value)
    assert text.count("\"child\"") == 5000
    assert text.startswith("{\n  \"child\": [\n    {")


def test_load_precedence_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    path = tmp_path / "ops.json"
    path.write_text('{"/": 40}')
    monkeypatch.setenv(kaleido_cli.PRECEDENCE_ENV, str(path))
    assert kaleido_cli.load_precedence(None).get("/") == 40


def test_load_precedence_argument_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_path = tmp_path / "env.json"
    env_path.write_text('{"/": 40}')
    arg_path = tmp_path / "arg.json"
    arg_path.write_text('{"%": 35}')
    monkeypatch.setenv(kaleido_cli.PRECEDENCE_ENV, str(env_path))
    table = kaleido_cli.load_precedence(str(arg_path))
    assert "%" in table
    assert "/" not in table


def test_main_entry(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: dict[str, Any] = {}

    def fake_run(**kwargs: Any) -> int:
        calls.update(kwargs)
        return 0

    monkeypatch.setattr(sys, "argv", ["kaleido", "-s", "1 + 2", "--json"])
    monkeypatch.setattr(kaleido_cli, "run_kaleido", fake_run)
    with pytest.raises(SystemExit) as e:
        kaleido_cli.main()
    assert e.value.code == 0
    assert calls["source"] == "1 + 2"
    assert calls["is_string"] is True
    assert calls["as_json"] is True


def test_main_exit_status_on_syntax_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setattr(sys, "argv", ["kaleido", "-s", "(1"])
    with pytest.raises(SystemExit) as e:
        kaleido_cli.main()
    assert e.value.code == 1
    assert "Expected ')'" in capsys.readouterr().err


def test_main_bad_precedence_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    path = tmp_path / "ops.json"
    path.write_text('{"a": 40}')
    monkeypatch.setattr(sys, "argv", ["kaleido", "--precedence", str(path), "-s", "1"])
    with pytest.raises(SystemExit) as e:
        kaleido_cli.main()
    assert e.value.code == 2
    err = capsys.readouterr().err
    assert "Invalid operator definition" in err
    assert "'a'" in err


def test_main_repl_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    called: dict[str, Any] = {}
    monkeypatch.setattr(sys, "argv", ["kaleido", "--repl", "--verbose"])
    monkeypatch.setattr(
        "kaleido.kaleido_repl.start_repl",
        lambda precedence=None, verbose=False: called.update(verbose=verbose),
    )
    kaleido_cli.main()
    assert called == {"verbose": True}


def test_main_no_args_starts_repl(monkeypatch: pytest.MonkeyPatch) -> None:
    called: list[bool] = []
    monkeypatch.setattr(sys, "argv", ["kaleido"])
    monkeypatch.setattr(
        "kaleido.kaleido_repl.start_repl",
        lambda precedence=None, verbose=False: called.append(True),
    )
    kaleido_cli.main()
    assert called == [True]


@settings(suppress_health_check=[HealthCheck.function_scoped_fixture])  # type: ignore[misc]
@given(st.text(alphabet="xy12.+-*<(),# \n", max_size=40))  # type: ignore[misc]
def test_run_never_crashes(capsys: pytest.CaptureFixture[str], source: str) -> None:
    status = kaleido_cli.run_kaleido(source=source, is_string=True)
    capsys.readouterr()
    assert status in (0, 1)
