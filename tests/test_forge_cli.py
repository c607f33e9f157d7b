"""
Tests for the forge2 command line interface.
"""

import json
import textwrap

import pytest
from forge2.__main__ import main


@pytest.fixture
def doors(tmp_path):
    """A pair of script files sharing one door."""
    schemas = tmp_path / "schemas.forge"
    schemas.write_text(textwrap.dedent("""
        schema door:
          required:
            id: string
          optional:
            open: bool = false
    """))
    galley = tmp_path / "galley.forge"
    galley.write_text(textwrap.dedent("""
        door galley_exit:
          id: "galley_exit"

        let frames = 0

        on "interact" when event.target == galley_exit.id:
          set galley_exit.open: not galley_exit.open

        on "tick":
          set frames: frames + 1
    """))
    return schemas, galley


class TestCheck:
    """Test `check`."""

    def test_ok(self, doors, capsys):
        """Valid files report their statement counts."""
        schemas, galley = doors
        assert main(["check", str(schemas), str(galley)]) == 0
        out = capsys.readouterr().out
        assert "OK: schemas.forge - 1 statement(s), 0 import(s)" in out
        assert "OK: galley.forge - 4 statement(s), 0 import(s)" in out

    def test_syntax_error(self, tmp_path, capsys):
        """Parse errors are printed with their location and exit 1."""
        bad = tmp_path / "bad.forge"
        bad.write_text("let x = 1\nlet = 2\n")
        assert main(["check", str(bad)]) == 1
        err = capsys.readouterr().err
        assert "error[E101]" in err
        assert f"{bad}:2:5" in err

    def test_json_with_import_warning(self, tmp_path, capsys):
        """--json prints diagnostics; imports produce W001 warnings only."""
        script = tmp_path / "imports.forge"
        script.write_text('import "lib/doors.forge"\nlet x = 1\n')
        assert main(["check", "--json", str(script)]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["error_count"] == 0
        assert report["warning_count"] == 1
        assert report["diagnostics"][0]["code"] == "W001"
        assert report["diagnostics"][0]["range"]["start"]["line"] == 1

    def test_missing_file(self, tmp_path, capsys):
        """A missing file is reported."""
        assert main(["check", str(tmp_path / "nope.forge")]) == 1
        assert "File not found" in capsys.readouterr().err


class TestAst:
    """Test `ast`."""

    def test_prints_tree(self, tmp_path, capsys):
        """The syntax tree is printed."""
        script = tmp_path / "let.forge"
        script.write_text("let x = 1 + 2\n")
        assert main(["ast", str(script)]) == 0
        out = capsys.readouterr().out
        assert "Program" in out
        assert "LetStatement" in out
        assert "BinaryExpression" in out

    def test_lexer_error(self, tmp_path, capsys):
        """Compile errors exit 1."""
        script = tmp_path / "bad.forge"
        script.write_text('let s = "open\n')
        assert main(["ast", str(script)]) == 1
        assert "E002" in capsys.readouterr().err


class TestRun:
    """Test `run`."""

    def test_emit_and_show(self, doors, capsys):
        """Files load into one VM; events and ticks drive it."""
        schemas, galley = doors
        code = main([
            "run", str(schemas), str(galley),
            "--emit", "interact", "--data", "{target: galley_exit}",
            "--ticks", "3", "--show", "galley_exit", "--show", "frames",
        ])
        assert code == 0
        out = capsys.readouterr().out
        assert "galley_exit = door { open: true, id: galley_exit }" in out
        assert "frames = 3" in out

    def test_print_output(self, tmp_path, capsys):
        """Script print goes to stdout."""
        script = tmp_path / "hello.forge"
        script.write_text('print("hello", 42)\n')
        assert main(["run", str(script)]) == 0
        assert capsys.readouterr().out == "hello 42\n"

    def test_config(self, tmp_path, capsys):
        """--config applies a loop ceiling."""
        config = tmp_path / "forge.yaml"
        config.write_text("max_loop_iterations: 5\n")
        script = tmp_path / "spin.forge"
        script.write_text("while true:\n  let x = 1\n")
        assert main(["run", "--config", str(config), str(script)]) == 1
        assert "E406" in capsys.readouterr().err

    def test_bad_data(self, doors, capsys):
        """--data must be a YAML mapping."""
        schemas, _ = doors
        assert main(["run", str(schemas), "--emit", "x", "--data", "[1, 2]"]) == 1
        assert "--data must be a mapping" in capsys.readouterr().err

    def test_runtime_error(self, tmp_path, capsys):
        """Runtime errors exit 1 with the diagnostic."""
        script = tmp_path / "boom.forge"
        script.write_text("let y = missing + 1\n")
        assert main(["run", str(script)]) == 1
        assert "Undefined variable: missing" in capsys.readouterr().err

    def test_missing_file(self, tmp_path, capsys):
        """Unreadable files exit 1."""
        assert main(["run", str(tmp_path / "nope.forge")]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_native_error(self, tmp_path, capsys):
        """A failing builtin is reported as a diagnostic, not a traceback."""
        script = tmp_path / "domain.forge"
        script.write_text("let x = sqrt(-1)\n")
        assert main(["run", str(script)]) == 1
        err = capsys.readouterr().err
        assert "error[E400]" in err
        assert "Error in sqrt()" in err
        assert "Traceback" not in err

    def test_runaway_recursion(self, tmp_path, capsys):
        """Unbounded recursion exits 1 with E408."""
        config = tmp_path / "forge.yaml"
        config.write_text("max_call_depth: 40\n")
        script = tmp_path / "loop.forge"
        script.write_text("fn f(n):\n  return f(n + 1)\nf(0)\n")
        assert main(["run", "--config", str(config), str(script)]) == 1
        assert "error[E408]" in capsys.readouterr().err
