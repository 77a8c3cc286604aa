"""
Command line tests
"""

import sys
import pytest
import main
import interpreter
from interpreter import create_interpreter


@pytest.fixture
def script(tmp_path):
  """Write a script to a temporary file and return its path"""
  def write(code, name="script.scl"):
    path = tmp_path / name
    path.write_text(code)
    return str(path)
  return write


class TestRunScript:

  def test_run_prints_output(self, script, capsys):
    main.run_script_file(script("print(1 + 2)\n"))
    assert capsys.readouterr().out == "3\n"

  def test_runtime_error_exits(self, script, capsys):
    with pytest.raises(SystemExit) as exc_info:
      main.run_script_file(script("x = 1\nprint(y)\n"))
    assert exc_info.value.code == 1
    out = capsys.readouterr().out
    assert "NameNotFound: name 'y' is not defined" in out
    assert "line 2" in out

  def test_parse_error_exits(self, script, capsys):
    with pytest.raises(SystemExit):
      main.run_script_file(script("def f(:\nend\n"))
    assert "Parse error" in capsys.readouterr().out

  def test_semantic_error_exits(self, script, capsys):
    with pytest.raises(SystemExit):
      main.run_script_file(script("return 1\n"))
    assert "'return' outside function" in capsys.readouterr().out

  def test_trace_flag(self, script, capsys, monkeypatch):
    path = script("def add(x, y):\n    return x + y\nend\nadd(add(1, 2), 3)\n")
    monkeypatch.setattr(sys, "argv", ["main.py", "--trace", path])
    main.main()
    out = capsys.readouterr().out
    assert "Call trace:" in out
    assert "add(1, 2) -> 3" in out
    assert "add(3, 3) -> 6" in out

  def test_max_depth_flag(self, script, capsys, monkeypatch):
    path = script("def f(n):\n    return f(n + 1)\nend\nf(0)\n")
    monkeypatch.setattr(sys, "argv", ["main.py", "--max-depth", "5", path])
    with pytest.raises(SystemExit):
      main.main()
    assert "RecursionLimit" in capsys.readouterr().out

  def test_missing_script(self, tmp_path, capsys, monkeypatch):
    monkeypatch.setattr(sys, "argv", ["main.py", str(tmp_path / "nope.scl")])
    with pytest.raises(SystemExit):
      main.main()
    assert "does not exist" in capsys.readouterr().out


class TestInspectModes:

  def test_parse_mode(self, script, capsys):
    main.parse_file(script("x = 5\n"))
    out = capsys.readouterr().out
    assert "Parsed 1 top-level statements" in out
    assert "ASSIGN" in out

  def test_analyze_mode_shows_locals(self, script, capsys):
    code = (
        "def bump(step):\n"
        "    global counter\n"
        "    counter += step\n"
        "    extra = 1\n"
        "end\n"
    )
    main.analyze_file(script(code))
    out = capsys.readouterr().out
    assert "FUNCTION_DEF bump(step)" in out
    assert "locals:  extra, step" in out
    assert "globals: counter" in out


class TestHelpers:

  def test_block_delta(self):
    assert main.block_delta("def f(x):") == 1
    assert main.block_delta("    def inner():") == 1
    assert main.block_delta("end") == -1
    assert main.block_delta("  end  # done") == -1
    assert main.block_delta("ending = 1") == 0
    assert main.block_delta("default = 2") == 0

  def test_format_trace_indents_by_depth(self):
    interp = create_interpreter(trace=True)
    interp.run("def add(x, y=1):\n    return x + y\nend\n")
    interp.clear_trace()
    interp.evaluate("add(2)")
    assert main.format_trace(interp.trace) == "  +(2, 1) -> 3\nadd(2) -> 3"


class TestInteractive:
  """The interactive session driven with scripted input"""

  def run_session(self, monkeypatch, lines):
    feed = iter(lines)

    def fake_input(prompt=""):
      try:
        return next(feed)
      except StopIteration:
        raise EOFError

    monkeypatch.setattr("builtins.input", fake_input)
    monkeypatch.setattr(main, "setup_readline", lambda: None)
    main.run_interactive_mode()

  def test_echo_and_def_block(self, monkeypatch, capsys):
    self.run_session(monkeypatch, [
        "def add(x, y=1):",
        "    return x + y",
        "end",
        "add(5)",
        "x = 3",
        "exit",
    ])
    out = capsys.readouterr().out
    assert "\n6\n" in out

  def test_errors_keep_session(self, monkeypatch, capsys):
    self.run_session(monkeypatch, ["missing", "'still here'"])
    out = capsys.readouterr().out
    assert "NameNotFound: name 'missing' is not defined" in out
    assert "'still here'" in out
    assert "Goodbye!" in out

  def test_env_and_trace_commands(self, monkeypatch, capsys):
    self.run_session(monkeypatch, [
        "def twice(n):",
        "    return n * 2",
        "end",
        "twice(4)",
        ":trace",
        ":env",
        "exit",
    ])
    out = capsys.readouterr().out
    assert "twice(4) -> 8" in out
    assert "twice = <function twice>" in out

  def test_parse_command(self, monkeypatch, capsys):
    self.run_session(monkeypatch, [":parse f(1)", "exit"])
    assert "FUNCTION_CALL" in capsys.readouterr().out

  def test_unexpected_error_keeps_session(self, monkeypatch, capsys):
    original_run = interpreter.Interpreter.run

    def flaky_run(self, text, filename="<input>"):
      if "boom" in text:
        raise ValueError("boom")
      return original_run(self, text, filename)

    monkeypatch.setattr(interpreter.Interpreter, "run", flaky_run)
    self.run_session(monkeypatch, ["boom", "'after'"])
    out = capsys.readouterr().out
    assert "Unexpected error: boom" in out
    assert "'after'" in out
    assert "Goodbye!" in out
