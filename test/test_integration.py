"""
Integration tests running the example scripts end to end
"""

import pytest
from pathlib import Path
from interpreter import create_interpreter
from error_handling import UnboundLocal


EXPECTED_OUTPUT = {
    "adding.scl": "10\n6\n3\n",
    "nesting.scl": "adding 5 7\nadding 2 12\nadding 14 9\ntotal: 23\n",
    "scopes.scl": "local x!\nglobal x\ncounter: 11\n42\n",
}


class TestExampleScripts:
  """Run every example and compare what it prints"""

  @pytest.mark.parametrize("script", sorted(EXPECTED_OUTPUT))
  def test_example_output(self, script, examples_dir, interp, output):
    script_path = examples_dir / script
    if not script_path.exists():
      pytest.skip(f"Example {script_path} not found")

    interp.run_file(str(script_path))
    assert "".join(output) == EXPECTED_OUTPUT[script]

  def test_unbound_example_fails(self, examples_dir, interp, output):
    script_path = examples_dir / "unbound.scl"
    with pytest.raises(UnboundLocal) as exc_info:
      interp.run_file(str(script_path))
    assert exc_info.value.line == 6
    assert output == []

  def test_every_example_parses(self, examples_dir, parser):
    for script_path in sorted(Path(examples_dir).glob("*.scl")):
      assert parser.parse_file(str(script_path)), f"{script_path.name} parsed to nothing"

  def test_nesting_trace(self, examples_dir):
    interp = create_interpreter(trace=True, output=lambda text: None)
    interp.run_file(str(examples_dir / "nesting.scl"))
    add_calls = [entry for entry in interp.trace if entry['callee'] == 'add']
    assert [entry['result']['value'] for entry in add_calls] == [12, 14, 23]
    assert all(entry['depth'] == 0 for entry in add_calls)


class TestSessionState:
  """Runs through one interpreter share the global frame"""

  def test_definitions_persist_between_runs(self, interp):
    interp.run("def square(n):\n    return n * n\nend\n")
    interp.run("result = square(9)\n")
    assert interp.lookup('result')['value'] == 81
    assert set(interp.global_names()) == {'square', 'result'}

  def test_separate_interpreters_are_isolated(self):
    first = create_interpreter(output=lambda text: None)
    second = create_interpreter(output=lambda text: None)
    first.run("shared = 1\n")
    assert 'shared' not in second.global_names()
