"""
Semantic analysis tests
Scope analysis of function bodies and the static errors reported before a
program runs
"""

import pytest
from semantics import analyze_program, make_scope_info, scope_declare_global
from error_handling import ScopelabSemanticsError


def analyze(parser, code):
  return analyze_program(parser.parse_string(code))


class TestScopeAnalysis:
  """Which names are local to a function body"""

  def test_parameters_are_local(self, parser):
    definition = analyze(parser, "def add(x, y=1):\n    return x + y\nend\n")[0]['value']
    assert definition['local_names'] == ["x", "y"]
    assert definition['global_names'] == []

  def test_assignment_anywhere_makes_name_local(self, parser):
    code = (
        "def f():\n"
        "    print(x)\n"
        "    x = 5\n"
        "end\n"
    )
    definition = analyze(parser, code)[0]['value']
    assert "x" in definition['local_names']

  def test_reads_alone_do_not_make_names_local(self, parser):
    definition = analyze(parser, "def f():\n    return x\nend\n")[0]['value']
    assert definition['local_names'] == []

  def test_global_declaration_excludes_name_from_locals(self, parser):
    code = (
        "def bump():\n"
        "    global counter\n"
        "    counter += 1\n"
        "end\n"
    )
    definition = analyze(parser, code)[0]['value']
    assert definition['local_names'] == []
    assert definition['global_names'] == ["counter"]

  def test_nested_def_binds_name_in_enclosing_body(self, parser):
    code = (
        "def outer():\n"
        "    def inner():\n"
        "        return 1\n"
        "    end\n"
        "    return inner()\n"
        "end\n"
    )
    definition = analyze(parser, code)[0]['value']
    assert definition['local_names'] == ["inner"]
    assert definition['body'][0]['value']['local_names'] == []

  def test_module_level_global_is_allowed(self, parser):
    nodes = analyze(parser, "global x\nx = 1\n")
    assert nodes[0]['type'] == "GLOBAL"


class TestDesugaring:
  """Operators become calls of fixed builtin operators"""

  def test_binary_operator_becomes_call(self, parser):
    node = analyze(parser, "1 + 2\n")[0]['value']
    assert node['type'] == "FUNCTION_CALL"
    assert node['value']['callee'] == "+"
    assert node['value']['operator'] is True
    assert [arg['value'] for arg in node['value']['args']] == [1, 2]

  def test_unary_minus_becomes_neg(self, parser):
    node = analyze(parser, "-3\n")[0]['value']
    assert node['value']['callee'] == "neg"

  def test_augmented_assignment_reads_then_binds(self, parser):
    node = analyze(parser, "x = 1\nx *= 3\n")[1]
    assert node['type'] == "ASSIGN"
    call = node['value']['value']['value']
    assert call['callee'] == "*"
    assert call['args'][0] == {'type': "IDENTIFIER", 'value': "x", 'line': 2}

  def test_keywords_kept_in_order(self, parser):
    node = analyze(parser, "f(1, b=2, a=3)\n")[0]['value']
    assert [name for name, _ in node['value']['keywords']] == ["b", "a"]
    assert node['value']['operator'] is False


class TestStaticErrors:
  """Errors reported before anything runs"""

  def test_non_default_after_default(self, parser):
    with pytest.raises(ScopelabSemanticsError, match="non-default argument 'y' follows default argument"):
      analyze(parser, "def f(x=1, y):\n    return x\nend\n")

  def test_duplicate_parameter(self, parser):
    with pytest.raises(ScopelabSemanticsError, match="duplicate argument 'x'"):
      analyze(parser, "def f(x, x):\n    return x\nend\n")

  def test_repeated_keyword(self, parser):
    with pytest.raises(ScopelabSemanticsError, match="keyword argument repeated: x"):
      analyze(parser, "f(x=1, x=2)\n")

  def test_positional_after_keyword(self, parser):
    with pytest.raises(ScopelabSemanticsError, match="positional argument follows keyword argument"):
      analyze(parser, "f(x=1, 2)\n")

  def test_return_outside_function(self, parser):
    with pytest.raises(ScopelabSemanticsError, match="'return' outside function") as exc_info:
      analyze(parser, "x = 1\nreturn x\n")
    assert exc_info.value.line == 2

  def test_global_after_use(self, parser):
    code = "def f():\n    print(x)\n    global x\nend\n"
    with pytest.raises(ScopelabSemanticsError, match="used prior to global declaration"):
      analyze(parser, code)

  def test_global_after_assignment(self, parser):
    code = "def f():\n    x = 1\n    global x\nend\n"
    with pytest.raises(ScopelabSemanticsError, match="assigned to before global declaration"):
      analyze(parser, code)

  def test_parameter_declared_global(self):
    scope = make_scope_info('function', 'f', ['x'])
    with pytest.raises(ScopelabSemanticsError, match="is parameter and global"):
      scope_declare_global(scope, 'x')

  def test_errors_raised_before_running(self, parser, interp, output):
    """A static error later in the program stops the earlier statements from running"""
    with pytest.raises(ScopelabSemanticsError):
      interp.run("print('too early')\nreturn 1\n")
    assert output == []
