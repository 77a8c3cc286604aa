"""
Scopelab Interpreter
Reduces expressions innermost-first (call-by-value, arguments left to right),
runs statements and creates one frame per call
"""

from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from error_handling import ScopelabRuntimeError, NotCallable, RecursionLimit
from utilities import make_value, NO_VALUE, to_value, format_call, show_value
from environment import (
  make_frame,
  create_global_frame,
  env_lookup,
  env_assign,
  env_declare_global
)
from arguments import make_parameter, make_parameter_spec, make_call_arguments, bind_arguments
from stdlib import BUILTIN_OPERATORS, create_builtins
from parsing import create_parser
from semantics import analyze_program, analyze_cst_node


# Active sandbox calls allowed at once. Each sandbox call costs several Python
# frames, so this has to stay well below Python's own recursion limit.
DEFAULT_MAX_DEPTH = 100


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def default_output(text: str) -> None:
  """Output observer used when none is given: write to stdout"""
  print(text, end='')


def make_execution_context(output: Optional[Callable[[str], None]] = None, trace: bool = False,
                           max_depth: int = DEFAULT_MAX_DEPTH) -> Dict:
  """
  Create the execution context threaded through evaluation

  Args:
      output: Observer receiving every piece of text print emits
      trace: Record every completed call in context['trace']
      max_depth: Maximum number of active calls
  """
  return {
      'output': output or default_output,
      'tracing': trace,
      'trace': [],
      'call_stack': [],
      'max_depth': max_depth
  }


def make_function(name: str, params: List[Dict], body: Any, closure: Dict,
                  local_names: Optional[Sequence[str]] = None) -> Dict:
  """
  Create a function value

  body is either a list of AST statements or a host callable taking
  (frame, context); closure is the frame the function was defined in.
  """
  return make_value({
      'name': name,
      'params': params,
      'body': body,
      'closure': closure,
      'local_names': list(local_names or [])
  }, "function")


def make_trace_entry(callee: str, args: List[Dict], keywords: Dict[str, Dict],
                     result: Dict, depth: int) -> Dict:
  """One completed call, recorded in the order calls finish"""
  return {
      'callee': callee,
      'args': args,
      'keywords': keywords,
      'result': result,
      'depth': depth
  }


# ============================================================================
# EXPRESSION REDUCER
# ============================================================================

def eval_ast(ast_node: Dict, env: Dict, debug: bool = False, context: Optional[Dict] = None) -> Dict:
  """
  Reduce an expression node to a single runtime value.
  Frames are mutable, so unlike statements nothing but the value comes back.
  """
  if context is None:
    context = make_execution_context()

  if debug:
    print(f"Evaluating: {ast_node['type']}")

  node_type = ast_node['type']

  if node_type == "NUMBER":
    return eval_number(ast_node, env, debug, context)
  elif node_type == "STRING":
    return make_value(ast_node['value'], "str")
  elif node_type == "BOOL":
    return make_value(ast_node['value'], "bool")
  elif node_type == "NONE":
    return NO_VALUE
  elif node_type == "IDENTIFIER":
    return eval_identifier(ast_node, env, debug, context)
  elif node_type == "FUNCTION_CALL":
    return eval_function_call(ast_node, env, debug, context)

  raise ScopelabRuntimeError(f"cannot evaluate {node_type} as an expression", ast_node.get('line'))


def eval_number(ast_node: Dict, env: Dict, debug: bool = False, context: Optional[Dict] = None) -> Dict:
  """Evaluate number literal"""
  value = ast_node['value']
  return make_value(value, "float" if isinstance(value, float) else "int")


def eval_identifier(ast_node: Dict, env: Dict, debug: bool = False, context: Optional[Dict] = None) -> Dict:
  """Evaluate identifier by looking it up in the frame chain"""
  return env_lookup(env, ast_node['value'])


def eval_function_call(ast_node: Dict, env: Dict, debug: bool = False, context: Optional[Dict] = None) -> Dict:
  """
  Evaluate a call node: resolve the callee, reduce every argument to a value
  left to right (positional first, then keywords), then invoke
  """
  call = ast_node['value']
  name = call['callee']

  if call['operator']:
    callee = BUILTIN_OPERATORS[name]
  else:
    callee = env_lookup(env, name)

  args = [eval_ast(arg, env, debug, context) for arg in call['args']]
  keywords = {}
  for key, arg in call['keywords']:
    keywords[key] = eval_ast(arg, env, debug, context)

  return call_function(callee, args, keywords, context, debug, name)


def call_function(func: Dict, positional: List[Dict], keywords: Dict[str, Dict],
                  context: Dict, debug: bool = False, call_name: Optional[str] = None) -> Dict:
  """Invoke a function or builtin value with already-reduced arguments"""
  if func['type'] == 'builtin_function_or_method':
    name = call_name or func['value']['name']
    if debug:
      print(f"Calling builtin {format_call(name, positional, keywords)}")
    result = func['value']['impl'](positional, keywords, context)
  elif func['type'] == 'function':
    name = call_name or func['value']['name']
    if debug:
      print(f"Calling {format_call(name, positional, keywords)}")
    result = invoke_function(func['value'], positional, keywords, context, debug)
  else:
    raise NotCallable(f"'{func['type']}' object is not callable")

  if context['tracing']:
    context['trace'].append(
        make_trace_entry(name, positional, keywords, result, len(context['call_stack'])))
  if debug:
    print(f"  {format_call(name, positional, keywords)} -> {show_value(result)}")

  return result


def invoke_function(function: Dict, positional: List[Dict], keywords: Dict[str, Dict],
                    context: Dict, debug: bool = False) -> Dict:
  """
  Run a function body in a fresh frame

  The frame's parent is the frame the function was defined in. It is pushed
  on the call stack for the duration of the call and popped on the way out,
  whether the body returns or raises.
  """
  name = function['name']
  bound = bind_arguments(function['params'], make_call_arguments(positional, keywords), name)

  if len(context['call_stack']) >= context['max_depth']:
    raise RecursionLimit("maximum recursion depth exceeded")

  frame = make_frame(function['closure'], bound, function['local_names'], name)
  context['call_stack'].append(frame)
  try:
    body = function['body']
    if callable(body):
      return to_value(body(frame, context))
    returned, value = exec_body(body, frame, debug, context)
    return value if returned else NO_VALUE
  finally:
    context['call_stack'].pop()


# ============================================================================
# STATEMENTS
# ============================================================================

def eval_function_def(ast_node: Dict, env: Dict, debug: bool = False, context: Optional[Dict] = None) -> Dict:
  """Create a function value and bind it; defaults are evaluated now, once"""
  definition = ast_node['value']
  params = []
  for param in definition['params']:
    default = eval_ast(param['default'], env, debug, context) if param['has_default'] else None
    params.append(make_parameter(param['name'], param['has_default'], default))

  func = make_function(definition['name'], params, definition['body'], env,
                       definition['local_names'])
  env_assign(env, definition['name'], func)

  if debug:
    print(f"Defined function: {definition['name']}")
  return func


def exec_statement(stmt: Dict, env: Dict, debug: bool = False,
                   context: Optional[Dict] = None) -> Tuple[bool, Dict]:
  """
  Execute one statement

  Returns:
      (returned, value): returned is True only for a return statement;
      value is the returned value or an expression statement's value
  """
  stmt_type = stmt['type']

  if debug:
    print(f"Executing: {stmt_type} (line {stmt.get('line')})")

  try:
    if stmt_type == "FUNCTION_DEF":
      eval_function_def(stmt, env, debug, context)
    elif stmt_type == "ASSIGN":
      value = eval_ast(stmt['value']['value'], env, debug, context)
      env_assign(env, stmt['value']['name'], value)
    elif stmt_type == "GLOBAL":
      for name in stmt['value']['names']:
        env_declare_global(env, name)
    elif stmt_type == "RETURN":
      if stmt['value'] is None:
        return True, NO_VALUE
      return True, eval_ast(stmt['value'], env, debug, context)
    elif stmt_type == "EXPR_STMT":
      return False, eval_ast(stmt['value'], env, debug, context)
    else:
      raise ScopelabRuntimeError(f"cannot execute {stmt_type}")
  except ScopelabRuntimeError as e:
    if e.line is None:
      e.line = stmt.get('line')
    raise

  return False, NO_VALUE


def exec_body(statements: List[Dict], env: Dict, debug: bool = False,
              context: Optional[Dict] = None) -> Tuple[bool, Dict]:
  """Execute statements in order, stopping at the first return"""
  for stmt in statements:
    returned, value = exec_statement(stmt, env, debug, context)
    if returned:
      return True, value
  return False, NO_VALUE


# ============================================================================
# PROGRAM EVALUATION
# ============================================================================

def eval_program(ast_nodes: List[Dict], env: Dict, debug: bool = False,
                 context: Optional[Dict] = None) -> Dict:
  """
  Run top-level statements in the global frame.
  Returns the value of the last statement if it was an expression, else NO_VALUE.
  """
  if context is None:
    context = make_execution_context()

  result = NO_VALUE
  for ast_node in ast_nodes:
    try:
      _, value = exec_statement(ast_node, env, debug, context)
    except RecursionError as e:
      raise RecursionLimit("maximum recursion depth exceeded", ast_node.get('line')) from e
    result = value if ast_node['type'] == "EXPR_STMT" else NO_VALUE
  return result


class Interpreter:
  """
  A sandbox session

  Everything run through one Interpreter shares its global frame, so
  definitions made by one run are visible to the next.
  """

  def __init__(self, debug: bool = False, trace: bool = False,
               output: Optional[Callable[[str], None]] = None, max_depth: int = DEFAULT_MAX_DEPTH):
    self.debug = debug
    self.parser = create_parser(debug)
    self.context = make_execution_context(output, trace, max_depth)
    self.builtins = create_builtins()
    self.global_frame = create_global_frame(self.builtins)

  def run(self, source: str, filename: str = "<input>") -> Dict:
    """Parse, analyze and run source text"""
    cst_nodes = self.parser.parse_string(source, filename)
    ast_nodes = analyze_program(cst_nodes, self.debug)
    return self.execute(ast_nodes)

  def run_file(self, path: str) -> Dict:
    """Parse, analyze and run a source file"""
    cst_nodes = self.parser.parse_file(path)
    ast_nodes = analyze_program(cst_nodes, self.debug)
    return self.execute(ast_nodes)

  def execute(self, ast_nodes: List[Dict]) -> Dict:
    """Run already-analyzed statements in the global frame"""
    return eval_program(ast_nodes, self.global_frame, self.debug, self.context)

  def evaluate(self, text: str) -> Dict:
    """Reduce a single expression in the global frame"""
    cst_node = self.parser.parse_expression(text)
    ast_node = analyze_cst_node(cst_node, debug=self.debug)
    try:
      return eval_ast(ast_node, self.global_frame, self.debug, self.context)
    except RecursionError as e:
      raise RecursionLimit("maximum recursion depth exceeded") from e

  def define_function(self, name: str, params: Sequence[Any], body: Callable) -> Dict:
    """
    Bind a host-defined function in the global frame

    Args:
        name: Function name
        params: Parameter names, or (name, default) pairs for defaulted ones
        body: Callable taking (frame, context); it may return a runtime
            value, a raw int/float/str/bool, or None for no value

    Returns:
        The function value
    """
    spec = make_parameter_spec(
        [(param[0], to_value(param[1])) if isinstance(param, tuple) else param for param in params],
        name)
    func = make_function(name, spec, body, self.global_frame)
    env_assign(self.global_frame, name, func)
    return func

  def call(self, func_name: str, *args: Any, **kwargs: Any) -> Dict:
    """Call a function bound in the global frame with raw or runtime values"""
    func = env_lookup(self.global_frame, func_name)
    positional = [to_value(arg) for arg in args]
    keywords = {key: to_value(val) for key, val in kwargs.items()}
    try:
      return call_function(func, positional, keywords, self.context, self.debug, func_name)
    except RecursionError as e:
      raise RecursionLimit("maximum recursion depth exceeded") from e

  def lookup(self, name: str) -> Dict:
    """Read a name from the global frame"""
    return env_lookup(self.global_frame, name)

  def global_names(self) -> List[str]:
    """Names bound in the global frame other than untouched builtins"""
    return [name for name, value in self.global_frame['bindings'].items()
            if self.builtins.get(name) is not value]

  @property
  def trace(self) -> List[Dict]:
    return self.context['trace']

  def clear_trace(self) -> None:
    self.context['trace'].clear()


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_interpreter(debug: bool = False, trace: bool = False,
                       output: Optional[Callable[[str], None]] = None,
                       max_depth: int = DEFAULT_MAX_DEPTH) -> Interpreter:
  """Factory function returning an interpreter"""
  return Interpreter(debug=debug, trace=trace, output=output, max_depth=max_depth)
