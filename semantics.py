"""
Scopelab Semantics Analysis - Pure Functional Style
Turns parsed statements into AST dictionaries, desugars operators into calls
and works out, for every function body, which names are local to it
"""

from typing import Any, Dict, List, Optional, Tuple

from parsing import CSTNode
from arguments import validate_parameter_spec
from error_handling import ScopelabSemanticsError


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_ast_node(node_type: str, value: Any, line: Optional[int] = None) -> Dict:
  """Create an immutable AST node dictionary"""
  return {
      'type': node_type,
      'value': value,
      'line': line
  }


def make_name_node(name: str, line: Optional[int] = None) -> Dict:
  """Name reference node"""
  return make_ast_node("IDENTIFIER", name, line)


def make_call_node(callee: str, args: Optional[List[Dict]] = None,
                   keywords: Optional[List[Tuple[str, Dict]]] = None,
                   operator: bool = False, line: Optional[int] = None) -> Dict:
  """
  Call node: callee name, ordered positional argument nodes and ordered
  (name, node) keyword argument pairs. Operator calls name a fixed builtin
  operator instead of a binding in scope.
  """
  return make_ast_node("FUNCTION_CALL", {
      'callee': callee,
      'args': list(args or []),
      'keywords': [(name, node) for name, node in (keywords or [])],
      'operator': operator
  }, line)


def make_scope_info(kind: str, name: str = "<module>", params: Optional[List[str]] = None) -> Dict:
  """
  Static view of one scope while its body is analyzed

  kind is 'module' or 'function'. 'used' and 'assigned' only ever grow, so a
  global declaration can be checked against everything that came before it.
  """
  return {
      'kind': kind,
      'name': name,
      'params': list(params or []),
      'used': set(),
      'assigned': set(),
      'globals': set()
  }


# ============================================================================
# SCOPE OPERATIONS
# ============================================================================

def scope_note_use(scope: Dict, name: str) -> None:
  scope['used'].add(name)


def scope_note_assign(scope: Dict, name: str) -> None:
  scope['assigned'].add(name)


def scope_declare_global(scope: Dict, name: str, line: Optional[int] = None) -> None:
  """Record a global declaration, rejecting ones that come too late"""
  if scope['kind'] == 'module':
    return
  if name in scope['params']:
    raise ScopelabSemanticsError(f"name '{name}' is parameter and global", line)
  if name in scope['assigned']:
    raise ScopelabSemanticsError(f"name '{name}' is assigned to before global declaration", line)
  if name in scope['used']:
    raise ScopelabSemanticsError(f"name '{name}' is used prior to global declaration", line)
  scope['globals'].add(name)


def scope_local_names(scope: Dict) -> List[str]:
  """Parameters plus every name bound in the body that is not declared global"""
  names = (set(scope['params']) | scope['assigned']) - scope['globals']
  return sorted(names)


# ============================================================================
# EXPRESSIONS
# ============================================================================

def analyze_expression(expr: Tuple, scope: Dict, debug: bool = False, line: Optional[int] = None) -> Dict:
  """Analyze an expression tuple produced by the parser"""
  tag, payload = expr

  if debug:
    print(f"Analyzing expression: {tag}")

  if tag == "NUMBER":
    return make_ast_node("NUMBER", payload, line)
  elif tag == "STRING":
    return make_ast_node("STRING", payload, line)
  elif tag == "BOOL":
    return make_ast_node("BOOL", payload, line)
  elif tag == "NONE":
    return make_ast_node("NONE", None, line)
  elif tag == "IDENTIFIER":
    scope_note_use(scope, payload)
    return make_name_node(payload, line)
  elif tag == "FUNCTION_CALL":
    return analyze_call_tuple(payload, scope, debug)
  elif tag == "BINARY_OP":
    return analyze_binary_tuple(payload, scope, debug, line)
  elif tag == "UNARY_OP":
    return analyze_unary_tuple(payload, scope, debug, line)

  raise ScopelabSemanticsError(f"unknown expression {tag}", line)


def analyze_call_tuple(call_data: Dict, scope: Dict, debug: bool = False) -> Dict:
  """Analyze a call; the callee is read before any argument"""
  line = call_data.get('line')
  callee = call_data['callee']
  scope_note_use(scope, callee)

  args = []
  keywords = []
  seen_keywords = set()
  for item in call_data['args']:
    if item[0] == "KEYWORD_ARG":
      name = item[1]['name']
      if name in seen_keywords:
        raise ScopelabSemanticsError(f"keyword argument repeated: {name}", line)
      seen_keywords.add(name)
      keywords.append((name, analyze_expression(item[1]['value'], scope, debug, line)))
    else:
      if keywords:
        raise ScopelabSemanticsError("positional argument follows keyword argument", line)
      args.append(analyze_expression(item, scope, debug, line))

  return make_call_node(callee, args, keywords, operator=False, line=line)


def analyze_binary_tuple(op_data: Dict, scope: Dict, debug: bool = False, line: Optional[int] = None) -> Dict:
  """Desugar `left op right` into a call of the builtin operator"""
  left = analyze_expression(op_data['left'], scope, debug, line)
  right = analyze_expression(op_data['right'], scope, debug, line)
  return make_call_node(op_data['op'], [left, right], operator=True, line=line)


def analyze_unary_tuple(op_data: Dict, scope: Dict, debug: bool = False, line: Optional[int] = None) -> Dict:
  operand = analyze_expression(op_data['operand'], scope, debug, line)
  return make_call_node('neg', [operand], operator=True, line=line)


# ============================================================================
# STATEMENTS
# ============================================================================

def analyze_statement(stmt: Tuple, scope: Dict, debug: bool = False) -> Dict:
  """Analyze one statement tuple in the given scope"""
  tag, payload = stmt
  line = payload.get('line')

  if debug:
    print(f"Analyzing: {tag} (line {line})")

  if tag == "FUNCTION_DEF":
    return analyze_function_def(payload, scope, debug)

  elif tag == "ASSIGN":
    value = analyze_expression(payload['value'], scope, debug, line)
    scope_note_assign(scope, payload['name'])
    return make_ast_node("ASSIGN", {'name': payload['name'], 'value': value}, line)

  elif tag == "AUG_ASSIGN":
    # x += e reads x, then binds it
    name = payload['name']
    scope_note_use(scope, name)
    current = make_name_node(name, line)
    operand = analyze_expression(payload['value'], scope, debug, line)
    value = make_call_node(payload['op'], [current, operand], operator=True, line=line)
    scope_note_assign(scope, name)
    return make_ast_node("ASSIGN", {'name': name, 'value': value}, line)

  elif tag == "GLOBAL":
    for name in payload['names']:
      scope_declare_global(scope, name, line)
    return make_ast_node("GLOBAL", {'names': list(payload['names'])}, line)

  elif tag == "RETURN":
    if scope['kind'] != 'function':
      raise ScopelabSemanticsError("'return' outside function", line)
    value = None
    if payload['value'] is not None:
      value = analyze_expression(payload['value'], scope, debug, line)
    return make_ast_node("RETURN", value, line)

  elif tag == "EXPR_STMT":
    return make_ast_node("EXPR_STMT", analyze_expression(payload['value'], scope, debug, line), line)

  raise ScopelabSemanticsError(f"unknown statement {tag}", line)


def analyze_function_def(def_data: Dict, scope: Dict, debug: bool = False) -> Dict:
  """
  Analyze a function definition

  Defaults are expressions of the enclosing scope. The function's own body
  is analyzed in a fresh scope whose local names are every parameter plus
  every name the body binds without declaring it global; those names stay
  local for the whole body, including before their first assignment.
  """
  name = def_data['name']
  line = def_data.get('line')

  params = []
  for param in def_data['params']:
    default = None
    if param['has_default']:
      default = analyze_expression(param['default'], scope, debug, line)
    params.append({'name': param['name'], 'has_default': param['has_default'], 'default': default})

  validate_parameter_spec(params, name, line)
  scope_note_assign(scope, name)

  body_scope = make_scope_info('function', name, [p['name'] for p in params])
  body = [analyze_statement(stmt, body_scope, debug) for stmt in def_data['body']]

  if debug:
    print(f"  {name}: locals={scope_local_names(body_scope)} globals={sorted(body_scope['globals'])}")

  return make_ast_node("FUNCTION_DEF", {
      'name': name,
      'params': params,
      'body': body,
      'local_names': scope_local_names(body_scope),
      'global_names': sorted(body_scope['globals'])
  }, line)


# ============================================================================
# ENTRY POINTS
# ============================================================================

def analyze_cst_node(cst_node: CSTNode, scope: Optional[Dict] = None, debug: bool = False) -> Dict:
  """Analyze a top-level CST node (statement or standalone expression)"""
  if scope is None:
    scope = make_scope_info('module')
  if cst_node.type == "EXPRESSION":
    return analyze_expression(cst_node.value, scope, debug, cst_node.span.line if cst_node.span else None)
  return analyze_statement((cst_node.type, cst_node.value), scope, debug)


def analyze_program(cst_nodes: List[CSTNode], debug: bool = False) -> List[Dict]:
  """Analyze a whole program; every static error is raised before anything runs"""
  scope = make_scope_info('module')
  ast_nodes = [analyze_cst_node(node, scope, debug) for node in cst_nodes]
  if debug:
    print(f"Analyzed {len(ast_nodes)} top-level statements")
  return ast_nodes
