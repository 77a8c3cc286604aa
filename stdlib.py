"""
Scopelab Standard Library
Built-in functions and the operator functions binary expressions reduce to
Every builtin takes (positional, keywords, context) and returns a runtime value
"""

from typing import Callable, Dict, List
import operator

from error_handling import (
  MissingArgument,
  TooManyArguments,
  UnknownKeyword,
  DivisionByZero,
  OperandTypeError
)
from utilities import (
  make_value,
  NO_VALUE,
  is_number,
  str_value,
  operand_type_error,
  plural
)


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def make_builtin(name: str, impl: Callable) -> Dict:
  """Create a builtin function value"""
  return make_value({'name': name, 'impl': impl}, "builtin_function_or_method")


def check_builtin_args(name: str, positional: List[Dict], keywords: Dict[str, Dict],
                       min_args: int, max_args: int, allowed_keywords: tuple = ()) -> None:
  """Validate builtin call arity and keyword names"""
  for key in keywords:
    if key not in allowed_keywords:
      raise UnknownKeyword(f"{name}() got an unexpected keyword argument '{key}'", key)
  if len(positional) < min_args:
    raise MissingArgument(
        f"{name}() expected at least {plural(min_args, 'argument')}, got {len(positional)}",
        [])
  if len(positional) > max_args:
    raise TooManyArguments(
        f"{name}() expected at most {plural(max_args, 'argument')}, got {len(positional)}",
        max_args, len(positional))


def number_value(raw) -> Dict:
  """Wrap an arithmetic result; bool operands give int results"""
  if isinstance(raw, float):
    return make_value(raw, "float")
  return make_value(int(raw), "int")


# ============================================================================
# PRINT FUNCTIONS
# ============================================================================

def sl_print(positional: List[Dict], keywords: Dict[str, Dict], context: Dict) -> Dict:
  """Write values to the context's output observer"""
  check_builtin_args("print", positional, keywords, 0, len(positional), ('sep', 'end'))
  sep = str_value(keywords['sep']) if 'sep' in keywords else " "
  end = str_value(keywords['end']) if 'end' in keywords else "\n"
  text = sep.join(str_value(val) for val in positional) + end
  context['output'](text)
  return NO_VALUE


# ============================================================================
# CONVERSIONS
# ============================================================================

def sl_str(positional: List[Dict], keywords: Dict[str, Dict], context: Dict) -> Dict:
  check_builtin_args("str", positional, keywords, 0, 1)
  return make_value(str_value(positional[0]) if positional else "", "str")


def sl_int(positional: List[Dict], keywords: Dict[str, Dict], context: Dict) -> Dict:
  check_builtin_args("int", positional, keywords, 0, 1)
  if not positional:
    return make_value(0, "int")
  val = positional[0]
  if is_number(val):
    return make_value(int(val['value']), "int")
  if val['type'] == 'str':
    try:
      return make_value(int(val['value'].strip()), "int")
    except ValueError:
      raise OperandTypeError(f"invalid literal for int() with base 10: {val['value']!r}")
  raise OperandTypeError(f"int() argument must be a string or a number, not '{val['type']}'")


def sl_float(positional: List[Dict], keywords: Dict[str, Dict], context: Dict) -> Dict:
  check_builtin_args("float", positional, keywords, 0, 1)
  if not positional:
    return make_value(0.0, "float")
  val = positional[0]
  if is_number(val):
    return make_value(float(val['value']), "float")
  if val['type'] == 'str':
    try:
      return make_value(float(val['value'].strip()), "float")
    except ValueError:
      raise OperandTypeError(f"could not convert string to float: {val['value']!r}")
  raise OperandTypeError(f"float() argument must be a string or a number, not '{val['type']}'")


# ============================================================================
# NUMERIC AND STRING FUNCTIONS
# ============================================================================

def sl_len(positional: List[Dict], keywords: Dict[str, Dict], context: Dict) -> Dict:
  check_builtin_args("len", positional, keywords, 1, 1)
  val = positional[0]
  if val['type'] != 'str':
    raise OperandTypeError(f"object of type '{val['type']}' has no len()")
  return make_value(len(val['value']), "int")


def sl_abs(positional: List[Dict], keywords: Dict[str, Dict], context: Dict) -> Dict:
  check_builtin_args("abs", positional, keywords, 1, 1)
  val = positional[0]
  if not is_number(val):
    raise operand_type_error("abs()", val)
  return number_value(abs(val['value']))


def extreme(name: str, op: str) -> Callable:
  """Build max/min over one or more comparable arguments; the first extreme value wins"""
  def impl(positional: List[Dict], keywords: Dict[str, Dict], context: Dict) -> Dict:
    check_builtin_args(name, positional, keywords, 1, max(1, len(positional)))
    best = positional[0]
    for val in positional[1:]:
      if compare_raw(op, val, best):
        best = val
    return best
  return impl


def sl_round(positional: List[Dict], keywords: Dict[str, Dict], context: Dict) -> Dict:
  check_builtin_args("round", positional, keywords, 1, 2)
  val = positional[0]
  if not is_number(val):
    raise OperandTypeError(f"type {val['type']} doesn't define __round__ method")
  if len(positional) == 1:
    return make_value(round(val['value']), "int")
  digits = positional[1]
  if digits['type'] not in ('int', 'bool'):
    raise OperandTypeError(f"'{digits['type']}' object cannot be interpreted as an integer")
  return number_value(round(val['value'], digits['value']))


# ============================================================================
# OPERATORS
# ============================================================================

ARITHMETIC = {
    '+': operator.add,
    '-': operator.sub,
    '*': operator.mul,
    '/': operator.truediv,
    '//': operator.floordiv,
    '%': operator.mod,
}

COMPARISON = {
    '==': operator.eq,
    '!=': operator.ne,
    '<': operator.lt,
    '>': operator.gt,
    '<=': operator.le,
    '>=': operator.ge,
}


def arithmetic(op: str, left: Dict, right: Dict) -> Dict:
  """Apply an arithmetic operator to two runtime values"""
  if is_number(left) and is_number(right):
    if op in ('/', '//', '%') and right['value'] == 0:
      if op == '/':
        raise DivisionByZero("division by zero")
      raise DivisionByZero("integer division or modulo by zero")
    return number_value(ARITHMETIC[op](left['value'], right['value']))

  if op == '+' and left['type'] == 'str' and right['type'] == 'str':
    return make_value(left['value'] + right['value'], "str")

  if op == '*':
    if left['type'] == 'str' and right['type'] in ('int', 'bool'):
      return make_value(left['value'] * right['value'], "str")
    if left['type'] in ('int', 'bool') and right['type'] == 'str':
      return make_value(left['value'] * right['value'], "str")

  raise operand_type_error(op, left, right)


def compare_raw(op: str, left: Dict, right: Dict) -> bool:
  """Compare two runtime values, returning a Python bool"""
  if op in ('==', '!='):
    same = (left['value'] == right['value']
            and (left['type'] == right['type'] or (is_number(left) and is_number(right))))
    return same if op == '==' else not same

  if (is_number(left) and is_number(right)) or (left['type'] == right['type'] == 'str'):
    return COMPARISON[op](left['value'], right['value'])

  raise OperandTypeError(
      f"'{op}' not supported between instances of '{left['type']}' and '{right['type']}'")


def operator_function(op: str) -> Callable:
  """Builtin implementing a binary operator"""
  def impl(positional: List[Dict], keywords: Dict[str, Dict], context: Dict) -> Dict:
    left, right = positional
    if op in COMPARISON:
      return make_value(compare_raw(op, left, right), "bool")
    return arithmetic(op, left, right)
  return impl


def sl_negate(positional: List[Dict], keywords: Dict[str, Dict], context: Dict) -> Dict:
  operand = positional[0]
  if not is_number(operand):
    raise operand_type_error("-", operand)
  return number_value(-operand['value'])


# Operator callees are fixed: user code cannot rebind them
BUILTIN_OPERATORS = {
    **{op: make_builtin(op, operator_function(op)) for op in list(ARITHMETIC) + list(COMPARISON)},
    'neg': make_builtin('neg', sl_negate),
}


def create_builtins() -> Dict[str, Dict]:
  """Builtin functions bound in a fresh global frame"""
  return {
      'print': make_builtin('print', sl_print),
      'str': make_builtin('str', sl_str),
      'int': make_builtin('int', sl_int),
      'float': make_builtin('float', sl_float),
      'len': make_builtin('len', sl_len),
      'abs': make_builtin('abs', sl_abs),
      'max': make_builtin('max', extreme('max', ">")),
      'min': make_builtin('min', extreme('min', "<")),
      'round': make_builtin('round', sl_round),
  }


BUILTIN_NAMES = frozenset(create_builtins())
