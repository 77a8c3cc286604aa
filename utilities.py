"""
Utilities module for Scopelab
Runtime value helpers and message formatting shared by the interpreter stages
"""

from typing import Any, Dict, List, Optional

from error_handling import OperandTypeError, ScopelabRuntimeError


# ==================== VALUE CONSTRUCTION ====================

def make_value(value: Any, type_name: str = "NoneType") -> Dict:
  """Create an immutable runtime value"""
  return {
      'value': value,
      'type': type_name
  }


# The single "no value" marker a call reduces to when its body runs off the end
NO_VALUE = make_value(None, "NoneType")


def to_value(raw: Any) -> Dict:
  """
  Wrap a raw Python value as a runtime value

  Runtime values pass through unchanged, so host code can return either.

  Examples:
    to_value(3) -> {'value': 3, 'type': 'int'}
    to_value(None) -> NO_VALUE
  """
  if is_value_dict(raw):
    return raw
  if raw is None:
    return NO_VALUE
  # bool first: bool is a subclass of int
  if isinstance(raw, bool):
    return make_value(raw, "bool")
  if isinstance(raw, int):
    return make_value(raw, "int")
  if isinstance(raw, float):
    return make_value(raw, "float")
  if isinstance(raw, str):
    return make_value(raw, "str")
  raise ScopelabRuntimeError(f"cannot use a Python {type(raw).__name__} as a sandbox value")


# ==================== TYPE CHECKING UTILITIES ====================

def is_value_dict(val: Any) -> bool:
  """
  Check if value is a wrapped value dict

  Args:
    val: Value to check

  Returns:
    True if val is a dict with 'type' and 'value' keys
  """
  return isinstance(val, dict) and 'type' in val and 'value' in val


def is_number(val: Dict) -> bool:
  """True for int, float and bool values (bool counts as a number, as in Python)"""
  return val['type'] in ('int', 'float', 'bool')


# ==================== DISPLAY ====================

def show_value(val: Dict) -> str:
  """Representation echoed by the interactive session (like repr)"""
  if val['type'] == 'str':
    return repr(val['value'])
  return str_value(val)


def str_value(val: Dict) -> str:
  """Text written by print (like str)"""
  type_name = val['type']
  if type_name == 'NoneType':
    return "None"
  if type_name == 'function':
    return f"<function {val['value']['name']}>"
  if type_name == 'builtin_function_or_method':
    return f"<built-in function {val['value']['name']}>"
  return str(val['value'])


def format_call(callee: str, args: List[Dict], keywords: Optional[Dict[str, Dict]] = None) -> str:
  """Format a reduced call for traces and debug output, e.g. add(3, y=7)"""
  parts = [show_value(arg) for arg in args]
  parts += [f"{name}={show_value(val)}" for name, val in (keywords or {}).items()]
  return f"{callee}({', '.join(parts)})"


# ==================== ERROR MESSAGE UTILITIES ====================

def format_name_list(names: List[str]) -> str:
  """
  Quote and join names the way argument errors list them

  Examples:
    format_name_list(['y']) -> "'y'"
    format_name_list(['x', 'y']) -> "'x' and 'y'"
    format_name_list(['x', 'y', 'z']) -> "'x', 'y', and 'z'"
  """
  quoted = [f"'{name}'" for name in names]
  if len(quoted) == 1:
    return quoted[0]
  if len(quoted) == 2:
    return f"{quoted[0]} and {quoted[1]}"
  return ", ".join(quoted[:-1]) + f", and {quoted[-1]}"


def plural(count: int, word: str) -> str:
  """'1 argument', '2 arguments'"""
  return f"{count} {word}" if count == 1 else f"{count} {word}s"


def operand_type_error(op: str, left: Dict, right: Optional[Dict] = None) -> OperandTypeError:
  """
  Generate operation error

  Args:
    op: Operator symbol
    left: Left (or only) operand
    right: Right operand, None for unary operators

  Returns:
    OperandTypeError with formatted message
  """
  if right is None:
    return OperandTypeError(f"bad operand type for unary {op}: '{left['type']}'")
  return OperandTypeError(
    f"unsupported operand type(s) for {op}: '{left['type']}' and '{right['type']}'"
  )
