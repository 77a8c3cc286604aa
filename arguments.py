"""
Scopelab Call Evaluator
Resolves a call's positional, keyword and default arguments against a
parameter list. Everything here is a pure function of its inputs.
"""

from typing import Any, Dict, List, Optional, Sequence

from error_handling import (
  ScopelabSemanticsError,
  MissingArgument,
  TooManyArguments,
  DuplicateArgument,
  UnknownKeyword
)
from utilities import format_name_list, plural


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parameter(name: str, has_default: bool = False, default: Optional[Any] = None) -> Dict:
  """Create a single parameter of a ParameterSpec"""
  return {
      'name': name,
      'has_default': has_default,
      'default': default
  }


def make_parameter_spec(params: Sequence[Any], func_name: str = "<function>") -> List[Dict]:
  """
  Build a validated ParameterSpec

  Each entry is a parameter dict, a bare name, or a (name, default) pair.

  Examples:
    make_parameter_spec(['x', ('y', one)]) -> [x, y=one]
  """
  spec = []
  for param in params:
    if isinstance(param, dict):
      spec.append(param)
    elif isinstance(param, str):
      spec.append(make_parameter(param))
    else:
      name, default = param
      spec.append(make_parameter(name, True, default))
  validate_parameter_spec(spec, func_name)
  return spec


def make_call_arguments(positional: Optional[Sequence[Any]] = None,
                        keywords: Optional[Dict[str, Any]] = None) -> Dict:
  """Create CallArguments"""
  return {
      'positional': list(positional or []),
      'keywords': dict(keywords or {})
  }


# ============================================================================
# VALIDATION
# ============================================================================

def validate_parameter_spec(params: List[Dict], func_name: str = "<function>",
                            line: Optional[int] = None) -> None:
  """
  Check the ParameterSpec invariants

  Raises:
      ScopelabSemanticsError: duplicate name, or a parameter without a default
      following one that has a default
  """
  seen = set()
  seen_default = False
  for param in params:
    name = param['name']
    if name in seen:
      raise ScopelabSemanticsError(
          f"duplicate argument '{name}' in function definition {func_name}()", line)
    seen.add(name)

    if param['has_default']:
      seen_default = True
    elif seen_default:
      raise ScopelabSemanticsError(
          f"non-default argument '{name}' follows default argument in {func_name}()", line)


# ============================================================================
# ARGUMENT BINDING
# ============================================================================

def too_many_message(func_name: str, params: List[Dict], given: int) -> str:
  """Message for TooManyArguments, e.g. add() takes 2 positional arguments but 3 were given"""
  required = sum(1 for p in params if not p['has_default'])
  total = len(params)
  if required == total:
    takes = plural(total, "positional argument")
  else:
    takes = f"from {required} to {total} positional arguments"
  was = "was" if given == 1 else "were"
  return f"{func_name}() takes {takes} but {given} {was} given"


def bind_arguments(params: List[Dict], call_args: Dict, func_name: str = "<function>") -> Dict:
  """
  Combine a ParameterSpec and CallArguments into BoundLocals

  Args:
      params: ParameterSpec, defaults already evaluated
      call_args: CallArguments
      func_name: Name used in error messages

  Returns:
      Mapping with exactly one value per declared parameter, in declared order

  Raises:
      DuplicateArgument, UnknownKeyword, MissingArgument, TooManyArguments
  """
  positional = call_args['positional']
  keywords = call_args['keywords']
  names = [p['name'] for p in params]
  bound = {}

  # 1. positional, in declared order
  for name, value in zip(names, positional):
    bound[name] = value

  # 2-3. keywords
  for name, value in keywords.items():
    if name in bound:
      raise DuplicateArgument(
          f"{func_name}() got multiple values for argument '{name}'", name)
    if name not in names:
      raise UnknownKeyword(
          f"{func_name}() got an unexpected keyword argument '{name}'", name)
    bound[name] = value

  # 4. defaults
  missing = []
  for param in params:
    if param['name'] in bound:
      continue
    if param['has_default']:
      bound[param['name']] = param['default']
    else:
      missing.append(param['name'])

  if missing:
    raise MissingArgument(
        f"{func_name}() missing {plural(len(missing), 'required positional argument')}: "
        f"{format_name_list(missing)}",
        missing)

  # 5. surplus positional
  if len(positional) > len(params):
    raise TooManyArguments(
        too_many_message(func_name, params, len(positional)), len(params), len(positional))

  return {name: bound[name] for name in names}
