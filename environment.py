"""
Scopelab Binding Environment
Frames are plain dictionaries chained through 'parent'; the outermost frame
is the global frame. Unlike analysis environments, runtime frames are mutable:
a call writes into its own frame and, through a global declaration, into the
global frame.
"""

from typing import Any, Dict, Iterable, Optional

from error_handling import NameNotFound, UnboundLocal, GlobalDeclarationError


# ============================================================================
# DATA STRUCTURES
# ============================================================================

def make_frame(parent: Optional[Dict] = None, bindings: Optional[Dict] = None,
               local_names: Optional[Iterable[str]] = None, name: str = "<module>") -> Dict:
  """
  Create a frame

  Args:
      parent: Enclosing frame, None for the global frame
      bindings: Initial name -> value mapping (the call's bound parameters)
      local_names: Names local to this frame for its whole lifetime
      name: Function name, for error messages and debug output

  Every initial binding is local as well.
  """
  bindings = dict(bindings or {})
  return {
      'name': name,
      'parent': parent,
      'bindings': bindings,
      'locals': set(local_names or ()) | set(bindings),
      'globals': set()
  }


def create_global_frame(builtins: Optional[Dict] = None) -> Dict:
  """Create the outermost frame, pre-populated with builtins"""
  frame = make_frame(name="<module>")
  frame['bindings'].update(builtins or {})
  return frame


def is_global_frame(frame: Dict) -> bool:
  return frame['parent'] is None


def env_global_frame(frame: Dict) -> Dict:
  """Walk out to the outermost frame"""
  while frame['parent'] is not None:
    frame = frame['parent']
  return frame


# ============================================================================
# ENVIRONMENT OPERATIONS
# ============================================================================

def env_lookup(frame: Dict, name: str) -> Dict:
  """
  Look up a name in the frame chain

  A global-declared name is read from the global frame. A name local to the
  frame but not yet bound is an UnboundLocal error rather than a fallback to
  an enclosing frame.
  """
  if name in frame['globals']:
    global_frame = env_global_frame(frame)
    if name in global_frame['bindings']:
      return global_frame['bindings'][name]
    raise NameNotFound(name)

  if name in frame['bindings']:
    return frame['bindings'][name]

  if frame['parent'] is None:
    raise NameNotFound(name)

  if name in frame['locals']:
    raise UnboundLocal(name)

  return env_lookup(frame['parent'], name)


def env_declare_local(frame: Dict, name: str, value: Dict) -> None:
  """Bind name in the innermost frame; the name stays local for the frame's lifetime"""
  if name in frame['globals']:
    raise GlobalDeclarationError(
        name, f"name '{name}' is declared global in {frame['name']}() and cannot be bound locally")
  frame['locals'].add(name)
  frame['bindings'][name] = value


def env_declare_global(frame: Dict, name: str) -> None:
  """Route later reads and writes of name in this frame to the global frame"""
  if is_global_frame(frame):
    return
  if name in frame['locals']:
    raise GlobalDeclarationError(
        name, f"name '{name}' is local to {frame['name']}() before global declaration")
  frame['globals'].add(name)


def env_assign(frame: Dict, name: str, value: Dict) -> None:
  """Write performed by an assignment statement"""
  if name in frame['globals']:
    env_global_frame(frame)['bindings'][name] = value
  else:
    env_declare_local(frame, name, value)


def env_snapshot(frame: Dict, include: Optional[Iterable[str]] = None) -> Dict[str, Any]:
  """Copy of the frame's own bindings, optionally restricted to some names"""
  if include is None:
    return dict(frame['bindings'])
  wanted = set(include)
  return {name: val for name, val in frame['bindings'].items() if name in wanted}
