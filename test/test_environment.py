"""
Binding environment tests
Frame chains, lookup order, and local versus global writes
"""

import pytest
from environment import (
  make_frame,
  create_global_frame,
  env_global_frame,
  env_lookup,
  env_declare_local,
  env_declare_global,
  env_assign,
  env_snapshot
)
from error_handling import NameNotFound, UnboundLocal, GlobalDeclarationError
from utilities import make_value


def num(n):
  return make_value(n, "int")


@pytest.fixture
def global_frame():
  frame = create_global_frame()
  env_declare_local(frame, 'x', num(1))
  return frame


class TestLookup:
  """Lookup walks innermost outward"""

  def test_global_lookup(self, global_frame):
    assert env_lookup(global_frame, 'x') == num(1)

  def test_outer_binding_visible_from_inner_frame(self, global_frame):
    inner = make_frame(global_frame, name="f")
    assert env_lookup(inner, 'x') == num(1)

  def test_inner_binding_shadows_outer(self, global_frame):
    inner = make_frame(global_frame, {'x': num(2)}, name="f")
    assert env_lookup(inner, 'x') == num(2)
    assert env_lookup(global_frame, 'x') == num(1)

  def test_missing_name(self, global_frame):
    inner = make_frame(global_frame, name="f")
    with pytest.raises(NameNotFound, match="name 'y' is not defined"):
      env_lookup(inner, 'y')

  def test_unbound_local_does_not_fall_back_to_outer_frame(self, global_frame):
    inner = make_frame(global_frame, local_names=['x'], name="f")
    with pytest.raises(UnboundLocal):
      env_lookup(inner, 'x')

  def test_three_frame_chain(self, global_frame):
    middle = make_frame(global_frame, {'y': num(2)}, name="outer")
    inner = make_frame(middle, name="inner")
    assert env_lookup(inner, 'y') == num(2)
    assert env_global_frame(inner) is global_frame

  def test_builtins_live_in_global_frame(self):
    frame = create_global_frame({'print': num(0)})
    assert env_lookup(make_frame(frame), 'print') == num(0)


class TestWrites:
  """Local and global writes"""

  def test_declare_local_binds_innermost_only(self, global_frame):
    inner = make_frame(global_frame, name="f")
    env_declare_local(inner, 'x', num(5))
    assert env_lookup(inner, 'x') == num(5)
    assert env_lookup(global_frame, 'x') == num(1)

  def test_global_declaration_routes_reads_and_writes(self, global_frame):
    middle = make_frame(global_frame, {'x': num(7)}, name="outer")
    inner = make_frame(middle, name="inner")
    env_declare_global(inner, 'x')
    # skips the enclosing frame's x
    assert env_lookup(inner, 'x') == num(1)
    env_assign(inner, 'x', num(9))
    assert env_lookup(global_frame, 'x') == num(9)
    assert env_lookup(middle, 'x') == num(7)

  def test_global_declared_but_unbound(self, global_frame):
    inner = make_frame(global_frame, name="f")
    env_declare_global(inner, 'y')
    with pytest.raises(NameNotFound):
      env_lookup(inner, 'y')
    env_assign(inner, 'y', num(3))
    assert env_lookup(global_frame, 'y') == num(3)

  def test_global_after_local_binding(self, global_frame):
    inner = make_frame(global_frame, name="f")
    env_declare_local(inner, 'x', num(2))
    with pytest.raises(GlobalDeclarationError):
      env_declare_global(inner, 'x')

  def test_local_binding_of_global_declared_name(self, global_frame):
    inner = make_frame(global_frame, name="f")
    env_declare_global(inner, 'x')
    with pytest.raises(GlobalDeclarationError):
      env_declare_local(inner, 'x', num(2))

  def test_global_declaration_at_module_level_is_noop(self, global_frame):
    env_declare_global(global_frame, 'x')
    env_assign(global_frame, 'x', num(4))
    assert env_lookup(global_frame, 'x') == num(4)

  def test_snapshot(self, global_frame):
    env_declare_local(global_frame, 'y', num(2))
    assert env_snapshot(global_frame) == {'x': num(1), 'y': num(2)}
    assert env_snapshot(global_frame, ['y']) == {'y': num(2)}
