"""
Test configuration for Scopelab tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import create_parser
from interpreter import create_interpreter


@pytest.fixture
def parser():
  """Provide a fresh parser for each test"""
  return create_parser()


@pytest.fixture
def output():
  """Collects everything print writes, in order"""
  return []


@pytest.fixture
def interp(output):
  """Interpreter whose print output goes to the output fixture"""
  return create_interpreter(output=output.append)


@pytest.fixture
def tracing_interp(output):
  """Interpreter recording a reduction trace"""
  return create_interpreter(trace=True, output=output.append)


@pytest.fixture
def examples_dir():
  """Get the examples directory path"""
  return project_root / "examples"
