"""
Scopelab - Main Entry Point
A teaching sandbox for name binding, scopes and function calls
"""

import sys
import argparse
import re
import os
from pathlib import Path
from typing import Dict, List

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from parsing import create_parser, create_debug_parser, pretty_print_tree, RESERVED_WORDS
from semantics import analyze_program
from interpreter import create_interpreter, DEFAULT_MAX_DEPTH
from error_handling import ScopelabParseError, ScopelabSemanticsError, ScopelabRuntimeError
from environment import env_snapshot
from stdlib import BUILTIN_NAMES
from utilities import show_value, format_call

VERSION = "Scopelab v0.3.0"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      description='Scopelab - a sandbox for scopes, bindings and function calls',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.scl             # Run a Scopelab script
  %(prog)s -i                     # Interactive mode
  %(prog)s --parse script.scl     # Parse and show the syntax tree
  %(prog)s --analyze script.scl   # Show locals and globals of every function
  %(prog)s --trace script.scl     # Run and show every call as it is reduced
  %(prog)s --debug script.scl     # Run with debug output
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='Scopelab script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the syntax tree (for debugging)'
  )

  parser.add_argument(
      '--analyze',
      action='store_true',
      help='Parse and analyze file, show the analyzed statements'
  )

  parser.add_argument(
      '--trace',
      action='store_true',
      help='Show every completed call, innermost first'
  )

  parser.add_argument(
      '--max-depth',
      type=int,
      default=DEFAULT_MAX_DEPTH,
      help=f'Maximum number of active calls (default: {DEFAULT_MAX_DEPTH})'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


# ============================================================================
# FORMATTING
# ============================================================================

def format_trace(trace: List[Dict]) -> str:
  """One line per completed call, indented by how deep the call was made"""
  lines = []
  for entry in trace:
    call_text = format_call(entry['callee'], entry['args'], entry['keywords'])
    lines.append(f"{'  ' * entry['depth']}{call_text} -> {show_value(entry['result'])}")
  return '\n'.join(lines)


def describe_ast_node(node: Dict, indent: int = 0) -> str:
  """Summary of an analyzed statement, showing how each function's names are scoped"""
  pad = "  " * indent
  node_type = node['type']
  if node_type == "FUNCTION_DEF":
    definition = node['value']
    params = ", ".join(
        f"{p['name']}=..." if p['has_default'] else p['name'] for p in definition['params'])
    result = f"{pad}FUNCTION_DEF {definition['name']}({params})  [line {node['line']}]\n"
    result += f"{pad}  locals:  {', '.join(definition['local_names']) or '-'}\n"
    result += f"{pad}  globals: {', '.join(definition['global_names']) or '-'}\n"
    for stmt in definition['body']:
      result += describe_ast_node(stmt, indent + 2)
    return result
  if node_type == "ASSIGN":
    return f"{pad}ASSIGN {node['value']['name']}  [line {node['line']}]\n"
  if node_type == "GLOBAL":
    return f"{pad}GLOBAL {', '.join(node['value']['names'])}  [line {node['line']}]\n"
  return f"{pad}{node_type}  [line {node['line']}]\n"


def print_runtime_error(e: ScopelabRuntimeError, script_path: str) -> None:
  print(f"\n{'='*70}")
  print(f"Runtime Error in '{script_path}'")
  print(f"{'='*70}")
  print(f"\n{type(e).__name__}: {e.message}")
  if e.line:
    print(f"\nLocation: {script_path}, line {e.line}")
  print(f"\n{'='*70}\n")


# ============================================================================
# SCRIPT MODES
# ============================================================================

def parse_file(script_path: str, debug: bool = False) -> None:
  """Parse a Scopelab script file and show the syntax tree"""
  try:
    parser = create_debug_parser() if debug else create_parser()

    print(f"Parsing {script_path}...")
    cst_nodes = parser.parse_file(script_path)

    print(f"\nParsed {len(cst_nodes)} top-level statements:")
    print("=" * 50)

    for i, node in enumerate(cst_nodes, 1):
      print(f"\nStatement {i} ({node.span}):")
      print(pretty_print_tree(node), end='')

  except ScopelabParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    sys.exit(1)


def analyze_file(script_path: str, debug: bool = False) -> None:
  """Parse and analyze a Scopelab script file and show the analyzed statements"""
  try:
    parser = create_debug_parser() if debug else create_parser()

    print(f"Parsing and analyzing {script_path}...")
    cst_nodes = parser.parse_file(script_path)
    ast_nodes = analyze_program(cst_nodes, debug)

    print(f"\nAnalyzed {len(ast_nodes)} top-level statements:")
    print("=" * 50)
    for node in ast_nodes:
      print(describe_ast_node(node), end='')

  except ScopelabParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    sys.exit(1)
  except ScopelabSemanticsError as e:
    print(f"Semantic analysis error in '{script_path}': {e}")
    sys.exit(1)


def run_script_file(script_path: str, debug: bool = False, trace: bool = False,
                    max_depth: int = DEFAULT_MAX_DEPTH) -> None:
  """Run a Scopelab script file"""
  interpreter = create_interpreter(debug=debug, trace=trace, max_depth=max_depth)
  try:
    interpreter.run_file(script_path)
  except ScopelabParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    sys.exit(1)
  except ScopelabSemanticsError as e:
    print(f"Semantic analysis error in '{script_path}': {e}")
    sys.exit(1)
  except ScopelabRuntimeError as e:
    print_runtime_error(e, script_path)
    sys.exit(1)
  except Exception as e:
    print(f"Unexpected error while executing '{script_path}': {e}")
    if debug:
      import traceback
      traceback.print_exc()
    sys.exit(1)
  finally:
    if trace and interpreter.trace:
      print("\nCall trace:")
      print(format_trace(interpreter.trace))


# ============================================================================
# INTERACTIVE MODE
# ============================================================================

BLOCK_START = re.compile(r'^\s*def\b')
BLOCK_END = re.compile(r'^\s*end\s*(#.*)?$')


def block_delta(line: str) -> int:
  """+1 for a line opening a def block, -1 for a line closing one"""
  if BLOCK_START.match(line):
    return 1
  if BLOCK_END.match(line):
    return -1
  return 0


def setup_readline():
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser("~/.scopelab_history")
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First time, no history yet, or permission denied

  readline.set_history_length(1000)

  completions = list(RESERVED_WORDS) + sorted(BUILTIN_NAMES) + [
      ":env", ":trace", ":parse", ":help", "exit"
  ]

  def completer(text, state):
    options = [cmd for cmd in completions if cmd.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  import atexit
  atexit.register(readline.write_history_file, history_file)


def show_help() -> None:
  print("Commands:")
  print("  :env              - Show global bindings")
  print("  :trace            - Show the calls reduced by the last input")
  print("  :parse <expr>     - Show the syntax tree of an expression")
  print("  :help             - Show this help")
  print("  exit              - Leave the session")
  print()
  print("Language:")
  print("  x = 5                       - Bind a name")
  print("  def add(x, y=1):            - Define a function; close the body with 'end'")
  print("      return x + y")
  print("  end")
  print("  add(3, 7)                   - Call with positional arguments")
  print("  add(y=2, x=1)               - Call with keyword arguments")
  print("  global counter              - Inside a function: bind the global name")


def run_interactive_mode(debug: bool = False, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
  """Run Scopelab in interactive mode"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, ':help' for commands")
  if READLINE_AVAILABLE:
    print("Readline enabled: Use ↑/↓ for history, Tab for completion")
  if debug:
    print("Debug mode enabled")
  print()

  setup_readline()

  interpreter = create_interpreter(debug=debug, trace=True, max_depth=max_depth)
  last_trace: List[Dict] = []

  while True:
    try:
      code = input(">>> ")

      if code.strip() == "exit":
        break

      if not code.strip():
        continue

      if code.startswith(":parse "):
        try:
          cst = interpreter.parser.parse_expression(code[len(":parse "):])
          print(pretty_print_tree(cst), end='')
        except ScopelabParseError as e:
          print(f"Parse error: {e}")
        continue

      if code.strip() == ":env":
        user_bindings = env_snapshot(interpreter.global_frame, interpreter.global_names())
        if user_bindings:
          for name, value in user_bindings.items():
            print(f"  {name} = {show_value(value)}")
        else:
          print("  (no user-defined bindings)")
        continue

      if code.strip() == ":trace":
        print(format_trace(last_trace) if last_trace else "  (no calls)")
        continue

      if code.strip() == ":help":
        show_help()
        continue

      # Keep reading until every def block is closed
      depth = block_delta(code)
      lines = [code]
      while depth > 0:
        more = input("... ")
        lines.append(more)
        depth += block_delta(more)

      interpreter.clear_trace()
      try:
        result = interpreter.run('\n'.join(lines) + '\n', "<stdin>")
        if result['type'] != 'NoneType':
          print(show_value(result))
      except ScopelabParseError as e:
        print(f"Parse error: {e}")
      except ScopelabSemanticsError as e:
        print(f"Semantic error: {e}")
      except ScopelabRuntimeError as e:
        print(f"{type(e).__name__}: {e.message}")
      finally:
        last_trace = list(interpreter.trace)

    except KeyboardInterrupt:
      print("\nGoodbye!")
      break
    except EOFError:
      print("\nGoodbye!")
      break
    except Exception as e:
      print(f"Unexpected error: {e}")
      if debug:
        import traceback
        traceback.print_exc()
      print("  Hint: If this keeps happening, try restarting or use --debug for more details")


def show_language_info() -> None:
  """Show Scopelab information"""
  print("Scopelab")
  print("=" * 50)
  print("A sandbox for the rules behind function calls:")
  print("• Local and global names, shadowing and 'global'")
  print("• Positional, keyword and default arguments")
  print("• Nested calls reduced innermost first")
  print()


def main() -> None:
  """Main entry point for Scopelab"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args()

  if len(sys.argv) == 1:
    show_language_info()
    print("Starting interactive mode...")
    print("Use 'scopelab --help' for command line options")
    print()
    run_interactive_mode()
    return

  if args.script:
    if not Path(args.script).exists():
      print(f"Error: Script file '{args.script}' does not exist")
      sys.exit(1)

    if args.parse:
      parse_file(args.script, debug=args.debug)
    elif args.analyze:
      analyze_file(args.script, debug=args.debug)
    else:
      run_script_file(args.script, debug=args.debug, trace=args.trace, max_depth=args.max_depth)

  elif args.interactive:
    run_interactive_mode(debug=args.debug, max_depth=args.max_depth)

  else:
    arg_parser.print_help()
    print()
    show_language_info()


if __name__ == "__main__":
  main()
