"""
Error handling for Scopelab
Error taxonomy shared by all stages plus detailed parse error messages
"""

from typing import List, Optional, Dict, Tuple
from pyparsing import ParseBaseException
import re


BLOCK_START = re.compile(r'^\s*def\s+([A-Za-z_][A-Za-z0-9_]*)')
BLOCK_END = re.compile(r'^\s*end\s*(#.*)?$')


# ============================================================================
# DATA STRUCTURES (Immutable Dictionaries)
# ============================================================================

def make_parse_error(
    message: str,
    location: int,
    line: int,
    column: int,
    expected: Optional[List[str]] = None,
    got: Optional[str] = None,
    context: Optional[str] = None,
    suggestions: Optional[List[str]] = None,
    block: Optional[str] = None
) -> Dict:
    """Create an immutable parse error structure

    block names the `def` the error sits in, e.g. "def add (line 3)";
    None means top level.
    """
    return {
        'message': message,
        'location': location,
        'line': line,
        'column': column,
        'expected': expected or [],
        'got': got,
        'context': context,
        'suggestions': suggestions or [],
        'block': block
    }


def format_parse_error(error: Dict) -> str:
    """Render a parse error for the terminal"""
    if not error['line']:
        return error['message']

    where = f"in {error['block']}" if error['block'] else "at top level"
    lines = [f"Syntax error {where}, line {error['line']}, column {error['column']}: {error['message']}"]

    if error['got']:
        lines.append(f"  Found: {error['got']}")
    # pyparsing messages usually name the expectation already
    expected = [item for item in error['expected'] if item not in error['message']]
    if expected:
        lines.append(f"  Expected: {' or '.join(expected)}")
    if error['context']:
        lines.append(error['context'])
    for suggestion in error['suggestions']:
        lines.append(f"  Hint: {suggestion}")

    return '\n'.join(lines) + '\n'


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def find_enclosing_block(source_text: str, line_num: int) -> Optional[Tuple[str, int]]:
    """
    Innermost `def` still open at line_num, as (name, header line)

    Statements are one per line and blocks close on a line holding only
    `end`, so a line scan is enough.
    """
    open_blocks: List[Tuple[str, int]] = []
    for number, text in enumerate(source_text.split('\n')[:max(line_num - 1, 0)], 1):
        start = BLOCK_START.match(text)
        if start:
            open_blocks.append((start.group(1), number))
        elif BLOCK_END.match(text) and open_blocks:
            open_blocks.pop()
    return open_blocks[-1] if open_blocks else None


def get_context_lines(source_text: str, line_num: int, col_num: int,
                      block_line: Optional[int] = None, max_lines: int = 4) -> str:
    """
    Source lines leading up to the error, with a caret under the column

    Starts at the enclosing def header when it is close enough, so the
    header a body statement belongs to stays visible.
    """
    lines = source_text.split('\n')
    if not 0 < line_num <= len(lines):
        return ""
    first = max(1, line_num - max_lines + 1)
    if block_line is not None and line_num - block_line < max_lines:
        first = block_line

    context_parts = [f"{number:4d} | {lines[number - 1]}" for number in range(first, line_num + 1)]
    context_parts.append(f"{'':4} | {' ' * (col_num - 1)}^")
    return '\n'.join(context_parts)


def extract_expected(exc: ParseBaseException) -> List[str]:
    """What pyparsing was looking for, taken from its message"""
    msg = exc.msg or ""
    if msg.startswith("Expected "):
        return [msg[len("Expected "):]]
    return []


def extract_got(source_text: str, line_num: int, col_num: int) -> str:
    """The token at the error position, or where the line or input ran out"""
    lines = source_text.split('\n')
    if not 0 < line_num <= len(lines):
        return "end of input"
    token = re.match(r"\s*(\S+)", lines[line_num - 1][col_num - 1:])
    if token:
        return f"'{token.group(1)}'"
    if line_num == len(lines) or not any(line.strip() for line in lines[line_num:]):
        return "end of input"
    return "end of line"


def generate_suggestions(source_text: str, got: str, expected: List[str]) -> List[str]:
    """Generate helpful suggestions based on the error"""
    suggestions = []

    if ";" in got:
        suggestions.append("Statements end at the end of the line - try removing the semicolon")

    if "{" in got or "}" in got:
        suggestions.append("Function bodies are closed with 'end', not braces")

    def_count = len(re.findall(r'^\s*def\b', source_text, re.MULTILINE))
    end_count = len(re.findall(r'^\s*end\s*(#.*)?$', source_text, re.MULTILINE))
    if def_count > end_count:
        suggestions.append("Every 'def' block must be closed with a line containing only 'end'")

    if re.search(r'^\s*def\s+\w+\s*\([^)]*\)\s*$', source_text, re.MULTILINE):
        suggestions.append("A function header needs a ':' after the parameter list")

    if source_text.count("(") != source_text.count(")"):
        suggestions.append("Check that every '(' has a matching ')'")

    if re.search(r"'=[^=]", got):
        suggestions.append("Only a plain name can appear on the left of '='")

    return suggestions


def enhance_parse_exception_dict(exc: ParseBaseException, source_text: str) -> Dict:
    """Convert pyparsing exception to enhanced Scopelab error dict"""
    line_num = exc.lineno
    col_num = exc.column

    enclosing = find_enclosing_block(source_text, line_num)
    block_line = enclosing[1] if enclosing else None
    context = get_context_lines(source_text, line_num, col_num, block_line)
    expected = extract_expected(exc)
    got = extract_got(source_text, line_num, col_num)
    suggestions = generate_suggestions(source_text, got, expected)

    return make_parse_error(
        message=exc.msg,
        location=exc.loc,
        line=line_num,
        column=col_num,
        expected=expected,
        got=got,
        context=context,
        suggestions=suggestions,
        block=f"def {enclosing[0]} (line {enclosing[1]})" if enclosing else None
    )


# ============================================================================
# EXCEPTIONS
# ============================================================================

class ScopelabError(Exception):
    """Base class for every error raised by Scopelab"""
    pass


class ScopelabParseError(ScopelabError):
    """Syntax error with detailed context"""
    def __init__(self, message: str, location: int = 0, line: int = 0, column: int = 0,
                 expected: Optional[List[str]] = None, got: Optional[str] = None,
                 context: Optional[str] = None, suggestions: Optional[List[str]] = None,
                 block: Optional[str] = None, filename: str = "<input>"):
        self.message = message
        self.location = location
        self.line = line
        self.column = column
        self.expected = expected or []
        self.got = got
        self.context = context
        self.suggestions = suggestions or []
        self.block = block
        self.filename = filename
        super().__init__(message)

    def __str__(self) -> str:
        error_dict = make_parse_error(
            self.message, self.location, self.line, self.column,
            self.expected, self.got, self.context, self.suggestions, self.block
        )
        return format_parse_error(error_dict)


def enhance_parse_exception(exc: ParseBaseException, source_text: str,
                            filename: str = "<input>") -> ScopelabParseError:
    """Convert pyparsing exception to enhanced Scopelab error"""
    error_dict = enhance_parse_exception_dict(exc, source_text)
    return ScopelabParseError(filename=filename, **error_dict)

class ScopelabSemanticsError(ScopelabError):
    """Static error found before the program runs"""
    def __init__(self, message: str, line: Optional[int] = None):
        self.message = message
        self.line = line
        super().__init__(self._format_error())

    def _format_error(self) -> str:
        if self.line:
            return f"line {self.line}: {self.message}"
        return self.message


class ScopelabRuntimeError(ScopelabError):
    """Error raised while evaluating a program

    `line` is filled in by the interpreter the first time the error crosses
    a statement boundary, so it points at the innermost failing statement.
    """
    def __init__(self, message: str, line: Optional[int] = None):
        self.message = message
        self.line = line
        super().__init__(message)

    def __str__(self) -> str:
        if self.line:
            return f"line {self.line}: {self.message}"
        return self.message


class NameNotFound(ScopelabRuntimeError):
    """Read of a name that no enclosing frame binds"""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"name '{name}' is not defined")


class UnboundLocal(ScopelabRuntimeError):
    """Read of a local name before its first assignment in the frame"""
    def __init__(self, name: str):
        self.name = name
        super().__init__(
            f"cannot access local variable '{name}' where it is not associated with a value")


class GlobalDeclarationError(ScopelabRuntimeError):
    """Conflicting local and global use of one name in a frame"""
    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(message)


class MissingArgument(ScopelabRuntimeError):
    """Required parameters left unfilled by a call"""
    def __init__(self, message: str, missing: List[str]):
        self.missing = missing
        super().__init__(message)


class TooManyArguments(ScopelabRuntimeError):
    """More positional arguments than declared parameters"""
    def __init__(self, message: str, expected: int, given: int):
        self.expected = expected
        self.given = given
        super().__init__(message)


class DuplicateArgument(ScopelabRuntimeError):
    """Keyword argument for a parameter already filled positionally"""
    def __init__(self, message: str, name: str):
        self.name = name
        super().__init__(message)


class UnknownKeyword(ScopelabRuntimeError):
    """Keyword argument naming no declared parameter"""
    def __init__(self, message: str, name: str):
        self.name = name
        super().__init__(message)


class NotCallable(ScopelabRuntimeError):
    pass


class OperandTypeError(ScopelabRuntimeError):
    pass


class DivisionByZero(ScopelabRuntimeError):
    pass


class RecursionLimit(ScopelabRuntimeError):
    pass
