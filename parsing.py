"""
Scopelab Parser
pyparsing grammar for the sandbox language, producing tagged tuples wrapped in
CST nodes that keep their source position

Statements end at the end of the line; a function body runs from the
`def NAME(params):` line to a line holding `end`.
"""

from typing import List, Any, Optional
from dataclasses import dataclass

from pyparsing import (
    Regex, QuotedString, Keyword, Literal, Suppress, Forward, And,
    Optional as PyParsingOptional, ZeroOrMore, OneOrMore, LineEnd, StringEnd,
    ParserElement, ParseBaseException, infix_notation, OpAssoc, one_of, lineno, col
)

from error_handling import ScopelabParseError, enhance_parse_exception

# Enable packrat parsing for performance
ParserElement.enable_packrat()


IDENTIFIER_PATTERN = r"[A-Za-z_][A-Za-z0-9_]*"
RESERVED_WORDS = ("def", "end", "global", "return", "True", "False", "None")
# Newlines end statements, so only spaces and tabs are insignificant
STATEMENT_WHITESPACE = " \t\r"


@dataclass(frozen=True)
class SourceSpan:
    """Source location of a statement"""
    filename: str
    line: int
    column: int
    text: str = ""

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


@dataclass(frozen=True)
class CSTNode:
    """Top-level statement: tag, payload and where it came from"""
    type: str
    value: Any
    span: Optional[SourceSpan] = None

    def __str__(self) -> str:
        return f"{self.type}({self.value})"


class ScopelabGrammar:
    """Scopelab grammar definition using pyparsing"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        # Elements copy the default whitespace when created; the process-wide
        # default is put back once the grammar is built
        previous_whitespace = ParserElement.DEFAULT_WHITE_CHARS
        ParserElement.set_default_whitespace_chars(STATEMENT_WHITESPACE)
        try:
            self._setup_grammar()
        finally:
            ParserElement.set_default_whitespace_chars(previous_whitespace)

    # ------------------------------------------------------------------
    # Parse actions
    #
    # Each action returns its tagged tuple wrapped in a list; a bare tuple
    # may be split into separate tokens by pyparsing.
    # ------------------------------------------------------------------

    @staticmethod
    def _make_number(t):
        text = t[0]
        return [("NUMBER", float(text) if '.' in text else int(text))]

    @staticmethod
    def _make_call(s, loc, t):
        return [("FUNCTION_CALL", {
            "callee": t[0],
            "args": list(t[1:]),
            "line": lineno(loc, s),
            "column": col(loc, s)
        })]

    @staticmethod
    def _make_unary(t):
        tokens = list(t[0])
        operand = tokens[-1]
        for op in reversed(tokens[:-1]):
            operand = ("UNARY_OP", {"op": op, "operand": operand})
        return [operand]

    @staticmethod
    def _make_binary(t):
        tokens = list(t[0])
        result = tokens[0]
        for i in range(1, len(tokens), 2):
            result = ("BINARY_OP", {"op": tokens[i], "left": result, "right": tokens[i + 1]})
        return [result]

    @staticmethod
    def _make_param(t):
        if len(t) == 1:
            return [("PARAM", {"name": t[0], "default": None, "has_default": False})]
        return [("PARAM", {"name": t[0], "default": t[1], "has_default": True})]

    @staticmethod
    def _make_func_def(s, loc, t):
        params = [item[1] for item in t[1:] if item[0] == "PARAM"]
        body = [item for item in t[1:] if item[0] != "PARAM"]
        return [("FUNCTION_DEF", {
            "name": t[0],
            "params": params,
            "body": body,
            "line": lineno(loc, s),
            "column": col(loc, s)
        })]

    @staticmethod
    def _make_assign(s, loc, t):
        return [("ASSIGN", {"name": t[0], "value": t[1], "line": lineno(loc, s), "column": col(loc, s)})]

    @staticmethod
    def _make_aug_assign(s, loc, t):
        return [("AUG_ASSIGN", {
            "name": t[0],
            "op": t[1][0],
            "value": t[2],
            "line": lineno(loc, s),
            "column": col(loc, s)
        })]

    @staticmethod
    def _make_global(s, loc, t):
        return [("GLOBAL", {"names": list(t), "line": lineno(loc, s), "column": col(loc, s)})]

    @staticmethod
    def _make_return(s, loc, t):
        return [("RETURN", {"value": t[0] if len(t) else None, "line": lineno(loc, s), "column": col(loc, s)})]

    @staticmethod
    def _make_expr_stmt(s, loc, t):
        return [("EXPR_STMT", {"value": t[0], "line": lineno(loc, s), "column": col(loc, s)})]

    # ------------------------------------------------------------------
    # Grammar
    # ------------------------------------------------------------------

    def _setup_grammar(self):
        """Setup the Scopelab grammar"""

        # Forward declarations for recursive structures
        expression = Forward()
        statement = Forward()

        # Keywords
        def_kw = Keyword("def")
        end_kw = Keyword("end")
        global_kw = Keyword("global")
        return_kw = Keyword("return")
        reserved = def_kw | end_kw | global_kw | return_kw | Keyword("True") | Keyword("False") | Keyword("None")

        # Identifiers: raw strings where a name is bound, tagged where one is read
        identifier = ~reserved + Regex(IDENTIFIER_PATTERN)
        name_ref = (~reserved + Regex(IDENTIFIER_PATTERN)).set_parse_action(lambda t: [("IDENTIFIER", t[0])])

        # Literals
        number = Regex(r"\d+\.\d+|\d+").set_parse_action(self._make_number)
        string_literal = (
            QuotedString('"', esc_char='\\') | QuotedString("'", esc_char='\\')
        ).set_parse_action(lambda t: [("STRING", t[0])])
        true_literal = Keyword("True").set_parse_action(lambda t: [("BOOL", True)])
        false_literal = Keyword("False").set_parse_action(lambda t: [("BOOL", False)])
        none_literal = Keyword("None").set_parse_action(lambda t: [("NONE", None)])

        # '=' that is not the start of '=='
        assign_op = Regex(r"=(?!=)")
        aug_op = Regex(r"(\+|-|\*|/)=")

        # Calls: positional and keyword arguments, in source order. A keyword
        # name is always followed by '=', so reserved words such as end are allowed
        keyword_name = Regex(IDENTIFIER_PATTERN)
        keyword_arg = (keyword_name + Suppress(assign_op) + expression).set_parse_action(
            lambda t: [("KEYWORD_ARG", {"name": t[0], "value": t[1]})]
        )
        argument = keyword_arg | expression
        arg_list = argument + ZeroOrMore(Suppress(",") + argument)
        function_call = (
            identifier + Suppress("(") + PyParsingOptional(arg_list) + Suppress(")")
        ).set_parse_action(self._make_call)

        operand = function_call | string_literal | number | true_literal | false_literal | none_literal | name_ref

        expression <<= infix_notation(operand, [
            (Literal("-"), 1, OpAssoc.RIGHT, self._make_unary),
            (one_of("* / // %"), 2, OpAssoc.LEFT, self._make_binary),
            (one_of("+ -"), 2, OpAssoc.LEFT, self._make_binary),
            (one_of("== != <= >= < >"), 2, OpAssoc.LEFT, self._make_binary),
        ])

        # One or more newlines (blank and comment-only lines included), or end of input
        eol = Suppress(OneOrMore(LineEnd()))

        # Simple statements
        global_stmt = (
            Suppress(global_kw) + identifier + ZeroOrMore(Suppress(",") + identifier)
        ).set_parse_action(self._make_global)
        return_stmt = (Suppress(return_kw) + PyParsingOptional(expression)).set_parse_action(self._make_return)
        aug_assign_stmt = (identifier + aug_op + expression).set_parse_action(self._make_aug_assign)
        assign_stmt = (identifier + Suppress(assign_op) + expression).set_parse_action(self._make_assign)
        expr_stmt = And([expression]).set_parse_action(self._make_expr_stmt)

        simple_stmt = global_stmt | return_stmt | aug_assign_stmt | assign_stmt | expr_stmt

        # Function definitions
        param = (identifier + PyParsingOptional(Suppress(assign_op) + expression)).set_parse_action(self._make_param)
        param_list = param + ZeroOrMore(Suppress(",") + param)
        func_def = (
            Suppress(def_kw) - identifier + Suppress("(") + PyParsingOptional(param_list) + Suppress(")") +
            Suppress(":") + eol +
            ZeroOrMore(statement) +
            Suppress(end_kw) + eol
        ).set_parse_action(self._make_func_def)

        statement <<= func_def | (simple_stmt - eol)

        comment = Suppress(Regex(r"#[^\n]*"))

        self.expression = expression
        self.statement = statement
        self.program = Suppress(ZeroOrMore(LineEnd())) + ZeroOrMore(statement) + StringEnd()
        self.program.ignore(comment)
        self.single_expression = expression + Suppress(ZeroOrMore(LineEnd())) + StringEnd()
        self.single_expression.ignore(comment)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def parse_program(self, text: str, filename: str = "<input>") -> List[CSTNode]:
        """Parse a whole program into top-level CST nodes"""
        try:
            parse_result = self.program.parse_string(text, parse_all=True)
        except ParseBaseException as e:
            raise enhance_parse_exception(e, text, filename) from e

        if self.debug:
            print(f"Parsed {len(parse_result)} top-level statements from {filename}")

        source_lines = text.split("\n")
        nodes = []
        for item in parse_result:
            tag, payload = item
            span = SourceSpan(filename, payload["line"], payload["column"],
                              source_lines[payload["line"] - 1].strip())
            nodes.append(CSTNode(tag, payload, span))
        return nodes

    def parse_expression(self, text: str, filename: str = "<input>") -> CSTNode:
        """Parse a single expression"""
        try:
            parse_result = self.single_expression.parse_string(text, parse_all=True)
        except ParseBaseException as e:
            raise enhance_parse_exception(e, text, filename) from e

        return CSTNode("EXPRESSION", parse_result[0], SourceSpan(filename, 1, 1, text.strip()))


class ScopelabParser:
    """Main Scopelab parser"""

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.grammar = ScopelabGrammar(debug)

    def parse_file(self, filepath: str) -> List[CSTNode]:
        """Parse a Scopelab source file"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise ScopelabParseError(f"File not found: {filepath}", filename=filepath)
        except UnicodeDecodeError as e:
            raise ScopelabParseError(f"Cannot decode file {filepath}: {e}", filename=filepath)
        return self.grammar.parse_program(content, filepath)

    def parse_string(self, text: str, filename: str = "<input>") -> List[CSTNode]:
        """Parse Scopelab source code from string"""
        return self.grammar.parse_program(text, filename)

    def parse_expression(self, text: str, filename: str = "<input>") -> CSTNode:
        """Parse a single Scopelab expression"""
        return self.grammar.parse_expression(text, filename)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> ScopelabParser:
    """Create a Scopelab parser"""
    return ScopelabParser(debug=debug)


def create_debug_parser() -> ScopelabParser:
    """Create a Scopelab parser with debug enabled"""
    return ScopelabParser(debug=True)


def pretty_print_tree(item: Any, indent: int = 0) -> str:
    """Pretty print a parsed statement or expression for debugging"""
    pad = "  " * indent
    if isinstance(item, CSTNode):
        if item.type == "EXPRESSION":
            return pretty_print_tree(item.value, indent)
        return pretty_print_tree((item.type, item.value), indent)

    if isinstance(item, tuple) and len(item) == 2 and isinstance(item[0], str):
        tag, payload = item
        if not isinstance(payload, dict):
            return f"{pad}{tag}({payload!r})\n"
        result = f"{pad}{tag}\n"
        for key, value in payload.items():
            if key in ("line", "column"):
                continue
            if isinstance(value, (tuple, list, dict)) and value:
                result += f"{pad}  {key}:\n" + pretty_print_tree(value, indent + 2)
            else:
                result += f"{pad}  {key}: {value!r}\n"
        return result

    if isinstance(item, list):
        return "".join(pretty_print_tree(elem, indent) for elem in item)

    if isinstance(item, dict):
        result = ""
        for key, value in item.items():
            if isinstance(value, (tuple, list, dict)) and value:
                result += f"{pad}{key}:\n" + pretty_print_tree(value, indent + 1)
            else:
                result += f"{pad}{key}: {value!r}\n"
        return result

    return f"{pad}{item!r}\n"


if __name__ == "__main__":
    # Example usage
    parser = create_debug_parser()

    try:
        result = parser.parse_expression("add(add(2, add(5, 7)), 9)")
        print("Expression parse result:")
        print(pretty_print_tree(result))
    except ScopelabParseError as e:
        print(f"Parse error: {e}")

    try:
        test_program = """
# Simple Scopelab program
def add(x, y=1):
    return x + y
end
print(add(3, 7), add(5))
"""
        for statement in parser.parse_string(test_program):
            print(pretty_print_tree(statement))
    except ScopelabParseError as e:
        print(f"Parse error: {e}")
