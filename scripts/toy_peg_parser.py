"""
Reference parser for the toy language using Lark.

Uses a formal grammar definition (toy_grammar.lark) and Lark's Earley parser
to produce the same AST nodes as the combinator parser in toy_parser.py. The
two are checked against each other in the tests and by the fuzzer.
"""

from pathlib import Path

from lark import Lark, Transformer, v_args
from lark.exceptions import UnexpectedInput, VisitError

from toy_ast import (
    Add, Assignment, Block, Call, Divide, Equal, Function, Id, If, Multiply,
    Not, NotEqual, Number, Return, Subtract, Var, While,
)
from toy_combinators import ParseError
from toy_lexer import to_int64


# Load grammar from file
GRAMMAR_PATH = Path(__file__).parent / "toy_grammar.lark"


@v_args(inline=True)
class ToyTransformer(Transformer):
    """Transform Lark parse tree into toy_ast nodes."""

    # =========================================================================
    # Program and statements
    # =========================================================================

    def start(self, *statements):
        return Block(statements)

    def block(self, *statements):
        return Block(statements)

    def var_decl(self, name, initializer):
        return Var(str(name), initializer)

    def assignment(self, name, value):
        return Assignment(str(name), value)

    def return_stmt(self, expr):
        return Return(expr)

    def expr_stmt(self, expr):
        return expr

    def if_stmt(self, condition, consequence, alternative=None):
        if alternative is None:
            alternative = Block()
        return If(condition, consequence, alternative)

    def else_clause(self, branch):
        # else if ... becomes a block holding the nested if
        if isinstance(branch, If):
            return Block((branch,))
        return branch

    def while_stmt(self, condition, body):
        return While(condition, body)

    def function_decl(self, name, *rest):
        if len(rest) == 2:
            parameters, body = rest
        else:
            parameters, body = [], rest[0]
        return Function(str(name), parameters, body)

    def parameters(self, *names):
        return [str(n) for n in names]

    # =========================================================================
    # Expressions
    # =========================================================================

    def equal(self, left, right):
        return Equal(left, right)

    def not_equal(self, left, right):
        return NotEqual(left, right)

    def add(self, left, right):
        return Add(left, right)

    def subtract(self, left, right):
        return Subtract(left, right)

    def multiply(self, left, right):
        return Multiply(left, right)

    def divide(self, left, right):
        return Divide(left, right)

    def not_(self, operand):
        return Not(operand)

    def number(self, digits):
        return Number(to_int64(str(digits)))

    def variable(self, name):
        return Id(str(name))

    def call(self, name, arguments=None):
        return Call(str(name), arguments or [])

    def arguments(self, *args):
        return list(args)


# Create parser instance
_parser = None


def get_parser():
    """Get or create the Lark parser instance."""
    global _parser
    if _parser is None:
        with open(GRAMMAR_PATH) as f:
            grammar = f.read()
        _parser = Lark(
            grammar,
            parser='earley',
            lexer='basic',  # keywords never split out of longer names
        )
    return _parser


def parse(source: str) -> Block:
    """Parse toy source code into a Block.

    Lark errors are reported as ParseError so callers handle both parsers the
    same way.
    """
    parser = get_parser()
    try:
        tree = parser.parse(source)
    except UnexpectedInput as e:
        raise ParseError("could not parse program") from e
    try:
        return ToyTransformer().transform(tree)
    except VisitError as e:
        # Lark wraps transformer errors, e.g. integer overflow
        if isinstance(e.orig_exc, ParseError):
            raise e.orig_exc from None
        raise


def parse_file(path) -> Block:
    """Parse a toy source file into a Block."""
    with open(path) as f:
        return parse(f.read())
