"""
Parser for the toy language.

Recursive descent built from the combinators in toy_combinators and the
recognizers in toy_lexer. Each non-terminal is one rule on Grammar; rules that
are alternatives of each other are ordered so the more specific one is tried
first.
"""

import sys
from contextlib import contextmanager
from pathlib import Path
from typing import List, Tuple, Type

from toy_combinators import (
    ParseError, Parser, choice, constant, lazy, maybe, sequence, separated,
    zero_or_more,
)
from toy_lexer import (
    COMMA, ELSE, EQ, EQUALS, FUNCTION, IF, LBRACE, LPAREN, MINUS, NEQ, NOT,
    PLUS, RBRACE, RETURN, RPAREN, SEMICOLON, SLASH, STAR, VAR, WHILE,
    IntegerOverflowError, identifier, ignored, number,
)
from toy_ast import (
    Add, Assignment, BINARY_LEVELS, BinaryOp, Block, Call, Divide, Equal, Expr,
    Function, Id, If, Multiply, Not, NotEqual, Number, Return, Subtract, Var,
    While,
)

__all__ = [
    'Grammar', 'ParseError', 'IntegerOverflowError', 'RECURSION_LIMIT', 'parse',
    'parse_file',
]


def _fold_left(first: Expr, rest: List[Tuple[Type[BinaryOp], Expr]]) -> Expr:
    """Combine `a op b op c` left-associatively: ((a op b) op c)."""
    left = first
    for node_type, right in rest:
        left = node_type(left, right)
    return left


OPERATOR_TOKENS = {
    Equal: EQ,
    NotEqual: NEQ,
    Add: PLUS,
    Subtract: MINUS,
    Multiply: STAR,
    Divide: SLASH,
}


def _binary_level(operand: Parser, operators: Tuple[Type[BinaryOp], ...]) -> Parser:
    """One precedence level: operand (operator operand)*, folded left."""
    operator = choice(*(
        OPERATOR_TOKENS[node_type].map(lambda _, node_type=node_type: node_type)
        for node_type in operators
    ))
    return sequence(operand, zero_or_more(sequence(operator, operand))).starmap(_fold_left)


class Grammar:
    """Recursive descent rules for the toy language."""

    def __init__(self):
        # Forward references for the recursive rules
        expression = lazy(lambda: self.expression)
        statement = lazy(lambda: self.statement)
        if_statement = lazy(lambda: self.if_statement)

        # =====================================================================
        # Expressions
        # =====================================================================

        self.number = number.map(Number)
        self.variable = identifier.map(Id)
        self.arguments = separated(expression, COMMA)
        # identifier immediately followed by an argument list
        self.call = sequence(identifier, LPAREN >> self.arguments << RPAREN).starmap(Call)
        self.group = LPAREN >> expression << RPAREN

        # call before variable: both start with an identifier
        self.primary = choice(self.number, self.call, self.variable, self.group)

        self.unary = sequence(maybe(NOT), self.primary).starmap(
            lambda bang, operand: Not(operand) if bang else operand)

        equality_ops, additive_ops, multiplicative_ops = BINARY_LEVELS
        self.multiplicative = _binary_level(self.unary, multiplicative_ops)
        self.additive = _binary_level(self.multiplicative, additive_ops)
        self.equality = _binary_level(self.additive, equality_ops)
        self.expression = self.equality

        # =====================================================================
        # Statements
        # =====================================================================

        self.block = (LBRACE >> zero_or_more(statement) << RBRACE).map(Block)

        self.var_declaration = sequence(
            VAR >> identifier,
            EQUALS >> expression << SEMICOLON,
        ).starmap(Var)

        self.assignment = sequence(
            identifier,
            EQUALS >> expression << SEMICOLON,
        ).starmap(Assignment)

        self.return_statement = (RETURN >> expression << SEMICOLON).map(Return)

        condition = LPAREN >> expression << RPAREN

        # else if ... is kept as a block holding the nested if
        self.else_branch = ELSE >> (
            if_statement.map(lambda nested: Block((nested,))) | self.block
        )
        self.if_statement = sequence(
            IF >> condition,
            self.block,
            self.else_branch | constant(Block()),
        ).starmap(If)

        self.while_statement = sequence(WHILE >> condition, self.block).starmap(While)

        self.parameters = separated(identifier, COMMA)
        self.function_declaration = sequence(
            FUNCTION >> identifier,
            LPAREN >> self.parameters << RPAREN,
            self.block,
        ).starmap(Function)

        self.expression_statement = expression << SEMICOLON

        # assignment before expression_statement: both start with an identifier
        self.statement = choice(
            self.var_declaration,
            self.assignment,
            self.if_statement,
            self.while_statement,
            self.return_statement,
            self.function_declaration,
            self.block,
            self.expression_statement,
        )

        self.program = (ignored >> zero_or_more(statement)).map(Block)


GRAMMAR = Grammar()

# Python frame limit while parsing; each level of nesting costs about ten
RECURSION_LIMIT = 10000


@contextmanager
def recursion_limit(limit: int):
    """Raise the interpreter recursion limit for the duration of the block."""
    previous = sys.getrecursionlimit()
    if previous >= limit:
        yield
        return
    sys.setrecursionlimit(limit)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)


def parse(source: str) -> Block:
    """Parse a whole program into a Block of top-level statements.

    Raises ParseError unless the entire input forms a valid program. Input
    nested too deeply for RECURSION_LIMIT is also reported as ParseError.
    """
    with recursion_limit(RECURSION_LIMIT):
        try:
            return GRAMMAR.program.parse_to_completion(source)
        except RecursionError:
            raise ParseError("program nested too deeply") from None


def parse_file(path) -> Block:
    """Parse a source file into a Block."""
    return parse(Path(path).read_text())
