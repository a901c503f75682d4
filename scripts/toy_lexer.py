"""
Lexical layer for the toy language.

There is no separate token stream: each recognizer matches one lexeme at the
front of the input and then swallows any whitespace and comments after it, so
grammar rules can be chained directly without skip steps in between.
"""

import re
from typing import Optional

from toy_combinators import (
    ParseError, Parser, Result, primitive, zero_or_more,
)


# Keywords must be followed by whitespace or end of input
KEYWORDS = ('function', 'if', 'else', 'return', 'var', 'while')

PUNCTUATION = (
    ',', ';', '(', ')', '{', '}',
    '!', '==', '!=', '+', '-', '*', '/', '=',
)

INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1

LINE_COMMENT_START = '//'
BLOCK_COMMENT_START = '/*'
BLOCK_COMMENT_END = '*/'

_WHITESPACE_RE = re.compile(r'\s+')
_DIGITS_RE = re.compile(r'[0-9]+')


class IntegerOverflowError(ParseError):
    """Raised when a number literal does not fit in a signed 64-bit integer."""
    def __init__(self, literal: str):
        self.literal = literal
        super().__init__(f"integer literal out of range: {literal}")


def to_int64(digits: str) -> int:
    """Convert a run of ASCII digits, rejecting values outside int64."""
    value = int(digits)
    if not INT64_MIN <= value <= INT64_MAX:
        raise IntegerOverflowError(digits)
    return value


# =============================================================================
# Ignorable content
# =============================================================================

@primitive
def whitespace(source: str) -> Optional[Result[None]]:
    """One or more whitespace characters."""
    match = _WHITESPACE_RE.match(source)
    if match is None:
        return None
    return Result(source[match.end():], None)


@primitive
def line_comment(source: str) -> Optional[Result[None]]:
    """// up to and including the end of the line, or to end of input."""
    if not source.startswith(LINE_COMMENT_START):
        return None
    newline = source.find('\n', len(LINE_COMMENT_START))
    if newline < 0:
        return Result('', None)
    return Result(source[newline + 1:], None)


@primitive
def block_comment(source: str) -> Optional[Result[None]]:
    """/* ... */. An unterminated comment does not match at all."""
    if not source.startswith(BLOCK_COMMENT_START):
        return None
    end = source.find(BLOCK_COMMENT_END, len(BLOCK_COMMENT_START))
    if end < 0:
        return None
    return Result(source[end + len(BLOCK_COMMENT_END):], None)


comment = line_comment | block_comment

ignored = zero_or_more(whitespace | comment).map(lambda _: None)
ignored.name = 'ignored'


# =============================================================================
# Token recognizers
# =============================================================================

def _lexeme(base: Parser) -> Parser:
    """Attach trailing ignorable content to a raw recognizer."""
    def lexeme(source: str) -> Optional[Result]:
        result = base(source)
        if result is None:
            return None
        rest = ignored(result.source)
        return Result(rest.source, result.value)
    return Parser(lexeme, base.name)


def token(literal: str, boundary: bool = False) -> Parser[str]:
    """Recognizer for an exact literal.

    With boundary set, the literal must be followed by a whitespace character
    (consumed) or end of input, so a keyword never matches the start of a
    longer identifier.
    """
    def exact(source: str) -> Optional[Result[str]]:
        if not source.startswith(literal):
            return None
        rest = source[len(literal):]
        if not boundary or not rest:
            return Result(rest, literal)
        if rest[0].isspace():
            return Result(rest[1:], literal)
        return None

    return _lexeme(Parser(exact, repr(literal)))


def keyword(word: str) -> Parser[str]:
    return token(word, boundary=True)


@primitive
def _number(source: str) -> Optional[Result[int]]:
    match = _DIGITS_RE.match(source)
    if match is None:
        return None
    return Result(source[match.end():], to_int64(match.group()))


@primitive
def _identifier(source: str) -> Optional[Result[str]]:
    if not source or not (source[0].isalpha() or source[0] == '_'):
        return None
    end = 1
    while end < len(source) and (source[end].isalnum() or source[end] == '_'):
        end += 1
    return Result(source[end:], source[:end])


# Digits only; "123abc" is the number 123 followed by "abc"
number = _lexeme(_number)
number.name = 'number'

identifier = _lexeme(_identifier)
identifier.name = 'identifier'


# Keywords
FUNCTION = keyword('function')
IF = keyword('if')
ELSE = keyword('else')
RETURN = keyword('return')
VAR = keyword('var')
WHILE = keyword('while')

# Symbols
COMMA = token(',')
SEMICOLON = token(';')
LPAREN = token('(')
RPAREN = token(')')
LBRACE = token('{')
RBRACE = token('}')
EQUALS = token('=')

# Operators
NOT = token('!')
EQ = token('==')
NEQ = token('!=')
PLUS = token('+')
MINUS = token('-')
STAR = token('*')
SLASH = token('/')
