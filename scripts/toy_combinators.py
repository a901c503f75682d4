"""
Parser combinators for the toy language.

A parser wraps a function that takes the remaining source text and returns
either a Result (the unconsumed suffix plus a value) or None when it does not
match. A parser that does not match consumes nothing, so alternation can retry
another branch from the same position.

Composite parsers call the wrapped functions of their parts directly, not
through Parser.__call__; choice and sequence loop over their parts instead of
nesting one closure per part.

Nothing in this module knows about the toy language grammar; the lexer and the
grammar layer are built on top of it.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Optional, Tuple, TypeVar

T = TypeVar('T')
U = TypeVar('U')


class ParseError(Exception):
    """Raised when input is not a well formed program.

    Carries no position and no expected-token set.
    """


class ZeroWidthRepetitionError(RuntimeError):
    """Raised when a repeated parser succeeds without consuming input."""


@dataclass(frozen=True)
class Result(Generic[T]):
    """Successful parse attempt: unconsumed input and produced value."""
    source: str
    value: T


ParseFn = Callable[[str], Optional[Result]]


class Parser(Generic[T]):
    """A composable parser.

    Calling a parser with a source string runs it. Composition:

        a | b       first of a, b to match (ordered choice)
        a >> b      a then b, keep b's value
        a << b      a then b, keep a's value
        a.bind(f)   run a, then the parser f(value)
        a.map(f)    transform a's value
    """

    def __init__(self, fn: ParseFn, name: str = ''):
        self._fn = fn
        self.name = name or getattr(fn, '__name__', 'parser')

    def __call__(self, source: str) -> Optional[Result[T]]:
        return self._fn(source)

    def __repr__(self):
        return f"Parser({self.name})"

    def or_(self, other: 'Parser[T]') -> 'Parser[T]':
        return choice(self, other)

    def and_(self, other: 'Parser[U]') -> 'Parser[U]':
        def then(source: str) -> Optional[Result[U]]:
            result = self._fn(source)
            if result is None:
                return None
            return other._fn(result.source)
        return Parser(then, f"{self.name} >> {other.name}")

    def bind(self, function: Callable[[T], 'Parser[U]']) -> 'Parser[U]':
        def chained(source: str) -> Optional[Result[U]]:
            result = self._fn(source)
            if result is None:
                return None
            return function(result.value)._fn(result.source)
        return Parser(chained, self.name)

    def map(self, function: Callable[[T], U]) -> 'Parser[U]':
        """Transform the value; same as bind(lambda v: constant(function(v)))."""
        def transformed(source: str) -> Optional[Result[U]]:
            result = self._fn(source)
            if result is None:
                return None
            return Result(result.source, function(result.value))
        return Parser(transformed, self.name)

    def starmap(self, function: Callable[..., U]) -> 'Parser[U]':
        """Like map, but unpacks a tuple value into positional arguments."""
        return self.map(lambda values: function(*values))

    def skip(self, other: 'Parser[Any]') -> 'Parser[T]':
        """Run self then other, keeping self's value."""
        def keep_first(source: str) -> Optional[Result[T]]:
            result = self._fn(source)
            if result is None:
                return None
            rest = other._fn(result.source)
            if rest is None:
                return None
            return Result(rest.source, result.value)
        return Parser(keep_first, f"{self.name} << {other.name}")

    __or__ = or_
    __rshift__ = and_
    __lshift__ = skip

    def parse_to_completion(self, source: str) -> T:
        """Run the parser and require it to consume the entire input.

        Raises ParseError if the parser does not match or leaves input behind.
        """
        result = self._fn(source)
        if result is None or result.source:
            raise ParseError("could not parse program")
        return result.value


# =============================================================================
# Constructors
# =============================================================================

def primitive(fn: ParseFn) -> Parser:
    """Decorator turning a plain recognizer function into a Parser."""
    return Parser(fn, fn.__name__)


def constant(value: T) -> Parser[T]:
    """Always succeeds with value, consuming nothing."""
    return Parser(lambda source: Result(source, value), 'constant')


def lazy(factory: Callable[[], Parser[T]]) -> Parser[T]:
    """Defer building a parser until it is first run.

    Mutually recursive rules refer to each other through lazy references. On
    the first run the reference takes over the built parser's function, so
    later runs skip the indirection.
    """
    def deferred(source: str) -> Optional[Result[T]]:
        target = factory()
        parser._fn = target._fn
        return target._fn(source)

    parser: Parser[T] = Parser(deferred, 'lazy')
    return parser


def zero_or_more(inner: Parser[T]) -> Parser[List[T]]:
    """Apply inner until it stops matching; always succeeds.

    inner must consume input whenever it matches, otherwise the loop would
    never end. A zero-width match raises ZeroWidthRepetitionError.
    """
    def repeat(source: str) -> Optional[Result[List[T]]]:
        values: List[T] = []
        remaining = source
        while True:
            result = inner._fn(remaining)
            if result is None:
                break
            if len(result.source) >= len(remaining):
                raise ZeroWidthRepetitionError(
                    f"{inner!r} matched without consuming input")
            values.append(result.value)
            remaining = result.source
        return Result(remaining, values)
    return Parser(repeat, f"({inner.name})*")


def maybe(inner: Parser[T]) -> Parser[Optional[T]]:
    """Apply inner; on no match produce None without consuming input."""
    def optional(source: str) -> Optional[Result[Optional[T]]]:
        result = inner._fn(source)
        if result is None:
            return Result(source, None)
        return result
    return Parser(optional, f"({inner.name})?")


def choice(*alternatives: Parser[T]) -> Parser[T]:
    """Ordered choice over several alternatives; the first match wins."""
    if not alternatives:
        raise ValueError("choice requires at least one alternative")

    def first_match(source: str) -> Optional[Result[T]]:
        for alternative in alternatives:
            result = alternative._fn(source)
            if result is not None:
                return result
        return None
    return Parser(first_match, ' | '.join(a.name for a in alternatives))


def sequence(*parsers: Parser[Any]) -> Parser[Tuple[Any, ...]]:
    """Run parsers one after another, collecting all values in a tuple."""
    def all_of(source: str) -> Optional[Result[Tuple[Any, ...]]]:
        values = []
        for parser in parsers:
            result = parser._fn(source)
            if result is None:
                return None
            values.append(result.value)
            source = result.source
        return Result(source, tuple(values))
    return Parser(all_of, ', '.join(p.name for p in parsers) or 'sequence')


def separated(item: Parser[T], separator: Parser[Any]) -> Parser[List[T]]:
    """Zero or more items divided by separator, no trailing separator."""
    some = sequence(item, zero_or_more(separator >> item)).starmap(
        lambda first, rest: [first] + rest)
    return choice(some, constant([]))
