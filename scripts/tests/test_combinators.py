"""
Tests for the parser combinator core.
"""

import pytest
import sys
from pathlib import Path

# Add scripts directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from toy_combinators import (
    ParseError, Parser, Result, ZeroWidthRepetitionError, choice, constant,
    lazy, maybe, primitive, separated, sequence, zero_or_more,
)


def char(c: str) -> Parser:
    """Parser matching a single literal character."""
    @primitive
    def match(source):
        if source.startswith(c):
            return Result(source[1:], c)
        return None
    return match


A = char('a')
B = char('b')
COMMA = char(',')


class TestBasicCombinators:
    """Tests for alternation, sequencing and value transforms."""

    def test_or_takes_first_match(self):
        assert (A | B)('abc') == Result('bc', 'a')
        assert (A | B)('bca') == Result('ca', 'b')

    def test_or_no_match(self):
        assert (A | B)('cab') is None

    def test_or_retries_from_same_position(self):
        ab = A >> B
        ac = A >> char('c')
        assert (ab | ac)('acd') == Result('d', 'c')

    def test_and_keeps_second_value(self):
        assert (A >> B)('abc') == Result('c', 'b')

    def test_and_fails_if_either_fails(self):
        assert (A >> B)('acb') is None
        assert (A >> B)('bab') is None

    def test_skip_keeps_first_value(self):
        assert (A << B)('abc') == Result('c', 'a')
        assert (A << B)('ac') is None

    def test_named_methods_match_operators(self):
        assert A.or_(B)('b') == (A | B)('b')
        assert A.and_(B)('ab') == (A >> B)('ab')
        assert A.skip(B)('ab') == (A << B)('ab')

    def test_bind_builds_parser_from_value(self):
        # match the same character twice
        twice = (A | B).bind(char)
        assert twice('aab') == Result('b', 'a')
        assert twice('bb') == Result('', 'b')
        assert twice('ab') is None

    def test_map(self):
        assert A.map(str.upper)('ab') == Result('b', 'A')
        assert A.map(str.upper)('ba') is None

    def test_starmap(self):
        pair = sequence(A, B).starmap(lambda a, b: b + a)
        assert pair('abz') == Result('z', 'ba')

    def test_constant_consumes_nothing(self):
        assert constant(42)('rest') == Result('rest', 42)
        assert constant(None)('') == Result('', None)

    def test_repr(self):
        assert 'match' in repr(A)


class TestRepetition:
    """Tests for zero_or_more, maybe and separated."""

    def test_zero_or_more_collects_in_order(self):
        assert zero_or_more(A | B)('abbac') == Result('c', ['a', 'b', 'b', 'a'])

    def test_zero_or_more_always_succeeds(self):
        assert zero_or_more(A)('bbb') == Result('bbb', [])
        assert zero_or_more(A)('') == Result('', [])

    def test_zero_width_repetition_raises(self):
        with pytest.raises(ZeroWidthRepetitionError):
            zero_or_more(constant(1))('abc')

    def test_zero_width_repetition_of_maybe(self):
        with pytest.raises(ZeroWidthRepetitionError):
            zero_or_more(maybe(A))('b')

    def test_maybe_present(self):
        assert maybe(A)('ab') == Result('b', 'a')

    def test_maybe_absent(self):
        assert maybe(A)('ba') == Result('ba', None)

    def test_separated_many(self):
        assert separated(A, COMMA)('a,a,ab') == Result('b', ['a', 'a', 'a'])

    def test_separated_one(self):
        assert separated(A, COMMA)('a)') == Result(')', ['a'])

    def test_separated_empty(self):
        assert separated(A, COMMA)(')') == Result(')', [])

    def test_separated_trailing_separator_left_unconsumed(self):
        assert separated(A, COMMA)('a,)') == Result(',)', ['a'])


class TestSequenceAndChoice:

    def test_sequence_collects_tuple(self):
        assert sequence(A, B, A)('abac') == Result('c', ('a', 'b', 'a'))

    def test_sequence_fails_as_a_whole(self):
        assert sequence(A, B, A)('abb') is None

    def test_empty_sequence(self):
        assert sequence()('xyz') == Result('xyz', ())

    def test_choice_is_ordered(self):
        long_first = choice(sequence(A, B).map(''.join), A)
        assert long_first('ab') == Result('', 'ab')
        assert long_first('ac') == Result('c', 'a')

    def test_choice_requires_alternatives(self):
        with pytest.raises(ValueError):
            choice()


class TestLazy:

    def test_recursive_rule(self):
        # nested := '(' nested ')' | 'a'
        def build():
            return (char('(') >> nested << char(')')).map(lambda inner: [inner]) | A
        nested = lazy(build)
        assert nested('((a))') == Result('', [['a']])
        assert nested('((a)') is None

    def test_factory_called_once(self):
        calls = []

        def build():
            calls.append(1)
            return A
        deferred = lazy(build)
        deferred('a')
        deferred('a')
        assert len(calls) == 1

    def test_resolves_to_built_parser(self):
        deferred = lazy(lambda: A)
        deferred('a')
        assert deferred._fn is A._fn


class TestNestingDepth:
    """Composite parsers nest deeply without exhausting the stack."""

    def test_deep_recursive_rule(self):
        def build():
            return (char('(') >> nested << char(')')) | A
        nested = lazy(build)
        depth = 150
        assert nested('(' * depth + 'a' + ')' * depth) == Result('', 'a')

    def test_long_choice_is_flat(self):
        parsers = [char(c) for c in 'bcdefghijklmnopqrstuvwxyz'] + [A]
        assert choice(*parsers)('ax') == Result('x', 'a')

    def test_long_sequence(self):
        parsers = [A] * 300
        assert sequence(*parsers)('a' * 300) == Result('', ('a',) * 300)


class TestCompletion:

    def test_returns_value_when_all_input_consumed(self):
        assert zero_or_more(A).parse_to_completion('aaa') == ['a', 'a', 'a']

    def test_leftover_input_fails(self):
        with pytest.raises(ParseError):
            zero_or_more(A).parse_to_completion('aab')

    def test_no_match_fails(self):
        with pytest.raises(ParseError):
            A.parse_to_completion('b')


class TestSuffixInvariant:
    """On success, the remaining input is a suffix of the original."""

    PARSERS = [
        A,
        A | B,
        A >> B,
        zero_or_more(A | B),
        maybe(A),
        separated(A, COMMA),
        constant(0),
        sequence(maybe(A), zero_or_more(B)),
    ]

    INPUTS = ['', 'a', 'b', 'ab', 'ba', 'a,a,b', 'aabbx', 'xyz']

    @pytest.mark.parametrize("index", range(len(PARSERS)))
    def test_suffix(self, index):
        parser = self.PARSERS[index]
        for source in self.INPUTS:
            result = parser(source)
            if result is not None:
                assert source.endswith(result.source)
                assert len(result.source) <= len(source)
