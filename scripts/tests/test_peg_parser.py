"""
Tests for the Lark-based reference parser.

These tests verify that the Lark grammar produces the same AST as the
combinator parser on well formed programs.
"""

import pytest
import sys
from pathlib import Path

# Add scripts directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from toy_peg_parser import parse as peg_parse, parse_file as peg_parse_file
from toy_parser import parse as combinator_parse
from toy_ast import Add, Block, Call, Equal, Function, Id, If, Not, Number, Return, Var
from toy_lexer import IntegerOverflowError
from toy_combinators import ParseError


# Use PEG parser as the default for these tests
parse = peg_parse


PROGRAMS = [
    "",
    "x;",
    "var x = 1 + 2 * 3; return x;",
    "function add(a, b) { return a + b; }",
    "function main() { }",
    "if (x) { y; }",
    "if (x) { y; } else { z; }",
    "if (a) { } else if (b) { c; } else { d; }",
    "while (n != 0) { n = n - 1; }",
    "x = f(1, g(y), a + b);",
    "return !x == !(y);",
    "return !(!x);",
    "return a - b - c / d * e;",
    "return a == b != c;",
    "return (1 + 2) * 3;",
    "{ { } { x; } }",
    "// comment\nvar /* inline */ x = 1; // trailing",
    "iffy = returned + variable;",
    "return 9223372036854775807;",
    "function fact(n) { if (n == 0) { return 1; } return n * fact(n - 1); }",
    "x = " + "(" * 30 + "1" + ")" * 30 + ";",
    "if (x) { " * 20 + "y;" + " }" * 20,
]


class TestAgreement:
    """The reference parser and the combinator parser agree."""

    @pytest.mark.parametrize("source", PROGRAMS)
    def test_same_ast(self, source):
        assert peg_parse(source) == combinator_parse(source)


class TestPegParser:

    def test_var_and_return(self):
        assert parse("var x = 1 + 2; return x;") == Block([
            Var("x", Add(Number(1), Number(2))),
            Return(Id("x")),
        ])

    def test_if_without_else(self):
        assert parse("if (x) { }") == Block([If(Id("x"), Block(), Block())])

    def test_function(self):
        program = parse("function f(a) { return g(a); }")
        assert program == Block([
            Function("f", ["a"], Block([Return(Call("g", [Id("a")]))])),
        ])

    def test_not(self):
        assert parse("!x == y;") == Block([Equal(Not(Id("x")), Id("y"))])

    def test_syntax_error_is_parse_error(self):
        with pytest.raises(ParseError):
            parse("var = ;")

    def test_trailing_garbage(self):
        with pytest.raises(ParseError):
            parse("x; garbage$$")

    def test_unterminated_comment(self):
        with pytest.raises(ParseError):
            parse("x; /* open")

    def test_double_not_rejected(self):
        with pytest.raises(ParseError):
            parse("!!x;")

    def test_overflow(self):
        with pytest.raises(IntegerOverflowError):
            parse("return 9223372036854775808;")

    def test_keywords_reserved(self):
        # The combinator parser reads this as an expression statement
        assert combinator_parse("if;") == Block([Id("if")])
        with pytest.raises(ParseError):
            parse("if;")

    def test_keyword_before_punctuation(self):
        # Lark tokenizes, so no whitespace is needed after a keyword
        assert parse("if(x){}") == Block([If(Id("x"), Block(), Block())])

    def test_parse_file(self, tmp_path):
        path = tmp_path / "prog.toy"
        path.write_text("x = 1;\n")
        assert peg_parse_file(path) == combinator_parse("x = 1;")
