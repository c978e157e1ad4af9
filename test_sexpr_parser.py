"""
Tests for s-expression reading and printing.
"""

import re

import pytest

from cons_types import Pair, Symbol, cons, format_leaf, format_sexpr, is_pair, make_list
from sexpr_parser import SexprSyntaxError, parse_many, parse_sexpr


# =============================================================================
# Test Structure Types
# =============================================================================


class TestConsTypes:
    """Tests for the basic structure types."""

    def test_pair_creation(self) -> None:
        """Test creating a pair."""
        pair = cons(1, 2)
        assert isinstance(pair, Pair)
        assert pair.first == 1
        assert pair.second == 2

    def test_pair_equality_is_identity(self) -> None:
        """Test that pairs with equal contents are still different cells."""
        assert cons(1, 2) != cons(1, 2)
        pair = cons(1, 2)
        assert pair == pair

    def test_make_list(self) -> None:
        """Test building a proper list."""
        lst = make_list(1, 2, 3)
        assert lst.first == 1
        assert lst.second.first == 2
        assert lst.second.second.first == 3
        assert lst.second.second.second is None

    def test_make_list_with_tail(self) -> None:
        """Test building a dotted list."""
        lst = make_list(1, 2, tail=3)
        assert lst.second.second == 3

    def test_make_empty_list(self) -> None:
        """Test that no items gives nil."""
        assert make_list() is None

    def test_is_pair(self) -> None:
        """Test pair detection."""
        assert is_pair(cons(1, 2))
        assert not is_pair(None)
        assert not is_pair((1, 2))

    def test_symbol_str(self) -> None:
        """Test that symbols print as their name."""
        assert str(Symbol("foo")) == "foo"


class TestFormat:
    """Tests for leaf text and list printing."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (None, "nil"),
            (5, "5"),
            (-2.5, "-2.5"),
            (Symbol("abc"), "abc"),
            ("hi", '"hi"'),
            ('a"b', '"a\\"b"'),
            ("back\\slash", '"back\\\\slash"'),
            (True, "True"),
        ],
    )
    def test_format_leaf(self, value: object, expected: str) -> None:
        """Test the text form of leaf values."""
        assert format_leaf(value) == expected

    def test_format_leaf_custom_nil(self) -> None:
        """Test overriding the text of nil."""
        assert format_leaf(None, nil_text="()") == "()"

    def test_format_proper_list(self) -> None:
        """Test printing a proper list."""
        assert format_sexpr(make_list(1, 2, 3)) == "(1 2 3)"

    def test_format_dotted(self) -> None:
        """Test printing dotted pairs and lists."""
        assert format_sexpr(cons(1, 2)) == "(1 . 2)"
        assert format_sexpr(make_list(1, 2, tail=3)) == "(1 2 . 3)"

    def test_format_nested(self) -> None:
        """Test printing nested lists."""
        obj = make_list(Symbol("a"), make_list(Symbol("b"), None), "c")
        assert format_sexpr(obj) == '(a (b nil) "c")'

    def test_format_self_loop(self) -> None:
        """Test that a cycle prints with a label."""
        pair = Pair(Symbol("x"), None)
        pair.second = pair
        assert format_sexpr(pair) == "#1=(x . #1#)"

    def test_format_shared(self) -> None:
        """Test that shared structure is printed once and referenced afterwards."""
        shared = make_list(Symbol("p"), Symbol("q"))
        obj = make_list(shared, shared, tail=shared)
        assert format_sexpr(obj) == "(#1=(p q) #1# . #1#)"

    def test_pair_repr(self) -> None:
        """Test that a pair's repr uses list notation."""
        assert repr(cons(1, 2)) == "Pair((1 . 2))"

    def test_format_empty_symbol(self) -> None:
        """Test that the empty symbol still prints as something."""
        assert format_leaf(Symbol("")) == "||"
        assert format_sexpr(make_list(Symbol(""), 1)) == "(|| 1)"

    def test_format_deep_first_nesting(self) -> None:
        """Test printing a structure nested far deeper than the call stack allows."""
        obj = 1
        for _ in range(5000):
            obj = cons(obj, None)
        text = format_sexpr(obj)
        assert text == "(" * 5000 + "1" + ")" * 5000
        assert repr(obj).startswith("Pair((((")

    def test_format_deep_dotted_tails(self) -> None:
        """Test printing a long chain of dotted tails through shared cells."""
        shared = cons(1, 2)
        obj = shared
        for _ in range(3000):
            obj = cons(shared, obj)
        text = format_sexpr(obj)
        assert text.startswith("(#1=(1 . 2) #1# #1#")
        assert text.endswith(" . #1#)")

    def test_format_cycle_inside_deep_nesting(self) -> None:
        """Test labels in a deeply nested cyclic structure."""
        loop = Pair(Symbol("x"), None)
        loop.second = loop
        obj = loop
        for _ in range(2000):
            obj = cons(obj, None)
        assert format_sexpr(obj) == "(" * 2000 + "#1=(x . #1#)" + ")" * 2000


# =============================================================================
# Test Parsing
# =============================================================================


class TestParseAtoms:
    """Tests for reading atoms."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("5", 5),
            ("-12", -12),
            ("+3", 3),
            ("2.5", 2.5),
            ("1e3", 1000.0),
            ("foo", Symbol("foo")),
            ("Foo-Bar", Symbol("Foo-Bar")),
            ("-", Symbol("-")),
            ("...", Symbol("...")),
            ('"hello world"', "hello world"),
            ('"say \\"hi\\""', 'say "hi"'),
        ],
    )
    def test_parse_atom(self, text: str, expected: object) -> None:
        """Test reading a single atom."""
        assert parse_sexpr(text) == expected

    @pytest.mark.parametrize("text", ["nil", "NIL", "Nil", "()", "( )"])
    def test_parse_nil(self, text: str) -> None:
        """Test the spellings of nil."""
        assert parse_sexpr(text) is None


class TestParseLists:
    """Tests for reading lists."""

    def test_parse_proper_list(self) -> None:
        """Test reading (1 2 3)."""
        obj = parse_sexpr("(1 2 3)")
        assert format_sexpr(obj) == "(1 2 3)"
        assert obj.second.second.second is None

    def test_parse_dotted_pair(self) -> None:
        """Test reading (a . b)."""
        obj = parse_sexpr("(a . b)")
        assert obj.first == Symbol("a")
        assert obj.second == Symbol("b")

    def test_parse_dotted_list(self) -> None:
        """Test reading (1 2 . 3)."""
        assert format_sexpr(parse_sexpr("(1 2 . 3)")) == "(1 2 . 3)"

    def test_parse_nested(self) -> None:
        """Test reading nested lists across lines with comments."""
        text = """
        ; a nested list
        (a (b c) ; inner
           d)
        """
        assert format_sexpr(parse_sexpr(text)) == "(a (b c) d)"

    def test_parse_quote(self) -> None:
        """Test that 'x reads as (quote x)."""
        assert format_sexpr(parse_sexpr("'(a b)")) == "(quote (a b))"

    def test_parse_many(self) -> None:
        """Test reading several expressions from one text."""
        values = parse_many("1 (2 3) foo")
        assert values[0] == 1
        assert format_sexpr(values[1]) == "(2 3)"
        assert values[2] == Symbol("foo")

    def test_parse_deep_nesting(self) -> None:
        """Test reading lists nested far deeper than the call stack allows."""
        obj = parse_sexpr("(" * 3000 + ")" * 3000)
        depth = 0
        while is_pair(obj):
            assert obj.second is None
            obj = obj.first
            depth += 1
        assert obj is None
        assert depth == 2999

    def test_parse_deep_quotes_and_tails(self) -> None:
        """Test deeply nested quotes and dotted tails."""
        obj = parse_sexpr("'" * 2000 + "x")
        for _ in range(2000):
            assert obj.first == Symbol("quote")
            obj = obj.second.first
        assert obj == Symbol("x")

        text = "(a . " * 2000 + "b" + ")" * 2000
        obj = parse_sexpr(text)
        assert format_sexpr(obj) == "(" + "a " * 2000 + ". b)"

    def test_deep_round_trip(self) -> None:
        """Test that a deeply nested print reads back to the same shape."""
        text = "(" * 4000 + "#1=(y . #1#)" + ")" * 4000
        assert format_sexpr(parse_sexpr(text)) == text

    def test_parse_many_empty(self) -> None:
        """Test that blank text has no expressions."""
        assert parse_many("  ; nothing\n") == []


class TestParseLabels:
    """Tests for #n= and #n# labels."""

    def test_self_loop(self) -> None:
        """Test a list whose tail is itself."""
        obj = parse_sexpr("#1=(a . #1#)")
        assert obj.first == Symbol("a")
        assert obj.second is obj

    def test_cycle_through_first(self) -> None:
        """Test a pair whose first reference is itself."""
        obj = parse_sexpr("#1=(#1# . b)")
        assert obj.first is obj
        assert obj.second == Symbol("b")

    def test_shared_structure(self) -> None:
        """Test that a label shares one pair rather than copying it."""
        obj = parse_sexpr("(#1=(p q) #1#)")
        assert obj.first is obj.second.first

    def test_cycle_inside_list(self) -> None:
        """Test a cyclic element of an ordinary list."""
        obj = parse_sexpr("(x #1=(y . #1#) z)")
        inner = obj.second.first
        assert inner.second is inner
        assert obj.second.second.first == Symbol("z")

    def test_nested_labels(self) -> None:
        """Test labels defined inside other labels."""
        obj = parse_sexpr("#1=(#2=(a . #1#) . #2#)")
        inner = obj.first
        assert inner.second is obj
        assert obj.second is inner

    def test_labelled_atom(self) -> None:
        """Test that atoms can be labelled and referenced."""
        obj = parse_sexpr("(#1=5 #1#)")
        assert format_sexpr(obj) == "(5 5)"

    def test_round_trip(self) -> None:
        """Test that printing a cyclic structure reads back with the same shape."""
        text = "(#1=(p q) #1# . #1#)"
        assert format_sexpr(parse_sexpr(text)) == text
        loop = "#1=(a b . #1#)"
        assert format_sexpr(parse_sexpr(loop)) == loop


class TestParseErrors:
    """Tests for malformed input."""

    @pytest.mark.parametrize(
        "text,message",
        [
            ("", "No expression found"),
            ("(1 2", "Unclosed '('"),
            (")", "Unexpected ')'"),
            (".", "Unexpected '.'"),
            ("( . a)", "Dotted tail with no elements"),
            ("(a . b c)", "Expected ')' after dotted tail"),
            ("(a .", "Unexpected end of input"),
            ("#1#", "undefined label"),
            ("(#1=a #1=b)", "defined twice"),
            ("#1=#1#", "refers only to itself"),
            ("1 2", "Unexpected text after expression"),
            ('"abc', "Unterminated string"),
            ("(" * 3000 + ")" * 2999, "Unclosed '('"),
            ("(" * 3000 + ")" * 3001, "Unexpected text after expression"),
            ("((a . b c))", "Expected ')' after dotted tail"),
            ("(a . )", "Unexpected ')'"),
            ("(a . . b)", "Unexpected '.'"),
            ("'", "Unexpected end of input"),
            ("#1=", "Unexpected end of input"),
        ],
    )
    def test_syntax_errors(self, text: str, message: str) -> None:
        """Test that each kind of malformed input is reported."""
        with pytest.raises(SexprSyntaxError, match=re.escape(message)):
            parse_sexpr(text)

    def test_error_is_value_error(self) -> None:
        """Test the exception hierarchy."""
        with pytest.raises(ValueError):
            parse_sexpr("(")

    def test_error_position_details(self) -> None:
        """Test that the error names the line and column."""
        with pytest.raises(SexprSyntaxError) as exc_info:
            parse_sexpr("; comment\n(c ))")
        error = exc_info.value
        message = str(error)
        assert "Line 2, column 5" in message
        assert "(c ))" in message
        assert error.position == 14
        assert "Unexpected text after expression" in message
