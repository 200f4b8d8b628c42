"""
Ayysee Lexer Test Suite
=======================

Tests for tokenization: keywords, device names, numbers, operators,
comments, source positions and lexical errors.
"""

import pytest

from ayysee.compiler.lexer import (
    INT64_MAX,
    Lexer,
    Token,
    TokenType,
    tokenize,
)
from ayysee.compiler.errors import InvalidCharacterError, ParseError


def types_of(source: str) -> list[TokenType]:
    return [token.type for token in tokenize(source)]


# =============================================================================
# Basic Tokenization
# =============================================================================

class TestLexer:
    """Tests for the Ayysee lexer (tokenizer)."""

    def test_empty_source(self):
        """Empty source should produce only EOF token."""
        tokens = list(Lexer("", "test.ay").tokenize())
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_whitespace_only(self):
        """Whitespace-only source should produce only EOF token."""
        tokens = list(Lexer("   \n\t  \r\n  ", "test.ay").tokenize())
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF

    def test_single_line_comment(self):
        """Single-line comments should be skipped."""
        tokens = tokenize("// comment\n42")
        assert len(tokens) == 2
        assert tokens[0].type == TokenType.INTEGER
        assert tokens[0].value == 42

    def test_multi_line_comment(self):
        """Multi-line comments should be skipped."""
        tokens = tokenize("/* comment\n\nstuff */42")
        assert len(tokens) == 2
        assert tokens[0].value == 42
        assert tokens[0].line == 3

    def test_keywords(self):
        """Keywords should be tokenized correctly."""
        keywords = [
            ("def", TokenType.DEF),
            ("as", TokenType.AS),
            ("const", TokenType.CONST),
            ("let", TokenType.LET),
            ("fn", TokenType.FN),
            ("loop", TokenType.LOOP),
            ("if", TokenType.IF),
            ("else", TokenType.ELSE),
            ("read", TokenType.READ),
            ("write", TokenType.WRITE),
            ("into", TokenType.INTO),
            ("yield", TokenType.YIELD),
            ("true", TokenType.TRUE),
            ("false", TokenType.FALSE),
        ]
        for text, expected_type in keywords:
            tokens = tokenize(text)
            assert tokens[0].type == expected_type, f"Failed for {text}"

    def test_keywords_are_case_sensitive(self):
        """'Loop' and 'LET' are ordinary identifiers."""
        assert types_of("Loop LET") == [
            TokenType.IDENTIFIER,
            TokenType.IDENTIFIER,
            TokenType.EOF,
        ]

    def test_identifiers(self):
        """Identifiers may contain letters, digits and underscores."""
        tokens = tokenize("sensor _tmp t2 my_var")
        assert [t.value for t in tokens[:-1]] == ["sensor", "_tmp", "t2", "my_var"]
        assert all(t.type == TokenType.IDENTIFIER for t in tokens[:-1])

    def test_device_names(self):
        """Exactly d0-d5 and db are devices."""
        for name in ["d0", "d1", "d2", "d3", "d4", "d5", "db"]:
            tokens = tokenize(name)
            assert tokens[0].type == TokenType.DEVICE, f"Failed for {name}"
            assert tokens[0].value == name

    def test_device_lookalikes_are_identifiers(self):
        """Names that merely start like a device are identifiers."""
        for name in ["d6", "d01", "dbx", "d0x", "D0"]:
            tokens = tokenize(name)
            assert tokens[0].type == TokenType.IDENTIFIER, f"Failed for {name}"


# =============================================================================
# Numbers
# =============================================================================

class TestNumbers:
    """Tests for numeric literals."""

    def test_decimal(self):
        tokens = tokenize("0 42 1000")
        assert [t.value for t in tokens[:-1]] == [0, 42, 1000]
        assert all(t.type == TokenType.INTEGER for t in tokens[:-1])

    def test_hexadecimal(self):
        """Hex numbers use a 0x prefix in either case."""
        tokens = tokenize("0x7F 0XFF")
        assert tokens[0].value == 127
        assert tokens[1].value == 255

    def test_binary(self):
        tokens = tokenize("0b1010 0B11")
        assert tokens[0].value == 10
        assert tokens[1].value == 3

    def test_float(self):
        tokens = tokenize("21.5 0.25")
        assert tokens[0].type == TokenType.FLOAT
        assert tokens[0].value == 21.5
        assert tokens[1].value == 0.25

    def test_float_exponent(self):
        tokens = tokenize("2.0e3 1.5E-2")
        assert tokens[0].value == 2000.0
        assert tokens[1].value == 0.015

    def test_dot_without_digit_is_not_a_float(self):
        """'1.' is the integer 1 followed by a dot."""
        assert types_of("1.") == [TokenType.INTEGER, TokenType.DOT, TokenType.EOF]

    def test_minus_is_separate_token(self):
        """Negative literals are formed by the parser."""
        assert types_of("-5") == [TokenType.MINUS, TokenType.INTEGER, TokenType.EOF]

    def test_largest_magnitude_accepted(self):
        """2**63 lexes so that the parser can accept its negation."""
        tokens = tokenize("9223372036854775808")
        assert tokens[0].value == INT64_MAX + 1

    def test_integer_too_large(self):
        with pytest.raises(ParseError, match="does not fit in 64 bits"):
            tokenize("9223372036854775809")

    def test_number_running_into_letters(self):
        with pytest.raises(ParseError, match="invalid number literal '12a'"):
            tokenize("12abc")

    def test_empty_hex(self):
        with pytest.raises(ParseError, match="expected digits after '0x'"):
            tokenize("0x")

    def test_malformed_exponent(self):
        with pytest.raises(ParseError, match="malformed float exponent"):
            tokenize("1.5e+")


# =============================================================================
# Operators and Delimiters
# =============================================================================

class TestOperators:
    """Tests for operator and delimiter tokens."""

    def test_two_character_operators(self):
        assert types_of("== != <= >= && ||")[:-1] == [
            TokenType.EQ,
            TokenType.NE,
            TokenType.LE,
            TokenType.GE,
            TokenType.AND,
            TokenType.OR,
        ]

    def test_single_character_operators(self):
        assert types_of("+ - * / < > ! =")[:-1] == [
            TokenType.PLUS,
            TokenType.MINUS,
            TokenType.STAR,
            TokenType.SLASH,
            TokenType.LT,
            TokenType.GT,
            TokenType.NOT,
            TokenType.ASSIGN,
        ]

    def test_delimiters(self):
        assert types_of("( ) { } ; , .")[:-1] == [
            TokenType.LPAREN,
            TokenType.RPAREN,
            TokenType.LBRACE,
            TokenType.RBRACE,
            TokenType.SEMICOLON,
            TokenType.COMMA,
            TokenType.DOT,
        ]

    def test_no_whitespace_needed(self):
        assert types_of("x=a<=b;")[:-1] == [
            TokenType.IDENTIFIER,
            TokenType.ASSIGN,
            TokenType.IDENTIFIER,
            TokenType.LE,
            TokenType.IDENTIFIER,
            TokenType.SEMICOLON,
        ]

    def test_device_property_access(self):
        assert types_of("sensor.Temperature")[:-1] == [
            TokenType.IDENTIFIER,
            TokenType.DOT,
            TokenType.IDENTIFIER,
        ]

    def test_single_ampersand(self):
        """A lone '&' points the user at '&&'."""
        with pytest.raises(ParseError) as exc_info:
            tokenize("a & b")
        assert exc_info.value.hint == "logical and is written '&&'"

    def test_single_pipe(self):
        with pytest.raises(ParseError, match="unexpected '\\|'"):
            tokenize("a | b")


# =============================================================================
# Positions and Errors
# =============================================================================

class TestPositions:
    """Tests for source location tracking."""

    def test_line_and_column(self):
        tokens = tokenize("let x\n  = 1;", "test.ay")
        assign = tokens[2]
        assert assign.type == TokenType.ASSIGN
        assert (assign.line, assign.column) == (2, 3)
        assert str(assign.location) == "test.ay:2:3"

    def test_eof_position(self):
        tokens = tokenize("yield;")
        assert tokens[-1].column == 7
        assert tokens[-1].text == "end of input"

    def test_token_repr(self):
        token = Token(TokenType.IDENTIFIER, "sensor", 1, 11, "<input>")
        assert repr(token) == "Token(IDENTIFIER, 'sensor', 1:11)"


class TestLexerErrors:
    """Tests for lexical error handling."""

    def test_invalid_character(self):
        """Invalid character should raise error."""
        with pytest.raises(InvalidCharacterError) as exc_info:
            tokenize("let x = 1;\nlet y = @;", "test.ay")
        error = exc_info.value
        assert error.char == "@"
        assert error.location.line == 2
        assert error.location.column == 9
        assert error.source_line == "let y = @;"

    def test_invalid_character_is_parse_error(self):
        with pytest.raises(ParseError):
            tokenize("$")

    def test_non_ascii_digit_rejected(self):
        """Digits from other scripts are not number literals."""
        with pytest.raises(InvalidCharacterError) as exc_info:
            tokenize("let x = ٣;")
        assert exc_info.value.char == "٣"
        assert exc_info.value.location.column == 9

    def test_non_ascii_digit_after_number(self):
        with pytest.raises(InvalidCharacterError):
            tokenize("let x = 1٣;")

    def test_unterminated_comment(self):
        """Unterminated multi-line comment should raise error."""
        with pytest.raises(ParseError, match="unterminated multi-line comment"):
            tokenize("/* comment")

    def test_error_kind(self):
        with pytest.raises(ParseError) as exc_info:
            tokenize("#")
        assert exc_info.value.kind == "ParseError"
