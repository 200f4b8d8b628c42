"""
Ayysee Lexer (Tokenizer)
========================

This module converts Ayysee source text into a stream of tokens for the
parser.

Token Categories
----------------
- Keywords: def, as, const, let, fn, loop, if, else, read, write, into,
  yield, true, false
- Devices: exactly d0, d1, d2, d3, d4, d5 and db (the IC housing)
- Identifiers: variable, alias, constant, function and property names
- Numbers: decimal, hexadecimal (0x), binary (0b) and decimal floats
- Operators: + - * / == != < > <= >= && || ! =
- Delimiters: ( ) { } , ; .

Device names form their own lexical class. ``d6``, ``d01`` or ``dbx`` are
ordinary identifiers, so user names can never collide with a device.

Number Formats
--------------
| Format      | Prefix  | Example   | Value |
|-------------|---------|-----------|-------|
| Decimal     | (none)  | 123       | 123   |
| Hexadecimal | 0x/0X   | 0x7F      | 127   |
| Binary      | 0b/0B   | 0b1010    | 10    |
| Float       | (none)  | 21.5      | 21.5  |

Integers are checked against the signed 64-bit range. Negative literals
are formed by the parser from a '-' token followed by a number.

Comments
--------
- Single-line: // comment
- Multi-line: /* comment */

Example Usage
-------------
>>> from ayysee.compiler.lexer import Lexer
>>> for token in Lexer("def d0 as sensor;").tokenize():
...     print(token)
Token(DEF, 'def', 1:1)
Token(DEVICE, 'd0', 1:5)
Token(AS, 'as', 1:8)
Token(IDENTIFIER, 'sensor', 1:11)
Token(SEMICOLON, ';', 1:17)
Token(EOF, 1:18)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional
import string

from ayysee.errors import SourceLocation
from ayysee.compiler.errors import ParseError, InvalidCharacterError


# Largest magnitude an integer literal may have; 2**63 itself is only
# valid when negated.
INT64_MAX = 2**63 - 1
INT64_MIN_MAGNITUDE = 2**63


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token types for the Ayysee language."""

    # === Structural Tokens ===
    EOF = auto()

    # === Identifiers and Literals ===
    IDENTIFIER = auto()
    DEVICE = auto()         # d0-d5, db
    INTEGER = auto()
    FLOAT = auto()

    # === Keywords ===
    DEF = auto()
    AS = auto()
    CONST = auto()
    LET = auto()
    FN = auto()
    LOOP = auto()
    IF = auto()
    ELSE = auto()
    READ = auto()
    WRITE = auto()
    INTO = auto()
    YIELD = auto()
    TRUE = auto()
    FALSE = auto()

    # === Arithmetic Operators ===
    PLUS = auto()           # +
    MINUS = auto()          # -
    STAR = auto()           # *
    SLASH = auto()          # /

    # === Comparison Operators ===
    EQ = auto()             # ==
    NE = auto()             # !=
    LT = auto()             # <
    GT = auto()             # >
    LE = auto()             # <=
    GE = auto()             # >=

    # === Logical Operators ===
    AND = auto()            # &&
    OR = auto()             # ||
    NOT = auto()            # !

    # === Assignment ===
    ASSIGN = auto()         # =

    # === Delimiters ===
    LPAREN = auto()         # (
    RPAREN = auto()         # )
    LBRACE = auto()         # {
    RBRACE = auto()         # }
    SEMICOLON = auto()      # ;
    COMMA = auto()          # ,
    DOT = auto()            # .


# =============================================================================
# Keyword and Device Tables
# =============================================================================

KEYWORDS: dict[str, TokenType] = {
    "def": TokenType.DEF,
    "as": TokenType.AS,
    "const": TokenType.CONST,
    "let": TokenType.LET,
    "fn": TokenType.FN,
    "loop": TokenType.LOOP,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "read": TokenType.READ,
    "write": TokenType.WRITE,
    "into": TokenType.INTO,
    "yield": TokenType.YIELD,
    "true": TokenType.TRUE,
    "false": TokenType.FALSE,
}

DEVICE_NAMES = frozenset({"d0", "d1", "d2", "d3", "d4", "d5", "db"})


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token from Ayysee source code.

    Attributes:
        type: The TokenType classification
        value: Token text for names and operators, int/float for numbers
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
    """
    type: TokenType
    value: str | int | float | None
    line: int
    column: int
    filename: str

    def __repr__(self) -> str:
        """Format token for debugging output."""
        if self.value is not None:
            if isinstance(self.value, (int, float)):
                return f"Token({self.type.name}, {self.value}, {self.line}:{self.column})"
            return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"
        return f"Token({self.type.name}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    @property
    def text(self) -> str:
        """Source-like text of the token for error messages."""
        if self.type == TokenType.EOF:
            return "end of input"
        return str(self.value)


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes Ayysee source code.

    Usage:
        lexer = Lexer(source_text, filename)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for error reporting)
    """

    # Characters that can start an identifier
    IDENT_START = string.ascii_letters + "_"

    # Characters that can continue an identifier
    IDENT_CHARS = string.ascii_letters + string.digits + "_"

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename

        # Current position in source
        self._pos = 0
        self._line = 1
        self._column = 1

        # Track line start position for error reporting
        self._line_start_pos = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source code.

        Yields:
            Token objects, always ending with an EOF token

        Raises:
            ParseError: If invalid lexical syntax is encountered
        """
        while not self._at_end():
            self._skip_whitespace_and_comments()

            if self._at_end():
                break

            yield self._scan_token()

        yield self._make_token(TokenType.EOF, None)

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without advancing."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    @staticmethod
    def _is_digit(char: str) -> bool:
        """ASCII decimal digit; str.isdigit() also accepts other scripts."""
        return char != "" and char in string.digits

    def _advance(self) -> str:
        """Consume and return the current character, tracking line/column."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        if char == "\n":
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    def _match(self, expected: str) -> bool:
        """Consume next character if it matches expected."""
        if self._peek() == expected:
            self._advance()
            return True
        return False

    # =========================================================================
    # Token Creation
    # =========================================================================

    def _make_token(
        self,
        token_type: TokenType,
        value: str | int | float | None,
        start_line: Optional[int] = None,
        start_column: Optional[int] = None,
    ) -> Token:
        return Token(
            type=token_type,
            value=value,
            line=start_line or self._line,
            column=start_column or self._column,
            filename=self.filename,
        )

    def _error(
        self,
        message: str,
        start_line: int,
        start_column: int,
        hint: Optional[str] = None,
        token: Optional[str] = None,
    ) -> ParseError:
        """Create a ParseError pointing at the given position."""
        return ParseError(
            message,
            SourceLocation(self.filename, start_line, start_column),
            hint=hint,
            source_line=self._get_current_line(),
            token=token,
        )

    # =========================================================================
    # Whitespace and Comment Handling
    # =========================================================================

    def _skip_whitespace_and_comments(self) -> None:
        while not self._at_end():
            char = self._peek()

            if char in " \t\n\r":
                self._advance()
                continue

            # Single-line comment: //
            if char == "/" and self._peek(1) == "/":
                while not self._at_end() and self._peek() != "\n":
                    self._advance()
                continue

            # Multi-line comment: /* */
            if char == "/" and self._peek(1) == "*":
                self._skip_multi_line_comment()
                continue

            break

    def _skip_multi_line_comment(self) -> None:
        """
        Skip a multi-line comment (/* ... */).

        Raises:
            ParseError: If comment is not terminated
        """
        start_line = self._line
        start_col = self._column

        self._advance()
        self._advance()

        while not self._at_end():
            if self._peek() == "*" and self._peek(1) == "/":
                self._advance()
                self._advance()
                return
            self._advance()

        raise ParseError(
            "unterminated multi-line comment",
            SourceLocation(self.filename, start_line, start_col),
            hint="add closing */ to terminate the comment",
            token="/*",
        )

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        start_line = self._line
        start_column = self._column

        char = self._peek()

        if char in self.IDENT_START:
            return self._scan_identifier(start_line, start_column)

        if self._is_digit(char):
            return self._scan_number(start_line, start_column)

        return self._scan_operator(start_line, start_column)

    def _scan_identifier(self, start_line: int, start_column: int) -> Token:
        """
        Scan an identifier, keyword or device name.

        Device names are checked after the whole word is read, so that
        ``d0x`` is an identifier and not the device ``d0`` followed by ``x``.
        """
        chars = []
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())

        name = "".join(chars)

        if name in KEYWORDS:
            return self._make_token(KEYWORDS[name], name, start_line, start_column)

        if name in DEVICE_NAMES:
            return self._make_token(TokenType.DEVICE, name, start_line, start_column)

        return self._make_token(TokenType.IDENTIFIER, name, start_line, start_column)

    def _scan_number(self, start_line: int, start_column: int) -> Token:
        """
        Scan a numeric literal.

        Handles:
        - Decimal: 123
        - Hexadecimal: 0x7F or 0X7F
        - Binary: 0b1010 or 0B1010
        - Float: 1.5, 0.25, 2.0e3
        """
        if self._peek() == "0":
            next_char = self._peek(1).lower()

            if next_char == "x":
                self._advance()
                self._advance()
                return self._scan_prefixed_digits(
                    string.hexdigits, 16, "0x", start_line, start_column
                )

            if next_char == "b":
                self._advance()
                self._advance()
                return self._scan_prefixed_digits(
                    "01", 2, "0b", start_line, start_column
                )

        chars = []
        while self._is_digit(self._peek()):
            chars.append(self._advance())

        # A '.' only continues the number when a digit follows it
        if self._peek() == "." and self._is_digit(self._peek(1)):
            chars.append(self._advance())
            while self._is_digit(self._peek()):
                chars.append(self._advance())
            self._scan_exponent(chars, start_line, start_column)
            text = "".join(chars)
            self._reject_trailing_name(text, start_line, start_column)
            return self._make_token(TokenType.FLOAT, float(text), start_line, start_column)

        text = "".join(chars)
        self._reject_trailing_name(text, start_line, start_column)
        return self._make_integer(int(text), text, start_line, start_column)

    def _scan_exponent(self, chars: list[str], start_line: int, start_column: int) -> None:
        """Append an optional e[+-]NN exponent to a float literal."""
        if self._peek() not in ("e", "E"):
            return

        sign = self._peek(1)
        digit_offset = 2 if sign in ("+", "-") else 1
        if not self._is_digit(self._peek(digit_offset)):
            raise self._error(
                "malformed float exponent",
                start_line,
                start_column,
                token="".join(chars) + self._peek(),
            )

        for _ in range(digit_offset):
            chars.append(self._advance())
        while self._is_digit(self._peek()):
            chars.append(self._advance())

    def _scan_prefixed_digits(
        self,
        digits: str,
        base: int,
        prefix: str,
        start_line: int,
        start_column: int,
    ) -> Token:
        chars = []
        while self._peek() and self._peek() in digits:
            chars.append(self._advance())

        if not chars:
            raise self._error(
                f"expected digits after '{prefix}'",
                start_line,
                start_column,
                token=prefix,
            )

        text = prefix + "".join(chars)
        self._reject_trailing_name(text, start_line, start_column)
        return self._make_integer(int("".join(chars), base), text, start_line, start_column)

    def _reject_trailing_name(self, text: str, start_line: int, start_column: int) -> None:
        """Numbers may not run straight into letters, e.g. '12abc'."""
        if self._peek() and self._peek() in self.IDENT_CHARS:
            raise self._error(
                f"invalid number literal '{text}{self._peek()}'",
                start_line,
                start_column,
                token=text + self._peek(),
            )

    def _make_integer(self, value: int, text: str, start_line: int, start_column: int) -> Token:
        if value > INT64_MIN_MAGNITUDE:
            raise self._error(
                f"integer literal '{text}' does not fit in 64 bits",
                start_line,
                start_column,
                token=text,
            )
        return self._make_token(TokenType.INTEGER, value, start_line, start_column)

    def _scan_operator(self, start_line: int, start_column: int) -> Token:
        """Scan an operator or delimiter."""
        char = self._advance()

        if char == "=":
            if self._match("="):
                return self._make_token(TokenType.EQ, "==", start_line, start_column)
            return self._make_token(TokenType.ASSIGN, "=", start_line, start_column)

        if char == "!":
            if self._match("="):
                return self._make_token(TokenType.NE, "!=", start_line, start_column)
            return self._make_token(TokenType.NOT, "!", start_line, start_column)

        if char == "<":
            if self._match("="):
                return self._make_token(TokenType.LE, "<=", start_line, start_column)
            return self._make_token(TokenType.LT, "<", start_line, start_column)

        if char == ">":
            if self._match("="):
                return self._make_token(TokenType.GE, ">=", start_line, start_column)
            return self._make_token(TokenType.GT, ">", start_line, start_column)

        if char == "&":
            if self._match("&"):
                return self._make_token(TokenType.AND, "&&", start_line, start_column)
            raise self._error(
                "unexpected '&'",
                start_line,
                start_column,
                hint="logical and is written '&&'",
                token="&",
            )

        if char == "|":
            if self._match("|"):
                return self._make_token(TokenType.OR, "||", start_line, start_column)
            raise self._error(
                "unexpected '|'",
                start_line,
                start_column,
                hint="logical or is written '||'",
                token="|",
            )

        single_tokens = {
            "+": TokenType.PLUS,
            "-": TokenType.MINUS,
            "*": TokenType.STAR,
            "/": TokenType.SLASH,
            "(": TokenType.LPAREN,
            ")": TokenType.RPAREN,
            "{": TokenType.LBRACE,
            "}": TokenType.RBRACE,
            ";": TokenType.SEMICOLON,
            ",": TokenType.COMMA,
            ".": TokenType.DOT,
        }

        if char in single_tokens:
            return self._make_token(single_tokens[char], char, start_line, start_column)

        raise InvalidCharacterError(
            char,
            SourceLocation(self.filename, start_line, start_column),
            self._get_current_line(),
        )

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def _get_current_line(self) -> str:
        """Get the current line of source text for error reporting."""
        line_end = self.source.find("\n", self._line_start_pos)
        if line_end == -1:
            line_end = len(self.source)
        return self.source[self._line_start_pos:line_end]


def tokenize(source: str, filename: str = "<input>") -> list[Token]:
    """Convenience function returning the full token list."""
    return list(Lexer(source, filename).tokenize())
