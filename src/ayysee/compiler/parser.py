"""
Ayysee Recursive Descent Parser
===============================

This module implements a recursive descent parser for the Ayysee
language. It takes the token list from the lexer and builds an Abstract
Syntax Tree (AST).

Grammar (EBNF)
--------------
program      ::= statement*
statement    ::= alias | constant | let | assignment | call | function
               | loop | if | read | write | yield | block
alias        ::= 'def' DEVICE 'as' IDENT ';'
constant     ::= 'const' IDENT '=' literal ';'
let          ::= 'let' IDENT '=' expr ';'
assignment   ::= IDENT '=' expr ';'
call         ::= IDENT '(' (expr (',' expr)*)? ')' ';'
function     ::= 'fn' IDENT '(' (IDENT (',' IDENT)*)? ')' block
loop         ::= 'loop' block
if           ::= 'if' '(' expr ')' block ('else' block)?
read         ::= 'read' devref '.' IDENT 'into' IDENT ';'
write        ::= 'write' expr 'into' devref '.' IDENT ';'
yield        ::= 'yield' ';'
block        ::= '{' statement* '}'
devref       ::= DEVICE | IDENT
literal      ::= '-'? (INTEGER | FLOAT) | 'true' | 'false'

Expression Precedence (lowest to highest)
-----------------------------------------
1. disjunction    ||
2. conjunction    &&
3. comparison     == != < > <= >=   (non-chaining)
4. sum            + -
5. factor         * /
6. unary          !
7. term           literal, IDENT, '(' expr ')'

All binary levels are left-associative. ``a < b < c`` is rejected rather
than read as two comparisons. There is no general unary minus; a '-' in
term position must be followed by a number and forms a negative literal.

Statements are parsed by recursive descent. Expressions use an explicit
operator stack instead, so long operator chains and deep parentheses do
not run into the interpreter's recursion limit.

The parser does not recover from errors: the first one ends the parse.

Example Usage
-------------
>>> from ayysee.compiler.parser import parse_source
>>> program = parse_source("let x = 1 + 2 * 3;")
>>> program.statements[0].initializer.operator
<BinaryOperator.ADD: 1>
"""

from typing import Optional

from ayysee.errors import SourceLocation
from ayysee.compiler.lexer import INT64_MAX, Lexer, Token, TokenType
from ayysee.compiler.ast import (
    ProgramNode,
    Statement,
    Expression,
    Literal,
    Identifier,
    DeviceLiteral,
    DeviceRef,
    UnaryExpression,
    UnaryOperator,
    BinaryExpression,
    BinaryOperator,
    AliasStatement,
    ConstantStatement,
    LetStatement,
    AssignmentStatement,
    BlockStatement,
    FunctionNode,
    CallStatement,
    LoopStatement,
    IfStatement,
    ReadStatement,
    WriteStatement,
    YieldStatement,
)
from ayysee.compiler.errors import (
    ParseError,
    UnexpectedTokenError,
    MissingTokenError,
    NestingTooDeepError,
)


COMPARISON_PRECEDENCE = 3
UNARY_PRECEDENCE = 6

# Binary operator tokens with their precedence (higher binds tighter)
BINARY_TOKENS: dict[TokenType, tuple[BinaryOperator, int]] = {
    TokenType.OR: (BinaryOperator.DISJ, 1),
    TokenType.AND: (BinaryOperator.CONJ, 2),
    TokenType.EQ: (BinaryOperator.EQUALS, COMPARISON_PRECEDENCE),
    TokenType.NE: (BinaryOperator.NOT_EQUALS, COMPARISON_PRECEDENCE),
    TokenType.LT: (BinaryOperator.LOWER, COMPARISON_PRECEDENCE),
    TokenType.GT: (BinaryOperator.GREATER, COMPARISON_PRECEDENCE),
    TokenType.LE: (BinaryOperator.LOWER_EQUALS, COMPARISON_PRECEDENCE),
    TokenType.GE: (BinaryOperator.GREATER_EQUALS, COMPARISON_PRECEDENCE),
    TokenType.PLUS: (BinaryOperator.ADD, 4),
    TokenType.MINUS: (BinaryOperator.SUB, 4),
    TokenType.STAR: (BinaryOperator.MUL, 5),
    TokenType.SLASH: (BinaryOperator.DIV, 5),
}


def _precedence(token: Token) -> int:
    """Precedence of a token waiting on the operator stack; '(' never reduces."""
    if token.type == TokenType.LPAREN:
        return 0
    if token.type == TokenType.NOT:
        return UNARY_PRECEDENCE
    return BINARY_TOKENS[token.type][1]


class Parser:
    """
    Recursive descent parser for Ayysee.

    Attributes:
        tokens: List of tokens to parse (ending with EOF)
        filename: Source filename for error reporting
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        source_lines: Optional[list[str]] = None,
    ):
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from the lexer
            filename: Source filename for error messages
            source_lines: Original source lines for error context
        """
        self.tokens = tokens
        self.filename = filename
        self.source_lines = source_lines or []
        self._pos = 0

    def parse(self) -> ProgramNode:
        """
        Parse the token stream into an AST.

        Returns:
            ProgramNode containing all top-level statements

        Raises:
            ParseError: On the first grammar violation
            NestingTooDeepError: If blocks nest past the interpreter's
                recursion limit
        """
        statements = []
        try:
            while not self._at_end():
                statements.append(self._parse_statement())
        except RecursionError:
            raise NestingTooDeepError(self._peek().location) from None

        return ProgramNode(
            location=SourceLocation(self.filename, 1, 1),
            statements=statements,
        )

    # =========================================================================
    # Token Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._peek().type == TokenType.EOF

    def _peek(self, offset: int = 0) -> Token:
        """Look at token at current position + offset."""
        pos = self._pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def _advance(self) -> Token:
        """Consume and return the current token."""
        if not self._at_end():
            token = self.tokens[self._pos]
            self._pos += 1
            return token
        return self.tokens[-1]

    def _check(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _match(self, *types: TokenType) -> Optional[Token]:
        """Consume current token if it matches one of the types."""
        if self._check(*types):
            return self._advance()
        return None

    def _expect(self, token_type: TokenType, expected: str) -> Token:
        """
        Expect and consume a specific token type.

        Args:
            token_type: The expected token type
            expected: How the token is written, for the error message

        Raises:
            MissingTokenError: If the expected token is not found
        """
        if self._check(token_type):
            return self._advance()

        current = self._peek()
        raise MissingTokenError(
            expected,
            current.text,
            current.location,
            self._get_source_line(current.line),
        )

    def _unexpected(self, expected: str) -> UnexpectedTokenError:
        token = self._peek()
        return UnexpectedTokenError(
            token.text,
            expected=expected,
            location=token.location,
            source_line=self._get_source_line(token.line),
        )

    def _get_source_line(self, line: int) -> Optional[str]:
        if 0 < line <= len(self.source_lines):
            return self.source_lines[line - 1]
        return None

    def _identifier(self, token: Token) -> Identifier:
        return Identifier(location=token.location, name=token.value)

    def _expect_identifier(self, expected: str = "identifier") -> Identifier:
        if not self._check(TokenType.IDENTIFIER):
            raise self._unexpected(expected)
        return self._identifier(self._advance())

    # =========================================================================
    # Statements
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse any statement."""
        token = self._peek()

        dispatch = {
            TokenType.DEF: self._parse_alias,
            TokenType.CONST: self._parse_constant,
            TokenType.LET: self._parse_let,
            TokenType.FN: self._parse_function,
            TokenType.LOOP: self._parse_loop,
            TokenType.IF: self._parse_if,
            TokenType.READ: self._parse_read,
            TokenType.WRITE: self._parse_write,
            TokenType.YIELD: self._parse_yield,
            TokenType.LBRACE: self._parse_block,
        }
        if token.type in dispatch:
            return dispatch[token.type]()

        if token.type == TokenType.IDENTIFIER:
            next_type = self._peek(1).type
            if next_type == TokenType.ASSIGN:
                return self._parse_assignment()
            if next_type == TokenType.LPAREN:
                return self._parse_call()
            self._advance()
            raise self._unexpected("'=' or '(' after a name")

        raise self._unexpected("statement")

    def _parse_alias(self) -> AliasStatement:
        """Parse ``def d0 as name;``."""
        location = self._advance().location

        if not self._check(TokenType.DEVICE):
            raise self._unexpected("device (d0-d5 or db)")
        device_token = self._advance()
        device = DeviceLiteral(location=device_token.location, slot=device_token.value)

        self._expect(TokenType.AS, "as")
        name = self._expect_identifier("alias name")
        self._expect(TokenType.SEMICOLON, ";")

        return AliasStatement(location=location, device=device, name=name)

    def _parse_constant(self) -> ConstantStatement:
        """Parse ``const NAME = literal;``; the value must be a plain literal."""
        location = self._advance().location
        name = self._expect_identifier("constant name")
        self._expect(TokenType.ASSIGN, "=")

        token = self._peek()
        if token.type in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            value = Literal(location=token.location, value=token.type == TokenType.TRUE)
        elif token.type in (TokenType.INTEGER, TokenType.FLOAT, TokenType.MINUS):
            value = self._parse_number_literal()
        else:
            raise self._unexpected("literal value")

        self._expect(TokenType.SEMICOLON, ";")
        return ConstantStatement(location=location, name=name, value=value)

    def _parse_let(self) -> LetStatement:
        location = self._advance().location
        name = self._expect_identifier("variable name")
        self._expect(TokenType.ASSIGN, "=")
        initializer = self._parse_expression()
        self._expect(TokenType.SEMICOLON, ";")
        return LetStatement(location=location, name=name, initializer=initializer)

    def _parse_assignment(self) -> AssignmentStatement:
        target = self._identifier(self._advance())
        self._expect(TokenType.ASSIGN, "=")
        value = self._parse_expression()
        self._expect(TokenType.SEMICOLON, ";")
        return AssignmentStatement(location=target.location, target=target, value=value)

    def _parse_call(self) -> CallStatement:
        function = self._identifier(self._advance())
        self._expect(TokenType.LPAREN, "(")

        arguments: list[Expression] = []
        if not self._check(TokenType.RPAREN):
            arguments.append(self._parse_expression())
            while self._match(TokenType.COMMA):
                arguments.append(self._parse_expression())

        self._expect(TokenType.RPAREN, ")")
        self._expect(TokenType.SEMICOLON, ";")
        return CallStatement(location=function.location, function=function, arguments=arguments)

    def _parse_function(self) -> FunctionNode:
        """Parse ``fn name(a, b) { ... }``."""
        location = self._advance().location
        name = self._expect_identifier("function name")
        self._expect(TokenType.LPAREN, "(")

        parameters: list[Identifier] = []
        if not self._check(TokenType.RPAREN):
            parameters.append(self._expect_identifier("parameter name"))
            while self._match(TokenType.COMMA):
                parameters.append(self._expect_identifier("parameter name"))

        self._expect(TokenType.RPAREN, ")")
        body = self._parse_block()
        return FunctionNode(location=location, name=name, parameters=parameters, body=body)

    def _parse_loop(self) -> LoopStatement:
        location = self._advance().location
        return LoopStatement(location=location, body=self._parse_block())

    def _parse_if(self) -> IfStatement:
        """
        Parse an if statement.

        Both branches must be blocks; ``else if`` is written as an else
        block holding another if.
        """
        location = self._advance().location
        self._expect(TokenType.LPAREN, "(")
        condition = self._parse_expression()
        self._expect(TokenType.RPAREN, ")")

        then_branch = self._parse_block()

        else_branch = None
        if self._match(TokenType.ELSE):
            else_branch = self._parse_block()

        return IfStatement(
            location=location,
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
        )

    def _parse_read(self) -> ReadStatement:
        """Parse ``read device.Property into name;``."""
        location = self._advance().location
        device, property_name = self._parse_device_property()
        self._expect(TokenType.INTO, "into")
        target = self._expect_identifier("variable name")
        self._expect(TokenType.SEMICOLON, ";")
        return ReadStatement(
            location=location,
            device=device,
            property_name=property_name,
            target=target,
        )

    def _parse_write(self) -> WriteStatement:
        """Parse ``write expr into device.Property;``."""
        location = self._advance().location
        value = self._parse_expression()
        self._expect(TokenType.INTO, "into")
        device, property_name = self._parse_device_property()
        self._expect(TokenType.SEMICOLON, ";")
        return WriteStatement(
            location=location,
            value=value,
            device=device,
            property_name=property_name,
        )

    def _parse_device_property(self) -> tuple[DeviceRef, str]:
        token = self._peek()
        if token.type == TokenType.DEVICE:
            self._advance()
            device: DeviceRef = DeviceLiteral(location=token.location, slot=token.value)
        elif token.type == TokenType.IDENTIFIER:
            device = self._identifier(self._advance())
        else:
            raise self._unexpected("device or alias name")

        self._expect(TokenType.DOT, ".")
        if not self._check(TokenType.IDENTIFIER):
            raise self._unexpected("device property name")
        return device, self._advance().value

    def _parse_yield(self) -> YieldStatement:
        location = self._advance().location
        self._expect(TokenType.SEMICOLON, ";")
        return YieldStatement(location=location)

    def _parse_block(self) -> BlockStatement:
        """Parse a block ``{ ... }``; empty blocks are allowed."""
        location = self._peek().location
        self._expect(TokenType.LBRACE, "{")

        statements = []
        while not self._check(TokenType.RBRACE) and not self._at_end():
            statements.append(self._parse_statement())

        self._expect(TokenType.RBRACE, "}")
        return BlockStatement(location=location, statements=statements)

    # =========================================================================
    # Expressions
    # =========================================================================

    def _parse_expression(self) -> Expression:
        """
        Parse an expression.

        Operators wait on an explicit stack (binary operator tokens, ``!``
        tokens and open parentheses) and are reduced by precedence, so
        nesting depth is not bounded by the interpreter's call stack.
        """
        operands: list[Expression] = []
        # True where the operand is an unparenthesized comparison
        comparisons: list[bool] = []
        pending: list[Token] = []
        open_parens = 0

        def reduce() -> None:
            token = pending.pop()
            if token.type == TokenType.NOT:
                operand = operands.pop()
                comparisons.pop()
                operands.append(UnaryExpression(
                    location=token.location,
                    operator=UnaryOperator.NOT,
                    operand=operand,
                ))
                comparisons.append(False)
                return

            right = operands.pop()
            left = operands.pop()
            del comparisons[-2:]
            operator, precedence = BINARY_TOKENS[token.type]
            operands.append(BinaryExpression(
                location=left.location,
                operator=operator,
                left=left,
                right=right,
            ))
            comparisons.append(precedence == COMPARISON_PRECEDENCE)

        while True:
            # Operand position: prefix '!' and '(' any number of times, then a term
            while self._check(TokenType.NOT, TokenType.LPAREN):
                token = self._advance()
                if token.type == TokenType.LPAREN:
                    open_parens += 1
                pending.append(token)
            operands.append(self._parse_term())
            comparisons.append(False)

            # Operator position: close parentheses, then a binary operator
            while open_parens and self._check(TokenType.RPAREN):
                self._advance()
                while pending[-1].type != TokenType.LPAREN:
                    reduce()
                pending.pop()
                open_parens -= 1
                comparisons[-1] = False

            token = self._peek()
            if token.type not in BINARY_TOKENS:
                break

            precedence = BINARY_TOKENS[token.type][1]
            while pending and _precedence(pending[-1]) >= precedence:
                reduce()
            if precedence == COMPARISON_PRECEDENCE and comparisons[-1]:
                raise ParseError(
                    "comparison operators cannot be chained",
                    token.location,
                    hint="combine the comparisons with '&&' or '||'",
                    source_line=self._get_source_line(token.line),
                    token=token.text,
                )
            pending.append(self._advance())

        if open_parens:
            self._expect(TokenType.RPAREN, ")")

        while pending:
            reduce()
        return operands[0]

    def _parse_term(self) -> Expression:
        """Parse a term (literals and identifiers)."""
        token = self._peek()

        if token.type in (TokenType.INTEGER, TokenType.FLOAT, TokenType.MINUS):
            return self._parse_number_literal()

        if token.type in (TokenType.TRUE, TokenType.FALSE):
            self._advance()
            return Literal(location=token.location, value=token.type == TokenType.TRUE)

        if token.type == TokenType.IDENTIFIER:
            return self._identifier(self._advance())

        raise self._unexpected("expression")

    def _parse_number_literal(self) -> Literal:
        """Parse ``-``? INTEGER | FLOAT, checking the signed 64-bit range."""
        start = self._peek()
        negative = self._match(TokenType.MINUS) is not None

        token = self._peek()
        if token.type not in (TokenType.INTEGER, TokenType.FLOAT):
            if negative:
                raise ParseError(
                    "'-' must be followed by a number",
                    start.location,
                    hint="write '0 - x' to negate a value",
                    source_line=self._get_source_line(start.line),
                    token="-",
                )
            raise self._unexpected("number")
        self._advance()

        value = token.value
        if token.type == TokenType.INTEGER and not negative and value > INT64_MAX:
            raise ParseError(
                f"integer literal '{value}' does not fit in 64 bits",
                token.location,
                source_line=self._get_source_line(token.line),
                token=str(value),
            )

        return Literal(location=start.location, value=-value if negative else value)


# =============================================================================
# Convenience Functions
# =============================================================================

def parse_source(source: str, filename: str = "<input>") -> ProgramNode:
    """
    Parse Ayysee source code into an AST.

    Args:
        source: The Ayysee source code
        filename: Source filename for error messages

    Returns:
        The root ProgramNode of the AST

    Raises:
        ParseError: If lexing or parsing fails
    """
    lexer = Lexer(source, filename)
    tokens = list(lexer.tokenize())
    parser = Parser(tokens, filename, source.splitlines())
    return parser.parse()
