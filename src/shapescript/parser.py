"""
Recursive descent parser for shape scripts.

Converts a token stream into a Program. Identifiers are resolved to
scope-qualified Symbols while parsing, and function declarations are
collected into the program's function table.
"""

from typing import List, Optional, Union, Dict, Set
from .tokens import Token, TokenType, SourceSpan
from .lexer import tokenize
from .symbols import Symbol, SymbolTable, GLOBAL_SCOPE, POSITIONAL
from .types import ScriptType, TYPE_TOKENS
from .ast import (
    # Expressions
    Expression, NumberLiteral, BoolLiteral, Vec2Literal, Empty, Identifier,
    FieldName, BinaryOp, UnaryOp, Call, TypeTest, ShapeExpr,
    # Statements
    Statement, Block, LetStatement, AssignStatement, ForStatement,
    WhileStatement, IfStatement, InputStatement, ExportShape, ExportAdaptive,
    ExportSlot, BreakStatement, ContinueStatement, ReturnStatement,
    ExpressionStatement, SectionStatement, NopStatement, FunctionStatement,
    # Declarations
    Parameter, Function, Program,
)
from .errors import (
    error_unexpected_token,
    error_unexpected_eof,
    error_duplicate_argument,
    error_multiple_positional,
    error_malformed_type,
    error_nested_function,
    error_duplicate_function,
    error_missing_clause,
    error_adaptive_arity,
    error_misplaced_statement,
)


ADAPTIVE_PARTS = 9


class Parser:
    """
    Recursive descent parser for shape scripts.

    Usage:
        parser = Parser(tokens)
        program = parser.parse_program()

    Binary operators are parsed by precedence climbing, all left
    associative:
        Lowest:  && || =  (and compound assignment)
                 == !=
                 < > <= >=
                 + -
                 * / %
                 ^
                 unary - !
        Highest: . (field access)
    """

    # Operator precedence levels (higher = tighter binding)
    PRECEDENCE = {
        TokenType.AND: 0,
        TokenType.OR: 0,
        TokenType.ASSIGN: 0,
        TokenType.OPERATOR_ASSIGN: 0,
        TokenType.EQ: 1,
        TokenType.NE: 1,
        TokenType.LT: 2,
        TokenType.GT: 2,
        TokenType.LE: 2,
        TokenType.GE: 2,
        TokenType.PLUS: 3,
        TokenType.MINUS: 3,
        TokenType.STAR: 4,
        TokenType.SLASH: 4,
        TokenType.PERCENT: 4,
        TokenType.CARET: 5,
        TokenType.DOT: 7,
    }

    UNARY_PRECEDENCE = 6

    def __init__(self, tokens: List[Token], filename: Optional[str] = None):
        self.tokens = tokens
        self.filename = filename
        self.pos = 0

        self.symbols = SymbolTable()
        self.functions: Dict[str, Function] = {}
        self.inputs: Dict[str, InputStatement] = {}
        self.sections: List[str] = []

        # Inside an if/while condition a spaced "+name" opens the body
        self.in_condition = False

        # Function currently being parsed, with its parameter/local names
        self.function: Optional[str] = None
        self.local_names: Set[str] = set()
        self.locals: List[Symbol] = []

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _current(self) -> Token:
        """Get current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[self.pos]

    def _peek(self, offset: int = 0) -> Token:
        """Peek at token at current position + offset."""
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[-1]  # EOF
        return self.tokens[idx]

    def _previous(self) -> Optional[Token]:
        return self.tokens[self.pos - 1] if self.pos > 0 else None

    def _is_at_end(self) -> bool:
        return self._current().type == TokenType.EOF

    def _check(self, token_type: TokenType) -> bool:
        return self._current().type == token_type

    def _check_any(self, *token_types: TokenType) -> bool:
        return self._current().type in token_types

    def _advance(self) -> Token:
        """Consume and return current token."""
        token = self._current()
        if not self._is_at_end():
            self.pos += 1
        return token

    def _consume(self, token_type: TokenType, expected: str) -> Token:
        """Consume token of expected type, or raise error."""
        if self._check(token_type):
            return self._advance()
        self._error(expected)

    def _match(self, *token_types: TokenType) -> Optional[Token]:
        """Consume token if it matches any of the given types."""
        if self._current().type in token_types:
            return self._advance()
        return None

    def _at_named_block(self) -> bool:
        """A "+name" the lexer could not tell from addition, with no space after the "+"."""
        plus, name = self._current(), self._peek(1)
        return plus.type == TokenType.PLUS and name.type == TokenType.IDENTIFIER and \
            plus.span.end.offset == name.span.start.offset

    def _expect_semicolon(self) -> None:
        """A statement ends with ';', which is optional right after a block."""
        if self._match(TokenType.SEMICOLON):
            return
        previous = self._previous()
        if previous is not None and previous.type in (TokenType.END, TokenType.BLOCK_END, TokenType.LT):
            return
        self._error("';'")

    def _error(self, expected: str) -> None:
        """Raise a parser error."""
        token = self._current()
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(expected, token.span)
        found = token.lexeme or token.type.name
        raise error_unexpected_token(expected, f"'{found}'", token.span)

    def _span_from(self, start: Token) -> SourceSpan:
        """Create a span from start token to the last consumed token."""
        prev_pos = max(0, self.pos - 1)
        end_token = self.tokens[prev_pos]
        return SourceSpan(start.span.start, end_token.span.end)

    # =========================================================================
    # Scope Resolution
    # =========================================================================

    def _resolve(self, name: str) -> Symbol:
        """
        Resolve a name read or assigned in the current scope.

        Inside a function, a declared input that no parameter or local
        shadows resolves globally; every other name stays in the
        function's scope.
        """
        if self.function is None:
            return self.symbols.intern(GLOBAL_SCOPE, name)
        if name in self.local_names:
            return self.symbols.intern(self.function, name)
        if name in self.inputs:
            return self.symbols.intern(GLOBAL_SCOPE, name)
        return self.symbols.intern(self.function, name)

    def _declare(self, name: str) -> Symbol:
        """Declare a variable (let, for) in the current scope."""
        if self.function is None:
            return self.symbols.intern(GLOBAL_SCOPE, name)
        symbol = self.symbols.intern(self.function, name)
        if name not in self.local_names:
            self.local_names.add(name)
            self.locals.append(symbol)
        return symbol

    # =========================================================================
    # Type Parsing
    # =========================================================================

    def _parse_type(self) -> ScriptType:
        token = self._current()
        script_type = TYPE_TOKENS.get(token.type)
        if script_type is None:
            found = token.lexeme if token.type != TokenType.EOF else "end of file"
            raise error_malformed_type(found, token.span)
        self._advance()
        return script_type

    # =========================================================================
    # Expression Parsing (Precedence Climbing)
    # =========================================================================

    def _parse_expression(self) -> Expression:
        return self._parse_binary_expr(0)

    def _parse_nested_expression(self) -> Expression:
        """An expression inside brackets or parentheses, where "+" always adds."""
        in_condition, self.in_condition = self.in_condition, False
        try:
            return self._parse_expression()
        finally:
            self.in_condition = in_condition

    def _parse_condition(self) -> Expression:
        """
        The condition of an if or while.  A "+name" glued to its name and
        spaced from the operand before it opens the body instead of adding.
        """
        in_condition, self.in_condition = self.in_condition, True
        try:
            return self._parse_expression()
        finally:
            self.in_condition = in_condition

    def _parse_binary_expr(self, min_precedence: int) -> Expression:
        """Parse binary expressions with precedence climbing."""
        left = self._parse_unary_expr()

        while True:
            op_token = self._current()
            precedence = self.PRECEDENCE.get(op_token.type)

            if precedence is None or precedence < min_precedence:
                break

            if self.in_condition and self._at_named_block() and \
                    self._previous().span.end.offset < op_token.span.start.offset:
                break

            self._advance()  # consume operator

            if op_token.type == TokenType.DOT:
                # The field name never climbs, so a.b.c is (a.b).c
                field_token = self._consume(TokenType.IDENTIFIER, "field name")
                left = BinaryOp(
                    span=SourceSpan(left.span.start, field_token.span.end),
                    left=left,
                    operator=TokenType.DOT,
                    right=FieldName(span=field_token.span, name=field_token.value),
                )
                continue

            if op_token.type == TokenType.OPERATOR_ASSIGN:
                # lhs OP= rhs  ->  lhs = (lhs OP rhs)
                right = self._parse_binary_expr(0)
                span = SourceSpan(left.span.start, right.span.end)
                left = BinaryOp(
                    span=span,
                    left=left,
                    operator=TokenType.ASSIGN,
                    right=BinaryOp(span=span, left=left, operator=op_token.value, right=right),
                )
                break

            right = self._parse_binary_expr(precedence + 1)
            left = BinaryOp(
                span=SourceSpan(left.span.start, right.span.end),
                left=left,
                operator=op_token.type,
                right=right,
            )

        return left

    def _parse_unary_expr(self) -> Expression:
        """Parse unary expressions (-, !)."""
        if self._check_any(TokenType.NOT, TokenType.MINUS):
            op = self._advance()
            operand = self._parse_binary_expr(self.UNARY_PRECEDENCE)
            return UnaryOp(
                span=SourceSpan(op.span.start, operand.span.end),
                operator=op.type,
                operand=operand,
            )

        return self._parse_primary_expr()

    def _parse_arguments(self) -> tuple[Dict[str, Expression], List[str]]:
        """Parse '[' args ']', returns (arguments by name, names in order)."""
        self._consume(TokenType.LBRACKET, "'['")

        arguments: Dict[str, Expression] = {}
        order: List[str] = []

        if not self._check(TokenType.RBRACKET):
            self._parse_argument(arguments, order)

            while self._match(TokenType.COMMA):
                if self._check(TokenType.RBRACKET):
                    break  # Allow trailing comma
                self._parse_argument(arguments, order)

        self._consume(TokenType.RBRACKET, "']'")
        return arguments, order

    def _parse_argument(self, arguments: Dict[str, Expression], order: List[str]) -> None:
        """Parse a single argument: 'name: expr' or one unnamed 'expr'."""
        token = self._current()
        # 'end' is a keyword but also the name of a for-loop bound
        if self._check_any(TokenType.IDENTIFIER, TokenType.END) and \
                self._peek(1).type == TokenType.COLON:
            name = self._advance().lexeme
            self._advance()  # consume ':'
            if name in arguments:
                raise error_duplicate_argument(name, token.span)
        else:
            name = POSITIONAL
            if name in arguments:
                raise error_multiple_positional(token.span)

        arguments[name] = self._parse_nested_expression()
        order.append(name)

    def _parse_primary_expr(self) -> Expression:
        """Parse primary expressions (literals, identifiers, calls, groups)."""
        token = self._current()

        if token.type in (TokenType.NUMBER, TokenType.PERCENT_LITERAL):
            self._advance()
            return NumberLiteral(span=token.span, value=token.value)

        if token.type == TokenType.BOOL_LITERAL:
            self._advance()
            return BoolLiteral(span=token.span, value=token.value)

        if token.type == TokenType.VEC2_LITERAL:
            self._advance()
            x, y = token.value
            return Vec2Literal(span=token.span, x=x, y=y)

        if token.type == TokenType.HASHTAG:
            self._advance()
            return Empty(span=token.span)

        if token.type == TokenType.IDENTIFIER:
            self._advance()
            if self._check(TokenType.LBRACKET):
                arguments, order = self._parse_arguments()
                return Call(
                    span=self._span_from(token),
                    name=token.value,
                    arguments=arguments,
                    order=order,
                )
            return Identifier(span=token.span, symbol=self._resolve(token.value))

        if token.type == TokenType.LPAREN:
            self._advance()
            expr = self._parse_nested_expression()
            self._consume(TokenType.RPAREN, "')'")
            return expr

        if token.type == TokenType.TYPE:
            return self._parse_type_test()

        if token.type == TokenType.BEGIN:
            return self._parse_shape_expr()

        self._error("expression")

    def _parse_type_test(self) -> TypeTest:
        """Parse type[expr, Type]."""
        start = self._advance()  # consume 'type'
        self._consume(TokenType.LBRACKET, "'['")
        operand = self._parse_nested_expression()
        self._consume(TokenType.COMMA, "','")
        script_type = self._parse_type()
        self._consume(TokenType.RBRACKET, "']'")
        return TypeTest(span=self._span_from(start), operand=operand, type=script_type)

    def _parse_shape_expr(self) -> ShapeExpr:
        """Parse begin[mode] <statement>, the shape builder."""
        start = self._advance()  # consume 'begin'
        arguments, order = self._parse_arguments()
        for name in order:
            if name not in (POSITIONAL, "mode"):
                raise error_unexpected_token("'mode'", f"'{name}'", start.span)
        if POSITIONAL in arguments and "mode" in arguments:
            raise error_duplicate_argument("mode", start.span)
        mode = arguments.get("mode") or arguments.get(POSITIONAL)
        if mode is None:
            mode = NumberLiteral(span=start.span, value=0.0)
        in_condition, self.in_condition = self.in_condition, False
        try:
            body = self._parse_statement()
        finally:
            self.in_condition = in_condition
        return ShapeExpr(span=self._span_from(start), mode=mode, body=body)

    # =========================================================================
    # Statement Parsing
    # =========================================================================

    def _parse_statement(self) -> Statement:
        """Parse a statement."""
        token = self._current()

        if token.type == TokenType.COLON:
            return self._parse_block()

        if token.type == TokenType.BLOCK_START or self._at_named_block():
            return self._parse_named_block()

        if token.type == TokenType.FUNCTION:
            return self._parse_function()

        if token.type == TokenType.LET:
            return self._parse_let_statement()

        if token.type == TokenType.FOR:
            return self._parse_for_statement()

        if token.type == TokenType.WHILE:
            return self._parse_while_statement()

        if token.type == TokenType.IF:
            return self._parse_if_statement()

        if token.type == TokenType.EXPORT:
            return self._parse_export_statement()

        if token.type == TokenType.INPUT:
            return self._parse_input_statement()

        if token.type == TokenType.RETURN:
            return self._parse_return_statement()

        if token.type == TokenType.BREAK:
            self._advance()
            self._expect_semicolon()
            return BreakStatement(span=token.span)

        if token.type == TokenType.CONTINUE:
            self._advance()
            self._expect_semicolon()
            return ContinueStatement(span=token.span)

        if token.type == TokenType.SECTION:
            self._advance()
            self.sections.append(token.value)
            return SectionStatement(span=token.span, name=token.value)

        if token.type == TokenType.SEMICOLON:
            self._advance()
            return NopStatement(span=token.span)

        if token.type == TokenType.EOF:
            self._error("statement")

        # name = expr;  /  name OP= expr;
        if token.type == TokenType.IDENTIFIER and \
                self._peek(1).type in (TokenType.ASSIGN, TokenType.OPERATOR_ASSIGN):
            return self._parse_assign_statement()

        expr = self._parse_expression()
        self._expect_semicolon()
        return ExpressionStatement(span=expr.span, expression=expr)

    def _parse_block(self) -> Block:
        """Parse ':' statements 'end'."""
        start = self._advance()  # consume ':'
        statements = []
        while not self._check(TokenType.END):
            if self._is_at_end():
                self._error("'end'")
            statements.append(self._parse_statement())
        self._advance()  # consume 'end'
        return Block(span=self._span_from(start), statements=statements)

    def _parse_named_block(self) -> Block:
        """
        Parse '+name' statements '<'.

        After ']', 'else' or a condition the lexer hands over '+' and
        the name as two tokens, and an empty block closes with a plain '<'.
        """
        start = self._advance()  # consume '+name' or '+'
        label = start.value if start.type == TokenType.BLOCK_START else self._advance().value
        statements = []
        while not self._check_any(TokenType.BLOCK_END, TokenType.LT):
            if self._is_at_end():
                self._error(f"'<' closing block '{label}'")
            statements.append(self._parse_statement())
        self._advance()  # consume '<'
        return Block(span=self._span_from(start), statements=statements, label=label)

    def _parse_function(self) -> FunctionStatement:
        """Parse function name[p: Type, ...] <statement>."""
        start = self._advance()  # consume 'function'
        name_token = self._consume(TokenType.IDENTIFIER, "function name")
        name = name_token.value

        if self.function is not None:
            raise error_nested_function(name, name_token.span)
        if name in self.functions:
            raise error_duplicate_function(name, name_token.span)

        self.function = name
        self.local_names = set()
        self.locals = []
        try:
            parameters = []
            self._consume(TokenType.LBRACKET, "'['")
            while not self._check(TokenType.RBRACKET):
                param_token = self._consume(TokenType.IDENTIFIER, "parameter name")
                if param_token.value in self.local_names:
                    raise error_duplicate_argument(param_token.value, param_token.span)
                self._consume(TokenType.COLON, "':'")
                param_type = self._parse_type()
                symbol = self._declare(param_token.value)
                parameters.append(Parameter(
                    span=self._span_from(param_token), symbol=symbol, type=param_type
                ))
                if not self._match(TokenType.COMMA):
                    break
            self._consume(TokenType.RBRACKET, "']'")

            body = self._parse_statement()
            self.functions[name] = Function(
                span=self._span_from(start),
                name=name,
                parameters=parameters,
                locals=list(self.locals),
                body=body,
            )
        finally:
            self.function = None
            self.local_names = set()
            self.locals = []

        return FunctionStatement(span=self._span_from(start), name=name)

    def _parse_let_statement(self) -> LetStatement:
        """Parse let name = expr;"""
        start = self._advance()  # consume 'let'
        name = self._consume(TokenType.IDENTIFIER, "identifier").value
        self._consume(TokenType.ASSIGN, "'='")
        value = self._parse_expression()
        # Declared after the initializer so 'let x = x;' reads the outer x
        target = self._declare(name)
        self._expect_semicolon()
        return LetStatement(span=self._span_from(start), target=target, value=value)

    def _parse_assign_statement(self) -> AssignStatement:
        """Parse name = expr; and name OP= expr;"""
        start = self._advance()
        target = self._resolve(start.value)
        op_token = self._advance()
        value = self._parse_expression()
        if op_token.type == TokenType.OPERATOR_ASSIGN:
            value = BinaryOp(
                span=SourceSpan(start.span.start, value.span.end),
                left=Identifier(span=start.span, symbol=target),
                operator=op_token.value,
                right=value,
            )
        self._expect_semicolon()
        return AssignStatement(span=self._span_from(start), target=target, value=value)

    def _parse_for_statement(self) -> ForStatement:
        """Parse for v in begin[end: e, start: s, step: k] <statement>."""
        start = self._advance()  # consume 'for'
        name = self._consume(TokenType.IDENTIFIER, "loop variable").value
        self._consume(TokenType.IN, "'in'")
        begin = self._consume(TokenType.BEGIN, "'begin'")
        arguments, order = self._parse_arguments()

        for key in order:
            if key not in ("end", "start", "step"):
                raise error_unexpected_token("'end', 'start' or 'step'", f"'{key}'", begin.span)
        if "end" not in arguments:
            raise error_missing_clause("end", "for loop range", begin.span)

        variable = self._declare(name)
        body = self._parse_statement()
        return ForStatement(
            span=self._span_from(start),
            variable=variable,
            start=arguments.get("start") or NumberLiteral(span=begin.span, value=0.0),
            end=arguments["end"],
            step=arguments.get("step") or NumberLiteral(span=begin.span, value=1.0),
            body=body,
        )

    def _parse_while_statement(self) -> WhileStatement:
        start = self._advance()  # consume 'while'
        condition = self._parse_condition()
        body = self._parse_statement()
        return WhileStatement(span=self._span_from(start), condition=condition, body=body)

    def _parse_if_statement(self) -> IfStatement:
        """Parse if cond <statement> (else <statement>)?"""
        start = self._advance()  # consume 'if'
        condition = self._parse_condition()
        then_branch = self._parse_statement()

        else_branch = None
        if self._match(TokenType.ELSE):
            else_branch = self._parse_statement()

        return IfStatement(
            span=self._span_from(start),
            condition=condition,
            then_branch=then_branch,
            else_branch=else_branch,
        )

    def _parse_export_statement(self) -> Statement:
        """Parse the three export forms."""
        start = self._advance()  # consume 'export'

        if self._match(TokenType.ADAPTIVE):
            self._consume(TokenType.COLON, "':'")
            parts = [self._parse_expression()]
            while self._match(TokenType.COMMA):
                parts.append(self._parse_expression())
            self._expect_semicolon()
            if len(parts) != ADAPTIVE_PARTS:
                raise error_adaptive_arity(len(parts), self._span_from(start))
            return ExportAdaptive(span=self._span_from(start), parts=parts)

        slot = self._match(TokenType.SUBKEYWORD)
        if slot is not None:
            value = None
            if not self._check(TokenType.SEMICOLON):
                value = self._parse_expression()
            self._expect_semicolon()
            return ExportSlot(span=self._span_from(start), slot=slot.value, value=value)

        value = self._parse_expression()
        self._expect_semicolon()
        return ExportShape(span=self._span_from(start), value=value)

    def _parse_input_statement(self) -> InputStatement:
        """Parse input name: Type (= default)?;"""
        start = self._advance()  # consume 'input'
        if self.function is not None:
            raise error_misplaced_statement("input", "at the top level", start.span)
        name = self._consume(TokenType.IDENTIFIER, "input name").value
        self._consume(TokenType.COLON, "':'")
        input_type = self._parse_type()

        default = None
        if self._match(TokenType.ASSIGN):
            default = self._parse_expression()
        self._expect_semicolon()

        statement = InputStatement(
            span=self._span_from(start),
            target=self.symbols.intern(GLOBAL_SCOPE, name),
            type=input_type,
            default=default,
        )
        self.inputs[name] = statement
        return statement

    def _parse_return_statement(self) -> ReturnStatement:
        start = self._advance()  # consume 'return'
        if self.function is None:
            raise error_misplaced_statement("return", "inside a function", start.span)

        value = None
        if not self._check(TokenType.SEMICOLON):
            value = self._parse_expression()
        self._expect_semicolon()
        return ReturnStatement(span=self._span_from(start), value=value)

    # =========================================================================
    # Program
    # =========================================================================

    def parse_program(self) -> Program:
        """Parse a complete script."""
        start = self._current()
        statements = []
        while not self._is_at_end():
            statements.append(self._parse_statement())

        return Program(
            span=self._span_from(start) if statements else start.span,
            statements=statements,
            functions=dict(self.functions),
            inputs=dict(self.inputs),
            sections=list(self.sections),
        )


def parse(source: Union[str, List[Token]], filename: Optional[str] = None) -> Program:
    """
    Convenience function to parse a script.

    Args:
        source: Source text, or a token list from the lexer
        filename: Optional filename for error messages

    Returns:
        Parsed Program

    Raises:
        LexError: If tokenizing the source fails
        ParseError: If parsing fails
    """
    tokens = tokenize(source, filename) if isinstance(source, str) else source
    parser = Parser(tokens, filename)
    return parser.parse_program()
