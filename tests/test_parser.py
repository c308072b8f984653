"""
Unit tests for the shape script parser.
"""

import pytest

from shapescript import parse, format_ast, ParseError, LexError, TokenType, ScriptType
from shapescript.ast import (
    LetStatement, AssignStatement, ForStatement, WhileStatement, IfStatement, Block,
    ExportShape, ExportAdaptive, ExportSlot, ExpressionStatement,
    FunctionStatement, InputStatement, ReturnStatement, SectionStatement,
    BinaryOp, UnaryOp, Identifier, NumberLiteral, Call, TypeTest, ShapeExpr,
    Empty, Vec2Literal,
)
from shapescript.symbols import GLOBAL_SCOPE, POSITIONAL


def first_value(source):
    """The initializer of the first let statement."""
    stmt = parse(source).statements[0]
    assert isinstance(stmt, LetStatement)
    return stmt.value


def parse_error_code(source):
    with pytest.raises(ParseError) as exc:
        parse(source)
    return exc.value.code


class TestExpressions:
    """Operator precedence and primary expressions."""

    def test_multiplication_binds_tighter(self):
        expr = first_value("let x = 1 + 2 * 3;")
        assert isinstance(expr, BinaryOp)
        assert expr.operator == TokenType.PLUS
        assert isinstance(expr.right, BinaryOp)
        assert expr.right.operator == TokenType.STAR

    def test_left_associative(self):
        """1 - 2 - 3 parses as (1 - 2) - 3."""
        expr = first_value("let x = 1 - 2 - 3;")
        assert expr.operator == TokenType.MINUS
        assert isinstance(expr.left, BinaryOp)
        assert expr.right.value == 3.0

    def test_power_is_left_associative(self):
        expr = first_value("let x = 2 ^ 3 ^ 2;")
        assert expr.operator == TokenType.CARET
        assert isinstance(expr.left, BinaryOp)

    def test_comparison_below_arithmetic(self):
        expr = first_value("let x = a + 1 < b * 2;")
        assert expr.operator == TokenType.LT

    def test_logical_lowest(self):
        expr = first_value("let x = a < 1 && b == 2;")
        assert expr.operator == TokenType.AND
        assert expr.left.operator == TokenType.LT
        assert expr.right.operator == TokenType.EQ

    def test_parentheses(self):
        expr = first_value("let x = (1 + 2) * 3;")
        assert expr.operator == TokenType.STAR
        assert expr.left.operator == TokenType.PLUS

    def test_unary(self):
        expr = first_value("let x = -a + 1;")
        assert expr.operator == TokenType.PLUS
        assert isinstance(expr.left, UnaryOp)
        assert expr.left.operator == TokenType.MINUS

    def test_field_access(self):
        expr = first_value("let x = v.x * 2;")
        assert expr.operator == TokenType.STAR
        assert expr.left.operator == TokenType.DOT
        assert expr.left.right.name == "x"

    def test_literals(self):
        assert isinstance(first_value("let x = #;"), Empty)
        assert isinstance(first_value("let x = null;"), Empty)
        vec = first_value("let x = [3, 4];")
        assert isinstance(vec, Vec2Literal)
        assert (vec.x, vec.y) == (3.0, 4.0)
        assert first_value("let x = >25;").value == pytest.approx(0.25)

    def test_call_arguments(self):
        call = first_value("let s = rect[x: 0, y: 1, width: 2, height: 3];")
        assert isinstance(call, Call)
        assert call.name == "rect"
        assert call.order == ["x", "y", "width", "height"]
        assert call.arguments["y"].value == 1.0

    def test_positional_argument(self):
        call = first_value("let s = sqrt[4];")
        assert call.order == [POSITIONAL]

    def test_type_test(self):
        expr = first_value("let t = type[v, Vec2];")
        assert isinstance(expr, TypeTest)
        assert expr.type == ScriptType.VEC2

    def test_shape_expression(self):
        expr = first_value("let s = begin[1] : vertex[x: 0, y: 0]; end;")
        assert isinstance(expr, ShapeExpr)
        assert expr.mode.value == 1.0
        assert isinstance(expr.body, Block)

    def test_shape_expression_default_mode(self):
        expr = first_value("let s = begin[] ;;")
        assert expr.mode.value == 0.0


class TestStatements:
    """Statement forms."""

    def test_assignment(self):
        stmt = parse("x = 1;").statements[0]
        assert isinstance(stmt, AssignStatement)
        assert stmt.target.name == "x"

    def test_compound_assignment_desugars(self):
        """x += 2 becomes x = x + 2."""
        stmt = parse("x += 2;").statements[0]
        assert isinstance(stmt, AssignStatement)
        assert stmt.value.operator == TokenType.PLUS
        assert isinstance(stmt.value.left, Identifier)
        assert stmt.value.left.name == "x"

    def test_field_compound_assignment(self):
        stmt = parse("v.x *= 2;").statements[0]
        assert isinstance(stmt, ExpressionStatement)
        expr = stmt.expression
        assert expr.operator == TokenType.ASSIGN
        assert expr.right.operator == TokenType.STAR
        assert expr.right.left.operator == TokenType.DOT

    def test_for_defaults(self):
        stmt = parse("for i in begin[end: 3] : end").statements[0]
        assert isinstance(stmt, ForStatement)
        assert stmt.start.value == 0.0
        assert stmt.step.value == 1.0
        assert stmt.end.value == 3.0

    def test_for_all_clauses(self):
        stmt = parse("for i in begin[start: 10, end: 0, step: -2] ;").statements[0]
        assert stmt.start.value == 10.0
        assert stmt.step.value == -2.0

    def test_if_else(self):
        stmt = parse("if a : x = 1; end else : x = 2; end").statements[0]
        assert isinstance(stmt, IfStatement)
        assert isinstance(stmt.then_branch, Block)
        assert isinstance(stmt.else_branch, Block)

    def test_named_block(self):
        stmt = parse("+outer let x = 1; <").statements[0]
        assert isinstance(stmt, Block)
        assert stmt.label == "outer"
        assert len(stmt.statements) == 1

    def test_named_block_as_if_body(self):
        stmt = parse("if a +then x = 1; < else +other x = 2; <").statements[0]
        assert isinstance(stmt, IfStatement)
        assert isinstance(stmt.condition, Identifier)
        assert stmt.then_branch.label == "then"
        assert stmt.else_branch.label == "other"

    def test_named_block_as_while_body(self):
        stmt = parse("while i < 3 +step i += 1; <").statements[0]
        assert isinstance(stmt, WhileStatement)
        assert stmt.condition.operator == TokenType.LT
        assert isinstance(stmt.body, Block)
        assert stmt.body.label == "step"

    def test_named_block_as_for_body(self):
        stmt = parse("for i in begin[end: 3] +each let x = i; <").statements[0]
        assert isinstance(stmt, ForStatement)
        assert stmt.body.label == "each"
        assert len(stmt.body.statements) == 1

    def test_named_block_as_function_body(self):
        program = parse("function f[] +body return 2; <")
        body = program.functions["f"].body
        assert isinstance(body, Block)
        assert body.label == "body"

    def test_named_block_as_builder_body(self):
        expr = first_value("let s = begin[0] +tri vertex[x: 0, y: 0]; < ;")
        assert isinstance(expr, ShapeExpr)
        assert expr.body.label == "tri"

    def test_empty_named_body(self):
        stmt = parse("if a +nothing <").statements[0]
        assert stmt.then_branch.label == "nothing"
        assert stmt.then_branch.statements == []

    def test_condition_still_adds(self):
        """Only a spaced '+' glued to a name opens the body."""
        stmt = parse("if a+b > c : end").statements[0]
        assert stmt.condition.left.operator == TokenType.PLUS
        stmt = parse("if a + b > c : end").statements[0]
        assert stmt.condition.left.operator == TokenType.PLUS
        stmt = parse("if (a +b) > c : end").statements[0]
        assert stmt.condition.left.operator == TokenType.PLUS
        stmt = parse("if f[n: a +b] > c : end").statements[0]
        assert stmt.condition.left.arguments["n"].operator == TokenType.PLUS

    def test_assignment_adds_after_name(self):
        stmt = parse("x = a +b;").statements[0]
        assert stmt.value.operator == TokenType.PLUS

    def test_semicolon_optional_after_block(self):
        program = parse("let s = begin[0] : end let t = 1;")
        assert len(program.statements) == 2

    def test_missing_semicolon(self):
        assert parse_error_code("let x = 1 let y = 2;") == "E101"

    def test_unexpected_eof(self):
        assert parse_error_code("let x = ") == "E100"

    def test_export_forms(self):
        program = parse(
            "export rect[x: 0, y: 0, width: 1, height: 1];"
            "export adaptive: #, #, #, #, #, #, #, #, #;"
            "export :left s;"
            "export :finish;"
        )
        shape, adaptive, slot, finish = program.statements
        assert isinstance(shape, ExportShape)
        assert isinstance(adaptive, ExportAdaptive)
        assert len(adaptive.parts) == 9
        assert isinstance(slot, ExportSlot)
        assert slot.slot == "left"
        assert finish.value is None

    def test_input(self):
        program = parse("input size: Number = 10; input flag: Bool;")
        assert set(program.inputs) == {"size", "flag"}
        size = program.inputs["size"]
        assert isinstance(size, InputStatement)
        assert size.type == ScriptType.NUMBER
        assert size.default.value == 10.0
        assert program.inputs["flag"].default is None

    def test_sections(self):
        program = parse("#inputs #shape export s;")
        assert isinstance(program.statements[0], SectionStatement)
        assert program.sections == ["inputs", "shape"]
        assert program.export_kind == "shape"

    def test_no_export_kind(self):
        assert parse("#main let x = 1;").export_kind is None


class TestFunctions:
    """Function declarations and scope resolution."""

    def test_declaration(self):
        program = parse(
            "function f[p: Number, q: Vec2] : let l = p + 1; return l; end"
        )
        assert "f" in program.functions
        function = program.functions["f"]
        assert [p.name for p in function.parameters] == ["p", "q"]
        assert function.parameters[1].type == ScriptType.VEC2
        assert [p.symbol.qualified for p in function.parameters] == ["f_p", "f_q"]
        assert "f_l" in [s.qualified for s in function.locals]
        assert isinstance(function.body.statements[1], ReturnStatement)

    def test_declaration_leaves_marker(self):
        """The declaration's position is kept as a FunctionStatement."""
        program = parse("let a = 1; function f[] ; let b = 2;")
        assert isinstance(program.statements[1], FunctionStatement)
        assert program.statements[1].name == "f"

    def test_input_resolves_globally(self):
        program = parse("input x: Number = 1; function f[] : return x; end")
        ret = program.functions["f"].body.statements[0]
        assert ret.value.symbol.qualified == f"{GLOBAL_SCOPE}_x"

    def test_undeclared_name_stays_local(self):
        """Only inputs reach into a function; other top-level names do not."""
        program = parse("let y = 1; function f[] : return y; end")
        ret = program.functions["f"].body.statements[0]
        assert ret.value.symbol.qualified == "f_y"

    def test_parameter_shadows_input(self):
        program = parse("input x: Number = 1; function f[x: Number] : return x; end")
        ret = program.functions["f"].body.statements[0]
        assert ret.value.symbol.qualified == "f_x"

    def test_top_level_names_are_global(self):
        stmt = parse("let x = 1;").statements[0]
        assert stmt.target.qualified == f"{GLOBAL_SCOPE}_x"

    def test_nested_function(self):
        assert parse_error_code("function f[] : function g[] ; end") == "E105"

    def test_duplicate_function(self):
        assert parse_error_code("function f[] ; function f[] ;") == "E106"

    def test_duplicate_parameter(self):
        assert parse_error_code("function f[a: Number, a: Number] ;") == "E102"


class TestParseErrors:
    """Structural errors reported by the parser."""

    def test_for_without_end(self):
        assert parse_error_code("for i in begin[start: 1] ;") == "E107"

    def test_for_unknown_clause(self):
        assert parse_error_code("for i in begin[end: 3, stop: 1] ;") == "E101"

    def test_adaptive_arity(self):
        assert parse_error_code("export adaptive: #, #;") == "E108"

    def test_return_at_top_level(self):
        assert parse_error_code("return 1;") == "E109"

    def test_input_inside_function(self):
        assert parse_error_code("function f[] : input x: Number; end") == "E109"

    def test_duplicate_argument(self):
        assert parse_error_code("f[a: 1, a: 2];") == "E102"

    def test_two_unnamed_arguments(self):
        assert parse_error_code("f[1, 2];") == "E103"

    def test_bad_type_name(self):
        assert parse_error_code("input x: Foo;") == "E104"

    def test_shape_expression_bad_key(self):
        assert parse_error_code("let s = begin[kind: 1] ;;") == "E101"

    def test_lexer_errors_propagate(self):
        with pytest.raises(LexError):
            parse("let x = 1 @ 2;")

    def test_error_has_location(self):
        with pytest.raises(ParseError) as exc:
            parse("let x = 1;\nlet = 2;")
        assert exc.value.diagnostic.span.start.line == 2


class TestFormatAst:
    """Debug dump of the tree."""

    def test_indented_dump(self):
        lines = format_ast(parse("let x = 1 + 2;")).splitlines()
        assert lines[0].startswith("Program(")
        assert lines[1].startswith("  LetStatement(")
        assert lines[2].startswith("    BinaryOp(")
        assert lines[3] == "      NumberLiteral(value=1.0)"
        assert len(lines) == 5
