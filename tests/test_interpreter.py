"""
Tests for the shape script interpreter: statements, exports, inputs and
function calls, run end to end through compile_and_run.
"""

import pytest

from shapescript import (
    compile_and_run, parse, Interpreter, ScriptConfig, ExecError, Shape, AdaptiveShape,
)
from shapescript.runtime.values import ShapeValue

UNIT = "rect[x: 0, y: 0, width: 1, height: 1]"


def run_ok(source, inputs=None, config=None):
    result = compile_and_run(source, inputs, config)
    assert result.success, result.error_message
    return result


def run_error(source, inputs=None, config=None):
    result = compile_and_run(source, inputs, config)
    assert not result.success
    assert result.diagnostic is not None
    return result.diagnostic


class TestVariables:
    """let, assignment and scoping."""

    def test_let_and_assign(self):
        result = run_ok(f"let a = 1; a = a + 2; export {UNIT};")
        assert result.variables["a"] == 3.0

    def test_compound_assignment(self):
        result = run_ok(f"let a = 10; a -= 3; a *= 2; a ^= 2; export {UNIT};")
        assert result.variables["a"] == 196.0

    def test_redefinition(self):
        diag = run_error(f"let a = 1; let a = 2; export {UNIT};")
        assert diag.code == "E402"
        assert diag.span.start.line == 1

    def test_assign_unknown(self):
        assert run_error(f"b = 1; export {UNIT};").code == "E401"

    def test_read_unknown(self):
        diag = run_error("export translate[missing, x: 1];")
        assert diag.code == "E401"
        assert "'missing'" in diag.message

    def test_let_reads_outer_binding(self):
        """let x = x inside a function reads the input, then shadows it."""
        source = """
            input x: Number = 5;
            function f[] : let x = x + 1; return x; end
            let r = f[];
            export rect[x: 0, y: 0, width: r, height: 1];
        """
        result = run_ok(source)
        assert result.variables["r"] == 6.0

    def test_field_assignment(self):
        result = run_ok(f"let v = [1, 2]; v.x = 5; v.y += 1; export {UNIT};")
        assert result.variables["v"] == (5.0, 3.0)

    def test_field_assignment_needs_number(self):
        assert run_error(f"let v = [1, 2]; v.x = true; export {UNIT};").code == "E410"

    def test_field_read(self):
        result = run_ok(f"let v = [3, 4]; let s = v.x + v.y; export {UNIT};")
        assert result.variables["s"] == 7.0

    def test_bad_field(self):
        assert run_error(f"let n = 1; let m = n.x; export {UNIT};").code == "E405"

    def test_percent_literal(self):
        result = run_ok(f"let p = >50; export {UNIT};")
        assert result.variables["p"] == 0.5

    def test_type_test(self):
        result = run_ok(f"let v = [1, 2]; let a = type[v, Vec2]; let b = type[v, Number]; "
                        f"export {UNIT};")
        assert result.variables["a"] is True
        assert result.variables["b"] is False

    def test_null_operand(self):
        assert run_error(f"let n = #; let m = n + 1; export {UNIT};").code == "E404"

    def test_operator_mismatch(self):
        diag = run_error(f"let a = true + 1; export {UNIT};")
        assert diag.code == "E403"
        assert diag.message == "cannot apply '+' to Bool and Number"


class TestControlFlow:
    """Loops, conditionals, break and continue."""

    def test_for_counts_up(self):
        result = run_ok(f"let n = 0; for i in begin[end: 5] : n += 1; end export {UNIT};")
        assert result.variables["n"] == 5.0

    def test_for_counts_down(self):
        source = f"let n = 0; for i in begin[start: 10, end: 0, step: -2] : n += 1; end export {UNIT};"
        assert run_ok(source).variables["n"] == 5.0

    def test_for_empty_range(self):
        source = f"let n = 0; for i in begin[start: 5, end: 5] : n += 1; end export {UNIT};"
        assert run_ok(source).variables["n"] == 0.0

    def test_for_sum(self):
        source = f"let s = 0; for i in begin[start: 1, end: 5] s += i; export {UNIT};"
        assert run_ok(source).variables["s"] == 10.0

    def test_loop_variable_persists(self):
        result = run_ok(f"for i in begin[end: 3] ; export {UNIT};")
        assert result.variables["i"] == 2.0

    def test_for_zero_step(self):
        assert run_error(f"for i in begin[end: 3, step: 0] ; export {UNIT};").code == "E400"

    def test_for_bound_must_be_number(self):
        assert run_error(f"for i in begin[end: true] ; export {UNIT};").code == "E410"

    def test_while(self):
        result = run_ok(f"let i = 0; while i < 3 : i += 1; end export {UNIT};")
        assert result.variables["i"] == 3.0

    def test_condition_must_be_bool(self):
        assert run_error(f"if 1 : end export {UNIT};").code == "E410"

    def test_if_else(self):
        source = f"let a = 0; if 1 > 2 : a = 1; end else : a = 2; end export {UNIT};"
        assert run_ok(source).variables["a"] == 2.0

    def test_break(self):
        source = f"""
            let n = 0;
            for i in begin[end: 10] : if i == 3 : break; end n += 1; end
            export {UNIT};
        """
        assert run_ok(source).variables["n"] == 3.0

    def test_continue(self):
        source = f"""
            let n = 0;
            for i in begin[end: 5] : if i == 1 : continue; end n += 1; end
            export {UNIT};
        """
        assert run_ok(source).variables["n"] == 4.0

    def test_break_in_while(self):
        source = f"let i = 0; while true : i += 1; if i >= 4 : break; end end export {UNIT};"
        assert run_ok(source).variables["i"] == 4.0

    def test_break_outside_loop(self):
        diag = run_error(f"break; export {UNIT};")
        assert diag.code == "E407"
        assert diag.message == "'break' outside of a loop"

    def test_continue_in_function_called_from_loop(self):
        """A loop does not reach into the functions it calls."""
        source = f"""
            function f[] : continue; end
            for i in begin[end: 2] f[];
            export {UNIT};
        """
        assert run_error(source).code == "E407"

    def test_loop_limit(self):
        config = ScriptConfig(max_loop_iterations=10)
        diag = run_error(f"let i = 0; while true : i += 1; end export {UNIT};", config=config)
        assert diag.code == "E400"
        assert "10 iterations" in diag.message

    def test_named_block_bodies(self):
        source = """
            let a = 0; let b = 0; let n = 0; let w = 0;
            if true +yes a = 1; <
            if false +no b = 1; < else +otherwise b = 2; <
            for i in begin[end: 3] +each n += 1; <
            while w < 4 +step w += 2; <
            function two[] +body return 2; <
            let r = two[];
            let s = begin[0] +tri vertex[x: 0, y: 0]; vertex[x: 1, y: 0]; vertex[x: 0, y: 1]; <;
            export s;
        """
        result = run_ok(source)
        assert result.variables["a"] == 1.0
        assert result.variables["b"] == 2.0
        assert result.variables["n"] == 3.0
        assert result.variables["w"] == 4.0
        assert result.variables["r"] == 2.0
        assert result.shape.triangle_count == 1

    def test_break_leaves_inner_loop_only(self):
        source = f"""
            let n = 0;
            for i in begin[end: 3] :
                for j in begin[end: 10] : if j == 1 : break; end n += 1; end
            end
            export {UNIT};
        """
        result = run_ok(source)
        assert result.variables["n"] == 3.0
        assert result.variables["i"] == 2.0

    def test_named_block(self):
        result = run_ok(f"+setup let a = 1; let b = a + 1; < export {UNIT};")
        assert result.variables["b"] == 2.0


class TestExports:
    """Shape and adaptive exports."""

    def test_export_shape(self):
        result = run_ok("export rect[x: 0, y: 0, width: 4, height: 2];")
        assert isinstance(result.shape, Shape)
        assert result.shape.width == 4.0

    def test_first_export_wins(self):
        result = run_ok("export rect[x: 0, y: 0, width: 1, height: 1];"
                        "export rect[x: 0, y: 0, width: 2, height: 2];")
        assert result.shape.width == 1.0

    def test_statements_after_export_do_not_run(self):
        result = run_ok(f"let a = 1; export {UNIT}; a = 2;")
        assert result.variables["a"] == 1.0

    def test_export_inside_loop(self):
        source = """
            for i in begin[start: 1, end: 10] :
                if i == 3 : export rect[x: 0, y: 0, width: i, height: 1]; end
            end
        """
        assert run_ok(source).shape.width == 3.0

    def test_export_non_shape(self):
        diag = run_error("export 1;")
        assert diag.code == "E410"

    def test_missing_export(self):
        diag = run_error("let a = 1;")
        assert diag.code == "E415"

    def test_adaptive(self):
        source = f"export adaptive: {UNIT}, #, #, #, #, #, #, #, {UNIT};"
        shape = run_ok(source).shape
        assert isinstance(shape, AdaptiveShape)
        assert shape.filled() == ["bl", "c"]

    def test_adaptive_part_kind(self):
        source = "export adaptive: 1, #, #, #, #, #, #, #, #;"
        assert run_error(source).code == "E410"

    def test_slot_exports(self):
        source = f"""
            export :bl {UNIT};
            export :center translate[{UNIT}, x: 5];
            export :finish;
        """
        shape = run_ok(source).shape
        assert shape.filled() == ["bl", "c"]
        assert shape["c"].extent()[0][0] == 5.0

    def test_partial_slots_at_end(self):
        shape = run_ok(f"export :left {UNIT};").shape
        assert isinstance(shape, AdaptiveShape)
        assert shape.filled() == ["l"]

    def test_all_slots_complete_the_export(self):
        slots = ["bl", "l", "tl", "t", "tr", "r", "br", "b", "c"]
        source = " ".join(f"export :{s} {UNIT};" for s in slots) + " let after = 1;"
        result = run_ok(source)
        assert result.shape.filled() == slots
        assert "after" not in result.variables

    def test_slot_null(self):
        shape = run_ok(f"export :bl #; export :c {UNIT}; export :finish;").shape
        assert shape.filled() == ["c"]

    def test_duplicate_slot(self):
        diag = run_error(f"export :bl {UNIT}; export :bottom_left {UNIT};")
        assert diag.code == "E413"

    def test_duplicate_null_slot(self):
        """A slot exported as # is taken."""
        diag = run_error(f"export :bl #; export :bl {UNIT};")
        assert diag.code == "E413"

    def test_null_slots_count_toward_completion(self):
        slots = ["bl", "l", "tl", "t", "tr", "r", "br", "b", "c"]
        source = " ".join(f"export :{s} {'#' if s in ('l', 'b') else UNIT};" for s in slots)
        result = run_ok(source + " let after = 1;")
        assert result.shape.filled() == ["bl", "tl", "t", "tr", "r", "br", "c"]
        assert "after" not in result.variables

    def test_adaptive_binds_in_slot_order(self):
        parts = ", ".join(f"rect[x: {k}, y: 0, width: 1, height: 1]" for k in range(9))
        shape = run_ok(f"export adaptive: {parts};").shape
        assert shape.filled() == ["bl", "l", "tl", "t", "tr", "r", "br", "b", "c"]
        for k, slot in enumerate(["bl", "l", "tl", "t", "tr", "r", "br", "b", "c"]):
            assert shape[slot].extent()[0][0] == float(k)

    def test_unknown_slot(self):
        diag = run_error(f"export :middle {UNIT};")
        assert diag.code == "E414"
        assert "'middle'" in diag.message

    def test_no_shape_selected(self):
        assert run_error("export :bl;").code == "E412"

    def test_slot_from_builder(self):
        """Inside a builder, export :slot takes the vertices so far."""
        source = """
            let s = begin[0] :
                vertex[x: 0, y: 0]; vertex[x: 1, y: 0]; vertex[x: 0, y: 1];
                export :bl;
                vertex[x: 0, y: 0]; vertex[x: 2, y: 0]; vertex[x: 0, y: 2];
            end;
            export :c s;
        """
        shape = run_ok(source).shape
        assert shape["bl"].area() == pytest.approx(0.5)
        assert shape["c"].area() == pytest.approx(2.0)

    def test_declared_shape_section(self):
        diag = run_error(f"#shape export :bl {UNIT};")
        assert diag.code == "E416"
        assert diag.message == "script declares #shape but exports an AdaptiveShape"

    def test_declared_adaptive_section(self):
        assert run_error(f"#adaptive export {UNIT};").code == "E416"

    def test_matching_section(self):
        assert run_ok(f"#inputs #shape export {UNIT};").shape.width == 1.0


class TestShapeBuilder:
    """begin[mode] ... vertex[...] blocks."""

    def test_triangles(self):
        source = """
            export begin[0] :
                vertex[x: 0, y: 0]; vertex[x: 1, y: 0]; vertex[x: 0, y: 1];
                vertex[[1, 1]]; vertex[[2, 1]]; vertex[[1, 2]];
            end
        """
        shape = run_ok(source).shape
        assert shape.triangle_count == 2
        assert shape.vertex_count == 6

    def test_strip(self):
        source = """
            export begin[mode: 1] :
                for i in begin[end: 4] vertex[x: i, y: i % 2];
            end;
        """
        shape = run_ok(source).shape
        assert shape.triangle_count == 2
        assert shape.area() == pytest.approx(2.0)

    def test_incomplete_triangle(self):
        source = "export begin[0] : vertex[x: 0, y: 0]; vertex[x: 1, y: 0]; end;"
        diag = run_error(source)
        assert diag.code == "E400"
        assert "cannot build shape" in diag.message

    def test_unknown_mode(self):
        assert run_error("export begin[2] ;;").code == "E400"

    def test_vertex_outside_builder(self):
        assert run_error(f"vertex[x: 0, y: 0]; export {UNIT};").code == "E400"

    def test_nested_builders(self):
        source = """
            export begin[0] :
                let inner = begin[0] : vertex[[0, 0]]; vertex[[1, 0]]; vertex[[0, 1]]; end;
                vertex[[0, 0]]; vertex[[3, 0]]; vertex[[0, 3]];
            end;
        """
        assert run_ok(source).shape.area() == pytest.approx(4.5)

    def test_break_inside_builder(self):
        """A builder body is not part of the enclosing loop."""
        source = """
            for i in begin[end: 2] :
                let s = begin[0] : break; end;
            end
            export rect[x: 0, y: 0, width: 1, height: 1];
        """
        assert run_error(source).code == "E407"


class TestInputs:
    """input declarations."""

    SOURCE = """
        input size: Number = 10;
        input offset: Vec2 = [0, 0];
        input flip: Bool = false;
        export rect[x: offset.x, y: offset.y, width: size, height: 1];
    """

    def test_defaults(self):
        result = run_ok(self.SOURCE)
        assert result.shape.width == 10.0
        assert result.variables["flip"] is False

    def test_provided(self):
        result = run_ok(self.SOURCE, {"size": 4, "offset": (2, 3)})
        assert result.shape.width == 4.0
        assert result.shape.extent()[0].tolist() == [2.0, 3.0]

    def test_missing(self):
        diag = run_error("input size: Number; export rect[x: 0, y: 0, width: size, height: 1];")
        assert diag.code == "E411"
        assert "'size'" in diag.message

    def test_wrong_kind(self):
        diag = run_error(self.SOURCE, {"size": True})
        assert diag.code == "E410"
        assert "expected Number but found Bool" in diag.message

    def test_unconvertible(self):
        assert run_error(self.SOURCE, {"size": "big"}).code == "E410"

    def test_default_wrong_kind(self):
        assert run_error(f"input size: Number = true; export {UNIT};").code == "E410"

    def test_input_twice(self):
        assert run_error(f"input a: Number = 1; input a: Number = 2; export {UNIT};").code == "E402"


class TestFunctions:
    """User function calls."""

    def test_named_arguments(self):
        source = """
            function area2[w: Number, h: Number] : return w * h; end
            let a = area2[h: 3, w: 2];
            export rect[x: 0, y: 0, width: a, height: 1];
        """
        assert run_ok(source).variables["a"] == 6.0

    def test_unnamed_argument(self):
        source = f"""
            function double[value: Number] : return value * 2; end
            let a = double[4];
            export {UNIT};
        """
        assert run_ok(source).variables["a"] == 8.0

    def test_returns_shape(self):
        source = """
            function square[side: Number] :
                return rect[x: 0, y: 0, width: side, height: side];
            end
            export square[side: 3];
        """
        assert run_ok(source).shape.area() == pytest.approx(9.0)

    def test_no_return_gives_null(self):
        source = f"function f[] : let a = 1; end let r = f[]; let s = type[r, Number]; export {UNIT};"
        result = run_ok(source)
        assert result.variables["r"] is None
        assert result.variables["s"] is False

    def test_locals_reset_between_calls(self):
        source = f"""
            function f[n: Number] : let doubled = n * 2; return doubled; end
            let a = f[1] + f[2];
            export {UNIT};
        """
        assert run_ok(source).variables["a"] == 6.0

    def test_reads_inputs(self):
        source = f"""
            input k: Number = 3;
            function g[] : return k * 2; end
            let a = g[];
            export {UNIT};
        """
        assert run_ok(source, {"k": 5}).variables["a"] == 10.0

    def test_does_not_read_top_level_lets(self):
        source = f"let k = 3; function g[] : return k; end let a = g[]; export {UNIT};"
        assert run_error(source).code == "E401"

    def test_return_inside_loop(self):
        source = f"""
            function first_over[limit: Number] :
                for i in begin[end: 100] : if i * i > limit : return i; end end
                return -1;
            end
            let a = first_over[limit: 50];
            export {UNIT};
        """
        assert run_ok(source).variables["a"] == 8.0

    def test_recursion(self):
        source = """
            function f[n: Number] : return f[n: n - 1]; end
            export rect[x: 0, y: 0, width: f[n: 3], height: 1];
        """
        diag = run_error(source)
        assert diag.code == "E406"
        assert "'f'" in diag.message

    def test_unknown_function(self):
        diag = run_error("export nosuch[1];")
        assert diag.code == "E408"

    def test_unknown_argument(self):
        source = f"function f[a: Number] : return a; end let r = f[b: 1]; export {UNIT};"
        assert run_error(source).code == "E409"

    def test_missing_argument(self):
        source = f"function f[a: Number] : return a; end let r = f[]; export {UNIT};"
        assert run_error(source).code == "E409"

    def test_argument_kind(self):
        source = f"function f[a: Number] : return a; end let r = f[a: [1, 2]]; export {UNIT};"
        diag = run_error(source)
        assert diag.code == "E410"
        assert "expected Number but found Vec2" in diag.message

    def test_builtin_wins_over_user_function(self):
        source = """
            function width[shape: Shape] : return 99; end
            let w = width[rect[x: 0, y: 0, width: 2, height: 1]];
            export rect[x: 0, y: 0, width: w, height: 1];
        """
        assert run_ok(source).variables["w"] == 2.0

    def test_builtin_error_has_location(self):
        diag = run_error("let s = 1;\nexport rect[x: 0, y: 0, width: 1];")
        assert diag.code == "E409"
        assert diag.span.start.line == 2


class TestEntryPoints:
    """compile_and_run and Interpreter."""

    def test_lexer_error_prefix(self):
        result = compile_and_run("let x = 1 @ 2;")
        assert not result.success
        assert result.error_message.startswith("Lexer error:")
        assert result.diagnostic.code == "E001"

    def test_parser_error_prefix(self):
        result = compile_and_run("let = 1;")
        assert result.error_message.startswith("Parser error:")

    def test_runtime_error_message(self):
        result = compile_and_run("let a = 1;")
        assert result.error_message == result.diagnostic.message
        assert result.variables == {"a": 1.0}

    def test_interpreter_run_raises(self):
        with pytest.raises(ExecError) as exc:
            Interpreter().run(parse("let a = 1;"))
        assert exc.value.code == "E415"

    def test_interpreter_run_returns_value(self):
        value = Interpreter().run(parse(f"export {UNIT};"))
        assert isinstance(value, ShapeValue)

    def test_error_source_line(self):
        result = compile_and_run(f"let a = 1;\nlet b = a + true;\nexport {UNIT};")
        assert result.diagnostic.source_line == "let b = a + true;"
