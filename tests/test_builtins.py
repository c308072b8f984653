"""
Unit tests for the builtin function registry.
"""

import logging
import math

import pytest

from shapescript import ExecError
from shapescript.geometry import rect
from shapescript.log import SCRIPT_LOGGER
from shapescript.runtime.builtins import get_builtin_registry, call_builtin
from shapescript.runtime.values import NULL, Number, Bool, Vec2, ShapeValue, MappedArgs, wrap
from shapescript.symbols import POSITIONAL


def call(name, *positional, **named):
    """Call a builtin the way the interpreter does: named arguments plus one unnamed."""
    values = {key: wrap(value) for key, value in named.items()}
    order = list(values)
    if positional:
        assert len(positional) == 1
        values[POSITIONAL] = wrap(positional[0])
        order.append(POSITIONAL)
    return call_builtin(name, MappedArgs(values, order, name))


def call_error(name, *positional, **named):
    with pytest.raises(ExecError) as exc:
        call(name, *positional, **named)
    return exc.value


def square(size=10.0, x=0.0, y=0.0):
    return rect(x, y, size, size)


class TestBinding:
    """Argument binding rules shared by every builtin."""

    def test_named(self):
        assert call("atan2", a=1.0, b=1.0) == Number(math.pi / 4)

    def test_unnamed_fills_first_free_parameter(self):
        assert call("clamp", 15.0, min=0.0, max=10.0) == Number(10.0)

    def test_unknown_argument(self):
        err = call_error("sqrt", valu=4.0)
        assert err.code == "E409"
        assert "unknown argument 'valu'" in err.message

    def test_missing_argument(self):
        err = call_error("atan2", a=1.0)
        assert err.code == "E409"
        assert "missing argument 'b'" in err.message

    def test_wrong_kind(self):
        err = call_error("sqrt", value=True)
        assert err.code == "E409"
        assert "must be Number, found Bool" in err.message

    def test_unnamed_with_no_free_parameter(self):
        assert "unexpected unnamed argument" in call_error("sqrt", 1.0, value=2.0).message

    def test_default_parameter(self):
        result = call("next_after", start=1.0)
        assert result.value > 1.0

    def test_unknown_builtin(self):
        err = call_error("no_such_builtin", 1.0)
        assert err.code == "E408"

    def test_aliases(self):
        registry = get_builtin_registry()
        for alias, name in (("rect", "rect0"), ("triangle", "triangle0"), ("arc", "arc0"),
                            ("circle", "circle0"), ("ellipse", "ellipse0")):
            assert registry.get_function(alias) is registry.get_function(name)

    def test_vertex_is_not_a_builtin(self):
        assert "vertex" not in get_builtin_registry()


class TestMath:
    """Numeric builtins."""

    def test_unary(self):
        assert call("sqrt", 9.0) == Number(3.0)
        assert call("abs", -2.0) == Number(2.0)
        assert call("floor", 2.7) == Number(2.0)
        assert call("ceil", 2.1) == Number(3.0)
        assert call("trunc", -2.7) == Number(-2.0)
        assert call("fract", 2.25) == Number(0.25)
        assert call("sign", -3.0) == Number(-1.0)
        assert call("recip", 4.0) == Number(0.25)

    def test_round_half_away_from_zero(self):
        assert call("round", 2.5) == Number(3.0)
        assert call("round", -2.5) == Number(-3.0)
        assert call("round", 2.4) == Number(2.0)

    def test_domain_errors_give_nan(self):
        assert math.isnan(call("sqrt", -1.0).value)
        assert call("is_nan", call("ln", -1.0).value) == Bool(True)

    def test_recip_of_zero(self):
        assert call("recip", 0.0).value == math.inf

    def test_predicates(self):
        assert call("is_finite", 1.0) == Bool(True)
        assert call("is_infinite", math.inf) == Bool(True)
        assert call("is_sign_negative", -0.0) == Bool(True)

    def test_binary(self):
        assert call("min", a=2.0, b=3.0) == Number(2.0)
        assert call("max", a=2.0, b=3.0) == Number(3.0)
        assert call("lerp", a=0.0, b=10.0, t=0.25) == Number(2.5)
        assert call("hypot", x=3.0, y=4.0) == Number(5.0)
        assert call("fma", a=2.0, b=3.0, c=1.0) == Number(7.0)

    def test_angles(self):
        assert call("deg_to_rad", deg=180.0).value == pytest.approx(math.pi)
        assert call("rad_to_deg", rad=math.pi).value == pytest.approx(180.0)

    def test_clamp(self):
        assert call("clamp", value=-5.0, min=0.0, max=10.0) == Number(0.0)
        err = call_error("clamp", value=1.0, min=5.0, max=0.0)
        assert err.code == "E409"
        assert "greater than max" in err.message


class TestVectors:
    """Vec2 builtins."""

    def test_constructor(self):
        assert call("vec2", x=1.0, y=2.0) == Vec2(1.0, 2.0)

    def test_length_and_normalize(self):
        assert call("length", (3.0, 4.0)) == Number(5.0)
        assert call("normalize", (3.0, 4.0)) == Vec2(0.6, 0.8)

    def test_normalize_zero(self):
        assert call_error("normalize", (0.0, 0.0)).code == "E409"

    def test_dot_and_distance(self):
        assert call("dot", a=(1.0, 2.0), b=(3.0, 4.0)) == Number(11.0)
        assert call("distance", a=(0.0, 0.0), b=(3.0, 4.0)) == Number(5.0)


class TestPrimitives:
    """Shape constructors."""

    def test_rect(self):
        shape = call("rect", x=1.0, y=2.0, width=4.0, height=3.0).shape
        assert shape.vertex_count == 4
        assert shape.triangle_count == 2
        assert shape.area() == pytest.approx(12.0)
        assert (shape.width, shape.height) == (4.0, 3.0)

    def test_rect_from_corners(self):
        shape = call("rect1", x1=1.0, y1=1.0, x2=3.0, y2=4.0).shape
        assert shape.area() == pytest.approx(6.0)

    def test_triangle(self):
        shape = call("triangle", x1=0.0, y1=0.0, x2=4.0, y2=0.0, x3=0.0, y3=3.0).shape
        assert shape.triangle_count == 1
        assert shape.area() == pytest.approx(6.0)

    def test_circle(self):
        """A circle of four triangles is the inscribed square."""
        shape = call("circle", cx=0.0, cy=0.0, radius=1.0, tri_count=4.0).shape
        assert shape.triangle_count == 4
        assert shape.vertex_count == 6
        assert shape.area() == pytest.approx(2.0)

    def test_arc_in_degrees(self):
        shape = call("arc", cx=0.0, cy=0.0, radius=1.0, offset_deg=0.0, range_deg=90.0,
                     tri_count=1.0).shape
        assert shape.area() == pytest.approx(0.5)

    def test_arc_needs_an_offset(self):
        err = call_error("arc", cx=0.0, cy=0.0, radius=1.0, range_rad=1.0, tri_count=2.0)
        assert "'offset_rad' or 'offset_deg'" in err.message

    def test_arc_rejects_both_units(self):
        err = call_error("arc", cx=0.0, cy=0.0, radius=1.0, offset_rad=0.0, offset_deg=0.0,
                         range_rad=1.0, tri_count=2.0)
        assert err.code == "E409"

    def test_tri_count_must_be_positive(self):
        assert call_error("circle", cx=0.0, cy=0.0, radius=1.0, tri_count=0.0).code == "E409"
        assert call_error("circle", cx=0.0, cy=0.0, radius=1.0, tri_count=2.5).code == "E409"

    def test_ellipse(self):
        shape = call("ellipse", cx=0.0, cy=0.0, radius_x=2.0, radius_y=1.0, tri_count=64.0).shape
        assert shape.width == pytest.approx(4.0)
        assert shape.height == pytest.approx(2.0, abs=1e-2)

    def test_void_rect(self):
        shape = call("void_rect0", x=0.0, y=0.0, width=10.0, height=10.0, thickness=1.0).shape
        assert shape.area() == pytest.approx(100.0 - 64.0)


class TestCombinators:
    """Transforms and combination."""

    def test_translate_positional_shape(self):
        shape = call("translate", square(2.0), x=5.0).shape
        lo, hi = shape.extent()
        assert tuple(lo) == (5.0, 0.0)
        assert tuple(hi) == (7.0, 2.0)

    def test_rotate(self):
        shape = call("rotate", rect(0, 0, 2, 1), angle_deg=90.0).shape
        assert shape.width == pytest.approx(1.0)
        assert shape.height == pytest.approx(2.0)

    def test_rotate_needs_an_angle(self):
        assert call_error("rotate", square()).code == "E409"

    def test_rotate_about_origin(self):
        shape = call("rotate", square(2.0), angle_deg=180.0, origin=(1.0, 1.0)).shape
        lo, hi = shape.extent()
        assert lo.tolist() == pytest.approx([0.0, 0.0])
        assert hi.tolist() == pytest.approx([2.0, 2.0])

    def test_scale_uniform(self):
        shape = call("scale", rect(0, 0, 2, 1), x=3.0).shape
        assert (shape.width, shape.height) == (6.0, 3.0)

    def test_scale_per_axis(self):
        shape = call("scale", rect(0, 0, 2, 1), x=3.0, y=2.0).shape
        assert (shape.width, shape.height) == (6.0, 2.0)

    def test_transform(self):
        shape = call("transform", square(2.0), t=(10.0, 0.0), s=(2.0, 1.0)).shape
        lo, hi = shape.extent()
        assert lo.tolist() == pytest.approx([10.0, 0.0])
        assert hi.tolist() == pytest.approx([14.0, 2.0])

    def test_recenter(self):
        shape = call("recenter", square(4.0, x=10.0, y=10.0)).shape
        lo, hi = shape.extent()
        assert lo.tolist() == pytest.approx([-2.0, -2.0])
        assert hi.tolist() == pytest.approx([2.0, 2.0])

    def test_combine(self):
        shape = call("combine", a=square(1.0), b=square(1.0, x=5.0), c=square(1.0, x=10.0)).shape
        assert shape.triangle_count == 6
        assert shape.vertex_count == 12
        assert shape.width == 11.0

    def test_combine_rejects_non_shapes(self):
        assert call_error("combine", a=square(), b=1.0).code == "E409"

    def test_combine_needs_a_shape(self):
        assert call_error("combine").code == "E409"


class TestBooleans:
    """union / intersect / difference."""

    def test_intersect(self):
        shape = call("intersect", a=square(10.0), b=square(10.0, x=5.0, y=5.0)).shape
        assert shape.area() == pytest.approx(25.0)

    def test_union(self):
        shape = call("union", a=square(10.0), b=square(10.0, x=5.0, y=5.0)).shape
        assert shape.area() == pytest.approx(175.0)

    def test_difference(self):
        shape = call("difference", a=square(10.0), b=square(10.0, x=5.0, y=5.0)).shape
        assert shape.area() == pytest.approx(75.0)

    def test_difference_with_itself_is_empty(self):
        shape = call("difference", a=square(), b=square()).shape
        assert shape.area() == pytest.approx(0.0, abs=1e-9)

    def test_disjoint_intersection(self):
        shape = call("intersect", a=square(1.0), b=square(1.0, x=5.0)).shape
        assert shape.is_empty

    def test_left_to_right(self):
        """Three operands fold as (a - b) - c."""
        shape = call("difference", a=rect(0, 0, 10, 1), b=rect(0, 0, 2, 1),
                     c=rect(8, 0, 2, 1)).shape
        assert shape.area() == pytest.approx(6.0)

    def test_needs_two_shapes(self):
        assert call_error("union", a=square()).code == "E409"


class TestQueriesAndPrint:
    """Measurements and print."""

    def test_queries(self):
        shape = rect(0, 0, 4, 3)
        assert call("width", shape) == Number(4.0)
        assert call("height", shape) == Number(3.0)
        assert call("vertex_count", shape) == Number(4.0)
        assert call("area", shape) == Number(12.0)

    def test_query_wrong_kind(self):
        assert call_error("width", 1.0).code == "E409"

    def test_print_logs_arguments(self, caplog):
        caplog.set_level(logging.INFO, logger=SCRIPT_LOGGER)
        result = call("print", 2.0, size=(1.0, 2.5))
        assert result is NULL
        records = [r for r in caplog.records if r.name == SCRIPT_LOGGER]
        assert records[-1].getMessage() == "size: [1, 2.5], 2"

    def test_print_shape(self, caplog):
        caplog.set_level(logging.INFO, logger=SCRIPT_LOGGER)
        call("print", ShapeValue(rect(0, 0, 1, 1)))
        assert "Shape(vertices=4, triangles=2)" in caplog.text
