"""
Built-in function registry for the shape script interpreter.

Maps script function names to implementations over MappedArgs. Each
builtin declares its parameters as (name, type, default) triples; the
registry binds call arguments against them before calling:

- named arguments bind by name,
- the unnamed argument "_" fills the first parameter not already named,
- missing required, unknown, or wrongly typed arguments are errors.

Variadic builtins (print, combine, union, ...) take any argument names
and see them in call order.

`vertex` is not here: it appends to the enclosing shape builder and is
handled by the interpreter.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging
import math

import numpy as np

from .values import (
    Variable, NULL, Number, Bool, Vec2, ShapeValue, MappedArgs, wrap,
)
from ..geometry import (
    Shape, triangle, rect, rect_corners, arc, circle, ellipse, void_rect,
    union, intersect, difference, xform,
)
from ..symbols import POSITIONAL
from ..types import ScriptType
from ..errors import error_bad_argument, error_unknown_function
from ..log import script_logger

logger = logging.getLogger(__name__)

# Parameter default markers
REQUIRED = object()
OPTIONAL = object()   # May be omitted; absent from the bound arguments

NUMBER = ScriptType.NUMBER
BOOL = ScriptType.BOOL
VEC2 = ScriptType.VEC2
SHAPE = ScriptType.SHAPE

Param = Tuple[str, Optional[ScriptType], Any]


@dataclass
class BuiltinSignature:
    """Ordered parameters of a builtin; a None type accepts any value."""
    name: str
    params: List[Param] = field(default_factory=list)
    return_type: Optional[ScriptType] = None
    is_variadic: bool = False

    @property
    def param_names(self) -> List[str]:
        return [p[0] for p in self.params]

    def bind(self, args: MappedArgs) -> MappedArgs:
        """Match call arguments to parameters, returning the bound set."""
        if self.is_variadic:
            return self._bind_variadic(args)

        names = self.param_names
        bound: Dict[str, Variable] = {}
        for key in args.order:
            if key == POSITIONAL:
                continue
            if key not in names:
                raise error_bad_argument(f"{self.name}: unknown argument '{key}'")
            bound[key] = args[key]

        if POSITIONAL in args:
            free = [n for n in names if n not in bound]
            if not free:
                raise error_bad_argument(f"{self.name}: unexpected unnamed argument")
            bound[free[0]] = args[POSITIONAL]

        for name, param_type, default in self.params:
            if name not in bound:
                if default is REQUIRED:
                    raise error_bad_argument(f"{self.name}: missing argument '{name}'")
                if default is not OPTIONAL:
                    bound[name] = wrap(default)
                continue
            value = bound[name]
            if param_type is not None and value.kind != param_type:
                raise error_bad_argument(
                    f"{self.name}: argument '{name}' must be {param_type}, found {value.kind}"
                )

        return MappedArgs(bound, [n for n in names if n in bound], self.name)

    def _bind_variadic(self, args: MappedArgs) -> MappedArgs:
        param_type = self.params[0][1] if self.params else None
        if param_type is not None:
            for key, value in args.items():
                if value.kind != param_type:
                    raise error_bad_argument(
                        f"{self.name}: argument '{key}' must be {param_type}, found {value.kind}"
                    )
        return MappedArgs(args.values, args.order, self.name)


def _make_sig(name: str, params: List[Param], return_type: Optional[ScriptType] = None,
              is_variadic: bool = False) -> BuiltinSignature:
    """Helper to build a signature; params are (name, type) or (name, type, default)."""
    full = [p if len(p) == 3 else (p[0], p[1], REQUIRED) for p in params]
    return BuiltinSignature(name=name, params=full, return_type=return_type,
                            is_variadic=is_variadic)


@dataclass
class BuiltinFunction:
    """
    A built-in function with its implementation and signature.
    """
    name: str
    signature: BuiltinSignature
    implementation: Callable[[MappedArgs], Variable]
    doc: str = ""


def _angle(args: MappedArgs, stem: str, required: bool = True) -> Optional[float]:
    """Read '<stem>_rad' or '<stem>_deg', in radians."""
    rad = args.optional_number(f"{stem}_rad")
    deg = args.optional_number(f"{stem}_deg")
    if rad is not None and deg is not None:
        raise error_bad_argument(
            f"{args.function}: give only one of '{stem}_rad' and '{stem}_deg'"
        )
    if rad is not None:
        return rad
    if deg is not None:
        return math.radians(deg)
    if required:
        raise error_bad_argument(
            f"{args.function}: You must specify either '{stem}_rad' or '{stem}_deg' parameter"
        )
    return None


def _tri_count(args: MappedArgs) -> int:
    count = args.number("tri_count")
    if count < 1 or count != int(count):
        raise error_bad_argument(f"{args.function}: tri_count must be a positive whole number")
    return int(count)


def _round_half_away(x: float) -> float:
    if not math.isfinite(x):
        return x
    return float(math.floor(x + 0.5)) if x >= 0 else float(math.ceil(x - 0.5))


def _sign(x: float) -> float:
    if math.isnan(x):
        return x
    return math.copysign(1.0, x)


class BuiltinRegistry:
    """
    Registry of all built-in functions.

    Functions are registered by name and can be looked up for execution.
    """

    def __init__(self):
        self._functions: Dict[str, BuiltinFunction] = {}
        self._register_all()

    def get_function(self, name: str) -> Optional[BuiltinFunction]:
        """Look up a function by name."""
        return self._functions.get(name)

    def register(self, func: BuiltinFunction) -> None:
        """Register a function."""
        self._functions[func.name] = func

    def register_alias(self, alias: str, name: str) -> None:
        """Make an existing function callable under another name."""
        self._functions[alias] = self._functions[name]

    def names(self) -> List[str]:
        return sorted(self._functions)

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def call(self, name: str, args: MappedArgs) -> Variable:
        """Bind arguments and call a builtin."""
        func = self.get_function(name)
        if func is None:
            raise error_unknown_function(name)
        bound = func.signature.bind(args)
        try:
            return func.implementation(bound)
        except ValueError as e:
            raise error_bad_argument(f"{name}: {e}") from e

    def _register_all(self) -> None:
        """Register all built-in functions."""
        self._register_utility_functions()
        self._register_math_functions()
        self._register_vector_functions()
        self._register_primitive_functions()
        self._register_combinator_functions()
        self._register_boolean_functions()
        self._register_query_functions()

    # --- Utility Functions ---

    def _register_utility_functions(self) -> None:
        """Register print."""

        def _print(args: MappedArgs) -> Variable:
            parts = []
            for name, value in args.items():
                if name == POSITIONAL:
                    parts.append(str(value))
                else:
                    parts.append(f"{name}: {value}")
            script_logger().info(", ".join(parts))
            return NULL

        self.register(BuiltinFunction(
            "print",
            _make_sig("print", [], is_variadic=True),
            _print,
            "Log the arguments, in order, on the script logger",
        ))

    # --- Math Functions ---

    def _register_math_functions(self) -> None:
        """Register mathematical functions."""

        def _unary(fn: Callable[[float], Any]) -> Callable[[MappedArgs], Variable]:
            def _impl(args: MappedArgs) -> Variable:
                with np.errstate(all="ignore"):
                    return Number(float(fn(args.number("value"))))
            return _impl

        def _predicate(fn: Callable[[float], bool]) -> Callable[[MappedArgs], Variable]:
            def _impl(args: MappedArgs) -> Variable:
                return Bool(bool(fn(args.number("value"))))
            return _impl

        def _atan2(args: MappedArgs) -> Variable:
            return Number(math.atan2(args.number("a"), args.number("b")))

        def _clamp(args: MappedArgs) -> Variable:
            lo = args.number("min")
            hi = args.number("max")
            if lo > hi:
                raise error_bad_argument(f"clamp: min ({Number(lo)}) is greater than max ({Number(hi)})")
            return Number(min(max(args.number("value"), lo), hi))

        def _min(args: MappedArgs) -> Variable:
            return Number(float(np.fmin(args.number("a"), args.number("b"))))

        def _max(args: MappedArgs) -> Variable:
            return Number(float(np.fmax(args.number("a"), args.number("b"))))

        def _lerp(args: MappedArgs) -> Variable:
            a = args.number("a")
            return Number(a + (args.number("b") - a) * args.number("t"))

        def _deg_to_rad(args: MappedArgs) -> Variable:
            return Number(math.radians(args.number("deg")))

        def _rad_to_deg(args: MappedArgs) -> Variable:
            return Number(math.degrees(args.number("rad")))

        def _hypot(args: MappedArgs) -> Variable:
            return Number(math.hypot(args.number("x"), args.number("y")))

        def _copysign(args: MappedArgs) -> Variable:
            return Number(math.copysign(args.number("magnitude"), args.number("sign")))

        def _fma(args: MappedArgs) -> Variable:
            return Number(args.number("a") * args.number("b") + args.number("c"))

        def _next_after(args: MappedArgs) -> Variable:
            return Number(float(np.nextafter(args.number("start"), args.number("direction"))))

        unary_funcs = [
            ("sin", np.sin),
            ("cos", np.cos),
            ("tan", np.tan),
            ("asin", np.arcsin),
            ("acos", np.arccos),
            ("atan", np.arctan),
            ("floor", np.floor),
            ("ceil", np.ceil),
            ("abs", np.abs),
            ("sqrt", np.sqrt),
            ("cbrt", np.cbrt),
            ("exp", np.exp),
            ("exp2", np.exp2),
            ("ln", np.log),
            ("log2", np.log2),
            ("log10", np.log10),
            ("round", _round_half_away),
            ("trunc", np.trunc),
            ("fract", lambda x: x - np.trunc(x)),
            ("sign", _sign),
            ("recip", lambda x: np.float64(1.0) / x),
        ]
        for name, fn in unary_funcs:
            self.register(BuiltinFunction(
                name, _make_sig(name, [("value", NUMBER)], NUMBER), _unary(fn)
            ))

        predicates = [
            ("is_nan", math.isnan),
            ("is_finite", math.isfinite),
            ("is_infinite", math.isinf),
            ("is_sign_positive", lambda x: math.copysign(1.0, x) > 0),
            ("is_sign_negative", lambda x: math.copysign(1.0, x) < 0),
        ]
        for name, fn in predicates:
            self.register(BuiltinFunction(
                name, _make_sig(name, [("value", NUMBER)], BOOL), _predicate(fn)
            ))

        math_funcs = [
            ("atan2", [("a", NUMBER), ("b", NUMBER)], _atan2),
            ("clamp", [("value", NUMBER), ("min", NUMBER), ("max", NUMBER)], _clamp),
            ("min", [("a", NUMBER), ("b", NUMBER)], _min),
            ("max", [("a", NUMBER), ("b", NUMBER)], _max),
            ("lerp", [("a", NUMBER), ("b", NUMBER), ("t", NUMBER)], _lerp),
            ("deg_to_rad", [("deg", NUMBER)], _deg_to_rad),
            ("rad_to_deg", [("rad", NUMBER)], _rad_to_deg),
            ("hypot", [("x", NUMBER), ("y", NUMBER)], _hypot),
            ("copysign", [("magnitude", NUMBER), ("sign", NUMBER)], _copysign),
            ("fma", [("a", NUMBER), ("b", NUMBER), ("c", NUMBER)], _fma),
            ("next_after", [("start", NUMBER), ("direction", NUMBER, math.inf)], _next_after),
        ]
        for name, params, impl in math_funcs:
            self.register(BuiltinFunction(name, _make_sig(name, params, NUMBER), impl))

    # --- Vector Functions ---

    def _register_vector_functions(self) -> None:
        """Register Vec2 constructors and queries."""

        def _vec2(args: MappedArgs) -> Variable:
            return Vec2(args.number("x"), args.number("y"))

        def _length(args: MappedArgs) -> Variable:
            return Number(math.hypot(*args.vec2("value")))

        def _normalize(args: MappedArgs) -> Variable:
            x, y = args.vec2("value")
            length = math.hypot(x, y)
            if length == 0:
                raise error_bad_argument("normalize: cannot normalize a zero-length vector")
            return Vec2(x / length, y / length)

        def _dot(args: MappedArgs) -> Variable:
            ax, ay = args.vec2("a")
            bx, by = args.vec2("b")
            return Number(ax * bx + ay * by)

        def _distance(args: MappedArgs) -> Variable:
            ax, ay = args.vec2("a")
            bx, by = args.vec2("b")
            return Number(math.hypot(bx - ax, by - ay))

        vector_funcs = [
            ("vec2", [("x", NUMBER), ("y", NUMBER)], VEC2, _vec2),
            ("length", [("value", VEC2)], NUMBER, _length),
            ("normalize", [("value", VEC2)], VEC2, _normalize),
            ("dot", [("a", VEC2), ("b", VEC2)], NUMBER, _dot),
            ("distance", [("a", VEC2), ("b", VEC2)], NUMBER, _distance),
        ]
        for name, params, ret, impl in vector_funcs:
            self.register(BuiltinFunction(name, _make_sig(name, params, ret), impl))

    # --- Primitive Constructors ---

    def _register_primitive_functions(self) -> None:
        """Register shape primitives and their short aliases."""

        def _triangle0(args: MappedArgs) -> Variable:
            n = args.number
            return ShapeValue(triangle((n("x1"), n("y1")), (n("x2"), n("y2")), (n("x3"), n("y3"))))

        def _rect0(args: MappedArgs) -> Variable:
            n = args.number
            return ShapeValue(rect(n("x"), n("y"), n("width"), n("height")))

        def _rect1(args: MappedArgs) -> Variable:
            n = args.number
            return ShapeValue(rect_corners(n("x1"), n("y1"), n("x2"), n("y2")))

        def _arc0(args: MappedArgs) -> Variable:
            n = args.number
            radius = n("radius")
            return ShapeValue(arc(n("cx"), n("cy"), radius, radius,
                                  _angle(args, "offset"), _angle(args, "range"),
                                  _tri_count(args)))

        def _arc1(args: MappedArgs) -> Variable:
            n = args.number
            return ShapeValue(arc(n("cx"), n("cy"), n("radius_x"), n("radius_y"),
                                  _angle(args, "offset"), _angle(args, "range"),
                                  _tri_count(args)))

        def _circle0(args: MappedArgs) -> Variable:
            n = args.number
            return ShapeValue(circle(n("cx"), n("cy"), n("radius"), _tri_count(args)))

        def _ellipse0(args: MappedArgs) -> Variable:
            n = args.number
            return ShapeValue(ellipse(n("cx"), n("cy"), n("radius_x"), n("radius_y"),
                                      _tri_count(args)))

        def _void_rect0(args: MappedArgs) -> Variable:
            n = args.number
            return ShapeValue(void_rect(n("x"), n("y"), n("width"), n("height"), n("thickness")))

        def _numbers(*names: str) -> List[Param]:
            return [(name, NUMBER) for name in names]

        angles = [(f"{stem}_{unit}", NUMBER, OPTIONAL)
                  for stem in ("offset", "range") for unit in ("rad", "deg")]

        primitives = [
            ("triangle0", _numbers("x1", "y1", "x2", "y2", "x3", "y3"), _triangle0),
            ("rect0", _numbers("x", "y", "width", "height"), _rect0),
            ("rect1", _numbers("x1", "y1", "x2", "y2"), _rect1),
            ("arc0", _numbers("cx", "cy", "radius") + angles + _numbers("tri_count"), _arc0),
            ("arc1", _numbers("cx", "cy", "radius_x", "radius_y") + angles + _numbers("tri_count"),
             _arc1),
            ("circle0", _numbers("cx", "cy", "radius", "tri_count"), _circle0),
            ("ellipse0", _numbers("cx", "cy", "radius_x", "radius_y", "tri_count"), _ellipse0),
            ("void_rect0", _numbers("x", "y", "width", "height", "thickness"), _void_rect0),
        ]
        for name, params, impl in primitives:
            self.register(BuiltinFunction(name, _make_sig(name, params, SHAPE), impl))

        for alias, name in (("triangle", "triangle0"), ("rect", "rect0"), ("arc", "arc0"),
                            ("circle", "circle0"), ("ellipse", "ellipse0")):
            self.register_alias(alias, name)

    # --- Combinators ---

    def _register_combinator_functions(self) -> None:
        """Register transforms and shape combination."""

        def _translate(args: MappedArgs) -> Variable:
            return ShapeValue(args.shape("shape").translated(args.number("x"), args.number("y")))

        def _rotate(args: MappedArgs) -> Variable:
            return ShapeValue(args.shape("shape").rotated(_angle(args, "angle"),
                                                          args.optional_vec2("origin")))

        def _scale(args: MappedArgs) -> Variable:
            sx = args.number("x")
            sy = args.optional_number("y", sx)
            return ShapeValue(args.shape("shape").scaled(sx, sy, args.optional_vec2("origin")))

        def _transform(args: MappedArgs) -> Variable:
            # Scale and rotate about the origin o, then translate by t
            origin = args.optional_vec2("o", (0.0, 0.0))
            sx, sy = args.optional_vec2("s", (1.0, 1.0))
            tx, ty = args.optional_vec2("t", (0.0, 0.0))
            matrix = (xform.translation(tx, ty)
                      @ xform.rotation(args.optional_number("r", 0.0), origin)
                      @ xform.scaling(sx, sy, origin))
            return ShapeValue(args.shape("shape").transformed(matrix))

        def _recenter(args: MappedArgs) -> Variable:
            return ShapeValue(args.shape("shape").recentered())

        def _combine(args: MappedArgs) -> Variable:
            if len(args) == 0:
                raise error_bad_argument("combine: needs at least one shape")
            return ShapeValue(Shape.combine(value.shape for _, value in args.items()))

        rotate_params = [("shape", SHAPE), ("angle_rad", NUMBER, OPTIONAL),
                         ("angle_deg", NUMBER, OPTIONAL), ("origin", VEC2, OPTIONAL)]
        combinators = [
            ("translate", [("shape", SHAPE), ("x", NUMBER, 0.0), ("y", NUMBER, 0.0)], _translate),
            ("rotate", rotate_params, _rotate),
            ("scale", [("shape", SHAPE), ("x", NUMBER), ("y", NUMBER, OPTIONAL),
                       ("origin", VEC2, OPTIONAL)], _scale),
            ("transform", [("shape", SHAPE), ("t", VEC2, OPTIONAL), ("r", NUMBER, OPTIONAL),
                           ("s", VEC2, OPTIONAL), ("o", VEC2, OPTIONAL)], _transform),
            ("recenter", [("shape", SHAPE)], _recenter),
        ]
        for name, params, impl in combinators:
            self.register(BuiltinFunction(name, _make_sig(name, params, SHAPE), impl))

        self.register(BuiltinFunction(
            "combine",
            _make_sig("combine", [("shapes", SHAPE)], SHAPE, is_variadic=True),
            _combine,
            "Concatenate shapes in argument order",
        ))

    # --- Boolean Modifiers ---

    def _register_boolean_functions(self) -> None:
        """Register union/intersect/difference, applied left to right."""

        def _fold(name: str, op: Callable[[Shape, Shape], Shape]) -> Callable[[MappedArgs], Variable]:
            def _impl(args: MappedArgs) -> Variable:
                shapes = [value.shape for _, value in args.items()]
                if len(shapes) < 2:
                    raise error_bad_argument(f"{name}: needs at least two shapes")
                result = shapes[0]
                for other in shapes[1:]:
                    result = op(result, other)
                logger.debug("%s of %d shapes: %d triangles", name, len(shapes), result.triangle_count)
                return ShapeValue(result)
            return _impl

        for name, op in (("union", union), ("intersect", intersect), ("difference", difference)):
            self.register(BuiltinFunction(
                name,
                _make_sig(name, [("shapes", SHAPE)], SHAPE, is_variadic=True),
                _fold(name, op),
            ))

    # --- Query Functions ---

    def _register_query_functions(self) -> None:
        """Register shape measurements."""

        def _width(args: MappedArgs) -> Variable:
            return Number(args.shape("shape").width)

        def _height(args: MappedArgs) -> Variable:
            return Number(args.shape("shape").height)

        def _vertex_count(args: MappedArgs) -> Variable:
            return Number(float(args.shape("shape").vertex_count))

        def _area(args: MappedArgs) -> Variable:
            return Number(args.shape("shape").area())

        query_funcs = [
            ("width", _width),
            ("height", _height),
            ("vertex_count", _vertex_count),
            ("area", _area),
        ]
        for name, impl in query_funcs:
            self.register(BuiltinFunction(name, _make_sig(name, [("shape", SHAPE)], NUMBER), impl))


# Global singleton registry
_registry: Optional[BuiltinRegistry] = None


def get_builtin_registry() -> BuiltinRegistry:
    """Get the global built-in function registry."""
    global _registry
    if _registry is None:
        _registry = BuiltinRegistry()
    return _registry


def call_builtin(name: str, args: MappedArgs) -> Variable:
    """
    Call a built-in function by name.

    Raises ExecError if the function is not found or the arguments do
    not bind.
    """
    return get_builtin_registry().call(name, args)
