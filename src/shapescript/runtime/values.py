"""
Runtime values for the shape script interpreter.

A Variable is either a concrete value (Null, Number, Bool, Vec2,
ShapeValue, AdaptiveValue) or a reference (Saved, Access) that names a
storage location.  References are resolved against the environment
before any operator sees them; see ExecutionContext.resolve.

Operators dispatch on the concrete kinds of their operands through
apply_binary/apply_unary.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
import math
import numbers

from ..geometry import Shape, AdaptiveShape
from ..symbols import Symbol
from ..tokens import SourceSpan, TokenType, operator_symbol
from ..types import ScriptType
from ..errors import (
    error_operator_mismatch,
    error_null_value,
    error_illegal_field,
    error_execution,
    error_bad_argument,
)


VEC2_FIELDS = ("x", "y")


@dataclass(frozen=True)
class Variable:
    """Base class of everything an expression can evaluate to."""

    @property
    def kind(self) -> ScriptType:
        raise NotImplementedError

    @property
    def is_reference(self) -> bool:
        return False

    def __str__(self) -> str:
        return str(self.kind)


@dataclass(frozen=True)
class Null(Variable):
    """The absence of a value: '#', void calls, bare returns."""

    @property
    def kind(self) -> ScriptType:
        return ScriptType.NULL

    def __str__(self) -> str:
        return "null"


NULL = Null()


@dataclass(frozen=True)
class Number(Variable):
    value: float

    @property
    def kind(self) -> ScriptType:
        return ScriptType.NUMBER

    def __str__(self) -> str:
        if math.isfinite(self.value) and self.value == int(self.value):
            return str(int(self.value))
        return repr(self.value)


@dataclass(frozen=True)
class Bool(Variable):
    value: bool

    @property
    def kind(self) -> ScriptType:
        return ScriptType.BOOL

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class Vec2(Variable):
    x: float
    y: float

    @property
    def kind(self) -> ScriptType:
        return ScriptType.VEC2

    def get_field(self, name: str) -> float:
        return self.x if name == "x" else self.y

    def with_field(self, name: str, value: float) -> "Vec2":
        if name == "x":
            return Vec2(value, self.y)
        return Vec2(self.x, value)

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)

    def __str__(self) -> str:
        return f"[{Number(self.x)}, {Number(self.y)}]"


@dataclass(frozen=True, eq=False)
class ShapeValue(Variable):
    shape: Shape

    @property
    def kind(self) -> ScriptType:
        return ScriptType.SHAPE

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ShapeValue) and self.shape == other.shape

    def __str__(self) -> str:
        return repr(self.shape)


@dataclass(frozen=True, eq=False)
class AdaptiveValue(Variable):
    shape: AdaptiveShape

    @property
    def kind(self) -> ScriptType:
        return ScriptType.ADAPTIVE

    def __eq__(self, other: object) -> bool:
        return isinstance(other, AdaptiveValue) and self.shape == other.shape

    def __str__(self) -> str:
        return repr(self.shape)


@dataclass(frozen=True)
class Saved(Variable):
    """Reference to a stored variable."""
    symbol: Symbol

    @property
    def kind(self) -> ScriptType:
        raise TypeError("a reference has no kind until it is resolved")

    @property
    def is_reference(self) -> bool:
        return True

    def __str__(self) -> str:
        return self.symbol.name


@dataclass(frozen=True)
class Access(Variable):
    """Reference to a field of a referenced value, e.g. v.x."""
    base: Variable
    field: str

    @property
    def kind(self) -> ScriptType:
        raise TypeError("a reference has no kind until it is resolved")

    @property
    def is_reference(self) -> bool:
        return True

    def __str__(self) -> str:
        return f"{self.base}.{self.field}"


def wrap(data: Any) -> Variable:
    """Wrap a Python value (input values, builtin results) as a Variable."""
    if data is None:
        return NULL
    if isinstance(data, Variable):
        return data
    if isinstance(data, bool):
        return Bool(data)
    if isinstance(data, numbers.Real):
        return Number(float(data))
    if isinstance(data, Shape):
        return ShapeValue(data)
    if isinstance(data, AdaptiveShape):
        return AdaptiveValue(data)
    if isinstance(data, (tuple, list)) and len(data) == 2:
        return Vec2(float(data[0]), float(data[1]))
    raise TypeError(f"cannot convert {type(data).__name__} to a script value")


def unwrap(value: Variable) -> Any:
    """Plain Python form of a concrete value."""
    if isinstance(value, (Number, Bool)):
        return value.value
    if isinstance(value, Vec2):
        return value.as_tuple()
    if isinstance(value, (ShapeValue, AdaptiveValue)):
        return value.shape
    return None


def get_field(base: Variable, name: str, span: Optional[SourceSpan] = None) -> Number:
    """Read field ``name`` of a concrete value."""
    if isinstance(base, Null):
        raise error_null_value(".", span)
    if isinstance(base, Vec2) and name in VEC2_FIELDS:
        return Number(base.get_field(name))
    raise error_illegal_field(name, str(base.kind), span)


# =============================================================================
# Operator dispatch
# =============================================================================

_COMPARISONS: Dict[TokenType, Callable[[float, float], bool]] = {
    TokenType.LT: lambda a, b: a < b,
    TokenType.GT: lambda a, b: a > b,
    TokenType.LE: lambda a, b: a <= b,
    TokenType.GE: lambda a, b: a >= b,
    TokenType.EQ: lambda a, b: a == b,
    TokenType.NE: lambda a, b: a != b,
}


def _arithmetic(op: TokenType, a: float, b: float, span: Optional[SourceSpan]) -> Optional[float]:
    if op == TokenType.PLUS:
        return a + b
    if op == TokenType.MINUS:
        return a - b
    if op == TokenType.STAR:
        return a * b
    if op in (TokenType.SLASH, TokenType.PERCENT):
        if b == 0:
            raise error_execution(f"division by zero in '{operator_symbol(op)}'", span)
        return a / b if op == TokenType.SLASH else math.fmod(a, b)
    if op == TokenType.CARET:
        try:
            return math.pow(a, b)
        except (ValueError, OverflowError, ZeroDivisionError):
            raise error_execution(f"cannot raise {Number(a)} to the power {Number(b)}", span)
    return None


def _number_binary(op, lhs: Number, rhs: Number, span) -> Optional[Variable]:
    if op in _COMPARISONS:
        return Bool(_COMPARISONS[op](lhs.value, rhs.value))
    result = _arithmetic(op, lhs.value, rhs.value, span)
    return None if result is None else Number(result)


def _bool_binary(op, lhs: Bool, rhs: Bool, span) -> Optional[Variable]:
    if op == TokenType.AND:
        return Bool(lhs.value and rhs.value)
    if op == TokenType.OR:
        return Bool(lhs.value or rhs.value)
    if op == TokenType.EQ:
        return Bool(lhs.value == rhs.value)
    if op == TokenType.NE:
        return Bool(lhs.value != rhs.value)
    return None


_COMPONENT_OPS = (TokenType.PLUS, TokenType.MINUS, TokenType.STAR, TokenType.SLASH)


def _vec2_binary(op, lhs: Vec2, rhs: Vec2, span) -> Optional[Variable]:
    if op == TokenType.EQ:
        return Bool(lhs == rhs)
    if op == TokenType.NE:
        return Bool(lhs != rhs)
    if op in _COMPONENT_OPS:
        return Vec2(_arithmetic(op, lhs.x, rhs.x, span), _arithmetic(op, lhs.y, rhs.y, span))
    return None


def _vec2_number(op, lhs: Vec2, rhs: Number, span) -> Optional[Variable]:
    if op in _COMPONENT_OPS:
        return Vec2(_arithmetic(op, lhs.x, rhs.value, span),
                    _arithmetic(op, lhs.y, rhs.value, span))
    return None


def _number_vec2(op, lhs: Number, rhs: Vec2, span) -> Optional[Variable]:
    if op in _COMPONENT_OPS:
        return Vec2(_arithmetic(op, lhs.value, rhs.x, span),
                    _arithmetic(op, lhs.value, rhs.y, span))
    return None


# Supported operand kind pairs; Shape and AdaptiveShape take no operators
_BINARY_HANDLERS = {
    (Number, Number): _number_binary,
    (Bool, Bool): _bool_binary,
    (Vec2, Vec2): _vec2_binary,
    (Vec2, Number): _vec2_number,
    (Number, Vec2): _number_vec2,
}


def apply_binary(op: TokenType, lhs: Variable, rhs: Variable,
                 span: Optional[SourceSpan] = None) -> Variable:
    """Apply a binary operator to two concrete values."""
    if isinstance(lhs, Null) or isinstance(rhs, Null):
        raise error_null_value(operator_symbol(op), span)

    handler = _BINARY_HANDLERS.get((type(lhs), type(rhs)))
    result = handler(op, lhs, rhs, span) if handler else None
    if result is None:
        raise error_operator_mismatch(operator_symbol(op), str(lhs.kind), str(rhs.kind), span)
    return result


def apply_unary(op: TokenType, value: Variable, span: Optional[SourceSpan] = None) -> Variable:
    """Apply unary '-' or '!' to a concrete value."""
    if isinstance(value, Null):
        raise error_null_value(operator_symbol(op), span)
    if op == TokenType.MINUS:
        if isinstance(value, Number):
            return Number(-value.value)
        if isinstance(value, Vec2):
            return Vec2(-value.x, -value.y)
    elif op == TokenType.NOT and isinstance(value, Bool):
        return Bool(not value.value)
    raise error_operator_mismatch(operator_symbol(op), str(value.kind), span=span)


# =============================================================================
# Call arguments
# =============================================================================

class MappedArgs:
    """
    Resolved call arguments, by name and in call order.

    The typed accessors raise an invalid-argument error naming the
    called function when an argument is missing or of the wrong kind.
    """

    def __init__(self, values: Dict[str, Variable], order: Optional[List[str]] = None,
                 function: str = ""):
        self.values = dict(values)
        self.order = list(order) if order is not None else list(values)
        self.function = function

    def __contains__(self, name: str) -> bool:
        return name in self.values

    def __getitem__(self, name: str) -> Variable:
        return self.values[name]

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[str]:
        return iter(self.order)

    def items(self) -> List[Tuple[str, Variable]]:
        return [(name, self.values[name]) for name in self.order]

    def get(self, name: str, default: Optional[Variable] = None) -> Optional[Variable]:
        return self.values.get(name, default)

    def _expect(self, name: str, cls: type, kind: ScriptType) -> Variable:
        value = self.values.get(name)
        if value is None:
            raise error_bad_argument(f"{self.function}: missing argument '{name}'")
        if not isinstance(value, cls):
            raise error_bad_argument(
                f"{self.function}: argument '{name}' must be {kind}, found {value.kind}"
            )
        return value

    def number(self, name: str) -> float:
        return self._expect(name, Number, ScriptType.NUMBER).value

    def boolean(self, name: str) -> bool:
        return self._expect(name, Bool, ScriptType.BOOL).value

    def vec2(self, name: str) -> Tuple[float, float]:
        return self._expect(name, Vec2, ScriptType.VEC2).as_tuple()

    def shape(self, name: str) -> Shape:
        return self._expect(name, ShapeValue, ScriptType.SHAPE).shape

    def optional_number(self, name: str, default: Optional[float] = None) -> Optional[float]:
        if name not in self.values:
            return default
        return self.number(name)

    def optional_vec2(self, name: str,
                      default: Optional[Tuple[float, float]] = None) -> Optional[Tuple[float, float]]:
        if name not in self.values:
            return default
        return self.vec2(name)

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}: {value}" for name, value in self.items())
        return f"MappedArgs({self.function}[{inner}])"
