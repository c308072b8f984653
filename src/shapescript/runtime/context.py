"""
Execution context for the shape script interpreter.

Holds the flat variable environment (Symbol -> Variable), loop and call
state, the stack of open shape builders and any partially exported
adaptive shape. Reference values are resolved and stored here.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from .values import (
    Variable, NULL, Null, Vec2, Number, Saved, Access, VEC2_FIELDS, get_field, unwrap,
)
from ..geometry import AdaptiveShape
from ..symbols import Symbol
from ..tokens import SourceSpan
from ..errors import (
    ShapeScriptError,
    error_unknown_variable,
    error_redefinition,
    error_illegal_field,
    error_null_value,
    error_type_mismatch,
    error_execution,
)


@dataclass
class ShapeBuilder:
    """Vertices collected by vertex[...] inside one begin[mode] block."""
    mode: int
    vertices: List[Tuple[float, float]] = field(default_factory=list)


@dataclass
class ExecutionContext:
    """
    The full execution state of one script run.

    Tracks:
    - Variable bindings, keyed by scope-resolved Symbol
    - Loop depth (for break/continue legality) and active calls
    - Open shape builders
    - The adaptive shape being filled slot by slot, and which slots were
      exported (a slot exported as # stays empty but still counts)
    """
    env: Dict[Symbol, Variable] = field(default_factory=dict)
    loop_depth: int = 0
    call_stack: List[str] = field(default_factory=list)
    builders: List[ShapeBuilder] = field(default_factory=list)
    adaptive: Optional[AdaptiveShape] = None
    exported_slots: Set[str] = field(default_factory=set)
    return_value: Variable = NULL

    # "shape" or "adaptive" when the script declares its export kind
    expected_kind: Optional[str] = None

    # Source tracking for error messages
    source_lines: List[str] = field(default_factory=list)

    # --- Variables ---

    def lookup(self, symbol: Symbol, span: Optional[SourceSpan] = None) -> Variable:
        value = self.env.get(symbol)
        if value is None:
            raise error_unknown_variable(symbol.name, span)
        return value

    def define(self, symbol: Symbol, value: Variable, span: Optional[SourceSpan] = None) -> None:
        """Bind a new variable (let, input)."""
        if symbol in self.env:
            raise error_redefinition(symbol.name, span)
        self.env[symbol] = value

    def rebind(self, symbol: Symbol, value: Variable) -> None:
        """Bind unconditionally (loop variables, parameters)."""
        self.env[symbol] = value

    def remove(self, symbols: Iterable[Symbol]) -> None:
        for symbol in symbols:
            self.env.pop(symbol, None)

    def resolve(self, value: Variable, span: Optional[SourceSpan] = None) -> Variable:
        """Turn a reference into the concrete value it names."""
        if isinstance(value, Saved):
            return self.lookup(value.symbol, span)
        if isinstance(value, Access):
            return get_field(self.resolve(value.base, span), value.field, span)
        return value

    def assign(self, target: Variable, value: Variable, span: Optional[SourceSpan] = None) -> None:
        """
        Store through a reference.

        Field targets are copy-modify-store: v.x = 5 resolves v, builds a
        new Vec2 with x replaced and stores that back into v.
        """
        if isinstance(target, Saved):
            if target.symbol not in self.env:
                raise error_unknown_variable(target.symbol.name, span)
            self.env[target.symbol] = value
        elif isinstance(target, Access):
            base = self.resolve(target.base, span)
            if isinstance(base, Null):
                raise error_null_value(".", span)
            if not isinstance(base, Vec2) or target.field not in VEC2_FIELDS:
                raise error_illegal_field(target.field, str(base.kind), span)
            if not isinstance(value, Number):
                raise error_type_mismatch("Number", str(value.kind),
                                          f"assignment to field '{target.field}'", span)
            self.assign(target.base, base.with_field(target.field, value.value), span)
        else:
            raise error_execution("left side of '=' is not assignable", span)

    def snapshot(self) -> Dict[str, Any]:
        """Global variables by plain name, as Python values."""
        return {symbol.name: unwrap(value)
                for symbol, value in self.env.items() if symbol.is_global}

    # --- Diagnostics ---

    def locate(self, error: ShapeScriptError, span: Optional[SourceSpan]) -> ShapeScriptError:
        """Give an error without a location the span of the failing node."""
        diag = error.diagnostic
        if not diag.has_location and span is not None:
            diag.span = span
        if diag.source_line is None and diag.has_location:
            diag.source_line = self._get_source_line(diag.span.start.line)
        return error

    def _get_source_line(self, line_num: int) -> Optional[str]:
        """Get a source line for error messages."""
        if 1 <= line_num <= len(self.source_lines):
            return self.source_lines[line_num - 1]
        return None


def create_context(source: str = "", expected_kind: Optional[str] = None) -> ExecutionContext:
    """
    Create a fresh execution context.

    Args:
        source: The source code (for error messages)
        expected_kind: Export kind declared by a #shape/#adaptive section
    """
    return ExecutionContext(
        expected_kind=expected_kind,
        source_lines=source.split('\n') if source else [],
    )
