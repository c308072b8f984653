"""
Tree-walking interpreter for shape scripts.

Executes a parsed Program and returns the exported Shape or
AdaptiveShape value.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Mapping, Optional
import logging

from .values import (
    Variable, NULL, Null, Number, Bool, Vec2, ShapeValue, AdaptiveValue,
    Saved, Access, MappedArgs, apply_binary, apply_unary, get_field, wrap, unwrap,
)
from .context import ExecutionContext, ShapeBuilder, create_context
from .builtins import BuiltinRegistry, get_builtin_registry

from ..ast import (
    Statement, Block, LetStatement, AssignStatement, ForStatement,
    WhileStatement, IfStatement, InputStatement, ExportShape, ExportAdaptive,
    ExportSlot, BreakStatement, ContinueStatement, ReturnStatement,
    ExpressionStatement, SectionStatement, NopStatement, FunctionStatement,
    Expression, NumberLiteral, BoolLiteral, Vec2Literal, Empty, Identifier,
    FieldName, BinaryOp, UnaryOp, Call, TypeTest, ShapeExpr,
    Function, Program,
)
from ..config import ScriptConfig, DEFAULT_CONFIG
from ..errors import (
    Diagnostic,
    ShapeScriptError,
    error_type_mismatch,
    error_loop_control,
    error_missing_input,
    error_no_shape_selected,
    error_duplicate_slot,
    error_unknown_slot,
    error_missing_export,
    error_export_kind,
    error_recursive_call,
    error_unknown_function,
    error_bad_argument,
    error_execution,
)
from ..geometry import Shape, AdaptiveShape, SLOTS, TRIANGLES, TRIANGLE_STRIP, resolve_slot
from ..symbols import POSITIONAL
from ..tokens import SourceSpan, TokenType

logger = logging.getLogger(__name__)

FINISH_SLOT = "finish"


class Signal(Enum):
    """How a statement completed."""
    NORMAL = auto()
    BREAK = auto()
    CONTINUE = auto()
    RETURN = auto()


class _ExportComplete(Exception):
    """Unwinds the whole run once an export has finished."""

    def __init__(self, value: Variable):
        super().__init__("export complete")
        self.value = value


@dataclass
class ExecutionResult:
    """Result of executing a script."""
    success: bool
    value: Optional[Variable] = None
    error_message: Optional[str] = None
    diagnostic: Optional[Diagnostic] = None
    variables: Dict[str, Any] = field(default_factory=dict)

    @property
    def shape(self) -> Any:
        """The exported Shape or AdaptiveShape."""
        if self.value is None:
            return None
        return unwrap(self.value)


class Interpreter:
    """
    Tree-walking interpreter for shape scripts.

    Statements return a Signal; loops consume BREAK and CONTINUE, calls
    consume RETURN. The first completed export ends the run.
    """

    def __init__(self, config: Optional[ScriptConfig] = None,
                 registry: Optional[BuiltinRegistry] = None):
        self.config = config or DEFAULT_CONFIG
        self.registry = registry or get_builtin_registry()
        self.program: Optional[Program] = None
        self.inputs: Mapping[str, Any] = {}

    def run(self, program: Program, inputs: Optional[Mapping[str, Any]] = None,
            source: str = "") -> Variable:
        """
        Execute a program and return its exported value.

        Args:
            program: The parsed script
            inputs: Input values by plain name (numbers, bools, (x, y) tuples)
            source: Original source code for error messages

        Returns:
            ShapeValue or AdaptiveValue

        Raises:
            ExecError: On any runtime failure, or if nothing was exported
        """
        ctx = create_context(source, program.export_kind)
        return self._run(program, inputs, ctx)

    def execute(self, program: Program, inputs: Optional[Mapping[str, Any]] = None,
                source: str = "") -> ExecutionResult:
        """Execute a program, reporting failure in the result instead of raising."""
        ctx = create_context(source, program.export_kind)
        try:
            value = self._run(program, inputs, ctx)
        except ShapeScriptError as e:
            return ExecutionResult(
                success=False,
                error_message=e.message,
                diagnostic=e.diagnostic,
                variables=ctx.snapshot(),
            )
        return ExecutionResult(success=True, value=value, variables=ctx.snapshot())

    def _run(self, program: Program, inputs: Optional[Mapping[str, Any]],
             ctx: ExecutionContext) -> Variable:
        self.program = program
        self.inputs = inputs or {}
        try:
            for stmt in program.statements:
                self._execute_statement(stmt, ctx)
        except _ExportComplete as done:
            logger.debug("export complete: %s", done.value)
            return done.value

        # Slots exported one by one without an explicit finish
        if ctx.adaptive is not None:
            return AdaptiveValue(ctx.adaptive)
        raise error_missing_export()

    # =========================================================================
    # Statements
    # =========================================================================

    def _execute_statement(self, stmt: Statement, ctx: ExecutionContext) -> Signal:
        """Execute a statement."""
        try:
            if isinstance(stmt, Block):
                return self._execute_block(stmt, ctx)
            elif isinstance(stmt, LetStatement):
                value = self._evaluate_value(stmt.value, ctx)
                ctx.define(stmt.target, value, stmt.span)
            elif isinstance(stmt, AssignStatement):
                value = self._evaluate_value(stmt.value, ctx)
                ctx.assign(Saved(stmt.target), value, stmt.span)
            elif isinstance(stmt, ForStatement):
                return self._execute_for(stmt, ctx)
            elif isinstance(stmt, WhileStatement):
                return self._execute_while(stmt, ctx)
            elif isinstance(stmt, IfStatement):
                if self._condition(stmt.condition, ctx, "if condition"):
                    return self._execute_statement(stmt.then_branch, ctx)
                elif stmt.else_branch is not None:
                    return self._execute_statement(stmt.else_branch, ctx)
            elif isinstance(stmt, InputStatement):
                self._execute_input(stmt, ctx)
            elif isinstance(stmt, ExportShape):
                self._execute_export_shape(stmt, ctx)
            elif isinstance(stmt, ExportAdaptive):
                self._execute_export_adaptive(stmt, ctx)
            elif isinstance(stmt, ExportSlot):
                self._execute_export_slot(stmt, ctx)
            elif isinstance(stmt, BreakStatement):
                if ctx.loop_depth == 0:
                    raise error_loop_control("break", stmt.span)
                return Signal.BREAK
            elif isinstance(stmt, ContinueStatement):
                if ctx.loop_depth == 0:
                    raise error_loop_control("continue", stmt.span)
                return Signal.CONTINUE
            elif isinstance(stmt, ReturnStatement):
                ctx.return_value = NULL if stmt.value is None else \
                    self._evaluate_value(stmt.value, ctx)
                return Signal.RETURN
            elif isinstance(stmt, ExpressionStatement):
                self._evaluate(stmt.expression, ctx)
            elif isinstance(stmt, (SectionStatement, NopStatement, FunctionStatement)):
                pass
            else:
                raise error_execution(f"unknown statement type: {type(stmt).__name__}", stmt.span)
        except ShapeScriptError as e:
            raise ctx.locate(e, stmt.span)
        return Signal.NORMAL

    def _execute_block(self, block: Block, ctx: ExecutionContext) -> Signal:
        """Execute statements in order until one completes abnormally."""
        for stmt in block.statements:
            signal = self._execute_statement(stmt, ctx)
            if signal != Signal.NORMAL:
                return signal
        return Signal.NORMAL

    def _loop_pass(self, passes: int, span: SourceSpan) -> int:
        passes += 1
        if passes > self.config.max_loop_iterations:
            raise error_execution(
                f"loop exceeded {self.config.max_loop_iterations} iterations", span
            )
        return passes

    def _execute_for(self, stmt: ForStatement, ctx: ExecutionContext) -> Signal:
        """Execute a counted for loop; bounds are evaluated once."""
        start = self._number(stmt.start, ctx, "for loop start")
        end = self._number(stmt.end, ctx, "for loop end")
        step = self._number(stmt.step, ctx, "for loop step")
        if step == 0:
            raise error_execution("for loop step must not be zero", stmt.span)

        i = start
        passes = 0
        ctx.loop_depth += 1
        try:
            while (i < end) if step > 0 else (i > end):
                passes = self._loop_pass(passes, stmt.span)
                ctx.rebind(stmt.variable, Number(i))
                signal = self._execute_statement(stmt.body, ctx)
                if signal == Signal.BREAK:
                    break
                if signal == Signal.RETURN:
                    return signal
                i += step
        finally:
            ctx.loop_depth -= 1
        return Signal.NORMAL

    def _execute_while(self, stmt: WhileStatement, ctx: ExecutionContext) -> Signal:
        """Execute a while loop; the condition is re-evaluated every pass."""
        passes = 0
        ctx.loop_depth += 1
        try:
            while self._condition(stmt.condition, ctx, "while condition"):
                passes = self._loop_pass(passes, stmt.span)
                signal = self._execute_statement(stmt.body, ctx)
                if signal == Signal.BREAK:
                    break
                if signal == Signal.RETURN:
                    return signal
        finally:
            ctx.loop_depth -= 1
        return Signal.NORMAL

    def _execute_input(self, stmt: InputStatement, ctx: ExecutionContext) -> None:
        """Bind an input from the provided values, else its default."""
        name = stmt.target.name
        if name in self.inputs:
            try:
                value = wrap(self.inputs[name])
            except TypeError as e:
                raise error_type_mismatch(str(stmt.type), "an unsupported value",
                                          f"input '{name}'", stmt.span) from e
        elif stmt.default is not None:
            value = self._evaluate_value(stmt.default, ctx)
        else:
            raise error_missing_input(name, stmt.span)

        if value.kind != stmt.type:
            raise error_type_mismatch(str(stmt.type), str(value.kind), f"input '{name}'", stmt.span)
        ctx.define(stmt.target, value, stmt.span)

    def _check_export_kind(self, kind: str, ctx: ExecutionContext, span: SourceSpan) -> None:
        if ctx.expected_kind is not None and ctx.expected_kind != kind:
            found = "a Shape" if kind == "shape" else "an AdaptiveShape"
            raise error_export_kind(ctx.expected_kind, found, span)

    def _execute_export_shape(self, stmt: ExportShape, ctx: ExecutionContext) -> None:
        self._check_export_kind("shape", ctx, stmt.span)
        value = self._evaluate_value(stmt.value, ctx)
        if not isinstance(value, ShapeValue):
            raise error_type_mismatch("Shape", str(value.kind), "export", stmt.span)
        raise _ExportComplete(value)

    def _slot_shape(self, value: Variable, what: str, span: SourceSpan) -> Optional[Shape]:
        if isinstance(value, Null):
            return None
        if isinstance(value, ShapeValue):
            return value.shape
        raise error_type_mismatch("Shape or #", str(value.kind), what, span)

    def _execute_export_adaptive(self, stmt: ExportAdaptive, ctx: ExecutionContext) -> None:
        """export adaptive: binds the nine parts to the slots in order."""
        self._check_export_kind("adaptive", ctx, stmt.span)
        shapes = [
            self._slot_shape(self._evaluate_value(part, ctx), f"adaptive slot '{slot}'", part.span)
            for slot, part in zip(SLOTS, stmt.parts)
        ]
        raise _ExportComplete(AdaptiveValue(AdaptiveShape.from_sequence(shapes)))

    def _execute_export_slot(self, stmt: ExportSlot, ctx: ExecutionContext) -> None:
        """export :slot expr; or, inside a builder, export :slot;"""
        self._check_export_kind("adaptive", ctx, stmt.span)
        if ctx.adaptive is None:
            ctx.adaptive = AdaptiveShape()

        if stmt.slot == FINISH_SLOT:
            raise _ExportComplete(AdaptiveValue(ctx.adaptive))

        slot = resolve_slot(stmt.slot)
        if slot is None:
            raise error_unknown_slot(stmt.slot, stmt.span)
        if slot in ctx.exported_slots:
            raise error_duplicate_slot(slot, stmt.span)

        if stmt.value is not None:
            shape = self._slot_shape(self._evaluate_value(stmt.value, ctx),
                                     f"adaptive slot '{slot}'", stmt.span)
        elif ctx.builders:
            # The builder's vertices so far become the slot; the builder restarts
            builder = ctx.builders[-1]
            shape = self._build_shape(builder, stmt.span)
            builder.vertices = []
        else:
            raise error_no_shape_selected(stmt.span)

        ctx.adaptive[slot] = shape
        ctx.exported_slots.add(slot)
        if len(ctx.exported_slots) == len(SLOTS):
            raise _ExportComplete(AdaptiveValue(ctx.adaptive))

    # =========================================================================
    # Expressions
    # =========================================================================

    def _evaluate_value(self, expr: Expression, ctx: ExecutionContext) -> Variable:
        """Evaluate an expression and resolve any reference it produced."""
        return ctx.resolve(self._evaluate(expr, ctx), expr.span)

    def _number(self, expr: Expression, ctx: ExecutionContext, what: str) -> float:
        value = self._evaluate_value(expr, ctx)
        if not isinstance(value, Number):
            raise error_type_mismatch("Number", str(value.kind), what, expr.span)
        return value.value

    def _condition(self, expr: Expression, ctx: ExecutionContext, what: str) -> bool:
        value = self._evaluate_value(expr, ctx)
        if not isinstance(value, Bool):
            raise error_type_mismatch("Bool", str(value.kind), what, expr.span)
        return value.value

    def _evaluate(self, expr: Expression, ctx: ExecutionContext) -> Variable:
        """Evaluate an expression; identifiers and field accesses yield references."""
        if isinstance(expr, NumberLiteral):
            return Number(float(expr.value))
        elif isinstance(expr, BoolLiteral):
            return Bool(expr.value)
        elif isinstance(expr, Vec2Literal):
            return Vec2(float(expr.x), float(expr.y))
        elif isinstance(expr, Empty):
            return NULL
        elif isinstance(expr, Identifier):
            return Saved(expr.symbol)
        elif isinstance(expr, BinaryOp):
            return self._eval_binary_op(expr, ctx)
        elif isinstance(expr, UnaryOp):
            operand = self._evaluate_value(expr.operand, ctx)
            return apply_unary(expr.operator, operand, expr.span)
        elif isinstance(expr, TypeTest):
            value = self._evaluate_value(expr.operand, ctx)
            return Bool(value.kind == expr.type)
        elif isinstance(expr, Call):
            return self._eval_call(expr, ctx)
        elif isinstance(expr, ShapeExpr):
            return self._eval_shape_expr(expr, ctx)
        elif isinstance(expr, FieldName):
            raise error_execution(f"field name '{expr.name}' used as a value", expr.span)
        else:
            raise error_execution(f"unknown expression type: {type(expr).__name__}", expr.span)

    def _eval_binary_op(self, op: BinaryOp, ctx: ExecutionContext) -> Variable:
        """Evaluate a binary operation."""
        if op.operator == TokenType.DOT:
            base = self._evaluate(op.left, ctx)
            if base.is_reference:
                return Access(base, op.right.name)
            return get_field(base, op.right.name, op.span)

        if op.operator == TokenType.ASSIGN:
            target = self._evaluate(op.left, ctx)
            value = self._evaluate_value(op.right, ctx)
            ctx.assign(target, value, op.span)
            return value

        left = self._evaluate_value(op.left, ctx)
        right = self._evaluate_value(op.right, ctx)
        return apply_binary(op.operator, left, right, op.span)

    def _eval_arguments(self, call: Call, ctx: ExecutionContext) -> MappedArgs:
        values = {name: self._evaluate_value(call.arguments[name], ctx) for name in call.order}
        return MappedArgs(values, call.order, call.name)

    def _eval_call(self, call: Call, ctx: ExecutionContext) -> Variable:
        """Evaluate a call: vertex, then builtins, then user functions."""
        if call.name == "vertex":
            return self._eval_vertex(call, ctx)

        if call.name in self.registry:
            args = self._eval_arguments(call, ctx)
            try:
                return self.registry.call(call.name, args)
            except ShapeScriptError as e:
                raise ctx.locate(e, call.span)

        function = self.program.functions.get(call.name) if self.program else None
        if function is None:
            raise error_unknown_function(call.name, call.span)
        return self._call_function(function, call, ctx)

    def _call_function(self, function: Function, call: Call, ctx: ExecutionContext) -> Variable:
        """Call a user function; arguments are evaluated in the caller's scope."""
        if function.name in ctx.call_stack:
            raise error_recursive_call(function.name, call.span)
        if len(ctx.call_stack) >= self.config.max_call_depth:
            raise error_execution(
                f"call depth exceeded {self.config.max_call_depth} calling '{function.name}'",
                call.span,
            )

        args = self._eval_arguments(call, ctx)
        names = [p.name for p in function.parameters]
        bound: Dict[str, Variable] = {}
        for key in args.order:
            if key == POSITIONAL:
                continue
            if key not in names:
                raise error_bad_argument(f"{function.name}: unknown argument '{key}'", call.span)
            bound[key] = args[key]
        if POSITIONAL in args:
            free = [n for n in names if n not in bound]
            if not free:
                raise error_bad_argument(f"{function.name}: unexpected unnamed argument", call.span)
            bound[free[0]] = args[POSITIONAL]

        for param in function.parameters:
            value = bound.get(param.name)
            if value is None:
                raise error_bad_argument(f"{function.name}: missing argument '{param.name}'",
                                         call.span)
            if value.kind != param.type:
                raise error_type_mismatch(str(param.type), str(value.kind),
                                          f"argument '{param.name}' of '{function.name}'",
                                          call.span)

        saved_depth = ctx.loop_depth
        ctx.call_stack.append(function.name)
        ctx.loop_depth = 0
        try:
            for param in function.parameters:
                ctx.rebind(param.symbol, bound[param.name])
            signal = self._execute_statement(function.body, ctx)
            return ctx.return_value if signal == Signal.RETURN else NULL
        finally:
            ctx.return_value = NULL
            ctx.loop_depth = saved_depth
            ctx.call_stack.pop()
            ctx.remove(function.locals)

    def _eval_vertex(self, call: Call, ctx: ExecutionContext) -> Variable:
        """vertex[x: 1, y: 2] or vertex[v]: append to the innermost builder."""
        if not ctx.builders:
            raise error_execution("vertex[...] outside of a begin[...] shape builder", call.span)
        args = self._eval_arguments(call, ctx)
        if POSITIONAL in args:
            point = args.vec2(POSITIONAL)
        else:
            point = (args.number("x"), args.number("y"))
        ctx.builders[-1].vertices.append(point)
        return NULL

    def _build_shape(self, builder: ShapeBuilder, span: SourceSpan) -> Shape:
        try:
            return Shape.from_vertices(builder.vertices, builder.mode)
        except ValueError as e:
            raise error_execution(f"cannot build shape: {e}", span) from e

    def _eval_shape_expr(self, expr: ShapeExpr, ctx: ExecutionContext) -> Variable:
        """begin[mode] <body>: run the body collecting vertices into a shape."""
        mode = self._number(expr.mode, ctx, "shape mode")
        if mode not in (TRIANGLES, TRIANGLE_STRIP):
            raise error_execution(f"unknown shape mode {Number(mode)}", expr.mode.span)

        builder = ShapeBuilder(int(mode))
        saved_depth = ctx.loop_depth
        ctx.builders.append(builder)
        ctx.loop_depth = 0
        try:
            signal = self._execute_statement(expr.body, ctx)
        finally:
            ctx.loop_depth = saved_depth
            ctx.builders.pop()
        if signal == Signal.RETURN:
            raise error_execution("'return' inside a shape builder", expr.span)
        return ShapeValue(self._build_shape(builder, expr.span))


def run(program: Program, inputs: Optional[Mapping[str, Any]] = None,
        config: Optional[ScriptConfig] = None) -> Variable:
    """
    Execute a parsed program and return its export.

    This is a convenience wrapper around Interpreter.run().
    """
    return Interpreter(config).run(program, inputs)


def compile_and_run(
    source: str,
    inputs: Optional[Mapping[str, Any]] = None,
    config: Optional[ScriptConfig] = None,
    filename: Optional[str] = None,
) -> ExecutionResult:
    """
    High-level API to compile and run a shape script in one call.

        from shapescript import compile_and_run

        result = compile_and_run('''
            input size: Number = 10;
            export rect[x: 0, y: 0, width: size, height: size];
        ''', {"size": 4})

        if result.success:
            shape = result.shape
        else:
            print(f"Error: {result.error_message}")

    Args:
        source: Script source code
        inputs: Input values by plain name
        config: Execution limits
        filename: Optional filename for error messages

    Returns:
        ExecutionResult with the export, variables and any error
    """
    from ..lexer import tokenize
    from ..parser import parse
    from ..errors import LexError, ParseError

    # Tokenize
    try:
        tokens = tokenize(source, filename)
    except LexError as e:
        return ExecutionResult(
            success=False,
            error_message=f"Lexer error: {e.message}",
            diagnostic=e.diagnostic,
        )

    # Parse
    try:
        program = parse(tokens, filename)
    except ParseError as e:
        return ExecutionResult(
            success=False,
            error_message=f"Parser error: {e.message}",
            diagnostic=e.diagnostic,
        )

    # Execute
    interpreter = Interpreter(config)
    return interpreter.execute(program, inputs, source)
