"""
Render a Program back into shape script source.

The output parses to an equivalent program: binary and unary
expressions are fully parenthesized, every control-flow body becomes a
':' ... 'end' block, and functions are written where they were
declared so input resolution inside them is unchanged. Comments,
labels and compound assignments do not survive the round trip.
"""

from typing import List

import numpy as np

from ..ast import (
    Program, Function,
    Statement, Block, LetStatement, AssignStatement, ForStatement,
    WhileStatement, IfStatement, InputStatement, ExportShape, ExportAdaptive,
    ExportSlot, BreakStatement, ContinueStatement, ReturnStatement,
    ExpressionStatement, SectionStatement, NopStatement, FunctionStatement,
    Expression, NumberLiteral, BoolLiteral, Vec2Literal, Empty, Identifier,
    FieldName, BinaryOp, UnaryOp, Call, TypeTest, ShapeExpr,
)
from ..tokens import TokenType, operator_symbol


def format_number(value: float) -> str:
    """Shortest positional form that reads back to the same float."""
    return np.format_float_positional(value, trim='-')


class SourceWriter:
    """Writes a Program as source text, one top-level statement per line."""

    def __init__(self, program: Program):
        self.program = program

    def write(self) -> str:
        lines = [self.statement(s) for s in self.program.statements
                 if not isinstance(s, NopStatement)]
        return "\n".join(lines) + "\n" if lines else ""

    # --- Statements ---

    def statement(self, node: Statement) -> str:
        if isinstance(node, Block):
            return self.block(node)
        elif isinstance(node, LetStatement):
            return f"let {node.target.name} = {self.expression(node.value)};"
        elif isinstance(node, AssignStatement):
            return f"{node.target.name} = {self.expression(node.value)};"
        elif isinstance(node, ForStatement):
            return (f"for {node.variable.name} in begin[end: {self.expression(node.end)}, "
                    f"start: {self.expression(node.start)}, "
                    f"step: {self.expression(node.step)}] {self.body(node.body)}")
        elif isinstance(node, WhileStatement):
            return f"while {self.expression(node.condition)} {self.body(node.body)}"
        elif isinstance(node, IfStatement):
            text = f"if {self.expression(node.condition)} {self.body(node.then_branch)}"
            if node.else_branch is not None:
                text += f" else {self.body(node.else_branch)}"
            return text
        elif isinstance(node, InputStatement):
            text = f"input {node.target.name}: {node.type}"
            if node.default is not None:
                text += f" = {self.expression(node.default)}"
            return text + ";"
        elif isinstance(node, ExportShape):
            return f"export {self.expression(node.value)};"
        elif isinstance(node, ExportAdaptive):
            return "export adaptive: " + ", ".join(self.expression(p) for p in node.parts) + ";"
        elif isinstance(node, ExportSlot):
            if node.value is None:
                return f"export :{node.slot};"
            return f"export :{node.slot} {self.expression(node.value)};"
        elif isinstance(node, BreakStatement):
            return "break;"
        elif isinstance(node, ContinueStatement):
            return "continue;"
        elif isinstance(node, ReturnStatement):
            if node.value is None:
                return "return;"
            return f"return {self.expression(node.value)};"
        elif isinstance(node, ExpressionStatement):
            return f"{self.expression(node.expression)};"
        elif isinstance(node, SectionStatement):
            return f"#{node.name}"
        elif isinstance(node, NopStatement):
            return ";"
        elif isinstance(node, FunctionStatement):
            return self.function(self.program.functions[node.name])
        raise TypeError(f"cannot write {type(node).__name__}")

    def block(self, node: Block) -> str:
        inner = " ".join(self.statement(s) for s in node.statements
                         if not isinstance(s, NopStatement))
        return f": {inner} end" if inner else ": end"

    def body(self, node: Statement) -> str:
        if isinstance(node, Block):
            return self.block(node)
        return f": {self.statement(node)} end"

    def function(self, node: Function) -> str:
        params = ", ".join(f"{p.name}: {p.type}" for p in node.parameters)
        return f"function {node.name}[{params}] {self.body(node.body)}"

    # --- Expressions ---

    def expression(self, node: Expression) -> str:
        if isinstance(node, NumberLiteral):
            return format_number(node.value)
        elif isinstance(node, BoolLiteral):
            return "true" if node.value else "false"
        elif isinstance(node, Vec2Literal):
            return f"[{format_number(node.x)}, {format_number(node.y)}]"
        elif isinstance(node, Empty):
            return "null"
        elif isinstance(node, Identifier):
            return node.name
        elif isinstance(node, FieldName):
            return node.name
        elif isinstance(node, BinaryOp):
            if node.operator == TokenType.DOT:
                return f"{self.expression(node.left)}.{node.right.name}"
            op = operator_symbol(node.operator)
            return f"({self.expression(node.left)} {op} {self.expression(node.right)})"
        elif isinstance(node, UnaryOp):
            return f"({operator_symbol(node.operator)} {self.expression(node.operand)})"
        elif isinstance(node, Call):
            return f"{node.name}[{self.arguments(node)}]"
        elif isinstance(node, TypeTest):
            return f"type[{self.expression(node.operand)}, {node.type}]"
        elif isinstance(node, ShapeExpr):
            return f"begin[{self.expression(node.mode)}] {self.body(node.body)}"
        raise TypeError(f"cannot write {type(node).__name__}")

    def arguments(self, node: Call) -> str:
        parts: List[str] = []
        for key in node.order:
            value = self.expression(node.arguments[key])
            parts.append(value if key == "_" else f"{key}: {value}")
        return ", ".join(parts)


def to_source(program: Program) -> str:
    """Render a program as source text."""
    return SourceWriter(program).write()
