"""
Abstract Syntax Tree (AST) node definitions for shape scripts.

Identifiers are already scope-resolved when the tree is built: every
Identifier carries a Symbol, so the interpreter works on a flat
environment. The Program is immutable after parsing.
"""

from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any
from abc import ABC

from .tokens import SourceSpan, TokenType
from .symbols import Symbol
from .types import ScriptType


# =============================================================================
# Base Classes
# =============================================================================

@dataclass
class AstNode(ABC):
    """Base class for all AST nodes."""
    span: SourceSpan  # Source location for error reporting

    def accept(self, visitor: "AstVisitor") -> Any:
        """Accept a visitor for traversal."""
        method_name = f"visit_{self.__class__.__name__}"
        method = getattr(visitor, method_name, visitor.generic_visit)
        return method(self)


class AstVisitor(ABC):
    """Base class for AST visitors."""

    def generic_visit(self, node: AstNode) -> Any:
        """Default visit method."""
        raise NotImplementedError(f"No visitor for {node.__class__.__name__}")


# =============================================================================
# Expression Nodes
# =============================================================================

@dataclass
class Expression(AstNode):
    """Base class for all expressions."""
    pass


@dataclass
class NumberLiteral(Expression):
    value: float


@dataclass
class BoolLiteral(Expression):
    value: bool


@dataclass
class Vec2Literal(Expression):
    x: float
    y: float


@dataclass
class Empty(Expression):
    """The '#' marker: evaluates to Null, and leaves an adaptive slot empty."""
    pass


@dataclass
class Identifier(Expression):
    """A scope-resolved variable reference."""
    symbol: Symbol

    @property
    def name(self) -> str:
        return self.symbol.name


@dataclass
class FieldName(Expression):
    """The right-hand side of '.', a bare field name such as x or y."""
    name: str


@dataclass
class BinaryOp(Expression):
    """A binary operation, including '.' field access and '=' assignment."""
    left: Expression
    operator: TokenType
    right: Expression


@dataclass
class UnaryOp(Expression):
    """A unary operation (-x, !flag)."""
    operator: TokenType
    operand: Expression


@dataclass
class Call(Expression):
    """
    A call such as rect[x: 0, y: 0, width: 10, height: 5].

    The single unnamed argument is keyed "_". `order` keeps the keys in
    the order they were written, for builtins that care about it.
    """
    name: str
    arguments: Dict[str, Expression] = field(default_factory=dict)
    order: List[str] = field(default_factory=list)


@dataclass
class TypeTest(Expression):
    """type[expr, Type]: true if expr evaluates to a value of that kind."""
    operand: Expression
    type: ScriptType


@dataclass
class ShapeExpr(Expression):
    """begin[mode] <body>: collects vertex[...] calls into a shape."""
    mode: Expression
    body: "Statement"


# =============================================================================
# Statement Nodes
# =============================================================================

@dataclass
class Statement(AstNode):
    """Base class for all statements."""
    pass


@dataclass
class Block(Statement):
    """':' ... 'end', or a named '+label' ... '<' block."""
    statements: List[Statement] = field(default_factory=list)
    label: Optional[str] = None


@dataclass
class LetStatement(Statement):
    target: Symbol
    value: Expression


@dataclass
class AssignStatement(Statement):
    """name = expr; compound forms are already desugared."""
    target: Symbol
    value: Expression


@dataclass
class ForStatement(Statement):
    variable: Symbol
    start: Expression
    end: Expression
    step: Expression
    body: Statement


@dataclass
class WhileStatement(Statement):
    condition: Expression
    body: Statement


@dataclass
class IfStatement(Statement):
    condition: Expression
    then_branch: Statement
    else_branch: Optional[Statement] = None


@dataclass
class InputStatement(Statement):
    target: Symbol
    type: ScriptType
    default: Optional[Expression] = None


@dataclass
class ExportShape(Statement):
    value: Expression


@dataclass
class ExportAdaptive(Statement):
    """export adaptive: bl, l, tl, t, tr, r, br, b, c;"""
    parts: List[Expression]


@dataclass
class ExportSlot(Statement):
    """export :slot expr; or export :slot; inside a shape builder."""
    slot: str
    value: Optional[Expression] = None


@dataclass
class BreakStatement(Statement):
    pass


@dataclass
class ContinueStatement(Statement):
    pass


@dataclass
class ReturnStatement(Statement):
    value: Optional[Expression] = None


@dataclass
class ExpressionStatement(Statement):
    expression: Expression


@dataclass
class SectionStatement(Statement):
    """A #section directive; no effect at runtime."""
    name: str


@dataclass
class NopStatement(Statement):
    """A lone ';'."""
    pass


@dataclass
class FunctionStatement(Statement):
    """Marks where a function was declared; the body lives in Program.functions."""
    name: str


# =============================================================================
# Declarations
# =============================================================================

@dataclass
class Parameter(AstNode):
    symbol: Symbol
    type: ScriptType

    @property
    def name(self) -> str:
        return self.symbol.name


@dataclass
class Function(AstNode):
    """A top-level function declaration."""
    name: str
    parameters: List[Parameter]
    locals: List[Symbol]
    body: Statement


@dataclass
class Program(AstNode):
    """A parsed script."""
    statements: List[Statement]
    functions: Dict[str, Function] = field(default_factory=dict)
    inputs: Dict[str, InputStatement] = field(default_factory=dict)
    sections: List[str] = field(default_factory=list)

    @property
    def export_kind(self) -> Optional[str]:
        """'shape' or 'adaptive' if the script declares one with a section."""
        for name in self.sections:
            if name in ("shape", "adaptive"):
                return name
        return None


# =============================================================================
# Debug printing
# =============================================================================

class PrintVisitor(AstVisitor):
    """Renders a node tree as indented text, one node per line."""

    def __init__(self):
        self.indent = 0
        self.lines: List[str] = []

    def generic_visit(self, node: AstNode) -> Any:
        fields = []
        children = []
        for name, value in vars(node).items():
            if name == "span":
                continue
            if isinstance(value, AstNode):
                children.append((name, value))
            elif isinstance(value, list) and value and isinstance(value[0], AstNode):
                children.extend((f"{name}[{i}]", v) for i, v in enumerate(value))
            elif isinstance(value, dict) and value and \
                    isinstance(next(iter(value.values())), AstNode):
                children.extend((f"{name}[{k}]", v) for k, v in value.items())
            else:
                fields.append(f"{name}={value}")
        self.lines.append("  " * self.indent + f"{node.__class__.__name__}({', '.join(fields)})")
        self.indent += 1
        for _, child in children:
            child.accept(self)
        self.indent -= 1


def format_ast(node: AstNode) -> str:
    """Format an AST for debugging."""
    visitor = PrintVisitor()
    node.accept(visitor)
    return "\n".join(visitor.lines)
