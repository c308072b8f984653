"""
AST transformation framework for shape scripts.

Transforms take a parsed Program and return a new Program that runs
the same way. The minifier is built on TreeTransform; constant folding
or dead code elimination would be too.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..symbols import Symbol
from ..ast import (
    Program, Function, Parameter,
    Statement, Block, LetStatement, AssignStatement, ForStatement,
    WhileStatement, IfStatement, InputStatement, ExportShape, ExportAdaptive,
    ExportSlot, ReturnStatement, ExpressionStatement, FunctionStatement,
    Expression, Identifier, BinaryOp, UnaryOp, Call, TypeTest, ShapeExpr,
)


class AstTransform(ABC):
    """
    Base class for AST transformations.

    Transforms are applied to a Program and return a (potentially
    modified) Program. Transforms can be composed in a pipeline.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of this transform for debugging/logging."""
        pass

    @abstractmethod
    def transform(self, program: Program) -> Program:
        """
        Apply this transform to a program.

        Args:
            program: The input program AST

        Returns:
            The transformed program (may be the same object or a copy)
        """
        pass


class TreeTransform(AstTransform):
    """
    A transform that walks the tree and rebuilds it.

    Subclasses override visit_* methods to transform specific node types.
    Every symbol passes through visit_symbol and every function name
    through visit_function_name, so renaming transforms only need those.
    By default nodes are copied unchanged.
    """

    def transform(self, program: Program) -> Program:
        return self.visit_program(program)

    def visit_program(self, node: Program) -> Program:
        functions = {}
        for function in node.functions.values():
            new_function = self.visit_function(function)
            functions[new_function.name] = new_function
        self._inputs = {}
        statements = [self.visit_statement(stmt) for stmt in node.statements]
        return Program(
            span=node.span,
            statements=statements,
            functions=functions,
            inputs=self._inputs,
            sections=list(node.sections),
        )

    def visit_function(self, node: Function) -> Function:
        return Function(
            span=node.span,
            name=self.visit_function_name(node.name),
            parameters=[
                Parameter(span=p.span, symbol=self.visit_symbol(p.symbol), type=p.type)
                for p in node.parameters
            ],
            locals=[self.visit_symbol(s) for s in node.locals],
            body=self.visit_statement(node.body),
        )

    def visit_symbol(self, symbol: Symbol) -> Symbol:
        return symbol

    def visit_function_name(self, name: str) -> str:
        return name

    # --- Statements ---

    def visit_statement(self, node: Statement) -> Statement:
        """Visit a statement node."""
        if isinstance(node, Block):
            return self.visit_block(node)
        elif isinstance(node, LetStatement):
            return LetStatement(span=node.span, target=self.visit_symbol(node.target),
                                value=self.visit_expression(node.value))
        elif isinstance(node, AssignStatement):
            return AssignStatement(span=node.span, target=self.visit_symbol(node.target),
                                   value=self.visit_expression(node.value))
        elif isinstance(node, ForStatement):
            return self.visit_for(node)
        elif isinstance(node, WhileStatement):
            return WhileStatement(span=node.span,
                                  condition=self.visit_expression(node.condition),
                                  body=self.visit_statement(node.body))
        elif isinstance(node, IfStatement):
            return self.visit_if(node)
        elif isinstance(node, InputStatement):
            return self.visit_input(node)
        elif isinstance(node, ExportShape):
            return ExportShape(span=node.span, value=self.visit_expression(node.value))
        elif isinstance(node, ExportAdaptive):
            return ExportAdaptive(span=node.span,
                                  parts=[self.visit_expression(p) for p in node.parts])
        elif isinstance(node, ExportSlot):
            return ExportSlot(span=node.span, slot=node.slot,
                              value=self._visit_optional(node.value))
        elif isinstance(node, ReturnStatement):
            return ReturnStatement(span=node.span, value=self._visit_optional(node.value))
        elif isinstance(node, ExpressionStatement):
            return ExpressionStatement(span=node.span,
                                       expression=self.visit_expression(node.expression))
        elif isinstance(node, FunctionStatement):
            return FunctionStatement(span=node.span, name=self.visit_function_name(node.name))
        else:
            # break, continue, sections and ';' carry nothing to rewrite
            return node

    def visit_block(self, node: Block) -> Statement:
        return Block(span=node.span,
                     statements=[self.visit_statement(s) for s in node.statements],
                     label=node.label)

    def visit_for(self, node: ForStatement) -> Statement:
        return ForStatement(
            span=node.span,
            variable=self.visit_symbol(node.variable),
            start=self.visit_expression(node.start),
            end=self.visit_expression(node.end),
            step=self.visit_expression(node.step),
            body=self.visit_statement(node.body),
        )

    def visit_if(self, node: IfStatement) -> Statement:
        else_branch = None
        if node.else_branch is not None:
            else_branch = self.visit_statement(node.else_branch)
        return IfStatement(
            span=node.span,
            condition=self.visit_expression(node.condition),
            then_branch=self.visit_statement(node.then_branch),
            else_branch=else_branch,
        )

    def visit_input(self, node: InputStatement) -> Statement:
        new_node = InputStatement(span=node.span, target=self.visit_symbol(node.target),
                                  type=node.type, default=self._visit_optional(node.default))
        self._inputs[new_node.target.name] = new_node
        return new_node

    # --- Expressions ---

    def visit_expression(self, node: Expression) -> Expression:
        """Visit an expression node."""
        if isinstance(node, Identifier):
            return Identifier(span=node.span, symbol=self.visit_symbol(node.symbol))
        elif isinstance(node, BinaryOp):
            return BinaryOp(span=node.span, left=self.visit_expression(node.left),
                            operator=node.operator, right=self.visit_expression(node.right))
        elif isinstance(node, UnaryOp):
            return UnaryOp(span=node.span, operator=node.operator,
                           operand=self.visit_expression(node.operand))
        elif isinstance(node, Call):
            return self.visit_call(node)
        elif isinstance(node, TypeTest):
            return TypeTest(span=node.span, operand=self.visit_expression(node.operand),
                            type=node.type)
        elif isinstance(node, ShapeExpr):
            return ShapeExpr(span=node.span, mode=self.visit_expression(node.mode),
                             body=self.visit_statement(node.body))
        else:
            # Literals, '#' and field names
            return node

    def visit_call(self, node: Call) -> Expression:
        return Call(
            span=node.span,
            name=node.name,
            arguments={k: self.visit_expression(v) for k, v in node.arguments.items()},
            order=list(node.order),
        )

    def _visit_optional(self, node: Optional[Expression]) -> Optional[Expression]:
        return None if node is None else self.visit_expression(node)


class TransformPipeline:
    """
    A pipeline of AST transforms to apply in sequence.
    """

    def __init__(self, transforms: Optional[List[AstTransform]] = None):
        self.transforms = transforms or []

    def add(self, transform: AstTransform) -> "TransformPipeline":
        """Add a transform to the pipeline."""
        self.transforms.append(transform)
        return self

    def apply(self, program: Program) -> Program:
        """Apply all transforms in sequence."""
        result = program
        for transform in self.transforms:
            result = transform.transform(result)
        return result


class IdentityTransform(AstTransform):
    """Identity transform - returns the program unchanged."""

    @property
    def name(self) -> str:
        return "identity"

    def transform(self, program: Program) -> Program:
        return program
