"""
Identifier minification.

Renames variables, parameters and user functions to the shortest free
names. Declared inputs keep their names because callers bind them by
name, builtins and "vertex" keep theirs because they are looked up by
name, and the positional key "_" is never touched.
"""

import string
from typing import Dict, Iterable, Iterator, Optional, Set

from ..ast import Program, Call
from ..runtime.builtins import BuiltinRegistry, get_builtin_registry
from ..symbols import Symbol, GLOBAL_SCOPE, POSITIONAL
from ..tokens import KEYWORDS
from .base import TreeTransform

_ALPHABET = string.ascii_lowercase + string.ascii_uppercase


def short_names() -> Iterator[str]:
    """a, b, ..., Z, aa, ab, ... forever."""
    length = 1
    while True:
        for n in range(len(_ALPHABET) ** length):
            chars = []
            for _ in range(length):
                n, r = divmod(n, len(_ALPHABET))
                chars.append(_ALPHABET[r])
            yield "".join(reversed(chars))
        length += 1


class _NameSource:
    """Hands out short names, skipping any reserved ones."""

    def __init__(self, reserved: Iterable[str]):
        self.reserved = set(reserved)
        self._names = short_names()

    def take(self) -> str:
        return next(name for name in self._names if name not in self.reserved)


class Minifier(TreeTransform):
    """
    Renames every identifier it is free to rename.

    Variables share one name sequence and functions another, so a local
    and a function may end up with the same short name; they live in
    different namespaces.
    """

    def __init__(self, registry: Optional[BuiltinRegistry] = None):
        self.registry = registry or get_builtin_registry()
        self._variables: Dict[Symbol, Symbol] = {}
        self._functions: Dict[str, str] = {}
        self._declared: Set[str] = set()
        self._kept: Set[str] = set()

    @property
    def name(self) -> str:
        return "minify"

    def visit_program(self, node: Program) -> Program:
        reserved = set(KEYWORDS) | {POSITIONAL}
        self._kept = set(node.inputs)
        self._declared = set(node.functions)
        self._variable_names = _NameSource(reserved | self._kept)
        self._function_names = _NameSource(reserved | set(self.registry.names()) | {"vertex"})
        self._variables = {}
        self._functions = {}
        return super().visit_program(node)

    def visit_function_name(self, name: str) -> str:
        if name not in self._declared:
            # Unknown at parse time; leave it so the runtime error names it
            return name
        if name not in self._functions:
            self._functions[name] = self._function_names.take()
        return self._functions[name]

    def visit_symbol(self, symbol: Symbol) -> Symbol:
        if symbol.is_global and symbol.name in self._kept:
            return symbol
        renamed = self._variables.get(symbol)
        if renamed is None:
            scope = symbol.scope if symbol.is_global else self.visit_function_name(symbol.scope)
            renamed = Symbol(scope, self._variable_names.take())
            self._variables[symbol] = renamed
        return renamed

    def visit_call(self, node: Call) -> Call:
        call = super().visit_call(node)
        if node.name not in self._declared or node.name in self.registry:
            # Builtins win over user functions, so their arguments keep their names
            return call

        def rename(key: str) -> str:
            if key == POSITIONAL:
                return key
            return self.visit_symbol(Symbol(node.name, key)).name

        return Call(
            span=call.span,
            name=self.visit_function_name(node.name),
            arguments={rename(k): v for k, v in call.arguments.items()},
            order=[rename(k) for k in call.order],
        )


def minify(program: Program) -> Program:
    """Return a copy of the program with minified identifiers."""
    return Minifier().transform(program)
