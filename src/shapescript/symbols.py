"""
Symbol interning for scope-resolved identifiers.

The parser resolves every identifier to the scope it belongs to, so the
interpreter never walks a scope chain. A Symbol is an interned
(scope, name) pair; its qualified form is "<scope>_<name>".
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple


# Scope token used for top-level variables and declared inputs
GLOBAL_SCOPE = "function"

# Argument key for the single unnamed call argument
POSITIONAL = "_"


@dataclass(frozen=True)
class Symbol:
    """An identifier bound to the scope it was resolved in."""
    scope: str
    name: str
    index: int = field(default=-1, compare=False)    # Position in the owning SymbolTable

    @property
    def qualified(self) -> str:
        return f"{self.scope}_{self.name}"

    @property
    def is_global(self) -> bool:
        return self.scope == GLOBAL_SCOPE

    def __str__(self) -> str:
        return self.qualified


class SymbolTable:
    """
    Interns (scope, name) pairs so each one maps to a single Symbol.

    Symbols compare by value, so interning is only needed to keep the
    number of objects small and to give each pair a stable index.
    """

    def __init__(self):
        self._symbols: Dict[Tuple[str, str], Symbol] = {}

    def intern(self, scope: str, name: str) -> Symbol:
        key = (scope, name)
        symbol = self._symbols.get(key)
        if symbol is None:
            symbol = Symbol(scope, name, len(self._symbols))
            self._symbols[key] = symbol
        return symbol

    def lookup(self, scope: str, name: str):
        return self._symbols.get((scope, name))

    def __len__(self) -> int:
        return len(self._symbols)

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._symbols

