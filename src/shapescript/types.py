"""
Value kinds of the shape script language.

The language has a closed set of kinds; user code can name all of them
except Null in type positions (inputs, parameters and type[...] tests).
"""

from enum import Enum
from .tokens import TokenType


class ScriptType(Enum):
    """The kind of a concrete runtime value."""
    NULL = "Null"
    NUMBER = "Number"
    BOOL = "Bool"
    VEC2 = "Vec2"
    SHAPE = "Shape"
    ADAPTIVE = "AdaptiveShape"

    def __str__(self) -> str:
        return self.value


# Type-name tokens accepted in type positions
TYPE_TOKENS: dict[TokenType, ScriptType] = {
    TokenType.TYPE_NUMBER: ScriptType.NUMBER,
    TokenType.TYPE_BOOL: ScriptType.BOOL,
    TokenType.TYPE_VEC2: ScriptType.VEC2,
    TokenType.TYPE_SHAPE: ScriptType.SHAPE,
}

