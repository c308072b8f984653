"""
Token types for the shape script lexer.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, Optional


class TokenType(Enum):
    """All token types recognized by the shape script lexer."""

    # --- Literals ---
    NUMBER = auto()             # 42, 3.5, 1_000, -2, π
    BOOL_LITERAL = auto()       # true, false
    VEC2_LITERAL = auto()       # [1, 2] where no operand precedes
    PERCENT_LITERAL = auto()    # >50 (value 0.5)

    # --- Identifiers ---
    IDENTIFIER = auto()

    # --- Keywords ---
    LET = auto()
    IF = auto()
    ELSE = auto()
    FOR = auto()
    IN = auto()
    WHILE = auto()
    BREAK = auto()
    CONTINUE = auto()
    EXPORT = auto()
    ADAPTIVE = auto()
    INPUT = auto()
    RETURN = auto()
    FUNCTION = auto()
    BEGIN = auto()
    END = auto()
    TYPE = auto()

    # --- Type names ---
    TYPE_NUMBER = auto()        # Number
    TYPE_BOOL = auto()          # Bool
    TYPE_VEC2 = auto()          # Vec2
    TYPE_SHAPE = auto()         # Shape

    # --- Arithmetic operators ---
    PLUS = auto()               # +
    MINUS = auto()              # -
    STAR = auto()               # *
    SLASH = auto()              # /
    PERCENT = auto()            # %
    CARET = auto()              # ^ (power)

    # --- Comparison operators ---
    LT = auto()                 # <
    GT = auto()                 # >
    LE = auto()                 # <=
    GE = auto()                 # >=
    EQ = auto()                 # == / is
    NE = auto()                 # != / isnt / isn't

    # --- Logical operators ---
    AND = auto()                # && / and
    OR = auto()                 # || / or
    NOT = auto()                # ! / not

    # --- Assignment ---
    ASSIGN = auto()             # =
    OPERATOR_ASSIGN = auto()    # += -= *= /= %= ^= (value is the operator)

    # --- Delimiters ---
    LPAREN = auto()             # (
    RPAREN = auto()             # )
    LBRACKET = auto()           # [
    RBRACKET = auto()           # ]
    COLON = auto()              # :
    SEMICOLON = auto()          # ;
    COMMA = auto()              # ,
    DOT = auto()                # .
    HASHTAG = auto()            # # / null (empty marker)

    # --- Directives ---
    SECTION = auto()            # #inputs, #shape, ...
    BLOCK_START = auto()        # +name at a statement boundary
    BLOCK_END = auto()          # < at a statement boundary
    SUBKEYWORD = auto()         # :left after export

    # --- Special ---
    EOF = auto()


@dataclass(frozen=True)
class SourceLocation:
    """Represents a position in source code."""
    line: int           # 1-indexed line number
    column: int         # 1-indexed column number
    offset: int         # 0-indexed character offset from start
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class SourceSpan:
    """Represents a range in source code."""
    start: SourceLocation
    end: SourceLocation

    def __str__(self) -> str:
        if self.start.filename:
            return f"{self.start.filename}:{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"
        return f"{self.start.line}:{self.start.column}-{self.end.line}:{self.end.column}"


@dataclass(frozen=True)
class Token:
    """A single token from the lexer."""
    type: TokenType
    value: Any              # Number, bool, (x, y), name, or operator type
    lexeme: str             # The original source text
    span: SourceSpan        # Location in source

    def __str__(self) -> str:
        if self.type in (TokenType.NUMBER, TokenType.IDENTIFIER, TokenType.VEC2_LITERAL,
                         TokenType.SECTION, TokenType.BLOCK_START, TokenType.SUBKEYWORD):
            return f"{self.type.name}({self.value!r})"
        return self.type.name


# Keyword mapping - maps string to token type
KEYWORDS: dict[str, TokenType] = {
    "let": TokenType.LET,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "in": TokenType.IN,
    "while": TokenType.WHILE,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "export": TokenType.EXPORT,
    "adaptive": TokenType.ADAPTIVE,
    "input": TokenType.INPUT,
    "return": TokenType.RETURN,
    "function": TokenType.FUNCTION,
    "begin": TokenType.BEGIN,
    "end": TokenType.END,
    "type": TokenType.TYPE,

    # Word forms of operators
    "and": TokenType.AND,
    "or": TokenType.OR,
    "not": TokenType.NOT,
    "is": TokenType.EQ,
    "isnt": TokenType.NE,

    # Literals
    "true": TokenType.BOOL_LITERAL,
    "false": TokenType.BOOL_LITERAL,
    "null": TokenType.HASHTAG,

    # Type names
    "Number": TokenType.TYPE_NUMBER,
    "Bool": TokenType.TYPE_BOOL,
    "Vec2": TokenType.TYPE_VEC2,
    "Shape": TokenType.TYPE_SHAPE,
}


# Names accepted after '#'
SECTIONS: frozenset[str] = frozenset({"inputs", "functions", "shape", "adaptive", "main"})


# Operators that may be followed by '=' to form an OPERATOR_ASSIGN token
ARITHMETIC_OPERATORS: dict[str, TokenType] = {
    '+': TokenType.PLUS,
    '-': TokenType.MINUS,
    '*': TokenType.STAR,
    '/': TokenType.SLASH,
    '%': TokenType.PERCENT,
    '^': TokenType.CARET,
}


# Tokens after which a value has just ended; used to disambiguate
# '-', '[', '>' and '<' in the lexer.
OPERAND_TOKENS: frozenset[TokenType] = frozenset({
    TokenType.NUMBER,
    TokenType.BOOL_LITERAL,
    TokenType.VEC2_LITERAL,
    TokenType.PERCENT_LITERAL,
    TokenType.IDENTIFIER,
    TokenType.RPAREN,
    TokenType.RBRACKET,
    TokenType.HASHTAG,
    TokenType.BEGIN,
    TokenType.TYPE,
})


# Tokens after which a new statement starts
STATEMENT_BOUNDARY_TOKENS: frozenset[TokenType] = frozenset({
    TokenType.SEMICOLON,
    TokenType.END,
    TokenType.COLON,
    TokenType.SECTION,
    TokenType.BLOCK_START,
    TokenType.BLOCK_END,
})


OPERATOR_SYMBOLS: dict[TokenType, str] = {
    TokenType.PLUS: "+",
    TokenType.MINUS: "-",
    TokenType.STAR: "*",
    TokenType.SLASH: "/",
    TokenType.PERCENT: "%",
    TokenType.CARET: "^",
    TokenType.LT: "<",
    TokenType.GT: ">",
    TokenType.LE: "<=",
    TokenType.GE: ">=",
    TokenType.EQ: "==",
    TokenType.NE: "!=",
    TokenType.AND: "&&",
    TokenType.OR: "||",
    TokenType.NOT: "!",
    TokenType.ASSIGN: "=",
    TokenType.DOT: ".",
}


def operator_symbol(token_type: TokenType) -> str:
    """Source spelling of an operator token type, for messages."""
    return OPERATOR_SYMBOLS.get(token_type, token_type.name)
