"""
Lexer for shape scripts.

Converts source text into a stream of tokens for the parser.
Supports:
- Line comments (// to end of line)
- Number literals with '_' separators, an optional leading '-' and π
- Keywords, word operators (and, or, is, isnt, isn't) and type names
- Compound assignment operators (+=, -=, *=, /=, %=, ^=)
- Context-sensitive tokens: #section, +block ... <, >percent,
  export :slot and [x, y] vector literals
"""

import math
import re
from typing import List, Optional, Iterator
from .tokens import (
    Token, TokenType, SourceLocation, SourceSpan, KEYWORDS, SECTIONS,
    ARITHMETIC_OPERATORS, OPERAND_TOKENS, STATEMENT_BOUNDARY_TOKENS,
)
from .errors import (
    error_unexpected_character,
    error_invalid_number_literal,
    error_unknown_selector,
    error_unterminated_group,
    error_double_putback,
    error_unexpected_token,
    error_unexpected_eof,
)


# [x, y] with two plain numbers, scanned as one VEC2_LITERAL token
_VEC2_PATTERN = re.compile(
    r"\[\s*(-?[0-9][0-9_]*(?:\.[0-9_]*)?)\s*,\s*(-?[0-9][0-9_]*(?:\.[0-9_]*)?)\s*\]"
)


class Lexer:
    """
    Tokenizer for shape scripts.

    Several characters mean different things depending on the token that
    precedes them, so the lexer remembers the last token it produced.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()

    Or with one token of lookahead:
        stream = Lexer(source_code).stream()
        token = stream.next()
        stream.putback(token)
    """

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename
        self.pos = 0            # Current position in source
        self.line = 1           # Current line (1-indexed)
        self.column = 1         # Current column (1-indexed)
        self._lines: Optional[List[str]] = None

        self.previous: Optional[Token] = None
        # Open '(' and '[' with their spans, for unterminated group errors
        self.groups: List[Token] = []

    @property
    def lines(self) -> List[str]:
        """Lazy-load line list for error reporting."""
        if self._lines is None:
            self._lines = self.source.splitlines()
        return self._lines

    def get_source_line(self, line_num: int) -> Optional[str]:
        """Get a specific line of source (1-indexed)."""
        if 1 <= line_num <= len(self.lines):
            return self.lines[line_num - 1]
        return None

    def _location(self) -> SourceLocation:
        """Get current source location."""
        return SourceLocation(self.line, self.column, self.pos, self.filename)

    def _span(self, start: SourceLocation) -> SourceSpan:
        """Create a span from start to current position."""
        return SourceSpan(start, self._location())

    def _peek(self, offset: int = 0) -> str:
        """Look at character at current position + offset without consuming."""
        idx = self.pos + offset
        if idx >= len(self.source):
            return '\0'
        return self.source[idx]

    def _advance(self) -> str:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return '\0'
        ch = self.source[self.pos]
        self.pos += 1
        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return ch

    def _match(self, expected: str) -> bool:
        """Consume character if it matches expected."""
        if self._peek() == expected:
            self._advance()
            return True
        return False

    def _is_at_end(self) -> bool:
        return self.pos >= len(self.source)

    def _skip_whitespace_and_comments(self) -> None:
        while not self._is_at_end():
            ch = self._peek()
            if ch.isspace():
                self._advance()
            elif ch == '/' and self._peek(1) == '/':
                while self._peek() != '\n' and not self._is_at_end():
                    self._advance()
            else:
                break

    def _make_token(self, token_type: TokenType, value, start: SourceLocation,
                    lexeme: Optional[str] = None) -> Token:
        """Create a token."""
        span = self._span(start)
        if lexeme is None:
            lexeme = self.source[start.offset:self.pos]
        return Token(token_type, value, lexeme, span)

    # --- Context helpers ---

    def _after_operand(self) -> bool:
        """True if the previous token ends a value."""
        return self.previous is not None and self.previous.type in OPERAND_TOKENS

    def _at_statement_boundary(self) -> bool:
        """True if the next token starts a statement."""
        return self.previous is None or self.previous.type in STATEMENT_BOUNDARY_TOKENS

    @staticmethod
    def _is_ident_start(ch: str) -> bool:
        return ch.isascii() and (ch.isalpha() or ch == '_')

    @staticmethod
    def _is_ident_char(ch: str) -> bool:
        return ch.isascii() and (ch.isalnum() or ch == '_')

    # --- Scanners ---

    def _scan_number(self, start: SourceLocation) -> Token:
        """Scan a numeric literal; a leading '-' was already consumed if present."""
        while self._peek().isdigit() or self._peek() in '._':
            self._advance()

        lexeme = self.source[start.offset:self.pos]
        if lexeme.count('.') > 1:
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )
        try:
            value = float(lexeme.replace('_', ''))
        except ValueError:
            raise error_invalid_number_literal(
                lexeme, self._span(start), self.get_source_line(start.line)
            )
        return self._make_token(TokenType.NUMBER, value, start, lexeme)

    def _scan_name(self) -> str:
        start = self.pos
        while self._is_ident_char(self._peek()):
            self._advance()
        return self.source[start:self.pos]

    def _scan_identifier_or_keyword(self) -> Token:
        """Scan an identifier or keyword."""
        start = self._location()
        lexeme = self._scan_name()

        # isn't is the only keyword with an apostrophe
        if lexeme == "isn" and self._peek() == "'" and self._peek(1) == 't' \
                and not self._is_ident_char(self._peek(2)):
            self._advance()
            self._advance()
            return self._make_token(TokenType.NE, "!=", start)

        if lexeme in KEYWORDS:
            token_type = KEYWORDS[lexeme]
            if token_type == TokenType.BOOL_LITERAL:
                value = lexeme == "true"
            else:
                value = lexeme
            return self._make_token(token_type, value, start, lexeme)

        return self._make_token(TokenType.IDENTIFIER, lexeme, start, lexeme)

    def _scan_vec2(self, start: SourceLocation) -> Optional[Token]:
        """Scan '[x, y]' if the source at the cursor is a plain vector literal."""
        match = _VEC2_PATTERN.match(self.source, self.pos)
        if match is None:
            return None
        try:
            x = float(match.group(1).replace('_', ''))
            y = float(match.group(2).replace('_', ''))
        except ValueError:
            return None
        while self.pos < match.end():
            self._advance()
        return self._make_token(TokenType.VEC2_LITERAL, (x, y), start)

    def _scan_token(self) -> Token:
        """Scan the next token."""
        self._skip_whitespace_and_comments()

        if self._is_at_end():
            if self.groups:
                opener = self.groups[-1]
                raise error_unterminated_group(
                    opener.lexeme, opener.span, self.get_source_line(opener.span.start.line)
                )
            return self._make_token(TokenType.EOF, None, self._location(), "")

        start = self._location()
        ch = self._peek()

        # Numbers
        if ch.isdigit():
            return self._scan_number(start)
        if ch == '-' and self._peek(1).isdigit() and not self._after_operand():
            self._advance()
            return self._scan_number(start)
        if ch == 'π':
            self._advance()
            return self._make_token(TokenType.NUMBER, math.pi, start)

        # Identifiers and keywords
        if self._is_ident_start(ch):
            return self._scan_identifier_or_keyword()

        # Vector literal must be checked before consuming '['
        if ch == '[' and not self._after_operand():
            token = self._scan_vec2(start)
            if token is not None:
                return token

        self._advance()

        # Section selector or empty marker
        if ch == '#':
            if self._is_ident_start(self._peek()):
                name = self._scan_name()
                if name not in SECTIONS:
                    raise error_unknown_selector(
                        f"#{name}", self._span(start), self.get_source_line(start.line)
                    )
                return self._make_token(TokenType.SECTION, name, start)
            return self._make_token(TokenType.HASHTAG, None, start)

        # Named block introducer
        if ch == '+' and self._is_ident_start(self._peek()) and self._at_statement_boundary():
            name = self._scan_name()
            return self._make_token(TokenType.BLOCK_START, name, start)

        # Block terminator
        if ch == '<' and self._peek() != '=' and self._at_statement_boundary():
            return self._make_token(TokenType.BLOCK_END, None, start)

        # Percentage marker
        if ch == '>' and self._peek().isdigit() and not self._after_operand():
            number = self._scan_number(self._location())
            return self._make_token(TokenType.PERCENT_LITERAL, number.value / 100.0, start)

        # Export slot selector
        if ch == ':' and self._is_ident_start(self._peek()) and \
                self.previous is not None and self.previous.type == TokenType.EXPORT:
            name = self._scan_name()
            return self._make_token(TokenType.SUBKEYWORD, name, start)

        # Arithmetic operators and their compound assignment forms
        if ch in ARITHMETIC_OPERATORS:
            op_type = ARITHMETIC_OPERATORS[ch]
            if self._match('='):
                return self._make_token(TokenType.OPERATOR_ASSIGN, op_type, start)
            return self._make_token(op_type, ch, start)

        # Two-character operators
        if ch == '=' and self._match('='):
            return self._make_token(TokenType.EQ, "==", start)
        if ch == '!' and self._match('='):
            return self._make_token(TokenType.NE, "!=", start)
        if ch == '<' and self._match('='):
            return self._make_token(TokenType.LE, "<=", start)
        if ch == '>' and self._match('='):
            return self._make_token(TokenType.GE, ">=", start)
        if ch == '&' and self._match('&'):
            return self._make_token(TokenType.AND, "&&", start)
        if ch == '|' and self._match('|'):
            return self._make_token(TokenType.OR, "||", start)

        # Groups
        if ch in '([':
            token = self._make_token(
                TokenType.LPAREN if ch == '(' else TokenType.LBRACKET, ch, start
            )
            self.groups.append(token)
            return token
        if ch in ')]':
            if self.groups:
                self.groups.pop()
            return self._make_token(
                TokenType.RPAREN if ch == ')' else TokenType.RBRACKET, ch, start
            )

        single_char_tokens = {
            '<': TokenType.LT,
            '>': TokenType.GT,
            '=': TokenType.ASSIGN,
            '!': TokenType.NOT,
            ':': TokenType.COLON,
            ';': TokenType.SEMICOLON,
            ',': TokenType.COMMA,
            '.': TokenType.DOT,
        }

        if ch in single_char_tokens:
            return self._make_token(single_char_tokens[ch], ch, start)

        raise error_unexpected_character(
            ch, self._span(start), self.get_source_line(start.line)
        )

    def next_token(self) -> Token:
        """Scan one token and remember it as context for the next."""
        token = self._scan_token()
        self.previous = token
        return token

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source, returning a list of tokens."""
        tokens = []
        while True:
            token = self.next_token()
            tokens.append(token)
            if token.type == TokenType.EOF:
                break
        return tokens

    def stream(self) -> "TokenStream":
        """Tokenize lazily, with one token of pushback."""
        return TokenStream(iter(self))

    def __iter__(self) -> Iterator[Token]:
        """Iterate over tokens."""
        while True:
            token = self.next_token()
            yield token
            if token.type == TokenType.EOF:
                break


class TokenStream:
    """
    A token iterator with exactly one token of pushback.

    After EOF has been produced, next() keeps returning the EOF token.
    """

    def __init__(self, tokens):
        self._tokens = iter(tokens)
        self._pushed: Optional[Token] = None
        self._eof: Optional[Token] = None

    def next(self) -> Token:
        """Consume and return the next token."""
        if self._pushed is not None:
            token, self._pushed = self._pushed, None
            return token
        if self._eof is not None:
            return self._eof
        token = next(self._tokens)
        if token.type == TokenType.EOF:
            self._eof = token
        return token

    def putback(self, token: Token) -> None:
        """Push a token back so the next call to next() returns it."""
        if self._pushed is not None:
            raise error_double_putback(token.span)
        self._pushed = token

    def peek(self) -> Token:
        """Look at the next token without consuming it."""
        token = self.next()
        self.putback(token)
        return token

    def expect(self, token_type: TokenType) -> Token:
        """Consume the next token, which must be of the given type."""
        token = self.next()
        if token.type == token_type:
            return token
        if token.type == TokenType.EOF:
            raise error_unexpected_eof(token_type.name, token.span)
        raise error_unexpected_token(token_type.name, token.type.name, token.span)

    def __iter__(self) -> Iterator[Token]:
        while True:
            token = self.next()
            yield token
            if token.type == TokenType.EOF:
                break


def tokenize(source: str, filename: Optional[str] = None) -> List[Token]:
    """
    Convenience function to tokenize source code.

    Args:
        source: The source code to tokenize
        filename: Optional filename for error messages

    Returns:
        List of tokens, ending with EOF

    Raises:
        LexError: If tokenization fails
    """
    lexer = Lexer(source, filename)
    return lexer.tokenize()
