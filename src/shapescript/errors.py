"""
Shape script exceptions and error handling.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan, SourceLocation


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"


_NO_LOCATION = SourceLocation(0, 0, 0)
NO_SPAN = SourceSpan(_NO_LOCATION, _NO_LOCATION)


@dataclass
class Diagnostic:
    """A single diagnostic message (error, warning, etc.)."""
    code: str                       # E001, E101, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: SourceSpan = NO_SPAN
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    @property
    def has_location(self) -> bool:
        return self.span.start.line > 0

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        # Header: location: severity[code]: message
        if self.has_location:
            parts.append(f"{self.span.start}: {self.severity.value}[{self.code}]: {self.message}")
        else:
            parts.append(f"{self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.source_line is not None and self.has_location:
            parts.append("  |")
            line_num = str(self.span.start.line)
            parts.append(f"{line_num:>3} | {self.source_line}")

            col = self.span.start.column
            if self.span.start.line == self.span.end.line:
                end_col = self.span.end.column
            else:
                end_col = len(self.source_line) + 1
            underline_len = max(1, end_col - col)
            parts.append(f"    | {' ' * (col - 1)}{'^' * underline_len}")

        for hint in self.hints:
            parts.append(f"    = hint: {hint}")

        return "\n".join(parts)

    def to_json(self) -> dict:
        """Convert to JSON-serializable dict for tooling integration."""
        return {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "range": {
                "start": {
                    "line": self.span.start.line,
                    "column": self.span.start.column,
                    "offset": self.span.start.offset,
                },
                "end": {
                    "line": self.span.end.line,
                    "column": self.span.end.column,
                    "offset": self.span.end.offset,
                },
            },
            "hints": self.hints,
        }


class ShapeScriptError(Exception):
    """Base exception for shape script errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    @property
    def message(self) -> str:
        return self.diagnostic.message

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexError(ShapeScriptError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParseError(ShapeScriptError):
    """Error during parsing (E1xx)."""
    pass


class ExecError(ShapeScriptError):
    """Error during execution (E4xx)."""
    pass


def _error(cls, code: str, message: str, span: Optional[SourceSpan] = None,
           source_line: Optional[str] = None, hints: Optional[List[str]] = None):
    diag = Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span or NO_SPAN,
        source_line=source_line,
        hints=hints or [],
    )
    return cls(diag)


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E001: Unexpected character."""
    return _error(LexError, "E001", f"unexpected character '{char}'", span, source_line)


def error_invalid_number_literal(text: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E006: Malformed number literal."""
    return _error(
        LexError, "E006", f"malformed number literal '{text}'", span, source_line,
        hints=["a number may contain at most one '.'"],
    )


def error_unknown_selector(text: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E009: Unknown '#' or ':' selector."""
    return _error(LexError, "E009", f"unknown selector '{text}'", span, source_line)


def error_unterminated_group(opener: str, span: SourceSpan, source_line: str = None) -> LexError:
    """E010: '(' or '[' never closed."""
    return _error(LexError, "E010", f"unterminated group: '{opener}' is never closed",
                  span, source_line)


def error_double_putback(span: SourceSpan) -> LexError:
    """E011: More than one token pushed back."""
    return _error(LexError, "E011", "only one token can be put back", span)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParseError:
    """E101: Unexpected token."""
    return _error(ParseError, "E101", f"expected {expected}, found {found}", span, source_line)


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParseError:
    """E100: Unexpected end of file."""
    return _error(ParseError, "E100", f"unexpected end of file, expected {expected}", span)


def error_duplicate_argument(name: str, span: SourceSpan) -> ParseError:
    """E102: Named argument given twice."""
    return _error(ParseError, "E102", f"duplicate function argument '{name}'", span)


def error_multiple_positional(span: SourceSpan) -> ParseError:
    """E103: More than one unnamed argument."""
    return _error(
        ParseError, "E103",
        "passing more than one unnamed argument to a function is not allowed", span,
        hints=["name the extra arguments: f[a, b: value]"],
    )


def error_malformed_type(found: str, span: SourceSpan) -> ParseError:
    """E104: Not a type name."""
    return _error(
        ParseError, "E104", f"malformed type name '{found}'", span,
        hints=["valid types: Number, Bool, Vec2, Shape"],
    )


def error_nested_function(name: str, span: SourceSpan) -> ParseError:
    """E105: Function declared inside a function."""
    return _error(ParseError, "E105",
                  f"function '{name}' cannot be declared inside another function", span)


def error_duplicate_function(name: str, span: SourceSpan) -> ParseError:
    """E106: Function name already declared."""
    return _error(ParseError, "E106", f"function '{name}' is already declared", span)


def error_missing_clause(clause: str, construct: str, span: SourceSpan) -> ParseError:
    """E107: Required clause missing."""
    return _error(ParseError, "E107", f"missing '{clause}' in {construct}", span)


def error_adaptive_arity(count: int, span: SourceSpan) -> ParseError:
    """E108: Adaptive export without exactly nine parts."""
    return _error(
        ParseError, "E108",
        f"adaptive export needs exactly 9 parts, found {count}", span,
        hints=["order: bl, l, tl, t, tr, r, br, b, c; use # for an empty slot"],
    )


def error_misplaced_statement(what: str, where: str, span: SourceSpan) -> ParseError:
    """E109: Statement not allowed in this position."""
    return _error(ParseError, "E109", f"'{what}' is only allowed {where}", span)


# --- Runtime error codes ---

def error_unknown_variable(name: str, span: SourceSpan = None) -> ExecError:
    """E401: Assignment to or read of an unbound variable."""
    return _error(ExecError, "E401", f"unknown variable '{name}'", span)


def error_redefinition(name: str, span: SourceSpan = None) -> ExecError:
    """E402: let on an already bound variable."""
    return _error(ExecError, "E402", f"variable '{name}' is already defined", span)


def error_operator_mismatch(op: str, left: str, right: Optional[str] = None,
                            span: SourceSpan = None) -> ExecError:
    """E403: Operator applied to unsupported kinds."""
    if right is None:
        message = f"cannot apply '{op}' to {left}"
    else:
        message = f"cannot apply '{op}' to {left} and {right}"
    return _error(ExecError, "E403", message, span)


def error_null_value(op: str, span: SourceSpan = None) -> ExecError:
    """E404: Null used as an operand."""
    return _error(ExecError, "E404", f"null value: cannot apply '{op}'", span)


def error_illegal_field(field_name: str, kind: str, span: SourceSpan = None) -> ExecError:
    """E405: Field access other than x/y on a Vec2."""
    return _error(ExecError, "E405", f"{kind} has no field '{field_name}'", span,
                  hints=["only Vec2 values have fields, 'x' and 'y'"])


def error_recursive_call(name: str, span: SourceSpan = None) -> ExecError:
    """E406: Function called while already active."""
    return _error(ExecError, "E406", f"recursive call to function '{name}' is not supported", span)


def error_loop_control(keyword: str, span: SourceSpan = None) -> ExecError:
    """E407: break/continue outside a loop."""
    return _error(ExecError, "E407", f"'{keyword}' outside of a loop", span)


def error_unknown_function(name: str, span: SourceSpan = None) -> ExecError:
    """E408: Call to a name that is neither builtin nor declared."""
    return _error(ExecError, "E408", f"unknown function '{name}'", span)


def error_bad_argument(message: str, span: SourceSpan = None) -> ExecError:
    """E409: Argument missing, unknown or of the wrong kind."""
    return _error(ExecError, "E409", f"invalid argument: {message}", span)


def error_type_mismatch(expected: str, found: str, what: str,
                        span: SourceSpan = None) -> ExecError:
    """E410: Value of the wrong kind."""
    return _error(ExecError, "E410", f"{what}: expected {expected} but found {found}", span)


def error_missing_input(name: str, span: SourceSpan = None) -> ExecError:
    """E411: Input without a provided value or default."""
    return _error(ExecError, "E411", f"missing input parameter '{name}'", span)


def error_no_shape_selected(span: SourceSpan = None) -> ExecError:
    """E412: Slot export without a value outside a shape builder."""
    return _error(ExecError, "E412", "no shape selected", span,
                  hints=["use 'export :slot expr;' or export inside a begin[...] block"])


def error_duplicate_slot(slot: str, span: SourceSpan = None) -> ExecError:
    """E413: Adaptive slot exported twice."""
    return _error(ExecError, "E413", f"adaptive slot '{slot}' was already exported", span)


def error_unknown_slot(slot: str, span: SourceSpan = None) -> ExecError:
    """E414: Unknown adaptive slot name."""
    return _error(ExecError, "E414", f"unknown export slot '{slot}'", span)


def error_missing_export(span: SourceSpan = None) -> ExecError:
    """E415: Script finished without exporting."""
    return _error(ExecError, "E415", "missing export: the script never exported a shape", span)


def error_export_kind(expected: str, found: str, span: SourceSpan = None) -> ExecError:
    """E416: Export kind does not match the declared section."""
    return _error(ExecError, "E416", f"script declares #{expected} but exports {found}", span)


def error_execution(message: str, span: SourceSpan = None) -> ExecError:
    """E400: Generic runtime failure."""
    return _error(ExecError, "E400", message, span)


# =============================================================================
# Warnings
# =============================================================================

def warning_no_export(span: SourceSpan = None) -> Diagnostic:
    """W001: Nothing in the script can ever export a shape."""
    return Diagnostic(
        code="W001",
        message="script has no export statement",
        severity=ErrorSeverity.WARNING,
        span=span or NO_SPAN,
        hints=["add 'export <shape>;' or an 'export adaptive' statement"],
    )


class DiagnosticCollector:
    """Collects diagnostics during compilation."""

    def __init__(self, max_errors: int = 20):
        self.diagnostics: List[Diagnostic] = []
        self.max_errors = max_errors
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def add_error(self, error: ShapeScriptError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == ErrorSeverity.WARNING)

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def should_stop(self) -> bool:
        """Check if we've hit the max error limit."""
        return self._error_count >= self.max_errors

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0:
            parts.append(f"\n{self._error_count} error(s), {self.warning_count} warning(s)")
        elif self.warning_count > 0:
            parts.append(f"\n{self.warning_count} warning(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
            "warning_count": self.warning_count,
        }
