"""
Forge-specific exceptions and error handling.

Error code ranges:
- E0xx: Lexer errors
- E1xx: Parser errors
- E4xx: Runtime errors

None of these are recovered from inside the language core. They propagate
to whoever called load, reload, emit or tick.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List
from .tokens import SourceSpan


class ErrorSeverity(Enum):
    """Severity levels for diagnostics."""
    ERROR = "error"
    WARNING = "warning"


@dataclass
class Diagnostic:
    """A single diagnostic message."""
    code: str                       # E001, E101, E401, etc.
    message: str                    # Human-readable message
    severity: ErrorSeverity
    span: Optional[SourceSpan] = None
    source_line: Optional[str] = None   # The actual line of source code
    hints: List[str] = field(default_factory=list)

    def format(self, show_source: bool = True) -> str:
        """Format the diagnostic for display."""
        parts = []

        if self.span is not None:
            parts.append(f"{self.span.start}: {self.severity.value}[{self.code}]: {self.message}")
        else:
            parts.append(f"{self.severity.value}[{self.code}]: {self.message}")

        # Source line with caret
        if show_source and self.span is not None and self.source_line is not None:
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
        result = {
            "code": self.code,
            "message": self.message,
            "severity": self.severity.value,
            "hints": self.hints,
        }
        if self.span is not None:
            result["file"] = self.span.start.filename
            result["range"] = {
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
            }
        return result


class ForgeError(Exception):
    """Base exception for Forge errors."""

    def __init__(self, diagnostic: Diagnostic):
        self.diagnostic = diagnostic
        super().__init__(diagnostic.message)

    @property
    def code(self) -> str:
        return self.diagnostic.code

    @property
    def span(self) -> Optional[SourceSpan]:
        return self.diagnostic.span

    def __str__(self) -> str:
        return self.diagnostic.format()


class LexerError(ForgeError):
    """Error during lexical analysis (E0xx)."""
    pass


class ParserError(ForgeError):
    """Error during parsing (E1xx)."""
    pass


class ForgeRuntimeError(ForgeError):
    """Error while executing a program or dispatching an event (E4xx)."""
    pass


# --- Lexer error codes ---

def error_unexpected_character(char: str, span: SourceSpan, source_line: str = None) -> LexerError:
    """E001: Unexpected character."""
    diag = Diagnostic(
        code="E001",
        message=f"unexpected character '{char}'",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return LexerError(diag)


def error_unterminated_string(span: SourceSpan, source_line: str = None) -> LexerError:
    """E002: Unterminated string literal."""
    diag = Diagnostic(
        code="E002",
        message="unterminated string literal",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["string literals must be closed on the same line with a matching quote"],
    )
    return LexerError(diag)


# --- Parser error codes ---

def error_unexpected_token(expected: str, found: str, span: SourceSpan,
                           source_line: str = None) -> ParserError:
    """E101: Unexpected token."""
    diag = Diagnostic(
        code="E101",
        message=f"expected {expected}, found {found}",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


def error_unexpected_eof(expected: str, span: SourceSpan) -> ParserError:
    """E102: Unexpected end of file."""
    diag = Diagnostic(
        code="E102",
        message=f"unexpected end of file, expected {expected}",
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return ParserError(diag)


def error_invalid_assignment_target(span: SourceSpan, source_line: str = None) -> ParserError:
    """E103: Invalid set target."""
    diag = Diagnostic(
        code="E103",
        message="invalid assignment target",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
        hints=["'set' accepts a name, a member access (a.b, a[i]) or a reactive reference ($a.b)"],
    )
    return ParserError(diag)


def error_outside_loop(keyword: str, span: SourceSpan, source_line: str = None) -> ParserError:
    """E104: break/continue outside a loop body."""
    diag = Diagnostic(
        code="E104",
        message=f"'{keyword}' outside loop",
        severity=ErrorSeverity.ERROR,
        span=span,
        source_line=source_line,
    )
    return ParserError(diag)


# --- Runtime error codes ---

def runtime_error(message: str, span: Optional[SourceSpan] = None,
                  code: str = "E400") -> ForgeRuntimeError:
    """E400: Generic runtime failure (bad operand, bad event name, ...)."""
    diag = Diagnostic(
        code=code,
        message=message,
        severity=ErrorSeverity.ERROR,
        span=span,
    )
    return ForgeRuntimeError(diag)


def error_undefined_variable(name: str, span: Optional[SourceSpan] = None) -> ForgeRuntimeError:
    """E401: Undefined variable."""
    return runtime_error(f"Undefined variable: {name}", span, code="E401")


def error_not_callable(description: str, span: Optional[SourceSpan] = None) -> ForgeRuntimeError:
    """E402: Calling something that is not a function."""
    return runtime_error(f"{description} is not callable", span, code="E402")


def error_null_access(span: Optional[SourceSpan] = None, assign: bool = False) -> ForgeRuntimeError:
    """E403: Member access or assignment on null."""
    if assign:
        return runtime_error("Cannot assign to property of null", span, code="E403")
    return runtime_error("Cannot access property of null", span, code="E403")


def error_unknown_schema(name: str, span: Optional[SourceSpan] = None) -> ForgeRuntimeError:
    """E404: Instance of an unregistered schema."""
    return runtime_error(f"Unknown schema: {name}", span, code="E404")


def error_missing_field(field_name: str, schema: str, instance: str,
                        span: Optional[SourceSpan] = None) -> ForgeRuntimeError:
    """E405: Required schema field missing at construction."""
    return runtime_error(
        f'Missing required field "{field_name}" in {schema} instance "{instance}"',
        span, code="E405",
    )


def error_loop_limit(limit: int, span: Optional[SourceSpan] = None) -> ForgeRuntimeError:
    """E406: Configured loop iteration ceiling exceeded."""
    return runtime_error(f"Loop exceeded {limit} iterations", span, code="E406")


def error_division_by_zero(span: Optional[SourceSpan] = None) -> ForgeRuntimeError:
    """E407: Division or modulo by zero."""
    return runtime_error("Division by zero", span, code="E407")


def error_call_depth(limit: int, span: Optional[SourceSpan] = None) -> ForgeRuntimeError:
    """E408: Function calls nested deeper than the configured ceiling."""
    return runtime_error(f"Maximum call depth {limit} exceeded", span, code="E408")


# --- Warnings ---

def warning_import_not_executed(source: str, span: SourceSpan) -> Diagnostic:
    """W001: import statements are parsed but modules are not resolved."""
    return Diagnostic(
        code="W001",
        message=f"import of \"{source}\" is recorded but not executed",
        severity=ErrorSeverity.WARNING,
        span=span,
        hints=["load the imported file into the same VM before this one"],
    )


class DiagnosticCollector:
    """Collects diagnostics across several files (used by the CLI)."""

    def __init__(self):
        self.diagnostics: List[Diagnostic] = []
        self._error_count = 0

    def add(self, diagnostic: Diagnostic) -> None:
        """Add a diagnostic."""
        self.diagnostics.append(diagnostic)
        if diagnostic.severity == ErrorSeverity.ERROR:
            self._error_count += 1

    def add_error(self, error: ForgeError) -> None:
        """Add an error exception as a diagnostic."""
        self.add(error.diagnostic)

    @property
    def error_count(self) -> int:
        return self._error_count

    @property
    def has_errors(self) -> bool:
        return self._error_count > 0

    @property
    def warning_count(self) -> int:
        return sum(1 for d in self.diagnostics if d.severity == ErrorSeverity.WARNING)

    def format_all(self, show_source: bool = True) -> str:
        """Format all diagnostics for display."""
        parts = [d.format(show_source) for d in self.diagnostics]
        if self._error_count > 0 or self.warning_count > 0:
            parts.append(f"{self._error_count} error(s), {self.warning_count} warning(s)")
        return "\n\n".join(parts)

    def to_json(self) -> dict:
        """Convert all diagnostics to JSON format."""
        return {
            "diagnostics": [d.to_json() for d in self.diagnostics],
            "error_count": self._error_count,
            "warning_count": self.warning_count,
        }
