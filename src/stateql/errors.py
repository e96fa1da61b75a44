"""Errors and diagnostics for the StateQL compiler."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Severity(Enum):
    """How serious a diagnostic is."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True)
class Diagnostic:
    """A problem found in the source, attached to a 1-based line."""

    severity: Severity
    code: str
    message: str
    line: int | None = None
    column: int = 0

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def __str__(self) -> str:
        where = f"line {self.line}: " if self.line is not None else ""
        return f"{where}{self.severity.value}: {self.message} [{self.code}]"


class StateQLError(Exception):
    """Base class for every error raised by the compiler."""

    code = "StateQLError"

    def __init__(self, message: str, line: int | None = None, column: int = 0) -> None:
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(
            severity=Severity.ERROR,
            code=self.code,
            message=self.message,
            line=self.line,
            column=self.column,
        )

    def __str__(self) -> str:
        if self.line is not None:
            return f"line {self.line}: {self.message}"
        return self.message


class MalformedFieldDeclaration(StateQLError):
    """A field line does not have the ``name is type`` shape."""

    code = "MalformedFieldDeclaration"


class InvalidRelationshipClause(StateQLError):
    """A ``many`` or ``action`` field lacks a usable ``thru`` clause."""

    code = "InvalidRelationshipClause"


MalformedRelationshipClause = InvalidRelationshipClause


class FieldWithoutEntity(StateQLError):
    """A field line appears before any entity header."""

    code = "FieldWithoutEntity"


class MalformedEntityHeader(StateQLError):
    """An entity header has no name."""

    code = "MalformedEntityHeader"


class DuplicateDefinition(StateQLError):
    """An entity or field name is declared twice."""

    code = "DuplicateDefinition"


class ColumnCollision(StateQLError):
    """Two generated columns of one table would share a name."""

    code = "ColumnCollision"


class StatementExecutionError(StateQLError):
    """The statement executor rejected a DDL statement."""

    code = "StatementExecutionError"

    def __init__(self, message: str, statement: str) -> None:
        super().__init__(message)
        self.statement = statement


class SchemaParseError(StateQLError):
    """Raised when a parse produced one or more error diagnostics."""

    code = "SchemaParseError"

    def __init__(self, diagnostics: list[Diagnostic]) -> None:
        first = diagnostics[0]
        message = first.message
        if len(diagnostics) > 1:
            message += f" (and {len(diagnostics) - 1} more error(s))"
        super().__init__(message, line=first.line, column=first.column)
        self.diagnostics = diagnostics


UNKNOWN_PRIMITIVE_TYPE = "UnknownPrimitiveType"
