"""StateQL - compiles a line-oriented entity notation into relational DDL."""

from stateql.compiler import CompileResult, SchemaCompiler
from stateql.errors import (
    ColumnCollision,
    Diagnostic,
    DuplicateDefinition,
    FieldWithoutEntity,
    InvalidRelationshipClause,
    MalformedEntityHeader,
    MalformedFieldDeclaration,
    MalformedRelationshipClause,
    SchemaParseError,
    Severity,
    StateQLError,
    StatementExecutionError,
)
from stateql.executor import RecordingExecutor, SQLAlchemyExecutor, StatementExecutor
from stateql.model import (
    ActionField,
    ComputedField,
    Entity,
    Field,
    FieldKind,
    ManyRelationField,
    ScalarField,
    SchemaModel,
)
from stateql.parsing import ParseResult, parse_source
from stateql.schema import Schema
from stateql.type_mapper import PrimitiveType, map_type

__all__ = [
    # Main API
    "Schema",
    "parse_source",
    "ParseResult",
    "SchemaCompiler",
    "CompileResult",
    # Executors
    "StatementExecutor",
    "SQLAlchemyExecutor",
    "RecordingExecutor",
    # Model
    "SchemaModel",
    "Entity",
    "Field",
    "FieldKind",
    "ScalarField",
    "ManyRelationField",
    "ActionField",
    "ComputedField",
    "PrimitiveType",
    "map_type",
    # Errors
    "Diagnostic",
    "Severity",
    "StateQLError",
    "MalformedFieldDeclaration",
    "InvalidRelationshipClause",
    "MalformedRelationshipClause",
    "FieldWithoutEntity",
    "MalformedEntityHeader",
    "DuplicateDefinition",
    "ColumnCollision",
    "StatementExecutionError",
    "SchemaParseError",
]

__version__ = "0.1.0"
