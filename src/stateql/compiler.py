"""Compiles a SchemaModel into relational DDL."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from stateql.errors import ColumnCollision, InvalidRelationshipClause, StatementExecutionError
from stateql.executor import StatementExecutor
from stateql.model import Entity, FieldKind, ManyRelationField, SchemaModel
from stateql.type_mapper import is_known_type, map_type

logger = logging.getLogger(__name__)

DEFAULT_DIALECT = "postgresql"

# Column definition of the synthetic primary key, per SQL dialect
PRIMARY_KEY_COLUMNS: dict[str, str] = {
    "postgresql": "SERIAL PRIMARY KEY",
    "sqlite": "INTEGER PRIMARY KEY AUTOINCREMENT",
}

PRIMARY_KEY_NAME = "id"


def quote_identifier(name: str) -> str:
    """Quote an SQL identifier so reserved words like ``user`` are valid."""
    return '"' + name.replace('"', '""') + '"'


@dataclass
class CompileResult:
    """The statements a compile run produced (and, after apply, executed)."""

    dialect: str
    statements: list[str] = field(default_factory=list)


class SchemaCompiler:
    """Emits one table per entity and one junction table per many-relationship.

    Tables come first, in entity declaration order, followed by the junction
    tables. The whole model is validated before any statement is returned.
    """

    def __init__(self, dialect: str | None = None) -> None:
        if dialect is not None:
            _check_dialect(dialect)
        self.dialect = dialect
        self._lock = threading.Lock()

    def table_statements(self, model: SchemaModel, dialect: str | None = None) -> list[str]:
        dialect = self._resolve_dialect(dialect)
        return [self._table_statement(entity, dialect) for entity in model]

    def relationship_statements(self, model: SchemaModel) -> list[str]:
        statements: list[str] = []
        for entity in model:
            for relation in entity.fields_of_kind(FieldKind.MANY_RELATION):
                assert isinstance(relation, ManyRelationField)
                statements.append(self._junction_statement(entity, relation))
        return statements

    def compile(self, model: SchemaModel, dialect: str | None = None) -> CompileResult:
        """Return every DDL statement for *model* without executing anything.

        Raises:
            ColumnCollision: Two columns of one table would share a name.
            InvalidRelationshipClause: A many-relationship has no ``through``.
        """
        dialect = self._resolve_dialect(dialect)
        statements = self.table_statements(model, dialect)
        statements.extend(self.relationship_statements(model))
        return CompileResult(dialect=dialect, statements=statements)

    def apply(self, model: SchemaModel, executor: StatementExecutor) -> CompileResult:
        """Compile *model* and execute the statements one by one.

        The first rejected statement aborts the run with StatementExecutionError.
        Tables created before the failure are left in place.
        """
        result = self.compile(model, getattr(executor, "dialect", None))
        with self._lock:
            for statement in result.statements:
                try:
                    executor.execute(statement)
                except StatementExecutionError:
                    raise
                except Exception as exc:
                    raise StatementExecutionError(str(exc), statement) from exc
        logger.info("Applied %d statements", len(result.statements))
        return result

    def _resolve_dialect(self, dialect: str | None) -> str:
        if self.dialect is not None:
            return self.dialect
        if dialect is None:
            return DEFAULT_DIALECT
        _check_dialect(dialect)
        return dialect

    def _table_statement(self, entity: Entity, dialect: str) -> str:
        columns = [(PRIMARY_KEY_NAME, PRIMARY_KEY_COLUMNS[dialect])]
        declared: dict[str, str] = {PRIMARY_KEY_NAME: "the synthetic primary key"}
        for f in entity.fields:
            if not f.has_column:
                continue
            column = f.name.lower()
            if column in declared:
                raise ColumnCollision(
                    f"Field '{f.name}' of '{entity.name}' collides with {declared[column]} "
                    f"(column '{column}')",
                    line=f.line,
                )
            declared[column] = f"field '{f.name}'"
            if not is_known_type(f.type):
                logger.warning(
                    "Unknown type %r for %s.%s, storing as %s",
                    f.type, entity.name, f.name, map_type(f.type),
                )
            columns.append((column, map_type(f.type)))

        body = ", ".join(f"{quote_identifier(name)} {sql_type}" for name, sql_type in columns)
        return f"CREATE TABLE IF NOT EXISTS {quote_identifier(entity.table_name)} ({body})"

    def _junction_statement(self, entity: Entity, relation: ManyRelationField) -> str:
        through = relation.through.strip().lower()
        if not through:
            raise InvalidRelationshipClause(
                f"Many field '{relation.name}' of '{entity.name}' has no 'thru' target",
                line=relation.line,
            )
        owner = entity.table_name
        if through == owner:
            raise ColumnCollision(
                f"Many field '{relation.name}' of '{entity.name}' goes thru '{relation.through}', "
                f"so both junction columns would be named '{owner}_id'",
                line=relation.line,
            )
        table = quote_identifier(f"{owner}_{relation.name.lower()}")
        owner_column = quote_identifier(f"{owner}_id")
        through_column = quote_identifier(f"{through}_id")
        return (
            f"CREATE TABLE IF NOT EXISTS {table} ("
            f"{owner_column} INTEGER REFERENCES {quote_identifier(owner)}(id), "
            f"{through_column} INTEGER REFERENCES {quote_identifier(through)}(id), "
            f"PRIMARY KEY ({owner_column}, {through_column}))"
        )


def _check_dialect(dialect: str) -> None:
    if dialect not in PRIMARY_KEY_COLUMNS:
        supported = ", ".join(sorted(PRIMARY_KEY_COLUMNS))
        raise ValueError(f"Unsupported SQL dialect '{dialect}' (supported: {supported})")
