"""Schema class tying parsing and compilation together."""

from __future__ import annotations

from stateql.compiler import CompileResult, SchemaCompiler
from stateql.errors import Diagnostic
from stateql.executor import StatementExecutor
from stateql.model import Entity, SchemaModel
from stateql.parsing import parse_source


class Schema:
    """A parsed StateQL source, ready to be compiled to DDL."""

    def __init__(
        self,
        model: SchemaModel,
        warnings: list[Diagnostic] | None = None,
        dialect: str | None = None,
    ) -> None:
        """Initialize a schema.

        Args:
            model: The parsed schema model.
            warnings: Non-fatal diagnostics reported while parsing.
            dialect: SQL dialect to compile for; defaults to the executor's.
        """
        self.model = model
        self.warnings = warnings or []
        self.compiler = SchemaCompiler(dialect)

    @classmethod
    def parse(cls, source: str, dialect: str | None = None) -> Schema:
        """Parse StateQL source text and create a schema.

        Args:
            source: StateQL source text.
            dialect: SQL dialect to compile for.

        Returns:
            A new Schema instance.

        Raises:
            SchemaParseError: If any line of the source was rejected.
        """
        result = parse_source(source)
        model = result.raise_for_errors()
        return cls(model, result.warnings, dialect)

    def get_entity(self, name: str) -> Entity:
        """Get an entity by name.

        Raises:
            KeyError: If the entity is not declared.
        """
        entity = self.model.get(name)
        if entity is None:
            raise KeyError(f"Unknown entity: {name}")
        return entity

    def list_entities(self) -> list[str]:
        return [entity.name for entity in self.model]

    def statements(self) -> list[str]:
        """Return the DDL statements for this schema without executing them."""
        return self.compiler.compile(self.model).statements

    def apply(self, executor: StatementExecutor) -> CompileResult:
        """Execute the DDL statements through *executor*."""
        return self.compiler.apply(self.model, executor)
