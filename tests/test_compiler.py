"""Tests for the relational schema compiler."""

import logging
import threading
import time

import pytest

from stateql.compiler import SchemaCompiler, quote_identifier
from stateql.errors import ColumnCollision, InvalidRelationshipClause, StatementExecutionError
from stateql.executor import RecordingExecutor
from stateql.model import Entity, ManyRelationField, ScalarField, SchemaModel
from stateql.parsing import parse_source


def _model(source: str) -> SchemaModel:
    return parse_source(source).raise_for_errors()


USER_SOURCE = """
User:
- name is text
- age is number
- friends is many User thru befriendedBy
- share is action thru share(:email)
- score is number thru sum(points)
"""


class FailingExecutor:
    """Rejects the statement at a given position."""

    def __init__(self, fail_at: int) -> None:
        self.fail_at = fail_at
        self.statements: list[str] = []

    def execute(self, statement: str) -> None:
        if len(self.statements) == self.fail_at:
            raise RuntimeError('relation "befriendedby" does not exist')
        self.statements.append(statement)


class OverlapExecutor:
    """Records the largest number of statements running at once."""

    def __init__(self) -> None:
        self.active = 0
        self.max_active = 0
        self.statements: list[str] = []
        self._guard = threading.Lock()

    def execute(self, statement: str) -> None:
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        time.sleep(0.005)
        self.statements.append(statement)
        with self._guard:
            self.active -= 1


class TestTableStatements:
    """Tests for the table pass."""

    def test_columns_for_scalar_and_computed(self):
        statements = SchemaCompiler().table_statements(_model(USER_SOURCE))

        assert statements == [
            'CREATE TABLE IF NOT EXISTS "user" ('
            '"id" SERIAL PRIMARY KEY, "name" TEXT, "age" NUMERIC, "score" NUMERIC)'
        ]

    def test_sqlite_primary_key(self):
        statements = SchemaCompiler("sqlite").table_statements(_model("Tag:\n- label is text"))

        assert statements == [
            'CREATE TABLE IF NOT EXISTS "tag" ('
            '"id" INTEGER PRIMARY KEY AUTOINCREMENT, "label" TEXT)'
        ]

    def test_entity_without_columns(self):
        statements = SchemaCompiler().table_statements(_model("Tag:"))

        assert statements == ['CREATE TABLE IF NOT EXISTS "tag" ("id" SERIAL PRIMARY KEY)']

    def test_column_names_lowercased(self):
        statements = SchemaCompiler().table_statements(_model("Order:\n- PlacedAt is timestamp"))

        assert '"placedat" TIMESTAMP' in statements[0]
        assert 'EXISTS "order"' in statements[0]

    def test_unknown_type_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="stateql.compiler"):
            statements = SchemaCompiler().table_statements(_model("Doc:\n- data is json"))

        assert '"data" TEXT' in statements[0]
        assert "json" in caplog.text

    @pytest.mark.parametrize("name", ["id", "ID", "Id"])
    def test_declared_id_rejected(self, name):
        model = _model(f"User:\n- {name} is text\n- friends is many User thru befriendedBy")

        with pytest.raises(ColumnCollision, match="synthetic primary key") as exc_info:
            SchemaCompiler().compile(model)

        assert exc_info.value.line == 2

    def test_duplicate_columns_in_hand_built_model(self):
        entity = Entity(
            name="User",
            fields=(ScalarField(name="name", type="text"), ScalarField(name="NAME", type="text")),
        )

        with pytest.raises(ColumnCollision):
            SchemaCompiler().compile(SchemaModel(entities=(entity,)))


class TestRelationshipStatements:
    """Tests for the relationship pass."""

    def test_junction_table(self):
        statements = SchemaCompiler().relationship_statements(_model(USER_SOURCE))

        assert statements == [
            'CREATE TABLE IF NOT EXISTS "user_friends" ('
            '"user_id" INTEGER REFERENCES "user"(id), '
            '"befriendedby_id" INTEGER REFERENCES "befriendedby"(id), '
            'PRIMARY KEY ("user_id", "befriendedby_id"))'
        ]

    def test_empty_through_rejected(self):
        entity = Entity(name="User", fields=(ManyRelationField(name="friends", through=""),))

        with pytest.raises(InvalidRelationshipClause):
            SchemaCompiler().compile(SchemaModel(entities=(entity,)))

    def test_through_same_as_entity_rejected(self):
        model = _model("User:\n- friends is many User thru user")

        with pytest.raises(ColumnCollision, match="user_id"):
            SchemaCompiler().compile(model)


class TestCompile:
    """Tests for statement ordering and dialects."""

    def test_tables_before_junctions(self):
        model = _model(
            "User:\n- posts is many Post thru author\n"
            "Post:\n- title is text\n- readers is many User thru reader\n"
        )

        statements = SchemaCompiler().compile(model).statements

        assert [s.split(" (")[0].rsplit(" ", 1)[1] for s in statements] == [
            '"user"',
            '"post"',
            '"user_posts"',
            '"post_readers"',
        ]

    def test_unsupported_dialect(self):
        with pytest.raises(ValueError, match="Unsupported SQL dialect"):
            SchemaCompiler("oracle")

    def test_quote_identifier(self):
        assert quote_identifier("user") == '"user"'
        assert quote_identifier('we"ird') == '"we""ird"'


class TestApply:
    """Tests for executing statements."""

    def test_statements_executed_in_order(self):
        model = _model(USER_SOURCE)
        executor = RecordingExecutor()

        result = SchemaCompiler().apply(model, executor)

        assert executor.statements == result.statements
        assert len(executor.statements) == 2

    def test_executor_dialect_used(self):
        executor = RecordingExecutor(dialect="sqlite")

        result = SchemaCompiler().apply(_model("Tag:"), executor)

        assert result.dialect == "sqlite"
        assert "AUTOINCREMENT" in executor.statements[0]

    def test_explicit_dialect_wins(self):
        executor = RecordingExecutor(dialect="sqlite")

        SchemaCompiler("postgresql").apply(_model("Tag:"), executor)

        assert "SERIAL" in executor.statements[0]

    def test_failure_aborts_without_rollback(self):
        executor = FailingExecutor(fail_at=1)

        with pytest.raises(StatementExecutionError) as exc_info:
            SchemaCompiler().apply(_model(USER_SOURCE), executor)

        assert str(exc_info.value) == 'relation "befriendedby" does not exist'
        assert exc_info.value.statement.startswith('CREATE TABLE IF NOT EXISTS "user_friends"')
        assert len(executor.statements) == 1

    def test_concurrent_applies_do_not_interleave(self):
        compiler = SchemaCompiler()
        model = _model(USER_SOURCE)
        executor = OverlapExecutor()
        threads = [
            threading.Thread(target=compiler.apply, args=(model, executor)) for _ in range(4)
        ]

        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert executor.max_active == 1
        assert executor.statements == compiler.compile(model).statements * 4

    def test_invalid_model_executes_nothing(self):
        executor = RecordingExecutor()
        model = _model("Tag:\n- label is text\nUser:\n- id is text")

        with pytest.raises(ColumnCollision):
            SchemaCompiler().apply(model, executor)

        assert executor.statements == []
