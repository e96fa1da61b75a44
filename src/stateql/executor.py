"""Statement executors: where compiled DDL is sent."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)


@runtime_checkable
class StatementExecutor(Protocol):
    """Executes one DDL statement, raising on failure."""

    def execute(self, statement: str) -> None: ...


class SQLAlchemyExecutor:
    """Runs each statement in its own transaction on an SQLAlchemy engine."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def execute(self, statement: str) -> None:
        logger.debug("Executing on %s: %s", self.engine.url, statement)
        with self.engine.begin() as connection:
            # Raw DDL: a quoted ":name" identifier is not a bind parameter
            connection.exec_driver_sql(statement, execution_options={"no_parameters": True})


class RecordingExecutor:
    """Collects statements instead of running them (dry runs and tests)."""

    def __init__(self, dialect: str = "postgresql") -> None:
        self.dialect = dialect
        self.statements: list[str] = []

    def execute(self, statement: str) -> None:
        self.statements.append(statement)
