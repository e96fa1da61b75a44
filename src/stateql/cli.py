"""Command line interface: check, print or apply a StateQL schema."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.exc import ArgumentError

from stateql.compiler import PRIMARY_KEY_COLUMNS, SchemaCompiler
from stateql.errors import StateQLError, StatementExecutionError
from stateql.executor import SQLAlchemyExecutor
from stateql.parsing import ParseResult, parse_source

DATABASE_URL_ENV = "STATEQL_DATABASE_URL"

logger = logging.getLogger(__name__)


def _read_source(path: Path) -> str | None:
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return None
    return path.read_text(encoding="utf-8")


def _report(path: Path, result: ParseResult) -> None:
    for diagnostic in result.diagnostics:
        print(f"{path}:{diagnostic}", file=sys.stderr)


def _parse_file(path: Path) -> ParseResult | None:
    source = _read_source(path)
    if source is None:
        return None
    result = parse_source(source)
    _report(path, result)
    return result


def run_check(path: Path) -> int:
    result = _parse_file(path)
    if result is None or not result.ok:
        return 1
    try:
        SchemaCompiler().compile(result.model)
    except StateQLError as e:
        print(f"{path}:{e}", file=sys.stderr)
        return 1
    entities = len(result.model)
    fields = sum(len(entity.fields) for entity in result.model)
    print(f"{path}: {entities} entities, {fields} fields, {len(result.warnings)} warnings")
    return 0


def run_sql(path: Path, dialect: str) -> int:
    result = _parse_file(path)
    if result is None or not result.ok:
        return 1
    try:
        compiled = SchemaCompiler(dialect).compile(result.model)
    except StateQLError as e:
        print(f"{path}:{e}", file=sys.stderr)
        return 1
    for statement in compiled.statements:
        print(f"{statement};")
    return 0


def run_apply(path: Path, database_url: str | None) -> int:
    if not database_url:
        print(
            f"Error: --database-url or {DATABASE_URL_ENV} is required to apply a schema",
            file=sys.stderr,
        )
        return 1
    result = _parse_file(path)
    if result is None or not result.ok:
        return 1

    try:
        engine = create_engine(database_url)
    except ArgumentError as e:
        print(f"Error: Invalid database URL: {e}", file=sys.stderr)
        return 1

    try:
        compiled = SchemaCompiler().apply(result.model, SQLAlchemyExecutor(engine))
    except StatementExecutionError as e:
        print(f"Error: Failed to generate schema: {e}", file=sys.stderr)
        logger.debug("Failing statement: %s", e.statement)
        return 1
    except StateQLError as e:
        print(f"{path}:{e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        engine.dispose()

    print(f"Schema generated successfully ({len(compiled.statements)} statements)")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        prog="stateql",
        description="Compile StateQL entity definitions into SQL tables",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    commands = arg_parser.add_subparsers(dest="command", required=True)

    check = commands.add_parser("check", help="Parse a file and report diagnostics")
    check.add_argument("file", type=Path, help="StateQL source file")

    sql = commands.add_parser("sql", help="Print the DDL for a file")
    sql.add_argument("file", type=Path, help="StateQL source file")
    sql.add_argument(
        "--dialect",
        choices=sorted(PRIMARY_KEY_COLUMNS),
        default="postgresql",
        help="SQL dialect of the printed statements (default: postgresql)",
    )

    apply = commands.add_parser("apply", help="Create the tables for a file in a database")
    apply.add_argument("file", type=Path, help="StateQL source file")
    apply.add_argument(
        "--database-url",
        default=os.environ.get(DATABASE_URL_ENV),
        help=f"SQLAlchemy database URL (default: ${DATABASE_URL_ENV})",
    )

    args = arg_parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "check":
        return run_check(args.file)
    if args.command == "sql":
        return run_sql(args.file, args.dialect)
    return run_apply(args.file, args.database_url)


if __name__ == "__main__":
    sys.exit(main())
