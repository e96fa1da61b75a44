"""Builds a SchemaModel from StateQL source text.

Parsing runs in two phases. ``split_blocks`` partitions the numbered source
lines into entity blocks (a header and the field lines that follow it); each
block is then parsed on its own by ``EntityParser``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable

from stateql.errors import (
    UNKNOWN_PRIMITIVE_TYPE,
    Diagnostic,
    DuplicateDefinition,
    FieldWithoutEntity,
    MalformedEntityHeader,
    SchemaParseError,
    Severity,
    StateQLError,
)
from stateql.model import ComputedField, Entity, Field, ScalarField, SchemaModel
from stateql.parsing.field_parser import FieldParser
from stateql.type_mapper import DEFAULT_COLUMN_TYPE, is_known_type

logger = logging.getLogger(__name__)

FIELD_MARKER = "-"
COMMENT_MARKER = "#"


@dataclass(frozen=True)
class SourceLine:
    """A trimmed, non-blank source line and its 1-based line number."""

    number: int
    text: str


@dataclass(frozen=True)
class EntityBlock:
    """An entity header together with its field lines."""

    header: SourceLine
    fields: tuple[SourceLine, ...] = ()


@dataclass
class ParseResult:
    """The schema model of a source text and everything found wrong with it."""

    model: SchemaModel
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if not d.is_error]

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> SchemaModel:
        """Return the model, or raise SchemaParseError if any line was rejected."""
        errors = self.errors
        if errors:
            raise SchemaParseError(errors)
        return self.model


def split_blocks(lines: Iterable[str]) -> tuple[list[EntityBlock], list[SourceLine]]:
    """Partition source lines into entity blocks.

    Returns the blocks in declaration order and the field lines that appear
    before the first entity header.
    """
    blocks: list[EntityBlock] = []
    orphans: list[SourceLine] = []
    header: SourceLine | None = None
    fields: list[SourceLine] = []

    for number, raw in enumerate(lines, start=1):
        text = raw.strip()
        if not text or text.startswith(COMMENT_MARKER):
            continue
        line = SourceLine(number=number, text=text)
        if text.startswith(FIELD_MARKER):
            if header is None:
                orphans.append(line)
            else:
                fields.append(line)
            continue
        if header is not None:
            blocks.append(EntityBlock(header=header, fields=tuple(fields)))
        header = line
        fields = []

    if header is not None:
        blocks.append(EntityBlock(header=header, fields=tuple(fields)))
    return blocks, orphans


def strip_field_marker(text: str) -> str:
    return text[len(FIELD_MARKER):].strip()


class EntityParser:
    """Parser for complete StateQL source texts."""

    def __init__(self, field_parser: FieldParser | None = None) -> None:
        self.field_parser = field_parser or FieldParser()

    def parse(self, source: str) -> ParseResult:
        """Parse source text into a SchemaModel plus diagnostics.

        Malformed lines are reported and left out of the model; parsing
        continues so that every malformed line is reported.
        """
        blocks, orphans = split_blocks(source.splitlines())
        diagnostics: list[Diagnostic] = []

        for orphan in orphans:
            error = FieldWithoutEntity(
                f"Field {strip_field_marker(orphan.text)!r} appears before any entity",
                line=orphan.number,
            )
            diagnostics.append(error.to_diagnostic())

        entities: list[Entity] = []
        declared: dict[str, int] = {}
        for block in blocks:
            entity = self._parse_block(block, diagnostics)
            if entity is None:
                continue
            key = entity.table_name
            if key in declared:
                diagnostics.append(
                    DuplicateDefinition(
                        f"Entity '{entity.name}' is already declared on line {declared[key]}",
                        line=block.header.number,
                    ).to_diagnostic()
                )
                continue
            declared[key] = block.header.number
            entities.append(entity)

        diagnostics.sort(key=lambda d: d.line or 0)
        model = SchemaModel(entities=tuple(entities))
        logger.debug(
            "Parsed %d entities with %d diagnostics", len(model), len(diagnostics)
        )
        return ParseResult(model=model, diagnostics=diagnostics)

    def _parse_block(self, block: EntityBlock, diagnostics: list[Diagnostic]) -> Entity | None:
        name = block.header.text.removesuffix(":").strip()
        if not name:
            diagnostics.append(
                MalformedEntityHeader(
                    "Entity header has no name", line=block.header.number
                ).to_diagnostic()
            )
            return None

        fields: list[Field] = []
        declared: dict[str, int] = {}
        for line in block.fields:
            try:
                parsed = self.field_parser.parse(strip_field_marker(line.text), line=line.number)
            except StateQLError as exc:
                if exc.line is None:
                    exc.line = line.number
                diagnostics.append(exc.to_diagnostic())
                continue

            key = parsed.name.lower()
            if key in declared:
                diagnostics.append(
                    DuplicateDefinition(
                        f"Field '{parsed.name}' of '{name}' is already declared on line {declared[key]}",
                        line=line.number,
                    ).to_diagnostic()
                )
                continue
            declared[key] = line.number

            if isinstance(parsed, (ScalarField, ComputedField)) and not is_known_type(parsed.type):
                diagnostics.append(
                    Diagnostic(
                        severity=Severity.WARNING,
                        code=UNKNOWN_PRIMITIVE_TYPE,
                        message=(
                            f"Unknown type '{parsed.type}' for field '{parsed.name}', "
                            f"stored as {DEFAULT_COLUMN_TYPE}"
                        ),
                        line=line.number,
                    )
                )
            fields.append(parsed)

        return Entity(name=name, fields=tuple(fields), line=block.header.number)


def parse_source(source: str) -> ParseResult:
    """Parse StateQL source text into a SchemaModel and its diagnostics."""
    return EntityParser().parse(source)
