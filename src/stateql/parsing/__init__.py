"""Parsing module for the StateQL entity notation."""

from stateql.parsing.entity_parser import (
    EntityBlock,
    EntityParser,
    ParseResult,
    parse_source,
    split_blocks,
)
from stateql.parsing.field_parser import (
    CLASSIFICATION_ORDER,
    FieldParser,
    parse_action_args,
    parse_function_args,
)

__all__ = [
    "CLASSIFICATION_ORDER",
    "EntityBlock",
    "EntityParser",
    "FieldParser",
    "ParseResult",
    "parse_action_args",
    "parse_function_args",
    "parse_source",
    "split_blocks",
]
