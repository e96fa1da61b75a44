"""Mapping from StateQL primitive type names to SQL column types."""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class PrimitiveType(Enum):
    """Primitive types understood by the notation."""

    TEXT = "text"
    NUMBER = "number"
    SWITCH = "switch"
    DATE = "date"
    TIMESTAMP = "timestamp"
    SECONDS = "seconds"

    @property
    def column_type(self) -> str:
        """Return the SQL column type used to store this primitive."""
        column_types = {
            PrimitiveType.TEXT: "TEXT",
            PrimitiveType.NUMBER: "NUMERIC",
            PrimitiveType.SWITCH: "BOOLEAN",
            PrimitiveType.DATE: "DATE",
            PrimitiveType.TIMESTAMP: "TIMESTAMP",
            PrimitiveType.SECONDS: "INTEGER",
        }
        return column_types[self]


PRIMITIVE_TYPE_NAMES: dict[str, PrimitiveType] = {pt.value: pt for pt in PrimitiveType}

# Column type for names that are not primitives
DEFAULT_COLUMN_TYPE = "TEXT"


def is_known_type(name: str) -> bool:
    return name.lower() in PRIMITIVE_TYPE_NAMES


def map_type(name: str) -> str:
    """Return the SQL column type for a primitive type name.

    Lookup is case-insensitive. Unknown names fall back to TEXT; callers that
    need to report the fallback check ``is_known_type`` first.
    """
    primitive = PRIMITIVE_TYPE_NAMES.get(name.lower())
    if primitive is None:
        logger.debug("No column type for %r, using %s", name, DEFAULT_COLUMN_TYPE)
        return DEFAULT_COLUMN_TYPE
    return primitive.column_type
