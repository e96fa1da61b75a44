"""Schema model: entities and their fields."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator


class FieldKind(Enum):
    """The four shapes a field declaration can take."""

    SCALAR = "scalar"
    MANY_RELATION = "many"
    ACTION = "action"
    COMPUTED = "computed"


@dataclass(frozen=True)
class Field:
    """Base class for all field declarations."""

    name: str
    line: int | None = field(default=None, kw_only=True, compare=False)

    @property
    def kind(self) -> FieldKind:
        raise NotImplementedError

    @property
    def has_column(self) -> bool:
        """Return whether the field is stored as a column of its entity's table."""
        return False


@dataclass(frozen=True)
class ScalarField(Field):
    """A plain column: ``name is text``."""

    type: str

    @property
    def kind(self) -> FieldKind:
        return FieldKind.SCALAR

    @property
    def has_column(self) -> bool:
        return True


@dataclass(frozen=True)
class ManyRelationField(Field):
    """A many-to-many edge: ``friends is many User thru befriendedBy``.

    ``through`` names the inverse field on the related side. ``target`` is the
    entity written after ``many``, kept for reference only.
    """

    through: str
    target: str = ""

    @property
    def kind(self) -> FieldKind:
        return FieldKind.MANY_RELATION


@dataclass(frozen=True)
class ActionField(Field):
    """An invocable verb: ``share is action thru share(doc mode=copy :email)``."""

    action_type: str
    args: tuple[str, ...] = ()
    kwargs: tuple[tuple[str, str], ...] = ()
    required_params: tuple[str, ...] = ()

    @property
    def kind(self) -> FieldKind:
        return FieldKind.ACTION

    @property
    def action_args(self) -> dict[str, str]:
        """Positional arguments as ``arg1``, ``arg2``... merged with named ones."""
        result = {f"arg{i}": value for i, value in enumerate(self.args, start=1)}
        result.update(self.kwargs)
        return result


@dataclass(frozen=True)
class ComputedField(Field):
    """A derived value materialized as a column: ``total is number thru sum(x)``."""

    type: str
    function_name: str
    function_args: tuple[str, ...] = ()

    @property
    def kind(self) -> FieldKind:
        return FieldKind.COMPUTED

    @property
    def has_column(self) -> bool:
        return True


@dataclass(frozen=True)
class Entity:
    """A named group of fields, compiled to one table."""

    name: str
    fields: tuple[Field, ...] = ()
    line: int | None = field(default=None, compare=False)

    @property
    def table_name(self) -> str:
        return self.name.lower()

    def get_field(self, name: str) -> Field | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def fields_of_kind(self, kind: FieldKind) -> list[Field]:
        return [f for f in self.fields if f.kind is kind]


@dataclass(frozen=True)
class SchemaModel:
    """All entities of a source text, in declaration order."""

    entities: tuple[Entity, ...] = ()

    def get(self, name: str) -> Entity | None:
        for entity in self.entities:
            if entity.name == name:
                return entity
        return None

    def __contains__(self, name: str) -> bool:
        return self.get(name) is not None

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.entities)

    def __len__(self) -> int:
        return len(self.entities)
