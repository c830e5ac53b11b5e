"""Core types for ESQL.

Metadata types are immutable pydantic models so resolved metadata can be
cached and compared by value. Fragments are plain frozen dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from esql.core.compat import StrEnum
from esql.exceptions import UnknownFieldError


class RelationDirection(StrEnum):
    """Which side of a relation holds the foreign key."""

    OWNING = "owning"  # Subject table holds the FK (e.g. Car.model)
    INVERSE = "inverse"  # Target table holds the FK (e.g. Model.cars)

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid direction values."""
        return [d.value for d in cls]


class RelationMetadata(BaseModel):
    """A relation from one entity to another.

    ``join_columns`` live on the owning side's table and reference
    ``referenced_columns`` on the other side, pairwise.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Relation field name on the subject entity")
    target: type[Any] = Field(..., description="Related entity type")
    direction: RelationDirection = Field(default=RelationDirection.OWNING)
    join_columns: tuple[str, ...] = Field(..., min_length=1)
    referenced_columns: tuple[str, ...] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_pairs(self) -> RelationMetadata:
        if len(self.join_columns) != len(self.referenced_columns):
            raise ValueError(
                f"Relation '{self.name}' has {len(self.join_columns)} join column(s) "
                f"but {len(self.referenced_columns)} referenced column(s)"
            )
        return self

    @property
    def is_owning(self) -> bool:
        return self.direction == RelationDirection.OWNING


class EntityMetadata(BaseModel):
    """Normalized relational description of one mapped type."""

    model_config = ConfigDict(frozen=True)

    entity_type: type[Any]
    table: str
    columns: dict[str, str] = Field(..., description="Field name -> column name, in order")
    identifiers: tuple[str, ...] = Field(..., min_length=1)
    relations: dict[str, RelationMetadata] = Field(default_factory=dict)
    boolean_fields: frozenset[str] = Field(
        default=frozenset(), description="Fields stored in boolean columns"
    )

    @model_validator(mode="after")
    def _check_fields(self) -> EntityMetadata:
        unmapped = [f for f in self.identifiers if f not in self.columns]
        if unmapped:
            raise ValueError(
                f"Identifier field(s) {', '.join(unmapped)} of '{self.name}' have no column"
            )
        unknown = sorted(self.boolean_fields - set(self.columns))
        if unknown:
            raise ValueError(
                f"Boolean field(s) {', '.join(unknown)} of '{self.name}' have no column"
            )
        return self

    @property
    def name(self) -> str:
        """Short type name, used in messages and alias derivation."""
        return self.entity_type.__name__

    @property
    def fields(self) -> list[str]:
        return list(self.columns)

    def column_for(self, field: str) -> str:
        """Column name for a field.

        Raises:
            UnknownFieldError: If the field is not mapped
        """
        try:
            return self.columns[field]
        except KeyError:
            raise UnknownFieldError(field, self.name, self.fields) from None

    def field_for(self, column: str) -> str | None:
        """Field name for a column, or None when the column is not mapped."""
        for field, mapped in self.columns.items():
            if mapped == column:
                return field
        return None

    @property
    def identifier_columns(self) -> list[str]:
        return [self.columns[f] for f in self.identifiers]

    def relations_to(self, target: type[Any]) -> list[RelationMetadata]:
        """Relations whose target is ``target``, in declaration order."""
        return [r for r in self.relations.values() if r.target is target]


@dataclass(frozen=True)
class Fragment:
    """A generated piece of SQL and the parameter names it references.

    ``str(fragment)`` returns the SQL, so fragments can be embedded
    directly into f-strings.
    """

    sql: str
    parameters: tuple[str, ...] = ()

    def __str__(self) -> str:
        return self.sql

    def __bool__(self) -> bool:
        return bool(self.sql)

    @property
    def tokens(self) -> list[str]:
        """Parameter names with their bind sigil (``:name``)."""
        return [f":{p}" for p in self.parameters]
