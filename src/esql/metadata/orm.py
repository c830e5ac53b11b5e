"""SQLAlchemy metadata adapter.

Reads table, column, identifier and relation information from SQLAlchemy
declarative mappers. The mapper is the source of truth; nothing here
mutates it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from sqlalchemy import Boolean, Column, inspect
from sqlalchemy.orm import Mapper, RelationshipProperty
from sqlalchemy.orm.interfaces import MANYTOONE, ONETOMANY

from esql.core.types import EntityMetadata, RelationDirection, RelationMetadata
from esql.exceptions import UnmappedTypeError
from esql.metadata.adapter import MetadataAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SQLAlchemyMetadataAdapter(MetadataAdapter):
    """Adapter for SQLAlchemy mapped classes.

    Only columns of the mapper's local table are exposed, so every column
    can be qualified by the entity's single alias. Many-to-many relations
    through a secondary table are skipped: they need two joins, not one
    predicate.
    """

    def _mapper(self, entity_type: Any) -> Mapper[Any]:
        if not isinstance(entity_type, type):
            raise UnmappedTypeError(entity_type)
        mapper = inspect(entity_type, raiseerr=False)
        if not isinstance(mapper, Mapper):
            raise UnmappedTypeError(entity_type)
        return mapper

    def _load(self, entity_type: type[Any]) -> EntityMetadata:
        mapper = self._mapper(entity_type)
        table = mapper.local_table

        columns: dict[str, str] = {}
        booleans: set[str] = set()
        for attr in mapper.column_attrs:
            column = attr.columns[0]
            if isinstance(column, Column) and column.table is table:
                columns[attr.key] = column.name
                if isinstance(column.type, Boolean):
                    booleans.add(attr.key)

        identifiers = tuple(mapper.get_property_by_column(c).key for c in mapper.primary_key)

        relations: dict[str, RelationMetadata] = {}
        for rel in mapper.relationships:
            relation = self._relation(mapper, rel)
            if relation is not None:
                relations[rel.key] = relation

        return EntityMetadata(
            entity_type=entity_type,
            table=getattr(table, "fullname", None) or table.name,
            columns=columns,
            identifiers=identifiers,
            relations=relations,
            boolean_fields=frozenset(booleans),
        )

    def _relation(
        self, mapper: Mapper[Any], rel: RelationshipProperty[Any]
    ) -> RelationMetadata | None:
        if rel.secondary is not None or rel.direction not in (MANYTOONE, ONETOMANY):
            logger.debug(
                f"Skipping relation {mapper.class_.__name__}.{rel.key}: "
                "many-to-many relations have no single join predicate"
            )
            return None

        pairs = rel.local_remote_pairs or []
        local = tuple(pair[0].name for pair in pairs)
        remote = tuple(pair[1].name for pair in pairs)

        if rel.direction is MANYTOONE:
            # Subject holds the foreign key
            return RelationMetadata(
                name=rel.key,
                target=rel.mapper.class_,
                direction=RelationDirection.OWNING,
                join_columns=local,
                referenced_columns=remote,
            )
        return RelationMetadata(
            name=rel.key,
            target=rel.mapper.class_,
            direction=RelationDirection.INVERSE,
            join_columns=remote,
            referenced_columns=local,
        )

    def hydrate(self, entity_type: type[T], values: Mapping[str, Any]) -> T:
        """Create an instrumented instance without calling ``__init__``."""
        mapper = self._mapper(entity_type)
        instance = mapper.class_manager.new_instance()
        for field, value in values.items():
            setattr(instance, field, value)
        return instance  # type: ignore[no-any-return]


_default_adapter: SQLAlchemyMetadataAdapter | None = None


def default_adapter() -> SQLAlchemyMetadataAdapter:
    """Process-wide SQLAlchemy adapter shared by contexts created without one."""
    global _default_adapter
    if _default_adapter is None:
        _default_adapter = SQLAlchemyMetadataAdapter()
    return _default_adapter
