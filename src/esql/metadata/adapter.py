"""Metadata adapter interface and the registry adapter.

An adapter turns whatever mapping system a project uses into
:class:`EntityMetadata`. Resolved metadata is cached per type; ORM
metadata is static once the application has booted, so the cache is
never invalidated implicitly.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from esql.core.types import EntityMetadata, RelationMetadata
from esql.exceptions import UnmappedTypeError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class MetadataAdapter(ABC):
    """Resolves entity types to normalized relational metadata."""

    def __init__(self) -> None:
        self._cache: dict[type[Any], EntityMetadata] = {}

    def resolve(self, entity_type: type[Any]) -> EntityMetadata:
        """Get the metadata of a mapped type.

        Args:
            entity_type: Mapped class

        Returns:
            Immutable metadata, equal across calls

        Raises:
            UnmappedTypeError: If the type carries no relational mapping
        """
        cached = self._cache.get(entity_type)
        if cached is not None:
            return cached

        metadata = self._load(entity_type)
        # Concurrent first resolutions produce equal values; last write wins
        self._cache[entity_type] = metadata
        logger.debug(
            f"Resolved metadata for {metadata.name}: table={metadata.table}, "
            f"{len(metadata.columns)} field(s), {len(metadata.relations)} relation(s)"
        )
        return metadata

    def clear_cache(self) -> None:
        """Forget every resolved type."""
        self._cache.clear()

    @abstractmethod
    def _load(self, entity_type: type[Any]) -> EntityMetadata:
        """Build metadata for a type not yet in the cache."""

    def hydrate(self, entity_type: type[T], values: Mapping[str, Any]) -> T:
        """Create an instance of ``entity_type`` from field values."""
        return entity_type(**values)


class RegistryMetadataAdapter(MetadataAdapter):
    """Adapter over explicitly registered metadata.

    Used for types without an ORM mapping, such as plain dataclasses
    read from hand-written SQL.

    Example:
        adapter = RegistryMetadataAdapter()
        adapter.register(Car, table="car", columns={"id": "id", "name": "label"})
    """

    def __init__(self) -> None:
        super().__init__()
        self._registry: dict[type[Any], EntityMetadata] = {}

    def register(
        self,
        entity_type: type[Any],
        table: str,
        columns: Mapping[str, str] | Iterable[str],
        identifiers: Iterable[str] = ("id",),
        relations: Iterable[RelationMetadata] = (),
        booleans: Iterable[str] = (),
    ) -> EntityMetadata:
        """Register a type.

        Args:
            entity_type: The class rows are mapped onto
            table: Table name
            columns: Field -> column mapping, or field names equal to their columns
            identifiers: Identifier (primary key) field names
            relations: Relations to other registered types
            booleans: Fields stored in boolean columns

        Returns:
            The registered metadata
        """
        if not isinstance(columns, Mapping):
            columns = {name: name for name in columns}
        metadata = EntityMetadata(
            entity_type=entity_type,
            table=table,
            columns=dict(columns),
            identifiers=tuple(identifiers),
            relations={r.name: r for r in relations},
            boolean_fields=frozenset(booleans),
        )
        self._registry[entity_type] = metadata
        self._cache.pop(entity_type, None)
        return metadata

    def _load(self, entity_type: type[Any]) -> EntityMetadata:
        try:
            return self._registry[entity_type]
        except KeyError:
            raise UnmappedTypeError(entity_type) from None
