"""Mapping flat result rows back onto mapped types."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from esql.exceptions import UnmappableRowError
from esql.metadata.adapter import MetadataAdapter
from esql.metadata.orm import default_adapter

T = TypeVar("T")


class RowMapper:
    """Maps column-keyed rows to instances of a mapped type.

    Values are set as-is; type conversion is left to the driver and to
    the adapter's hydration. Relations are not hydrated: map joined
    columns with a separate call, after :meth:`sub_row` has extracted
    them from the joined row.

    Example:
        mapper = RowMapper()
        rows = session.execute(text(sql)).mappings()
        cars = mapper.map_all(rows, Car)
    """

    def __init__(self, adapter: MetadataAdapter | None = None) -> None:
        self._adapter = adapter or default_adapter()

    def map(self, row: Mapping[str, Any], target_type: type[T]) -> T:
        """Create a ``target_type`` instance from one row.

        Args:
            row: Column name -> raw value
            target_type: Mapped class

        Raises:
            UnmappedTypeError: If the type carries no relational mapping
            UnmappableRowError: If an identifier column is absent from the row
        """
        metadata = self._adapter.resolve(target_type)
        missing = [c for c in metadata.identifier_columns if c not in row]
        if missing:
            raise UnmappableRowError(metadata.name, missing)

        values = {
            field: row[column] for field, column in metadata.columns.items() if column in row
        }
        return self._adapter.hydrate(target_type, values)

    def map_all(self, rows: Iterable[Mapping[str, Any]], target_type: type[T]) -> list[T]:
        """Map every row; the first unmappable row aborts the call."""
        return [self.map(row, target_type) for row in rows]

    @staticmethod
    def sub_row(row: Mapping[str, Any], prefix: str) -> dict[str, Any]:
        """Columns starting with ``prefix``, with the prefix removed.

        ``prefix`` is typically ``"<alias>_"`` for rows selected with
        :meth:`FragmentGenerator.select`.
        """
        return {key[len(prefix) :]: value for key, value in row.items() if key.startswith(prefix)}
