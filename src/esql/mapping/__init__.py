"""Result row mapping for ESQL."""

from esql.mapping.rows import RowMapper

__all__ = ["RowMapper"]
