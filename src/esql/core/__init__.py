"""Core components for ESQL."""

from esql.core.config import AliasStrategy, Dialect, ESQLConfig
from esql.core.dialects import to_sql_value
from esql.core.types import EntityMetadata, Fragment, RelationDirection, RelationMetadata

__all__ = [
    "AliasStrategy",
    "Dialect",
    "ESQLConfig",
    "to_sql_value",
    "EntityMetadata",
    "Fragment",
    "RelationDirection",
    "RelationMetadata",
]
