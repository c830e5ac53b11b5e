"""ESQL - SQL fragments from ORM metadata for hand-written queries.

ESQL does the repetitive metadata lookups of raw SQL: table names and
aliases, column lists, identifier and join predicates, parameter names,
filters and sorts. The SQL itself stays yours.

Example:
    from sqlalchemy import text
    from esql import ESQL, ESQLConfig, FilterParser, RowMapper

    esql = ESQL(config=ESQLConfig.from_url("postgresql://localhost/cars"))
    car, model = esql(Car), esql(Model)

    # Fragments embed directly into f-strings
    sql = f'''
        SELECT {car.columns()}
        FROM {car.table()}
        JOIN {model.table()} ON {car.join(Model)}
        WHERE {car.identifier()}
    '''
    row = session.execute(text(sql), car.bindings({"id": 1})).mappings().one()
    fiesta = RowMapper().map(row, Car)

    # Request filters in PostgREST style
    parser = FilterParser(esql, Car)
    result = parser.parse(parse_query({"color": "eq.blue"}), sort=parse_order("price.desc"))
"""

from esql.core.config import AliasStrategy, Dialect, ESQLConfig
from esql.core.dialects import to_sql_value
from esql.core.types import EntityMetadata, Fragment, RelationDirection, RelationMetadata
from esql.exceptions import (
    AliasConflictError,
    ConfigurationError,
    ESQLError,
    InvalidFilterError,
    UnknownFieldError,
    UnknownRelationError,
    UnmappableRowError,
    UnmappedTypeError,
    UnsupportedOperatorError,
)
from esql.filtering import (
    Direction,
    FilterExpression,
    FilterParser,
    FilterResult,
    Operator,
    ParserState,
    SortExpression,
    parse_filter,
    parse_logic,
    parse_order,
    parse_query,
)
from esql.generation import ESQL, FragmentGenerator, ParameterNamer
from esql.mapping import RowMapper
from esql.metadata import (
    MetadataAdapter,
    RegistryMetadataAdapter,
    SQLAlchemyMetadataAdapter,
    default_adapter,
)

__version__ = "0.1.0"

__all__ = [
    # Main classes
    "ESQL",
    "FragmentGenerator",
    "FilterParser",
    "RowMapper",
    # Configuration
    "ESQLConfig",
    "Dialect",
    "AliasStrategy",
    "to_sql_value",
    # Types
    "EntityMetadata",
    "RelationMetadata",
    "RelationDirection",
    "Fragment",
    "ParameterNamer",
    # Metadata adapters
    "MetadataAdapter",
    "RegistryMetadataAdapter",
    "SQLAlchemyMetadataAdapter",
    "default_adapter",
    # Filtering
    "Operator",
    "Direction",
    "FilterExpression",
    "SortExpression",
    "FilterResult",
    "ParserState",
    "parse_filter",
    "parse_logic",
    "parse_query",
    "parse_order",
    # Exceptions
    "ESQLError",
    "UnmappedTypeError",
    "UnknownFieldError",
    "UnknownRelationError",
    "UnsupportedOperatorError",
    "InvalidFilterError",
    "UnmappableRowError",
    "ConfigurationError",
    "AliasConflictError",
]
