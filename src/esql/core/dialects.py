"""Literal normalization per SQL dialect.

SQLite, MySQL and SQL Server store booleans as integers; PostgreSQL has a
native boolean type. Values are normalized to the literal form the target
backend compares correctly against its boolean columns.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from esql.core.config import Dialect

BOOLEAN_LITERALS: dict[Dialect, tuple[str, str]] = {
    Dialect.SQLITE: ("1", "0"),
    Dialect.MYSQL: ("1", "0"),
    Dialect.MSSQL: ("1", "0"),
    Dialect.POSTGRESQL: ("true", "false"),
}


def to_sql_value(value: Any, dialect: Dialect) -> Any:
    """Normalize a Python value for binding on ``dialect``.

    Booleans become the dialect's literal, enum members their value.
    Everything else is passed through for the driver to adapt.
    """
    if isinstance(value, bool):
        true, false = BOOLEAN_LITERALS[dialect]
        return true if value else false
    if isinstance(value, Enum):
        return to_sql_value(value.value, dialect)
    return value
