"""Configuration for ESQL.

Two settings affect generated SQL: the target dialect (literal
normalization only) and how entity aliases are derived.
"""

from __future__ import annotations

import os

from pydantic import BaseModel, Field
from sqlalchemy.engine import make_url

from esql.core.compat import StrEnum
from esql.exceptions import ConfigurationError


class Dialect(StrEnum):
    """Target SQL dialects."""

    SQLITE = "sqlite"
    POSTGRESQL = "postgresql"
    MYSQL = "mysql"
    MSSQL = "mssql"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid dialect values."""
        return [d.value for d in cls]

    @classmethod
    def parse(cls, value: str | Dialect) -> Dialect:
        """Parse a dialect name.

        Raises:
            ConfigurationError: If the name is not a supported dialect
        """
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError("dialect", str(value), cls.values()) from None


class AliasStrategy(StrEnum):
    """How an entity alias is derived from its type."""

    SHORT_NAME = "short_name"  # CarModel -> carmodel
    SNAKE_CASE = "snake_case"  # CarModel -> car_model
    TABLE = "table"  # sales.car_model -> car_model

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid strategy values."""
        return [s.value for s in cls]

    @classmethod
    def parse(cls, value: str | AliasStrategy) -> AliasStrategy:
        """Parse a strategy name.

        Raises:
            ConfigurationError: If the name is not a known strategy
        """
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ConfigurationError("alias strategy", str(value), cls.values()) from None


class ESQLConfig(BaseModel):
    """Settings shared by every fragment generated in one context."""

    model_config = {"frozen": True}

    dialect: Dialect = Field(default=Dialect.SQLITE, description="Target SQL dialect")
    alias_strategy: AliasStrategy = Field(
        default=AliasStrategy.SHORT_NAME, description="Entity alias derivation"
    )

    @classmethod
    def from_url(cls, url: str, alias_strategy: str | None = None) -> ESQLConfig:
        """Build a config whose dialect matches a database URL.

        Args:
            url: SQLAlchemy database URL, e.g. "postgresql+psycopg://localhost/db"
            alias_strategy: Optional alias strategy name
        """
        backend = make_url(url).get_backend_name()
        return cls(
            dialect=Dialect.parse(backend),
            alias_strategy=AliasStrategy.parse(alias_strategy or AliasStrategy.SHORT_NAME),
        )

    @classmethod
    def from_env(cls) -> ESQLConfig:
        """Build a config from environment variables.

        Priority for the dialect:
        1. ESQL_DIALECT environment variable
        2. Backend of the ESQL_DATABASE_URL environment variable
        3. Default: sqlite
        """
        strategy = os.getenv("ESQL_ALIAS_STRATEGY") or AliasStrategy.SHORT_NAME
        if dialect := os.getenv("ESQL_DIALECT"):
            return cls(dialect=Dialect.parse(dialect), alias_strategy=AliasStrategy.parse(strategy))
        if url := os.getenv("ESQL_DATABASE_URL"):
            return cls.from_url(url, alias_strategy=str(strategy))
        return cls(alias_strategy=AliasStrategy.parse(strategy))
