"""Tests for configuration, dialect value normalization and errors."""

from enum import Enum

import pytest

from esql.core.config import AliasStrategy, Dialect, ESQLConfig
from esql.core.dialects import to_sql_value
from esql.exceptions import (
    ConfigurationError,
    ESQLError,
    UnknownFieldError,
    UnmappableRowError,
    UnmappedTypeError,
    UnsupportedOperatorError,
)


class Status(Enum):
    ACTIVE = "active"


class TestDialect:
    """Tests for Dialect enum."""

    def test_values(self):
        """All supported dialects exist."""
        assert Dialect.values() == ["sqlite", "postgresql", "mysql", "mssql"]

    def test_parse_is_case_insensitive(self):
        """Dialect names are parsed case-insensitively."""
        assert Dialect.parse("PostgreSQL") == Dialect.POSTGRESQL

    def test_parse_unknown(self):
        """Unknown dialects raise ConfigurationError listing valid values."""
        with pytest.raises(ConfigurationError) as exc_info:
            Dialect.parse("oracle")
        assert "Valid values: sqlite, postgresql, mysql, mssql" in str(exc_info.value)
        assert exc_info.value.setting == "dialect"


class TestAliasStrategy:
    """Tests for AliasStrategy enum."""

    def test_values(self):
        assert AliasStrategy.values() == ["short_name", "snake_case", "table"]

    def test_parse_unknown(self):
        with pytest.raises(ConfigurationError):
            AliasStrategy.parse("random")


class TestESQLConfig:
    """Tests for ESQLConfig."""

    def test_defaults(self):
        """SQLite and short-name aliases by default."""
        config = ESQLConfig()
        assert config.dialect == Dialect.SQLITE
        assert config.alias_strategy == AliasStrategy.SHORT_NAME

    def test_from_url(self):
        """The dialect follows the URL's backend, whatever the driver."""
        assert ESQLConfig.from_url("postgresql+psycopg://u:p@localhost/db").dialect == "postgresql"
        assert ESQLConfig.from_url("sqlite:///:memory:").dialect == "sqlite"
        assert ESQLConfig.from_url("mysql+pymysql://u:p@localhost/db").dialect == "mysql"

    def test_from_url_with_strategy(self):
        config = ESQLConfig.from_url("sqlite://", alias_strategy="table")
        assert config.alias_strategy == AliasStrategy.TABLE

    def test_from_url_unsupported_backend(self):
        with pytest.raises(ConfigurationError):
            ESQLConfig.from_url("oracle://u:p@localhost/db")

    def test_from_env_dialect(self, monkeypatch):
        """ESQL_DIALECT takes priority."""
        monkeypatch.setenv("ESQL_DIALECT", "postgresql")
        monkeypatch.setenv("ESQL_DATABASE_URL", "mysql://localhost/db")
        monkeypatch.setenv("ESQL_ALIAS_STRATEGY", "snake_case")
        config = ESQLConfig.from_env()
        assert config.dialect == Dialect.POSTGRESQL
        assert config.alias_strategy == AliasStrategy.SNAKE_CASE

    def test_from_env_url(self, monkeypatch):
        """ESQL_DATABASE_URL is used when no dialect is set."""
        monkeypatch.delenv("ESQL_DIALECT", raising=False)
        monkeypatch.delenv("ESQL_ALIAS_STRATEGY", raising=False)
        monkeypatch.setenv("ESQL_DATABASE_URL", "mssql+pyodbc://u:p@dsn")
        assert ESQLConfig.from_env().dialect == Dialect.MSSQL

    def test_from_env_default(self, monkeypatch):
        for name in ("ESQL_DIALECT", "ESQL_DATABASE_URL", "ESQL_ALIAS_STRATEGY"):
            monkeypatch.delenv(name, raising=False)
        assert ESQLConfig.from_env() == ESQLConfig()


class TestToSQLValue:
    """Tests for dialect literal normalization."""

    @pytest.mark.parametrize("dialect", ["sqlite", "mysql", "mssql"])
    def test_integer_booleans(self, dialect):
        """File-based and integer-boolean backends get 1/0."""
        assert to_sql_value(True, Dialect(dialect)) == "1"
        assert to_sql_value(False, Dialect(dialect)) == "0"

    def test_postgresql_booleans(self):
        """PostgreSQL gets native boolean literals."""
        assert to_sql_value(True, Dialect.POSTGRESQL) == "true"
        assert to_sql_value(False, Dialect.POSTGRESQL) == "false"

    def test_enum_members(self):
        """Enum members bind as their value."""
        assert to_sql_value(Status.ACTIVE, Dialect.SQLITE) == "active"

    def test_other_values_pass_through(self):
        """Non-boolean values are left to the driver."""
        assert to_sql_value(1, Dialect.SQLITE) == 1
        assert to_sql_value("blue", Dialect.POSTGRESQL) == "blue"
        assert to_sql_value(None, Dialect.SQLITE) is None


class TestErrors:
    """Tests for the error hierarchy."""

    def test_all_errors_share_base(self):
        for error in (
            UnmappedTypeError(int),
            UnknownFieldError("x", "Car"),
            UnsupportedOperatorError("foo", ["eq"]),
            UnmappableRowError("Car", ["id"]),
            ConfigurationError("dialect", "x", ["sqlite"]),
        ):
            assert isinstance(error, ESQLError)

    def test_to_dict(self):
        """Errors serialize with their class name and context."""
        error = UnknownFieldError("wheels", "Car", ["id", "color"])
        assert error.to_dict() == {
            "error": "UnknownFieldError",
            "message": "Field 'wheels' not found on 'Car'. Available fields: id, color",
            "context": {
                "field_name": "wheels",
                "entity_name": "Car",
                "available_fields": ["id", "color"],
            },
        }

    def test_unmapped_type_message(self):
        error = UnmappedTypeError(int)
        assert "Type 'int' has no relational mapping" in str(error)

    def test_unmappable_row_message(self):
        error = UnmappableRowError("Car", ["id"])
        assert "missing identifier column(s) id" in str(error)
        assert error.missing_columns == ["id"]
