"""Shared test fixtures for ESQL."""

import os
from collections.abc import Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from esql import ESQL, ESQLConfig, SQLAlchemyMetadataAdapter
from tests.models import Base, Brand, Car, Employee, Model


def _psycopg_available() -> bool:
    """Check if psycopg is installed."""
    try:
        import psycopg  # noqa: F401

        return True
    except ImportError:
        return False


def _normalize_postgresql_url(url: str) -> str:
    """Use the psycopg3 driver for plain postgresql:// URLs."""
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


def _postgresql_connectable(url: str) -> bool:
    """Check if we can connect to PostgreSQL."""
    if not _psycopg_available():
        return False
    try:
        engine = create_engine(url)
        with engine.connect():
            pass
        engine.dispose()
        return True
    except Exception:
        return False


# Skip marker for tests requiring PostgreSQL
requires_postgresql = pytest.mark.skipif(
    not _psycopg_available(),
    reason="psycopg not installed (install with: pip install esql[postgresql])",
)


@pytest.fixture
def adapter() -> SQLAlchemyMetadataAdapter:
    """A fresh SQLAlchemy adapter with an empty cache."""
    return SQLAlchemyMetadataAdapter()


@pytest.fixture
def esql(adapter: SQLAlchemyMetadataAdapter) -> ESQL:
    """Query context targeting SQLite."""
    return ESQL(adapter, ESQLConfig(dialect="sqlite"))


@pytest.fixture
def pg_esql(adapter: SQLAlchemyMetadataAdapter) -> ESQL:
    """Query context targeting PostgreSQL."""
    return ESQL(adapter, ESQLConfig(dialect="postgresql"))


def _seed(engine: Engine) -> None:
    with Session(engine) as session:
        ford = Brand(id=1, name="Ford")
        fiesta = Model(id=1, name="Fiesta", brand=ford)
        focus = Model(id=2, name="Focus", brand=ford)
        session.add_all(
            [
                ford,
                fiesta,
                focus,
                Car(id=1, color="blue", price=12000.0, sold=False, model=fiesta),
                Car(id=2, color="red", price=15000.0, sold=True, model=fiesta),
                Car(id=3, color="blue", price=21000.0, sold=False, model=focus),
                Car(id=4, color="black", price=9000.0, sold=False, model=None),
            ]
        )
        ada = Employee(id=1, name="Ada")
        session.add_all([ada, Employee(id=2, name="Grace", manager=ada)])
        session.commit()


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    """SQLite in-memory database with the test schema and seed data."""
    database = create_engine("sqlite://")
    Base.metadata.create_all(database)
    _seed(database)
    yield database
    database.dispose()


@pytest.fixture
def postgresql_url() -> str:
    """Get PostgreSQL URL from environment or use default.

    Tests using this fixture should also use @requires_postgresql marker.
    """
    url = _normalize_postgresql_url(
        os.environ.get("TEST_DATABASE_URL", "postgresql://localhost/esql_test")
    )

    # Skip if psycopg not available
    if not _psycopg_available():
        pytest.skip("psycopg not installed")

    # Skip if can't connect (no PostgreSQL server)
    if not _postgresql_connectable(url):
        pytest.skip(f"Cannot connect to PostgreSQL at {url}")

    return url


@pytest.fixture
def pg_engine(postgresql_url: str) -> Generator[Engine, None, None]:
    """PostgreSQL database with the test schema and seed data."""
    database = create_engine(postgresql_url)
    Base.metadata.drop_all(database)
    Base.metadata.create_all(database)
    _seed(database)
    yield database
    Base.metadata.drop_all(database)
    database.dispose()


# Re-export for use in test files
__all__ = ["requires_postgresql"]
