"""
Pytest configuration for the ORM bulk update benchmark.

Provides fixtures for:
- An in-memory SQLite engine shared by unit tests
- A fresh data-access handle per test (and a factory for orchestrator runs)
- Settings override and PostgreSQL connectivity for integration tests
"""

from __future__ import annotations

import os
from typing import Callable, Generator

import pytest
from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from orm_bench.config import Settings
from orm_bench.infrastructure.data_access import SqlAlchemyDataAccess
from orm_bench.infrastructure.db_factory import (
    create_engine_for,
    create_session_factory,
    init_schema,
)

SQLITE_MEMORY_URL = "sqlite+pysqlite:///:memory:"


@pytest.fixture(scope="session")
def sqlite_engine() -> Generator[Engine, None, None]:
    """
    One in-memory SQLite database for the whole test session.

    Tests never commit; each one rolls back, so the table is empty between tests.
    """
    engine = create_engine_for(SQLITE_MEMORY_URL)
    init_schema(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture(scope="session")
def session_factory(sqlite_engine: Engine) -> sessionmaker[Session]:
    return create_session_factory(sqlite_engine)


@pytest.fixture
def data_access(
    session_factory: sessionmaker[Session],
) -> Generator[SqlAlchemyDataAccess, None, None]:
    """A fresh handle per test; whatever it wrote is rolled back on close."""
    handle = SqlAlchemyDataAccess(session_factory)
    try:
        yield handle
    finally:
        handle.close()


@pytest.fixture
def data_access_factory(
    session_factory: sessionmaker[Session],
) -> Callable[[], SqlAlchemyDataAccess]:
    return lambda: SqlAlchemyDataAccess(session_factory)


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "orm_bench"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def postgres_engine(test_settings: Settings) -> Generator[Engine, None, None]:
    """
    Engine on the integration PostgreSQL database, schema initialized.

    Skips tests if the database is not reachable.
    """
    engine = create_engine_for(test_settings.sqlalchemy_url)
    try:
        with engine.connect():
            pass
    except Exception:
        engine.dispose()
        pytest.skip("Database not available for integration tests")

    init_schema(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def postgres_data_access_factory(
    postgres_engine: Engine,
) -> Callable[[], SqlAlchemyDataAccess]:
    factory = create_session_factory(postgres_engine)
    return lambda: SqlAlchemyDataAccess(factory)
