"""
Database engine factory utilities for the ORM bulk update benchmark.

Provides centralized management of the SQLAlchemy engine and session factory
with proper lifecycle management. The EngineManager singleton ensures the
engine is disposed on application exit.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import atexit
import threading
from typing import Optional

from sqlalchemy import Engine, create_engine, make_url, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from orm_bench.config import get_settings
from orm_bench.domain.models import Base
from orm_bench.utils.logging import get_logger

log = get_logger(__name__)


def create_engine_for(url: str, echo: bool = False) -> Engine:
    """
    Create an engine suited to the backend behind `url`.

    An in-memory SQLite database lives as long as its connection, so it gets a
    single shared connection (StaticPool) usable from any thread.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:"):
        return create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=echo, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """
    Session factory with explicit flush control.

    Autoflush is off so that every storage round-trip a strategy makes is one
    it asked for.
    """
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type(OperationalError),
    reraise=True,
)
def check_connection(engine: Engine) -> None:
    """
    Run `SELECT 1` with automatic retry.

    Raises
    ------
    sqlalchemy.exc.OperationalError
        If the database is unreachable after all retry attempts.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))


def init_schema(engine: Engine, drop_existing: bool = False) -> None:
    """Create the `foo` table (optionally dropping it first)."""
    with engine.begin() as conn:
        if drop_existing:
            Base.metadata.drop_all(conn)
        Base.metadata.create_all(conn)
    log.info("Schema ready", extra={"drop_existing": drop_existing, "url": _safe_url(engine)})


def _safe_url(engine: Engine) -> str:
    return engine.url.render_as_string(hide_password=True)


class EngineManager:
    """
    Thread-safe singleton for managing the shared engine and session factory.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["EngineManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "EngineManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._engine: Optional[Engine] = None
                cls._instance._session_factory: Optional[sessionmaker[Session]] = None
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_engine(self) -> Engine:
        """
        Get or create the engine for the configured database.

        Returns
        -------
        Engine
            The managed engine instance.
        """
        with self._lock:
            if self._engine is None:
                settings = get_settings()
                self._engine = create_engine_for(settings.sqlalchemy_url, echo=settings.db_echo)
                log.debug("Engine created", extra={"url": _safe_url(self._engine)})
            return self._engine

    def get_session_factory(self) -> sessionmaker[Session]:
        """Get or create the session factory bound to the managed engine."""
        engine = self.get_engine()
        with self._lock:
            if self._session_factory is None:
                self._session_factory = create_session_factory(engine)
            return self._session_factory

    def close_all(self) -> None:
        """
        Dispose the managed engine and release pooled connections.

        This is called automatically on exit via atexit hook.
        """
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
                self._engine = None
            self._session_factory = None


def get_engine() -> Engine:
    """Get or create the shared engine via EngineManager."""
    return EngineManager().get_engine()


def get_session_factory() -> sessionmaker[Session]:
    """Get or create the shared session factory via EngineManager."""
    return EngineManager().get_session_factory()


__all__ = [
    "EngineManager",
    "check_connection",
    "create_engine_for",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "init_schema",
]
