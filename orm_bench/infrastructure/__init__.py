"""
Infrastructure package for the ORM bulk update benchmark.

Centralizes database connectivity concerns (engine, session factory) and the
data-access interface. Keep this layer focused on I/O and resource management,
decoupled from scenario/orchestrator logic.
"""

from orm_bench.infrastructure.data_access import DataAccess, SqlAlchemyDataAccess
from orm_bench.infrastructure.db_factory import (
    check_connection,
    create_engine_for,
    create_session_factory,
    get_engine,
    get_session_factory,
    init_schema,
)

__all__ = [
    "DataAccess",
    "SqlAlchemyDataAccess",
    "check_connection",
    "create_engine_for",
    "create_session_factory",
    "get_engine",
    "get_session_factory",
    "init_schema",
]
