"""
ORM Bulk Update Benchmark - timing entity iteration, filtering and updating strategies.

This package compares, through a SQLAlchemy session, different ways of:

- Finding one row among many (client-side sequential/parallel filter vs WHERE)
- Updating a range of rows (per-row flush, batched flush, chunked IN, bulk UPDATE)
- Reading an entity after a bulk UPDATE bypassed the session (stale until refresh)

Every scenario runs in a transaction that is rolled back afterwards.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from orm_bench.config import Settings, get_settings
from orm_bench.domain.models import Foo, FooSnapshot
from orm_bench.infrastructure.data_access import DataAccess, SqlAlchemyDataAccess
from orm_bench.orchestrator import RunConfig, available_scenarios, run_scenarios
from orm_bench.scenarios.abstract import (
    AbstractBenchmarkScenario,
    BenchmarkScenario,
    ScenarioCheckError,
    ScenarioResult,
)
from orm_bench.utils.logging import configure_logging, get_logger
from orm_bench.utils.profiler import ProfileStats, profile_block, stopwatch

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "Foo",
    "FooSnapshot",
    # Data access
    "DataAccess",
    "SqlAlchemyDataAccess",
    # Orchestration
    "RunConfig",
    "available_scenarios",
    "run_scenarios",
    # Scenario abstractions
    "AbstractBenchmarkScenario",
    "BenchmarkScenario",
    "ScenarioCheckError",
    "ScenarioResult",
    # Logging
    "configure_logging",
    "get_logger",
    # Profiling
    "ProfileStats",
    "profile_block",
    "stopwatch",
]
