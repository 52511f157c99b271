"""
Scenarios package for the ORM bulk update benchmark.

This module re-exports the abstract interfaces, the shared harness helpers and
the concrete scenario classes so downstream code can import from
`orm_bench.scenarios` directly.
"""

from orm_bench.scenarios.abstract import (
    AbstractBenchmarkScenario,
    BenchmarkScenario,
    ScenarioCheckError,
    ScenarioResult,
    StrategyTiming,
)
from orm_bench.scenarios.harness import reset_fixture, seed
from orm_bench.scenarios.select_filter import FilterStrategy, SelectFilterScenario
from orm_bench.scenarios.stale_read import StaleReadScenario
from orm_bench.scenarios.update_entities import UpdateEntitiesScenario, UpdateStrategy

__all__ = [
    # Abstracts
    "AbstractBenchmarkScenario",
    "BenchmarkScenario",
    "ScenarioCheckError",
    "ScenarioResult",
    "StrategyTiming",
    # Harness
    "reset_fixture",
    "seed",
    # Concrete scenarios
    "FilterStrategy",
    "SelectFilterScenario",
    "StaleReadScenario",
    "UpdateEntitiesScenario",
    "UpdateStrategy",
]
