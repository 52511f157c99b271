"""
Abstract scenario interfaces and result contracts for the ORM bulk update benchmark.

Concrete scenarios (select-and-filter, update-same-type, stale-read) implement
the BenchmarkScenario protocol and return a ScenarioResult TypedDict so the
orchestrator and reporter can treat them uniformly.
"""

from __future__ import annotations

import abc
from typing import Any, Dict, List, Optional, Protocol, TypedDict, runtime_checkable

from orm_bench.infrastructure.data_access import DataAccess


class ScenarioCheckError(AssertionError):
    """An asserted scenario outcome did not hold (row count, null result, field value)."""


def check(condition: bool, message: str) -> None:
    """Raise ScenarioCheckError with `message` unless `condition` holds."""
    if not condition:
        raise ScenarioCheckError(message)


class StrategyTiming(TypedDict, total=False):
    """
    Timing of one strategy inside a scenario.

    `rows` counts entities the strategy loaded or touched client-side,
    `affected` the rows storage reported as changed (update strategies only).
    """

    strategy: str
    duration_ns: int
    duration_ms: float
    rows: int
    affected: Optional[int]


class ScenarioResult(TypedDict, total=False):
    """
    Metrics contract returned by scenarios.

    Fields are optional to keep implementations lightweight; orchestrator/reporters
    should tolerate missing values and enrich when possible.
    """

    rows: int
    timings: List[StrategyTiming]
    duration_seconds: float
    peak_rss_bytes: Optional[int]
    cpu_percent: Optional[float]
    error: Optional[str]
    notes: Optional[str]
    extra: Dict[str, Any]


@runtime_checkable
class BenchmarkScenario(Protocol):
    """
    Common interface all benchmark scenarios must implement.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    description : str
        A human-friendly summary of what the scenario compares.
    """

    name: str
    description: str

    def execute(self, data_access: DataAccess) -> ScenarioResult:
        """
        Run the scenario inside its own rolled-back transaction.

        Parameters
        ----------
        data_access : DataAccess
            A fresh handle owned by the caller; the scenario must not close it.

        Returns
        -------
        ScenarioResult
            Seeded row count and per-strategy timings.

        Raises
        ------
        ScenarioCheckError
            If an asserted outcome does not hold.
        """
        ...


class AbstractBenchmarkScenario(abc.ABC):
    """
    Optional ABC helper for class-based implementations.

    Subclasses should set `name` and `description` and implement `execute`.
    """

    name: str
    description: str

    @abc.abstractmethod
    def execute(self, data_access: DataAccess) -> ScenarioResult:  # pragma: no cover - interface only
        """Run the scenario and return metrics."""
        raise NotImplementedError


__all__ = [
    "AbstractBenchmarkScenario",
    "BenchmarkScenario",
    "ScenarioCheckError",
    "ScenarioResult",
    "StrategyTiming",
    "check",
]
