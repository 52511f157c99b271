"""
Select-and-filter scenario: client-side filtering versus a pushed-down predicate.

Three ways of finding the row with `code == rows - 1`:
- sequential: load every row, scan in order.
- parallel: load every row, scan contiguous slices on a thread pool.
- query: let the database evaluate `WHERE code = :code`.

The gap between the first two and the third grows with the row count.
"""

from __future__ import annotations

import enum
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from sqlalchemy import bindparam, select

from orm_bench.config import get_settings
from orm_bench.domain.models import Foo
from orm_bench.infrastructure.data_access import DataAccess
from orm_bench.scenarios.abstract import AbstractBenchmarkScenario, ScenarioResult, check
from orm_bench.scenarios.harness import reset_fixture, seed, timing_of
from orm_bench.utils.profiler import stopwatch


class FilterStrategy(str, enum.Enum):
    SEQUENTIAL = "sequential"
    PARALLEL = "parallel"
    QUERY = "query"


def _split_ranges(total: int, parts: int) -> List[tuple[int, int]]:
    """
    Split [0, total) into at most `parts` contiguous half-open ranges.

    Earlier ranges absorb the remainder, so sizes differ by at most one.
    """
    if total <= 0:
        return []
    parts = max(1, min(parts, total))
    base, remainder = divmod(total, parts)
    ranges: List[tuple[int, int]] = []
    start = 0
    for index in range(parts):
        end = start + base + (1 if index < remainder else 0)
        ranges.append((start, end))
        start = end
    return ranges


def find_sequential(foos: Sequence[Foo], code: int) -> Optional[Foo]:
    return next((foo for foo in foos if foo.code == code), None)


def find_parallel(foos: Sequence[Foo], code: int, workers: int) -> Optional[Foo]:
    """
    First entity with `code`, in list order, scanning slices concurrently.

    Workers only read already-loaded attributes. Every slice finishes before
    this returns.
    """

    def _scan(bounds: tuple[int, int]) -> Optional[Foo]:
        start, end = bounds
        for index in range(start, end):
            if foos[index].code == code:
                return foos[index]
        return None

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        matches = list(pool.map(_scan, _split_ranges(len(foos), workers)))
    return next((match for match in matches if match is not None), None)


def find_by_query(data_access: DataAccess, code: int) -> Foo:
    """Exactly one entity with `code`; raises if there is none or several."""
    statement = select(Foo).where(Foo.code == bindparam("match_code"))
    return data_access.query_one(statement, {"match_code": code})


def load_all(data_access: DataAccess) -> List[Foo]:
    return data_access.query(select(Foo))


class SelectFilterScenario(AbstractBenchmarkScenario):
    """
    Seed `rows` entities and time each FilterStrategy looking up the last code.
    """

    name: str = "select_filter"
    description: str = "Client-side sequential/parallel filtering vs WHERE clause."

    def __init__(
        self,
        rows: Optional[int] = None,
        concurrency: Optional[int] = None,
        strategies: Optional[Sequence[FilterStrategy]] = None,
    ) -> None:
        settings = get_settings()
        self.rows = rows or settings.benchmark_rows
        self.concurrency = concurrency or settings.benchmark_concurrency
        self.strategies = list(strategies or FilterStrategy)
        if self.rows < 1:
            raise ValueError(f"rows must be positive, got {self.rows}")

    def _run(self, data_access: DataAccess, strategy: FilterStrategy, code: int) -> tuple[Optional[Foo], int]:
        if strategy is FilterStrategy.QUERY:
            return find_by_query(data_access, code), 1
        foos = load_all(data_access)
        if strategy is FilterStrategy.SEQUENTIAL:
            return find_sequential(foos, code), len(foos)
        return find_parallel(foos, code, self.concurrency), len(foos)

    def execute(self, data_access: DataAccess) -> ScenarioResult:
        target = self.rows - 1
        timings = []
        matched: Dict[str, int] = {}

        with reset_fixture(data_access):
            seed(data_access, self.rows)

            # Warm-up so the first timed select pays no one-off cost.
            load_all(data_access)
            data_access.clear()

            for strategy in self.strategies:
                with stopwatch(f"{self.name}.{strategy.value}", strategy=strategy.value) as watch:
                    foo, scanned = self._run(data_access, strategy, target)
                check(foo is not None, f"{strategy.value}: no row with code={target}")
                check(foo.code == target, f"{strategy.value}: matched code={foo.code}, expected {target}")
                matched[strategy.value] = foo.id
                timings.append(timing_of(strategy.value, watch, rows=scanned))
                data_access.clear()

        check(
            len(set(matched.values())) <= 1,
            f"Strategies disagree on the matching row: {matched}",
        )

        return ScenarioResult(
            rows=self.rows,
            timings=timings,
            notes=f"Lookup of code={target} among {self.rows} rows, concurrency={self.concurrency}.",
            extra={"target_code": target, "matched_ids": matched},
        )


__all__ = [
    "FilterStrategy",
    "SelectFilterScenario",
    "find_by_query",
    "find_parallel",
    "find_sequential",
    "load_all",
]
