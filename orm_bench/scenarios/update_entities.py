"""
Update-same-type scenario: four ways to set `description` on a code range.

For codes strictly between `low` and `high`:
- per_row_flush: load entities, mutate, merge and flush after every row.
- batched_flush: same loop, one flush at the end.
- chunked_in_clause: load entities only for their ids, then one
  `UPDATE ... WHERE id IN (...)` per chunk of at most `max_in_clause` ids.
- direct_bulk: a single `UPDATE ... WHERE code > :low AND code < :high`.

All four leave storage in the same state; only their cost differs. The table
is purged and reseeded before each strategy so every run starts from the same
baseline.
"""

from __future__ import annotations

import enum
from typing import List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import bindparam, select, update

from orm_bench.config import get_settings
from orm_bench.domain.models import Foo
from orm_bench.infrastructure.data_access import DataAccess
from orm_bench.scenarios.abstract import (
    AbstractBenchmarkScenario,
    ScenarioResult,
    StrategyTiming,
    check,
)
from orm_bench.scenarios.harness import count_rows, delete_all, reset_fixture, seed, timing_of
from orm_bench.utils.profiler import stopwatch

UPDATED = "UPDATED"

T = TypeVar("T")


class UpdateStrategy(str, enum.Enum):
    PER_ROW_FLUSH = "per_row_flush"
    BATCHED_FLUSH = "batched_flush"
    CHUNKED_IN_CLAUSE = "chunked_in_clause"
    DIRECT_BULK = "direct_bulk"


def partition(items: Sequence[T], size: int) -> List[Sequence[T]]:
    """Consecutive slices of `items` of length `size`; the last may be shorter."""
    if size < 1:
        raise ValueError(f"partition size must be positive, got {size}")
    return [items[start : start + size] for start in range(0, len(items), size)]


def default_code_range(rows: int) -> Tuple[int, int]:
    """(rows // 2, rows * 3 // 4): (10000, 15000) for 20000 rows."""
    return rows // 2, rows * 3 // 4


def expected_affected(low: int, high: int) -> int:
    """Rows with low < code < high, given codes 0..rows-1 and high <= rows."""
    return max(0, high - low - 1)


def _in_range(low: int, high: int):
    return (Foo.code > low, Foo.code < high)


def load_range(data_access: DataAccess, low: int, high: int) -> List[Foo]:
    statement = select(Foo).where(*_in_range(low, high)).order_by(Foo.code)
    return data_access.query(statement)


def update_per_row_flush(data_access: DataAccess, foos: Sequence[Foo], description: str) -> int:
    for foo in foos:
        foo.description = description
        data_access.merge(foo)
        data_access.flush()
    return len(foos)


def update_batched_flush(data_access: DataAccess, foos: Sequence[Foo], description: str) -> int:
    for foo in foos:
        foo.description = description
        data_access.merge(foo)
    data_access.flush()
    return len(foos)


def update_chunked_in_clause(
    data_access: DataAccess, ids: Sequence[int], description: str, chunk_size: int
) -> int:
    """One `UPDATE ... WHERE id IN (chunk)` per chunk; returns the summed rowcount."""
    statement = (
        update(Foo)
        .where(Foo.id.in_(bindparam("ids", expanding=True)))
        .values(description=bindparam("new_description"))
    )
    updated = 0
    for chunk in partition(ids, chunk_size):
        updated += data_access.bulk_execute(
            statement, {"ids": list(chunk), "new_description": description}
        )
    data_access.flush()
    return updated


def update_direct_bulk(data_access: DataAccess, low: int, high: int, description: str) -> int:
    statement = (
        update(Foo).where(*_in_range(low, high)).values(description=bindparam("new_description"))
    )
    return data_access.bulk_execute(statement, {"new_description": description})


class UpdateEntitiesScenario(AbstractBenchmarkScenario):
    """
    Seed `rows` entities per strategy and time each UpdateStrategy over the code range.
    """

    name: str = "update_entities"
    description: str = "Per-row flush vs batched flush vs chunked IN vs single bulk UPDATE."

    def __init__(
        self,
        rows: Optional[int] = None,
        code_range: Optional[Tuple[int, int]] = None,
        max_in_clause: Optional[int] = None,
        strategies: Optional[Sequence[UpdateStrategy]] = None,
    ) -> None:
        settings = get_settings()
        self.rows = rows or settings.benchmark_rows
        self.low, self.high = code_range or default_code_range(self.rows)
        self.max_in_clause = max_in_clause or settings.benchmark_max_in_clause
        self.strategies = list(strategies or UpdateStrategy)

        if self.low < 0 or self.high <= self.low or self.high > self.rows:
            raise ValueError(
                f"Invalid code range ({self.low}, {self.high}) for {self.rows} rows"
            )
        if self.max_in_clause < 1:
            raise ValueError(f"max_in_clause must be positive, got {self.max_in_clause}")

    @property
    def expected(self) -> int:
        return expected_affected(self.low, self.high)

    def run_strategy(self, data_access: DataAccess, strategy: UpdateStrategy) -> StrategyTiming:
        """
        Apply one strategy to freshly seeded rows and return its timing.

        Loading the range is not timed; only the update path is.
        """
        label = f"{self.name}.{strategy.value}"
        foos: Sequence[Foo] = ()
        if strategy is not UpdateStrategy.DIRECT_BULK:
            foos = load_range(data_access, self.low, self.high)

        with stopwatch(label, strategy=strategy.value) as watch:
            if strategy is UpdateStrategy.PER_ROW_FLUSH:
                affected = update_per_row_flush(data_access, foos, UPDATED)
            elif strategy is UpdateStrategy.BATCHED_FLUSH:
                affected = update_batched_flush(data_access, foos, UPDATED)
            elif strategy is UpdateStrategy.CHUNKED_IN_CLAUSE:
                affected = update_chunked_in_clause(
                    data_access, [foo.id for foo in foos], UPDATED, self.max_in_clause
                )
            else:
                affected = update_direct_bulk(data_access, self.low, self.high, UPDATED)

        return timing_of(strategy.value, watch, rows=len(foos), affected=affected)

    def verify(self, data_access: DataAccess, strategy: UpdateStrategy, affected: int) -> None:
        """Every in-range row reads UPDATED from storage and no other row does."""
        check(
            affected == self.expected,
            f"{strategy.value}: affected {affected} rows, expected {self.expected}",
        )
        in_range = count_rows(data_access, *_in_range(self.low, self.high), Foo.description == UPDATED)
        check(
            in_range == self.expected,
            f"{strategy.value}: {in_range} in-range rows read {UPDATED!r}, expected {self.expected}",
        )
        total = count_rows(data_access, Foo.description == UPDATED)
        check(
            total == self.expected,
            f"{strategy.value}: {total - in_range} rows outside the range were modified",
        )

    def execute(self, data_access: DataAccess) -> ScenarioResult:
        timings: List[StrategyTiming] = []

        with reset_fixture(data_access):
            for strategy in self.strategies:
                delete_all(data_access)
                seed(data_access, self.rows)
                timing = self.run_strategy(data_access, strategy)
                self.verify(data_access, strategy, timing["affected"])
                timings.append(timing)

        return ScenarioResult(
            rows=self.rows,
            timings=timings,
            notes=(
                f"{self.expected} rows with {self.low} < code < {self.high}, "
                f"max_in_clause={self.max_in_clause}."
            ),
            extra={
                "code_range": [self.low, self.high],
                "expected_affected": self.expected,
                "max_in_clause": self.max_in_clause,
            },
        )


__all__ = [
    "UPDATED",
    "UpdateEntitiesScenario",
    "UpdateStrategy",
    "default_code_range",
    "expected_affected",
    "load_range",
    "partition",
    "update_batched_flush",
    "update_chunked_in_clause",
    "update_direct_bulk",
    "update_per_row_flush",
]
