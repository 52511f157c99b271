"""
Shared scaffolding for benchmark scenarios: isolation, seeding and timing records.
"""

from __future__ import annotations

import contextlib
import uuid
from typing import Generator, Optional

from sqlalchemy import delete, func, select

from orm_bench.domain.models import Foo
from orm_bench.infrastructure.data_access import DataAccess
from orm_bench.scenarios.abstract import StrategyTiming
from orm_bench.utils.logging import get_logger
from orm_bench.utils.profiler import Stopwatch

log = get_logger(__name__)


@contextlib.contextmanager
def reset_fixture(data_access: DataAccess, purge: bool = True) -> Generator[DataAccess, None, None]:
    """
    Scope a scenario to one transaction that is always rolled back.

    On entry: begin, flush, clear the session cache and (with `purge`) delete
    every `foo` row so seeding starts from an empty table. On exit, success or
    failure: rollback, discarding everything the scenario wrote.
    """
    data_access.begin()
    try:
        data_access.flush()
        data_access.clear()
        if purge:
            delete_all(data_access)
        yield data_access
    finally:
        data_access.rollback()
        log.debug("Scenario transaction rolled back")


def seed(data_access: DataAccess, count: int) -> None:
    """
    Insert `count` rows with codes 0..count-1 and random descriptions.

    Flushes the batch to storage and clears the session cache so the next read
    has to go to storage.
    """
    data_access.insert_all(
        Foo(code=i, description=str(uuid.uuid4()), description2=str(uuid.uuid4()))
        for i in range(count)
    )
    data_access.flush()
    data_access.clear()
    log.debug("Seeded rows", extra={"rows": count})


def delete_all(data_access: DataAccess) -> int:
    """Bulk-delete every row and clear the session cache."""
    deleted = data_access.bulk_execute(delete(Foo))
    data_access.clear()
    return deleted


def count_rows(data_access: DataAccess, *criteria) -> int:
    """Count `foo` rows in storage matching all `criteria`."""
    statement = select(func.count()).select_from(Foo)
    if criteria:
        statement = statement.where(*criteria)
    return data_access.query_one(statement)


def timing_of(
    strategy: str, watch: Stopwatch, rows: int, affected: Optional[int] = None
) -> StrategyTiming:
    return StrategyTiming(
        strategy=strategy,
        duration_ns=watch.elapsed_ns,
        duration_ms=round(watch.elapsed_ns / 1_000_000, 3),
        rows=rows,
        affected=affected,
    )


__all__ = ["count_rows", "delete_all", "reset_fixture", "seed", "timing_of"]
