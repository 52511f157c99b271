"""
Stale-read scenario: a bulk UPDATE does not reach objects already in the session.

A handle loaded before a storage-level update keeps its old field values
until it is explicitly refreshed from storage.
"""

from __future__ import annotations

from sqlalchemy import bindparam, select, update

from orm_bench.domain.models import Foo, FooSnapshot
from orm_bench.infrastructure.data_access import DataAccess
from orm_bench.scenarios.abstract import AbstractBenchmarkScenario, ScenarioResult, check
from orm_bench.scenarios.harness import reset_fixture, seed, timing_of
from orm_bench.scenarios.update_entities import UPDATED
from orm_bench.utils.profiler import stopwatch

CODE = 0


def load_by_code(data_access: DataAccess, code: int) -> Foo:
    return data_access.query_one(
        select(Foo).where(Foo.code == bindparam("match_code")), {"match_code": code}
    )


def bulk_set_description(data_access: DataAccess, code: int, description: str) -> int:
    """
    Storage-level `UPDATE foo SET description = ... WHERE code = ...`.

    Bind names differ from column names; UPDATE reserves column-named binds
    for its SET clause. Loaded handles are not synchronized.
    """
    statement = (
        update(Foo)
        .where(Foo.code == bindparam("match_code"))
        .values(description=bindparam("new_description"))
    )
    return data_access.bulk_execute(
        statement, {"match_code": code, "new_description": description}
    )


class StaleReadScenario(AbstractBenchmarkScenario):
    name: str = "stale_read"
    description: str = "Handle stays stale after a bulk UPDATE until refreshed."

    def execute(self, data_access: DataAccess) -> ScenarioResult:
        with reset_fixture(data_access):
            seed(data_access, 1)

            handle = load_by_code(data_access, CODE)
            before = FooSnapshot.of(handle)

            with stopwatch(f"{self.name}.bulk_update", strategy="bulk_update") as update_watch:
                updated = bulk_set_description(data_access, CODE, UPDATED)

            check(updated == 1, f"bulk update affected {updated} rows, expected 1")
            check(
                handle.description != UPDATED,
                "session handle already reflects the bulk update before refresh",
            )
            stale = FooSnapshot.of(handle)

            with stopwatch(f"{self.name}.refresh", strategy="refresh") as refresh_watch:
                data_access.refresh(handle)

            check(
                handle.description == UPDATED,
                f"refreshed handle reads {handle.description!r}, expected {UPDATED!r}",
            )
            after = FooSnapshot.of(handle)

        return ScenarioResult(
            rows=1,
            timings=[
                timing_of("bulk_update", update_watch, rows=0, affected=updated),
                timing_of("refresh", refresh_watch, rows=1),
            ],
            notes="Bulk UPDATE bypasses the session; refresh reconciles the handle.",
            extra={
                "before": before.model_dump(),
                "stale": stale.model_dump(),
                "after": after.model_dump(),
            },
        )


__all__ = ["StaleReadScenario", "bulk_set_description", "load_by_code"]
