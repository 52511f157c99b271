from __future__ import annotations

import pytest
from sqlalchemy import select

from orm_bench.domain.models import Foo
from orm_bench.infrastructure.data_access import SqlAlchemyDataAccess
from orm_bench.scenarios.abstract import ScenarioCheckError, check
from orm_bench.scenarios.harness import count_rows, delete_all, reset_fixture, seed

SEED_ROWS = 250


def _codes(data_access: SqlAlchemyDataAccess) -> list[int]:
    return list(data_access.session.scalars(select(Foo.code)))


def test_seed_produces_each_code_exactly_once(data_access: SqlAlchemyDataAccess):
    with reset_fixture(data_access):
        seed(data_access, SEED_ROWS)
        codes = _codes(data_access)

    assert sorted(codes) == list(range(SEED_ROWS))


def test_seed_fills_descriptions_with_distinct_values(data_access: SqlAlchemyDataAccess):
    with reset_fixture(data_access):
        seed(data_access, 20)
        rows = data_access.session.execute(select(Foo.description, Foo.description2)).all()

    descriptions = [row.description for row in rows] + [row.description2 for row in rows]
    assert len(set(descriptions)) == 40


def test_seed_clears_the_session_cache(data_access: SqlAlchemyDataAccess):
    with reset_fixture(data_access):
        seed(data_access, 3)
        assert len(data_access.session.identity_map) == 0


def test_reset_fixture_rolls_back_after_success(data_access, data_access_factory):
    with reset_fixture(data_access):
        seed(data_access, 10)
        assert count_rows(data_access) == 10

    reader = data_access_factory()
    try:
        assert count_rows(reader) == 0
    finally:
        reader.close()


def test_reset_fixture_rolls_back_after_failure(data_access, data_access_factory):
    with pytest.raises(ScenarioCheckError, match="boom"):
        with reset_fixture(data_access):
            seed(data_access, 10)
            check(False, "boom")

    assert not data_access.in_transaction()
    reader = data_access_factory()
    try:
        assert count_rows(reader) == 0
    finally:
        reader.close()


def test_reset_fixture_purges_rows_only_inside_the_transaction(data_access_factory):
    writer = data_access_factory()
    writer.begin()
    seed(writer, 5)
    writer.commit()
    writer.close()

    scenario_handle = data_access_factory()
    try:
        with reset_fixture(scenario_handle):
            assert count_rows(scenario_handle) == 0
            seed(scenario_handle, 3)
            assert sorted(_codes(scenario_handle)) == [0, 1, 2]
        assert count_rows(scenario_handle) == 5
    finally:
        scenario_handle.close()

    cleaner = data_access_factory()
    cleaner.begin()
    delete_all(cleaner)
    cleaner.commit()
    cleaner.close()


def test_check_passes_silently_when_condition_holds():
    check(True, "never raised")


def test_check_failure_is_an_assertion_error():
    with pytest.raises(AssertionError):
        check(1 == 2, "mismatch")
