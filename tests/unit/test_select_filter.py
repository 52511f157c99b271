from __future__ import annotations

import pytest

from orm_bench.domain.models import Foo
from orm_bench.scenarios.harness import reset_fixture, seed
from orm_bench.scenarios.select_filter import (
    FilterStrategy,
    SelectFilterScenario,
    _split_ranges,
    find_by_query,
    find_parallel,
    find_sequential,
    load_all,
)

SMALL_ROWS = 300


def _flatten_ranges(ranges: list[tuple[int, int]]) -> list[int]:
    return [value for start, end in ranges for value in range(start, end)]


def test_split_ranges_handles_total_less_than_parts():
    assert _split_ranges(total=3, parts=5) == [(0, 1), (1, 2), (2, 3)]


def test_split_ranges_distributes_remainder():
    assert _split_ranges(total=10, parts=3) == [(0, 4), (4, 7), (7, 10)]


def test_split_ranges_covers_exact_total():
    assert _flatten_ranges(_split_ranges(total=12, parts=4)) == list(range(12))


def test_split_ranges_empty_input():
    assert _split_ranges(total=0, parts=4) == []


def test_find_parallel_returns_first_match_in_list_order():
    foos = [Foo(id=i, code=i % 5) for i in range(23)]

    match = find_parallel(foos, code=3, workers=4)

    assert match is foos[3]
    assert match is find_sequential(foos, code=3)


def test_find_parallel_returns_none_without_match():
    foos = [Foo(id=i, code=i) for i in range(10)]
    assert find_parallel(foos, code=42, workers=3) is None
    assert find_parallel([], code=0, workers=3) is None


def test_filter_strategies_agree_on_the_last_code(data_access):
    with reset_fixture(data_access):
        seed(data_access, SMALL_ROWS)
        target = SMALL_ROWS - 1

        foos = load_all(data_access)
        sequential = find_sequential(foos, target)
        parallel = find_parallel(foos, target, workers=4)
        queried = find_by_query(data_access, target)

        assert len(foos) == SMALL_ROWS
        assert sequential is not None
        assert sequential is parallel is queried
        assert queried.code == target


def test_select_filter_scenario_times_every_strategy(data_access):
    scenario = SelectFilterScenario(rows=SMALL_ROWS, concurrency=3)

    result = scenario.execute(data_access)

    assert result["rows"] == SMALL_ROWS
    assert [t["strategy"] for t in result["timings"]] == [s.value for s in FilterStrategy]
    assert all(t["duration_ns"] >= 0 for t in result["timings"])
    assert result["extra"]["target_code"] == SMALL_ROWS - 1
    assert len(set(result["extra"]["matched_ids"].values())) == 1
    scanned = {t["strategy"]: t["rows"] for t in result["timings"]}
    assert scanned == {"sequential": SMALL_ROWS, "parallel": SMALL_ROWS, "query": 1}


def test_select_filter_scenario_leaves_no_rows_behind(data_access, data_access_factory):
    SelectFilterScenario(rows=50, concurrency=2).execute(data_access)

    reader = data_access_factory()
    try:
        assert load_all(reader) == []
    finally:
        reader.close()


def test_select_filter_scenario_rejects_non_positive_rows():
    with pytest.raises(ValueError):
        SelectFilterScenario(rows=-1)


@pytest.mark.slow
def test_select_filter_scenario_full_size(data_access):
    result = SelectFilterScenario(rows=20_000, concurrency=4).execute(data_access)
    assert result["extra"]["target_code"] == 19_999
