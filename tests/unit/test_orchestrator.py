from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import pytest

from orm_bench import orchestrator
from orm_bench.orchestrator import RunConfig, _aggregate_runs, _merge_result, run_scenarios
from orm_bench.scenarios.abstract import ScenarioCheckError
from orm_bench.utils.profiler import ProfileStats

DEFAULT_ROWS = 7
WARMUP_RUN_COUNT = 1
MEASUREMENT_RUN_COUNT = 3
FAILING_MEASUREMENT_RUN_COUNT = 2


class _TrackedDataAccess:
    def __init__(self) -> None:
        self.close_calls = 0

    def close(self) -> None:
        self.close_calls += 1


class _CannedScenario:
    name = "canned"
    description = "test scenario returning canned timings"

    def __init__(self) -> None:
        self.seen: list[Any] = []

    def execute(self, data_access: Any) -> dict[str, Any]:
        self.seen.append(data_access)
        return {
            "rows": DEFAULT_ROWS,
            "timings": [
                {"strategy": "fast", "duration_ns": 1_000_000, "duration_ms": 1.0, "rows": 1},
                {"strategy": "slow", "duration_ns": 5_000_000, "duration_ms": 5.0, "rows": 7},
            ],
        }


class _FailingScenario(_CannedScenario):
    name = "always_fails"

    def execute(self, data_access: Any) -> dict[str, Any]:
        self.seen.append(data_access)
        raise ScenarioCheckError("affected 3 rows, expected 4")


def _install(monkeypatch, scenario_cls) -> list[_CannedScenario]:
    created: list[_CannedScenario] = []

    def make() -> _CannedScenario:
        scenario = scenario_cls()
        created.append(scenario)
        return scenario

    def fake_factories(rows: int | None = None) -> dict[str, Callable[[], _CannedScenario]]:
        del rows
        return {scenario_cls.name: make}

    monkeypatch.setattr(orchestrator, "_scenario_factories", fake_factories)
    return created


def _recording_factory() -> tuple[list[_TrackedDataAccess], Callable[[], _TrackedDataAccess]]:
    handles: list[_TrackedDataAccess] = []

    def factory() -> _TrackedDataAccess:
        handle = _TrackedDataAccess()
        handles.append(handle)
        return handle

    return handles, factory


def test_each_run_gets_a_fresh_data_access_that_is_closed(monkeypatch) -> None:
    created = _install(monkeypatch, _CannedScenario)
    handles, factory = _recording_factory()

    run_scenarios(
        RunConfig(
            scenario_names=["canned"],
            rows=DEFAULT_ROWS,
            persist=False,
            warmup=True,
            runs=MEASUREMENT_RUN_COUNT,
        ),
        data_access_factory=factory,
    )

    expected_runs = WARMUP_RUN_COUNT + MEASUREMENT_RUN_COUNT
    assert len(handles) == expected_runs
    assert len({id(handle) for handle in handles}) == expected_runs
    assert all(handle.close_calls == 1 for handle in handles)
    # one instance per name resolution up front, then one per run
    assert [len(s.seen) for s in created if s.seen] == [1] * expected_runs


def test_multiple_runs_are_aggregated_per_strategy(monkeypatch) -> None:
    _install(monkeypatch, _CannedScenario)
    _, factory = _recording_factory()

    results = run_scenarios(
        RunConfig(scenario_names=["canned"], persist=False, runs=MEASUREMENT_RUN_COUNT),
        data_access_factory=factory,
    )

    assert len(results) == 1
    result = results[0]
    assert result["runs"] == MEASUREMENT_RUN_COUNT
    assert len(result["individual_runs"]) == MEASUREMENT_RUN_COUNT
    assert result["failed_runs"] == 0
    timings = {t["strategy"]: t["duration_ms"] for t in result["timings"]}
    assert timings["fast"]["median"] == 1.0
    assert timings["slow"]["stddev"] == 0.0
    assert "median" in result["duration_seconds"]


def test_tolerant_policy_records_failures_and_closes_handles(monkeypatch) -> None:
    _install(monkeypatch, _FailingScenario)
    handles, factory = _recording_factory()

    results = run_scenarios(
        RunConfig(
            scenario_names=["always_fails"],
            persist=False,
            runs=FAILING_MEASUREMENT_RUN_COUNT,
            failure_policy="tolerant",
        ),
        data_access_factory=factory,
    )

    assert len(handles) == FAILING_MEASUREMENT_RUN_COUNT
    assert all(handle.close_calls == 1 for handle in handles)
    assert results[0]["failed_runs"] == FAILING_MEASUREMENT_RUN_COUNT
    for run in results[0]["individual_runs"]:
        assert run["error"] == "affected 3 rows, expected 4"
        assert run["rows"] == 0
        assert run["notes"] == "Execution failed in tolerant mode; run continued."
        assert run["extra"]["failed"] is True
        assert run["extra"]["error_type"] == "ScenarioCheckError"
        assert run["extra"]["failure_policy"] == "tolerant"


def test_strict_policy_fails_fast(monkeypatch) -> None:
    _install(monkeypatch, _FailingScenario)
    handles, factory = _recording_factory()

    with pytest.raises(ScenarioCheckError, match="expected 4"):
        run_scenarios(
            RunConfig(
                scenario_names=["always_fails"],
                persist=False,
                runs=FAILING_MEASUREMENT_RUN_COUNT,
                failure_policy="strict",
            ),
            data_access_factory=factory,
        )

    assert len(handles) == 1
    assert handles[0].close_calls == 1


def test_unknown_scenario_is_rejected_before_any_run() -> None:
    handles, factory = _recording_factory()

    with pytest.raises(ValueError, match="Unknown scenario 'nope'"):
        run_scenarios(
            RunConfig(scenario_names=["stale_read", "nope"], persist=False),
            data_access_factory=factory,
        )

    assert handles == []


def test_results_are_persisted(monkeypatch, tmp_path) -> None:
    _install(monkeypatch, _CannedScenario)
    _, factory = _recording_factory()

    run_scenarios(
        RunConfig(scenario_names=["canned"], results_dir=tmp_path, persist=True),
        data_access_factory=factory,
    )

    payload = json.loads((tmp_path / "latest.json").read_text(encoding="utf-8"))
    assert payload["scenarios"] == ["canned"]
    assert payload["results"][0]["scenario"] == "canned"
    assert len(list(tmp_path.glob("run-*.json"))) == 1


def test_merge_result_takes_duration_and_memory_from_profiler() -> None:
    stats = ProfileStats(
        label="test",
        start_ts=1.0,
        end_ts=3.0,
        duration_seconds=2.0,
        duration_ns=2_000_000_000,
        peak_rss_bytes=123,
        cpu_percent=12.34,
    )

    merged = _merge_result({"rows": 100, "duration_seconds": 1.0}, stats)

    assert merged["duration_seconds"] == 2.0
    assert merged["peak_rss_bytes"] == 123
    assert merged["cpu_percent"] == 12.3
    assert merged["timings"] == []
    assert merged["error"] is None
    assert merged["profile"]["duration_ns"] == 2_000_000_000


def test_aggregate_runs_when_every_run_failed() -> None:
    aggregated = _aggregate_runs([{"rows": 0, "error": "boom"}, {"rows": 0, "error": "boom"}])

    assert aggregated["failed_runs"] == 2
    assert aggregated["error"] == "boom"
    assert "timings" not in aggregated


def test_all_scenarios_run_against_sqlite(data_access_factory) -> None:
    results = run_scenarios(
        RunConfig(scenario_names=["all"], rows=40, persist=False, failure_policy="strict"),
        data_access_factory=data_access_factory,
    )

    by_name = {result["scenario"]: result for result in results}
    assert set(by_name) == {"select_filter", "stale_read", "update_entities"}
    assert all(result["error"] is None for result in results)
    assert by_name["select_filter"]["rows"] == 40
    assert all(t["affected"] == 9 for t in by_name["update_entities"]["timings"])
    assert by_name["stale_read"]["timings"][0]["affected"] == 1
