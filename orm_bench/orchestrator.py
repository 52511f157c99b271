"""
Orchestrator for running benchmark scenarios, profiling execution, and persisting results.

Usage (example from CLI):
    from orm_bench.orchestrator import RunConfig, run_scenarios

    results = run_scenarios(RunConfig(scenario_names=["update_entities"], rows=20_000))
    print(results)

Each scenario run gets a fresh data-access handle from the factory and closes
it afterwards, so no session state crosses a run boundary.

Outputs are saved to `results/` by default:
- `results/latest.json` (last run)
- `results/run-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import json
import statistics
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Literal, Optional

from orm_bench.config import get_settings
from orm_bench.infrastructure.data_access import DataAccess, SqlAlchemyDataAccess
from orm_bench.infrastructure.db_factory import get_session_factory
from orm_bench.scenarios.abstract import BenchmarkScenario, ScenarioResult
from orm_bench.scenarios.select_filter import SelectFilterScenario
from orm_bench.scenarios.stale_read import StaleReadScenario
from orm_bench.scenarios.update_entities import UpdateEntitiesScenario
from orm_bench.utils.logging import get_logger, log_context
from orm_bench.utils.profiler import ProfileStats, profile_block

log = get_logger(__name__)

DataAccessFactory = Callable[[], DataAccess]
FailurePolicy = Literal["tolerant", "strict"]


@dataclass
class RunConfig:
    """
    Parameters for one orchestrator invocation.

    Attributes
    ----------
    scenario_names : iterable[str] | None
        Scenario names to execute. If None or ["all"], executes all available.
    rows : int | None
        Rows seeded by row-count driven scenarios. Defaults to settings.benchmark_rows.
    results_dir : Path | str | None
        Directory to store JSON artifacts. Defaults to settings.benchmark_results_dir.
    persist : bool
        Whether to write results to disk.
    warmup : bool
        Whether to run each scenario once before measurement to warm caches.
    runs : int
        Number of measurement runs per scenario (for statistical aggregation).
    failure_policy : "tolerant" | "strict" | None
        tolerant records the failure and continues; strict re-raises at once.
        Defaults to settings.benchmark_failure_policy.
    """

    scenario_names: Optional[Iterable[str]] = None
    rows: Optional[int] = None
    results_dir: Optional[Path | str] = None
    persist: bool = True
    warmup: bool = False
    runs: int = 1
    failure_policy: Optional[FailurePolicy] = None


def _round_float(value: float, decimals: int = 2) -> float:
    """Round a float to specified decimal places for human-readable output."""
    return round(value, decimals)


def _round_stats(stats: dict, decimals: int = 2) -> dict:
    """Round all float values in a stats dictionary."""
    return {k: _round_float(v, decimals) if isinstance(v, float) else v for k, v in stats.items()}


def _summary(values: List[float], decimals: int = 2) -> dict:
    return _round_stats(
        {
            "median": float(statistics.median(values)),
            "mean": float(statistics.mean(values)),
            "stddev": float(statistics.stdev(values)) if len(values) > 1 else 0.0,
            "min": float(min(values)),
            "max": float(max(values)),
        },
        decimals=decimals,
    )


def _aggregate_runs(run_results: List[dict]) -> dict:
    """
    Aggregate multiple runs into statistical summary.

    Returns median, mean, and stddev of the scenario duration and of each
    strategy's duration in milliseconds. Failed runs are excluded from the
    statistics but counted.
    """
    succeeded = [r for r in run_results if not r.get("error")]
    aggregated: dict = {
        "rows": run_results[0].get("rows", 0),
        "failed_runs": len(run_results) - len(succeeded),
    }
    if not succeeded:
        aggregated["error"] = run_results[-1].get("error")
        return aggregated

    aggregated["duration_seconds"] = _summary([r["duration_seconds"] for r in succeeded])

    per_strategy: Dict[str, List[float]] = {}
    affected: Dict[str, Optional[int]] = {}
    for result in succeeded:
        for timing in result.get("timings", []):
            per_strategy.setdefault(timing["strategy"], []).append(timing["duration_ms"])
            affected[timing["strategy"]] = timing.get("affected")
    aggregated["timings"] = [
        {"strategy": name, "duration_ms": _summary(values, 3), "affected": affected[name]}
        for name, values in per_strategy.items()
    ]

    peak_rss_values = [r["peak_rss_bytes"] for r in succeeded if r.get("peak_rss_bytes")]
    if peak_rss_values:
        aggregated["peak_rss_bytes"] = {
            "median": int(statistics.median(peak_rss_values)),
            "max": max(peak_rss_values),
        }

    return aggregated


def _scenario_factories(rows: Optional[int] = None) -> Dict[str, Callable[[], BenchmarkScenario]]:
    """Registry of available scenarios."""
    return {
        "select_filter": lambda: SelectFilterScenario(rows=rows),
        "update_entities": lambda: UpdateEntitiesScenario(rows=rows),
        "stale_read": lambda: StaleReadScenario(),
    }


def available_scenarios() -> List[str]:
    """List available scenario names."""
    return sorted(_scenario_factories().keys())


def _resolve_scenario(name: str, rows: Optional[int]) -> BenchmarkScenario:
    factories = _scenario_factories(rows)
    if name not in factories:
        raise ValueError(f"Unknown scenario '{name}'. Available: {', '.join(factories)}")
    return factories[name]()


def default_data_access_factory() -> DataAccess:
    """A new session-backed handle on the configured database."""
    return SqlAlchemyDataAccess(get_session_factory())


def _persist_results(payload: dict, results_dir: Path) -> None:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"run-{timestamp}.json"

    for path in (latest_path, archive_path):
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True, default=str)

    log.info("Results persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


def _run_once(scenario: BenchmarkScenario, data_access_factory: DataAccessFactory) -> ScenarioResult:
    data_access = data_access_factory()
    try:
        return scenario.execute(data_access)
    finally:
        data_access.close()


def _profiled_execute(
    scenario: BenchmarkScenario,
    data_access_factory: DataAccessFactory,
    failure_policy: FailurePolicy,
) -> dict:
    log.info(f"[SCENARIO START] {scenario.name}")
    # tracemalloc would inflate every ORM allocation inside the timed strategies.
    with profile_block(scenario.name, enable_tracemalloc=False) as stats:
        try:
            result = _run_once(scenario, data_access_factory)
            log.info(
                f"[SCENARIO SUCCESS] {scenario.name}",
                extra={"rows": result.get("rows")},
            )
        except Exception as exc:
            log.exception(f"[SCENARIO FAILED] {scenario.name}")
            if failure_policy == "strict":
                raise
            result = ScenarioResult(
                error=str(exc),
                rows=0,
                timings=[],
                notes="Execution failed in tolerant mode; run continued.",
                extra={
                    "failed": True,
                    "error_type": type(exc).__name__,
                    "failure_policy": failure_policy,
                },
            )

    return _merge_result(result, stats)


def _merge_result(result: ScenarioResult, stats: ProfileStats) -> dict:
    """Merge scenario result with profiler stats, rounding floats for readability."""
    merged = dict(result)
    merged.setdefault("rows", 0)
    merged.setdefault("timings", [])
    merged.setdefault("error", None)
    # The profiler wraps the whole scenario, seeding and verification included.
    merged["duration_seconds"] = _round_float(stats.duration_seconds, 3)
    merged["peak_rss_bytes"] = stats.peak_rss_bytes
    merged["cpu_percent"] = _round_float(stats.cpu_percent, 1) if stats.cpu_percent else None
    merged["profile"] = {
        "label": stats.label,
        "start_ts": _round_float(stats.start_ts, 3),
        "end_ts": _round_float(stats.end_ts, 3),
        "duration_ns": stats.duration_ns,
        "peak_rss_bytes": stats.peak_rss_bytes,
        "cpu_percent": merged["cpu_percent"],
    }
    return merged


def run_scenarios(
    config: Optional[RunConfig] = None,
    data_access_factory: Optional[DataAccessFactory] = None,
) -> List[dict]:
    """
    Run one or more scenarios and optionally persist the aggregated results.

    Parameters
    ----------
    config : RunConfig | None
        What to run and how; defaults to every scenario once with settings defaults.
    data_access_factory : callable | None
        Produces a fresh DataAccess per scenario run. Defaults to a
        SqlAlchemyDataAccess on the configured database.

    Returns
    -------
    List[dict]
        List of per-scenario result dictionaries including profiler stats.
        If runs > 1, includes aggregated statistics (median, mean, stddev).
    """
    config = config or RunConfig()
    settings = get_settings()
    factory = data_access_factory or default_data_access_factory
    failure_policy: FailurePolicy = config.failure_policy or settings.benchmark_failure_policy
    results_dir = Path(config.results_dir or settings.benchmark_results_dir)
    rows = config.rows or settings.benchmark_rows

    names = list(config.scenario_names) if config.scenario_names is not None else ["all"]
    if len(names) == 1 and names[0] == "all":
        names = available_scenarios()
    # Resolve every name up front so a typo fails before any work is done.
    for name in names:
        _resolve_scenario(name, rows)

    total_global_runs = len(names) * config.runs
    current_run = 0

    results: List[dict] = []
    for name in names:
        with log_context(scenario=name):
            log.info(f"{'=' * 60}")
            log.info(f"[SCENARIO] {name.upper()}")
            log.info(f"{'=' * 60}")

            if config.warmup:
                with log_context(run="warmup"):
                    log.info(f"[WARMUP] Starting warmup run for {name}")
                    try:
                        _run_once(_resolve_scenario(name, rows), factory)
                        log.info(f"[WARMUP] Completed warmup for {name}")
                    except Exception as e:
                        if failure_policy == "strict":
                            raise
                        log.warning(f"[WARMUP] Failed for {name}", extra={"error": str(e)})

            run_results: List[dict] = []
            for run_num in range(1, config.runs + 1):
                current_run += 1
                with log_context(run=run_num):
                    log.info(
                        f"[RUN {current_run}/{total_global_runs}] Starting measurement for {name}",
                        extra={"total_runs": config.runs, "rows": rows},
                    )
                    result = _profiled_execute(_resolve_scenario(name, rows), factory, failure_policy)
                    result["scenario"] = name
                    result["run"] = run_num
                    run_results.append(result)
                    log.info(
                        f"[RUN {current_run}/{total_global_runs}] Completed {name}",
                        extra={
                            "rows": result.get("rows"),
                            "duration": result.get("duration_seconds"),
                            "failed": bool(result.get("error")),
                        },
                    )

            if config.runs > 1:
                aggregated = _aggregate_runs(run_results)
                aggregated["scenario"] = name
                aggregated["runs"] = config.runs
                aggregated["individual_runs"] = run_results
                results.append(aggregated)
                log.info(
                    f"[AGGREGATION] Results for {name}",
                    extra={"runs": config.runs, "failed_runs": aggregated["failed_runs"]},
                )
            else:
                results.extend(run_results)

            log.info(f"[SCENARIO COMPLETE] {name.upper()}")

    payload = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "rows": rows,
        "scenarios": names,
        "results": results,
    }

    if config.persist:
        _persist_results(payload, results_dir)

    log.info(
        f"[ORCHESTRATOR COMPLETE] {len(names)} scenario(s) executed",
        extra={"scenarios": names, "total_scenarios": len(names)},
    )

    return results


__all__ = [
    "RunConfig",
    "available_scenarios",
    "default_data_access_factory",
    "run_scenarios",
]
