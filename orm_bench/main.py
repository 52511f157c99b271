from __future__ import annotations

import json
import sys
from typing import Optional

import typer

from orm_bench.config import get_settings
from orm_bench.infrastructure.db_factory import check_connection, get_engine, init_schema
from orm_bench.orchestrator import RunConfig, available_scenarios, run_scenarios
from orm_bench.reporter import print_results
from orm_bench.utils.logging import configure_logging

app = typer.Typer(help="ORM bulk update benchmark CLI.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    engine = get_engine()
    typer.echo(
        f"DB={engine.url.render_as_string(hide_password=True)} | "
        f"rows={settings.benchmark_rows} max_in_clause={settings.benchmark_max_in_clause} "
        f"concurrency={settings.benchmark_concurrency} "
        f"failure_policy={settings.benchmark_failure_policy}"
    )


@app.command("init-db")
def init_db(
    drop: bool = typer.Option(False, "--drop", help="Drop the table before creating it."),
) -> None:
    """
    Create the benchmark table in the configured database.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    engine = get_engine()
    check_connection(engine)
    init_schema(engine, drop_existing=drop)
    typer.echo("Schema ready.")


@app.command()
def run(
    scenario: str = typer.Option(
        "all",
        "--scenario",
        "--scenarios",
        "-s",
        help="Scenario to run (select_filter, update_entities, stale_read, all, list).",
    ),
    rows: Optional[int] = typer.Option(
        None,
        "--rows",
        "-r",
        min=3,
        help="Override number of rows to seed (default from settings; at least 3).",
    ),
    runs: int = typer.Option(1, "--runs", min=1, help="Measurement runs per scenario."),
    warmup: bool = typer.Option(False, "--warmup", help="Run each scenario once unmeasured first."),
    strict: bool = typer.Option(False, "--strict", help="Abort on the first failing scenario."),
    persist: bool = typer.Option(True, "--persist/--no-persist", help="Write results JSON."),
    as_json: bool = typer.Option(False, "--json", help="Print raw results as JSON."),
) -> None:
    """
    Run one or all scenarios via orchestrator and persist results.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    if scenario == "list":
        typer.echo("Available scenarios: " + ", ".join(available_scenarios()))
        return

    engine = get_engine()
    check_connection(engine)
    init_schema(engine)

    total_rows = rows or settings.benchmark_rows
    typer.echo(
        f"Running scenario='{scenario}' for rows={total_rows} "
        f"(runs={runs}, max_in_clause={settings.benchmark_max_in_clause})."
    )
    config = RunConfig(
        scenario_names=["all"] if scenario == "all" else [scenario],
        rows=total_rows,
        persist=persist,
        warmup=warmup,
        runs=runs,
        failure_policy="strict" if strict else None,
    )
    try:
        results = run_scenarios(config)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc
    if as_json:
        typer.echo(json.dumps(results, indent=2, default=str))
    else:
        print_results(results)

    if any(result.get("error") or result.get("failed_runs") for result in results):
        raise typer.Exit(code=1)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
