"""
Logging for the ORM bulk update benchmark.

Standard library logging, configured once by the CLI, with two renderings:
a console line that appends the benchmark position of the record, and a JSON
object per record for pipelines.

The benchmark position (scenario, run, strategy) is bound with `log_context`
instead of being repeated in every `extra=`. Loggers from `get_logger` merge
the bound fields into each record; explicit `extra=` keys win on conflict.

Usage:
    from orm_bench.utils.logging import get_logger, log_context

    log = get_logger(__name__)
    with log_context(scenario="update_entities", run=1):
        with log_context(strategy="direct_bulk"):
            log.info("Updated", extra={"rows": 4999})
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import logging.config
from typing import Any, Dict, Iterator, Mapping, MutableMapping, Optional, Tuple

# Fields shown on console lines, in this order, when a record carries them.
CONTEXT_KEYS: Tuple[str, ...] = ("scenario", "run", "strategy")

_bound: contextvars.ContextVar[Mapping[str, Any]] = contextvars.ContextVar(
    "orm_bench_log_context", default={}
)

# Attributes every LogRecord carries; anything else arrived through `extra=`.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
    | {"message", "asctime", "taskName"}
)


@contextlib.contextmanager
def log_context(**fields: Any) -> Iterator[Dict[str, Any]]:
    """
    Bind `fields` to every record logged through `get_logger` inside the block.

    Nested blocks add to the outer fields; leaving a block restores them.
    """
    merged = {**_bound.get(), **fields}
    token = _bound.set(merged)
    try:
        yield merged
    finally:
        _bound.reset(token)


def bound_context() -> Dict[str, Any]:
    """Fields currently bound by enclosing `log_context` blocks."""
    return dict(_bound.get())


class BenchmarkLogger(logging.LoggerAdapter):
    """Logger adapter that stamps the bound benchmark context on each record."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> Tuple[Any, MutableMapping[str, Any]]:
        bound = _bound.get()
        if bound:
            kwargs["extra"] = {**bound, **(kwargs.get("extra") or {})}
        return msg, kwargs


def record_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Attributes a record received through `extra=` or the bound context."""
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class JsonFormatter(logging.Formatter):
    """One JSON object per record, extra fields at top level."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(record_fields(record))
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable line with the record's benchmark position appended."""

    def __init__(self) -> None:
        super().__init__(
            "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        position = " ".join(
            f"{key}={getattr(record, key)}" for key in CONTEXT_KEYS if hasattr(record, key)
        )
        if not position:
            return line
        head, sep, tail = line.partition("\n")
        return f"{head} [{position}]{sep}{tail}"


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Route the root logger to one stderr handler at `level`.

    Replaces any handler installed by an earlier call.
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "console": {"()": ConsoleFormatter},
                "json": {"()": JsonFormatter},
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "formatter": "json" if json_logs else "console",
                    "level": level,
                }
            },
            "root": {"handlers": ["stderr"], "level": level},
        }
    )


def get_logger(name: Optional[str] = None) -> BenchmarkLogger:
    return BenchmarkLogger(logging.getLogger(name), {})


__all__ = [
    "BenchmarkLogger",
    "ConsoleFormatter",
    "JsonFormatter",
    "bound_context",
    "configure_logging",
    "get_logger",
    "log_context",
]
