"""
Profiling utilities for the ORM bulk update benchmark.

This module provides context managers to measure:
- Wall-clock time (perf_counter_ns)
- CPU usage (psutil)
- Memory usage (RSS via psutil + tracemalloc for Python allocations)
- Peak memory via background sampling thread

Usage examples:
    from orm_bench.utils.profiler import profile_block, stopwatch

    with profile_block("update_entities") as stats:
        with stopwatch("direct_bulk") as watch:
            run_strategy()

    print(watch.elapsed_ns, stats.duration_seconds, stats.peak_rss_bytes)
"""

from __future__ import annotations

import contextlib
import threading
import time
import tracemalloc
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

import psutil

from orm_bench.utils.logging import get_logger, log_context

log = get_logger(__name__)

_NANOS_PER_MILLI = 1_000_000


@dataclass
class ProfileStats:
    """
    Container for profiling measurements.
    """

    label: str
    start_ts: float = field(default=0.0)
    end_ts: float = field(default=0.0)
    duration_seconds: float = field(default=0.0)
    duration_ns: int = field(default=0)
    peak_rss_bytes: Optional[int] = field(default=None)
    peak_traced_bytes: Optional[int] = field(default=None)
    cpu_percent: Optional[float] = field(default=None)
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass
class Stopwatch:
    """Nanosecond wall-clock timer for a single strategy."""

    label: str
    start_ns: int = 0
    end_ns: int = 0

    @property
    def elapsed_ns(self) -> int:
        end = self.end_ns or time.perf_counter_ns()
        return end - self.start_ns

    @property
    def elapsed_ms(self) -> int:
        return self.elapsed_ns // _NANOS_PER_MILLI


@contextlib.contextmanager
def stopwatch(label: str, **context: Any) -> Generator[Stopwatch, None, None]:
    """
    Time the enclosed block and log the elapsed milliseconds.

    `context` is bound with `log_context` for the block and its timing record.
    The block's own exceptions propagate; nothing is logged for a failed block.
    """
    watch = Stopwatch(label=label)
    with log_context(**context):
        watch.start_ns = time.perf_counter_ns()
        yield watch
        watch.end_ns = time.perf_counter_ns()
        log.info(
            f"[TIMING] {label} took {watch.elapsed_ms} ms",
            extra={"label": label, "duration_ns": watch.elapsed_ns},
        )


@contextlib.contextmanager
def profile_block(
    label: str, sample_interval_ms: int = 50, enable_tracemalloc: bool = True
) -> Generator[ProfileStats, None, None]:
    """
    Context manager to profile a block of code with enhanced memory tracking.

    Measures:
    - Wall-clock duration (perf_counter_ns)
    - Peak RSS via background sampling thread (psutil)
    - Peak Python memory allocations (tracemalloc)
    - CPU percent (psutil, best-effort snapshot)

    Parameters
    ----------
    label : str
        Human-friendly label for the profiled block.
    sample_interval_ms : int
        Interval in milliseconds for RSS sampling. Lower = more accurate but higher overhead.
    enable_tracemalloc : bool
        Whether to enable tracemalloc for tracking Python-level allocations.

    Notes
    -----
    tracemalloc slows allocation-heavy code noticeably; disable it when the
    block's own timings matter more than its Python-level peak.
    """
    stats = ProfileStats(label=label)
    process = psutil.Process()
    peak_rss = process.memory_info().rss
    stop_sampling = threading.Event()

    def _sample_memory() -> None:
        """Background thread to sample RSS at regular intervals."""
        nonlocal peak_rss
        while not stop_sampling.is_set():
            try:
                current_rss = process.memory_info().rss
            except psutil.Error:
                break
            peak_rss = max(peak_rss, current_rss)
            stop_sampling.wait(timeout=sample_interval_ms / 1000.0)

    tracemalloc_was_running = False
    if enable_tracemalloc:
        tracemalloc_was_running = tracemalloc.is_tracing()
        if not tracemalloc_was_running:
            tracemalloc.start()

    # CPU percent needs a priming call
    process.cpu_percent(interval=None)

    sampler = threading.Thread(target=_sample_memory, daemon=True)
    sampler.start()

    start_ns = time.perf_counter_ns()
    stats.start_ts = start_ns / 1e9
    try:
        yield stats
    finally:
        end_ns = time.perf_counter_ns()
        stats.end_ts = end_ns / 1e9
        stats.duration_ns = end_ns - start_ns
        stats.duration_seconds = stats.duration_ns / 1e9

        stop_sampling.set()
        sampler.join(timeout=1.0)

        stats.peak_rss_bytes = peak_rss if peak_rss > 0 else None
        stats.cpu_percent = process.cpu_percent(interval=None)

        if enable_tracemalloc and tracemalloc.is_tracing():
            _, peak_traced = tracemalloc.get_traced_memory()
            stats.peak_traced_bytes = peak_traced
            # Stop tracemalloc only if we started it
            if not tracemalloc_was_running:
                tracemalloc.stop()


__all__ = ["ProfileStats", "Stopwatch", "profile_block", "stopwatch"]
