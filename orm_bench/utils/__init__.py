"""
Utilities package for the ORM bulk update benchmark.

Exports shared helpers for logging, profiling, and other cross-cutting concerns.
Keep this package lightweight and free of domain-specific logic.
"""

from orm_bench.utils.logging import configure_logging, get_logger
from orm_bench.utils.profiler import ProfileStats, Stopwatch, profile_block, stopwatch

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "Stopwatch",
    "profile_block",
    "stopwatch",
]
