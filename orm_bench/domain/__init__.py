"""
Domain package for the ORM bulk update benchmark.

Exports the mapped entity and its snapshot model used across scenarios and
the orchestrator. Keep this package focused on data definitions.
"""

from orm_bench.domain.models import Base, Foo, FooSnapshot

__all__ = [
    "Base",
    "Foo",
    "FooSnapshot",
]
