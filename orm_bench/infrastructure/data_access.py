"""
Data-access interface used by every benchmark scenario.

`DataAccess` is the capability set the harness depends on: transaction
control, object lifecycle, typed queries, bulk commands and the session-level
object cache. `SqlAlchemyDataAccess` satisfies it over a SQLAlchemy `Session`.

Bulk statements run with ``synchronize_session=False``: they change storage
only, and objects already loaded into the session keep their old values until
refreshed.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional, Protocol, TypeVar, runtime_checkable

from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql.expression import Delete, Executable, Select, Update

from orm_bench.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")


@runtime_checkable
class DataAccess(Protocol):
    """
    Storage capabilities required by the benchmark harness.
    """

    def begin(self) -> None: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def insert(self, entity: Any) -> None: ...

    def insert_all(self, entities: Iterable[Any]) -> None: ...

    def merge(self, entity: T) -> T: ...

    def refresh(self, entity: Any) -> None: ...

    def evict(self, entity: Any) -> None: ...

    def flush(self) -> None: ...

    def clear(self) -> None: ...

    def query(self, statement: Select[Any], params: Optional[dict] = None) -> List[Any]: ...

    def query_one(self, statement: Select[Any], params: Optional[dict] = None) -> Any: ...

    def bulk_execute(self, statement: Executable, params: Optional[dict] = None) -> int: ...

    def close(self) -> None: ...


class SqlAlchemyDataAccess:
    """
    `DataAccess` backed by one SQLAlchemy session.

    One instance is created per scenario run and closed afterwards; it is not
    safe to share between threads.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session = session_factory()

    @property
    def session(self) -> Session:
        return self._session

    # Transactions

    def begin(self) -> None:
        self._session.begin()

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()

    def in_transaction(self) -> bool:
        return self._session.in_transaction()

    # Object lifecycle

    def insert(self, entity: Any) -> None:
        self._session.add(entity)

    def insert_all(self, entities: Iterable[Any]) -> None:
        self._session.add_all(entities)

    def merge(self, entity: T) -> T:
        return self._session.merge(entity)

    def refresh(self, entity: Any) -> None:
        """Reload `entity` from storage, discarding unsaved local changes."""
        self._session.refresh(entity)

    def evict(self, entity: Any) -> None:
        self._session.expunge(entity)

    # Session cache

    def flush(self) -> None:
        self._session.flush()

    def clear(self) -> None:
        self._session.expunge_all()

    # Queries

    def query(self, statement: Select[Any], params: Optional[dict] = None) -> List[Any]:
        """
        Run a select and return its rows.

        Single-entity selects yield entity instances; multi-column selects
        yield the first column of each row.
        """
        return list(self._session.scalars(statement, params or {}).all())

    def query_one(self, statement: Select[Any], params: Optional[dict] = None) -> Any:
        """Exactly one result, else `NoResultFound`/`MultipleResultsFound`."""
        return self._session.scalars(statement, params or {}).one()

    def bulk_execute(self, statement: Executable, params: Optional[dict] = None) -> int:
        """
        Execute an UPDATE/DELETE at the storage layer and return the affected row count.
        """
        if isinstance(statement, (Update, Delete)):
            statement = statement.execution_options(synchronize_session=False)
        result = self._session.execute(statement, params or {})
        log.debug("Bulk statement executed", extra={"rowcount": result.rowcount})
        return result.rowcount

    def close(self) -> None:
        self._session.close()


__all__ = ["DataAccess", "SqlAlchemyDataAccess"]
