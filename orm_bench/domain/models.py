"""
Domain models for the ORM bulk update benchmark.

`Foo` is the single mapped entity every scenario seeds, queries and updates.
`FooSnapshot` is an immutable copy of an entity's values at a point in time,
used to report what a session handle looked like before and after a refresh.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy import BigInteger, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements an INTEGER PRIMARY KEY.
_IdType = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase): ...


class Foo(Base):
    """
    Representation of a single row in the `foo` table.
    """

    __tablename__ = "foo"

    id: Mapped[int] = mapped_column(_IdType, primary_key=True, autoincrement=True)
    code: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(255))
    description2: Mapped[Optional[str]] = mapped_column(String(255))

    def __repr__(self) -> str:
        return f"Foo(id={self.id!r}, code={self.code!r}, description={self.description!r})"


class FooSnapshot(BaseModel):
    id: Optional[int] = Field(None, description="Primary key, None before flush.")
    code: int = Field(..., description="Business key used for filtering.")
    description: Optional[str] = Field(None, description="Field mutated by updates.")
    description2: Optional[str] = Field(None, description="Untouched companion field.")

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @classmethod
    def of(cls, foo: Foo) -> "FooSnapshot":
        return cls.model_validate(foo)


__all__ = ["Base", "Foo", "FooSnapshot"]
