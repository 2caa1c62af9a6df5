"""Compare-and-swap writes over the store.

Both helpers express their precondition in the WHERE clause of a single
statement, so the database evaluates it atomically with the write. A result of
zero rows (or ``None``) means the precondition no longer held: somebody else
won the race.
"""
from collections.abc import Mapping, Sequence
from typing import Any

from sqlalchemy import ColumnElement, insert, literal, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel


async def cas_update(
    session: AsyncSession,
    model: type[SQLModel],
    predicate: Sequence[ColumnElement[bool]],
    values: Mapping[str, Any],
) -> int:
    """UPDATE model SET values WHERE predicate; return the number of rows changed."""
    table = model.__table__  # type: ignore[attr-defined]
    result = await session.execute(update(table).where(*predicate).values(**values))
    return result.rowcount


async def cas_insert(
    session: AsyncSession,
    model: type[SQLModel],
    values: Mapping[str, Any],
    predicate: Sequence[ColumnElement[bool]],
) -> int | None:
    """INSERT one row only if predicate holds; return its id, or None if it did not.

    Runs as ``INSERT INTO t (...) SELECT :v1, :v2 ... WHERE <predicate>``.
    """
    table = model.__table__  # type: ignore[attr-defined]
    columns = list(values)
    source = select(
        *(literal(values[name], table.c[name].type) for name in columns)
    ).where(*predicate)
    stmt = insert(table).from_select(columns, source).returning(table.c.id)
    result = await session.execute(stmt)
    row = result.first()
    return row[0] if row is not None else None
