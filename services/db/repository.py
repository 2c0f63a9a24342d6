"""
Repository base for aiosqlite access.

Each call opens a short-lived connection through ``Database.get_connection``;
multi-statement writes go through ``transaction()``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from .database import Database

if TYPE_CHECKING:
    from aiosqlite import Row


class BaseRepository:
    """Query helpers shared by the repositories."""

    @staticmethod
    @asynccontextmanager
    async def transaction():
        """
        Yield a connection that commits on success and rolls back on error.

        Usage:
            async with self.transaction() as db:
                await db.execute("INSERT ...", params)
                await db.execute("UPDATE ...", params)
        """
        async with Database.get_connection() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    @staticmethod
    async def fetch_all(query: str, params: tuple[Any, ...] = ()) -> list[Row]:
        async with Database.get_connection() as db:
            cursor = await db.execute(query, params)
            return list(await cursor.fetchall())

    @staticmethod
    async def execute(query: str, params: tuple[Any, ...] = ()) -> int:
        """Run one write statement and commit. Returns the affected row count."""
        async with Database.get_connection() as db:
            cursor = await db.execute(query, params)
            await db.commit()
            return cursor.rowcount


def parse_snowflake(value: Any) -> int | None:
    """
    Parse a Discord snowflake from a JSON value.

    Accepts positive ints and digit strings (surrounding whitespace allowed);
    everything else, booleans included, gives None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            return None
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return None
    return parsed if parsed > 0 else None
