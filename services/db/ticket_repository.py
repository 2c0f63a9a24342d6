"""
Durable ticket records.

Each ticket channel owns a set of ``ticket_metadata`` rows, one per key. The
row order (``position``) follows first insertion so the encoded topic string
keeps a stable key order across rewrites.
"""

from __future__ import annotations

from collections.abc import Mapping

from helpers.ticket_metadata import Metadata, merge

from .repository import BaseRepository


class TicketRepository(BaseRepository):
    """Key/value storage for ticket lifecycle fields, keyed by channel id."""

    async def load(self, channel_id: int) -> Metadata | None:
        rows = await self.fetch_all(
            "SELECT key, value FROM ticket_metadata WHERE channel_id = ? ORDER BY position, key",
            (channel_id,),
        )
        if not rows:
            return None
        return {row["key"]: row["value"] for row in rows}

    async def load_guild(self, guild_id: int) -> dict[int, Metadata]:
        rows = await self.fetch_all(
            "SELECT channel_id, key, value FROM ticket_metadata "
            "WHERE guild_id = ? ORDER BY channel_id, position, key",
            (guild_id,),
        )
        records: dict[int, Metadata] = {}
        for row in rows:
            records.setdefault(int(row["channel_id"]), {})[row["key"]] = row["value"]
        return records

    async def merge(
        self, channel_id: int, guild_id: int, updates: Mapping[str, object]
    ) -> Metadata:
        """Apply ``updates`` to the stored record inside one transaction and return the result."""
        async with self.transaction() as db:
            cursor = await db.execute(
                "SELECT key, value, position FROM ticket_metadata "
                "WHERE channel_id = ? ORDER BY position, key",
                (channel_id,),
            )
            rows = list(await cursor.fetchall())
            current = {row["key"]: row["value"] for row in rows}
            positions = {row["key"]: row["position"] for row in rows}
            next_position = max(positions.values(), default=-1) + 1

            merged = merge(current, updates)
            for key in updates:
                position = positions.get(key)
                if position is None:
                    position = next_position
                    next_position += 1
                await db.execute(
                    """
                    INSERT INTO ticket_metadata (channel_id, guild_id, key, value, position, updated_at)
                    VALUES (?, ?, ?, ?, ?, strftime('%s','now'))
                    ON CONFLICT(channel_id, key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (channel_id, guild_id, key, merged[key], position),
                )
        return merged

    async def delete(self, channel_id: int) -> int:
        return await self.execute(
            "DELETE FROM ticket_metadata WHERE channel_id = ?", (channel_id,)
        )
