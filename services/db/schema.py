"""
Canonical schema definition (version=1).

Centralizes table creation so every connection sees the same layout.
"""

import aiosqlite

from utils.logging import get_logger

logger = get_logger(__name__)


async def init_schema(db: aiosqlite.Connection) -> None:
    """
    Initialize the database schema with all required tables.

    Args:
        db: An open database connection
    """
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            applied_at INTEGER DEFAULT (strftime('%s','now'))
        )
        """
    )

    await db.execute(
        """
        INSERT OR IGNORE INTO schema_migrations (version, applied_at)
        VALUES (1, strftime('%s','now'))
        """
    )

    # One row per (ticket channel, metadata key). Unknown keys are stored as-is,
    # so a merge never drops fields written by other tools.
    await db.execute(
        """
        CREATE TABLE IF NOT EXISTS ticket_metadata (
            channel_id INTEGER NOT NULL,
            guild_id INTEGER NOT NULL,
            key TEXT NOT NULL,
            value TEXT NOT NULL,
            position INTEGER NOT NULL DEFAULT 0,
            updated_at INTEGER DEFAULT (strftime('%s','now')),
            PRIMARY KEY (channel_id, key)
        )
        """
    )
    await db.execute(
        "CREATE INDEX IF NOT EXISTS idx_ticket_metadata_guild ON ticket_metadata(guild_id)"
    )

    await db.commit()
    logger.debug("Schema initialized")
