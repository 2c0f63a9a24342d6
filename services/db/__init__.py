"""
Database Package

Database access layer for the help-desk bot.
"""

from .database import Database
from .repository import BaseRepository, parse_snowflake
from .schema import init_schema
from .ticket_repository import TicketRepository

__all__ = [
    "BaseRepository",
    "Database",
    "TicketRepository",
    "init_schema",
    "parse_snowflake",
]
