"""
Utilities Package

Common utilities and helper functions for the help-desk bot.
"""

from .errors import (
    BotError,
    ConfigError,
    ExternalCallFailure,
    MemberNotFoundError,
    NoTierMatchedError,
    NotFoundError,
    SiteAPIError,
    ValidationError,
)
from .logging import get_logger, setup_logging
from .tasks import spawn
from .types import (
    RehydrationSummary,
    Ticket,
    TicketCategory,
    TicketStatus,
    TierRule,
    TierSyncResult,
    TimerKind,
)

__all__ = [
    "BotError",
    "ConfigError",
    "ExternalCallFailure",
    "MemberNotFoundError",
    "NoTierMatchedError",
    "NotFoundError",
    "RehydrationSummary",
    "SiteAPIError",
    "Ticket",
    "TicketCategory",
    "TicketStatus",
    "TierRule",
    "TierSyncResult",
    "TimerKind",
    "ValidationError",
    "get_logger",
    "setup_logging",
    "spawn",
]
