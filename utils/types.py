"""
Type definitions and common data structures for the help-desk bot.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple


class TicketStatus(str, Enum):
    """Lifecycle status of a ticket. Transitions only go OPEN -> CLOSED."""

    OPEN = "open"
    CLOSED = "closed"


class TicketCategory(str, Enum):
    """Request types offered by the ticket panel."""

    PRE_SALE = "pre_sale"
    AFTER_SALE = "after_sale"
    ORDER_PICKUP = "order_pickup"
    UNBIND = "unbind"
    TUNING = "tuning"
    DECODE = "decode"


class TimerKind(str, Enum):
    """Kinds of per-channel timers armed by the lifecycle manager."""

    CLOSE = "close"
    CLOSE_WARNING = "close_warning"
    DELETE = "delete"


@dataclass
class Ticket:
    """Decoded view of a ticket record. Timestamps are epoch milliseconds."""

    channel_id: int
    owner_id: int
    status: TicketStatus
    category: str | None = None
    created_at: int | None = None
    close_at: int | None = None
    closed_at: int | None = None
    delete_at: int | None = None
    last_activity_at: int | None = None

    @property
    def is_open(self) -> bool:
        return self.status is TicketStatus.OPEN


@dataclass(frozen=True)
class TierRule:
    """A tier role and the cumulative spend needed to hold it."""

    name: str
    role_id: int | None
    minimum_spend: float


@dataclass
class TierSyncResult:
    """Outcome of reconciling one member's tier roles."""

    member_id: int
    target_role_id: int
    added: bool = False
    removed_role_ids: list[int] = field(default_factory=list)
    failed_role_ids: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.added or bool(self.removed_role_ids)


class SiteSyncResult(NamedTuple):
    """Spend figure returned by the e-commerce site."""

    discord_user_id: int
    total_spent: float


@dataclass
class RehydrationSummary:
    """Counters reported by the start-up rehydration pass."""

    scanned: int = 0
    open: int = 0
    closed: int = 0
    imported: int = 0
    purged: int = 0

