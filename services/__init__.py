"""
Services package for the help-desk bot.

Service classes hold the ticket lifecycle, tier reconciliation and the HTTP
bridge to the shop. The ServiceContainer wires them together at start-up.
"""

from .base import BaseService
from .scheduler import TimerScheduler
from .service_container import ServiceContainer
from .site_client import SiteClient
from .sync_api import SyncAPIServer
from .ticket_service import TicketLifecycleService
from .tier_service import TierReconciler

__all__ = [
    "BaseService",
    "ServiceContainer",
    "SiteClient",
    "SyncAPIServer",
    "TicketLifecycleService",
    "TierReconciler",
    "TimerScheduler",
]
