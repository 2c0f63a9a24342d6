"""
Service Container

Central registry for all bot services providing dependency injection and service lifecycle management.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from utils.logging import get_logger

from .scheduler import TimerScheduler
from .site_client import SiteClient
from .sync_api import SyncAPIServer
from .ticket_service import TicketLifecycleService
from .tier_service import TierReconciler

if TYPE_CHECKING:
    import discord
    from discord.ext.commands import Bot

    from config.settings import BotSettings


class ServiceContainer:
    """
    Central container for managing all bot services.

    Builds services in dependency order, exposes them as properties and
    tears them down in reverse order.
    """

    def __init__(self, settings: BotSettings, bot: Bot | None = None) -> None:
        self.logger = get_logger("services.container")
        self.settings = settings
        self.bot = bot
        self._tickets: TicketLifecycleService | None = None
        self._tiers: TierReconciler | None = None
        self._site: SiteClient | None = None
        self._sync_api: SyncAPIServer | None = None
        self._initialized = False

    @property
    def tickets(self) -> TicketLifecycleService:
        """Get the ticket lifecycle service."""
        if self._tickets is None:
            raise RuntimeError("TicketLifecycleService not initialized")
        return self._tickets

    @property
    def tiers(self) -> TierReconciler:
        """Get the tier reconciler."""
        if self._tiers is None:
            raise RuntimeError("TierReconciler not initialized")
        return self._tiers

    @property
    def site(self) -> SiteClient:
        """Get the shop client."""
        if self._site is None:
            raise RuntimeError("SiteClient not initialized")
        return self._site

    @property
    def sync_api(self) -> SyncAPIServer:
        if self._sync_api is None:
            raise RuntimeError("SyncAPIServer not initialized")
        return self._sync_api

    def get_all_services(self) -> list:
        """Get all initialized lifecycle services."""
        return [s for s in (self._tickets, self._tiers, self._site) if s is not None]

    async def resolve_guild(self) -> discord.Guild:
        """The configured guild, from cache when possible."""
        if self.bot is None:
            raise RuntimeError("Bot instance required to resolve the guild")
        guild = self.bot.get_guild(self.settings.guild_id)
        if guild is None:
            guild = await self.bot.fetch_guild(self.settings.guild_id)
        return guild

    async def initialize(self, *, start_api: bool = True) -> None:
        """Initialize all services in dependency order."""
        if self._initialized:
            self.logger.warning("ServiceContainer already initialized")
            return

        try:
            self.logger.info("Initializing services")

            self._tickets = TicketLifecycleService(self.settings, scheduler=TimerScheduler())
            await self._tickets.initialize()

            self._tiers = TierReconciler(self.settings.tiers)
            await self._tiers.initialize()

            self._site = SiteClient(self.settings)
            await self._site.initialize()

            self._sync_api = SyncAPIServer(
                self.settings,
                self._tiers,
                self.resolve_guild,
                tickets=self._tickets,
                services=self.get_all_services(),
            )
            if start_api:
                await self._sync_api.start()

            self._initialized = True
            self.logger.info("All services initialized successfully")

        except Exception as e:
            self.logger.exception("Failed to initialize services", exc_info=e)
            raise

    async def cleanup(self) -> None:
        """Clean up all services in reverse dependency order."""
        if not self._initialized:
            return

        self.logger.info("Cleaning up services")

        if self._sync_api:
            await self._sync_api.stop()
            self._sync_api = None

        for service in reversed(self.get_all_services()):
            await service.shutdown()
        self._site = None
        self._tiers = None
        self._tickets = None

        self._initialized = False
        self.logger.info("Services cleaned up")
