import asyncio
import os

import discord
from discord import app_commands
from discord.ext import commands
from dotenv import load_dotenv

from config.config_loader import ConfigLoader
from config.settings import BotSettings, load_settings
from helpers.discord_reply import send_user_error
from helpers.error_messages import format_user_error
from helpers.views import MemberSyncView, TicketCloseView, TicketPanelView
from utils.errors import ConfigError
from utils.log_context import get_interaction_extra
from utils.logging import get_logger

# Initialize logger
logger = get_logger(__name__)

# List of initial extensions to load
initial_extensions = [
    "cogs.tickets.commands",
    "cogs.members.commands",
]

# Guild-level permissions the bot needs to run tickets and tier sync
REQUIRED_PERMISSIONS = (
    "manage_channels",
    "manage_roles",
    "view_channel",
    "send_messages",
    "embed_links",
    "read_message_history",
)


def build_intents(settings: BotSettings) -> discord.Intents:
    """Start from none and enable only what's required."""
    intents = discord.Intents.none()
    intents.guilds = True  # Required: channels, roles, interactions context
    if settings.keep_alive_on_message:
        intents.guild_messages = True  # Required: on_message for ticket keep-alive
    return intents


class HelpdeskBot(commands.Bot):
    """Bot with the help-desk services attached."""

    def __init__(self, settings: BotSettings, *args, **kwargs) -> None:
        kwargs.setdefault("command_prefix", commands.when_mentioned)
        kwargs.setdefault("intents", build_intents(settings))
        super().__init__(*args, **kwargs)
        self.settings = settings
        self.services = None
        self._rehydrated = False

    async def setup_hook(self) -> None:
        """Initialize storage and services, load cogs, and sync commands."""
        asyncio.get_running_loop().set_exception_handler(self._handle_loop_exception)

        from services.db.database import Database

        await Database.initialize(self.settings.database_path)

        from services.service_container import ServiceContainer

        self.services = ServiceContainer(self.settings, self)
        await self.services.initialize()
        logger.info("ServiceContainer initialized")

        for ext in initial_extensions:
            try:
                await self.load_extension(ext)
                logger.info(f"Loaded extension: {ext}")
            except commands.ExtensionError as e:
                logger.exception(f"Failed to load extension {ext}", exc_info=e)
                raise

        self.tree.on_error = self.on_app_command_error

        # Register persistent views (must happen every startup for persistence to work)
        self.add_view(TicketPanelView())
        self.add_view(TicketCloseView())
        if self.settings.membership_mode == "pull":
            self.add_view(MemberSyncView())

        guild = discord.Object(id=self.settings.guild_id)
        try:
            self.tree.copy_global_to(guild=guild)
            synced = await self.tree.sync(guild=guild)
            logger.info(
                f"Synced {len(synced)} commands to guild",
                extra={"guild_id": self.settings.guild_id},
            )
        except discord.HTTPException as e:
            logger.exception("Failed to sync commands", exc_info=e)

    async def on_ready(self) -> None:
        """Called when the bot is ready; re-arms ticket timers once per process."""
        if not self.user:
            logger.warning("Bot user is not initialized")
            return
        logger.info(f"Logged in as {self.user} (ID: {self.user.id})")

        guild = self.get_guild(self.settings.guild_id)
        if guild is None:
            logger.error(
                "Configured guild not found; is the bot a member?",
                extra={"guild_id": self.settings.guild_id},
            )
            return
        self.check_bot_permissions(guild)

        if self._rehydrated:
            return
        try:
            await self.services.tickets.rehydrate(guild)
            self._rehydrated = True
        except Exception as e:
            logger.exception("Ticket rehydration failed", exc_info=e)

    def check_bot_permissions(self, guild: discord.Guild) -> None:
        """Verify required guild-level permissions and log any missing ones."""
        if not guild.me:
            logger.warning("Bot permissions cannot be checked; bot member not cached.")
            return
        if missing := [
            perm
            for perm in REQUIRED_PERMISSIONS
            if not getattr(guild.me.guild_permissions, perm, False)
        ]:
            logger.warning(
                f"Missing permissions in guild '{guild.name}': {', '.join(missing)}"
            )
        else:
            logger.info(f"All required permissions are present in guild '{guild.name}'.")

    async def on_error(self, event_method: str, /, *args, **kwargs) -> None:
        """Log unhandled event errors and keep running."""
        logger.exception(f"Unhandled error in event {event_method}")

    async def on_app_command_error(
        self, interaction: discord.Interaction, error: app_commands.AppCommandError
    ) -> None:
        if isinstance(error, app_commands.CheckFailure):
            await send_user_error(interaction, format_user_error("PERMISSION"))
            return
        logger.exception(
            "Unhandled slash command error",
            exc_info=error,
            extra=get_interaction_extra(interaction),
        )
        await send_user_error(interaction, format_user_error("UNKNOWN"))

    @staticmethod
    def _handle_loop_exception(loop: asyncio.AbstractEventLoop, context: dict) -> None:
        exc = context.get("exception")
        logger.error(
            f"Unhandled exception in event loop: {context.get('message', '')}",
            exc_info=exc,
        )

    async def close(self) -> None:
        """Closes the bot and cleans up all resources."""
        logger.info("Shutting down the bot and stopping services.")

        if self.services:
            try:
                await self.services.cleanup()
            except Exception as e:
                logger.exception("Error cleaning up services", exc_info=e)

        await super().close()


def main() -> None:
    # Load environment variables
    load_dotenv()

    try:
        settings = load_settings(ConfigLoader.load_config())
    except ConfigError as e:
        logger.critical(f"Invalid configuration: {e}")
        raise SystemExit(1) from e

    bot = HelpdeskBot(settings)
    bot.run(settings.discord_token, log_handler=None)


# Only auto-run if not in explicit dry-run context (HELPDESK_DRY_RUN)
if __name__ == "__main__" and os.getenv("HELPDESK_DRY_RUN") != "1":
    main()
