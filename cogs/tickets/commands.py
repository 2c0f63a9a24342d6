"""
Ticket commands and events.

/panel posts the persistent ticket panel; listeners keep timers in step with
chat activity and with channels deleted by hand.
"""

from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from helpers.discord_reply import send_user_error
from helpers.embeds import create_ticket_panel_embed
from helpers.error_messages import format_user_error
from helpers.permissions_helper import is_administrator
from helpers.views import TicketPanelView
from utils.log_context import get_context_extra, get_interaction_extra
from utils.logging import get_logger

if TYPE_CHECKING:
    from services.ticket_service import TicketLifecycleService

logger = get_logger(__name__)


class TicketsCog(commands.Cog):
    """Ticket panel command plus message/channel listeners."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    @property
    def tickets(self) -> "TicketLifecycleService":
        if not hasattr(self.bot, "services") or self.bot.services is None:
            raise RuntimeError("Bot services not initialized")
        return self.bot.services.tickets

    @app_commands.command(name="panel", description="在此頻道發送客服工單面板（管理員用）")
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    async def panel(self, interaction: discord.Interaction) -> None:
        """Post the ticket panel in the current channel. Administrators only."""
        if not is_administrator(interaction.user):
            await send_user_error(interaction, format_user_error("PERMISSION"))
            return

        logger.info("panel command triggered", extra=get_interaction_extra(interaction))
        settings = self.bot.services.settings
        try:
            await interaction.response.send_message(
                embed=create_ticket_panel_embed(settings), view=TicketPanelView()
            )
        except discord.HTTPException:
            logger.exception("Failed to post ticket panel", extra=get_interaction_extra(interaction))
            await send_user_error(interaction, format_user_error("UNKNOWN"))

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        """Push an open ticket's close deadline back when a human posts in it."""
        if message.author.bot or message.guild is None:
            return
        if not self.bot.services.settings.keep_alive_on_message:
            return
        try:
            if await self.tickets.bump_activity(message.channel):
                logger.debug(
                    "Ticket activity bumped",
                    extra=get_context_extra(
                        guild=message.guild, user=message.author, channel=message.channel
                    ),
                )
        except Exception:
            logger.exception(
                "Error bumping ticket activity",
                extra=get_context_extra(channel=message.channel),
            )

    @commands.Cog.listener()
    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel) -> None:
        """Drop timers and the stored record of a ticket deleted by hand."""
        if not isinstance(channel, discord.TextChannel):
            return
        try:
            await self.tickets.forget_channel(channel.id)
        except Exception:
            logger.exception(
                "Error cleaning up deleted ticket channel",
                extra=get_context_extra(channel=channel),
            )


async def setup(bot: commands.Bot) -> None:
    """Setup function for the cog."""
    await bot.add_cog(TicketsCog(bot))
