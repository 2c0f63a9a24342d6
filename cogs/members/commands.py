"""
Member panel command.

Posts the panel members use to link their shop account and sync their tier
role. In push mode the buttons link to the shop; in pull mode they call the
shop from the bot (see helpers.views.MemberSyncView).
"""

import discord
from discord import app_commands
from discord.ext import commands

from helpers.discord_reply import send_user_error
from helpers.embeds import create_member_panel_embed
from helpers.error_messages import format_user_error
from helpers.permissions_helper import is_administrator
from helpers.views import create_member_panel_view
from utils.log_context import get_interaction_extra
from utils.logging import get_logger

logger = get_logger(__name__)


class MembersCog(commands.Cog):
    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    @app_commands.command(
        name="memberpanel", description="在此頻道發送會員獲取/更新按鈕（管理員用）"
    )
    @app_commands.guild_only()
    @app_commands.default_permissions(administrator=True)
    async def memberpanel(self, interaction: discord.Interaction) -> None:
        """Post the member panel in the current channel. Administrators only."""
        if not is_administrator(interaction.user):
            await send_user_error(interaction, format_user_error("PERMISSION"))
            return

        settings = self.bot.services.settings
        if not settings.site_base_url:
            await send_user_error(interaction, format_user_error("SITE_NOT_CONFIGURED"))
            return

        logger.info(
            "memberpanel command triggered",
            extra=get_interaction_extra(interaction, mode=settings.membership_mode),
        )
        try:
            await interaction.response.send_message(
                embed=create_member_panel_embed(settings),
                view=create_member_panel_view(settings),
            )
        except discord.HTTPException:
            logger.exception(
                "Failed to post member panel", extra=get_interaction_extra(interaction)
            )
            await send_user_error(interaction, format_user_error("UNKNOWN"))


async def setup(bot: commands.Bot) -> None:
    """Setup function for the cog."""
    await bot.add_cog(MembersCog(bot))
