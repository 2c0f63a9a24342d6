"""
Utilities for building structured logging context from Discord objects.

Provides helper functions to extract guild_id, user_id, channel_id, etc.
from discord.py objects for consistent logging across the bot.
"""

from typing import Any

import discord


def get_context_extra(
    interaction: discord.Interaction | None = None,
    guild: discord.Guild | None = None,
    user: discord.User | discord.Member | None = None,
    channel: discord.abc.GuildChannel | discord.Thread | None = None,
    **additional: Any,
) -> dict[str, Any]:
    """
    Build a structured logging extra dict from Discord objects.

    Args:
        interaction: Interaction (extracts guild, user, channel if provided)
        guild: Guild object (overrides interaction.guild if provided)
        user: User or Member object (overrides interaction.user if provided)
        channel: Channel object (overrides interaction.channel if provided)
        **additional: Any additional key-value pairs to include

    Returns:
        Dict with guild_id, user_id, channel_id, and any additional fields

    Examples:
        logger.info("Ticket closed", extra=get_context_extra(channel=channel, ticket_status="closed"))
    """
    extra: dict[str, Any] = {}

    if interaction is not None:
        guild = guild or getattr(interaction, "guild", None)
        user = user or getattr(interaction, "user", None)
        channel = channel or getattr(interaction, "channel", None)

        command = getattr(interaction, "command", None)
        if command:
            extra["command_name"] = command.qualified_name

    if guild:
        extra["guild_id"] = str(guild.id)
    if user:
        extra["user_id"] = str(user.id)
    if channel:
        extra["channel_id"] = str(channel.id)

    extra.update(additional)

    return extra


def get_interaction_extra(
    interaction: discord.Interaction, **additional: Any
) -> dict[str, Any]:
    """
    Convenience wrapper for get_context_extra specifically for interactions.
    """
    return get_context_extra(interaction=interaction, **additional)
