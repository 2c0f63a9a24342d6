"""
Centralized Discord reply helpers for consistent message delivery.

All interaction replies go through these helpers so that:
- errors and successes are ephemeral by default
- already-acknowledged (deferred) interactions fall back to followups
- delivery failures are logged, never raised into the handler
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import discord

from utils.logging import get_logger

if TYPE_CHECKING:
    from discord import Embed, Interaction, Message

logger = get_logger(__name__)


async def respond(
    interaction: Interaction,
    content: str | None = None,
    *,
    embed: Embed | None = None,
    ephemeral: bool = True,
    view: discord.ui.View | None = None,
) -> Message | None:
    """
    Reply to an interaction, using a followup when the response is already done.

    Returns:
        The sent followup message, or None for initial responses and failures.
    """
    kwargs: dict = {"ephemeral": ephemeral}
    if content:
        kwargs["content"] = content
    if embed:
        kwargs["embed"] = embed
    if view:
        kwargs["view"] = view

    try:
        if interaction.response.is_done():
            return await interaction.followup.send(**kwargs)
        await interaction.response.send_message(**kwargs)
        return None
    except discord.NotFound:
        logger.warning("Interaction expired before response could be sent")
        return None
    except discord.HTTPException:
        logger.exception("Failed to send interaction response")
        return None


async def send_user_error(
    interaction: discord.Interaction, text: str, ephemeral: bool = True
) -> None:
    """Send an error reply; the ❌ prefix is added when missing."""
    if not text.startswith(("❌", "ℹ️")):
        text = f"❌ {text}"
    await respond(interaction, text, ephemeral=ephemeral)


async def send_user_success(
    interaction: discord.Interaction, text: str, ephemeral: bool = True
) -> None:
    if not text.startswith("✅"):
        text = f"✅ {text}"
    await respond(interaction, text, ephemeral=ephemeral)


async def defer_ephemeral(interaction: discord.Interaction) -> bool:
    """Acknowledge an interaction privately. Returns False if it already expired."""
    if interaction.response.is_done():
        return True
    try:
        await interaction.response.defer(ephemeral=True, thinking=True)
        return True
    except discord.NotFound:
        logger.warning("Interaction expired before it could be deferred")
        return False
    except discord.HTTPException:
        logger.exception("Failed to defer interaction")
        return False
