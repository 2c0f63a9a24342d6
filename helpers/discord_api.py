"""
Centralized module for best-effort Discord API calls.

Every call is rate-limited through a shared limiter. Failures are logged and
reported through the return value instead of raised, so one failing mutation
never aborts the surrounding lifecycle step.
"""

import discord
from aiolimiter import AsyncLimiter

from utils.logging import get_logger

logger = get_logger(__name__)

api_limiter = AsyncLimiter(max_rate=45, time_period=1)


async def set_topic(channel: discord.TextChannel, topic: str) -> bool:
    try:
        async with api_limiter:
            await channel.edit(topic=topic)
        return True
    except discord.NotFound:
        logger.warning(f"Channel '{channel.id}' not found while setting topic.")
    except discord.HTTPException:
        logger.exception(
            "Failed to set channel topic", extra={"channel_id": channel.id}
        )
    return False


async def set_send_permission(
    channel: discord.TextChannel, user_id: int, allowed: bool
) -> bool:
    """Flip send_messages for one member, keeping the rest of their overwrite."""
    target = channel.guild.get_member(user_id) or discord.Object(id=user_id, type=discord.Member)
    overwrite = channel.overwrites_for(target)
    overwrite.send_messages = allowed
    try:
        async with api_limiter:
            await channel.set_permissions(target, overwrite=overwrite)
        return True
    except discord.NotFound:
        logger.warning(f"Channel '{channel.id}' not found while editing permissions.")
    except discord.HTTPException:
        logger.exception(
            "Failed to edit channel permissions",
            extra={"channel_id": channel.id, "user_id": user_id},
        )
    return False


async def send_message(
    channel: discord.abc.Messageable, content: str | None = None, **kwargs
) -> discord.Message | None:
    try:
        async with api_limiter:
            return await channel.send(content, **kwargs)
    except discord.NotFound:
        logger.warning(f"Channel '{getattr(channel, 'id', '?')}' not found while sending.")
    except discord.HTTPException:
        logger.exception(
            "Failed to send message", extra={"channel_id": getattr(channel, "id", None)}
        )
    return None


async def delete_channel(channel: discord.abc.GuildChannel, reason: str | None = None) -> bool:
    try:
        async with api_limiter:
            await channel.delete(reason=reason)
        logger.info(f"Deleted channel '{channel.name}' successfully.")
        return True
    except discord.NotFound:
        logger.warning(
            f"Channel '{channel.id}' not found. It may have already been deleted."
        )
    except discord.Forbidden:
        logger.exception(f"Bot lacks permissions to delete channel '{channel.id}'.")
    except discord.HTTPException:
        logger.exception(f"HTTP error while deleting channel '{channel.id}'")
    return False


async def add_role(member: discord.Member, role_id: int, reason: str | None = None) -> bool:
    try:
        async with api_limiter:
            await member.add_roles(discord.Object(id=role_id), reason=reason)
        logger.debug("Added role", extra={"user_id": member.id, "role_id": role_id})
        return True
    except discord.Forbidden:
        logger.warning(
            "Cannot assign role due to permission hierarchy.",
            extra={"user_id": member.id, "role_id": role_id},
        )
    except discord.HTTPException:
        logger.exception("Failed to add role", extra={"user_id": member.id, "role_id": role_id})
    return False


async def remove_role(member: discord.Member, role_id: int, reason: str | None = None) -> bool:
    try:
        async with api_limiter:
            await member.remove_roles(discord.Object(id=role_id), reason=reason)
        logger.debug("Removed role", extra={"user_id": member.id, "role_id": role_id})
        return True
    except discord.Forbidden:
        logger.warning(
            "Cannot remove role due to permission hierarchy.",
            extra={"user_id": member.id, "role_id": role_id},
        )
    except discord.HTTPException:
        logger.exception(
            "Failed to remove role", extra={"user_id": member.id, "role_id": role_id}
        )
    return False
