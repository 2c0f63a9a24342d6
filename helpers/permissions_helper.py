"""Permission checks and channel overwrites for ticket channels."""

from __future__ import annotations

import discord

from utils.logging import get_logger

logger = get_logger(__name__)


def is_administrator(member: discord.abc.User | None) -> bool:
    perms = getattr(member, "guild_permissions", None)
    return bool(perms and perms.administrator)


def has_role(member: discord.abc.User | None, role_id: int | None) -> bool:
    if not role_id:
        return False
    return any(role.id == role_id for role in getattr(member, "roles", []) or [])


def can_close_ticket(
    member: discord.abc.User | None, owner_id: int | None, support_role_id: int | None
) -> bool:
    """Administrators, support-role holders and the ticket owner may close a ticket."""
    if member is None:
        return False
    if is_administrator(member) or has_role(member, support_role_id):
        return True
    return owner_id is not None and member.id == owner_id


def ticket_overwrites(
    guild: discord.Guild, owner: discord.abc.Snowflake, support_role_id: int | None
) -> dict[discord.abc.Snowflake, discord.PermissionOverwrite]:
    """
    Build the private-channel overwrites for a new ticket.

    Everyone is denied view; the owner and the support role get the access
    they need to talk in the channel.
    """
    overwrites: dict[discord.abc.Snowflake, discord.PermissionOverwrite] = {
        guild.default_role: discord.PermissionOverwrite(view_channel=False),
        owner: discord.PermissionOverwrite(
            view_channel=True,
            send_messages=True,
            read_message_history=True,
            attach_files=True,
            embed_links=True,
        ),
    }
    if support_role_id:
        role = guild.get_role(support_role_id)
        if role is None:
            logger.warning(
                "Support role not found in guild; ticket visible to owner only",
                extra={"guild_id": guild.id, "role_id": support_role_id},
            )
        else:
            overwrites[role] = discord.PermissionOverwrite(
                view_channel=True,
                send_messages=True,
                read_message_history=True,
                manage_messages=True,
                manage_channels=True,
            )
    return overwrites
