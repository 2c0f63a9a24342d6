"""
Interactive Views Module

Persistent UI components for the help desk: the ticket panel select menu,
the close button posted in every ticket, and the member panel. Each component
handles exactly one kind of interaction and delegates to one service call.

Views resolve services at interaction time through ``interaction.client.services``,
so the same instances can be registered with ``bot.add_view`` at start-up and
re-attached to messages sent long before a restart.
"""

from __future__ import annotations

import re
from collections.abc import Awaitable, Callable

import discord
from discord import Interaction, SelectOption
from discord.ui import Button, Modal, Select, TextInput, View

from config.settings import BotSettings
from helpers import ticket_metadata as tm
from helpers.constants import (
    MEMBER_BIND_ID,
    MEMBER_REFRESH_ID,
    TICKET_CLOSE_ID,
    TICKET_OPTION_BY_VALUE,
    TICKET_OPTIONS,
    TICKET_SELECT_ID,
)
from helpers.discord_reply import defer_ephemeral, send_user_error, send_user_success
from helpers.embeds import build_site_url
from helpers.error_messages import format_user_error, format_user_success
from helpers.permissions_helper import can_close_ticket
from utils.errors import MemberNotFoundError, NoTierMatchedError, SiteAPIError
from utils.log_context import get_interaction_extra
from utils.logging import get_logger
from utils.types import SiteSyncResult, TicketStatus

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


async def _resolve_guild(interaction: Interaction) -> discord.Guild:
    if interaction.guild is not None:
        return interaction.guild
    return await interaction.client.services.resolve_guild()


# --------------------------------------------------------------------------
# Ticket panel
# --------------------------------------------------------------------------


class TicketCategorySelect(Select):
    def __init__(self) -> None:
        super().__init__(
            placeholder="選擇服務項目｜客服單將於下方開啟",
            min_values=1,
            max_values=1,
            custom_id=TICKET_SELECT_ID,
            options=[
                SelectOption(
                    label=opt.label,
                    value=opt.category.value,
                    description=opt.description,
                    emoji=opt.emoji,
                )
                for opt in TICKET_OPTIONS
            ],
        )

    async def callback(self, interaction: Interaction) -> None:
        """Open a ticket of the chosen category, or point at the member's open one."""
        if not await defer_ephemeral(interaction):
            return

        tickets = interaction.client.services.tickets
        category = self.values[0] if self.values else None
        try:
            guild = await _resolve_guild(interaction)
            existing = await tickets.find_open_ticket(guild, interaction.user.id)
            if existing is not None:
                await send_user_error(
                    interaction,
                    format_user_error("OPEN_TICKET_EXISTS", channel_mention=existing.mention),
                )
                return
            if category not in TICKET_OPTION_BY_VALUE:
                await send_user_error(interaction, format_user_error("UNKNOWN_CATEGORY"))
                return

            channel = await tickets.create_ticket(guild, interaction.user, category)
            await send_user_success(
                interaction,
                format_user_success("TICKET_CREATED", channel_mention=channel.mention),
            )
        except discord.HTTPException:
            logger.exception(
                "Failed to create ticket channel",
                extra=get_interaction_extra(interaction, ticket_type=category),
            )
            await send_user_error(interaction, format_user_error("CREATION_FAILED"))
        except Exception:
            logger.exception(
                "Unexpected error handling ticket select",
                extra=get_interaction_extra(interaction, ticket_type=category),
            )
            await send_user_error(interaction, format_user_error("UNKNOWN"))


class TicketPanelView(View):
    """Panel posted by /panel; one select menu with the ticket categories."""

    def __init__(self) -> None:
        super().__init__(timeout=None)
        self.add_item(TicketCategorySelect())


# --------------------------------------------------------------------------
# Ticket close button
# --------------------------------------------------------------------------


class TicketCloseView(View):
    """Close button attached to the intro message of every ticket."""

    def __init__(self) -> None:
        super().__init__(timeout=None)
        self.close_button = Button(
            label="關閉工單",
            style=discord.ButtonStyle.danger,
            emoji="🔒",
            custom_id=TICKET_CLOSE_ID,
        )
        self.close_button.callback = self.close_button_callback
        self.add_item(self.close_button)

    async def close_button_callback(self, interaction: Interaction) -> None:
        services = interaction.client.services
        channel = interaction.channel
        try:
            metadata = await services.tickets.read_metadata(channel) if channel else None
            if metadata is None:
                await send_user_error(interaction, format_user_error("NOT_TICKET"))
                return

            if not can_close_ticket(
                interaction.user, tm.owner_of(metadata), services.settings.support_role_id
            ):
                logger.info(
                    "Close request denied",
                    extra=get_interaction_extra(interaction),
                )
                await send_user_error(interaction, format_user_error("CLOSE_DENIED"))
                return

            if tm.status_of(metadata) is not TicketStatus.OPEN:
                await send_user_error(interaction, format_user_error("ALREADY_CLOSED"))
                return

            await send_user_success(interaction, format_user_success("TICKET_CLOSING"))
            await services.tickets.close_ticket(channel, interaction.user.id)
        except Exception:
            logger.exception(
                "Unexpected error closing ticket", extra=get_interaction_extra(interaction)
            )
            await send_user_error(interaction, format_user_error("UNKNOWN"))


# --------------------------------------------------------------------------
# Member panel
# --------------------------------------------------------------------------


def _format_spend(total_spent: float) -> str:
    return f"{total_spent:,.0f}" if float(total_spent).is_integer() else f"{total_spent:,.2f}"


async def sync_membership(
    interaction: Interaction,
    fetch: Callable[..., Awaitable[SiteSyncResult]],
) -> None:
    """
    Ask the shop for the member's spend through ``fetch`` and apply the tier.

    ``fetch`` receives the SiteClient. The interaction must already be
    deferred or still open for a first response.
    """
    services = interaction.client.services
    if not services.site.configured:
        await send_user_error(interaction, format_user_error("SITE_NOT_CONFIGURED"))
        return
    if not await defer_ephemeral(interaction):
        return

    try:
        result = await fetch(services.site)
        guild = await _resolve_guild(interaction)
        sync = await services.tiers.apply_tier(guild, interaction.user.id, result.total_spent)
    except SiteAPIError as e:
        logger.warning(
            f"Membership sync rejected by site: {e}",
            extra=get_interaction_extra(interaction),
        )
        if isinstance(e.body, dict) and e.status is not None and e.status < 500:
            await send_user_error(interaction, format_user_error("SITE_REJECTED", reason=str(e)))
        else:
            await send_user_error(interaction, format_user_error("SITE_UNAVAILABLE"))
        return
    except NoTierMatchedError:
        await send_user_error(interaction, format_user_error("NO_TIER"))
        return
    except MemberNotFoundError:
        await send_user_error(interaction, format_user_error("MEMBER_NOT_FOUND"))
        return
    except Exception:
        logger.exception(
            "Unexpected error during membership sync", extra=get_interaction_extra(interaction)
        )
        await send_user_error(interaction, format_user_error("UNKNOWN"))
        return

    code = "TIER_APPLIED" if sync.changed else "TIER_UNCHANGED"
    await send_user_success(
        interaction,
        format_user_success(
            code,
            role_mention=f"<@&{sync.target_role_id}>",
            total_spent=_format_spend(result.total_spent),
        ),
    )


class EmailBindModal(Modal, title="綁定官網會員"):
    """Collects the shop e-mail used to bind the member's account."""

    email = TextInput(
        label="官網 Email",
        placeholder="name@example.com",
        max_length=254,
    )

    def __init__(self) -> None:
        super().__init__(timeout=None)

    async def on_submit(self, interaction: Interaction) -> None:
        email = self.email.value.strip()
        if not EMAIL_PATTERN.match(email):
            await send_user_error(interaction, format_user_error("INVALID_EMAIL"))
            return
        user_id = interaction.user.id
        await sync_membership(interaction, lambda site: site.link(user_id, email))


class MemberSyncView(View):
    """Pull-mode member panel: bind by e-mail, or refresh from the shop."""

    def __init__(self) -> None:
        super().__init__(timeout=None)
        self.bind_button = Button(
            label="綁定會員",
            style=discord.ButtonStyle.success,
            custom_id=MEMBER_BIND_ID,
        )
        self.bind_button.callback = self.bind_button_callback
        self.add_item(self.bind_button)

        self.refresh_button = Button(
            label="更新會員狀態",
            style=discord.ButtonStyle.primary,
            custom_id=MEMBER_REFRESH_ID,
        )
        self.refresh_button.callback = self.refresh_button_callback
        self.add_item(self.refresh_button)

    async def bind_button_callback(self, interaction: Interaction) -> None:
        if not interaction.client.services.site.configured:
            await send_user_error(interaction, format_user_error("SITE_NOT_CONFIGURED"))
            return
        try:
            await interaction.response.send_modal(EmailBindModal())
        except discord.NotFound:
            logger.warning(
                "Interaction expired before the bind modal could open",
                extra=get_interaction_extra(interaction),
            )

    async def refresh_button_callback(self, interaction: Interaction) -> None:
        user_id = interaction.user.id
        await sync_membership(interaction, lambda site: site.refresh(user_id))


class MemberLinkView(View):
    """Push-mode member panel: link buttons straight to the shop."""

    def __init__(self, settings: BotSettings) -> None:
        super().__init__(timeout=None)
        self.add_item(
            Button(
                label="獲取會員",
                style=discord.ButtonStyle.link,
                url=build_site_url(settings.site_base_url, settings.member_connect_path),
            )
        )
        self.add_item(
            Button(
                label="更新會員狀態",
                style=discord.ButtonStyle.link,
                url=build_site_url(settings.site_base_url, settings.member_refresh_path),
            )
        )


def create_member_panel_view(settings: BotSettings) -> View:
    if settings.membership_mode == "pull":
        return MemberSyncView()
    return MemberLinkView(settings)
