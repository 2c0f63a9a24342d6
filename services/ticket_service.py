"""
Ticket lifecycle service.

Creates ticket channels and drives each one through OPEN -> CLOSED -> deleted
on timers. The durable record in ``ticket_metadata`` is the source of truth
and is re-read by every operation; the channel topic carries a mirrored copy
of the record and is only read for tickets created before the store existed.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping

import discord

from config.settings import BotSettings
from helpers import discord_api
from helpers import ticket_metadata as tm
from helpers.constants import TICKET_CHANNEL_PREFIX, TICKET_NAME_MAX_CHARS, TICKET_OPTION_BY_VALUE
from helpers.embeds import create_ticket_intro_embed
from helpers.error_messages import format_ticket_notice
from helpers.permissions_helper import ticket_overwrites
from helpers.views import TicketCloseView
from services.base import BaseService
from services.db.ticket_repository import TicketRepository
from services.scheduler import MIN_DELAY_MS, TimerScheduler, now_ms
from utils.errors import ValidationError
from utils.types import RehydrationSummary, TicketStatus, TimerKind

_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9]")


def ticket_channel_name(username: str | None) -> str:
    """
    Channel name for a member's ticket.

    Examples:
        >>> ticket_channel_name("Alice_Wonder.Land")
        'ticket-alicewonde'
        >>> ticket_channel_name("王小明")
        'ticket-user'
    """
    safe = _UNSAFE_NAME_CHARS.sub("", (username or "").lower())[:TICKET_NAME_MAX_CHARS]
    return f"{TICKET_CHANNEL_PREFIX}{safe or 'user'}"


class TicketLifecycleService(BaseService):
    """Owns ticket state transitions and the close/warning/delete timers."""

    def __init__(
        self,
        settings: BotSettings,
        repository: TicketRepository | None = None,
        scheduler: TimerScheduler | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        super().__init__("tickets")
        self.settings = settings
        self.repository = repository or TicketRepository()
        self.clock = clock
        self.scheduler = scheduler or TimerScheduler(clock=clock)
        # Channels with a close in progress; a second close for the same
        # channel returns early instead of racing the first.
        self._closing: set[int] = set()

    async def _initialize_impl(self) -> None:
        self.logger.info(
            "Ticket lifecycle ready",
            extra={"guild_id": self.settings.guild_id},
        )

    async def _shutdown_impl(self) -> None:
        await self.scheduler.shutdown()

    # ------------------------------------------------------------------
    # Record access
    # ------------------------------------------------------------------

    async def read_metadata(self, channel: discord.abc.GuildChannel) -> tm.Metadata | None:
        """
        Return the ticket record for ``channel``, or None when it is not a ticket.

        A ticket known only from its topic (legacy) is imported into the store.
        """
        stored = await self.repository.load(channel.id)
        if stored is not None:
            return stored if tm.is_ticket(stored) else None

        legacy = tm.decode(getattr(channel, "topic", None))
        if not tm.is_ticket(legacy):
            return None
        self.logger.info(
            "Importing legacy ticket from channel topic",
            extra={"channel_id": channel.id, "guild_id": channel.guild.id},
        )
        return await self.repository.merge(channel.id, channel.guild.id, legacy)

    async def _write(
        self,
        channel: discord.abc.GuildChannel,
        updates: Mapping[str, object],
        *,
        mirror: bool = True,
    ) -> tm.Metadata:
        merged = await self.repository.merge(channel.id, channel.guild.id, updates)
        if mirror and self.settings.mirror_topic:
            await discord_api.set_topic(channel, tm.encode(merged))
        return merged

    # ------------------------------------------------------------------
    # Lifecycle operations
    # ------------------------------------------------------------------

    async def find_open_ticket(
        self, guild: discord.Guild, owner_id: int
    ) -> discord.TextChannel | None:
        """Scan the guild's text channels for an OPEN ticket owned by ``owner_id``."""
        records = await self.repository.load_guild(guild.id)
        for channel in guild.text_channels:
            metadata = records.get(channel.id)
            if metadata is None:
                metadata = tm.decode(channel.topic)
            ticket = tm.to_ticket(channel.id, metadata)
            if ticket is not None and ticket.owner_id == owner_id and ticket.is_open:
                return channel
        return None

    async def create_ticket(
        self, guild: discord.Guild, user: discord.Member | discord.User, category: str
    ) -> discord.TextChannel:
        """
        Create a private ticket channel for ``user`` and arm its auto-close timer.

        The caller is expected to have checked ``find_open_ticket`` first.

        Raises:
            ValidationError: unknown category.
            discord.HTTPException: the channel could not be created.
        """
        if category not in TICKET_OPTION_BY_VALUE:
            raise ValidationError(f"Unknown ticket category: {category!r}")

        created_at = self.clock()
        close_at = created_at + self.settings.auto_close_ms
        metadata = tm.initial_metadata(user.id, category, created_at, close_at)

        parent = None
        if self.settings.ticket_category_id:
            parent = guild.get_channel(self.settings.ticket_category_id)
            if parent is None:
                self.logger.warning(
                    "Configured ticket category not found; creating at top level",
                    extra={"guild_id": guild.id},
                )

        channel = await guild.create_text_channel(
            ticket_channel_name(user.name),
            category=parent,
            topic=tm.encode(metadata) if self.settings.mirror_topic else None,
            overwrites=ticket_overwrites(guild, user, self.settings.support_role_id),
            reason=f"Ticket opened by {user} ({category})",
        )
        await self.repository.merge(channel.id, guild.id, metadata)

        await discord_api.send_message(
            channel,
            f"<@{user.id}> <@&{self.settings.support_role_id}>",
            embed=create_ticket_intro_embed(self.settings, category),
            view=TicketCloseView(),
        )
        await self.schedule_auto_close(channel)

        self.logger.info(
            "Ticket created",
            extra={
                "user_id": user.id,
                "guild_id": guild.id,
                "channel_id": channel.id,
                "ticket_type": category,
            },
        )
        return channel

    async def schedule_auto_close(self, channel: discord.abc.GuildChannel) -> int | None:
        """
        (Re)arm the close timer, plus the warning timer when there is room for it.

        Returns:
            The close delay in milliseconds, or None when the channel is not an
            open ticket.
        """
        metadata = await self.read_metadata(channel)
        if tm.status_of(metadata) is not TicketStatus.OPEN:
            return None

        now = self.clock()
        created_at = tm.find_int(metadata, tm.KEY_CREATED_AT) or now
        close_at = tm.find_int(metadata, tm.KEY_CLOSE_AT) or created_at + self.settings.auto_close_ms
        if tm.find_int(metadata, tm.KEY_CLOSE_AT) != close_at:
            await self._write(channel, {tm.KEY_CLOSE_AT: close_at})

        delay = max(MIN_DELAY_MS, close_at - now)
        self.scheduler.schedule(
            (TimerKind.CLOSE, channel.id), delay, lambda: self._on_close_due(channel)
        )

        warning_key = (TimerKind.CLOSE_WARNING, channel.id)
        warn_delay = close_at - self.settings.close_warning_ms - now
        if self.settings.close_warning_ms > 0 and warn_delay > MIN_DELAY_MS:
            self.scheduler.schedule(warning_key, warn_delay, lambda: self._on_close_warning(channel))
        else:
            self.scheduler.cancel(warning_key)
        return delay

    async def _on_close_warning(self, channel: discord.abc.GuildChannel) -> None:
        metadata = await self.read_metadata(channel)
        if tm.status_of(metadata) is not TicketStatus.OPEN:
            return
        await discord_api.send_message(
            channel,
            format_ticket_notice("CLOSE_WARNING", minutes=self.settings.close_warning_minutes),
        )

    async def _on_close_due(self, channel: discord.abc.GuildChannel) -> None:
        metadata = await self.read_metadata(channel)
        if tm.status_of(metadata) is not TicketStatus.OPEN:
            return
        self.logger.info("Ticket timed out", extra={"channel_id": channel.id})
        await discord_api.send_message(channel, format_ticket_notice("TIMED_OUT"))
        await self.close_ticket(channel, None)

    async def close_ticket(
        self, channel: discord.abc.GuildChannel, closed_by: int | None = None
    ) -> bool:
        """
        Close an OPEN ticket: persist the status, revoke the owner's send
        permission, announce the closure and arm the delete timer.

        Returns:
            False when the channel is not a ticket or is already closed.
        """
        if channel.id in self._closing:
            return False
        self._closing.add(channel.id)
        try:
            metadata = await self.read_metadata(channel)
            if tm.status_of(metadata) is not TicketStatus.OPEN:
                return False

            self.scheduler.cancel((TimerKind.CLOSE, channel.id))
            self.scheduler.cancel((TimerKind.CLOSE_WARNING, channel.id))

            metadata = await self._write(
                channel,
                {tm.KEY_STATUS: TicketStatus.CLOSED, tm.KEY_CLOSED_AT: self.clock()},
            )

            owner_id = tm.owner_of(metadata)
            if owner_id:
                await discord_api.set_send_permission(channel, owner_id, False)

            who = f"<@{closed_by}>" if closed_by else format_ticket_notice("CLOSED_BY_SYSTEM")
            await discord_api.send_message(channel, format_ticket_notice("CLOSED", closed_by=who))

            self.logger.info(
                "Ticket closed",
                extra={
                    "channel_id": channel.id,
                    "user_id": closed_by,
                    "ticket_status": TicketStatus.CLOSED.value,
                },
            )
            await self.schedule_auto_delete(channel)
            return True
        finally:
            self._closing.discard(channel.id)

    async def schedule_auto_delete(self, channel: discord.abc.GuildChannel) -> int | None:
        """
        (Re)arm the delete timer for a closed ticket.

        Returns:
            The delete delay in milliseconds, or None when auto-delete is
            disabled or the channel is not a ticket.
        """
        key = (TimerKind.DELETE, channel.id)
        self.scheduler.cancel(key)
        if self.settings.auto_delete_ms <= 0:
            return None

        metadata = await self.read_metadata(channel)
        if metadata is None:
            return None

        now = self.clock()
        closed_at = tm.find_int(metadata, tm.KEY_CLOSED_AT) or now
        delete_at = closed_at + self.settings.auto_delete_ms
        if tm.find_int(metadata, tm.KEY_DELETE_AT) != delete_at:
            await self._write(channel, {tm.KEY_DELETE_AT: delete_at})

        delay = max(MIN_DELAY_MS, delete_at - now)
        self.scheduler.schedule(key, delay, lambda: self._on_delete_due(channel))
        return delay

    async def _on_delete_due(self, channel: discord.abc.GuildChannel) -> None:
        try:
            await discord_api.send_message(channel, format_ticket_notice("AUTO_DELETE"))
            await discord_api.delete_channel(channel, reason="Auto delete closed ticket")
        finally:
            self.scheduler.cancel_channel(channel.id)
            await self.repository.delete(channel.id)

    async def forget_channel(self, channel_id: int) -> bool:
        """Cancel timers and drop the record of a channel that no longer exists."""
        self.scheduler.cancel_channel(channel_id)
        removed = await self.repository.delete(channel_id)
        if removed:
            self.logger.info("Dropped record of deleted ticket", extra={"channel_id": channel_id})
        return bool(removed)

    async def bump_activity(self, channel: discord.abc.GuildChannel) -> bool:
        """
        Reset an OPEN ticket's close deadline to now + auto-close.

        The topic mirror is skipped here: Discord rate-limits topic edits far
        below chat message rates.
        """
        metadata = await self.read_metadata(channel)
        if tm.status_of(metadata) is not TicketStatus.OPEN:
            return False
        now = self.clock()
        await self._write(
            channel,
            {
                tm.KEY_LAST_ACTIVITY_AT: now,
                tm.KEY_CLOSE_AT: now + self.settings.auto_close_ms,
            },
            mirror=False,
        )
        await self.schedule_auto_close(channel)
        return True

    # ------------------------------------------------------------------
    # Start-up
    # ------------------------------------------------------------------

    async def rehydrate(self, guild: discord.Guild) -> RehydrationSummary:
        """
        Re-arm timers for every ticket in ``guild`` after a restart.

        Safe to run more than once: arming replaces existing timers.
        """
        summary = RehydrationSummary()
        records = await self.repository.load_guild(guild.id)
        channels = await guild.fetch_channels()

        for fetched in channels:
            if getattr(fetched, "type", None) != discord.ChannelType.text:
                continue
            channel = guild.get_channel(fetched.id) or fetched
            summary.scanned += 1
            stored = records.pop(channel.id, None)
            try:
                if stored is None and tm.is_ticket(tm.decode(channel.topic)):
                    summary.imported += 1
                metadata = stored if stored is not None else await self.read_metadata(channel)
                ticket = tm.to_ticket(channel.id, metadata)
                if ticket is None:
                    continue
                if ticket.is_open:
                    await self.schedule_auto_close(channel)
                    summary.open += 1
                elif ticket.status is TicketStatus.CLOSED:
                    await self.schedule_auto_delete(channel)
                    summary.closed += 1
            except Exception:
                self.logger.exception(
                    "Failed to rehydrate ticket channel",
                    extra={"channel_id": channel.id, "guild_id": guild.id},
                )

        for channel_id in records:
            await self.repository.delete(channel_id)
            summary.purged += 1

        self.logger.info(
            f"Rehydrated tickets: scanned={summary.scanned} open={summary.open} "
            f"closed={summary.closed} imported={summary.imported} purged={summary.purged}",
            extra={"guild_id": guild.id},
        )
        return summary

    async def health_check(self) -> dict:
        status = await super().health_check()
        status["armed_timers"] = {kind.value: self.scheduler.count(kind) for kind in TimerKind}
        return status
