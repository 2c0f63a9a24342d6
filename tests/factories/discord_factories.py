"""
Discord Mock Factories

Provides fake classes for Discord objects used by the help-desk tests.
Use these to create consistent, configurable test doubles without hitting Discord's API.
"""

from __future__ import annotations

import itertools
from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock

import discord

_ids = itertools.count(900_000_000_000)


def not_found() -> discord.NotFound:
    return discord.NotFound(MagicMock(status=404, reason="Not Found"), "Unknown")


def http_error(status: int = 500) -> discord.HTTPException:
    return discord.HTTPException(MagicMock(status=status, reason="Error"), "boom")


def forbidden() -> discord.Forbidden:
    return discord.Forbidden(MagicMock(status=403, reason="Forbidden"), "Missing Permissions")


class FakeUser:
    """Fake Discord User for testing."""

    def __init__(self, user_id: int = 123456789, name: str = "TestUser", bot: bool = False) -> None:
        self.id = user_id
        self.name = name
        self.display_name = name
        self.bot = bot
        self.mention = f"<@{user_id}>"

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"<FakeUser id={self.id} name={self.name!r}>"


class FakeRole:
    """Fake Discord Role for testing."""

    def __init__(self, role_id: int = 999111222, name: str = "TestRole") -> None:
        self.id = role_id
        self.name = name
        self.mention = f"<@&{role_id}>"

    def __repr__(self) -> str:
        return f"<FakeRole id={self.id} name={self.name!r}>"


class FakeMember(FakeUser):
    """
    Fake Discord Member for testing.

    Role mutations are tracked by id so calls made with ``discord.Object``
    behave like calls made with real roles.
    """

    def __init__(
        self,
        user_id: int = 123456789,
        name: str = "TestMember",
        roles: list[Any] | None = None,
        guild: FakeGuild | None = None,
        administrator: bool = False,
        fail_role_ids: set[int] | None = None,
    ) -> None:
        super().__init__(user_id=user_id, name=name)
        self.roles = list(roles or [])
        self.guild = guild
        self.guild_permissions = discord.Permissions(administrator=administrator)
        self.added_role_ids: list[int] = []
        self.removed_role_ids: list[int] = []
        self.fail_role_ids = fail_role_ids or set()

    @property
    def role_ids(self) -> set[int]:
        return {r.id for r in self.roles}

    async def add_roles(self, *roles: Any, reason: str | None = None) -> None:
        for role in roles:
            if role.id in self.fail_role_ids:
                raise forbidden()
            self.added_role_ids.append(role.id)
            if role.id not in self.role_ids:
                self.roles.append(role)

    async def remove_roles(self, *roles: Any, reason: str | None = None) -> None:
        for role in roles:
            if role.id in self.fail_role_ids:
                raise forbidden()
            self.removed_role_ids.append(role.id)
            self.roles = [r for r in self.roles if r.id != role.id]

    def __repr__(self) -> str:
        return f"<FakeMember id={self.id} name={self.name!r}>"


class FakeTextChannel:
    """Fake Discord TextChannel that records topic edits, overwrites and messages."""

    def __init__(
        self,
        channel_id: int | None = None,
        name: str = "general",
        guild: FakeGuild | None = None,
        topic: str | None = None,
        category: Any = None,
        overwrites: dict | None = None,
        channel_type: discord.ChannelType = discord.ChannelType.text,
    ) -> None:
        self.id = channel_id or next(_ids)
        self.name = name
        self.guild = guild
        self.topic = topic
        self.category = category
        self.type = channel_type
        self.mention = f"<#{self.id}>"
        self.overwrites = dict(overwrites or {})
        self.sent_messages: list[dict[str, Any]] = []
        self.topic_edits: list[str] = []
        self.deleted = False
        self.fail_sends = False

    @property
    def sent_contents(self) -> list[str | None]:
        return [m["content"] for m in self.sent_messages]

    async def send(self, content: str | None = None, **kwargs: Any) -> MagicMock:
        if self.fail_sends:
            raise http_error()
        self.sent_messages.append({"content": content, **kwargs})
        msg = MagicMock()
        msg.content = content
        msg.id = len(self.sent_messages)
        return msg

    async def edit(self, **kwargs: Any) -> None:
        if self.deleted:
            raise not_found()
        if "topic" in kwargs:
            self.topic = kwargs["topic"]
            self.topic_edits.append(kwargs["topic"])

    def overwrites_for(self, target: Any) -> discord.PermissionOverwrite:
        for key, overwrite in self.overwrites.items():
            if key.id == target.id:
                allow, deny = overwrite.pair()
                return discord.PermissionOverwrite.from_pair(allow, deny)
        return discord.PermissionOverwrite()

    async def set_permissions(
        self, target: Any, *, overwrite: discord.PermissionOverwrite | None = None, **kwargs: Any
    ) -> None:
        self.overwrites = {k: v for k, v in self.overwrites.items() if k.id != target.id}
        if overwrite is not None:
            self.overwrites[target] = overwrite

    async def delete(self, reason: str | None = None) -> None:
        if self.deleted:
            raise not_found()
        self.deleted = True
        if self.guild is not None:
            self.guild.channels.pop(self.id, None)

    def __repr__(self) -> str:
        return f"<FakeTextChannel id={self.id} name={self.name!r}>"


class FakeGuild:
    """Fake Discord Guild holding channels, members and roles by id."""

    def __init__(self, guild_id: int = 1, name: str = "TestGuild") -> None:
        self.id = guild_id
        self.name = name
        self.channels: dict[int, Any] = {}
        self.members: dict[int, FakeMember] = {}
        self.roles: dict[int, FakeRole] = {}
        self.default_role = FakeRole(guild_id, "@everyone")
        self.me = FakeMember(user_id=42, name="HelpdeskBot", guild=self, administrator=True)
        self.created_channels: list[FakeTextChannel] = []
        self.fail_channel_creation = False

    @property
    def text_channels(self) -> list[FakeTextChannel]:
        return [c for c in self.channels.values() if c.type == discord.ChannelType.text]

    def add_channel(self, channel: Any) -> Any:
        channel.guild = self
        self.channels[channel.id] = channel
        return channel

    def add_member(self, member: FakeMember) -> FakeMember:
        member.guild = self
        self.members[member.id] = member
        return member

    def add_role(self, role: FakeRole) -> FakeRole:
        self.roles[role.id] = role
        return role

    def get_channel(self, channel_id: int) -> Any:
        return self.channels.get(channel_id)

    def get_member(self, member_id: int) -> FakeMember | None:
        return self.members.get(member_id)

    def get_role(self, role_id: int) -> FakeRole | None:
        return self.roles.get(role_id)

    async def fetch_member(self, member_id: int) -> FakeMember:
        member = self.members.get(member_id)
        if member is None:
            raise not_found()
        return member

    async def fetch_channels(self) -> list[Any]:
        return list(self.channels.values())

    async def create_text_channel(
        self,
        name: str,
        *,
        category: Any = None,
        topic: str | None = None,
        overwrites: dict | None = None,
        reason: str | None = None,
    ) -> FakeTextChannel:
        if self.fail_channel_creation:
            raise forbidden()
        channel = FakeTextChannel(
            name=name, topic=topic, category=category, overwrites=overwrites
        )
        self.add_channel(channel)
        self.created_channels.append(channel)
        return channel

    def __repr__(self) -> str:
        return f"<FakeGuild id={self.id} name={self.name!r}>"


class FakeResponse:
    def __init__(self) -> None:
        self._is_done = False
        self.messages: list[dict[str, Any]] = []
        self.deferred = False
        self.sent_modal = None

    def is_done(self) -> bool:
        return self._is_done

    async def send_message(self, content: str | None = None, **kwargs: Any) -> None:
        self._is_done = True
        self.messages.append({"content": content, **kwargs})

    async def defer(self, **kwargs: Any) -> None:
        self._is_done = True
        self.deferred = True

    async def send_modal(self, modal: Any) -> None:
        self._is_done = True
        self.sent_modal = modal


class FakeFollowup:
    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def send(self, content: str | None = None, **kwargs: Any) -> MagicMock:
        self.messages.append({"content": content, **kwargs})
        return MagicMock()


class FakeInteraction:
    """Fake Interaction exposing ``client.services`` like the real bot."""

    def __init__(
        self,
        user: FakeUser | None = None,
        guild: FakeGuild | None = None,
        channel: Any = None,
        services: Any = None,
    ) -> None:
        self.user = user or FakeMember()
        self.guild = guild
        self.channel = channel
        self.command = None
        self.client = SimpleNamespace(services=services)
        self.response = FakeResponse()
        self.followup = FakeFollowup()

    @property
    def replies(self) -> list[str | None]:
        """Every text reply, initial response first."""
        return [m["content"] for m in self.response.messages + self.followup.messages]
