"""
Spend-tier role reconciliation.

A member holds at most one tier role: the most exclusive tier whose minimum
spend is covered by the member's cumulative spend on the shop.
"""

from __future__ import annotations

from collections.abc import Sequence

import discord

from helpers import discord_api
from services.base import BaseService
from utils.errors import MemberNotFoundError, NoTierMatchedError, ValidationError
from utils.types import TierRule, TierSyncResult


def normalize_spend(total_spent: object) -> float:
    """Coerce a spend figure; missing counts as 0, non-numeric is rejected."""
    if total_spent is None or total_spent == "":
        return 0.0
    if isinstance(total_spent, bool):
        raise ValidationError(f"totalSpent must be a number, got {total_spent!r}")
    try:
        value = float(total_spent)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"totalSpent must be a number, got {total_spent!r}") from e
    if value != value:  # NaN
        raise ValidationError("totalSpent must be a number, got NaN")
    return value


def pick_tier(tiers: Sequence[TierRule], total_spent: object) -> int | None:
    """Role id of the first tier (most exclusive first) whose threshold is met."""
    spend = normalize_spend(total_spent)
    for tier in tiers:
        if tier.role_id and spend >= tier.minimum_spend:
            return tier.role_id
    return None


class TierReconciler(BaseService):
    """Applies the tier picked for a spend figure to a guild member."""

    def __init__(self, tiers: Sequence[TierRule]) -> None:
        super().__init__("tiers")
        self.tiers = tuple(tiers)

    async def _initialize_impl(self) -> None:
        configured = [t.name for t in self.tiers if t.role_id]
        if not configured:
            self.logger.warning("No tier roles configured; tier sync will always fail")
        else:
            self.logger.info(f"Tier roles configured: {', '.join(configured)}")

    @property
    def tier_role_ids(self) -> list[int]:
        return [t.role_id for t in self.tiers if t.role_id]

    def pick_tier(self, total_spent: object) -> int | None:
        return pick_tier(self.tiers, total_spent)

    async def _resolve_member(self, guild: discord.Guild, member_id: int) -> discord.Member:
        member = guild.get_member(member_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(member_id)
        except discord.NotFound as e:
            raise MemberNotFoundError(member_id) from e

    async def apply_tier(
        self, guild: discord.Guild, member_id: int, total_spent: object
    ) -> TierSyncResult:
        """
        Give ``member_id`` exactly the tier role their spend earns.

        Other tier roles are removed first, then the target is added if it is
        not already held. Each role mutation is best effort.

        Raises:
            ValidationError: ``total_spent`` is not numeric.
            NoTierMatchedError: no configured tier covers the spend.
            MemberNotFoundError: the member is not in the guild.
        """
        target = self.pick_tier(total_spent)
        if target is None:
            raise NoTierMatchedError(total_spent)

        member = await self._resolve_member(guild, member_id)
        held = {role.id for role in member.roles}
        result = TierSyncResult(member_id=member_id, target_role_id=target)

        for role_id in self.tier_role_ids:
            if role_id == target or role_id not in held:
                continue
            if await discord_api.remove_role(member, role_id, reason="Tier sync"):
                result.removed_role_ids.append(role_id)
            else:
                result.failed_role_ids.append(role_id)

        if target not in held:
            if await discord_api.add_role(member, target, reason="Tier sync"):
                result.added = True
            else:
                result.failed_role_ids.append(target)

        self.logger.info(
            "Tier reconciled",
            extra={
                "user_id": member_id,
                "guild_id": guild.id,
                "role_id": target,
            },
        )
        if result.failed_role_ids:
            self.logger.warning(
                f"Tier sync left roles unreconciled: {result.failed_role_ids}",
                extra={"user_id": member_id, "guild_id": guild.id},
            )
        return result
