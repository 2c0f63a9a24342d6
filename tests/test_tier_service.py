"""
Tests for tier selection and member role reconciliation.
"""

import pytest

from services.tier_service import TierReconciler, normalize_spend, pick_tier
from tests.factories import (
    DEFAULT_TEST_TIERS,
    ROLE_MEMBER_ID,
    ROLE_SUPREME_ID,
    ROLE_VIP_ID,
    FakeMember,
    FakeRole,
)
from utils.errors import MemberNotFoundError, NoTierMatchedError, ValidationError
from utils.types import TierRule

MEMBER_ID = 2002


@pytest.fixture
def reconciler():
    return TierReconciler(DEFAULT_TEST_TIERS)


def add_customer(guild, *role_ids, fail_role_ids=None):
    roles = [guild.get_role(role_id) for role_id in role_ids]
    return guild.add_member(
        FakeMember(user_id=MEMBER_ID, name="Buyer", roles=roles, fail_role_ids=fail_role_ids)
    )


class TestNormalizeSpend:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [(None, 0.0), ("", 0.0), (0, 0.0), ("4000", 4000.0), (12.5, 12.5)],
    )
    def test_accepts_numbers(self, value, expected):
        assert normalize_spend(value) == expected

    @pytest.mark.parametrize("value", ["abc", True, float("nan"), [1]])
    def test_rejects_non_numeric(self, value):
        with pytest.raises(ValidationError):
            normalize_spend(value)


class TestPickTier:
    def test_thresholds(self):
        assert pick_tier(DEFAULT_TEST_TIERS, 0) == ROLE_MEMBER_ID
        assert pick_tier(DEFAULT_TEST_TIERS, 3999.99) == ROLE_MEMBER_ID
        assert pick_tier(DEFAULT_TEST_TIERS, 4000) == ROLE_VIP_ID
        assert pick_tier(DEFAULT_TEST_TIERS, 10000) == ROLE_SUPREME_ID

    def test_missing_spend_counts_as_zero(self):
        assert pick_tier(DEFAULT_TEST_TIERS, None) == ROLE_MEMBER_ID

    def test_monotonic_in_spend(self):
        rank = {ROLE_MEMBER_ID: 0, ROLE_VIP_ID: 1, ROLE_SUPREME_ID: 2}
        picks = [rank[pick_tier(DEFAULT_TEST_TIERS, s)] for s in range(0, 20000, 500)]
        assert picks == sorted(picks)

    def test_unconfigured_tier_is_skipped(self):
        tiers = (TierRule("supreme", None, 10000.0), TierRule("vip", 902, 4000.0))
        assert pick_tier(tiers, 50000) == 902
        assert pick_tier(tiers, 100) is None


class TestApplyTier:
    @pytest.mark.asyncio
    async def test_zero_spend_gets_member_role(self, reconciler, guild):
        customer = add_customer(guild)

        result = await reconciler.apply_tier(guild, MEMBER_ID, 0)

        assert result.target_role_id == ROLE_MEMBER_ID
        assert result.added
        assert customer.role_ids == {ROLE_MEMBER_ID}

    @pytest.mark.asyncio
    async def test_upgrade_removes_lower_tier(self, reconciler, guild):
        customer = add_customer(guild, ROLE_MEMBER_ID)

        result = await reconciler.apply_tier(guild, MEMBER_ID, 5000)

        assert result.target_role_id == ROLE_VIP_ID
        assert result.removed_role_ids == [ROLE_MEMBER_ID]
        assert customer.role_ids == {ROLE_VIP_ID}

    @pytest.mark.asyncio
    async def test_unrelated_roles_untouched(self, reconciler, guild):
        other = guild.add_role(FakeRole(777, "Gamer"))
        customer = add_customer(guild, ROLE_SUPREME_ID)
        customer.roles.append(other)

        await reconciler.apply_tier(guild, MEMBER_ID, 100)

        assert customer.role_ids == {777, ROLE_MEMBER_ID}

    @pytest.mark.asyncio
    async def test_second_run_changes_nothing(self, reconciler, guild):
        customer = add_customer(guild)
        await reconciler.apply_tier(guild, MEMBER_ID, 12000)
        customer.added_role_ids.clear()

        result = await reconciler.apply_tier(guild, MEMBER_ID, 12000)

        assert not result.changed
        assert customer.added_role_ids == []
        assert customer.removed_role_ids == []

    @pytest.mark.asyncio
    async def test_no_tier_matched(self, guild):
        reconciler = TierReconciler((TierRule("vip", ROLE_VIP_ID, 4000.0),))
        customer = add_customer(guild, ROLE_MEMBER_ID)

        with pytest.raises(NoTierMatchedError):
            await reconciler.apply_tier(guild, MEMBER_ID, 10)
        assert customer.role_ids == {ROLE_MEMBER_ID}

    @pytest.mark.asyncio
    async def test_invalid_spend_rejected(self, reconciler, guild):
        add_customer(guild)
        with pytest.raises(ValidationError):
            await reconciler.apply_tier(guild, MEMBER_ID, "lots")

    @pytest.mark.asyncio
    async def test_member_not_found(self, reconciler, guild):
        with pytest.raises(MemberNotFoundError):
            await reconciler.apply_tier(guild, 31337, 100)

    @pytest.mark.asyncio
    async def test_partial_failure_is_reported(self, reconciler, guild):
        customer = add_customer(
            guild, ROLE_MEMBER_ID, ROLE_VIP_ID, fail_role_ids={ROLE_MEMBER_ID}
        )

        result = await reconciler.apply_tier(guild, MEMBER_ID, 20000)

        assert result.failed_role_ids == [ROLE_MEMBER_ID]
        assert result.removed_role_ids == [ROLE_VIP_ID]
        assert result.added
        assert customer.role_ids == {ROLE_MEMBER_ID, ROLE_SUPREME_ID}
