"""
Tests for the /sync-role HTTP endpoint and health routes.
"""

from dataclasses import replace
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from aiohttp import test_utils

from services.sync_api import SECRET_HEADER, SyncAPIServer
from services.tier_service import TierReconciler
from tests.factories import (
    DEFAULT_TEST_TIERS,
    ROLE_MEMBER_ID,
    ROLE_VIP_ID,
    FakeMember,
    FakeScheduler,
)
from utils.types import TimerKind

MEMBER_ID = 123456789012345678
AUTH = {SECRET_HEADER: "s3cret"}


def make_server(settings, guild, tickets=None, resolve_guild=None):
    async def _resolve():
        return guild

    return SyncAPIServer(
        settings,
        TierReconciler(DEFAULT_TEST_TIERS),
        resolve_guild or _resolve,
        tickets=tickets,
    )


@pytest.fixture
def customer(guild):
    return guild.add_member(
        FakeMember(user_id=MEMBER_ID, name="Buyer", roles=[guild.get_role(ROLE_MEMBER_ID)])
    )


@pytest_asyncio.fixture()
async def client(settings, guild, customer):
    server = make_server(settings, guild)
    async with test_utils.TestClient(test_utils.TestServer(server.app)) as c:
        yield c


class TestAuth:
    @pytest.mark.asyncio
    async def test_missing_secret_rejected(self, client, customer):
        resp = await client.post("/sync-role", json={"discordUserId": str(MEMBER_ID)})

        assert resp.status == 401
        assert await resp.json() == {"ok": False, "error": "unauthorized"}
        assert customer.added_role_ids == []

    @pytest.mark.asyncio
    async def test_wrong_secret_rejected(self, client):
        resp = await client.post(
            "/sync-role",
            json={"discordUserId": str(MEMBER_ID), "totalSpent": 1},
            headers={SECRET_HEADER: "s3cre"},
        )
        assert resp.status == 401

    @pytest.mark.asyncio
    async def test_unset_secret_rejects_everything(self, settings, guild, customer):
        server = make_server(replace(settings, api_secret=""), guild)
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as c:
            resp = await c.post(
                "/sync-role",
                json={"discordUserId": str(MEMBER_ID), "totalSpent": 1},
                headers={SECRET_HEADER: ""},
            )
        assert resp.status == 401


class TestSyncRole:
    @pytest.mark.asyncio
    async def test_assigns_tier_and_returns_role_id_as_string(self, client, customer):
        resp = await client.post(
            "/sync-role",
            json={"discordUserId": str(MEMBER_ID), "totalSpent": 5000},
            headers=AUTH,
        )

        assert resp.status == 200
        assert await resp.json() == {"ok": True, "targetRoleId": str(ROLE_VIP_ID)}
        assert customer.role_ids == {ROLE_VIP_ID}

    @pytest.mark.asyncio
    async def test_numeric_user_id_accepted(self, client, customer):
        resp = await client.post(
            "/sync-role", json={"discordUserId": MEMBER_ID, "totalSpent": "0"}, headers=AUTH
        )

        assert resp.status == 200
        assert (await resp.json())["targetRoleId"] == str(ROLE_MEMBER_ID)

    @pytest.mark.asyncio
    async def test_repeat_call_is_idempotent(self, client, customer):
        body = {"discordUserId": str(MEMBER_ID), "totalSpent": 5000}
        await client.post("/sync-role", json=body, headers=AUTH)
        customer.added_role_ids.clear()
        customer.removed_role_ids.clear()

        resp = await client.post("/sync-role", json=body, headers=AUTH)

        assert resp.status == 200
        assert customer.added_role_ids == []
        assert customer.removed_role_ids == []

    @pytest.mark.asyncio
    async def test_invalid_json(self, client):
        resp = await client.post(
            "/sync-role",
            data="{not json",
            headers={**AUTH, "Content-Type": "application/json"},
        )
        assert resp.status == 400
        assert (await resp.json())["error"] == "invalid JSON"

    @pytest.mark.asyncio
    async def test_non_object_body(self, client):
        resp = await client.post("/sync-role", json=[1, 2], headers=AUTH)
        assert resp.status == 400

    @pytest.mark.asyncio
    async def test_missing_user_id(self, client):
        resp = await client.post("/sync-role", json={"totalSpent": 10}, headers=AUTH)
        assert resp.status == 400
        assert (await resp.json())["error"] == "missing discordUserId"

    @pytest.mark.asyncio
    async def test_invalid_user_id(self, client):
        resp = await client.post(
            "/sync-role", json={"discordUserId": "abc", "totalSpent": 10}, headers=AUTH
        )
        assert resp.status == 400
        assert (await resp.json())["error"] == "invalid discordUserId"

    @pytest.mark.asyncio
    async def test_non_numeric_spend(self, client, customer):
        resp = await client.post(
            "/sync-role",
            json={"discordUserId": str(MEMBER_ID), "totalSpent": "lots"},
            headers=AUTH,
        )
        assert resp.status == 400
        assert customer.role_ids == {ROLE_MEMBER_ID}

    @pytest.mark.asyncio
    async def test_no_tier_matched(self, client):
        resp = await client.post(
            "/sync-role",
            json={"discordUserId": str(MEMBER_ID), "totalSpent": -5},
            headers=AUTH,
        )
        assert resp.status == 400
        assert (await resp.json())["error"] == "no tier role matched"

    @pytest.mark.asyncio
    async def test_member_not_in_guild(self, client):
        resp = await client.post(
            "/sync-role", json={"discordUserId": "42424242", "totalSpent": 10}, headers=AUTH
        )
        assert resp.status == 404
        assert (await resp.json())["error"] == "member not found in guild"

    @pytest.mark.asyncio
    async def test_unexpected_failure_is_500(self, settings, guild):
        async def _broken():
            raise RuntimeError("gateway down")

        server = make_server(settings, guild, resolve_guild=_broken)
        async with test_utils.TestClient(test_utils.TestServer(server.app)) as c:
            resp = await c.post(
                "/sync-role",
                json={"discordUserId": str(MEMBER_ID), "totalSpent": 10},
                headers=AUTH,
            )
            assert resp.status == 500
            assert await resp.json() == {"ok": False, "error": "server error"}


class TestHealthRoutes:
    @pytest.mark.asyncio
    async def test_index(self, client):
        resp = await client.get("/")
        assert resp.status == 200
        assert await resp.text() == "OK"

    @pytest.mark.asyncio
    async def test_health_reports_timer_counts(self, settings, guild):
        scheduler = FakeScheduler()
        scheduler.schedule((TimerKind.CLOSE, 1), 1000, None)
        scheduler.schedule((TimerKind.CLOSE, 2), 1000, None)
        scheduler.schedule((TimerKind.DELETE, 3), 1000, None)
        server = make_server(settings, guild, tickets=SimpleNamespace(scheduler=scheduler))

        async with test_utils.TestClient(test_utils.TestServer(server.app)) as c:
            resp = await c.get("/health")
            body = await resp.json()

        assert resp.status == 200
        assert body["status"] == "ok"
        assert body["timers"] == {"close": 2, "delete": 1}
        assert "config" in body

    @pytest.mark.asyncio
    async def test_health_includes_service_status(self, settings, guild):
        tiers = TierReconciler(DEFAULT_TEST_TIERS)
        await tiers.initialize()
        server = SyncAPIServer(settings, tiers, AsyncMock(return_value=guild), services=[tiers])

        async with test_utils.TestClient(test_utils.TestServer(server.app)) as c:
            body = await (await c.get("/health")).json()

        assert body["services"] == {"tiers": {"status": "ok"}}
