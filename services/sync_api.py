"""
Tier sync HTTP server (push model).

The shop calls ``POST /sync-role`` with a member's cumulative spend and the
bot reconciles that member's tier role. Runs on the bot's event loop through
aiohttp's AppRunner.
"""

from __future__ import annotations

import hmac
import json
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING

from aiohttp import web

from config.config_loader import ConfigLoader
from services.db.repository import parse_snowflake
from utils.errors import MemberNotFoundError, NoTierMatchedError, ValidationError
from utils.logging import get_logger
from utils.types import TimerKind

if TYPE_CHECKING:
    import discord

    from config.settings import BotSettings
    from services.base import BaseService
    from services.ticket_service import TicketLifecycleService
    from services.tier_service import TierReconciler

logger = get_logger(__name__)

SECRET_HEADER = "X-API-Secret"

GuildResolver = Callable[[], Awaitable["discord.Guild"]]


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"ok": False, "error": message}, status=status)


class SyncAPIServer:
    """aiohttp application exposing the tier sync endpoint and health checks."""

    def __init__(
        self,
        settings: BotSettings,
        reconciler: TierReconciler,
        resolve_guild: GuildResolver,
        tickets: TicketLifecycleService | None = None,
        services: Sequence[BaseService] = (),
    ) -> None:
        self.settings = settings
        self.reconciler = reconciler
        self.resolve_guild = resolve_guild
        self.tickets = tickets
        self.services = tuple(services)
        self.host = settings.web_host
        self.port = settings.web_port
        self.runner: web.AppRunner | None = None
        self.site: web.TCPSite | None = None
        self._started_at = time.monotonic()
        self.app = self.build_app()

        if not settings.api_secret:
            logger.warning("API_SECRET not set - every /sync-role request will be rejected")

    def build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_get("/", self.index)
        app.router.add_get("/health", self.health)
        app.router.add_post("/sync-role", self.sync_role)
        return app

    async def start(self) -> None:
        try:
            self.runner = web.AppRunner(self.app)
            await self.runner.setup()
            self.site = web.TCPSite(self.runner, self.host, self.port)
            await self.site.start()
            logger.info(f"Sync API listening on http://{self.host}:{self.port}")
        except Exception as e:
            logger.exception("Failed to start sync API server", exc_info=e)
            raise

    async def stop(self) -> None:
        try:
            if self.site:
                await self.site.stop()
            if self.runner:
                await self.runner.cleanup()
            logger.info("Sync API server stopped")
        except Exception as e:
            logger.exception("Error stopping sync API server", exc_info=e)

    def _check_auth(self, request: web.Request) -> bool:
        """Exact shared-secret match. An unset secret rejects everything."""
        expected = self.settings.api_secret
        if not expected:
            return False
        supplied = request.headers.get(SECRET_HEADER, "")
        return hmac.compare_digest(supplied.encode(), expected.encode())

    async def index(self, request: web.Request) -> web.Response:
        return web.Response(text="OK")

    async def health(self, request: web.Request) -> web.Response:
        payload: dict = {
            "status": "ok",
            "uptime_seconds": int(time.monotonic() - self._started_at),
            "config": ConfigLoader.get_config_status()["config_status"],
        }
        if self.tickets is not None:
            scheduler = self.tickets.scheduler
            payload["timers"] = {
                "close": scheduler.count(TimerKind.CLOSE),
                "delete": scheduler.count(TimerKind.DELETE),
            }
        if self.services:
            payload["services"] = {
                service.name: await service.health_check() for service in self.services
            }
        return web.json_response(payload)

    async def sync_role(self, request: web.Request) -> web.Response:
        """
        Reconcile one member's tier role.

        Body: ``{"discordUserId": "...", "totalSpent": 1234.5}``
        """
        if not self._check_auth(request):
            logger.warning(
                "Rejected /sync-role request with bad secret",
                extra={"remote": request.remote},
            )
            return _error(401, "unauthorized")

        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return _error(400, "invalid JSON")
        if not isinstance(body, dict):
            return _error(400, "invalid JSON")

        raw_user_id = body.get("discordUserId")
        if raw_user_id in (None, ""):
            return _error(400, "missing discordUserId")
        member_id = parse_snowflake(raw_user_id)
        if member_id is None:
            return _error(400, "invalid discordUserId")

        try:
            guild = await self.resolve_guild()
            result = await self.reconciler.apply_tier(guild, member_id, body.get("totalSpent"))
        except NoTierMatchedError:
            return _error(400, "no tier role matched")
        except ValidationError as e:
            return _error(400, str(e))
        except MemberNotFoundError:
            return _error(404, "member not found in guild")
        except Exception:
            logger.exception("/sync-role failed", extra={"user_id": member_id})
            return _error(500, "server error")

        # Snowflakes exceed the JSON-safe integer range, so they go out as strings
        return web.json_response({"ok": True, "targetRoleId": str(result.target_role_id)})
