"""
Client for the shop's membership endpoints (pull model).

The bot asks the site for a member's cumulative spend instead of waiting for
the site to push it to ``/sync-role``.
"""

from __future__ import annotations

from typing import Any

import aiohttp

from config.settings import BotSettings
from helpers.http_helper import HTTPClient, HTTPResponse
from services.base import BaseService
from services.sync_api import SECRET_HEADER
from utils.errors import SiteAPIError
from utils.types import SiteSyncResult

LINK_PATH = "/wp-json/rex/v1/discord/link"
REFRESH_PATH = "/wp-json/rex/v1/discord/refresh"


class SiteClient(BaseService):
    """Calls ``/discord/link`` and ``/discord/refresh`` on the shop."""

    def __init__(self, settings: BotSettings, http: HTTPClient | None = None) -> None:
        super().__init__("site")
        self.settings = settings
        self.http = http or HTTPClient(timeout=settings.site_timeout_seconds)

    @property
    def configured(self) -> bool:
        return bool(self.settings.site_base_url and self.settings.api_secret)

    async def _initialize_impl(self) -> None:
        if not self.configured:
            self.logger.info("Site base URL or API secret missing; pull sync disabled")

    async def _shutdown_impl(self) -> None:
        await self.http.close()

    async def health_check(self) -> dict[str, Any]:
        status = await super().health_check()
        status["configured"] = self.configured
        status.update(self.http.get_health_status())
        return status

    async def link(self, discord_user_id: int, email: str) -> SiteSyncResult:
        """Bind a Discord user to the shop account registered under ``email``."""
        return await self._call(
            LINK_PATH, {"discordUserId": str(discord_user_id), "email": email}, discord_user_id
        )

    async def refresh(self, discord_user_id: int) -> SiteSyncResult:
        """Fetch the current spend of an already-bound Discord user."""
        return await self._call(REFRESH_PATH, {"discordUserId": str(discord_user_id)}, discord_user_id)

    async def _call(
        self, path: str, payload: dict[str, Any], discord_user_id: int
    ) -> SiteSyncResult:
        if not self.configured:
            raise SiteAPIError("site sync is not configured")

        url = f"{self.settings.site_base_url}{path}"
        try:
            response = await self.http.post_json(
                url, payload, headers={SECRET_HEADER: self.settings.api_secret}
            )
        except (TimeoutError, aiohttp.ClientError) as e:
            raise SiteAPIError(f"request to {path} failed: {e!r}") from e

        total_spent = self._parse(path, response)
        self.logger.info(
            f"Site {path} returned totalSpent={total_spent}",
            extra={"user_id": discord_user_id},
        )
        return SiteSyncResult(discord_user_id=discord_user_id, total_spent=total_spent)

    @staticmethod
    def _parse(path: str, response: HTTPResponse) -> float:
        body = response.body
        if not response.ok:
            raise SiteAPIError(f"{path} returned HTTP {response.status}", response.status, body)
        if not isinstance(body, dict):
            raise SiteAPIError(f"{path} returned a non-JSON body", response.status, response.text)
        if body.get("ok") is not True:
            raise SiteAPIError(
                str(body.get("error") or body.get("message") or "request rejected"),
                response.status,
                body,
            )
        try:
            return float(body.get("totalSpent") or 0)
        except (TypeError, ValueError) as e:
            raise SiteAPIError(f"{path} returned a non-numeric totalSpent", response.status, body) from e
