"""
HTTP client utilities for calls to the e-commerce site.

Wraps one shared aiohttp session with:
- a total request timeout and a concurrency cap
- structured logging and request counters for the health endpoint

Each request is sent once. A failed link or refresh is reported to the member,
who can press the button again.
"""

import asyncio
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import aiohttp

from utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class HTTPResponse:
    """Status plus parsed JSON body (None when the body is not JSON)."""

    status: int
    body: Any
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class HTTPClient:
    """
    JSON-over-HTTP client with observability.

    Transport failures (timeouts, connection errors) propagate to the caller;
    HTTP error statuses are returned, not raised.
    """

    def __init__(
        self,
        timeout: int = 15,
        concurrency: int = 8,
        user_agent: str | None = None,
    ) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._sem = asyncio.Semaphore(concurrency)
        self._session: aiohttp.ClientSession | None = None
        self._user_agent = user_agent or "HelpdeskBot/1.0"

        self._request_count = 0
        self._error_count = 0

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout, raise_for_status=False)
        return self._session

    async def close(self) -> None:
        """Close the HTTP session cleanly."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("HTTP session closed")

    def get_health_status(self) -> dict:
        return {
            "http_client_status": "ok" if self._session and not self._session.closed else "idle",
            "total_requests": self._request_count,
            "total_errors": self._error_count,
        }

    async def request_json(
        self,
        method: str,
        url: str,
        *,
        payload: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> HTTPResponse:
        """
        Send a request with an optional JSON body and parse the JSON reply.

        Raises:
            aiohttp.ClientError / TimeoutError: transport failure.
        """
        method = method.upper()
        request_headers = {"User-Agent": self._user_agent, "Accept": "application/json"}
        if headers:
            request_headers.update(headers)

        self._request_count += 1
        async with self._sem:
            session = await self._get_session()
            try:
                logger.debug(f"HTTP {method} {url}")
                async with session.request(
                    method, url, json=payload, headers=request_headers
                ) as resp:
                    status = resp.status
                    text = await resp.text()
            except (TimeoutError, aiohttp.ClientError) as e:
                self._error_count += 1
                logger.warning(f"HTTP {method} {url} failed: {e!r}")
                raise

        if status >= 400:
            self._error_count += 1
            logger.warning(f"HTTP {method} {url} -> {status}")
        else:
            logger.debug(f"HTTP {method} {url} -> {status} ({len(text)} bytes)")
        return HTTPResponse(status=status, body=_parse_json(text), text=text)

    async def post_json(
        self,
        url: str,
        payload: Mapping[str, Any],
        headers: Mapping[str, str] | None = None,
    ) -> HTTPResponse:
        return await self.request_json("POST", url, payload=payload, headers=headers)


def _parse_json(text: str) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None
