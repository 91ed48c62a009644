"""
JSON Fetcher — single-shot, wall-clock bounded GET against the upstream
recipe and cocktail databases.

Usage:
    fetcher = JSONFetcher(settings)
    data = await fetcher.fetch_json("https://www.themealdb.com/api/json/v1/1/random.php")

There is no retry: one failed attempt is a final failure for the call.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional

import httpx

from config import VERSION, Settings

logger = logging.getLogger("recipe-drinks-intel.fetcher")

DEFAULT_TIMEOUT_MS = 10_000


class JSONFetcher:
    """Fetch upstream JSON with a hard timeout covering the whole request."""

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        self.timeout_ms = settings.fetch_timeout_ms if settings else DEFAULT_TIMEOUT_MS
        self._external_client = client
        self._own_client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._external_client is not None:
            return self._external_client
        if self._own_client is None or self._own_client.is_closed:
            self._own_client = httpx.AsyncClient(
                headers={"User-Agent": f"RecipeDrinksIntel/{VERSION}"},
                follow_redirects=True,
            )
        return self._own_client

    async def close(self):
        if self._own_client is not None and not self._own_client.is_closed:
            await self._own_client.aclose()

    async def fetch_json(self, url: str, timeout_ms: Optional[int] = None) -> Any:
        """GET ``url`` and return its parsed JSON body.

        Args:
            url: Absolute http(s) URL. Malformed URLs raise ValueError.
            timeout_ms: Wall-clock budget in milliseconds. Defaults to the
                configured fetch timeout.

        Raises:
            FetchTimeoutError: No complete response before the deadline. The
                in-flight request is cancelled.
            UpstreamError: Non-2xx status. The body is not parsed.
            NetworkError: DNS, connect, transport or redirect-loop failure.
            MalformedResponseError: 2xx body that cannot be decoded or is
                not valid JSON.
        """
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        try:
            parsed = httpx.URL(url)
        except httpx.InvalidURL as e:
            raise ValueError(f"Malformed URL: {url}") from e
        if not parsed.is_absolute_url or parsed.scheme not in ("http", "https"):
            raise ValueError(f"Not an absolute http(s) URL: {url}")

        client = self._get_client()
        try:
            resp = await asyncio.wait_for(client.get(parsed), timeout=timeout_ms / 1000)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning("Upstream timeout after %dms: %s", timeout_ms, url)
            raise FetchTimeoutError(url, timeout_ms) from e
        except httpx.DecodingError as e:
            logger.warning("Upstream body could not be decoded for %s: %s", url, e)
            raise MalformedResponseError(url, e) from e
        except httpx.RequestError as e:
            logger.warning("Upstream network failure for %s: %s", url, e)
            raise NetworkError(url, e) from e

        if not resp.is_success:
            logger.warning("Upstream HTTP %d for %s", resp.status_code, url)
            raise UpstreamError(url, resp.status_code)

        try:
            return resp.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedResponseError(url, e) from e


class FetchError(Exception):
    """Base class for upstream fetch failures."""

    def __init__(self, url: str, message: str):
        super().__init__(message)
        self.url = url


class FetchTimeoutError(FetchError):
    def __init__(self, url: str, timeout_ms: int):
        super().__init__(url, f"Upstream request timed out after {timeout_ms}ms: {url}")
        self.timeout_ms = timeout_ms


class NetworkError(FetchError):
    def __init__(self, url: str, cause: Exception):
        super().__init__(url, f"Network error for {url}: {cause}")


class UpstreamError(FetchError):
    def __init__(self, url: str, status: int):
        super().__init__(url, f"API error: {status}")
        self.status = status


class MalformedResponseError(FetchError):
    def __init__(self, url: str, cause: Exception):
        super().__init__(url, f"Upstream returned invalid JSON for {url}: {cause}")
