"""Productboard REST client — authenticated JSON requests via httpx."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from pbagent.config import settings

from .errors import ConfigurationError, MalformedResponseError, UpstreamError
from .retry import is_retryable, with_retry

logger = logging.getLogger(__name__)

BODY_EXCERPT_LENGTH = 500


def _body_excerpt(response: httpx.Response) -> str:
    try:
        return response.text[:BODY_EXCERPT_LENGTH]
    except Exception:
        return ""


class ProductboardClient:
    """Thin wrapper around the Productboard API.

    Settings are read at call time, so a token added to the environment
    after import is picked up. Explicit constructor arguments win.
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str | None = None,
        api_version: str | None = None,
        timeout: float | None = None,
        max_attempts: int | None = None,
        base_delay_ms: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._token = token
        self._base_url = base_url
        self._api_version = api_version
        self._timeout = timeout
        self._max_attempts = max_attempts
        self._base_delay_ms = base_delay_ms
        self._transport = transport

    @property
    def base_url(self) -> str:
        return (self._base_url or settings.productboard_base_url).rstrip("/")

    def resolve_url(self, path_or_url: str) -> str:
        if path_or_url.startswith(("http://", "https://")):
            return path_or_url
        if not path_or_url.startswith("/"):
            path_or_url = f"/{path_or_url}"
        return f"{self.base_url}{path_or_url}"

    def headers(self) -> dict[str, str]:
        token = self._token if self._token is not None else settings.productboard_token
        if not token:
            raise ConfigurationError("Missing PRODUCTBOARD_TOKEN")
        return {
            "Authorization": f"Bearer {token}",
            "X-Version": self._api_version or settings.productboard_api_version,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def request(self, method: str, path_or_url: str, *, json: Any = None) -> Any:
        """Issue a single request and return the parsed JSON body."""
        headers = self.headers()
        url = self.resolve_url(path_or_url)
        timeout = self._timeout if self._timeout is not None else settings.productboard_timeout_seconds

        try:
            async with asyncio.timeout(timeout):
                async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
                    response = await client.request(method, url, headers=headers, json=json)
        except TimeoutError as e:
            # deadline covers the whole attempt, not each phase
            raise httpx.ReadTimeout(f"{method} {url} exceeded {timeout}s") from e

        if not response.is_success:
            raise UpstreamError(response.status_code, _body_excerpt(response))

        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Invalid JSON from {url}: {e}") from e

    async def fetch(self, path_or_url: str) -> Any:
        """GET with the retry policy applied."""
        logger.debug("GET %s", path_or_url)
        return await with_retry(
            lambda: self.request("GET", path_or_url),
            max_attempts=self._max_attempts or settings.productboard_max_attempts,
            base_delay_ms=(
                self._base_delay_ms
                if self._base_delay_ms is not None
                else settings.productboard_retry_base_delay_ms
            ),
            retry_if=is_retryable,
        )
