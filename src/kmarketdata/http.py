"""Shared async HTTP client with soft-failure semantics and response caching."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from kmarketdata.cache import CacheBackend, NoCache
from kmarketdata.config import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

REDACTED = "***"


def cache_key(url: str, params: Mapping[str, Any] | None) -> str:
    if not params:
        return url
    query = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return f"{url}?{query}"


def _redact(text: str, secret: str | None) -> str:
    if not secret:
        return text
    return text.replace(secret, REDACTED)


class HttpClient:
    """Thin wrapper over ``httpx.AsyncClient`` used by every provider.

    ``get_json`` and ``get_bytes`` return None on transport errors, non-2xx
    statuses and undecodable bodies, logging the cause; callers never see
    an exception for those. Successful JSON bodies are cached for the
    caller-supplied revalidation window unless the caller's ``accept``
    predicate rejects them (upstream error envelopes arrive as 200s).

    ``redact`` names a secret that may sit in the URL path; it is masked in
    every log line.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout: float = 10.0,
        user_agent: str = DEFAULT_USER_AGENT,
        cache: CacheBackend | None = None,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout, connect=min(5.0, timeout)),
            follow_redirects=True,
        )
        self.user_agent = user_agent
        self.cache = cache or NoCache()

    async def get_json(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        ttl: float = 0,
        headers: Mapping[str, str] | None = None,
        source: str = "http",
        accept: Callable[[Any], bool] | None = None,
        redact: str | None = None,
    ) -> Any | None:
        key = cache_key(url, params)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        response = await self._get(
            url, params=params, headers=headers, source=source, redact=redact,
        )
        if response is None:
            return None
        try:
            data = response.json()
        except ValueError as exc:
            logger.warning(
                "%s: malformed JSON from %s: %s",
                source, _redact(url, redact), _redact(str(exc), redact),
            )
            return None

        if data is not None and (accept is None or accept(data)):
            self.cache.set(key, data, ttl)
        return data

    async def get_bytes(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
        source: str = "http",
        redact: str | None = None,
    ) -> bytes | None:
        response = await self._get(
            url, params=params, headers=headers, source=source, redact=redact,
        )
        if response is None:
            return None
        return response.content

    async def _get(
        self,
        url: str,
        *,
        params: Mapping[str, Any] | None,
        headers: Mapping[str, str] | None,
        source: str,
        redact: str | None = None,
    ) -> httpx.Response | None:
        merged = {"User-Agent": self.user_agent}
        if headers:
            merged.update(headers)
        try:
            response = await self.client.get(url, params=params, headers=merged)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.warning(
                "%s: HTTP %s from %s",
                source, exc.response.status_code, _redact(url, redact),
            )
            return None
        except httpx.HTTPError as exc:
            logger.warning(
                "%s: request to %s failed: %s",
                source, _redact(url, redact), _redact(str(exc), redact),
            )
            return None
        return response

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()
