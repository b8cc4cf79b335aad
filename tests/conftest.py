"""Shared fixtures for kmarketdata tests."""

from __future__ import annotations

import json
import sys
from urllib.parse import unquote
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import httpx
import pytest

# Ensure src/ is on the path for editable-style imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "src"))

from kmarketdata.config import MarketDataConfig
from kmarketdata.http import HttpClient
from kmarketdata.manager import MarketDataManager
from kmarketdata.models.candle import Candle
from kmarketdata.models.quote import Quote


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """Canned upstream APIs behind ``httpx.MockTransport``.

    Routes match when their fragment occurs in the full request URL; the
    first registered match wins. A route's response may be a JSON-able
    object, raw ``bytes``, an ``httpx.Response`` or a callable taking the
    request. Unmatched requests get a 404.
    """

    def __init__(self) -> None:
        self.routes: list[tuple[str, Any]] = []
        self.calls: list[httpx.Request] = []

    def add(self, fragment: str, response: Any) -> None:
        self.routes.append((fragment, response))

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        url = str(request.url)
        for fragment, response in self.routes:
            if fragment in url or fragment in unquote(url):
                return _build(response, request)
        return httpx.Response(404, json={"error": "not found"})

    def calls_to(self, fragment: str) -> list[httpx.Request]:
        return [r for r in self.calls if fragment in unquote(str(r.url))]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def _build(response: Any, request: httpx.Request) -> httpx.Response:
    if callable(response):
        response = response(request)
    if isinstance(response, httpx.Response):
        # Fresh copy so a route can be hit more than once
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content,
        )
    if isinstance(response, bytes):
        return httpx.Response(200, content=response)
    return httpx.Response(
        200,
        content=json.dumps(response, ensure_ascii=False).encode("utf-8"),
        headers={"Content-Type": "application/json"},
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def async_client(upstream: FakeUpstream) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=upstream.transport())


@pytest.fixture
def http(async_client: httpx.AsyncClient) -> HttpClient:
    return HttpClient(async_client)


@pytest.fixture
def config() -> MarketDataConfig:
    return MarketDataConfig(
        dart_api_key="dart-key",
        fred_api_key="fred-key",
        ecos_api_key="ecos-key",
        data_go_kr_api_key="gokr-key",
        cache_backend="none",
    )


@pytest.fixture
def make_manager(
    upstream: FakeUpstream, clock: FakeClock,
) -> Callable[..., MarketDataManager]:
    def factory(config: MarketDataConfig | None = None) -> MarketDataManager:
        return MarketDataManager(
            config or MarketDataConfig(cache_backend="none"),
            httpx.AsyncClient(transport=upstream.transport()),
            clock=clock,
        )
    return factory


@pytest.fixture
def manager(make_manager, config) -> MarketDataManager:
    return make_manager(config)


@pytest.fixture
def sample_candles() -> list[Candle]:
    """5 consecutive daily candles."""
    base = date(2024, 5, 13)
    return [
        Candle(
            date=base + timedelta(days=i),
            open=70000.0 + i * 100,
            high=70500.0 + i * 100,
            low=69500.0 + i * 100,
            close=70200.0 + i * 100,
            volume=1_000_000.0 + i * 5000,
        )
        for i in range(5)
    ]


@pytest.fixture
def sample_quote() -> Quote:
    return Quote(
        symbol="005930",
        price=78500.0,
        change=1200.0,
        change_percent=1.55,
        volume=12_345_678.0,
        high=79000.0,
        low=77000.0,
        open=77300.0,
        prev_close=77300.0,
        observed_at=datetime(2024, 5, 17, 6, 30, tzinfo=timezone.utc),
    )
