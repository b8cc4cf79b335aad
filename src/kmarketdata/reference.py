"""Long-lived reference data: instrument universe and corp-code map.

Both datasets come from bulk endpoints that are slow and rate limited, so
they are held in a :class:`ReferenceCache` for a day and reloaded behind a
single-flight guard. Reload failures keep serving the previous snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from enum import Enum
from typing import Generic, TypeVar

from kmarketdata.cache import InstrumentSnapshotStore
from kmarketdata.errors import MarketDataError
from kmarketdata.fallback import is_non_empty
from kmarketdata.models.instrument import Instrument

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SEARCH_LIMIT = 15


class CacheState(Enum):
    """Lifecycle of a reference dataset."""

    EMPTY = "empty"
    LOADING = "loading"
    POPULATED = "populated"
    STALE = "stale"


class ReferenceCache(Generic[T]):
    """Time-boxed holder for one reference dataset.

    ``get()`` on an empty cache awaits the load; every concurrent caller
    shares the same in-flight task. Once populated, ``get()`` never blocks:
    a stale value is returned immediately while a refresh runs in the
    background. A failed or empty load is logged and leaves the previous
    value (or emptiness) in place.

    Args:
        loader: Coroutine factory producing the full dataset.
        ttl_seconds: Age after which the value is stale.
        clock: Monotonic clock, injectable for tests.
        name: Used in log messages.
        seed: Initial value (e.g. a disk snapshot), served as stale.
    """

    def __init__(
        self,
        loader: Callable[[], Awaitable[T]],
        *,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        name: str = "reference",
        seed: T | None = None,
    ) -> None:
        self._loader = loader
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self.name = name
        self._value: T | None = seed if seed is not None and is_non_empty(seed) else None
        self._loaded_at: float | None = None
        self._stale = self._value is not None
        self._inflight: asyncio.Task[T | None] | None = None

    @property
    def state(self) -> CacheState:
        if self._value is None:
            return CacheState.LOADING if self._inflight is not None else CacheState.EMPTY
        if self._is_stale():
            return CacheState.STALE
        return CacheState.POPULATED

    @property
    def loading(self) -> bool:
        return self._inflight is not None

    def peek(self) -> T | None:
        """Current value without triggering a load."""
        return self._value

    def _is_stale(self) -> bool:
        if self._stale or self._loaded_at is None:
            return True
        return self._clock() - self._loaded_at >= self.ttl_seconds

    async def get(self) -> T | None:
        if self._value is not None:
            if self._is_stale() and self._inflight is None:
                self._start_load().add_done_callback(self._log_background_failure)
            return self._value
        return await asyncio.shield(self._start_load())

    async def refresh(self) -> T | None:
        """Force a reload (joining one already in flight) and wait for it."""
        return await asyncio.shield(self._start_load())

    def invalidate(self) -> None:
        """Mark the value stale; the next ``get()`` triggers a reload."""
        self._stale = True

    def _start_load(self) -> asyncio.Task[T | None]:
        if self._inflight is None:
            self._inflight = asyncio.ensure_future(self._load())
        return self._inflight

    def _log_background_failure(self, task: asyncio.Task[T | None]) -> None:
        # Stale callers already returned; nobody else may await this task.
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "%s background reload failed, keeping previous data",
                self.name, exc_info=exc,
            )

    async def _load(self) -> T | None:
        try:
            value = await self._loader()
        except MarketDataError as exc:
            logger.warning("%s reload failed, keeping previous data: %s", self.name, exc)
            return self._value
        finally:
            self._inflight = None

        if value is None or not is_non_empty(value):
            logger.warning("%s reload returned no data, keeping previous data", self.name)
            return self._value

        self._value = value
        self._loaded_at = self._clock()
        self._stale = False
        logger.info("%s reloaded: %d entries", self.name, _size(value))
        return value


def _size(value: object) -> int:
    try:
        return len(value)  # type: ignore[arg-type]
    except TypeError:
        return 1


class InstrumentDirectory:
    """Full tradable-instrument universe with substring search.

    With a snapshot store, each successful load is written to disk and the
    last snapshot seeds the cache on construction.
    """

    def __init__(
        self,
        loader: Callable[[], Awaitable[list[Instrument]]],
        *,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        snapshot: InstrumentSnapshotStore | None = None,
    ) -> None:
        self._fetch = loader
        self.snapshot = snapshot
        self.cache: ReferenceCache[list[Instrument]] = ReferenceCache(
            self._load,
            ttl_seconds=ttl_seconds,
            clock=clock,
            name="instruments",
            seed=snapshot.load() if snapshot else None,
        )

    async def _load(self) -> list[Instrument]:
        instruments = await self._fetch()
        if instruments and self.snapshot is not None:
            self.snapshot.save(instruments)
        return instruments

    async def get_all(self) -> list[Instrument]:
        return await self.cache.get() or []

    async def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[Instrument]:
        """Case-insensitive substring match over name and symbol."""
        if not query.strip():
            return []
        instruments = await self.get_all()
        return [i for i in instruments if i.matches(query)][:limit]

    def invalidate(self) -> None:
        self.cache.invalidate()


class CorpCodeDirectory:
    """Exchange symbol to registry corp-code map.

    The registry cannot be queried by exchange symbol, so the whole map is
    downloaded in bulk and looked up locally.
    """

    def __init__(
        self,
        loader: Callable[[], Awaitable[dict[str, str]]],
        *,
        ttl_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.cache: ReferenceCache[dict[str, str]] = ReferenceCache(
            loader, ttl_seconds=ttl_seconds, clock=clock, name="corp_codes",
        )

    async def lookup(self, symbol: str) -> str | None:
        codes = await self.cache.get()
        if not codes:
            return None
        return codes.get(symbol.strip())

    def invalidate(self) -> None:
        self.cache.invalidate()


def dedupe_instruments(instruments: Iterable[Instrument]) -> list[Instrument]:
    """Drop repeated symbols, keeping the first occurrence."""
    seen: set[str] = set()
    unique: list[Instrument] = []
    for inst in instruments:
        if not inst.symbol or inst.symbol in seen:
            continue
        seen.add(inst.symbol)
        unique.append(inst)
    return unique


# Last-resort universe when neither the registry nor the search service answers.
STATIC_INSTRUMENTS: list[Instrument] = dedupe_instruments([
    Instrument("005930", "삼성전자", "KOSPI"),
    Instrument("000660", "SK하이닉스", "KOSPI"),
    Instrument("373220", "LG에너지솔루션", "KOSPI"),
    Instrument("207940", "삼성바이오로직스", "KOSPI"),
    Instrument("005380", "현대차", "KOSPI"),
    Instrument("000270", "기아", "KOSPI"),
    Instrument("068270", "셀트리온", "KOSPI"),
    Instrument("005490", "POSCO홀딩스", "KOSPI"),
    Instrument("035420", "NAVER", "KOSPI"),
    Instrument("035720", "카카오", "KOSPI"),
    Instrument("051910", "LG화학", "KOSPI"),
    Instrument("006400", "삼성SDI", "KOSPI"),
    Instrument("105560", "KB금융", "KOSPI"),
    Instrument("055550", "신한지주", "KOSPI"),
    Instrument("086790", "하나금융지주", "KOSPI"),
    Instrument("012330", "현대모비스", "KOSPI"),
    Instrument("028260", "삼성물산", "KOSPI"),
    Instrument("066570", "LG전자", "KOSPI"),
    Instrument("003550", "LG", "KOSPI"),
    Instrument("017670", "SK텔레콤", "KOSPI"),
    Instrument("030200", "KT", "KOSPI"),
    Instrument("034730", "SK", "KOSPI"),
    Instrument("096770", "SK이노베이션", "KOSPI"),
    Instrument("032830", "삼성생명", "KOSPI"),
    Instrument("015760", "한국전력", "KOSPI"),
    Instrument("010130", "고려아연", "KOSPI"),
    Instrument("009150", "삼성전기", "KOSPI"),
    Instrument("018260", "삼성에스디에스", "KOSPI"),
    Instrument("011200", "HMM", "KOSPI"),
    Instrument("033780", "KT&G", "KOSPI"),
    Instrument("003670", "포스코퓨처엠", "KOSPI"),
    Instrument("012450", "한화에어로스페이스", "KOSPI"),
    Instrument("329180", "HD현대중공업", "KOSPI"),
    Instrument("247540", "에코프로비엠", "KOSDAQ"),
    Instrument("086520", "에코프로", "KOSDAQ"),
    Instrument("196170", "알테오젠", "KOSDAQ"),
    Instrument("028300", "HLB", "KOSDAQ"),
    Instrument("263750", "펄어비스", "KOSDAQ"),
    Instrument("293490", "카카오게임즈", "KOSDAQ"),
    Instrument("035900", "JYP Ent.", "KOSDAQ"),
])


def search_static(query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[Instrument]:
    if not query.strip():
        return []
    return [i for i in STATIC_INSTRUMENTS if i.matches(query)][:limit]
