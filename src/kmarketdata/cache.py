"""Cache backends: in-memory response cache (TTL + LRU) and Parquet snapshots."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pandas as pd
import pyarrow as pa

from kmarketdata.models.instrument import Instrument

logger = logging.getLogger(__name__)


class CacheBackend(ABC):
    """Abstract response cache interface."""

    @abstractmethod
    def get(self, key: str) -> Any | None:
        """Return the cached value, or None on miss or expiry."""
        ...

    @abstractmethod
    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        """Store ``value`` for ``ttl_seconds``."""
        ...

    @abstractmethod
    def clear(self, prefix: str = "") -> None:
        """Drop entries whose key starts with ``prefix`` (all by default)."""
        ...


class NoCache(CacheBackend):
    """No-op cache that always misses."""

    def get(self, key):  # type: ignore[override]
        return None

    def set(self, key, value, ttl_seconds):  # type: ignore[override]
        pass

    def clear(self, prefix=""):  # type: ignore[override]
        pass


class MemoryCache(CacheBackend):
    """In-memory cache with a per-entry TTL.

    Uses LRU eviction when ``max_entries`` is exceeded. Entries stored with
    a TTL <= 0 are not kept.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[str, tuple[float, Any]] = OrderedDict()

    def __len__(self) -> int:
        return len(self._store)

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [k for k, (expires, _) in self._store.items() if expires <= now]
        for k in expired:
            del self._store[k]

    def _evict_lru(self) -> None:
        while len(self._store) > self.max_entries:
            self._store.popitem(last=False)

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        expires, value = entry
        if expires <= self._clock():
            del self._store[key]
            return None
        self._store.move_to_end(key)  # refresh LRU position
        return value

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        if ttl_seconds <= 0:
            return
        self._evict_expired()
        self._store[key] = (self._clock() + ttl_seconds, value)
        self._store.move_to_end(key)
        self._evict_lru()

    def clear(self, prefix: str = "") -> None:
        if not prefix:
            self._store.clear()
            return
        keys = [k for k in self._store if k.startswith(prefix)]
        for k in keys:
            del self._store[k]


def create_cache(backend: str, max_entries: int = 1000) -> CacheBackend:
    """Build a response cache by name ("memory" or "none")."""
    if backend == "memory":
        return MemoryCache(max_entries=max_entries)
    if backend == "none":
        return NoCache()
    raise ValueError(f"Unknown cache backend: {backend!r}")


class InstrumentSnapshotStore:
    """Disk snapshot of the instrument universe as a Parquet file.

    Lets a fresh process serve the last known universe (as stale data)
    while the first reload is in flight.

    Storage layout: ``{base_path}/{name}.parquet``
    """

    _COLUMNS = ["symbol", "name", "market", "sector", "industry"]

    def __init__(self, base_path: Path | str, name: str = "instruments") -> None:
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.path = self.base_path / f"{name}.parquet"

    def save(self, instruments: list[Instrument]) -> None:
        if not instruments:
            return
        df = pd.DataFrame(
            [
                {
                    "symbol": i.symbol,
                    "name": i.name,
                    "market": i.market,
                    "sector": i.sector,
                    "industry": i.industry,
                }
                for i in instruments
            ],
            columns=self._COLUMNS,
        )
        try:
            df.to_parquet(self.path, compression="snappy", index=False)
        except (OSError, ValueError, pa.ArrowException) as exc:
            logger.warning("Could not write instrument snapshot %s: %s", self.path, exc)

    def load(self) -> list[Instrument] | None:
        if not self.path.exists():
            return None
        try:
            df = pd.read_parquet(self.path)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read instrument snapshot %s: %s", self.path, exc)
            return None

        instruments: list[Instrument] = []
        for _, row in df.iterrows():
            instruments.append(Instrument(
                symbol=str(row["symbol"]),
                name=str(row["name"]),
                market=str(row["market"]),
                sector=row["sector"] if pd.notna(row.get("sector")) else None,
                industry=row["industry"] if pd.notna(row.get("industry")) else None,
            ))
        return instruments or None

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
