"""Tests for cache backends (memory response cache and parquet snapshots)."""

import pandas as pd
import pyarrow as pa
import pytest

from kmarketdata.cache import InstrumentSnapshotStore, MemoryCache, NoCache, create_cache
from kmarketdata.models.instrument import Instrument


class TestNoCache:
    def test_always_misses(self):
        cache = NoCache()
        cache.set("k", {"a": 1}, 60)
        assert cache.get("k") is None
        cache.clear()


class TestMemoryCache:
    def test_store_and_retrieve(self, clock):
        cache = MemoryCache(clock=clock)
        cache.set("naver/quote", {"closePrice": "72,000"}, 30)
        assert cache.get("naver/quote") == {"closePrice": "72,000"}

    def test_ttl_expiry(self, clock):
        cache = MemoryCache(clock=clock)
        cache.set("k", "v", 30)
        clock.advance(29)
        assert cache.get("k") == "v"
        clock.advance(1)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_zero_ttl_not_stored(self, clock):
        cache = MemoryCache(clock=clock)
        cache.set("k", "v", 0)
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_lru_eviction(self, clock):
        cache = MemoryCache(max_entries=2, clock=clock)
        cache.set("a", 1, 60)
        cache.set("b", 2, 60)
        cache.get("a")  # "b" is now least recently used
        cache.set("c", 3, 60)
        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert cache.get("c") == 3

    def test_expired_entries_evicted_on_write(self, clock):
        cache = MemoryCache(clock=clock)
        cache.set("short", 1, 5)
        cache.set("long", 2, 500)
        clock.advance(10)
        cache.set("new", 3, 60)
        assert len(cache) == 2

    def test_clear_prefix(self, clock):
        cache = MemoryCache(clock=clock)
        cache.set("https://m.stock.naver.com/api/a", 1, 60)
        cache.set("https://m.stock.naver.com/api/b", 2, 60)
        cache.set("https://api.stlouisfed.org/x", 3, 60)
        cache.clear("https://m.stock.naver.com")
        assert cache.get("https://m.stock.naver.com/api/a") is None
        assert cache.get("https://api.stlouisfed.org/x") == 3

    def test_clear_all(self, clock):
        cache = MemoryCache(clock=clock)
        cache.set("a", 1, 60)
        cache.set("b", 2, 60)
        cache.clear()
        assert len(cache) == 0


class TestCreateCache:
    def test_known_backends(self):
        assert isinstance(create_cache("memory"), MemoryCache)
        assert isinstance(create_cache("none"), NoCache)

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_cache("redis")


class TestInstrumentSnapshotStore:
    @pytest.fixture
    def store(self, tmp_path):
        return InstrumentSnapshotStore(tmp_path / "snapshots")

    def test_save_and_load(self, store):
        instruments = [
            Instrument("005930", "삼성전자", "KOSPI", sector="전기전자"),
            Instrument("247540", "에코프로비엠", "KOSDAQ"),
        ]
        store.save(instruments)
        loaded = store.load()
        assert loaded == instruments

    def test_miss(self, store):
        assert store.load() is None

    def test_empty_not_stored(self, store):
        store.save([])
        assert not store.path.exists()

    def test_clear(self, store):
        store.save([Instrument("005930", "삼성전자", "KOSPI")])
        store.clear()
        assert store.load() is None

    def test_write_error_is_logged_not_raised(self, store, monkeypatch, caplog):
        def broken(*args, **kwargs):
            raise pa.ArrowInvalid("unsupported column type")

        monkeypatch.setattr(pd.DataFrame, "to_parquet", broken)
        store.save([Instrument("005930", "삼성전자", "KOSPI")])
        assert not store.path.exists()
        assert "Could not write instrument snapshot" in caplog.text
