"""Market data configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum

DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

# Values that ship in sample .env files and mean "not configured".
PLACEHOLDER_KEYS = frozenset({"your_dart_api_key"})


class ProviderType(Enum):
    """Upstream data sources."""

    NAVER = "naver"
    DART = "dart"
    FRED = "fred"
    ECOS = "ecos"
    YAHOO = "yahoo"
    FEAR_GREED = "fear_greed"
    DATA_GO_KR = "data_go_kr"


@dataclass(frozen=True)
class RevalidateWindows:
    """Response cache TTLs in seconds, by how volatile the data is."""

    quote: float = 30
    chart: float = 300
    filings: float = 300
    reference: float = 86400
    instrument: float = 3600
    financials: float = 3600
    macro: float = 3600
    ranking: float = 60
    search: float = 60
    market_index: float = 300
    registry_ranking: float = 1800


@dataclass
class MarketDataConfig:
    """Configuration for MarketDataManager.

    Attributes:
        dart_api_key: DART OpenAPI key (filings, company data, corp codes).
        fred_api_key: St. Louis Fed FRED key.
        ecos_api_key: Bank of Korea ECOS key.
        data_go_kr_api_key: data.go.kr service key (KRX listings, rankings,
            short selling).
        cache_backend: Response cache type, "memory" or "none".
        cache_max_entries: LRU bound for the response cache.
        snapshot_dir: Directory for parquet snapshots of the instrument
            universe. ``None`` disables snapshots.
        reference_ttl_seconds: TTL for reference datasets (instrument list,
            corp-code map).
        http_timeout_seconds: Per-request timeout.
        user_agent: User-Agent sent to endpoints that reject bare clients.
        revalidate: Per-data-kind response cache TTLs.
    """

    dart_api_key: str | None = None
    fred_api_key: str | None = None
    ecos_api_key: str | None = None
    data_go_kr_api_key: str | None = None

    cache_backend: str = "memory"
    cache_max_entries: int = 2000
    snapshot_dir: str | None = None
    reference_ttl_seconds: float = 24 * 60 * 60
    http_timeout_seconds: float = 10.0
    user_agent: str = DEFAULT_USER_AGENT
    revalidate: RevalidateWindows = field(default_factory=RevalidateWindows)

    @classmethod
    def from_env(cls) -> MarketDataConfig:
        """Build a config from environment variables.

        Environment variables:
            DART_API_KEY, FRED_API_KEY, ECOS_API_KEY, DATA_GO_KR_API_KEY:
                Upstream credentials.
            MARKET_DATA_CACHE: "memory" or "none" (default: "memory").
            MARKET_DATA_SNAPSHOT_DIR: Parquet snapshot directory (default: off).
            MARKET_DATA_TIMEOUT: HTTP timeout in seconds (default: 10).
        """
        return cls(
            dart_api_key=clean_key(os.getenv("DART_API_KEY")),
            fred_api_key=clean_key(os.getenv("FRED_API_KEY")),
            ecos_api_key=clean_key(os.getenv("ECOS_API_KEY")),
            data_go_kr_api_key=clean_key(os.getenv("DATA_GO_KR_API_KEY")),
            cache_backend=os.getenv("MARKET_DATA_CACHE", "memory"),
            snapshot_dir=os.getenv("MARKET_DATA_SNAPSHOT_DIR") or None,
            http_timeout_seconds=float(os.getenv("MARKET_DATA_TIMEOUT", "10")),
        )


def clean_key(value: str | None) -> str | None:
    """Normalize a credential: blank and placeholder values become None."""
    if value is None:
        return None
    value = value.strip()
    if not value or value in PLACEHOLDER_KEYS:
        return None
    return value
