"""kmarketdata: data layer for a Korean market dashboard.

Quotes, charts and rankings (Naver Finance), corporate filings and
financials (DART), macro series (FRED, ECOS, Yahoo, alternative.me) and
registry rankings (data.go.kr), normalized into one set of models with
fallback chains, cross-market merging and cached reference data.

Quick start::

    from kmarketdata import create_manager_from_env
    async with create_manager_from_env() as mgr:
        stock = await mgr.get_stock("005930")
"""

from __future__ import annotations

from kmarketdata.config import MarketDataConfig, ProviderType, RevalidateWindows
from kmarketdata.errors import ConfigurationError, MarketDataError, MarketDataErrorCode
from kmarketdata.fallback import is_non_empty, resolve
from kmarketdata.manager import MarketDataManager
from kmarketdata.models import (
    Candle,
    CompanyDetail,
    CompanyInfo,
    EconomyCategory,
    FilingRecord,
    FinancialPeriod,
    Instrument,
    Lookback,
    MacroObservation,
    Quote,
    RankDirection,
    RankedInstrument,
    RankedPage,
    RankMetric,
    SeriesPoint,
)
from kmarketdata.ranking import merge_pages, merge_ranked
from kmarketdata.reference import CacheState, ReferenceCache

__version__ = "0.1.0"

__all__ = [
    # Manager
    "MarketDataManager",
    "create_manager_from_env",
    # Config
    "MarketDataConfig",
    "ProviderType",
    "RevalidateWindows",
    # Errors
    "ConfigurationError",
    "MarketDataError",
    "MarketDataErrorCode",
    # Core policies
    "resolve",
    "is_non_empty",
    "merge_ranked",
    "merge_pages",
    "ReferenceCache",
    "CacheState",
    # Models
    "Candle",
    "CompanyDetail",
    "CompanyInfo",
    "EconomyCategory",
    "FilingRecord",
    "FinancialPeriod",
    "Instrument",
    "Lookback",
    "MacroObservation",
    "Quote",
    "RankDirection",
    "RankMetric",
    "RankedInstrument",
    "RankedPage",
    "SeriesPoint",
]


def create_manager_from_env() -> MarketDataManager:
    """Zero-config factory that reads API keys and cache settings from env vars.

    Environment variables:
        DART_API_KEY: DART OpenAPI key (``your_dart_api_key`` counts as unset).
        FRED_API_KEY: FRED API key.
        ECOS_API_KEY: Bank of Korea ECOS key.
        DATA_GO_KR_API_KEY: data.go.kr service key.
        MARKET_DATA_CACHE: Response cache, "memory" or "none" (default: "memory").
        MARKET_DATA_SNAPSHOT_DIR: Parquet snapshot directory (default: off).
        MARKET_DATA_TIMEOUT: HTTP timeout in seconds (default: 10).
    """
    return MarketDataManager(MarketDataConfig.from_env())
