"""MarketDataManager: central orchestrator over providers, caches and fallbacks."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import httpx

from kmarketdata.cache import CacheBackend, InstrumentSnapshotStore, create_cache
from kmarketdata.calendar import today_kst
from kmarketdata.config import MarketDataConfig, ProviderType
from kmarketdata.errors import ConfigurationError, MarketDataError
from kmarketdata.fallback import resolve
from kmarketdata.http import HttpClient
from kmarketdata.models.candle import Candle
from kmarketdata.models.company import CompanyDetail, CompanyInfo
from kmarketdata.models.filing import FilingRecord
from kmarketdata.models.financial import FinancialPeriod, MultiYearFinancials
from kmarketdata.models.instrument import Instrument
from kmarketdata.models.macro import EcosSeriesSpec, Lookback, MacroObservation, SeriesPoint, SeriesSpec
from kmarketdata.models.market import EconomyCategory, EconomySnapshot, MarketOverview, StockView
from kmarketdata.models.quote import Quote
from kmarketdata.models.ranking import (
    RankDirection,
    RankedInstrument,
    RankedPage,
    RankingSnapshot,
    RankMetric,
    ShortSellingEntry,
)
from kmarketdata.providers import create_provider
from kmarketdata.providers.dart import REPORT_ANNUAL
from kmarketdata.providers.ecos import KOREA_SERIES
from kmarketdata.providers.fred import RATES_SERIES, SENTIMENT_SERIES, US_ECONOMY_SERIES
from kmarketdata.providers.yahoo import KRX_SUFFIXES
from kmarketdata.quality import validate_candles, validate_quote
from kmarketdata.ranking import merge_pages, top_n
from kmarketdata.reference import (
    STATIC_INSTRUMENTS,
    CorpCodeDirectory,
    InstrumentDirectory,
    search_static,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

MARKETS = ("KOSPI", "KOSDAQ")
OVERVIEW_TOP_N = 5
COMPANY_YEARS = 5

HISTORY_SOURCES = ("fred", "yahoo", "ecos", "fng")


def _settled(result: Any, default: T, label: str) -> T:
    """Unwrap a ``gather(return_exceptions=True)`` slot.

    Retryable and not-found errors degrade to ``default``; missing
    credentials and programming errors propagate.
    """
    if isinstance(result, ConfigurationError):
        raise result
    if isinstance(result, MarketDataError):
        logger.warning("%s failed, using default: %s", label, result)
        return default
    if isinstance(result, BaseException):
        raise result
    return default if result is None else result


class MarketDataManager:
    """Central orchestrator: response cache -> providers -> fallback -> merge.

    Usage::

        from kmarketdata import create_manager_from_env
        mgr = create_manager_from_env()
        stock = await mgr.get_stock("005930")
        await mgr.aclose()
    """

    def __init__(
        self,
        config: MarketDataConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config = config or MarketDataConfig()

        # Response cache and shared client
        self.cache: CacheBackend = create_cache(config.cache_backend, config.cache_max_entries)
        self.http = HttpClient(
            http_client,
            timeout=config.http_timeout_seconds,
            user_agent=config.user_agent,
            cache=self.cache,
        )

        # Providers
        common: dict[str, Any] = {"http": self.http, "windows": config.revalidate}
        self.naver = create_provider(ProviderType.NAVER, **common)
        self.yahoo = create_provider(ProviderType.YAHOO, **common)
        self.fear_greed = create_provider(ProviderType.FEAR_GREED, **common)
        self.dart = create_provider(ProviderType.DART, api_key=config.dart_api_key, **common)
        self.fred = create_provider(ProviderType.FRED, api_key=config.fred_api_key, **common)
        self.ecos = create_provider(ProviderType.ECOS, api_key=config.ecos_api_key, **common)
        self.data_go_kr = create_provider(
            ProviderType.DATA_GO_KR, api_key=config.data_go_kr_api_key, **common,
        )

        # Reference data
        snapshot = InstrumentSnapshotStore(config.snapshot_dir) if config.snapshot_dir else None
        self.instruments = InstrumentDirectory(
            self.data_go_kr.get_listed_instruments,
            ttl_seconds=config.reference_ttl_seconds,
            clock=clock,
            snapshot=snapshot,
        )
        self.corp_codes = CorpCodeDirectory(
            self.dart.download_corp_codes,
            ttl_seconds=config.reference_ttl_seconds,
            clock=clock,
        )

    async def __aenter__(self) -> MarketDataManager:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self.http.aclose()

    # --------------------------------------------------------------- stocks

    async def get_quote(self, symbol: str) -> Quote | None:
        quote = await self.naver.get_quote(symbol)
        if quote is not None and not validate_quote(quote):
            logger.warning("naver: rejecting implausible quote for %s: %s", symbol, quote)
            return None
        return quote

    async def get_instrument(self, symbol: str) -> Instrument | None:
        return await self.naver.get_instrument(symbol)

    async def get_stock(self, symbol: str) -> StockView | None:
        """Quote plus profile, fetched concurrently. None if either is missing."""
        quote, instrument = await asyncio.gather(
            self.get_quote(symbol), self.get_instrument(symbol),
        )
        if quote is None or instrument is None:
            return None
        return StockView(instrument=instrument, quote=quote)

    async def search(self, query: str) -> list[Instrument]:
        """Instrument search: local universe, then the remote search, then the static list."""
        if not query.strip():
            return []

        async def static() -> list[Instrument]:
            return search_static(query)

        attempts: list[Callable[[], Awaitable[list[Instrument]]]] = []
        if self.data_go_kr.has_credential:
            attempts.append(lambda: self.instruments.search(query))
        attempts.append(lambda: self.naver.search(query))
        attempts.append(static)
        return await resolve(attempts, default=[], label="search")

    async def list_instruments(self) -> tuple[list[Instrument], str]:
        """Full universe and where it came from: ``"krx"`` or ``"local"``."""
        if self.data_go_kr.has_credential:
            instruments = await self.instruments.get_all()
            if instruments:
                return instruments, "krx"
        return list(STATIC_INSTRUMENTS), "local"

    async def get_chart(self, symbol: str, period: str = "day", count: int = 120) -> list[Candle]:
        """Candles from the primary chart service, then Yahoo (.KS, then .KQ).

        A candidate only wins if its series passes ``validate_candles``.
        """
        attempts: list[Callable[[], Awaitable[list[Candle]]]] = [
            lambda: self.naver.get_chart(symbol, period, count),
        ]
        for suffix in KRX_SUFFIXES:
            attempts.append(
                lambda suffix=suffix: self.yahoo.get_candles(f"{symbol}{suffix}", period, count)
            )
        return await resolve(
            attempts,
            accept=lambda candles: validate_candles(candles).passed,
            default=[],
            label=f"chart {symbol}",
        )

    # ------------------------------------------------------------- rankings

    async def get_market_overview(self) -> MarketOverview:
        """Index levels plus the top five risers and fallers across both markets."""
        kospi, kosdaq, *pages = await asyncio.gather(
            self.naver.get_index("KOSPI"),
            self.naver.get_index("KOSDAQ"),
            *(
                self.naver.get_ranking(market, direction, 1, OVERVIEW_TOP_N)
                for direction in (RankDirection.RISE, RankDirection.FALL)
                for market in MARKETS
            ),
        )
        kospi_rise, kosdaq_rise, kospi_fall, kosdaq_fall = pages
        return MarketOverview(
            kospi=kospi,
            kosdaq=kosdaq,
            top_rise=top_n(
                kospi_rise.items, kosdaq_rise.items, direction=RankDirection.RISE, n=OVERVIEW_TOP_N,
            ),
            top_fall=top_n(
                kospi_fall.items, kosdaq_fall.items, direction=RankDirection.FALL, n=OVERVIEW_TOP_N,
            ),
        )

    async def get_top_movers(
        self,
        direction: RankDirection = RankDirection.RISE,
        page: int = 1,
        page_size: int = 20,
    ) -> RankedPage:
        """One merged KOSPI+KOSDAQ page; ``has_more`` if either market has more."""
        pages = await asyncio.gather(
            *(self.naver.get_ranking(m, direction, page, page_size) for m in MARKETS)
        )
        return merge_pages(pages, direction, page_size)

    async def get_stock_ranking(
        self,
        sort_by: RankMetric = RankMetric.VOLUME,
        limit: int = 20,
    ) -> RankingSnapshot[RankedInstrument]:
        return await self.data_go_kr.get_stock_ranking(sort_by, limit)

    async def get_short_selling(self, limit: int = 20) -> RankingSnapshot[ShortSellingEntry]:
        return await self.data_go_kr.get_short_selling(limit)

    # ------------------------------------------------------------- registry

    async def resolve_corp_code(self, symbol: str) -> str | None:
        """Registry id for ``symbol``: bulk map first, then a per-symbol lookup."""
        self.dart.require_credential()
        return await resolve(
            [
                lambda: self.corp_codes.lookup(symbol),
                lambda: self.dart.find_corp_code(symbol),
            ],
            label=f"corp code {symbol}",
        )

    async def get_company_info(self, symbol: str) -> CompanyInfo | None:
        corp_code = await self.resolve_corp_code(symbol)
        if corp_code is None:
            return None
        return await self.dart.get_company_info(corp_code)

    async def get_financial(
        self,
        symbol: str,
        year: str | int | None = None,
        report: str = REPORT_ANNUAL,
    ) -> FinancialPeriod | None:
        corp_code = await self.resolve_corp_code(symbol)
        if corp_code is None:
            return None
        period = await self.dart.get_financials(corp_code, year or today_kst().year, report)
        return period.with_symbol(symbol) if period is not None else None

    async def get_filings(self, symbol: str, **kwargs: Any) -> list[FilingRecord] | None:
        """Recent filings, or None when the symbol has no registry id."""
        corp_code = await self.resolve_corp_code(symbol)
        if corp_code is None:
            return None
        return await self.dart.get_filings(corp_code, **kwargs)

    async def get_company(self, symbol: str) -> CompanyDetail | None:
        """Profile, five years of financials, ownership and dividends, concurrently.

        A failed section keeps its default; only a missing credential or an
        unknown symbol fails the whole call.
        """
        corp_code = await self.resolve_corp_code(symbol)
        if corp_code is None:
            return None

        info, financials, shareholders, share_count, dividends = await asyncio.gather(
            self.dart.get_company_info(corp_code),
            self.dart.get_multi_year_financials(corp_code, COMPANY_YEARS),
            self.dart.latest_annual(self.dart.get_shareholders, corp_code),
            self.dart.latest_annual(self.dart.get_share_count, corp_code),
            self.dart.get_dividend_history(corp_code, COMPANY_YEARS),
            return_exceptions=True,
        )
        financials = _settled(financials, MultiYearFinancials(), "financials")
        return CompanyDetail(
            symbol=symbol,
            corp_code=corp_code,
            info=_settled(info, None, "company info"),
            financials=MultiYearFinancials(
                annual=[p.with_symbol(symbol) for p in financials.annual],
                quarterly=[p.with_symbol(symbol) for p in financials.quarterly],
            ),
            shareholders=_settled(shareholders, [], "shareholders"),
            share_count=_settled(share_count, None, "share count"),
            dividends=_settled(dividends, [], "dividends"),
        )

    # -------------------------------------------------------------- economy

    async def get_economy(self, category: EconomyCategory) -> EconomySnapshot:
        """Latest values for one dashboard category.

        FRED and ECOS sections are left empty when their key is missing;
        the other sections of the category are still filled.
        """

        async def fred(specs: Sequence[SeriesSpec]) -> list[MacroObservation]:
            if not self.fred.has_credential:
                return []
            return await self.fred.get_latest_many(specs)

        async def ecos(specs: Sequence[EcosSeriesSpec]) -> list[MacroObservation]:
            if not self.ecos.has_credential:
                return []
            return await self.ecos.get_latest_many(specs)

        if category is EconomyCategory.SENTIMENT:
            fear_greed, indicators = await asyncio.gather(
                self.fear_greed.get_latest(), fred(SENTIMENT_SERIES),
            )
            return EconomySnapshot(category, fear_greed=fear_greed, fred_indicators=indicators)

        if category is EconomyCategory.RATES:
            us, kr = await asyncio.gather(fred(RATES_SERIES), ecos(KOREA_SERIES[:1]))
            return EconomySnapshot(category, fred_indicators=us, ecos_indicators=kr)

        if category is EconomyCategory.EXCHANGE:
            return EconomySnapshot(category, exchange_rates=await self.naver.get_exchange_rates())

        if category is EconomyCategory.COMMODITIES:
            return EconomySnapshot(category, commodities=await self.naver.get_commodity_prices())

        if category is EconomyCategory.US_ECONOMY:
            return EconomySnapshot(category, fred_indicators=await fred(US_ECONOMY_SERIES))

        if category is EconomyCategory.KOREA:
            kr, rates = await asyncio.gather(ecos(KOREA_SERIES), self.naver.get_exchange_rates())
            return EconomySnapshot(category, ecos_indicators=kr, exchange_rates=rates)

        raise ValueError(f"Unknown economy category: {category!r}")

    async def get_economy_history(
        self,
        source: str,
        *,
        series_id: str | None = None,
        ticker: str | None = None,
        stat: str | None = None,
        item: str | None = None,
        freq: str = "M",
        lookback: Lookback = Lookback.ONE_YEAR,
    ) -> list[SeriesPoint]:
        """History for one chart: ``source`` is fred, yahoo, ecos or fng.

        Raises:
            ValueError: Unknown source or a missing source-specific argument.
            ConfigurationError: The source needs a key that is not set.
        """
        if source == "fred":
            if not series_id:
                raise ValueError("series_id is required for fred")
            return await self.fred.get_history(series_id, lookback)
        if source == "yahoo":
            if not ticker:
                raise ValueError("ticker is required for yahoo")
            return await self.yahoo.get_history(ticker, lookback)
        if source == "ecos":
            if not stat or not item:
                raise ValueError("stat and item are required for ecos")
            return await self.ecos.get_history(stat, item, freq, lookback)
        if source == "fng":
            return await self.fear_greed.get_history(lookback)
        raise ValueError(f"source must be one of: {', '.join(HISTORY_SOURCES)}")

    # ---------------------------------------------------------------- cache

    def clear_cache(self, prefix: str = "") -> None:
        self.cache.clear(prefix)

    def invalidate_reference(self) -> None:
        """Mark the instrument universe and corp-code map stale."""
        self.instruments.invalidate()
        self.corp_codes.invalidate()
