"""Naver Finance mobile API: quotes, search, charts, rankings, FX and commodities.

The endpoints are undocumented. Field names drift between response
versions, so every mapping goes through ``first_present`` with the known
alternates, and every number through ``parse_locale_number``.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

from kmarketdata.calendar import now_kst
from kmarketdata.errors import MarketDataError, MarketDataErrorCode
from kmarketdata.fallback import resolve
from kmarketdata.models.candle import Candle
from kmarketdata.models.instrument import Instrument
from kmarketdata.models.market import CommodityPrice, ExchangeRate, MarketIndex
from kmarketdata.models.quote import Quote
from kmarketdata.models.ranking import RankDirection, RankedInstrument, RankedPage
from kmarketdata.normalize import (
    align_change_sign,
    first_present,
    parse_locale_number,
    to_iso_date,
)
from kmarketdata.providers.base import SHAPE_ERRORS, BaseProvider

API_BASE = "https://m.stock.naver.com/api"
FRONT_API_BASE = "https://m.stock.naver.com/front-api"

SEARCH_LIMIT = 10

# Chart period -> upstream timeframe. There is no yearly timeframe; a
# "year" chart is drawn from monthly candles.
CHART_TIMEFRAMES = {
    "day": "day",
    "week": "week",
    "month": "month",
    "year": "month",
}

FX_PAIRS: tuple[tuple[str, str], ...] = (
    ("USD", "FX_USDKRW"),
    ("EUR", "FX_EURKRW"),
    ("JPY", "FX_JPYKRW"),
    ("CNY", "FX_CNYKRW"),
)

# reutersCode -> (display name, unit)
COMMODITIES: dict[str, tuple[str, str]] = {
    "OILCL1": ("WTI 유가", "USD/bbl"),
    "CMDT_GC": ("금", "USD/oz"),
    "CMDT_SI": ("은", "USD/oz"),
}


def _market_name(data: dict[str, Any]) -> str:
    exchange = data.get("stockExchangeType")
    if isinstance(exchange, dict):
        name = first_present(exchange, "nameEng", "name", "code")
        if name:
            return str(name)
    name = first_present(data, "marketName", "stockExchangeName")
    return str(name) if name else "KR"


def _observed_at(raw: Any) -> datetime:
    if isinstance(raw, str) and raw:
        try:
            return datetime.fromisoformat(raw)
        except ValueError:
            pass
    return now_kst()


def _ranked_item(item: dict[str, Any], market: str) -> RankedInstrument:
    change = parse_locale_number(first_present(item, "compareToPreviousClosePrice", "change"))
    pct = parse_locale_number(first_present(item, "fluctuationsRatio", "changeRate"))
    cap = first_present(item, "marketValue", "marketCap")
    return RankedInstrument(
        symbol=str(first_present(item, "itemCode", "code") or ""),
        name=str(first_present(item, "stockName", "name") or ""),
        market=market,
        price=parse_locale_number(item.get("closePrice")),
        change=change,
        change_percent=align_change_sign(change, pct),
        volume=parse_locale_number(item.get("accumulatedTradingVolume")),
        trading_value=parse_locale_number(item.get("accumulatedTradingValue")),
        market_cap=parse_locale_number(cap) if cap is not None else None,
    )


class NaverProvider(BaseProvider):
    """Quote, search, chart and ranking source. No credential required.

    Capabilities: quotes, instruments, search, charts, rankings, indices,
    exchange_rates, commodities.
    """

    name = "naver"

    def capabilities(self) -> set[str]:
        return {
            "quotes", "instruments", "search", "charts", "rankings",
            "indices", "exchange_rates", "commodities",
        }

    # --- Quotes and reference ---

    async def get_quote(self, symbol: str) -> Quote | None:
        data = await self._get_json(f"{API_BASE}/stock/{symbol}/basic", ttl=self.windows.quote)
        if not isinstance(data, dict) or data.get("closePrice") in (None, ""):
            return None
        try:
            price = parse_locale_number(data["closePrice"])
            change = parse_locale_number(data.get("compareToPreviousClosePrice"))
            prev_close = parse_locale_number(data.get("previousClosePrice")) or price - change
            cap = data.get("marketCap") or data.get("marketValue")
            return Quote(
                symbol=symbol,
                price=price,
                change=change,
                change_percent=align_change_sign(
                    change, parse_locale_number(data.get("fluctuationsRatio")),
                ),
                volume=parse_locale_number(data.get("accumulatedTradingVolume")),
                high=parse_locale_number(data.get("highPrice")),
                low=parse_locale_number(data.get("lowPrice")),
                open=parse_locale_number(data.get("openPrice")),
                prev_close=prev_close,
                observed_at=_observed_at(data.get("localTradedAt")),
                market_cap=parse_locale_number(cap) if cap else None,
            )
        except SHAPE_ERRORS as exc:
            self._shape_error("quote", exc)
            return None

    async def get_instrument(self, symbol: str) -> Instrument | None:
        data = await self._get_json(
            f"{API_BASE}/stock/{symbol}/basic", ttl=self.windows.instrument,
        )
        if not isinstance(data, dict):
            return None
        name = first_present(data, "stockName", "name")
        if not name:
            return None
        return Instrument(
            symbol=symbol,
            name=str(name),
            market=_market_name(data),
            sector=data.get("sectorName") or None,
            industry=data.get("industryName") or None,
        )

    async def search(self, query: str) -> list[Instrument]:
        if not query.strip():
            return []
        data = await self._get_json(
            f"{API_BASE}/search", params={"query": query}, ttl=self.windows.search,
        )
        if not isinstance(data, dict):
            return []
        result = data.get("result")
        if not isinstance(result, dict):
            return []
        items = first_present(result, "d", "items") or []

        instruments: list[Instrument] = []
        try:
            for item in items:
                if item.get("nation") != "KOR" and item.get("marketType") != "stock":
                    continue
                symbol = first_present(item, "code", "itemCode")
                name = first_present(item, "name", "stockName")
                if not symbol or not name:
                    continue
                instruments.append(Instrument(
                    symbol=str(symbol),
                    name=str(name),
                    market=str(first_present(item, "typeName", "marketName") or "KR"),
                    sector=item.get("sectorName") or None,
                ))
                if len(instruments) >= SEARCH_LIMIT:
                    break
        except SHAPE_ERRORS as exc:
            self._shape_error("search", exc)
            return []
        return instruments

    # --- Charts ---

    async def get_chart(self, symbol: str, period: str = "day", count: int = 120) -> list[Candle]:
        """Fetch OHLCV candles, ascending by date.

        Args:
            symbol: Six-digit KRX code.
            period: "day", "week", "month" or "year".
            count: Number of candles requested.
        """
        timeframe = CHART_TIMEFRAMES.get(period)
        if timeframe is None:
            raise MarketDataError(
                f"Invalid chart period: {period}",
                code=MarketDataErrorCode.PROVIDER_ERROR,
            )
        data = await self._get_json(
            f"{API_BASE}/stock/{symbol}/chart",
            params={"timeframe": timeframe, "count": count},
            ttl=self.windows.chart,
        )
        if isinstance(data, dict):
            data = first_present(data, "priceInfos", "result")
        if not isinstance(data, list):
            return []

        candles: list[Candle] = []
        try:
            for row in data:
                day = to_iso_date(row.get("localDate"))
                if day is None:
                    continue
                candles.append(Candle(
                    date=day,
                    open=parse_locale_number(row.get("openPrice")),
                    high=parse_locale_number(row.get("highPrice")),
                    low=parse_locale_number(row.get("lowPrice")),
                    close=parse_locale_number(row.get("closePrice")),
                    volume=parse_locale_number(row.get("accumulatedTradingVolume")),
                ))
        except SHAPE_ERRORS as exc:
            self._shape_error("chart", exc)
            return []
        candles.sort(key=lambda c: c.date)
        return candles

    # --- Rankings and indices ---

    async def get_ranking(
        self,
        market: str,
        direction: RankDirection,
        page: int = 1,
        page_size: int = 20,
    ) -> RankedPage:
        """One page of top movers for ``market`` (KOSPI or KOSDAQ).

        The paginated endpoint is tried first; for page 1 the older
        single-page ranking endpoint is the fallback.
        """
        attempts = [lambda: self._paged_ranking(market, direction, page, page_size)]
        if page == 1:
            attempts.append(lambda: self._legacy_ranking(market, direction, page_size))
        result = await resolve(attempts, label=f"naver ranking {market}")
        return result or RankedPage(page=page, page_size=page_size)

    async def _paged_ranking(
        self, market: str, direction: RankDirection, page: int, page_size: int,
    ) -> RankedPage | None:
        path = "up" if direction is RankDirection.RISE else "down"
        data = await self._get_json(
            f"{API_BASE}/stocks/{path}/{market}",
            params={"page": page, "pageSize": page_size},
            ttl=self.windows.ranking,
        )
        if not isinstance(data, dict):
            return None
        try:
            items = [_ranked_item(item, market) for item in data.get("stocks") or []]
            total = int(parse_locale_number(data.get("totalCount")))
        except SHAPE_ERRORS as exc:
            self._shape_error("ranking", exc)
            return None
        return RankedPage(
            items=items[:page_size],
            page=page,
            page_size=page_size,
            has_more=page * page_size < total,
        )

    async def _legacy_ranking(
        self, market: str, direction: RankDirection, page_size: int,
    ) -> RankedPage | None:
        data = await self._get_json(
            f"{API_BASE}/domestic/stock/ranking/{direction.value}",
            params={"sospiCategory": market},
            ttl=self.windows.ranking,
        )
        if not isinstance(data, dict):
            return None
        try:
            items = [_ranked_item(item, market) for item in data.get("stocks") or []]
        except SHAPE_ERRORS as exc:
            self._shape_error("ranking", exc)
            return None
        return RankedPage(items=items[:page_size], page=1, page_size=page_size)

    async def get_index(self, code: str) -> MarketIndex | None:
        data = await self._get_json(
            f"{API_BASE}/index/{code}/basic", ttl=self.windows.ranking,
        )
        if not isinstance(data, dict) or data.get("closePrice") in (None, ""):
            return None
        change = parse_locale_number(data.get("compareToPreviousClosePrice"))
        return MarketIndex(
            code=code,
            value=parse_locale_number(data.get("closePrice")),
            change=change,
            change_percent=align_change_sign(
                change, parse_locale_number(data.get("fluctuationsRatio")),
            ),
        )

    # --- FX and commodities ---

    async def get_exchange_rates(self) -> list[ExchangeRate]:
        return await resolve(
            [self._exchange_rates_list, self._exchange_rates_detail],
            default=[],
            label="naver exchange rates",
        )

    async def _exchange_rates_list(self) -> list[ExchangeRate]:
        items = await self._product_list("exchange", [code for _, code in FX_PAIRS])
        rates: list[ExchangeRate] = []
        for item in items:
            reuters = str(item.get("reutersCode") or "")
            currency = reuters.replace("FX_", "").replace("KRW", "") or item.get("name") or ""
            rates.append(self._to_rate(str(currency), item))
        return rates

    async def _exchange_rates_detail(self) -> list[ExchangeRate]:
        details = await asyncio.gather(*(self._product_detail(code) for _, code in FX_PAIRS))
        return [
            self._to_rate(currency, detail)
            for (currency, _), detail in zip(FX_PAIRS, details)
            if detail is not None
        ]

    async def get_commodity_prices(self) -> list[CommodityPrice]:
        return await resolve(
            [self._commodities_list, self._commodities_detail],
            default=[],
            label="naver commodities",
        )

    async def _commodities_list(self) -> list[CommodityPrice]:
        items = await self._product_list("worldCommodity", list(COMMODITIES))
        return [self._to_commodity(str(item.get("reutersCode") or item.get("name") or ""), item)
                for item in items]

    async def _commodities_detail(self) -> list[CommodityPrice]:
        codes = list(COMMODITIES)
        details = await asyncio.gather(*(self._product_detail(code) for code in codes))
        return [
            self._to_commodity(code, detail)
            for code, detail in zip(codes, details)
            if detail is not None
        ]

    async def _product_list(self, category: str, codes: list[str]) -> list[dict[str, Any]]:
        data = await self._get_json(
            f"{FRONT_API_BASE}/marketIndex/productList",
            params={"category": category, "reutersCode": ",".join(codes)},
            ttl=self.windows.market_index,
        )
        if not isinstance(data, dict) or not isinstance(data.get("result"), list):
            return []
        return [item for item in data["result"] if isinstance(item, dict)]

    async def _product_detail(self, code: str) -> dict[str, Any] | None:
        data = await self._get_json(
            f"{FRONT_API_BASE}/marketIndex/productDetail",
            params={"reutersCode": code},
            ttl=self.windows.market_index,
        )
        if not isinstance(data, dict) or not isinstance(data.get("result"), dict):
            return None
        return data["result"]

    @staticmethod
    def _to_rate(currency: str, item: dict[str, Any]) -> ExchangeRate:
        change = parse_locale_number(item.get("compareToPreviousClosePrice"))
        return ExchangeRate(
            currency=currency,
            rate=parse_locale_number(item.get("closePrice")),
            change=change,
            change_percent=align_change_sign(
                change, parse_locale_number(item.get("fluctuationsRatio")),
            ),
        )

    @staticmethod
    def _to_commodity(code: str, item: dict[str, Any]) -> CommodityPrice:
        name, unit = COMMODITIES.get(code, (code, ""))
        change = parse_locale_number(item.get("compareToPreviousClosePrice"))
        return CommodityPrice(
            code=code,
            name=name,
            price=parse_locale_number(item.get("closePrice")),
            change=change,
            change_percent=align_change_sign(
                change, parse_locale_number(item.get("fluctuationsRatio")),
            ),
            unit=unit,
        )
