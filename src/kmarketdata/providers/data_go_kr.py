"""data.go.kr Financial Services Commission open APIs.

Listed-instrument info, daily price rankings and short selling. Every
service is keyed by trading date (``basDt``) and the latest business day
is frequently not published yet, so callers pass a window of candidate
dates and the first date with rows wins.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from kmarketdata.calendar import recent_business_days
from kmarketdata.fallback import resolve
from kmarketdata.models.instrument import Instrument
from kmarketdata.models.ranking import RankedInstrument, RankingSnapshot, RankMetric, ShortSellingEntry
from kmarketdata.normalize import align_change_sign, parse_int, parse_locale_number
from kmarketdata.providers.base import SHAPE_ERRORS, BaseProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

API_BASE = "https://apis.data.go.kr/1160100/service"
LISTED_INFO_URL = f"{API_BASE}/GetKrxListedInfoService/getItemInfo"
PRICE_INFO_URL = f"{API_BASE}/GetStockSecuritiesInfoService/getStockPriceInfo"
SHORT_SELLING_URL = f"{API_BASE}/GetShortSellingInfoService/getShortSellingInfo"

LISTING_LOOKBACK_DAYS = 7
RANKING_LOOKBACK_DAYS = 5

LISTING_ROWS = 3000
# Rankings are computed locally, so fetch the whole market for the day.
RANKING_ROWS = 3000
SHORT_SELLING_ROWS = 3000

MARKETS = ("KOSPI", "KOSDAQ")


def extract_rows(data: Any) -> list[dict[str, Any]]:
    """Rows at ``response.body.items.item``; a lone dict counts as one row."""
    try:
        item = data["response"]["body"]["items"]["item"]
    except (KeyError, TypeError):
        return []
    if isinstance(item, dict):
        return [item]
    if isinstance(item, list):
        return [row for row in item if isinstance(row, dict)]
    return []


def normalize_symbol(raw: Any) -> str:
    """Short code without the leading ``A`` (``A005930`` -> ``005930``)."""
    text = str(raw or "").strip()
    return text[1:] if text.startswith("A") else text


class DataGoKrProvider(BaseProvider):
    """Registry rankings and the bulk instrument list. Requires ``DATA_GO_KR_API_KEY``.

    Capabilities: instruments, registry_rankings, short_selling.
    """

    name = "data_go_kr"
    credential_env = "DATA_GO_KR_API_KEY"

    def capabilities(self) -> set[str]:
        return {"instruments", "registry_rankings", "short_selling"}

    async def _rows_for(self, url: str, bas_dt: str, rows: int, ttl: float) -> list[dict[str, Any]]:
        key = self.require_credential()
        data = await self._get_json(
            url,
            params={
                "serviceKey": key,
                "resultType": "json",
                "numOfRows": rows,
                "pageNo": 1,
                "basDt": bas_dt,
            },
            ttl=ttl,
        )
        return extract_rows(data)

    async def _first_date_with_rows(
        self,
        url: str,
        dates: Iterable[str],
        rows: int,
        ttl: float,
        parse: Callable[[list[dict[str, Any]]], list[T]],
    ) -> RankingSnapshot[T]:
        self.require_credential()

        def attempt(bas_dt: str):
            async def run() -> RankingSnapshot[T] | None:
                raw = await self._rows_for(url, bas_dt, rows, ttl)
                if not raw:
                    return None
                try:
                    return RankingSnapshot(base_date=bas_dt, items=parse(raw))
                except SHAPE_ERRORS as exc:
                    self._shape_error(url.rsplit("/", 1)[-1], exc)
                    return None
            return run

        result = await resolve(
            (attempt(d) for d in dates),
            label=f"{self.name} {url.rsplit('/', 1)[-1]}",
        )
        return result or RankingSnapshot()

    # --- Listed instruments ---

    async def get_listed_instruments(self, dates: Iterable[str] | None = None) -> list[Instrument]:
        """KOSPI and KOSDAQ listings for the most recent published date."""
        snapshot = await self._first_date_with_rows(
            LISTED_INFO_URL,
            dates if dates is not None else recent_business_days(LISTING_LOOKBACK_DAYS),
            LISTING_ROWS,
            self.windows.reference,
            self._parse_listings,
        )
        if snapshot.items:
            logger.info(
                "data_go_kr: %d listed instruments (basDt %s)",
                len(snapshot.items), snapshot.base_date,
            )
        return snapshot.items

    @staticmethod
    def _parse_listings(rows: list[dict[str, Any]]) -> list[Instrument]:
        seen: set[str] = set()
        instruments: list[Instrument] = []
        for row in rows:
            market = str(row.get("mrktCtg") or "").strip()
            if market not in MARKETS:
                continue
            symbol = normalize_symbol(row.get("srtnCd"))
            name = str(row.get("itmsNm") or "").strip()
            if not symbol or not name or symbol in seen:
                continue
            seen.add(symbol)
            instruments.append(Instrument(symbol=symbol, name=name, market=market))
        return instruments

    # --- Rankings ---

    async def get_stock_ranking(
        self,
        sort_by: RankMetric = RankMetric.VOLUME,
        limit: int = 20,
        dates: Iterable[str] | None = None,
    ) -> RankingSnapshot[RankedInstrument]:
        """Top ``limit`` rows by volume or trading value for the latest published day."""

        def parse(rows: list[dict[str, Any]]) -> list[RankedInstrument]:
            items = [self._to_ranked(row) for row in rows]
            items = [i for i in items if i.symbol]
            if sort_by is RankMetric.TRADING_VALUE:
                items.sort(key=lambda i: i.trading_value, reverse=True)
            else:
                items.sort(key=lambda i: i.volume, reverse=True)
            return items[:limit]

        return await self._first_date_with_rows(
            PRICE_INFO_URL,
            dates if dates is not None else recent_business_days(RANKING_LOOKBACK_DAYS),
            RANKING_ROWS,
            self.windows.registry_ranking,
            parse,
        )

    @staticmethod
    def _to_ranked(row: dict[str, Any]) -> RankedInstrument:
        change = parse_locale_number(row.get("vs"))
        cap = row.get("mrktTotAmt")
        return RankedInstrument(
            symbol=normalize_symbol(row.get("srtnCd")),
            name=str(row.get("itmsNm") or "").strip(),
            market=str(row.get("mrktCtg") or ""),
            price=parse_locale_number(row.get("clpr")),
            change=change,
            change_percent=align_change_sign(change, parse_locale_number(row.get("fltRt"))),
            volume=parse_locale_number(row.get("trqu")),
            trading_value=parse_locale_number(row.get("trPrc")),
            market_cap=parse_locale_number(cap) if cap not in (None, "") else None,
            date=str(row.get("basDt") or ""),
        )

    async def get_short_selling(
        self,
        limit: int = 20,
        dates: Iterable[str] | None = None,
    ) -> RankingSnapshot[ShortSellingEntry]:
        """Instruments with short volume, by short ratio descending."""

        def parse(rows: list[dict[str, Any]]) -> list[ShortSellingEntry]:
            entries: list[ShortSellingEntry] = []
            for row in rows:
                short_volume = parse_int(row.get("cvsrtnDlQty"))
                if short_volume <= 0:
                    continue
                total_volume = parse_int(row.get("trdQty"))
                entries.append(ShortSellingEntry(
                    symbol=normalize_symbol(row.get("srtnCd")),
                    name=str(row.get("itmsNm") or "").strip(),
                    market=str(row.get("mrktCtg") or ""),
                    date=str(row.get("basDt") or ""),
                    short_volume=short_volume,
                    short_amount=parse_int(row.get("cvsrtnDlAmt")),
                    total_volume=total_volume,
                    short_ratio=short_volume / total_volume * 100 if total_volume > 0 else 0.0,
                ))
            entries.sort(key=lambda e: e.short_ratio, reverse=True)
            return entries[:limit]

        return await self._first_date_with_rows(
            SHORT_SELLING_URL,
            dates if dates is not None else recent_business_days(RANKING_LOOKBACK_DAYS),
            SHORT_SELLING_ROWS,
            self.windows.registry_ranking,
            parse,
        )
