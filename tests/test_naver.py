"""Tests for the Naver Finance adapter against canned payloads."""

from datetime import date

import httpx
import pytest

from kmarketdata.errors import MarketDataError
from kmarketdata.models.ranking import RankDirection
from kmarketdata.providers.naver import NaverProvider

BASIC = {
    "stockName": "삼성전자",
    "itemCode": "005930",
    "closePrice": "78,500",
    "compareToPreviousClosePrice": "-1,200",
    "fluctuationsRatio": "1.51",
    "accumulatedTradingVolume": "12,345,678",
    "highPrice": "79,900",
    "lowPrice": "78,100",
    "openPrice": "79,700",
    "marketValue": "4,686,000",
    "localTradedAt": "2024-05-17T15:30:00+09:00",
    "stockExchangeType": {"code": "KS", "nameEng": "KOSPI"},
    "industryName": "반도체",
}


@pytest.fixture
def naver(http):
    return NaverProvider(http)


def _ranking_row(code, name, pct, change="100"):
    return {
        "itemCode": code,
        "stockName": name,
        "closePrice": "10,000",
        "compareToPreviousClosePrice": change,
        "fluctuationsRatio": pct,
        "accumulatedTradingVolume": "1,000",
    }


class TestQuote:
    @pytest.mark.asyncio
    async def test_locale_numbers_and_signed_ratio(self, upstream, naver):
        upstream.add("/stock/005930/basic", BASIC)
        quote = await naver.get_quote("005930")

        assert quote is not None
        assert quote.price == 78500.0
        assert quote.change == -1200.0
        assert quote.change_percent == -1.51
        assert quote.volume == 12345678.0
        assert quote.prev_close == 79700.0
        assert quote.market_cap == 4686000.0
        assert quote.observed_at.year == 2024

    @pytest.mark.asyncio
    async def test_malformed_body_is_none(self, upstream, naver):
        upstream.add("/stock/005930/basic", httpx.Response(200, content=b"{not json"))
        assert await naver.get_quote("005930") is None

    @pytest.mark.asyncio
    async def test_missing_price_is_none(self, upstream, naver):
        upstream.add("/stock/005930/basic", {"stockName": "삼성전자"})
        assert await naver.get_quote("005930") is None

    @pytest.mark.asyncio
    async def test_upstream_down_is_none(self, upstream, naver):
        upstream.add("/stock/005930/basic", httpx.Response(502))
        assert await naver.get_quote("005930") is None


class TestInstrument:
    @pytest.mark.asyncio
    async def test_profile(self, upstream, naver):
        upstream.add("/stock/005930/basic", BASIC)
        inst = await naver.get_instrument("005930")
        assert inst is not None
        assert inst.name == "삼성전자"
        assert inst.market == "KOSPI"
        assert inst.industry == "반도체"

    @pytest.mark.asyncio
    async def test_unknown(self, naver):
        assert await naver.get_instrument("999999") is None


class TestSearch:
    @pytest.mark.asyncio
    async def test_filters_domestic_stocks(self, upstream, naver):
        upstream.add("/api/search", {"result": {"d": [
            {"code": "005930", "name": "삼성전자", "typeName": "코스피", "nation": "KOR"},
            {"code": "SSNLF", "name": "Samsung ADR", "nation": "USA"},
            {"itemCode": "005935", "stockName": "삼성전자우", "marketType": "stock"},
        ]}})
        results = await naver.search("삼성")
        assert [i.symbol for i in results] == ["005930", "005935"]
        assert results[0].market == "코스피"

    @pytest.mark.asyncio
    async def test_alternate_items_key_and_cap(self, upstream, naver):
        items = [{"code": f"{i:06d}", "name": f"종목{i}", "nation": "KOR"} for i in range(15)]
        upstream.add("/api/search", {"result": {"items": items}})
        assert len(await naver.search("종목")) == 10

    @pytest.mark.asyncio
    async def test_unexpected_shape(self, upstream, naver):
        upstream.add("/api/search", {"result": ["oops"]})
        assert await naver.search("삼성") == []

    @pytest.mark.asyncio
    async def test_blank_query_skips_request(self, upstream, naver):
        assert await naver.search("  ") == []
        assert upstream.calls == []


class TestChart:
    ROWS = [
        {"localDate": "20240514", "openPrice": "78,000", "highPrice": "79,000",
         "lowPrice": "77,500", "closePrice": "78,500", "accumulatedTradingVolume": "10,000"},
        {"localDate": "20240513", "openPrice": "77,000", "highPrice": "78,200",
         "lowPrice": "76,900", "closePrice": "78,000", "accumulatedTradingVolume": "9,000"},
        {"localDate": "", "closePrice": "1"},
    ]

    @pytest.mark.asyncio
    async def test_sorted_ascending(self, upstream, naver):
        upstream.add("/stock/005930/chart", self.ROWS)
        candles = await naver.get_chart("005930", "day", 2)
        assert [c.date for c in candles] == [date(2024, 5, 13), date(2024, 5, 14)]
        assert candles[1].close == 78500.0

    @pytest.mark.asyncio
    async def test_wrapped_rows(self, upstream, naver):
        upstream.add("/stock/005930/chart", {"priceInfos": self.ROWS})
        assert len(await naver.get_chart("005930")) == 2

    @pytest.mark.asyncio
    async def test_year_uses_monthly_timeframe(self, upstream, naver):
        upstream.add("/stock/005930/chart", self.ROWS)
        await naver.get_chart("005930", "year", 10)
        assert upstream.calls[-1].url.params["timeframe"] == "month"

    @pytest.mark.asyncio
    async def test_invalid_period(self, naver):
        with pytest.raises(MarketDataError):
            await naver.get_chart("005930", "hour")


class TestRanking:
    @pytest.mark.asyncio
    async def test_paged_endpoint(self, upstream, naver):
        upstream.add("/stocks/up/KOSPI", {
            "stocks": [_ranking_row("000001", "A", "29.9"), _ranking_row("000002", "B", "15.1")],
            "totalCount": 45,
        })
        page = await naver.get_ranking("KOSPI", RankDirection.RISE, 1, 2)
        assert [i.symbol for i in page.items] == ["000001", "000002"]
        assert page.items[0].market == "KOSPI"
        assert page.has_more

    @pytest.mark.asyncio
    async def test_last_page_has_no_more(self, upstream, naver):
        upstream.add("/stocks/down/KOSDAQ", {
            "stocks": [_ranking_row("000003", "C", "5.0", change="-500")],
            "totalCount": 41,
        })
        page = await naver.get_ranking("KOSDAQ", RankDirection.FALL, 3, 20)
        assert not page.has_more
        assert page.items[0].change_percent == -5.0

    @pytest.mark.asyncio
    async def test_legacy_fallback_on_first_page(self, upstream, naver):
        upstream.add("/stocks/up/KOSPI", httpx.Response(500))
        upstream.add("/domestic/stock/ranking/rise", {"stocks": [_ranking_row("000009", "Z", "3.0")]})
        page = await naver.get_ranking("KOSPI", RankDirection.RISE, 1, 20)
        assert [i.symbol for i in page.items] == ["000009"]
        assert upstream.calls_to("sospiCategory=KOSPI")

    @pytest.mark.asyncio
    async def test_no_legacy_fallback_after_first_page(self, upstream, naver):
        upstream.add("/stocks/up/KOSPI", httpx.Response(500))
        page = await naver.get_ranking("KOSPI", RankDirection.RISE, 2, 20)
        assert page.items == []
        assert page.page == 2
        assert not upstream.calls_to("/domestic/stock/ranking")


class TestIndexAndProducts:
    @pytest.mark.asyncio
    async def test_index(self, upstream, naver):
        upstream.add("/index/KOSPI/basic", {
            "closePrice": "2,724.62", "compareToPreviousClosePrice": "-28.38",
            "fluctuationsRatio": "1.03",
        })
        index = await naver.get_index("KOSPI")
        assert index is not None
        assert index.value == 2724.62
        assert index.change_percent == -1.03

    @pytest.mark.asyncio
    async def test_exchange_rates_from_list(self, upstream, naver):
        upstream.add("productList", {"result": [
            {"reutersCode": "FX_USDKRW", "closePrice": "1,365.50",
             "compareToPreviousClosePrice": "2.5", "fluctuationsRatio": "0.18"},
        ]})
        rates = await naver.get_exchange_rates()
        assert len(rates) == 1
        assert rates[0].currency == "USD"
        assert rates[0].rate == 1365.5
        assert not upstream.calls_to("productDetail")

    @pytest.mark.asyncio
    async def test_exchange_rates_detail_fallback(self, upstream, naver):
        upstream.add("productList", {"result": None})
        upstream.add("reutersCode=FX_USDKRW", {"result": {"closePrice": "1,365.50"}})
        upstream.add("reutersCode=FX_JPYKRW", {"result": {"closePrice": "905.10"}})
        rates = await naver.get_exchange_rates()
        assert [r.currency for r in rates] == ["USD", "JPY"]

    @pytest.mark.asyncio
    async def test_commodities_detail_fallback(self, upstream, naver):
        upstream.add("productList", httpx.Response(500))
        upstream.add("reutersCode=CMDT_GC", {"result": {
            "closePrice": "2,350.1", "compareToPreviousClosePrice": "-10.2", "fluctuationsRatio": "0.43",
        }})
        commodities = await naver.get_commodity_prices()
        assert len(commodities) == 1
        gold = commodities[0]
        assert gold.name == "금"
        assert gold.unit == "USD/oz"
        assert gold.change_percent == -0.43

    @pytest.mark.asyncio
    async def test_all_sources_down(self, naver):
        assert await naver.get_commodity_prices() == []
