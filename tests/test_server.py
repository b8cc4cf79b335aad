"""Tests for the HTTP surface: parameter validation and error mapping."""

import pytest
from fastapi.testclient import TestClient

from kmarketdata.config import MarketDataConfig
from kmarketdata.server import create_app

BASIC = {
    "stockName": "삼성전자",
    "closePrice": "78,500",
    "compareToPreviousClosePrice": "1,200",
    "fluctuationsRatio": "1.55",
    "localTradedAt": "2024-05-17T15:30:00+09:00",
}


@pytest.fixture
def client(upstream, make_manager):
    app = create_app(make_manager(MarketDataConfig(cache_backend="none")))
    with TestClient(app) as c:
        yield c


@pytest.fixture
def keyed_client(upstream, make_manager, config):
    with TestClient(create_app(make_manager(config))) as c:
        yield c


class TestHealth:
    def test_healthz(self, client):
        assert client.get("/healthz").json() == {"status": "ok"}


class TestStockRoutes:
    def test_requires_symbol_or_query(self, client):
        response = client.get("/api/stock")
        assert response.status_code == 400
        assert "symbol" in response.json()["error"]

    def test_stock(self, upstream, client):
        upstream.add("/stock/005930/basic", BASIC)
        body = client.get("/api/stock", params={"symbol": "005930"}).json()
        assert body["stock"]["name"] == "삼성전자"
        assert body["price"]["price"] == 78500.0
        assert body["price"]["change_percent"] == 1.55

    def test_unknown_stock(self, client):
        response = client.get("/api/stock", params={"symbol": "999999"})
        assert response.status_code == 404

    def test_search_falls_back_to_static(self, client):
        body = client.get("/api/stock", params={"q": "삼성전자"}).json()
        assert body["results"][0]["symbol"] == "005930"

    def test_list(self, client):
        body = client.get("/api/stock/list").json()
        assert body["source"] == "local"
        assert body["stocks"]

    @pytest.mark.parametrize("params", [
        {},
        {"symbol": "005930", "period": "hour"},
        {"symbol": "005930", "count": "abc"},
        {"symbol": "005930", "count": "0"},
        {"symbol": "005930", "count": "100000"},
    ])
    def test_chart_bad_params(self, client, params):
        assert client.get("/api/stock/chart", params=params).status_code == 400

    def test_chart(self, upstream, client):
        upstream.add("/stock/005930/chart", [{
            "localDate": "20240514", "openPrice": "78,000", "highPrice": "79,000",
            "lowPrice": "77,500", "closePrice": "78,500", "accumulatedTradingVolume": "10",
        }])
        body = client.get("/api/stock/chart", params={"symbol": "005930"}).json()
        assert body["chart"][0]["date"] == "2024-05-14"

    def test_top_bad_direction(self, client):
        assert client.get("/api/stock/top", params={"direction": "sideways"}).status_code == 400

    def test_top(self, upstream, client):
        upstream.add("/stocks/down/KOSPI", {"stocks": [
            {"itemCode": "000001", "stockName": "가", "compareToPreviousClosePrice": "-5",
             "fluctuationsRatio": "2.0"},
        ], "totalCount": 1})
        body = client.get("/api/stock/top", params={"direction": "fall", "size": "5"}).json()
        assert body["items"][0]["change_percent"] == -2.0
        assert body["has_more"] is False

    def test_market(self, client):
        body = client.get("/api/stock/market").json()
        assert body["index"] == {"kospi": None, "kosdaq": None}
        assert body["top_rise"] == []


class TestRegistryRoutes:
    def test_missing_credential_is_500(self, client, upstream):
        response = client.get("/api/dart", params={"symbol": "005930"})
        assert response.status_code == 500
        assert "DART_API_KEY" in response.json()["error"]
        assert upstream.calls == []

    @pytest.mark.parametrize("params", [
        {},
        {"symbol": "005930", "type": "bogus"},
        {"symbol": "005930", "report": "12345"},
    ])
    def test_bad_params(self, keyed_client, params):
        assert keyed_client.get("/api/dart", params=params).status_code == 400

    def test_unknown_symbol_is_404(self, upstream, keyed_client):
        upstream.add("company.json", {"status": "013"})
        response = keyed_client.get("/api/dart/company", params={"symbol": "999999"})
        assert response.status_code == 404

    def test_fsc_bad_type(self, keyed_client):
        assert keyed_client.get("/api/fsc", params={"type": "bogus"}).status_code == 400

    def test_fsc_missing_key(self, client):
        assert client.get("/api/fsc", params={"type": "volume"}).status_code == 500

    def test_fsc(self, upstream, keyed_client):
        upstream.add("getShortSellingInfo", {"response": {"body": {"items": {"item": [
            {"srtnCd": "A005930", "itmsNm": "삼성전자", "cvsrtnDlQty": "10", "trdQty": "100"},
        ]}}}})
        body = keyed_client.get("/api/fsc", params={"type": "short_selling"}).json()
        assert body["data"][0]["short_ratio"] == 10.0
        assert body["date"]


class TestEconomyRoutes:
    @pytest.mark.parametrize("params", [{}, {"category": "bogus"}])
    def test_bad_category(self, client, params):
        assert client.get("/api/economy", params=params).status_code == 400

    def test_category_without_keys(self, client):
        body = client.get("/api/economy", params={"category": "us_economy"}).json()
        assert body["category"] == "us_economy"
        assert body["fred_indicators"] == []

    @pytest.mark.parametrize("params", [
        {},
        {"source": "fred"},
        {"source": "ecos", "stat": "722Y001"},
        {"source": "fng", "range": "2W"},
    ])
    def test_chart_bad_params(self, client, params):
        assert client.get("/api/economy/chart", params=params).status_code == 400

    def test_chart_missing_key(self, client):
        response = client.get("/api/economy/chart", params={"source": "fred", "id": "DGS10"})
        assert response.status_code == 500
        assert "FRED_API_KEY" in response.json()["error"]

    def test_chart(self, upstream, client):
        upstream.add("api.alternative.me", {"data": [{"value": "55", "timestamp": "1715904000"}]})
        body = client.get("/api/economy/chart", params={"source": "fng", "range": "1M"}).json()
        assert body["data"] == [{"date": "2024-05-17", "value": 55.0}]
