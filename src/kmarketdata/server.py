"""Thin HTTP surface over MarketDataManager.

Handlers only parse query parameters and call the manager. Missing or
invalid parameters are 400, a missing upstream credential is 500 with a
readable message, and an unknown entity is 404.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from kmarketdata.errors import ConfigurationError, MarketDataError
from kmarketdata.manager import HISTORY_SOURCES, MarketDataManager
from kmarketdata.models.macro import Lookback
from kmarketdata.models.market import EconomyCategory
from kmarketdata.models.ranking import RankDirection, RankMetric
from kmarketdata.providers.dart import REPORT_SUFFIX
from kmarketdata.providers.naver import CHART_TIMEFRAMES

logger = logging.getLogger(__name__)

MAX_CHART_COUNT = 1000
MAX_PAGE_SIZE = 100


def _bad_request(message: str) -> StarletteHTTPException:
    return StarletteHTTPException(status_code=400, detail=message)


def _not_found(message: str) -> StarletteHTTPException:
    return StarletteHTTPException(status_code=404, detail=message)


def _int_param(raw: str | None, name: str, default: int, minimum: int = 1, maximum: int | None = None) -> int:
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise _bad_request(f"{name} must be an integer") from None
    if value < minimum or (maximum is not None and value > maximum):
        raise _bad_request(f"{name} must be between {minimum} and {maximum or 'inf'}")
    return value


def _enum_param(enum_cls: Any, raw: str | None, name: str, default: Any = None) -> Any:
    if raw is None or raw == "":
        if default is None:
            raise _bad_request(f"{name} is required: {', '.join(e.value for e in enum_cls)}")
        return default
    try:
        return enum_cls(raw)
    except ValueError:
        raise _bad_request(f"{name} must be one of: {', '.join(e.value for e in enum_cls)}") from None


def create_app(manager: MarketDataManager | None = None) -> FastAPI:
    """Build the app around ``manager`` (default: configured from the environment)."""
    if manager is None:
        from kmarketdata import create_manager_from_env

        manager = create_manager_from_env()
    mgr = manager

    @asynccontextmanager
    async def lifespan(app_: FastAPI):
        logger.info("kmarketdata server starting")
        yield
        await mgr.aclose()

    app = FastAPI(title="kmarketdata", lifespan=lifespan)
    app.state.manager = mgr

    # ----------------------------------------------------------- errors

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(ConfigurationError)
    async def _config_exc_handler(request: Request, exc: ConfigurationError):
        logger.error("%s: %s", request.url.path, exc.message)
        return JSONResponse(status_code=500, content={"error": exc.message})

    @app.exception_handler(MarketDataError)
    async def _data_exc_handler(request: Request, exc: MarketDataError):
        logger.warning("%s: %s (%s)", request.url.path, exc.message, exc.code.value)
        return JSONResponse(status_code=502, content={"error": exc.message, "code": exc.code.value})

    # ----------------------------------------------------------- health

    @app.get("/healthz", include_in_schema=False)
    async def healthz():
        return {"status": "ok"}

    # ----------------------------------------------------------- stocks

    @app.get("/api/stock")
    async def stock(symbol: str | None = None, q: str | None = None):
        if q:
            return {"results": jsonable_encoder(await mgr.search(q))}
        if symbol:
            view = await mgr.get_stock(symbol)
            if view is None:
                raise _not_found(f"Stock not found: {symbol}")
            return jsonable_encoder({"stock": view.instrument, "price": view.quote})
        raise _bad_request("symbol or q parameter is required")

    @app.get("/api/stock/chart")
    async def stock_chart(symbol: str | None = None, period: str = "day", count: str | None = None):
        if not symbol:
            raise _bad_request("symbol parameter is required")
        if period not in CHART_TIMEFRAMES:
            raise _bad_request(f"period must be one of: {', '.join(CHART_TIMEFRAMES)}")
        n = _int_param(count, "count", 120, maximum=MAX_CHART_COUNT)
        return {"chart": jsonable_encoder(await mgr.get_chart(symbol, period, n))}

    @app.get("/api/stock/list")
    async def stock_list():
        instruments, source = await mgr.list_instruments()
        return {"stocks": jsonable_encoder(instruments), "source": source}

    @app.get("/api/stock/market")
    async def stock_market():
        overview = await mgr.get_market_overview()
        return jsonable_encoder({
            "index": {"kospi": overview.kospi, "kosdaq": overview.kosdaq},
            "top_rise": overview.top_rise,
            "top_fall": overview.top_fall,
        })

    @app.get("/api/stock/top")
    async def stock_top(direction: str | None = None, page: str | None = None, size: str | None = None):
        d = _enum_param(RankDirection, direction, "direction", RankDirection.RISE)
        result = await mgr.get_top_movers(
            d,
            _int_param(page, "page", 1),
            _int_param(size, "size", 20, maximum=MAX_PAGE_SIZE),
        )
        return jsonable_encoder(result)

    # --------------------------------------------------------- registry

    @app.get("/api/dart")
    async def dart(
        symbol: str | None = None,
        type: str = "info",
        year: str | None = None,
        report: str = "11011",
    ):
        if not symbol:
            raise _bad_request("symbol parameter is required")
        if type not in ("info", "financial", "disclosure"):
            raise _bad_request("type must be one of: info, financial, disclosure")
        if report not in REPORT_SUFFIX:
            raise _bad_request(f"report must be one of: {', '.join(REPORT_SUFFIX)}")

        corp_code = await mgr.resolve_corp_code(symbol)
        if corp_code is None:
            raise _not_found(f"No registry entry for {symbol}")

        if type == "info":
            return jsonable_encoder({"info": await mgr.dart.get_company_info(corp_code)})
        if type == "financial":
            y = _int_param(year, "year", 0, minimum=1990) or None
            return jsonable_encoder({"financial": await mgr.get_financial(symbol, y, report)})
        return jsonable_encoder({"disclosures": await mgr.dart.get_filings(corp_code)})

    @app.get("/api/dart/company")
    async def dart_company(symbol: str | None = None):
        if not symbol:
            raise _bad_request("symbol parameter is required")
        detail = await mgr.get_company(symbol)
        if detail is None:
            raise _not_found(f"No registry entry for {symbol}")
        return jsonable_encoder(detail)

    @app.get("/api/fsc")
    async def fsc(type: str | None = None, limit: str | None = None):
        n = _int_param(limit, "limit", 20, maximum=MAX_PAGE_SIZE)
        if type == "short_selling":
            snapshot = await mgr.get_short_selling(n)
        elif type in ("volume", "trading_value"):
            snapshot = await mgr.get_stock_ranking(RankMetric(type), n)
        else:
            raise _bad_request("type must be one of: volume, trading_value, short_selling")
        return jsonable_encoder({"data": snapshot.items, "date": snapshot.base_date})

    # ---------------------------------------------------------- economy

    @app.get("/api/economy")
    async def economy(category: str | None = None):
        cat = _enum_param(EconomyCategory, category, "category")
        return jsonable_encoder(await mgr.get_economy(cat))

    @app.get("/api/economy/chart")
    async def economy_chart(
        source: str | None = None,
        id: str | None = None,
        ticker: str | None = None,
        stat: str | None = None,
        item: str | None = None,
        freq: str = "M",
        range: str | None = None,
    ):
        if source not in HISTORY_SOURCES:
            raise _bad_request(f"source must be one of: {', '.join(HISTORY_SOURCES)}")
        lookback = _enum_param(Lookback, range, "range", Lookback.ONE_YEAR)
        try:
            data = await mgr.get_economy_history(
                source,
                series_id=id,
                ticker=ticker,
                stat=stat,
                item=item,
                freq=freq,
                lookback=lookback,
            )
        except ValueError as exc:
            raise _bad_request(str(exc)) from None
        return {"data": jsonable_encoder(data)}

    return app


def main() -> None:
    """Console entry point: ``kmarketdata-server``."""
    import uvicorn

    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        create_app(),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


if __name__ == "__main__":
    main()
