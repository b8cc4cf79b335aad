"""Yahoo Finance v8 chart endpoint: macro histories and secondary candles."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from kmarketdata.models.candle import Candle
from kmarketdata.models.macro import Lookback, SeriesPoint
from kmarketdata.providers.base import SHAPE_ERRORS, BaseProvider

API_BASE = "https://query1.finance.yahoo.com/v8/finance/chart"

# Lookback -> Yahoo ``range`` parameter.
RANGES = {
    Lookback.ONE_MONTH: "1mo",
    Lookback.THREE_MONTHS: "3mo",
    Lookback.SIX_MONTHS: "6mo",
    Lookback.ONE_YEAR: "1y",
    Lookback.THREE_YEARS: "3y",
    Lookback.FIVE_YEARS: "5y",
}

# Chart period -> (interval, range) for the candle fallback.
CANDLE_PARAMS = {
    "day": ("1d", "1y"),
    "week": ("1wk", "5y"),
    "month": ("1mo", "10y"),
    "year": ("1mo", "max"),
}

KRX_SUFFIXES = (".KS", ".KQ")


def _to_day(ts: Any) -> datetime:
    return datetime.fromtimestamp(int(ts), tz=timezone.utc)


class YahooProvider(BaseProvider):
    """No credential required.

    Capabilities: macro_history, charts.
    """

    name = "yahoo"

    def capabilities(self) -> set[str]:
        return {"macro_history", "charts"}

    async def _chart(self, ticker: str, interval: str, range_: str, ttl: float) -> dict[str, Any] | None:
        data = await self._get_json(
            f"{API_BASE}/{ticker}",
            params={"range": range_, "interval": interval},
            ttl=ttl,
        )
        chart = data.get("chart") if isinstance(data, dict) else None
        if not isinstance(chart, dict):
            return None
        results = chart.get("result")
        if not isinstance(results, list) or not results or not isinstance(results[0], dict):
            return None
        return results[0]

    async def get_history(
        self,
        ticker: str,
        lookback: Lookback = Lookback.ONE_YEAR,
    ) -> list[SeriesPoint]:
        """Daily closes rounded to 2 decimals; null closes are dropped."""
        result = await self._chart(ticker, "1d", RANGES[lookback], self.windows.macro)
        if result is None:
            return []
        try:
            timestamps = result.get("timestamp") or []
            closes = result["indicators"]["quote"][0].get("close") or []
            points = [
                SeriesPoint(date=_to_day(ts).date().isoformat(), value=round(float(close), 2))
                for ts, close in zip(timestamps, closes)
                if close is not None
            ]
        except SHAPE_ERRORS as exc:
            self._shape_error("history", exc)
            return []
        return points

    async def get_candles(self, ticker: str, period: str = "day", count: int = 120) -> list[Candle]:
        """OHLCV candles for ``ticker`` (e.g. ``005930.KS``), ascending, last ``count``."""
        interval, range_ = CANDLE_PARAMS.get(period, CANDLE_PARAMS["day"])
        result = await self._chart(ticker, interval, range_, self.windows.chart)
        if result is None:
            return []
        try:
            timestamps = result.get("timestamp") or []
            quote = result["indicators"]["quote"][0]
            rows = zip(
                timestamps,
                quote.get("open") or [],
                quote.get("high") or [],
                quote.get("low") or [],
                quote.get("close") or [],
                quote.get("volume") or [],
            )
            candles = [
                Candle(
                    date=_to_day(ts).date(),
                    open=float(o),
                    high=float(h),
                    low=float(lo),
                    close=float(c),
                    volume=float(v or 0),
                )
                for ts, o, h, lo, c, v in rows
                if None not in (o, h, lo, c)
            ]
        except SHAPE_ERRORS as exc:
            self._shape_error("candles", exc)
            return []
        candles.sort(key=lambda c: c.date)
        return candles[-count:] if count > 0 else candles
