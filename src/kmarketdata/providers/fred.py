"""FRED (Federal Reserve Bank of St. Louis) macro series."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import date

from kmarketdata.calendar import today_kst
from kmarketdata.models.macro import Lookback, MacroObservation, SeriesPoint, SeriesSpec
from kmarketdata.providers.base import BaseProvider

API_URL = "https://api.stlouisfed.org/fred/series/observations"

# FRED marks missing observations with a lone dot.
MISSING = "."

RATES_SERIES: tuple[SeriesSpec, ...] = (
    SeriesSpec("FEDFUNDS", "연방기금금리", "%"),
    SeriesSpec("DGS10", "미국 10년 국채", "%"),
    SeriesSpec("DGS2", "미국 2년 국채", "%"),
    SeriesSpec("T10Y2Y", "장단기 스프레드(10Y-2Y)", "%"),
)

US_ECONOMY_SERIES: tuple[SeriesSpec, ...] = (
    SeriesSpec("CPIAUCSL", "미국 CPI", "Index"),
    SeriesSpec("UNRATE", "미국 실업률", "%"),
    SeriesSpec("PAYEMS", "비농업 고용", "Thous."),
    SeriesSpec("GDPC1", "미국 실질 GDP", "Bil. $"),
)

SENTIMENT_SERIES: tuple[SeriesSpec, ...] = (
    SeriesSpec("VIXCLS", "VIX 변동성 지수", "pt"),
    SeriesSpec("SP500", "S&P 500", "pt"),
)


class FredProvider(BaseProvider):
    """Latest values and histories for FRED series. Requires ``FRED_API_KEY``."""

    name = "fred"
    credential_env = "FRED_API_KEY"

    def capabilities(self) -> set[str]:
        return {"macro_latest", "macro_history"}

    async def get_latest(self, spec: SeriesSpec) -> MacroObservation | None:
        key = self.require_credential()
        data = await self._get_json(
            API_URL,
            params={
                "series_id": spec.series_id,
                "api_key": key,
                "file_type": "json",
                "sort_order": "desc",
                "limit": 1,
            },
            ttl=self.windows.macro,
        )
        if not isinstance(data, dict):
            return None
        observations = data.get("observations") or []
        if not observations or not isinstance(observations[0], dict):
            return None
        obs = observations[0]
        raw = obs.get("value")
        if raw in (None, "", MISSING):
            return None
        try:
            value = float(raw)
        except (TypeError, ValueError) as exc:
            self._shape_error("observation", exc)
            return None
        return MacroObservation(
            series_id=spec.series_id,
            name=spec.name,
            value=value,
            date=str(obs.get("date") or ""),
            unit=spec.unit,
        )

    async def get_latest_many(self, specs: Sequence[SeriesSpec]) -> list[MacroObservation]:
        """Latest values for several series, fetched concurrently, in input order."""
        self.require_credential()
        results = await asyncio.gather(*(self.get_latest(s) for s in specs))
        return [r for r in results if r is not None]

    async def get_history(
        self,
        series_id: str,
        lookback: Lookback = Lookback.ONE_YEAR,
        today: date | None = None,
    ) -> list[SeriesPoint]:
        key = self.require_credential()
        start = lookback.start(today or today_kst())
        data = await self._get_json(
            API_URL,
            params={
                "series_id": series_id,
                "api_key": key,
                "file_type": "json",
                "sort_order": "asc",
                "observation_start": start.isoformat(),
            },
            ttl=self.windows.macro,
        )
        if not isinstance(data, dict):
            return []

        points: list[SeriesPoint] = []
        for obs in data.get("observations") or []:
            if not isinstance(obs, dict):
                continue
            raw = obs.get("value")
            if raw in (None, "", MISSING):
                continue
            try:
                points.append(SeriesPoint(date=str(obs["date"]), value=float(raw)))
            except (KeyError, TypeError, ValueError):
                continue
        points.sort(key=lambda p: p.date)
        return points
