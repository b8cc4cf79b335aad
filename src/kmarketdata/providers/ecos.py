"""Bank of Korea ECOS statistics."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import date
from typing import Any

from kmarketdata.calendar import today_kst
from kmarketdata.models.macro import EcosSeriesSpec, Lookback, MacroObservation, SeriesPoint
from kmarketdata.normalize import parse_locale_number
from kmarketdata.providers.base import BaseProvider

API_BASE = "https://ecos.bok.or.kr/api/StatisticSearch"

# Rows per StatisticSearch request; longer windows are paged.
PAGE_SIZE = 1000

KOREA_SERIES: tuple[EcosSeriesSpec, ...] = (
    EcosSeriesSpec("722Y001", "0101000", "한국 기준금리", "%"),
    EcosSeriesSpec("901Y009", "0", "소비자물가지수", "2020=100"),
)


def period_key(d: date, freq: str) -> str:
    """Format ``d`` as an ECOS period: ``YYYYMM``, ``YYYYQn``, ``YYYY`` or ``YYYYMMDD``."""
    if freq == "Q":
        return f"{d.year}Q{(d.month - 1) // 3 + 1}"
    if freq == "A":
        return str(d.year)
    if freq == "D":
        return d.strftime("%Y%m%d")
    return d.strftime("%Y%m")


def _has_rows(data: Any) -> bool:
    return isinstance(data, dict) and isinstance(data.get("StatisticSearch"), dict)


class EcosProvider(BaseProvider):
    """Latest values and histories for ECOS statistics. Requires ``ECOS_API_KEY``."""

    name = "ecos"
    credential_env = "ECOS_API_KEY"

    def capabilities(self) -> set[str]:
        return {"macro_latest", "macro_history"}

    async def _page(
        self,
        first: int,
        last: int,
        stat_code: str,
        item_code: str,
        freq: str,
        start: str,
        end: str,
    ) -> tuple[list[dict[str, Any]], int]:
        """One slice of rows (1-based, inclusive) and the total row count."""
        key = self.require_credential()
        url = (
            f"{API_BASE}/{key}/json/kr/{first}/{last}/"
            f"{stat_code}/{freq}/{start}/{end}/{item_code}"
        )
        data = await self._get_json(url, ttl=self.windows.macro, accept=_has_rows)
        # Errors come back as {"RESULT": {"CODE": ..., "MESSAGE": ...}}.
        if not _has_rows(data):
            return [], 0
        search = data["StatisticSearch"]
        rows = [r for r in search.get("row") or [] if isinstance(r, dict)]
        try:
            total = int(search.get("list_total_count") or 0)
        except (TypeError, ValueError):
            total = 0
        return rows, max(total, len(rows))

    async def _rows(
        self,
        stat_code: str,
        item_code: str,
        freq: str,
        start: str,
        end: str,
    ) -> list[dict[str, Any]]:
        rows, total = await self._page(1, PAGE_SIZE, stat_code, item_code, freq, start, end)
        if total <= len(rows):
            return rows
        pages = await asyncio.gather(*(
            self._page(first, first + PAGE_SIZE - 1, stat_code, item_code, freq, start, end)
            for first in range(PAGE_SIZE + 1, total + 1, PAGE_SIZE)
        ))
        for page, _ in pages:
            rows.extend(page)
        return rows

    async def get_history(
        self,
        stat_code: str,
        item_code: str,
        freq: str = "M",
        lookback: Lookback = Lookback.THREE_YEARS,
        today: date | None = None,
    ) -> list[SeriesPoint]:
        today = today or today_kst()
        rows = await self._rows(
            stat_code,
            item_code,
            freq,
            period_key(lookback.start(today), freq),
            period_key(today, freq),
        )
        points = [
            SeriesPoint(date=str(r.get("TIME") or ""), value=parse_locale_number(r.get("DATA_VALUE")))
            for r in rows
            if r.get("TIME") and r.get("DATA_VALUE") not in (None, "")
        ]
        points.sort(key=lambda p: p.date)
        return points

    async def get_latest(
        self,
        spec: EcosSeriesSpec,
        today: date | None = None,
    ) -> MacroObservation | None:
        """Most recent observation within the last year.

        Rows come back oldest first, so the latest is the last row.
        """
        points = await self.get_history(
            spec.stat_code, spec.item_code, spec.freq, Lookback.ONE_YEAR, today,
        )
        if not points:
            return None
        last = points[-1]
        return MacroObservation(
            series_id=spec.series_id,
            name=spec.name,
            value=last.value,
            date=last.date,
            unit=spec.unit,
        )

    async def get_latest_many(
        self,
        specs: Sequence[EcosSeriesSpec],
        today: date | None = None,
    ) -> list[MacroObservation]:
        self.require_credential()
        results = await asyncio.gather(*(self.get_latest(s, today) for s in specs))
        return [r for r in results if r is not None]
