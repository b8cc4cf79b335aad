"""alternative.me crypto Fear & Greed index."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from kmarketdata.models.macro import Lookback, SeriesPoint
from kmarketdata.models.market import FearGreed
from kmarketdata.normalize import parse_int
from kmarketdata.providers.base import SHAPE_ERRORS, BaseProvider

API_URL = "https://api.alternative.me/fng/"


class FearGreedProvider(BaseProvider):
    """Sentiment gauge. No credential required."""

    name = "fear_greed"

    def capabilities(self) -> set[str]:
        return {"sentiment"}

    async def _entries(self, limit: int, ttl: float) -> list[dict[str, Any]]:
        data = await self._get_json(API_URL, params={"limit": limit}, ttl=ttl)
        if not isinstance(data, dict) or not isinstance(data.get("data"), list):
            return []
        return [d for d in data["data"] if isinstance(d, dict)]

    async def get_latest(self) -> FearGreed | None:
        entries = await self._entries(1, self.windows.market_index)
        if not entries or entries[0].get("value") in (None, ""):
            return None
        d = entries[0]
        return FearGreed(
            value=parse_int(d.get("value")),
            classification=str(d.get("value_classification") or ""),
            timestamp=str(d.get("timestamp") or ""),
        )

    async def get_history(self, lookback: Lookback = Lookback.THREE_MONTHS) -> list[SeriesPoint]:
        """Daily readings, ascending (the API returns newest first)."""
        entries = await self._entries(lookback.days, self.windows.macro)
        try:
            points = [
                SeriesPoint(
                    date=datetime.fromtimestamp(int(d["timestamp"]), tz=timezone.utc).date().isoformat(),
                    value=float(parse_int(d.get("value"))),
                )
                for d in entries
            ]
        except SHAPE_ERRORS as exc:
            self._shape_error("history", exc)
            return []
        points.reverse()
        return points
