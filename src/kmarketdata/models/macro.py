"""Macroeconomic series models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum


@dataclass(frozen=True)
class MacroObservation:
    """Latest observation of a macro series.

    Attributes:
        series_id: Source-specific id (FRED id, or ``{stat}_{item}`` for ECOS).
        name: Display name.
        value: Observed value.
        date: Observation date as the source labels it (``2024-05-01``,
            ``202405``, ``2024Q1``).
        unit: Display unit.
    """

    series_id: str
    name: str
    value: float
    date: str
    unit: str


@dataclass(frozen=True)
class SeriesPoint:
    """One point of a history series; collections are ascending by date."""

    date: str
    value: float


@dataclass(frozen=True)
class SeriesSpec:
    """A macro series to query: id, display name, unit."""

    series_id: str
    name: str
    unit: str


@dataclass(frozen=True)
class EcosSeriesSpec:
    """An ECOS statistic/item pair with display metadata."""

    stat_code: str
    item_code: str
    name: str
    unit: str
    freq: str = "M"

    @property
    def series_id(self) -> str:
        return f"{self.stat_code}_{self.item_code}"


class Lookback(Enum):
    """History window requested for charts."""

    ONE_MONTH = "1M"
    THREE_MONTHS = "3M"
    SIX_MONTHS = "6M"
    ONE_YEAR = "1Y"
    THREE_YEARS = "3Y"
    FIVE_YEARS = "5Y"

    @property
    def days(self) -> int:
        return {
            "1M": 31,
            "3M": 92,
            "6M": 183,
            "1Y": 366,
            "3Y": 3 * 366,
            "5Y": 5 * 366,
        }[self.value]

    def start(self, today: date) -> date:
        return today - timedelta(days=self.days)
