"""Ranking models produced by the merge & rank aggregator."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class RankDirection(Enum):
    """Sort direction: RISE sorts descending, FALL ascending."""

    RISE = "rise"
    FALL = "fall"


class RankMetric(Enum):
    """Registry ranking metric."""

    VOLUME = "volume"
    TRADING_VALUE = "trading_value"


@dataclass(frozen=True)
class RankedInstrument:
    """Instrument fields plus the metrics rankings sort by.

    Attributes:
        symbol: Exchange symbol (identity key during merges).
        name: Display name.
        market: KOSPI or KOSDAQ.
        price: Last / closing price.
        change: Change from previous close.
        change_percent: Percent change from previous close.
        volume: Trading volume.
        trading_value: Traded value in KRW.
        market_cap: Market capitalization, when reported.
        date: Trading date the row belongs to (``YYYYMMDD``), when reported.
    """

    symbol: str
    name: str
    market: str = ""
    price: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    volume: float = 0.0
    trading_value: float = 0.0
    market_cap: float | None = None
    date: str = ""


@dataclass(frozen=True)
class ShortSellingEntry:
    """Short-selling activity for one instrument on one trading day."""

    symbol: str
    name: str
    market: str
    date: str
    short_volume: int
    short_amount: int
    total_volume: int
    short_ratio: float


@dataclass(frozen=True)
class RankedPage:
    """One page of a ranking.

    ``has_more`` is a continuation hint, not an exact count: after a merge
    it is true when any source had more pages.
    """

    items: list[RankedInstrument] = field(default_factory=list)
    page: int = 1
    page_size: int = 20
    has_more: bool = False


@dataclass(frozen=True)
class RankingSnapshot(Generic[T]):
    """Ranking rows for the trading date that first had data."""

    base_date: str = ""
    items: list[T] = field(default_factory=list)
