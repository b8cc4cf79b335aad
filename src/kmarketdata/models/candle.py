"""Candle (OHLCV) data model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class Candle:
    """Single OHLCV candle.

    Sequences are ordered ascending by date with no gap filling; missing
    trading days are simply absent.
    """

    date: date
    open: float
    high: float
    low: float
    close: float
    volume: float
