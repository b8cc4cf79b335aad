"""Quote data model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Quote:
    """Current price snapshot for one instrument.

    ``change == price - prev_close`` is expected but not enforced; upstream
    values are passed through as reported. ``change_percent`` always carries
    the sign of ``change`` when both are non-zero.

    Attributes:
        symbol: Exchange-local code (six digits for KRX).
        price: Last traded price.
        change: Change from the previous close.
        change_percent: Percent change from the previous close.
        volume: Accumulated trading volume.
        high: Session high.
        low: Session low.
        open: Session open.
        prev_close: Previous session close.
        market_cap: Market capitalization, when the source reports it.
        observed_at: When the upstream observed the price.
    """

    symbol: str
    price: float
    change: float
    change_percent: float
    volume: float
    high: float
    low: float
    open: float
    prev_close: float
    observed_at: datetime
    market_cap: float | None = None
