"""Dividend data model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DividendRecord:
    """Annual dividend summary from the business report.

    Attributes:
        year: Business year.
        dividend_per_share: Cash dividend per common share (KRW).
        dividend_yield: Cash dividend yield on common shares (%).
        total_dividend: Total cash dividends (KRW).
        payout_ratio: Consolidated cash payout ratio (%).
    """

    year: str
    dividend_per_share: float = 0.0
    dividend_yield: float = 0.0
    total_dividend: float = 0.0
    payout_ratio: float = 0.0
