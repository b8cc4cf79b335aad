"""Financial statement models and derived ratios."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from enum import Enum


class PeriodType(Enum):
    """Reporting period granularity."""

    ANNUAL = "annual"
    QUARTERLY = "quarterly"


@dataclass(frozen=True)
class FinancialPeriod:
    """Key statement lines for one reporting period.

    Attributes:
        symbol: Exchange symbol (may be empty when fetched by corp code).
        period: Period label, "2024" for annual or "2024Q1" for quarterly.
        period_type: Annual or quarterly.
        revenue: Revenue.
        operating_income: Operating income.
        net_income: Net income.
        assets: Total assets.
        liabilities: Total liabilities.
        equity: Total equity.
    """

    symbol: str
    period: str
    period_type: PeriodType
    revenue: float = 0.0
    operating_income: float = 0.0
    net_income: float = 0.0
    assets: float = 0.0
    liabilities: float = 0.0
    equity: float = 0.0

    def with_symbol(self, symbol: str) -> FinancialPeriod:
        return replace(self, symbol=symbol)


@dataclass(frozen=True)
class MultiYearFinancials:
    """Annual and quarterly series, each ascending by period label."""

    annual: list[FinancialPeriod] = field(default_factory=list)
    quarterly: list[FinancialPeriod] = field(default_factory=list)


@dataclass(frozen=True)
class FinancialRatios:
    """Profitability and leverage ratios for one period, in percent."""

    period: str
    operating_margin: float
    net_margin: float
    roe: float
    roa: float
    debt_ratio: float


def sort_periods(periods: Iterable[FinancialPeriod]) -> list[FinancialPeriod]:
    """Sort periods ascending by label."""
    return sorted(periods, key=lambda p: p.period)


def _pct(numerator: float, denominator: float) -> float:
    return numerator / denominator * 100 if denominator else 0.0


def compute_ratios(periods: Iterable[FinancialPeriod]) -> list[FinancialRatios]:
    """Compute margins, ROE, ROA and debt ratio per period.

    Periods are sorted first, so the output is always in ascending order
    regardless of how the upstream returned them.
    """
    return [
        FinancialRatios(
            period=p.period,
            operating_margin=_pct(p.operating_income, p.revenue),
            net_margin=_pct(p.net_income, p.revenue),
            roe=_pct(p.net_income, p.equity),
            roa=_pct(p.net_income, p.assets),
            debt_ratio=_pct(p.liabilities, p.equity),
        )
        for p in sort_periods(periods)
    ]
