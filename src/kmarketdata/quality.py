"""Data quality validation for candles and quotes."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from kmarketdata.models.candle import Candle
from kmarketdata.models.quote import Quote


@dataclass
class ValidationCheck:
    """Single validation check result."""

    name: str
    passed: bool
    message: str = ""


@dataclass
class ValidationResult:
    """Aggregate validation result."""

    checks: list[ValidationCheck] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(c.passed for c in self.checks)

    @property
    def failed_checks(self) -> list[ValidationCheck]:
        return [c for c in self.checks if not c.passed]


def validate_candles(candles: list[Candle]) -> ValidationResult:
    """Run all quality checks on a candle series.

    Checks:
        1. Not empty
        2. No NaN/Inf OHLCV
        3. Date ordering (strictly ascending, no duplicates)
        4. Volume sanity (non-negative)
        5. OHLC consistency (high >= low, high >= open/close)

    Day-to-day price jumps are not flagged: KRX limit moves reach 30%.
    """
    result = ValidationResult()

    if not candles:
        result.checks.append(ValidationCheck("not_empty", False, "No candles provided"))
        return result
    result.checks.append(ValidationCheck("not_empty", True, f"{len(candles)} candles"))

    bad_values = sum(
        1
        for c in candles
        for val in (c.open, c.high, c.low, c.close, c.volume)
        if math.isnan(val) or math.isinf(val)
    )
    if bad_values:
        result.checks.append(ValidationCheck("no_nulls", False, f"{bad_values} NaN/Inf values"))
    else:
        result.checks.append(ValidationCheck("no_nulls", True))

    out_of_order = sum(
        1 for i in range(1, len(candles)) if candles[i].date <= candles[i - 1].date
    )
    if out_of_order:
        result.checks.append(
            ValidationCheck("date_order", False, f"{out_of_order} out of order")
        )
    else:
        result.checks.append(ValidationCheck("date_order", True))

    neg_vol = sum(1 for c in candles if c.volume < 0)
    if neg_vol:
        result.checks.append(
            ValidationCheck("volume_sanity", False, f"{neg_vol} candles with negative volume")
        )
    else:
        result.checks.append(ValidationCheck("volume_sanity", True))

    inconsistent = 0
    for c in candles:
        if c.high < c.low:
            inconsistent += 1
        elif c.high < c.open or c.high < c.close:
            inconsistent += 1
        elif c.low > c.open or c.low > c.close:
            inconsistent += 1
    if inconsistent:
        result.checks.append(
            ValidationCheck("ohlc_consistency", False, f"{inconsistent} candles with H<L or H<O/C")
        )
    else:
        result.checks.append(ValidationCheck("ohlc_consistency", True))

    return result


def validate_quote(quote: Quote) -> bool:
    """Basic quote sanity check.

    Returns True if price > 0 and change / change_percent do not disagree
    in sign.
    """
    if quote.price <= 0:
        return False
    if quote.change and quote.change_percent:
        if (quote.change > 0) != (quote.change_percent > 0):
            return False
    return True
