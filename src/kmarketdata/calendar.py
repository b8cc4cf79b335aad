"""KRX business-day helpers.

Weekend-only heuristic: there is no holiday table. Bulk registry endpoints
are keyed by trading date and the latest day is often not published yet,
so callers walk a short window of candidate days through the fallback
resolver instead of trusting a single computed date.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date, datetime, timedelta, timezone

from kmarketdata.normalize import format_ymd

# Korea observes no DST
_KST = timezone(timedelta(hours=9), "KST")


def now_kst() -> datetime:
    """Current time in Seoul."""
    return datetime.now(_KST)


def today_kst() -> date:
    """Current calendar date in Seoul."""
    return now_kst().date()


def is_business_day(d: date) -> bool:
    """Check if a date is a weekday."""
    return d.weekday() < 5


class BusinessDays:
    """Lazy, restartable window of recent business days.

    Iterating yields ``count`` ``YYYYMMDD`` strings, newest first, starting
    the day before ``anchor`` and skipping weekends. Each ``iter()`` walks
    the calendar again, so the window can be consumed more than once.
    """

    def __init__(self, count: int, anchor: date) -> None:
        self.count = max(count, 0)
        self.anchor = anchor

    def __iter__(self) -> Iterator[str]:
        produced = 0
        current = self.anchor - timedelta(days=1)
        while produced < self.count:
            if is_business_day(current):
                yield format_ymd(current)
                produced += 1
            current -= timedelta(days=1)

    def __len__(self) -> int:
        return self.count

    def __repr__(self) -> str:
        return f"BusinessDays(count={self.count}, anchor={self.anchor.isoformat()})"


def recent_business_days(count: int, today: date | None = None) -> BusinessDays:
    """Return the ``count`` most recent business days before ``today``.

    Args:
        count: Number of dates to produce. Values <= 0 produce none.
        today: Reference date. Defaults to the current date in Seoul.
    """
    return BusinessDays(count, today or today_kst())
