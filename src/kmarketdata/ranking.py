"""Merge & rank aggregation across markets and pages."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Any, TypeVar

from kmarketdata.models.ranking import RankDirection, RankedInstrument, RankedPage

T = TypeVar("T")


def _by_symbol(item: Any) -> str:
    return item.symbol


def _by_change_percent(item: Any) -> float:
    return item.change_percent


def merge_ranked(
    *lists: Iterable[T],
    direction: RankDirection = RankDirection.RISE,
    key: Callable[[T], str] = _by_symbol,
    metric: Callable[[T], float] = _by_change_percent,
) -> list[T]:
    """Concatenate ranked lists, dedupe by ``key`` and re-sort by ``metric``.

    The first occurrence of a key wins, so the order of ``lists`` decides
    which market's row survives a collision. Entries with an empty key are
    dropped. RISE sorts descending, FALL ascending; ties keep input order.
    """
    seen: set[str] = set()
    merged: list[T] = []
    for items in lists:
        for item in items:
            k = key(item)
            if not k or k in seen:
                continue
            seen.add(k)
            merged.append(item)

    merged.sort(key=metric, reverse=direction is RankDirection.RISE)
    return merged


def merge_pages(
    pages: Sequence[RankedPage],
    direction: RankDirection,
    page_size: int,
) -> RankedPage:
    """Merge same-index pages from several sources into one page.

    ``has_more`` is true when any source reports more pages, which may
    over-report but never ends an infinite scroll early.
    """
    items = merge_ranked(*(p.items for p in pages), direction=direction)
    return RankedPage(
        items=items[:page_size],
        page=pages[0].page if pages else 1,
        page_size=page_size,
        has_more=any(p.has_more for p in pages),
    )


def top_n(
    *lists: Iterable[RankedInstrument],
    direction: RankDirection,
    n: int = 5,
) -> list[RankedInstrument]:
    """First page of a merge, as shown on the market overview."""
    return merge_ranked(*lists, direction=direction)[:n]
