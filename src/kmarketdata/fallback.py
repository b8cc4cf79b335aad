"""Fallback resolution: try candidate sources in order, first success wins.

No candidate is more authoritative than another. Resolution short-circuits
on the first acceptable result; later candidates are never created or
awaited, so callers can pass a lazy generator of attempts.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sized
from typing import Any, TypeVar

from kmarketdata.errors import ConfigurationError, MarketDataError

logger = logging.getLogger(__name__)

T = TypeVar("T")

Attempt = Callable[[], Awaitable["T | None"]]


def is_non_empty(result: Any) -> bool:
    """Default acceptance test.

    False for empty sequences and mappings, and for objects exposing an
    empty ``items`` list (pages, ranking snapshots).
    """
    if isinstance(result, (str, bytes)):
        return bool(result)
    if isinstance(result, (Mapping, Sized)):
        return len(result) > 0
    items = getattr(result, "items", None)
    if isinstance(items, list):
        return len(items) > 0
    return True


async def resolve(
    attempts: Iterable[Attempt[T]],
    *,
    accept: Callable[[T], bool] = is_non_empty,
    default: T | None = None,
    label: str = "resolve",
) -> T | None:
    """Return the first acceptable result among ``attempts``.

    Args:
        attempts: Zero-argument callables returning awaitables, consumed in
            order.
        accept: Schema/emptiness check a result must pass.
        default: Returned when every attempt fails.
        label: Name used in log messages.

    A retryable ``MarketDataError`` counts as a failed attempt. Missing
    credentials and non-retryable errors propagate.
    """
    tried = 0
    for attempt in attempts:
        tried += 1
        try:
            result = await attempt()
        except ConfigurationError:
            raise
        except MarketDataError as exc:
            if not exc.retryable:
                raise
            logger.debug("%s: candidate %d failed: %s", label, tried, exc)
            continue

        if result is not None and accept(result):
            if tried > 1:
                logger.debug("%s: resolved by candidate %d", label, tried)
            return result

    logger.debug("%s: all %d candidates exhausted", label, tried)
    return default
