"""Normalizers for locale-formatted upstream values.

Upstream endpoints mix numbers and strings like ``"1,234,500"`` or
``"-0.35"`` for the same field, and rename fields between response versions.
Everything here is total: bad input maps to a neutral value, never raises.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

_DIGITS_ONLY = re.compile(r"^\d{8}$")


def parse_locale_number(raw: Any) -> float:
    """Parse ``raw`` as a number, stripping thousands separators.

    Returns 0.0 for None, empty strings, garbage, bools, NaN and infinity.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        text = raw.replace(",", "").strip()
        if not text:
            return 0.0
        try:
            value = float(text)
        except ValueError:
            return 0.0
    else:
        return 0.0
    if math.isnan(value) or math.isinf(value):
        return 0.0
    return value


def parse_int(raw: Any) -> int:
    """Like :func:`parse_locale_number`, truncated to an int."""
    return int(parse_locale_number(raw))


def first_present(record: Mapping[str, Any] | None, *names: str) -> Any:
    """Return the value of the first field in ``names`` that is set.

    Empty strings and None count as absent, so ``first_present(item,
    "code", "itemCode")`` works across response versions.
    """
    if not record:
        return None
    for name in names:
        value = record.get(name)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def align_change_sign(change: float, change_percent: float) -> float:
    """Return ``change_percent`` carrying the sign of ``change``.

    Some endpoints report the ratio unsigned; the absolute change is the
    signed one.
    """
    if change == 0 or change_percent == 0:
        return change_percent
    return math.copysign(abs(change_percent), change)


def format_ymd(d: date) -> str:
    """Format a date as ``YYYYMMDD`` (the registry APIs' date key)."""
    return d.strftime("%Y%m%d")


def to_iso_date(raw: Any) -> date | None:
    """Parse ``YYYYMMDD``, ``YYYY-MM-DD`` or ``YYYY.MM.DD`` into a date."""
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str):
        return None
    text = raw.strip()[:10]
    try:
        if _DIGITS_ONLY.match(text):
            return datetime.strptime(text, "%Y%m%d").date()
        return date.fromisoformat(text.replace(".", "-").replace("/", "-"))
    except ValueError:
        return None
