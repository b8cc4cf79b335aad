"""Instrument reference model."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Instrument:
    """A tradable instrument. Identity is ``symbol``.

    Attributes:
        symbol: Exchange-local code, fixed-width numeric string.
        name: Display name.
        market: Market segment (KOSPI, KOSDAQ) or "KR" when unknown.
        sector: Sector name.
        industry: Industry name.
    """

    symbol: str
    name: str
    market: str = "KR"
    sector: str | None = None
    industry: str | None = None

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match over name and symbol."""
        q = query.strip().lower()
        if not q:
            return False
        return q in self.name.lower() or q in self.symbol.lower()
