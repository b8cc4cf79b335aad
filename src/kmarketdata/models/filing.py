"""Filing record model."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class FilingRecord:
    """A registry disclosure. Identity is the receipt number ``id``.

    Attributes:
        id: Registry receipt number.
        title: Report title.
        type: Disclosure type code (A regular, B major events, ...).
        date: Receipt date.
        url: Viewer URL.
        corp_name: Filer name as the registry reports it.
    """

    id: str
    title: str
    type: str
    date: date | None
    url: str
    corp_name: str | None = None
