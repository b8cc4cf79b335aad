"""Corporate registry models."""

from __future__ import annotations

from dataclasses import dataclass, field

from kmarketdata.models.dividend import DividendRecord
from kmarketdata.models.financial import MultiYearFinancials


@dataclass(frozen=True)
class CompanyInfo:
    """Registry company profile.

    Attributes:
        corp_code: Registry identifier (8 digits, distinct from the symbol).
        corp_name: Company name.
        stock_code: Exchange symbol.
        ceo_name: Representative.
        corp_class: Y (KOSPI), K (KOSDAQ), N (KONEX), E (other).
        address: Registered address.
        homepage: Company homepage.
        establish_date: Establishment date, ``YYYYMMDD``.
        account_month: Fiscal year-end month.
        industry_code: Registry industry code.
    """

    corp_code: str
    corp_name: str
    stock_code: str = ""
    ceo_name: str = ""
    corp_class: str = ""
    address: str = ""
    homepage: str = ""
    establish_date: str = ""
    account_month: str = ""
    industry_code: str | None = None


@dataclass(frozen=True)
class Shareholder:
    """Largest shareholder row."""

    name: str
    relation: str
    shares: int
    share_percent: float


@dataclass(frozen=True)
class ShareCount:
    """Issued share counts by class."""

    common_shares: int = 0
    preferred_shares: int = 0
    treasury_shares: int = 0


@dataclass(frozen=True)
class CompanyDetail:
    """Everything the company page shows, gathered concurrently.

    Each section is independently optional: a failed sub-fetch leaves its
    safe default in place.
    """

    symbol: str
    corp_code: str
    info: CompanyInfo | None = None
    financials: MultiYearFinancials = field(default_factory=MultiYearFinancials)
    shareholders: list[Shareholder] = field(default_factory=list)
    share_count: ShareCount | None = None
    dividends: list[DividendRecord] = field(default_factory=list)
