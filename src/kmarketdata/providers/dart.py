"""DART OpenAPI (Financial Supervisory Service electronic disclosure).

Every endpoint is keyed by the registry's 8-digit ``corp_code``, not the
exchange symbol. The symbol map comes from the bulk ``corpCode.xml``
archive (see :class:`kmarketdata.reference.CorpCodeDirectory`).
"""

from __future__ import annotations

import asyncio
import io
import logging
import xml.etree.ElementTree as ET
import zipfile
from collections.abc import Awaitable, Callable, Sequence
from datetime import date, timedelta
from typing import Any, TypeVar

from kmarketdata.calendar import today_kst
from kmarketdata.errors import MarketDataError, MarketDataErrorCode
from kmarketdata.fallback import resolve
from kmarketdata.models.company import CompanyInfo, ShareCount, Shareholder
from kmarketdata.models.dividend import DividendRecord
from kmarketdata.models.filing import FilingRecord
from kmarketdata.models.financial import (
    FinancialPeriod,
    MultiYearFinancials,
    PeriodType,
    sort_periods,
)
from kmarketdata.normalize import first_present, format_ymd, parse_int, parse_locale_number, to_iso_date
from kmarketdata.providers.base import SHAPE_ERRORS, BaseProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

API_BASE = "https://opendart.fss.or.kr/api"
VIEWER_URL = "https://dart.fss.or.kr/dsaf001/main.do?rcpNo="

STATUS_OK = "000"

# Report codes
REPORT_Q1 = "11013"
REPORT_HALF = "11012"
REPORT_Q3 = "11014"
REPORT_ANNUAL = "11011"

REPORT_SUFFIX = {
    REPORT_Q1: "Q1",
    REPORT_HALF: "Q2",
    REPORT_Q3: "Q3",
    REPORT_ANNUAL: "",
}

# Ordered alternate account names per statement line.
ACCOUNT_NAMES: dict[str, tuple[str, ...]] = {
    "revenue": ("매출액", "수익(매출액)", "영업수익"),
    "operating_income": ("영업이익", "영업이익(손실)"),
    "net_income": ("당기순이익", "당기순이익(손실)"),
    "assets": ("자산총계",),
    "liabilities": ("부채총계",),
    "equity": ("자본총계",),
}

DEFAULT_FILING_DAYS = 90
DEFAULT_FILING_COUNT = 20


def period_label(year: str | int, report: str) -> str:
    return f"{year}{REPORT_SUFFIX[report]}"


def parse_corp_codes(archive: bytes) -> dict[str, str]:
    """Parse the corpCode.xml ZIP into ``{stock_code: corp_code}``.

    Unlisted companies (blank ``stock_code``) are skipped.

    Raises:
        MarketDataError: Retryable, when the archive is unreadable or holds
            no listed companies.
    """
    try:
        with zipfile.ZipFile(io.BytesIO(archive)) as zf:
            name = next((n for n in zf.namelist() if n.lower().endswith(".xml")), None)
            if name is None:
                raise MarketDataError(
                    "corpCode archive has no XML file",
                    code=MarketDataErrorCode.MALFORMED_RESPONSE,
                    retryable=True,
                )
            root = ET.fromstring(zf.read(name))
    except (zipfile.BadZipFile, ET.ParseError) as exc:
        raise MarketDataError(
            f"corpCode archive unreadable: {exc}",
            code=MarketDataErrorCode.MALFORMED_RESPONSE,
            retryable=True,
        ) from exc

    codes: dict[str, str] = {}
    for row in root.iter("list"):
        corp_code = (row.findtext("corp_code") or "").strip()
        stock_code = (row.findtext("stock_code") or "").strip()
        if corp_code and stock_code:
            codes[stock_code] = corp_code

    if not codes:
        raise MarketDataError(
            "corpCode archive contained no listed companies",
            code=MarketDataErrorCode.NO_DATA,
            retryable=True,
        )
    return codes


def _account_amount(rows: list[dict[str, Any]], names: Sequence[str]) -> float:
    """Amount of the first matching account, consolidated before separate."""
    for fs_div in ("CFS", "OFS"):
        for name in names:
            for row in rows:
                if row.get("account_nm") == name and row.get("fs_div") == fs_div:
                    return parse_locale_number(row.get("thstrm_amount"))
    return 0.0


def is_ok(data: Any) -> bool:
    """True for a DART envelope reporting success; error envelopes are not cached."""
    return isinstance(data, dict) and data.get("status") == STATUS_OK


class DartProvider(BaseProvider):
    """Corporate filing registry.

    Capabilities: corp_codes, company_info, financials, filings,
    shareholders, share_count, dividends. Requires ``DART_API_KEY``.
    """

    name = "dart"
    credential_env = "DART_API_KEY"

    def capabilities(self) -> set[str]:
        return {
            "corp_codes", "company_info", "financials", "filings",
            "shareholders", "share_count", "dividends",
        }

    async def _dart_list(
        self, endpoint: str, params: dict[str, Any], ttl: float,
    ) -> list[dict[str, Any]] | None:
        """GET a list endpoint; None unless status is OK and ``list`` is set."""
        key = self.require_credential()
        data = await self._get_json(
            f"{API_BASE}/{endpoint}", params={"crtfc_key": key, **params}, ttl=ttl, accept=is_ok,
        )
        if not is_ok(data):
            return None
        rows = data.get("list")
        if not isinstance(rows, list):
            return None
        return [r for r in rows if isinstance(r, dict)]

    # --- Reference ---

    async def download_corp_codes(self) -> dict[str, str]:
        key = self.require_credential()
        archive = await self.http.get_bytes(
            f"{API_BASE}/corpCode.xml", params={"crtfc_key": key}, source=self.name, redact=key,
        )
        if not archive:
            raise MarketDataError(
                "corpCode.xml download failed",
                code=MarketDataErrorCode.PROVIDER_ERROR,
                retryable=True,
            )
        codes = parse_corp_codes(archive)
        logger.info("dart: %d listed corp codes loaded", len(codes))
        return codes

    async def find_corp_code(self, symbol: str) -> str | None:
        """Per-symbol lookup through company.json, used when the bulk map misses."""
        key = self.require_credential()
        data = await self._get_json(
            f"{API_BASE}/company.json",
            params={"crtfc_key": key, "stock_code": symbol},
            ttl=self.windows.reference,
            accept=is_ok,
        )
        if not is_ok(data):
            return None
        return data.get("corp_code") or None

    async def get_company_info(self, corp_code: str) -> CompanyInfo | None:
        key = self.require_credential()
        data = await self._get_json(
            f"{API_BASE}/company.json",
            params={"crtfc_key": key, "corp_code": corp_code},
            ttl=self.windows.reference,
            accept=is_ok,
        )
        if not is_ok(data):
            return None
        return CompanyInfo(
            corp_code=str(data.get("corp_code") or corp_code),
            corp_name=str(data.get("corp_name") or ""),
            stock_code=str(data.get("stock_code") or "").strip(),
            ceo_name=str(data.get("ceo_nm") or ""),
            corp_class=str(data.get("corp_cls") or ""),
            address=str(data.get("adres") or ""),
            homepage=str(data.get("hm_url") or ""),
            establish_date=str(data.get("est_dt") or ""),
            account_month=str(data.get("acc_mt") or ""),
            industry_code=data.get("induty_code") or None,
        )

    # --- Financial statements ---

    async def get_financials(
        self,
        corp_code: str,
        year: str | int,
        report: str = REPORT_ANNUAL,
    ) -> FinancialPeriod | None:
        """Key account lines for one report.

        Args:
            corp_code: Registry identifier.
            year: Business year.
            report: 11013 (Q1), 11012 (half), 11014 (Q3) or 11011 (annual).
        """
        if report not in REPORT_SUFFIX:
            raise MarketDataError(
                f"Invalid report code: {report}",
                code=MarketDataErrorCode.PROVIDER_ERROR,
            )
        rows = await self._dart_list(
            "fnlttSinglAcnt.json",
            {"corp_code": corp_code, "bsns_year": str(year), "reprt_code": report},
            self.windows.financials,
        )
        if not rows:
            return None
        try:
            amounts = {field: _account_amount(rows, names) for field, names in ACCOUNT_NAMES.items()}
        except SHAPE_ERRORS as exc:
            self._shape_error("financials", exc)
            return None
        return FinancialPeriod(
            symbol="",
            period=period_label(year, report),
            period_type=PeriodType.ANNUAL if report == REPORT_ANNUAL else PeriodType.QUARTERLY,
            **amounts,
        )

    async def get_multi_year_financials(
        self,
        corp_code: str,
        years: int = 5,
        today: date | None = None,
    ) -> MultiYearFinancials:
        """Annual reports for the last ``years`` completed years plus the
        latest four quarterly reports, each ascending by period label."""
        current = (today or today_kst()).year
        annual_years = [current - i for i in range(1, years + 1)]
        quarter_keys = [
            (y, r) for y in (current, current - 1) for r in (REPORT_Q1, REPORT_HALF, REPORT_Q3)
        ]

        results = await asyncio.gather(
            *(self.get_financials(corp_code, y, REPORT_ANNUAL) for y in annual_years),
            *(self.get_financials(corp_code, y, r) for y, r in quarter_keys),
        )
        annual = [p for p in results[: len(annual_years)] if p is not None]
        quarterly = sort_periods(p for p in results[len(annual_years):] if p is not None)
        return MultiYearFinancials(
            annual=sort_periods(annual),
            quarterly=quarterly[-4:],
        )

    # --- Filings ---

    async def get_filings(
        self,
        corp_code: str,
        start: date | None = None,
        end: date | None = None,
        filing_type: str | None = None,
        count: int = DEFAULT_FILING_COUNT,
    ) -> list[FilingRecord]:
        """Disclosures in ``[start, end]``, newest first as the registry returns them.

        Defaults to the last 90 days.
        """
        end = end or today_kst()
        start = start or end - timedelta(days=DEFAULT_FILING_DAYS)
        params: dict[str, Any] = {
            "corp_code": corp_code,
            "bgn_de": format_ymd(start),
            "end_de": format_ymd(end),
            "page_count": count,
        }
        if filing_type:
            params["pblntf_ty"] = filing_type

        rows = await self._dart_list("list.json", params, self.windows.filings)
        if not rows:
            return []
        filings: list[FilingRecord] = []
        for row in rows:
            receipt = str(row.get("rcept_no") or "")
            if not receipt:
                continue
            filings.append(FilingRecord(
                id=receipt,
                title=str(row.get("report_nm") or "").strip(),
                type=str(row.get("pblntf_ty") or "기타"),
                date=to_iso_date(row.get("rcept_dt")),
                url=f"{VIEWER_URL}{receipt}",
                corp_name=row.get("corp_name") or None,
            ))
        return filings

    # --- Ownership and shareholder returns ---

    async def get_shareholders(self, corp_code: str, year: str | int) -> list[Shareholder]:
        rows = await self._dart_list(
            "hyslrSttus.json",
            {"corp_code": corp_code, "bsns_year": str(year), "reprt_code": REPORT_ANNUAL},
            self.windows.reference,
        )
        if not rows:
            return []
        holders: list[Shareholder] = []
        for row in rows:
            name = str(row.get("nm") or "").strip()
            # "계" is the subtotal row.
            if not name or name == "계":
                continue
            holders.append(Shareholder(
                name=name,
                relation=str(row.get("relate") or "").strip(),
                shares=parse_int(row.get("trmend_posesn_stock_co")),
                share_percent=parse_locale_number(row.get("trmend_posesn_stock_qota")),
            ))
        return holders

    async def get_share_count(self, corp_code: str, year: str | int) -> ShareCount | None:
        rows = await self._dart_list(
            "stockTotqySttus.json",
            {"corp_code": corp_code, "bsns_year": str(year), "reprt_code": REPORT_ANNUAL},
            self.windows.reference,
        )
        if not rows:
            return None
        by_kind = {str(row.get("se") or "").strip(): row for row in rows}
        common = by_kind.get("보통주", {})
        preferred = by_kind.get("우선주", {})
        total = by_kind.get("합계", {})
        treasury = first_present(total, "tesstk_co") or first_present(common, "tesstk_co")
        return ShareCount(
            common_shares=parse_int(common.get("istc_totqy")),
            preferred_shares=parse_int(preferred.get("istc_totqy")),
            treasury_shares=parse_int(treasury),
        )

    async def get_dividends(self, corp_code: str, year: str | int) -> DividendRecord | None:
        rows = await self._dart_list(
            "alotMatter.json",
            {"corp_code": corp_code, "bsns_year": str(year), "reprt_code": REPORT_ANNUAL},
            self.windows.reference,
        )
        if not rows:
            return None

        def value(label: str, common_only: bool = True) -> float:
            for row in rows:
                if str(row.get("se") or "").strip() != label:
                    continue
                kind = str(row.get("stock_knd") or "").strip()
                if common_only and kind and kind != "보통주":
                    continue
                return parse_locale_number(row.get("thstrm"))
            return 0.0

        return DividendRecord(
            year=str(year),
            dividend_per_share=value("주당 현금배당금(원)"),
            dividend_yield=value("현금배당수익률(%)"),
            # Reported in millions of KRW.
            total_dividend=value("현금배당금총액(백만원)", common_only=False) * 1_000_000,
            payout_ratio=value("(연결)현금배당성향(%)", common_only=False),
        )

    async def get_dividend_history(
        self,
        corp_code: str,
        years: int = 5,
        today: date | None = None,
    ) -> list[DividendRecord]:
        """Dividend summaries for the last ``years`` completed years, ascending."""
        current = (today or today_kst()).year
        targets = [current - i for i in range(years, 0, -1)]
        records = await asyncio.gather(*(self.get_dividends(corp_code, y) for y in targets))
        return [r for r in records if r is not None]

    async def latest_annual(
        self,
        fetch: Callable[[str, int], Awaitable[T | None]],
        corp_code: str,
        today: date | None = None,
    ) -> T | None:
        """Run ``fetch(corp_code, year)`` for last year, then the year before.

        The previous year's business report is filed by the end of March,
        so early in the year only the one before it exists.
        """
        current = (today or today_kst()).year
        return await resolve(
            [lambda y=y: fetch(corp_code, y) for y in (current - 1, current - 2)],
            label=f"dart {getattr(fetch, '__name__', 'annual')}",
        )
