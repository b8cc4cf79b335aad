"""Market data models."""

from kmarketdata.models.candle import Candle
from kmarketdata.models.company import CompanyDetail, CompanyInfo, ShareCount, Shareholder
from kmarketdata.models.dividend import DividendRecord
from kmarketdata.models.filing import FilingRecord
from kmarketdata.models.financial import (
    FinancialPeriod,
    FinancialRatios,
    MultiYearFinancials,
    PeriodType,
    compute_ratios,
    sort_periods,
)
from kmarketdata.models.instrument import Instrument
from kmarketdata.models.macro import (
    EcosSeriesSpec,
    Lookback,
    MacroObservation,
    SeriesPoint,
    SeriesSpec,
)
from kmarketdata.models.market import (
    CommodityPrice,
    EconomyCategory,
    EconomySnapshot,
    ExchangeRate,
    FearGreed,
    MarketIndex,
    MarketOverview,
    StockView,
)
from kmarketdata.models.quote import Quote
from kmarketdata.models.ranking import (
    RankDirection,
    RankedInstrument,
    RankedPage,
    RankingSnapshot,
    RankMetric,
    ShortSellingEntry,
)

__all__ = [
    "Candle",
    "CommodityPrice",
    "CompanyDetail",
    "CompanyInfo",
    "DividendRecord",
    "EconomyCategory",
    "EconomySnapshot",
    "EcosSeriesSpec",
    "ExchangeRate",
    "FearGreed",
    "FilingRecord",
    "FinancialPeriod",
    "FinancialRatios",
    "Instrument",
    "Lookback",
    "MacroObservation",
    "MarketIndex",
    "MarketOverview",
    "MultiYearFinancials",
    "PeriodType",
    "Quote",
    "RankDirection",
    "RankMetric",
    "RankedInstrument",
    "RankedPage",
    "RankingSnapshot",
    "SeriesPoint",
    "SeriesSpec",
    "ShareCount",
    "Shareholder",
    "ShortSellingEntry",
    "StockView",
    "compute_ratios",
    "sort_periods",
]
