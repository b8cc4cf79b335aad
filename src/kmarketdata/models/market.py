"""Market-wide and economy dashboard models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from kmarketdata.models.instrument import Instrument
from kmarketdata.models.macro import MacroObservation
from kmarketdata.models.quote import Quote
from kmarketdata.models.ranking import RankedInstrument


@dataclass(frozen=True)
class MarketIndex:
    """Index level with change from previous close."""

    code: str
    value: float
    change: float
    change_percent: float


@dataclass(frozen=True)
class ExchangeRate:
    """KRW price of one unit of ``currency`` (100 units for JPY)."""

    currency: str
    rate: float
    change: float
    change_percent: float


@dataclass(frozen=True)
class CommodityPrice:
    """Commodity futures price."""

    code: str
    name: str
    price: float
    change: float
    change_percent: float
    unit: str


@dataclass(frozen=True)
class FearGreed:
    """Crypto Fear & Greed index reading."""

    value: int
    classification: str
    timestamp: str


class EconomyCategory(Enum):
    """Economy dashboard sections."""

    SENTIMENT = "sentiment"
    RATES = "rates"
    EXCHANGE = "exchange"
    COMMODITIES = "commodities"
    US_ECONOMY = "us_economy"
    KOREA = "korea"


@dataclass(frozen=True)
class EconomySnapshot:
    """Latest values for one economy category; unused sections stay empty."""

    category: EconomyCategory
    fear_greed: FearGreed | None = None
    exchange_rates: list[ExchangeRate] = field(default_factory=list)
    commodities: list[CommodityPrice] = field(default_factory=list)
    fred_indicators: list[MacroObservation] = field(default_factory=list)
    ecos_indicators: list[MacroObservation] = field(default_factory=list)


@dataclass(frozen=True)
class MarketOverview:
    """Index levels plus merged KOSPI/KOSDAQ top movers."""

    kospi: MarketIndex | None = None
    kosdaq: MarketIndex | None = None
    top_rise: list[RankedInstrument] = field(default_factory=list)
    top_fall: list[RankedInstrument] = field(default_factory=list)


@dataclass(frozen=True)
class StockView:
    """Instrument profile with its current quote."""

    instrument: Instrument
    quote: Quote
