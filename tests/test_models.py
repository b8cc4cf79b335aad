"""Tests for data models."""

from datetime import date

import pytest

from kmarketdata.models.candle import Candle
from kmarketdata.models.financial import FinancialPeriod, PeriodType, compute_ratios, sort_periods
from kmarketdata.models.instrument import Instrument
from kmarketdata.models.macro import EcosSeriesSpec, Lookback
from kmarketdata.models.ranking import RankedPage, RankingSnapshot


def _period(label, **amounts):
    return FinancialPeriod(symbol="005930", period=label, period_type=PeriodType.ANNUAL, **amounts)


class TestCandle:
    def test_frozen(self):
        candle = Candle(date=date(2024, 5, 13), open=1.0, high=2.0, low=0.5, close=1.5, volume=10.0)
        with pytest.raises(AttributeError):
            candle.close = 999.0  # type: ignore[misc]


class TestInstrument:
    def test_defaults(self):
        inst = Instrument("005930", "삼성전자")
        assert inst.market == "KR"
        assert inst.sector is None

    def test_matches(self):
        inst = Instrument("035420", "NAVER", "KOSPI")
        assert inst.matches("naver")
        assert inst.matches("3542")
        assert not inst.matches("kakao")
        assert not inst.matches("  ")


class TestFinancialPeriods:
    def test_sort_by_label(self):
        periods = [_period("2023"), _period("2021"), _period("2022")]
        assert [p.period for p in sort_periods(periods)] == ["2021", "2022", "2023"]

    def test_quarter_labels_sort_chronologically(self):
        periods = [_period("2024Q1"), _period("2023Q3"), _period("2023Q1")]
        assert [p.period for p in sort_periods(periods)] == ["2023Q1", "2023Q3", "2024Q1"]

    def test_ratios_follow_sorted_order(self):
        periods = [
            _period("2023", revenue=200.0, operating_income=20.0, net_income=10.0,
                    assets=400.0, liabilities=100.0, equity=300.0),
            _period("2021", revenue=100.0, operating_income=5.0, net_income=4.0,
                    assets=200.0, liabilities=50.0, equity=150.0),
            _period("2022", revenue=150.0),
        ]
        ratios = compute_ratios(periods)

        assert [r.period for r in ratios] == ["2021", "2022", "2023"]
        latest = ratios[-1]
        assert latest.operating_margin == pytest.approx(10.0)
        assert latest.net_margin == pytest.approx(5.0)
        assert latest.roe == pytest.approx(10.0 / 300.0 * 100)
        assert latest.roa == pytest.approx(2.5)
        assert latest.debt_ratio == pytest.approx(100.0 / 300.0 * 100)

    def test_zero_denominators(self):
        (ratio,) = compute_ratios([_period("2022", revenue=150.0)])
        assert ratio.roe == 0.0
        assert ratio.debt_ratio == 0.0
        assert ratio.net_margin == 0.0

    def test_with_symbol(self):
        period = FinancialPeriod(symbol="", period="2023", period_type=PeriodType.ANNUAL)
        assert period.with_symbol("005930").symbol == "005930"
        assert period.symbol == ""


class TestMacroModels:
    def test_ecos_series_id(self):
        assert EcosSeriesSpec("722Y001", "0101000", "기준금리", "%").series_id == "722Y001_0101000"

    def test_lookback_start(self):
        assert Lookback.ONE_MONTH.start(date(2024, 5, 17)) == date(2024, 4, 16)
        assert Lookback("3Y") is Lookback.THREE_YEARS


class TestRankingModels:
    def test_empty_defaults(self):
        assert RankedPage().items == []
        assert not RankedPage().has_more
        snapshot = RankingSnapshot()
        assert snapshot.items == []
        assert snapshot.base_date == ""
