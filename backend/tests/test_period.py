"""Unit tests for period resolution and financial-year labels."""
from datetime import date

import pytest

from kosh_ledger.core.errors import InvalidPeriodError
from kosh_ledger.engine.period import (
    Period,
    filing_period,
    financial_year,
    month_to_date_range,
    resolve_period,
)
from kosh_ledger.models.enums import PeriodType


class TestResolvePeriod:
    def test_explicit_range(self):
        p = resolve_period(date(2024, 1, 5), date(2024, 1, 20))
        assert p == Period(date(2024, 1, 5), date(2024, 1, 20))
        assert p.days() == 16

    def test_single_day_range(self):
        p = resolve_period(date(2024, 1, 5), date(2024, 1, 5))
        assert p.contains(date(2024, 1, 5))
        assert p.next_day() == date(2024, 1, 6)

    def test_start_after_end_rejected(self):
        with pytest.raises(InvalidPeriodError):
            resolve_period(date(2024, 2, 1), date(2024, 1, 31))

    def test_missing_end_rejected(self):
        with pytest.raises(InvalidPeriodError):
            resolve_period(start_date=date(2024, 2, 1))

    def test_financial_year(self):
        p = resolve_period(period_type="year", year=2024)
        assert p == Period(date(2024, 4, 1), date(2025, 3, 31))

    @pytest.mark.parametrize(
        "quarter,start,end",
        [
            (1, date(2024, 4, 1), date(2024, 6, 30)),
            (2, date(2024, 7, 1), date(2024, 9, 30)),
            (3, date(2024, 10, 1), date(2024, 12, 31)),
            (4, date(2025, 1, 1), date(2025, 3, 31)),
        ],
    )
    def test_quarters_follow_financial_year(self, quarter, start, end):
        p = resolve_period(period_type=PeriodType.QUARTER, year=2024, quarter=quarter)
        assert (p.start, p.end) == (start, end)

    def test_month_is_calendar_month(self):
        p = resolve_period(period_type="month", year=2024, month=2)
        assert p == Period(date(2024, 2, 1), date(2024, 2, 29))

    def test_quarter_without_number(self):
        with pytest.raises(InvalidPeriodError):
            resolve_period(period_type="quarter", year=2024)

    def test_quarter_out_of_range(self):
        with pytest.raises(InvalidPeriodError):
            resolve_period(period_type="quarter", year=2024, quarter=5)

    def test_month_without_number(self):
        with pytest.raises(InvalidPeriodError):
            resolve_period(period_type="month", year=2024)

    def test_month_out_of_range(self):
        with pytest.raises(InvalidPeriodError):
            resolve_period(period_type="month", year=2024, month=13)

    def test_missing_year(self):
        with pytest.raises(InvalidPeriodError):
            resolve_period(period_type="year")

    def test_unknown_period_type(self):
        with pytest.raises(InvalidPeriodError):
            resolve_period(period_type="fortnight", year=2024)


class TestFinancialYear:
    def test_april_starts_new_year(self):
        assert financial_year(date(2025, 4, 1)) == "2025-26"

    def test_march_belongs_to_previous_year(self):
        assert financial_year(date(2025, 3, 31)) == "2024-25"

    def test_century_rollover(self):
        assert financial_year(date(2099, 5, 1)) == "2099-00"

    def test_january(self):
        assert financial_year(date(2024, 1, 15)) == "2023-24"


class TestDefaults:
    def test_month_to_date_range_covers_whole_month(self):
        p = month_to_date_range(date(2024, 1, 15))
        assert p == Period(date(2024, 1, 1), date(2024, 1, 31))

    def test_filing_period_uses_last_month(self):
        q4 = resolve_period(period_type="quarter", year=2024, quarter=4)
        assert filing_period(q4) == "032025"
        assert filing_period(resolve_period(period_type="month", year=2024, month=9)) == "092024"
