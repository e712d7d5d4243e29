"""
Period resolution for ledgers and GST filings.

A period is always a pair of calendar dates, both inclusive. GST periods
follow the Indian financial year (April to March):

    year     2024          -> 2024-04-01 .. 2025-03-31
    quarter  2024, Q4      -> 2025-01-01 .. 2025-03-31
    month    2024, 9       -> 2024-09-01 .. 2024-09-30

Nothing here reads the clock; callers pass `today` where a default is needed.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from kosh_ledger.core.errors import InvalidPeriodError
from kosh_ledger.models.enums import PeriodType

# First calendar month of each financial-year quarter
_QUARTER_START_MONTH = {1: 4, 2: 7, 3: 10, 4: 1}


@dataclass(frozen=True)
class Period:
    start: date
    end: date

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    def days(self) -> int:
        return (self.end - self.start).days + 1

    def next_day(self) -> date:
        return self.end + timedelta(days=1)


def _month_span(year: int, month: int) -> Period:
    first = date(year, month, 1)
    return Period(first, first + relativedelta(months=1) - timedelta(days=1))


def resolve_period(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    period_type: Optional[PeriodType | str] = None,
    year: Optional[int] = None,
    month: Optional[int] = None,
    quarter: Optional[int] = None,
) -> Period:
    """Turn an explicit range or a (type, year, month/quarter) description into dates."""
    if period_type is None:
        if start_date is None or end_date is None:
            raise InvalidPeriodError("Provide either start and end dates or a period type")
        if start_date > end_date:
            raise InvalidPeriodError(f"Start date {start_date} is after end date {end_date}")
        return Period(start_date, end_date)

    try:
        ptype = PeriodType(period_type)
    except ValueError:
        raise InvalidPeriodError(f"Unknown period type: {period_type!r}") from None

    if year is None:
        raise InvalidPeriodError(f"A {ptype.value} period requires a year")

    if ptype is PeriodType.YEAR:
        return Period(date(year, 4, 1), date(year + 1, 3, 31))

    if ptype is PeriodType.QUARTER:
        if quarter not in _QUARTER_START_MONTH:
            raise InvalidPeriodError(f"Quarter must be 1-4, got {quarter!r}")
        start_month = _QUARTER_START_MONTH[quarter]
        start_year = year if quarter < 4 else year + 1
        first = date(start_year, start_month, 1)
        return Period(first, first + relativedelta(months=3) - timedelta(days=1))

    if month is None or not 1 <= month <= 12:
        raise InvalidPeriodError(f"Month must be 1-12, got {month!r}")
    return _month_span(year, month)


def financial_year(d: date) -> str:
    """Financial year label used for counter resets, e.g. 2025-26."""
    if d.month >= 4:
        return f"{d.year}-{(d.year + 1) % 100:02d}"
    return f"{d.year - 1}-{d.year % 100:02d}"


def month_to_date_range(today: date) -> Period:
    """Whole calendar month containing `today` (default ledger window)."""
    return _month_span(today.year, today.month)


def filing_period(period: Period) -> str:
    """GSTR return period code (MMYYYY) of the period's last month."""
    return f"{period.end.month:02d}{period.end.year}"
