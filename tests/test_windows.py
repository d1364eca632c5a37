# tests/test_windows.py

from datetime import date

import pytest

from app.analytics.errors import ContractViolation
from app.analytics.facts import DateRange
from app.analytics.windows import (month_range, period_range, preceding_range, previous_month_range, quarter_range,
                                   semester_range, trailing_months)


def test_month_range_handles_leap_years():
    assert month_range('2024-02-10') == DateRange(date(2024, 2, 1), date(2024, 2, 29))
    assert month_range(date(2025, 2, 10)) == DateRange(date(2025, 2, 1), date(2025, 2, 28))


def test_previous_month_crosses_the_year():
    assert previous_month_range(date(2025, 1, 15)) == DateRange(date(2024, 12, 1), date(2024, 12, 31))


def test_quarter_and_semester():
    assert quarter_range(date(2025, 5, 20)) == DateRange(date(2025, 4, 1), date(2025, 6, 30))
    assert semester_range(date(2025, 8, 1)) == DateRange(date(2025, 7, 1), date(2025, 12, 31))


def test_preceding_range_of_a_month_is_the_previous_month():
    assert preceding_range(month_range(date(2025, 3, 1))) == DateRange(date(2025, 2, 1), date(2025, 2, 28))


def test_preceding_range_of_a_quarter_is_the_previous_quarter():
    assert preceding_range(quarter_range(date(2025, 2, 1))) == DateRange(date(2024, 10, 1), date(2024, 12, 31))


def test_preceding_range_of_a_custom_window_has_equal_length():
    window = DateRange(date(2025, 3, 10), date(2025, 3, 19))

    previous = preceding_range(window)

    assert previous == DateRange(date(2025, 2, 28), date(2025, 3, 9))
    assert previous.days == window.days


def test_trailing_months_oldest_first():
    months = trailing_months(date(2025, 2, 14), count=3)

    assert [m.start for m in months] == [date(2024, 12, 1), date(2025, 1, 1), date(2025, 2, 1)]
    assert months[-1].end == date(2025, 2, 28)


def test_period_range_by_name():
    reference = date(2025, 5, 20)

    assert period_range('month', reference) == DateRange(date(2025, 5, 1), date(2025, 5, 31))
    assert period_range('previous_month', reference) == DateRange(date(2025, 4, 1), date(2025, 4, 30))
    assert period_range('quarter', reference) == DateRange(date(2025, 4, 1), date(2025, 6, 30))
    assert period_range('semester', reference) == DateRange(date(2025, 1, 1), date(2025, 6, 30))
    assert period_range('last_12_months', reference) == DateRange(date(2024, 6, 1), date(2025, 5, 31))


def test_unknown_period_is_rejected():
    with pytest.raises(ContractViolation):
        period_range('fortnight', date(2025, 5, 20))
