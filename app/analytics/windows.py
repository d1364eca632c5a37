# ==============================================================================
# app/analytics/windows.py
# ------------------------------------------------------------------------------
# Builders for the date windows callers hand to the aggregator and the
# period comparator (month-over-month, quarter, semester, custom).
# ==============================================================================

import calendar
from datetime import timedelta

from .errors import ContractViolation
from .facts import DateRange, to_date


def _shift_month(year, month, delta):
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def month_range(reference):
    """The calendar month containing `reference`."""
    day = to_date(reference)
    last = calendar.monthrange(day.year, day.month)[1]
    return DateRange(day.replace(day=1), day.replace(day=last))


def previous_month_range(reference):
    day = to_date(reference)
    year, month = _shift_month(day.year, day.month, -1)
    return month_range(day.replace(year=year, month=month, day=1))


def _span_range(reference, months):
    day = to_date(reference)
    first_month = ((day.month - 1) // months) * months + 1
    start = day.replace(month=first_month, day=1)
    end_year, end_month = _shift_month(start.year, start.month, months - 1)
    last = calendar.monthrange(end_year, end_month)[1]
    return DateRange(start, start.replace(year=end_year, month=end_month, day=last))


def quarter_range(reference):
    return _span_range(reference, 3)


def semester_range(reference):
    return _span_range(reference, 6)


def preceding_range(date_range):
    """
    The window of equal length ending the day before `date_range` starts.
    A whole calendar month maps to the whole previous month, a quarter to
    the previous quarter.
    """
    start, end = date_range.start, date_range.end
    if start.day == 1 and end == month_range(end).end:
        months = (end.year - start.year) * 12 + end.month - start.month + 1
        prev_year, prev_month = _shift_month(start.year, start.month, -months)
        prev_start = start.replace(year=prev_year, month=prev_month, day=1)
        return DateRange(prev_start, start - timedelta(days=1))
    return DateRange(start - timedelta(days=date_range.days), start - timedelta(days=1))


def trailing_months(reference, count=12):
    """The `count` calendar months ending with the month of `reference`, oldest first."""
    day = to_date(reference)
    ranges = []
    for offset in range(count - 1, -1, -1):
        year, month = _shift_month(day.year, day.month, -offset)
        ranges.append(month_range(day.replace(year=year, month=month, day=1)))
    return ranges


def _last_12_months(reference):
    months = trailing_months(reference, 12)
    return DateRange(months[0].start, months[-1].end)


PERIODS = {
    'month': month_range,
    'previous_month': previous_month_range,
    'quarter': quarter_range,
    'semester': semester_range,
    'last_12_months': _last_12_months,
}


def period_range(period, reference):
    """The named period ('month', 'quarter', ...) containing `reference`."""
    try:
        builder = PERIODS[period]
    except KeyError:
        raise ContractViolation(
            f"Unknown period '{period}'. Expected one of: {', '.join(PERIODS)}"
        ) from None
    return builder(reference)
