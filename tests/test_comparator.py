# tests/test_comparator.py

import math

import pytest

from app.analytics.comparator import compare_aggregates, compare_growth
from app.analytics.errors import ContractViolation
from app.analytics.facts import Aggregate

TOLERANCE = 0.01


def test_growth_from_previous_value():
    growth = compare_growth(Aggregate(key='C1', net_revenue=115), Aggregate(key='C1', net_revenue=100))

    assert abs(growth.growth_percent - 15) < TOLERANCE
    assert growth.current == 115
    assert growth.previous == 100


def test_new_activity_counts_as_full_growth():
    growth = compare_growth(500, None)

    assert growth.growth_percent == 100
    assert growth.previous == 0


def test_no_activity_in_either_window():
    assert compare_growth(0, 0).growth_percent == 0
    assert compare_growth(None, None).growth_percent == 0


def test_lost_activity_is_minus_hundred():
    assert abs(compare_growth(None, 250).growth_percent + 100) < TOLERANCE


def test_growth_on_another_metric():
    current = Aggregate(key='total', commission_paid=60)
    previous = Aggregate(key='total', commission_paid=80)

    growth = compare_growth(current, previous, metric='commission_paid')

    assert abs(growth.growth_percent + 25) < TOLERANCE


@pytest.mark.parametrize('bad', [-1, math.inf, math.nan])
def test_invalid_values_are_rejected(bad):
    with pytest.raises(ContractViolation):
        compare_growth(bad, 10)
    with pytest.raises(ContractViolation):
        compare_growth(10, bad)


def test_growth_is_always_finite():
    for current, previous in [(0, 0), (1, 0), (0, 1), (1e12, 1e-6)]:
        assert math.isfinite(compare_growth(current, previous).growth_percent)


def test_compare_aggregates_covers_both_windows():
    current = {'C1': Aggregate(key='C1', net_revenue=200), 'C3': Aggregate(key='C3', net_revenue=50)}
    previous = {'C1': Aggregate(key='C1', net_revenue=100), 'C2': Aggregate(key='C2', net_revenue=80)}

    result = compare_aggregates(current, previous)

    assert list(result) == ['C1', 'C2', 'C3']
    assert abs(result['C1'].growth_percent - 100) < TOLERANCE
    assert abs(result['C2'].growth_percent + 100) < TOLERANCE
    assert result['C3'].growth_percent == 100
