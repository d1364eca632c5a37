# ==============================================================================
# app/analytics/comparator.py
# ------------------------------------------------------------------------------
# Growth between two disjoint windows. Callers pick the windows; nothing in
# here does date arithmetic.
# ==============================================================================

import math

from .aggregator import metric_value
from .errors import ContractViolation
from .facts import Aggregate, GrowthFigure


def _as_number(value, metric, label):
    if value is None:
        return 0.0
    number = float(metric_value(value, metric)) if isinstance(value, Aggregate) else float(value)
    if not math.isfinite(number) or number < 0:
        raise ContractViolation(f"{label} value must be a finite, non-negative number (got {number}).")
    return number


def compare_growth(current, previous, metric='net_revenue'):
    """
    Percentage change from `previous` to `current`.

    Args:
        current (Aggregate | float | None): Figure for the current window.
        previous (Aggregate | float | None): Figure for the previous window.
            None stands for "no activity" and counts as 0.
        metric (str): Aggregate field compared when Aggregates are passed.

    Returns:
        GrowthFigure: growth_percent is 100 when previous is 0 and current is
        positive, and 0 when both are 0. It is always finite.
    """
    current_value = _as_number(current, metric, 'Current')
    previous_value = _as_number(previous, metric, 'Previous')

    if previous_value > 0:
        growth = (current_value - previous_value) / previous_value * 100
    else:
        growth = 100.0 if current_value > 0 else 0.0

    return GrowthFigure(current=current_value, previous=previous_value, growth_percent=growth)


def compare_aggregates(current_by_key, previous_by_key, metric='net_revenue'):
    """Growth for every key present in either window, in key order."""
    keys = sorted(set(current_by_key) | set(previous_by_key))
    return {
        key: compare_growth(current_by_key.get(key), previous_by_key.get(key), metric)
        for key in keys
    }
