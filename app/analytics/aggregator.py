# ==============================================================================
# app/analytics/aggregator.py
# ------------------------------------------------------------------------------
# Folds LineFact records into per-key Aggregates (product, client, seller,
# zone, day, month) over an inclusive date window.
# ==============================================================================

import logging

import pandas as pd

from .errors import ContractViolation
from .facts import Aggregate
from .settings import resolve_config

TOTAL_KEY = 'total'

# Columns summed per group. 'net_amount' becomes the aggregate's net_revenue.
SUM_COLUMNS = ['sold_units', 'gifted_units', 'net_amount', 'gift_value', 'commission_paid', 'commission_correct']

RANK_METRICS = (
    'net_revenue', 'gross_revenue', 'gift_value', 'commission_diff', 'commission_paid',
    'commission_correct', 'sold_units', 'gifted_units', 'total_units', 'invoice_count',
    'gift_ratio', 'margin_impact', 'avg_per_invoice',
)

# --- Key Functions ---


def product_key(fact):
    return fact.product_name


def client_key(fact):
    return fact.client_id


def seller_key(fact):
    return fact.seller_id


def day_key(fact):
    return fact.invoice_date.isoformat()


def month_key(fact):
    return fact.invoice_date.strftime('%Y-%m')


def zone_key(client_zones):
    """
    Builds a key function grouping facts by the zone (province) of their
    client. `client_zones` maps client id to zone name; clients without a
    zone fall into the unassigned bucket.
    """
    def _zone(fact):
        if not fact.client_id:
            return None
        return client_zones.get(fact.client_id)
    return _zone


KEY_FUNCTIONS = {
    'product': product_key,
    'client': client_key,
    'seller': seller_key,
    'day': day_key,
    'month': month_key,
}


def resolve_key_fn(key_fn):
    if callable(key_fn):
        return key_fn
    try:
        return KEY_FUNCTIONS[key_fn]
    except (KeyError, TypeError):
        raise ContractViolation(
            f"Unknown grouping '{key_fn}'. Expected one of: {', '.join(KEY_FUNCTIONS)} or a callable."
        ) from None


def _group_key(key_fn, fact, config):
    key = key_fn(fact)
    if key is None or str(key).strip() == '':
        return config.UNASSIGNED_KEY
    key = str(key)
    if key == config.UNASSIGNED_KEY:
        # The sentinel only ever names facts without a key.
        raise ContractViolation(
            f"'{key}' is reserved for lines without a key (invoice '{fact.invoice_id}'). "
            f"Rename the entity or change UNASSIGNED_KEY."
        )
    return key


def filter_facts(facts, date_range=None):
    """Keeps facts dated inside the inclusive window; None keeps everything."""
    if date_range is None:
        return list(facts)
    return [f for f in facts if date_range.contains(f.invoice_date)]


def facts_to_frame(facts, key_fn, config=None):
    """Tabulates facts with their resolved grouping key in a 'key' column."""
    config = resolve_config(config)
    key_fn = resolve_key_fn(key_fn)
    rows = []
    for fact in facts:
        row = fact.as_dict()
        row['key'] = _group_key(key_fn, fact, config)
        rows.append(row)
    return pd.DataFrame(rows)


# --- Aggregation ---


def aggregate(facts, key_fn, date_range=None, config=None):
    """
    Groups facts by `key_fn` and sums them.

    Args:
        facts (list[LineFact]): Normalized lines.
        key_fn (callable | str): A function of a LineFact, or one of
            'product', 'client', 'seller', 'day', 'month'.
        date_range (DateRange, optional): Inclusive window on invoice date.
        config (EngineConfig, optional): Supplies the unassigned sentinel.

    Returns:
        dict: key -> Aggregate, in key order.
    """
    config = resolve_config(config)
    key_fn = resolve_key_fn(key_fn)
    in_range = filter_facts(facts, date_range)
    if not in_range:
        return {}

    df = facts_to_frame(in_range, key_fn, config)
    grouped = df.groupby('key', sort=True)
    sums = grouped[SUM_COLUMNS].sum()
    invoice_sets = {key: frozenset(ids) for key, ids in grouped['invoice_id']}

    results = {}
    for key, row in sums.iterrows():
        results[key] = Aggregate(
            key=key,
            sold_units=float(row['sold_units']),
            gifted_units=float(row['gifted_units']),
            net_revenue=float(row['net_amount']),
            gift_value=float(row['gift_value']),
            commission_paid=float(row['commission_paid']),
            commission_correct=float(row['commission_correct']),
            invoice_ids=invoice_sets[key],
        )
    logging.debug(f"Aggregated {len(in_range)} facts into {len(results)} groups (window: {date_range}).")
    return results


def summarize(facts, date_range=None, config=None):
    """The whole portfolio as a single Aggregate keyed 'total'."""
    totals = aggregate(facts, lambda fact: TOTAL_KEY, date_range, config)
    return totals.get(TOTAL_KEY, Aggregate(key=TOTAL_KEY))


def combine(first, second):
    """Sums two aggregates of the same key, counting shared invoices once."""
    if first.key != second.key:
        raise ContractViolation(f"Cannot combine aggregates of different keys: '{first.key}' and '{second.key}'.")
    return Aggregate(
        key=first.key,
        sold_units=first.sold_units + second.sold_units,
        gifted_units=first.gifted_units + second.gifted_units,
        net_revenue=first.net_revenue + second.net_revenue,
        gift_value=first.gift_value + second.gift_value,
        commission_paid=first.commission_paid + second.commission_paid,
        commission_correct=first.commission_correct + second.commission_correct,
        invoice_ids=first.invoice_ids | second.invoice_ids,
    )


def merge_aggregate_maps(first, second):
    merged = dict(first)
    for key, agg in second.items():
        merged[key] = combine(merged[key], agg) if key in merged else agg
    return dict(sorted(merged.items()))


# --- Ranking and Breakdowns ---


def _check_metric(metric):
    if metric not in RANK_METRICS:
        raise ContractViolation(f"Unknown metric '{metric}'. Expected one of: {', '.join(RANK_METRICS)}")


def metric_value(agg, metric):
    _check_metric(metric)
    return getattr(agg, metric)


def rank(aggregates, metric='net_revenue', limit=None):
    """
    Orders aggregates by `metric` descending; ties break on the key so the
    order is deterministic.
    """
    _check_metric(metric)
    if limit is not None and limit < 0:
        raise ContractViolation(f"'limit' must not be negative (got {limit}).")
    items = aggregates.values() if isinstance(aggregates, dict) else aggregates
    ordered = sorted(items, key=lambda agg: (-getattr(agg, metric), agg.key))
    return ordered[:limit] if limit is not None else ordered


def breakdown(facts, outer, inner, date_range=None, config=None):
    """
    Two-level grouping, e.g. breakdown(facts, 'product', 'client') gives
    {product: {client_id: Aggregate}}.
    """
    config = resolve_config(config)
    outer_fn = resolve_key_fn(outer)
    resolve_key_fn(inner)
    groups = {}
    for fact in filter_facts(facts, date_range):
        groups.setdefault(_group_key(outer_fn, fact, config), []).append(fact)
    return {key: aggregate(group, inner, config=config) for key, group in sorted(groups.items())}


def _bucket_keys(start, end, granularity):
    if granularity == 'month':
        return [p.strftime('%Y-%m') for p in pd.period_range(start=start, end=end, freq='M')]
    return [d.strftime('%Y-%m-%d') for d in pd.date_range(start=start, end=end, freq='D')]


def time_series(facts, date_range=None, granularity='month', fill=False, config=None):
    """
    Aggregates per calendar bucket, ordered chronologically. With `fill`,
    buckets without sales are included with zero values.
    """
    if granularity not in ('day', 'month'):
        raise ContractViolation(f"Unknown granularity '{granularity}'. Expected 'day' or 'month'.")
    buckets = aggregate(facts, granularity, date_range, config)

    if fill:
        if date_range is not None:
            start, end = date_range.start, date_range.end
        elif facts:
            dates = [f.invoice_date for f in facts]
            start, end = min(dates), max(dates)
        else:
            return []
        for key in _bucket_keys(start, end, granularity):
            buckets.setdefault(key, Aggregate(key=key))

    return [buckets[key] for key in sorted(buckets)]
