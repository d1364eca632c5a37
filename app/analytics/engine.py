# ==============================================================================
# app/analytics/engine.py
# ------------------------------------------------------------------------------
# Runs the full pipeline over one invoice snapshot:
# normalize -> aggregate -> reconcile / compare -> classify -> insights.
# ==============================================================================

import logging

from .aggregator import (aggregate, breakdown, filter_facts, rank, summarize, time_series,
                         zone_key)
from .classifier import CLIENT, PRODUCT, SELLER, ZONE, classify_all
from .comparator import compare_aggregates, compare_growth
from .errors import ContractViolation
from .facts import Aggregate, DateRange
from .insights import detect_anomalies, generate_insights, trend_alerts
from .normalizer import normalize_invoices
from .reconciler import line_discrepancies, reconcile
from .settings import resolve_config
from .windows import preceding_range

DIMENSIONS = (PRODUCT, SELLER, CLIENT, ZONE)

# --- Helper Functions ---


def _check_windows(date_range, previous_range):
    for label, window in (('date_range', date_range), ('previous_range', previous_range)):
        if not isinstance(window, DateRange):
            raise ContractViolation(f"'{label}' must be a DateRange, got {type(window).__name__}.")
    if date_range.start <= previous_range.end and previous_range.start <= date_range.end:
        raise ContractViolation(f"The comparison windows overlap: {date_range} and {previous_range}.")


def _key_fn_for(dimension, client_zones):
    if dimension not in DIMENSIONS:
        raise ContractViolation(f"Unknown dimension '{dimension}'. Expected one of: {', '.join(DIMENSIONS)}")
    if dimension == ZONE:
        if client_zones is None:
            raise ContractViolation("The zone dimension needs a client -> zone mapping.")
        return zone_key(client_zones)
    return dimension


def _analyze_dimension(dimension, current_facts, previous_facts, config, client_zones=None):
    key_fn = _key_fn_for(dimension, client_zones)
    current = aggregate(current_facts, key_fn, config=config)
    previous = aggregate(previous_facts, key_fn, config=config)
    growth = compare_aggregates(current, previous, 'net_revenue')
    statuses = classify_all(dimension, current, growth, config)
    logging.info(
        f"  - {dimension}: {len(current)} current group(s), {len(previous)} previous group(s)"
    )
    return {'aggregates': current, 'previous': previous, 'growth': growth, 'statuses': statuses}


def _resolve_windows(date_range, previous_range):
    if previous_range is None and isinstance(date_range, DateRange):
        previous_range = preceding_range(date_range)
    _check_windows(date_range, previous_range)
    return previous_range


# --- Main Orchestrators ---


def build_report(invoices, date_range, previous_range=None, config=None,
                 client_zones=None, seller_names=None):
    """
    Computes every figure the dashboards and reports consume.

    Args:
        invoices (list[dict]): Invoices with their lines, already fetched.
        date_range (DateRange): The current window.
        previous_range (DateRange, optional): The comparison window. Defaults
            to the window of equal length right before `date_range`.
        config (EngineConfig, optional): Thresholds; defaults when omitted.
        client_zones (dict, optional): client id -> zone, enables the zone dimension.
        seller_names (dict, optional): seller id -> display name for insights.

    Returns:
        dict: totals, per-dimension aggregates/growth/statuses, the
        reconciliation, a monthly series, insights, anomalies and alerts.
    """
    config = resolve_config(config)
    previous_range = _resolve_windows(date_range, previous_range)

    logging.info("=" * 80)
    logging.info(f"STARTING ANALYTICS REPORT: current {date_range}, previous {previous_range}")
    logging.info("=" * 80)

    logging.info("--- Starting Pass 1: Normalizing invoice lines. ---")
    facts = normalize_invoices(invoices, config)
    current_facts = filter_facts(facts, date_range)
    previous_facts = filter_facts(facts, previous_range)
    logging.info(
        f"--- Pass 1 Finished. {len(facts)} fact(s): {len(current_facts)} current, {len(previous_facts)} previous. ---"
    )

    logging.info("--- Starting Pass 2: Aggregating, comparing and classifying. ---")
    dimensions = {}
    for dimension in (PRODUCT, SELLER, CLIENT):
        dimensions[dimension] = _analyze_dimension(dimension, current_facts, previous_facts, config)
    if client_zones is not None:
        dimensions[ZONE] = _analyze_dimension(ZONE, current_facts, previous_facts, config, client_zones)
    totals = summarize(current_facts, config=config)
    previous_totals = summarize(previous_facts, config=config)
    logging.info("--- Pass 2 Finished. ---")

    logging.info("--- Starting Pass 3: Reconciling commissions. ---")
    reconciliation = reconcile(current_facts, config)
    discrepancies = line_discrepancies(current_facts)
    logging.info(
        f"  Paid {reconciliation.total_paid:,.2f} vs correct {reconciliation.total_correct:,.2f} "
        f"(diff {reconciliation.diff:,.2f}, {len(discrepancies)} line(s) off)"
    )
    logging.info("--- Pass 3 Finished. ---")

    logging.info("--- Starting Pass 4: Generating insights. ---")
    products = dimensions[PRODUCT]['aggregates']
    insights = generate_insights(
        products, dimensions[SELLER]['aggregates'], reconciliation, config, seller_names
    )
    anomalies = detect_anomalies(products, config)
    alerts = {
        dimension: trend_alerts(dimensions[dimension]['growth'], config)
        for dimension in (CLIENT, PRODUCT, SELLER)
    }
    logging.info(f"--- Pass 4 Finished. {len(insights)} insight(s), {len(anomalies)} anomaly(ies). ---")

    return {
        'date_range': date_range,
        'previous_range': previous_range,
        'totals': totals,
        'previous_totals': previous_totals,
        'revenue_growth': compare_growth(totals, previous_totals, 'net_revenue'),
        'commission_growth': compare_growth(totals, previous_totals, 'commission_paid'),
        'dimensions': dimensions,
        'reconciliation': reconciliation,
        'discrepancies': discrepancies,
        'monthly': time_series(current_facts, date_range, 'month', fill=True, config=config),
        'insights': insights,
        'anomalies': anomalies,
        'alerts': alerts,
    }


def dimension_report(invoices, dimension, date_range, previous_range=None, metric='net_revenue',
                     limit=None, config=None, client_zones=None):
    """
    One dimension, ranked by `metric`. Clients that bought only in the
    previous window are listed with zero current figures so their decline
    stays visible.

    Returns:
        list[dict]: rows of {'aggregate', 'growth', 'status'} in rank order.
    """
    config = resolve_config(config)
    previous_range = _resolve_windows(date_range, previous_range)
    facts = normalize_invoices(invoices, config)
    analysis = _analyze_dimension(
        dimension, filter_facts(facts, date_range), filter_facts(facts, previous_range),
        config, client_zones
    )

    current = dict(analysis['aggregates'])
    if dimension == CLIENT:
        for key in analysis['previous']:
            current.setdefault(key, Aggregate(key=key))

    rows = []
    for agg in rank(current, metric, limit):
        rows.append({
            'aggregate': agg,
            'growth': analysis['growth'][agg.key],
            'status': analysis['statuses'][agg.key],
        })
    return rows


# What each dimension drills down into.
DRILLDOWNS = {
    PRODUCT: CLIENT,
    SELLER: PRODUCT,
    CLIENT: 'month',
}


def detail_report(invoices, dimension, key, date_range, metric='net_revenue', config=None):
    """
    One entity and its drill-down: a product by client, a seller by product,
    a client by month.

    Returns:
        dict | None: {'aggregate', 'drilldown', 'rows'}, or None when the key
        has no activity in the window.
    """
    config = resolve_config(config)
    if dimension not in DRILLDOWNS:
        raise ContractViolation(
            f"No drill-down for '{dimension}'. Expected one of: {', '.join(DRILLDOWNS)}"
        )
    if not isinstance(date_range, DateRange):
        raise ContractViolation(f"'date_range' must be a DateRange, got {type(date_range).__name__}.")

    facts = normalize_invoices(invoices, config)
    current = aggregate(facts, dimension, date_range, config)
    if key not in current:
        return None

    inner = DRILLDOWNS[dimension]
    nested = breakdown(facts, dimension, inner, date_range, config)[key]
    if inner == 'month':
        rows = [nested[month] for month in sorted(nested)]
    else:
        rows = rank(nested, metric)
    return {'aggregate': current[key], 'drilldown': inner, 'rows': rows}
