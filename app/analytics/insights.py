# ==============================================================================
# app/analytics/insights.py
# ------------------------------------------------------------------------------
# Human-readable findings derived from the aggregates.
# ==============================================================================

from .aggregator import rank
from .classifier import DANGER, PRODUCT, classify
from .settings import resolve_config


def _total_gift_value(aggregates):
    return sum(agg.gift_value for agg in aggregates.values())


def generate_insights(by_product, by_seller, reconciliation, config=None, seller_names=None):
    """
    Builds the insight list, always in the same order:
      1. share of the gifted value coming from the top-gifting seller
      2. the most-gifted product giving away more units than it sells
      3. total value given away
      4. revenue recovered by cutting gifts by GIFT_REDUCTION_SCENARIO
      5. commission mismatch above the review threshold

    Args:
        by_product (dict): product name -> Aggregate.
        by_seller (dict): seller id -> Aggregate.
        reconciliation (Reconciliation): Output of reconcile() for the same facts.
        seller_names (dict, optional): seller id -> display name.

    Returns:
        list[str]: Empty when nothing triggers.
    """
    config = resolve_config(config)
    seller_names = seller_names or {}
    insights = []
    total_gift_value = _total_gift_value(by_product)

    sellers = [agg for key, agg in by_seller.items() if key != config.UNASSIGNED_KEY]
    if sellers and total_gift_value > 0:
        top_seller = rank(sellers, 'gift_value', limit=1)[0]
        if top_seller.gift_value > 0:
            share = top_seller.gift_value / total_gift_value * 100
            name = seller_names.get(top_seller.key, top_seller.key)
            insights.append(f"{share:.0f}% of the gifted value comes from seller {name}")

    if by_product:
        most_gifted = rank(by_product, 'gift_value', limit=1)[0]
        if most_gifted.gifted_units > most_gifted.sold_units:
            insights.append(
                f'"{most_gifted.key}" gives away more units than it sells '
                f"({most_gifted.gifted_units:,.0f} gifted vs {most_gifted.sold_units:,.0f} sold)"
            )

    if total_gift_value > 0:
        insights.append(f"Promotions gave away {total_gift_value:,.2f} in product value this period")
        recovered = total_gift_value * config.GIFT_REDUCTION_SCENARIO
        insights.append(
            f"Reducing gifts by {config.GIFT_REDUCTION_SCENARIO:.0%} would raise net revenue by {recovered:,.2f}"
        )

    if reconciliation is not None and reconciliation.requires_review:
        if reconciliation.diff > 0:
            insights.append(f"Commissions overpaid by {reconciliation.diff:,.2f}; requires review")
        else:
            insights.append(f"Commissions underpaid by {-reconciliation.diff:,.2f}; requires review")

    return insights


def detect_anomalies(by_product, config=None):
    """Portfolio-level warnings: heavy gifting, large offer losses, danger products."""
    config = resolve_config(config)
    anomalies = []

    sold = sum(agg.sold_units for agg in by_product.values())
    gifted = sum(agg.gifted_units for agg in by_product.values())
    gift_ratio = gifted / (sold + gifted) if (sold + gifted) > 0 else 0.0
    if gift_ratio > config.ANOMALY_GIFT_RATIO:
        anomalies.append(f"High gift share: {gift_ratio:.0%} of units are gifted")

    total_gift_value = _total_gift_value(by_product)
    if total_gift_value > config.ANOMALY_GIFT_VALUE:
        anomalies.append(f"Offer losses of {total_gift_value:,.2f} in the period")

    danger = [key for key, agg in by_product.items() if classify(PRODUCT, agg, config=config) == DANGER]
    if danger:
        anomalies.append(f"{len(danger)} product(s) significantly affect the margin")

    return anomalies


def trend_alerts(growth_by_key, config=None, limit=None):
    """
    The keys growing or declining faster than CLIENT_GROWTH_THRESHOLD percent.

    Returns:
        dict: {'growing': [(key, GrowthFigure)], 'declining': [...]}, each
        list strongest move first and cut to `limit` (TREND_ALERT_LIMIT by default).
    """
    config = resolve_config(config)
    limit = config.TREND_ALERT_LIMIT if limit is None else limit
    threshold = config.CLIENT_GROWTH_THRESHOLD

    growing = [(k, g) for k, g in growth_by_key.items() if g.growth_percent > threshold]
    declining = [(k, g) for k, g in growth_by_key.items() if g.growth_percent < -threshold]
    growing.sort(key=lambda item: (-item[1].growth_percent, item[0]))
    declining.sort(key=lambda item: (item[1].growth_percent, item[0]))
    return {'growing': growing[:limit], 'declining': declining[:limit]}
