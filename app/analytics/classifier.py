# ==============================================================================
# app/analytics/classifier.py
# ------------------------------------------------------------------------------
# Maps aggregates (and growth figures) to status labels.
# ==============================================================================

from .errors import ContractViolation
from .settings import resolve_config

PRODUCT = 'product'
SELLER = 'seller'
CLIENT = 'client'
ZONE = 'zone'

HEALTHY = 'healthy'
WATCH = 'watch'
DANGER = 'danger'

GROWING = 'growing'
STABLE = 'stable'
DECLINING = 'declining'
INACTIVE = 'inactive'

# Zones are scored on gifting, like products and sellers.
MARGIN_KINDS = (PRODUCT, SELLER, ZONE)


def _margin_status(aggregate, config):
    gift_ratio = aggregate.gift_ratio
    margin_impact = aggregate.margin_impact
    # Danger first: both bands can match at once.
    if gift_ratio > config.GIFT_RATIO_DANGER or margin_impact > config.MARGIN_IMPACT_DANGER:
        return DANGER
    if gift_ratio > config.GIFT_RATIO_WATCH or margin_impact > config.MARGIN_IMPACT_WATCH:
        return WATCH
    return HEALTHY


def _client_status(growth, config):
    if growth.current == 0 and growth.previous == 0:
        return INACTIVE
    # A client that stopped buying (0 now, >0 before) is declining, not inactive.
    if growth.growth_percent > config.CLIENT_GROWTH_THRESHOLD:
        return GROWING
    if growth.growth_percent < -config.CLIENT_GROWTH_THRESHOLD:
        return DECLINING
    return STABLE


def classify(entity_kind, aggregate, growth=None, config=None):
    """
    Args:
        entity_kind (str): 'product', 'seller', 'zone' or 'client'.
        aggregate (Aggregate): Figures for the current window. May be None
            for a client that only bought in the previous window.
        growth (GrowthFigure): Required for clients, ignored otherwise.

    Returns:
        str: healthy/watch/danger, or growing/stable/declining/inactive.
    """
    config = resolve_config(config)
    if entity_kind in MARGIN_KINDS:
        if aggregate is None:
            raise ContractViolation(f"A {entity_kind} status needs an aggregate.")
        return _margin_status(aggregate, config)
    if entity_kind == CLIENT:
        if growth is None:
            raise ContractViolation("A client status needs a growth figure for the current and previous periods.")
        return _client_status(growth, config)
    raise ContractViolation(f"Unknown entity kind '{entity_kind}'.")


def classify_all(entity_kind, aggregates, growth_by_key=None, config=None):
    """Status for every key of a dimension."""
    config = resolve_config(config)
    growth_by_key = growth_by_key or {}
    if entity_kind == CLIENT:
        keys = sorted(set(aggregates) | set(growth_by_key))
        return {key: classify(CLIENT, aggregates.get(key), growth_by_key.get(key), config) for key in keys}
    return {key: classify(entity_kind, agg, growth_by_key.get(key), config) for key, agg in aggregates.items()}
