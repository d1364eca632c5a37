# ==============================================================================
# app/analytics/reconciler.py
# ------------------------------------------------------------------------------
# Compares the commission recorded on each line with the commission it
# should have earned (net amount x line percentage).
# ==============================================================================

import logging

from .errors import ContractViolation
from .facts import Reconciliation
from .settings import resolve_config


def reconcile(facts, config=None):
    """
    Portfolio-wide commission check.

    Returns:
        Reconciliation: totals plus `requires_review`, set when the absolute
        difference exceeds COMMISSION_REVIEW_THRESHOLD. A positive diff means
        more was paid than earned.
    """
    config = resolve_config(config)
    total_paid = 0.0
    total_correct = 0.0
    for fact in facts:
        total_paid += fact.commission_paid
        total_correct += fact.commission_correct

    diff = total_paid - total_correct
    requires_review = abs(diff) > config.COMMISSION_REVIEW_THRESHOLD
    if requires_review:
        logging.warning(
            f"Commission mismatch of {diff:,.2f} exceeds the review threshold "
            f"({config.COMMISSION_REVIEW_THRESHOLD:,.2f})."
        )
    return Reconciliation(
        total_paid=total_paid,
        total_correct=total_correct,
        diff=diff,
        requires_review=requires_review,
    )


def line_discrepancies(facts, tolerance=0.01):
    """
    Lines whose recorded commission differs from the recomputed one by more
    than `tolerance`, largest absolute difference first.
    """
    rows = []
    for fact in facts:
        diff = fact.commission_diff
        if abs(diff) > tolerance:
            rows.append({
                'invoice_id': fact.invoice_id,
                'invoice_date': fact.invoice_date,
                'product_name': fact.product_name,
                'seller_id': fact.seller_id,
                'net_amount': fact.net_amount,
                'commission_rate_percent': fact.commission_rate_percent,
                'commission_paid': fact.commission_paid,
                'commission_correct': fact.commission_correct,
                'commission_diff': diff,
            })
    rows.sort(key=lambda r: (-abs(r['commission_diff']), r['invoice_id'], r['product_name']))
    return rows


def split_commission(amount, seller_share):
    """Splits a commission between the seller and the house."""
    if not 0 <= seller_share <= 1:
        raise ContractViolation(f"Seller share must be between 0 and 1 (got {seller_share}).")
    seller_part = amount * seller_share
    return {'seller': seller_part, 'house': amount - seller_part}
