# ==============================================================================
# app/analytics/facts.py
# ------------------------------------------------------------------------------
# Immutable value types shared by every stage of the analytics engine.
# ==============================================================================

from dataclasses import dataclass, field
from datetime import date, datetime

import pandas as pd

from .errors import ContractViolation


def to_date(value):
    """
    Coerces an ISO string, a date, a datetime or a pandas Timestamp into a
    plain `datetime.date`.

    Raises:
        ContractViolation: If the value is missing or cannot be parsed.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        raise ContractViolation("A date is required but none was supplied.")
    try:
        parsed = pd.to_datetime(value)
    except (ValueError, TypeError) as e:
        raise ContractViolation(f"'{value}' is not a valid date: {e}") from e
    if pd.isna(parsed):
        raise ContractViolation(f"'{value}' is not a valid date.")
    return parsed.date()


def to_id(value):
    """
    Coerces a client, seller or invoice id to a stripped string, or None when
    absent. Whole floats lose their '.0' so 7 and 7.0 name the same entity.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class DateRange:
    """An inclusive [start, end] window of invoice dates."""
    start: date
    end: date

    def __post_init__(self):
        object.__setattr__(self, 'start', to_date(self.start))
        object.__setattr__(self, 'end', to_date(self.end))
        if self.start > self.end:
            raise ContractViolation(
                f"Invalid date range: start {self.start.isoformat()} is after end {self.end.isoformat()}."
            )

    def contains(self, day):
        return self.start <= day <= self.end

    @property
    def days(self):
        return (self.end - self.start).days + 1

    def __str__(self):
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


@dataclass(frozen=True)
class LineFact:
    """One normalized invoice product-line."""
    product_name: str
    sold_units: float
    gifted_units: float
    gross_amount: float
    net_amount: float
    commission_paid: float
    commission_rate_percent: float
    invoice_id: str
    invoice_date: date
    client_id: str = None
    seller_id: str = None
    unit_price: float = 0.0

    @property
    def gift_value(self):
        return max(0.0, self.gross_amount - self.net_amount)

    @property
    def commission_correct(self):
        # Always recomputed per line; rates differ between products.
        return self.net_amount * self.commission_rate_percent / 100

    @property
    def commission_diff(self):
        return self.commission_paid - self.commission_correct

    def as_dict(self):
        return {
            'invoice_id': self.invoice_id,
            'invoice_date': self.invoice_date,
            'client_id': self.client_id,
            'seller_id': self.seller_id,
            'product_name': self.product_name,
            'sold_units': self.sold_units,
            'gifted_units': self.gifted_units,
            'gross_amount': self.gross_amount,
            'net_amount': self.net_amount,
            'gift_value': self.gift_value,
            'commission_paid': self.commission_paid,
            'commission_correct': self.commission_correct,
            'commission_rate_percent': self.commission_rate_percent,
            'unit_price': self.unit_price,
        }


@dataclass(frozen=True)
class Aggregate:
    """
    Summed figures for one grouping key (a product name, client id, seller
    id, zone, day or month). `invoice_ids` holds the distinct invoices that
    contributed, so two aggregates can be combined without double counting.
    """
    key: str
    sold_units: float = 0.0
    gifted_units: float = 0.0
    net_revenue: float = 0.0
    gift_value: float = 0.0
    commission_paid: float = 0.0
    commission_correct: float = 0.0
    invoice_ids: frozenset = field(default_factory=frozenset)

    @property
    def commission_diff(self):
        return self.commission_paid - self.commission_correct

    @property
    def invoice_count(self):
        return len(self.invoice_ids)

    @property
    def total_units(self):
        return self.sold_units + self.gifted_units

    @property
    def gross_revenue(self):
        return self.net_revenue + self.gift_value

    @property
    def gift_ratio(self):
        total = self.total_units
        return self.gifted_units / total if total > 0 else 0.0

    @property
    def margin_impact(self):
        gross = self.gross_revenue
        return self.gift_value / gross if gross > 0 else 0.0

    @property
    def avg_per_invoice(self):
        count = self.invoice_count
        return self.net_revenue / count if count > 0 else 0.0


@dataclass(frozen=True)
class GrowthFigure:
    current: float
    previous: float
    growth_percent: float


@dataclass(frozen=True)
class Reconciliation:
    total_paid: float
    total_correct: float
    diff: float
    requires_review: bool
