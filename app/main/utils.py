# ==============================================================================
# app/main/utils.py
# ------------------------------------------------------------------------------
# Glue between the database, the analytics engine and the JSON responses.
# No business rules live here; figures are passed through unformatted.
# ==============================================================================
from app import db
from app.models import Invoice, InvoiceLine
from app.analytics.reconciler import split_commission


def load_invoices(*date_ranges):
    """Fetches the invoices covering every given window, in engine shape."""
    windows = [r for r in date_ranges if r is not None]
    query = Invoice.query
    if windows:
        start = min(r.start for r in windows)
        end = max(r.end for r in windows)
        query = query.filter(Invoice.invoice_date >= start, Invoice.invoice_date <= end)
    return [inv.to_engine_dict() for inv in query.order_by(Invoice.invoice_date, Invoice.number).all()]


def store_invoices(cleaned_invoices):
    """
    Persists validated invoices in one transaction.

    Returns:
        tuple: (number of invoices stored, list of error messages). Nothing is
        stored when any invoice number already exists.
    """
    numbers = [inv['number'] for inv in cleaned_invoices]
    existing = {row.number for row in Invoice.query.filter(Invoice.number.in_(numbers)).all()}
    if existing:
        return 0, [f"An invoice with number '{n}' already exists." for n in sorted(existing)]

    for data in cleaned_invoices:
        invoice = Invoice(
            number=data['number'], invoice_date=data['date'],
            client_id=data.get('client_id'), seller_id=data.get('seller_id'),
            rest_amount=data.get('rest_amount') or 0,
            rest_percentage=data.get('rest_percentage') or 0,
            rest_commission=data.get('rest_commission') or 0,
        )
        for line in data['lines']:
            invoice.lines.append(InvoiceLine(**{f: line.get(f) for f in InvoiceLine.RAW_FIELDS}))
        db.session.add(invoice)
    db.session.commit()
    return len(cleaned_invoices), []


# --- Serialization ---

def serialize_range(date_range):
    return {'from': date_range.start.isoformat(), 'to': date_range.end.isoformat()}


def serialize_growth(growth):
    if growth is None:
        return None
    return {'current': growth.current, 'previous': growth.previous, 'growth_percent': growth.growth_percent}


def serialize_aggregate(agg, status=None, growth=None):
    data = {
        'key': agg.key,
        'sold_units': agg.sold_units,
        'gifted_units': agg.gifted_units,
        'gift_ratio': agg.gift_ratio,
        'net_revenue': agg.net_revenue,
        'gift_value': agg.gift_value,
        'gross_revenue': agg.gross_revenue,
        'margin_impact': agg.margin_impact,
        'commission_paid': agg.commission_paid,
        'commission_correct': agg.commission_correct,
        'commission_diff': agg.commission_diff,
        'invoice_count': agg.invoice_count,
        'avg_per_invoice': agg.avg_per_invoice,
    }
    if status is not None:
        data['status'] = status
    if growth is not None:
        data['growth'] = serialize_growth(growth)
    return data


def serialize_rows(rows):
    return [serialize_aggregate(r['aggregate'], r['status'], r['growth']) for r in rows]


def _serialize_alerts(alerts):
    return {
        kind: [{'key': key, **serialize_growth(growth)} for key, growth in items]
        for kind, items in alerts.items()
    }


def prepare_frontend_data(report, seller_share):
    """
    Transforms the engine report into a JSON-ready dictionary for the
    dashboard and the report generator.
    """
    dimensions = {}
    for name, analysis in report['dimensions'].items():
        aggregates = analysis['aggregates']
        ordered = sorted(aggregates.values(), key=lambda a: (-a.net_revenue, a.key))
        dimensions[name] = [
            serialize_aggregate(agg, analysis['statuses'].get(agg.key), analysis['growth'].get(agg.key))
            for agg in ordered
        ]

    reconciliation = report['reconciliation']
    discrepancies = [dict(row, invoice_date=row['invoice_date'].isoformat()) for row in report['discrepancies']]

    return {
        'period': serialize_range(report['date_range']),
        'previousPeriod': serialize_range(report['previous_range']),
        'totals': serialize_aggregate(report['totals']),
        'revenueGrowth': serialize_growth(report['revenue_growth']),
        'commissionGrowth': serialize_growth(report['commission_growth']),
        'dimensions': dimensions,
        'reconciliation': {
            'total_paid': reconciliation.total_paid,
            'total_correct': reconciliation.total_correct,
            'diff': reconciliation.diff,
            'requires_review': reconciliation.requires_review,
            'payout_split': split_commission(reconciliation.total_paid, seller_share),
            'discrepancies': discrepancies,
        },
        'monthly': [serialize_aggregate(agg) for agg in report['monthly']],
        'insights': report['insights'],
        'anomalies': report['anomalies'],
        'alerts': {name: _serialize_alerts(alerts) for name, alerts in report['alerts'].items()},
    }
