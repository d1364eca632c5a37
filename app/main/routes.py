# ==============================================================================
# app/main/routes.py
# ------------------------------------------------------------------------------
# JSON API of the main blueprint: invoice import, analytics and settings.
# This file acts as the controller; all figures come from app.analytics.
# ==============================================================================

import json
from datetime import date

from flask import current_app, jsonify, request

from app import db
from app.main import bp
from app.models import AppSetting
from app.analytics import (ContractViolation, DateRange, EngineConfig, build_report, detail_report,
                           dimension_report)
from app.analytics.aggregator import time_series
from app.analytics.normalizer import normalize_invoices
from app.analytics.validator import validate_invoice_payload
from app.analytics.windows import period_range, preceding_range
from app.main.utils import (load_invoices, prepare_frontend_data, serialize_aggregate,
                            serialize_range, serialize_rows, store_invoices)

# --- Helper Functions ---

def _window_from_args(from_arg='from', to_arg='to'):
    """Reads an inclusive window from the query string, or None when absent."""
    start, end = request.args.get(from_arg), request.args.get(to_arg)
    if not start and not end:
        return None
    if not start or not end:
        raise ContractViolation(f"Both '{from_arg}' and '{to_arg}' are required.")
    return DateRange(start, end)


def _current_window():
    """
    ?from=&to= when given, else the named ?period= (month, previous_month,
    quarter, semester, last_12_months) around ?date= or today.
    """
    window = _window_from_args()
    if window is not None:
        return window
    reference = request.args.get('date') or date.today()
    return period_range(request.args.get('period', 'month'), reference)


def _limit_arg():
    limit = request.args.get('limit', type=int)
    if limit is not None and limit < 0:
        raise ContractViolation(f"'limit' must not be negative (got {limit}).")
    return limit


@bp.errorhandler(ContractViolation)
def handle_contract_violation(e):
    current_app.logger.warning(f"Rejected request to {request.path}: {e}")
    return jsonify(error=str(e)), 400

# --- Import ---

@bp.route('/api/invoices', methods=['POST'])
def import_invoices():
    """Bulk import of invoices with their lines."""
    payload = request.get_json(silent=True)
    cleaned, errors = validate_invoice_payload(payload)
    if errors:
        return jsonify(errors=errors), 400

    try:
        stored, errors = store_invoices(cleaned)
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Invoice import failed: {e}", exc_info=True)
        raise
    if errors:
        return jsonify(errors=errors), 409

    current_app.logger.info(f"Imported {stored} invoice(s).")
    return jsonify(imported=stored), 201

# --- Analytics ---

@bp.route('/api/analytics/report')
def analytics_report():
    """Full report for ?from=&to= (defaults to the current month)."""
    date_range = _current_window()
    previous_range = _window_from_args('prev_from', 'prev_to') or preceding_range(date_range)
    config = EngineConfig.from_settings()

    report = build_report(
        load_invoices(date_range, previous_range),
        date_range, previous_range, config
    )
    return jsonify(prepare_frontend_data(report, config.SELLER_COMMISSION_SHARE))


@bp.route('/api/analytics/timeseries')
def analytics_timeseries():
    date_range = _current_window()
    granularity = request.args.get('granularity', 'month')
    config = EngineConfig.from_settings()

    facts = normalize_invoices(load_invoices(date_range), config)
    series = time_series(facts, date_range, granularity, fill=True, config=config)
    return jsonify(
        period=serialize_range(date_range), granularity=granularity,
        series=[serialize_aggregate(agg) for agg in series]
    )


@bp.route('/api/analytics/<dimension>')
def analytics_dimension(dimension):
    """Ranked product, client or seller rows with status and growth."""
    if dimension not in ('product', 'client', 'seller'):
        raise ContractViolation(f"Unknown dimension '{dimension}'. Expected product, client or seller.")
    date_range = _current_window()
    previous_range = _window_from_args('prev_from', 'prev_to') or preceding_range(date_range)
    metric = request.args.get('sort', 'net_revenue')
    limit = _limit_arg()
    config = EngineConfig.from_settings()

    rows = dimension_report(
        load_invoices(date_range, previous_range),
        dimension, date_range, previous_range, metric, limit, config
    )
    return jsonify(dimension=dimension, period=serialize_range(date_range), sort=metric, rows=serialize_rows(rows))


@bp.route('/api/analytics/<dimension>/<key>')
def analytics_detail(dimension, key):
    """One product, seller or client with its drill-down rows."""
    date_range = _current_window()
    metric = request.args.get('sort', 'net_revenue')
    config = EngineConfig.from_settings()

    detail = detail_report(load_invoices(date_range), dimension, key, date_range, metric, config)
    if detail is None:
        return jsonify(error=f"No {dimension} '{key}' in {date_range}."), 404
    return jsonify(
        dimension=dimension, period=serialize_range(date_range),
        summary=serialize_aggregate(detail['aggregate']),
        drilldown=detail['drilldown'],
        rows=[serialize_aggregate(agg) for agg in detail['rows']]
    )

# --- Settings ---

@bp.route('/api/settings', methods=['GET'])
def list_settings():
    settings = AppSetting.query.order_by(AppSetting.key).all()
    return jsonify(settings=[s.to_dict() for s in settings])


@bp.route('/api/settings/<key>', methods=['PUT'])
def update_setting(key):
    setting = AppSetting.query.filter_by(key=key).first_or_404()
    body = request.get_json(silent=True) or {}
    if 'value' not in body:
        return jsonify(error="The request body must contain a 'value'."), 400

    new_value = body['value']
    stored = json.dumps(new_value, ensure_ascii=False) if setting.value_type == 'json' else str(new_value)
    previous = setting.value
    setting.value = stored
    try:
        # The new value must cast to the setting's type.
        setting.get_value()
    except (ValueError, TypeError) as e:
        setting.value = previous
        return jsonify(error=f"Invalid value for '{key}': {e}"), 400

    db.session.commit()
    current_app.logger.info(f"Setting '{key}' changed from '{previous}' to '{stored}'.")
    return jsonify(setting.to_dict())
