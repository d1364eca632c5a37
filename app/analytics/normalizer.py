# ==============================================================================
# app/analytics/normalizer.py
# ------------------------------------------------------------------------------
# Turns raw invoice lines (legacy or offer-aware) into LineFact records.
# ==============================================================================

import logging

import pandas as pd

from .errors import ContractViolation
from .facts import LineFact, to_date, to_id
from .schema import LINE_COLLECTION_KEYS
from .settings import resolve_config

# --- Helper Functions ---


def _parse_number(value, field_name):
    """Returns a float, or None when the value is missing or not numeric."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.replace(',', '').strip()
        if not value:
            return None
    elif pd.isna(value):
        return None
    try:
        number = float(value)
    except (ValueError, TypeError):
        logging.warning(f"Ignoring non-numeric value '{value}' in '{field_name}'.")
        return None
    if pd.isna(number):
        return None
    if number < 0:
        raise ContractViolation(f"'{field_name}' must not be negative (got {number}).")
    return number


def _read(raw_line, field_name):
    return _parse_number(raw_line.get(field_name), field_name)


# --- Public API ---


def normalize(raw_line, invoice_context):
    """
    Normalizes one raw invoice line.

    Args:
        raw_line (dict): The stored line. May carry the explicit offer fields
            (quantity_sold, quantity_free, unit_price, gross_amount,
            net_amount) or only the legacy amount/commission/percentage.
        invoice_context (dict): The owning invoice: id, date and the optional
            client_id / seller_id.

    Returns:
        LineFact | None: The canonical fact, or None when the line has no
        resolvable amount and must be skipped.

    Raises:
        ContractViolation: On negative amounts, a percentage outside 0..100
            or an invoice without an id or a usable date.
    """
    amount = _read(raw_line, 'amount')
    net_amount = _read(raw_line, 'net_amount')
    if amount is None and net_amount is None:
        logging.debug(
            f"Skipping line '{raw_line.get('product_name', 'N/A')}' of invoice "
            f"'{invoice_context.get('id')}': no amount or net_amount."
        )
        return None

    invoice_id = to_id(invoice_context.get('id'))
    if invoice_id is None:
        raise ContractViolation("An invoice id is required to normalize its lines.")

    percentage = _read(raw_line, 'percentage') or 0.0
    if percentage > 100:
        raise ContractViolation(f"'percentage' must be between 0 and 100 (got {percentage}).")

    net = net_amount if net_amount is not None else amount
    gross_explicit = _read(raw_line, 'gross_amount') or 0.0
    gross = gross_explicit if gross_explicit > 0 else (amount or 0.0)
    if gross < net:
        # No gross signal at all: record what was charged, infer no gift.
        gross = net

    unit_price = _read(raw_line, 'unit_price') or 0.0
    explicit_sold = _read(raw_line, 'quantity_sold') or 0.0
    explicit_free = _read(raw_line, 'quantity_free') or 0.0

    if explicit_sold > 0:
        sold_units = explicit_sold
    else:
        sold_units = net / unit_price if unit_price > 0 else 0.0

    gift_money = max(0.0, gross - net)
    if explicit_free > 0:
        gifted_units = explicit_free
    else:
        gifted_units = gift_money / unit_price if unit_price > 0 else 0.0

    return LineFact(
        product_name=str(raw_line.get('product_name') or '').strip(),
        sold_units=sold_units,
        gifted_units=gifted_units,
        gross_amount=gross,
        net_amount=net,
        commission_paid=_read(raw_line, 'commission') or 0.0,
        commission_rate_percent=percentage,
        invoice_id=invoice_id,
        invoice_date=to_date(invoice_context.get('date')),
        client_id=to_id(invoice_context.get('client_id')),
        seller_id=to_id(invoice_context.get('seller_id')),
        unit_price=unit_price,
    )


def _rest_line(invoice, config):
    """The invoice amount not attached to any catalogued product."""
    rest_amount = _parse_number(invoice.get('rest_amount'), 'rest_amount')
    if not rest_amount:
        return None
    return {
        'product_name': config.REST_PRODUCT_NAME,
        'amount': rest_amount,
        'percentage': invoice.get('rest_percentage'),
        'commission': invoice.get('rest_commission'),
    }


def _raw_lines(invoice, config):
    raw_lines = []
    for key in LINE_COLLECTION_KEYS:
        if invoice.get(key):
            raw_lines = list(invoice[key])
            break
    rest = _rest_line(invoice, config)
    if rest is not None:
        raw_lines.append(rest)
    return raw_lines


def normalize_invoice(invoice, config=None):
    """Normalizes every line of one invoice, dropping unusable lines."""
    config = resolve_config(config)
    facts = []
    for raw_line in _raw_lines(invoice, config):
        fact = normalize(raw_line, invoice)
        if fact is not None:
            facts.append(fact)
    return facts


def normalize_invoices(invoices, config=None):
    """
    Normalizes a batch of invoices into one flat list of facts. Works the
    same for a single invoice fetched on demand and for a bulk import.
    """
    config = resolve_config(config)
    facts = []
    raw_count = 0
    for invoice in invoices:
        raw_count += len(_raw_lines(invoice, config))
        facts.extend(normalize_invoice(invoice, config))
    if raw_count > len(facts):
        logging.info(f"Normalizer skipped {raw_count - len(facts)} line(s) without a resolvable amount.")
    return facts
