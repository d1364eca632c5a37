# tests/test_normalizer.py

from datetime import date

import pytest

from app.analytics.errors import ContractViolation
from app.analytics.normalizer import normalize, normalize_invoice, normalize_invoices
from app.analytics.settings import EngineConfig

TOLERANCE = 1e-9

INVOICE = {'id': 'INV-9', 'date': '2025-03-04', 'client_id': 'C1', 'seller_id': 'S1'}


def test_legacy_line_infers_no_gift():
    fact = normalize({'product_name': 'Azetabio', 'amount': 500, 'commission': 75, 'percentage': 15}, INVOICE)

    assert fact.net_amount == 500
    assert fact.gross_amount == 500
    assert fact.gifted_units == 0
    assert fact.sold_units == 0  # no price, no unit signal
    assert fact.commission_paid == 75
    assert fact.commission_rate_percent == 15
    assert fact.invoice_date == date(2025, 3, 4)


def test_canonical_line_is_returned_unchanged():
    raw = {'product_name': 'Vitalis', 'quantity_sold': 7, 'quantity_free': 3, 'unit_price': 100,
           'gross_amount': 1000, 'net_amount': 700, 'percentage': 15, 'commission': 105}
    fact = normalize(raw, INVOICE)

    assert (fact.sold_units, fact.gifted_units) == (7, 3)
    assert (fact.gross_amount, fact.net_amount) == (1000, 700)

    # Feeding the canonical values back gives the same fact.
    again = normalize({
        'product_name': fact.product_name, 'quantity_sold': fact.sold_units,
        'quantity_free': fact.gifted_units, 'unit_price': fact.unit_price,
        'gross_amount': fact.gross_amount, 'net_amount': fact.net_amount,
        'percentage': fact.commission_rate_percent, 'commission': fact.commission_paid,
    }, INVOICE)
    assert again == fact


def test_units_inferred_from_unit_price_when_quantities_missing():
    fact = normalize({'product_name': 'DLS', 'unit_price': 40, 'gross_amount': 1000, 'net_amount': 800,
                      'percentage': 10, 'commission': 80}, INVOICE)

    assert abs(fact.sold_units - 20) < TOLERANCE
    assert abs(fact.gifted_units - 5) < TOLERANCE
    assert abs(fact.gift_value - 200) < TOLERANCE


def test_fractional_units_are_not_rounded():
    fact = normalize({'product_name': 'DLS', 'unit_price': 3, 'net_amount': 10, 'gross_amount': 11}, INVOICE)

    assert abs(fact.sold_units - 10 / 3) < TOLERANCE
    assert abs(fact.gifted_units - 1 / 3) < TOLERANCE


def test_zero_explicit_quantities_fall_back_to_inference():
    fact = normalize({'product_name': 'DLS', 'quantity_sold': 0, 'quantity_free': 0, 'unit_price': 50,
                      'gross_amount': 300, 'net_amount': 200}, INVOICE)

    assert fact.sold_units == 4
    assert fact.gifted_units == 2


def test_net_only_line_keeps_net_not_above_gross():
    fact = normalize({'product_name': 'Vitalis', 'net_amount': 400}, INVOICE)

    assert fact.net_amount == 400
    assert fact.gross_amount == 400
    assert fact.gift_value == 0


def test_line_without_amount_is_skipped():
    assert normalize({'product_name': 'Vitalis', 'commission': 10, 'percentage': 5}, INVOICE) is None


def test_thousands_separators_and_nan_are_accepted():
    fact = normalize({'product_name': 'Vitalis', 'amount': '1,500', 'commission': float('nan'), 'percentage': '10'}, INVOICE)

    assert fact.net_amount == 1500
    assert fact.commission_paid == 0
    assert fact.commission_rate_percent == 10


def test_non_numeric_text_counts_as_missing():
    assert normalize({'product_name': 'Vitalis', 'amount': 'n/a'}, INVOICE) is None


@pytest.mark.parametrize('field', ['amount', 'net_amount', 'gross_amount', 'commission', 'unit_price', 'quantity_sold'])
def test_negative_values_are_rejected(field):
    raw = {'product_name': 'Vitalis', 'amount': 100}
    raw[field] = -1
    with pytest.raises(ContractViolation):
        normalize(raw, INVOICE)


def test_percentage_above_hundred_is_rejected():
    with pytest.raises(ContractViolation):
        normalize({'product_name': 'Vitalis', 'amount': 100, 'percentage': 150}, INVOICE)


def test_invoice_without_date_is_rejected():
    with pytest.raises(ContractViolation):
        normalize({'product_name': 'Vitalis', 'amount': 100}, {'id': 'X'})


def test_missing_client_and_seller_stay_empty():
    fact = normalize({'product_name': 'Vitalis', 'amount': 100}, {'id': 'X', 'date': date(2025, 1, 1), 'client_id': '  '})

    assert fact.client_id is None
    assert fact.seller_id is None


def test_rest_amount_becomes_its_own_line():
    invoice = dict(INVOICE, rest_amount=300, rest_percentage=25, rest_commission=75,
                   lines=[{'product_name': 'Vitalis', 'amount': 100, 'percentage': 10, 'commission': 10}])
    facts = normalize_invoice(invoice)

    assert [f.product_name for f in facts] == ['Vitalis', 'Resto General']
    rest = facts[1]
    assert rest.net_amount == 300
    assert rest.commission_rate_percent == 25
    assert rest.commission_paid == 75


def test_rest_product_name_comes_from_config():
    invoice = dict(INVOICE, rest_amount=50, lines=[])
    facts = normalize_invoice(invoice, EngineConfig(REST_PRODUCT_NAME='Other'))

    assert [f.product_name for f in facts] == ['Other']


def test_products_key_is_accepted_as_lines():
    invoice = dict(INVOICE, products=[{'product_name': 'Vitalis', 'amount': 100}])

    assert len(normalize_invoice(invoice)) == 1


def test_batch_matches_invoice_by_invoice(demo_invoices):
    batch = normalize_invoices(demo_invoices)
    one_by_one = [fact for invoice in demo_invoices for fact in normalize_invoice(invoice)]

    assert batch == one_by_one
    assert len(batch) == 5


def test_invoice_without_id_is_rejected():
    with pytest.raises(ContractViolation):
        normalize({'product_name': 'Vitalis', 'amount': 100}, {'date': '2025-01-01'})


def test_numeric_ids_are_kept_as_plain_strings():
    context = {'id': 12, 'date': '2025-01-01', 'client_id': 7.0, 'seller_id': 3}
    fact = normalize({'product_name': 'Vitalis', 'amount': 100}, context)

    assert (fact.invoice_id, fact.client_id, fact.seller_id) == ('12', '7', '3')
