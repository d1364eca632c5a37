# tests/test_validator.py

from datetime import date

from app.analytics.validator import validate_invoice_payload


def _payload(*invoices):
    return {'invoices': list(invoices)}


def _invoice(**overrides):
    invoice = {
        'number': 'F-100', 'date': '2025-02-05', 'client_id': 'C1', 'seller_id': 'S1',
        'lines': [{'product_name': 'Vitalis', 'amount': '1,000', 'commission': 150, 'percentage': 15}],
    }
    invoice.update(overrides)
    return invoice


def test_valid_payload_is_cleaned():
    cleaned, errors = validate_invoice_payload(_payload(_invoice(rest_amount=200)))

    assert errors == []
    assert len(cleaned) == 1
    invoice = cleaned[0]
    assert invoice['number'] == 'F-100'
    assert invoice['date'] == date(2025, 2, 5)
    assert invoice['rest_amount'] == 200
    assert invoice['rest_percentage'] is None
    line = invoice['lines'][0]
    assert line['product_name'] == 'Vitalis'
    assert line['amount'] == 1000
    assert line['net_amount'] is None


def test_products_alias_is_accepted():
    invoice = _invoice()
    invoice['products'] = invoice.pop('lines')

    cleaned, errors = validate_invoice_payload(_payload(invoice))

    assert errors == []
    assert len(cleaned[0]['lines']) == 1


def test_body_must_hold_an_invoice_list():
    for body in (None, [], {'invoices': 'x'}):
        cleaned, errors = validate_invoice_payload(body)
        assert cleaned is None
        assert len(errors) == 1


def test_empty_list_is_rejected():
    cleaned, errors = validate_invoice_payload({'invoices': []})

    assert cleaned is None
    assert errors == ["The 'invoices' list is empty."]


def test_missing_required_fields_are_reported():
    cleaned, errors = validate_invoice_payload(_payload(_invoice(number='', date=None)))

    assert cleaned is None
    assert errors == ["Invoice 1: missing required fields: number, date"]


def test_duplicate_numbers_in_batch():
    cleaned, errors = validate_invoice_payload(_payload(_invoice(), _invoice()))

    assert cleaned is None
    assert errors == ["Invoice 2: number 'F-100' appears more than once in this batch."]


def test_bad_date_is_reported():
    _, errors = validate_invoice_payload(_payload(_invoice(date='not a date')))

    assert len(errors) == 1
    assert errors[0].startswith("Invoice 1: ")


def test_line_errors_point_at_the_line():
    lines = [
        {'product_name': 'Vitalis', 'amount': 100, 'percentage': 15},
        {'product_name': 'DLS', 'amount': 'abc', 'percentage': 120},
        {'product_name': ' ', 'amount': -5},
    ]

    cleaned, errors = validate_invoice_payload(_payload(_invoice(lines=lines)))

    assert cleaned is None
    assert "Invoice 1, line 3: 'product_name' is required." in errors
    assert "Invoice 1, line 2: value 'abc' in 'amount' must be a number." in errors
    assert any(e.startswith("Invoice 1, line 2: 'percentage' must be between 0 and 100") for e in errors)
    assert any(e.startswith("Invoice 1, line 3: 'amount' must not be negative") for e in errors)


def test_lines_must_be_a_list():
    _, errors = validate_invoice_payload(_payload(_invoice(lines='Vitalis')))

    assert errors == ["Invoice 1: 'lines' must be a list."]


def test_negative_rest_amount_is_reported():
    _, errors = validate_invoice_payload(_payload(_invoice(rest_amount=-10)))

    assert len(errors) == 1
    assert errors[0].startswith("Invoice 1: 'rest_amount' must not be negative")


def test_numeric_client_ids_are_stable_across_batches():
    alone, _ = validate_invoice_payload(_payload(_invoice(client_id=7)))
    mixed, _ = validate_invoice_payload(_payload(
        _invoice(client_id=7), _invoice(number='F-101', client_id=None, seller_id=5)
    ))

    assert alone[0]['client_id'] == '7'
    assert mixed[0]['client_id'] == '7'
    assert mixed[1]['client_id'] is None
    assert mixed[1]['seller_id'] == '5'
