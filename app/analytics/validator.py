# ==============================================================================
# app/analytics/validator.py
# ------------------------------------------------------------------------------
# Handles the validation of a bulk invoice import before it is stored.
# ==============================================================================

import pandas as pd

from .errors import ContractViolation
from .facts import to_date, to_id
from .schema import EXPECTED_INVOICE_FIELDS, EXPECTED_LINE_FIELDS, LINE_COLLECTION_KEYS


def _get_lines(invoice):
    for key in LINE_COLLECTION_KEYS:
        if key in invoice and invoice[key] is not None:
            return invoice[key]
    return []


def _check_numeric_columns(df, rules, location_of, errors):
    """
    Coerces every numeric column of `df` in place and appends a message for
    each value that is not a number, is negative, or is an out-of-range
    percentage.
    """
    for col in rules['numeric_fields']:
        if col not in df.columns:
            continue
        raw = df[col]
        as_text = raw.astype(str).str.replace(',', '').str.strip()
        # Coerce to numeric, making non-numbers NaN
        numeric_series = pd.to_numeric(as_text, errors='coerce')
        present = raw.notna() & (as_text != '')
        invalid_rows = df[numeric_series.isna() & present]
        for index in invalid_rows.index:
            errors.append(f"{location_of(index)}: value '{raw.loc[index]}' in '{col}' must be a number.")

        for index in df[numeric_series < 0].index:
            errors.append(f"{location_of(index)}: '{col}' must not be negative (got {numeric_series.loc[index]}).")

        if col in rules['percentage_fields']:
            for index in df[numeric_series > 100].index:
                errors.append(f"{location_of(index)}: '{col}' must be between 0 and 100 (got {numeric_series.loc[index]}).")

        df[col] = numeric_series.where(present, None)


def _clean_records(df, columns):
    records = []
    for record in df[columns].to_dict(orient='records'):
        records.append({k: (None if not isinstance(v, str) and pd.isna(v) else v) for k, v in record.items()})
    return records


def validate_invoice_payload(payload):
    """
    Validates the structure and basic data types of an imported invoice batch.

    Args:
        payload (dict): A JSON body of the form {"invoices": [...]}.

    Returns:
        tuple: A tuple containing:
            - list: The cleaned invoices (numbers coerced, dates parsed) if
              validation is successful, otherwise None.
            - list: A list of human-readable error messages if validation fails.
    """
    errors = []

    if not isinstance(payload, dict) or not isinstance(payload.get('invoices'), list):
        return None, ["The request body must be a JSON object with an 'invoices' list."]

    invoices = payload['invoices']
    if not invoices:
        return None, ["The 'invoices' list is empty."]

    # 1. Check every invoice for required fields, a valid date and unique numbers
    header_rows = []
    line_rows = []
    seen_numbers = set()
    for position, invoice in enumerate(invoices, start=1):
        if not isinstance(invoice, dict):
            errors.append(f"Invoice {position}: must be a JSON object.")
            continue

        missing = [f for f in EXPECTED_INVOICE_FIELDS['required_fields'] if invoice.get(f) in (None, '')]
        if missing:
            errors.append(f"Invoice {position}: missing required fields: {', '.join(missing)}")
            continue

        number = str(invoice['number']).strip()
        if number in seen_numbers:
            errors.append(f"Invoice {position}: number '{number}' appears more than once in this batch.")
        seen_numbers.add(number)

        try:
            invoice_date = to_date(invoice['date'])
        except ContractViolation as e:
            errors.append(f"Invoice {position}: {e}")
            invoice_date = None

        header = {f: invoice.get(f) for f in EXPECTED_INVOICE_FIELDS['numeric_fields']}
        header.update({
            '_position': position, 'number': number, 'date': invoice_date,
            'client_id': to_id(invoice.get('client_id')), 'seller_id': to_id(invoice.get('seller_id')),
        })
        header_rows.append(header)

        lines = _get_lines(invoice)
        if not isinstance(lines, list):
            errors.append(f"Invoice {position}: 'lines' must be a list.")
            continue
        for line_no, line in enumerate(lines, start=1):
            if not isinstance(line, dict):
                errors.append(f"Invoice {position}, line {line_no}: must be a JSON object.")
                continue
            row = {f: line.get(f) for f in EXPECTED_LINE_FIELDS['numeric_fields']}
            row.update({'_position': position, '_line': line_no, 'product_name': line.get('product_name')})
            line_rows.append(row)

    if errors:
        return None, errors

    # 2. Check data types on the flattened header and line tables
    headers_df = pd.DataFrame(header_rows)
    _check_numeric_columns(
        headers_df, EXPECTED_INVOICE_FIELDS,
        lambda i: f"Invoice {headers_df.loc[i, '_position']}", errors
    )

    lines_df = pd.DataFrame(line_rows, columns=['_position', '_line', 'product_name'] + EXPECTED_LINE_FIELDS['numeric_fields'])
    if not lines_df.empty:
        blank_names = lines_df[lines_df['product_name'].isna() | (lines_df['product_name'].astype(str).str.strip() == '')]
        for index in blank_names.index:
            errors.append(f"Invoice {lines_df.loc[index, '_position']}, line {lines_df.loc[index, '_line']}: 'product_name' is required.")
        _check_numeric_columns(
            lines_df, EXPECTED_LINE_FIELDS,
            lambda i: f"Invoice {lines_df.loc[i, '_position']}, line {lines_df.loc[i, '_line']}", errors
        )

    if errors:
        return None, errors

    # 3. Reassemble cleaned invoices
    line_columns = ['product_name'] + EXPECTED_LINE_FIELDS['numeric_fields']
    lines_by_invoice = {}
    if not lines_df.empty:
        positions = lines_df['_position'].tolist()
        for position, record in zip(positions, _clean_records(lines_df, line_columns)):
            record['product_name'] = str(record['product_name']).strip()
            lines_by_invoice.setdefault(position, []).append(record)

    cleaned = []
    header_columns = ['number', 'date', 'client_id', 'seller_id'] + EXPECTED_INVOICE_FIELDS['numeric_fields']
    for position, record in zip(headers_df['_position'].tolist(), _clean_records(headers_df, header_columns)):
        record['lines'] = lines_by_invoice.get(position, [])
        cleaned.append(record)

    return cleaned, []
