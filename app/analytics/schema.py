# ==============================================================================
# app/analytics/schema.py
# ------------------------------------------------------------------------------
# Defines the expected structure of an imported invoice batch.
# This schema is the single source of truth for the validator.
# ==============================================================================

EXPECTED_INVOICE_FIELDS = {
    'required_fields': ['number', 'date'],
    'numeric_fields': ['rest_amount', 'rest_percentage', 'rest_commission'],
    'percentage_fields': ['rest_percentage'],
}

EXPECTED_LINE_FIELDS = {
    'required_fields': ['product_name'],
    # Legacy rows only carry amount/commission/percentage; the offer
    # columns were added later and may be absent.
    'numeric_fields': [
        'amount', 'commission', 'percentage',
        'quantity_sold', 'quantity_free', 'unit_price', 'gross_amount', 'net_amount'
    ],
    'percentage_fields': ['percentage'],
}

# Accepted aliases for the list of lines on an invoice.
LINE_COLLECTION_KEYS = ('lines', 'products')
