# tests/conftest.py

from datetime import date

import pytest


@pytest.fixture
def app_with_db():
    """
    Creates a new app instance with an in-memory database seeded with the
    default engine settings, and yields it within an application context.
    """
    from app import create_app, db
    from app.seed import seed_data
    from config import TestConfig

    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        seed_data()
        yield app  # The tests will run here
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app_with_db):
    return app_with_db.test_client()


@pytest.fixture
def make_fact():
    """Factory for LineFact records with sensible defaults."""
    from app.analytics.facts import LineFact

    def _make_fact(**overrides):
        values = {
            'product_name': 'Vitalis',
            'sold_units': 10.0,
            'gifted_units': 0.0,
            'gross_amount': 1000.0,
            'net_amount': 1000.0,
            'commission_paid': 150.0,
            'commission_rate_percent': 15.0,
            'invoice_id': 'INV-1',
            'invoice_date': date(2025, 1, 10),
            'client_id': 'C1',
            'seller_id': 'S1',
            'unit_price': 100.0,
        }
        values.update(overrides)
        return LineFact(**values)

    return _make_fact


@pytest.fixture
def demo_invoices():
    """
    Two months of invoices. January is the previous window, February the
    current one.

    February by product:
      Vitalis  : 7 sold + 3 gifted, net 700, gift 300  -> danger (margin 30%)
      Azetabio : legacy row, net 2000, no gift         -> healthy
      DLS      : 2 sold + 4 gifted, net 100, gift 200  -> danger (gift 67%)
    Commission paid 525 vs correct 325: 200 overpaid on the DLS line.
    """
    return [
        {
            'id': 'INV-1', 'number': 'INV-1', 'date': '2025-01-10', 'client_id': 'C1', 'seller_id': 'S1',
            'lines': [
                {'product_name': 'Vitalis', 'quantity_sold': 10, 'quantity_free': 0, 'unit_price': 100,
                 'gross_amount': 1000, 'net_amount': 1000, 'percentage': 15, 'commission': 150},
            ],
        },
        {
            'id': 'INV-2', 'number': 'INV-2', 'date': '2025-01-20', 'client_id': 'C2', 'seller_id': 'S2',
            'lines': [
                {'product_name': 'Azetabio', 'amount': 500, 'percentage': 10, 'commission': 50},
            ],
        },
        {
            'id': 'INV-3', 'number': 'INV-3', 'date': '2025-02-05', 'client_id': 'C1', 'seller_id': 'S1',
            'lines': [
                {'product_name': 'Vitalis', 'quantity_sold': 7, 'quantity_free': 3, 'unit_price': 100,
                 'gross_amount': 1000, 'net_amount': 700, 'percentage': 15, 'commission': 105},
                {'product_name': 'Azetabio', 'amount': 2000, 'percentage': 10, 'commission': 200},
            ],
        },
        {
            'id': 'INV-4', 'number': 'INV-4', 'date': '2025-02-15', 'client_id': 'C3', 'seller_id': 'S2',
            'lines': [
                {'product_name': 'DLS', 'quantity_sold': 2, 'quantity_free': 4, 'unit_price': 50,
                 'gross_amount': 300, 'net_amount': 100, 'percentage': 20, 'commission': 220},
            ],
        },
    ]


@pytest.fixture
def february():
    from app.analytics.facts import DateRange
    return DateRange(date(2025, 2, 1), date(2025, 2, 28))


@pytest.fixture
def january():
    from app.analytics.facts import DateRange
    return DateRange(date(2025, 1, 1), date(2025, 1, 31))
