# ==============================================================================
# app/models.py
# ------------------------------------------------------------------------------
# Defines the database schema using SQLAlchemy ORM models.
# ==============================================================================

from datetime import datetime
from app import db
import json

class Invoice(db.Model):
    """
    A sales invoice. The amount not attributed to any catalogued product is
    kept in the rest_* columns.
    """
    __tablename__ = 'invoice'
    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.String(64), unique=True, nullable=False, index=True)
    invoice_date = db.Column(db.Date, nullable=False, index=True)
    client_id = db.Column(db.String(64), index=True)
    seller_id = db.Column(db.String(64), index=True)

    rest_amount = db.Column(db.Float, default=0)
    rest_percentage = db.Column(db.Float, default=0)
    rest_commission = db.Column(db.Float, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationship: One Invoice has many InvoiceLines.
    lines = db.relationship('InvoiceLine', backref='invoice', lazy='select', cascade="all, delete-orphan")

    def __repr__(self):
        return f'<Invoice {self.id}: {self.number}>'

    def to_engine_dict(self):
        """The invoice in the shape the analytics engine reads."""
        return {
            'id': self.number,
            'date': self.invoice_date,
            'client_id': self.client_id,
            'seller_id': self.seller_id,
            'rest_amount': self.rest_amount,
            'rest_percentage': self.rest_percentage,
            'rest_commission': self.rest_commission,
            'lines': [line.to_raw_line() for line in self.lines],
        }

class InvoiceLine(db.Model):
    """
    One product line of an invoice. Legacy rows only have amount, percentage
    and commission; the offer columns stay NULL for them.
    """
    __tablename__ = 'invoice_line'
    id = db.Column(db.Integer, primary_key=True)
    product_name = db.Column(db.String(128), nullable=False, index=True)

    amount = db.Column(db.Float)
    percentage = db.Column(db.Float)
    commission = db.Column(db.Float)

    quantity_sold = db.Column(db.Float)
    quantity_free = db.Column(db.Float)
    unit_price = db.Column(db.Float)
    gross_amount = db.Column(db.Float)
    net_amount = db.Column(db.Float)

    invoice_id = db.Column(db.Integer, db.ForeignKey('invoice.id'), nullable=False)

    RAW_FIELDS = ('product_name', 'amount', 'percentage', 'commission', 'quantity_sold',
                  'quantity_free', 'unit_price', 'gross_amount', 'net_amount')

    def __repr__(self):
        return f'<InvoiceLine {self.id}: {self.product_name}>'

    def to_raw_line(self):
        # NULL columns are left out so the normalizer sees a legacy row as legacy.
        return {f: getattr(self, f) for f in self.RAW_FIELDS if getattr(self, f) is not None}


class AppSetting(db.Model):
    """
    Stores key-value pairs for the engine thresholds and business rules,
    making them configurable without a deploy.
    """
    __tablename__ = 'app_setting'
    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(128), unique=True, nullable=False, index=True)
    value = db.Column(db.String(256), nullable=False)
    description = db.Column(db.String(512))
    value_type = db.Column(db.String(32), default='string') # e.g., 'float', 'int', 'string', 'json'

    def __repr__(self):
        return f'<AppSetting {self.key}: {self.value}>'

    def get_value(self):
        """Casts the string value to its correct Python type."""
        if self.value_type == 'float':
            return float(self.value)
        if self.value_type == 'int':
            return int(self.value)
        if self.value_type == 'json':
            return json.loads(self.value)
        return self.value

    def to_dict(self):
        return {
            'key': self.key, 'value': self.get_value(),
            'value_type': self.value_type, 'description': self.description
        }
