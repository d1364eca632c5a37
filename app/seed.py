from app import db
from app.models import AppSetting

DEFAULT_SETTINGS = {
    # key: [value, description, value_type]
    'GIFT_RATIO_DANGER': ['0.30', 'Gifted share of units above which a product/seller is in danger (0.30 = 30%)', 'float'],
    'GIFT_RATIO_WATCH': ['0.15', 'Gifted share of units above which a product/seller is on watch', 'float'],
    'MARGIN_IMPACT_DANGER': ['0.25', 'Gift value over gross value above which a product/seller is in danger', 'float'],
    'MARGIN_IMPACT_WATCH': ['0.10', 'Gift value over gross value above which a product/seller is on watch', 'float'],
    'CLIENT_GROWTH_THRESHOLD': ['10', 'Month-over-month growth (percent) separating growing/declining from stable clients', 'float'],
    'COMMISSION_REVIEW_THRESHOLD': ['100', 'Commission mismatch (currency units) that requires review', 'float'],
    'SELLER_COMMISSION_SHARE': ['0.25', 'Share of each commission paid to the seller; the rest stays with the house', 'float'],
    'GIFT_REDUCTION_SCENARIO': ['0.5', 'Gift reduction used for the what-if revenue insight (0.5 = 50%)', 'float'],
    'ANOMALY_GIFT_RATIO': ['0.20', 'Portfolio gifted share of units reported as an anomaly', 'float'],
    'ANOMALY_GIFT_VALUE': ['5000', 'Total gift value in a period reported as an anomaly', 'float'],
    'TREND_ALERT_LIMIT': ['5', 'Number of growing/declining entries listed in alerts', 'int'],
    'UNASSIGNED_KEY': ['unassigned', 'Group name for lines without a client or seller', 'string'],
    'REST_PRODUCT_NAME': ['Resto General', 'Product name given to the uncatalogued rest of an invoice', 'string'],
}

def seed_data():
    """Populates the database with default settings."""
    for key, data in DEFAULT_SETTINGS.items():
        setting = AppSetting.query.filter_by(key=key).first()
        if not setting: # Only add if it doesn't exist
            setting = AppSetting(key=key, value=data[0], description=data[1], value_type=data[2])
            db.session.add(setting)
            print(f'Seeding setting: {key}')

    db.session.commit()
    print('Seeding complete.')
