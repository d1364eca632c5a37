# ==============================================================================
# app/analytics/settings.py
# ------------------------------------------------------------------------------
# Business thresholds used by the engine. Defaults live here; the admin can
# override any of them through the AppSetting table.
# ==============================================================================

import logging

DEFAULT_ENGINE_SETTINGS = {
    # Product / seller status
    'GIFT_RATIO_DANGER': 0.30,
    'GIFT_RATIO_WATCH': 0.15,
    'MARGIN_IMPACT_DANGER': 0.25,
    'MARGIN_IMPACT_WATCH': 0.10,
    # Client status, in growth percent
    'CLIENT_GROWTH_THRESHOLD': 10.0,
    # Reconciliation
    'COMMISSION_REVIEW_THRESHOLD': 100.0,
    'SELLER_COMMISSION_SHARE': 0.25,
    # Insights and anomalies
    'GIFT_REDUCTION_SCENARIO': 0.5,
    'ANOMALY_GIFT_RATIO': 0.20,
    'ANOMALY_GIFT_VALUE': 5000.0,
    'TREND_ALERT_LIMIT': 5,
    # Grouping
    'UNASSIGNED_KEY': 'unassigned',
    'REST_PRODUCT_NAME': 'Resto General',
}


class EngineConfig:
    """
    Holds the thresholds for one engine run. A fresh instance is built per
    request so a settings change takes effect on the next call.
    """

    def __init__(self, **overrides):
        unknown = set(overrides) - set(DEFAULT_ENGINE_SETTINGS)
        if unknown:
            raise KeyError(f"Unknown engine settings: {', '.join(sorted(unknown))}")
        for key, default in DEFAULT_ENGINE_SETTINGS.items():
            setattr(self, key, overrides.get(key, default))

    @classmethod
    def from_settings(cls):
        """Builds a config from the AppSetting table. Needs an app context."""
        from app.models import AppSetting

        settings_dict = {s.key: s.get_value() for s in AppSetting.query.all()}
        overrides = {k: v for k, v in settings_dict.items() if k in DEFAULT_ENGINE_SETTINGS}
        logging.debug(f"Loaded {len(overrides)} engine settings from the database.")
        return cls(**overrides)

    def as_dict(self):
        return {key: getattr(self, key) for key in DEFAULT_ENGINE_SETTINGS}

    def __repr__(self):
        return f'<EngineConfig {self.as_dict()}>'


def resolve_config(config):
    return config if config is not None else EngineConfig()
