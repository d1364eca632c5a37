# ==============================================================================
# app/analytics/errors.py
# ------------------------------------------------------------------------------
# Exceptions raised by the analytics engine.
# Only caller contract violations are raised; data defects are recovered
# locally by the normalizer and aggregator.
# ==============================================================================


class AnalyticsError(Exception):
    """Base class for every error raised by the analytics package."""


class ContractViolation(AnalyticsError, ValueError):
    """
    Raised when a caller hands the engine input it must not accept, e.g. a
    date range whose start is after its end or a negative raw amount.
    """
