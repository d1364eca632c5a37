# ==============================================================================
# app/analytics/__init__.py
# ------------------------------------------------------------------------------
# Commission & margin reconciliation engine. Pure functions over in-memory
# invoices; no database or Flask access except EngineConfig.from_settings().
# ==============================================================================

from .aggregator import (aggregate, breakdown, combine, merge_aggregate_maps, rank,
                         summarize, time_series, zone_key)
from .classifier import classify, classify_all
from .comparator import compare_aggregates, compare_growth
from .engine import build_report, detail_report, dimension_report
from .errors import AnalyticsError, ContractViolation
from .facts import Aggregate, DateRange, GrowthFigure, LineFact, Reconciliation
from .insights import detect_anomalies, generate_insights, trend_alerts
from .normalizer import normalize, normalize_invoice, normalize_invoices
from .reconciler import line_discrepancies, reconcile, split_commission
from .settings import EngineConfig
