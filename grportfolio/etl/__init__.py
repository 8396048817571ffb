"""Public exports for ETL helpers."""

from .parse import parse_currency, parse_date, parse_revenue_amount
from .reconcile import ReconciliationPlan, reconcile

__all__ = ["parse_currency", "parse_date", "parse_revenue_amount", "ReconciliationPlan", "reconcile"]
