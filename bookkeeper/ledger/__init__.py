"""
Ledger Package

The transaction collection (repository), filtering, pure aggregations
and demo data.
"""

from bookkeeper.ledger.aggregator import (
    category_breakdown,
    compute_metrics,
    estimated_tax,
    monthly_series,
    profit_margin,
    top_categories,
)
from bookkeeper.ledger.filters import (
    TransactionFilter,
    apply_filter,
    filter_by_period,
    period_cutoff,
)
from bookkeeper.ledger.ids import IdGenerator
from bookkeeper.ledger.repository import TransactionLedger

__all__ = [
    # Repository
    "TransactionLedger",
    "IdGenerator",
    # Filtering
    "TransactionFilter",
    "apply_filter",
    "filter_by_period",
    "period_cutoff",
    # Aggregation
    "category_breakdown",
    "compute_metrics",
    "estimated_tax",
    "monthly_series",
    "profit_margin",
    "top_categories",
]
