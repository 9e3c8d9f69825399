"""
Ledger Aggregator

Pure functions over a transaction subset: totals, monthly series and
category breakdowns. Nothing here touches storage, and nothing is
rounded; presentation layers format the Decimals.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional

from bookkeeper.models.category import get_category, resolve_category_id
from bookkeeper.models.transaction import (
    CategoryTotal,
    LedgerMetrics,
    MonthlyBucket,
    Transaction,
    TransactionType,
)
from bookkeeper.models.user import Language


ZERO = Decimal("0")
HUNDRED = Decimal("100")


def compute_metrics(transactions: Iterable[Transaction]) -> LedgerMetrics:
    """Income, expenses, profit and count for a subset."""
    income = ZERO
    expenses = ZERO
    count = 0

    for t in transactions:
        count += 1
        if t.type == TransactionType.INCOME:
            income += t.amount
        else:
            expenses += t.amount

    return LedgerMetrics(
        total_income=income,
        total_expenses=expenses,
        profit=income - expenses,
        transaction_count=count,
    )


def monthly_series(transactions: Iterable[Transaction]) -> list[MonthlyBucket]:
    """
    Bucket by YEAR-MONTH of the timestamp.

    Returns buckets sorted ascending by month key.
    """
    totals: dict[str, dict[TransactionType, Decimal]] = defaultdict(
        lambda: {TransactionType.INCOME: ZERO, TransactionType.EXPENSE: ZERO}
    )
    for t in transactions:
        totals[t.month_key][t.type] += t.amount

    buckets = []
    for month in sorted(totals):
        income = totals[month][TransactionType.INCOME]
        expenses = totals[month][TransactionType.EXPENSE]
        buckets.append(MonthlyBucket(
            month=month,
            income=income,
            expenses=expenses,
            profit=income - expenses,
        ))
    return buckets


def category_breakdown(
    transactions: Iterable[Transaction],
    transaction_type: TransactionType,
    language: Optional[Language] = None,
) -> dict[str, Decimal]:
    """
    Sum of amounts per category for one transaction type.

    Labels of the fixed category list are grouped by category id, so
    "Sales" and "Продажи" land in one bucket. Each bucket is named by
    its label in ``language``, or by the first label seen when no
    language is given. Free-text categories are grouped as written.
    """
    totals: dict[str, Decimal] = {}
    names: dict[str, str] = {}
    for t in transactions:
        if t.type != transaction_type:
            continue
        key = resolve_category_id(t.category, t.type) or t.category
        if key not in names:
            category = get_category(key)
            names[key] = category.label(language) if category and language else t.category
        totals[key] = totals.get(key, ZERO) + t.amount
    return {names[key]: amount for key, amount in totals.items()}


def estimated_tax(transactions: Iterable[Transaction]) -> Decimal:
    """
    Tax due on tax-relevant transactions at their category's rate.

    Free-text categories carry no rate and add nothing.
    """
    total = ZERO
    for t in transactions:
        if not t.tax_relevant:
            continue
        category = get_category(resolve_category_id(t.category, t.type) or "")
        if category is not None:
            total += t.amount * category.tax_rate
    return total


def top_categories(breakdown: dict[str, Decimal], n: int) -> list[CategoryTotal]:
    """Rank descending by amount (ties by name) and keep the first n."""
    ranked = sorted(breakdown.items(), key=lambda item: (-item[1], item[0]))
    return [CategoryTotal(category=name, amount=amount) for name, amount in ranked[:n]]


def profit_margin(metrics: LedgerMetrics) -> Decimal:
    """Profit as a percentage of income; 0 when there is no income."""
    if metrics.total_income <= ZERO:
        return ZERO
    return metrics.profit / metrics.total_income * HUNDRED
