"""
Exports

Point-in-time snapshots of ledger data:
- CSV of the currently filtered transaction list
- JSON report document for a relative period

Both are built from the same aggregator functions as the dashboard,
so the figures always agree with what the user sees.
"""

import csv
import io
from datetime import datetime
from typing import Iterable, Optional

from bookkeeper.ledger.aggregator import (
    category_breakdown,
    compute_metrics,
    monthly_series,
    profit_margin,
    top_categories,
)
from bookkeeper.ledger.filters import filter_by_period
from bookkeeper.models.report import CategoryAnalysis, FinancialReport, ReportPeriod, ReportType
from bookkeeper.models.transaction import Transaction, TransactionType, ensure_aware
from bookkeeper.models.user import Language


CSV_HEADER = ["Date", "Description", "Category", "Type", "Amount", "Payment Method"]
CSV_DATE_FORMAT = "%Y-%m-%d %H:%M"
TOP_CATEGORY_COUNT = 5


def export_transactions_csv(transactions: Iterable[Transaction]) -> str:
    """
    Render transactions as CSV text, one row each, in the given order.

    Fields containing commas, quotes or newlines are quoted.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for t in transactions:
        writer.writerow([
            t.timestamp.strftime(CSV_DATE_FORMAT),
            t.description,
            t.category,
            t.type.value,
            str(t.amount),
            t.payment_method,
        ])
    return buffer.getvalue()


def build_report(
    transactions: Iterable[Transaction],
    period: ReportPeriod,
    report_type: ReportType,
    now: datetime,
    language: Optional[Language] = None,
) -> FinancialReport:
    """
    Build the report document for a period ending now.

    cash_flow is only filled for cash-flow reports and
    category_analysis only for category-analysis reports, with
    category names in the given language.
    """
    now = ensure_aware(now)
    in_period = filter_by_period(transactions, period, now)
    metrics = compute_metrics(in_period)

    report = FinancialReport(
        period=period,
        report_type=report_type,
        generated_at=now,
        total_income=metrics.total_income,
        total_expenses=metrics.total_expenses,
        net_profit=metrics.profit,
        profit_margin=profit_margin(metrics),
        transactions_count=metrics.transaction_count,
    )

    if report_type == ReportType.CASH_FLOW:
        report.cash_flow = monthly_series(in_period)
    elif report_type == ReportType.CATEGORY_ANALYSIS:
        report.category_analysis = CategoryAnalysis(
            top_income_categories=top_categories(
                category_breakdown(in_period, TransactionType.INCOME, language), TOP_CATEGORY_COUNT
            ),
            top_expense_categories=top_categories(
                category_breakdown(in_period, TransactionType.EXPENSE, language), TOP_CATEGORY_COUNT
            ),
        )
    return report


def report_to_json(report: FinancialReport) -> str:
    """Pretty-printed JSON; sections a report type does not use are null."""
    return report.model_dump_json(indent=2)


def report_filename(report_type: ReportType, period: ReportPeriod, now: datetime) -> str:
    return f"{report_type.value}_report_{period.value}_{now:%Y-%m-%d}.json"


def csv_filename(now: datetime) -> str:
    return f"transactions_{now:%Y-%m-%d}.csv"
