"""
Report and Assistant Payload Models

FinancialReport is the exported report document.
FinancialSummary is the structured payload sent to the assistant.
Both are point-in-time snapshots built from real ledger data.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from bookkeeper.models.transaction import CategoryTotal, MonthlyBucket, TransactionType


class ReportPeriod(str, Enum):
    """Relative report periods, counted back from now."""
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class ReportType(str, Enum):
    PROFIT_LOSS = "profit-loss"
    CASH_FLOW = "cash-flow"
    CATEGORY_ANALYSIS = "category-analysis"


class CategoryAnalysis(BaseModel):
    """Top categories per side of the ledger."""

    top_income_categories: list[CategoryTotal] = Field(default_factory=list)
    top_expense_categories: list[CategoryTotal] = Field(default_factory=list)


class FinancialReport(BaseModel):
    """
    The exported report document.

    cash_flow is only filled for cash-flow reports and
    category_analysis only for category-analysis reports.
    """

    period: ReportPeriod
    report_type: ReportType
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    total_income: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    profit_margin: Decimal = Field(
        ...,
        description="Net profit as a percentage of income (0 without income)"
    )
    transactions_count: int = Field(ge=0)
    cash_flow: Optional[list[MonthlyBucket]] = None
    category_analysis: Optional[CategoryAnalysis] = None


class RecentTransaction(BaseModel):
    type: TransactionType
    amount: Decimal
    category: str
    description: str
    date: str
    payment_method: str


class FinancialSummary(BaseModel):
    """
    Structured financial context for the assistant.

    CRITICAL: Every figure here comes from the ledger.
    The assistant prompt tells the model to use these exact numbers.
    """

    total_income: Decimal
    total_expenses: Decimal
    profit: Decimal
    transaction_count: int = Field(ge=0)
    top_expense_categories: list[CategoryTotal] = Field(default_factory=list)
    top_income_categories: list[CategoryTotal] = Field(default_factory=list)
    recent_transactions: list[RecentTransaction] = Field(default_factory=list)
    monthly_data: list[MonthlyBucket] = Field(default_factory=list)
    income_by_category: dict[str, Decimal] = Field(default_factory=dict)
    expenses_by_category: dict[str, Decimal] = Field(default_factory=dict)
    data_context: str = Field(
        ...,
        description="What slice of the ledger is being analyzed"
    )
