"""
Transaction filtering.

Filters compose: free-text search, type, and one date mode. The date
mode is either an explicit inclusive range or a relative "last N days"
cutoff (all time when neither is set), never both.
"""

from datetime import datetime
from typing import Iterable, Optional

from dateutil.relativedelta import relativedelta
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bookkeeper.models.report import ReportPeriod
from bookkeeper.models.transaction import Transaction, TransactionType, ensure_aware


class TransactionFilter(BaseModel):
    """Filter criteria for a transaction list. Empty criteria match everything."""
    model_config = ConfigDict(str_strip_whitespace=True)

    search: str = Field(
        default="",
        description="Case-insensitive substring of description or category"
    )
    type: Optional[TransactionType] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    period_days: Optional[int] = Field(
        default=None,
        ge=1,
        description="Relative cutoff in days; None means all time"
    )

    @field_validator('date_from', 'date_to')
    @classmethod
    def ensure_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(v) if v is not None else None

    @model_validator(mode='after')
    def check_date_mode(self) -> 'TransactionFilter':
        """Only one date mode may be active, and a range needs both ends."""
        has_range = self.date_from is not None or self.date_to is not None
        if not has_range:
            return self

        if self.date_from is None or self.date_to is None:
            raise ValueError("A date range needs both a start and an end")
        if self.period_days is not None:
            raise ValueError("Use either a date range or a relative period, not both")
        if self.date_from > self.date_to:
            raise ValueError("Date range start is after its end")
        return self

    @property
    def has_range(self) -> bool:
        return self.date_from is not None and self.date_to is not None


def period_cutoff(period: ReportPeriod, now: datetime) -> datetime:
    """Start of a report period counted back from now (calendar months)."""
    if period == ReportPeriod.WEEK:
        return now - relativedelta(days=7)
    if period == ReportPeriod.MONTH:
        return now - relativedelta(months=1)
    if period == ReportPeriod.QUARTER:
        return now - relativedelta(months=3)
    return now - relativedelta(years=1)


def _matches_search(transaction: Transaction, needle: str) -> bool:
    return needle in transaction.description.lower() or needle in transaction.category.lower()


def apply_filter(
    transactions: Iterable[Transaction],
    criteria: Optional[TransactionFilter],
    now: datetime,
) -> list[Transaction]:
    """
    Apply criteria, preserving input order.

    Args:
        transactions: Newest-first collection
        criteria: Filter, or None for everything
        now: Reference time for the relative cutoff
    """
    result = list(transactions)
    if criteria is None:
        return result

    if criteria.search:
        needle = criteria.search.lower()
        result = [t for t in result if _matches_search(t, needle)]

    if criteria.type is not None:
        result = [t for t in result if t.type == criteria.type]

    if criteria.has_range:
        result = [t for t in result if criteria.date_from <= t.timestamp <= criteria.date_to]
    elif criteria.period_days is not None:
        cutoff = ensure_aware(now) - relativedelta(days=criteria.period_days)
        result = [t for t in result if t.timestamp >= cutoff]

    return result


def filter_by_period(
    transactions: Iterable[Transaction],
    period: ReportPeriod,
    now: datetime,
) -> list[Transaction]:
    cutoff = period_cutoff(period, ensure_aware(now))
    return [t for t in transactions if t.timestamp >= cutoff]
