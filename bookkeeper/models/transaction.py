"""
Transaction and Ledger View Models

These models define the schemas for everything the ledger stores and
everything it derives:
1. Transaction - one income or expense entry owned by exactly one user
2. TransactionDraft - the create payload (no id / owner yet)
3. Derived views - metrics, monthly buckets, category totals

DESIGN DECISION: Amounts are Decimal, never float.
Totals are exact sums of what was entered; nothing is rounded here.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def ensure_aware(value: datetime) -> datetime:
    """Naive timestamps are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class PaymentMethod(str, Enum):
    """
    Suggested payment methods.

    The transaction stores free text, so imported data with other
    methods is still accepted.
    """
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    MOBILE = "mobile"


# =============================================================================
# CORE TRANSACTION MODELS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A transaction as entered by the user, before the ledger assigns
    an id and owner.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Annotated[
        Decimal,
        Field(ge=0, description="Non-negative amount in the account currency")
    ]
    type: TransactionType
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category label (free text, usually from the localized list)"
    )
    payment_method: str = Field(
        default=PaymentMethod.CASH.value,
        max_length=30,
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the transaction happened"
    )
    tax_relevant: bool = False

    @field_validator('timestamp')
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        return ensure_aware(v)


class Transaction(TransactionDraft):
    """
    A stored transaction.

    Immutable except through the ledger's explicit update or delete.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Unique, creation-order sortable identifier"
    )
    user_id: str = Field(
        ...,
        min_length=1,
        description="Owning user"
    )

    @property
    def month_key(self) -> str:
        """YEAR-MONTH bucket key, zero-padded month."""
        return f"{self.timestamp.year}-{self.timestamp.month:02d}"


class TransactionUpdate(BaseModel):
    """Partial update payload. Unset fields are left untouched."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    amount: Optional[Annotated[Decimal, Field(ge=0)]] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    payment_method: Optional[str] = Field(default=None, max_length=30)
    description: Optional[str] = Field(default=None, max_length=500)
    timestamp: Optional[datetime] = None
    tax_relevant: Optional[bool] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class LedgerMetrics(BaseModel):
    """Totals over a set of transactions."""

    total_income: Decimal = Decimal("0")
    total_expenses: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")
    transaction_count: int = Field(default=0, ge=0)


class MonthlyBucket(BaseModel):
    """Income, expenses and profit for one YEAR-MONTH."""

    month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
    )
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    profit: Decimal = Decimal("0")


class CategoryTotal(BaseModel):
    category: str
    amount: Decimal
