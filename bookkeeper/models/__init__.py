"""
Data Models Package

This package contains all Pydantic models used in Bazar Bookkeeper.
All data flowing through the system must conform to these schemas.
"""

from bookkeeper.models.user import (
    CodePurpose,
    Language,
    LoginAttemptRecord,
    StoredUser,
    SubscriptionPlan,
    TransientCode,
    User,
    UserRole,
)
from bookkeeper.models.transaction import (
    CategoryTotal,
    LedgerMetrics,
    MonthlyBucket,
    PaymentMethod,
    Transaction,
    TransactionDraft,
    TransactionType,
    TransactionUpdate,
)
from bookkeeper.models.category import (
    CATEGORIES,
    Category,
    get_category,
    localized_categories,
    resolve_category_id,
)
from bookkeeper.models.report import (
    CategoryAnalysis,
    FinancialReport,
    FinancialSummary,
    RecentTransaction,
    ReportPeriod,
    ReportType,
)
from bookkeeper.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # User models
    "CodePurpose",
    "Language",
    "LoginAttemptRecord",
    "StoredUser",
    "SubscriptionPlan",
    "TransientCode",
    "User",
    "UserRole",
    # Transaction models
    "CategoryTotal",
    "LedgerMetrics",
    "MonthlyBucket",
    "PaymentMethod",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "TransactionUpdate",
    # Categories
    "CATEGORIES",
    "Category",
    "get_category",
    "localized_categories",
    "resolve_category_id",
    # Reports
    "CategoryAnalysis",
    "FinancialReport",
    "FinancialSummary",
    "RecentTransaction",
    "ReportPeriod",
    "ReportType",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
