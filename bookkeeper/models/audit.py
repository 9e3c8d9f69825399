"""
Audit Models for Bazar Bookkeeper

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of logins, lockouts and ledger changes
2. Debugging information when things go wrong
3. A history the account owner can review

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Event details never contain passwords, hashes or verification codes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts and sessions
    USER_REGISTERED = "user_registered"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGIN_LOCKED = "login_locked"
    SECOND_FACTOR_ISSUED = "second_factor_issued"
    EMAIL_VERIFICATION_ISSUED = "email_verification_issued"
    CODE_REJECTED = "code_rejected"
    LOGOUT = "logout"
    USER_UPDATED = "user_updated"

    # Ledger
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    REPORT_EXPORTED = "report_exported"

    # Assistant
    ASSISTANT_QUERY = "assistant_query"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What is this about? Users are keyed by email before we know their id.
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'user', 'transaction', 'report')"
    )
    entity_id: Optional[str] = None

    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.login_failed(email, attempts=2)
        event = AuditEventBuilder.transaction_added(user_id, transaction_id)
    """

    @staticmethod
    def user_registered(user_id: str, email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_REGISTERED,
            entity_type="user",
            entity_id=user_id,
            description=f"Account registered: {email}",
            details={"email": email},
            is_user_action=True,
        )

    @staticmethod
    def login_succeeded(user_id: str, email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            entity_type="user",
            entity_id=user_id,
            description=f"Login succeeded: {email}",
            is_user_action=True,
        )

    @staticmethod
    def login_failed(email: str, reason: str, attempts: Optional[int] = None) -> AuditEvent:
        details: dict[str, Any] = {"reason": reason}
        if attempts is not None:
            details["failed_attempts"] = attempts
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="email",
            entity_id=email,
            description=f"Login failed for {email}: {reason}",
            details=details,
            error_code=reason,
            is_user_action=True,
        )

    @staticmethod
    def login_locked(email: str, attempts: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_LOCKED,
            severity=AuditSeverity.WARNING,
            entity_type="email",
            entity_id=email,
            description=f"Email verification required after {attempts} failed attempts",
            details={"failed_attempts": attempts},
        )

    @staticmethod
    def code_issued(email: str, purpose: str, expires_at: datetime) -> AuditEvent:
        event_type = (
            AuditEventType.SECOND_FACTOR_ISSUED
            if purpose == "two_factor"
            else AuditEventType.EMAIL_VERIFICATION_ISSUED
        )
        return AuditEvent(
            event_type=event_type,
            entity_type="email",
            entity_id=email,
            description=f"Issued {purpose.replace('_', ' ')} code",
            details={"purpose": purpose, "expires_at": expires_at.isoformat()},
        )

    @staticmethod
    def code_rejected(email: str, purpose: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CODE_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="email",
            entity_id=email,
            description=f"Rejected {purpose.replace('_', ' ')} code: {reason}",
            details={"purpose": purpose},
            error_code=reason,
            is_user_action=True,
        )

    @staticmethod
    def logout(user_id: Optional[str], reason: str = "user") -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGOUT,
            entity_type="user",
            entity_id=user_id,
            description=f"Session ended ({reason})",
            details={"reason": reason},
            is_user_action=reason == "user",
        )

    @staticmethod
    def user_updated(user_id: str, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_UPDATED,
            entity_type="user",
            entity_id=user_id,
            description=f"Profile updated: {', '.join(sorted(fields))}",
            details={"fields": sorted(fields)},
            is_user_action=True,
        )

    @staticmethod
    def transaction_added(user_id: str, transaction_id: str, transaction_type: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"Recorded {transaction_type} transaction",
            details={"user_id": user_id, "type": transaction_type},
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(user_id: str, transaction_id: str, fields: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction updated",
            details={"user_id": user_id, "fields": sorted(fields)},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(user_id: str, transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
            details={"user_id": user_id},
            is_user_action=True,
        )

    @staticmethod
    def report_exported(user_id: str, export_format: str, row_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_EXPORTED,
            entity_type="report",
            entity_id=user_id,
            description=f"Exported {export_format} with {row_count} transactions",
            details={"format": export_format, "transactions_count": row_count},
            is_user_action=True,
        )

    @staticmethod
    def assistant_query(user_id: Optional[str], language: str, answered: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ASSISTANT_QUERY,
            severity=AuditSeverity.INFO if answered else AuditSeverity.WARNING,
            entity_type="user",
            entity_id=user_id,
            description="Assistant answered" if answered else "Assistant unavailable",
            details={"language": language, "answered": answered},
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={"service": service},
            correlation_id=correlation_id,
        )
