"""Audit logging package."""

from bookkeeper.audit.logger import AuditLogger, create_correlation_id, redact_sensitive

__all__ = ["AuditLogger", "create_correlation_id", "redact_sensitive"]
