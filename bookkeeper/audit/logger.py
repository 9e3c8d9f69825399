"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of logins, lockouts and ledger changes
2. Debugging capability
3. The account owner can review recent activity

The audit logger:
- Gracefully handles failures (doesn't crash the app if persisting fails)
- Supports correlation IDs to trace related events (see correlated)
- Never lets secrets reach the rendered log line (see redact_sensitive)
"""

from contextlib import contextmanager
from typing import Any, Iterator, Optional
from uuid import UUID, uuid4

import structlog

from bookkeeper.models.audit import AuditEvent
from bookkeeper.services.storage import KeyValueStore, StorageError, keys


REDACTED = "[REDACTED]"

SENSITIVE_KEYS = frozenset({
    "password",
    "password_hash",
    "token",
    "api_key",
    "secret",
    "code",
    "amount",
})


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTED if str(k).lower() in SENSITIVE_KEYS else _scrub(v)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_scrub(v) for v in value]
    return value


def redact_sensitive(logger, method_name, event_dict):
    """
    structlog processor that masks credentials, codes and amounts.

    Applies recursively so nested ``details`` dicts are covered too.
    """
    return _scrub(event_dict)


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        redact_sensitive,
        structlog.processors.JSONRenderer(ensure_ascii=False)
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The key-value store (for persistence and user visibility)
    """

    def __init__(self, store: Optional[KeyValueStore] = None):
        """
        Initialize audit logger.

        Args:
            store: Storage backend for persistence.
                   If None, only logs locally.
        """
        self._store = store
        self._logger = structlog.get_logger(__name__)
        self._correlation_id: Optional[UUID] = None

    @contextmanager
    def correlated(self, correlation_id: Optional[UUID] = None) -> Iterator[UUID]:
        """
        Tag every event logged inside the block with one correlation ID.

        Usage:
            with audit.correlated() as correlation_id:
                ...  # all events of one login attempt

        Nested blocks keep the outer ID.
        """
        if self._correlation_id is not None:
            yield self._correlation_id
            return

        self._correlation_id = correlation_id or create_correlation_id()
        try:
            yield self._correlation_id
        finally:
            self._correlation_id = None

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        if event.correlation_id is None and self._correlation_id is not None:
            event = event.model_copy(update={"correlation_id": self._correlation_id})

        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._store is None:
            return True

        try:
            self._store.set(keys.audit_key(str(event.event_id)), event.model_dump_json())
        except StorageError as e:
            # Log failure but don't raise
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False
        return True

    def recent_events(
        self,
        limit: int = 50,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Persisted events, newest first.

        With user_id and/or email, only events about that account are
        returned: events keyed by its id or email, and ledger events
        carrying its id in details.
        """
        if self._store is None:
            return []

        owners = {value for value in (user_id, email) if value}
        events = []
        for key in self._store.list_keys(keys.AUDIT_PREFIX):
            raw = self._store.get(key)
            if raw is None:
                continue
            try:
                event = AuditEvent.model_validate_json(raw)
            except ValueError as e:
                self._logger.warning("audit_record_unreadable", key=key, error=str(e))
                continue
            if owners and not _belongs_to(event, owners):
                continue
            events.append(event)
        events.sort(key=lambda event: event.timestamp, reverse=True)
        return events[:limit]


def _belongs_to(event: AuditEvent, owners: set[str]) -> bool:
    return event.entity_id in owners or event.details.get("user_id") in owners


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., a login attempt) and
    pass it to every event that action produces.
    """
    return uuid4()
