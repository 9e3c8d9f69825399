"""
Main Orchestrator for Bazar Bookkeeper

This module ties together all the components and defines the
end-to-end flows for:
1. Sessions (register → login → verification codes → logout)
2. Ledger (add / update / delete → filter → metrics → export)
3. Assistant (filtered view → summary → Gemini → reply)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Ledger operations require a signed-in user and only ever touch
  that user's collection
- The assistant only sees the summary built from the user's ledger
- Every mutation is audited

This is the "glue" the UI talks to.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional, Union

import structlog
from pydantic import ValidationError as ModelValidationError

from bookkeeper.agents import ChatSession, ExternalServiceError, GeminiAssistant
from bookkeeper.audit import AuditLogger
from bookkeeper.auth import NotAuthenticatedError, PasswordHasher, SessionGuard
from bookkeeper.config import Settings, get_settings
from bookkeeper.ledger import (
    TransactionFilter,
    TransactionLedger,
    compute_metrics,
    estimated_tax,
    monthly_series,
)
from bookkeeper.ledger.demo import seed_demo_accounts
from bookkeeper.models.audit import AuditEventBuilder
from bookkeeper.models.report import ReportPeriod, ReportType
from bookkeeper.models.transaction import (
    LedgerMetrics,
    MonthlyBucket,
    Transaction,
    TransactionDraft,
    TransactionUpdate,
)
from bookkeeper.models.user import Language, utc_now
from bookkeeper.reports import (
    build_report,
    csv_filename,
    export_transactions_csv,
    report_filename,
    report_to_json,
)
from bookkeeper.services.notify import ConsoleNotifier, Notifier
from bookkeeper.services.storage import (
    InMemoryKeyValueStore,
    KeyValueStore,
    SqliteKeyValueStore,
    StorageError,
)


logger = structlog.get_logger(__name__)


class LedgerFlow:
    """
    Ledger operations on behalf of the signed-in user.

    Every call resolves the current session first; without one it
    raises NotAuthenticatedError.
    """

    def __init__(
        self,
        guard: SessionGuard,
        store: KeyValueStore,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._guard = guard
        self._store = store
        self._audit_logger = audit_logger
        self._clock = clock
        self._ledgers: dict[str, TransactionLedger] = {}

    def ledger(self) -> TransactionLedger:
        """The current user's ledger."""
        user = self._guard.current_user()
        if user is None:
            raise NotAuthenticatedError()

        if user.id not in self._ledgers:
            self._ledgers[user.id] = TransactionLedger(
                self._store, user.id, clock=self._clock, audit=self._audit_logger
            )
        return self._ledgers[user.id]

    def forget(self, user_id: Optional[str] = None) -> None:
        """Drop cached ledgers (all, or one user's) after logout."""
        if user_id is None:
            self._ledgers.clear()
        else:
            self._ledgers.pop(user_id, None)

    # Mutations

    def add(self, draft: TransactionDraft) -> Transaction:
        return self.ledger().add(draft)

    def update(
        self,
        transaction_id: str,
        fields: Union[TransactionUpdate, dict[str, Any]],
    ) -> Transaction:
        return self.ledger().update(transaction_id, fields)

    def delete(self, transaction_id: str) -> bool:
        return self.ledger().delete(transaction_id)

    # Views

    def all(self) -> list[Transaction]:
        return self.ledger().all()

    def filter(self, criteria: Optional[TransactionFilter] = None) -> list[Transaction]:
        return self.ledger().filter(criteria, self._clock())

    def metrics(self, criteria: Optional[TransactionFilter] = None) -> LedgerMetrics:
        return compute_metrics(self.filter(criteria))

    def monthly(self, criteria: Optional[TransactionFilter] = None) -> list[MonthlyBucket]:
        return monthly_series(self.filter(criteria))

    def estimated_tax(self, criteria: Optional[TransactionFilter] = None) -> Decimal:
        return estimated_tax(self.filter(criteria))

    # Exports

    def export_csv(self, criteria: Optional[TransactionFilter] = None) -> tuple[str, str]:
        """
        Export the filtered list.

        Returns:
            (filename, csv_text)
        """
        rows = self.filter(criteria)
        now = self._clock()
        self._log_export("csv", len(rows))
        return csv_filename(now), export_transactions_csv(rows)

    def export_report(self, period: ReportPeriod, report_type: ReportType) -> tuple[str, str]:
        """
        Export a period report.

        Returns:
            (filename, json_text)
        """
        user = self._guard.current_user()
        now = self._clock()
        language = user.language if user else None
        report = build_report(self.all(), period, report_type, now, language)
        self._log_export("json", report.transactions_count)
        return report_filename(report_type, period, now), report_to_json(report)

    def _log_export(self, export_format: str, row_count: int) -> None:
        if self._audit_logger is None:
            return
        user = self._guard.current_user()
        self._audit_logger.log(AuditEventBuilder.report_exported(
            user.id if user else "", export_format, row_count
        ))


def create_store(settings: Settings) -> KeyValueStore:
    """Build the configured storage backend."""
    storage = settings.storage
    if storage.backend == "memory":
        return InMemoryKeyValueStore()
    return SqliteKeyValueStore(storage.sqlite_file)


def configure_logging(level: str) -> None:
    """Route structlog's stdlib loggers to stderr at the given level."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[KeyValueStore] = None,
    notifier: Optional[Notifier] = None,
    clock: Callable[[], datetime] = utc_now,
) -> tuple[SessionGuard, LedgerFlow, Callable[..., ChatSession], KeyValueStore]:
    """
    Factory function to create all application components.

    Args:
        settings: Settings (environment if None)
        store: Storage override; the configured backend is used if None
        notifier: Code delivery channel; prints to stderr if None
        clock: Time source shared by every component

    Returns:
        (session_guard, ledger_flow, chat_factory, store)
    """
    settings = settings or get_settings()
    app = settings.app
    security = settings.security
    configure_logging(app.log_level)

    if store is None:
        store = create_store(settings)
    audit_logger = AuditLogger(store)

    guard = SessionGuard(
        store=store,
        hasher=PasswordHasher(rounds=security.password_hash_rounds),
        notifier=notifier or ConsoleNotifier(),
        settings=security,
        audit=audit_logger,
        clock=clock,
        default_currency=app.default_currency,
    )

    if app.seed_demo_data:
        try:
            seed_demo_accounts(guard, store, clock=clock)
        except StorageError as e:
            logger.warning("demo_seed_failed", error=str(e))

    ledger_flow = LedgerFlow(guard, store, audit_logger=audit_logger, clock=clock)

    assistant: Optional[GeminiAssistant] = None

    def chat_factory(language: Optional[str] = None) -> ChatSession:
        """
        Start a conversation for the current user.

        Raises:
            ExternalServiceError: Gemini is not configured
        """
        nonlocal assistant
        if assistant is None:
            try:
                assistant = GeminiAssistant(settings.gemini, currency=app.default_currency)
            except ModelValidationError as e:
                raise ExternalServiceError("gemini", "GEMINI_API_KEY is not configured") from e

        user = guard.current_user()
        chosen = language or (user.language.value if user else app.default_language)
        return ChatSession(
            assistant,
            language=Language(chosen),
            history_window=app.history_window,
            audit=audit_logger,
            user_id=user.id if user else None,
        )

    return guard, ledger_flow, chat_factory, store
