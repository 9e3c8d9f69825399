"""
Transaction Ledger

CRUD over one user's transaction collection.

DESIGN DECISION: The collection is newest-first. add() prepends, and
every view preserves that order. Each mutation writes the whole
collection through to storage immediately; there is no batching.

Collections are partitioned by user id (bazar_transactions_<user_id>),
so one ledger never sees another user's data.
"""

from datetime import datetime
from typing import Any, Callable, Optional, Union

import structlog
from pydantic import ValidationError as ModelValidationError

from bookkeeper.audit import AuditLogger
from bookkeeper.ledger.filters import TransactionFilter, apply_filter
from bookkeeper.ledger.ids import IdGenerator
from bookkeeper.models.audit import AuditEventBuilder
from bookkeeper.models.transaction import Transaction, TransactionDraft, TransactionUpdate
from bookkeeper.models.user import utc_now
from bookkeeper.services.storage import CorruptRecordError, KeyValueStore, NotFoundError, keys


logger = structlog.get_logger(__name__)


class TransactionLedger:
    """
    A user's transactions, persisted write-through.

    Usage:
        ledger = TransactionLedger(store, user.id)
        tx = ledger.add(TransactionDraft(amount=100, type="income", category="Sales"))
        ledger.update(tx.id, {"amount": 120})
        ledger.delete(tx.id)
    """

    def __init__(
        self,
        store: KeyValueStore,
        user_id: str,
        clock: Callable[[], datetime] = utc_now,
        audit: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._user_id = user_id
        self._key = keys.transactions_key(user_id)
        self._clock = clock
        self._audit = audit
        self._ids = IdGenerator(clock)

        self._transactions = self._load()
        for t in self._transactions:
            self._ids.observe(t.id)

    @property
    def user_id(self) -> str:
        return self._user_id

    def __len__(self) -> int:
        return len(self._transactions)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    def add(self, draft: TransactionDraft) -> Transaction:
        """Assign an id and owner, prepend, persist."""
        transaction = Transaction(
            **draft.model_dump(),
            id=self._ids.next_id(),
            user_id=self._user_id,
        )
        self._transactions.insert(0, transaction)
        self._persist()

        self._log(AuditEventBuilder.transaction_added(
            self._user_id, transaction.id, transaction.type.value
        ))
        return transaction

    def update(
        self,
        transaction_id: str,
        fields: Union[TransactionUpdate, dict[str, Any]],
    ) -> Transaction:
        """
        Replace some or all fields of a transaction.

        id and user_id cannot be changed; passing them fails validation.

        Raises:
            NotFoundError: No transaction with this id
        """
        if not isinstance(fields, TransactionUpdate):
            fields = TransactionUpdate.model_validate(fields)
        changes = fields.changes()

        index = self._index_of(transaction_id)
        if index is None:
            raise NotFoundError(f"Transaction not found: {transaction_id}")

        current = self._transactions[index]
        updated = Transaction.model_validate({**current.model_dump(), **changes})
        self._transactions[index] = updated
        self._persist()

        self._log(AuditEventBuilder.transaction_updated(self._user_id, transaction_id, list(changes)))
        return updated

    def delete(self, transaction_id: str) -> bool:
        """
        Remove a transaction.

        Returns:
            True if it was removed, False if there was nothing to remove
        """
        index = self._index_of(transaction_id)
        if index is None:
            return False

        del self._transactions[index]
        self._persist()

        self._log(AuditEventBuilder.transaction_deleted(self._user_id, transaction_id))
        return True

    def clear(self) -> int:
        """Remove every transaction. Returns how many were removed."""
        removed = len(self._transactions)
        self._transactions = []
        self._store.delete(self._key)
        logger.info("ledger_cleared", user_id=self._user_id, removed=removed)
        return removed

    # =========================================================================
    # READS
    # =========================================================================

    def get(self, transaction_id: str) -> Optional[Transaction]:
        index = self._index_of(transaction_id)
        return self._transactions[index] if index is not None else None

    def all(self) -> list[Transaction]:
        """Every transaction, newest first."""
        return list(self._transactions)

    def filter(
        self,
        criteria: Optional[TransactionFilter] = None,
        now: Optional[datetime] = None,
    ) -> list[Transaction]:
        return apply_filter(self._transactions, criteria, now or self._clock())

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def _index_of(self, transaction_id: str) -> Optional[int]:
        for i, t in enumerate(self._transactions):
            if t.id == transaction_id:
                return i
        return None

    def _load(self) -> list[Transaction]:
        data = self._store.get_json(self._key, [])
        try:
            return [Transaction.model_validate(item) for item in data]
        except (ModelValidationError, TypeError) as e:
            raise CorruptRecordError(self._key, str(e)) from e

    def _persist(self) -> None:
        self._store.set_json(self._key, [t.model_dump(mode="json") for t in self._transactions])

    def _log(self, event) -> None:
        if self._audit is not None:
            self._audit.log(event)
