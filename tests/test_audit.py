"""
Tests for the audit logger and log redaction.
"""

from datetime import timedelta

import pytest

from bookkeeper.audit import AuditLogger, create_correlation_id, redact_sensitive
from bookkeeper.audit.logger import REDACTED
from bookkeeper.models import AuditEventBuilder, AuditEventType
from bookkeeper.services.storage import InMemoryKeyValueStore, StorageError, keys


class FailingStore(InMemoryKeyValueStore):
    def set(self, key, value):
        raise StorageError("disk full")


class TestRedaction:
    """Tests for the structlog redaction processor."""

    def test_masks_sensitive_keys(self):
        """Test that credentials, codes and amounts are masked."""
        event = {
            "event": "login",
            "password": "Passw0rd!",
            "code": "123456",
            "amount": "1500",
            "API_KEY": "secret-key",
            "user_id": "u1",
        }
        result = redact_sensitive(None, "info", event)

        assert result["password"] == REDACTED
        assert result["code"] == REDACTED
        assert result["amount"] == REDACTED
        assert result["API_KEY"] == REDACTED
        assert result["user_id"] == "u1"
        assert result["event"] == "login"

    def test_masks_nested_details(self):
        """Test that nested dicts and lists are scrubbed too."""
        event = {"details": {"items": [{"amount": "5", "category": "Sales"}]}}
        result = redact_sensitive(None, "info", event)
        assert result["details"]["items"][0] == {"amount": REDACTED, "category": "Sales"}


class TestAuditLogger:
    """Tests for AuditLogger persistence."""

    def test_persists_event(self):
        """Test that events land under the audit prefix."""
        store = InMemoryKeyValueStore()
        audit = AuditLogger(store)
        event = AuditEventBuilder.logout("u1")

        assert audit.log(event) is True
        assert store.get(keys.audit_key(str(event.event_id))) is not None

    def test_without_store(self):
        """Test that logging only locally still succeeds."""
        audit = AuditLogger()
        assert audit.log(AuditEventBuilder.logout("u1")) is True
        assert audit.recent_events() == []

    def test_storage_failure_does_not_raise(self):
        """Test that a failing store is reported, not raised."""
        audit = AuditLogger(FailingStore())
        assert audit.log(AuditEventBuilder.logout("u1")) is False

    def test_recent_events_newest_first(self):
        """Test ordering and limit."""
        audit = AuditLogger(InMemoryKeyValueStore())
        registered = AuditEventBuilder.user_registered("u1", "a@example.com")
        logout = AuditEventBuilder.logout("u1").model_copy(
            update={"timestamp": registered.timestamp + timedelta(seconds=1)}
        )
        audit.log(logout)
        audit.log(registered)

        events = audit.recent_events(limit=1)

        assert len(events) == 1
        assert events[0].event_type == AuditEventType.LOGOUT

    def test_unreadable_records_skipped(self):
        """Test that a damaged audit record does not break the listing."""
        store = InMemoryKeyValueStore()
        audit = AuditLogger(store)
        audit.log(AuditEventBuilder.logout("u1"))
        store.set(keys.audit_key("broken"), "{nope")

        assert len(audit.recent_events()) == 1

    def test_correlation_ids_unique(self):
        """Test create_correlation_id()."""
        assert create_correlation_id() != create_correlation_id()

    def test_correlated_block_tags_events(self):
        """Test that events inside one block share its correlation ID."""
        audit = AuditLogger(InMemoryKeyValueStore())

        with audit.correlated() as correlation_id:
            audit.log(AuditEventBuilder.login_failed("a@example.com", "invalid_password"))
            with audit.correlated() as inner:
                audit.log(AuditEventBuilder.logout("u1"))
        audit.log(AuditEventBuilder.logout("u2"))

        assert inner == correlation_id
        by_entity = {e.entity_id: e.correlation_id for e in audit.recent_events()}
        assert by_entity["a@example.com"] == correlation_id
        assert by_entity["u1"] == correlation_id
        assert by_entity["u2"] is None

    def test_recent_events_for_one_account(self):
        """Test filtering by user id and email, including ledger events."""
        audit = AuditLogger(InMemoryKeyValueStore())
        audit.log(AuditEventBuilder.user_registered("u1", "a@example.com"))
        audit.log(AuditEventBuilder.login_failed("a@example.com", "invalid_password"))
        audit.log(AuditEventBuilder.transaction_added("u1", "000000000000001", "income"))
        audit.log(AuditEventBuilder.user_registered("u2", "b@example.com"))

        mine = audit.recent_events(user_id="u1", email="a@example.com")

        assert {e.event_type for e in mine} == {
            AuditEventType.USER_REGISTERED,
            AuditEventType.LOGIN_FAILED,
            AuditEventType.TRANSACTION_ADDED,
        }
        assert len(audit.recent_events()) == 4


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
