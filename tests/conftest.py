"""
Shared fixtures.

Everything here is deterministic and offline:
- a controllable clock
- an in-memory store
- a fast password hasher (low PBKDF2 rounds)
- an outbox notifier that records codes
- a fake Gemini model
"""

import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from bookkeeper.audit import AuditLogger
from bookkeeper.auth import PasswordHasher, SessionGuard
from bookkeeper.config import GeminiSettings, SecuritySettings
from bookkeeper.models import Transaction, TransactionType
from bookkeeper.services.notify import OutboxNotifier
from bookkeeper.services.storage import InMemoryKeyValueStore


START = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeGeminiModel:
    """Stands in for genai.GenerativeModel."""

    def __init__(self, reply: str = "Your profit is 60.00 KGS.", error: Exception = None, delay: float = 0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts: list[str] = []

    async def generate_content_async(self, prompt: str):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return SimpleNamespace(text=self.reply)


def make_transaction(
    amount,
    transaction_type: str = "income",
    category: str = "Sales",
    when: datetime = START,
    description: str = "",
    transaction_id: str = None,
    user_id: str = "user-1",
) -> Transaction:
    return Transaction(
        id=transaction_id or f"{int(when.timestamp() * 1000):015d}",
        user_id=user_id,
        amount=Decimal(str(amount)),
        type=TransactionType(transaction_type),
        category=category,
        description=description,
        timestamp=when,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def security_settings():
    return SecuritySettings(password_hash_rounds=1000)


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=1000)


@pytest.fixture
def outbox():
    return OutboxNotifier()


@pytest.fixture
def audit(store):
    return AuditLogger(store)


@pytest.fixture
def guard(store, hasher, outbox, security_settings, audit, clock):
    return SessionGuard(
        store=store,
        hasher=hasher,
        notifier=outbox,
        settings=security_settings,
        audit=audit,
        clock=clock,
    )


@pytest.fixture
def gemini_settings():
    return GeminiSettings(api_key="test-key", request_timeout_seconds=0.05)
