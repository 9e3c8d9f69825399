"""
Out-of-band Code Delivery

DESIGN DECISION: Verification codes travel ONLY through a Notifier.
They never appear in login results, UI messages or logs.

Real deployments would implement Notifier on top of an SMS or email
provider. Two implementations ship here:
- ConsoleNotifier: writes the message to a stream (development)
- OutboxNotifier: keeps messages in memory (demo UI inbox and tests)
"""

import sys
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, TextIO

import structlog
from pydantic import BaseModel

from bookkeeper.models.user import CodePurpose


logger = structlog.get_logger(__name__)


class DeliveredCode(BaseModel):
    recipient: str
    code: str
    purpose: CodePurpose
    expires_at: datetime


class Notifier(ABC):
    """Delivers a verification code to the account holder."""

    @abstractmethod
    def send_code(
        self,
        recipient: str,
        code: str,
        purpose: CodePurpose,
        expires_at: datetime,
    ) -> None:
        """
        Deliver a code.

        Args:
            recipient: Email address (or phone for SMS channels)
            code: The numeric code
            purpose: What the code unlocks
            expires_at: When the code stops being accepted
        """
        pass


class ConsoleNotifier(Notifier):
    """Prints codes to a stream, standing in for an SMS/email gateway."""

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream or sys.stderr

    def send_code(self, recipient, code, purpose, expires_at) -> None:
        label = "2FA" if purpose == CodePurpose.TWO_FACTOR else "Email verification"
        print(
            f"[{label}] to {recipient}: {code} (valid until {expires_at:%H:%M:%S} UTC)",
            file=self._stream,
        )
        logger.info("code_delivered", channel="console", recipient=recipient, purpose=purpose.value)


class OutboxNotifier(Notifier):
    """Collects delivered codes in memory."""

    def __init__(self):
        self.messages: list[DeliveredCode] = []

    def send_code(self, recipient, code, purpose, expires_at) -> None:
        self.messages.append(
            DeliveredCode(recipient=recipient, code=code, purpose=purpose, expires_at=expires_at)
        )
        logger.info("code_delivered", channel="outbox", recipient=recipient, purpose=purpose.value)

    def latest(self, recipient: str, purpose: Optional[CodePurpose] = None) -> Optional[DeliveredCode]:
        """Most recent message for a recipient, optionally of one purpose."""
        for message in reversed(self.messages):
            if message.recipient == recipient and (purpose is None or message.purpose == purpose):
                return message
        return None
