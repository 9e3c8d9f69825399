"""Out-of-band code delivery package."""

from bookkeeper.services.notify.notifier import (
    ConsoleNotifier,
    DeliveredCode,
    Notifier,
    OutboxNotifier,
)

__all__ = [
    "ConsoleNotifier",
    "DeliveredCode",
    "Notifier",
    "OutboxNotifier",
]
