"""
Inactivity watchdog.

Signs the user out after a period without interaction. The UI layer
feeds interaction events into an ActivityEvents source; every event
pushes the deadline back.

Two ways to drive the timeout:
- a Scheduler (e.g. AsyncioScheduler) fires the single pending callback
- hosts without a loop (Streamlit reruns) call check() on each rerun

stop() cancels the pending callback and removes every listener it
registered, so a watchdog never outlives its session.
"""

import asyncio
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Callable, Optional, Protocol

import structlog

from bookkeeper.models.user import utc_now


logger = structlog.get_logger(__name__)

ACTIVITY_EVENT_NAMES = (
    "mousedown",
    "mousemove",
    "keypress",
    "scroll",
    "touchstart",
    "interaction",
)


class ActivityEvents:
    """A tiny publish/subscribe hub for interaction events."""

    def __init__(self):
        self._listeners: dict[str, list[Callable[[], None]]] = defaultdict(list)

    def subscribe(self, event: str, listener: Callable[[], None]) -> None:
        self._listeners[event].append(listener)

    def unsubscribe(self, event: str, listener: Callable[[], None]) -> None:
        listeners = self._listeners.get(event, [])
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: str) -> None:
        for listener in list(self._listeners.get(event, ())):
            listener()

    def listener_count(self, event: Optional[str] = None) -> int:
        if event is not None:
            return len(self._listeners.get(event, ()))
        return sum(len(listeners) for listeners in self._listeners.values())


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(ABC):
    """Schedules a single delayed callback."""

    @abstractmethod
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        pass


class AsyncioScheduler(Scheduler):
    """Uses the running event loop (or the one given)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class InactivityWatchdog:
    """
    Calls on_timeout once when no activity is seen for the timeout.

    Usage:
        watchdog = InactivityWatchdog(lambda: guard.logout("inactivity"), events)
        watchdog.start()
        ...
        watchdog.stop()
    """

    def __init__(
        self,
        on_timeout: Callable[[], None],
        events: ActivityEvents,
        scheduler: Optional[Scheduler] = None,
        timeout_minutes: float = 30,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._on_timeout = on_timeout
        self._events = events
        self._scheduler = scheduler
        self._timeout = timedelta(minutes=timeout_minutes)
        self._clock = clock

        self._handle: Optional[TimerHandle] = None
        self._last_activity: Optional[datetime] = None
        self._running = False
        self._fired = False

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def deadline(self) -> Optional[datetime]:
        if not self._running or self._last_activity is None:
            return None
        return self._last_activity + self._timeout

    def start(self) -> None:
        """Begin watching. Calling start() on a running watchdog does nothing."""
        if self._running:
            return
        self._running = True
        self._fired = False
        for name in ACTIVITY_EVENT_NAMES:
            self._events.subscribe(name, self._on_activity)
        self._last_activity = self._clock()
        self._schedule()

    def stop(self) -> None:
        """Cancel the pending callback and drop every listener."""
        self._cancel()
        if self._running:
            for name in ACTIVITY_EVENT_NAMES:
                self._events.unsubscribe(name, self._on_activity)
        self._running = False

    def check(self) -> bool:
        """Fire the timeout if the deadline has passed. Returns True if it fired."""
        deadline = self.deadline
        if deadline is None or self._clock() < deadline:
            return False
        self._expire()
        return True

    def _on_activity(self) -> None:
        self._last_activity = self._clock()
        self._schedule()

    def _schedule(self) -> None:
        if self._scheduler is None:
            return
        self._cancel()
        self._handle = self._scheduler.call_later(self._timeout.total_seconds(), self._expire)

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _expire(self) -> None:
        if self._fired or not self._running:
            return
        self._fired = True
        self._handle = None
        self.stop()
        logger.info("inactivity_timeout", timeout_minutes=self._timeout.total_seconds() / 60)
        self._on_timeout()
