"""
Tests for the inactivity watchdog.

A fake scheduler stands in for the event loop so timeouts can be
triggered by hand.
"""

import asyncio
from datetime import timedelta

import pytest

from bookkeeper.auth import ActivityEvents, AsyncioScheduler, InactivityWatchdog
from bookkeeper.auth.watchdog import ACTIVITY_EVENT_NAMES

from conftest import START


class FakeHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Records scheduled callbacks instead of running them."""

    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = FakeHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [h for h in self.handles if not h.cancelled]

    def fire_pending(self):
        for handle in self.pending:
            # a fired handle is spent
            handle.cancelled = True
            handle.callback()


@pytest.fixture
def events():
    return ActivityEvents()


@pytest.fixture
def timeouts():
    return []


@pytest.fixture
def scheduler():
    return FakeScheduler()


@pytest.fixture
def watchdog(events, scheduler, timeouts, clock):
    return InactivityWatchdog(
        on_timeout=lambda: timeouts.append(clock()),
        events=events,
        scheduler=scheduler,
        timeout_minutes=30,
        clock=clock,
    )


class TestScheduledTimeout:
    """Tests with a scheduler driving the timeout."""

    def test_start_schedules_thirty_minutes(self, watchdog, scheduler):
        """Test that start() schedules one callback at the timeout."""
        watchdog.start()
        assert len(scheduler.pending) == 1
        assert scheduler.pending[0].delay == 30 * 60

    def test_activity_reschedules(self, watchdog, scheduler, events):
        """Test that each activity event replaces the pending callback."""
        watchdog.start()
        first = scheduler.pending[0]

        events.emit("mousemove")

        assert first.cancelled is True
        assert len(scheduler.pending) == 1

    def test_timeout_fires_once(self, watchdog, scheduler, timeouts):
        """Test that on_timeout runs exactly once."""
        watchdog.start()
        handle = scheduler.pending[0]

        handle.callback()
        handle.callback()

        assert len(timeouts) == 1
        assert watchdog.fired is True
        assert watchdog.is_running is False

    def test_stop_cancels_and_unsubscribes(self, watchdog, scheduler, events):
        """Test that stop() leaves no timer and no listeners behind."""
        watchdog.start()
        assert events.listener_count() == len(ACTIVITY_EVENT_NAMES)

        watchdog.stop()

        assert scheduler.pending == []
        assert events.listener_count() == 0

    def test_timeout_unsubscribes(self, watchdog, scheduler, events):
        """Test that firing also removes the listeners."""
        watchdog.start()
        scheduler.fire_pending()
        assert events.listener_count() == 0

    def test_start_is_idempotent(self, watchdog, scheduler, events):
        """Test that a second start() does not double-subscribe."""
        watchdog.start()
        watchdog.start()
        assert events.listener_count() == len(ACTIVITY_EVENT_NAMES)
        assert len(scheduler.pending) == 1

    def test_restart_after_timeout(self, watchdog, scheduler, timeouts):
        """Test that a new session can start the watchdog again."""
        watchdog.start()
        scheduler.fire_pending()
        watchdog.start()

        assert watchdog.fired is False
        scheduler.fire_pending()
        assert len(timeouts) == 2


class TestPolledTimeout:
    """Tests for hosts that call check() instead of scheduling."""

    @pytest.fixture
    def polled(self, events, timeouts, clock):
        return InactivityWatchdog(
            on_timeout=lambda: timeouts.append(clock()),
            events=events,
            timeout_minutes=30,
            clock=clock,
        )

    def test_check_before_deadline(self, polled, clock, timeouts):
        """Test that nothing happens before 30 minutes."""
        polled.start()
        clock.advance(minutes=29)
        assert polled.check() is False
        assert timeouts == []

    def test_check_after_deadline(self, polled, clock, timeouts):
        """Test that the timeout fires at the deadline."""
        polled.start()
        clock.advance(minutes=30)
        assert polled.check() is True
        assert len(timeouts) == 1
        assert polled.check() is False

    def test_activity_pushes_deadline(self, polled, clock, events, timeouts):
        """Test that interaction resets the countdown."""
        polled.start()
        clock.advance(minutes=20)
        events.emit("interaction")
        clock.advance(minutes=20)

        assert polled.check() is False
        assert polled.deadline == START + timedelta(minutes=50)
        clock.advance(minutes=10)
        assert polled.check() is True

    def test_no_deadline_when_stopped(self, polled):
        """Test deadline is None for a stopped watchdog."""
        assert polled.deadline is None
        polled.start()
        polled.stop()
        assert polled.deadline is None
        assert polled.check() is False


class TestActivityEvents:
    """Tests for the publish/subscribe hub."""

    def test_emit_and_unsubscribe(self):
        """Test listener registration and removal."""
        hub = ActivityEvents()
        calls = []
        listener = lambda: calls.append(1)  # noqa: E731

        hub.subscribe("scroll", listener)
        hub.emit("scroll")
        hub.emit("keypress")
        hub.unsubscribe("scroll", listener)
        hub.unsubscribe("scroll", listener)
        hub.emit("scroll")

        assert calls == [1]
        assert hub.listener_count("scroll") == 0


class TestAsyncioScheduler:
    """Tests for the event-loop backed scheduler."""

    def test_fires_on_loop(self, events, timeouts):
        """Test a real (very short) timeout on the running loop."""

        async def scenario():
            watchdog = InactivityWatchdog(
                on_timeout=lambda: timeouts.append("fired"),
                events=events,
                scheduler=AsyncioScheduler(),
                timeout_minutes=0.0005,
            )
            watchdog.start()
            await asyncio.sleep(0.1)

        asyncio.run(scenario())
        assert timeouts == ["fired"]
        assert events.listener_count() == 0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
