"""
tests/conftest.py -- Shared test fixtures for movie-session.

This module provides:
  - FakeClock:         settable epoch-millisecond clock
  - FakeScheduler:     records armed timers; run_due() fires those whose due
                       time has passed on the FakeClock
  - RecordingNotifier: captures notices as (level, message) tuples
  - storage:           isolated in-memory SQLite key-value store
  - make_manager:      factory wiring all of the above into a SessionManager

Design: the session manager never reads the real clock or the real event loop
in these tests, so expiry behaviour is fully deterministic. Restart is
simulated by building a second manager over the same storage object.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any, Callable

import pytest

from auth.session import SessionManager
from storage.store import SqlKeyValueStore

# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeClock:
    def __init__(self, now: int = 1_700_000_000_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeTimer:
    def __init__(self, due: int, callback: Callable[..., Any], args: tuple) -> None:
        self.due = due
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.timers: list[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeTimer:
        timer = FakeTimer(self.clock.now + round(delay * 1000), callback, args)
        self.timers.append(timer)
        return timer

    @property
    def armed(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def run_due(self) -> int:
        """Fire every armed timer that is due. Returns how many fired."""
        fired = 0
        for timer in list(self.armed):
            if timer.due <= self.clock.now and not timer.cancelled:
                timer.fired = True
                timer.callback(*timer.args)
                fired += 1
        return fired


class RecordingNotifier:
    def __init__(self) -> None:
        self.notices: list[tuple[str, str]] = []

    def success(self, message: str) -> None:
        self.notices.append(("success", message))

    def info(self, message: str) -> None:
        self.notices.append(("info", message))

    def warning(self, message: str) -> None:
        self.notices.append(("warning", message))

    def error(self, message: str) -> None:
        self.notices.append(("error", message))

    def messages(self, level: str) -> list[str]:
        return [m for lvl, m in self.notices if lvl == level]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> FakeScheduler:
    return FakeScheduler(clock)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def routes() -> list[str]:
    """Every route the manager navigated to, in order."""
    return []


@pytest.fixture
def storage() -> Generator[SqlKeyValueStore, None, None]:
    s = SqlKeyValueStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def make_manager(
    storage: SqlKeyValueStore,
    clock: FakeClock,
    scheduler: FakeScheduler,
    notifier: RecordingNotifier,
    routes: list[str],
) -> Callable[..., SessionManager]:
    """Return a factory building a SessionManager over the shared fakes.

    Calling the factory twice simulates a process restart: the second manager
    restores from whatever the first one persisted.
    """

    def _make(**kwargs: Any) -> SessionManager:
        kwargs.setdefault("clock", clock)
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("notifier", notifier)
        kwargs.setdefault("navigate", routes.append)
        return SessionManager(storage, **kwargs)

    return _make
