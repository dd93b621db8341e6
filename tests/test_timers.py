"""Integration tests for auth/timers.py on a real asyncio event loop.

The session manager runs with the default LoopScheduler and the real clock
here, so expiry is driven by loop.call_later rather than the test fakes.
"""

import asyncio

import pytest

from auth.session import SESSION_KEYS, SessionManager
from auth.timers import LoopScheduler, SchedulerUnavailable


def test_loop_scheduler_fires_once():
    calls = []

    async def scenario():
        LoopScheduler().call_later(0.01, calls.append, "fired")
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert calls == ["fired"]


def test_loop_scheduler_cancel():
    calls = []

    async def scenario():
        handle = LoopScheduler().call_later(0.01, calls.append, "fired")
        handle.cancel()
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert calls == []


def test_session_expires_on_event_loop(storage, notifier, routes):
    async def scenario():
        manager = SessionManager(storage, notifier=notifier, navigate=routes.append, ttl_ms=50)
        assert await manager.login("admin@movie.com", "admin123") is True
        assert manager.timer_armed is True
        await asyncio.sleep(0.2)
        return manager

    manager = asyncio.run(scenario())
    assert manager.is_authenticated is False
    assert manager.timer_armed is False
    assert notifier.messages("warning") == ["Session expired. Please login again."]
    assert routes == ["/login"]
    assert all(storage.read(k) is None for k in SESSION_KEYS)


def test_restore_inside_loop_arms_real_timer(storage, notifier):
    async def first_run():
        manager = SessionManager(storage, notifier=notifier, ttl_ms=60_000)
        await manager.login("member@movie.com", "member123")
        manager.dispose()

    async def second_run():
        manager = SessionManager(storage, notifier=notifier)
        armed = manager.timer_armed
        manager.dispose()
        return manager, armed

    asyncio.run(first_run())
    manager, armed = asyncio.run(second_run())
    assert manager.is_member is True
    assert armed is True


def test_restore_outside_loop_defers_timer(storage, notifier):
    async def first_run():
        manager = SessionManager(storage, notifier=notifier, ttl_ms=60_000)
        await manager.login("admin@movie.com", "admin123")
        manager.dispose()

    asyncio.run(first_run())

    # Synchronous host: no event loop is running while the saved session loads.
    manager = SessionManager(storage, notifier=notifier)
    assert manager.is_admin is True
    assert manager.timer_armed is False
    assert manager.check_auth() is True
    assert manager.timer_armed is False

    async def later():
        fresh = manager.check_auth()
        armed = manager.timer_armed
        manager.dispose()
        return fresh, armed

    assert asyncio.run(later()) == (True, True)


def test_loop_scheduler_without_loop_raises():
    with pytest.raises(SchedulerUnavailable):
        LoopScheduler().call_later(1.0, print)
