"""
auth/timers.py -- One-shot timer scheduling for session expiry.

The session manager only needs "call this once after N seconds, unless I
cancel it first". Scheduler is that contract; LoopScheduler fulfils it with
asyncio's loop.call_later so expiry fires on the same event loop as login
and logout (single-threaded, cooperative).
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol


class SchedulerUnavailable(RuntimeError):
    """No event loop is available to arm a timer on."""


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class LoopScheduler:
    """Scheduler backed by an asyncio event loop.

    If no loop is given, the loop running at arm time is used. Arming with
    no loop given and none running raises SchedulerUnavailable.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        if self._loop is not None:
            loop = self._loop
        else:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise SchedulerUnavailable("no running event loop") from e
        return loop.call_later(max(delay, 0.0), callback, *args)
