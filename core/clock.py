"""
core/clock.py -- Wall-clock access in epoch milliseconds.

Session expiry is stored and compared in milliseconds. Every component that
needs "now" takes a clock callable so tests can substitute a fake one.
"""

import time
from typing import Callable

Clock = Callable[[], int]


def now_ms() -> int:
    """Return the current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)
