"""
auth/notify.py -- User-visible notices emitted by the session manager.

The session manager reports outcomes ("Welcome back", "Session expired", ...)
through a Notifier so the host decides how to show them. LogNotifier is the
default and writes them to the moviesession.notify logger.
"""

from __future__ import annotations

import logging
from typing import Protocol

logger = logging.getLogger("moviesession.notify")


class Notifier(Protocol):
    def success(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class LogNotifier:
    def success(self, message: str) -> None:
        logger.info(message)

    def info(self, message: str) -> None:
        logger.info(message)

    def warning(self, message: str) -> None:
        logger.warning(message)

    def error(self, message: str) -> None:
        logger.error(message)
