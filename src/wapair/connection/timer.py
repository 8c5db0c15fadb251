"""Cancellable single-shot timer for reconnect scheduling."""

import asyncio
import logging
import time
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class ReconnectTimer:
    """Holds at most one pending callback.

    Scheduling while a callback is pending replaces it, so the owner never
    ends up with two reconnects racing each other.

    Usage:
        timer = ReconnectTimer()
        timer.schedule(5.0, supervisor_callback)
        timer.pending   # True
        timer.cancel()  # True, callback will not run
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._delay: Optional[float] = None
        self._due_at: Optional[float] = None

    def schedule(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        """Schedule ``callback(*args)`` after ``delay`` seconds."""
        if self.cancel():
            logger.debug("Replaced pending reconnect timer")
        loop = self._loop or asyncio.get_running_loop()
        self._delay = delay
        self._due_at = time.monotonic() + delay
        self._handle = loop.call_later(delay, self._fire, callback, args)

    def cancel(self) -> bool:
        """Cancel the pending callback.

        Returns:
            True if a callback was pending.
        """
        handle = self._handle
        self._handle = None
        self._delay = None
        self._due_at = None
        if handle is None:
            return False
        handle.cancel()
        return True

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def delay(self) -> Optional[float]:
        """Delay the pending callback was scheduled with."""
        return self._delay

    @property
    def remaining(self) -> Optional[float]:
        if self._due_at is None:
            return None
        return max(0.0, self._due_at - time.monotonic())

    def _fire(self, callback: Callable[..., Any], args: tuple) -> None:
        self._handle = None
        self._delay = None
        self._due_at = None
        callback(*args)
