"""Expiration timers for reserved tickets."""

from __future__ import annotations

import asyncio
import logging
from threading import Lock
from typing import Any, Callable, Protocol

logger = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle | None:
        ...


class CrossThreadTimer:
    """Timer armed on a loop running in another thread.

    The real handle only exists once the loop has run :meth:`arm`; a cancel
    that arrives first keeps the timer from ever being armed.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop
        self._lock = Lock()
        self._handle: asyncio.TimerHandle | None = None
        self._cancelled = False

    def arm(self, delay: float, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._handle = self._loop.call_later(delay, callback, *args)

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            handle, self._handle = self._handle, None
        if handle is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(handle.cancel)

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class ExpirationScheduler:
    """Arm one-shot callbacks on an asyncio event loop.

    Without an explicit loop the running loop at call time is used. When no
    loop is running nothing is armed and ``None`` is returned; callers are
    expected to fall back to timestamp checks. An explicit loop running in
    another thread is reached through ``call_soon_threadsafe``.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def _resolve_loop(self) -> asyncio.AbstractEventLoop | None:
        if self._loop is not None:
            return self._loop
        return _running_loop()

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle | None:
        loop = self._resolve_loop()
        if loop is None or loop.is_closed():
            logger.debug("No event loop available; expiration after %.3fs not armed", delay)
            return None
        if loop.is_running() and _running_loop() is not loop:
            timer = CrossThreadTimer(loop)
            loop.call_soon_threadsafe(timer.arm, delay, callback, args)
            return timer
        return loop.call_later(delay, callback, *args)


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None
