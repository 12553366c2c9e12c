from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

import pytest

from smart_queue.tickets.errors import QueueError
from smart_queue.tickets.state import QueueStatus


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def tick(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class FakeTimer:
    when: float
    callback: Callable[..., Any]
    args: tuple[Any, ...]
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def live(self) -> bool:
        return not (self.cancelled or self.fired)


class ManualScheduler:
    """Scheduler whose timers only fire when the test moves the clock."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.timers: list[FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeTimer:
        timer = FakeTimer(when=self.clock.now + delay, callback=callback, args=args)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        self.clock.tick(seconds)
        for timer in list(self.timers):
            if timer.live and timer.when <= self.clock.now:
                timer.fired = True
                timer.callback(*timer.args)
        self.timers = [timer for timer in self.timers if not timer.fired]

    def live_timers(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if timer.live]


class SilentScheduler:
    """Scheduler that never arms anything, as when no event loop is running."""

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> None:
        return None


@dataclass
class HandlerRecorder:
    calls: list[tuple[QueueError | None, QueueStatus]] = field(default_factory=list)

    def __call__(self, error: QueueError | None, status: QueueStatus) -> None:
        self.calls.append((error, status))

    @property
    def errors(self) -> list[QueueError]:
        return [error for error, _ in self.calls if error is not None]

    @property
    def signals(self) -> list[QueueStatus]:
        return [status for error, status in self.calls if error is None]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler(clock: FakeClock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture
def handler() -> HandlerRecorder:
    return HandlerRecorder()


@pytest.fixture
def silent_scheduler() -> SilentScheduler:
    return SilentScheduler()


@pytest.fixture
def restore_logger():
    logger = logging.getLogger("smart_queue")
    saved = (logger.level, list(logger.handlers), logger.propagate)
    yield logger
    logger.setLevel(saved[0])
    logger.handlers[:] = saved[1]
    logger.propagate = saved[2]
