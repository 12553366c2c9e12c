"""Event tallies and wait-time summaries kept by :class:`QueueMetrics`."""
from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from threading import Lock
from typing import Dict, Protocol, Union

TallySnapshot = Union[int, Dict[str, int]]


class QueueMetric(Protocol):
    name: str

    def snapshot(self) -> object:
        ...

    def clear(self) -> None:
        ...


class Tally:
    """Count one kind of queue event.

    A tally built with ``key_name`` is split by that key (for example the
    error type); one built without it keeps a single total.
    """

    def __init__(self, name: str, *, description: str = "", key_name: str | None = None) -> None:
        self.name = name
        self.description = description
        self.key_name = key_name
        self._counts: Counter[str] = Counter()
        self._lock = Lock()

    def _key(self, key: str | None) -> str:
        if self.key_name is None:
            if key is not None:
                raise ValueError(f"Tally '{self.name}' is not split by key")
            return ""
        if not key:
            raise ValueError(f"Tally '{self.name}' needs a {self.key_name!r} key")
        return key

    def add(self, amount: int = 1, *, key: str | None = None) -> None:
        if amount < 0:
            raise ValueError("Tallies only grow")
        slot = self._key(key)
        with self._lock:
            self._counts[slot] += amount

    def value(self, key: str | None = None) -> int:
        if key is None and self.key_name is not None:
            with self._lock:
                return sum(self._counts.values())
        slot = self._key(key)
        with self._lock:
            return self._counts[slot]

    def snapshot(self) -> TallySnapshot:
        with self._lock:
            if self.key_name is None:
                return self._counts[""]
            return dict(self._counts)

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()


@dataclass
class WaitSummary:
    count: int = 0
    total: float = 0.0
    shortest: float | None = None
    longest: float | None = None

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0


class WaitTimes:
    """Summarise how long clients waited between reservation and service."""

    def __init__(self, name: str, *, description: str = "") -> None:
        self.name = name
        self.description = description
        self._summary = WaitSummary()
        self._lock = Lock()

    def observe(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("Wait times cannot be negative")
        with self._lock:
            summary = self._summary
            summary.count += 1
            summary.total += seconds
            summary.shortest = seconds if summary.shortest is None else min(summary.shortest, seconds)
            summary.longest = seconds if summary.longest is None else max(summary.longest, seconds)

    @property
    def summary(self) -> WaitSummary:
        with self._lock:
            return WaitSummary(**asdict(self._summary))

    def snapshot(self) -> Dict[str, float | int | None]:
        summary = self.summary
        return {**asdict(summary), "mean": summary.mean}

    def clear(self) -> None:
        with self._lock:
            self._summary = WaitSummary()
