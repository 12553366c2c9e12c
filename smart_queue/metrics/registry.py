"""Per-queue activity metrics."""
from __future__ import annotations

from typing import Dict, Tuple

from .base import QueueMetric, Tally, WaitTimes


class QueueMetrics:
    """Tallies and timings describing what a ticket queue has done."""

    def __init__(self) -> None:
        self.issued = Tally("tickets_issued_total", description="Tickets handed out.")
        self.attached = Tally("tickets_attached_total", description="Tickets filled with data.")
        self.expired = Tally("tickets_expired_total", description="Reservations evicted after their lifetime.")
        self.cancelled = Tally("tickets_cancelled_total", description="Reservations withdrawn explicitly.")
        self.served = Tally("clients_served_total", description="Clients promoted to working.")
        self.errors = Tally("queue_errors_total", description="Errors reported to the queue handler.", key_name="error")
        self.wait_time = WaitTimes(
            "ticket_wait_seconds",
            description="Seconds between ticket issue and the client being served.",
        )

    def metrics(self) -> Tuple[QueueMetric, ...]:
        return (
            self.issued,
            self.attached,
            self.expired,
            self.cancelled,
            self.served,
            self.errors,
            self.wait_time,
        )

    def record_error(self, error: BaseException) -> None:
        self.errors.add(key=type(error).__name__)

    def snapshot(self) -> Dict[str, object]:
        """Return a serialisable snapshot of all queue metrics."""

        return {metric.name: metric.snapshot() for metric in self.metrics()}

    def clear(self) -> None:
        for metric in self.metrics():
            metric.clear()
