"""In-memory metrics for ticket queues."""

from .base import QueueMetric, Tally, WaitSummary, WaitTimes
from .registry import QueueMetrics

__all__ = [
    "QueueMetric",
    "QueueMetrics",
    "Tally",
    "WaitSummary",
    "WaitTimes",
]
