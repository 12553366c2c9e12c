"""FIFO queue with a ticket system: reserve a place first, join it later."""

from .tickets import (
    CapacityExceededError,
    ClientMissingError,
    ClientStatus,
    QueueConfigurationError,
    QueueEmptyError,
    QueueEntry,
    QueueError,
    QueueStatus,
    TicketExpiredError,
    TicketNotFoundError,
    TicketQueue,
)

__all__ = [
    "CapacityExceededError",
    "ClientMissingError",
    "ClientStatus",
    "QueueConfigurationError",
    "QueueEmptyError",
    "QueueEntry",
    "QueueError",
    "QueueStatus",
    "TicketExpiredError",
    "TicketNotFoundError",
    "TicketQueue",
]
