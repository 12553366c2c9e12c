"""Ticket queue domain models and the queue itself."""

from .state import ClientStateMachine, ClientStatus, QueueStatus
from .errors import (
    CapacityExceededError,
    ClientMissingError,
    QueueConfigurationError,
    QueueEmptyError,
    QueueError,
    TicketExpiredError,
    TicketNotFoundError,
)
from .scheduling import ExpirationScheduler
from .models import ClientRecord, QueueEntry
from .queue import QueueHandler, TicketQueue, noop_handler

__all__ = [
    "CapacityExceededError",
    "ClientMissingError",
    "ClientRecord",
    "ClientStateMachine",
    "ClientStatus",
    "ExpirationScheduler",
    "QueueConfigurationError",
    "QueueEmptyError",
    "QueueEntry",
    "QueueError",
    "QueueHandler",
    "QueueStatus",
    "TicketExpiredError",
    "TicketNotFoundError",
    "TicketQueue",
    "noop_handler",
]
