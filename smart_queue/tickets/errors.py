from __future__ import annotations


class QueueError(RuntimeError):
    """Base error for recoverable ticket queue conditions."""

    def __init__(self, message: str, *, ticket: object | None = None) -> None:
        super().__init__(message)
        self.ticket = ticket


class CapacityExceededError(QueueError):
    """Raised when a ticket is requested while the queue is at its limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Please stand by, the queue has reached its limit of {limit}")
        self.limit = limit


class TicketExpiredError(QueueError):
    """Raised when data arrives after a ticket's validity window."""

    def __init__(self, ticket: int) -> None:
        super().__init__(f"Ticket No. {ticket} has expired", ticket=ticket)


class TicketNotFoundError(QueueError):
    """Raised when an operation targets an unknown or already filled ticket."""

    def __init__(self, ticket: object) -> None:
        super().__init__(f"Ticket {ticket!r} is not outstanding", ticket=ticket)


class QueueEmptyError(QueueError):
    """Raised when the current client is requested from an empty queue."""

    def __init__(self) -> None:
        super().__init__("The queue is empty")


class ClientMissingError(QueueError):
    """Raised when the next client in line has reserved a ticket but sent no data."""

    def __init__(self, ticket: int) -> None:
        super().__init__(f"Client No. {ticket} is missing", ticket=ticket)


class QueueConfigurationError(TypeError):
    """Raised when a queue is constructed with invalid options."""
