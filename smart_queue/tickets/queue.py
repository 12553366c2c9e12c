from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from threading import RLock
from typing import Any, Callable, Mapping

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider

from smart_queue.core.config import QueueOptions, QueueSettings, get_settings
from smart_queue.core.logging import configure_logging, init_tracer, shutdown_tracer
from smart_queue.metrics import QueueMetrics

from .errors import (
    CapacityExceededError,
    ClientMissingError,
    QueueEmptyError,
    QueueError,
    TicketExpiredError,
    TicketNotFoundError,
)
from .models import ClientRecord, QueueEntry
from .scheduling import ExpirationScheduler, Scheduler
from .state import QueueStatus

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

QueueHandler = Callable[[QueueError | None, QueueStatus], Any]

_UNSET: Any = object()

# Expired ticket numbers remembered so late data is told "expired" rather than "not found".
EXPIRED_MEMORY = 1024


def noop_handler(error: QueueError | None, status: QueueStatus) -> None:
    """Default handler. Notifications are dropped; errors still come back as return values."""


def _is_positive_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


class TicketQueue:
    """A FIFO queue with a ticket system, inspired by real life.

    A client may take a ticket before it has anything to hand over and join
    its reserved place later, in any order. Clients are served strictly in
    ticket order. Tickets that are not filled within their lifetime expire
    and are dropped from the line.

    Failures never raise by default: they are passed to ``handler`` as
    ``handler(error, status)`` and returned from the call. The handler is
    also told once each time the queue runs dry, with ``error=None`` and
    ``status=QueueStatus.FINISHED``.
    """

    def __init__(
        self,
        limit: int | QueueHandler | None = None,
        lifetime: int | None = None,
        handler: QueueHandler | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        loop: asyncio.AbstractEventLoop | None = None,
        scheduler: Scheduler | None = None,
        metrics: QueueMetrics | None = None,
        raise_errors: bool = False,
        expired_memory: int = EXPIRED_MEMORY,
    ) -> None:
        if callable(limit) and handler is None:
            limit, handler = None, limit
        options = QueueOptions.parse({"limit": limit, "lifetime": lifetime, "handler": handler})

        self._limit = options.limit
        self._lifetime = options.lifetime
        self._handler: QueueHandler = options.handler or noop_handler
        self._clock = clock
        self._scheduler: Scheduler = scheduler or ExpirationScheduler(loop)
        self._metrics = metrics or QueueMetrics()
        self._raise_errors = raise_errors

        self._lock = RLock()
        self._records: dict[int, ClientRecord] = {}
        self._expired: OrderedDict[int, None] = OrderedDict()
        self._expired_memory = max(0, expired_memory)
        self._ticket_number = 0
        self._current_ticket = 0
        self._status = QueueStatus.EMPTY
        self._tracer_provider: TracerProvider | None = None

    @classmethod
    def from_options(cls, options: Mapping[str, Any], **kwargs: Any) -> "TicketQueue":
        """Build a queue from a mapping with ``limit``, ``lifetime`` and ``handler`` keys."""

        parsed = QueueOptions.parse(options)
        return cls(parsed.limit, parsed.lifetime, parsed.handler, **kwargs)

    @classmethod
    def from_settings(
        cls,
        settings: QueueSettings | None = None,
        *,
        handler: QueueHandler | None = None,
        **kwargs: Any,
    ) -> "TicketQueue":
        """Build a queue from environment settings and apply their logging and tracing options.

        The tracer provider installed here, if any, is shut down by :meth:`close`.
        """

        settings = settings or get_settings()
        options = QueueOptions.from_settings(settings, handler=handler)
        queue = cls(options.limit, options.lifetime, options.handler, **kwargs)
        configure_logging(settings)
        queue._tracer_provider = init_tracer(settings)
        return queue

    # Inspection

    @property
    def limit(self) -> int | None:
        return self._limit

    @property
    def lifetime(self) -> int | None:
        """Default ticket validity in milliseconds, ``None`` when tickets never expire."""

        return self._lifetime

    @property
    def handler(self) -> QueueHandler:
        return self._handler

    @property
    def metrics(self) -> QueueMetrics:
        return self._metrics

    @property
    def status(self) -> QueueStatus:
        return self._status

    @property
    def current_ticket(self) -> int:
        return self._current_ticket

    @property
    def ticket_number(self) -> int:
        """Number of the last issued ticket."""

        return self._ticket_number

    @property
    def client_count(self) -> int:
        return len(self._records)

    @property
    def queue(self) -> dict[int, Any]:
        """Values of the clients that have joined, keyed by ticket number."""

        with self._lock:
            return {
                record.id: record.value
                for record in self._records.values()
                if not record.is_missing
            }

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, ticket: object) -> bool:
        return _is_positive_int(ticket) and ticket in self._records

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(status={self._status.value!r}, clients={len(self._records)}, "
            f"current_ticket={self._current_ticket}, limit={self._limit}, lifetime={self._lifetime})"
        )

    # Tickets

    def issue_ticket(self, lifetime: int | None = None) -> int | QueueError:
        """Reserve the next place in line and return its ticket number.

        ``lifetime`` overrides the queue default, in milliseconds.
        """

        if lifetime is not None and not _is_positive_int(lifetime):
            raise ValueError(f"lifetime must be a positive number of milliseconds, got {lifetime!r}")

        with tracer.start_as_current_span("smart_queue.issue_ticket") as span, self._lock:
            now = self._clock()
            if self._at_capacity():
                self._evict_expired(now)
            if self._at_capacity():
                return self._report(CapacityExceededError(self._limit))

            self._ticket_number += 1
            ttl = lifetime or self._lifetime
            record = ClientRecord(
                id=self._ticket_number,
                issued_at=now,
                expires_at=None if ttl is None else now + ttl / 1000,
            )
            self._records[record.id] = record
            if ttl is not None:
                record.timer = self._scheduler.call_later(ttl / 1000, self._expire, record)

            self._refresh_status()
            self._metrics.issued.add()
            span.set_attribute("smart_queue.ticket", record.id)
            span.set_attribute("smart_queue.status", self._status.value)
            logger.debug("Issued ticket No. %s (lifetime=%s ms)", record.id, ttl)
            return record.id

    def attach(self, ticket: Any, data: Any = _UNSET) -> QueueEntry | QueueError:
        """Fill a reserved ticket with ``data``.

        Called with a single argument, that argument is the data: a fresh
        ticket is issued for it, placing it after every ticket already issued.
        """

        if data is _UNSET:
            return self.join(ticket)

        with tracer.start_as_current_span("smart_queue.attach") as span, self._lock:
            span.set_attribute("smart_queue.ticket", str(ticket))
            return self._fill(ticket, data)

    def join(self, data: Any) -> QueueEntry | QueueError:
        """Append ``data`` to the queue without a previously issued ticket."""

        with tracer.start_as_current_span("smart_queue.join") as span, self._lock:
            ticket = self.issue_ticket()
            if isinstance(ticket, QueueError):
                return ticket
            span.set_attribute("smart_queue.ticket", ticket)
            return self._fill(ticket, data)

    def cancel_ticket(self, ticket: int) -> bool | QueueError:
        """Withdraw a reservation that has not been filled."""

        with self._lock:
            record = self._records.get(ticket) if _is_positive_int(ticket) else None
            if record is None or not record.is_missing:
                return self._report(TicketNotFoundError(ticket))

            record.cancel_timer()
            del self._records[record.id]
            self._refresh_status()
            self._metrics.cancelled.add()
            logger.debug("Ticket No. %s cancelled", record.id)
            return True

    # Serving

    def current(self) -> QueueEntry | QueueError:
        """Return the client at the front of the line without moving it."""

        with self._lock:
            if self._status is QueueStatus.FINISHED:
                return self._report(QueueEmptyError())

            record = self._head(self._clock())
            if record is None:
                return self._report(QueueEmptyError())
            if record.is_missing:
                return self._report(ClientMissingError(record.id))
            return record.to_entry()

    def advance(self, callback: QueueHandler | None = None) -> QueueEntry | QueueStatus | QueueError:
        """Dismiss the client being served and call the next one in line.

        Returns the next client, ``QueueStatus.FINISHED`` once nobody is left,
        or a :class:`ClientMissingError` if the next ticket holder has not
        joined yet. In the last case the reservation keeps its place and a
        later call looks at it again.
        """

        with tracer.start_as_current_span("smart_queue.advance") as span, self._lock:
            done = self._records.pop(self._current_ticket, None)
            if done is not None:
                done.cancel_timer()
                logger.debug("Client No. %s done", done.id)

            now = self._clock()
            while self._records:
                record = next(iter(self._records.values()))
                if record.is_missing:
                    if record.is_expired(now):
                        self._evict(record)
                        continue
                    self._current_ticket = record.id - 1
                    self._refresh_status()
                    span.set_attribute("smart_queue.missing", record.id)
                    return self._report(ClientMissingError(record.id), callback)

                record.serve()
                self._current_ticket = record.id
                self._refresh_status()
                self._metrics.served.add()
                self._metrics.wait_time.observe(now - record.issued_at)
                span.set_attribute("smart_queue.ticket", record.id)
                logger.debug("Serving client No. %s", record.id)
                return record.to_entry()

            return self._finish(callback)

    def start(self, callback: QueueHandler | None = None) -> QueueEntry | QueueStatus | QueueError:
        """Begin serving once every reservation has been filled."""

        with self._lock:
            now = self._clock()
            for record in self._records.values():
                if record.is_missing and not record.is_expired(now):
                    return self._report(
                        ClientMissingError(record.id),
                        callback,
                    )
            return self.advance(callback)

    def reset(self) -> None:
        """Drop every client and restart numbering. Limit, lifetime and handler are kept."""

        with self._lock:
            for record in self._records.values():
                record.cancel_timer()
            self._records.clear()
            self._expired.clear()
            self._ticket_number = 0
            self._current_ticket = 0
            self._status = QueueStatus.EMPTY
            logger.debug("Queue reset")

    def close(self) -> None:
        """Drop every client and flush the tracer installed by :meth:`from_settings`."""

        self.reset()
        shutdown_tracer(self._tracer_provider)
        self._tracer_provider = None

    # Internals

    def _fill(self, ticket: Any, data: Any) -> QueueEntry | QueueError:
        record = self._records.get(ticket) if _is_positive_int(ticket) else None
        if record is None:
            if _is_positive_int(ticket) and ticket in self._expired:
                return self._report(TicketExpiredError(ticket))
            return self._report(TicketNotFoundError(ticket))
        if not record.is_missing:
            return self._report(TicketNotFoundError(ticket))
        if record.is_expired(self._clock()):
            return self._report(TicketExpiredError(record.id))

        record.fill(data)
        self._metrics.attached.add()
        logger.debug("Client No. %s joined", record.id)
        return record.to_entry()

    def _expire(self, record: ClientRecord) -> None:
        with self._lock:
            if self._records.get(record.id) is not record or not record.is_missing:
                return
            record.timer = None
            self._evict(record)

    def _evict(self, record: ClientRecord) -> None:
        record.cancel_timer()
        del self._records[record.id]
        self._remember_expired(record.id)
        self._refresh_status()
        self._metrics.expired.add()
        logger.debug("Ticket No. %s expired", record.id)

    def _remember_expired(self, ticket: int) -> None:
        self._expired[ticket] = None
        while len(self._expired) > self._expired_memory:
            self._expired.popitem(last=False)

    def _evict_expired(self, now: float) -> None:
        # Timers may be unarmed when no event loop was running at issue time.
        stale = [record for record in self._records.values() if record.is_missing and record.is_expired(now)]
        for record in stale:
            self._evict(record)

    def _head(self, now: float) -> ClientRecord | None:
        for record in self._records.values():
            if record.is_missing and record.is_expired(now):
                continue
            return record
        return None

    def _finish(self, callback: QueueHandler | None) -> QueueStatus:
        self._status = QueueStatus.FINISHED
        logger.debug("Queue finished after ticket No. %s", self._current_ticket)
        try:
            self._notify(None, callback)
        finally:
            self._refresh_status()
        return QueueStatus.FINISHED

    def _at_capacity(self) -> bool:
        return self._limit is not None and len(self._records) >= self._limit

    def _refresh_status(self) -> None:
        if not self._records:
            self._status = QueueStatus.EMPTY
        elif self._at_capacity():
            self._status = QueueStatus.FULL
        else:
            self._status = QueueStatus.FILLING

    def _notify(self, error: QueueError | None, callback: QueueHandler | None) -> None:
        status = self._status
        self._handler(error, status)
        if callback is not None:
            callback(error, status)

    def _report(self, error: QueueError, callback: QueueHandler | None = None) -> QueueError:
        logger.warning("%s", error)
        self._metrics.record_error(error)
        self._notify(error, callback)
        if self._raise_errors:
            raise error
        return error
