from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .scheduling import TimerHandle
from .state import ClientStateMachine, ClientStatus


@dataclass(slots=True)
class ClientRecord:
    """Internal record for one reserved or filled slot in the queue."""

    id: int
    issued_at: float
    expires_at: float | None = None
    status: ClientStatus = ClientStatus.MISSING
    value: Any = None
    timer: TimerHandle | None = None

    @property
    def is_missing(self) -> bool:
        return self.status is ClientStatus.MISSING

    def is_expired(self, now: float) -> bool:
        if self.expires_at is None:
            return False
        return now > self.expires_at

    def cancel_timer(self) -> None:
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None

    def fill(self, value: Any) -> None:
        ClientStateMachine.assert_transition(self.status, ClientStatus.PENDING)
        self.cancel_timer()
        self.value = value
        self.status = ClientStatus.PENDING

    def serve(self) -> None:
        ClientStateMachine.assert_transition(self.status, ClientStatus.WORKING)
        self.status = ClientStatus.WORKING

    def to_entry(self) -> QueueEntry:
        return QueueEntry(id=self.id, value=self.value)


@dataclass(frozen=True, slots=True)
class QueueEntry:
    """Simplified view of a client handed back to callers."""

    id: int
    value: Any
