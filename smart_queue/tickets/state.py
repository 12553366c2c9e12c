from __future__ import annotations

from enum import Enum


class ClientStatus(str, Enum):
    """Supported states for a reserved slot in the queue."""

    MISSING = "missing"
    PENDING = "pending"
    WORKING = "working"


class QueueStatus(str, Enum):
    """Overall state of a ticket queue."""

    EMPTY = "empty"
    FILLING = "filling"
    FULL = "full"
    FINISHED = "finished"


class ClientStateMachine:
    """Validate client record transitions."""

    _TRANSITIONS: dict[ClientStatus, set[ClientStatus]] = {
        ClientStatus.MISSING: {ClientStatus.PENDING},
        ClientStatus.PENDING: {ClientStatus.WORKING},
        ClientStatus.WORKING: set(),
    }

    @classmethod
    def initial_state(cls) -> ClientStatus:
        return ClientStatus.MISSING

    @classmethod
    def can_transition(cls, current: ClientStatus, new: ClientStatus) -> bool:
        if current == new:
            return True
        return new in cls._TRANSITIONS.get(current, set())

    @classmethod
    def assert_transition(cls, current: ClientStatus, new: ClientStatus) -> None:
        if not cls.can_transition(current, new):
            raise ValueError(f"Invalid client status transition: {current!s} -> {new!s}")
