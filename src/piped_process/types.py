"""Value types shared by the channel and its pipe ends."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class ProcessState(Enum):
    """Lifecycle of a PipedProcess."""

    NOT_CREATED = "not_created"
    CREATED = "created"
    STOPPED = "stopped"
    ERRORED = "errored"

    @property
    def terminal(self) -> bool:
        return self in (ProcessState.STOPPED, ProcessState.ERRORED)


class SendResponse(Enum):
    """Result of PipedProcess.send()."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ERRORED = "errored"


class Readiness(Enum):
    """Outcome of waiting on an inbound pipe."""

    READY = "ready"
    TIMEOUT = "timeout"
    CLOSED = "closed"


class ProcessCreationError(RuntimeError):
    """Raised when the pipes or the child process could not be created."""


# Largest timeout poll(2) accepts in one call (a C int of milliseconds)
MAX_POLL_MILLIS = 2**31 - 1


@dataclass(frozen=True)
class Timeout:
    """How long a readiness poll may block.

    Exactly one of three shapes:
    - ``Timeout.immediate()``: check once and return.
    - ``Timeout.bounded(seconds)``: wait up to ``seconds``.
    - ``Timeout.unbounded()``: wait until something happens.

    An infinite number of seconds is the same as ``Timeout.unbounded()``.
    """

    seconds: float | None

    def __post_init__(self) -> None:
        if self.seconds is not None and (math.isnan(self.seconds) or self.seconds < 0):
            error_message = f"Timeout must be non-negative, got {self.seconds}"
            raise ValueError(error_message)
        if self.seconds is not None and math.isinf(self.seconds):
            object.__setattr__(self, "seconds", None)

    @classmethod
    def immediate(cls) -> Timeout:
        return cls(0.0)

    @classmethod
    def bounded(cls, seconds: float) -> Timeout:
        return cls(float(seconds))

    @classmethod
    def unbounded(cls) -> Timeout:
        return cls(None)

    @classmethod
    def of(cls, value: Timeout | float | None) -> Timeout:
        """Normalize seconds (None meaning forever) into a Timeout."""
        if isinstance(value, Timeout):
            return value
        if value is None:
            return cls.unbounded()
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            error_message = f"timeout must be a number, None or Timeout, got {type(value).__name__}"
            raise TypeError(error_message)
        if value == 0:
            return cls.immediate()
        return cls.bounded(value)

    @property
    def is_immediate(self) -> bool:
        return self.seconds == 0

    @property
    def is_unbounded(self) -> bool:
        return self.seconds is None

    def as_poll_millis(self) -> int | None:
        """Milliseconds for one select.poll() call; None blocks indefinitely.

        Capped at MAX_POLL_MILLIS, so longer timeouts need several calls.
        """
        if self.seconds is None:
            return None
        return min(math.ceil(self.seconds * 1000), MAX_POLL_MILLIS)
