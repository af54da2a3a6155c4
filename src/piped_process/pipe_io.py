"""Cross-platform pipe ends.

This module hides the difference between POSIX descriptors and Windows pipe
handles behind two small types: a reader for the child's output and a writer
for the child's input. The channel only ever sees these types.
"""

import contextlib
import logging
import os
import sys
import time
from typing import BinaryIO, Protocol

from piped_process.types import MAX_POLL_MILLIS, Readiness, Timeout

logger = logging.getLogger(__name__)

# Pacing of the Windows readiness loop, which has no poll(2) for pipes.
WINDOWS_POLL_INTERVAL = 0.01


class PipeReader(Protocol):
    """Read end of the child's combined stdout/stderr."""

    def read_available(self, size: int) -> bytes | None:
        """Read up to ``size`` bytes without blocking.

        Returns None when nothing is available right now and b"" at end of stream.
        """
        ...

    def wait(self, timeout: Timeout) -> Readiness: ...

    def close(self) -> None: ...


class UnixPipeReader:
    """Non-blocking descriptor read end, waited on with poll(2)."""

    def __init__(self, stream: BinaryIO) -> None:
        import fcntl  # noqa: PLC0415
        import select  # noqa: PLC0415

        self._stream = stream
        self._fd = stream.fileno()
        flags = fcntl.fcntl(self._fd, fcntl.F_GETFL)
        fcntl.fcntl(self._fd, fcntl.F_SETFL, flags | os.O_NONBLOCK)
        self._select = select
        self._poller = select.poll()
        self._poller.register(self._fd, select.POLLIN | select.POLLPRI)

    def read_available(self, size: int) -> bytes | None:
        try:
            return os.read(self._fd, size)
        except BlockingIOError:
            return None

    def wait(self, timeout: Timeout) -> Readiness:
        if timeout.seconds is None:
            return self._poll_once(None)
        deadline = time.monotonic() + timeout.seconds
        while True:
            remaining = Timeout.bounded(max(deadline - time.monotonic(), 0.0))
            millis = remaining.as_poll_millis()
            result = self._poll_once(millis)
            if result is not Readiness.TIMEOUT or millis < MAX_POLL_MILLIS:
                return result

    def _poll_once(self, millis: int | None) -> Readiness:
        select = self._select
        events = self._poller.poll(millis)
        if not events:
            return Readiness.TIMEOUT
        for fd, mask in events:
            # Data still buffered after a hangup is reported together with POLLHUP
            if mask & (select.POLLIN | select.POLLPRI):
                return Readiness.READY
            if mask & select.POLLHUP:
                return Readiness.CLOSED
            error_message = f"poll reported condition {mask:#x} on fd {fd}"
            raise OSError(error_message)
        return Readiness.TIMEOUT

    def close(self) -> None:
        with contextlib.suppress(KeyError, ValueError, OSError):
            self._poller.unregister(self._fd)
        with contextlib.suppress(OSError, ValueError):
            self._stream.close()


class WindowsPipeReader:
    """Pipe handle read end; availability comes from PeekNamedPipe.

    Reads never ask for more than the peeked byte count, so ReadFile returns
    without blocking even though the handle itself is synchronous.
    """

    def __init__(self, stream: BinaryIO, poll_interval: float = WINDOWS_POLL_INTERVAL) -> None:
        import msvcrt  # noqa: PLC0415  # type: ignore[import-not-found]

        self._stream = stream
        self._fd = stream.fileno()
        self._handle = msvcrt.get_osfhandle(self._fd)  # type: ignore[attr-defined]
        self._poll_interval = poll_interval

    def _available(self) -> int:
        import _winapi  # noqa: PLC0415  # type: ignore[import-not-found]

        navail, _ = _winapi.PeekNamedPipe(self._handle, 0)  # type: ignore[attr-defined]
        return navail

    def read_available(self, size: int) -> bytes | None:
        try:
            navail = self._available()
        except BrokenPipeError:
            return b""
        if navail == 0:
            return None
        return os.read(self._fd, min(size, navail))

    def wait(self, timeout: Timeout) -> Readiness:
        deadline = None if timeout.seconds is None else time.monotonic() + timeout.seconds
        while True:
            try:
                if self._available() > 0:
                    return Readiness.READY
            except BrokenPipeError:
                return Readiness.CLOSED
            if deadline is None:
                time.sleep(self._poll_interval)
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return Readiness.TIMEOUT
            time.sleep(min(self._poll_interval, remaining))

    def close(self) -> None:
        with contextlib.suppress(OSError, ValueError):
            self._stream.close()


class PipeWriter:
    """Write end of the child's stdin. Every write is flushed before returning."""

    def __init__(self, stream: BinaryIO) -> None:
        self._stream = stream

    def write(self, data: bytes) -> None:
        """Write all of ``data``.

        Raises:
            OSError: The pipe is broken (typically the child exited).
            ValueError: The stream was already closed.
        """
        view = memoryview(data)
        while view:
            # Unbuffered pipes may accept only part of a large write
            written = self._stream.write(view)
            view = view[written:]
        self._stream.flush()

    def close(self) -> None:
        with contextlib.suppress(OSError, ValueError):
            self._stream.close()


def open_pipe_reader(stream: BinaryIO) -> PipeReader:
    """Wrap the child's output stream in the reader for this platform.

    Raises:
        OSError: The stream could not be switched to non-blocking reads.
    """
    if sys.platform == "win32":
        return WindowsPipeReader(stream)
    return UnixPipeReader(stream)
