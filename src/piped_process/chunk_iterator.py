"""Chunk iterator module.

This module contains the _PipedProcessChunkIterator class for iterating over
the bytes a worker produces in a context-managed way.
"""

from collections.abc import Iterator
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from piped_process.piped_process import PipedProcess

from piped_process.types import Timeout


class _PipedProcessChunkIterator(AbstractContextManager[Iterator[bytes]], Iterator[bytes]):
    """Context-managed iterator over a PipedProcess's received chunks.

    Yields only non-empty byte strings. Stops when the channel leaves the
    created state or when a per-chunk timeout elapses with nothing received.
    Chunks carry no message boundaries.
    """

    def __init__(self, proc: "PipedProcess", timeout: Timeout | float | None) -> None:
        self._proc = proc
        self._timeout = Timeout.of(timeout)

    def __enter__(self) -> "_PipedProcessChunkIterator":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: Any | None,
    ) -> bool:
        # The channel stays open; closing it is the owner's job
        return False

    def __iter__(self) -> Iterator[bytes]:
        return self

    def __next__(self) -> bytes:
        while True:
            # can_receive() is only True while the channel is created
            if not self._proc.can_receive(self._timeout):
                raise StopIteration
            chunk = self._proc.receive()
            if chunk:
                return chunk
