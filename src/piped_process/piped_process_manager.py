"""Registry of live channels, used to diagnose hung orchestrators."""

from __future__ import annotations

import threading
import time
import warnings
import weakref
from typing import TYPE_CHECKING

from piped_process.process_utils import get_process_tree_info
from piped_process.types import ProcessState

if TYPE_CHECKING:
    from piped_process.piped_process import PipedProcess


class PipedProcessManager:
    """Thread-safe registry of channels whose worker has been spawned.

    Holds weak references so a channel dropped without close() is still
    collected and torn down.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._processes: weakref.WeakSet[PipedProcess] = weakref.WeakSet()

    def register(self, proc: PipedProcess) -> None:
        """Register a channel."""
        with self._lock:
            self._processes.add(proc)

    def unregister(self, proc: PipedProcess) -> None:
        """Unregister a channel."""
        with self._lock:
            self._processes.discard(proc)

    def list_active(self) -> list[PipedProcess]:
        """List channels that are still usable."""
        with self._lock:
            return [p for p in self._processes if p.status is ProcessState.CREATED]

    def dump_active(self, include_tree: bool = False) -> None:
        """Dump information about usable channels as warnings."""
        active: list[PipedProcess] = self.list_active()
        if not active:
            warnings.warn("NO ACTIVE PIPED PROCESSES", UserWarning, stacklevel=2)
            return

        warnings.warn("ACTIVE PIPED PROCESSES:", UserWarning, stacklevel=2)

        now = time.time()
        for idx, p in enumerate(active, 1):
            start = p.start_time
            age_str = f"{(now - start):.1f}s" if start is not None else "?"
            warnings.warn(
                f"  {idx}. cmd={p.get_command_str()} pid={p.pid} age={age_str}",
                UserWarning,
                stacklevel=2,
            )
            if include_tree and p.pid is not None:
                warnings.warn(get_process_tree_info(p.pid), UserWarning, stacklevel=2)


# Global singleton instance for convenient access
PipedProcessManagerSingleton = PipedProcessManager()
