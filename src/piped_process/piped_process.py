"""Bidirectional byte channel to a long-running worker process.

## Basic Usage

### Request / Response
```python
with PipedProcess(["z3", "-in"]) as solver:
    solver.send("(check-sat)\\n")
    answer = solver.wait_receive()  # b"sat\\n"
```

### Manual start control
```python
proc = PipedProcess(["cat"], auto_run=False)
proc.status  # ProcessState.NOT_CREATED
proc.start()
proc.status  # ProcessState.CREATED
```

### Polling
```python
proc.can_receive()                       # instantaneous check
proc.can_receive(2.5)                    # wait up to 2.5 seconds
proc.can_receive(None)                   # wait until output or hangup
proc.can_receive(Timeout.bounded(2.5))   # same as 2.5, spelled out
proc.wait_receivable(interval=0.05)      # coarse sleep/poll loop
```

### Chunk iteration
```python
with proc.chunk_iter(timeout=1.0) as chunks:
    for chunk in chunks:
        handle(chunk)
```

## Semantics

- The worker's stdin is the outbound pipe; its stdout and stderr share the
  inbound pipe.
- Bytes move unframed. Two worker writes can arrive in one receive() and one
  write can be split across two.
- No background threads. Only the readiness poll blocks.
- close() runs once, never raises and always stops the worker.
"""

import contextlib
import logging
import subprocess
import sys
import time
import warnings
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from piped_process.chunk_iterator import _PipedProcessChunkIterator
from piped_process.pipe_io import PipeReader, PipeWriter, open_pipe_reader
from piped_process.piped_process_manager import PipedProcessManagerSingleton
from piped_process.process_utils import terminate_process_tree
from piped_process.types import (
    ProcessCreationError,
    ProcessState,
    Readiness,
    SendResponse,
    Timeout,
)

logger = logging.getLogger(__name__)

DEFAULT_READ_SIZE = 2048
DEFAULT_TERMINATE_TIMEOUT = 3.0
DEFAULT_WAIT_INTERVAL = 0.01


class PipedProcess:
    """
    A child process driven over a pair of pipes.

    The channel owns exactly one child and both parent-side pipe ends. It
    starts in ProcessState.NOT_CREATED, becomes CREATED once the worker is
    spawned and ends in STOPPED (output hung up, or closed) or ERRORED
    (spawn or poll failure). send/receive/poll are only meaningful while
    CREATED.
    """

    def __init__(
        self,
        command: Sequence[str],
        cwd: Path | str | None = None,
        env: Mapping[str, str] | None = None,
        auto_run: bool = True,
        encoding: str = "utf-8",
        read_size: int = DEFAULT_READ_SIZE,
        terminate_timeout: float = DEFAULT_TERMINATE_TIMEOUT,
    ) -> None:
        """
        Initialize the channel and, unless auto_run is False, spawn the worker.

        Args:
            command: Executable followed by its arguments. Passed verbatim, no shell.
            cwd: Working directory for the worker. None inherits ours.
            env: Environment for the worker. None inherits ours.
            auto_run: If True, spawn the worker immediately.
            encoding: Encoding applied to str messages given to send().
            read_size: Bytes requested per non-blocking read.
            terminate_timeout: Seconds close() waits for the worker before killing it.

        Raises:
            TypeError: command is a single string or holds non-strings.
            ValueError: command is empty or a size/timeout is not positive.
            ProcessCreationError: auto_run is True and the spawn failed.
        """
        self._closed = True
        if isinstance(command, (str, bytes)):
            error_message = "command must be a sequence of arguments, not a single string"
            raise TypeError(error_message)
        command = tuple(command)
        if not command:
            error_message = "command must contain at least the executable"
            raise ValueError(error_message)
        bad_parts = [part for part in command if not isinstance(part, str)]
        if bad_parts:
            error_message = f"command arguments must be strings, got {bad_parts!r}"
            raise TypeError(error_message)
        if read_size <= 0:
            error_message = f"read_size must be positive, got {read_size}"
            raise ValueError(error_message)
        if terminate_timeout < 0:
            error_message = f"terminate_timeout must be non-negative, got {terminate_timeout}"
            raise ValueError(error_message)

        self._command: tuple[str, ...] = command
        self.cwd = str(cwd) if cwd is not None else None
        self.env = dict(env) if env is not None else None
        self.encoding = encoding
        self._read_size = read_size
        self._terminate_timeout = terminate_timeout
        self._state = ProcessState.NOT_CREATED
        self.proc: subprocess.Popen[bytes] | None = None
        self._reader: PipeReader | None = None
        self._writer: PipeWriter | None = None
        self._start_time: float | None = None
        self._closed = False
        if auto_run:
            self.start()

    @property
    def command(self) -> tuple[str, ...]:
        return self._command

    @property
    def status(self) -> ProcessState:
        """Current lifecycle state."""
        return self._state

    def get_status(self) -> ProcessState:
        return self._state

    def get_command_str(self) -> str:
        return subprocess.list2cmdline(self._command)

    def _set_state(self, new_state: ProcessState) -> None:
        if self._state.terminal or self._state is new_state:
            return
        logger.debug("%s: %s -> %s", self.get_command_str(), self._state.value, new_state.value)
        self._state = new_state

    def _validate_created(self, operation: str) -> None:
        if self._state is not ProcessState.CREATED or self._reader is None:
            error_message = f"Can only {operation}() from a created process, state is {self._state.value}"
            raise ValueError(error_message)

    # ------------------------------------------------------------------
    # Launcher
    # ------------------------------------------------------------------

    def _spawn(self) -> "subprocess.Popen[bytes]":
        # bufsize=0 keeps our side of stdin unbuffered; stderr shares the stdout pipe
        return subprocess.Popen(  # noqa: S603
            list(self._command),
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            bufsize=0,
            cwd=self.cwd,
            env=self.env,
        )

    def start(self) -> None:
        """
        Spawn the worker and wire its standard streams to our pipes.

        Raises:
            ValueError: The channel was already started or was closed.
            ProcessCreationError: Pipe creation or the spawn failed; state is ERRORED.
        """
        if self._state is not ProcessState.NOT_CREATED:
            error_message = f"Process was already started, state is {self._state.value}"
            raise ValueError(error_message)
        if self._closed:
            error_message = "Process was closed before it was started"
            raise ValueError(error_message)

        cmd_str = self.get_command_str()
        try:
            self.proc = self._spawn()
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            self._set_state(ProcessState.ERRORED)
            error_message = f"Launching {cmd_str} failed: {e}"
            raise ProcessCreationError(error_message) from e

        assert self.proc.stdin is not None
        assert self.proc.stdout is not None
        try:
            self._reader = open_pipe_reader(self.proc.stdout)
        except OSError as e:
            self._set_state(ProcessState.ERRORED)
            self._release_resources()
            error_message = f"Making the output pipe of {cmd_str} non-blocking failed: {e}"
            raise ProcessCreationError(error_message) from e
        self._writer = PipeWriter(self.proc.stdin)

        self._start_time = time.time()
        self._set_state(ProcessState.CREATED)
        logger.debug("Started %s (pid %s)", cmd_str, self.proc.pid)
        self._register_with_manager()

    def _register_with_manager(self) -> None:
        try:
            PipedProcessManagerSingleton.register(self)
        except (AttributeError, TypeError, RuntimeError) as e:
            warnings.warn(f"PipedProcessManager.register failed: {e}", stacklevel=2)

    # ------------------------------------------------------------------
    # Writer / reader
    # ------------------------------------------------------------------

    def send(self, message: bytes | str) -> SendResponse:
        """
        Write a message to the worker's stdin and flush it.

        Returns:
            SendResponse.ERRORED without any I/O if the channel is not created,
            SendResponse.FAILED if the pipe is broken or closed,
            SendResponse.SUCCEEDED otherwise.

        Raises:
            TypeError: If message is not str or a bytes-like object.
        """
        if isinstance(message, str):
            data = message.encode(self.encoding)
        elif isinstance(message, (bytes, bytearray, memoryview)):
            data = bytes(message)
        else:
            error_message = f"message must be str or bytes, got {type(message).__name__}"
            raise TypeError(error_message)
        if self._state is not ProcessState.CREATED or self._writer is None:
            return SendResponse.ERRORED
        try:
            self._writer.write(data)
        except (OSError, ValueError) as e:
            logger.debug("Sending to %s failed: %s", self.get_command_str(), e)
            return SendResponse.FAILED
        return SendResponse.SUCCEEDED

    def receive(self) -> bytes:
        """
        Drain whatever the worker has written so far, without waiting.

        Returns:
            The accumulated bytes, b"" if nothing was buffered.

        Raises:
            ValueError: The channel is not in the created state.
        """
        self._validate_created("receive")
        assert self._reader is not None
        chunks: list[bytes] = []
        while True:
            try:
                chunk = self._reader.read_available(self._read_size)
            except OSError as e:
                logger.debug("Reading from %s failed: %s", self.get_command_str(), e)
                break
            # None: nothing available right now, b"": end of stream
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)

    # ------------------------------------------------------------------
    # Readiness poller
    # ------------------------------------------------------------------

    def can_receive(self, timeout: Timeout | float | None = 0) -> bool:
        """
        Wait until at least one byte can be read.

        Args:
            timeout: 0 checks once, a positive number waits up to that many
                seconds, None waits indefinitely. A Timeout is accepted as is.

        Returns:
            True if output is available. False on timeout, or when the wait
            ended the channel: a hangup with nothing left to read moves it to
            STOPPED and a poll error moves it to ERRORED.
        """
        wait_for = Timeout.of(timeout)
        if self._state is not ProcessState.CREATED or self._reader is None:
            return False
        try:
            readiness = self._reader.wait(wait_for)
        except OSError as e:
            logger.warning("Polling output of %s failed: %s", self.get_command_str(), e)
            self._set_state(ProcessState.ERRORED)
            return False
        if readiness is Readiness.CLOSED:
            logger.debug("Output of %s reached end of stream", self.get_command_str())
            self._set_state(ProcessState.STOPPED)
            return False
        return readiness is Readiness.READY

    def wait_receive(self) -> bytes:
        """Block until output is available, then drain it.

        Returns b"" if the channel stopped or errored while waiting.
        """
        self.can_receive(Timeout.unbounded())
        if self._state is not ProcessState.CREATED:
            return b""
        return self.receive()

    def wait_receivable(self, interval: float = DEFAULT_WAIT_INTERVAL) -> None:
        """Sleep/poll until output is available or the channel leaves CREATED."""
        if interval < 0:
            error_message = f"interval must be non-negative, got {interval}"
            raise ValueError(error_message)
        while self._state is ProcessState.CREATED and not self.can_receive(0):
            time.sleep(interval)

    def chunk_iter(self, timeout: Timeout | float | None) -> _PipedProcessChunkIterator:
        """Return a context-managed iterator over received chunks.

        Args:
            timeout: Per-chunk wait. None waits indefinitely for each chunk.
        """
        return _PipedProcessChunkIterator(self, timeout)

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    @property
    def pid(self) -> int | None:
        if self.proc is None:
            return None
        return self.proc.pid

    @property
    def returncode(self) -> int | None:
        if self.proc is None:
            return None
        return self.proc.returncode

    def poll(self) -> int | None:
        """Exit code of the worker, or None while it is running."""
        if self.proc is None:
            return None
        return self.proc.poll()

    @property
    def start_time(self) -> float | None:
        return self._start_time

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def _terminate_child(self, proc: "subprocess.Popen[bytes]") -> None:
        cmd_str = self.get_command_str()
        if proc.poll() is None:
            # Windows has no graceful signal for console-less workers
            terminate_process_tree(proc.pid, force=sys.platform == "win32", timeout=self._terminate_timeout)
        try:
            proc.wait(timeout=self._terminate_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("%s did not exit after %ss, killing it", cmd_str, self._terminate_timeout)
            with contextlib.suppress(OSError):
                proc.kill()
            try:
                proc.wait(timeout=self._terminate_timeout)
            except subprocess.TimeoutExpired:
                warnings.warn(f"Could not reap {cmd_str} (pid {proc.pid})", stacklevel=2)
        logger.debug("Stopped %s with exit code %s", cmd_str, proc.returncode)

    def _release_resources(self) -> None:
        # Each step runs even if an earlier one failed
        if self._writer is not None:
            self._writer.close()
        elif self.proc is not None and self.proc.stdin is not None:
            with contextlib.suppress(OSError, ValueError):
                self.proc.stdin.close()

        if self._reader is not None:
            self._reader.close()
        elif self.proc is not None and self.proc.stdout is not None:
            with contextlib.suppress(OSError, ValueError):
                self.proc.stdout.close()

        if self.proc is not None:
            try:
                self._terminate_child(self.proc)
            except (OSError, ValueError, subprocess.SubprocessError) as e:
                warnings.warn(f"Terminating {self.get_command_str()} failed: {e}", stacklevel=2)

    def close(self) -> None:
        """
        Release both pipe ends and stop the worker.

        Safe to call any number of times and in any state; only the first
        call does anything. A created channel ends up STOPPED.
        """
        if getattr(self, "_closed", True):
            return
        self._closed = True
        if self._state is ProcessState.CREATED:
            self._set_state(ProcessState.STOPPED)
        self._release_resources()
        try:
            PipedProcessManagerSingleton.unregister(self)
        except (AttributeError, TypeError, RuntimeError) as e:
            warnings.warn(f"PipedProcessManager.unregister failed: {e}", stacklevel=2)

    def __enter__(self) -> "PipedProcess":
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: Any | None) -> bool:
        self.close()
        return False

    def __del__(self) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"PipedProcess({list(self._command)!r}, status={self._state.value})"
