"""Bidirectional pipe channel to a long-running worker process."""

from __future__ import annotations

__version__ = "1.0.0"

from piped_process.piped_process import PipedProcess
from piped_process.piped_process_manager import PipedProcessManager, PipedProcessManagerSingleton
from piped_process.process_utils import get_process_tree_info, terminate_process_tree
from piped_process.types import ProcessCreationError, ProcessState, SendResponse, Timeout

__all__ = [
    "PipedProcess",
    "PipedProcessManager",
    "PipedProcessManagerSingleton",
    "ProcessCreationError",
    "ProcessState",
    "SendResponse",
    "Timeout",
    "get_process_tree_info",
    "terminate_process_tree",
]
