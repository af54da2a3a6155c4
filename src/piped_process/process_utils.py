#!/usr/bin/env python3
"""Process utilities for stopping a worker and its descendants."""

from __future__ import annotations

import contextlib
import logging
import warnings

import psutil

logger = logging.getLogger(__name__)


def get_process_tree_info(pid: int) -> str:
    """Get information about a process and its children."""
    try:
        process = psutil.Process(pid)
        info = [f"Process {pid} ({process.name()})"]
        info.append(f"Status: {process.status()}")
        info.append(f"Command line: {process.cmdline()}")

        children = process.children(recursive=True)
        if children:
            info.append("\nChild processes:")
            for child in children:
                info.append(f"  Child {child.pid} ({child.name()})")
                info.append(f"    Status: {child.status()}")

        return "\n".join(info)
    except Exception:  # noqa: BLE001
        return f"Could not get process info for PID {pid}"


def terminate_process_tree(pid: int, force: bool = False, timeout: float = 3.0) -> None:
    """Stop a process and all its descendants.

    Descendants are stopped first so they are not re-parented and leaked when
    the worker goes away. With ``force`` every process is killed outright,
    otherwise descendants get a termination request and are killed only if
    they are still alive after ``timeout`` seconds. The root process receives
    a single termination request (or kill); reaping it is left to the caller.

    Never raises: a process that is already gone is ignored and other
    failures are reported as warnings.
    """
    try:
        parent = psutil.Process(pid)
        children = parent.children(recursive=True)
    except psutil.NoSuchProcess:
        logger.debug("Process %s already exited", pid)
        return
    except (OSError, psutil.Error) as e:
        warnings.warn(f"Error inspecting process tree of {pid}: {e}", UserWarning, stacklevel=2)
        return

    for child in children:
        with contextlib.suppress(psutil.NoSuchProcess):
            if force:
                child.kill()
            else:
                child.terminate()

    if children:
        _, alive = psutil.wait_procs(children, timeout=timeout)
        for child in alive:
            with contextlib.suppress(psutil.NoSuchProcess):
                child.kill()

    try:
        if force:
            parent.kill()
        else:
            parent.terminate()
    except psutil.NoSuchProcess:
        logger.debug("Process %s exited before termination", pid)
    except (OSError, psutil.Error) as e:
        warnings.warn(f"Error terminating process {pid}: {e}", UserWarning, stacklevel=2)
