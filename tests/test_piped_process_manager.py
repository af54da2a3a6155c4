"""Tests for the live channel registry and process-tree helpers."""

import sys
import time
import unittest
import warnings

import psutil

from piped_process import PipedProcess, PipedProcessManager, PipedProcessManagerSingleton
from piped_process.process_utils import get_process_tree_info, terminate_process_tree

SLEEPER = [sys.executable, "-u", "-c", "import time; time.sleep(30)"]


class TestPipedProcessManager(unittest.TestCase):
    """Test registration through the channel lifecycle."""

    def test_registered_while_created(self):
        """Test that a running channel is listed as active."""
        proc = PipedProcess(SLEEPER)
        try:
            self.assertIn(proc, PipedProcessManagerSingleton.list_active())
        finally:
            proc.close()
        self.assertNotIn(proc, PipedProcessManagerSingleton.list_active())

    def test_not_registered_before_start(self):
        """Test that an unstarted channel is not registered."""
        proc = PipedProcess(SLEEPER, auto_run=False)
        self.assertNotIn(proc, PipedProcessManagerSingleton.list_active())

    def test_stopped_channel_not_active(self):
        """Test that a closed channel is no longer listed."""
        manager = PipedProcessManager()
        with PipedProcess([sys.executable, "-c", "pass"]) as proc:
            manager.register(proc)
            self.assertFalse(proc.can_receive(10))
            self.assertEqual(manager.list_active(), [])

    def test_register_is_idempotent(self):
        """Test that registering twice lists the channel once."""
        manager = PipedProcessManager()
        with PipedProcess(SLEEPER) as proc:
            manager.register(proc)
            manager.register(proc)
            self.assertEqual(manager.list_active(), [proc])
            manager.unregister(proc)
            manager.unregister(proc)
            self.assertEqual(manager.list_active(), [])

    def test_dump_active_warns(self):
        """Test that dump_active() reports each channel as a warning."""
        manager = PipedProcessManager()
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            manager.dump_active()
        self.assertTrue(any("NO ACTIVE PIPED PROCESSES" in str(w.message) for w in caught))

        with PipedProcess(SLEEPER) as proc:
            manager.register(proc)
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                manager.dump_active(include_tree=True)
        messages = [str(w.message) for w in caught]
        self.assertTrue(any(f"pid={proc.pid}" in message for message in messages))
        self.assertTrue(any(f"Process {proc.pid}" in message for message in messages))


class TestProcessUtils(unittest.TestCase):
    """Test psutil based termination."""

    def test_terminate_missing_process(self):
        """Test that terminating an exited process does not raise."""
        proc = PipedProcess([sys.executable, "-c", "pass"])
        assert proc.proc is not None
        proc.proc.wait(timeout=10)
        pid = proc.proc.pid
        proc.close()
        # Must not raise for a reaped pid
        terminate_process_tree(pid)

    def test_terminate_tree_stops_grandchildren(self):
        """Test that terminating a worker also stops its children."""
        code = (
            "import subprocess, sys, time\n"
            "child = subprocess.Popen([sys.executable, '-c', 'import time; time.sleep(30)'])\n"
            "print(child.pid)\n"
            "time.sleep(30)\n"
        )
        proc = PipedProcess([sys.executable, "-u", "-c", code], terminate_timeout=2.0)
        deadline = time.monotonic() + 10
        output = b""
        while b"\n" not in output and time.monotonic() < deadline:
            if proc.can_receive(0.1):
                output += proc.receive()
        grandchild_pid = int(output.strip())

        proc.close()

        gone = not psutil.pid_exists(grandchild_pid)
        if not gone:
            grandchild = psutil.Process(grandchild_pid)
            gone = grandchild.status() == psutil.STATUS_ZOMBIE
        self.assertTrue(gone)

    def test_tree_info_for_missing_pid(self):
        """Test tree info for a pid that does not exist."""
        self.assertIn("Could not get process info", get_process_tree_info(-1))


if __name__ == "__main__":
    unittest.main()
