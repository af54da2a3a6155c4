"""Tests for the Timeout sum type and the state enums."""

import unittest

from piped_process.types import MAX_POLL_MILLIS, ProcessState, Timeout


class TestTimeout(unittest.TestCase):
    """Test normalisation of timeout arguments."""

    def test_zero_is_immediate(self):
        """Test that zero seconds means an instantaneous check."""
        self.assertTrue(Timeout.of(0).is_immediate)
        self.assertTrue(Timeout.of(0.0).is_immediate)
        self.assertEqual(Timeout.of(0), Timeout.immediate())

    def test_none_is_unbounded(self):
        """Test that None means waiting forever."""
        timeout = Timeout.of(None)
        self.assertTrue(timeout.is_unbounded)
        self.assertIsNone(timeout.as_poll_millis())

    def test_positive_is_bounded(self):
        """Test that a positive number of seconds is a bounded wait."""
        timeout = Timeout.of(1.5)
        self.assertFalse(timeout.is_immediate)
        self.assertFalse(timeout.is_unbounded)
        self.assertEqual(timeout, Timeout.bounded(1.5))
        self.assertEqual(timeout.as_poll_millis(), 1500)

    def test_poll_millis_rounds_up(self):
        """Test that sub-millisecond waits are not rounded down to zero."""
        self.assertEqual(Timeout.bounded(0.0001).as_poll_millis(), 1)
        self.assertEqual(Timeout.immediate().as_poll_millis(), 0)

    def test_poll_millis_capped_for_long_waits(self):
        """Test that a wait of several weeks fits in a single poll() argument."""
        self.assertEqual(Timeout.bounded(3_000_000).as_poll_millis(), MAX_POLL_MILLIS)
        self.assertEqual(Timeout.of(1e300).as_poll_millis(), MAX_POLL_MILLIS)

    def test_infinity_is_unbounded(self):
        """Test that an infinite number of seconds waits forever."""
        self.assertEqual(Timeout.of(float("inf")), Timeout.unbounded())
        self.assertEqual(Timeout.bounded(float("inf")), Timeout.unbounded())
        self.assertIsNone(Timeout.of(float("inf")).as_poll_millis())

    def test_timeout_passes_through(self):
        """Test that a Timeout instance is returned unchanged."""
        timeout = Timeout.bounded(2)
        self.assertIs(Timeout.of(timeout), timeout)

    def test_negative_rejected(self):
        """Test that negative durations are rejected."""
        with self.assertRaises(ValueError):
            Timeout.of(-0.5)
        with self.assertRaises(ValueError):
            Timeout.bounded(-1)
        with self.assertRaises(ValueError):
            Timeout.of(float("-inf"))

    def test_nan_rejected(self):
        """Test that NaN is rejected."""
        with self.assertRaises(ValueError):
            Timeout.of(float("nan"))

    def test_non_numbers_rejected(self):
        """Test that strings and booleans are not accepted as durations."""
        with self.assertRaises(TypeError):
            Timeout.of("1")  # type: ignore[arg-type]  # intentionally invalid
        with self.assertRaises(TypeError):
            Timeout.of(True)


class TestProcessState(unittest.TestCase):
    """Test terminal state classification."""

    def test_terminal_states(self):
        """Test that only STOPPED and ERRORED are terminal."""
        self.assertTrue(ProcessState.STOPPED.terminal)
        self.assertTrue(ProcessState.ERRORED.terminal)
        self.assertFalse(ProcessState.CREATED.terminal)
        self.assertFalse(ProcessState.NOT_CREATED.terminal)


if __name__ == "__main__":
    unittest.main()
