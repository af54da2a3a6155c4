"""Test command line interface (CLI)."""

import subprocess
import sys
import unittest

UPPERCASE_LOOP = """
import sys
while True:
    line = sys.stdin.readline()
    if not line:
        break
    sys.stdout.write(line.upper())
    sys.stdout.flush()
"""


class TestCLI(unittest.TestCase):
    """Test command line interface functionality."""

    def test_imports(self) -> None:
        """Without a command the CLI prints usage and succeeds."""
        result = subprocess.run(  # noqa: S603
            [sys.executable, "-m", "piped_process.cli"],
            capture_output=True,
            text=True,
            check=False,
        )
        self.assertEqual(result.returncode, 0)
        self.assertIn("usage", result.stdout)

    def test_bridges_lines(self) -> None:
        """Each stdin line is sent to the worker and its reply copied to stdout."""
        result = subprocess.run(  # noqa: S603
            [sys.executable, "-m", "piped_process.cli", "--timeout", "2", "--", sys.executable, "-u", "-c", UPPERCASE_LOOP],
            input=b"hello\nworld\n",
            capture_output=True,
            check=False,
            timeout=60,
        )
        self.assertEqual(result.returncode, 0)
        self.assertIn(b"HELLO", result.stdout)
        self.assertIn(b"WORLD", result.stdout)

    def test_missing_executable(self) -> None:
        """A command that cannot be launched exits with status 1."""
        result = subprocess.run(  # noqa: S603
            [sys.executable, "-m", "piped_process.cli", "this_command_does_not_exist_12345"],
            capture_output=True,
            text=True,
            check=False,
            timeout=60,
        )
        self.assertEqual(result.returncode, 1)
        self.assertIn("this_command_does_not_exist_12345", result.stderr)


if __name__ == "__main__":
    unittest.main()
