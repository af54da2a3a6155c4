#!/usr/bin/env python3
"""Solver Demo - Drives a line-oriented worker the way a verifier drives an SMT solver."""

import sys

from piped_process import PipedProcess, ProcessState, SendResponse

# Stand-in for a solver: answers every query line with a verdict line.
WORKER = """
import sys
for query in iter(sys.stdin.readline, ''):
    verdict = 'unsat' if 'false' in query else 'sat'
    sys.stdout.write(verdict + '\\n')
    sys.stdout.flush()
"""


def demo_queries():
    """Send a few queries, wait for each answer, then shut the worker down."""
    print("Piped Process Demo")
    print("=" * 50)
    print(f"Platform: {sys.platform}")
    print()

    with PipedProcess([sys.executable, "-u", "-c", WORKER]) as solver:
        print(f"Worker pid {solver.pid}, status {solver.status.value}")
        for query in ["(assert true)", "(assert false)", "(check-sat)"]:
            if solver.send(query + "\n") is not SendResponse.SUCCEEDED:
                print(f"Send failed, status {solver.status.value}")
                break
            answer = solver.wait_receive()
            print(f"{query:<20} -> {answer.decode().strip()}")

        # Nothing else is pending, so an instantaneous poll says no
        print(f"Pending output: {solver.can_receive()}")

    print(f"After close: status {solver.status.value}, exit code {solver.returncode}")
    assert solver.status is ProcessState.STOPPED


if __name__ == "__main__":
    demo_queries()
