"""Line bridge between the terminal and a worker.

Usage:
    python -m piped_process.cli [--timeout SECONDS] [--verbose] -- COMMAND [ARGS...]

Every line read from stdin is sent to the worker. After each line whatever
the worker answers within the timeout is copied to stdout. When stdin is
exhausted the remaining output is drained and the worker is stopped.
"""

import argparse
import logging
import sys

from piped_process.piped_process import PipedProcess
from piped_process.types import ProcessCreationError, ProcessState, SendResponse

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="piped_process", description="Talk to a worker over pipes.")
    parser.add_argument("--timeout", type=float, default=1.0, help="seconds to wait for output after each line")
    parser.add_argument("--verbose", action="store_true", help="log channel activity to stderr")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="worker executable and arguments")
    return parser


def _forward(proc: PipedProcess, timeout: float) -> None:
    # Copy output until the worker stays quiet for `timeout` seconds
    with proc.chunk_iter(timeout) as chunks:
        for chunk in chunks:
            sys.stdout.buffer.write(chunk)
            sys.stdout.buffer.flush()


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if args.command and args.command[0] == "--":
        args.command = args.command[1:]
    if args.timeout < 0:
        parser.error("--timeout must be non-negative")
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s: %(message)s")
    if not args.command:
        parser.print_usage()
        return 0

    try:
        proc = PipedProcess(args.command)
    except ProcessCreationError as e:
        sys.stderr.write(f"{e}\n")
        return 1

    with proc:
        for line in sys.stdin.buffer:
            response = proc.send(line)
            if response is not SendResponse.SUCCEEDED:
                logger.error("Sending to %s %s", proc.get_command_str(), response.value)
                return 1
            _forward(proc, args.timeout)
        _forward(proc, args.timeout)
        if proc.status is ProcessState.ERRORED:
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
