"""Command-line entry point: go_android_exec <binary> [args...]."""
from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, Sequence, Tuple

from go_android_exec.errors import GoAndroidExecError
from go_android_exec.executor import run_main

logger = logging.getLogger(__name__)

FAILURE_EXIT_CODE = 1


def _configure_logging(verbose: bool) -> None:
    # Bare messages keep the wrapper's diagnostics greppable in test logs.
    level = logging.DEBUG if verbose else logging.WARNING
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format="%(message)s", stream=sys.stderr)
    else:
        root.setLevel(level)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="go_android_exec",
        description="Run a Go test binary on an Android device through adb.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log each step of the run")
    parser.add_argument("binary", help="Path to the compiled binary to run; later arguments are passed to it verbatim")
    return parser


def split_argv(argv: Sequence[str]) -> Tuple[List[str], List[str]]:
    """
    Split argv at the binary.

    Options are only recognized before the binary. Everything after it,
    including a literal "--", belongs to the binary untouched.

    Returns:
        (wrapper arguments up to and including the binary, binary arguments)
    """
    argv = list(argv)
    for i, arg in enumerate(argv):
        if not arg.startswith("-"):
            return argv[: i + 1], argv[i + 1 :]
    return argv, []


def main(argv: Optional[Sequence[str]] = None) -> int:
    own, binary_args = split_argv(sys.argv[1:] if argv is None else argv)
    args = build_parser().parse_args(own)
    _configure_logging(args.verbose)

    try:
        return run_main(args.binary, binary_args)
    except (GoAndroidExecError, OSError, ValueError) as e:
        logger.error(str(e))
        return FAILURE_EXIT_CODE


if __name__ == "__main__":
    sys.exit(main())
