"""Remote execution of a staged test binary on the device."""
import logging
import re
import shlex
import sys
from typing import IO, Optional

from go_android_exec.errors import ExitCodeError, RelayError
from go_android_exec.orchestration.signals import SignalForwarder
from go_android_exec.relay import AdbRelay
from go_android_exec.types import Job

logger = logging.getLogger(__name__)

# adb does not reliably report the exit status of the remote command
# (https://code.google.com/p/android/issues/detail?id=3254), so the shell
# appends it to the output after this marker.
EXIT_SENTINEL = "exitcode="

_EXIT_CODE_RE = re.compile(r"[+-]?[0-9]+")


def build_command(job: Job) -> str:
    """
    Compose the device shell command for a job.

    The trailing sentinel echo is joined with ';' so it runs however the
    binary exits.
    """
    ws = job.workspace
    args = " ".join(shlex.quote(a) for a in job.args)
    parts = [
        f'export TMPDIR="{ws.path}"',
        f'export GOROOT="{job.goroot}"',
        f'export GOPATH="{ws.gopath}"',
        "export CGO_ENABLED=0",
        f"export GOPROXY={shlex.quote(job.goproxy)}",
    ]
    if job.gocache:
        parts.append(f'export GOCACHE="{job.gocache}"')
    parts += [
        f'export PATH="{job.goroot}/bin":$PATH',
        f'cd "{job.device_cwd}"',
        f"'{ws.binary_path}' {args}".rstrip(),
        f"echo -n {EXIT_SENTINEL}$?",
    ]
    return "; ".join(parts)


def parse_exit_code(output: str) -> int:
    """
    Extract the exit code from the last sentinel in output.

    The last occurrence wins, since the binary may print the marker itself.

    Raises:
        ExitCodeError: If the sentinel is missing (connection dropped or the
            shell never finished) or is not followed by an integer.
    """
    idx = output.rfind(EXIT_SENTINEL)
    if idx == -1:
        raise ExitCodeError(f"no exit code: {output!r}")
    tail = output[idx + len(EXIT_SENTINEL):]
    if not _EXIT_CODE_RE.fullmatch(tail):
        raise ExitCodeError(f"bad exit code: {tail!r} in output: {output!r}")
    return int(tail)


class RemoteExecutor:
    """Runs a provisioned Job through adb and recovers the binary's exit code."""

    def __init__(self, relay: AdbRelay, stdout: Optional[IO[str]] = None, stderr: Optional[IO[str]] = None):
        self.relay = relay
        self.stdout = stdout if stdout is not None else sys.stdout
        self.stderr = stderr if stderr is not None else sys.stderr

    def run(self, job: Job) -> int:
        """
        Execute job on the device, streaming its output.

        Returns:
            The binary's exit code as reported by the device shell.

        Raises:
            RelayError: If adb failed and no exit code reached us.
            ExitCodeError: If adb succeeded but the output has no valid exit code.
        """
        command = build_command(job)
        logger.debug(f"Running on device: {command}")

        with SignalForwarder(self.relay, job.binary_name):
            result = self.relay.stream("exec-out", command, stdout=self.stdout, stderr=self.stderr)

        try:
            code = parse_exit_code(result.stdout)
        except ExitCodeError as e:
            if result.returncode != 0:
                raise RelayError(f"adb exec-out: exit status {result.returncode}: {e}") from e
            raise

        if result.returncode != 0:
            logger.debug(f"adb exited with status {result.returncode}; using device exit code {code}")
        return code


__all__ = [
    "EXIT_SENTINEL",
    "RemoteExecutor",
    "SignalForwarder",
    "build_command",
    "parse_exit_code",
]
