"""adb client for pushing files to, and running commands on, an Android device."""
from __future__ import annotations

import codecs
import logging
import subprocess
import sys
import threading
from dataclasses import dataclass
from typing import IO, List, Optional, Sequence

from go_android_exec.errors import RelayError

logger = logging.getLogger(__name__)

BOOT_WAIT_SCRIPT = "while [[ -z $(getprop sys.boot_completed) ]]; do sleep 1; done;"


@dataclass(slots=True)
class StreamResult:
    """Buffered stdout and adb's own exit status for a streamed command."""

    stdout: str
    returncode: int


class AdbRelay:
    """Thin synchronous wrapper around the adb executable."""

    def __init__(self, adb_path: str = "adb", flags: Optional[Sequence[str]] = None):
        """
        Initialize the relay.

        Args:
            adb_path: adb executable name or path. Default: adb.
            flags: Arguments prepended to every adb invocation (GOANDROID_ADB_FLAGS).

        Raises:
            ValueError: If adb_path is empty.
        """
        if not adb_path or not isinstance(adb_path, str):
            raise ValueError("adb_path must be a non-empty string")
        self.adb_path = adb_path
        self.flags: List[str] = list(flags or [])

    def command(self, *args: str) -> List[str]:
        return [self.adb_path, *self.flags, *args]

    def adb(self, *args: str) -> str:
        """
        Run adb with combined output.

        On failure the command and everything it printed are logged before
        the error is raised.

        Returns:
            Combined stdout and stderr.

        Raises:
            RelayError: If adb cannot be started or exits non-zero.
        """
        cmd = self.command(*args)
        try:
            result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT)
        except OSError as e:
            raise RelayError(f"adb {' '.join(args)}: {e}") from e

        output = (result.stdout or b"").decode("utf-8", errors="replace")
        if result.returncode != 0:
            logger.error(f"adb {' '.join(args)}\n{output}")
            raise RelayError(f"adb {' '.join(args)}: exit status {result.returncode}")
        logger.debug(f"adb {' '.join(args)}")
        return output

    def push(self, *paths: str) -> None:
        """Push one or more local paths; the last argument is the device destination."""
        if len(paths) < 2:
            raise ValueError("push needs at least one local path and a remote path")
        self.adb("push", *paths)

    def exec_out(self, *args: str) -> None:
        self.adb("exec-out", *args)

    def mkdir(self, remote_path: str) -> None:
        self.exec_out("mkdir", "-p", remote_path)

    def remove(self, remote_path: str) -> None:
        self.exec_out("rm", "-rf", remote_path)

    def wait_for_boot(self) -> None:
        """
        Block until the device reports sys.boot_completed.

        adb wait-for-device alone only waits for reachability, so the remote
        shell polls the boot property as well. There is no timeout here.
        """
        logger.debug("Waiting for device to finish booting...")
        self.adb("wait-for-device", "exec-out", BOOT_WAIT_SCRIPT)

    def stream(self, *args: str, stdout: Optional[IO[str]] = None, stderr: Optional[IO[str]] = None) -> StreamResult:
        """
        Run adb, copying stdout live to stdout while buffering it.

        stderr goes through its own pipe and pump thread rather than being
        inherited, so a hung adb cannot hold the caller's stdout or stderr
        open after this process is killed.

        Returns:
            StreamResult with the buffered stdout and adb's exit status.
            A non-zero status is not an error here; callers decide.

        Raises:
            RelayError: If adb cannot be started.
        """
        stdout = stdout if stdout is not None else sys.stdout
        stderr = stderr if stderr is not None else sys.stderr

        cmd = self.command(*args)
        try:
            proc = subprocess.Popen(cmd, stdin=subprocess.DEVNULL, stdout=subprocess.PIPE, stderr=subprocess.PIPE, bufsize=0)
        except OSError as e:
            raise RelayError(f"adb {' '.join(args)}: {e}") from e

        pump = threading.Thread(target=_pump, args=(proc.stderr, stderr, None), daemon=True)
        pump.start()

        chunks: List[bytes] = []
        try:
            _pump(proc.stdout, stdout, chunks)
        finally:
            returncode = proc.wait()
            pump.join()

        # The buffered copy is only used to find the exit marker.
        return StreamResult(stdout=b"".join(chunks).decode("utf-8", errors="replace"), returncode=returncode)


def _pump(src, dst: IO[str], buf: Optional[List[bytes]]) -> None:
    # Byte-oriented destinations get the output unaltered; text-only ones
    # (io.StringIO) get it decoded.
    raw = getattr(dst, "buffer", None)
    decoder = None if raw is not None else codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        while True:
            data = src.read(8192)
            if buf is not None and data:
                buf.append(data)
            if raw is not None:
                if data:
                    dst.flush()
                    raw.write(data)
                    raw.flush()
            else:
                text = decoder.decode(data or b"", final=not data)
                if text:
                    dst.write(text)
                    dst.flush()
            if not data:
                break
    finally:
        src.close()
