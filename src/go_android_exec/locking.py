"""Host-side mutual exclusion for adb traffic and the sync status file."""
from __future__ import annotations

import fcntl
import logging
import os
import threading
from pathlib import Path
from typing import IO, Optional, Union

logger = logging.getLogger(__name__)


class FileLock:
    """
    Advisory lock on a well-known host file, held with flock(2).

    The lock is exclusive and blocking. The OS releases it when the process
    exits, so an abnormal exit never leaves it held.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._file: Optional[IO[str]] = None

    def acquire(self) -> "FileLock":
        fd = os.open(self.path, os.O_CREAT | os.O_RDWR, 0o666)
        self._file = os.fdopen(fd, "r+", encoding="utf-8")
        logger.debug(f"Waiting for lock {self.path}")
        try:
            fcntl.flock(self._file.fileno(), fcntl.LOCK_EX)
        except OSError:
            self._file.close()
            self._file = None
            raise
        return self

    def release(self) -> None:
        if self._file is None:
            return
        try:
            fcntl.flock(self._file.fileno(), fcntl.LOCK_UN)
        finally:
            self._file.close()
            self._file = None

    def downgrade(self) -> None:
        """Convert the held exclusive lock into a shared one."""
        fcntl.flock(self._handle().fileno(), fcntl.LOCK_SH)

    def read_text(self) -> str:
        f = self._handle()
        f.seek(0)
        return f.read()

    def write_text(self, text: str) -> None:
        """Replace the file contents with text."""
        f = self._handle()
        f.seek(0)
        f.truncate()
        f.write(text)
        f.flush()

    def _handle(self) -> IO[str]:
        if self._file is None:
            raise RuntimeError(f"Lock {self.path} is not held")
        return self._file

    def __enter__(self) -> "FileLock":
        return self.acquire()

    def __exit__(self, *exc_info) -> None:
        self.release()


class MemoryLock:
    """In-process stand-in for FileLock, used where no host file is wanted."""

    def __init__(self):
        self._lock = threading.Lock()

    def acquire(self) -> "MemoryLock":
        self._lock.acquire()
        return self

    def release(self) -> None:
        self._lock.release()

    def __enter__(self) -> "MemoryLock":
        return self.acquire()

    def __exit__(self, *exc_info) -> None:
        self.release()
