"""Queries against the local Go toolchain: GOROOT, version, go list."""
from __future__ import annotations

import logging
import os
import subprocess
import threading
from typing import Callable, Generic, List, Optional, TypeVar

from go_android_exec.errors import ToolchainError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OnceCell(Generic[T]):
    """
    Process-lifetime value computed at most once.

    The first caller runs the factory under a lock; every caller after that
    gets the same value, or the same exception if the factory raised.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._done = False
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None

    def get(self, factory: Callable[[], T]) -> T:
        if not self._done:
            with self._lock:
                if not self._done:
                    try:
                        self._value = factory()
                    except Exception as e:
                        self._error = e
                    self._done = True
        if self._error is not None:
            raise self._error
        return self._value

    def reset(self) -> None:
        with self._lock:
            self._done = False
            self._value = None
            self._error = None


_goroot = OnceCell[str]()


def _lookup_goroot() -> str:
    goroot = os.environ.get("GOROOT", "").strip()
    if goroot:
        return goroot

    # Fall back to the go command in PATH.
    cmd = ["go", "env", "GOROOT"]
    try:
        result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True)
    except OSError as e:
        raise ToolchainError(f"{' '.join(cmd)}: {e}") from e
    if result.returncode != 0:
        raise ToolchainError(f"{' '.join(cmd)}: exit status {result.returncode}: {result.stderr.strip()}")

    goroot = result.stdout.strip()
    if not goroot:
        raise ToolchainError("GOROOT not found")
    return goroot


def find_goroot() -> str:
    """
    Locate GOROOT once per process.

    Uses $GOROOT when set, otherwise asks `go env GOROOT`. A failed lookup is
    cached too, so later calls raise the same error without retrying.
    """
    return _goroot.get(_lookup_goroot)


class GoToolchain:
    """Runs the go tool from a GOROOT to answer build-info queries."""

    def __init__(self, goroot: Optional[str] = None):
        """
        Args:
            goroot: Toolchain root. If None, find_goroot() is used.
        """
        self.goroot = goroot or find_goroot()

    @property
    def go_tool(self) -> str:
        return os.path.join(self.goroot, "bin", "go")

    def _go(self, *args: str, cwd: Optional[str] = None) -> str:
        cmd: List[str] = [self.go_tool, *args]
        try:
            result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, text=True, cwd=cwd)
        except OSError as e:
            raise ToolchainError(f"{' '.join(cmd)}: {e}") from e
        if result.returncode != 0:
            raise ToolchainError(f"{' '.join(cmd)}: exit status {result.returncode}: {result.stderr.strip()}")
        return result.stdout

    def version(self) -> str:
        """Return the verbatim `go version` banner, used as the sync stamp."""
        return self._go("version")

    def package_info(self, cwd: str = ".") -> str:
        """Return `<import path>:<standard>` for the package in cwd."""
        return self._go("list", "-e", "-f", "{{.ImportPath}}:{{.Standard}}", ".", cwd=cwd).strip()

    def list_target(self, package: str) -> str:
        return self._go("list", "-f", "{{.Target}}", package).strip()

    def install_cmd(self) -> None:
        """Build the Go commands for the target platform."""
        cmd = [self.go_tool, "install", "cmd"]
        try:
            result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.STDOUT, text=True)
        except OSError as e:
            raise ToolchainError(f"{' '.join(cmd)}: {e}") from e
        if result.returncode != 0:
            if result.stdout.strip():
                logger.error(f"\n{result.stdout}")
            raise ToolchainError(f"{' '.join(cmd)}: exit status {result.returncode}")
