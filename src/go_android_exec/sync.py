"""Keep a version-stamped copy of GOROOT on the device."""
from __future__ import annotations

import logging
import os
import posixpath
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from go_android_exec.errors import SyncError
from go_android_exec.locking import FileLock
from go_android_exec.relay import AdbRelay
from go_android_exec.toolchain import GoToolchain

logger = logging.getLogger(__name__)


class RemoteSynchronizer:
    """
    Mirrors the local GOROOT to <device_root>/goroot once per toolchain build.

    The last synchronized `go version` banner is recorded in a host status
    file. The file is locked for the check-and-copy, so concurrent wrappers
    copy at most once between them.
    """

    def __init__(self, relay: AdbRelay, toolchain: GoToolchain, status_path: Union[str, Path], device_root: str):
        self.relay = relay
        self.toolchain = toolchain
        self.status_path = Path(status_path)
        self.device_root = device_root

    @property
    def device_goroot(self) -> str:
        return posixpath.join(self.device_root, "goroot")

    def ensure_synced(self, stamp: str) -> None:
        """
        Refresh the device GOROOT unless it already matches stamp.

        Args:
            stamp: Current toolchain version banner.

        Raises:
            SyncError, RelayError, ToolchainError: If any step of the copy fails.
                The recorded stamp is left unchanged, so the next run retries.
        """
        with FileLock(self.status_path) as status:
            self._sync_locked(status, stamp)

    @contextmanager
    def synced(self, stamp: str) -> Iterator[None]:
        """
        ensure_synced, then hold a shared lock on the status file until exit.

        A resync wipes the whole device root, workspaces included, and needs
        the exclusive lock, so it waits until every holder of this context is
        done with its workspace.
        """
        status = FileLock(self.status_path).acquire()
        try:
            self._sync_locked(status, stamp)
            status.downgrade()
            yield
        finally:
            status.release()

    def _sync_locked(self, status: FileLock, stamp: str) -> None:
        if status.read_text() == stamp:
            logger.debug("Device GOROOT is up to date")
            return
        logger.info(f"Copying GOROOT to device for {stamp.strip()}")
        self.copy_goroot()
        status.write_text(stamp)
        logger.info("Device GOROOT synchronized")

    def copy_goroot(self) -> None:
        """
        Clear the device root and copy the relevant parts of GOROOT.

        Copies the Android build of the go command to goroot/bin, only
        pkg/include and the target's pkg/tool directory from pkg, and every
        other top-level GOROOT entry as is.
        """
        goroot = self.toolchain.goroot
        device_goroot = self.device_goroot

        # Old GOROOT, GOPATHs, caches and leftover workspaces.
        self.relay.remove(self.device_root)

        self.toolchain.install_cmd()
        self.relay.mkdir(device_goroot)

        platform_bin = self._target_dir("cmd/go")
        self.relay.push(platform_bin, posixpath.join(device_goroot, "bin"))

        self.relay.mkdir(posixpath.join(device_goroot, "pkg", "tool"))
        self.relay.push(os.path.join(goroot, "pkg", "include"), posixpath.join(device_goroot, "pkg", "include"))

        platform_tool_dir = self._target_dir("cmd/compile")
        rel_tool_dir = os.path.relpath(platform_tool_dir, goroot)
        if rel_tool_dir == os.pardir or rel_tool_dir.startswith(os.pardir + os.sep):
            raise SyncError(f"cmd/compile target {platform_tool_dir} is outside GOROOT {goroot}")
        self.relay.push(platform_tool_dir, posixpath.join(device_goroot, *rel_tool_dir.split(os.sep)))

        for name in sorted(os.listdir(goroot)):
            if name in ("bin", "pkg"):
                continue
            self.relay.push(os.path.join(goroot, name), posixpath.join(device_goroot, name))

    def _target_dir(self, package: str) -> str:
        target_dir = os.path.dirname(self.toolchain.list_target(package))
        if target_dir in ("", "."):
            raise SyncError(f"failed to locate {package} for target platform")
        return target_dir
