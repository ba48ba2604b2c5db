"""Stage the package and binary under test in a per-invocation device workspace."""
from __future__ import annotations

import glob
import logging
import os
import posixpath
from contextlib import contextmanager
from typing import Iterator, List

from go_android_exec.errors import RelayError
from go_android_exec.relay import AdbRelay
from go_android_exec.types import PackagePath, RemoteWorkspace

logger = logging.getLogger(__name__)

# Tests commonly reach into testdata of parent packages, and the go command
# needs go.mod and go.sum for module queries.
TREE_FILES = ("testdata", "go.mod", "go.sum")


def device_cwd(package: PackagePath, workspace: RemoteWorkspace, device_goroot: str) -> str:
    """
    Device directory the binary runs in, mirroring $GOROOT/src or $GOPATH/src.

    Device paths are always slash-separated, whatever the host uses.
    """
    if package.is_standard:
        return posixpath.join(device_goroot, "src", package.import_path)
    return posixpath.join(workspace.gopath, "src", package.import_path)


class Provisioner:
    """Pushes sources, fixtures and the test binary into a RemoteWorkspace."""

    def __init__(self, relay: AdbRelay, workspace: RemoteWorkspace, device_goroot: str):
        self.relay = relay
        self.workspace = workspace
        self.device_goroot = device_goroot

    def provision(self, package: PackagePath, binary: str, host_dir: str = ".") -> str:
        """
        Stage everything the binary needs on the device.

        Args:
            package: Resolved package of host_dir.
            binary: Local path of the compiled test binary.
            host_dir: Local package directory. Default: current directory.

        Returns:
            Device working directory for the run.

        Raises:
            RelayError: If any mkdir or push fails. Partial state is left for
                workspace cleanup.
        """
        cwd = device_cwd(package, self.workspace, self.device_goroot)
        if not package.is_standard:
            # Standard packages already have their sources in the GOROOT mirror.
            self.relay.mkdir(cwd)
            self.copy_tree(cwd, package.import_path, host_dir)
            go_files = self._go_files(host_dir)
            if go_files:
                self.relay.push(*go_files, cwd)

        self.relay.push(binary, self.workspace.binary_path)
        return cwd

    def copy_tree(self, device_dir: str, import_path: str, host_dir: str = ".") -> None:
        """
        Copy testdata, go.mod and go.sum from the package and each parent
        directory up to the root of import_path, nearest first.
        """
        host_rel = ""
        device_rel = ""
        subdir = import_path
        while True:
            for name in TREE_FILES:
                host_path = os.path.normpath(os.path.join(host_dir, host_rel, name))
                if not os.path.exists(host_path):
                    continue
                device_path = posixpath.normpath(posixpath.join(device_dir, device_rel))
                self.relay.mkdir(device_path)
                self.relay.push(host_path, device_path)
            if subdir in (".", "", "/"):
                break
            subdir = posixpath.dirname(subdir) or "."
            host_rel = os.path.join(host_rel, os.pardir)
            device_rel = posixpath.join(device_rel, "..")

    @staticmethod
    def _go_files(host_dir: str) -> List[str]:
        return sorted(glob.glob(os.path.join(host_dir, "*.go")))


@contextmanager
def workspace_scope(relay: AdbRelay, workspace: RemoteWorkspace) -> Iterator[RemoteWorkspace]:
    """Yield workspace and remove it from the device on every exit path."""
    try:
        yield workspace
    finally:
        try:
            relay.remove(workspace.path)
        except RelayError as e:
            logger.warning(f"Failed to clean up {workspace.path}: {e}")
