"""Type definitions shared across go_android_exec."""

import os
import posixpath
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True, slots=True)
class PackagePath:
    """Import path of the package under test and whether it is in GOROOT/src."""

    import_path: str
    is_standard: bool


@dataclass(frozen=True, slots=True)
class RemoteWorkspace:
    """
    Per-invocation scratch directory on the device.

    Named <binary>-<pid> so identically named test binaries running at the
    same time (e.g. template.test from html/template and text/template)
    never share a directory.
    """

    binary_name: str
    pid: int
    device_root: str

    @classmethod
    def for_binary(cls, binary: str, device_root: str, pid: Optional[int] = None) -> "RemoteWorkspace":
        return cls(
            binary_name=os.path.basename(binary),
            pid=os.getpid() if pid is None else pid,
            device_root=device_root,
        )

    @property
    def path(self) -> str:
        return posixpath.join(self.device_root, f"{self.binary_name}-{self.pid}")

    @property
    def gopath(self) -> str:
        return posixpath.join(self.path, "gopath")

    @property
    def binary_path(self) -> str:
        return posixpath.join(self.path, self.binary_name)


@dataclass(slots=True)
class Job:
    """Everything needed to run one binary on the device."""

    binary: str
    args: List[str]
    package: PackagePath
    workspace: RemoteWorkspace
    goroot: str
    device_cwd: str
    goproxy: str = ""
    gocache: str = ""

    @property
    def binary_name(self) -> str:
        return self.workspace.binary_name
