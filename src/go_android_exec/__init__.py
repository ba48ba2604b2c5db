"""Run Go test binaries on an Android device through adb."""

from go_android_exec.config import ExecConfig, get_exec_config
from go_android_exec.errors import (
    ExitCodeError,
    GoAndroidExecError,
    RelayError,
    ResolutionError,
    SyncError,
    ToolchainError,
)
from go_android_exec.executor import run_main
from go_android_exec.locking import FileLock, MemoryLock
from go_android_exec.orchestration import RemoteExecutor, SignalForwarder, build_command, parse_exit_code
from go_android_exec.relay import AdbRelay, StreamResult
from go_android_exec.resolver import resolve_package
from go_android_exec.sync import RemoteSynchronizer
from go_android_exec.toolchain import GoToolchain, find_goroot
from go_android_exec.types import Job, PackagePath, RemoteWorkspace
from go_android_exec.workspace import Provisioner, workspace_scope

__all__ = [
    "AdbRelay",
    "StreamResult",
    "ExecConfig",
    "get_exec_config",
    "FileLock",
    "MemoryLock",
    "GoToolchain",
    "find_goroot",
    "RemoteSynchronizer",
    "resolve_package",
    "Provisioner",
    "workspace_scope",
    "RemoteExecutor",
    "SignalForwarder",
    "build_command",
    "parse_exit_code",
    "Job",
    "PackagePath",
    "RemoteWorkspace",
    "run_main",
    "GoAndroidExecError",
    "RelayError",
    "ToolchainError",
    "ResolutionError",
    "SyncError",
    "ExitCodeError",
]
