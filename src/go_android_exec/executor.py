"""Top-level flow: lock adb, wait for the device, sync, stage, run, clean up."""
from __future__ import annotations

import logging
from typing import IO, Optional, Sequence, Union

from go_android_exec.config import ExecConfig, get_exec_config
from go_android_exec.locking import FileLock, MemoryLock
from go_android_exec.orchestration import RemoteExecutor
from go_android_exec.relay import AdbRelay
from go_android_exec.resolver import resolve_package
from go_android_exec.sync import RemoteSynchronizer
from go_android_exec.toolchain import GoToolchain
from go_android_exec.types import Job, RemoteWorkspace
from go_android_exec.workspace import Provisioner, workspace_scope

logger = logging.getLogger(__name__)


def run_main(
    binary: str,
    args: Sequence[str] = (),
    cwd: str = ".",
    config: Optional[ExecConfig] = None,
    relay: Optional[AdbRelay] = None,
    toolchain: Optional[GoToolchain] = None,
    relay_lock: Optional[Union[FileLock, MemoryLock]] = None,
    pid: Optional[int] = None,
    stdout: Optional[IO[str]] = None,
    stderr: Optional[IO[str]] = None,
) -> int:
    """
    Run a local test binary on the attached Android device.

    Args:
        binary: Path to the compiled test binary. Required.
        args: Arguments passed through to the binary.
        cwd: Package directory; determines the import path and files to stage.
        config: ExecConfig. If None, loaded from settings and environment.
        relay: adb client. If None, built from config.
        toolchain: Go toolchain queries. If None, uses the discovered GOROOT.
        relay_lock: Lock serializing adb use on this host. Default: FileLock on config.lock_path.
        pid: Workspace suffix. Default: this process's PID.
        stdout: Stream receiving the binary's stdout. Default: sys.stdout.
        stderr: Stream receiving adb's stderr. Default: sys.stderr.

    Returns:
        Exit code of the binary on the device.

    Raises:
        GoAndroidExecError: On any failure before the exit code is recovered.
    """
    if not binary or not isinstance(binary, str):
        raise ValueError("binary must be a non-empty string")

    config = config or get_exec_config()
    relay = relay or AdbRelay(config.adb_path, config.adb_flags)
    # Concurrent use of adb is flaky (https://github.com/golang/go/issues/23795),
    # so the whole run holds one host-wide lock.
    relay_lock = relay_lock or FileLock(config.lock_path)

    with relay_lock:
        # Wait for an emulator or device booting alongside the build.
        relay.wait_for_boot()

        toolchain = toolchain or GoToolchain(config.goroot or None)
        synchronizer = RemoteSynchronizer(relay, toolchain, config.status_path, config.device_root)
        with synchronizer.synced(toolchain.version()):
            workspace = RemoteWorkspace.for_binary(binary, config.device_root, pid)
            with workspace_scope(relay, workspace):
                package = resolve_package(toolchain, cwd)
                provisioner = Provisioner(relay, workspace, synchronizer.device_goroot)
                device_dir = provisioner.provision(package, binary, cwd)

                job = Job(
                    binary=binary,
                    args=list(args),
                    package=package,
                    workspace=workspace,
                    goroot=synchronizer.device_goroot,
                    device_cwd=device_dir,
                    goproxy=config.goproxy,
                    gocache=config.gocache_path,
                )
                logger.debug(f"Running {job.binary_name} in {device_dir}")
                return RemoteExecutor(relay, stdout, stderr).run(job)
