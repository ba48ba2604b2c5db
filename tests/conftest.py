import os
import threading
import time

import pytest

from go_android_exec.errors import RelayError
from go_android_exec.relay import StreamResult
from go_android_exec.toolchain import _goroot

DEVICE_ROOT = "/data/local/tmp/go_android_exec"
DEVICE_GOROOT = DEVICE_ROOT + "/goroot"


class FakeRelay:
    """Records relay calls instead of running adb."""

    def __init__(self, output="exitcode=0", returncode=0, fail=None, owner=None, log=None, delay=0.0):
        self.calls = []
        self.output = output
        self.returncode = returncode
        self.fail = fail
        self.owner = owner
        self.log = log
        self.delay = delay

    def _record(self, *call):
        self.calls.append(call)
        if self.log is not None:
            self.log.append((self.owner, call))
        if self.delay:
            time.sleep(self.delay)
        if self.fail is not None and self.fail(call):
            raise RelayError(f"adb {' '.join(call)}: exit status 1")

    def push(self, *paths):
        self._record("push", *paths)

    def exec_out(self, *args):
        self._record("exec-out", *args)

    def mkdir(self, remote_path):
        self._record("mkdir", remote_path)

    def remove(self, remote_path):
        self._record("rm", remote_path)

    def wait_for_boot(self):
        self._record("wait")

    def stream(self, *args, stdout=None, stderr=None):
        self._record("stream", *args)
        if stdout is not None:
            stdout.write(self.output)
        return StreamResult(stdout=self.output, returncode=self.returncode)

    def pushes(self):
        return [c for c in self.calls if c[0] == "push"]


class FakeToolchain:
    """Answers build-info queries from a fake GOROOT."""

    def __init__(self, goroot, version="go version go1.22.0 linux/amd64\n", package_info="example.com/x/mobile:false"):
        self.goroot = str(goroot)
        self.stamp = version
        self.info = package_info
        self.installs = 0
        self.targets = {
            "cmd/go": os.path.join(self.goroot, "bin", "android_arm64", "go"),
            "cmd/compile": os.path.join(self.goroot, "pkg", "tool", "android_arm64", "compile"),
        }

    def version(self):
        return self.stamp

    def package_info(self, cwd="."):
        return self.info

    def list_target(self, package):
        return self.targets[package]

    def install_cmd(self):
        self.installs += 1


@pytest.fixture(autouse=True)
def reset_goroot_cell():
    _goroot.reset()
    yield
    _goroot.reset()


@pytest.fixture
def local_goroot(tmp_path):
    root = tmp_path / "goroot"
    for d in ("bin/android_arm64", "pkg/include", "pkg/tool/android_arm64", "src/fmt", "lib", "api"):
        (root / d).mkdir(parents=True)
    (root / "VERSION").write_text("go1.22.0")
    return root


@pytest.fixture
def toolchain(local_goroot):
    return FakeToolchain(local_goroot)


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def status_path(tmp_path):
    return tmp_path / "sync-status"


def run_in_thread(target, *args):
    result = {}

    def wrapper():
        try:
            result["value"] = target(*args)
        except Exception as e:  # surfaced by the caller
            result["error"] = e

    t = threading.Thread(target=wrapper)
    t.start()
    return t, result
