import io
import os
import signal
import threading
import time

import pytest

from conftest import DEVICE_GOROOT, DEVICE_ROOT, FakeRelay
from go_android_exec.errors import ExitCodeError, RelayError
from go_android_exec.orchestration import RemoteExecutor, SignalForwarder, build_command, parse_exit_code
from go_android_exec.types import Job, PackagePath, RemoteWorkspace


def _job(args=None, goproxy="https://proxy.golang.org"):
    workspace = RemoteWorkspace("multipart.test", 4242, DEVICE_ROOT)
    return Job(
        binary="/tmp/go-build123/b001/multipart.test",
        args=args if args is not None else ["-test.v"],
        package=PackagePath("mime/multipart", True),
        workspace=workspace,
        goroot=DEVICE_GOROOT,
        device_cwd=DEVICE_GOROOT + "/src/mime/multipart",
        goproxy=goproxy,
        gocache=DEVICE_ROOT + "/gocache",
    )


class TestParseExitCode:
    def test_zero_after_output(self):
        assert parse_exit_code("hello\nworld\nexitcode=0") == 0

    def test_bare_sentinel(self):
        assert parse_exit_code("exitcode=17") == 17

    def test_uses_last_sentinel(self):
        assert parse_exit_code("foo exitcode=bar\nexitcode=3") == 3

    def test_missing_sentinel(self):
        with pytest.raises(ExitCodeError, match="no exit code"):
            parse_exit_code("PASS\nok  \tmime/multipart\n")

    def test_missing_sentinel_includes_output(self):
        with pytest.raises(ExitCodeError) as excinfo:
            parse_exit_code("connection reset")
        assert "connection reset" in str(excinfo.value)

    @pytest.mark.parametrize("output", ["exitcode=abc", "exitcode=", "exitcode=3\n", "exitcode= 3"])
    def test_malformed_sentinel(self, output):
        with pytest.raises(ExitCodeError, match="bad exit code"):
            parse_exit_code(output)


class TestBuildCommand:
    def test_environment_and_invocation(self):
        ws = DEVICE_ROOT + "/multipart.test-4242"
        cmd = build_command(_job())

        assert cmd == (
            f'export TMPDIR="{ws}"'
            f'; export GOROOT="{DEVICE_GOROOT}"'
            f'; export GOPATH="{ws}/gopath"'
            "; export CGO_ENABLED=0"
            "; export GOPROXY=https://proxy.golang.org"
            f'; export GOCACHE="{DEVICE_ROOT}/gocache"'
            f'; export PATH="{DEVICE_GOROOT}/bin":$PATH'
            f'; cd "{DEVICE_GOROOT}/src/mime/multipart"'
            f"; '{ws}/multipart.test' -test.v"
            "; echo -n exitcode=$?"
        )

    def test_arguments_are_quoted(self):
        cmd = build_command(_job(args=["-test.run=^TestReader$", "-test.v"]))
        assert "'-test.run=^TestReader$' -test.v; echo -n exitcode=$?" in cmd

    def test_no_arguments(self):
        cmd = build_command(_job(args=[]))
        assert "/multipart.test'; echo -n exitcode=$?" in cmd

    def test_empty_goproxy(self):
        assert "export GOPROXY=''" in build_command(_job(goproxy=""))


class TestRemoteExecutor:
    def test_returns_device_exit_code(self):
        relay = FakeRelay(output="--- FAIL: TestReader\nexitcode=1")
        out = io.StringIO()

        code = RemoteExecutor(relay, stdout=out).run(_job())

        assert code == 1
        assert relay.calls == [("stream", "exec-out", build_command(_job()))]
        assert out.getvalue().startswith("--- FAIL")

    def test_trusts_sentinel_when_adb_fails(self):
        relay = FakeRelay(output="PASS\nexitcode=0", returncode=255)
        assert RemoteExecutor(relay, stdout=io.StringIO()).run(_job()) == 0

    def test_adb_failure_without_sentinel(self):
        relay = FakeRelay(output="error: device offline\n", returncode=1)
        with pytest.raises(RelayError, match="exit status 1"):
            RemoteExecutor(relay, stdout=io.StringIO()).run(_job())

    def test_missing_sentinel_with_clean_adb_exit(self):
        relay = FakeRelay(output="truncated", returncode=0)
        with pytest.raises(ExitCodeError):
            RemoteExecutor(relay, stdout=io.StringIO()).run(_job())


@pytest.mark.skipif(not hasattr(signal, "SIGQUIT"), reason="SIGQUIT not available")
class TestSignalForwarder:
    def test_forward_uses_killall_by_name(self):
        relay = FakeRelay()
        SignalForwarder(relay, "multipart.test").forward(signal.SIGQUIT)
        assert relay.calls == [("exec-out", "killall -QUIT multipart.test")]

    def test_forward_failure_is_not_raised(self):
        relay = FakeRelay(fail=lambda call: True)
        SignalForwarder(relay, "multipart.test").forward(signal.SIGQUIT)
        assert relay.calls == [("exec-out", "killall -QUIT multipart.test")]

    def test_forwards_sigquit_while_active_and_restores_handler(self):
        relay = FakeRelay()
        before = signal.getsignal(signal.SIGQUIT)

        with SignalForwarder(relay, "multipart.test"):
            os.kill(os.getpid(), signal.SIGQUIT)
            deadline = time.monotonic() + 5
            while not relay.calls and time.monotonic() < deadline:
                time.sleep(0.01)

        assert relay.calls == [("exec-out", "killall -QUIT multipart.test")]
        assert signal.getsignal(signal.SIGQUIT) == before

    def test_outside_main_thread_is_a_noop(self):
        relay = FakeRelay()
        errors = []

        def enter():
            try:
                with SignalForwarder(relay, "multipart.test"):
                    pass
            except Exception as e:
                errors.append(e)

        t = threading.Thread(target=enter)
        t.start()
        t.join()

        assert errors == []
        assert relay.calls == []

    def test_handler_restored_when_stream_fails(self):
        relay = FakeRelay(fail=lambda call: call[0] == "stream")
        before = signal.getsignal(signal.SIGQUIT)

        with pytest.raises(RelayError):
            RemoteExecutor(relay, stdout=io.StringIO(), stderr=io.StringIO()).run(_job())

        assert signal.getsignal(signal.SIGQUIT) == before
        assert not any(t.name == "signal-forwarder" for t in threading.enumerate())
