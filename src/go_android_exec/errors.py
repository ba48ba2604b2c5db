"""Exception types raised by go_android_exec."""


class GoAndroidExecError(RuntimeError):
    """Base class for every failure that aborts an invocation."""


class RelayError(GoAndroidExecError):
    """Raised when the adb tool fails or cannot be started."""


class ToolchainError(GoAndroidExecError):
    """Raised when a query against the local Go toolchain fails."""


class ResolutionError(GoAndroidExecError):
    """Raised when the working directory is not a recognizable Go package."""


class SyncError(GoAndroidExecError):
    """Raised when the device GOROOT mirror cannot be refreshed."""


class ExitCodeError(GoAndroidExecError):
    """Raised when the exit code sentinel is missing or malformed."""
