"""Map the working directory to its Go import path."""
import logging

from go_android_exec.errors import ResolutionError
from go_android_exec.toolchain import GoToolchain
from go_android_exec.types import PackagePath

logger = logging.getLogger(__name__)

# Spellings accepted by Go's strconv.ParseBool.
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def parse_package_info(output: str) -> PackagePath:
    """
    Parse `go list -f {{.ImportPath}}:{{.Standard}}` output.

    Args:
        output: Raw output of the query.

    Returns:
        PackagePath for the package.

    Raises:
        ResolutionError: If the output has no ':', the import path is empty
            or '.', or the standard flag is not a boolean.
    """
    s = output.strip()
    import_path, sep, is_std = s.partition(":")
    if not sep:
        raise ResolutionError(f"go list: missing ':' in output: {output!r}")
    if import_path in ("", "."):
        raise ResolutionError("current directory does not have a Go import path")
    if is_std in _TRUE:
        return PackagePath(import_path, True)
    if is_std in _FALSE:
        return PackagePath(import_path, False)
    raise ResolutionError(f"go list: non-boolean .Standard in output: {output!r}")


def resolve_package(toolchain: GoToolchain, cwd: str = ".") -> PackagePath:
    """Determine the import path of the package in cwd, e.g. mime/multipart or golang.org/x/mobile."""
    package = parse_package_info(toolchain.package_info(cwd))
    logger.debug(f"Resolved {cwd} to {package.import_path} (standard={package.is_standard})")
    return package
