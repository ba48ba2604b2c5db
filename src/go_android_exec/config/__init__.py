"""
Configuration module for go_android_exec.
Loads packaged YAML defaults and the environment variables the wrapper consumes.
"""
import os
import posixpath
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

SETTINGS_FILE = Path(__file__).parent / "exec_settings.yaml"

DEFAULT_SETTINGS: Dict[str, Any] = {
    "device_root": "/data/local/tmp/go_android_exec",
    "adb_path": "adb",
    "adb_lock_name": "go_android_exec-adb-lock",
    "sync_status_name": "go_android_exec-adb-sync-status",
}


def load_exec_settings(settings_file: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load settings from YAML, layered over the built-in defaults.

    Args:
        settings_file: Path to a YAML file. If None, the packaged defaults are used.

    Returns:
        Dict of settings. Keys missing from the file keep their default value.
    """
    settings = dict(DEFAULT_SETTINGS)
    for path in (SETTINGS_FILE, settings_file):
        if path is None or not Path(path).exists():
            continue
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Settings file must contain a mapping: {path}")
        settings.update({k: v for k, v in loaded.items() if v is not None})
    return settings


class ExecConfig:
    """Load and validate go_android_exec configuration from settings and environment."""

    def __init__(self, settings_file: Optional[Path] = None, env: Optional[Mapping[str, str]] = None):
        """
        Initialize configuration.

        Args:
            settings_file: Path to a YAML settings file. If None, GOANDROID_EXEC_SETTINGS is consulted.
            env: Environment mapping. Defaults to os.environ.

        Raises:
            ValueError: If device_root is not an absolute slash-separated path.
        """
        self.env = os.environ if env is None else env
        if settings_file is None and self.env.get("GOANDROID_EXEC_SETTINGS"):
            settings_file = Path(self.env["GOANDROID_EXEC_SETTINGS"])
        settings = load_exec_settings(settings_file)

        self.device_root = str(settings["device_root"]).rstrip("/")
        if not self.device_root.startswith("/"):
            raise ValueError(f"device_root must be an absolute device path, got: {settings['device_root']!r}")

        self.adb_path = self.env.get("GOANDROID_ADB") or str(settings["adb_path"])
        self.adb_flags = self._split_flags(self.env.get("GOANDROID_ADB_FLAGS", ""))
        self.goproxy = self.env.get("GOPROXY", "")
        self.goroot = self.env.get("GOROOT", "")

        tmp = Path(tempfile.gettempdir())
        self.lock_path = tmp / str(settings["adb_lock_name"])
        self.status_path = tmp / str(settings["sync_status_name"])

    @property
    def gocache_path(self) -> str:
        return posixpath.join(self.device_root, "gocache")

    @staticmethod
    def _split_flags(flags: str) -> List[str]:
        """Split GOANDROID_ADB_FLAGS on whitespace; the value is not shell-quoted."""
        return flags.split()


def get_exec_config(settings_file: Optional[Path] = None) -> ExecConfig:
    """
    Get go_android_exec configuration.

    Args:
        settings_file: Path to a YAML settings file (for testing).

    Returns:
        ExecConfig instance.
    """
    return ExecConfig(settings_file)
