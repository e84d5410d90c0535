"""
Configuration loader for Shared Volumes.

Every host in the cluster runs the same plugin against the same shared root, so
the only per-host settings are the host identifier and where to listen.
"""

from __future__ import annotations

import configparser
import os
import socket
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from shared_volumes.cli.lib.exceptions import ConfigurationError


DEFAULT_CONFIG_PATH = Path("/etc/shared-volumes/plugin.conf")
DEFAULT_SOCKET_PATH = "/run/docker/plugins/shared.sock"


@dataclass(frozen=True)
class SharedVolumesConfig:
    root: Optional[Path] = None
    hostname: str = ""
    expected_fs_type: str = "beegfs"  # empty disables the filesystem guard
    socket_path: str = DEFAULT_SOCKET_PATH
    api_host: str = "127.0.0.1"
    api_port: int = 8080
    debug: bool = False

    def require_root(self) -> Path:
        if self.root is None:
            raise ConfigurationError(
                "Volume root is not configured (set 'root' in the [plugin] section or SHARED_VOLUMES_ROOT)"
            )
        return self.root


def _config_path() -> Path:
    env = os.environ.get("SHARED_VOLUMES_CONFIG_PATH")
    if env:
        return Path(env)
    return DEFAULT_CONFIG_PATH


def _read_ini(path: Path) -> configparser.ConfigParser:
    parser = configparser.ConfigParser()
    if path.exists():
        parser.read(path, encoding="utf-8")
    return parser


def load_config() -> SharedVolumesConfig:
    """
    Load config from `SHARED_VOLUMES_CONFIG_PATH` or `/etc/shared-volumes/plugin.conf`.

    Missing files are not an error; defaults are returned. `SHARED_VOLUMES_ROOT`
    and `SHARED_VOLUMES_HOSTNAME` take precedence over the file.
    """
    parser = _read_ini(_config_path())
    section = parser["plugin"] if parser.has_section("plugin") else {}

    def _get(key: str, default: str) -> str:
        if isinstance(section, dict):
            return str(section.get(key, default)).strip()
        return str(section.get(key, fallback=default)).strip()

    def _get_int(key: str, default: int) -> int:
        raw = _get(key, str(default))
        try:
            return int(raw)
        except Exception:
            return default

    def _get_bool(key: str, default: bool) -> bool:
        raw = _get(key, "").lower()
        if raw in ("1", "true", "yes", "on"):
            return True
        if raw in ("0", "false", "no", "off"):
            return False
        return default

    root_raw = os.environ.get("SHARED_VOLUMES_ROOT") or _get("root", "")
    root = Path(root_raw) if root_raw else None

    hostname = os.environ.get("SHARED_VOLUMES_HOSTNAME") or _get("hostname", "")
    if not hostname:
        hostname = socket.gethostname()

    return SharedVolumesConfig(
        root=root,
        hostname=hostname,
        expected_fs_type=_get("expected_fs_type", "beegfs"),
        socket_path=_get("socket_path", DEFAULT_SOCKET_PATH),
        api_host=_get("api_host", "127.0.0.1"),
        api_port=_get_int("api_port", 8080),
        debug=_get_bool("debug", False),
    )
