"""
Volume service layer behind the Docker volume plugin endpoints.

Each request holds the registry lock for its whole duration and starts
by refreshing the registry from the shared root.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from shared_volumes.cli.lib.config import SharedVolumesConfig, load_config
from shared_volumes.cli.lib.exceptions import MetadataUnavailable, NotOnExpectedFilesystem, VolumeNotFound
from shared_volumes.cli.lib.fsutil import is_expected_filesystem
from shared_volumes.cli.lib.registry import VolumeRegistry
from shared_volumes.cli.lib.validators import parse_bool, validate_identifier, validate_name
from shared_volumes.cli.lib.volume import SharedVolume

logger = logging.getLogger(__name__)

# "keep" is the historical name of "protected".
_PROTECTED_OPTIONS = ("protected", "keep")
_EXCLUSIVE_OPTIONS = ("exclusive",)


def parse_create_options(opts: Optional[Dict[str, str]]) -> Dict[str, bool]:
    """
    Parse volume create options.

    Args:
        opts: Raw options from `docker volume create -o key=value`

    Returns:
        Dictionary with "protected" and "exclusive" flags

    Raises:
        ValueError: If a flag value is not a boolean
    """
    opts = opts or {}
    flags = {"protected": False, "exclusive": False}

    for key, value in opts.items():
        lowered = key.lower()
        if lowered in _PROTECTED_OPTIONS:
            flags["protected"] = parse_bool(value)
        elif lowered in _EXCLUSIVE_OPTIONS:
            flags["exclusive"] = parse_bool(value)
        else:
            logger.warning("Ignoring unknown volume option %s=%s", key, value)
    return flags


class VolumeDriver:
    """Docker volume driver for shared volumes on one root."""

    def __init__(self, root: Path, hostname: str, expected_fs_type: str = ""):
        validate_identifier(hostname, "host")
        self.root = Path(root)
        self.hostname = hostname
        self.expected_fs_type = expected_fs_type
        self.registry = VolumeRegistry(self.root)

    def _check_filesystem(self, action: str, name: str) -> None:
        if not is_expected_filesystem(self.root, self.expected_fs_type):
            message = (
                f"Cannot {action} volume {name} as {self.root} is not on a "
                f"{self.expected_fs_type} filesystem"
            )
            logger.error(message)
            raise NotOnExpectedFilesystem(message)

    def _reload(self, volume: SharedVolume) -> None:
        try:
            volume.load_metadata()
        except MetadataUnavailable as e:
            logger.warning("%s; using cached flags", e)

    def _require(self, name: str) -> SharedVolume:
        volume = self.registry.get(name)
        if volume is None:
            raise VolumeNotFound(f"volume {name} unknown")
        return volume

    def create(self, name: str, opts: Optional[Dict[str, str]] = None) -> SharedVolume:
        logger.info("Create: %s, %s", name, opts or {})
        validate_name(name)
        flags = parse_create_options(opts)
        self._check_filesystem("create", name)

        with self.registry.lock:
            self.registry.refresh()
            existing = self.registry.get(name)
            if existing is not None:
                logger.info("Cannot create volume %s, it already exists", existing.mountpoint)
                return existing

            volume = SharedVolume.at(self.root, name, **flags)
            volume.create()
            self.registry.add(volume)
            return volume

    def remove(self, name: str) -> None:
        logger.info("Remove: %s", name)
        with self.registry.lock:
            self.registry.refresh()
            volume = self.registry.get(name)
            if volume is None:
                return
            if volume.delete():
                self.registry.discard(name)

    def path(self, name: str) -> str:
        logger.debug("Path: %s", name)
        with self.registry.lock:
            self.registry.refresh()
            return str(self._require(name).data_dir)

    def mount(self, name: str, mount_id: str) -> str:
        logger.info("Mount: %s (id=%s)", name, mount_id)
        with self.registry.lock:
            self.registry.refresh()
            volume = self._require(name)
            self._check_filesystem("mount", name)
            self._reload(volume)

            volume.mount(mount_id, self.hostname)
            try:
                volume.lock(self.hostname)
            except OSError:
                volume.unmount(mount_id, self.hostname)
                raise
            return str(volume.data_dir)

    def unmount(self, name: str, mount_id: str) -> None:
        logger.info("Unmount: %s (id=%s)", name, mount_id)
        with self.registry.lock:
            self.registry.refresh()
            volume = self._require(name)
            self._reload(volume)

            volume.unmount(mount_id, self.hostname)
            if self.hostname not in volume.list_mounts().values():
                volume.unlock(self.hostname)

    def get(self, name: str) -> Dict[str, Any]:
        logger.info("Get: %s", name)
        with self.registry.lock:
            self.registry.refresh()
            volume = self._require(name)
            self._reload(volume)

            return {
                "name": volume.name,
                "mountpoint": str(volume.data_dir),
                "created_at": volume.created_at,
                "status": {
                    "protected": volume.protected,
                    "exclusive": volume.exclusive,
                    "locks": sorted(volume.list_locks()),
                    "mounts": volume.list_mounts(),
                },
            }

    def list(self) -> List[Dict[str, Any]]:
        logger.info("List")
        with self.registry.lock:
            self.registry.refresh()
            return [{"name": v.name, "mountpoint": str(v.data_dir)} for v in self.registry.volumes()]

    def capabilities(self) -> Dict[str, Any]:
        return {"scope": "global"}


_driver: Optional[VolumeDriver] = None
_driver_lock = threading.Lock()


def configure(cfg: SharedVolumesConfig) -> VolumeDriver:
    """Build the process-wide driver from a configuration."""
    global _driver
    with _driver_lock:
        _driver = VolumeDriver(cfg.require_root(), cfg.hostname, cfg.expected_fs_type)
        logger.debug("Driver configured with hostname=%s; root=%s", cfg.hostname, cfg.require_root())
        return _driver


def get_driver() -> VolumeDriver:
    """Return the process-wide driver, configuring it from load_config() on first use."""
    if _driver is None:
        return configure(load_config())
    return _driver
