"""
Shared volume on-disk structure and lifecycle.

Layout of a volume under the shared root:

    <root>/<name>/
        meta.json     descriptor: name, mountpoint, protected, exclusive, created_at
        _data/        payload, never touched here
        _locks/       lock and mount markers (see markers.py)

The directory itself is the ground truth for existence. The descriptor can
be changed by any host at any time, so it is reloaded before every
deletion decision.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import stat
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Set

from shared_volumes.cli.lib.exceptions import MetadataUnavailable, VolumeNotADirectory
from shared_volumes.cli.lib.fsutil import atomic_write_json
from shared_volumes.cli.lib.markers import LockRegistry, MountRegistry

logger = logging.getLogger(__name__)

DATA_DIR = "_data"
LOCKS_DIR = "_locks"
METADATA_FILE = "meta.json"


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class SharedVolume:
    """A named volume directory on the shared filesystem."""

    name: str
    mountpoint: Path
    protected: bool = False
    exclusive: bool = False
    created_at: Optional[str] = None

    def __post_init__(self) -> None:
        self.mountpoint = Path(self.mountpoint)

    @classmethod
    def at(cls, root: Path, name: str, **kwargs: Any) -> "SharedVolume":
        return cls(name=name, mountpoint=Path(root) / name, **kwargs)

    @property
    def data_dir(self) -> Path:
        return self.mountpoint / DATA_DIR

    @property
    def locks_dir(self) -> Path:
        return self.mountpoint / LOCKS_DIR

    @property
    def metadata_file(self) -> Path:
        return self.mountpoint / METADATA_FILE

    @property
    def locks(self) -> LockRegistry:
        return LockRegistry(self.locks_dir)

    @property
    def mounts(self) -> MountRegistry:
        # Built per access: the exclusive flag may change on reload.
        return MountRegistry(self.locks_dir, self.name, exclusive=self.exclusive)

    def exists(self) -> bool:
        return self.mountpoint.is_dir()

    # Metadata

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "mountpoint": str(self.mountpoint),
            "protected": self.protected,
            "exclusive": self.exclusive,
            "created_at": self.created_at,
        }

    def save_metadata(self) -> None:
        """Write the descriptor to meta.json, replacing it atomically."""
        atomic_write_json(self.metadata_file, self.to_dict())
        logger.debug("Saved metadata of volume %s", self.name)

    def load_metadata(self) -> None:
        """
        Reload the descriptor from meta.json.

        Flags and the creation time are taken from the file. Name and
        mountpoint always follow the directory the volume lives in.

        Raises:
            MetadataUnavailable: If the file is missing or malformed; the
                in-memory values are left untouched.
        """
        try:
            with open(self.metadata_file, "r", encoding="utf-8") as f:
                content = json.load(f)
        except (OSError, ValueError) as e:
            raise MetadataUnavailable(f"Cannot read metadata of volume {self.name}: {e}")

        if not isinstance(content, dict):
            raise MetadataUnavailable(f"Metadata of volume {self.name} is not a JSON object")

        # Keys match regardless of case or underscores: "CreatedAt" is "created_at".
        content = {str(key).lower().replace("_", ""): value for key, value in content.items()}

        values = {}
        for key in ("protected", "exclusive"):
            if key in content:
                if not isinstance(content[key], bool):
                    raise MetadataUnavailable(f"Metadata of volume {self.name} has a non-boolean '{key}'")
                values[key] = content[key]
        if content.get("createdat") is not None:
            values["created_at"] = str(content["createdat"])

        for key, value in values.items():
            setattr(self, key, value)

    def set_protected(self, protected: bool) -> None:
        """Toggle the protected flag on disk."""
        try:
            self.load_metadata()
        except MetadataUnavailable as e:
            logger.warning("%s; rewriting it from cached values", e)
        self.protected = protected
        self.save_metadata()

    # Lifecycle

    def create(self) -> bool:
        """
        Create the volume directory structure and its descriptor.

        Returns:
            True if this call created the volume, False if it already existed

        Raises:
            VolumeNotADirectory: If the path exists but is not a directory
            OSError: If creation fails; a partially created volume is removed
        """
        try:
            fstat = os.lstat(self.mountpoint)
        except FileNotFoundError:
            fstat = None

        if fstat is not None:
            if not stat.S_ISDIR(fstat.st_mode):
                raise VolumeNotADirectory(f"{self.mountpoint} already exists and it's not a directory")
            logger.info("Volume %s already exists at %s", self.name, self.mountpoint)
            self._adopt_metadata()
            return False

        try:
            os.makedirs(self.mountpoint, mode=0o755)
        except FileExistsError:
            # Another host won the race; its structure is not ours to roll back.
            if not self.mountpoint.is_dir():
                raise VolumeNotADirectory(f"{self.mountpoint} already exists and it's not a directory")
            logger.info("Volume %s was created concurrently by another host", self.name)
            self._adopt_metadata()
            return False

        try:
            os.mkdir(self.data_dir, 0o755)
            os.mkdir(self.locks_dir, 0o755)
            if self.created_at is None:
                self.created_at = _utc_now_iso()
            self.save_metadata()
        except OSError:
            logger.exception("Failed to create volume %s, rolling back", self.name)
            shutil.rmtree(self.mountpoint, ignore_errors=True)
            raise

        logger.info(
            "Created volume %s at %s (protected=%s, exclusive=%s)",
            self.name,
            self.mountpoint,
            self.protected,
            self.exclusive,
        )
        return True

    def _adopt_metadata(self) -> None:
        """Take over the descriptor of an existing volume, or write ours if it has none."""
        if not self.metadata_file.exists():
            if self.created_at is None:
                self.created_at = _utc_now_iso()
            self.save_metadata()
            return
        try:
            self.load_metadata()
        except MetadataUnavailable as e:
            logger.warning("%s; leaving it untouched", e)

    def delete(self) -> bool:
        """
        Remove the volume unless it is protected or locked.

        Protection and locks are not errors: the volume is simply kept.

        Returns:
            True if the volume no longer exists, False if it was kept

        Raises:
            OSError: If the lock directory cannot be read (the volume is kept)
                or the removal itself fails
        """
        try:
            self.load_metadata()
        except MetadataUnavailable as e:
            if not os.path.lexists(self.mountpoint):
                return True
            logger.warning("%s; using cached flags", e)

        if self.protected:
            logger.info("Volume %s is protected, not deleting it", self.name)
            return False

        if not os.path.lexists(self.mountpoint):
            return True

        try:
            locked = self.is_locked()
        except OSError as e:
            logger.warning("Cannot read locks of volume %s, presuming it is locked: %s", self.name, e)
            raise

        if locked:
            logger.info(
                "Volume %s is locked by %s, not deleting it",
                self.name,
                ", ".join(sorted(self.list_locks())),
            )
            return False

        shutil.rmtree(self.mountpoint)
        logger.info("Deleted volume %s", self.name)
        return True

    # Locks and mounts

    def lock(self, host: str) -> None:
        self.locks.lock(host)

    def unlock(self, host: str) -> None:
        self.locks.unlock(host)

    def is_locked(self) -> bool:
        return self.locks.is_locked()

    def list_locks(self) -> Set[str]:
        return self.locks.list_locks()

    def mount(self, mount_id: str, host: str) -> None:
        self.mounts.mount(mount_id, host)

    def unmount(self, mount_id: str, host: str) -> None:
        self.mounts.unmount(mount_id, host)

    def is_mounted(self) -> bool:
        return self.mounts.is_mounted()

    def list_mounts(self) -> Dict[str, str]:
        return self.mounts.list_mounts()
