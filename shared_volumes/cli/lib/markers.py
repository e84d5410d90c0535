"""
Lock and mount markers kept in a volume's `_locks` directory.

A lock marker `<host>.lock` says "this host currently claims the volume".
It carries no payload and is advisory: it is created with a plain
create-if-missing, so two hosts locking at once both succeed.

A mount marker records which host owns an active mount. In shared mode
each mount identifier gets its own `<id>.mount`; in exclusive mode every
identifier maps to the single `exclusive.mount`, created with
`O_EXCL`, so only one mount can exist volume-wide.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Iterator, Set

from shared_volumes.cli.lib.exceptions import AlreadyMounted, MountOwnershipMismatch
from shared_volumes.cli.lib.fsutil import create_exclusive, touch
from shared_volumes.cli.lib.validators import validate_identifier

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"
MOUNT_SUFFIX = ".mount"
EXCLUSIVE_MOUNT_ID = "exclusive"


def _marker_names(directory: Path, suffix: str) -> Iterator[str]:
    """Yield file names in directory ending with suffix."""
    with os.scandir(directory) as entries:
        for entry in entries:
            if entry.is_dir():
                continue
            if entry.name.endswith(suffix) and len(entry.name) > len(suffix):
                yield entry.name


class LockRegistry:
    """Per-host lock markers of one volume."""

    def __init__(self, locks_dir: Path):
        self.locks_dir = Path(locks_dir)

    def lock_file(self, host: str) -> Path:
        validate_identifier(host, "host")
        return self.locks_dir / f"{host}{LOCK_SUFFIX}"

    def lock(self, host: str) -> None:
        """Ensure a lock marker for host exists. Locking twice is a no-op."""
        touch(self.lock_file(host))
        logger.debug("Lock marker %s present", self.lock_file(host))

    def unlock(self, host: str) -> None:
        """Remove the lock marker of host, if any."""
        try:
            os.remove(self.lock_file(host))
        except FileNotFoundError:
            return
        logger.debug("Lock marker of %s removed from %s", host, self.locks_dir)

    def has_lock(self, host: str) -> bool:
        return self.lock_file(host).is_file()

    def is_locked(self) -> bool:
        """
        Check whether any host holds a lock on the volume.

        Returns:
            True if at least one lock marker exists

        Raises:
            OSError: If the lock directory cannot be read. Callers must then
                presume the volume is locked.
        """
        for _ in _marker_names(self.locks_dir, LOCK_SUFFIX):
            return True
        return False

    def list_locks(self) -> Set[str]:
        """Hosts currently holding a lock marker."""
        try:
            names = list(_marker_names(self.locks_dir, LOCK_SUFFIX))
        except FileNotFoundError:
            return set()
        return {name[: -len(LOCK_SUFFIX)] for name in names}


class MountRegistry:
    """Mount markers of one volume, in shared or exclusive mode."""

    def __init__(self, locks_dir: Path, volume_name: str, exclusive: bool = False):
        self.locks_dir = Path(locks_dir)
        self.volume_name = volume_name
        self.exclusive = exclusive

    def mount_file(self, mount_id: str) -> Path:
        if self.exclusive:
            return self.locks_dir / f"{EXCLUSIVE_MOUNT_ID}{MOUNT_SUFFIX}"
        validate_identifier(mount_id, "mount id")
        return self.locks_dir / f"{mount_id}{MOUNT_SUFFIX}"

    def mount(self, mount_id: str, host: str) -> None:
        """
        Record a mount owned by host.

        Raises:
            AlreadyMounted: If the marker already exists (in exclusive mode,
                if any identifier holds the volume)
        """
        validate_identifier(host, "host")
        mount_file = self.mount_file(mount_id)
        try:
            create_exclusive(mount_file, host)
        except FileExistsError:
            raise AlreadyMounted(f"Volume {self.volume_name} is already mounted")
        logger.debug("Mount %s of volume %s granted to %s", mount_id, self.volume_name, host)

    def owner(self, mount_id: str) -> str:
        """Host owning the marker for mount_id. Raises FileNotFoundError if absent."""
        with open(self.mount_file(mount_id), "r", encoding="utf-8") as f:
            return f.read()

    def unmount(self, mount_id: str, host: str) -> None:
        """
        Release a mount owned by host.

        An absent marker means the mount is already released.

        Raises:
            MountOwnershipMismatch: If another host owns the marker
        """
        mount_file = self.mount_file(mount_id)
        try:
            owner = self.owner(mount_id)
        except FileNotFoundError:
            logger.debug("Mount %s of volume %s already released", mount_id, self.volume_name)
            return

        if owner != host:
            raise MountOwnershipMismatch(
                f"Volume {self.volume_name} is mounted by {owner} host", owner=owner
            )

        try:
            os.remove(mount_file)
        except FileNotFoundError:
            pass
        logger.debug("Mount %s of volume %s released by %s", mount_id, self.volume_name, host)

    def is_mounted(self) -> bool:
        """True if any mount marker exists. Raises OSError if the directory cannot be read."""
        for _ in _marker_names(self.locks_dir, MOUNT_SUFFIX):
            return True
        return False

    def list_mounts(self) -> Dict[str, str]:
        """Map of mount identifier to owning host."""
        try:
            names = list(_marker_names(self.locks_dir, MOUNT_SUFFIX))
        except FileNotFoundError:
            return {}

        mounts: Dict[str, str] = {}
        for name in names:
            try:
                with open(self.locks_dir / name, "r", encoding="utf-8") as f:
                    mounts[name[: -len(MOUNT_SUFFIX)]] = f.read()
            except FileNotFoundError:
                # Released while we were scanning.
                continue
        return mounts
