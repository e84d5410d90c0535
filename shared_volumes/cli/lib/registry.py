"""
In-memory registry of known volumes, rebuilt from the shared root.

The registry is only a cache: the directories under the root are the
truth, so it is refreshed before answering any lookup.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional

from shared_volumes.cli.lib.exceptions import MetadataUnavailable
from shared_volumes.cli.lib.validators import validate_name
from shared_volumes.cli.lib.volume import SharedVolume

logger = logging.getLogger(__name__)


def reconcile(volumes: Dict[str, SharedVolume], root: Path) -> List[str]:
    """
    Add every volume directory under root that is missing from volumes.

    Discovered volumes load their metadata right away; without it their
    flags stay at the defaults (not protected, shared mode). Directories
    whose name is not a valid volume name are ignored.

    Args:
        volumes: Mapping of volume name to volume, updated in place
        root: Shared root directory

    Returns:
        Names of newly discovered volumes

    Raises:
        OSError: If the root cannot be listed
    """
    discovered: List[str] = []
    with os.scandir(root) as entries:
        for entry in entries:
            if entry.name.startswith(".") or not entry.is_dir():
                continue
            if entry.name in volumes:
                continue
            try:
                validate_name(entry.name)
            except ValueError as e:
                logger.warning("Ignoring directory %s under %s: %s", entry.name, root, e)
                continue

            volume = SharedVolume.at(root, entry.name)
            try:
                volume.load_metadata()
            except MetadataUnavailable as e:
                logger.warning("Discovered volume %s without usable metadata: %s", entry.name, e)

            logger.info("Discovered volume %s", entry.name)
            volumes[entry.name] = volume
            discovered.append(entry.name)
    return discovered


def prune(volumes: Dict[str, SharedVolume]) -> List[str]:
    """Drop volumes whose directory has disappeared."""
    pruned = [name for name, volume in volumes.items() if not volume.exists()]
    for name in pruned:
        logger.info("Volume %s was removed by another host", name)
        del volumes[name]
    return pruned


class VolumeRegistry:
    """Thread-safe mapping of volume name to volume for one shared root."""

    def __init__(self, root: Path):
        self.root = Path(root)
        self._volumes: Dict[str, SharedVolume] = {}
        # Re-entrant so callers can hold it across a whole request.
        self.lock = threading.RLock()

    def refresh(self) -> None:
        with self.lock:
            reconcile(self._volumes, self.root)
            prune(self._volumes)

    def get(self, name: str) -> Optional[SharedVolume]:
        with self.lock:
            return self._volumes.get(name)

    def add(self, volume: SharedVolume) -> None:
        with self.lock:
            self._volumes[volume.name] = volume

    def discard(self, name: str) -> None:
        with self.lock:
            self._volumes.pop(name, None)

    def names(self) -> List[str]:
        with self.lock:
            return sorted(self._volumes)

    def volumes(self) -> List[SharedVolume]:
        with self.lock:
            return [self._volumes[name] for name in sorted(self._volumes)]

    def __contains__(self, name: str) -> bool:
        with self.lock:
            return name in self._volumes

    def __len__(self) -> int:
        with self.lock:
            return len(self._volumes)
