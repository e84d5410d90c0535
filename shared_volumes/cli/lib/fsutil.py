"""
Filesystem primitives shared by every host.

The shared filesystem is the only channel between hosts, so the one
synchronization primitive is an exclusive create (`O_CREAT | O_EXCL`).
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

PROC_MOUNTS = "/proc/mounts"

_MOUNTS_ESCAPE = re.compile(r"\\([0-7]{3})")


def create_exclusive(path: PathLike, payload: str = "", mode: int = 0o600) -> None:
    """Create a file only if it does not exist yet, and write payload into it.

    Args:
        path: File to create
        payload: Text written into the new file
        mode: Permission bits of the new file

    Raises:
        FileExistsError: If the file already exists
        OSError: If creation or the write fails
    """
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as file:
            file.write(payload)
    except OSError:
        # The marker exists now; a half-written one would block everyone else.
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        raise


def touch(path: PathLike, mode: int = 0o600) -> None:
    """Create an empty file if missing; an existing file is left as is."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT, mode)
    os.close(fd)


def atomic_write_json(path: PathLike, data: Any) -> None:
    """Write JSON through a temp file in the same directory, then rename it over path."""
    path = Path(path)
    tmp_fd, tmp_path = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(tmp_fd, "w", encoding="utf-8") as file:
            json.dump(data, file, indent=2, ensure_ascii=False, sort_keys=True)
            file.write("\n")
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, path)
    finally:
        try:
            os.unlink(tmp_path)
        except FileNotFoundError:
            pass


def _unescape_mount_field(value: str) -> str:
    return _MOUNTS_ESCAPE.sub(lambda m: chr(int(m.group(1), 8)), value)


def filesystem_type(path: PathLike, mounts_file: str = PROC_MOUNTS) -> Optional[str]:
    """Get the filesystem type backing a path.

    The mount table is scanned for the longest mount point that contains
    the path.

    Args:
        path: Path to look up (does not need to exist)
        mounts_file: Mount table in /proc/mounts format

    Returns:
        Filesystem type (e.g., "beegfs", "nfs4"), or None if unknown
    """
    target = os.path.realpath(str(path))
    best_mount = ""
    best_type = None

    try:
        with open(mounts_file, "r", encoding="utf-8") as f:
            for line in f:
                parts = line.split()
                if len(parts) < 3:
                    continue
                mount_point = _unescape_mount_field(parts[1])
                if mount_point != "/":
                    mount_point = mount_point.rstrip("/")
                contains = (
                    target == mount_point
                    or mount_point == "/"
                    or target.startswith(mount_point + "/")
                )
                # Later entries shadow earlier ones on the same mount point.
                if contains and len(mount_point) >= len(best_mount):
                    best_mount = mount_point
                    best_type = parts[2]
    except OSError as e:
        logger.error("Could not read mount table %s: %s", mounts_file, e)
        return None

    logger.debug("Filesystem type for %s: %s (mounted at %s)", target, best_type, best_mount)
    return best_type


def is_expected_filesystem(path: PathLike, expected: str, mounts_file: str = PROC_MOUNTS) -> bool:
    """Check that path lives on the expected filesystem type.

    An empty `expected` disables the check.
    """
    if not expected:
        return True
    return filesystem_type(path, mounts_file) == expected
