"""
Shared Volumes - Docker volume plugin for directories on a shared filesystem.

This package coordinates volume creation, locking, mounting and deletion
between hosts that share one filesystem root (e.g., BeeGFS), using only
marker files on that filesystem.
"""

__version__ = "0.1.0"
__all__ = ["api", "cli"]
