"""Exceptions raised by the shared volume coordination layer."""

from typing import Optional


class SharedVolumeError(Exception):
    """Base exception for shared volume errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ConfigurationError(SharedVolumeError):
    """Required configuration is missing or invalid."""

    pass


class NotOnExpectedFilesystem(SharedVolumeError):
    """Volume root is not on the configured filesystem type."""

    pass


class VolumeNotFound(SharedVolumeError):
    """Volume is unknown to this host."""

    pass


class VolumeNotADirectory(SharedVolumeError):
    """Volume path exists but is not a directory."""

    pass


class MetadataUnavailable(SharedVolumeError):
    """Volume metadata file is missing or cannot be parsed."""

    pass


class AlreadyMounted(SharedVolumeError):
    """Mount marker already exists."""

    pass


class MountOwnershipMismatch(SharedVolumeError):
    """Mount marker belongs to another host."""

    def __init__(self, message: str, owner: Optional[str] = None):
        super().__init__(message)
        self.owner = owner
