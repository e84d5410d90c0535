"""
Unit tests for lock and mount markers.
"""

from unittest.mock import patch

import pytest

from shared_volumes.cli.lib.exceptions import AlreadyMounted, MountOwnershipMismatch
from shared_volumes.cli.lib.markers import LockRegistry, MountRegistry


@pytest.fixture
def locks_dir(temp_dir):
    path = temp_dir / "_locks"
    path.mkdir()
    return path


class TestLockRegistry:
    """Tests for LockRegistry."""

    @pytest.mark.unit
    def test_lock_creates_empty_marker(self, locks_dir):
        locks = LockRegistry(locks_dir)

        locks.lock("node-a")

        assert (locks_dir / "node-a.lock").read_bytes() == b""
        assert locks.is_locked() is True
        assert locks.has_lock("node-a") is True

    @pytest.mark.unit
    def test_lock_is_idempotent(self, locks_dir):
        locks = LockRegistry(locks_dir)

        locks.lock("node-a")
        locks.lock("node-a")
        locks.unlock("node-a")

        # Not reference counted: one unlock releases it.
        assert locks.is_locked() is False

    @pytest.mark.unit
    def test_unlock_only_removes_own_marker(self, locks_dir):
        locks = LockRegistry(locks_dir)
        locks.lock("node-a")
        locks.lock("node-b")

        locks.unlock("node-b")

        assert locks.list_locks() == {"node-a"}
        assert locks.is_locked() is True

    @pytest.mark.unit
    def test_unlock_absent_is_noop(self, locks_dir):
        LockRegistry(locks_dir).unlock("node-a")

    @pytest.mark.unit
    def test_mount_markers_do_not_count_as_locks(self, locks_dir):
        (locks_dir / "c1.mount").write_text("node-a", encoding="utf-8")
        (locks_dir / "stray.lock").mkdir()

        locks = LockRegistry(locks_dir)

        assert locks.is_locked() is False
        assert locks.list_locks() == set()

    @pytest.mark.unit
    def test_is_locked_unreadable_directory_raises(self, temp_dir):
        locks = LockRegistry(temp_dir / "missing")

        with pytest.raises(OSError):
            locks.is_locked()

    @pytest.mark.unit
    def test_list_locks_missing_directory(self, temp_dir):
        assert LockRegistry(temp_dir / "missing").list_locks() == set()

    @pytest.mark.unit
    def test_invalid_host(self, locks_dir):
        with pytest.raises(ValueError):
            LockRegistry(locks_dir).lock("../node-a")


class TestSharedMountRegistry:
    """Tests for MountRegistry in shared mode."""

    @pytest.mark.unit
    def test_mount_writes_owner(self, locks_dir):
        mounts = MountRegistry(locks_dir, "v1")

        mounts.mount("c1", "node-a")

        assert (locks_dir / "c1.mount").read_text(encoding="utf-8") == "node-a"
        assert mounts.is_mounted() is True

    @pytest.mark.unit
    def test_distinct_ids_mount_concurrently(self, locks_dir):
        mounts = MountRegistry(locks_dir, "v1")

        mounts.mount("c1", "node-a")
        mounts.mount("c2", "node-b")

        assert mounts.list_mounts() == {"c1": "node-a", "c2": "node-b"}

    @pytest.mark.unit
    def test_same_id_twice_fails(self, locks_dir):
        mounts = MountRegistry(locks_dir, "v1")
        mounts.mount("c1", "node-a")

        with pytest.raises(AlreadyMounted, match="Volume v1 is already mounted"):
            mounts.mount("c1", "node-a")

    @pytest.mark.unit
    def test_unmount_by_owner(self, locks_dir):
        mounts = MountRegistry(locks_dir, "v1")
        mounts.mount("c1", "node-a")

        mounts.unmount("c1", "node-a")

        assert mounts.is_mounted() is False

    @pytest.mark.unit
    def test_unmount_by_other_host_fails(self, locks_dir):
        mounts = MountRegistry(locks_dir, "v1")
        mounts.mount("c1", "node-a")

        with pytest.raises(MountOwnershipMismatch, match="mounted by node-a host") as exc_info:
            mounts.unmount("c1", "node-b")

        assert exc_info.value.owner == "node-a"
        assert (locks_dir / "c1.mount").exists()

    @pytest.mark.unit
    def test_unmount_absent_is_noop(self, locks_dir):
        MountRegistry(locks_dir, "v1").unmount("c1", "node-a")

    @pytest.mark.unit
    def test_list_mounts_skips_marker_released_during_scan(self, locks_dir):
        mounts = MountRegistry(locks_dir, "v1")
        mounts.mount("c1", "node-a")
        mounts.mount("c2", "node-b")
        real_open = open

        def racing_open(path, *args, **kwargs):
            if str(path).endswith("c2.mount"):
                raise FileNotFoundError(path)
            return real_open(path, *args, **kwargs)

        with patch("builtins.open", side_effect=racing_open):
            assert mounts.list_mounts() == {"c1": "node-a"}


class TestExclusiveMountRegistry:
    """Tests for MountRegistry in exclusive mode."""

    @pytest.mark.unit
    def test_single_marker_for_all_ids(self, locks_dir):
        mounts = MountRegistry(locks_dir, "v1", exclusive=True)

        mounts.mount("c1", "node-a")

        assert [p.name for p in locks_dir.iterdir()] == ["exclusive.mount"]
        assert mounts.list_mounts() == {"exclusive": "node-a"}

    @pytest.mark.unit
    def test_second_id_rejected_until_released(self, locks_dir):
        mounts = MountRegistry(locks_dir, "v1", exclusive=True)
        mounts.mount("c1", "node-a")

        with pytest.raises(AlreadyMounted):
            mounts.mount("c2", "node-b")
        with pytest.raises(AlreadyMounted):
            mounts.mount("c3", "node-a")

        mounts.unmount("c1", "node-a")
        mounts.mount("c2", "node-b")

        assert mounts.list_mounts() == {"exclusive": "node-b"}

    @pytest.mark.unit
    def test_other_host_cannot_release(self, locks_dir):
        mounts = MountRegistry(locks_dir, "v1", exclusive=True)
        mounts.mount("c1", "node-a")

        with pytest.raises(MountOwnershipMismatch):
            mounts.unmount("c1", "node-b")

        assert mounts.is_mounted() is True


class TestMountOwnershipMismatch:
    """Tests for the MountOwnershipMismatch exception."""

    @pytest.mark.unit
    def test_owner_defaults_to_none(self):
        exc = MountOwnershipMismatch("Volume v1 is mounted by another host")

        assert exc.owner is None
        assert exc.message == "Volume v1 is mounted by another host"
