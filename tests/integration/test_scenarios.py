"""
Scenario tests: several hosts sharing one root.
"""

import pytest

from shared_volumes.api.services.volume_service import VolumeDriver
from shared_volumes.cli.lib.exceptions import AlreadyMounted, MountOwnershipMismatch
from shared_volumes.cli.lib.registry import reconcile
from shared_volumes.cli.lib.volume import SharedVolume


@pytest.fixture
def hosts(volume_root):
    return {name: VolumeDriver(volume_root, name) for name in ("node-a", "node-b")}


class TestSharedModeWorkflow:
    """Create -> concurrent mounts -> delete boundary."""

    @pytest.mark.integration
    def test_shared_mounts_and_delete_boundary(self, volume_root):
        volume = SharedVolume.at(volume_root, "v1")
        volume.create()

        volume.mount("c1", "node-a")
        assert (volume.locks_dir / "c1.mount").read_text(encoding="utf-8") == "node-a"
        volume.mount("c2", "node-b")
        assert volume.list_mounts() == {"c1": "node-a", "c2": "node-b"}

        # Deletion gates on locks and protection only, never on mount markers.
        assert volume.list_locks() == set()
        assert volume.delete() is True
        assert not (volume_root / "v1").exists()

    @pytest.mark.integration
    def test_plugin_mount_locks_the_volume(self, hosts, volume_root):
        hosts["node-a"].create("v1")
        hosts["node-a"].mount("v1", "c1")
        hosts["node-b"].mount("v1", "c2")

        hosts["node-b"].remove("v1")
        assert (volume_root / "v1").is_dir()

        hosts["node-a"].unmount("v1", "c1")
        hosts["node-b"].remove("v1")
        assert (volume_root / "v1").is_dir()

        hosts["node-b"].unmount("v1", "c2")
        hosts["node-b"].remove("v1")
        assert not (volume_root / "v1").exists()
        assert hosts["node-a"].list() == []


class TestLockWorkflow:
    """Lock on one host blocks deletion from another."""

    @pytest.mark.integration
    def test_lock_blocks_remote_delete(self, volume_root):
        SharedVolume.at(volume_root, "v1").create()
        on_a = SharedVolume.at(volume_root, "v1")
        on_b = SharedVolume.at(volume_root, "v1")

        on_a.lock("node-a")
        assert on_b.delete() is False
        assert (volume_root / "v1").is_dir()

        on_a.unlock("node-a")
        assert on_b.delete() is True
        assert not (volume_root / "v1").exists()


class TestExclusiveWorkflow:
    """Exclusive mounts across hosts."""

    @pytest.mark.integration
    def test_exclusive_mount_handover(self, volume_root):
        SharedVolume.at(volume_root, "v1", exclusive=True).create()
        on_a = SharedVolume.at(volume_root, "v1")
        on_b = SharedVolume.at(volume_root, "v1")
        on_a.load_metadata()
        on_b.load_metadata()

        on_a.mount("x", "node-a")
        with pytest.raises(AlreadyMounted):
            on_b.mount("y", "node-b")
        with pytest.raises(MountOwnershipMismatch):
            on_b.unmount("x", "node-b")

        on_a.unmount("x", "node-a")
        on_b.mount("y", "node-b")
        assert on_a.list_mounts() == {"exclusive": "node-b"}


class TestRestartRecovery:
    """A restarted host rebuilds its view from the shared root."""

    @pytest.mark.integration
    def test_restart_recovers_volumes(self, hosts, volume_root):
        hosts["node-a"].create("v1", {"protected": "true"})
        hosts["node-b"].create("v2", {"exclusive": "true"})

        restarted = VolumeDriver(volume_root, "node-a")
        names = [v["name"] for v in restarted.list()]

        assert names == ["v1", "v2"]
        assert restarted.get("v1")["status"]["protected"] is True
        assert restarted.get("v2")["status"]["exclusive"] is True

    @pytest.mark.integration
    def test_reconcile_empty_map(self, volume_root):
        (volume_root / "a").mkdir()
        (volume_root / "b").mkdir()
        volumes = {}

        reconcile(volumes, volume_root)

        assert sorted(v.name for v in volumes.values()) == ["a", "b"]
