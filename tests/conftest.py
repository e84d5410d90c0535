"""
Pytest configuration and fixtures.
"""

import shutil
import tempfile
from pathlib import Path

import pytest

from shared_volumes.cli.lib.volume import SharedVolume


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def volume_root(temp_dir):
    """Shared root directory seen identically by every simulated host."""
    root = temp_dir / "volumes"
    root.mkdir()
    return root


@pytest.fixture
def make_volume(volume_root):
    """Create a volume on disk and return it."""

    def _make(name="v1", protected=False, exclusive=False):
        volume = SharedVolume.at(volume_root, name, protected=protected, exclusive=exclusive)
        volume.create()
        return volume

    return _make


@pytest.fixture
def mounts_file(temp_dir):
    """Write a /proc/mounts style table and return its path."""

    def _write(*lines):
        path = temp_dir / "mounts"
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, temp_dir):
    """Keep tests away from /etc and the real hostname."""
    monkeypatch.setenv("SHARED_VOLUMES_CONFIG_PATH", str(temp_dir / "missing-plugin.conf"))
    monkeypatch.delenv("SHARED_VOLUMES_ROOT", raising=False)
    monkeypatch.setenv("SHARED_VOLUMES_HOSTNAME", "node-a")
