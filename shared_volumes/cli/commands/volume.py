"""
Volume management commands.

These act directly on the shared root, so an operator can inspect volumes
and clear markers left behind by a crashed host.
"""

import json
from pathlib import Path
from typing import Optional

import typer

from shared_volumes.cli.lib.config import load_config
from shared_volumes.cli.lib.exceptions import VolumeNotFound
from shared_volumes.cli.lib.registry import VolumeRegistry
from shared_volumes.cli.lib.validators import validate_name
from shared_volumes.cli.lib.volume import SharedVolume

app = typer.Typer(help="Volume management commands")

ROOT_OPTION = typer.Option(None, "--root", help="Shared root directory (default: from config)")
HOST_OPTION = typer.Option(None, "--host", help="Host identifier (default: from config or hostname)")


def _resolve_root(root: Optional[str]) -> Path:
    if root:
        return Path(root)
    return load_config().require_root()


def _resolve_host(host: Optional[str]) -> str:
    return host or load_config().hostname


def _registry(root: Optional[str]) -> VolumeRegistry:
    registry = VolumeRegistry(_resolve_root(root))
    registry.refresh()
    return registry


def _volume(name: str, root: Optional[str]) -> SharedVolume:
    validate_name(name)
    volume = _registry(root).get(name)
    if volume is None:
        raise VolumeNotFound(f"volume {name} unknown")
    return volume


@app.command()
def list(root: Optional[str] = ROOT_OPTION):
    """
    List volumes under the shared root.
    """
    try:
        volumes = _registry(root).volumes()
        if not volumes:
            typer.echo("No volumes found")
            return
        for vol in volumes:
            typer.echo(
                f"{vol.name} protected={vol.protected} exclusive={vol.exclusive} "
                f"locks={','.join(sorted(vol.list_locks())) or '-'} mounts={len(vol.list_mounts())}"
            )
    except Exception as e:
        typer.echo(f"Error listing volumes: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def inspect(name: str = typer.Argument(..., help="Volume name"), root: Optional[str] = ROOT_OPTION):
    """
    Show a volume's descriptor, lock holders and mounts as JSON.
    """
    try:
        volume = _volume(name, root)
        info = volume.to_dict()
        info["locks"] = sorted(volume.list_locks())
        info["mounts"] = volume.list_mounts()
        typer.echo(json.dumps(info, indent=2, sort_keys=True))
    except Exception as e:
        typer.echo(f"Error inspecting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def create(
    name: str = typer.Argument(..., help="Volume name"),
    protected: bool = typer.Option(False, "--protected/--no-protected", help="Never delete this volume"),
    exclusive: bool = typer.Option(False, "--exclusive/--no-exclusive", help="Allow a single mount at a time"),
    root: Optional[str] = ROOT_OPTION,
):
    """
    Create a volume.
    """
    try:
        validate_name(name)
        volume = SharedVolume.at(_resolve_root(root), name, protected=protected, exclusive=exclusive)
        if volume.create():
            typer.echo(f"Volume {name} created at {volume.mountpoint}")
        else:
            typer.echo(f"Volume {name} already exists at {volume.mountpoint}")
    except Exception as e:
        typer.echo(f"Error creating volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def delete(name: str = typer.Argument(..., help="Volume name"), root: Optional[str] = ROOT_OPTION):
    """
    Delete a volume.

    The volume is kept if it is protected or locked by any host.
    """
    try:
        volume = _volume(name, root)
        if volume.delete():
            typer.echo(f"Volume {name} deleted")
        else:
            typer.echo(f"Volume {name} kept (protected or locked)")
    except Exception as e:
        typer.echo(f"Error deleting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def protect(name: str = typer.Argument(..., help="Volume name"), root: Optional[str] = ROOT_OPTION):
    """
    Mark a volume as protected.
    """
    try:
        _volume(name, root).set_protected(True)
        typer.echo(f"Volume {name} is protected")
    except Exception as e:
        typer.echo(f"Error protecting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def unprotect(name: str = typer.Argument(..., help="Volume name"), root: Optional[str] = ROOT_OPTION):
    """
    Clear the protected flag of a volume.
    """
    try:
        _volume(name, root).set_protected(False)
        typer.echo(f"Volume {name} is no longer protected")
    except Exception as e:
        typer.echo(f"Error unprotecting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def lock(
    name: str = typer.Argument(..., help="Volume name"),
    host: Optional[str] = HOST_OPTION,
    root: Optional[str] = ROOT_OPTION,
):
    """
    Lock a volume on behalf of a host.
    """
    try:
        host = _resolve_host(host)
        _volume(name, root).lock(host)
        typer.echo(f"Volume {name} locked by {host}")
    except Exception as e:
        typer.echo(f"Error locking volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def unlock(
    name: str = typer.Argument(..., help="Volume name"),
    host: Optional[str] = HOST_OPTION,
    root: Optional[str] = ROOT_OPTION,
):
    """
    Remove a host's lock on a volume.

    Use --host to clear the stale lock of a crashed host.
    """
    try:
        host = _resolve_host(host)
        _volume(name, root).unlock(host)
        typer.echo(f"Volume {name} unlocked for {host}")
    except Exception as e:
        typer.echo(f"Error unlocking volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def mount(
    name: str = typer.Argument(..., help="Volume name"),
    mount_id: str = typer.Argument(..., help="Mount identifier (e.g., a container ID)"),
    host: Optional[str] = HOST_OPTION,
    root: Optional[str] = ROOT_OPTION,
):
    """
    Record a mount of a volume.
    """
    try:
        host = _resolve_host(host)
        volume = _volume(name, root)
        volume.mount(mount_id, host)
        typer.echo(f"Volume {name} mounted as {mount_id} by {host}: {volume.data_dir}")
    except Exception as e:
        typer.echo(f"Error mounting volume: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def unmount(
    name: str = typer.Argument(..., help="Volume name"),
    mount_id: str = typer.Argument(..., help="Mount identifier"),
    host: Optional[str] = HOST_OPTION,
    root: Optional[str] = ROOT_OPTION,
):
    """
    Release a mount of a volume owned by a host.
    """
    try:
        host = _resolve_host(host)
        _volume(name, root).unmount(mount_id, host)
        typer.echo(f"Volume {name} unmounted ({mount_id})")
    except Exception as e:
        typer.echo(f"Error unmounting volume: {e}", err=True)
        raise typer.Exit(1)
