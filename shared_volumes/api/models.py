"""
Pydantic models for Docker volume plugin requests and responses.

The plugin protocol uses capitalized JSON keys; fields are snake_case and
carry the protocol name as alias.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from shared_volumes.cli.lib.validators import validate_name


class PluginModel(BaseModel):
    """Base model accepting both field names and protocol aliases."""

    model_config = ConfigDict(populate_by_name=True)


# Requests


class VolumeRequest(PluginModel):
    """Request naming a single volume."""

    name: str = Field(..., alias="Name", min_length=1, max_length=64, description="Volume name")

    @field_validator("name")
    def check_name(cls, v: str) -> str:
        validate_name(v)
        return v


class VolumeCreateRequest(VolumeRequest):
    """Request model for VolumeDriver.Create."""

    opts: Optional[Dict[str, str]] = Field(None, alias="Opts", description="Volume options")


class VolumeMountRequest(VolumeRequest):
    """Request model for VolumeDriver.Mount and VolumeDriver.Unmount."""

    mount_id: str = Field(..., alias="ID", min_length=1, description="Caller supplied mount identifier")


# Responses


class ErrorResponse(PluginModel):
    err: str = Field("", alias="Err")


class ActivateResponse(PluginModel):
    implements: List[str] = Field(default_factory=lambda: ["VolumeDriver"], alias="Implements")


class MountpointResponse(ErrorResponse):
    mountpoint: str = Field(..., alias="Mountpoint")


class VolumeInfo(PluginModel):
    name: str = Field(..., alias="Name")
    mountpoint: str = Field(..., alias="Mountpoint")
    created_at: Optional[str] = Field(None, alias="CreatedAt")
    status: Optional[Dict[str, Any]] = Field(None, alias="Status")


class VolumeGetResponse(ErrorResponse):
    volume: VolumeInfo = Field(..., alias="Volume")


class VolumeListResponse(ErrorResponse):
    volumes: List[VolumeInfo] = Field(default_factory=list, alias="Volumes")


class Capability(PluginModel):
    scope: str = Field("global", alias="Scope")


class CapabilitiesResponse(PluginModel):
    capabilities: Capability = Field(default_factory=Capability, alias="Capabilities")
