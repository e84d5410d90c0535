"""
FastAPI application implementing the Docker volume plugin protocol.
"""

import logging
import uuid
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from shared_volumes.api.models import (
    ActivateResponse,
    CapabilitiesResponse,
    ErrorResponse,
    MountpointResponse,
    VolumeCreateRequest,
    VolumeGetResponse,
    VolumeListResponse,
    VolumeMountRequest,
    VolumeRequest,
)
from shared_volumes.api.services.volume_service import VolumeDriver, get_driver
from shared_volumes.cli.lib.exceptions import SharedVolumeError

app = FastAPI(
    title="Shared Volumes Plugin",
    description="Docker volume plugin for directories on a shared filesystem",
    version="0.1.0",
)
logger = logging.getLogger(__name__)


@app.exception_handler(SharedVolumeError)
async def shared_volume_exception_handler(request: Request, exc: SharedVolumeError) -> JSONResponse:
    logger.error("%s failed: %s", request.url.path, exc.message)
    return JSONResponse(status_code=500, content={"Err": exc.message})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    logger.error("%s rejected: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"Err": str(exc)})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = "; ".join(str(error.get("msg", "")) for error in exc.errors())
    return JSONResponse(status_code=400, content={"Err": f"Invalid request: {messages}"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler."""
    request_id = str(uuid.uuid4())
    logger.exception("Unhandled error (request_id=%s, path=%s)", request_id, request.url.path)
    return JSONResponse(status_code=500, content={"Err": f"Internal server error (request_id={request_id})"})


@app.post("/Plugin.Activate", response_model=ActivateResponse)
def activate() -> Dict[str, Any]:
    return {"Implements": ["VolumeDriver"]}


@app.post("/VolumeDriver.Create", response_model=ErrorResponse)
def create_volume(request: VolumeCreateRequest, driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Create a volume on the shared root.
    """
    driver.create(request.name, request.opts)
    return {"Err": ""}


@app.post("/VolumeDriver.Remove", response_model=ErrorResponse)
def remove_volume(request: VolumeRequest, driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    """
    Remove a volume unless it is protected or locked by any host.
    """
    driver.remove(request.name)
    return {"Err": ""}


@app.post("/VolumeDriver.Mount", response_model=MountpointResponse)
def mount_volume(request: VolumeMountRequest, driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    mountpoint = driver.mount(request.name, request.mount_id)
    return {"Mountpoint": mountpoint, "Err": ""}


@app.post("/VolumeDriver.Unmount", response_model=ErrorResponse)
def unmount_volume(request: VolumeMountRequest, driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    driver.unmount(request.name, request.mount_id)
    return {"Err": ""}


@app.post("/VolumeDriver.Path", response_model=MountpointResponse)
def volume_path(request: VolumeRequest, driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    return {"Mountpoint": driver.path(request.name), "Err": ""}


@app.post("/VolumeDriver.Get", response_model=VolumeGetResponse, response_model_exclude_none=True)
def get_volume(request: VolumeRequest, driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    info = driver.get(request.name)
    return {
        "Volume": {
            "Name": info["name"],
            "Mountpoint": info["mountpoint"],
            "CreatedAt": info["created_at"],
            "Status": info["status"],
        },
        "Err": "",
    }


@app.post("/VolumeDriver.List", response_model=VolumeListResponse, response_model_exclude_none=True)
def list_volumes(driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    volumes = [{"Name": v["name"], "Mountpoint": v["mountpoint"]} for v in driver.list()]
    return {"Volumes": volumes, "Err": ""}


@app.post("/VolumeDriver.Capabilities", response_model=CapabilitiesResponse)
def capabilities(driver: VolumeDriver = Depends(get_driver)) -> Dict[str, Any]:
    return {"Capabilities": {"Scope": driver.capabilities()["scope"]}}
