"""Camera drivers."""

from gcam_mcp.drivers.cameras.opencv import OpenCVCameraDriver
from gcam_mcp.drivers.cameras.twin import (
    DigitalTwinCameraDriver,
    DigitalTwinConfig,
    ImageSource,
    TwinSession,
    create_directory_camera,
    create_file_camera,
)
from gcam_mcp.drivers.cameras.types import CameraFacing, CameraState, DeviceController

__all__ = [
    "CameraFacing",
    "CameraState",
    "DeviceController",
    "DigitalTwinCameraDriver",
    "DigitalTwinConfig",
    "ImageSource",
    "OpenCVCameraDriver",
    "TwinSession",
    "create_directory_camera",
    "create_file_camera",
]
