"""Logical device layer - parameter mapping, session ownership, orchestration."""

from gcam_mcp.devices.clock import Clock, SystemClock
from gcam_mcp.devices.orchestrator import (
    BindError,
    CaptureError,
    CaptureOrchestrator,
    CaptureOutcome,
    CaptureRun,
    CaptureState,
    DeviceCaptureError,
    FailureReason,
)
from gcam_mcp.devices.parameters import (
    CaptureRequest,
    DeviceParameters,
    FlashMode,
    map_facing,
    map_flash,
    map_parameters,
    map_zoom,
)
from gcam_mcp.devices.registry import (
    get_orchestrator,
    init_orchestrator,
    shutdown_orchestrator,
)
from gcam_mcp.devices.session import DeviceSession

__all__ = [
    # Clock
    "Clock",
    "SystemClock",
    # Parameters
    "CaptureRequest",
    "DeviceParameters",
    "FlashMode",
    "map_facing",
    "map_flash",
    "map_parameters",
    "map_zoom",
    # Session
    "DeviceSession",
    # Orchestrator
    "BindError",
    "CaptureError",
    "CaptureOrchestrator",
    "CaptureOutcome",
    "CaptureRun",
    "CaptureState",
    "DeviceCaptureError",
    "FailureReason",
    # Registry
    "get_orchestrator",
    "init_orchestrator",
    "shutdown_orchestrator",
]
