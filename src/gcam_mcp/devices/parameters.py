"""Capture request and the mapping to device-control values.

Human-facing parameters (zoom factor 1x-4x, named flash mode, named
camera facing) are mapped to what the DeviceController understands
(normalized linear zoom, torch on/off, CameraFacing). All mapping
functions are pure and total: unrecognized input degrades to a default
instead of raising.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from gcam_mcp.drivers.cameras.types import CameraFacing

__all__ = [
    "CaptureRequest",
    "DeviceParameters",
    "FlashMode",
    "MIN_ZOOM_FACTOR",
    "MAX_ZOOM_FACTOR",
    "map_zoom",
    "map_flash",
    "map_facing",
    "map_parameters",
]

MIN_ZOOM_FACTOR = 1.0
MAX_ZOOM_FACTOR = 4.0


class FlashMode(Enum):
    """Named flash modes accepted in capture requests."""

    AUTO = "auto"
    ON = "on"
    OFF = "off"

    @classmethod
    def parse(cls, value: str | None) -> FlashMode | None:
        """Case-insensitive lookup; None for unrecognized names.

        Surrounding whitespace is not ignored, so " on " is unrecognized.
        """
        if value is None:
            return None
        try:
            return cls(value.lower())
        except ValueError:
            return None


@dataclass(frozen=True)
class CaptureRequest:
    """One photo request as received from a client.

    Attributes:
        filter_xml: Filter markup (see gcam_mcp.filters.spec).
        flash_mode: "auto", "on" or "off".
        camera_facing: "front" or "back".
        timer_sec: Delay before capture, in seconds. Must be >= 0.
        zoom: Zoom factor, nominally 1.0 to 4.0.
    """

    filter_xml: str = ""
    flash_mode: str = "auto"
    camera_facing: str = "back"
    timer_sec: int = 0
    zoom: float = 1.0

    def __post_init__(self) -> None:
        if self.timer_sec < 0:
            raise ValueError(f"timer_sec must be >= 0, got {self.timer_sec}")

    @classmethod
    def from_arguments(cls, arguments: Mapping[str, Any] | None) -> CaptureRequest:
        """Build a request from call arguments, defaulting missing keys.

        Accepts the client keys filterXml, flashMode, cameraFacing, timer
        and zoom. ``filter_xml`` is accepted as an alias for filterXml.
        Keys that are present but null get the same defaults as missing
        ones.

        Raises:
            ValueError: If timer is negative or a number cannot be parsed.

        Example:
            >>> CaptureRequest.from_arguments({"zoom": 2.5, "flashMode": "on"})
            CaptureRequest(filter_xml='', flash_mode='on', camera_facing='back', timer_sec=0, zoom=2.5)
        """
        args = dict(arguments or {})
        filter_xml = args.get("filterXml")
        if filter_xml is None:
            filter_xml = args.get("filter_xml")
        timer = args.get("timer")
        zoom = args.get("zoom")
        return cls(
            filter_xml=filter_xml or "",
            flash_mode=args.get("flashMode") or FlashMode.AUTO.value,
            camera_facing=args.get("cameraFacing") or CameraFacing.BACK.value,
            timer_sec=int(timer) if timer is not None else 0,
            zoom=float(zoom) if zoom is not None else 1.0,
        )

    def to_dict(self) -> dict[str, Any]:
        """Client-shaped dict (inverse of from_arguments)."""
        return {
            "filterXml": self.filter_xml,
            "flashMode": self.flash_mode,
            "cameraFacing": self.camera_facing,
            "timer": self.timer_sec,
            "zoom": self.zoom,
        }


@dataclass(frozen=True)
class DeviceParameters:
    """Device-control values for one request."""

    facing: CameraFacing
    torch_on: bool
    linear_zoom: float


def map_zoom(zoom_factor: float) -> float:
    """Map a 1x-4x zoom factor to normalized linear zoom in [0, 1].

    Values below 1x clamp to 0, above 4x clamp to 1. NaN maps to 0.

    Example:
        >>> map_zoom(2.5)
        0.5
        >>> map_zoom(10.0)
        1.0
    """
    if math.isnan(zoom_factor):
        return 0.0
    linear = (zoom_factor - MIN_ZOOM_FACTOR) / (MAX_ZOOM_FACTOR - MIN_ZOOM_FACTOR)
    return min(1.0, max(0.0, linear))


def map_flash(mode: str | None) -> bool:
    """Map a flash mode name to the torch state.

    "on" enables the torch. "off" disables it. "auto" also disables it,
    since the torch has no automatic mode; unrecognized names do the same.
    """
    return FlashMode.parse(mode) is FlashMode.ON


def map_facing(facing: str | None) -> CameraFacing:
    """Map a facing name to CameraFacing; anything but exactly "front" is BACK."""
    return CameraFacing.parse(facing) or CameraFacing.BACK


def map_parameters(request: CaptureRequest) -> DeviceParameters:
    """Map every device-facing field of a request."""
    return DeviceParameters(
        facing=map_facing(request.camera_facing),
        torch_on=map_flash(request.flash_mode),
        linear_zoom=map_zoom(request.zoom),
    )
