"""Camera device type definitions and protocols.

Kept separate from the driver implementations so the device layer and
the drivers can both import them without circular imports.

Types defined here:
- CameraFacing: Enum for front/back camera selection
- CameraState: Current facing, torch and zoom of a device
- DeviceController: Protocol every camera driver implements

Example:
    from gcam_mcp.drivers.cameras.types import CameraFacing, DeviceController

    def warm_up(device: DeviceController) -> None:
        device.bind(CameraFacing.BACK)
        device.set_torch(False)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable


class CameraFacing(Enum):
    """Physical camera selection."""

    FRONT = "front"
    BACK = "back"

    @classmethod
    def parse(cls, value: str | None) -> CameraFacing | None:
        """Exact lookup; None for anything but "front" or "back"."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass
class CameraState:
    """Device-side state mutated only through DeviceController calls.

    Attributes:
        facing: Currently bound camera, or None when unbound.
        torch_on: Torch (continuous flash) state.
        linear_zoom: Normalized zoom in [0, 1].
    """

    facing: CameraFacing | None = None
    torch_on: bool = False
    linear_zoom: float = 0.0


@runtime_checkable
class DeviceController(Protocol):  # pragma: no cover
    """Protocol for the minimal camera capability set.

    Implemented by DigitalTwinCameraDriver (simulation) and
    OpenCVCameraDriver (UVC cameras). Failures are signalled by raising;
    the orchestrator converts them into failure outcomes.

    Business context: capture orchestration only needs to select a camera,
    switch the torch, set zoom and save a still. Keeping the protocol this
    small lets the same orchestration run against simulated devices in CI
    and real cameras on a workstation.
    """

    def bind(self, facing: CameraFacing) -> Any:
        """Acquire a capture session on the camera with the given facing.

        Args:
            facing: Camera to bind.

        Returns:
            Opaque session handle.

        Raises:
            RuntimeError: If the camera is unavailable, denied, or a
                session is already bound (call unbind_all() first).
        """
        ...

    def unbind_all(self) -> None:
        """Release every bound session. Safe to call when unbound."""
        ...

    def set_torch(self, on: bool) -> None:
        """Switch the torch on or off on the bound camera.

        Raises:
            RuntimeError: If no session is bound.
        """
        ...

    def set_linear_zoom(self, value: float) -> None:
        """Set normalized zoom on the bound camera.

        Args:
            value: Zoom in [0, 1]; 0 is widest.

        Raises:
            ValueError: If value is outside [0, 1].
            RuntimeError: If no session is bound.
        """
        ...

    def capture_to_file(self, path: Path) -> Path:
        """Take one still picture and write it to path.

        Blocking; the orchestrator calls it from its capture worker thread.

        Args:
            path: Destination file (.jpg). Parent directory exists.

        Returns:
            Absolute path of the written file.

        Raises:
            RuntimeError: If no session is bound or the capture fails.
        """
        ...

    def close(self) -> None:
        """Unbind and release all device resources. Idempotent."""
        ...
