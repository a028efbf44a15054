"""OpenCV camera driver for USB/UVC devices.

Maps the front/back facing to VideoCapture device indices. UVC exposes no
torch control, so set_torch() is recorded in state and logged. Zoom is
forwarded as CAP_PROP_ZOOM, scaled into the device's absolute zoom range.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable

import cv2

from gcam_mcp.drivers.cameras.types import CameraFacing, CameraState
from gcam_mcp.observability import get_logger

logger = get_logger(__name__)

__all__ = [
    "OpenCVCameraDriver",
    "DEFAULT_ZOOM_RANGE",
]

#: Absolute CAP_PROP_ZOOM range most UVC webcams report (100 = 1x).
DEFAULT_ZOOM_RANGE = (100.0, 400.0)
_WARMUP_FRAMES = 2
_JPEG_QUALITY = 95


class OpenCVCameraDriver:
    """DeviceController backed by cv2.VideoCapture.

    Example:
        driver = OpenCVCameraDriver(back_index=0, front_index=1)
        driver.bind(CameraFacing.BACK)
        driver.capture_to_file(Path("IMG_20260101_120000.jpg"))
        driver.close()
    """

    def __init__(
        self,
        back_index: int = 0,
        front_index: int = 1,
        zoom_range: tuple[float, float] = DEFAULT_ZOOM_RANGE,
        capture_factory: Callable[[int], Any] | None = None,
    ) -> None:
        """Create an unbound driver.

        Args:
            back_index: VideoCapture index of the back (world-facing) camera.
            front_index: VideoCapture index of the front (user-facing) camera.
            zoom_range: (min, max) CAP_PROP_ZOOM values for linear zoom 0 and 1.
            capture_factory: Opens a device by index. Defaults to
                cv2.VideoCapture; tests pass a fake.
        """
        self._indices = {CameraFacing.BACK: back_index, CameraFacing.FRONT: front_index}
        self._zoom_range = zoom_range
        self._capture_factory = capture_factory or cv2.VideoCapture
        self._capture: Any = None
        self._state = CameraState()
        self._lock = threading.Lock()

    @property
    def state(self) -> CameraState:
        """Copy of the current device state."""
        return CameraState(
            facing=self._state.facing,
            torch_on=self._state.torch_on,
            linear_zoom=self._state.linear_zoom,
        )

    def bind(self, facing: CameraFacing) -> Any:
        """Open the VideoCapture device for facing.

        Raises:
            RuntimeError: If a device is already bound or it fails to open.
        """
        with self._lock:
            if self._capture is not None:
                raise RuntimeError("Camera already bound; call unbind_all() first")
            index = self._indices[facing]
            capture = self._capture_factory(index)
            if not capture.isOpened():
                capture.release()
                raise RuntimeError(
                    f"Failed to open {facing.value} camera (device index {index})"
                )
            self._capture = capture
            self._state = CameraState(facing=facing)
            logger.info("OpenCV camera opened", facing=facing.value, index=index)
            return capture

    def unbind_all(self) -> None:
        """Release the open device, if any."""
        with self._lock:
            if self._capture is not None:
                self._capture.release()
                logger.info(
                    "OpenCV camera released",
                    facing=self._state.facing.value if self._state.facing else None,
                )
            self._capture = None
            self._state = CameraState()

    def set_torch(self, on: bool) -> None:
        """Record torch state; UVC cameras have no torch to drive."""
        with self._lock:
            self._require_capture()
            if on:
                logger.warning("Torch not supported by OpenCV camera, ignoring")
            self._state.torch_on = on

    def set_linear_zoom(self, value: float) -> None:
        """Set CAP_PROP_ZOOM from a normalized zoom.

        Raises:
            ValueError: If value is outside [0, 1].
            RuntimeError: If unbound.
        """
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"Linear zoom must be within [0, 1], got {value}")
        with self._lock:
            capture = self._require_capture()
            low, high = self._zoom_range
            absolute = low + value * (high - low)
            if not capture.set(cv2.CAP_PROP_ZOOM, absolute):
                logger.debug("Camera ignored zoom request", zoom=absolute)
            self._state.linear_zoom = value

    def capture_to_file(self, path: Path) -> Path:
        """Read a frame and write it as JPEG.

        A couple of frames are discarded first so exposure and zoom settle.

        Raises:
            RuntimeError: If unbound, the read fails or the write fails.
        """
        with self._lock:
            capture = self._require_capture()
            for _ in range(_WARMUP_FRAMES):
                capture.grab()
            ok, frame = capture.read()

        if not ok or frame is None:
            raise RuntimeError("Failed to read frame from OpenCV camera")

        target = Path(path).absolute()
        if not cv2.imwrite(str(target), frame, [cv2.IMWRITE_JPEG_QUALITY, _JPEG_QUALITY]):
            raise RuntimeError(f"Failed to write capture: {target}")
        return target

    def close(self) -> None:
        self.unbind_all()

    def _require_capture(self) -> Any:
        if self._capture is None:
            raise RuntimeError("No camera bound")
        return self._capture
