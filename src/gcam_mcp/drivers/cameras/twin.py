"""Digital Twin Camera Driver - Simulated Device for Testing.

Implements the DeviceController protocol without hardware. Keeps a
CameraState, records every command it receives, and writes real JPEG
files so the full capture pipeline can run end to end.

Image Sources:
    Synthetic: Generated test card reflecting facing, torch and zoom
    Directory: Cycle through images in a folder
    File: Return the same image every capture

Failure injection (DigitalTwinConfig):
    available_facings: binding any other facing raises RuntimeError
    fail_capture: every capture raises RuntimeError
    capture_latency_s: blocking delay inside capture_to_file

Example:
    from gcam_mcp.drivers.cameras.twin import DigitalTwinCameraDriver

    driver = DigitalTwinCameraDriver()
    driver.bind(CameraFacing.BACK)
    driver.set_linear_zoom(0.5)
    driver.capture_to_file(Path("/tmp/IMG_20260101_120000.jpg"))
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, final

import cv2
import numpy as np

from gcam_mcp.drivers.cameras.types import CameraFacing, CameraState
from gcam_mcp.observability import get_logger

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = get_logger(__name__)

__all__ = [
    "DigitalTwinCameraDriver",
    "DigitalTwinConfig",
    "ImageSource",
    "TwinSession",
    "create_file_camera",
    "create_directory_camera",
]


class ImageSource(Enum):
    """Image source for digital twin camera."""

    SYNTHETIC = "synthetic"  # Generate test card
    DIRECTORY = "directory"  # Cycle through images in a folder
    FILE = "file"  # Return same image repeatedly


_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".tif", ".tiff"}
_DEFAULT_JPEG_QUALITY = 90
_SYNTHETIC_GRID_SPACING = 40
_MAX_OPTICAL_ZOOM = 4.0  # linear zoom 1.0 == 4x


@dataclass
class DigitalTwinConfig:
    """Configuration for digital twin camera behavior.

    Attributes:
        image_source: Where captured pixels come from.
        image_path: File or directory for FILE/DIRECTORY sources.
        cycle_images: Loop back to the first directory image at the end.
        width: Synthetic frame width in pixels.
        height: Synthetic frame height in pixels.
        available_facings: Facings that bind successfully.
        fail_capture: Make every capture raise.
        capture_latency_s: Blocking sleep inside capture_to_file.
    """

    image_source: ImageSource = ImageSource.SYNTHETIC
    image_path: Path | None = None
    cycle_images: bool = True
    width: int = 1280
    height: int = 960
    available_facings: frozenset[CameraFacing] = field(
        default_factory=lambda: frozenset(CameraFacing)
    )
    fail_capture: bool = False
    capture_latency_s: float = 0.0


@dataclass(frozen=True)
class TwinSession:
    """Handle returned by bind(); generation increases on every bind."""

    facing: CameraFacing
    generation: int


@final
class DigitalTwinCameraDriver:
    """Simulated camera device for development without hardware.

    Thread-safe: bind/torch/zoom run on the event loop while
    capture_to_file runs on the orchestrator's worker thread.

    Attributes:
        config: Behavior and failure-injection settings.
        commands: Every command received, in order, as (name, argument).
    """

    def __init__(self, config: DigitalTwinConfig | None = None) -> None:
        """Initialize an unbound simulated device.

        Args:
            config: Image source and failure injection. Defaults to a
                synthetic source with both facings available.

        Example:
            >>> driver = DigitalTwinCameraDriver(
            ...     DigitalTwinConfig(available_facings=frozenset())
            ... )
            >>> driver.bind(CameraFacing.BACK)  # raises RuntimeError
        """
        self.config = config or DigitalTwinConfig()
        self.commands: list[tuple[str, Any]] = []
        self._state = CameraState()
        self._session: TwinSession | None = None
        self._generation = 0
        self._image_files: list[Path] = []
        self._image_index = 0
        self._lock = threading.Lock()
        self._load_image_files()
        logger.info(
            "Digital twin camera created",
            image_source=self.config.image_source.value,
            facings=sorted(f.value for f in self.config.available_facings),
        )

    def __repr__(self) -> str:
        facing = self._state.facing.value if self._state.facing else None
        return (
            f"DigitalTwinCameraDriver(source={self.config.image_source.value}, "
            f"bound={facing})"
        )

    @property
    def state(self) -> CameraState:
        """Copy of the current device state."""
        with self._lock:
            return CameraState(
                facing=self._state.facing,
                torch_on=self._state.torch_on,
                linear_zoom=self._state.linear_zoom,
            )

    @property
    def session(self) -> TwinSession | None:
        """Currently bound session, if any."""
        return self._session

    def bind(self, facing: CameraFacing) -> TwinSession:
        """Bind the simulated camera with the given facing.

        Raises:
            RuntimeError: If the facing is not in available_facings or a
                session is already bound.
        """
        with self._lock:
            self.commands.append(("bind", facing))
            if facing not in self.config.available_facings:
                logger.error("Simulated camera unavailable", facing=facing.value)
                raise RuntimeError(f"Camera facing '{facing.value}' is not available")
            if self._session is not None:
                raise RuntimeError(
                    f"Camera already bound to '{self._session.facing.value}'; "
                    "call unbind_all() first"
                )
            self._generation += 1
            self._session = TwinSession(facing=facing, generation=self._generation)
            self._state.facing = facing
            self._state.torch_on = False
            self._state.linear_zoom = 0.0
            logger.debug("Simulated camera bound", facing=facing.value)
            return self._session

    def unbind_all(self) -> None:
        """Release the bound session (no-op when unbound)."""
        with self._lock:
            self.commands.append(("unbind_all", None))
            self._session = None
            self._state = CameraState()

    def set_torch(self, on: bool) -> None:
        """Switch the simulated torch."""
        with self._lock:
            self.commands.append(("set_torch", on))
            self._require_session()
            self._state.torch_on = on

    def set_linear_zoom(self, value: float) -> None:
        """Set simulated zoom.

        Raises:
            ValueError: If value is outside [0, 1].
            RuntimeError: If unbound.
        """
        with self._lock:
            self.commands.append(("set_linear_zoom", value))
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"Linear zoom must be within [0, 1], got {value}")
            self._require_session()
            self._state.linear_zoom = value

    def capture_to_file(self, path: Path) -> Path:
        """Render a frame for the current state and write it as JPEG.

        Args:
            path: Destination file.

        Returns:
            Absolute path of the written file.

        Raises:
            RuntimeError: If unbound, fail_capture is set, or encoding fails.
        """
        with self._lock:
            self.commands.append(("capture_to_file", path))
            self._require_session()
            state = CameraState(
                facing=self._state.facing,
                torch_on=self._state.torch_on,
                linear_zoom=self._state.linear_zoom,
            )
            if self.config.fail_capture:
                raise RuntimeError("Simulated capture failure")

        if self.config.capture_latency_s > 0:
            time.sleep(self.config.capture_latency_s)

        img = self._render_frame(state)
        ok, jpeg = cv2.imencode(
            ".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, _DEFAULT_JPEG_QUALITY]
        )
        if not ok:
            raise RuntimeError("JPEG encoding failed")

        target = Path(path).absolute()
        target.write_bytes(jpeg.tobytes())
        logger.debug(
            "Simulated capture written",
            path=str(target),
            facing=state.facing.value if state.facing else None,
        )
        return target

    def close(self) -> None:
        """Unbind; the twin holds no other resources."""
        self.unbind_all()

    def _require_session(self) -> None:
        # Caller holds self._lock
        if self._session is None:
            raise RuntimeError("No camera bound")

    # ------------------------------------------------------------------
    # Frame generation
    # ------------------------------------------------------------------

    def _load_image_files(self) -> None:
        """Collect image files for DIRECTORY mode."""
        if self.config.image_source != ImageSource.DIRECTORY:
            return
        if self.config.image_path is None or not self.config.image_path.is_dir():
            return
        self._image_files = sorted(
            f
            for f in self.config.image_path.iterdir()
            if f.suffix.lower() in _IMAGE_EXTENSIONS
        )

    def _render_frame(self, state: CameraState) -> NDArray[Any]:
        """Produce the BGR frame for a capture."""
        img = self._source_frame(state)
        img = _apply_zoom(img, state.linear_zoom)
        if state.torch_on:
            img = cv2.convertScaleAbs(img, alpha=1.0, beta=60)
        if state.facing == CameraFacing.FRONT:
            # Front cameras deliver mirrored frames
            img = cv2.flip(img, 1)
        return img

    def _source_frame(self, state: CameraState) -> NDArray[Any]:
        if self.config.image_source == ImageSource.FILE:
            img = self._read_image(self.config.image_path)
        elif self.config.image_source == ImageSource.DIRECTORY:
            img = self._next_directory_image()
        else:
            img = None
        if img is None:
            return self._synthetic_frame(state)
        return img

    def _next_directory_image(self) -> NDArray[Any] | None:
        if not self._image_files:
            return None
        with self._lock:
            image_path = self._image_files[self._image_index]
            self._image_index += 1
            if self.config.cycle_images:
                self._image_index %= len(self._image_files)
            else:
                self._image_index = min(self._image_index, len(self._image_files) - 1)
        return self._read_image(image_path)

    @staticmethod
    def _read_image(path: Path | None) -> NDArray[Any] | None:
        if path is None or not Path(path).is_file():
            return None
        return cv2.imread(str(path), cv2.IMREAD_COLOR)

    def _synthetic_frame(self, state: CameraState) -> NDArray[Any]:
        """Color test card with grid and state text."""
        width, height = self.config.width, self.config.height

        # Horizontal hue ramp, vertical value ramp
        hue = np.tile(np.linspace(0, 179, width, dtype=np.uint8), (height, 1))
        sat = np.full((height, width), 200, dtype=np.uint8)
        val = np.tile(
            np.linspace(80, 255, height, dtype=np.uint8).reshape(-1, 1), (1, width)
        )
        img = cv2.cvtColor(cv2.merge([hue, sat, val]), cv2.COLOR_HSV2BGR)

        img[::_SYNTHETIC_GRID_SPACING, :] = (40, 40, 40)
        img[:, ::_SYNTHETIC_GRID_SPACING] = (40, 40, 40)

        facing = state.facing.value if state.facing else "unbound"
        cv2.putText(
            img,
            f"DIGITAL TWIN - {facing.upper()}",
            (40, 60),
            cv2.FONT_HERSHEY_SIMPLEX,
            1.2,
            (255, 255, 255),
            2,
        )
        cv2.putText(
            img,
            f"torch={'on' if state.torch_on else 'off'} zoom={state.linear_zoom:.2f}",
            (40, 110),
            cv2.FONT_HERSHEY_SIMPLEX,
            0.8,
            (255, 255, 255),
            2,
        )
        return img


def _apply_zoom(img: NDArray[Any], linear_zoom: float) -> NDArray[Any]:
    """Center-crop by the zoom factor and scale back to full size."""
    if linear_zoom <= 0.0:
        return img
    factor = 1.0 + linear_zoom * (_MAX_OPTICAL_ZOOM - 1.0)
    h, w = img.shape[:2]
    crop_w = max(1, int(w / factor))
    crop_h = max(1, int(h / factor))
    x0 = (w - crop_w) // 2
    y0 = (h - crop_h) // 2
    cropped = img[y0 : y0 + crop_h, x0 : x0 + crop_w]
    return cv2.resize(cropped, (w, h), interpolation=cv2.INTER_LINEAR)


def create_file_camera(image_path: Path | str) -> DigitalTwinCameraDriver:
    """Create a twin that returns the same image on every capture.

    Example:
        >>> driver = create_file_camera("/data/test.jpg")
    """
    config = DigitalTwinConfig(
        image_source=ImageSource.FILE,
        image_path=Path(image_path),
    )
    return DigitalTwinCameraDriver(config)


def create_directory_camera(
    image_dir: Path | str,
    cycle: bool = True,
) -> DigitalTwinCameraDriver:
    """Create a twin that cycles through the images in a directory.

    Args:
        image_dir: Directory of .jpg/.png/.tif images.
        cycle: Loop back to the first image after the last one.
    """
    config = DigitalTwinConfig(
        image_source=ImageSource.DIRECTORY,
        image_path=Path(image_dir),
        cycle_images=cycle,
    )
    return DigitalTwinCameraDriver(config)
