"""Driver configuration and factory.

Supports switching between the OpenCV hardware driver and the digital twin
driver for testing and development without a physical camera.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from gcam_mcp.drivers.cameras import (
    DeviceController,
    DigitalTwinCameraDriver,
    DigitalTwinConfig,
    ImageSource,
    OpenCVCameraDriver,
)
from gcam_mcp.filters import ColorMatrixRenderer, FilterRenderer, NullFilterRenderer
from gcam_mcp.observability.stats import DEFAULT_STATS_WINDOW_SIZE

__all__ = [
    "DriverMode",
    "DriverConfig",
    "DriverFactory",
    "get_factory",
    "configure",
    "use_digital_twin",
    "use_hardware",
    "set_output_dir",
]


class DriverMode(Enum):
    """Driver mode selection."""

    HARDWARE = "hardware"  # OpenCV VideoCapture devices
    DIGITAL_TWIN = "digital_twin"  # Simulated camera


def _default_output_dir() -> Path:
    """Get default directory for captured photos.

    Returns ~/.gcam-mcp/captures so captures land in a predictable place
    without any configuration.
    """
    return Path.home() / ".gcam-mcp" / "captures"


@dataclass
class DriverConfig:
    """Configuration for driver selection and capture behavior.

    Attributes:
        mode: HARDWARE for real cameras, DIGITAL_TWIN for simulation.
        output_dir: Directory captures are written to.
        back_camera_index: VideoCapture index of the back camera.
        front_camera_index: VideoCapture index of the front camera.
        stub_image_path: Image file or directory for the digital twin
            (None = synthetic test card).
        serialize_requests: Run capture requests one at a time (FIFO).
            False allows a second request to rebind the device while the
            first is still waiting on its timer.
        apply_filter: Bake the compiled color matrix into saved photos.
        stats_window_size: Captures kept per facing for statistics.
    """

    mode: DriverMode = DriverMode.DIGITAL_TWIN

    # Output
    output_dir: Path = field(default_factory=_default_output_dir)

    # Camera settings (hardware mode)
    back_camera_index: int = 0
    front_camera_index: int = 1

    # Digital twin settings
    stub_image_path: Path | None = None

    # Orchestration
    serialize_requests: bool = True
    apply_filter: bool = False
    stats_window_size: int = DEFAULT_STATS_WINDOW_SIZE


class DriverFactory:
    """Factory for creating the camera driver and filter renderer.

    Thread Safety:
        Not thread-safe. Configure the global factory once at startup.
    """

    def __init__(self, config: DriverConfig | None = None):
        """Initialize factory.

        Args:
            config: Driver configuration. None uses DriverConfig() defaults
                (digital twin, ~/.gcam-mcp/captures).

        Example:
            >>> factory = DriverFactory()
            >>> driver = factory.create_camera_driver()  # DigitalTwinCameraDriver
        """
        self.config = config or DriverConfig()

    def create_camera_driver(self) -> DeviceController:
        """Create the camera driver for the configured mode.

        Returns:
            OpenCVCameraDriver in HARDWARE mode, DigitalTwinCameraDriver in
            DIGITAL_TWIN mode. Both implement DeviceController.

        Example:
            >>> factory = DriverFactory(DriverConfig(mode=DriverMode.HARDWARE))
            >>> driver = factory.create_camera_driver()
            >>> driver.bind(CameraFacing.BACK)  # opens /dev/video0
        """
        if self.config.mode == DriverMode.HARDWARE:
            return OpenCVCameraDriver(
                back_index=self.config.back_camera_index,
                front_index=self.config.front_camera_index,
            )

        stub = self.config.stub_image_path
        if stub is None:
            source = ImageSource.SYNTHETIC
        elif stub.is_dir():
            source = ImageSource.DIRECTORY
        else:
            source = ImageSource.FILE
        return DigitalTwinCameraDriver(
            DigitalTwinConfig(image_source=source, image_path=stub)
        )

    def create_renderer(self) -> FilterRenderer:
        """Create the post-capture filter renderer.

        Returns:
            ColorMatrixRenderer when apply_filter is set, otherwise
            NullFilterRenderer (saved photos keep raw sensor output).
        """
        if self.config.apply_filter:
            return ColorMatrixRenderer()
        return NullFilterRenderer()


# Global factory instance (can be reconfigured)
_factory: DriverFactory | None = None


def get_factory() -> DriverFactory:
    """Get the global driver factory, creating it with defaults on first use.

    Example:
        >>> factory = get_factory()  # Default digital twin
        >>> use_hardware()
        >>> get_factory().config.mode
        <DriverMode.HARDWARE: 'hardware'>
    """
    global _factory
    if _factory is None:
        _factory = DriverFactory()
    return _factory


def configure(config: DriverConfig) -> None:
    """Replace the global factory with one built from config.

    Args:
        config: New driver configuration.

    Example:
        >>> configure(DriverConfig(output_dir=Path("/tmp/captures")))
    """
    global _factory
    _factory = DriverFactory(config)


def use_digital_twin(preserve_config: bool = False) -> None:
    """Switch to the simulated camera.

    Args:
        preserve_config: Keep output_dir and other settings; False resets
            everything to defaults.
    """
    if preserve_config:
        configure(replace(get_factory().config, mode=DriverMode.DIGITAL_TWIN))
    else:
        configure(DriverConfig(mode=DriverMode.DIGITAL_TWIN))


def use_hardware(preserve_config: bool = False) -> None:
    """Switch to OpenCV VideoCapture cameras.

    Configuration succeeds without a camera attached; bind() fails later
    if the device index cannot be opened.

    Args:
        preserve_config: Keep output_dir and other settings; False resets
            everything to defaults.
    """
    if preserve_config:
        configure(replace(get_factory().config, mode=DriverMode.HARDWARE))
    else:
        configure(DriverConfig(mode=DriverMode.HARDWARE))


def set_output_dir(output_dir: Path | str) -> None:
    """Set the directory captures are written to.

    The directory is created on the first capture if it does not exist.

    Args:
        output_dir: e.g. "~/Pictures/gcam". A leading ~ is expanded.
    """
    get_factory().config.output_dir = Path(output_dir).expanduser()
