"""Process-wide CaptureOrchestrator singleton.

The MCP tool handlers need one shared orchestrator (one device, one
session, one request queue). The server initializes it at startup from the
driver factory; tools fetch it with get_orchestrator().

Example:
    from gcam_mcp.devices.registry import init_orchestrator, get_orchestrator

    init_orchestrator()  # driver and settings from get_factory()
    outcome = await get_orchestrator().capture(CaptureRequest())
"""

from __future__ import annotations

from pathlib import Path

from gcam_mcp.devices.clock import Clock
from gcam_mcp.devices.orchestrator import CaptureOrchestrator
from gcam_mcp.drivers.cameras.types import DeviceController
from gcam_mcp.drivers.config import get_factory
from gcam_mcp.filters import FilterRenderer
from gcam_mcp.observability import CaptureStats, get_logger

logger = get_logger(__name__)

__all__ = ["init_orchestrator", "get_orchestrator", "shutdown_orchestrator"]

_default_orchestrator: CaptureOrchestrator | None = None


def init_orchestrator(
    driver: DeviceController | None = None,
    *,
    output_dir: Path | None = None,
    clock: Clock | None = None,
    renderer: FilterRenderer | None = None,
) -> CaptureOrchestrator:
    """Initialize the module-level orchestrator.

    Anything not passed comes from the global DriverFactory: the camera
    driver, output directory, renderer (apply_filter), request
    serialization and statistics window. Calling again shuts down and
    replaces the previous orchestrator.

    Args:
        driver: Camera driver. Defaults to factory.create_camera_driver().
        output_dir: Capture directory. Defaults to config.output_dir.
        clock: Time source. Defaults to SystemClock.
        renderer: Filter renderer. Defaults to factory.create_renderer().

    Returns:
        The new orchestrator, also returned by get_orchestrator().

    Example:
        >>> init_orchestrator(DigitalTwinCameraDriver(), output_dir=tmp_path)
    """
    global _default_orchestrator
    shutdown_orchestrator()

    factory = get_factory()
    config = factory.config
    _default_orchestrator = CaptureOrchestrator(
        driver if driver is not None else factory.create_camera_driver(),
        output_dir=output_dir if output_dir is not None else config.output_dir,
        clock=clock,
        renderer=renderer if renderer is not None else factory.create_renderer(),
        exclusive=config.serialize_requests,
        stats=CaptureStats(window_size=config.stats_window_size),
    )
    logger.info(
        "Capture orchestrator initialized",
        mode=config.mode.value,
        output_dir=str(_default_orchestrator.output_dir),
        exclusive=config.serialize_requests,
    )
    return _default_orchestrator


def get_orchestrator() -> CaptureOrchestrator:
    """Get the orchestrator created by init_orchestrator().

    Raises:
        RuntimeError: If init_orchestrator() has not been called.
    """
    if _default_orchestrator is None:
        raise RuntimeError(
            "Orchestrator not initialized. Call init_orchestrator() first."
        )
    return _default_orchestrator


def shutdown_orchestrator() -> None:
    """Shut down and clear the orchestrator. Safe when never initialized."""
    global _default_orchestrator
    if _default_orchestrator is not None:
        _default_orchestrator.shutdown()
        _default_orchestrator = None
