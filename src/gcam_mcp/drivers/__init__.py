"""Camera drivers.

Supports two modes:
- HARDWARE: OpenCV VideoCapture cameras
- DIGITAL_TWIN: Simulated camera for testing without hardware

Use drivers.config to switch modes:
    from gcam_mcp.drivers import config
    config.use_digital_twin()  # or config.use_hardware()
"""

from gcam_mcp.drivers import cameras, config
from gcam_mcp.drivers.config import (
    DriverConfig,
    DriverFactory,
    DriverMode,
    configure,
    get_factory,
    set_output_dir,
    use_digital_twin,
    use_hardware,
)

__all__ = [
    # Submodules
    "cameras",
    "config",
    # Configuration
    "DriverMode",
    "DriverConfig",
    "DriverFactory",
    "get_factory",
    "configure",
    "set_output_dir",
    "use_digital_twin",
    "use_hardware",
]
