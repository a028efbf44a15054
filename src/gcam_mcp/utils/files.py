"""Capture file naming.

Photos are named ``IMG_<yyyyMMdd_HHmmss>.jpg`` from local time. Two
captures in the same second get the same name; the second overwrites
the first, which is logged at WARNING.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from gcam_mcp.observability import get_logger

logger = get_logger(__name__)

__all__ = ["CAPTURE_PREFIX", "CAPTURE_SUFFIX", "capture_filename", "new_capture_path"]

CAPTURE_PREFIX = "IMG_"
CAPTURE_SUFFIX = ".jpg"
_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def capture_filename(when: datetime) -> str:
    """File name for a capture taken at when.

    Example:
        >>> capture_filename(datetime(2026, 3, 1, 9, 5, 7))
        'IMG_20260301_090507.jpg'
    """
    return f"{CAPTURE_PREFIX}{when.strftime(_TIMESTAMP_FORMAT)}{CAPTURE_SUFFIX}"


def new_capture_path(output_dir: Path, when: datetime) -> Path:
    """Absolute path for a new capture, creating output_dir if needed.

    Args:
        output_dir: Directory captures are written to.
        when: Capture timestamp (local time).

    Returns:
        Absolute path of the capture file. May already exist.

    Raises:
        OSError: If output_dir cannot be created.
    """
    directory = Path(output_dir).expanduser()
    directory.mkdir(parents=True, exist_ok=True)
    path = (directory / capture_filename(when)).absolute()
    if path.exists():
        logger.warning("Capture file exists and will be overwritten", path=str(path))
    return path
