"""Post-capture filter rendering.

The orchestrator always compiles the request's filter into a ColorMatrix,
but the saved photo is the raw sensor output: NullFilterRenderer is the
default and leaves the file untouched. ColorMatrixRenderer is the opt-in
extension point (DriverConfig.apply_filter) that bakes the matrix into the
saved JPEG.

Renderers run on the capture worker thread, right after the device has
written the file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

import cv2
import numpy as np

from gcam_mcp.filters.matrix import ColorMatrix
from gcam_mcp.observability import get_logger

logger = get_logger(__name__)

__all__ = [
    "FilterRenderer",
    "NullFilterRenderer",
    "ColorMatrixRenderer",
    "DEFAULT_JPEG_QUALITY",
]

DEFAULT_JPEG_QUALITY = 95


@runtime_checkable
class FilterRenderer(Protocol):  # pragma: no cover
    """Protocol for applying a compiled filter to a saved capture.

    Example:
        class GrayscaleOnlyRenderer:
            def render(self, path, matrix):
                ...  # decode, transform, re-encode in place

        orchestrator = CaptureOrchestrator(driver, output_dir=d,
                                           renderer=GrayscaleOnlyRenderer())
    """

    def render(self, path: Path, matrix: ColorMatrix) -> None:
        """Apply matrix to the image at path, in place.

        Args:
            path: JPEG written by the device.
            matrix: Compiled filter for the request.

        Raises:
            RuntimeError: If the image cannot be read or written. The
                orchestrator reports this as a capture failure.
        """
        ...


class NullFilterRenderer:
    """Default renderer: the saved file keeps the raw sensor output."""

    def render(self, path: Path, matrix: ColorMatrix) -> None:
        """Leave the file unchanged."""
        if not matrix.is_identity():
            logger.debug("Filter compiled but not applied to capture", path=str(path))


class ColorMatrixRenderer:
    """Bake a color matrix into a JPEG with OpenCV and numpy.

    Pixels are transformed in float, clipped to [0, 255] and re-encoded.
    Identity matrices skip the decode/encode round trip entirely.
    """

    def __init__(self, jpeg_quality: int = DEFAULT_JPEG_QUALITY) -> None:
        """Create a renderer.

        Args:
            jpeg_quality: OpenCV JPEG quality (0-100) for the rewritten file.
        """
        self.jpeg_quality = jpeg_quality

    def render(self, path: Path, matrix: ColorMatrix) -> None:
        """Apply matrix to the image at path, in place.

        Args:
            path: JPEG written by the device.
            matrix: Compiled filter.

        Raises:
            RuntimeError: If OpenCV cannot decode or write the file.

        Example:
            >>> ColorMatrixRenderer().render(Path("IMG_20260101_120000.jpg"),
            ...                              ColorMatrix.sepia())
        """
        if matrix.is_identity():
            return

        bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
        if bgr is None:
            raise RuntimeError(f"Cannot decode capture for filtering: {path}")

        rgb = cv2.cvtColor(bgr, cv2.COLOR_BGR2RGB)
        filtered = np.clip(matrix.apply(rgb), 0.0, 255.0).astype(np.uint8)
        out = cv2.cvtColor(filtered, cv2.COLOR_RGB2BGR)

        ok = cv2.imwrite(str(path), out, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not ok:
            raise RuntimeError(f"Cannot write filtered capture: {path}")
        logger.debug("Filter applied to capture", path=str(path))
