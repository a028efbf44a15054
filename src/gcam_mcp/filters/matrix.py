"""Color matrix value type and the filter compiler.

A ColorMatrix is a 4x5 row-major affine transform over (R, G, B, A):

    R' = a*R + b*G + c*B + d*A + e
    G' = f*R + g*G + h*B + i*A + j
    B' = k*R + l*G + m*B + n*A + o
    A' = p*R + q*G + r*B + s*A + t

with channel values in [0, 255]. This is the same layout device color
filters use, so the 20 values can be handed to a preview pipeline as-is.

Composition follows the device convention: ``a.post_concat(b)`` is the
transform that applies ``a`` first and ``b`` second. Concatenation is
associative but not commutative, which is why compile_filter() fixes the
order saturation -> contrast -> brightness -> sepia.

Example:
    from gcam_mcp.filters import FilterSpec, compile_filter

    matrix = compile_filter(FilterSpec(contrast=1.2, sepia=True))
    print(matrix.values)  # 20 floats
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING, Any

import numpy as np

from gcam_mcp.filters.spec import FilterSpec

if TYPE_CHECKING:
    from numpy.typing import NDArray

__all__ = [
    "ColorMatrix",
    "compile_filter",
    "LUMA_R",
    "LUMA_G",
    "LUMA_B",
    "SEPIA_ROWS",
]

# Luminance weights used by the saturation transform
LUMA_R: float = 0.213
LUMA_G: float = 0.715
LUMA_B: float = 0.072

SEPIA_ROWS: tuple[tuple[float, float, float], ...] = (
    (0.393, 0.769, 0.189),
    (0.349, 0.686, 0.168),
    (0.272, 0.534, 0.131),
)
"""Sepia tone weights; row i gives output channel i from (R, G, B)."""

_MIDPOINT_OFFSET = 255.0


class ColorMatrix:
    """Immutable 4x5 color transform.

    Instances never change after construction; every composition returns
    a new matrix. Equality is exact; use allclose() for tolerant checks.

    Example:
        >>> m = ColorMatrix.saturation(0.0).post_concat(ColorMatrix.scale(2, 2, 2))
        >>> len(m.values)
        20
    """

    __slots__ = ("_m",)

    def __init__(self, values: Sequence[float] | NDArray[Any] | None = None) -> None:
        """Create a matrix from 20 values (row-major) or a 4x5 array.

        Args:
            values: 20 floats, a (4, 5) array, or None for identity.

        Raises:
            ValueError: If the values cannot be shaped into 4x5.
        """
        if values is None:
            m = np.zeros((4, 5), dtype=np.float64)
            m[0, 0] = m[1, 1] = m[2, 2] = m[3, 3] = 1.0
        else:
            arr = np.asarray(values, dtype=np.float64)
            if arr.size != 20:
                raise ValueError(f"ColorMatrix needs 20 values, got {arr.size}")
            m = arr.reshape(4, 5).copy()
        m.setflags(write=False)
        self._m = m

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def identity(cls) -> ColorMatrix:
        """Identity transform."""
        return cls()

    @classmethod
    def from_values(cls, values: Iterable[float]) -> ColorMatrix:
        """Build from any iterable of 20 floats."""
        return cls(list(values))

    @classmethod
    def saturation(cls, sat: float) -> ColorMatrix:
        """Luminance-preserving saturation transform.

        sat=1 is identity, sat=0 maps every pixel to its luminance,
        values above 1 push chroma further out.

        Args:
            sat: Saturation factor.

        Returns:
            Saturation matrix with no translation.
        """
        inv = 1.0 - sat
        r = LUMA_R * inv
        g = LUMA_G * inv
        b = LUMA_B * inv
        return cls(
            [
                r + sat, g, b, 0.0, 0.0,
                r, g + sat, b, 0.0, 0.0,
                r, g, b + sat, 0.0, 0.0,
                0.0, 0.0, 0.0, 1.0, 0.0,
            ]
        )  # fmt: skip

    @classmethod
    def scale(
        cls, r_scale: float, g_scale: float, b_scale: float, a_scale: float = 1.0
    ) -> ColorMatrix:
        """Per-channel multiplicative scale."""
        return cls(
            [
                r_scale, 0.0, 0.0, 0.0, 0.0,
                0.0, g_scale, 0.0, 0.0, 0.0,
                0.0, 0.0, b_scale, 0.0, 0.0,
                0.0, 0.0, 0.0, a_scale, 0.0,
            ]
        )  # fmt: skip

    @classmethod
    def contrast(cls, contrast: float) -> ColorMatrix:
        """Linear contrast about the midpoint 127.5.

        out = contrast * in + (-0.5 * contrast + 0.5) * 255 on R, G, B;
        alpha is untouched.
        """
        t = (-0.5 * contrast + 0.5) * _MIDPOINT_OFFSET
        return cls(
            [
                contrast, 0.0, 0.0, 0.0, t,
                0.0, contrast, 0.0, 0.0, t,
                0.0, 0.0, contrast, 0.0, t,
                0.0, 0.0, 0.0, 1.0, 0.0,
            ]
        )  # fmt: skip

    @classmethod
    def sepia(cls) -> ColorMatrix:
        """Fixed sepia tone matrix."""
        values: list[float] = []
        for row in SEPIA_ROWS:
            values.extend([*row, 0.0, 0.0])
        values.extend([0.0, 0.0, 0.0, 1.0, 0.0])
        return cls(values)

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------

    def _affine(self) -> NDArray[np.float64]:
        """Embed as a 5x5 homogeneous matrix."""
        full = np.zeros((5, 5), dtype=np.float64)
        full[:4, :] = self._m
        full[4, 4] = 1.0
        return full

    def post_concat(self, post: ColorMatrix) -> ColorMatrix:
        """Return the transform applying self first, then post.

        Args:
            post: Transform applied after this one.

        Returns:
            New matrix equal to post * self.
        """
        return ColorMatrix((post._affine() @ self._affine())[:4, :])

    def pre_concat(self, pre: ColorMatrix) -> ColorMatrix:
        """Return the transform applying pre first, then self."""
        return pre.post_concat(self)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def values(self) -> tuple[float, ...]:
        """The 20 coefficients, row-major."""
        return tuple(float(v) for v in self._m.ravel())

    @property
    def array(self) -> NDArray[np.float64]:
        """Writable 4x5 copy of the coefficients."""
        return self._m.copy()

    def allclose(self, other: ColorMatrix, tol: float = 1e-6) -> bool:
        """Elementwise comparison with absolute tolerance."""
        return bool(np.allclose(self._m, other._m, rtol=0.0, atol=tol))

    def is_identity(self, tol: float = 1e-6) -> bool:
        """True when the matrix is the identity within tol."""
        return self.allclose(ColorMatrix.identity(), tol)

    def apply(self, pixels: NDArray[Any]) -> NDArray[np.float64]:
        """Apply the transform to an RGB or RGBA pixel array.

        Alpha is taken as 255 for 3-channel input. Output is not clipped;
        callers decide how to bring values back into [0, 255].

        Args:
            pixels: Array of shape (..., 3) or (..., 4) in RGB(A) order.

        Returns:
            Float64 array with the same shape as the input.

        Raises:
            ValueError: If the last axis is not 3 or 4.
        """
        data = np.asarray(pixels, dtype=np.float64)
        channels = data.shape[-1]
        if channels not in (3, 4):
            raise ValueError(f"Expected 3 or 4 channels, got {channels}")
        if channels == 3:
            alpha = np.full(data.shape[:-1] + (1,), 255.0)
            data = np.concatenate([data, alpha], axis=-1)
        out = data @ self._m[:, :4].T + self._m[:, 4]
        return out[..., :channels]

    def to_dict(self) -> dict[str, Any]:
        """JSON-friendly form: {"rows": [[5 floats] x 4]}."""
        return {"rows": [[float(v) for v in row] for row in self._m]}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ColorMatrix):
            return NotImplemented
        return bool(np.array_equal(self._m, other._m))

    def __hash__(self) -> int:
        return hash(self.values)

    def __repr__(self) -> str:
        rows = ", ".join(
            "[" + ", ".join(_fmt(v) for v in row) + "]" for row in self._m
        )
        return f"ColorMatrix([{rows}])"


def _fmt(value: float) -> str:
    if math.isfinite(value) and math.isclose(value, round(value), abs_tol=1e-9):
        return str(int(round(value)))
    return f"{value:.4g}"


def compile_filter(spec: FilterSpec) -> ColorMatrix:
    """Compile a FilterSpec into one composed color matrix.

    Steps are concatenated onto the running matrix in a fixed order:
    saturation, contrast, brightness, then sepia when enabled. No
    coefficient is clamped.

    Args:
        spec: Parsed filter description.

    Returns:
        The composed ColorMatrix. All-default specs yield identity.

    Example:
        >>> compile_filter(FilterSpec()).is_identity()
        True
    """
    matrix = ColorMatrix.saturation(spec.saturation)
    matrix = matrix.post_concat(ColorMatrix.contrast(spec.contrast))
    matrix = matrix.post_concat(
        ColorMatrix.scale(spec.brightness, spec.brightness, spec.brightness)
    )
    if spec.sepia:
        matrix = matrix.post_concat(ColorMatrix.sepia())
    return matrix
