"""Filter compiler: markup -> FilterSpec -> ColorMatrix.

Example:
    from gcam_mcp.filters import compile_filter, parse_filter

    spec = parse_filter('<filter name="saturation" value="0"/>')
    matrix = compile_filter(spec)  # grayscale transform
"""

from gcam_mcp.filters.matrix import ColorMatrix, compile_filter
from gcam_mcp.filters.render import (
    ColorMatrixRenderer,
    FilterRenderer,
    NullFilterRenderer,
)
from gcam_mcp.filters.spec import FilterParseError, FilterSpec, parse_filter

__all__ = [
    "ColorMatrix",
    "ColorMatrixRenderer",
    "FilterParseError",
    "FilterRenderer",
    "FilterSpec",
    "NullFilterRenderer",
    "compile_filter",
    "parse_filter",
]
