"""Filter description parsing.

A filter description is a small piece of markup made of ``filter``
elements, each carrying a ``name`` and a ``value``:

    <filters>
      <filter name="saturation" value="0.8"/>
      <filter name="contrast" value="1.2"/>
      <filter name="sepia" value="true"/>
    </filters>

Recognized names are brightness, contrast, saturation (numeric) and sepia
("true" enables it, anything else disables it). A wrapper element is
optional; bare sibling ``filter`` elements are accepted too.

Parsing is tolerant: parse_filter() never raises. Unknown names are
ignored, unusable values fall back to the field default, and malformed
markup stops the parse while keeping whatever was read before the error.
"""

from __future__ import annotations

import math
import re
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from typing import Any
from xml.etree import ElementTree as ET

from gcam_mcp.observability import get_logger

logger = get_logger(__name__)

__all__ = [
    "FilterSpec",
    "FilterParseError",
    "parse_filter",
    "FILTER_ELEMENT",
]

FILTER_ELEMENT = "filter"

_WRAPPER = "gcam-filter-document"
_XML_DECLARATION = re.compile(r"^\s*<\?xml[^>]*\?>", re.IGNORECASE)
# Comments, processing instructions and a DOCTYPE ahead of the first element
_PROLOG = re.compile(
    r"\A(?:\s+|<!--.*?-->|<\?.*?\?>|<!DOCTYPE[^\[>]*(?:\[.*?\])?\s*>)*",
    re.DOTALL,
)

DEFAULT_BRIGHTNESS = 1.0
DEFAULT_CONTRAST = 1.0
DEFAULT_SATURATION = 1.0

_NUMERIC_DEFAULTS: dict[str, float] = {
    "brightness": DEFAULT_BRIGHTNESS,
    "contrast": DEFAULT_CONTRAST,
    "saturation": DEFAULT_SATURATION,
}


class FilterParseError(ValueError):
    """Raised for malformed filter markup (strict mode only)."""


@dataclass(frozen=True)
class FilterSpec:
    """Parsed filter description.

    Attributes:
        brightness: Per-channel multiplier (1.0 = unchanged).
        contrast: Scale about mid-gray (1.0 = unchanged).
        saturation: Chroma scale (1.0 = unchanged, 0.0 = grayscale).
        sepia: Apply the sepia tone after the other adjustments.
    """

    brightness: float = DEFAULT_BRIGHTNESS
    contrast: float = DEFAULT_CONTRAST
    saturation: float = DEFAULT_SATURATION
    sepia: bool = False

    @property
    def is_default(self) -> bool:
        """True when every field holds its default (identity filter)."""
        return self == FilterSpec()

    def to_dict(self) -> dict[str, Any]:
        """Plain dict of the four fields."""
        return asdict(self)


def parse_filter(xml_text: str | None, *, strict: bool = False) -> FilterSpec:
    """Parse filter markup into a FilterSpec.

    Business context: filter markup is authored by the client UI and sent
    with every capture. A typo in one attribute must not cost the user the
    photo, so the default mode degrades field by field instead of failing.

    Args:
        xml_text: Markup text. None or blank yields the default spec.
        strict: Raise FilterParseError on malformed markup instead of
            logging it. Field-level problems (bad numbers, unknown names)
            are tolerated in both modes.

    Returns:
        FilterSpec with every field read before any markup error; all
        other fields keep their defaults.

    Raises:
        FilterParseError: Only when strict=True and the markup is malformed.

    Example:
        >>> parse_filter('<filter name="sepia" value="true"/>').sepia
        True
        >>> parse_filter('<filter name="contrast" value="abc"/>').contrast
        1.0
    """
    if xml_text is None or not xml_text.strip():
        return FilterSpec()

    fields: dict[str, Any] = {}
    try:
        for element in _iter_filter_elements(xml_text):
            _apply_element(fields, element)
    except FilterParseError as e:
        if strict:
            raise
        logger.warning(
            "Malformed filter markup, keeping fields read before the error",
            error=str(e),
            parsed_fields=sorted(fields),
        )

    return FilterSpec(**fields)


def _iter_filter_elements(xml_text: str) -> Iterator[ET.Element]:
    """Yield ``filter`` elements in document order as they are parsed.

    Everything after the prolog is wrapped in a synthetic root so sibling
    fragments parse, and fed to a pull parser so elements before a syntax
    error are still delivered. A leading byte order mark is dropped.

    Raises:
        FilterParseError: When the markup is not well-formed.
    """
    text = _XML_DECLARATION.sub("", xml_text.lstrip("\ufeff"), count=1)
    prolog = _PROLOG.match(text).group(0)
    body = text[len(prolog):]
    parser = ET.XMLPullParser(events=("start",))
    try:
        for chunk in (prolog, f"<{_WRAPPER}>", body, f"</{_WRAPPER}>"):
            parser.feed(chunk)
            yield from _drain(parser)
        parser.close()
        yield from _drain(parser)
    except ET.ParseError as e:
        raise FilterParseError(str(e)) from e


def _drain(parser: ET.XMLPullParser) -> Iterator[ET.Element]:
    for _event, element in parser.read_events():
        # "{namespace}filter" counts as filter
        if element.tag.rsplit("}", 1)[-1] == FILTER_ELEMENT:
            yield element


def _apply_element(fields: dict[str, Any], element: ET.Element) -> None:
    """Set the field named by one filter element."""
    name = element.get("name")
    value = element.get("value")

    if name in _NUMERIC_DEFAULTS:
        fields[name] = _parse_number(name, value)
    elif name == "sepia":
        fields["sepia"] = value == "true"
    else:
        logger.debug("Ignoring unknown filter", name=name)


def _parse_number(name: str, value: str | None) -> float:
    """Parse a numeric filter value, falling back to the field default."""
    default = _NUMERIC_DEFAULTS[name]
    if value is None:
        logger.debug("Filter has no value, using default", name=name)
        return default
    try:
        number = float(value)
    except ValueError:
        logger.debug("Non-numeric filter value, using default", name=name, value=value)
        return default
    if not math.isfinite(number):
        logger.debug("Non-finite filter value, using default", name=name, value=value)
        return default
    return number
