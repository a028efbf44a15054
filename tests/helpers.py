"""Test helper functions for gcam-mcp.

Example:
    from tests.helpers import assert_implements_protocol
    from gcam_mcp.drivers.cameras.types import DeviceController

    def test_driver_implements_protocol():
        assert_implements_protocol(MyDriver(), DeviceController)
"""

from __future__ import annotations

import json
from typing import Any, Protocol

import numpy as np


def _protocol_members(protocol: type[Protocol]) -> set[str]:
    object_attrs = set(dir(object))
    return {
        attr
        for attr in set(dir(protocol)) - object_attrs
        if not attr.startswith("_")
    }


def assert_implements_protocol(instance: object, protocol: type[Protocol]) -> None:
    """Assert that instance satisfies a @runtime_checkable Protocol.

    On failure the message lists the protocol members the instance lacks
    or exposes as non-callables.

    Raises:
        AssertionError: If instance does not implement protocol.
    """
    if isinstance(instance, protocol):
        return

    missing = sorted(
        name
        for name in _protocol_members(protocol)
        if not callable(getattr(instance, name, None))
    )
    raise AssertionError(
        f"{type(instance).__name__} does not implement {protocol.__name__}. "
        f"Missing: {', '.join(missing) or 'unknown'}"
    )


def assert_all_implement_protocol(
    instances: list[Any],
    protocol: type[Protocol],
) -> None:
    """Assert every instance implements protocol, reporting the bad index."""
    for i, instance in enumerate(instances):
        try:
            assert_implements_protocol(instance, protocol)
        except AssertionError as e:
            raise AssertionError(f"Instance at index {i}: {e}") from e


def tool_json(result: list[Any]) -> dict[str, Any]:
    """Decode the single JSON TextContent returned by an MCP tool."""
    assert len(result) == 1
    assert result[0].type == "text"
    return json.loads(result[0].text)


def reference_transform(values: tuple[float, ...], rgba: tuple[float, ...]) -> list[float]:
    """Apply 20 row-major color matrix values to one RGBA pixel by hand."""
    m = np.asarray(values, dtype=np.float64).reshape(4, 5)
    return [
        float(sum(m[row, col] * rgba[col] for col in range(4)) + m[row, 4])
        for row in range(4)
    ]
