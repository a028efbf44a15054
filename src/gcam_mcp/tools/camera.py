"""MCP Tools for photo capture.

take_photo keeps the client call shape: filterXml, flashMode,
cameraFacing, timer and zoom, with the same defaults. The result is
JSON {"path": ...} on success or
{"error": "ERROR", "message": "Failed to capture photo", "reason": ...}
on failure, never both.
"""

import json
from typing import Any

from mcp.server import Server
from mcp.types import TextContent, Tool

from gcam_mcp.devices import CaptureRequest, get_orchestrator
from gcam_mcp.filters import FilterParseError, compile_filter, parse_filter
from gcam_mcp.observability import get_logger

logger = get_logger(__name__)

FAILURE_CODE = "ERROR"
FAILURE_MESSAGE = "Failed to capture photo"

_FILTER_XML_PROPERTY = {
    "type": "string",
    "description": (
        "Filter markup: <filter name=\"...\" value=\"...\"/> elements with "
        "names brightness, contrast, saturation (numbers) and sepia (true/false)"
    ),
    "default": "",
}

# Tool definitions
TOOLS = [
    Tool(
        name="take_photo",
        description=(
            "Take one photo with optional filter, flash, camera facing, "
            "self-timer and zoom. Returns the saved JPEG path."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "filterXml": _FILTER_XML_PROPERTY,
                "flashMode": {
                    "type": "string",
                    "description": "Flash mode: auto, on or off",
                    "default": "auto",
                },
                "cameraFacing": {
                    "type": "string",
                    "description": "Camera: back or front",
                    "default": "back",
                },
                "timer": {
                    "type": "integer",
                    "description": "Self-timer delay in seconds",
                    "default": 0,
                    "minimum": 0,
                },
                "zoom": {
                    "type": "number",
                    "description": "Zoom factor from 1.0 to 4.0",
                    "default": 1.0,
                },
            },
            "required": [],
        },
    ),
    Tool(
        name="compile_filter",
        description=(
            "Parse filter markup and return the parsed settings and the "
            "20-value 4x5 color matrix"
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "filterXml": _FILTER_XML_PROPERTY,
                "strict": {
                    "type": "boolean",
                    "description": "Report malformed markup as an error",
                    "default": False,
                },
            },
            "required": [],
        },
    ),
    Tool(
        name="get_capture_stats",
        description="Get capture counts, success rate and durations per camera",
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
]


def register(server: Server) -> None:
    """Register capture tools with the MCP server.

    Tools registered:
    - take_photo: Capture one photo
    - compile_filter: Preview the color matrix for filter markup
    - get_capture_stats: Capture statistics per facing

    Args:
        server: MCP Server instance, not yet running.

    Example:
        >>> server = Server("gcam-mcp")
        >>> register(server)
    """

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        """Return available capture tools (MCP tool discovery)."""
        return TOOLS

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
        """Route tool calls to their implementations.

        Args:
            name: Tool name from TOOLS.
            arguments: Arguments matching the tool's inputSchema.

        Returns:
            Single TextContent with a JSON result or an error message.
        """
        arguments = arguments or {}
        if name == "take_photo":
            return await _take_photo(arguments)
        elif name == "compile_filter":
            return await _compile_filter(
                arguments.get("filterXml") or "",
                bool(arguments.get("strict", False)),
            )
        elif name == "get_capture_stats":
            return await _get_capture_stats()
        else:
            return [TextContent(type="text", text=f"Unknown tool: {name}")]


# Tool implementations


async def _take_photo(arguments: dict[str, Any]) -> list[TextContent]:
    """Run one capture request through the shared orchestrator.

    Args:
        arguments: Client arguments (filterXml, flashMode, cameraFacing,
            timer, zoom); missing keys take their defaults.

    Returns:
        TextContent with {"path": ...} on success or the failure JSON.
        Invalid arguments (negative timer, non-numeric zoom) are reported
        as error text without touching the device.
    """
    try:
        request = CaptureRequest.from_arguments(arguments)
    except (TypeError, ValueError) as e:
        logger.warning("Invalid take_photo arguments", error=str(e))
        return [TextContent(type="text", text=f"Invalid arguments: {e}")]

    try:
        outcome = await get_orchestrator().capture(request)
    except Exception as e:
        logger.error("take_photo failed", error=str(e))
        return [TextContent(type="text", text=f"Error taking photo: {e}")]

    if outcome.succeeded:
        result: dict[str, Any] = {"path": outcome.path}
    else:
        assert outcome.failure is not None
        result = {
            "error": FAILURE_CODE,
            "message": FAILURE_MESSAGE,
            "reason": outcome.failure.value,
        }
    return [TextContent(type="text", text=json.dumps(result))]


async def _compile_filter(filter_xml: str, strict: bool) -> list[TextContent]:
    """Parse and compile filter markup.

    Returns:
        TextContent with JSON {"filter": {...}, "matrix": [20 floats],
        "identity": bool}, or error text for malformed markup in strict mode.
    """
    try:
        spec = parse_filter(filter_xml, strict=strict)
    except FilterParseError as e:
        return [TextContent(type="text", text=f"Malformed filter markup: {e}")]

    matrix = compile_filter(spec)
    result = {
        "filter": spec.to_dict(),
        "matrix": list(matrix.values),
        "identity": matrix.is_identity(),
    }
    return [TextContent(type="text", text=json.dumps(result, indent=2))]


async def _get_capture_stats() -> list[TextContent]:
    """Return capture statistics for every facing used so far."""
    try:
        stats = get_orchestrator().stats.to_dict()
        return [TextContent(type="text", text=json.dumps(stats, indent=2))]
    except Exception as e:
        logger.error("Failed to get capture stats", error=str(e))
        return [TextContent(type="text", text=f"Error getting capture stats: {e}")]
