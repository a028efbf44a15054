"""MCP tool definitions."""

from gcam_mcp.tools import camera

__all__ = ["camera"]
