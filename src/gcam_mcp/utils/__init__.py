"""Utility modules for gcam-mcp."""

from gcam_mcp.utils.files import capture_filename, new_capture_path

__all__ = ["capture_filename", "new_capture_path"]
