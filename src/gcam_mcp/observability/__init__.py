"""Observability module for gcam-mcp.

Provides structured logging and capture statistics.

Example:
    from gcam_mcp.observability import get_logger, LogContext

    logger = get_logger(__name__)

    with LogContext(request_id="a1b2"):
        logger.info("Capture started", facing="back", timer_sec=0)

Statistics Example:
    from gcam_mcp.observability import CaptureStats

    stats = CaptureStats()
    stats.record_capture(facing="back", duration_ms=150, success=True)
    print(stats.get_summary("back").success_rate)
"""

from gcam_mcp.observability.logging import (
    JSONFormatter,
    LogContext,
    StructuredFormatter,
    StructuredLogger,
    configure_logging,
    get_logger,
    reset_logging,
)
from gcam_mcp.observability.stats import (
    CaptureStats,
    StatsSummary,
)

__all__ = [
    # Logging
    "JSONFormatter",
    "LogContext",
    "StructuredFormatter",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "reset_logging",
    # Statistics
    "CaptureStats",
    "StatsSummary",
]
