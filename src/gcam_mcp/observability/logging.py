"""Structured logging for gcam-mcp.

Builds on Python's standard logging module with:
- Structured data support (key-value pairs in logs)
- JSON formatting option for log aggregation
- Context management for per-request tracking

Security Note:
    Filter markup and camera arguments arrive from MCP clients. Log them
    as structured keyword arguments, never interpolated into the message:

    # SAFE - structured data is escaped by the formatter
    logger.warning("Filter markup rejected", filter_xml=untrusted_xml)

    # UNSAFE - CRLF in the markup could forge log lines
    logger.warning(f"Filter markup rejected: {untrusted_xml}")

Example:
    logger = get_logger(__name__)

    logger.info("Device bound", facing="front")

    with LogContext(request_id="a1b2c3"):
        logger.info("Capture started")  # includes request_id
        logger.info("Capture finished", duration_ms=42.0)

    configure_logging(json_format=True)
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
import threading
from collections.abc import MutableMapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, cast

ROOT_LOGGER_NAME = "gcam_mcp"

_log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar(
    "log_context", default={}
)


# =============================================================================
# Structured Logger
# =============================================================================


class StructuredLogger(logging.Logger):
    """Logger with structured data support.

    Keyword arguments passed to the level methods become structured data
    on the log record, merged over any active LogContext values.

    Usage:
        logger = StructuredLogger("gcam_mcp.devices")
        logger.info("Torch set", torch_on=True)
    """

    # Level methods take structured kwargs; stacklevel + 1 skips this frame.

    def debug(self, msg: object, *args: Any, stacklevel: int = 1, **kwargs: Any) -> None:
        if self.isEnabledFor(logging.DEBUG):
            self._log(logging.DEBUG, msg, args, stacklevel=stacklevel + 1, **kwargs)

    def info(self, msg: object, *args: Any, stacklevel: int = 1, **kwargs: Any) -> None:
        if self.isEnabledFor(logging.INFO):
            self._log(logging.INFO, msg, args, stacklevel=stacklevel + 1, **kwargs)

    def warning(
        self, msg: object, *args: Any, stacklevel: int = 1, **kwargs: Any
    ) -> None:
        if self.isEnabledFor(logging.WARNING):
            self._log(logging.WARNING, msg, args, stacklevel=stacklevel + 1, **kwargs)

    def error(self, msg: object, *args: Any, stacklevel: int = 1, **kwargs: Any) -> None:
        if self.isEnabledFor(logging.ERROR):
            self._log(logging.ERROR, msg, args, stacklevel=stacklevel + 1, **kwargs)

    def _log(
        self,
        level: int,
        msg: object,
        args: tuple[Any, ...] | MutableMapping[str, Any] | None = None,
        exc_info: Any = None,
        extra: dict[str, Any] | None = None,
        stack_info: bool = False,
        stacklevel: int = 1,
        **kwargs: Any,
    ) -> None:
        """Log a message, attaching LogContext values and kwargs as data.

        Merge order is LogContext values < explicit kwargs, so a value
        passed at the call site overrides the ambient request context.

        Args:
            level: Numeric log level.
            msg: Log message, may contain % placeholders.
            args: Arguments for % formatting.
            exc_info: Exception info, True, or None.
            extra: Extra dict for the LogRecord. Its 'structured_data'
                key is overwritten.
            stack_info: Include stack trace when True.
            stacklevel: Frames to skip when locating the caller.
            **kwargs: Structured key-value pairs (request_id, facing,
                duration_ms, ...).
        """
        context = _log_context.get()
        structured_data = {**context, **kwargs}

        if extra is None:
            extra = {}
        extra["structured_data"] = structured_data

        super()._log(
            level,
            msg,
            args,
            exc_info=exc_info,
            extra=extra,
            stack_info=stack_info,
            stacklevel=stacklevel + 1,
        )


# =============================================================================
# Formatters
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """Human-readable formatter with structured data.

    Format: timestamp - name - level - message | key=value key=value
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        include_structured: bool = True,
    ) -> None:
        """Initialize the structured formatter.

        Args:
            fmt: Format string using LogRecord attributes. Defaults to
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'.
            datefmt: Date format for %(asctime)s.
            include_structured: Append ' | key=value' pairs when True.

        Example:
            >>> handler.setFormatter(StructuredFormatter("%(message)s"))
            # Output: "Device bound | facing=front"
        """
        if fmt is None:
            fmt = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        super().__init__(fmt, datefmt)
        self.include_structured = include_structured

    def format(self, record: logging.LogRecord) -> str:
        """Format a record as text followed by its structured pairs.

        Args:
            record: Record to format. A missing or empty
                'structured_data' attribute yields the base format only.

        Returns:
            Formatted line, e.g. '... - INFO - Captured | path=/x.jpg'.
        """
        base = super().format(record)

        if not self.include_structured:
            return base

        structured = getattr(record, "structured_data", {})
        if not structured:
            return base

        pairs = " ".join(f"{k}={_format_value(v)}" for k, v in structured.items())
        return f"{base} | {pairs}"


class JSONFormatter(logging.Formatter):
    """JSON formatter for log aggregation systems.

    Outputs each record as one JSON line with timestamp, level, logger,
    message, and all structured data as top-level keys.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format a record as a single-line JSON object.

        Non-serializable values (Path, enums, datetimes) fall back to str().

        Args:
            record: Record to format; 'structured_data' is merged in and
                exception info is added under 'exception'.

        Returns:
            JSON string without trailing newline.

        Example:
            >>> json.loads(JSONFormatter().format(record))["facing"]
            'front'
        """
        log_dict: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        structured = getattr(record, "structured_data", {})
        log_dict.update(structured)

        if record.exc_info:
            log_dict["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_dict, default=str)


def _format_value(value: Any) -> str:
    """Format a value for key=value output.

    None becomes 'null', strings with spaces are quoted, dicts and lists
    are JSON-serialized, everything else goes through str().

    Example:
        >>> _format_value("has spaces")
        '"has spaces"'
        >>> _format_value({"sepia": True})
        '{"sepia": true}'
    """
    if value is None:
        return "null"
    if isinstance(value, str):
        if " " in value:
            return f'"{value}"'
        return value
    if isinstance(value, dict | list):
        return json.dumps(value, default=str)
    return str(value)


# =============================================================================
# Context Management
# =============================================================================


@dataclass
class LogContext:
    """Context manager adding key-value pairs to every log inside it.

    Backed by contextvars, so each asyncio task running a capture request
    keeps its own request_id even when runs interleave on one loop.

    Usage:
        with LogContext(request_id="abc", facing="back"):
            logger.info("Binding")  # includes request_id and facing

            with LogContext(step="capture"):
                logger.info("Capturing")  # includes all three
    """

    _kwargs: dict[str, Any] = field(default_factory=dict, init=False, repr=True)
    _token: contextvars.Token[dict[str, Any]] | None = field(
        default=None, init=False, repr=False
    )

    def __init__(self, **kwargs: Any) -> None:
        """Store the key-value pairs to inject.

        Args:
            **kwargs: Context values, e.g. request_id="a1b2".
        """
        self._kwargs = kwargs

    def __enter__(self) -> LogContext:
        """Merge this context over the current one and activate it."""
        current = _log_context.get()
        new_context = {**current, **self._kwargs}
        self._token = _log_context.set(new_context)
        return self

    def __exit__(self, *args: Any) -> None:
        """Restore the context that was active before __enter__."""
        if self._token is not None:
            _log_context.reset(self._token)


# =============================================================================
# Configuration
# =============================================================================

_configured = False
_config_lock = threading.Lock()


def configure_logging(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    include_structured: bool = True,
    force: bool = False,
) -> None:
    """Configure the gcam-mcp structured logging system.

    Installs one stream handler on the 'gcam_mcp' logger. Idempotent
    unless force=True; guarded by a lock for concurrent initialization.

    The MCP server talks JSON-RPC over stdout, so the default stream is
    stderr.

    Args:
        level: Minimum level, int or name ('DEBUG', 'INFO', ...).
        json_format: Use JSONFormatter instead of StructuredFormatter.
        stream: Output stream. Defaults to sys.stderr.
        include_structured: Append key=value pairs in text mode.
        force: Reconfigure even if already configured.

    Example:
        >>> configure_logging(level=logging.DEBUG)
        >>> buffer = io.StringIO()
        >>> configure_logging(stream=buffer, json_format=True, force=True)
    """
    with _config_lock:
        if force:
            _reset_logging_impl()
        _configure_logging_impl(level, json_format, stream, include_structured)


def _configure_logging_impl(
    level: int | str = logging.INFO,
    json_format: bool = False,
    stream: Any = None,
    include_structured: bool = True,
) -> None:
    """Internal implementation of configure_logging (assumes lock is held)."""
    global _configured

    if _configured:
        return

    logging.setLoggerClass(StructuredLogger)

    if stream is None:
        stream = sys.stderr
    handler = logging.StreamHandler(stream)

    formatter: logging.Formatter
    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = StructuredFormatter(include_structured=include_structured)
    handler.setFormatter(formatter)

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    root.addHandler(handler)
    root.propagate = False

    _configured = True


def _reset_logging_impl() -> None:
    """Internal implementation of reset_logging (assumes lock is held)."""
    global _configured

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    _configured = False


def reset_logging() -> None:
    """Reset logging to the unconfigured state (for tests).

    Removes all handlers from the 'gcam_mcp' logger. The next
    configure_logging() or get_logger() call reinitializes it.
    """
    with _config_lock:
        _reset_logging_impl()


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger, configuring defaults on first use.

    Args:
        name: Logger name, normally __name__
            (e.g. 'gcam_mcp.devices.orchestrator').

    Returns:
        StructuredLogger accepting keyword structured data.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Zoom applied", linear_zoom=0.5)
        # 2026-01-15 10:30:00 - gcam_mcp.devices.orchestrator - INFO
        #   - Zoom applied | linear_zoom=0.5
    """
    if not _configured:
        with _config_lock:
            if not _configured:  # pragma: no branch
                _configure_logging_impl()

    logger = logging.getLogger(name)

    # setLoggerClass() in configure makes this a StructuredLogger
    return cast(StructuredLogger, logger)
