"""MCP Server entry point for photo capture."""

import argparse
import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Literal

from mcp.server import Server
from mcp.server.stdio import stdio_server

from gcam_mcp.observability import configure_logging, get_logger
from gcam_mcp.tools import camera

logger = get_logger(__name__)

SERVER_NAME = "gcam-mcp"


def create_server(mode: Literal["hardware", "digital_twin"] = "digital_twin") -> Server:
    """Create the MCP server and its capture orchestrator.

    Switches the global driver factory to the requested mode (keeping the
    rest of its configuration), initializes the shared orchestrator and
    registers the capture tools.

    Args:
        mode: "hardware" for OpenCV cameras, "digital_twin" for simulation.
            Defaults to "digital_twin" for safety.

    Returns:
        Configured MCP Server instance with take_photo, compile_filter and
        get_capture_stats registered.

    Example:
        >>> server = create_server(mode="hardware")
    """
    server = Server(SERVER_NAME)

    from gcam_mcp.devices import init_orchestrator
    from gcam_mcp.drivers.config import use_digital_twin, use_hardware

    if mode.lower() == "hardware":
        use_hardware(preserve_config=True)
        logger.info("Using HARDWARE mode (OpenCV cameras)")
    else:
        use_digital_twin(preserve_config=True)
        logger.info("Using DIGITAL_TWIN mode (simulated camera)")

    orchestrator = init_orchestrator()
    logger.info(
        "Initialized capture orchestrator",
        driver=type(orchestrator.driver).__name__,
    )

    camera.register(server)
    return server


async def run_server(mode: Literal["hardware", "digital_twin"] = "digital_twin") -> None:
    """Run the MCP server over stdio until stdin closes.

    The orchestrator is shut down (device unbound, worker stopped) on exit.

    Example:
        >>> asyncio.run(run_server("digital_twin"))
    """
    server = create_server(mode=mode)
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options(),
            )
    finally:
        from gcam_mcp.devices import shutdown_orchestrator

        shutdown_orchestrator()
        logger.info("Capture orchestrator shut down")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments for the server.

    Returns:
        argparse.Namespace with mode, output_dir, stub_images, back_index,
        front_index, apply_filter, allow_concurrent, log_level, log_json.

    Raises:
        SystemExit: On invalid arguments or --help.
    """
    parser = argparse.ArgumentParser(
        description="gcam MCP Server - Filtered photo capture for AI agents"
    )
    add_server_arguments(parser)
    return parser.parse_args(argv)


def add_server_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the server options to parser (shared with the CLI)."""
    parser.add_argument(
        "--mode",
        type=str,
        choices=["hardware", "digital_twin"],
        default="digital_twin",
        help=(
            "Driver mode: 'hardware' for OpenCV cameras, "
            "'digital_twin' for simulation (default)"
        ),
    )
    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory to save photos (default: ~/.gcam-mcp/captures)",
    )
    parser.add_argument(
        "--stub-images",
        type=str,
        default=None,
        help="Image file or directory the digital twin returns instead of a test card",
    )
    parser.add_argument(
        "--back-index",
        type=int,
        default=None,
        help="VideoCapture index of the back camera (default: 0)",
    )
    parser.add_argument(
        "--front-index",
        type=int,
        default=None,
        help="VideoCapture index of the front camera (default: 1)",
    )
    parser.add_argument(
        "--apply-filter",
        action="store_true",
        help="Bake the compiled color filter into saved photos",
    )
    parser.add_argument(
        "--allow-concurrent",
        action="store_true",
        help="Do not serialize capture requests",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["critical", "error", "warning", "info", "debug"],
        default="info",
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log-json",
        action="store_true",
        help="Emit logs as JSON lines",
    )


def apply_args(args: argparse.Namespace) -> None:
    """Apply parsed options to logging and the global driver configuration."""
    configure_logging(level=args.log_level.upper(), json_format=args.log_json)

    from gcam_mcp.drivers.config import get_factory, set_output_dir

    config = get_factory().config
    if args.output_dir:
        set_output_dir(args.output_dir)
        logger.info("Output directory configured", path=str(config.output_dir))
    if args.stub_images:
        config.stub_image_path = Path(args.stub_images).expanduser()
    if args.back_index is not None:
        config.back_camera_index = args.back_index
    if args.front_index is not None:
        config.front_camera_index = args.front_index
    if args.apply_filter:
        config.apply_filter = True
    if args.allow_concurrent:
        config.serialize_requests = False


def main(argv: Sequence[str] | None = None) -> None:
    """Main entry point for the gcam-mcp server.

    Parses arguments, configures logging and drivers, and serves MCP over
    stdio. This is what MCP clients launch:
    "command": "python", "args": ["-m", "gcam_mcp.server"].
    """
    args = parse_args(argv)
    apply_args(args)

    logger.info("Starting MCP server")
    asyncio.run(run_server(args.mode))


if __name__ == "__main__":  # pragma: no cover
    main()
