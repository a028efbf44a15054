"""CLI entry point for gcam-mcp.

Provides the ``gcam-mcp`` console script with subcommands:

- ``install``: Generate ``.vscode/mcp.json`` for a project
- ``server``: Run the MCP server (default if no subcommand)
- ``capture``: Take one photo from the command line

Usage::

    # Install MCP config in current project
    gcam-mcp install

    # Run MCP server (same as python -m gcam_mcp.server)
    gcam-mcp server --mode hardware --output-dir ~/Pictures/gcam

    # One sepia shot from the front camera after a 3 s timer
    gcam-mcp capture --facing front --timer 3 \\
        --filter-xml '<filter name="sepia" value="true"/>'
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import re
import sys
from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path

# Constants
SERVER_NAME = "gcam-mcp"
MODULE_NAME = "gcam_mcp.server"
VSCODE_DIR = ".vscode"
CONFIG_FILE = "mcp.json"


@lru_cache(maxsize=1)
def _get_logger() -> logging.Logger:
    """Logger with message-only format for CLI output (cached)."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger(__name__)


def _log(message: str, *, emoji: str = "") -> None:
    """Log message with optional emoji prefix for CLI feedback."""
    prefix = f"{emoji} " if emoji else ""
    _get_logger().info(f"{prefix}{message}")


def _strip_jsonc_comments(text: str) -> str:
    """Strip single-line // comments and trailing commas from JSONC text.

    Does not handle ``/* */`` block comments.

    Example:
        >>> _strip_jsonc_comments('{"key": "val"} // comment')
        '{"key": "val"}'
    """
    # Line comments; mcp.json has no "//" inside strings
    text = re.sub(r"(?m)^\s*//.*$|\s+//.*$", "", text)
    text = re.sub(r",(\s*[}\]])", r"\1", text)
    return text


def _detect_python_path() -> str:
    """Python interpreter of the environment gcam-mcp is installed in."""
    return sys.executable


def _get_global_vscode_dir() -> Path:
    """Detect the global VS Code user settings directory.

    Prefers VS Code Insiders when present. Supports Linux, macOS and
    Windows.
    """
    home = Path.home()

    if sys.platform == "darwin":  # pragma: no cover
        base = home / "Library" / "Application Support"
    elif os.name == "nt":  # pragma: no cover
        base = home / "AppData" / "Roaming"
    else:  # Linux
        base = home / ".config"

    insiders = base / "Code - Insiders" / "User"
    if insiders.exists():
        return insiders
    return base / "Code" / "User"


def _generate_mcp_template(python_path: str) -> str:
    """Generate JSONC mcp.json showing every server option.

    Options that keep their default are commented out so they stay
    discoverable.

    Args:
        python_path: Absolute path to the Python executable.
    """
    # {{PYTHON_PATH}} placeholder avoids f-string brace escaping
    template = """\
{
  "servers": {
    "gcam-mcp": {
      "command": "{{PYTHON_PATH}}",
      "args": [
        "-m",
        "gcam_mcp.server",
        // Driver mode: "hardware" for OpenCV cameras,
        // "digital_twin" for simulation
        "--mode", "digital_twin",
        // Where photos are saved
        // "--output-dir", "~/.gcam-mcp/captures",
        // Image file or folder the digital twin returns
        // "--stub-images", "./samples",
        // VideoCapture indices (hardware mode)
        // "--back-index", "0",
        // "--front-index", "1",
        // Bake the color filter into saved photos
        // "--apply-filter",
        // Let requests overlap instead of queueing them
        // "--allow-concurrent",
        // Log level (critical/error/warning/info/debug)
        // "--log-level", "info",
        // "--log-json"
      ]
    }
  }
}
"""
    return template.replace("{{PYTHON_PATH}}", python_path)


def run_install(
    cwd: str | None = None,
    *,
    global_install: bool = False,
) -> None:
    """Install gcam-mcp MCP configuration.

    Behavior:
    - **No existing config**: Writes the full JSONC template.
    - **Existing config without gcam-mcp**: Backs up the original, adds the
      gcam-mcp server entry and writes merged JSON.
    - **Already installed**: Reports up-to-date, no changes.

    Args:
        cwd: Project root. Defaults to the current directory.
        global_install: Install to the user's global VS Code settings
            instead of the project ``.vscode/`` directory.
    """
    working_dir = Path(cwd) if cwd else Path.cwd()
    python_path = _detect_python_path()

    if global_install:
        vscode_dir = _get_global_vscode_dir()
        _log(f"Installing globally to: {vscode_dir}", emoji="🌐")
    else:
        vscode_dir = working_dir / VSCODE_DIR

    config_path = vscode_dir / CONFIG_FILE

    if not config_path.exists():
        vscode_dir.mkdir(parents=True, exist_ok=True)
        config_path.write_text(_generate_mcp_template(python_path))
        _log(f"Created {config_path}", emoji="✅")
    else:
        existing_text = config_path.read_text()

        backup_path = config_path.with_suffix(".json.bak")
        backup_path.write_text(existing_text)
        _log(f"Backed up to {backup_path.name}", emoji="💾")

        try:
            config: dict[str, object] = json.loads(
                _strip_jsonc_comments(existing_text)
            )
        except json.JSONDecodeError:
            _log("Could not parse existing config, writing fresh", emoji="⚠️")
            config_path.write_text(_generate_mcp_template(python_path))
            _log(f"Created {config_path}", emoji="✅")
            _log(f"Python: {python_path}")
            return

        servers: dict[str, object] = config.setdefault(  # type: ignore[assignment]
            "servers", {}
        )

        if SERVER_NAME in servers:
            _log(f"{SERVER_NAME} already configured in {CONFIG_FILE}", emoji="✅")
            return

        servers[SERVER_NAME] = {
            "command": python_path,
            "args": ["-m", MODULE_NAME, "--mode", "digital_twin"],
        }

        config_path.write_text(json.dumps(config, indent=2) + "\n")
        _log(f"Added {SERVER_NAME} to {CONFIG_FILE}", emoji="➕")
        _log("Note: JSONC comments from original were not preserved", emoji="⚠️")

    _log(f"Config: {config_path}")
    _log(f"Python: {python_path}")


async def _capture_once(args: argparse.Namespace) -> int:
    """Take one photo with the configured driver and print the result JSON."""
    from gcam_mcp.devices import (
        CaptureRequest,
        init_orchestrator,
        shutdown_orchestrator,
    )

    request = CaptureRequest(
        filter_xml=args.filter_xml,
        flash_mode=args.flash,
        camera_facing=args.facing,
        timer_sec=args.timer,
        zoom=args.zoom,
    )
    orchestrator = init_orchestrator()
    try:
        outcome = await orchestrator.capture(request)
    finally:
        shutdown_orchestrator()

    print(json.dumps(outcome.to_dict()))
    return 0 if outcome.succeeded else 1


def run_capture(args: argparse.Namespace) -> int:
    """Handle ``gcam-mcp capture``.

    Returns:
        0 when a photo was saved, 1 on capture failure, 2 on bad arguments.
    """
    if args.timer < 0:
        _log(f"--timer must be >= 0, got {args.timer}", emoji="❌")
        return 2

    from gcam_mcp.drivers.config import use_digital_twin, use_hardware
    from gcam_mcp.server import apply_args

    apply_args(args)
    if args.mode == "hardware":
        use_hardware(preserve_config=True)
    else:
        use_digital_twin(preserve_config=True)
    return asyncio.run(_capture_once(args))


def _build_parser() -> argparse.ArgumentParser:
    from gcam_mcp.server import add_server_arguments

    parser = argparse.ArgumentParser(
        prog="gcam-mcp",
        description="gcam MCP: filtered photo capture for AI agents",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    install_parser = subparsers.add_parser(
        "install",
        help="Create .vscode/mcp.json configuration",
    )
    install_parser.add_argument(
        "--global",
        dest="global_install",
        action="store_true",
        help="Install to global VS Code settings",
    )

    # Pass-through to server.main()
    subparsers.add_parser(
        "server",
        help="Run MCP server (default if no subcommand)",
        add_help=False,
    )

    capture_parser = subparsers.add_parser("capture", help="Take one photo")
    add_server_arguments(capture_parser)
    capture_parser.add_argument("--filter-xml", default="", help="Filter markup")
    capture_parser.add_argument(
        "--flash", default="auto", help="Flash mode: auto, on or off"
    )
    capture_parser.add_argument(
        "--facing", default="back", help="Camera facing: back or front"
    )
    capture_parser.add_argument(
        "--timer", type=int, default=0, help="Self-timer delay in seconds"
    )
    capture_parser.add_argument(
        "--zoom", type=float, default=1.0, help="Zoom factor from 1.0 to 4.0"
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Main CLI entry point for gcam-mcp.

    Dispatches to subcommands:
    - ``install``: Generate .vscode/mcp.json configuration
    - ``capture``: Take one photo and print {"path": ...} or the failure
    - ``server`` or no subcommand: Run MCP server (delegates to
      ``server.main()`` which has its own arg parser)

    Returns:
        Exit code 0 for success, non-zero for errors.
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()

    # Only parse known args so server flags pass through
    args, _ = parser.parse_known_args(argv)

    if args.command == "install":
        run_install(global_install=args.global_install)
        return 0

    if args.command == "capture":
        return run_capture(parser.parse_args(argv))

    # Default or "server": strip the subcommand so server.parse_args() works
    if argv and argv[0] == "server":
        argv = argv[1:]

    from gcam_mcp.server import main as server_main

    server_main(argv)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
