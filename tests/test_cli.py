"""Tests for gcam_mcp.cli: install command, capture command and dispatch.

Test Categories:
    - ``_strip_jsonc_comments``: JSONC comment removal and cleanup
    - ``_generate_mcp_template``: Template generation and validity
    - ``run_install``: Fresh install, merge, already-installed, corrupt
    - ``capture``: One-shot capture through the digital twin
    - ``main``: CLI dispatch to install, capture or server
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, patch

from gcam_mcp.cli import (
    _detect_python_path,
    _generate_mcp_template,
    _strip_jsonc_comments,
    main,
    run_install,
)
from gcam_mcp.drivers.cameras import DigitalTwinCameraDriver, DigitalTwinConfig
from gcam_mcp.drivers.config import DriverFactory, DriverMode, get_factory

# =========================================================================
# _strip_jsonc_comments
# =========================================================================


class TestStripJsoncComments:
    """Tests for JSONC comment stripping."""

    def test_no_comments(self) -> None:
        assert _strip_jsonc_comments('{"a": 1}') == '{"a": 1}'

    def test_trailing_comment(self) -> None:
        assert _strip_jsonc_comments('{"key": "val"} // comment') == '{"key": "val"}'

    def test_full_line_comment(self) -> None:
        text = '{\n  // note\n  "a": 1\n}'

        assert json.loads(_strip_jsonc_comments(text)) == {"a": 1}

    def test_trailing_commas(self) -> None:
        assert json.loads(_strip_jsonc_comments('{"a": [1, 2,], }')) == {"a": [1, 2]}


# =========================================================================
# _generate_mcp_template
# =========================================================================


class TestGenerateMcpTemplate:
    """Tests for the JSONC mcp.json template."""

    def test_parsed_structure(self) -> None:
        template = _generate_mcp_template("/usr/bin/python3")

        parsed = json.loads(_strip_jsonc_comments(template))

        server = parsed["servers"]["gcam-mcp"]
        assert server["command"] == "/usr/bin/python3"
        assert server["args"] == ["-m", "gcam_mcp.server", "--mode", "digital_twin"]

    def test_lists_every_server_option(self) -> None:
        template = _generate_mcp_template("python")

        for option in (
            "--output-dir",
            "--stub-images",
            "--back-index",
            "--front-index",
            "--apply-filter",
            "--allow-concurrent",
            "--log-level",
            "--log-json",
        ):
            assert option in template

    def test_detect_python_path(self) -> None:
        assert _detect_python_path() == sys.executable


# =========================================================================
# run_install
# =========================================================================


def _write_existing_config(tmp_path: Path, config: dict[str, Any]) -> Path:
    vscode_dir = tmp_path / ".vscode"
    vscode_dir.mkdir()
    config_path = vscode_dir / "mcp.json"
    config_path.write_text(json.dumps(config, indent=2))
    return config_path


class TestRunInstall:
    def test_fresh_install(self, tmp_path: Path) -> None:
        run_install(cwd=str(tmp_path))

        content = (tmp_path / ".vscode" / "mcp.json").read_text()
        assert "//" in content
        assert "gcam-mcp" in json.loads(_strip_jsonc_comments(content))["servers"]

    def test_merge_preserves_other_servers(self, tmp_path: Path) -> None:
        """Adds gcam-mcp beside an existing server and backs up the original."""
        config_path = _write_existing_config(
            tmp_path, {"servers": {"other": {"command": "echo"}}}
        )

        run_install(cwd=str(tmp_path))

        merged = json.loads(config_path.read_text())
        assert set(merged["servers"]) == {"other", "gcam-mcp"}
        assert merged["servers"]["gcam-mcp"]["args"][:2] == ["-m", "gcam_mcp.server"]
        assert (tmp_path / ".vscode" / "mcp.json.bak").exists()

    def test_already_installed_untouched(self, tmp_path: Path) -> None:
        config_path = _write_existing_config(
            tmp_path,
            {"servers": {"gcam-mcp": {"command": "/old/python", "args": []}}},
        )

        run_install(cwd=str(tmp_path))

        current = json.loads(config_path.read_text())
        assert current["servers"]["gcam-mcp"]["command"] == "/old/python"

    def test_corrupt_config_rewritten(self, tmp_path: Path) -> None:
        vscode_dir = tmp_path / ".vscode"
        vscode_dir.mkdir()
        (vscode_dir / "mcp.json").write_text("{{{invalid json!!!")

        run_install(cwd=str(tmp_path))

        assert "{{{invalid" in (vscode_dir / "mcp.json.bak").read_text()
        parsed = json.loads(_strip_jsonc_comments((vscode_dir / "mcp.json").read_text()))
        assert "gcam-mcp" in parsed["servers"]

    def test_global_install(self, tmp_path: Path) -> None:
        global_dir = tmp_path / "Code" / "User"

        with patch("gcam_mcp.cli._get_global_vscode_dir", return_value=global_dir):
            run_install(global_install=True)

        assert (global_dir / "mcp.json").exists()


# =========================================================================
# capture subcommand
# =========================================================================


class TestCaptureCommand:
    def test_capture_prints_path(self, tmp_path: Path, capsys) -> None:
        """Verifies one photo is taken and its path printed as JSON.

        Arrangement:
        Default digital twin, output directory under tmp_path.

        Action:
        gcam-mcp capture --facing front --zoom 2 --filter-xml sepia

        Assertion Strategy:
        - exit code 0
        - stdout JSON has exactly the path key
        - the file exists in the requested directory
        """
        code = main(
            [
                "capture",
                "--output-dir",
                str(tmp_path),
                "--facing",
                "front",
                "--zoom",
                "2",
                "--filter-xml",
                '<filter name="sepia" value="true"/>',
            ]
        )

        data = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert code == 0
        assert set(data) == {"path"}
        path = Path(data["path"])
        assert path.parent == tmp_path
        assert path.name.startswith("IMG_")
        assert path.exists()

    def test_capture_failure_exit_code(self, tmp_path: Path, capsys) -> None:
        failing = DigitalTwinCameraDriver(
            DigitalTwinConfig(width=64, height=48, fail_capture=True)
        )
        with patch.object(
            DriverFactory, "create_camera_driver", return_value=failing
        ):
            code = main(["capture", "--output-dir", str(tmp_path)])

        data = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert code == 1
        assert data["failure"] == "capture"

    def test_negative_timer_rejected(self, tmp_path: Path) -> None:
        assert main(["capture", "--output-dir", str(tmp_path), "--timer", "-1"]) == 2
        assert list(tmp_path.iterdir()) == []

    def test_hardware_mode_selected(self, tmp_path: Path) -> None:
        with patch("gcam_mcp.cli._capture_once", new=AsyncMock(return_value=0)):
            code = main(["capture", "--mode", "hardware", "--output-dir", str(tmp_path)])

        assert code == 0
        assert get_factory().config.mode is DriverMode.HARDWARE


# =========================================================================
# main(): CLI dispatch
# =========================================================================


class TestMainDispatch:
    """Tests for CLI entry point dispatch logic."""

    def test_install_subcommand(self) -> None:
        with patch("gcam_mcp.cli.run_install") as mock_install:
            result = main(["install"])

        mock_install.assert_called_once_with(global_install=False)
        assert result == 0

    def test_install_global_flag(self) -> None:
        with patch("gcam_mcp.cli.run_install") as mock_install:
            main(["install", "--global"])

        mock_install.assert_called_once_with(global_install=True)

    def test_no_args_delegates_to_server(self) -> None:
        with patch("gcam_mcp.server.main") as mock_server:
            main([])

        mock_server.assert_called_once_with([])

    def test_server_subcommand_stripped(self) -> None:
        """'server' is removed so server.parse_args() sees only its flags."""
        with patch("gcam_mcp.server.main") as mock_server:
            main(["server", "--mode", "hardware"])

        mock_server.assert_called_once_with(["--mode", "hardware"])

    def test_reads_sys_argv_by_default(self) -> None:
        with patch("gcam_mcp.server.main") as mock_server:
            with patch("sys.argv", ["gcam-mcp", "--log-json"]):
                main()

        mock_server.assert_called_once_with(["--log-json"])
