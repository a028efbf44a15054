"""Tests for the MCP capture tools (gcam_mcp.tools.camera)."""

from importlib.metadata import version
from pathlib import Path

import pytest
from mcp.server import Server
from mcp.types import (
    CallToolRequest,
    CallToolRequestParams,
    ListToolsRequest,
)

from gcam_mcp.devices import CaptureRequest, init_orchestrator
from gcam_mcp.drivers.cameras import (
    CameraFacing,
    DigitalTwinCameraDriver,
    DigitalTwinConfig,
)
from gcam_mcp.filters import ColorMatrix
from gcam_mcp.tools import camera
from tests.helpers import tool_json


@pytest.fixture
def registered(twin, fake_clock, tmp_path):
    """Global orchestrator over the small twin, writing to tmp_path."""
    return init_orchestrator(twin, output_dir=tmp_path, clock=fake_clock)


class TestToolDefinitions:
    def test_tool_names(self):
        assert [t.name for t in camera.TOOLS] == [
            "take_photo",
            "compile_filter",
            "get_capture_stats",
        ]

    def test_take_photo_schema_defaults(self):
        props = camera.TOOLS[0].inputSchema["properties"]

        assert props["filterXml"]["default"] == ""
        assert props["flashMode"]["default"] == "auto"
        assert props["cameraFacing"]["default"] == "back"
        assert props["timer"]["default"] == 0
        assert props["zoom"]["default"] == 1.0
        assert camera.TOOLS[0].inputSchema["required"] == []


class TestTakePhoto:
    async def test_success_returns_path_only(self, registered, twin, tmp_path):
        """Verifies the success payload carries only the saved path.

        Arrangement:
        Orchestrator registered globally over the digital twin.

        Action:
        take_photo with the client's camelCase arguments.

        Assertion Strategy:
        - JSON has exactly one key, path
        - file exists under tmp_path
        - device saw the front camera and torch on
        """
        result = await camera._take_photo(
            {
                "filterXml": '<filter name="sepia" value="true"/>',
                "flashMode": "on",
                "cameraFacing": "front",
                "zoom": 2.5,
            }
        )

        data = tool_json(result)
        assert set(data) == {"path"}
        path = Path(data["path"])
        assert path.exists()
        assert path.parent == tmp_path.absolute()
        assert ("bind", CameraFacing.FRONT) in twin.commands
        assert ("set_torch", True) in twin.commands

    async def test_empty_arguments_use_defaults(self, registered, twin):
        data = tool_json(await camera._take_photo({}))

        assert "path" in data
        assert ("bind", CameraFacing.BACK) in twin.commands
        assert ("set_torch", False) in twin.commands

    async def test_bind_failure_payload(self, fake_clock, tmp_path):
        driver = DigitalTwinCameraDriver(
            DigitalTwinConfig(available_facings=frozenset({CameraFacing.BACK}))
        )
        init_orchestrator(driver, output_dir=tmp_path, clock=fake_clock)

        data = tool_json(await camera._take_photo({"cameraFacing": "front"}))

        assert data == {
            "error": "ERROR",
            "message": "Failed to capture photo",
            "reason": "bind",
        }
        assert list(tmp_path.iterdir()) == []

    async def test_capture_failure_payload(self, fake_clock, tmp_path):
        driver = DigitalTwinCameraDriver(
            DigitalTwinConfig(width=64, height=48, fail_capture=True)
        )
        init_orchestrator(driver, output_dir=tmp_path, clock=fake_clock)

        data = tool_json(await camera._take_photo({}))

        assert data["reason"] == "capture"
        assert "path" not in data

    async def test_negative_timer_rejected_without_device(self, registered, twin):
        result = await camera._take_photo({"timer": -1})

        assert result[0].text.startswith("Invalid arguments:")
        assert twin.commands == []

    async def test_non_numeric_zoom_rejected(self, registered, twin):
        result = await camera._take_photo({"zoom": "close"})

        assert result[0].text.startswith("Invalid arguments:")
        assert twin.commands == []

    async def test_without_orchestrator(self):
        result = await camera._take_photo({})

        assert result[0].text.startswith("Error taking photo:")
        assert "not initialized" in result[0].text


class TestCompileFilter:
    async def test_returns_filter_and_matrix(self):
        data = tool_json(
            await camera._compile_filter('<filter name="sepia" value="true"/>', False)
        )

        assert data["filter"] == {
            "brightness": 1.0,
            "contrast": 1.0,
            "saturation": 1.0,
            "sepia": True,
        }
        assert len(data["matrix"]) == 20
        assert ColorMatrix(data["matrix"]).allclose(ColorMatrix.sepia())
        assert data["identity"] is False

    async def test_empty_markup_is_identity(self):
        data = tool_json(await camera._compile_filter("", False))

        assert data["identity"] is True

    async def test_malformed_lenient_and_strict(self):
        lenient = tool_json(await camera._compile_filter("<filter", False))
        strict = await camera._compile_filter("<filter", True)

        assert lenient["identity"] is True
        assert strict[0].text.startswith("Malformed filter markup:")


class TestCaptureStats:
    async def test_counts_after_capture(self, registered):
        await registered.capture(CaptureRequest())
        await registered.capture(CaptureRequest(camera_facing="front"))

        data = tool_json(await camera._get_capture_stats())

        assert data["facings"]["back"]["successful_captures"] == 1
        assert data["facings"]["front"]["total_captures"] == 1

    async def test_without_orchestrator(self):
        result = await camera._get_capture_stats()

        assert result[0].text.startswith("Error getting capture stats:")


class TestRegister:
    def test_installed_mcp_has_decorator_api(self):
        """register() relies on the 1.x Server decorators."""
        major = int(version("mcp").split(".")[0])

        assert major == 1
        assert callable(Server("version-check").list_tools)
        assert callable(Server("version-check").call_tool)

    @pytest.fixture
    def server(self):
        server = Server("test-server")
        camera.register(server)
        return server

    async def test_list_tools(self, server):
        handler = server.request_handlers[ListToolsRequest]

        result = await handler(ListToolsRequest(method="tools/list"))

        assert [t.name for t in result.root.tools] == [t.name for t in camera.TOOLS]

    async def test_call_tool_routes_compile_filter(self, server):
        handler = server.request_handlers[CallToolRequest]
        request = CallToolRequest(
            method="tools/call",
            params=CallToolRequestParams(
                name="compile_filter",
                arguments={"filterXml": '<filter name="contrast" value="2"/>'},
            ),
        )

        result = await handler(request)

        data = tool_json(result.root.content)
        assert data["filter"]["contrast"] == 2.0

    async def test_call_tool_routes_take_photo(self, server, registered):
        handler = server.request_handlers[CallToolRequest]
        request = CallToolRequest(
            method="tools/call",
            params=CallToolRequestParams(name="take_photo", arguments={}),
        )

        result = await handler(request)

        assert "path" in tool_json(result.root.content)
