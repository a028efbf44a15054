"""Tests for capture request and parameter mapping."""

import math

import pytest

from gcam_mcp.devices import (
    CaptureRequest,
    DeviceParameters,
    FlashMode,
    map_facing,
    map_flash,
    map_parameters,
    map_zoom,
)
from gcam_mcp.drivers.cameras import CameraFacing


class TestMapZoom:
    """Zoom factor 1x-4x to linear zoom [0, 1]."""

    @pytest.mark.parametrize(
        "factor, expected",
        [
            (1.0, 0.0),
            (2.5, 0.5),
            (4.0, 1.0),
            (0.5, 0.0),
            (10.0, 1.0),
            (-3.0, 0.0),
            (math.inf, 1.0),
            (-math.inf, 0.0),
        ],
    )
    def test_mapping_and_clamping(self, factor, expected):
        assert map_zoom(factor) == pytest.approx(expected)

    def test_nan_maps_to_zero(self):
        assert map_zoom(math.nan) == 0.0

    def test_monotonic(self):
        samples = [1.0 + i * 0.25 for i in range(13)]
        mapped = [map_zoom(z) for z in samples]

        assert mapped == sorted(mapped)


class TestMapFlash:
    @pytest.mark.parametrize(
        "mode, expected",
        [
            ("on", True),
            ("ON", True),
            (" on ", False),
            ("off", False),
            ("auto", False),
            ("AUTO", False),
            ("strobe", False),
            ("", False),
            (None, False),
        ],
    )
    def test_flash_modes(self, mode, expected):
        assert map_flash(mode) is expected

    def test_flash_mode_parse(self):
        assert FlashMode.parse("Auto") is FlashMode.AUTO
        assert FlashMode.parse("bogus") is None
        assert FlashMode.parse(None) is None


class TestMapFacing:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("front", CameraFacing.FRONT),
            ("FRONT", CameraFacing.BACK),
            (" front", CameraFacing.BACK),
            ("back", CameraFacing.BACK),
            ("side", CameraFacing.BACK),
            ("", CameraFacing.BACK),
            (None, CameraFacing.BACK),
        ],
    )
    def test_facings(self, name, expected):
        assert map_facing(name) is expected

    def test_camera_facing_parse(self):
        assert CameraFacing.parse("front") is CameraFacing.FRONT
        assert CameraFacing.parse("Front") is None
        assert CameraFacing.parse("rear") is None


class TestCaptureRequest:
    def test_defaults(self):
        request = CaptureRequest()

        assert request.filter_xml == ""
        assert request.flash_mode == "auto"
        assert request.camera_facing == "back"
        assert request.timer_sec == 0
        assert request.zoom == 1.0

    def test_negative_timer_rejected(self):
        with pytest.raises(ValueError, match="timer_sec"):
            CaptureRequest(timer_sec=-1)

    def test_frozen(self):
        with pytest.raises(AttributeError):
            CaptureRequest().zoom = 2.0  # type: ignore[misc]

    def test_from_arguments_empty(self):
        assert CaptureRequest.from_arguments({}) == CaptureRequest()
        assert CaptureRequest.from_arguments(None) == CaptureRequest()

    def test_from_arguments_client_keys(self):
        request = CaptureRequest.from_arguments(
            {
                "filterXml": '<filter name="sepia" value="true"/>',
                "flashMode": "on",
                "cameraFacing": "front",
                "timer": 3,
                "zoom": 2.5,
            }
        )

        assert request == CaptureRequest(
            filter_xml='<filter name="sepia" value="true"/>',
            flash_mode="on",
            camera_facing="front",
            timer_sec=3,
            zoom=2.5,
        )

    def test_from_arguments_nulls_default(self):
        request = CaptureRequest.from_arguments(
            {"filterXml": None, "flashMode": None, "timer": None, "zoom": None}
        )

        assert request == CaptureRequest()

    def test_from_arguments_snake_case_filter_alias(self):
        request = CaptureRequest.from_arguments({"filter_xml": "<filter/>"})

        assert request.filter_xml == "<filter/>"

    def test_from_arguments_negative_timer(self):
        with pytest.raises(ValueError):
            CaptureRequest.from_arguments({"timer": -2})

    def test_to_dict_uses_client_keys(self):
        assert CaptureRequest(zoom=3.0).to_dict() == {
            "filterXml": "",
            "flashMode": "auto",
            "cameraFacing": "back",
            "timer": 0,
            "zoom": 3.0,
        }


class TestMapParameters:
    def test_maps_all_fields(self):
        request = CaptureRequest(flash_mode="on", camera_facing="front", zoom=2.5)

        assert map_parameters(request) == DeviceParameters(
            facing=CameraFacing.FRONT, torch_on=True, linear_zoom=0.5
        )

    def test_defaults(self):
        assert map_parameters(CaptureRequest()) == DeviceParameters(
            facing=CameraFacing.BACK, torch_on=False, linear_zoom=0.0
        )
