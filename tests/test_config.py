"""Tests for driver configuration and factory (gcam_mcp.drivers.config)."""

from pathlib import Path

import pytest

from gcam_mcp.drivers import config as driver_config
from gcam_mcp.drivers.cameras import (
    CameraFacing,
    DigitalTwinCameraDriver,
    ImageSource,
    OpenCVCameraDriver,
)
from gcam_mcp.drivers.config import (
    DriverConfig,
    DriverFactory,
    DriverMode,
    configure,
    get_factory,
    set_output_dir,
    use_digital_twin,
    use_hardware,
)
from gcam_mcp.filters import ColorMatrixRenderer, NullFilterRenderer


class TestDriverConfig:
    def test_defaults(self):
        config = DriverConfig()

        assert config.mode is DriverMode.DIGITAL_TWIN
        assert config.output_dir == Path.home() / ".gcam-mcp" / "captures"
        assert config.back_camera_index == 0
        assert config.front_camera_index == 1
        assert config.stub_image_path is None
        assert config.serialize_requests is True
        assert config.apply_filter is False

    def test_output_dirs_not_shared(self):
        a = DriverConfig()
        b = DriverConfig()
        a.output_dir = Path("/tmp/a")

        assert b.output_dir != a.output_dir


class TestDriverFactory:
    def test_default_creates_synthetic_twin(self):
        driver = DriverFactory().create_camera_driver()

        assert isinstance(driver, DigitalTwinCameraDriver)
        assert driver.config.image_source is ImageSource.SYNTHETIC

    def test_hardware_mode_creates_opencv_driver(self):
        factory = DriverFactory(
            DriverConfig(
                mode=DriverMode.HARDWARE, back_camera_index=2, front_camera_index=3
            )
        )

        driver = factory.create_camera_driver()

        assert isinstance(driver, OpenCVCameraDriver)
        assert driver._indices == {CameraFacing.BACK: 2, CameraFacing.FRONT: 3}

    def test_stub_directory(self, tmp_path):
        factory = DriverFactory(DriverConfig(stub_image_path=tmp_path))

        driver = factory.create_camera_driver()

        assert driver.config.image_source is ImageSource.DIRECTORY
        assert driver.config.image_path == tmp_path

    def test_stub_file(self, tmp_path):
        image = tmp_path / "frame.jpg"
        image.write_bytes(b"")
        factory = DriverFactory(DriverConfig(stub_image_path=image))

        driver = factory.create_camera_driver()

        assert driver.config.image_source is ImageSource.FILE

    @pytest.mark.parametrize(
        "apply_filter, renderer_type",
        [(False, NullFilterRenderer), (True, ColorMatrixRenderer)],
    )
    def test_renderer_selection(self, apply_filter, renderer_type):
        factory = DriverFactory(DriverConfig(apply_filter=apply_filter))

        assert isinstance(factory.create_renderer(), renderer_type)


class TestGlobalFactory:
    def test_lazy_default(self):
        factory = get_factory()

        assert factory is get_factory()
        assert factory.config.mode is DriverMode.DIGITAL_TWIN

    def test_configure_replaces(self):
        config = DriverConfig(apply_filter=True)

        configure(config)

        assert get_factory().config is config

    def test_use_hardware_resets_by_default(self, tmp_path):
        configure(DriverConfig(output_dir=tmp_path))

        use_hardware()

        assert get_factory().config.mode is DriverMode.HARDWARE
        assert get_factory().config.output_dir != tmp_path

    def test_use_hardware_preserve_config(self, tmp_path):
        configure(DriverConfig(output_dir=tmp_path, serialize_requests=False))

        use_hardware(preserve_config=True)

        config = get_factory().config
        assert config.mode is DriverMode.HARDWARE
        assert config.output_dir == tmp_path
        assert config.serialize_requests is False

    def test_use_digital_twin_preserve_config(self, tmp_path):
        configure(DriverConfig(mode=DriverMode.HARDWARE, stub_image_path=tmp_path))

        use_digital_twin(preserve_config=True)

        config = get_factory().config
        assert config.mode is DriverMode.DIGITAL_TWIN
        assert config.stub_image_path == tmp_path

    def test_use_digital_twin_resets(self):
        configure(DriverConfig(mode=DriverMode.HARDWARE, apply_filter=True))

        use_digital_twin()

        assert get_factory().config == DriverConfig(mode=DriverMode.DIGITAL_TWIN)

    def test_set_output_dir_expands_user(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))

        set_output_dir("~/photos")

        assert get_factory().config.output_dir == tmp_path / "photos"

    def test_module_global_reset_by_fixture(self):
        assert driver_config._factory is None
