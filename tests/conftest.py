"""Pytest configuration and fixtures for gcam-mcp tests.

Provides a deterministic clock, a digital twin driver and an orchestrator
wired to a temporary output directory, plus global-state cleanup for the
driver factory, orchestrator registry and logging.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest

from gcam_mcp.devices import CaptureOrchestrator
from gcam_mcp.devices import registry as orchestrator_registry
from gcam_mcp.drivers import config as driver_config
from gcam_mcp.drivers.cameras import DigitalTwinCameraDriver, DigitalTwinConfig
from gcam_mcp.observability import reset_logging

FAKE_EPOCH = datetime(2026, 3, 14, 15, 9, 26)


class FakeClock:
    """Clock whose sleep advances simulated time instantly.

    Every sleep also yields to the event loop once, so other tasks get to
    run while a request is "waiting" on its timer.

    Attributes:
        sleeps: Durations passed to sleep(), in call order.
    """

    def __init__(self, start: datetime = FAKE_EPOCH) -> None:
        self._start = start
        self._elapsed = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self._elapsed

    def now(self) -> datetime:
        return self._start + timedelta(seconds=self._elapsed)

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        await asyncio.sleep(0)
        self._elapsed += seconds

    def advance(self, seconds: float) -> None:
        self._elapsed += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    """Deterministic clock starting at FAKE_EPOCH."""
    return FakeClock()


@pytest.fixture
def twin() -> DigitalTwinCameraDriver:
    """Small synthetic digital twin with both facings available."""
    return DigitalTwinCameraDriver(DigitalTwinConfig(width=160, height=120))


@pytest.fixture
async def orchestrator(twin, fake_clock, tmp_path):
    """Orchestrator on the twin, writing to tmp_path/captures."""
    orch = CaptureOrchestrator(
        twin, output_dir=tmp_path / "captures", clock=fake_clock
    )
    yield orch
    orch.shutdown()


@pytest.fixture(autouse=True)
def reset_global_state():
    """Isolate the driver factory, orchestrator singleton and logging."""
    driver_config._factory = None
    yield
    orchestrator_registry.shutdown_orchestrator()
    driver_config._factory = None
    reset_logging()
