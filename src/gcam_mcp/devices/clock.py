"""Injectable time source for the capture pipeline."""

from __future__ import annotations

import asyncio
import time
from datetime import datetime
from typing import Protocol, runtime_checkable

__all__ = ["Clock", "SystemClock"]


@runtime_checkable
class Clock(Protocol):  # pragma: no cover
    """Protocol for time functions (injectable for testing).

    Example:
        class FakeClock:
            def __init__(self):
                self._time = 0.0

            def monotonic(self) -> float:
                return self._time

            def now(self) -> datetime:
                return datetime(2026, 1, 1) + timedelta(seconds=self._time)

            async def sleep(self, seconds: float) -> None:
                self._time += seconds

        orchestrator = CaptureOrchestrator(driver, output_dir=d, clock=FakeClock())
    """

    def monotonic(self) -> float:
        """Monotonic seconds, for measuring request duration."""
        ...

    def now(self) -> datetime:
        """Local wall-clock time, for naming capture files."""
        ...

    async def sleep(self, seconds: float) -> None:
        """Suspend the calling task without blocking the event loop.

        Used for the self-timer. Zero or negative returns immediately.
        """
        ...


class SystemClock:
    """Default clock using the time module and asyncio.sleep."""

    def monotonic(self) -> float:
        return time.monotonic()

    def now(self) -> datetime:
        return datetime.now()

    async def sleep(self, seconds: float) -> None:
        if seconds > 0:
            await asyncio.sleep(seconds)
