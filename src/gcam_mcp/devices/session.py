"""Ownership of the device session across capture requests.

DeviceSession remembers which facing the driver is bound to, so a request
for the same facing reuses the session, and serializes requests.

With exclusive=True (default) requests hold a FIFO asyncio.Lock from
binding until their capture completes, so one request's timer can never
be interrupted by another request rebinding the device. With
exclusive=False requests interleave freely: a second request may rebind
while the first is waiting on its timer, and the first then captures
from whatever camera is bound at that moment.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator

from gcam_mcp.drivers.cameras.types import CameraFacing, DeviceController
from gcam_mcp.observability import get_logger

logger = get_logger(__name__)

__all__ = ["DeviceSession"]


class DeviceSession:
    """Bound-facing tracking plus request serialization for one driver.

    Example:
        session = DeviceSession(driver)
        async with session.exclusive():
            session.ensure_bound(CameraFacing.FRONT)
            ...
    """

    def __init__(self, driver: DeviceController, exclusive: bool = True) -> None:
        """Create a session owner for driver.

        Args:
            driver: Device to bind.
            exclusive: Serialize requests through a FIFO lock.
        """
        self._driver = driver
        self._exclusive = exclusive
        self._bound: CameraFacing | None = None
        # Created lazily so the session can be built outside a running loop
        self._lock: asyncio.Lock | None = None

    @property
    def bound_facing(self) -> CameraFacing | None:
        """Facing the driver is currently bound to, or None."""
        return self._bound

    @property
    def is_exclusive(self) -> bool:
        return self._exclusive

    @contextlib.asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        """Hold the request lock for the body (no-op when not exclusive).

        Waiters acquire in arrival order.
        """
        if not self._exclusive:
            yield
            return
        if self._lock is None:
            self._lock = asyncio.Lock()
        async with self._lock:
            yield

    def ensure_bound(self, facing: CameraFacing) -> bool:
        """Bind the driver to facing unless it already is.

        Rebinding unbinds every session first. If bind fails the session
        is left unbound.

        Returns:
            True if a (re)bind happened, False if the session was reused.

        Raises:
            Exception: Whatever the driver's bind() raises.
        """
        if self._bound is facing:
            logger.debug("Reusing bound camera", facing=facing.value)
            return False

        previous = self._bound
        self._driver.unbind_all()
        self._bound = None
        self._driver.bind(facing)
        self._bound = facing
        logger.info(
            "Camera bound",
            facing=facing.value,
            previous=previous.value if previous else None,
        )
        return True

    def release(self) -> None:
        """Unbind the driver."""
        self._driver.unbind_all()
        self._bound = None
