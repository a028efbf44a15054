"""Capture orchestration: one request in, exactly one outcome out.

Each request runs a small state machine:

    IDLE -> BINDING_DEVICE -> APPLYING_PARAMETERS -> [AWAITING_TIMER]
         -> CAPTURING -> SUCCEEDED
    (any step) -> FAILED

Binding, torch, zoom, filter compilation and the self-timer run on the
asyncio event loop. The blocking capture (and optional filter rendering)
runs on a dedicated single-thread worker so the loop never stalls while
the device writes the file.

Example:
    orchestrator = CaptureOrchestrator(
        DigitalTwinCameraDriver(), output_dir=Path("~/captures").expanduser()
    )
    outcome = await orchestrator.capture(
        CaptureRequest(filter_xml='<filter name="sepia" value="true"/>',
                       camera_facing="front", zoom=2.5)
    )
    if outcome.succeeded:
        print(outcome.path)
"""

from __future__ import annotations

import asyncio
import uuid
from collections import deque
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from gcam_mcp.devices.clock import Clock, SystemClock
from gcam_mcp.devices.parameters import (
    CaptureRequest,
    DeviceParameters,
    map_parameters,
)
from gcam_mcp.devices.session import DeviceSession
from gcam_mcp.drivers.cameras.types import DeviceController
from gcam_mcp.filters import (
    ColorMatrix,
    FilterRenderer,
    NullFilterRenderer,
    compile_filter,
    parse_filter,
)
from gcam_mcp.observability import CaptureStats, LogContext, get_logger
from gcam_mcp.utils.files import new_capture_path

logger = get_logger(__name__)

__all__ = [
    "BindError",
    "CaptureError",
    "CaptureOrchestrator",
    "CaptureOutcome",
    "CaptureRun",
    "CaptureState",
    "DeviceCaptureError",
    "FailureReason",
]

DEFAULT_RUN_HISTORY = 100


class CaptureState(Enum):
    """Lifecycle states of one capture request."""

    IDLE = "idle"
    BINDING_DEVICE = "binding_device"
    APPLYING_PARAMETERS = "applying_parameters"
    AWAITING_TIMER = "awaiting_timer"
    CAPTURING = "capturing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureReason(Enum):
    """Why a request failed."""

    BIND = "bind"  # Camera could not be bound; nothing was captured
    CAPTURE = "capture"  # Bound device failed while configuring or capturing


# --- Exceptions ---


class CaptureError(Exception):
    """Base exception for capture failures."""

    reason: FailureReason = FailureReason.CAPTURE


class BindError(CaptureError):
    """Raised when the device cannot be bound to the requested facing."""

    reason = FailureReason.BIND


class DeviceCaptureError(CaptureError):
    """Raised when the bound device fails to configure or capture."""

    reason = FailureReason.CAPTURE


# --- Outcome and run records ---


@dataclass(frozen=True)
class CaptureOutcome:
    """Terminal result of a request: a file path or a failure, never both.

    Use the success() and failed() constructors.
    """

    path: str | None = None
    failure: FailureReason | None = None
    message: str | None = None

    def __post_init__(self) -> None:
        if (self.path is None) == (self.failure is None):
            raise ValueError("CaptureOutcome needs exactly one of path or failure")

    @classmethod
    def success(cls, path: str | Path) -> CaptureOutcome:
        return cls(path=str(path))

    @classmethod
    def failed(cls, reason: FailureReason, message: str) -> CaptureOutcome:
        return cls(failure=reason, message=message)

    @property
    def succeeded(self) -> bool:
        return self.path is not None

    def to_dict(self) -> dict[str, Any]:
        if self.path is not None:
            return {"path": self.path}
        assert self.failure is not None
        return {"failure": self.failure.value, "message": self.message}


@dataclass
class CaptureRun:
    """Record of one request's trip through the state machine.

    Attributes:
        request_id: Short id, also attached to every log line of the run.
        request: The request being served.
        state: Current state.
        history: Every state entered, in order, starting with IDLE.
        matrix: Compiled filter, set while applying parameters.
        outcome: Terminal outcome, set once the run finishes.
        error: Failure that ended the run, if any.
    """

    request_id: str
    request: CaptureRequest
    state: CaptureState = CaptureState.IDLE
    history: list[CaptureState] = field(default_factory=lambda: [CaptureState.IDLE])
    matrix: ColorMatrix | None = None
    outcome: CaptureOutcome | None = None
    error: CaptureError | None = None

    def transition(self, state: CaptureState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("Capture state", state=state.value)

    @property
    def finished(self) -> bool:
        return self.state in (CaptureState.SUCCEEDED, CaptureState.FAILED)


OnComplete = Callable[[CaptureOutcome], Any]
OnImageSaved = Callable[[str | None], Any]


class CaptureOrchestrator:
    """Runs capture requests against one device.

    Thread Safety:
        Call from the event loop thread only. The driver's capture_to_file
        runs on the orchestrator's private worker thread.
    """

    def __init__(
        self,
        driver: DeviceController,
        *,
        output_dir: Path,
        clock: Clock | None = None,
        renderer: FilterRenderer | None = None,
        exclusive: bool = True,
        stats: CaptureStats | None = None,
        history_size: int = DEFAULT_RUN_HISTORY,
    ) -> None:
        """Create an orchestrator.

        Args:
            driver: Device to capture from.
            output_dir: Directory for IMG_<timestamp>.jpg files. Created on
                first capture.
            clock: Time source. Defaults to SystemClock.
            renderer: Applied to each saved file with the compiled matrix.
                Defaults to NullFilterRenderer (file left as captured).
            exclusive: Serialize requests (see DeviceSession).
            stats: Collector for per-facing capture statistics. A private
                one is created when omitted.
            history_size: Number of CaptureRun records kept in runs.
        """
        self._driver = driver
        self.output_dir = Path(output_dir)
        self._clock = clock or SystemClock()
        self._renderer = renderer or NullFilterRenderer()
        self._session = DeviceSession(driver, exclusive=exclusive)
        self.stats = stats or CaptureStats()
        self._runs: deque[CaptureRun] = deque(maxlen=history_size)
        self._tasks: set[asyncio.Task[CaptureOutcome]] = set()
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="gcam-capture"
        )
        self._closed = False

    @property
    def driver(self) -> DeviceController:
        return self._driver

    @property
    def session(self) -> DeviceSession:
        return self._session

    @property
    def renderer(self) -> FilterRenderer:
        return self._renderer

    @property
    def runs(self) -> tuple[CaptureRun, ...]:
        """Most recent runs, oldest first."""
        return tuple(self._runs)

    async def capture(self, request: CaptureRequest) -> CaptureOutcome:
        """Run one request to completion.

        Failures never raise: they are returned as a failed outcome with
        FailureReason.BIND or FailureReason.CAPTURE.

        Args:
            request: Capture request.

        Returns:
            Exactly one CaptureOutcome.

        Raises:
            RuntimeError: If the orchestrator has been shut down.
        """
        if self._closed:
            raise RuntimeError("CaptureOrchestrator is shut down")

        run = CaptureRun(request_id=uuid.uuid4().hex[:8], request=request)
        self._runs.append(run)
        params = map_parameters(request)

        with LogContext(request_id=run.request_id, facing=params.facing.value):
            async with self._session.exclusive():
                started = self._clock.monotonic()
                outcome = await self._execute(run, params)
                duration_ms = (self._clock.monotonic() - started) * 1000.0

            run.outcome = outcome
            self.stats.record_capture(
                params.facing.value,
                duration_ms,
                success=outcome.succeeded,
                failure_reason=outcome.failure.value if outcome.failure else None,
            )
            if outcome.succeeded:
                logger.info(
                    "Photo saved", path=outcome.path, duration_ms=round(duration_ms, 1)
                )
        return outcome

    def submit(
        self,
        request: CaptureRequest,
        on_complete: OnComplete,
    ) -> asyncio.Task[CaptureOutcome]:
        """Start a request in the background and report its outcome.

        on_complete is invoked exactly once, from the event loop, with the
        request's outcome. If the task dies unexpectedly the callback gets
        a CAPTURE failure instead. Exceptions raised by the callback are
        logged.

        Must be called from a running event loop.

        Example:
            >>> task = orchestrator.submit(CaptureRequest(), print)
            >>> await task
        """
        loop = asyncio.get_running_loop()
        resolved: asyncio.Future[CaptureOutcome] = loop.create_future()

        def resolve(outcome: CaptureOutcome) -> None:
            if resolved.done():
                return
            resolved.set_result(outcome)
            try:
                on_complete(outcome)
            except Exception:
                logger.error("Capture completion callback raised", exc_info=True)

        def on_task_done(task: asyncio.Task[CaptureOutcome]) -> None:
            self._tasks.discard(task)
            if task.cancelled():
                resolve(CaptureOutcome.failed(FailureReason.CAPTURE, "Capture cancelled"))
            elif task.exception() is not None:
                resolve(
                    CaptureOutcome.failed(FailureReason.CAPTURE, str(task.exception()))
                )
            else:
                resolve(task.result())

        task = loop.create_task(self.capture(request))
        self._tasks.add(task)
        task.add_done_callback(on_task_done)
        return task

    def take_photo(
        self,
        filter_xml: str,
        flash_mode: str = "auto",
        camera_facing: str = "back",
        timer: int = 0,
        zoom: float = 1.0,
        on_image_saved: OnImageSaved | None = None,
    ) -> asyncio.Task[CaptureOutcome]:
        """Client-shaped capture call.

        on_image_saved receives the saved file path, or None on failure,
        exactly once.

        Raises:
            ValueError: If timer is negative.
        """
        request = CaptureRequest(
            filter_xml=filter_xml,
            flash_mode=flash_mode,
            camera_facing=camera_facing,
            timer_sec=timer,
            zoom=zoom,
        )

        def deliver(outcome: CaptureOutcome) -> None:
            if on_image_saved is not None:
                on_image_saved(outcome.path)

        return self.submit(request, deliver)

    async def wait_idle(self) -> None:
        """Wait until every submitted request has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def shutdown(self) -> None:
        """Stop the capture worker and unbind the device. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=True)
        self._session.release()
        logger.info("Capture orchestrator shut down")

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _execute(self, run: CaptureRun, params: DeviceParameters) -> CaptureOutcome:
        try:
            path = await self._run_steps(run, params)
        except CaptureError as e:
            return self._fail(run, e)
        except Exception as e:
            error = DeviceCaptureError(f"Unexpected capture error: {e}")
            error.__cause__ = e
            return self._fail(run, error)

        run.transition(CaptureState.SUCCEEDED)
        return CaptureOutcome.success(path)

    def _fail(self, run: CaptureRun, error: CaptureError) -> CaptureOutcome:
        run.error = error
        run.transition(CaptureState.FAILED)
        logger.error(
            "Capture failed",
            reason=error.reason.value,
            error=str(error),
            cause=repr(error.__cause__) if error.__cause__ else None,
        )
        return CaptureOutcome.failed(error.reason, str(error))

    async def _run_steps(self, run: CaptureRun, params: DeviceParameters) -> Path:
        run.transition(CaptureState.BINDING_DEVICE)
        try:
            self._session.ensure_bound(params.facing)
        except Exception as e:
            raise BindError(f"Failed to bind {params.facing.value} camera: {e}") from e

        run.transition(CaptureState.APPLYING_PARAMETERS)
        try:
            self._driver.set_torch(params.torch_on)
            self._driver.set_linear_zoom(params.linear_zoom)
        except Exception as e:
            raise DeviceCaptureError(f"Failed to configure camera: {e}") from e
        run.matrix = compile_filter(parse_filter(run.request.filter_xml))

        if run.request.timer_sec > 0:
            run.transition(CaptureState.AWAITING_TIMER)
            logger.debug("Self-timer started", seconds=run.request.timer_sec)
            await self._clock.sleep(run.request.timer_sec)

        run.transition(CaptureState.CAPTURING)
        try:
            target = new_capture_path(self.output_dir, self._clock.now())
            loop = asyncio.get_running_loop()
            return await loop.run_in_executor(
                self._executor, self._capture_blocking, target, run.matrix
            )
        except Exception as e:
            raise DeviceCaptureError(f"Failed to capture photo: {e}") from e

    def _capture_blocking(self, target: Path, matrix: ColorMatrix) -> Path:
        """Capture and render on the worker thread.

        A file whose rendering fails is deleted before the error propagates.
        """
        saved = Path(self._driver.capture_to_file(target))
        try:
            self._renderer.render(saved, matrix)
        except Exception:
            saved.unlink(missing_ok=True)
            logger.warning("Removed unrendered photo", path=str(saved))
            raise
        return saved
