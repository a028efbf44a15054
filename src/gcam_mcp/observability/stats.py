"""Capture statistics collection and reporting.

Tracks the outcome of every capture request run by the orchestrator:
- Success/failure rates per camera facing
- End-to-end request duration (min, max, avg, p95)
- Failure counts by reason (bind, capture)

Thread-safe; the orchestrator records from the event loop while the MCP
tool layer reads summaries.

Example:
    stats = CaptureStats()

    stats.record_capture(facing="back", duration_ms=180.0, success=True)
    stats.record_capture(facing="front", duration_ms=3.0, success=False,
                         failure_reason="bind")

    summary = stats.get_summary("back")
    print(f"Success rate: {summary.success_rate:.1%}")
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

#: Default number of capture records kept per facing for duration statistics.
DEFAULT_STATS_WINDOW_SIZE: int = 500


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(UTC)


@dataclass
class StatsSummary:
    """Summary statistics for one camera facing.

    Attributes:
        facing: Camera facing the captures were requested for.
        total_captures: Total capture requests.
        successful_captures: Requests that produced a file.
        failed_captures: Requests that ended in a failure outcome.
        success_rate: successful / total (0.0 when no captures).
        min_duration_ms: Fastest successful request.
        max_duration_ms: Slowest successful request.
        avg_duration_ms: Mean successful request duration.
        p95_duration_ms: 95th percentile successful request duration.
        failure_counts: Count by failure reason ("bind", "capture").
        last_capture_time: UTC time of the most recent request.
        uptime_seconds: Time since the collector was created or reset.
    """

    facing: str
    total_captures: int = 0
    successful_captures: int = 0
    failed_captures: int = 0
    success_rate: float = 0.0
    min_duration_ms: float = 0.0
    max_duration_ms: float = 0.0
    avg_duration_ms: float = 0.0
    p95_duration_ms: float = 0.0
    failure_counts: dict[str, int] = field(default_factory=dict)
    last_capture_time: datetime | None = None
    uptime_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert the summary to a JSON-compatible dictionary.

        Returns:
            Dict with every field; last_capture_time as ISO string or None.

        Example:
            >>> json.dumps(summary.to_dict())
        """
        return {
            "facing": self.facing,
            "total_captures": self.total_captures,
            "successful_captures": self.successful_captures,
            "failed_captures": self.failed_captures,
            "success_rate": self.success_rate,
            "min_duration_ms": self.min_duration_ms,
            "max_duration_ms": self.max_duration_ms,
            "avg_duration_ms": self.avg_duration_ms,
            "p95_duration_ms": self.p95_duration_ms,
            "failure_counts": self.failure_counts.copy(),
            "last_capture_time": (
                self.last_capture_time.isoformat() if self.last_capture_time else None
            ),
            "uptime_seconds": self.uptime_seconds,
        }


@dataclass
class CaptureRecord:
    """Single capture record for statistics."""

    timestamp: float  # monotonic time
    duration_ms: float
    success: bool
    failure_reason: str | None = None


class FacingStatsCollector:
    """Statistics collector for a single camera facing.

    Keeps cumulative counters plus a rolling window of records used for
    the duration percentiles.
    """

    def __init__(
        self,
        facing: str,
        window_size: int = DEFAULT_STATS_WINDOW_SIZE,
    ) -> None:
        """Initialize an empty collector.

        Args:
            facing: Camera facing label ("front" or "back").
            window_size: Maximum records retained for duration statistics.
        """
        self.facing = facing
        self._window_size = window_size
        self._records: deque[CaptureRecord] = deque(maxlen=window_size)
        self._failure_counts: dict[str, int] = {}
        self._total_captures = 0
        self._successful_captures = 0
        self._start_time = time.monotonic()
        self._last_capture_time: datetime | None = None
        self._lock = threading.Lock()

    def record(
        self,
        duration_ms: float,
        success: bool,
        failure_reason: str | None = None,
    ) -> None:
        """Record one capture request outcome.

        Args:
            duration_ms: Request duration from binding to terminal state,
                including any self-timer delay.
            success: True when the request produced a file.
            failure_reason: Reason label for failures; None otherwise.
        """
        record = CaptureRecord(
            timestamp=time.monotonic(),
            duration_ms=duration_ms,
            success=success,
            failure_reason=failure_reason,
        )
        with self._lock:
            self._records.append(record)
            self._total_captures += 1
            if success:
                self._successful_captures += 1
            elif failure_reason:
                self._failure_counts[failure_reason] = (
                    self._failure_counts.get(failure_reason, 0) + 1
                )
            self._last_capture_time = _utc_now()

    def get_summary(self) -> StatsSummary:
        """Compute a snapshot summary.

        Duration statistics come from successful records in the window.

        Returns:
            StatsSummary for this facing.
        """
        # Copy under lock, sort outside it
        with self._lock:
            total = self._total_captures
            successful = self._successful_captures
            failure_counts = self._failure_counts.copy()
            last_capture_time = self._last_capture_time
            start_time = self._start_time
            durations = [
                r.duration_ms for r in self._records if r.success and r.duration_ms > 0
            ]

        if durations:
            min_dur = min(durations)
            max_dur = max(durations)
            avg_dur = sum(durations) / len(durations)
            p95_dur = _percentile(sorted(durations), 95)
        else:
            min_dur = max_dur = avg_dur = p95_dur = 0.0

        return StatsSummary(
            facing=self.facing,
            total_captures=total,
            successful_captures=successful,
            failed_captures=total - successful,
            success_rate=successful / total if total > 0 else 0.0,
            min_duration_ms=min_dur,
            max_duration_ms=max_dur,
            avg_duration_ms=avg_dur,
            p95_duration_ms=p95_dur,
            failure_counts=failure_counts,
            last_capture_time=last_capture_time,
            uptime_seconds=time.monotonic() - start_time,
        )

    def reset(self) -> None:
        """Clear all records and counters."""
        with self._lock:
            self._records.clear()
            self._failure_counts.clear()
            self._total_captures = 0
            self._successful_captures = 0
            self._start_time = time.monotonic()
            self._last_capture_time = None


class CaptureStats:
    """Capture statistics for all camera facings.

    Collectors are created lazily the first time a facing is recorded.
    Injected into CaptureOrchestrator; read by the get_capture_stats tool.

    Example:
        stats = CaptureStats()
        orchestrator = CaptureOrchestrator(driver, output_dir=d, stats=stats)
        ...
        print(stats.to_dict())
    """

    def __init__(self, window_size: int = DEFAULT_STATS_WINDOW_SIZE) -> None:
        """Initialize with no collectors.

        Args:
            window_size: Rolling window size for each facing's collector.
        """
        self._window_size = window_size
        self._collectors: dict[str, FacingStatsCollector] = {}
        self._lock = threading.Lock()

    def _get_collector(self, facing: str) -> FacingStatsCollector:
        """Get or create the collector for a facing."""
        with self._lock:
            collector = self._collectors.get(facing)
            if collector is None:
                collector = FacingStatsCollector(facing, self._window_size)
                self._collectors[facing] = collector
            return collector

    def record_capture(
        self,
        facing: str,
        duration_ms: float,
        success: bool,
        failure_reason: str | None = None,
    ) -> None:
        """Record one capture request outcome for a facing.

        Args:
            facing: "front" or "back".
            duration_ms: Request duration in milliseconds.
            success: True when a file was produced.
            failure_reason: "bind" or "capture" for failures.

        Example:
            >>> stats.record_capture("back", 120.0, success=True)
        """
        self._get_collector(facing).record(duration_ms, success, failure_reason)

    def get_summary(self, facing: str) -> StatsSummary:
        """Summary for one facing (empty summary if never recorded)."""
        return self._get_collector(facing).get_summary()

    def get_all_summaries(self) -> dict[str, StatsSummary]:
        """Summaries for every facing recorded so far."""
        with self._lock:
            collectors = list(self._collectors.items())
        return {facing: c.get_summary() for facing, c in collectors}

    def reset(self, facing: str | None = None) -> None:
        """Reset one facing, or all of them when facing is None."""
        with self._lock:
            if facing is None:
                targets = list(self._collectors.values())
            else:
                collector = self._collectors.get(facing)
                targets = [collector] if collector else []
        for collector in targets:
            collector.reset()

    def to_dict(self) -> dict[str, Any]:
        """Export all summaries as a JSON-compatible dict keyed by facing."""
        return {
            "facings": {
                facing: summary.to_dict()
                for facing, summary in self.get_all_summaries().items()
            }
        }


def _percentile(sorted_data: list[float], p: float) -> float:
    """Percentile of pre-sorted data with linear interpolation.

    Matches numpy's 'linear' method.

    Raises:
        ValueError: If p is outside [0, 100].

    Example:
        >>> _percentile([100.0, 150.0, 200.0], 95)
        195.0
    """
    if not 0 <= p <= 100:
        raise ValueError(f"Percentile must be between 0 and 100, got {p}")

    if not sorted_data:
        return 0.0

    k = (len(sorted_data) - 1) * (p / 100)
    floor_idx = int(k)
    ceil_idx = min(floor_idx + 1, len(sorted_data) - 1)

    if floor_idx == ceil_idx:
        return sorted_data[floor_idx]

    fraction = k - floor_idx
    return sorted_data[floor_idx] * (1 - fraction) + sorted_data[ceil_idx] * fraction
