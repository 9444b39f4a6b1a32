"""
Per-stage latency and frame-rate tracking for the frame loop.
"""

import time
import logging
from collections import deque
from contextlib import contextmanager

logger = logging.getLogger(__name__)

PIPELINE_STAGES = ("read", "pose", "hands", "fusion", "record", "total")


class PerformanceMonitor:
    """Tracks FPS, per-stage latency and skipped frames over a rolling window."""

    def __init__(self, window_size=100, clock=time.perf_counter):
        self._window_size = window_size
        self._clock = clock

        self._frame_times = deque(maxlen=window_size)
        self._last_frame_time = None

        self._stage_times = {name: deque(maxlen=window_size) for name in PIPELINE_STAGES}

        self._frame_count = 0
        self._skipped_frames = 0
        self._start_time = clock()

    @contextmanager
    def measure(self, stage_name: str):
        """Context manager to measure one stage's duration."""
        start = self._clock()
        try:
            yield
        finally:
            elapsed_ms = (self._clock() - start) * 1000
            if stage_name not in self._stage_times:
                self._stage_times[stage_name] = deque(maxlen=self._window_size)
            self._stage_times[stage_name].append(elapsed_ms)

    def tick(self):
        """Call once per produced frame to track FPS."""
        now = self._clock()
        if self._last_frame_time is not None:
            self._frame_times.append(now - self._last_frame_time)
        self._last_frame_time = now
        self._frame_count += 1

    def record_drop(self):
        """Record a skipped frame (not ready or detection failure)."""
        self._skipped_frames += 1

    @property
    def fps(self) -> float:
        """Current frames per second (rolling average)."""
        if len(self._frame_times) < 2:
            return 0.0
        avg_interval = sum(self._frame_times) / len(self._frame_times)
        return 1.0 / avg_interval if avg_interval > 0 else 0.0

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def skipped_frames(self) -> int:
        return self._skipped_frames

    def get_stage_latency(self, stage_name: str) -> float:
        """Average latency of a stage in ms."""
        times = self._stage_times.get(stage_name)
        if not times:
            return 0.0
        return sum(times) / len(times)

    def get_report(self) -> dict:
        """Snapshot of frame-loop performance."""
        return {
            "fps": round(self.fps, 1),
            "total_frames": self._frame_count,
            "skipped_frames": self._skipped_frames,
            "uptime_seconds": round(self._clock() - self._start_time, 1),
            "latencies_ms": {
                name: round(self.get_stage_latency(name), 2) for name in self._stage_times
            },
        }

    def print_report(self):
        """Log a formatted performance report."""
        report = self.get_report()
        logger.info("=" * 60)
        logger.info("PERFORMANCE REPORT")
        logger.info("=" * 60)
        logger.info("FPS:            %.1f", report["fps"])
        logger.info("Total Frames:   %d", report["total_frames"])
        logger.info("Skipped Frames: %d", report["skipped_frames"])
        logger.info("Uptime:         %.1fs", report["uptime_seconds"])
        logger.info("-" * 40)
        logger.info("Stage Latencies (avg ms):")
        for stage, latency in report["latencies_ms"].items():
            logger.info("  %-18s %7.2f ms", stage, latency)
        logger.info("=" * 60)

    def reset(self):
        """Reset all metrics."""
        self._frame_times.clear()
        self._last_frame_time = None
        for times in self._stage_times.values():
            times.clear()
        self._frame_count = 0
        self._skipped_frames = 0
        self._start_time = self._clock()
