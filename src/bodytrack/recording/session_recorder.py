"""
Fixed-duration session recorder.

Accumulates fused frame records while a recording is active, advances a
100 ms cadence timer from the frame loop, and on stop serializes the
session into the binary payload plus its JSON metadata. All calls come
from the pipeline thread; the timer is polled rather than threaded.
"""

import os
import time
import math
import locale
import logging
import platform
import struct
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from bodytrack import __version__
from bodytrack.core.errors import RecordingError, SessionExportError, SessionFormatError
from bodytrack.core.types import (
    FrameRecord, SessionArtifacts, SessionMetadata, SESSION_SCHEMA_VERSION,
)
from bodytrack.recording.session_codec import encode_session

logger = logging.getLogger(__name__)


@dataclass
class RecorderConfig:
    """Recording duration and cadence."""
    max_duration_sec: float = 10.0
    timer_interval_ms: int = 100
    max_hands: int = 2

    @classmethod
    def from_dict(cls, d: dict) -> "RecorderConfig":
        return cls(
            max_duration_sec=float(d.get("max_duration_sec", 10.0)),
            timer_interval_ms=int(d.get("timer_interval_ms", 100)),
            max_hands=int(d.get("max_hands", 2)),
        )


class RecordingTimer:
    """Counts whole fixed-interval ticks since start.

    Elapsed time is ticks * interval, so it only advances in interval steps.
    With `max_ticks` set the count saturates there, so a late poll after a
    stall reports the cap rather than the wall time that passed.
    """

    def __init__(self, interval_ms: int = 100, max_ticks: Optional[int] = None):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        if max_ticks is not None and max_ticks < 0:
            raise ValueError("max_ticks must be non-negative")
        self._interval_ms = interval_ms
        self._max_ticks = max_ticks
        self._start = None
        self._ticks = 0

    @classmethod
    def for_duration(cls, interval_ms: int, max_duration_sec: float) -> "RecordingTimer":
        """Timer that saturates at the first tick reaching `max_duration_sec`."""
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        max_ticks = math.ceil(max_duration_sec * 1000.0 / interval_ms - 1e-9)
        return cls(interval_ms, max_ticks=max(0, max_ticks))

    def start(self, now: float):
        self._start = now
        self._ticks = 0

    def poll(self, now: float) -> float:
        """Advance to `now` (seconds) and return elapsed seconds."""
        if self._start is None:
            return self.elapsed_sec
        elapsed_ms = int((now - self._start) * 1000 + 1e-6)
        ticks = max(self._ticks, elapsed_ms // self._interval_ms)
        if self._max_ticks is not None:
            ticks = min(ticks, self._max_ticks)
        self._ticks = ticks
        return self.elapsed_sec

    def stop(self):
        self._start = None

    @property
    def is_running(self) -> bool:
        return self._start is not None

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def elapsed_sec(self) -> float:
        return self._ticks * self._interval_ms / 1000.0


def device_info() -> dict:
    """Describe the recording host for the metadata sidecar."""
    language = locale.getlocale()[0] or os.environ.get("LANG", "unknown")
    return {
        "userAgent": f"bodytrack/{__version__} Python/{platform.python_version()}",
        "platform": platform.platform(),
        "language": language,
    }


class SessionRecorder:
    """Buffers FrameRecords for one session and serializes them on stop.

    Example:
        >>> recorder = SessionRecorder()
        >>> recorder.start("wave", streaming=True, now=0.0)
        >>> recorder.record_frame(record)
        >>> if recorder.poll(now):
        ...     artifacts = recorder.stop()
    """

    def __init__(self, config: Optional[RecorderConfig] = None,
                 clock=time.perf_counter, wall_clock=time.time):
        self.config = config or RecorderConfig()
        self._clock = clock
        self._wall_clock = wall_clock
        self._timer = RecordingTimer.for_duration(
            self.config.timer_interval_ms, self.config.max_duration_sec)
        self._frames: List[FrameRecord] = []
        self._action_label: Optional[str] = None
        self._started_wall: Optional[float] = None

    def start(self, action_label: Optional[str], streaming: bool, now: Optional[float] = None):
        """Begin a new session.

        Raises:
            RecordingError: no action label, stream not active, or already recording
        """
        if not action_label:
            raise RecordingError("Select an action before recording")
        if not streaming:
            raise RecordingError("Cannot record: video stream is not active")
        if self.is_recording:
            raise RecordingError("A recording is already in progress")

        self._frames = []
        self._action_label = action_label
        self._started_wall = self._wall_clock()
        self._timer.start(self._clock() if now is None else now)
        logger.info("Recording started: action=%s, max %.1fs",
                    action_label, self.config.max_duration_sec)

    def record_frame(self, record: FrameRecord) -> bool:
        """Append a frame while recording. Returns False if not recording."""
        if not self.is_recording:
            return False
        if self._timer.elapsed_sec >= self.config.max_duration_sec:
            return False
        self._frames.append(record)
        return True

    def poll(self, now: Optional[float] = None) -> bool:
        """Advance the cadence timer. True once the session duration is reached."""
        if not self.is_recording:
            return False
        elapsed = self._timer.poll(self._clock() if now is None else now)
        return elapsed >= self.config.max_duration_sec

    def stop(self) -> Optional[SessionArtifacts]:
        """End the session and serialize it.

        The buffer is discarded whether or not serialization succeeds.

        Returns:
            SessionArtifacts, or None when no frames were recorded

        Raises:
            SessionExportError: the buffered frames could not be encoded
        """
        if not self.is_recording:
            return None

        self._timer.stop()
        frames, self._frames = self._frames, []
        duration = self._timer.elapsed_sec
        action = self._action_label
        started = self._started_wall
        self._action_label = None
        self._started_wall = None

        if not frames:
            logger.info("Recording stopped with no frames; nothing to save")
            return None

        try:
            data = encode_session(frames, max_hands=self.config.max_hands)
        except (struct.error, SessionFormatError, ValueError) as e:
            raise SessionExportError(f"Failed to encode session: {e}") from e

        metadata = build_metadata(frames, duration, action, started)
        logger.info("Recording stopped: %s, %d frames in %.1fs (%.1f fps), %d bytes",
                    metadata.session_id, metadata.frame_count, duration, metadata.fps, len(data))
        return SessionArtifacts(session_id=metadata.session_id, data=data, metadata=metadata)

    def cancel(self):
        """Clear the timer and drop any buffered frames."""
        if self.is_recording:
            logger.info("Recording cancelled, %d frames discarded", len(self._frames))
        self._timer.stop()
        self._frames = []
        self._action_label = None
        self._started_wall = None

    @property
    def is_recording(self) -> bool:
        return self._timer.is_running

    @property
    def elapsed_sec(self) -> float:
        return self._timer.elapsed_sec

    @property
    def frame_count(self) -> int:
        return len(self._frames)

    @property
    def action_label(self) -> Optional[str]:
        return self._action_label


def build_metadata(frames: List[FrameRecord], duration_sec: float,
                   action_label: Optional[str], started_wall: float) -> SessionMetadata:
    """Build the JSON sidecar for a finished session.

    fps is frames / duration, or 0.0 when the duration is zero.
    """
    frame_count = len(frames)
    fps = frame_count / duration_sec if duration_sec > 0 else 0.0
    started = datetime.fromtimestamp(started_wall, tz=timezone.utc)
    return SessionMetadata(
        session_id=f"session_{int(started_wall * 1000)}",
        timestamp_iso=started.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
        duration_sec=duration_sec,
        frame_count=frame_count,
        fps=fps,
        action_label=action_label,
        device=device_info(),
        hand_counts=[f.hand_count for f in frames],
        schema_version=SESSION_SCHEMA_VERSION,
    )
