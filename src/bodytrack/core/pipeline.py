"""
Frame fusion pipeline.

Orchestrates one frame at a time on a single thread:

    VideoSource -> PoseBackend + HandBackend -> coordinate mapping
    -> LandmarkSmoother -> CollisionDetector -> FusedFrame
    -> {rendering sink, SessionRecorder}

Each frame runs to completion before the next one is taken; a slow detector
delays the next frame instead of overlapping it. All cross-frame state
(render mapping, smoothing, collision history, recording buffer) lives in a
PipelineContext owned by the pipeline.

Lifecycle: IDLE -> DETECTORS_READY -> STREAMING -> STOPPED
"""

import time
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional, Tuple

from bodytrack.core.errors import (
    DetectorInitError, PipelineStateError, RecordingError, SessionExportError,
)
from bodytrack.core.events import EventBus, Events
from bodytrack.core.types import (
    FrameRecord, FusedFrame, RenderState, SessionArtifacts, Target,
)
from bodytrack.recording.session_recorder import SessionRecorder
from bodytrack.tracking.collision_detector import CollisionDetector
from bodytrack.tracking.coordinate_mapper import (
    compute_render_state, map_hand_landmarks, map_keypoints,
)
from bodytrack.tracking.landmark_smoother import LandmarkSmoother
from bodytrack.utils.config import TrackingConfig
from bodytrack.utils.performance_monitor import PerformanceMonitor

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "idle"
    DETECTORS_READY = "detectors_ready"
    STREAMING = "streaming"
    STOPPED = "stopped"


@dataclass
class PipelineConfig:
    """Viewport and frame pacing."""
    viewport_width: int = 1280
    viewport_height: int = 720
    target_fps: float = 60.0

    @classmethod
    def from_dict(cls, d: dict) -> "PipelineConfig":
        return cls(
            viewport_width=int(d.get("width", 1280)),
            viewport_height=int(d.get("height", 720)),
            target_fps=float(d.get("target_fps", 60.0)),
        )


@dataclass
class PipelineContext:
    """Cross-frame state, mutated only by the pipeline."""
    smoother: LandmarkSmoother
    collisions: CollisionDetector
    recorder: SessionRecorder
    render_state: RenderState = field(default_factory=RenderState)
    viewport: Tuple[int, int] = (0, 0)
    source_size: Tuple[int, int] = (0, 0)
    targets: Tuple[Target, ...] = ()
    frame_index: int = 0
    last_timestamp_ms: Optional[int] = None


class FramePipeline:
    """Single-threaded pose + hand fusion pipeline.

    Example:
        >>> pipeline = FramePipeline(source, pose_backend, hand_backend)
        >>> pipeline.initialize()
        >>> pipeline.start()
        >>> fused = pipeline.tick()      # one frame, or None if skipped
        >>> pipeline.stop()
    """

    def __init__(
        self,
        source,
        pose_backend,
        hand_backend=None,
        tracking_config: Optional[TrackingConfig] = None,
        recorder: Optional[SessionRecorder] = None,
        exporter=None,
        sink: Optional[Callable[[FusedFrame], None]] = None,
        event_bus: Optional[EventBus] = None,
        performance_monitor: Optional[PerformanceMonitor] = None,
        config: Optional[PipelineConfig] = None,
        clock=time.perf_counter,
        sleep=time.sleep,
    ):
        self._source = source
        self._pose = pose_backend
        self._hand = hand_backend
        self._exporter = exporter
        self._sink = sink
        self._bus = event_bus or EventBus()
        self._perf = performance_monitor or PerformanceMonitor(clock=clock)
        self.config = config or PipelineConfig()
        self._clock = clock
        self._sleep = sleep

        tracking_config = tracking_config or TrackingConfig()
        self._context = PipelineContext(
            smoother=LandmarkSmoother(tracking_config),
            collisions=CollisionDetector(tracking_config),
            recorder=recorder or SessionRecorder(clock=clock),
            viewport=(self.config.viewport_width, self.config.viewport_height),
            targets=tuple(tracking_config.targets),
        )

        self._state = PipelineState.IDLE
        self._in_flight = False
        self._last_image = None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def initialize(self):
        """Initialize both detector backends.

        Pose failure is fatal; hand failure leaves the pipeline pose-only.

        Raises:
            DetectorInitError: pose backend could not be initialized
            PipelineStateError: already initialized or stopped
        """
        if self._state is not PipelineState.IDLE:
            raise PipelineStateError(f"Cannot initialize from state {self._state.value}")

        try:
            self._pose.initialize()
        except DetectorInitError:
            logger.error("Pose detector failed to initialize; tracking unavailable")
            raise
        except Exception as e:
            logger.error("Pose detector failed to initialize: %s", e)
            raise DetectorInitError(getattr(self._pose, "name", "pose"), str(e)) from e

        if self._hand is not None:
            try:
                self._hand.initialize()
            except Exception as e:
                logger.warning("Hand detector unavailable, continuing pose-only: %s", e)
                self._bus.emit(Events.HAND_DETECTOR_UNAVAILABLE, error=str(e))
                self._hand = None

        self._recompute_render_state()
        self._state = PipelineState.DETECTORS_READY
        logger.info("Detectors ready (hands %s)", "on" if self.hands_enabled else "off")
        self._bus.emit(Events.PIPELINE_READY, hands_enabled=self.hands_enabled)

    def start(self):
        """Begin streaming frames."""
        if self._state is not PipelineState.DETECTORS_READY:
            raise PipelineStateError(f"Cannot start streaming from state {self._state.value}")
        self._state = PipelineState.STREAMING
        logger.info("Streaming started")
        self._bus.emit(Events.STREAM_STARTED)

    def stop(self, reason: str = "requested"):
        """Stop streaming, finalize any recording and release all resources."""
        if self._state is PipelineState.STOPPED:
            return
        self._state = PipelineState.STOPPED

        if self._context.recorder.is_recording:
            logger.info("Pipeline stopping during recording; finalizing session")
            self._finish_recording()

        for backend in (self._pose, self._hand):
            if backend is None:
                continue
            try:
                backend.close()
            except Exception as e:
                logger.error("Error closing %s: %s", getattr(backend, "name", backend), e)

        self._source.release()
        logger.info("Pipeline stopped (%s) after %d frames", reason, self._context.frame_index)
        self._bus.emit(Events.STREAM_STOPPED, reason=reason, frames=self._context.frame_index)

    def run(self, max_frames: Optional[int] = None,
            on_frame: Optional[Callable[[FusedFrame], None]] = None) -> int:
        """Drive tick() until stopped, paced to the target frame rate.

        Returns:
            Number of frames produced
        """
        interval = 1.0 / self.config.target_fps if self.config.target_fps > 0 else 0.0
        produced = 0

        while self._state is PipelineState.STREAMING:
            started = self._clock()
            fused = self.tick()
            if fused is not None:
                produced += 1
                if on_frame is not None:
                    on_frame(fused)
                if max_frames is not None and produced >= max_frames:
                    break
            remaining = interval - (self._clock() - started)
            if remaining > 0:
                self._sleep(remaining)

        return produced

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    def set_viewport(self, width: int, height: int):
        """Display size changed; recompute the mapping."""
        if (width, height) == self._context.viewport:
            return
        self._context.viewport = (int(width), int(height))
        self._recompute_render_state()
        self._bus.emit(Events.VIEWPORT_CHANGED, width=width, height=height,
                       render_state=self._context.render_state)

    def set_targets(self, targets: Iterable[Target]):
        self._context.targets = tuple(targets)

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    def start_recording(self, action_label: Optional[str]):
        """Start a session recording.

        Raises:
            RecordingError: no action label or not streaming
        """
        try:
            self._context.recorder.start(
                action_label,
                streaming=self._state is PipelineState.STREAMING,
                now=self._clock(),
            )
        except RecordingError as e:
            logger.warning("Recording not started: %s", e)
            raise
        self._bus.emit(Events.RECORDING_STARTED, action=action_label)

    def stop_recording(self) -> Optional[SessionArtifacts]:
        """Stop the current recording and export it if anything was captured."""
        if not self._context.recorder.is_recording:
            return None
        return self._finish_recording()

    def _finish_recording(self) -> Optional[SessionArtifacts]:
        try:
            artifacts = self._context.recorder.stop()
        except SessionExportError as e:
            logger.error("Session serialization failed: %s", e)
            self._bus.emit(Events.RECORDING_STOPPED, artifacts=None)
            self._bus.emit(Events.SESSION_EXPORT_FAILED, error=str(e))
            return None

        self._bus.emit(Events.RECORDING_STOPPED, artifacts=artifacts)
        if artifacts is None or self._exporter is None:
            return artifacts

        try:
            paths = self._exporter.save(artifacts)
        except SessionExportError as e:
            logger.error("Session export failed: %s", e)
            self._bus.emit(Events.SESSION_EXPORT_FAILED, error=str(e), artifacts=artifacts)
            return artifacts

        self._bus.emit(Events.SESSION_EXPORTED, artifacts=artifacts, paths=paths)
        return artifacts

    # -------------------------------------------------------------------------
    # Per-frame processing
    # -------------------------------------------------------------------------

    def tick(self) -> Optional[FusedFrame]:
        """Process one frame.

        Returns:
            FusedFrame, or None when the frame was skipped (not streaming,
            frame not ready, detection failure, or a call already in flight)
        """
        if self._state is not PipelineState.STREAMING or self._in_flight:
            return None

        self._in_flight = True
        try:
            with self._perf.measure("total"):
                return self._process_frame()
        finally:
            self._in_flight = False

    def _process_frame(self) -> Optional[FusedFrame]:
        ctx = self._context

        if not self._source.is_open:
            logger.warning("Video source lost")
            self.stop(reason="source_lost")
            return None

        # The session clock advances on every scheduled tick, including ones
        # whose frame is later skipped.
        if ctx.recorder.is_recording and ctx.recorder.poll(self._clock()):
            self._finish_recording()

        with self._perf.measure("read"):
            frame = self._source.read()
        if frame is None or not frame.is_valid:
            self._perf.record_drop()
            return None

        self._last_image = frame.image
        self._sync_source_size(frame.size)
        rgb = frame.rgb
        timestamp_ms = self._next_timestamp_ms()

        try:
            with self._perf.measure("pose"):
                keypoints = list(self._pose.detect(rgb, timestamp_ms))
        except Exception as e:
            logger.error("Pose detection failed on frame %d: %s", ctx.frame_index, e)
            self._bus.emit(Events.DETECTION_FAILED, backend="pose",
                           error=str(e), frame_index=ctx.frame_index)
            self._perf.record_drop()
            return None

        hands = []
        if self._hand is not None:
            try:
                with self._perf.measure("hands"):
                    hands = list(self._hand.detect(rgb, timestamp_ms))
            except Exception as e:
                logger.error("Hand detection failed on frame %d: %s", ctx.frame_index, e)
                self._bus.emit(Events.DETECTION_FAILED, backend="hands",
                               error=str(e), frame_index=ctx.frame_index)
                hands = []

        with self._perf.measure("fusion"):
            render_state = ctx.render_state
            display_keypoints = map_keypoints(render_state, keypoints)
            display_hands = tuple(map_hand_landmarks(render_state, h.landmarks) for h in hands)
            zones = ctx.smoother.update(display_keypoints, timestamp_ms)
            collisions = ctx.collisions.detect(zones, ctx.targets, timestamp_ms)

            record = FrameRecord(
                timestamp_ms=float(timestamp_ms),
                frame_index=ctx.frame_index,
                pose2d=tuple(keypoints),
                hands2d=tuple(h.landmarks.copy() for h in hands),
                hands3d=tuple(h.landmarks_3d.copy() for h in hands),
                handedness=tuple(h.handedness_entry() for h in hands),
            )

        if collisions:
            self._bus.emit(Events.COLLISION_DETECTED, events=collisions,
                           frame_index=ctx.frame_index)

        if ctx.recorder.is_recording:
            with self._perf.measure("record"):
                if ctx.recorder.poll(self._clock()):
                    self._finish_recording()
                else:
                    ctx.recorder.record_frame(record)

        fused = FusedFrame(
            frame_index=ctx.frame_index,
            timestamp_ms=timestamp_ms,
            render_state=render_state,
            keypoints=tuple(display_keypoints),
            hands=display_hands,
            handedness=tuple(h.handedness for h in hands),
            tracked_zones=zones,
            collisions=tuple(collisions),
            recent_collisions=tuple(ctx.collisions.history.recent(timestamp_ms)),
            targets=ctx.targets,
            hands_enabled=self.hands_enabled,
            recording=ctx.recorder.is_recording,
            recording_elapsed_sec=ctx.recorder.elapsed_sec,
            record=record,
        )

        if self._sink is not None:
            try:
                self._sink(fused)
            except Exception as e:
                logger.error("Rendering sink failed on frame %d: %s", ctx.frame_index, e)

        ctx.frame_index += 1
        self._perf.tick()
        return fused

    def _next_timestamp_ms(self) -> int:
        """Strictly increasing millisecond timestamp from the monotonic clock."""
        ts = int(self._clock() * 1000)
        last = self._context.last_timestamp_ms
        if last is not None and ts <= last:
            ts = last + 1
        self._context.last_timestamp_ms = ts
        return ts

    def _sync_source_size(self, size: Tuple[int, int]):
        if size != self._context.source_size:
            logger.info("Source resolution: %dx%d", size[0], size[1])
            self._context.source_size = size
            self._recompute_render_state()

    def _recompute_render_state(self):
        sw, sh = self._context.source_size
        dw, dh = self._context.viewport
        self._context.render_state = compute_render_state(sw, sh, dw, dh)
        logger.debug("Render state: %s", self._context.render_state)

    # -------------------------------------------------------------------------
    # Accessors
    # -------------------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def context(self) -> PipelineContext:
        return self._context

    @property
    def render_state(self) -> RenderState:
        return self._context.render_state

    @property
    def hands_enabled(self) -> bool:
        return self._hand is not None

    @property
    def is_recording(self) -> bool:
        return self._context.recorder.is_recording

    @property
    def performance(self) -> PerformanceMonitor:
        return self._perf

    @property
    def last_image(self):
        """BGR image of the most recently read frame."""
        return self._last_image

    @property
    def frame_count(self) -> int:
        return self._context.frame_index
