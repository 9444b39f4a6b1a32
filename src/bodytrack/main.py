#!/usr/bin/env python3
"""
BodyTrack - real-time body and hand landmark tracking.
Application entry point and demo host.

Architecture:
    - core.FramePipeline runs read -> detect -> fuse -> record per frame
    - core.EventBus reports lifecycle, collisions and session exports
    - visualization.OverlayRenderer draws each FusedFrame

Usage:
    bodytrack                              # Webcam 0, window on
    bodytrack --source clip.mp4            # Video file
    bodytrack --action wave --no-display --max-frames 300
"""

import sys
import signal
import argparse
import logging

import cv2

from bodytrack import __version__
from bodytrack.capture.video_source import VideoSource, VideoSourceConfig
from bodytrack.core.errors import DetectorInitError, RecordingError
from bodytrack.core.events import EventBus, Events
from bodytrack.core.pipeline import FramePipeline, PipelineConfig, PipelineState
from bodytrack.recording.exporter import SessionExporter
from bodytrack.recording.session_recorder import RecorderConfig, SessionRecorder
from bodytrack.utils.config import Config
from bodytrack.utils.logger import StageReportLogger, setup_logging
from bodytrack.utils.performance_monitor import PerformanceMonitor
from bodytrack.visualization.overlay import OverlayConfig, OverlayRenderer

logger = logging.getLogger(__name__)

DEFAULT_ACTIONS = ["wave", "clap", "jump", "squat", "reach"]


class BodyTrackApp:
    """Demo application: camera window, action selection and recording keys."""

    def __init__(self, config: Config, display: bool = True, debug_video: bool = False,
                 action: str = None, output_dir: str = None):
        self._config = config
        self._display = display
        self._running = False
        self._auto_recording = False

        self._bus = EventBus()
        self._actions = list(config.recording.get("actions") or DEFAULT_ACTIONS)
        self._action = action

        # Capture
        self._source = VideoSource(VideoSourceConfig.from_dict(config.camera))

        # Detection (imported lazily so the rest of the package works without MediaPipe)
        from bodytrack.detection.hand_detector import HandDetectorConfig, MediaPipeHandBackend
        from bodytrack.detection.pose_detector import MediaPipePoseBackend, PoseDetectorConfig
        pose_backend = MediaPipePoseBackend(PoseDetectorConfig.from_dict(config.pose))
        hands_cfg = config.hands
        hand_backend = None
        if hands_cfg.get("enabled", True):
            hand_backend = MediaPipeHandBackend(HandDetectorConfig.from_dict(hands_cfg))

        # Recording
        recording_cfg = config.recording
        self._exporter = SessionExporter(output_dir or recording_cfg.get("output_dir", "data/sessions"))
        recorder = SessionRecorder(RecorderConfig.from_dict(recording_cfg))

        # Visualization
        display_cfg = config.display
        overlay_cfg = OverlayConfig.from_dict(display_cfg)
        overlay_cfg.debug_video = overlay_cfg.debug_video or debug_video
        overlay_cfg.min_confidence = config.tracking.min_confidence
        self._renderer = OverlayRenderer(overlay_cfg)
        self._window_name = display_cfg.get("window_name", "BodyTrack")

        self._perf = PerformanceMonitor(window_size=config.get("performance.metrics_window", 100))
        self._perf_log = StageReportLogger(
            self._perf, interval_sec=float(config.get("performance.log_interval_sec", 5.0)))

        self._pipeline = FramePipeline(
            source=self._source,
            pose_backend=pose_backend,
            hand_backend=hand_backend,
            tracking_config=config.tracking,
            recorder=recorder,
            exporter=self._exporter,
            event_bus=self._bus,
            performance_monitor=self._perf,
            config=PipelineConfig.from_dict(display_cfg),
        )

        self._bus.subscribe(Events.SESSION_EXPORTED, self._on_session_exported)
        self._bus.subscribe(Events.SESSION_EXPORT_FAILED, self._on_export_failed)
        self._bus.subscribe(Events.HAND_DETECTOR_UNAVAILABLE, self._on_hands_unavailable)

        logger.info("BodyTrackApp initialized (display=%s)", display)

    def _on_session_exported(self, **kwargs):
        data_path, meta_path = kwargs.get("paths", (None, None))
        logger.info("Session saved: %s, %s", data_path, meta_path)

    def _on_export_failed(self, **kwargs):
        logger.error("Session export failed: %s", kwargs.get("error", ""))

    def _on_hands_unavailable(self, **kwargs):
        logger.warning("Hand tracking disabled for this run")

    def start(self, max_frames: int = None) -> bool:
        """Open the source, initialize detectors and run the loop."""
        if not self._source.open():
            logger.error("Failed to open video source. Check connection and permissions.")
            return False

        try:
            self._pipeline.initialize()
        except DetectorInitError as e:
            logger.error("Tracking unavailable: %s", e)
            self._pipeline.stop(reason="init_failed")
            return False

        self._pipeline.start()
        self._running = True

        if self._action:
            self._toggle_recording()
            self._auto_recording = self._pipeline.is_recording

        if self._display:
            self._run_display_loop(max_frames)
        else:
            self._run_headless(max_frames)

        self._shutdown()
        return True

    def _run_headless(self, max_frames):
        produced = 0
        while self._running and self._pipeline.state is PipelineState.STREAMING:
            if self._pipeline.tick() is not None:
                produced += 1
            self._perf_log.maybe_log()
            if max_frames is not None and produced >= max_frames:
                break
            if self._auto_recording and not self._pipeline.is_recording:
                # auto-stopped after the fixed duration
                break

    def _run_display_loop(self, max_frames):
        width, height = self._pipeline.context.viewport
        cv2.namedWindow(self._window_name, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(self._window_name, width, height)
        produced = 0

        while self._running and self._pipeline.state is PipelineState.STREAMING:
            self._sync_viewport()
            fused = self._pipeline.tick()
            if fused is not None:
                produced += 1
                canvas = self._renderer.render(
                    fused, self._pipeline.context.viewport,
                    source_image=self._pipeline.last_image,
                    fps=self._perf.fps,
                    action_label=self._action,
                )
                cv2.imshow(self._window_name, canvas)
            self._perf_log.maybe_log()

            if max_frames is not None and produced >= max_frames:
                break

            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                self._running = False
            elif key == ord("r"):
                self._toggle_recording()
            elif key == ord("i"):
                self._renderer.toggle_info_panel()
            elif key == ord("d"):
                state = self._renderer.toggle_debug_video()
                logger.info("Debug video %s", "on" if state else "off")
            elif ord("1") <= key <= ord("9"):
                self._select_action(key - ord("1"))

    def _sync_viewport(self):
        """Follow window resizes."""
        try:
            _, _, w, h = cv2.getWindowImageRect(self._window_name)
        except cv2.error:
            return
        if w > 0 and h > 0:
            self._pipeline.set_viewport(w, h)

    def _select_action(self, index: int):
        if index >= len(self._actions):
            return
        if self._pipeline.is_recording:
            logger.info("Cannot change action while recording")
            return
        self._action = self._actions[index]
        logger.info("Action selected: %s", self._action)

    def _toggle_recording(self):
        if self._pipeline.is_recording:
            self._pipeline.stop_recording()
            return
        try:
            self._pipeline.start_recording(self._action)
            logger.info("Recording '%s' started", self._action)
        except RecordingError as e:
            logger.warning("%s", e)

    def _shutdown(self):
        """Clean shutdown of all modules."""
        logger.info("Shutting down...")
        self._running = False
        self._pipeline.stop()
        if self._display:
            cv2.destroyAllWindows()

        self._perf.print_report()
        logger.info("Shutdown complete.")

    def handle_signal(self, signum, frame):
        """Handle SIGINT/SIGTERM for graceful shutdown."""
        logger.info("Signal %d received, shutting down...", signum)
        self._running = False


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="BodyTrack - real-time body and hand landmark tracking"
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to config.yaml (default: $BODYTRACK_CONFIG, else ./config/config.yaml)"
    )
    parser.add_argument(
        "--source", type=str, default=None,
        help="Camera device index or video file path"
    )
    parser.add_argument(
        "--action", type=str, default=None,
        help="Action label; starts recording immediately"
    )
    parser.add_argument(
        "--output-dir", type=str, default=None,
        help="Directory for exported sessions"
    )
    parser.add_argument(
        "--no-display", action="store_true",
        help="Run without a window"
    )
    parser.add_argument(
        "--max-frames", type=int, default=None,
        help="Stop after this many frames"
    )
    parser.add_argument(
        "--debug-video", action="store_true",
        help="Draw the camera frame under the overlay"
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    overrides = {}
    if args.source is not None:
        overrides["camera"] = {"source": int(args.source) if args.source.isdigit() else args.source}

    config = Config()
    config.load(config_path=args.config, overrides=overrides)

    log_cfg = config.get_section("logging")
    setup_logging(
        level=log_cfg.get("level", "INFO"),
        log_file=log_cfg.get("file"),
        max_size_mb=log_cfg.get("max_size_mb", 10),
        backup_count=log_cfg.get("backup_count", 3),
        component_levels=log_cfg.get("levels"),
    )

    logger.info("=" * 60)
    logger.info("  BODYTRACK - body and hand landmark tracking")
    logger.info("  Version: %s", __version__)
    logger.info("  Source: %s", config.get("camera.source", 0))
    logger.info("=" * 60)

    app = BodyTrackApp(
        config,
        display=not args.no_display,
        debug_video=args.debug_video,
        action=args.action,
        output_dir=args.output_dir,
    )

    signal.signal(signal.SIGINT, app.handle_signal)
    signal.signal(signal.SIGTERM, app.handle_signal)

    return 0 if app.start(max_frames=args.max_frames) else 1


if __name__ == "__main__":
    sys.exit(main())
