"""
Tests for Session Recorder
===========================
"""

import pytest
import numpy as np
import sys
from pathlib import Path
from unittest.mock import patch

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bodytrack.core.errors import RecordingError, SessionExportError
from bodytrack.core.types import FrameRecord, Keypoint2D
from bodytrack.recording.session_codec import decode_session
from bodytrack.recording.session_recorder import (
    RecorderConfig, RecordingTimer, SessionRecorder, build_metadata,
)


def record(i: int, hands: int = 0) -> FrameRecord:
    return FrameRecord(
        timestamp_ms=i * 1000.0 / 30,
        frame_index=i,
        pose2d=(Keypoint2D("nose", float(i), float(i), 0.9),),
        hands3d=tuple(np.zeros((21, 3), dtype=np.float32) for _ in range(hands)),
    )


class TestRecordingTimer:
    """Test suite for the fixed-interval timer."""

    def test_counts_whole_ticks(self):
        timer = RecordingTimer(100)
        timer.start(0.0)

        assert timer.poll(0.05) == 0.0
        assert timer.poll(0.1) == pytest.approx(0.1)
        assert timer.poll(0.35) == pytest.approx(0.3)
        assert timer.ticks == 3

    def test_never_goes_backwards(self):
        timer = RecordingTimer(100)
        timer.start(10.0)
        timer.poll(10.5)

        assert timer.poll(10.2) == pytest.approx(0.5)

    def test_stop(self):
        timer = RecordingTimer(100)
        timer.start(0.0)
        timer.stop()

        assert not timer.is_running

    def test_rejects_bad_interval(self):
        with pytest.raises(ValueError):
            RecordingTimer(0)

    def test_saturates_at_max_ticks(self):
        timer = RecordingTimer(100, max_ticks=100)
        timer.start(0.0)

        assert timer.poll(12.34) == pytest.approx(10.0)
        assert timer.ticks == 100

    def test_for_duration_rounds_up_to_a_whole_tick(self):
        exact = RecordingTimer.for_duration(100, 10.0)
        uneven = RecordingTimer.for_duration(300, 10.0)
        exact.start(0.0)
        uneven.start(0.0)

        assert exact.poll(60.0) == 10.0
        assert uneven.poll(60.0) == pytest.approx(10.2)


class TestSessionRecorder:
    """Test suite for SessionRecorder."""

    @pytest.fixture
    def recorder(self):
        return SessionRecorder(RecorderConfig(), clock=lambda: 0.0, wall_clock=lambda: 1700000000.0)

    def test_start_without_label_fails(self, recorder):
        with pytest.raises(RecordingError):
            recorder.start(None, streaming=True, now=0.0)

        assert not recorder.is_recording
        assert not recorder.record_frame(record(0))
        assert recorder.frame_count == 0

    def test_start_without_stream_fails(self, recorder):
        with pytest.raises(RecordingError):
            recorder.start("wave", streaming=False, now=0.0)

        assert not recorder.is_recording

    def test_start_twice_fails(self, recorder):
        recorder.start("wave", streaming=True, now=0.0)

        with pytest.raises(RecordingError):
            recorder.start("clap", streaming=True, now=0.0)

    def test_ten_seconds_at_thirty_fps(self, recorder):
        recorder.start("wave", streaming=True, now=0.0)

        artifacts = None
        for i in range(400):
            now = i / 30.0
            if recorder.poll(now):
                artifacts = recorder.stop()
                break
            recorder.record_frame(record(i))

        assert artifacts is not None
        meta = artifacts.metadata
        assert meta.frame_count == 300
        assert meta.duration_sec == pytest.approx(10.0)
        assert meta.fps == pytest.approx(30.0)
        assert meta.action_label == "wave"
        assert not recorder.is_recording

    def test_sparse_frames_stop_at_exactly_ten_seconds(self, recorder):
        """Frames spaced wider than the tick interval still report the full duration."""
        recorder.start("wave", streaming=True, now=0.0)

        artifacts = None
        for i in range(100):
            if recorder.poll(i * 0.35):
                artifacts = recorder.stop()
                break
            recorder.record_frame(record(i))

        assert artifacts is not None
        assert artifacts.metadata.duration_sec == 10.0
        assert artifacts.metadata.frame_count == 29
        assert artifacts.metadata.fps == pytest.approx(2.9)

    def test_stop_with_no_frames(self, recorder):
        recorder.start("wave", streaming=True, now=0.0)

        assert recorder.stop() is None
        assert not recorder.is_recording

    def test_stop_when_idle(self, recorder):
        assert recorder.stop() is None

    def test_artifacts_decode(self, recorder):
        recorder.start("clap", streaming=True, now=0.0)
        recorder.record_frame(record(0, hands=1))
        recorder.record_frame(record(1, hands=0))
        recorder.record_frame(record(2, hands=2))
        recorder.poll(0.5)

        artifacts = recorder.stop()

        assert artifacts.session_id == "session_1700000000000"
        assert artifacts.metadata.hand_counts == [1, 0, 2]
        frames = decode_session(artifacts.data, artifacts.metadata.hand_counts)
        assert [len(f.hands) for f in frames] == [1, 0, 2]
        assert frames[2].pose[0].tolist() == [2.0, 2.0, pytest.approx(0.9)]

    def test_encode_failure_clears_buffer(self, recorder):
        recorder.start("wave", streaming=True, now=0.0)
        recorder.record_frame(record(0))

        with patch("bodytrack.recording.session_recorder.encode_session",
                   side_effect=ValueError("boom")):
            with pytest.raises(SessionExportError):
                recorder.stop()

        assert not recorder.is_recording
        assert recorder.frame_count == 0

    def test_cancel(self, recorder):
        recorder.start("wave", streaming=True, now=0.0)
        recorder.record_frame(record(0))
        recorder.cancel()

        assert not recorder.is_recording
        assert recorder.frame_count == 0


class TestMetadata:
    """Test suite for the JSON sidecar."""

    def test_zero_duration_fps(self):
        meta = build_metadata([record(0)], 0.0, "wave", 0.0)

        assert meta.fps == 0.0

    def test_to_dict_keys(self):
        meta = build_metadata([record(0), record(1, hands=1)], 1.0, "jump", 1700000000.5)
        d = meta.to_dict()

        assert d["sessionId"] == "session_1700000000500"
        assert d["timestamp"] == "2023-11-14T22:13:20.500Z"
        assert d["frameCount"] == 2
        assert d["fps"] == 2.0
        assert d["action"] == "jump"
        assert d["handCounts"] == [0, 1]
        assert d["schemaVersion"] == "1.0"
        assert "userAgent" in d["device"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
