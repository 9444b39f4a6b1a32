"""
Tests for Detector Backends
============================

Result conversion is checked against stand-in result objects; no model is
loaded.
"""

import pytest
import numpy as np
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

pytest.importorskip("mediapipe")

from bodytrack.core.errors import DetectorInitError
from bodytrack.core.types import BODY_KEYPOINT_NAMES
from bodytrack.detection.hand_detector import (
    HandDetectorConfig, MediaPipeHandBackend, hand_result_to_observations,
)
from bodytrack.detection.pose_detector import (
    BLAZEPOSE_TO_COCO, MediaPipePoseBackend, PoseDetectorConfig, pose_landmarks_to_keypoints,
)


def landmark(x, y, z=0.0, visibility=None):
    return SimpleNamespace(x=x, y=y, z=z, visibility=visibility)


class TestPoseConversion:
    """Test suite for BlazePose to COCO-17 reduction."""

    def test_selects_and_scales_coco_points(self):
        landmarks = [landmark(i / 100.0, i / 200.0, visibility=0.8) for i in range(33)]

        keypoints = pose_landmarks_to_keypoints(landmarks, 640, 480)

        assert [kp.name for kp in keypoints] == list(BODY_KEYPOINT_NAMES)
        wrist = keypoints[BODY_KEYPOINT_NAMES.index("left_wrist")]
        assert wrist.x == pytest.approx(0.15 * 640)
        assert wrist.y == pytest.approx(0.075 * 480)
        assert wrist.score == pytest.approx(0.8)

    def test_visibility_clamped_and_defaulted(self):
        landmarks = [landmark(0.5, 0.5, visibility=1.7) for _ in range(33)]
        landmarks[BLAZEPOSE_TO_COCO["nose"]] = landmark(0.5, 0.5, visibility=None)

        keypoints = pose_landmarks_to_keypoints(landmarks, 100, 100)

        assert keypoints[0].score == 0.0
        assert keypoints[1].score == 1.0

    def test_init_failure_wrapped(self, tmp_path):
        backend = MediaPipePoseBackend(PoseDetectorConfig(model_path=str(tmp_path / "pose.task")))

        with patch("bodytrack.detection.pose_detector.ensure_model", side_effect=OSError("offline")):
            with pytest.raises(DetectorInitError, match="offline"):
                backend.initialize()

    def test_detect_before_initialize(self):
        backend = MediaPipePoseBackend()

        with pytest.raises(RuntimeError):
            backend.detect(np.zeros((4, 4, 3), dtype=np.uint8), 0)

    def test_config_from_dict_keeps_default_model(self):
        config = PoseDetectorConfig.from_dict({"model_path": None, "min_detection_confidence": 0.7})

        assert config.model_path.endswith("pose_landmarker_full.task")
        assert config.min_detection_confidence == 0.7


class TestHandConversion:
    """Test suite for HandLandmarker result conversion."""

    def test_landmarks_world_and_handedness(self):
        hand = [landmark(i / 21.0, 0.5, -0.01 * i) for i in range(21)]
        world = [landmark(0.01 * i, 0.02, 0.03) for i in range(21)]
        result = SimpleNamespace(
            hand_landmarks=[hand],
            hand_world_landmarks=[world],
            handedness=[[SimpleNamespace(category_name="Right", score=0.97)]],
        )

        observations = hand_result_to_observations(result)

        assert len(observations) == 1
        obs = observations[0]
        assert obs.landmarks.shape == (21, 3)
        assert obs.landmarks[20, 0] == pytest.approx(20 / 21.0)
        assert obs.world_landmarks[3, 0] == pytest.approx(0.03)
        assert obs.landmarks_3d is obs.world_landmarks
        assert obs.handedness_entry() == {"category": "Right", "score": pytest.approx(0.97)}

    def test_missing_world_falls_back_to_normalized(self):
        hand = [landmark(0.1, 0.2, 0.3) for _ in range(21)]
        result = SimpleNamespace(hand_landmarks=[hand, hand], hand_world_landmarks=[], handedness=[])

        observations = hand_result_to_observations(result)

        assert len(observations) == 2
        assert observations[1].world_landmarks is None
        assert observations[1].landmarks_3d is observations[1].landmarks
        assert observations[1].handedness_entry() is None

    def test_no_hands(self):
        result = SimpleNamespace(hand_landmarks=[], hand_world_landmarks=[], handedness=[])

        assert hand_result_to_observations(result) == []

    def test_init_failure_wrapped(self, tmp_path):
        backend = MediaPipeHandBackend(HandDetectorConfig(model_path=str(tmp_path / "hand.task")))

        with patch("bodytrack.detection.hand_detector.ensure_model", side_effect=OSError("offline")):
            with pytest.raises(DetectorInitError):
                backend.initialize()

    def test_close_without_initialize(self):
        MediaPipeHandBackend().close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
