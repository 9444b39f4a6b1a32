"""
Pose Detection - MediaPipe PoseLandmarker
=========================================

Runs the Tasks API PoseLandmarker in VIDEO mode and reduces BlazePose's 33
landmarks to the 17 COCO keypoints the rest of the pipeline uses.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import mediapipe as mp
from mediapipe.tasks import python as mp_python
from mediapipe.tasks.python import vision

from bodytrack.core.errors import DetectorInitError
from bodytrack.core.types import BODY_KEYPOINT_NAMES, Keypoint2D
from bodytrack.detection.assets import MODELS_DIR, POSE_LANDMARKER_MODEL_URL, ensure_model
from bodytrack.detection.base import PoseBackend

logger = logging.getLogger(__name__)

# BlazePose landmark index for each COCO keypoint
BLAZEPOSE_TO_COCO = {
    "nose": 0,
    "left_eye": 2,
    "right_eye": 5,
    "left_ear": 7,
    "right_ear": 8,
    "left_shoulder": 11,
    "right_shoulder": 12,
    "left_elbow": 13,
    "right_elbow": 14,
    "left_wrist": 15,
    "right_wrist": 16,
    "left_hip": 23,
    "right_hip": 24,
    "left_knee": 25,
    "right_knee": 26,
    "left_ankle": 27,
    "right_ankle": 28,
}


@dataclass
class PoseDetectorConfig:
    """Configuration for the pose landmarker."""
    model_path: str = str(MODELS_DIR / "pose_landmarker_full.task")
    min_detection_confidence: float = 0.5
    min_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    @classmethod
    def from_dict(cls, d: dict) -> "PoseDetectorConfig":
        return cls(
            model_path=d.get("model_path") or cls.model_path,
            min_detection_confidence=d.get("min_detection_confidence", 0.5),
            min_presence_confidence=d.get("min_presence_confidence", 0.5),
            min_tracking_confidence=d.get("min_tracking_confidence", 0.5),
        )


def pose_landmarks_to_keypoints(landmarks, width: int, height: int) -> List[Keypoint2D]:
    """Convert one pose's normalized BlazePose landmarks to COCO-17 pixel keypoints."""
    keypoints = []
    for name in BODY_KEYPOINT_NAMES:
        lm = landmarks[BLAZEPOSE_TO_COCO[name]]
        visibility = getattr(lm, "visibility", None)
        score = float(visibility) if visibility is not None else 0.0
        keypoints.append(Keypoint2D(
            name=name,
            x=float(lm.x) * width,
            y=float(lm.y) * height,
            score=min(max(score, 0.0), 1.0),
        ))
    return keypoints


class MediaPipePoseBackend(PoseBackend):
    """
    Single-person pose backend using the MediaPipe Tasks PoseLandmarker.

    Example:
        >>> backend = MediaPipePoseBackend(PoseDetectorConfig())
        >>> backend.initialize()
        >>> keypoints = backend.detect(rgb_image, timestamp_ms)
        >>> backend.close()
    """

    name = "mediapipe_pose"

    def __init__(self, config: Optional[PoseDetectorConfig] = None):
        self.config = config or PoseDetectorConfig()
        self._landmarker = None

    def initialize(self) -> None:
        try:
            model_path = ensure_model(self.config.model_path, POSE_LANDMARKER_MODEL_URL)
            options = vision.PoseLandmarkerOptions(
                base_options=mp_python.BaseOptions(model_asset_path=str(model_path)),
                running_mode=vision.RunningMode.VIDEO,
                num_poses=1,
                min_pose_detection_confidence=self.config.min_detection_confidence,
                min_pose_presence_confidence=self.config.min_presence_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence,
                output_segmentation_masks=False,
            )
            self._landmarker = vision.PoseLandmarker.create_from_options(options)
        except Exception as e:
            raise DetectorInitError(self.name, str(e)) from e

        logger.info("PoseLandmarker initialized with model: %s", self.config.model_path)

    def detect(self, rgb: np.ndarray, timestamp_ms: int) -> List[Keypoint2D]:
        if self._landmarker is None:
            raise RuntimeError("PoseLandmarker not initialized")

        height, width = rgb.shape[:2]
        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb))
        result = self._landmarker.detect_for_video(mp_image, int(timestamp_ms))

        if not result.pose_landmarks:
            return []
        return pose_landmarks_to_keypoints(result.pose_landmarks[0], width, height)

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            logger.info("PoseLandmarker closed")
