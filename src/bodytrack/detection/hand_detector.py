"""
Hand Detection - MediaPipe HandLandmarker
=========================================

Runs the Tasks API HandLandmarker in VIDEO mode. VIDEO mode rejects
non-increasing timestamps; the pipeline guarantees monotonic ones.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
import mediapipe as mp
from mediapipe.tasks import python as mp_python
from mediapipe.tasks.python import vision

from bodytrack.core.errors import DetectorInitError
from bodytrack.core.types import HandObservation
from bodytrack.detection.assets import HAND_LANDMARKER_MODEL_URL, MODELS_DIR, ensure_model
from bodytrack.detection.base import HandBackend

logger = logging.getLogger(__name__)


@dataclass
class HandDetectorConfig:
    """Configuration for the hand landmarker."""
    model_path: str = str(MODELS_DIR / "hand_landmarker.task")
    max_num_hands: int = 2
    min_detection_confidence: float = 0.5
    min_presence_confidence: float = 0.5
    min_tracking_confidence: float = 0.5

    @classmethod
    def from_dict(cls, d: dict) -> "HandDetectorConfig":
        return cls(
            model_path=d.get("model_path") or cls.model_path,
            max_num_hands=d.get("max_num_hands", 2),
            min_detection_confidence=d.get("min_detection_confidence", 0.5),
            min_presence_confidence=d.get("min_presence_confidence", 0.5),
            min_tracking_confidence=d.get("min_tracking_confidence", 0.5),
        )


def hand_result_to_observations(result) -> List[HandObservation]:
    """Convert a HandLandmarkerResult into HandObservations."""
    hands = []
    world = getattr(result, "hand_world_landmarks", None) or []
    handedness = getattr(result, "handedness", None) or []

    for i, hand_landmarks in enumerate(result.hand_landmarks or []):
        landmarks = np.array([[lm.x, lm.y, lm.z] for lm in hand_landmarks], dtype=np.float32)

        world_landmarks = None
        if i < len(world) and world[i]:
            world_landmarks = np.array([[lm.x, lm.y, lm.z] for lm in world[i]], dtype=np.float32)

        label, score = None, 0.0
        if i < len(handedness) and handedness[i]:
            label = handedness[i][0].category_name
            score = float(handedness[i][0].score)

        hands.append(HandObservation(
            landmarks=landmarks,
            world_landmarks=world_landmarks,
            handedness=label,
            handedness_score=score,
        ))
    return hands


class MediaPipeHandBackend(HandBackend):
    """
    Multi-hand landmark backend using the MediaPipe Tasks HandLandmarker.

    Example:
        >>> backend = MediaPipeHandBackend(HandDetectorConfig())
        >>> backend.initialize()
        >>> hands = backend.detect(rgb_image, timestamp_ms)
        >>> backend.close()
    """

    name = "mediapipe_hands"

    def __init__(self, config: Optional[HandDetectorConfig] = None):
        self.config = config or HandDetectorConfig()
        self._landmarker = None

    def initialize(self) -> None:
        try:
            model_path = ensure_model(self.config.model_path, HAND_LANDMARKER_MODEL_URL)
            options = vision.HandLandmarkerOptions(
                base_options=mp_python.BaseOptions(model_asset_path=str(model_path)),
                running_mode=vision.RunningMode.VIDEO,
                num_hands=self.config.max_num_hands,
                min_hand_detection_confidence=self.config.min_detection_confidence,
                min_hand_presence_confidence=self.config.min_presence_confidence,
                min_tracking_confidence=self.config.min_tracking_confidence,
            )
            self._landmarker = vision.HandLandmarker.create_from_options(options)
        except Exception as e:
            raise DetectorInitError(self.name, str(e)) from e

        logger.info("HandLandmarker initialized (max_hands=%d, model=%s)",
                    self.config.max_num_hands, self.config.model_path)

    def detect(self, rgb: np.ndarray, timestamp_ms: int) -> List[HandObservation]:
        if self._landmarker is None:
            raise RuntimeError("HandLandmarker not initialized")

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb))
        result = self._landmarker.detect_for_video(mp_image, int(timestamp_ms))
        return hand_result_to_observations(result)

    def close(self) -> None:
        if self._landmarker is not None:
            self._landmarker.close()
            self._landmarker = None
            logger.info("HandLandmarker closed")
