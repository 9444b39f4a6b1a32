"""
Detector backend interface.

The pipeline talks to model runtimes only through these classes, so either
backend can be swapped for another runtime or a scripted fake in tests.
"""

from abc import ABC, abstractmethod
from typing import List

import numpy as np

from bodytrack.core.types import HandObservation, Keypoint2D


class DetectorBackend(ABC):
    """A landmark model runtime.

    `initialize` raises DetectorInitError on failure. `detect` receives an
    RGB image (H, W, 3 uint8) and a strictly increasing timestamp in ms.
    """

    name = "detector"

    @abstractmethod
    def initialize(self) -> None: ...

    @abstractmethod
    def detect(self, rgb: np.ndarray, timestamp_ms: int): ...

    @abstractmethod
    def close(self) -> None: ...

    def __enter__(self):
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class PoseBackend(DetectorBackend):
    """Returns the 17 COCO keypoints in source pixels, or [] when no pose is found."""

    name = "pose"

    @abstractmethod
    def detect(self, rgb: np.ndarray, timestamp_ms: int) -> List[Keypoint2D]: ...


class HandBackend(DetectorBackend):
    """Returns up to N hands, landmarks normalized to the source frame."""

    name = "hands"

    @abstractmethod
    def detect(self, rgb: np.ndarray, timestamp_ms: int) -> List[HandObservation]: ...
