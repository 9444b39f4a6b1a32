"""
Video Source
============

OpenCV capture from a camera index or a video file. Frames that are not
ready (failed grab, empty image) come back as None and are simply skipped by
the pipeline; a run of consecutive failures marks the source as lost.
"""

import cv2
import time
import logging
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class VideoSourceConfig:
    """Video source settings."""
    source: Union[int, str] = 0
    width: int = 1280
    height: int = 720
    fps: int = 30
    buffer_size: int = 1
    flip_horizontal: bool = True
    max_read_failures: int = 30

    @classmethod
    def from_dict(cls, config: dict) -> "VideoSourceConfig":
        """Create config from dictionary (YAML parsed)."""
        source = config.get("source", 0)
        if isinstance(source, str) and source.isdigit():
            source = int(source)
        return cls(
            source=source,
            width=config.get("width", 1280),
            height=config.get("height", 720),
            fps=config.get("fps", 30),
            buffer_size=config.get("buffer_size", 1),
            flip_horizontal=config.get("flip_horizontal", True),
            max_read_failures=config.get("max_read_failures", 30),
        )


@dataclass
class Frame:
    """Captured frame with metadata."""
    image: np.ndarray
    timestamp: float
    frame_number: int

    @property
    def rgb(self) -> np.ndarray:
        """Convert BGR to RGB."""
        return cv2.cvtColor(self.image, cv2.COLOR_BGR2RGB)

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in pixels."""
        return (int(self.image.shape[1]), int(self.image.shape[0]))

    @property
    def is_valid(self) -> bool:
        return self.image is not None and self.image.ndim >= 2 and self.image.size > 0


class VideoSource:
    """
    Synchronous OpenCV video source.

    Example:
        >>> source = VideoSource(VideoSourceConfig(source=0))
        >>> source.open()
        >>> frame = source.read()
        >>> if frame is not None:
        ...     process(frame.rgb)
        >>> source.release()
    """

    def __init__(self, config: Optional[VideoSourceConfig] = None):
        self.config = config or VideoSourceConfig()
        self._cap = None
        self._frame_number = 0
        self._consecutive_failures = 0
        self._lost = False

    def open(self) -> bool:
        """Open the capture device or file."""
        self._cap = cv2.VideoCapture(self.config.source)
        if not self._cap.isOpened():
            logger.error("Failed to open video source %r", self.config.source)
            self._cap = None
            return False

        if isinstance(self.config.source, int):
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
            self._cap.set(cv2.CAP_PROP_FPS, self.config.fps)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self.config.buffer_size)

        self._lost = False
        self._consecutive_failures = 0
        logger.info(
            "Video source opened: %r (%dx%d @ %.0f FPS reported)",
            self.config.source,
            int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            self._cap.get(cv2.CAP_PROP_FPS),
        )
        return True

    def read(self) -> Optional[Frame]:
        """Grab the next frame, or None when no valid frame is ready."""
        if self._cap is None or self._lost:
            return None

        ret, image = self._cap.read()
        if not ret or image is None or image.size == 0:
            self._consecutive_failures += 1
            if self._consecutive_failures >= self.config.max_read_failures:
                logger.warning("Video source lost after %d failed reads",
                               self._consecutive_failures)
                self._lost = True
            return None

        self._consecutive_failures = 0
        if self.config.flip_horizontal:
            image = cv2.flip(image, 1)
        self._frame_number += 1
        return Frame(image=image, timestamp=time.time(), frame_number=self._frame_number)

    @property
    def is_open(self) -> bool:
        return self._cap is not None and not self._lost and self._cap.isOpened()

    def release(self):
        """Release the capture device."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
            logger.info("Video source released")

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *args):
        self.release()
