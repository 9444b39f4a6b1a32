"""
Exponential moving average over named body keypoints.

State is kept per body part across frames. A part that drops below the
confidence threshold is left out of the frame's tracked zones, but its last
smoothed position is kept so it does not jump when it becomes confident
again. Nothing decays and nothing is synthesized for parts that are lost.
"""

import logging
from typing import Dict, Iterable, Optional, Tuple

from bodytrack.core.types import Keypoint2D, TrackedZone
from bodytrack.utils.config import TrackingConfig

logger = logging.getLogger(__name__)


class LandmarkSmoother:
    """Per-body-part EMA producing TrackedZones.

    smoothed = prev * alpha + raw * (1 - alpha); score is the latest raw score.
    Only parts in the radius table are ever tracked.
    """

    def __init__(self, config: Optional[TrackingConfig] = None):
        self.config = config or TrackingConfig()
        self._alpha = self.config.smoothing_alpha
        self._radii = dict(self.config.body_part_radii)
        self._state: Dict[str, Tuple[float, float]] = {}
        self._last_update_ms: Dict[str, int] = {}

    def update(self, keypoints: Iterable[Keypoint2D], timestamp_ms: int) -> Dict[str, TrackedZone]:
        """Feed one frame of display-space keypoints.

        Returns:
            Fresh dict of body part -> TrackedZone for confidently observed parts
        """
        by_name = {kp.name: kp for kp in keypoints}
        zones = {}

        for part, radius in self._radii.items():
            raw = by_name.get(part)
            if raw is None or not raw.is_confident(self.config.min_confidence):
                continue

            prev = self._state.get(part)
            if prev is None:
                x, y = raw.x, raw.y
            else:
                x = prev[0] * self._alpha + raw.x * (1.0 - self._alpha)
                y = prev[1] * self._alpha + raw.y * (1.0 - self._alpha)
            self._state[part] = (x, y)

            # lastUpdate strictly increases per part
            stamp = int(timestamp_ms)
            last = self._last_update_ms.get(part)
            if last is not None and stamp <= last:
                stamp = last + 1
            self._last_update_ms[part] = stamp

            zones[part] = TrackedZone(
                body_part=part, x=x, y=y, score=raw.score,
                radius=radius, last_update_ms=stamp,
            )

        return zones

    def get_state(self, part: str) -> Optional[Tuple[float, float]]:
        """Last smoothed (x, y) of a part, or None if never observed."""
        return self._state.get(part)

    @property
    def tracked_parts(self) -> Tuple[str, ...]:
        return tuple(self._state.keys())

    def reset(self):
        """Clear all smoothing state."""
        self._state.clear()
        self._last_update_ms.clear()
