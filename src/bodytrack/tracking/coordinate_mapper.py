"""
Source-to-display coordinate mapping with a cover-fit policy.

The source frame is scaled uniformly until it covers the whole viewport and
is centered, so overflow is cropped equally on both sides. Pose keypoints
arrive in source pixels; hand landmarks arrive normalized to [0, 1] and are
denormalized by the source size before the same transform is applied.
"""

import logging
from typing import Iterable, List

import numpy as np

from bodytrack.core.types import Keypoint2D, RenderState

logger = logging.getLogger(__name__)


def compute_render_state(source_width: int, source_height: int,
                         dest_width: float, dest_height: float) -> RenderState:
    """Compute the cover-fit mapping from source pixels to display space.

    Degenerate (zero or negative) dimensions yield the identity mapping.
    """
    if source_width <= 0 or source_height <= 0 or dest_width <= 0 or dest_height <= 0:
        logger.debug("Degenerate mapping %sx%s -> %sx%s, using identity",
                     source_width, source_height, dest_width, dest_height)
        return RenderState(
            scale=1.0, offset_x=0.0, offset_y=0.0,
            source_width=max(int(source_width), 0),
            source_height=max(int(source_height), 0),
        )

    scale = max(dest_width / source_width, dest_height / source_height)
    offset_x = (dest_width - source_width * scale) / 2.0
    offset_y = (dest_height - source_height * scale) / 2.0

    return RenderState(
        scale=scale,
        offset_x=offset_x,
        offset_y=offset_y,
        source_width=int(source_width),
        source_height=int(source_height),
    )


def map_keypoints(state: RenderState, keypoints: Iterable[Keypoint2D]) -> List[Keypoint2D]:
    """Map source-pixel keypoints into display space. Scores pass through."""
    mapped = []
    for kp in keypoints:
        x, y = state.map_point(kp.x, kp.y)
        mapped.append(Keypoint2D(name=kp.name, x=x, y=y, score=kp.score))
    return mapped


def map_hand_landmarks(state: RenderState, landmarks: np.ndarray) -> np.ndarray:
    """Map normalized (21, 3) hand landmarks into display space.

    Returns a new (21, 3) float32 array; z is left depth-relative.
    """
    landmarks = np.asarray(landmarks, dtype=np.float32)
    mapped = landmarks.copy()
    mapped[:, 0] = landmarks[:, 0] * state.source_width * state.scale + state.offset_x
    mapped[:, 1] = landmarks[:, 1] * state.source_height * state.scale + state.offset_y
    return mapped


def crop_to_viewport(state: RenderState, dest_width: int, dest_height: int):
    """Source-pixel rectangle (x0, y0, x1, y1) visible in the viewport."""
    if state.scale <= 0:
        return (0, 0, state.source_width, state.source_height)
    x0 = max(0.0, -state.offset_x / state.scale)
    y0 = max(0.0, -state.offset_y / state.scale)
    x1 = min(float(state.source_width), (dest_width - state.offset_x) / state.scale)
    y1 = min(float(state.source_height), (dest_height - state.offset_y) / state.scale)
    return (int(round(x0)), int(round(y0)), int(round(x1)), int(round(y1)))
