"""
Binary session format.

Little-endian throughout:

    uint32  frame_count
    per frame, in capture order:
        float64  timestamp_ms
        uint32   frame_index
        17 x float32[3]   body keypoints (x, y, score), COCO-17 order
        H  x 21 x float32[3]   hand landmarks (x, y, z), H in {0, 1, 2}

H is not written inline. Readers take per-frame hand counts from the
`handCounts` field of the JSON sidecar.
"""

import struct
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

import numpy as np

from bodytrack.core.errors import SessionFormatError
from bodytrack.core.types import (
    BODY_KEYPOINT_NAMES, NUM_BODY_KEYPOINTS, NUM_HAND_LANDMARKS, FrameRecord,
)
from bodytrack.utils.logger import log_timing

logger = logging.getLogger(__name__)

_HEADER = struct.Struct("<I")
_FRAME_HEADER = struct.Struct("<dI")
_POSE_BLOCK = struct.Struct("<%df" % (NUM_BODY_KEYPOINTS * 3))
_HAND_BLOCK = struct.Struct("<%df" % (NUM_HAND_LANDMARKS * 3))

POSE_BLOCK_BYTES = _POSE_BLOCK.size      # 204
HAND_BLOCK_BYTES = _HAND_BLOCK.size      # 252


@dataclass
class DecodedFrame:
    """One frame read back from a binary session."""
    timestamp_ms: float
    frame_index: int
    pose: np.ndarray            # (17, 3) x, y, score
    hands: List[np.ndarray]     # each (21, 3) x, y, z


def _pose_values(record: FrameRecord) -> List[float]:
    """17 (x, y, score) triples in fixed order; missing keypoints are zeros."""
    by_name = {kp.name: kp for kp in record.pose2d}
    values = []
    for name in BODY_KEYPOINT_NAMES:
        kp = by_name.get(name)
        if kp is None:
            values.extend((0.0, 0.0, 0.0))
        else:
            values.extend((kp.x, kp.y, kp.score))
    return values


def estimate_size(frame_count: int, max_hands: int = 2) -> int:
    """Upper bound on the encoded size of a session."""
    per_frame = _FRAME_HEADER.size + POSE_BLOCK_BYTES + max_hands * HAND_BLOCK_BYTES
    return _HEADER.size + frame_count * per_frame


@log_timing
def encode_session(frames: Sequence[FrameRecord], max_hands: int = 2) -> bytes:
    """Serialize frame records into the binary session layout."""
    max_hands = max([max_hands] + [f.hand_count for f in frames])
    buffer = bytearray(estimate_size(len(frames), max_hands))
    offset = 0

    _HEADER.pack_into(buffer, offset, len(frames))
    offset += _HEADER.size

    for record in frames:
        _FRAME_HEADER.pack_into(buffer, offset, float(record.timestamp_ms), int(record.frame_index))
        offset += _FRAME_HEADER.size

        _POSE_BLOCK.pack_into(buffer, offset, *_pose_values(record))
        offset += POSE_BLOCK_BYTES

        for hand in record.hands3d:
            values = np.asarray(hand, dtype=np.float32).reshape(-1)
            if values.size != NUM_HAND_LANDMARKS * 3:
                raise SessionFormatError(
                    f"frame {record.frame_index}: hand has {values.size // 3} landmarks, "
                    f"expected {NUM_HAND_LANDMARKS}"
                )
            _HAND_BLOCK.pack_into(buffer, offset, *values.tolist())
            offset += HAND_BLOCK_BYTES

    logger.debug("Encoded %d frames into %d bytes (reserved %d)", len(frames), offset, len(buffer))
    return bytes(buffer[:offset])


def decode_session(data: bytes, hand_counts: Optional[Sequence[int]] = None) -> List[DecodedFrame]:
    """Parse a binary session.

    Args:
        data: Encoded payload
        hand_counts: Hands per frame, from the metadata sidecar. When omitted
            every frame is assumed to carry no hands.

    Raises:
        SessionFormatError: payload is truncated, has trailing bytes, or
            disagrees with hand_counts
    """
    if len(data) < _HEADER.size:
        raise SessionFormatError("payload shorter than header")

    (frame_count,) = _HEADER.unpack_from(data, 0)
    offset = _HEADER.size

    if hand_counts is None:
        hand_counts = [0] * frame_count
    if len(hand_counts) != frame_count:
        raise SessionFormatError(
            f"header declares {frame_count} frames but {len(hand_counts)} hand counts were given"
        )

    frames = []
    for i in range(frame_count):
        needed = _FRAME_HEADER.size + POSE_BLOCK_BYTES + hand_counts[i] * HAND_BLOCK_BYTES
        if offset + needed > len(data):
            raise SessionFormatError(f"frame {i} truncated at byte {offset}")

        timestamp_ms, frame_index = _FRAME_HEADER.unpack_from(data, offset)
        offset += _FRAME_HEADER.size

        pose = np.frombuffer(data, dtype="<f4", count=NUM_BODY_KEYPOINTS * 3, offset=offset)
        offset += POSE_BLOCK_BYTES

        hands = []
        for _ in range(hand_counts[i]):
            hand = np.frombuffer(data, dtype="<f4", count=NUM_HAND_LANDMARKS * 3, offset=offset)
            hands.append(hand.reshape(NUM_HAND_LANDMARKS, 3).copy())
            offset += HAND_BLOCK_BYTES

        frames.append(DecodedFrame(
            timestamp_ms=timestamp_ms,
            frame_index=frame_index,
            pose=pose.reshape(NUM_BODY_KEYPOINTS, 3).copy(),
            hands=hands,
        ))

    if offset != len(data):
        raise SessionFormatError(
            f"{len(data) - offset} trailing bytes; hand counts do not match the payload"
        )

    return frames
