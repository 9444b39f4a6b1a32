"""
Shared domain types for the body tracking pipeline.

Centralizes data classes, landmark topology and tuning tables used across
modules so that tracking, recording and rendering agree on one vocabulary.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

import numpy as np


# =============================================================================
# Body / Hand Topology
# =============================================================================

# Fixed keypoint order produced by the pose backend (COCO-17)
BODY_KEYPOINT_NAMES: Tuple[str, ...] = (
    "nose",
    "left_eye",
    "right_eye",
    "left_ear",
    "right_ear",
    "left_shoulder",
    "right_shoulder",
    "left_elbow",
    "right_elbow",
    "left_wrist",
    "right_wrist",
    "left_hip",
    "right_hip",
    "left_knee",
    "right_knee",
    "left_ankle",
    "right_ankle",
)

NUM_BODY_KEYPOINTS = len(BODY_KEYPOINT_NAMES)
NUM_HAND_LANDMARKS = 21

# Interaction radius (display pixels) per tracked body part
DEFAULT_BODY_PART_RADII: Dict[str, float] = {
    "left_wrist": 40.0,
    "right_wrist": 40.0,
    "left_ankle": 35.0,
    "right_ankle": 35.0,
    "nose": 30.0,
    "left_elbow": 25.0,
    "right_elbow": 25.0,
    "left_knee": 25.0,
    "right_knee": 25.0,
    "left_shoulder": 20.0,
    "right_shoulder": 20.0,
    "left_hip": 20.0,
    "right_hip": 20.0,
}

DEFAULT_MIN_CONFIDENCE = 0.3

SKELETON_CONNECTIONS: Tuple[Tuple[str, str], ...] = (
    # Head
    ("left_eye", "right_eye"),
    ("left_eye", "left_ear"),
    ("right_eye", "right_ear"),
    ("left_ear", "right_ear"),
    ("nose", "left_eye"),
    ("nose", "right_eye"),
    # Torso
    ("left_shoulder", "right_shoulder"),
    ("left_shoulder", "left_hip"),
    ("right_shoulder", "right_hip"),
    ("left_hip", "right_hip"),
    # Arms
    ("left_shoulder", "left_elbow"),
    ("left_elbow", "left_wrist"),
    ("right_shoulder", "right_elbow"),
    ("right_elbow", "right_wrist"),
    # Legs
    ("left_hip", "left_knee"),
    ("left_knee", "left_ankle"),
    ("right_hip", "right_knee"),
    ("right_knee", "right_ankle"),
)

HAND_CONNECTIONS: Tuple[Tuple[int, int], ...] = (
    (0, 1), (1, 2), (2, 3), (3, 4),          # Thumb
    (0, 5), (5, 6), (6, 7), (7, 8),          # Index
    (0, 9), (9, 10), (10, 11), (11, 12),     # Middle
    (0, 13), (13, 14), (14, 15), (15, 16),   # Ring
    (0, 17), (17, 18), (18, 19), (19, 20),   # Pinky
)

FINGERTIP_INDICES: Tuple[int, ...] = (4, 8, 12, 16, 20)


class BodyPartGroup(Enum):
    """Interaction tiers of tracked body parts."""
    HANDS = "hands"
    FEET = "feet"
    HEAD = "head"
    JOINTS = "joints"
    CORE = "core"


BODY_PART_GROUPS: Dict[BodyPartGroup, Tuple[Tuple[str, str], ...]] = {
    BodyPartGroup.HANDS: (("left_wrist", "Left Hand"), ("right_wrist", "Right Hand")),
    BodyPartGroup.FEET: (("left_ankle", "Left Foot"), ("right_ankle", "Right Foot")),
    BodyPartGroup.HEAD: (("nose", "Head"),),
    BodyPartGroup.JOINTS: (
        ("left_elbow", "Left Elbow"),
        ("right_elbow", "Right Elbow"),
        ("left_knee", "Left Knee"),
        ("right_knee", "Right Knee"),
    ),
    BodyPartGroup.CORE: (
        ("left_shoulder", "Left Shoulder"),
        ("right_shoulder", "Right Shoulder"),
        ("left_hip", "Left Hip"),
        ("right_hip", "Right Hip"),
    ),
}


# =============================================================================
# Landmarks
# =============================================================================

@dataclass(frozen=True)
class Keypoint2D:
    """A named body keypoint with pixel position and confidence."""
    name: str
    x: float
    y: float
    score: float

    def is_confident(self, threshold: float = DEFAULT_MIN_CONFIDENCE) -> bool:
        return self.score > threshold


@dataclass
class HandObservation:
    """One detected hand from the hand landmark backend.

    `landmarks` is (21, 3) normalized to the source frame; `world_landmarks`
    is the metric (21, 3) estimate when the backend provides one.
    """
    landmarks: np.ndarray
    world_landmarks: Optional[np.ndarray] = None
    handedness: Optional[str] = None        # "Left" / "Right"
    handedness_score: float = 0.0

    def __post_init__(self):
        self.landmarks = np.asarray(self.landmarks, dtype=np.float32).reshape(NUM_HAND_LANDMARKS, 3)
        if self.world_landmarks is not None:
            self.world_landmarks = np.asarray(
                self.world_landmarks, dtype=np.float32
            ).reshape(NUM_HAND_LANDMARKS, 3)

    @property
    def landmarks_3d(self) -> np.ndarray:
        """World landmarks when available, otherwise the normalized ones."""
        if self.world_landmarks is not None:
            return self.world_landmarks
        return self.landmarks

    def handedness_entry(self) -> Optional[dict]:
        if self.handedness is None:
            return None
        return {"category": self.handedness, "score": float(self.handedness_score)}


# =============================================================================
# Tracking
# =============================================================================

@dataclass(frozen=True)
class TrackedZone:
    """Smoothed display-space position of a body part plus its radius."""
    body_part: str
    x: float
    y: float
    score: float
    radius: float
    last_update_ms: int


@dataclass(frozen=True)
class Target:
    """Externally supplied interaction target."""
    id: str
    x: float
    y: float
    radius: float

    @classmethod
    def from_dict(cls, d: dict) -> "Target":
        position = d.get("position", {})
        return cls(
            id=str(d["id"]),
            x=float(position.get("x", d.get("x", 0.0))),
            y=float(position.get("y", d.get("y", 0.0))),
            radius=float(d.get("radius", 30.0)),
        )


@dataclass(frozen=True)
class CollisionEvent:
    """A body-part zone overlapping a target in one frame."""
    body_part: str
    target_id: str
    timestamp_ms: int
    x: float
    y: float

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True)
class RenderState:
    """Affine source-to-display mapping (uniform scale plus offset)."""
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    source_width: int = 0
    source_height: int = 0

    def map_point(self, x: float, y: float) -> Tuple[float, float]:
        return (x * self.scale + self.offset_x, y * self.scale + self.offset_y)


# =============================================================================
# Per-frame Records
# =============================================================================

@dataclass(frozen=True)
class FrameRecord:
    """Source-space landmarks of one frame, as stored in a session."""
    timestamp_ms: float
    frame_index: int
    pose2d: Tuple[Keypoint2D, ...]
    hands2d: Tuple[np.ndarray, ...] = ()
    hands3d: Tuple[np.ndarray, ...] = ()
    handedness: Tuple[Optional[dict], ...] = ()

    @property
    def hand_count(self) -> int:
        return len(self.hands3d)


@dataclass(frozen=True)
class FusedFrame:
    """Display-space snapshot handed to the rendering sink.

    Everything in here is immutable or a fresh copy; the pipeline never
    mutates a snapshot after delivering it.
    """
    frame_index: int
    timestamp_ms: int
    render_state: RenderState
    keypoints: Tuple[Keypoint2D, ...]
    hands: Tuple[np.ndarray, ...]
    handedness: Tuple[Optional[str], ...]
    tracked_zones: Dict[str, TrackedZone]
    collisions: Tuple[CollisionEvent, ...]
    recent_collisions: Tuple[Tuple[CollisionEvent, float], ...]
    targets: Tuple[Target, ...]
    hands_enabled: bool
    recording: bool = False
    recording_elapsed_sec: float = 0.0
    record: Optional[FrameRecord] = None

    @property
    def wrist_count(self) -> int:
        return sum(1 for part in ("left_wrist", "right_wrist") if part in self.tracked_zones)

    @property
    def status_text(self) -> str:
        if not self.keypoints:
            return "No poses detected - try different angles or lighting"
        return f"Detected {self.wrist_count} wrist(s)"


def summarize_tracked_parts(tracked_zones: Dict[str, TrackedZone]) -> Dict[BodyPartGroup, List[Tuple[str, bool]]]:
    """Group tracked body parts for status display: {group: [(label, tracked)]}."""
    return {
        group: [(label, part in tracked_zones) for part, label in parts]
        for group, parts in BODY_PART_GROUPS.items()
    }


# =============================================================================
# Session
# =============================================================================

SESSION_SCHEMA_VERSION = "1.0"


@dataclass
class SessionMetadata:
    """JSON sidecar describing a recorded session."""
    session_id: str
    timestamp_iso: str
    duration_sec: float
    frame_count: int
    fps: float
    action_label: Optional[str]
    device: Dict[str, str] = field(default_factory=dict)
    hand_counts: List[int] = field(default_factory=list)
    schema_version: str = SESSION_SCHEMA_VERSION

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "timestamp": self.timestamp_iso,
            "duration": self.duration_sec,
            "frameCount": self.frame_count,
            "fps": self.fps,
            "action": self.action_label,
            "device": dict(self.device),
            "handCounts": list(self.hand_counts),
            "schemaVersion": self.schema_version,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "SessionMetadata":
        return cls(
            session_id=d["sessionId"],
            timestamp_iso=d.get("timestamp", ""),
            duration_sec=float(d.get("duration", 0.0)),
            frame_count=int(d.get("frameCount", 0)),
            fps=float(d.get("fps", 0.0)),
            action_label=d.get("action"),
            device=dict(d.get("device", {})),
            hand_counts=list(d.get("handCounts", [])),
            schema_version=d.get("schemaVersion", SESSION_SCHEMA_VERSION),
        )


@dataclass(frozen=True)
class SessionArtifacts:
    """Serialized session: binary payload plus metadata."""
    session_id: str
    data: bytes
    metadata: SessionMetadata
    created_at: float = field(default_factory=time.time)

    @property
    def data_filename(self) -> str:
        return f"{self.session_id}_data.bin"

    @property
    def meta_filename(self) -> str:
        return f"{self.session_id}_meta.json"
