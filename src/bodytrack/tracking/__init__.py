"""Coordinate mapping, landmark smoothing and collision detection."""
from .coordinate_mapper import compute_render_state, map_keypoints, map_hand_landmarks
from .landmark_smoother import LandmarkSmoother
from .collision_detector import CollisionDetector, CollisionHistory, detect_collisions

__all__ = [
    "compute_render_state",
    "map_keypoints",
    "map_hand_landmarks",
    "LandmarkSmoother",
    "CollisionDetector",
    "CollisionHistory",
    "detect_collisions",
]
