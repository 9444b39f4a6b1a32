"""Landmark detector backends.

The MediaPipe implementations live in `pose_detector` and `hand_detector`
and are imported explicitly by the host application.
"""
from .base import DetectorBackend, PoseBackend, HandBackend

__all__ = ["DetectorBackend", "PoseBackend", "HandBackend"]
