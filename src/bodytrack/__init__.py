"""
Body Track - Real-time Pose & Hand Fusion
=========================================

Live body/hand landmark tracking with temporal smoothing, target-zone
collision detection and fixed-duration session recording.

Modules:
    - capture: Video frame acquisition
    - detection: MediaPipe pose and hand landmark backends
    - tracking: Coordinate mapping, smoothing, collision detection
    - recording: Session recorder and binary session format
    - utils: Configuration, logging, performance monitoring
    - visualization: OpenCV overlay renderer
"""

__version__ = "1.0.0"
__author__ = "Body Track Team"
