"""OpenCV rendering of fused frames."""

from bodytrack.visualization.overlay import OverlayConfig, OverlayRenderer

__all__ = ["OverlayConfig", "OverlayRenderer"]
