"""
Tests for Overlay Renderer
===========================
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bodytrack.core.types import (
    CollisionEvent, FusedFrame, Keypoint2D, RenderState, Target, TrackedZone,
)
from bodytrack.tracking.coordinate_mapper import compute_render_state
from bodytrack.visualization.overlay import OverlayConfig, OverlayRenderer


def fused_frame(**overrides):
    zone = TrackedZone("left_wrist", 100.0, 100.0, 0.9, 40.0, 0)
    values = dict(
        frame_index=0,
        timestamp_ms=500,
        render_state=RenderState(),
        keypoints=(
            Keypoint2D("left_shoulder", 80.0, 40.0, 0.9),
            Keypoint2D("left_elbow", 90.0, 70.0, 0.9),
            Keypoint2D("left_wrist", 100.0, 100.0, 0.9),
        ),
        hands=(np.full((21, 3), 50.0, dtype=np.float32),),
        handedness=("Left",),
        tracked_zones={"left_wrist": zone},
        collisions=(),
        recent_collisions=((CollisionEvent("left_wrist", "t", 300, 100.0, 100.0), 0.8),),
        targets=(Target("t", 120.0, 100.0, 30.0),),
        hands_enabled=True,
        recording=True,
        recording_elapsed_sec=2.5,
    )
    values.update(overrides)
    return FusedFrame(**values)


class TestOverlayRenderer:
    """Test suite for OverlayRenderer."""

    def test_canvas_matches_viewport(self):
        canvas = OverlayRenderer().render(fused_frame(), (320, 240), fps=29.7, action_label="wave")

        assert canvas.shape == (240, 320, 3)
        assert canvas.dtype == np.uint8

    def test_draws_something(self):
        config = OverlayConfig(show_info_panel=False)
        canvas = OverlayRenderer(config).render(fused_frame(), (320, 240))

        background = np.array(config.background_color, dtype=np.uint8)
        assert np.any(canvas != background)

    def test_empty_frame(self):
        frame = fused_frame(keypoints=(), hands=(), handedness=(), tracked_zones={},
                            recent_collisions=(), targets=(), recording=False)

        canvas = OverlayRenderer().render(frame, (200, 100))

        assert canvas.shape == (100, 200, 3)

    def test_debug_video_fills_canvas(self):
        source = np.full((480, 640, 3), 77, dtype=np.uint8)
        frame = fused_frame(keypoints=(), hands=(), tracked_zones={}, recent_collisions=(),
                            targets=(), recording=False,
                            render_state=compute_render_state(640, 480, 320, 180))
        renderer = OverlayRenderer(OverlayConfig(debug_video=True, show_info_panel=False))

        canvas = renderer.render(frame, (320, 180), source_image=source)

        assert canvas[90, 160].tolist() == [77, 77, 77]

    def test_toggles(self):
        renderer = OverlayRenderer(OverlayConfig())

        assert renderer.toggle_info_panel() is False
        assert renderer.toggle_debug_video() is True

    def test_config_from_dict(self):
        config = OverlayConfig.from_dict({"show_skeleton": False, "debug_video": True})

        assert not config.show_skeleton
        assert config.debug_video


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
