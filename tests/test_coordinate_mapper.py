"""
Tests for Coordinate Mapper
============================
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bodytrack.core.types import Keypoint2D, RenderState
from bodytrack.tracking.coordinate_mapper import (
    compute_render_state, crop_to_viewport, map_hand_landmarks, map_keypoints,
)


class TestComputeRenderState:
    """Test suite for the cover-fit mapping."""

    def test_wider_viewport_crops_vertically(self):
        """640x480 into 1280x720 scales by 2 and crops top and bottom."""
        state = compute_render_state(640, 480, 1280, 720)

        assert state.scale == pytest.approx(2.0)
        assert state.offset_x == pytest.approx(0.0)
        assert state.offset_y == pytest.approx(-120.0)
        assert state.source_width == 640
        assert state.source_height == 480

    def test_taller_viewport_crops_horizontally(self):
        state = compute_render_state(1280, 720, 720, 1280)

        assert state.scale == pytest.approx(1280 / 720)
        assert state.offset_y == pytest.approx(0.0)
        assert state.offset_x < 0

    def test_same_aspect_has_no_offset(self):
        state = compute_render_state(640, 360, 1280, 720)

        assert state.scale == pytest.approx(2.0)
        assert state.offset_x == pytest.approx(0.0)
        assert state.offset_y == pytest.approx(0.0)

    @pytest.mark.parametrize("dims", [
        (0, 480, 1280, 720),
        (640, 0, 1280, 720),
        (640, 480, 0, 720),
        (640, 480, 1280, 0),
        (0, 0, 0, 0),
    ])
    def test_degenerate_dimensions_give_identity(self, dims):
        state = compute_render_state(*dims)

        assert state.scale == 1.0
        assert state.offset_x == 0.0
        assert state.offset_y == 0.0

    @pytest.mark.parametrize("sw,sh,dw,dh", [
        (640, 480, 1280, 720),
        (1920, 1080, 800, 600),
        (480, 640, 1280, 720),
        (1280, 720, 1280, 720),
        (333, 517, 1024, 768),
        (1, 1, 7, 3),
    ])
    def test_mapping_covers_viewport(self, sw, sh, dw, dh):
        """The scaled source always fills the viewport and stays centered."""
        state = compute_render_state(sw, sh, dw, dh)

        assert state.scale * sw >= dw - 1e-9
        assert state.scale * sh >= dh - 1e-9

        x0, y0 = state.map_point(0, 0)
        x1, y1 = state.map_point(sw, sh)
        assert x0 <= 0.5 and y0 <= 0.5
        assert x1 >= dw - 0.5 and y1 >= dh - 0.5
        assert (x0 + x1) / 2 == pytest.approx(dw / 2)
        assert (y0 + y1) / 2 == pytest.approx(dh / 2)


class TestMapKeypoints:
    """Test suite for keypoint mapping."""

    def test_maps_position_and_keeps_name_and_score(self):
        state = compute_render_state(640, 480, 1280, 720)
        keypoints = [Keypoint2D("left_wrist", 320.0, 240.0, 0.9)]

        mapped = map_keypoints(state, keypoints)

        assert mapped[0].name == "left_wrist"
        assert mapped[0].score == 0.9
        assert mapped[0].x == pytest.approx(640.0)
        assert mapped[0].y == pytest.approx(360.0)

    def test_returns_new_objects(self):
        state = RenderState(scale=2.0)
        keypoints = [Keypoint2D("nose", 10.0, 20.0, 0.5)]

        mapped = map_keypoints(state, keypoints)

        assert mapped is not keypoints
        assert keypoints[0].x == 10.0
        assert mapped[0].x == 20.0

    def test_empty_input(self):
        assert map_keypoints(RenderState(), []) == []


class TestMapHandLandmarks:
    """Test suite for normalized hand landmark mapping."""

    def test_denormalizes_then_maps(self):
        state = compute_render_state(640, 480, 1280, 720)
        landmarks = np.zeros((21, 3), dtype=np.float32)
        landmarks[0] = [0.5, 0.5, -0.1]
        landmarks[1] = [0.0, 0.0, 0.2]

        mapped = map_hand_landmarks(state, landmarks)

        assert mapped.shape == (21, 3)
        assert mapped[0, 0] == pytest.approx(640.0)
        assert mapped[0, 1] == pytest.approx(360.0)
        assert mapped[0, 2] == pytest.approx(-0.1)
        assert mapped[1, 1] == pytest.approx(-120.0)

    def test_input_is_not_modified(self):
        state = compute_render_state(640, 480, 1280, 720)
        landmarks = np.full((21, 3), 0.25, dtype=np.float32)

        map_hand_landmarks(state, landmarks)

        assert np.all(landmarks == 0.25)


class TestCropToViewport:
    """Test suite for the visible source rectangle."""

    def test_vertical_crop(self):
        state = compute_render_state(640, 480, 1280, 720)

        assert crop_to_viewport(state, 1280, 720) == (0, 60, 640, 420)

    def test_no_crop_when_aspect_matches(self):
        state = compute_render_state(640, 360, 1280, 720)

        assert crop_to_viewport(state, 1280, 720) == (0, 0, 640, 360)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
