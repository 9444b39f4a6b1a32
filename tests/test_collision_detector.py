"""
Tests for Collision Detector
=============================
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bodytrack.core.types import CollisionEvent, Target, TrackedZone
from bodytrack.tracking.collision_detector import (
    CollisionDetector, CollisionHistory, detect_collisions,
)
from bodytrack.utils.config import TrackingConfig


def zone(part="left_wrist", x=0.0, y=0.0, radius=10.0):
    return TrackedZone(body_part=part, x=x, y=y, score=0.9, radius=radius, last_update_ms=0)


class TestDetectCollisions:
    """Test suite for the circle overlap test."""

    def test_outside_combined_radius(self):
        events = detect_collisions({"left_wrist": zone()}, [Target("t1", 15.0, 0.0, 4.0)], 100)

        assert events == []

    def test_inside_combined_radius(self):
        events = detect_collisions({"left_wrist": zone()}, [Target("t1", 13.0, 0.0, 4.0)], 100)

        assert len(events) == 1
        assert events[0].body_part == "left_wrist"
        assert events[0].target_id == "t1"
        assert events[0].timestamp_ms == 100
        assert events[0].position == (0.0, 0.0)

    def test_tangency_is_not_a_collision(self):
        events = detect_collisions({"left_wrist": zone()}, [Target("t1", 14.0, 0.0, 4.0)], 0)

        assert events == []

    def test_all_pairs_reported(self):
        zones = {
            "left_wrist": zone("left_wrist", 0.0, 0.0),
            "right_wrist": zone("right_wrist", 5.0, 0.0),
        }
        targets = [Target("a", 2.0, 0.0, 5.0), Target("b", 3.0, 0.0, 5.0)]

        events = detect_collisions(zones, targets, 0)

        pairs = {(e.body_part, e.target_id) for e in events}
        assert pairs == {
            ("left_wrist", "a"), ("left_wrist", "b"),
            ("right_wrist", "a"), ("right_wrist", "b"),
        }

    def test_no_targets(self):
        assert detect_collisions({"left_wrist": zone()}, [], 0) == []


class TestCollisionHistory:
    """Test suite for the bounded history."""

    def test_keeps_most_recent_fifty_in_order(self):
        history = CollisionHistory(max_size=50)
        events = [CollisionEvent("left_wrist", f"t{i}", i, 0.0, 0.0) for i in range(60)]

        for event in events:
            history.extend([event])

        assert len(history) == 50
        assert list(history.events) == events[10:]

    def test_recent_fades_linearly(self):
        history = CollisionHistory(max_size=50, fade_ms=1000)
        history.extend([
            CollisionEvent("nose", "old", 0, 0.0, 0.0),
            CollisionEvent("nose", "mid", 1500, 0.0, 0.0),
            CollisionEvent("nose", "new", 2000, 0.0, 0.0),
        ])

        recent = history.recent(2000)

        assert [(e.target_id, a) for e, a in recent] == [
            ("mid", pytest.approx(0.5)),
            ("new", pytest.approx(1.0)),
        ]

    def test_clear(self):
        history = CollisionHistory()
        history.extend([CollisionEvent("nose", "t", 0, 0.0, 0.0)])
        history.clear()

        assert len(history) == 0


class TestCollisionDetector:
    """Test suite for CollisionDetector."""

    def test_repeated_contact_emits_every_frame(self):
        detector = CollisionDetector(TrackingConfig())
        zones = {"left_wrist": zone()}
        targets = [Target("t1", 5.0, 0.0, 5.0)]

        for ts in range(3):
            detector.detect(zones, targets, ts)

        assert detector.total_collisions == 3
        assert len(detector.history) == 3

    def test_history_size_from_config(self):
        detector = CollisionDetector(TrackingConfig(collision_history_size=5))
        zones = {"left_wrist": zone()}
        targets = [Target("t1", 0.0, 0.0, 5.0)]

        for ts in range(8):
            detector.detect(zones, targets, ts)

        assert len(detector.history) == 5
        assert detector.history.events[0].timestamp_ms == 3

    def test_reset(self):
        detector = CollisionDetector()
        detector.detect({"left_wrist": zone()}, [Target("t1", 0.0, 0.0, 5.0)], 0)
        detector.reset()

        assert detector.total_collisions == 0
        assert len(detector.history) == 0


class TestTarget:
    """Test suite for target parsing."""

    def test_from_dict_nested_position(self):
        target = Target.from_dict({"id": "a", "position": {"x": 10, "y": 20}, "radius": 5})

        assert (target.id, target.x, target.y, target.radius) == ("a", 10.0, 20.0, 5.0)

    def test_from_dict_flat(self):
        target = Target.from_dict({"id": 3, "x": 1, "y": 2})

        assert target.id == "3"
        assert target.radius == 30.0


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
