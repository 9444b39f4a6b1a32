"""
Tests for the command line
===========================
"""

import pytest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bodytrack.main import parse_args


class TestParseArgs:
    """Test suite for CLI arguments."""

    def test_defaults(self):
        args = parse_args([])

        assert args.config is None
        assert args.source is None
        assert args.action is None
        assert not args.no_display
        assert args.max_frames is None
        assert not args.debug_video

    def test_all_options(self):
        args = parse_args([
            "--config", "custom.yaml", "--source", "clip.mp4", "--action", "wave",
            "--output-dir", "out", "--no-display", "--max-frames", "120", "--debug-video",
        ])

        assert args.config == "custom.yaml"
        assert args.source == "clip.mp4"
        assert args.action == "wave"
        assert args.output_dir == "out"
        assert args.no_display
        assert args.max_frames == 120
        assert args.debug_video


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
