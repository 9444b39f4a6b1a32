"""Video frame acquisition."""
