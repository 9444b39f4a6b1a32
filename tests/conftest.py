"""Shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bodytrack.core.events import EventBus
from bodytrack.utils.config import Config


@pytest.fixture(autouse=True)
def reset_singletons():
    """Give every test a fresh event bus and config."""
    EventBus().reset()
    Config.reset()
    yield
    EventBus().reset()
    Config.reset()
