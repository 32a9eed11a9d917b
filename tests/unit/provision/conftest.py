"""Fixtures for provisioning tests."""

import pytest

from envdeck.models.config import WatchSettings


@pytest.fixture
def fast_settings() -> WatchSettings:
    """Watch settings with millisecond cadence."""
    return WatchSettings(initial_delay=0.01, environment_delay=0.01, progress_delay=0.01)
