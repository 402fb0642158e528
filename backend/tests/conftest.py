"""
Shared fixtures for the trips core tests.

Every test gets a fresh core on a virtual clock, so hold expiry is driven by
``scheduler.advance()``.
"""

import pytest

from motorpark.operations import create_park_operations
from motorpark.services.hold_scheduler import ManualHoldScheduler
from motorpark.utils.config import ParkConfig

from factories import START


@pytest.fixture
def config():
    """Default configuration, independent of the environment."""
    return ParkConfig()


@pytest.fixture
def scheduler():
    """Virtual clock scheduler."""
    return ManualHoldScheduler(start=START)


@pytest.fixture
def ops(config, scheduler):
    """Fully wired trips core."""
    return create_park_operations(config=config, scheduler=scheduler)
