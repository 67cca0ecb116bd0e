"""Pytest configuration and shared fixtures."""

from datetime import datetime

import pytest

from tests.factories import FIXED_NOW


@pytest.fixture
def fixed_now() -> datetime:
    """A fixed reference time for mapping and writes."""
    return FIXED_NOW
