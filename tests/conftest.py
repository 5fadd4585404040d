"""
Root conftest.py for all tests
Provides common fixtures and configuration
"""
import os

import pytest

os.environ.setdefault("ENVIRONMENT", "test")

from core.config import get_settings  # noqa: E402

# Import all centralized fixtures
from tests.fixtures import *  # noqa: F401,F403,E402


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Settings are re-read from the environment for every test"""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
