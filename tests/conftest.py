"""
Shared test fixtures for the biroute test suite.
"""

import os

import pytest

from biroute.cache import set_global_cache


@pytest.fixture(autouse=True)
def isolated_global_cache():
    """Every test starts with a fresh global route cache."""
    set_global_cache(None)
    yield
    set_global_cache(None)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove BIROUTE_* variables inherited from the outer environment."""
    for key in list(os.environ):
        if key.startswith("BIROUTE_"):
            monkeypatch.delenv(key, raising=False)
    return monkeypatch
