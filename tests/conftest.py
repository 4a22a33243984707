"""Shared fixtures for the trading journal test suite."""

from __future__ import annotations

import pytest

from tests.helpers import BASE_TIME


@pytest.fixture
def base_time():
    return BASE_TIME
