# /tests/conftest.py
from __future__ import annotations

from datetime import datetime

import pytest

import config
from dependencies import counter_rate_limiter, global_rate_limiter, subscribe_rate_limiter

LIMITERS = (counter_rate_limiter, global_rate_limiter, subscribe_rate_limiter)


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch: pytest.MonkeyPatch):
    """Each test starts without a server secret, trusting proxy headers, with empty limiters."""
    monkeypatch.setattr(config, "IP_HASH_SALT", "")
    monkeypatch.setattr(config, "TRUST_PROXY_HEADERS", True)
    monkeypatch.setattr(config, "ANONYMIZE_SCOPE_CLIENT", True)
    for limiter in LIMITERS:
        limiter.reset()
    yield
    for limiter in LIMITERS:
        limiter.reset()


def fixed_clock(year: int, month: int, day: int):
    return lambda: datetime(year, month, day, 12, 30)


@pytest.fixture
def jan15():
    return fixed_clock(2024, 1, 15)


@pytest.fixture
def jan16():
    return fixed_clock(2024, 1, 16)
