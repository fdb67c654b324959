"""Tests for cache configuration."""

import pytest
from pydantic import ValidationError

from casecoach.models.cache import CacheConfig


def test_defaults():
    config = CacheConfig()
    assert config.enabled is True
    assert config.ttl_seconds == 24 * 3600
    assert config.size_limit_bytes == 100 * 1024 * 1024


def test_ttl_must_be_positive():
    with pytest.raises(ValidationError):
        CacheConfig(ttl_hours=0)
