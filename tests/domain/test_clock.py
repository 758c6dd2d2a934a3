"""Tests for the fixed-offset clock."""

from datetime import datetime, timedelta, timezone

import pytest

from devflow.core.clock import Clock, get_clock
from devflow.core.config import Settings, get_settings

pytestmark = pytest.mark.unit


def test_now_is_aware_in_configured_offset():
    clock = Clock(8)
    now = clock.now()
    assert now.utcoffset() == timedelta(hours=8)


def test_localize_attaches_offset_to_naive_values():
    clock = Clock(8)
    naive = datetime(2026, 10, 14, 9, 30)
    localized = clock.localize(naive)
    assert localized.utcoffset() == timedelta(hours=8)
    assert localized.replace(tzinfo=None) == naive


def test_localize_converts_aware_values():
    clock = Clock(8)
    utc_value = datetime(2026, 10, 14, 1, 30, tzinfo=timezone.utc)
    localized = clock.localize(utc_value)
    assert localized.hour == 9
    assert localized == utc_value


def test_localize_none_passthrough():
    assert Clock(8).localize(None) is None


def test_get_clock_uses_settings_offset(monkeypatch):
    monkeypatch.setenv("UTC_OFFSET_HOURS", "-5")
    get_settings.cache_clear()
    get_clock.cache_clear()
    try:
        assert get_clock().tz.utcoffset(None) == timedelta(hours=-5)
        assert get_clock() is get_clock()
    finally:
        get_settings.cache_clear()
        get_clock.cache_clear()


def test_offset_out_of_range_rejected():
    with pytest.raises(ValueError):
        Settings(utc_offset_hours=24)
