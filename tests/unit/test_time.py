"""Tests for UTC time utilities."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from powermeter.core.time import (
    format_js_iso8601,
    format_utc_iso8601,
    from_epoch_ms,
    get_current_utc,
    normalize_to_minute,
    parse_utc_iso8601,
    to_epoch_ms,
)


def test_current_utc_is_aware():
    now = get_current_utc()

    assert now.tzinfo is not None
    assert now.utcoffset() == timedelta(0)


def test_format_utc_iso8601():
    assert format_utc_iso8601(datetime(2016, 2, 1, tzinfo=timezone.utc)) == "2016-02-01T00:00:00+00:00"


def test_format_js_iso8601():
    assert format_js_iso8601(datetime(2016, 2, 1, tzinfo=timezone.utc)) == "2016-02-01T00:00:00.000Z"


def test_format_js_iso8601_converts_offsets():
    oslo = timezone(timedelta(hours=1))

    assert format_js_iso8601(datetime(2016, 1, 1, 0, 0, tzinfo=oslo)) == "2015-12-31T23:00:00.000Z"


def test_parse_zulu_suffix():
    assert parse_utc_iso8601("2016-02-01T00:00:00Z") == datetime(2016, 2, 1, tzinfo=timezone.utc)


def test_parse_naive_is_utc():
    assert parse_utc_iso8601("2016-02-01T12:30:00") == datetime(2016, 2, 1, 12, 30, tzinfo=timezone.utc)


def test_parse_offset_converted_to_utc():
    assert parse_utc_iso8601("2016-01-01T00:00:00+01:00") == datetime(2015, 12, 31, 23, 0, tzinfo=timezone.utc)


def test_parse_invalid():
    with pytest.raises(ValueError):
        parse_utc_iso8601("first of february")


def test_epoch_ms():
    dt = datetime(2016, 2, 1, tzinfo=timezone.utc)

    assert to_epoch_ms(dt) == 1454284800000
    assert from_epoch_ms(1454284800000) == dt
    assert from_epoch_ms("1454284800000") == dt


def test_normalize_to_minute():
    dt = datetime(2016, 2, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)

    assert normalize_to_minute(dt) == datetime(2016, 2, 1, 12, 30, tzinfo=timezone.utc)
