from datetime import date, datetime, timedelta, timezone as dt_timezone
from zoneinfo import ZoneInfo

import pytest

from tasks.timing import (
    day_bounds,
    is_late,
    local_date_of,
    local_time_of,
    normalize_hhmm,
    range_bounds,
    resolve_timezone,
)


@pytest.mark.parametrize('raw, expected', [
    ('08:00', '08:00'),
    ('8:05', '08:05'),
    (' 23:59 ', '23:59'),
    ('', None),
    (None, None),
])
def test_normalize_hhmm(raw, expected):
    assert normalize_hhmm(raw) == expected


@pytest.mark.parametrize('raw', ['24:00', '12:60', '0800', 'noon', '08:00:00'])
def test_normalize_hhmm_rejects_invalid(raw):
    with pytest.raises(ValueError):
        normalize_hhmm(raw)


def test_task_without_time_is_never_late():
    assert is_late(None, '23:59') is False
    assert is_late('', '00:00') is False


def test_lateness_boundary():
    """Совпадение минуты - вовремя, на минуту позже - опоздание."""
    assert is_late('08:00', '08:00') is False
    assert is_late('08:00', '08:01') is True
    assert is_late('08:00', '07:59') is False
    assert is_late('09:30', '10:05') is True


def test_resolve_timezone():
    assert resolve_timezone('Asia/Kolkata') == ZoneInfo('Asia/Kolkata')
    with pytest.raises(ValueError):
        resolve_timezone('Mars/Olympus')
    with pytest.raises(ValueError):
        resolve_timezone('')


def test_local_time_uses_profile_timezone():
    instant = datetime(2024, 5, 1, 2, 45, tzinfo=dt_timezone.utc)
    kolkata = ZoneInfo('Asia/Kolkata')
    assert local_time_of(instant, kolkata) == '08:15'
    assert local_time_of(instant, ZoneInfo('UTC')) == '02:45'
    # 23:30 UTC 30 апреля - уже 1 мая в Калькутте
    assert local_date_of(datetime(2024, 4, 30, 23, 30, tzinfo=dt_timezone.utc), kolkata) == date(2024, 5, 1)


def test_day_bounds_are_half_open_local_midnights():
    start, end = day_bounds(date(2024, 5, 1), ZoneInfo('Asia/Kolkata'))
    assert start == datetime(2024, 4, 30, 18, 30, tzinfo=dt_timezone.utc)
    assert end == datetime(2024, 5, 1, 18, 30, tzinfo=dt_timezone.utc)


def test_day_bounds_across_dst_change():
    new_york = ZoneInfo('America/New_York')
    # Разность считается по реальным моментам в UTC, а не по настенному времени
    start, end = day_bounds(date(2024, 3, 10), new_york)
    assert end.astimezone(dt_timezone.utc) - start.astimezone(dt_timezone.utc) == timedelta(hours=23)
    assert start == datetime(2024, 3, 10, 5, 0, tzinfo=dt_timezone.utc)
    start, end = day_bounds(date(2024, 11, 3), new_york)
    assert end.astimezone(dt_timezone.utc) - start.astimezone(dt_timezone.utc) == timedelta(hours=25)
    assert end == datetime(2024, 11, 4, 5, 0, tzinfo=dt_timezone.utc)


def test_range_bounds_inclusive_days():
    utc = ZoneInfo('UTC')
    start, end = range_bounds(date(2024, 5, 1), date(2024, 5, 3), utc)
    assert start == datetime(2024, 5, 1, tzinfo=dt_timezone.utc)
    assert end == datetime(2024, 5, 4, tzinfo=dt_timezone.utc)
    assert range_bounds(None, None, utc) == (None, None)
