"""
Работа со временем для учёта задач.

Плановое время задачи хранится как локальное "HH:MM" без даты и без часового
пояса. Все сравнения выполняются в явно переданном часовом поясе (профиль
медсестры или владельца), а не в UTC сервера.
"""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from django.utils import timezone

HHMM_PATTERN = re.compile(r'^([01]?\d|2[0-3]):([0-5]\d)$')


def normalize_hhmm(value: Optional[str]) -> Optional[str]:
    """
    Приводит время к виду "HH:MM" (``"8:05"`` -> ``"08:05"``).
    Пустое значение означает задачу без фиксированного времени.
    """
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    match = HHMM_PATTERN.match(value)
    if not match:
        raise ValueError(f'"{value}" is not a valid 24-hour HH:MM time')
    hours, minutes = match.groups()
    return f'{int(hours):02d}:{minutes}'


def is_late(scheduled_time: Optional[str], submission_local_time: str) -> bool:
    """
    Опоздание - строго позже планового времени; совпадение минуты считается вовремя.
    Строки "HH:MM" с ведущими нулями сравниваются так же, как минуты от начала суток.
    """
    if not scheduled_time:
        return False
    return submission_local_time > scheduled_time


def resolve_timezone(name: Optional[str]) -> tzinfo:
    if not name:
        raise ValueError('Timezone is required')
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f'Unknown timezone "{name}"') from exc


def local_time_of(instant: datetime, tz: tzinfo) -> str:
    return timezone.localtime(instant, tz).strftime('%H:%M')


def local_date_of(instant: datetime, tz: tzinfo) -> date:
    return timezone.localtime(instant, tz).date()


def local_isoformat(instant: datetime, tz: tzinfo) -> str:
    return timezone.localtime(instant, tz).isoformat()


def today_in(tz: tzinfo) -> date:
    return local_date_of(timezone.now(), tz)


def day_bounds(day: date, tz: tzinfo) -> Tuple[datetime, datetime]:
    """
    Полуоткрытый интервал [начало, конец) локальных календарных суток.
    Длина суток может отличаться от 24 часов при переходе на летнее время.
    """
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end


def range_bounds(
    start_day: Optional[date],
    end_day: Optional[date],
    tz: tzinfo,
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Границы диапазона локальных дат включительно; открытый край остаётся ``None``."""
    start = day_bounds(start_day, tz)[0] if start_day else None
    end = day_bounds(end_day, tz)[1] if end_day else None
    return start, end
