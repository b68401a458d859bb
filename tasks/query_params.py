"""
Разбор фильтров журнала из query-параметров: startDate, endDate, patientId, taskId, limit.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Mapping, Optional

from django.conf import settings
from django.utils import dateparse

from common.exceptions import ValidationError
from .timing import range_bounds


@dataclass(slots=True)
class EntryFilters:
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    patient_id: Optional[int] = None
    task_id: Optional[int] = None
    limit: Optional[int] = None


def parse_day(value: Optional[str], field: str) -> Optional[date]:
    if not value:
        return None
    try:
        parsed = dateparse.parse_date(value)
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError({field: f'"{value}" is not a valid YYYY-MM-DD date'})
    return parsed


def parse_int(value: Optional[str], field: str) -> Optional[int]:
    if value in (None, ''):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError({field: f'"{value}" is not a valid integer'})


def parse_limit(value: Optional[str]) -> int:
    limit = parse_int(value, 'limit')
    if limit is None:
        return settings.TASKS_ENTRIES_DEFAULT_LIMIT
    if limit < 1:
        raise ValidationError({'limit': 'limit must be a positive integer'})
    return min(limit, settings.TASKS_ENTRIES_MAX_LIMIT)


def parse_entry_filters(params: Mapping[str, str], tz: tzinfo) -> EntryFilters:
    """Даты трактуются как локальные календарные дни в ``tz``, включительно."""
    start_day = parse_day(params.get('startDate'), 'startDate')
    end_day = parse_day(params.get('endDate'), 'endDate')
    if start_day and end_day and start_day > end_day:
        raise ValidationError({'endDate': 'endDate must not be before startDate'})
    start, end = range_bounds(start_day, end_day, tz)
    return EntryFilters(
        start=start,
        end=end,
        patient_id=parse_int(params.get('patientId'), 'patientId'),
        task_id=parse_int(params.get('taskId'), 'taskId'),
        limit=parse_limit(params.get('limit')),
    )
