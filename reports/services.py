from __future__ import annotations

from datetime import date, timedelta, tzinfo
from typing import Any, Dict, List, Optional, TypedDict

from django.db.models import Count, Q, QuerySet
from django.db.models.functions import TruncDate
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from tasks.models import CompletionEntry
from tasks.services import timezone_name
from tasks.timing import local_isoformat, range_bounds, today_in
from users.models import User

DEFAULT_PERIOD_DAYS = 30


class PeriodPayload(TypedDict):
    startDate: str
    endDate: str
    timezone: str


class TotalsPayload(TypedDict):
    total: int
    onTime: int
    late: int
    onTimeRate: Optional[float]


class CompliancePayload(TypedDict):
    period: PeriodPayload
    ownerId: Optional[int]
    totals: TotalsPayload
    perTask: List[Dict[str, Any]]
    perNurse: List[Dict[str, Any]]
    timeseries: List[Dict[str, Any]]


def resolve_period(start_day: Optional[date], end_day: Optional[date], tz: tzinfo) -> tuple[date, date]:
    """Без дат - последние 30 локальных суток, включая сегодня."""
    end_day = end_day or today_in(tz)
    start_day = start_day or end_day - timedelta(days=DEFAULT_PERIOD_DAYS - 1)
    return start_day, end_day


def compliance_entries(
    owner: Optional[User],
    start_day: date,
    end_day: date,
    tz: tzinfo,
) -> QuerySet[CompletionEntry]:
    start, end = range_bounds(start_day, end_day, tz)
    queryset = CompletionEntry.objects.filter(timestamp__gte=start, timestamp__lt=end)
    if owner is not None:
        queryset = queryset.filter(patient__owner=owner)
    return queryset


def _rate(on_time: int, total: int) -> Optional[float]:
    return round(on_time * 100.0 / total, 1) if total else None


def _counts() -> Dict[str, Count]:
    return {'total': Count('id'), 'late': Count('id', filter=Q(is_late=True))}


def generate_compliance_payload(
    owner: Optional[User],
    start_day: date,
    end_day: date,
    tz: tzinfo,
) -> CompliancePayload:
    """
    Сводка выполнения задач за период: всего, вовремя, с опозданием,
    разбивка по задачам, медсёстрам и локальным дням в ``tz``.
    """
    entries = compliance_entries(owner, start_day, end_day, tz)
    totals = entries.aggregate(**_counts())
    on_time = totals['total'] - totals['late']

    per_task = (
        entries.values('task_id', 'task__name')
        .annotate(**_counts())
        .order_by('-total', 'task__name')
    )
    per_nurse = (
        entries.values('nurse_id', 'nurse__full_name', 'nurse__username')
        .annotate(**_counts())
        .order_by('-total', 'nurse__username')
    )
    # Дни считаются по локальному календарю, а не по UTC
    timeseries = (
        entries.annotate(day=TruncDate('timestamp', tzinfo=tz))
        .values('day')
        .annotate(**_counts())
        .order_by('day')
    )

    return {
        'period': {
            'startDate': start_day.isoformat(),
            'endDate': end_day.isoformat(),
            'timezone': timezone_name(tz),
        },
        'ownerId': owner.pk if owner is not None else None,
        'totals': {
            'total': totals['total'],
            'onTime': on_time,
            'late': totals['late'],
            'onTimeRate': _rate(on_time, totals['total']),
        },
        'perTask': [
            {
                'taskId': row['task_id'],
                'name': row['task__name'],
                'total': row['total'],
                'late': row['late'],
                'onTimeRate': _rate(row['total'] - row['late'], row['total']),
            }
            for row in per_task
        ],
        'perNurse': [
            {
                'nurseId': row['nurse_id'],
                'name': row['nurse__full_name'] or row['nurse__username'],
                'total': row['total'],
                'late': row['late'],
                'onTimeRate': _rate(row['total'] - row['late'], row['total']),
            }
            for row in per_nurse
        ],
        'timeseries': [
            {'date': str(row['day']), 'total': row['total'], 'late': row['late']}
            for row in timeseries
        ],
    }


def build_compliance_workbook(
    payload: CompliancePayload,
    entries: QuerySet[CompletionEntry],
    tz: tzinfo,
    reporter: str,
) -> Workbook:
    """XLSX: лист со сводкой и лист со всеми отметками за период."""
    wb = Workbook()
    thin = Side(border_style="thin", color="000000")
    border = Border(top=thin, bottom=thin, left=thin, right=thin)
    header_fill = PatternFill(start_color="F2F2F2", end_color="F2F2F2", fill_type="solid")
    header_font = Font(bold=True)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    period = payload['period']

    def style_header_row(ws, row_idx: int, col_count: int) -> None:
        for col in range(1, col_count + 1):
            cell = ws.cell(row=row_idx, column=col)
            cell.fill = header_fill
            cell.font = header_font
            cell.alignment = center
            cell.border = border

    def apply_table_borders(ws, start_row: int, end_row: int, col_count: int) -> None:
        for r in range(start_row, end_row + 1):
            for c in range(1, col_count + 1):
                ws.cell(row=r, column=c).border = border

    def add_sheet_header(ws, title: str, col_count: int) -> int:
        ws.append([title])
        ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=col_count)
        ws['A1'].font = Font(bold=True, size=14)
        ws.append([f"Period: {period['startDate']} .. {period['endDate']} ({period['timezone']})"])
        ws.merge_cells(start_row=2, start_column=1, end_row=2, end_column=col_count)
        ws.append([f"Prepared by: {reporter}"])
        ws.merge_cells(start_row=3, start_column=1, end_row=3, end_column=col_count)
        ws.append([])
        return 5

    ws_summary = wb.active
    ws_summary.title = 'Summary'
    header_row = add_sheet_header(ws_summary, 'Task compliance', 2)
    ws_summary.append(['Metric', 'Value'])
    style_header_row(ws_summary, header_row, 2)
    totals = payload['totals']
    ws_summary.append(['Completions', totals['total']])
    ws_summary.append(['On time', totals['onTime']])
    ws_summary.append(['Late', totals['late']])
    ws_summary.append(['On-time rate (%)', totals['onTimeRate'] if totals['onTimeRate'] is not None else '-'])
    apply_table_borders(ws_summary, header_row, ws_summary.max_row, 2)

    task_header = ws_summary.max_row + 2
    ws_summary.append([])
    ws_summary.append(['Task', 'Completions', 'Late', 'On-time rate (%)'])
    style_header_row(ws_summary, task_header, 4)
    for row in payload['perTask']:
        ws_summary.append([row['name'], row['total'], row['late'], row['onTimeRate']])
    apply_table_borders(ws_summary, task_header, ws_summary.max_row, 4)
    ws_summary.column_dimensions['A'].width = 30
    for col in range(2, 5):
        ws_summary.column_dimensions[get_column_letter(col)].width = 18

    ws_entries = wb.create_sheet('Entries')
    columns = ['ID', 'Submitted (local)', 'Patient', 'Task', 'Nurse', 'Scheduled', 'Nurse local time',
               'Timezone', 'Late', 'Note']
    header_row = add_sheet_header(ws_entries, 'Completion entries', len(columns))
    ws_entries.append(columns)
    style_header_row(ws_entries, header_row, len(columns))
    for entry in entries.select_related('task', 'patient', 'nurse').order_by('timestamp', 'id'):
        ws_entries.append([
            entry.pk,
            local_isoformat(entry.timestamp, tz)[:16].replace('T', ' '),
            entry.patient.name,
            entry.task.name,
            entry.nurse.display_name,
            entry.expected_completion_time or '-',
            entry.local_time,
            entry.timezone_name,
            'yes' if entry.is_late else 'no',
            entry.note,
        ])
    apply_table_borders(ws_entries, header_row, ws_entries.max_row, len(columns))
    for col in range(1, len(columns) + 1):
        ws_entries.column_dimensions[get_column_letter(col)].width = 18
    ws_entries.column_dimensions[get_column_letter(len(columns))].width = 40

    return wb
