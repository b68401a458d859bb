import io
from datetime import date, datetime, timezone as dt_timezone
from zoneinfo import ZoneInfo

import pytest
from openpyxl import load_workbook

from reports.models import AuditLog
from reports.services import generate_compliance_payload, resolve_period
from tasks.models import TaskTemplate
from tasks.services import submit_completion

UTC = ZoneInfo('UTC')


def complete(nurse, patient, template, when, note='done'):
    return submit_completion(nurse=nurse, patient=patient, template_id=template.pk, note=note, tz=UTC,
                             submitted_at=when)


@pytest.fixture
def completions(nurse_user, patient, assignment, owner_user, morning_meds):
    vitals = TaskTemplate.objects.create(owner=owner_user, name='Vitals', scheduled_time='09:00', order=1)
    complete(nurse_user, patient, morning_meds, datetime(2024, 5, 1, 7, 50, tzinfo=dt_timezone.utc))
    complete(nurse_user, patient, morning_meds, datetime(2024, 5, 2, 8, 15, tzinfo=dt_timezone.utc))
    complete(nurse_user, patient, vitals, datetime(2024, 5, 2, 8, 55, tzinfo=dt_timezone.utc))
    return vitals


@pytest.mark.django_db
def test_compliance_payload(owner_user, morning_meds, completions):
    payload = generate_compliance_payload(owner_user, date(2024, 5, 1), date(2024, 5, 2), UTC)

    assert payload['totals'] == {'total': 3, 'onTime': 2, 'late': 1, 'onTimeRate': 66.7}
    per_task = {row['name']: row for row in payload['perTask']}
    assert per_task['Morning Meds']['late'] == 1
    assert per_task['Vitals']['onTimeRate'] == 100.0
    assert payload['perNurse'][0]['total'] == 3
    assert payload['timeseries'] == [
        {'date': '2024-05-01', 'total': 1, 'late': 0},
        {'date': '2024-05-02', 'total': 2, 'late': 1},
    ]


@pytest.mark.django_db
def test_compliance_payload_is_scoped_to_owner(owner_user_2, completions):
    payload = generate_compliance_payload(owner_user_2, date(2024, 5, 1), date(2024, 5, 2), UTC)
    assert payload['totals']['total'] == 0
    assert payload['totals']['onTimeRate'] is None


def test_resolve_period_defaults_to_last_30_days():
    start, end = resolve_period(None, date(2024, 5, 30), UTC)
    assert (start, end) == (date(2024, 5, 1), date(2024, 5, 30))


@pytest.mark.django_db
def test_compliance_endpoint(api_client, owner_user, nurse_user, completions):
    api_client.force_authenticate(user=owner_user)
    response = api_client.get('/api/reports/compliance/?startDate=2024-05-01&endDate=2024-05-02')
    assert response.status_code == 200
    assert response.data['data']['totals']['total'] == 3
    assert response.data['data']['period']['timezone'] == 'UTC'

    response = api_client.get('/api/reports/compliance/?startDate=2024-05-03&endDate=2024-05-01')
    assert response.status_code == 400

    # Медсестре отчёт недоступен
    api_client.force_authenticate(user=nurse_user)
    assert api_client.get('/api/reports/compliance/').status_code == 403


@pytest.mark.django_db
def test_compliance_excel_export(api_client, owner_user, completions):
    api_client.force_authenticate(user=owner_user)
    response = api_client.get('/api/reports/compliance/export-excel/?startDate=2024-05-01&endDate=2024-05-02')
    assert response.status_code == 200
    assert response['Content-Type'].startswith('application/vnd.openxmlformats')

    wb = load_workbook(io.BytesIO(response.content))
    assert wb.sheetnames == ['Summary', 'Entries']
    # заголовок (4 строки) + шапка таблицы + 3 отметки
    assert wb['Entries'].max_row == 8


@pytest.mark.django_db
def test_audit_log_admin_only(api_client, admin_user, owner_user, completions):
    assert AuditLog.objects.filter(table_name='task_entries').count() == 3

    api_client.force_authenticate(user=owner_user)
    assert api_client.get('/api/audit-logs/').status_code == 403

    api_client.force_authenticate(user=admin_user)
    response = api_client.get('/api/audit-logs/?tableName=task_entries')
    assert response.status_code == 200
    assert response.data['count'] == 3
    assert response.data['data'][0]['newValues']['patientId'] is not None
