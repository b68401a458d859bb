from datetime import date, datetime, timezone as dt_timezone
from zoneinfo import ZoneInfo

import pytest

from common.exceptions import Conflict, NotFound, PermissionDenied, ValidationError
from patients.models import Assignment, Patient
from reports.models import AuditLog
from tasks import services
from tasks.models import CompletionEntry, LibraryTemplate, TaskTemplate
from tasks.timing import day_bounds

UTC = ZoneInfo('UTC')


def at(hour, minute, day=1):
    return datetime(2024, 5, day, hour, minute, tzinfo=dt_timezone.utc)


def submit(nurse, patient, template, when, note='done', tz=UTC):
    return services.submit_completion(
        nurse=nurse, patient=patient, template_id=template.pk, note=note, tz=tz, submitted_at=when,
    )


# --- Журнал выполнения ---

@pytest.mark.django_db
def test_morning_meds_late_and_on_time(nurse_user, patient, assignment, morning_meds):
    late = submit(nurse_user, patient, morning_meds, at(8, 15))
    assert late.is_late is True
    assert late.local_time == '08:15'
    assert late.expected_completion_time == '08:00'
    assert late.timezone_name == 'UTC'

    on_time = submit(nurse_user, patient, morning_meds, at(7, 50))
    assert on_time.is_late is False
    assert on_time.local_time == '07:50'


@pytest.mark.django_db
def test_lateness_evaluated_in_nurse_timezone(nurse_user, patient, assignment, morning_meds):
    nurse_user.timezone = 'Asia/Kolkata'
    nurse_user.save()
    tz = services.lateness_timezone(nurse_user, patient)

    # 02:45 UTC = 08:15 в Калькутте
    entry = submit(nurse_user, patient, morning_meds, at(2, 45), tz=tz)
    assert entry.local_time == '08:15'
    assert entry.is_late is True
    assert entry.timezone_name == 'Asia/Kolkata'


@pytest.mark.django_db
def test_lateness_timezone_can_follow_owner(settings, nurse_user, owner_user, patient):
    owner_user.timezone = 'Europe/Berlin'
    owner_user.save()
    settings.TASKS_LATENESS_TIMEZONE = 'owner'
    assert services.lateness_timezone(nurse_user, patient) == ZoneInfo('Europe/Berlin')
    settings.TASKS_LATENESS_TIMEZONE = 'nurse'
    assert services.lateness_timezone(nurse_user, patient) == ZoneInfo('UTC')


@pytest.mark.django_db
def test_entry_is_frozen_after_template_change(nurse_user, patient, assignment, morning_meds):
    entry = submit(nurse_user, patient, morning_meds, at(8, 15))

    services.update_template(morning_meds, scheduled_time='09:00', name='Meds')

    entry.refresh_from_db()
    assert entry.is_late is True
    assert entry.expected_completion_time == '08:00'
    # новая отметка считается уже по новому времени
    assert submit(nurse_user, patient, morning_meds, at(8, 15)).is_late is False


@pytest.mark.django_db
def test_task_without_time_is_never_late(nurse_user, patient, assignment, owner_user):
    anytime = TaskTemplate.objects.create(owner=owner_user, name='Wound Dressing', scheduled_time=None)
    entry = submit(nurse_user, patient, anytime, at(23, 59))
    assert entry.is_late is False
    assert entry.expected_completion_time is None


@pytest.mark.django_db
def test_submit_requires_note(nurse_user, patient, assignment, morning_meds):
    with pytest.raises(ValidationError):
        submit(nurse_user, patient, morning_meds, at(8, 0), note='   ')
    assert not CompletionEntry.objects.exists()


@pytest.mark.django_db
def test_submit_requires_active_assignment(nurse_user, nurse_user_2, patient, assignment, morning_meds):
    with pytest.raises(PermissionDenied):
        submit(nurse_user_2, patient, morning_meds, at(8, 0))

    assignment.active = False
    assignment.save()
    with pytest.raises(PermissionDenied):
        submit(nurse_user, patient, morning_meds, at(8, 0))


@pytest.mark.django_db
def test_submit_rejects_foreign_or_inactive_template(nurse_user, patient, assignment, owner_user_2, morning_meds):
    foreign = TaskTemplate.objects.create(owner=owner_user_2, name='Other', scheduled_time='08:00')
    with pytest.raises(NotFound):
        submit(nurse_user, patient, foreign, at(8, 0))

    morning_meds.active = False
    morning_meds.save()
    with pytest.raises(NotFound):
        submit(nurse_user, patient, morning_meds, at(8, 0))


@pytest.mark.django_db
def test_duplicate_submissions_allowed_by_default(nurse_user, patient, assignment, morning_meds):
    submit(nurse_user, patient, morning_meds, at(7, 50))
    submit(nurse_user, patient, morning_meds, at(8, 30))
    assert CompletionEntry.objects.filter(task=morning_meds, patient=patient).count() == 2


@pytest.mark.django_db
def test_single_completion_per_day_setting(settings, nurse_user, patient, assignment, morning_meds):
    settings.TASKS_SINGLE_COMPLETION_PER_DAY = True
    submit(nurse_user, patient, morning_meds, at(7, 50))
    with pytest.raises(Conflict):
        submit(nurse_user, patient, morning_meds, at(8, 30))
    # следующий день - снова можно
    submit(nurse_user, patient, morning_meds, at(7, 50, day=2))
    assert CompletionEntry.objects.count() == 2


@pytest.mark.django_db
def test_entries_are_append_only(nurse_user, patient, assignment, morning_meds):
    entry = submit(nurse_user, patient, morning_meds, at(8, 0))
    entry.note = 'changed'
    with pytest.raises(ValueError):
        entry.save()


@pytest.mark.django_db
def test_submission_is_audited(nurse_user, patient, assignment, morning_meds):
    entry = submit(nurse_user, patient, morning_meds, at(8, 0))
    log = AuditLog.objects.get(table_name='task_entries', record_id=entry.pk)
    assert log.action_type == 'CREATE'
    assert log.user == nurse_user


@pytest.mark.django_db
def test_owner_listing_is_tenant_isolated(nurse_user, patient, patient_2, assignment, owner_user, owner_user_2,
                                          morning_meds):
    other_meds = TaskTemplate.objects.create(owner=owner_user_2, name='Morning Meds', scheduled_time='08:00')
    Assignment.objects.create(nurse=nurse_user, patient=patient_2)
    mine = submit(nurse_user, patient, morning_meds, at(8, 0))
    theirs = submit(nurse_user, patient_2, other_meds, at(8, 0))

    assert [e.pk for e in services.list_for_owner(owner_user)] == [mine.pk]
    assert [e.pk for e in services.list_for_owner(owner_user_2)] == [theirs.pk]


@pytest.mark.django_db
def test_listing_newest_first_with_range_and_limit(nurse_user, patient, assignment, owner_user, morning_meds):
    first = submit(nurse_user, patient, morning_meds, at(8, 0, day=1))
    second = submit(nurse_user, patient, morning_meds, at(8, 0, day=2))
    third = submit(nurse_user, patient, morning_meds, at(8, 0, day=3))

    assert [e.pk for e in services.list_for_patient(patient)] == [third.pk, second.pk, first.pk]
    assert [e.pk for e in services.list_for_nurse(nurse_user, limit=2)] == [third.pk, second.pk]

    start, end = day_bounds(date(2024, 5, 2), UTC)
    ranged = services.list_for_owner(owner_user, start=start, end=end)
    assert [e.pk for e in ranged] == [second.pk]


# --- Сводка за день ---

@pytest.mark.django_db
def test_day_board_statuses(nurse_user, patient, assignment, owner_user, morning_meds):
    vitals = TaskTemplate.objects.create(owner=owner_user, name='Vitals', scheduled_time='09:00', order=1)
    lunch = TaskTemplate.objects.create(owner=owner_user, name='Lunch', scheduled_time='13:00', order=2)

    submit(nurse_user, patient, morning_meds, at(7, 55))
    submit(nurse_user, patient, vitals, at(8, 50))
    submit(nurse_user, patient, vitals, at(9, 20))
    # вчерашняя отметка не учитывается
    submit(nurse_user, patient, lunch, at(12, 0, day=1))

    board = services.day_board(owner_user, date(2024, 5, 2), UTC)
    assert board[lunch.pk] == services.STATUS_PENDING

    board = services.day_board(owner_user, date(2024, 5, 1), UTC)
    assert board == {
        morning_meds.pk: services.STATUS_DONE,
        vitals.pk: services.STATUS_DONE_LATE,
        lunch.pk: services.STATUS_DONE,
    }


@pytest.mark.django_db
def test_day_board_uses_local_day(nurse_user, patient, assignment, owner_user, morning_meds):
    # 20:00 UTC 1 мая - уже 2 мая в Калькутте
    submit(nurse_user, patient, morning_meds, at(20, 0))
    kolkata = ZoneInfo('Asia/Kolkata')
    assert services.day_board(owner_user, date(2024, 5, 2), kolkata)[morning_meds.pk] != services.STATUS_PENDING
    assert services.day_board(owner_user, date(2024, 5, 1), kolkata)[morning_meds.pk] == services.STATUS_PENDING


@pytest.mark.django_db
def test_day_board_patient_filter(nurse_user, patient, assignment, owner_user, morning_meds):
    other = Patient.objects.create(owner=owner_user, name='Second Patient')
    submit(nurse_user, patient, morning_meds, at(7, 0))
    day = date(2024, 5, 1)
    assert services.day_board(owner_user, day, UTC, patient=patient)[morning_meds.pk] == services.STATUS_DONE
    assert services.day_board(owner_user, day, UTC, patient=other)[morning_meds.pk] == services.STATUS_PENDING


@pytest.mark.django_db
def test_todays_tasks_follow_template_order(owner_user, patient, morning_meds):
    evening = TaskTemplate.objects.create(owner=owner_user, name='Evening Meds', scheduled_time='20:00', order=-1)
    TaskTemplate.objects.create(owner=owner_user, name='Retired', order=5, active=False)

    tasks = services.todays_tasks(patient, date(2024, 5, 1), UTC)
    assert [t.template.pk for t in tasks] == [evening.pk, morning_meds.pk]
    assert all(t.status == services.STATUS_PENDING and t.patient_id == patient.pk for t in tasks)


@pytest.mark.django_db
def test_todays_tasks_empty_without_templates(patient):
    assert services.todays_tasks(patient, date(2024, 5, 1), UTC) == []


# --- Шаблоны ---

@pytest.mark.django_db
def test_create_template_default_order(owner_user, owner_user_2):
    first = services.create_template(owner_user, name='A')
    second = services.create_template(owner_user, name='B', scheduled_time='8:30')
    assert (first.order, second.order) == (0, 1)
    assert second.scheduled_time == '08:30'
    assert services.create_template(owner_user_2, name='C').order == 0


@pytest.mark.django_db
def test_create_template_from_library(owner_user):
    library = LibraryTemplate.objects.create(name='Vitals Check', description='BP and pulse', scheduled_time='09:00')

    copied = services.create_template(owner_user, library_template=library)
    assert (copied.name, copied.scheduled_time, copied.source_template) == ('Vitals Check', '09:00', library)

    overridden = services.create_template(owner_user, library_template=library, name='Vitals', scheduled_time='10:00')
    assert (overridden.name, overridden.scheduled_time, overridden.description) == ('Vitals', '10:00', 'BP and pulse')

    flexible = services.create_template(owner_user, library_template=library, scheduled_time=None)
    assert flexible.scheduled_time is None


@pytest.mark.django_db
def test_create_template_validation(owner_user):
    with pytest.raises(ValidationError):
        services.create_template(owner_user, name='  ')
    with pytest.raises(ValidationError):
        services.create_template(owner_user, name='Bad time', scheduled_time='25:00')


@pytest.mark.django_db
def test_update_template_rejects_other_fields(morning_meds):
    with pytest.raises(ValidationError):
        services.update_template(morning_meds, order=7)


@pytest.mark.django_db
def test_reorder_templates(owner_user, morning_meds):
    vitals = TaskTemplate.objects.create(owner=owner_user, name='Vitals', order=1)
    result = services.reorder_templates(owner_user, [{'id': morning_meds.pk, 'order': 1}, {'id': vitals.pk, 'order': 0}])
    assert [t.pk for t in result] == [vitals.pk, morning_meds.pk]
    assert AuditLog.objects.filter(action_type='REORDER').count() == 1


@pytest.mark.django_db
def test_reorder_is_atomic_on_failure(monkeypatch, owner_user, morning_meds):
    vitals = TaskTemplate.objects.create(owner=owner_user, name='Vitals', order=1)
    lunch = TaskTemplate.objects.create(owner=owner_user, name='Lunch', order=2)
    original_save = TaskTemplate.save
    calls = []

    def failing_save(self, *args, **kwargs):
        calls.append(self.pk)
        if len(calls) == 2:
            raise RuntimeError('disk full')
        return original_save(self, *args, **kwargs)

    monkeypatch.setattr(TaskTemplate, 'save', failing_save)
    with pytest.raises(RuntimeError):
        services.reorder_templates(owner_user, [
            {'id': morning_meds.pk, 'order': 2},
            {'id': vitals.pk, 'order': 1},
            {'id': lunch.pk, 'order': 0},
        ])
    monkeypatch.undo()

    orders = dict(TaskTemplate.objects.filter(owner=owner_user).values_list('pk', 'order'))
    assert orders == {morning_meds.pk: 0, vitals.pk: 1, lunch.pk: 2}
    assert not AuditLog.objects.filter(action_type='REORDER').exists()


@pytest.mark.django_db
def test_reorder_rejects_foreign_and_duplicate_ids(owner_user, owner_user_2, morning_meds):
    foreign = TaskTemplate.objects.create(owner=owner_user_2, name='Foreign', order=3)
    with pytest.raises(NotFound):
        services.reorder_templates(owner_user, [{'id': morning_meds.pk, 'order': 5}, {'id': foreign.pk, 'order': 0}])
    with pytest.raises(ValidationError):
        services.reorder_templates(owner_user, [{'id': morning_meds.pk, 'order': 1}, {'id': morning_meds.pk, 'order': 2}])

    morning_meds.refresh_from_db()
    foreign.refresh_from_db()
    assert (morning_meds.order, foreign.order) == (0, 3)


@pytest.mark.django_db
def test_delete_template_without_history(morning_meds):
    assert services.delete_template(morning_meds) == 'deleted'
    assert not TaskTemplate.objects.filter(name='Morning Meds').exists()


@pytest.mark.django_db
def test_delete_template_with_history_deactivates(nurse_user, patient, assignment, morning_meds):
    entry = submit(nurse_user, patient, morning_meds, at(8, 0))
    assert services.delete_template(morning_meds) == 'deactivated'
    morning_meds.refresh_from_db()
    assert morning_meds.active is False
    assert CompletionEntry.objects.get(pk=entry.pk).task_id == morning_meds.pk
    assert list(services.owner_templates(morning_meds.owner)) == []


@pytest.mark.django_db
def test_get_owned_template_hides_foreign(owner_user_2, morning_meds):
    with pytest.raises(NotFound):
        services.get_owned_template(owner_user_2, morning_meds.pk)
    with pytest.raises(NotFound):
        services.get_owned_template(owner_user_2, 'abc')


@pytest.mark.django_db
def test_seed_library_is_idempotent():
    created = services.seed_library()
    assert len(created) == len(services.DEFAULT_LIBRARY)
    assert services.seed_library() == []
    assert LibraryTemplate.objects.get(name='Wound Dressing').scheduled_time is None
    assert LibraryTemplate.objects.get(name='Morning Medication').scheduled_time == '08:00'
