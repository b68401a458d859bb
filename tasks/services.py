"""
Сервисный слой учёта задач: шаблоны владельца, задачи на сегодня,
журнал выполнения и сводка статусов за день.

Каждая функция - законченная единица работы одного запроса. Часовой пояс
во все функции, зависящие от времени, передаётся явно.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from django.conf import settings
from django.db import transaction
from django.db.models import Max, ProtectedError, QuerySet
from django.utils import timezone

from common.audit import record_audit
from common.exceptions import Conflict, NotFound, PermissionDenied, ValidationError
from patients.models import Patient
from patients.services import nurse_is_assigned
from users.models import User
from .models import CompletionEntry, LibraryTemplate, TaskTemplate
from .timing import day_bounds, is_late, local_date_of, local_time_of, normalize_hhmm, resolve_timezone

logger = logging.getLogger(__name__)

STATUS_PENDING = 'pending'
STATUS_DONE = 'done'
STATUS_DONE_LATE = 'done-late'

EDITABLE_FIELDS = ('name', 'description', 'scheduled_time')

# Отличает "поле не передано" от явного None
UNSET: Any = object()

DEFAULT_LIBRARY: Tuple[Tuple[str, str, Optional[str]], ...] = (
    ('Morning Medication', 'Give the prescribed morning medication and record any reaction.', '08:00'),
    ('Vitals Check', 'Measure blood pressure, pulse, temperature and oxygen saturation.', '09:00'),
    ('Lunch Assistance', 'Help with lunch and note appetite and fluid intake.', '13:00'),
    ('Evening Medication', 'Give the prescribed evening medication.', '20:00'),
    ('Wound Dressing', 'Inspect and change the dressing, note the wound condition.', None),
)


@dataclass(frozen=True)
class TaskInstance:
    """Задача на конкретный день для конкретного пациента; отдельно не хранится."""

    template: TaskTemplate
    patient_id: int
    date: date
    status: str


def _clean_time(value: Optional[str], field: str = 'scheduledTime') -> Optional[str]:
    try:
        return normalize_hhmm(value)
    except ValueError as exc:
        raise ValidationError({field: str(exc)})


def timezone_name(tz: tzinfo) -> str:
    return getattr(tz, 'key', None) or str(tz)


def profile_timezone(user: User) -> tzinfo:
    try:
        return resolve_timezone(user.timezone)
    except ValueError as exc:
        raise ValidationError({'timezone': f'User {user.pk}: {exc}'})


def lateness_timezone(nurse: User, patient: Patient) -> tzinfo:
    """Часовой пояс, в котором оценивается опоздание (настройка TASKS_LATENESS_TIMEZONE)."""
    if settings.TASKS_LATENESS_TIMEZONE == 'owner':
        return profile_timezone(patient.owner)
    return profile_timezone(nurse)


# --- Шаблоны задач владельца ---

def owner_templates(owner: User, *, active_only: bool = True) -> QuerySet[TaskTemplate]:
    queryset = TaskTemplate.objects.filter(owner=owner)
    if active_only:
        queryset = queryset.filter(active=True)
    return queryset.order_by('order', 'created_at', 'id')


def get_owned_template(owner: User, template_id: Any) -> TaskTemplate:
    """Чужой шаблон неотличим от несуществующего."""
    try:
        return TaskTemplate.objects.get(pk=template_id, owner=owner)
    except (TaskTemplate.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'Task {template_id} not found')


def create_template(
    owner: User,
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    scheduled_time: Any = UNSET,
    order: Optional[int] = None,
    library_template: Optional[LibraryTemplate] = None,
) -> TaskTemplate:
    """
    Создаёт активный шаблон. Поля библиотечного шаблона служат значениями
    по умолчанию, явно переданные поля их перекрывают. Явный None или пустая
    строка в scheduled_time делают задачу без фиксированного времени.
    """
    fields: Dict[str, Any] = {'name': '', 'description': '', 'scheduled_time': None}
    if library_template is not None:
        fields.update(
            name=library_template.name,
            description=library_template.description,
            scheduled_time=library_template.scheduled_time,
        )
    if name is not None and name.strip():
        fields['name'] = name
    if description is not None:
        fields['description'] = description
    if scheduled_time is not UNSET:
        fields['scheduled_time'] = scheduled_time

    fields['name'] = fields['name'].strip()
    if not fields['name']:
        raise ValidationError({'name': 'Task name is required'})
    fields['scheduled_time'] = _clean_time(fields['scheduled_time'])

    with transaction.atomic():
        if order is None:
            current = TaskTemplate.objects.filter(owner=owner).aggregate(top=Max('order'))['top']
            order = 0 if current is None else current + 1
        template = TaskTemplate.objects.create(
            owner=owner,
            order=order,
            source_template=library_template,
            **fields,
        )

    logger.info("Task template %s created for owner %s", template.pk, owner.pk)
    return template


def update_template(template: TaskTemplate, **changes: Any) -> TaskTemplate:
    """
    Меняет название, описание и плановое время. Записи журнала не трогаются:
    в них сохранён снимок планового времени на момент отметки.
    """
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError({field: 'This field cannot be updated' for field in sorted(unknown)})

    if 'name' in changes:
        name = (changes['name'] or '').strip()
        if not name:
            raise ValidationError({'name': 'Task name is required'})
        changes['name'] = name
    if 'scheduled_time' in changes:
        changes['scheduled_time'] = _clean_time(changes['scheduled_time'])
    if 'description' in changes and changes['description'] is None:
        changes['description'] = ''

    for field, value in changes.items():
        setattr(template, field, value)
    template.save(update_fields=[*changes.keys(), 'updated_at'])
    logger.info("Task template %s updated: %s", template.pk, ', '.join(sorted(changes)) or '-')
    return template


def reorder_templates(
    owner: User,
    items: Sequence[Mapping[str, Any]],
    *,
    user: Optional[User] = None,
) -> List[TaskTemplate]:
    """
    Пакетно выставляет order. Всё или ничего: строки шаблонов владельца
    блокируются, любая ошибка откатывает транзакцию целиком.
    """
    if not items:
        raise ValidationError({'tasks': 'At least one task is required'})

    parsed: List[Tuple[int, int]] = []
    for item in items:
        try:
            parsed.append((int(item['id']), int(item['order'])))
        except (KeyError, TypeError, ValueError):
            raise ValidationError({'tasks': 'Each item must have integer "id" and "order"'})

    ids = [pk for pk, _ in parsed]
    if len(set(ids)) != len(ids):
        raise ValidationError({'tasks': 'Duplicate task ids in reorder request'})

    with transaction.atomic():
        locked = {
            template.pk: template
            for template in TaskTemplate.objects.select_for_update().filter(owner=owner, pk__in=ids)
        }
        missing = [pk for pk in ids if pk not in locked]
        if missing:
            logger.warning("Reorder by owner %s refused, unknown tasks %s", owner.pk, missing)
            raise NotFound(f'Task(s) not found: {", ".join(map(str, missing))}')

        old_order = {pk: locked[pk].order for pk in ids}
        for pk, order in parsed:
            template = locked[pk]
            template.order = order
            template.save(update_fields=['order', 'updated_at'])

        record_audit(
            user=user,
            instance=owner,
            action_type='REORDER',
            old_values={'order': old_order},
            new_values={'order': dict(parsed)},
        )

    logger.info("Owner %s reordered %s task template(s)", owner.pk, len(parsed))
    return list(owner_templates(owner, active_only=False))


def _deactivate(template: TaskTemplate, user: Optional[User]) -> str:
    if template.active:
        template.active = False
        template.save(update_fields=['active', 'updated_at'])
    record_audit(
        user=user,
        instance=template,
        action_type='DEACTIVATE',
        old_values={'active': True},
        new_values={'active': False},
    )
    logger.info("Task template %s deactivated, it has completion history", template.pk)
    return 'deactivated'


def delete_template(template: TaskTemplate, *, user: Optional[User] = None) -> str:
    """
    Физически удаляет шаблон без истории, иначе только деактивирует.
    Возвращает ``'deleted'`` или ``'deactivated'``.
    """
    with transaction.atomic():
        if CompletionEntry.objects.filter(task=template).exists():
            return _deactivate(template, user)

        snapshot = {
            'name': template.name,
            'scheduledTime': template.scheduled_time,
            'order': template.order,
        }
        pk = template.pk
        try:
            with transaction.atomic():
                template.delete()
        except ProtectedError:
            # запись журнала появилась между проверкой и удалением
            return _deactivate(template, user)
        template.pk = pk
        record_audit(user=user, instance=template, action_type='DELETE', old_values=snapshot)

    logger.info("Task template %s deleted", pk)
    return 'deleted'


# --- Задачи на сегодня ---

def todays_tasks(patient: Patient, day: date, tz: tzinfo) -> List[TaskInstance]:
    """
    Активные шаблоны владельца пациента в порядке отображения, со статусом
    выполнения за ``day``. Шаблоны не привязаны к датам: день только
    определяет, какие отметки считать сегодняшними.
    """
    board = day_board(patient.owner, day, tz, patient=patient)
    return [
        TaskInstance(template=template, patient_id=patient.pk, date=day, status=board[template.pk])
        for template in owner_templates(patient.owner)
    ]


# --- Журнал выполнения ---

def submit_completion(
    *,
    nurse: User,
    patient: Patient,
    template_id: Any,
    note: Optional[str],
    tz: tzinfo,
    submitted_at: Optional[datetime] = None,
) -> CompletionEntry:
    """
    Фиксирует выполнение задачи медсестрой. Опоздание вычисляется один раз
    по текущему плановому времени шаблона и дальше не пересчитывается.
    """
    note = (note or '').strip()
    if not note:
        raise ValidationError({'note': 'Note is required'})

    if not patient.active or not nurse_is_assigned(nurse, patient):
        logger.warning("Nurse %s is not assigned to patient %s, submission refused", nurse.pk, patient.pk)
        raise PermissionDenied('You are not assigned to this patient')

    try:
        template = TaskTemplate.objects.get(pk=template_id, owner_id=patient.owner_id, active=True)
    except (TaskTemplate.DoesNotExist, ValueError, TypeError):
        raise NotFound(f'Task {template_id} not found')

    instant = submitted_at or timezone.now()
    local_time = local_time_of(instant, tz)
    late = is_late(template.scheduled_time, local_time)

    with transaction.atomic():
        if settings.TASKS_SINGLE_COMPLETION_PER_DAY:
            TaskTemplate.objects.select_for_update().filter(pk=template.pk).first()
            start, end = day_bounds(local_date_of(instant, tz), tz)
            already = CompletionEntry.objects.filter(
                task=template, patient=patient, timestamp__gte=start, timestamp__lt=end,
            ).exists()
            if already:
                raise Conflict(f'Task "{template.name}" is already completed for this patient today')

        entry = CompletionEntry.objects.create(
            task=template,
            patient=patient,
            nurse=nurse,
            note=note,
            timestamp=instant,
            local_time=local_time,
            timezone_name=timezone_name(tz),
            is_late=late,
            expected_completion_time=template.scheduled_time,
        )
        record_audit(
            user=nurse,
            instance=entry,
            action_type='CREATE',
            new_values={
                'ownerTaskId': template.pk,
                'patientId': patient.pk,
                'localTime': local_time,
                'isLate': late,
            },
        )

    logger.info(
        "Task %s completed for patient %s by nurse %s at %s %s (%s)",
        template.pk, patient.pk, nurse.pk, local_time, timezone_name(tz), 'late' if late else 'on time',
    )
    return entry


def _entries() -> QuerySet[CompletionEntry]:
    return CompletionEntry.objects.select_related('task', 'patient', 'patient__owner', 'nurse')


def _filter_range(
    queryset: QuerySet[CompletionEntry],
    start: Optional[datetime],
    end: Optional[datetime],
) -> QuerySet[CompletionEntry]:
    if start is not None:
        queryset = queryset.filter(timestamp__gte=start)
    if end is not None:
        queryset = queryset.filter(timestamp__lt=end)
    return queryset


def _limited(queryset: QuerySet[CompletionEntry], limit: Optional[int]) -> List[CompletionEntry]:
    queryset = queryset.order_by('-timestamp', '-id')
    return list(queryset[:limit] if limit else queryset)


def list_for_patient(
    patient: Patient,
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    limit: Optional[int] = None,
) -> List[CompletionEntry]:
    return _limited(_filter_range(_entries().filter(patient=patient), start, end), limit)


def list_for_nurse(
    nurse: User,
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    patient_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[CompletionEntry]:
    queryset = _entries().filter(nurse=nurse)
    if patient_id is not None:
        queryset = queryset.filter(patient_id=patient_id)
    return _limited(_filter_range(queryset, start, end), limit)


def list_for_owner(
    owner: User,
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    template_id: Optional[int] = None,
    patient_id: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[CompletionEntry]:
    """Принадлежность владельцу определяется через пациента, а не через шаблон."""
    queryset = _entries().filter(patient__owner=owner)
    if template_id is not None:
        queryset = queryset.filter(task_id=template_id)
    if patient_id is not None:
        queryset = queryset.filter(patient_id=patient_id)
    return _limited(_filter_range(queryset, start, end), limit)


# --- Сводка за день ---

def day_board(
    owner: User,
    day: date,
    tz: tzinfo,
    *,
    patient: Optional[Patient] = None,
) -> Dict[int, str]:
    """
    Статус каждого активного шаблона владельца за локальные сутки ``day`` в ``tz``:
    нет отметок - pending, есть опоздавшая - done-late, иначе done.
    Считается при каждом чтении.
    """
    board = {pk: STATUS_PENDING for pk in owner_templates(owner).values_list('pk', flat=True)}
    if not board:
        return board

    start, end = day_bounds(day, tz)
    entries = CompletionEntry.objects.filter(
        task_id__in=list(board),
        patient__owner=owner,
        timestamp__gte=start,
        timestamp__lt=end,
    )
    if patient is not None:
        entries = entries.filter(patient=patient)

    for task_id, late in entries.values_list('task_id', 'is_late'):
        if late:
            board[task_id] = STATUS_DONE_LATE
        elif board[task_id] == STATUS_PENDING:
            board[task_id] = STATUS_DONE
    return board


# --- Библиотека шаблонов ---

def seed_library() -> List[LibraryTemplate]:
    """Создаёт недостающие шаблоны библиотеки по умолчанию; повторный вызов ничего не дублирует."""
    created = []
    for name, description, scheduled_time in DEFAULT_LIBRARY:
        template, is_new = LibraryTemplate.objects.get_or_create(
            name=name,
            defaults={'description': description, 'scheduled_time': scheduled_time},
        )
        if is_new:
            created.append(template)
    logger.info("Task library seeded, %s new template(s)", len(created))
    return created
