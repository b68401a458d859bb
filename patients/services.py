from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import QuerySet
from django.utils import timezone

from common.audit import record_audit
from common.exceptions import Conflict, ValidationError
from users.models import ROLE_NURSE, User
from users.permissions import is_admin, is_nurse, is_owner
from .models import Assignment, Patient

logger = logging.getLogger(__name__)


def patients_visible_to(user: User) -> QuerySet[Patient]:
    """
    Пациенты в зоне видимости пользователя: админ - все, владелец - свои,
    медсестра - только с активным назначением.
    """
    queryset = Patient.objects.select_related('owner')
    if is_admin(user):
        return queryset
    if is_owner(user):
        return queryset.filter(owner=user)
    if is_nurse(user):
        return queryset.filter(assignments__nurse=user, assignments__active=True, active=True).distinct()
    return queryset.none()


def nurse_is_assigned(nurse: User, patient: Patient) -> bool:
    return Assignment.objects.filter(nurse=nurse, patient=patient, active=True).exists()


def assign_nurse(*, patient: Patient, nurse: User, assigned_by: User | None) -> Assignment:
    """
    Назначает медсестру пациенту. Несколько медсестёр на одного пациента допустимы,
    повторное активное назначение той же пары - конфликт.
    """
    if nurse.role_name != ROLE_NURSE:
        raise ValidationError({'nurseId': f'User {nurse.pk} is not a nurse'})
    if not patient.active:
        raise ValidationError({'patientId': f'Patient {patient.pk} is not active'})

    with transaction.atomic():
        if Assignment.objects.select_for_update().filter(nurse=nurse, patient=patient, active=True).exists():
            raise Conflict(f'Nurse {nurse.pk} is already assigned to patient {patient.pk}')
        assignment = Assignment.objects.create(nurse=nurse, patient=patient, assigned_by=assigned_by)

    logger.info("Nurse %s assigned to patient %s by %s", nurse.pk, patient.pk, getattr(assigned_by, 'pk', None))
    return assignment


def end_assignment(assignment: Assignment, *, user: User | None = None) -> Assignment:
    if not assignment.active:
        return assignment
    assignment.active = False
    assignment.ended_at = timezone.now()
    assignment.save(update_fields=['active', 'ended_at'])
    record_audit(
        user=user,
        instance=assignment,
        action_type='DEACTIVATE',
        old_values={'active': True},
        new_values={'active': False},
    )
    logger.info("Assignment %s ended", assignment.pk)
    return assignment


def deactivate_patient(patient: Patient, *, user: User | None = None) -> Patient:
    """Мягкое удаление пациента вместе с его активными назначениями."""
    with transaction.atomic():
        patient.active = False
        patient.save(update_fields=['active', 'updated_at'])
        ended = Assignment.objects.filter(patient=patient, active=True).update(active=False, ended_at=timezone.now())
        record_audit(
            user=user,
            instance=patient,
            action_type='DEACTIVATE',
            old_values={'active': True},
            new_values={'active': False, 'endedAssignments': ended},
        )
    logger.info("Patient %s deactivated, %s assignment(s) ended", patient.pk, ended)
    return patient
