"""
Обращения в поддержку: создание владельцем или медсестрой, смена статуса администратором.
"""
from __future__ import annotations

import logging
from typing import Optional

from common.audit import record_audit
from common.exceptions import ValidationError
from patients.models import Patient
from patients.services import patients_visible_to
from users.models import ROLE_NURSE, ROLE_OWNER, User
from .models import Query

logger = logging.getLogger(__name__)

STATUSES = {value for value, _ in Query.STATUS_CHOICES}


def create_query(
    creator: User,
    *,
    title: str,
    message: str,
    patient: Optional[Patient] = None,
) -> Query:
    """Категория берётся из роли автора; пациент должен быть в его зоне видимости."""
    role = creator.role_name
    if role not in (ROLE_OWNER, ROLE_NURSE):
        raise ValidationError({'category': 'Only owners and nurses can raise queries'})

    title = (title or '').strip()
    message = (message or '').strip()
    errors = {}
    if not title:
        errors['title'] = 'Title is required'
    if not message:
        errors['message'] = 'Message is required'
    if errors:
        raise ValidationError(errors)

    if patient is not None and not patients_visible_to(creator).filter(pk=patient.pk).exists():
        raise ValidationError({'patientId': f'Patient {patient.pk} is not linked to you'})

    query = Query.objects.create(
        title=title,
        message=message,
        category=role,
        created_by=creator,
        patient=patient,
    )
    record_audit(user=creator, instance=query, action_type='CREATE',
                 new_values={'title': title, 'category': role, 'patientId': getattr(patient, 'pk', None)})
    logger.info("Query %s raised by %s %s", query.pk, role, creator.pk)
    return query


def update_status(query: Query, status: str, *, user: Optional[User] = None) -> Query:
    # переходы не ограничены: любой статус можно выставить в любой момент
    if status not in STATUSES:
        raise ValidationError({'status': f'Status must be one of: {", ".join(sorted(STATUSES))}'})
    previous = query.status
    if previous != status:
        query.status = status
        query.save(update_fields=['status', 'updated_at'])
        record_audit(user=user, instance=query, action_type='UPDATE',
                     old_values={'status': previous}, new_values={'status': status})
        logger.info("Query %s status %s -> %s", query.pk, previous, status)
    return query
