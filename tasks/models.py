from django.core.exceptions import ValidationError
from django.db import models

from patients.models import Patient
from users.models import User
from .timing import normalize_hhmm


def validate_hhmm(value):
    try:
        normalize_hhmm(value)
    except ValueError as exc:
        raise ValidationError(str(exc))


class LibraryTemplate(models.Model):
    """Шаблон из общей библиотеки администратора, из которого владелец создаёт свою задачу."""

    name = models.CharField(max_length=255, unique=True, verbose_name="Название")
    description = models.TextField(blank=True, verbose_name="Описание")
    scheduled_time = models.CharField(max_length=5, null=True, blank=True, validators=[validate_hhmm],
                                      verbose_name="Плановое время (ЧЧ:ММ)")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Создано")

    class Meta:
        db_table = 'task_library'
        verbose_name = 'Библиотечный шаблон'
        verbose_name_plural = 'Библиотека шаблонов'
        ordering = ['name']

    def __str__(self):
        return self.name


class TaskTemplate(models.Model):
    owner = models.ForeignKey(User, on_delete=models.PROTECT, related_name='task_templates', verbose_name="Владелец")
    name = models.CharField(max_length=255, verbose_name="Название")
    description = models.TextField(blank=True, verbose_name="Описание")
    # Локальное время "HH:MM" без даты; пусто - задача без фиксированного времени
    scheduled_time = models.CharField(max_length=5, null=True, blank=True, validators=[validate_hhmm],
                                      verbose_name="Плановое время (ЧЧ:ММ)")
    order = models.IntegerField(default=0, verbose_name="Порядок")
    active = models.BooleanField(default=True, verbose_name="Активен")
    source_template = models.ForeignKey(LibraryTemplate, on_delete=models.SET_NULL, null=True, blank=True,
                                        related_name='task_templates', verbose_name="Библиотечный шаблон")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Создано")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Обновлено")

    class Meta:
        db_table = 'task_templates'
        verbose_name = 'Шаблон задачи'
        verbose_name_plural = 'Шаблоны задач'
        ordering = ['order', 'created_at', 'id']
        indexes = [
            models.Index(fields=['owner', 'active', 'order'], name='idx_template_owner_order'),
        ]

    def __str__(self):
        return self.name


class CompletionEntry(models.Model):
    """
    Отметка медсестры о выполнении задачи. Журнал только дополняется:
    is_late и expected_completion_time - снимки на момент отправки.
    """

    task = models.ForeignKey(TaskTemplate, on_delete=models.PROTECT, related_name='entries', verbose_name="Задача")
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='task_entries',
                                verbose_name="Пациент")
    nurse = models.ForeignKey(User, on_delete=models.PROTECT, related_name='task_entries', verbose_name="Медсестра")
    note = models.TextField(verbose_name="Комментарий")
    timestamp = models.DateTimeField(db_index=True, verbose_name="Время отметки (UTC)")
    local_time = models.CharField(max_length=5, verbose_name="Локальное время отметки (ЧЧ:ММ)")
    timezone_name = models.CharField(max_length=64, verbose_name="Часовой пояс оценки")
    is_late = models.BooleanField(default=False, verbose_name="С опозданием")
    expected_completion_time = models.CharField(max_length=5, null=True, blank=True,
                                                verbose_name="Плановое время выполнения (ЧЧ:ММ)")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Создано")

    class Meta:
        db_table = 'task_entries'
        verbose_name = 'Отметка о выполнении'
        verbose_name_plural = 'Отметки о выполнении'
        ordering = ['-timestamp', '-id']
        indexes = [
            models.Index(fields=['patient', 'task', 'timestamp'], name='idx_entry_patient_task'),
            models.Index(fields=['nurse', 'timestamp'], name='idx_entry_nurse'),
        ]

    def __str__(self):
        return f"{self.task_id} / {self.patient_id} @ {self.timestamp:%Y-%m-%d %H:%M}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError('Completion entries are append-only and cannot be modified')
        super().save(*args, **kwargs)
