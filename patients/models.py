from django.db import models
from users.models import User


class Patient(models.Model):
    owner = models.ForeignKey(User, on_delete=models.PROTECT, related_name='patients', verbose_name="Владелец")
    name = models.CharField(max_length=255, verbose_name="ФИО пациента")
    age = models.PositiveSmallIntegerField(null=True, blank=True, verbose_name="Возраст")
    gender = models.CharField(max_length=20, blank=True, verbose_name="Пол")
    phone = models.CharField(max_length=32, blank=True, verbose_name="Телефон")
    address = models.TextField(blank=True, verbose_name="Адрес")
    # Пациентов не удаляем физически: на них ссылается журнал выполнения задач
    active = models.BooleanField(default=True, verbose_name="Активен")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Создано")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Обновлено")

    class Meta:
        db_table = 'patients'
        verbose_name = 'Пациент'
        verbose_name_plural = 'Пациенты'
        ordering = ['name', 'id']

    def __str__(self):
        return self.name


class Assignment(models.Model):
    nurse = models.ForeignKey(User, on_delete=models.PROTECT, related_name='assignments', verbose_name="Медсестра")
    patient = models.ForeignKey(Patient, on_delete=models.PROTECT, related_name='assignments', verbose_name="Пациент")
    assigned_by = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True,
                                    related_name='assignments_made', verbose_name="Кем назначено")
    active = models.BooleanField(default=True, verbose_name="Активен")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Назначено")
    ended_at = models.DateTimeField(null=True, blank=True, verbose_name="Завершено")

    class Meta:
        db_table = 'assignments'
        verbose_name = 'Назначение'
        verbose_name_plural = 'Назначения'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['nurse', 'patient', 'active'], name='idx_assignment_lookup'),
        ]

    def __str__(self):
        return f"{self.nurse} -> {self.patient}"
