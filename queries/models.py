from django.db import models

from patients.models import Patient
from users.models import User


class Query(models.Model):
    """Обращение владельца или медсестры в поддержку платформы."""

    CATEGORY_OWNER = 'owner'
    CATEGORY_NURSE = 'nurse'
    CATEGORY_CHOICES = [
        (CATEGORY_OWNER, 'Владелец'),
        (CATEGORY_NURSE, 'Медсестра'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_PRIORITY = 'priority'
    STATUS_RESOLVED = 'resolved'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Ожидает'),
        (STATUS_PRIORITY, 'Приоритет'),
        (STATUS_RESOLVED, 'Решено'),
    ]

    title = models.CharField(max_length=255, verbose_name="Тема")
    message = models.TextField(verbose_name="Сообщение")
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, verbose_name="Категория")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING, verbose_name="Статус")
    created_by = models.ForeignKey(User, on_delete=models.CASCADE, related_name='queries', verbose_name="Автор")
    patient = models.ForeignKey(Patient, on_delete=models.SET_NULL, null=True, blank=True, related_name='queries',
                                verbose_name="Пациент")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Создано")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Обновлено")

    class Meta:
        db_table = 'queries'
        verbose_name = 'Обращение'
        verbose_name_plural = 'Обращения'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status', 'category'], name='idx_query_status'),
        ]

    def __str__(self):
        return f"{self.title} ({self.status})"
