from django.db import models
from users.models import User


class AuditLog(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, verbose_name="Пользователь")
    action_type = models.CharField(max_length=50, verbose_name="Действие")
    table_name = models.CharField(max_length=100, verbose_name="Таблица")
    record_id = models.BigIntegerField(verbose_name="ID записи")
    old_values = models.TextField(null=True, blank=True, verbose_name="Старые значения")
    new_values = models.TextField(null=True, blank=True, verbose_name="Новые значения")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Время действия")

    class Meta:
        db_table = 'audit_log'
        verbose_name = 'Запись аудита'
        verbose_name_plural = 'Журнал аудита'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['table_name', 'record_id'], name='idx_audit_record'),
        ]

    def __str__(self):
        return f"{self.action_type} {self.table_name}#{self.record_id}"
