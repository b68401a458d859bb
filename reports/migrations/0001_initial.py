import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action_type', models.CharField(max_length=50, verbose_name='Действие')),
                ('table_name', models.CharField(max_length=100, verbose_name='Таблица')),
                ('record_id', models.BigIntegerField(verbose_name='ID записи')),
                ('old_values', models.TextField(blank=True, null=True, verbose_name='Старые значения')),
                ('new_values', models.TextField(blank=True, null=True, verbose_name='Новые значения')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Время действия')),
                ('user', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='Пользователь')),
            ],
            options={
                'verbose_name': 'Запись аудита',
                'verbose_name_plural': 'Журнал аудита',
                'db_table': 'audit_log',
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['table_name', 'record_id'], name='idx_audit_record')],
            },
        ),
    ]
