import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import tasks.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('patients', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='LibraryTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255, unique=True, verbose_name='Название')),
                ('description', models.TextField(blank=True, verbose_name='Описание')),
                ('scheduled_time', models.CharField(blank=True, max_length=5, null=True, validators=[tasks.models.validate_hhmm], verbose_name='Плановое время (ЧЧ:ММ)')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Создано')),
            ],
            options={
                'verbose_name': 'Библиотечный шаблон',
                'verbose_name_plural': 'Библиотека шаблонов',
                'db_table': 'task_library',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='TaskTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255, verbose_name='Название')),
                ('description', models.TextField(blank=True, verbose_name='Описание')),
                ('scheduled_time', models.CharField(blank=True, max_length=5, null=True, validators=[tasks.models.validate_hhmm], verbose_name='Плановое время (ЧЧ:ММ)')),
                ('order', models.IntegerField(default=0, verbose_name='Порядок')),
                ('active', models.BooleanField(default=True, verbose_name='Активен')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Создано')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Обновлено')),
                ('owner', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='task_templates', to=settings.AUTH_USER_MODEL, verbose_name='Владелец')),
                ('source_template', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='task_templates', to='tasks.librarytemplate', verbose_name='Библиотечный шаблон')),
            ],
            options={
                'verbose_name': 'Шаблон задачи',
                'verbose_name_plural': 'Шаблоны задач',
                'db_table': 'task_templates',
                'ordering': ['order', 'created_at', 'id'],
                'indexes': [models.Index(fields=['owner', 'active', 'order'], name='idx_template_owner_order')],
            },
        ),
        migrations.CreateModel(
            name='CompletionEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('note', models.TextField(verbose_name='Комментарий')),
                ('timestamp', models.DateTimeField(db_index=True, verbose_name='Время отметки (UTC)')),
                ('local_time', models.CharField(max_length=5, verbose_name='Локальное время отметки (ЧЧ:ММ)')),
                ('timezone_name', models.CharField(max_length=64, verbose_name='Часовой пояс оценки')),
                ('is_late', models.BooleanField(default=False, verbose_name='С опозданием')),
                ('expected_completion_time', models.CharField(blank=True, max_length=5, null=True, verbose_name='Плановое время выполнения (ЧЧ:ММ)')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Создано')),
                ('nurse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='task_entries', to=settings.AUTH_USER_MODEL, verbose_name='Медсестра')),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='task_entries', to='patients.patient', verbose_name='Пациент')),
                ('task', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='entries', to='tasks.tasktemplate', verbose_name='Задача')),
            ],
            options={
                'verbose_name': 'Отметка о выполнении',
                'verbose_name_plural': 'Отметки о выполнении',
                'db_table': 'task_entries',
                'ordering': ['-timestamp', '-id'],
                'indexes': [
                    models.Index(fields=['patient', 'task', 'timestamp'], name='idx_entry_patient_task'),
                    models.Index(fields=['nurse', 'timestamp'], name='idx_entry_nurse'),
                ],
            },
        ),
    ]
