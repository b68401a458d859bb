from rest_framework import serializers

from patients.serializers import PatientRefSerializer
from users.models import ROLE_OWNER, User
from users.serializers import UserRefSerializer
from .models import CompletionEntry, LibraryTemplate, TaskTemplate
from .services import update_template
from .timing import local_isoformat, normalize_hhmm, resolve_timezone


class ScheduledTimeField(serializers.CharField):
    """Время "HH:MM" (24 часа); пустая строка и null - задача без фиксированного времени."""

    def __init__(self, **kwargs):
        kwargs.setdefault('required', False)
        kwargs.setdefault('allow_null', True)
        kwargs.setdefault('allow_blank', True)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        try:
            return normalize_hhmm(value)
        except ValueError as exc:
            raise serializers.ValidationError(str(exc))


class LibraryTemplateSerializer(serializers.ModelSerializer):
    scheduledTime = ScheduledTimeField(source='scheduled_time')
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = LibraryTemplate
        fields = ('id', 'name', 'description', 'scheduledTime', 'createdAt')


class TaskTemplateSerializer(serializers.ModelSerializer):
    """
    Представление шаблона и его изменение (PUT/PATCH): меняются только
    name, description и scheduledTime. Порядок меняется через reorder.
    """

    ownerId = serializers.PrimaryKeyRelatedField(source='owner', read_only=True)
    scheduledTime = ScheduledTimeField(source='scheduled_time')
    fromTemplate = serializers.PrimaryKeyRelatedField(source='source_template', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = TaskTemplate
        fields = ('id', 'ownerId', 'name', 'description', 'scheduledTime', 'order', 'active',
                  'fromTemplate', 'createdAt', 'updatedAt')
        read_only_fields = ('order', 'active')

    def update(self, instance, validated_data):
        return update_template(instance, **validated_data)


class TaskTemplateCreateSerializer(serializers.Serializer):
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    scheduledTime = ScheduledTimeField()
    order = serializers.IntegerField(required=False, allow_null=True)
    fromTemplate = serializers.PrimaryKeyRelatedField(
        queryset=LibraryTemplate.objects.all(),
        required=False,
        allow_null=True,
        error_messages={'does_not_exist': 'Library template {pk_value} not found.'},
    )
    # Только для администратора, создающего задачу от имени владельца
    ownerId = serializers.PrimaryKeyRelatedField(
        queryset=User.objects.filter(role__name=ROLE_OWNER),
        required=False,
        error_messages={'does_not_exist': 'Owner {pk_value} not found.'},
    )

    def validate(self, attrs):
        if not (attrs.get('name') or '').strip() and not attrs.get('fromTemplate'):
            raise serializers.ValidationError({'name': 'Task name is required'})
        return attrs


class ReorderItemSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    order = serializers.IntegerField()


class ReorderSerializer(serializers.Serializer):
    tasks = ReorderItemSerializer(many=True, allow_empty=False)
    ownerId = serializers.IntegerField(required=False)


class TaskRefSerializer(serializers.ModelSerializer):
    scheduledTime = serializers.CharField(source='scheduled_time', read_only=True)

    class Meta:
        model = TaskTemplate
        fields = ('id', 'name', 'scheduledTime')


class CompletionEntrySerializer(serializers.ModelSerializer):
    ownerTaskId = serializers.PrimaryKeyRelatedField(source='task', read_only=True)
    patientId = serializers.PrimaryKeyRelatedField(source='patient', read_only=True)
    nurseId = serializers.PrimaryKeyRelatedField(source='nurse', read_only=True)
    task = TaskRefSerializer(read_only=True)
    patient = PatientRefSerializer(read_only=True)
    nurse = UserRefSerializer(read_only=True)
    timestampUTC = serializers.DateTimeField(source='timestamp', read_only=True)
    localTime = serializers.CharField(source='local_time', read_only=True)
    timezone = serializers.CharField(source='timezone_name', read_only=True)
    isLate = serializers.BooleanField(source='is_late', read_only=True)
    expectedCompletionTime = serializers.CharField(source='expected_completion_time', read_only=True)
    nurseLocalTime = serializers.SerializerMethodField()
    ownerLocalTime = serializers.SerializerMethodField()

    class Meta:
        model = CompletionEntry
        fields = ('id', 'ownerTaskId', 'patientId', 'nurseId', 'task', 'patient', 'nurse', 'note',
                  'timestampUTC', 'localTime', 'timezone', 'isLate', 'expectedCompletionTime',
                  'nurseLocalTime', 'ownerLocalTime')
        read_only_fields = fields

    @staticmethod
    def _in_profile_timezone(obj, user):
        try:
            return local_isoformat(obj.timestamp, resolve_timezone(user.timezone))
        except ValueError:
            return None

    def get_nurseLocalTime(self, obj):
        return self._in_profile_timezone(obj, obj.nurse)

    def get_ownerLocalTime(self, obj):
        return self._in_profile_timezone(obj, obj.patient.owner)


class SubmitCompletionSerializer(serializers.Serializer):
    ownerTaskId = serializers.IntegerField()
    note = serializers.CharField(allow_blank=True, trim_whitespace=False)


class TaskInstanceSerializer(serializers.Serializer):
    """Задача на сегодня: поля шаблона плюс статус выполнения за день."""

    id = serializers.IntegerField(source='template.id')
    name = serializers.CharField(source='template.name')
    description = serializers.CharField(source='template.description')
    scheduledTime = serializers.CharField(source='template.scheduled_time', allow_null=True)
    order = serializers.IntegerField(source='template.order')
    patientId = serializers.IntegerField(source='patient_id')
    date = serializers.DateField()
    status = serializers.CharField()
