from rest_framework import serializers

from patients.models import Patient
from patients.serializers import PatientRefSerializer
from users.serializers import UserRefSerializer
from .models import Query


class QuerySerializer(serializers.ModelSerializer):
    patientId = serializers.PrimaryKeyRelatedField(
        source='patient',
        queryset=Patient.objects.all(),
        required=False,
        allow_null=True,
        error_messages={'does_not_exist': 'Patient {pk_value} not found.'},
    )
    patient = PatientRefSerializer(read_only=True)
    createdBy = UserRefSerializer(source='created_by', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    updatedAt = serializers.DateTimeField(source='updated_at', read_only=True)

    class Meta:
        model = Query
        fields = ('id', 'title', 'message', 'category', 'status', 'patientId', 'patient', 'createdBy',
                  'createdAt', 'updatedAt')
        read_only_fields = ('category', 'status')


class QueryStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Query.STATUS_CHOICES)
