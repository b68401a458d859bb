from rest_framework import serializers

from users.models import User
from users.serializers import UserRefSerializer
from .models import Assignment, Patient


class PatientSerializer(serializers.ModelSerializer):
    ownerId = serializers.PrimaryKeyRelatedField(source='owner', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = Patient
        fields = ('id', 'ownerId', 'name', 'age', 'gender', 'phone', 'address', 'active', 'createdAt')
        read_only_fields = ('active',)


class PatientRefSerializer(serializers.ModelSerializer):
    class Meta:
        model = Patient
        fields = ('id', 'name')


class AssignmentSerializer(serializers.ModelSerializer):
    nurseId = serializers.PrimaryKeyRelatedField(
        source='nurse',
        queryset=User.objects.all(),
        error_messages={'does_not_exist': 'Nurse {pk_value} not found.'},
    )
    patientId = serializers.PrimaryKeyRelatedField(
        source='patient',
        queryset=Patient.objects.all(),
        error_messages={'does_not_exist': 'Patient {pk_value} not found.'},
    )
    nurse = UserRefSerializer(read_only=True)
    patient = PatientRefSerializer(read_only=True)
    assignedByAdmin = serializers.PrimaryKeyRelatedField(source='assigned_by', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)
    endedAt = serializers.DateTimeField(source='ended_at', read_only=True)

    class Meta:
        model = Assignment
        fields = ('id', 'nurseId', 'patientId', 'nurse', 'patient', 'assignedByAdmin', 'active',
                  'createdAt', 'endedAt')
        read_only_fields = ('active',)
