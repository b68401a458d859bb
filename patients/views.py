from __future__ import annotations

from typing import List, cast

from django.db.models import QuerySet
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import BasePermission, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from common.audit import AuditLoggingMixin
from common.typing import RoleAwareUser
from tasks.query_params import parse_entry_filters
from tasks.serializers import CompletionEntrySerializer
from tasks.services import list_for_patient, profile_timezone
from users.permissions import IsAdmin, IsOwnerOrAdmin, is_owner
from .models import Assignment, Patient
from .serializers import AssignmentSerializer, PatientSerializer
from .services import assign_nurse, deactivate_patient, end_assignment, patients_visible_to


@extend_schema(
    tags=['Пациенты'],
    description='Пациенты учреждения. Владелец управляет своими пациентами, админ видит всех, медсестра - назначенных.'
)
class PatientViewSet(AuditLoggingMixin, viewsets.ModelViewSet):
    """
    ViewSet для пациентов.

    - GET /api/patients/?active=true - список в зоне видимости пользователя
    - POST /api/patients/ - создать пациента (владелец)
    - PUT/PATCH /api/patients/{id}/ - обновить (владелец или админ)
    - DELETE /api/patients/{id}/ - деактивировать (мягкое удаление)
    - GET /api/patients/{id}/tasks/ - журнал выполнения задач по пациенту (владелец или админ)
    """
    queryset = Patient.objects.all()
    serializer_class = PatientSerializer

    def get_permissions(self) -> List[BasePermission]:
        if self.action in ['create', 'update', 'partial_update', 'destroy', 'tasks']:
            return [IsOwnerOrAdmin()]
        return [IsAuthenticated()]

    def get_queryset(self) -> QuerySet[Patient]:
        queryset = patients_visible_to(cast(RoleAwareUser, self.request.user))
        active = self.request.query_params.get('active')
        if active is not None and self.action == 'list':
            queryset = queryset.filter(active=active.lower() == 'true')
        return queryset

    def perform_create(self, serializer: PatientSerializer) -> None:  # type: ignore[override]
        user = self.request.user
        if not is_owner(user):
            from rest_framework.exceptions import ValidationError
            raise ValidationError({'ownerId': 'Patients are created by facility owners'})
        self.save_and_log_create(serializer, owner=user)

    def perform_destroy(self, instance: Patient) -> None:  # type: ignore[override]
        deactivate_patient(instance, user=self.request.user)

    @extend_schema(
        summary='Журнал выполнения задач по пациенту',
        parameters=[
            OpenApiParameter('startDate', str, description='YYYY-MM-DD, локальная дата владельца'),
            OpenApiParameter('endDate', str, description='YYYY-MM-DD, локальная дата владельца'),
        ],
        tags=['Пациенты'],
    )
    @action(detail=True, methods=['get'])
    def tasks(self, request: Request, pk=None) -> Response:
        patient = self.get_object()
        tz = profile_timezone(patient.owner)
        filters = parse_entry_filters(request.query_params, tz)
        entries = list_for_patient(patient, start=filters.start, end=filters.end, limit=filters.limit)
        serializer = CompletionEntrySerializer(entries, many=True, context={'request': request})
        return Response({'data': serializer.data, 'ownerTimezone': patient.owner.timezone})


@extend_schema(
    tags=['Пациенты'],
    description='Назначения медсестёр пациентам. Только для админа.',
    parameters=[
        OpenApiParameter('active', bool),
        OpenApiParameter('nurseId', int),
        OpenApiParameter('patientId', int),
    ],
)
class AssignmentViewSet(AuditLoggingMixin,
                        mixins.ListModelMixin,
                        mixins.RetrieveModelMixin,
                        mixins.CreateModelMixin,
                        mixins.DestroyModelMixin,
                        viewsets.GenericViewSet):
    """
    ViewSet для назначений медсестёр.

    - GET /api/assignments/?active=true&nurseId=&patientId=
    - POST /api/assignments/ {nurseId, patientId}
    - DELETE /api/assignments/{id}/ - завершить назначение (запись остаётся в истории)
    """
    queryset = Assignment.objects.select_related('nurse', 'patient', 'assigned_by').all()
    serializer_class = AssignmentSerializer
    permission_classes = [IsAdmin]

    def get_queryset(self) -> QuerySet[Assignment]:
        queryset = self.queryset
        params = self.request.query_params
        active = params.get('active')
        if active is not None:
            queryset = queryset.filter(active=active.lower() == 'true')
        if params.get('nurseId'):
            queryset = queryset.filter(nurse_id=params['nurseId'])
        if params.get('patientId'):
            queryset = queryset.filter(patient_id=params['patientId'])
        return queryset

    def create(self, request: Request, *args, **kwargs) -> Response:
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        assignment = assign_nurse(
            patient=serializer.validated_data['patient'],
            nurse=serializer.validated_data['nurse'],
            assigned_by=request.user,
        )
        self._create_audit_log(
            instance=assignment,
            action_type='CREATE',
            new_values=self._serialize_instance(assignment),
        )
        return Response(self.get_serializer(assignment).data, status=status.HTTP_201_CREATED)

    def destroy(self, request: Request, *args, **kwargs) -> Response:
        assignment = end_assignment(self.get_object(), user=request.user)
        return Response({'message': 'Assignment ended', 'data': self.get_serializer(assignment).data})
